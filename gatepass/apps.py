from django.apps import AppConfig


class GatepassConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'gatepass'
    verbose_name = 'Gate Pass Ledger'

from gatepass.context import TenantContext
from gatepass.models import RiceMill


def make_mill(code="RM1"):
    return RiceMill.objects.create(name=f"Mill {code}", code=code)


def other_tenant(code="RM2"):
    return TenantContext(rice_mill_id=make_mill(code).id)

import uuid

import django.core.validators
import django.db.models.deletion
import django.db.models.functions.text
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="RiceMill",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=150, unique=True)),
                ("code", models.CharField(max_length=20, unique=True)),
                ("address", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(
                    choices=[("ADMIN", "Mill Admin"), ("MANAGER", "Procurement Manager"), ("OPERATOR", "Gate Operator")],
                    default="OPERATOR",
                    max_length=20,
                )),
                ("user", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="gatepass_profile",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("rice_mill", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="members",
                    to="gatepass.ricemill",
                )),
            ],
        ),
        migrations.CreateModel(
            name="Season",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(help_text="Year label, e.g. 2025-2026", max_length=20)),
                ("type", models.CharField(choices=[("KHARIF", "Kharif"), ("RABI", "Rabi")], max_length=10)),
                ("is_active", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("rice_mill", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="seasons",
                    to="gatepass.ricemill",
                )),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_active", True)),
                        fields=("rice_mill",),
                        name="gatepass_one_active_season_per_mill",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="District",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("code", models.CharField(max_length=20)),
                ("state", models.CharField(blank=True, max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("rice_mill", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="districts",
                    to="gatepass.ricemill",
                )),
            ],
            options={
                "ordering": ["name"],
                "unique_together": {("rice_mill", "code")},
            },
        ),
        migrations.CreateModel(
            name="Society",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=150)),
                ("code", models.CharField(help_text="PACS-<district code>-<seq>", max_length=40)),
                ("address", models.TextField(blank=True)),
                ("contact_no", models.CharField(blank=True, max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("district", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="societies",
                    to="gatepass.district",
                )),
                ("rice_mill", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="societies",
                    to="gatepass.ricemill",
                )),
            ],
            options={
                "ordering": ["name"],
                "verbose_name_plural": "societies",
                "unique_together": {("rice_mill", "code")},
            },
        ),
        migrations.CreateModel(
            name="Party",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=150)),
                ("father_name", models.CharField(blank=True, max_length=150)),
                ("phone", models.CharField(blank=True, max_length=20)),
                ("address", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("society", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="parties",
                    to="gatepass.society",
                )),
            ],
            options={
                "ordering": ["name"],
                "verbose_name_plural": "parties",
                "constraints": [
                    models.UniqueConstraint(
                        django.db.models.functions.text.Lower("name"),
                        models.F("society"),
                        name="gatepass_party_name_per_society",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SocietyTarget",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("target_quantity", models.DecimalField(
                    decimal_places=2,
                    default=0,
                    max_digits=14,
                    validators=[django.core.validators.MinValueValidator(0)],
                )),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("season", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="targets",
                    to="gatepass.season",
                )),
                ("society", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="targets",
                    to="gatepass.society",
                )),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("target_quantity__gte", 0)),
                        name="gatepass_target_non_negative",
                    ),
                ],
                "unique_together": {("season", "society")},
            },
        ),
        migrations.CreateModel(
            name="GatePassEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("token_no", models.CharField(max_length=50)),
                ("challan_no", models.CharField(blank=True, max_length=50)),
                ("date", models.DateTimeField(default=django.utils.timezone.now)),
                ("party_name", models.CharField(max_length=150)),
                ("society_name", models.CharField(max_length=150)),
                ("vehicle_type", models.CharField(
                    choices=[("TRUCK", "Truck"), ("TRACTOR", "Tractor"), ("TATA_ACE", "Tata Ace")],
                    default="TRUCK",
                    max_length=10,
                )),
                ("vehicle_no", models.CharField(
                    blank=True,
                    max_length=20,
                    validators=[django.core.validators.RegexValidator(
                        "^[A-Z]{2}\\d{2}[A-Z]{1,2}\\d{4}$",
                        "Vehicle number must be in Indian format (e.g., OD01AB1234, MH12DE5678)",
                    )],
                )),
                ("bags", models.PositiveIntegerField()),
                ("quantity", models.DecimalField(decimal_places=2, max_digits=12)),
                ("remarks", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="recorded_gate_passes",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("district", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="gate_pass_entries",
                    to="gatepass.district",
                )),
                ("party", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="gate_pass_entries",
                    to="gatepass.party",
                )),
                ("rice_mill", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="gate_pass_entries",
                    to="gatepass.ricemill",
                )),
                ("season", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="gate_pass_entries",
                    to="gatepass.season",
                )),
                ("society", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="gate_pass_entries",
                    to="gatepass.society",
                )),
            ],
            options={
                "verbose_name_plural": "gate pass entries",
                "ordering": ["-date"],
                "indexes": [
                    models.Index(fields=["rice_mill", "season", "date"], name="gatepass_entry_season_date"),
                    models.Index(fields=["rice_mill", "society"], name="gatepass_entry_society"),
                    models.Index(fields=["rice_mill", "district"], name="gatepass_entry_district"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("rice_mill", "token_no"), name="gatepass_token_per_mill"),
                    models.CheckConstraint(condition=models.Q(("bags__gt", 0)), name="gatepass_bags_positive"),
                    models.CheckConstraint(condition=models.Q(("quantity__gt", 0)), name="gatepass_quantity_positive"),
                ],
            },
        ),
    ]

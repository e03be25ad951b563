# models.py

import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
from django.db.models import F, Q
from django.db.models.functions import Lower
from django.utils import timezone

QTY_PER_BAG_PLACES = Decimal("0.001")

# Indian registration plates, e.g. OD01AB1234 or MH12D5678
VEHICLE_NO_PATTERN = r"^[A-Z]{2}\d{2}[A-Z]{1,2}\d{4}$"
vehicle_no_validator = RegexValidator(
    VEHICLE_NO_PATTERN,
    "Vehicle number must be in Indian format (e.g., OD01AB1234, MH12DE5678)",
)


def _dec(x):
    """Ensure Decimal conversion with string for precision."""
    return Decimal(str(x)) if x is not None else None


def qty_per_bag(quantity, bags):
    """Average quantity per bag; 0 when no bags were recorded."""
    if not bags:
        return Decimal("0")
    return (_dec(quantity) / Decimal(bags)).quantize(QTY_PER_BAG_PLACES, rounding=ROUND_HALF_UP)


#
# ----------------------------------------------------------------------
# Tenancy
# ----------------------------------------------------------------------
#
class RiceMill(models.Model):
    """An independent rice-mill organisation; every record below is scoped to one."""
    id   = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=150, unique=True)
    code = models.CharField(max_length=20, unique=True)
    address = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class UserProfile(models.Model):
    """Binds a Django user to the rice mill they operate for."""
    ADMIN    = "ADMIN"
    MANAGER  = "MANAGER"
    OPERATOR = "OPERATOR"
    ROLE_CHOICES = [
        (ADMIN, "Mill Admin"),
        (MANAGER, "Procurement Manager"),
        (OPERATOR, "Gate Operator"),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="gatepass_profile"
    )
    rice_mill = models.ForeignKey(RiceMill, on_delete=models.CASCADE, related_name="members")
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=OPERATOR)

    def __str__(self):
        return f"{self.user} ({self.get_role_display()})"


#
# ----------------------------------------------------------------------
# Seasons & Targets
# ----------------------------------------------------------------------
#
class Season(models.Model):
    KHARIF = "KHARIF"
    RABI = "RABI"
    TYPE_CHOICES = [
        (KHARIF, "Kharif"),
        (RABI, "Rabi"),
    ]

    id        = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    rice_mill = models.ForeignKey(RiceMill, on_delete=models.CASCADE, related_name="seasons")
    name      = models.CharField(max_length=20, help_text="Year label, e.g. 2025-2026")
    type      = models.CharField(max_length=10, choices=TYPE_CHOICES)
    is_active = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["rice_mill"],
                condition=Q(is_active=True),
                name="gatepass_one_active_season_per_mill",
            ),
        ]

    def __str__(self):
        return f"{self.name} {self.get_type_display()}"


#
# ----------------------------------------------------------------------
# Reference data
# ----------------------------------------------------------------------
#
class District(models.Model):
    id        = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    rice_mill = models.ForeignKey(RiceMill, on_delete=models.CASCADE, related_name="districts")
    name      = models.CharField(max_length=100)
    code      = models.CharField(max_length=20)
    state     = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        unique_together = ("rice_mill", "code")

    def __str__(self):
        return f"{self.name} ({self.code})"


class Society(models.Model):
    """Primary agricultural credit society (PACS) collecting paddy for the mill."""
    id        = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    rice_mill = models.ForeignKey(RiceMill, on_delete=models.CASCADE, related_name="societies")
    district  = models.ForeignKey(District, on_delete=models.PROTECT, related_name="societies")
    name      = models.CharField(max_length=150)
    code      = models.CharField(max_length=40, help_text="PACS-<district code>-<seq>")
    address   = models.TextField(blank=True)
    contact_no = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        unique_together = ("rice_mill", "code")
        verbose_name_plural = "societies"

    def __str__(self):
        return f"{self.code} – {self.name}"


class Party(models.Model):
    """Farmer or trader delivering paddy; identified by name within a society."""
    id          = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    society     = models.ForeignKey(Society, on_delete=models.PROTECT, related_name="parties")
    name        = models.CharField(max_length=150)
    father_name = models.CharField(max_length=150, blank=True)
    phone       = models.CharField(max_length=20, blank=True)
    address     = models.TextField(blank=True)
    created_at  = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "parties"
        constraints = [
            models.UniqueConstraint(
                Lower("name"), F("society"), name="gatepass_party_name_per_society"
            ),
        ]

    def __str__(self):
        return self.name


class SocietyTarget(models.Model):
    season  = models.ForeignKey(Season, on_delete=models.CASCADE, related_name="targets")
    society = models.ForeignKey(Society, on_delete=models.CASCADE, related_name="targets")
    target_quantity = models.DecimalField(
        max_digits=14, decimal_places=2, default=0, validators=[MinValueValidator(0)]
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("season", "society")
        constraints = [
            models.CheckConstraint(
                condition=Q(target_quantity__gte=0),
                name="gatepass_target_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.society_id} @ {self.season_id}: {self.target_quantity}"


#
# ----------------------------------------------------------------------
# Ledger
# ----------------------------------------------------------------------
#
class GatePassEntry(models.Model):
    """One paddy delivery recorded at the mill gate."""
    TRUCK = "TRUCK"
    TRACTOR = "TRACTOR"
    TATA_ACE = "TATA_ACE"
    VEHICLE_CHOICES = [
        (TRUCK, "Truck"),
        (TRACTOR, "Tractor"),
        (TATA_ACE, "Tata Ace"),
    ]

    id           = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    rice_mill    = models.ForeignKey(RiceMill, on_delete=models.CASCADE, related_name="gate_pass_entries")
    token_no     = models.CharField(max_length=50)
    challan_no   = models.CharField(max_length=50, blank=True)
    date         = models.DateTimeField(default=timezone.now)
    # denormalised at write time for search/report without joins
    party_name   = models.CharField(max_length=150)
    society_name = models.CharField(max_length=150)
    vehicle_type = models.CharField(max_length=10, choices=VEHICLE_CHOICES, default=TRUCK)
    vehicle_no   = models.CharField(
        max_length=20, blank=True, validators=[vehicle_no_validator]
    )
    bags         = models.PositiveIntegerField()
    quantity     = models.DecimalField(max_digits=12, decimal_places=2)
    remarks      = models.TextField(blank=True)
    society      = models.ForeignKey(Society, on_delete=models.PROTECT, related_name="gate_pass_entries")
    district     = models.ForeignKey(District, on_delete=models.PROTECT, related_name="gate_pass_entries")
    party        = models.ForeignKey(Party, on_delete=models.PROTECT, related_name="gate_pass_entries")
    season       = models.ForeignKey(Season, on_delete=models.PROTECT, related_name="gate_pass_entries")
    created_by   = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_gate_passes",
    )
    created_at   = models.DateTimeField(auto_now_add=True)
    updated_at   = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date"]
        verbose_name_plural = "gate pass entries"
        constraints = [
            models.UniqueConstraint(
                fields=["rice_mill", "token_no"], name="gatepass_token_per_mill"
            ),
            models.CheckConstraint(condition=Q(bags__gt=0), name="gatepass_bags_positive"),
            models.CheckConstraint(condition=Q(quantity__gt=0), name="gatepass_quantity_positive"),
        ]
        indexes = [
            models.Index(fields=["rice_mill", "season", "date"], name="gatepass_entry_season_date"),
            models.Index(fields=["rice_mill", "society"], name="gatepass_entry_society"),
            models.Index(fields=["rice_mill", "district"], name="gatepass_entry_district"),
        ]

    def __str__(self):
        return f"Token {self.token_no}: {self.quantity} qtl / {self.bags} bags"

    @property
    def qty_per_bag(self) -> Decimal:
        return qty_per_bag(self.quantity, self.bags)

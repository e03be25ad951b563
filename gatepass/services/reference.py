"""Districts and societies: the reference data entries and targets hang off."""

from __future__ import annotations

import re

from django.db import IntegrityError, transaction

from gatepass.errors import BusinessRuleViolation, Conflict, NotFound, ValidationFailed
from gatepass.models import District, GatePassEntry, Society
from gatepass.services.querying import parse_id

MAX_CODE_ATTEMPTS = 100


def district_base_code(name) -> str:
    base = re.sub(r"[^A-Z]", "", (name or "").upper())[:6]
    if len(base) < 2:
        raise ValidationFailed("District name must contain at least 2 letters")
    return base


def get_district(ctx, district_id) -> District:
    district = District.objects.filter(
        id=parse_id(district_id, "District"), rice_mill_id=ctx.rice_mill_id
    ).first()
    if district is None:
        raise NotFound("District not found or access denied")
    return district


def get_society(ctx, society_id) -> Society:
    society = (
        Society.objects.filter(id=parse_id(society_id, "Society"), rice_mill_id=ctx.rice_mill_id)
        .select_related("district")
        .first()
    )
    if society is None:
        raise NotFound("Society not found or access denied")
    return society


def _insert_with_code(model, codes, **fields):
    # the (rice_mill, code) unique constraint decides between racing inserts
    for code in codes:
        if model.objects.filter(rice_mill_id=fields["rice_mill_id"], code=code).exists():
            continue
        try:
            with transaction.atomic():
                return model.objects.create(code=code, **fields)
        except IntegrityError:
            continue
    raise Conflict(f"Could not allocate a unique {model._meta.verbose_name} code")


def create_district(ctx, name, state="") -> District:
    name = (name or "").strip()
    base = district_base_code(name)
    codes = [base] + [f"{base}{n}" for n in range(1, MAX_CODE_ATTEMPTS)]
    district = _insert_with_code(
        District, codes, rice_mill_id=ctx.rice_mill_id, name=name, state=(state or "").strip()
    )
    ctx.log.info(f"Created district {district.name} ({district.code})")
    return district


def create_society(ctx, district_id, name, address="", contact_no="") -> Society:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Society name is required")
    district = get_district(ctx, district_id)
    start = Society.objects.filter(rice_mill_id=ctx.rice_mill_id, district=district).count() + 1
    codes = (f"PACS-{district.code}-{seq:03d}" for seq in range(start, start + MAX_CODE_ATTEMPTS))
    society = _insert_with_code(
        Society,
        codes,
        rice_mill_id=ctx.rice_mill_id,
        district=district,
        name=name,
        address=address or "",
        contact_no=contact_no or "",
    )
    ctx.log.info(f"Created society {society.name} ({society.code})")
    return society


def delete_district(ctx, district_id) -> None:
    district = get_district(ctx, district_id)
    count = district.societies.count()
    if count:
        raise BusinessRuleViolation(f"Cannot delete district with {count} associated societies")
    district.delete()
    ctx.log.info(f"Deleted district {district.name}")


def delete_society(ctx, society_id) -> None:
    society = get_society(ctx, society_id)
    parties = society.parties.count()
    if parties:
        raise BusinessRuleViolation(f"Cannot delete society with {parties} associated parties")
    if GatePassEntry.objects.filter(rice_mill_id=ctx.rice_mill_id, society=society).exists():
        raise BusinessRuleViolation("Cannot delete society with gate entries")
    society.delete()
    ctx.log.info(f"Deleted society {society.name}")

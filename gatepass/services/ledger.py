from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date as date_cls, datetime, time
from decimal import Decimal, InvalidOperation
from functools import partial

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from gatepass.errors import Conflict, NotFound, ValidationFailed
from gatepass.models import VEHICLE_NO_PATTERN, GatePassEntry, Party, Season, Society
from gatepass.services.parties import resolve_party
from gatepass.services.querying import (
    DateRange,
    Pagination,
    build_order_by,
    build_search,
    build_where,
    paginate_meta,
    parse_id,
    read_together,
)

VEHICLE_TYPES = {choice for choice, _ in GatePassEntry.VEHICLE_CHOICES}
SEARCH_FIELDS = ("token_no", "party_name", "society_name", "vehicle_no")
SORTABLE = (
    "date",
    "token_no",
    "quantity",
    "bags",
    "created_at",
    "party_name",
    "society_name",
    "society.name",
    "district.name",
)
ENTRY_RELATIONS = ("society__district", "district", "party", "season")
UPDATABLE = (
    "token_no",
    "challan_no",
    "date",
    "vehicle_type",
    "vehicle_no",
    "bags",
    "quantity",
    "remarks",
    "society_id",
    "party_id",
)

_vehicle_re = re.compile(VEHICLE_NO_PATTERN)


@dataclass
class NewGateEntry:
    token_no: str
    society_id: object
    party_name: str
    bags: object
    quantity: object
    vehicle_type: str = GatePassEntry.TRUCK
    vehicle_no: str = ""
    challan_no: str = ""
    date: object = None
    remarks: str = ""
    season_id: object = None


@dataclass
class EntryFilters:
    society_id: object = None
    district_id: object = None
    season_id: object = None
    party_id: object = None
    vehicle_type: str | None = None
    from_date: object = None
    to_date: object = None


#
# ----------------------------------------------------------------------
# Field validation
# ----------------------------------------------------------------------
#
def clean_quantity(value) -> Decimal:
    try:
        qty = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailed("Quantity must be a number")
    if not qty.is_finite() or qty <= 0:
        raise ValidationFailed("Quantity must be greater than 0")
    return qty


def clean_bags(value) -> int:
    if isinstance(value, bool):
        raise ValidationFailed("Bags must be a whole number")
    try:
        bags = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailed("Bags must be a whole number")
    if not bags.is_finite() or bags != bags.to_integral_value():
        raise ValidationFailed("Bags must be a whole number")
    if bags <= 0:
        raise ValidationFailed("Bags must be greater than 0")
    return int(bags)


def clean_vehicle_no(value) -> str:
    vehicle_no = "".join((value or "").split()).upper()
    if vehicle_no and not _vehicle_re.match(vehicle_no):
        raise ValidationFailed(
            "Vehicle number must be in Indian format (e.g., OD01AB1234, MH12DE5678)"
        )
    return vehicle_no


def clean_vehicle_type(value) -> str:
    vehicle_type = (value or GatePassEntry.TRUCK).upper()
    if vehicle_type not in VEHICLE_TYPES:
        raise ValidationFailed(f"Vehicle type must be one of {sorted(VEHICLE_TYPES)}")
    return vehicle_type


def clean_entry_date(value) -> datetime:
    if value in (None, ""):
        return timezone.now()
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date_cls):
        parsed = datetime.combine(value, time.min)
    else:
        raw = str(value).strip()
        try:
            parsed = parse_datetime(raw)
            if parsed is None:
                day = parse_date(raw)
                parsed = datetime.combine(day, time.min) if day else None
        except ValueError:
            parsed = None
        if parsed is None:
            raise ValidationFailed(f"date must be an ISO date or datetime, got '{value}'")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, timezone.get_current_timezone())
    return parsed


def _clean_token(value) -> str:
    token = (value or "").strip()
    if not token:
        raise ValidationFailed("Token number is required")
    return token


def _token_taken(ctx, token_no, exclude_id=None) -> bool:
    qs = GatePassEntry.objects.filter(rice_mill_id=ctx.rice_mill_id, token_no=token_no)
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return qs.exists()


#
# ----------------------------------------------------------------------
# Create
# ----------------------------------------------------------------------
#
def _load_season_and_society(ctx, season_id, society_id):
    seasons = Season.objects.filter(rice_mill_id=ctx.rice_mill_id)
    season_qs = seasons.filter(id=season_id) if season_id else seasons.filter(is_active=True)
    society_qs = Society.objects.filter(id=society_id, rice_mill_id=ctx.rice_mill_id).only(
        "id", "name", "district_id"
    )
    return read_together(ctx, season_qs.first, society_qs.first)


def create_entry(ctx, data: NewGateEntry) -> GatePassEntry:
    """Validate and record one gate pass.

    Season and society are read together; every check runs before the
    first write. The party is resolved (or created) and the entry inserted
    in one transaction, so a rejected insert leaves no new party behind.
    """
    society_id = parse_id(data.society_id, "Society")
    season_id = parse_id(data.season_id, "Season") if data.season_id else None

    season, society = _load_season_and_society(ctx, season_id, society_id)

    if society is None:
        raise NotFound(f"Society with ID {data.society_id} not found or access denied")
    if season is None:
        if season_id:
            raise NotFound(f"Season with ID {data.season_id} not found or access denied")
        raise ValidationFailed("No active season found. Please activate a season first.")
    if not season.is_active:
        raise ValidationFailed(f"Season {season.name} {season.type} is not active")

    token_no = _clean_token(data.token_no)
    (taken,) = read_together(ctx, partial(_token_taken, ctx, token_no))
    if taken:
        raise Conflict(f"Gate pass with token number {token_no} already exists")

    quantity = clean_quantity(data.quantity)
    bags = clean_bags(data.bags)
    vehicle_no = clean_vehicle_no(data.vehicle_no)
    vehicle_type = clean_vehicle_type(data.vehicle_type)
    entry_date = clean_entry_date(data.date)

    try:
        with transaction.atomic():
            party = resolve_party(ctx, society.id, data.party_name)
            entry = GatePassEntry.objects.create(
                rice_mill_id=ctx.rice_mill_id,
                token_no=token_no,
                challan_no=(data.challan_no or "").strip(),
                date=entry_date,
                party=party,
                party_name=party.name,
                society_id=society.id,
                society_name=society.name,
                district_id=society.district_id,
                season=season,
                vehicle_type=vehicle_type,
                vehicle_no=vehicle_no,
                bags=bags,
                quantity=quantity,
                remarks=data.remarks or "",
                created_by_id=ctx.user_id,
            )
    except IntegrityError:
        if _token_taken(ctx, token_no):
            raise Conflict(f"Gate pass with token number {token_no} already exists") from None
        raise

    ctx.log.info(
        f"Gate entry {entry.token_no} recorded: {entry.quantity} qtl, {entry.bags} bags "
        f"for {entry.society_name}"
    )
    return get_entry(ctx, entry.id)


#
# ----------------------------------------------------------------------
# Read
# ----------------------------------------------------------------------
#
def _entries(ctx):
    return GatePassEntry.objects.filter(rice_mill_id=ctx.rice_mill_id).select_related(
        *ENTRY_RELATIONS
    )


def get_entry(ctx, entry_id) -> GatePassEntry:
    entry = _entries(ctx).filter(id=parse_id(entry_id, "Gate entry")).first()
    if entry is None:
        raise NotFound(f"Gate entry with ID {entry_id} not found or access denied")
    return entry


def filter_entries(ctx, filters: EntryFilters | None = None, search=None):
    filters = filters or EntryFilters()
    qs = _entries(ctx)
    ids = {
        "society_id": filters.society_id,
        "district_id": filters.district_id,
        "season_id": filters.season_id,
        "party_id": filters.party_id,
    }
    for lookup, value in build_where(**ids).items():
        qs = qs.filter(**{lookup: parse_id(value, lookup.split("_")[0].title())})
    if filters.vehicle_type:
        qs = qs.filter(vehicle_type=clean_vehicle_type(filters.vehicle_type))
    rng = DateRange.parse(filters.from_date, filters.to_date)
    if not rng.is_open:
        qs = qs.filter(rng.predicate("date"))
    q = build_search(search, SEARCH_FIELDS)
    if q is not None:
        qs = qs.filter(q)
    return qs


def list_entries(ctx, filters: EntryFilters | None = None, pagination: Pagination | None = None) -> dict:
    """One page of entries plus the ``paginate_meta`` envelope."""
    pagination = pagination or Pagination()
    qs = filter_entries(ctx, filters, pagination.search).order_by(
        *build_order_by(pagination.sort_by, pagination.sort_order, SORTABLE, default="date")
    )

    total, rows = read_together(ctx, qs.count, lambda: list(pagination.window(qs)))
    return {
        "data": rows,
        "meta": paginate_meta(total, pagination.page, pagination.limit),
    }


#
# ----------------------------------------------------------------------
# Update / delete
# ----------------------------------------------------------------------
#
def update_entry(ctx, entry_id, changes: dict) -> GatePassEntry:
    """Patch an entry in place.

    Token uniqueness is re-checked only when the token changes. Moving the
    entry to another society re-copies the district and society name and
    needs a ``party_id`` from that society; parties are never re-resolved
    by name.
    """
    unknown = set(changes) - set(UPDATABLE)
    if unknown:
        raise ValidationFailed(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    with transaction.atomic():
        entry = get_entry(ctx, entry_id)
        fields = []

        if "token_no" in changes:
            token_no = _clean_token(changes["token_no"])
            if token_no != entry.token_no:
                if _token_taken(ctx, token_no, exclude_id=entry.id):
                    raise Conflict(f"Gate pass with token number {token_no} already exists")
                entry.token_no = token_no
                fields.append("token_no")
        if "quantity" in changes:
            entry.quantity = clean_quantity(changes["quantity"])
            fields.append("quantity")
        if "bags" in changes:
            entry.bags = clean_bags(changes["bags"])
            fields.append("bags")
        if "vehicle_no" in changes:
            entry.vehicle_no = clean_vehicle_no(changes["vehicle_no"])
            fields.append("vehicle_no")
        if "vehicle_type" in changes:
            entry.vehicle_type = clean_vehicle_type(changes["vehicle_type"])
            fields.append("vehicle_type")
        if "date" in changes:
            entry.date = clean_entry_date(changes["date"])
            fields.append("date")
        for text in ("challan_no", "remarks"):
            if text in changes:
                setattr(entry, text, (changes[text] or "").strip())
                fields.append(text)

        if changes.get("society_id"):
            society = (
                Society.objects.filter(
                    id=parse_id(changes["society_id"], "Society"), rice_mill_id=ctx.rice_mill_id
                )
                .select_related("district")
                .first()
            )
            if society is None:
                raise NotFound(f"Society with ID {changes['society_id']} not found or access denied")
            entry.society = society
            entry.society_name = society.name
            entry.district = society.district
            fields += ["society", "society_name", "district"]

        if changes.get("party_id"):
            party_id = parse_id(changes["party_id"], "Party")
            party = Party.objects.filter(id=party_id, society__rice_mill_id=ctx.rice_mill_id).first()
            if party is None:
                raise NotFound(f"Party with ID {changes['party_id']} not found or access denied")
            if party.society_id != entry.society_id:
                raise ValidationFailed(
                    f"Party {party.name} does not belong to society {entry.society_name}"
                )
            entry.party = party
            entry.party_name = party.name
            fields += ["party", "party_name"]
        elif "society" in fields and entry.party.society_id != entry.society_id:
            raise ValidationFailed(
                f"Party {entry.party_name} belongs to another society; "
                f"supply a party_id from {entry.society_name}"
            )

        if fields:
            try:
                with transaction.atomic():
                    entry.save(update_fields=fields + ["updated_at"])
            except IntegrityError:
                if "token_no" in fields and _token_taken(ctx, entry.token_no, exclude_id=entry.id):
                    raise Conflict(
                        f"Gate pass with token number {entry.token_no} already exists"
                    ) from None
                raise

    ctx.log.info(f"Gate entry {entry.token_no} updated ({', '.join(fields) or 'no changes'})")
    return get_entry(ctx, entry.id)


def delete_entry(ctx, entry_id) -> None:
    entry = get_entry(ctx, entry_id)
    entry.delete()
    ctx.log.info(f"Gate entry {entry.token_no} deleted")

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.db.models import Count

from gatepass.errors import BusinessRuleViolation, Conflict, NotFound, ValidationFailed
from gatepass.models import GatePassEntry, RiceMill, Season, Society, SocietyTarget
from gatepass.services.querying import chunked, parse_id

SEASON_TYPES = {choice for choice, _ in Season.TYPE_CHOICES}
ACTIVE_CONFLICT = "Another season of this mill was activated at the same time; retry"


@dataclass(frozen=True)
class TargetRow:
    """A society of the mill with its season target (0 when never set)."""
    target_id: int | None
    season_id: object
    society_id: object
    society_name: str
    society_code: str
    district_id: object
    district_name: str
    target_quantity: Decimal


def _check_type(season_type):
    if season_type not in SEASON_TYPES:
        raise ValidationFailed(f"Season type must be one of {sorted(SEASON_TYPES)}")


def _deactivate_others(ctx, keep_id=None):
    # the mill row is the lock; it exists even before the first season does
    mill = RiceMill.objects.select_for_update().filter(id=ctx.rice_mill_id).only("id").first()
    if mill is None:
        raise NotFound("Rice mill not found")
    others = Season.objects.filter(rice_mill_id=mill.id, is_active=True)
    if keep_id is not None:
        others = others.exclude(id=keep_id)
    return others.update(is_active=False)


def get_season(ctx, season_id) -> Season:
    season = Season.objects.filter(
        id=parse_id(season_id, "Season"), rice_mill_id=ctx.rice_mill_id
    ).first()
    if season is None:
        raise NotFound("Season not found")
    return season


def get_active_season(ctx) -> Season:
    season = Season.objects.filter(rice_mill_id=ctx.rice_mill_id, is_active=True).first()
    if season is None:
        raise NotFound("No active season found. Please activate a season first.")
    return season


def list_seasons(ctx):
    return (
        Season.objects.filter(rice_mill_id=ctx.rice_mill_id)
        .annotate(
            entry_count=Count("gate_pass_entries", distinct=True),
            target_count=Count("targets", distinct=True),
        )
        .order_by("-created_at")
    )


def create_season(ctx, year: str, season_type: str, is_active: bool = False) -> Season:
    year = (year or "").strip()
    if not year:
        raise ValidationFailed("Season year is required")
    _check_type(season_type)
    try:
        with transaction.atomic():
            if is_active:
                _deactivate_others(ctx)
            season = Season.objects.create(
                rice_mill_id=ctx.rice_mill_id,
                name=year,
                type=season_type,
                is_active=bool(is_active),
            )
    except IntegrityError:
        if not is_active:
            raise
        raise Conflict(ACTIVE_CONFLICT) from None
    ctx.log.info(f"Created season {season.name} {season.type} (active={season.is_active})")
    return season


def set_active(ctx, season_id) -> Season:
    """Make ``season_id`` the only active season of the mill.

    Deactivation of the others and activation of the target happen in one
    transaction, so no reader ever sees zero or two active seasons.
    """
    try:
        with transaction.atomic():
            season = get_season(ctx, season_id)
            _deactivate_others(ctx, keep_id=season.id)
            if not season.is_active:
                season.is_active = True
                season.save(update_fields=["is_active", "updated_at"])
    except IntegrityError:
        raise Conflict(ACTIVE_CONFLICT) from None
    ctx.log.info(f"Activated season {season.name} {season.type}")
    return season


def update_season(ctx, season_id, year=None, season_type=None, is_active=None) -> Season:
    if season_type is not None:
        _check_type(season_type)
    try:
        with transaction.atomic():
            season = get_season(ctx, season_id)
            if is_active:
                _deactivate_others(ctx, keep_id=season.id)
            fields = []
            if year:
                season.name = year.strip()
                fields.append("name")
            if season_type:
                season.type = season_type
                fields.append("type")
            if is_active is not None:
                season.is_active = bool(is_active)
                fields.append("is_active")
            if fields:
                season.save(update_fields=fields + ["updated_at"])
    except IntegrityError:
        if not is_active:
            raise
        raise Conflict(ACTIVE_CONFLICT) from None
    return season


def delete_season(ctx, season_id) -> None:
    season = get_season(ctx, season_id)
    if season.is_active:
        raise BusinessRuleViolation("Cannot delete active season")
    if GatePassEntry.objects.filter(season_id=season.id, rice_mill_id=ctx.rice_mill_id).exists():
        raise BusinessRuleViolation("Cannot delete season with gate entries")
    season.delete()
    ctx.log.info(f"Deleted season {season.name} {season.type}")


def _clean_targets(targets) -> dict:
    cleaned = {}
    for t in targets:
        society_id = t.get("society_id")
        if not society_id:
            raise ValidationFailed("Each target needs a society_id")
        try:
            qty = Decimal(str(t.get("target_quantity")))
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationFailed(f"Invalid target quantity for society {society_id}")
        if not qty.is_finite() or qty < 0:
            raise ValidationFailed("Target quantity must be greater than or equal to 0")
        cleaned[parse_id(society_id, "Society")] = qty
    return cleaned


def set_targets(ctx, season_id, targets) -> int:
    """Upsert one SocietyTarget per ``{"society_id", "target_quantity"}`` pair."""
    season = get_season(ctx, season_id)
    cleaned = _clean_targets(targets)

    owned = set()
    for ids in chunked(cleaned, 500):
        owned.update(
            pk for pk in Society.objects.filter(
                id__in=ids, rice_mill_id=ctx.rice_mill_id
            ).values_list("id", flat=True)
        )
    missing = set(cleaned) - owned
    if missing:
        raise NotFound(f"Society not found: {', '.join(sorted(str(m) for m in missing))}")

    with transaction.atomic():
        for society_id, qty in cleaned.items():
            try:
                with transaction.atomic():
                    SocietyTarget.objects.update_or_create(
                        season=season,
                        society_id=society_id,
                        defaults={"target_quantity": qty},
                    )
            except IntegrityError:
                # a concurrent insert won the pair; ours becomes the update
                updated = SocietyTarget.objects.filter(
                    season=season, society_id=society_id
                ).update(target_quantity=qty)
                if not updated:
                    raise Conflict(f"Target for society {society_id} changed concurrently")
    ctx.log.info(f"Set {len(cleaned)} targets for season {season.name}")
    return len(cleaned)


def get_targets(ctx, season_id) -> list[TargetRow]:
    """Every society of the mill with its target for the season (left join)."""
    season = get_season(ctx, season_id)
    targets = {
        t.society_id: t
        for t in SocietyTarget.objects.filter(season=season, society__rice_mill_id=ctx.rice_mill_id)
    }
    rows = []
    for society in (
        Society.objects.filter(rice_mill_id=ctx.rice_mill_id)
        .select_related("district")
        .order_by("name")
    ):
        target = targets.get(society.id)
        rows.append(
            TargetRow(
                target_id=target.id if target else None,
                season_id=season.id,
                society_id=society.id,
                society_name=society.name,
                society_code=society.code,
                district_id=society.district_id,
                district_name=society.district.name,
                target_quantity=target.target_quantity if target else Decimal("0"),
            )
        )
    return rows

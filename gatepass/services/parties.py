from __future__ import annotations

from django.db import IntegrityError, transaction

from gatepass.errors import ValidationFailed
from gatepass.models import Party
from gatepass.services.querying import parse_id

AUTOCOMPLETE_LIMIT = 20


def normalise_name(raw_name) -> str:
    return " ".join((raw_name or "").split())


def _find_party(society_id, name):
    return (
        Party.objects.filter(society_id=society_id, name__iexact=name)
        .order_by("created_at")
        .first()
    )


def resolve_party(ctx, society_id, raw_name) -> Party:
    """Return the society's party named ``raw_name``, creating it if needed.

    Matching is case-insensitive on the trimmed name. A new party keeps the
    caller's casing. When another request inserts the same name first, the
    unique (lower(name), society) constraint rejects our insert and the
    existing row is returned instead.
    """
    name = normalise_name(raw_name)
    if not name:
        raise ValidationFailed("Party name is required")

    party = _find_party(society_id, name)
    if party is not None:
        ctx.log.info(f"Using existing party: {party.name} (ID: {party.id})")
        return party

    try:
        with transaction.atomic():
            party = Party.objects.create(name=name, society_id=society_id)
    except IntegrityError:
        party = _find_party(society_id, name)
        if party is None:
            raise
        ctx.log.info(f"Party {party.name} was created concurrently; reusing {party.id}")
        return party

    ctx.log.info(f"Creating new party: {party.name} (ID: {party.id})")
    return party


def list_parties(ctx, society_id=None):
    qs = Party.objects.filter(society__rice_mill_id=ctx.rice_mill_id)
    if society_id:
        qs = qs.filter(society_id=parse_id(society_id, "Society"))
    return qs.select_related("society__district").order_by("name")


def search_parties(ctx, query, society_id=None):
    """Autocomplete lookup over party names."""
    query = (query or "").strip()
    if not query:
        return Party.objects.none()
    return list_parties(ctx, society_id).filter(name__icontains=query)[:AUTOCOMPLETE_LIMIT]

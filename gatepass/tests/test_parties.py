from unittest import mock

import pytest
from django.db import IntegrityError

from gatepass.errors import ValidationFailed
from gatepass.models import Party
from gatepass.services import parties, reference


def test_resolution_ignores_case_and_whitespace(ctx, society):
    ids = {
        parties.resolve_party(ctx, society.id, name).id
        for name in ("Ramesh Kumar", " ramesh kumar ", "RAMESH KUMAR")
    }
    assert len(ids) == 1
    party = Party.objects.get(id=ids.pop())
    assert party.name == "Ramesh Kumar"


def test_same_name_in_another_society_is_a_new_party(ctx, district, society):
    other = reference.create_society(ctx, district.id, "Sohela PACS")
    a = parties.resolve_party(ctx, society.id, "Suresh")
    b = parties.resolve_party(ctx, other.id, "Suresh")
    assert a.id != b.id


def test_blank_name_rejected(ctx, society):
    with pytest.raises(ValidationFailed):
        parties.resolve_party(ctx, society.id, "   ")


def test_concurrent_insert_is_treated_as_existing(ctx, society):
    winner = Party.objects.create(society=society, name="Ramesh Kumar")
    real_find = parties._find_party
    calls = []

    def racing_find(society_id, name):
        calls.append(name)
        # the first lookup misses, as if the other request had not committed yet
        return None if len(calls) == 1 else real_find(society_id, name)

    with mock.patch.object(parties, "_find_party", side_effect=racing_find):
        party = parties.resolve_party(ctx, society.id, "RAMESH KUMAR")

    assert party.id == winner.id
    assert len(calls) == 2
    assert Party.objects.filter(society=society).count() == 1


def test_integrity_error_without_existing_row_propagates(ctx, society):
    with mock.patch.object(parties, "_find_party", return_value=None), \
            mock.patch.object(Party.objects, "create", side_effect=IntegrityError("boom")):
        with pytest.raises(IntegrityError):
            parties.resolve_party(ctx, society.id, "Ghost")


def test_search_parties(ctx, district, society):
    other = reference.create_society(ctx, district.id, "Sohela PACS")
    for name in ("Ramesh Kumar", "Rameshwar Das", "Suresh"):
        parties.resolve_party(ctx, society.id, name)
    parties.resolve_party(ctx, other.id, "Ramesh Behera")

    assert [p.name for p in parties.search_parties(ctx, "rames")] == [
        "Ramesh Behera", "Ramesh Kumar", "Rameshwar Das",
    ]
    assert [p.name for p in parties.search_parties(ctx, "RAMES", society_id=other.id)] == [
        "Ramesh Behera",
    ]
    assert list(parties.search_parties(ctx, "  ")) == []


def test_search_is_capped(ctx, society):
    for i in range(25):
        parties.resolve_party(ctx, society.id, f"Farmer {i:02d}")
    assert len(parties.search_parties(ctx, "farmer")) == parties.AUTOCOMPLETE_LIMIT

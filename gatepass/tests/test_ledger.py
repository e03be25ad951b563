from decimal import Decimal

import pytest
from django.test import TestCase

from gatepass.context import TenantContext
from gatepass.errors import Conflict, NotFound, ValidationFailed
from gatepass.models import GatePassEntry, Party, Season, qty_per_bag
from gatepass.services import ledger, reference, seasons
from gatepass.services.querying import Pagination
from gatepass.tests.factories import make_mill, other_tenant


def test_create_entry_copies_district_and_names(ctx, district, society, season, add_entry):
    entry = add_entry(party_name="  ramesh kumar ", vehicle_no="od01ab1234")
    assert entry.district_id == district.id
    assert entry.society_name == society.name
    assert entry.party_name == "ramesh kumar"
    assert entry.season_id == season.id
    assert entry.vehicle_no == "OD01AB1234"
    assert entry.qty_per_bag == Decimal("10.000")


@pytest.mark.parametrize(
    "quantity,bags,expected",
    [
        (Decimal("100"), 10, Decimal("10.000")),
        (Decimal("300"), 20, Decimal("15.000")),
        (Decimal("100"), 3, Decimal("33.333")),
        (Decimal("0.5"), 3, Decimal("0.167")),
    ],
)
def test_qty_per_bag(add_entry, quantity, bags, expected):
    entry = add_entry(quantity=quantity, bags=bags)
    assert entry.qty_per_bag == expected == qty_per_bag(entry.quantity, entry.bags)


def test_qty_per_bag_zero_bags():
    assert qty_per_bag(Decimal("5"), 0) == Decimal("0")


def test_duplicate_token_conflicts(add_entry):
    add_entry(token_no="A-1")
    with pytest.raises(Conflict):
        add_entry(token_no="A-1")
    assert GatePassEntry.objects.count() == 1


def test_same_token_in_two_mills(add_entry):
    add_entry(token_no="100")
    other = other_tenant()
    d = reference.create_district(other, "Cuttack")
    s = reference.create_society(other, d.id, "Banki PACS")
    seasons.create_season(other, "2025-2026", Season.KHARIF, is_active=True)
    entry = add_entry(tenant=other, token_no="100", society_id=s.id)
    assert entry.rice_mill_id == other.rice_mill_id
    assert GatePassEntry.objects.filter(token_no="100").count() == 2


@pytest.mark.parametrize(
    "field,value",
    [
        ("quantity", 0),
        ("quantity", "-5"),
        ("quantity", "abc"),
        ("bags", 0),
        ("bags", 2.5),
        ("bags", -1),
        ("vehicle_no", "OD-1234"),
        ("vehicle_type", "BUS"),
        ("date", "yesterday"),
        ("party_name", " "),
    ],
)
def test_invalid_input_writes_nothing(add_entry, field, value):
    with pytest.raises(ValidationFailed):
        add_entry(**{field: value})
    assert not GatePassEntry.objects.exists()
    assert not Party.objects.exists()


def test_unknown_society(ctx, season, add_entry):
    with pytest.raises(NotFound):
        add_entry(society_id="7b0a1f37-2c2d-4a0e-9d1b-8a8f0c1d2e3f")


def test_foreign_society_is_not_found(add_entry):
    other = other_tenant()
    d = reference.create_district(other, "Cuttack")
    foreign = reference.create_society(other, d.id, "Banki PACS")
    with pytest.raises(NotFound):
        add_entry(society_id=foreign.id)


def test_explicit_inactive_season_rejected(ctx, season, add_entry):
    old = seasons.create_season(ctx, "2024-2025", Season.RABI)
    with pytest.raises(ValidationFailed):
        add_entry(season_id=old.id)


def test_explicit_unknown_season_not_found(add_entry):
    with pytest.raises(NotFound):
        add_entry(season_id="7b0a1f37-2c2d-4a0e-9d1b-8a8f0c1d2e3f")


def test_token_checked_before_quantity(add_entry):
    add_entry(token_no="X")
    with pytest.raises(Conflict):
        add_entry(token_no="X", quantity=0)


class LedgerReadWriteTests(TestCase):
    def setUp(self):
        self.mill = make_mill()
        self.ctx = TenantContext(rice_mill_id=self.mill.id)
        self.district = reference.create_district(self.ctx, "Bargarh")
        self.society = reference.create_society(self.ctx, self.district.id, "Attabira PACS")
        self.season = seasons.create_season(self.ctx, "2025-2026", Season.KHARIF, is_active=True)
        self.entries = [
            ledger.create_entry(self.ctx, ledger.NewGateEntry(
                token_no=f"T{i}",
                society_id=self.society.id,
                party_name=name,
                bags=10 * i,
                quantity=Decimal(100 * i),
                vehicle_type=vtype,
                vehicle_no=vno,
                date=f"2025-11-0{i}T09:00:00",
            ))
            for i, name, vtype, vno in [
                (1, "Ramesh Kumar", "TRUCK", "OD01AB1234"),
                (2, "Suresh Das", "TRACTOR", ""),
                (3, "Ramesh Kumar", "TATA_ACE", "OD02C5678"),
            ]
        ]

    def test_list_entries_paginates(self):
        page = ledger.list_entries(self.ctx, pagination=Pagination(page=1, limit=2))
        self.assertEqual([e.token_no for e in page["data"]], ["T3", "T2"])
        self.assertEqual(page["meta"]["total"], 3)
        self.assertEqual(page["meta"]["total_pages"], 2)
        self.assertTrue(page["meta"]["has_next_page"])

    def test_list_entries_filters_and_search(self):
        page = ledger.list_entries(
            self.ctx,
            ledger.EntryFilters(vehicle_type="tractor"),
            Pagination(sort_by="quantity", sort_order="asc"),
        )
        self.assertEqual([e.token_no for e in page["data"]], ["T2"])

        page = ledger.list_entries(self.ctx, pagination=Pagination(search="ramesh", sort_order="asc"))
        self.assertEqual([e.token_no for e in page["data"]], ["T1", "T3"])

        page = ledger.list_entries(
            self.ctx, ledger.EntryFilters(from_date="2025-11-02", to_date="2025-11-02")
        )
        self.assertEqual([e.token_no for e in page["data"]], ["T2"])

    def test_list_entries_is_tenant_scoped(self):
        page = ledger.list_entries(other_tenant())
        self.assertEqual(page["meta"]["total"], 0)

    def test_get_entry_other_mill(self):
        with self.assertRaises(NotFound):
            ledger.get_entry(other_tenant(), self.entries[0].id)

    def test_update_entry_token_rules(self):
        first, second = self.entries[0], self.entries[1]
        with self.assertRaises(Conflict):
            ledger.update_entry(self.ctx, first.id, {"token_no": second.token_no})
        updated = ledger.update_entry(self.ctx, first.id, {"token_no": first.token_no, "bags": 25})
        self.assertEqual(updated.bags, 25)
        self.assertEqual(updated.qty_per_bag, Decimal("4.000"))

    def test_update_entry_revalidates(self):
        with self.assertRaises(ValidationFailed):
            ledger.update_entry(self.ctx, self.entries[0].id, {"quantity": "0"})
        with self.assertRaises(ValidationFailed):
            ledger.update_entry(self.ctx, self.entries[0].id, {"season_id": self.season.id})

    def test_update_entry_society_change_recopies(self):
        district = reference.create_district(self.ctx, "Sambalpur")
        society = reference.create_society(self.ctx, district.id, "Rengali PACS")
        local = Party.objects.create(name="Ramesh Kumar", society=society)
        updated = ledger.update_entry(
            self.ctx, self.entries[0].id, {"society_id": str(society.id), "party_id": str(local.id)}
        )
        self.assertEqual(updated.district_id, district.id)
        self.assertEqual(updated.society_name, "Rengali PACS")
        self.assertEqual((updated.party_id, updated.party_name), (local.id, "Ramesh Kumar"))

    def test_update_entry_society_change_needs_local_party(self):
        district = reference.create_district(self.ctx, "Sambalpur")
        society = reference.create_society(self.ctx, district.id, "Rengali PACS")
        with self.assertRaises(ValidationFailed):
            ledger.update_entry(self.ctx, self.entries[0].id, {"society_id": str(society.id)})
        self.assertEqual(GatePassEntry.objects.get(id=self.entries[0].id).society_id, self.society.id)

    def test_update_entry_party_must_share_society(self):
        district = reference.create_district(self.ctx, "Sambalpur")
        society = reference.create_society(self.ctx, district.id, "Rengali PACS")
        stranger = Party.objects.create(name="Gopal", society=society)
        with self.assertRaises(ValidationFailed):
            ledger.update_entry(self.ctx, self.entries[0].id, {"party_id": str(stranger.id)})
        self.assertEqual(GatePassEntry.objects.get(id=self.entries[0].id).party_name, "Ramesh Kumar")

        updated = ledger.update_entry(
            self.ctx, self.entries[0].id, {"society_id": str(society.id), "party_id": str(stranger.id)}
        )
        self.assertEqual((updated.party_id, updated.party_name), (stranger.id, "Gopal"))

        same_society = self.entries[1].party
        updated = ledger.update_entry(self.ctx, self.entries[2].id, {"party_id": str(same_society.id)})
        self.assertEqual(updated.party_name, "Suresh Das")

    def test_delete_entry(self):
        ledger.delete_entry(self.ctx, self.entries[0].id)
        self.assertFalse(GatePassEntry.objects.filter(id=self.entries[0].id).exists())
        with self.assertRaises(NotFound):
            ledger.delete_entry(self.ctx, self.entries[0].id)

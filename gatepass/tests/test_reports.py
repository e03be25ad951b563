from datetime import date
from decimal import Decimal

import pytest
from django.test import TestCase
from django.utils import timezone

from gatepass.context import TenantContext
from gatepass.errors import NotFound, ValidationFailed
from gatepass.models import Season
from gatepass.services import ledger, reference, reports, seasons
from gatepass.tests.factories import make_mill, other_tenant


class ReportTests(TestCase):
    def setUp(self):
        self.ctx = TenantContext(rice_mill_id=make_mill().id)
        self.bargarh = reference.create_district(self.ctx, "Bargarh")
        self.sambalpur = reference.create_district(self.ctx, "Sambalpur")
        self.attabira = reference.create_society(self.ctx, self.bargarh.id, "Attabira PACS")
        self.bheden = reference.create_society(self.ctx, self.bargarh.id, "Bheden PACS")
        self.rengali = reference.create_society(self.ctx, self.sambalpur.id, "Rengali PACS")
        self.season = seasons.create_season(self.ctx, "2025-2026", Season.KHARIF, is_active=True)
        seasons.set_targets(self.ctx, self.season.id, [
            {"society_id": self.attabira.id, "target_quantity": 1000},
            {"society_id": self.bheden.id, "target_quantity": 500},
        ])
        self._n = 0
        # before the window
        self.add(self.attabira, "Ramesh Kumar", 5, "50", "2025-10-31T12:00:00", "OD01AB1234")
        # inside 2025-11-01 .. 2025-11-03
        self.add(self.attabira, "Ramesh Kumar", 10, "100", "2025-11-01T00:00:00", "OD01AB1234")
        self.add(self.attabira, "Suresh Das", 20, "300", "2025-11-03T23:59:59", "OD02C5678")
        self.add(self.bheden, "Ramesh Kumar", 4, "40", "2025-11-03T08:00:00", "")
        self.add(self.rengali, "Gopal", 6, "60", "2025-11-01T10:00:00", "OD01AB1234")
        # after the window
        self.add(self.bheden, "Gopal", 1, "10", "2025-11-04T00:00:00", "")

    def add(self, society, party, bags, qty, when, vehicle_no):
        self._n += 1
        return ledger.create_entry(self.ctx, ledger.NewGateEntry(
            token_no=f"R{self._n}",
            society_id=society.id,
            party_name=party,
            bags=bags,
            quantity=qty,
            date=when,
            vehicle_no=vehicle_no,
        ))

    def report(self, report_type, **kw):
        kw.setdefault("from_date", "2025-11-01")
        kw.setdefault("to_date", "2025-11-03")
        return reports.generate_report(self.ctx, report_type, **kw)

    def test_daily_report(self):
        report = self.report(reports.DAILY)
        self.assertEqual([r.token_no for r in report.rows], ["R2", "R5", "R4", "R3"])
        self.assertEqual(report.total.token_no, reports.TOTAL)
        self.assertEqual(report.total.bags, 40)
        self.assertEqual(report.total.quantity, Decimal("500"))
        self.assertEqual(report.total.qty_per_bag, Decimal("12.500"))
        self.assertEqual(report.rows[-1].qty_per_bag, Decimal("15.000"))

    def test_same_day_range_matches_whole_day(self):
        report = self.report(reports.DAILY, from_date="2025-11-03", to_date="2025-11-03")
        self.assertEqual(sorted(r.token_no for r in report.rows), ["R3", "R4"])

    def test_society_report(self):
        report = self.report(reports.SOCIETY)
        rows = {r.society_name: r for r in report.rows}
        self.assertEqual(rows["Attabira PACS"].entries, 2)
        self.assertEqual(rows["Attabira PACS"].quantity, Decimal("400"))
        self.assertEqual(rows["Attabira PACS"].average_qty_per_entry, Decimal("200.00"))
        self.assertEqual(rows["Rengali PACS"].district_name, "Sambalpur")
        self.assertEqual(report.total.entries, 4)
        self.assertEqual(report.total.quantity, Decimal("500"))
        self.assertEqual(report.total.average_qty_per_entry, Decimal("125.00"))

    def test_district_report_counts_societies(self):
        report = self.report(reports.DISTRICT)
        rows = {r.district_name: r for r in report.rows}
        self.assertEqual(rows["Bargarh"].societies, 2)
        self.assertEqual(rows["Bargarh"].quantity, Decimal("440"))
        self.assertEqual(rows["Sambalpur"].societies, 1)
        self.assertEqual(report.total.societies, 3)
        self.assertEqual(report.total.bags, 40)

    def test_party_report(self):
        report = self.report(reports.PARTY)
        pairs = [(r.party_name, r.society_name, r.quantity) for r in report.rows]
        self.assertEqual(pairs, [
            ("Gopal", "Rengali PACS", Decimal("60")),
            ("Ramesh Kumar", "Attabira PACS", Decimal("100")),
            ("Ramesh Kumar", "Bheden PACS", Decimal("40")),
            ("Suresh Das", "Attabira PACS", Decimal("300")),
        ])
        self.assertEqual(report.total.entries, 4)

    def test_vehicle_report(self):
        report = self.report(reports.VEHICLE)
        rows = {r.vehicle_no: r for r in report.rows}
        self.assertEqual(rows["OD01AB1234"].entries, 2)
        self.assertEqual(rows["OD01AB1234"].quantity, Decimal("160"))
        self.assertEqual(rows[""].entries, 1)
        self.assertEqual(report.total.quantity, Decimal("500"))

    def test_summary_report(self):
        report = self.report(reports.SUMMARY)
        (row,) = report.rows
        self.assertEqual(row.total_entries, 4)
        self.assertEqual(row.total_bags, 40)
        self.assertEqual(row.total_quantity, Decimal("500"))
        self.assertEqual((row.societies, row.districts, row.parties, row.vehicles), (3, 2, 4, 2))
        self.assertEqual(row.average_qty_per_entry, Decimal("125.00"))
        self.assertEqual(row.average_qty_per_bag, Decimal("12.500"))
        self.assertEqual(report.total.label, reports.TOTAL)

    def test_society_filter(self):
        report = self.report(reports.SOCIETY, society_id=str(self.bheden.id))
        self.assertEqual([r.society_name for r in report.rows], ["Bheden PACS"])

    def test_day_wise_report(self):
        report = self.report(reports.SOCIETY_DAY_WISE, season_id=str(self.season.id))
        self.assertEqual(
            report.headers,
            ["Society", "District", "Target", "Up to 2025-11-01", "2025-11-01", "2025-11-03",
             "Total Received", "Variance"],
        )
        rows = {r.society_name: r for r in report.rows}
        self.assertEqual(set(rows), {"Attabira PACS", "Bheden PACS", "Rengali PACS"})

        attabira = rows["Attabira PACS"]
        self.assertEqual(attabira.pre_range_cumulative, Decimal("50.00"))
        self.assertEqual(attabira.daily, [
            (date(2025, 11, 1), Decimal("100.00")),
            (date(2025, 11, 3), Decimal("300.00")),
        ])
        self.assertEqual(attabira.total_received, Decimal("450.00"))
        self.assertEqual(attabira.variance, Decimal("-550.00"))
        self.assertEqual(rows["Rengali PACS"].target, Decimal("0.00"))
        self.assertEqual(rows["Rengali PACS"].variance, Decimal("60.00"))

        for r in report.rows:
            self.assertEqual(r.total_received, r.pre_range_cumulative + sum(v for _, v in r.daily))
            self.assertEqual(r.variance, r.total_received - r.target)

        total = report.total
        self.assertEqual(total.target, sum(r.target for r in report.rows))
        self.assertEqual(total.total_received, sum(r.total_received for r in report.rows))
        self.assertEqual(total.daily, [
            (date(2025, 11, 1), Decimal("160.00")),
            (date(2025, 11, 3), Decimal("340.00")),
        ])
        self.assertEqual(total.variance, Decimal("-950.00"))

    def test_day_wise_defaults_to_active_season(self):
        report = self.report(reports.SOCIETY_DAY_WISE)
        self.assertEqual(len(report.rows), 3)

    def test_day_wise_without_season(self):
        seasons.update_season(self.ctx, self.season.id, is_active=False)
        with self.assertRaises(ValidationFailed):
            self.report(reports.SOCIETY_DAY_WISE)

    def test_as_table_flattens_rows(self):
        report = self.report(reports.SOCIETY_DAY_WISE)
        table = report.as_table()
        self.assertEqual(table[0], report.headers)
        self.assertEqual(len(table), len(report.rows) + 2)
        self.assertEqual(table[-1][0], reports.TOTAL)
        self.assertTrue(all(len(line) == len(report.headers) for line in table))

        society_table = self.report(reports.SOCIETY).as_table()
        self.assertEqual(society_table[0], reports.SocietyReportRow.HEADERS)
        self.assertTrue(all(len(line) == 7 for line in society_table))

    def test_unknown_season_filter(self):
        with self.assertRaises(NotFound):
            self.report(reports.SOCIETY, season_id="7b0a1f37-2c2d-4a0e-9d1b-8a8f0c1d2e3f")
        with self.assertRaises(NotFound):
            reports.generate_report(other_tenant(), reports.SOCIETY, season_id=str(self.season.id))


@pytest.mark.django_db
def test_malformed_dates_fail_before_queries(django_assert_num_queries):
    ctx = TenantContext(rice_mill_id="7b0a1f37-2c2d-4a0e-9d1b-8a8f0c1d2e3f")
    with django_assert_num_queries(0):
        with pytest.raises(ValidationFailed):
            reports.generate_report(ctx, reports.DAILY, from_date="31-12-2025")


def test_unknown_report_type():
    ctx = TenantContext(rice_mill_id="7b0a1f37-2c2d-4a0e-9d1b-8a8f0c1d2e3f")
    with pytest.raises(ValidationFailed):
        reports.generate_report(ctx, "weekly")


@pytest.mark.django_db
def test_default_window_is_current_month():
    ctx = TenantContext(rice_mill_id=make_mill().id)
    report = reports.generate_report(ctx, reports.SUMMARY)
    today = timezone.localdate()
    rng = report.filters.date_range
    assert rng.start == today.replace(day=1)
    assert rng.end.month == today.month
    assert (rng.end.replace(day=1) - rng.start).days == 0
    assert report.rows[0].total_entries == 0

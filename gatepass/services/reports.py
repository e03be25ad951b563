"""Fixed catalogue of procurement reports computed per request.

Every report is a :class:`Report` holding typed rows plus a synthetic TOTAL
row. Sums and groupings run in the database; entry-level rows are streamed
in chunks of ``GATEPASS_REPORT_CHUNK_SIZE``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db.models import Q
from django.db.models.functions import TruncDate
from django.utils import timezone

from gatepass.errors import ValidationFailed
from gatepass.models import GatePassEntry, Season, Society, qty_per_bag
from gatepass.services.analytics import ZERO, dec, round2
from gatepass.services.querying import AggregateQuery, DateRange, build_where, parse_id, read_together
from gatepass.services.seasons import get_season

TOTAL = "TOTAL"
DAILY = "daily"
SOCIETY = "society"
SOCIETY_DAY_WISE = "society-day-wise"
DISTRICT = "district"
PARTY = "party"
VEHICLE = "vehicle"
SUMMARY = "summary"
REPORT_TYPES = (DAILY, SOCIETY, SOCIETY_DAY_WISE, DISTRICT, PARTY, VEHICLE, SUMMARY)


def average(total, count) -> Decimal:
    return round2(dec(total) / count) if count else round2(ZERO)


#
# ----------------------------------------------------------------------
# Filters and result containers
# ----------------------------------------------------------------------
#
@dataclass(frozen=True)
class ReportFilters:
    report_type: str
    date_range: DateRange
    society_id: object = None
    district_id: object = None
    season_id: object = None

    @classmethod
    def parse(cls, report_type, from_date=None, to_date=None, society_id=None,
              district_id=None, season_id=None) -> "ReportFilters":
        if report_type not in REPORT_TYPES:
            raise ValidationFailed(f"report_type must be one of {list(REPORT_TYPES)}")
        rng = DateRange.parse(from_date, to_date)
        if rng.is_open:
            first = timezone.localdate().replace(day=1)
            rng = DateRange(first, first + relativedelta(months=1, days=-1))
        return cls(
            report_type=report_type,
            date_range=rng,
            society_id=parse_id(society_id, "Society") if society_id else None,
            district_id=parse_id(district_id, "District") if district_id else None,
            season_id=parse_id(season_id, "Season") if season_id else None,
        )


@dataclass
class Report:
    report_type: str
    filters: ReportFilters
    headers: list[str]
    rows: list
    total: object

    def as_table(self) -> list[list]:
        """Header row, data rows and the TOTAL row as plain cell lists."""
        return [list(self.headers)] + [r.cells() for r in self.rows] + [self.total.cells()]


class _Row:
    def cells(self) -> list:
        return [getattr(self, f.name) for f in fields(self) if not f.metadata.get("hidden")]


def _hidden(default=None):
    return field(default=default, metadata={"hidden": True})


@dataclass
class DailyRow(_Row):
    date: object
    token_no: str
    challan_no: str
    party_name: str
    society_name: str
    district_name: str
    vehicle_type: str
    vehicle_no: str
    bags: int
    quantity: Decimal
    qty_per_bag: Decimal

    HEADERS = ["Date", "Token No", "Challan No", "Party", "Society", "District",
               "Vehicle Type", "Vehicle No", "Bags", "Quantity", "Qty/Bag"]


@dataclass
class SocietyReportRow(_Row):
    society_name: str
    society_code: str
    district_name: str
    entries: int
    bags: int
    quantity: Decimal
    average_qty_per_entry: Decimal
    society_id: object = _hidden()

    HEADERS = ["Society", "Code", "District", "Entries", "Bags", "Quantity", "Avg Qty/Entry"]


@dataclass
class DistrictReportRow(_Row):
    district_name: str
    societies: int
    entries: int
    bags: int
    quantity: Decimal
    average_qty_per_entry: Decimal
    district_id: object = _hidden()

    HEADERS = ["District", "Societies", "Entries", "Bags", "Quantity", "Avg Qty/Entry"]


@dataclass
class PartyReportRow(_Row):
    party_name: str
    society_name: str
    entries: int
    bags: int
    quantity: Decimal
    average_qty_per_entry: Decimal
    party_id: object = _hidden()

    HEADERS = ["Party", "Society", "Entries", "Bags", "Quantity", "Avg Qty/Entry"]


@dataclass
class VehicleReportRow(_Row):
    vehicle_no: str
    vehicle_type: str
    entries: int
    bags: int
    quantity: Decimal
    average_qty_per_entry: Decimal

    HEADERS = ["Vehicle No", "Vehicle Type", "Entries", "Bags", "Quantity", "Avg Qty/Entry"]


@dataclass
class SummaryRow(_Row):
    label: str
    total_entries: int
    total_bags: int
    total_quantity: Decimal
    societies: int
    districts: int
    parties: int
    vehicles: int
    average_qty_per_entry: Decimal
    average_qty_per_bag: Decimal

    HEADERS = ["", "Entries", "Bags", "Quantity", "Societies", "Districts", "Parties",
               "Vehicles", "Avg Qty/Entry", "Avg Qty/Bag"]


@dataclass
class DayWiseRow:
    """One society across the reporting window.

    ``daily`` is ordered by date and has one pair per date on which any
    society received paddy inside the window.
    """

    society_name: str
    district_name: str
    target: Decimal
    pre_range_cumulative: Decimal
    daily: list[tuple[date, Decimal]]
    total_received: Decimal
    variance: Decimal
    society_id: object = None
    show_pre_range: bool = True

    def cells(self) -> list:
        cells = [self.society_name, self.district_name, self.target]
        if self.show_pre_range:
            cells.append(self.pre_range_cumulative)
        cells += [value for _, value in self.daily]
        return cells + [self.total_received, self.variance]


#
# ----------------------------------------------------------------------
# Shared pieces
# ----------------------------------------------------------------------
#
def _scoped_entries(ctx, filters: ReportFilters, season: Season | None):
    qs = GatePassEntry.objects.filter(
        rice_mill_id=ctx.rice_mill_id,
        **build_where(society_id=filters.society_id, district_id=filters.district_id),
    )
    if season is not None:
        qs = qs.filter(season_id=season.id)
    return qs


def _in_range(ctx, filters, season):
    return _scoped_entries(ctx, filters, season).filter(filters.date_range.predicate("date"))


def _grouped(ctx, filters, season, **columns) -> AggregateQuery:
    return (
        AggregateQuery(_in_range(ctx, filters, season))
        .group_by(**columns)
        .count("entry_count")
        .sum("total_bags", "bags")
        .sum("total_quantity", "quantity")
    )


def _figures(row):
    entries = row["entry_count"] or 0
    quantity = dec(row["total_quantity"])
    return entries, row["total_bags"] or 0, quantity, average(quantity, entries)


def _sum_rows(rows, *names):
    return {n: sum((getattr(r, n) for r in rows), 0) for n in names}


#
# ----------------------------------------------------------------------
# Builders
# ----------------------------------------------------------------------
#
def _daily(ctx, filters, season):
    qs = (
        _in_range(ctx, filters, season)
        .order_by("date", "token_no")
        .values("date", "token_no", "challan_no", "party_name", "society_name",
                "district__name", "vehicle_type", "vehicle_no", "bags", "quantity")
    )
    chunk = settings.GATEPASS_REPORT_CHUNK_SIZE

    def stream():
        return [
            DailyRow(
                date=timezone.localtime(e["date"]),
                token_no=e["token_no"],
                challan_no=e["challan_no"],
                party_name=e["party_name"],
                society_name=e["society_name"],
                district_name=e["district__name"],
                vehicle_type=e["vehicle_type"],
                vehicle_no=e["vehicle_no"],
                bags=e["bags"],
                quantity=e["quantity"],
                qty_per_bag=qty_per_bag(e["quantity"], e["bags"]),
            )
            for e in qs.iterator(chunk_size=chunk)
        ]

    totals_query = (
        AggregateQuery(_in_range(ctx, filters, season))
        .sum("total_bags", "bags")
        .sum("total_quantity", "quantity")
    )
    rows, totals = read_together(ctx, stream, totals_query.one)
    bags, quantity = totals["total_bags"], dec(totals["total_quantity"])
    total = DailyRow(None, TOTAL, "", "", "", "", "", "", bags, quantity, qty_per_bag(quantity, bags))
    return DailyRow.HEADERS, rows, total


def _society(ctx, filters, season):
    query = _grouped(
        ctx, filters, season,
        society_id="society_id",
        society_label="society__name",
        society_code="society__code",
        district_label="district__name",
    ).order("society_label", "society_code")
    rows = []
    (grouped,) = read_together(ctx, query.all)
    for r in grouped:
        entries, bags, quantity, avg = _figures(r)
        rows.append(SocietyReportRow(
            r["society_label"], r["society_code"], r["district_label"],
            entries, bags, quantity, avg, society_id=r["society_id"],
        ))
    s = _sum_rows(rows, "entries", "bags", "quantity")
    total = SocietyReportRow(TOTAL, "", "", s["entries"], s["bags"], dec(s["quantity"]),
                             average(s["quantity"], s["entries"]))
    return SocietyReportRow.HEADERS, rows, total


def _district(ctx, filters, season):
    query = (
        _grouped(ctx, filters, season, district_id="district_id", district_label="district__name")
        .count("society_count", "society", distinct=True)
        .order("district_label", "district_id")
    )
    rows = []
    (grouped,) = read_together(ctx, query.all)
    for r in grouped:
        entries, bags, quantity, avg = _figures(r)
        rows.append(DistrictReportRow(
            r["district_label"], r["society_count"], entries, bags, quantity, avg,
            district_id=r["district_id"],
        ))
    s = _sum_rows(rows, "societies", "entries", "bags", "quantity")
    total = DistrictReportRow(TOTAL, s["societies"], s["entries"], s["bags"], dec(s["quantity"]),
                              average(s["quantity"], s["entries"]))
    return DistrictReportRow.HEADERS, rows, total


def _party(ctx, filters, season):
    query = _grouped(
        ctx, filters, season,
        party_id="party_id",
        party_label="party__name",
        society_label="society__name",
    ).order("party_label", "society_label")
    rows = []
    (grouped,) = read_together(ctx, query.all)
    for r in grouped:
        entries, bags, quantity, avg = _figures(r)
        rows.append(PartyReportRow(
            r["party_label"], r["society_label"], entries, bags, quantity, avg,
            party_id=r["party_id"],
        ))
    s = _sum_rows(rows, "entries", "bags", "quantity")
    total = PartyReportRow(TOTAL, "", s["entries"], s["bags"], dec(s["quantity"]),
                           average(s["quantity"], s["entries"]))
    return PartyReportRow.HEADERS, rows, total


def _vehicle(ctx, filters, season):
    query = _grouped(
        ctx, filters, season, vehicle_no="vehicle_no", vehicle_type="vehicle_type"
    ).order("vehicle_no", "vehicle_type")
    rows = []
    (grouped,) = read_together(ctx, query.all)
    for r in grouped:
        entries, bags, quantity, avg = _figures(r)
        rows.append(VehicleReportRow(r["vehicle_no"], r["vehicle_type"], entries, bags, quantity, avg))
    s = _sum_rows(rows, "entries", "bags", "quantity")
    total = VehicleReportRow(TOTAL, "", s["entries"], s["bags"], dec(s["quantity"]),
                             average(s["quantity"], s["entries"]))
    return VehicleReportRow.HEADERS, rows, total


def _summary(ctx, filters, season):
    has_vehicle = ~Q(vehicle_no="")
    figures_query = (
        AggregateQuery(_in_range(ctx, filters, season))
        .count("entry_count")
        .sum("total_bags", "bags")
        .sum("total_quantity", "quantity")
        .count("society_count", "society", distinct=True)
        .count("district_count", "district", distinct=True)
        .count("party_count", "party", distinct=True)
        .count("vehicle_count", "vehicle_no", distinct=True, filter=has_vehicle)
    )
    (figures,) = read_together(ctx, figures_query.one)
    entries, bags = figures["entry_count"], figures["total_bags"]
    quantity = dec(figures["total_quantity"])
    row = SummaryRow(
        label="Summary",
        total_entries=entries,
        total_bags=bags,
        total_quantity=quantity,
        societies=figures["society_count"],
        districts=figures["district_count"],
        parties=figures["party_count"],
        vehicles=figures["vehicle_count"],
        average_qty_per_entry=average(quantity, entries),
        average_qty_per_bag=qty_per_bag(quantity, bags),
    )
    return SummaryRow.HEADERS, [row], replace(row, label=TOTAL)


def _day_wise(ctx, filters, season):
    if season is None:
        season = Season.objects.filter(rice_mill_id=ctx.rice_mill_id, is_active=True).first()
        if season is None:
            raise ValidationFailed("No active season found. Select a season for the day-wise report.")
    rng = filters.date_range

    societies = (
        AggregateQuery(
            Society.objects.filter(
                rice_mill_id=ctx.rice_mill_id,
                **build_where(id=filters.society_id, district_id=filters.district_id),
            )
        )
        .group_by(society_ref="id", society_label="name", district_label="district__name")
        .sum("target", "targets__target_quantity", filter=Q(targets__season_id=season.id))
        .order("society_label", "society_ref")
    )
    per_day = (
        AggregateQuery(_in_range(ctx, filters, season))
        .group_by(society_ref="society_id", day=TruncDate("date"))
        .sum("total_quantity", "quantity")
    )
    before = (
        AggregateQuery(_scoped_entries(ctx, filters, season))
        .where(rng.before_start("date"))
        .group_by(society_ref="society_id")
        .sum("total_quantity", "quantity")
    )
    society_rows, day_rows, before_rows = read_together(
        ctx, societies.all, per_day.all, before.all
    )

    received = {(r["society_ref"], r["day"]): dec(r["total_quantity"]) for r in day_rows}
    carried = {r["society_ref"]: dec(r["total_quantity"]) for r in before_rows}
    dates = sorted({day for _, day in received})
    show_pre_range = rng.start is not None

    rows = []
    for s in society_rows:
        sid = s["society_ref"]
        target = round2(s["target"])
        pre = round2(carried.get(sid, ZERO))
        daily = [(d, round2(received.get((sid, d), ZERO))) for d in dates]
        total_received = pre + sum((v for _, v in daily), ZERO)
        rows.append(DayWiseRow(
            society_name=s["society_label"],
            district_name=s["district_label"],
            target=target,
            pre_range_cumulative=pre,
            daily=daily,
            total_received=total_received,
            variance=total_received - target,
            society_id=sid,
            show_pre_range=show_pre_range,
        ))

    total = DayWiseRow(
        society_name=TOTAL,
        district_name="",
        target=sum((r.target for r in rows), ZERO),
        pre_range_cumulative=sum((r.pre_range_cumulative for r in rows), ZERO),
        daily=[(d, sum((r.daily[i][1] for r in rows), ZERO)) for i, d in enumerate(dates)],
        total_received=sum((r.total_received for r in rows), ZERO),
        variance=sum((r.variance for r in rows), ZERO),
        show_pre_range=show_pre_range,
    )

    headers = ["Society", "District", "Target"]
    if show_pre_range:
        headers.append(f"Up to {rng.start.isoformat()}")
    headers += [d.isoformat() for d in dates]
    headers += ["Total Received", "Variance"]
    return headers, rows, total


BUILDERS = {
    DAILY: _daily,
    SOCIETY: _society,
    SOCIETY_DAY_WISE: _day_wise,
    DISTRICT: _district,
    PARTY: _party,
    VEHICLE: _vehicle,
    SUMMARY: _summary,
}


def _generate(ctx, filters: ReportFilters) -> Report:
    season = get_season(ctx, filters.season_id) if filters.season_id else None
    headers, rows, total = BUILDERS[filters.report_type](ctx, filters, season)
    return Report(filters.report_type, filters, headers, rows, total)


def generate_report(ctx, report_type, from_date=None, to_date=None, society_id=None,
                    district_id=None, season_id=None) -> Report:
    """Build one report of ``REPORT_TYPES``.

    Dates are parsed before any query runs. A ``season_id`` that does not
    belong to the mill is a NotFound; without dates the window is the
    current calendar month.
    """
    filters = ReportFilters.parse(report_type, from_date, to_date, society_id, district_id, season_id)
    report = _generate(ctx, filters)
    ctx.log.info(
        f"Generated {report.report_type} report "
        f"({filters.date_range.start} to {filters.date_range.end}): {len(report.rows)} rows"
    )
    return report

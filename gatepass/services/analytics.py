from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db.models import Q
from django.db.models.functions import TruncDate

from gatepass.errors import ValidationFailed
from gatepass.models import GatePassEntry, SocietyTarget
from gatepass.services.querying import AggregateQuery, read_together
from gatepass.services.seasons import get_season

ZERO = Decimal("0")
TWO_PLACES = Decimal("0.01")
CHART_GROUPINGS = ("society", "district")


def dec(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round2(value) -> Decimal:
    return dec(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def percentage(achieved, target) -> Decimal:
    """``achieved`` as a percent of ``target``; 0.00 for a zero target."""
    target = dec(target)
    if target <= 0:
        return round2(ZERO)
    return round2(dec(achieved) / target * 100)


def remaining(achieved, target) -> Decimal:
    return max(ZERO, dec(target) - dec(achieved))


@dataclass
class SeasonInfo:
    id: object
    name: str
    type: str


@dataclass
class Overall:
    total_target: Decimal
    total_achieved: Decimal
    total_remaining: Decimal
    percentage: Decimal
    total_entries: int


@dataclass
class SocietyStat:
    society_id: object
    society_name: str
    society_code: str
    district_id: object
    district: str
    target: Decimal
    achieved: Decimal
    remaining: Decimal
    percentage: Decimal
    entries: int


@dataclass
class DistrictStat:
    district_id: object
    district: str
    target: Decimal = ZERO
    achieved: Decimal = ZERO
    societies: int = 0
    entries: int = 0
    remaining: Decimal = ZERO
    percentage: Decimal = ZERO


@dataclass
class RecentEntry:
    id: object
    token_no: str
    date: object
    society: str
    district: str
    quantity: Decimal
    bags: int


@dataclass
class DashboardStats:
    season: SeasonInfo
    overall: Overall
    society_stats: list[SocietyStat] = field(default_factory=list)
    district_stats: list[DistrictStat] = field(default_factory=list)
    recent_entries: list[RecentEntry] = field(default_factory=list)


@dataclass
class ChartPoint:
    key: object
    name: str
    target: Decimal
    achieved: Decimal


@dataclass
class TrendPoint:
    date: date
    daily: Decimal
    cumulative: Decimal


#
# ----------------------------------------------------------------------
# Store reads
# ----------------------------------------------------------------------
#
def season_entries(ctx, season):
    return GatePassEntry.objects.filter(rice_mill_id=ctx.rice_mill_id, season_id=season.id)


def society_progress_query(ctx, season) -> AggregateQuery:
    """Target, achieved sum and entry count per society holding a target.

    One grouped query over targets left-joined to the society's entries for
    the same season.
    """
    in_season = Q(society__gate_pass_entries__season_id=season.id)
    return (
        AggregateQuery(
            SocietyTarget.objects.filter(season_id=season.id, society__rice_mill_id=ctx.rice_mill_id)
        )
        .group_by(
            society_id="society_id",
            society_name="society__name",
            society_code="society__code",
            district_ref="society__district_id",
            district_name="society__district__name",
            target="target_quantity",
        )
        .sum("achieved", "society__gate_pass_entries__quantity", filter=in_season)
        .count("entry_count", "society__gate_pass_entries", filter=in_season)
        .order("society_name")
    )


def _recent(ctx, season, limit):
    qs = (
        season_entries(ctx, season)
        .select_related("society", "district")
        .order_by("-date", "-created_at")[:limit]
    )
    return list(qs)


def _society_stat(row) -> SocietyStat:
    target, achieved = dec(row["target"]), dec(row["achieved"])
    return SocietyStat(
        society_id=row["society_id"],
        society_name=row["society_name"],
        society_code=row["society_code"],
        district_id=row["district_ref"],
        district=row["district_name"],
        target=target,
        achieved=achieved,
        remaining=remaining(achieved, target),
        percentage=percentage(achieved, target),
        entries=row["entry_count"] or 0,
    )


def rollup_districts(society_stats) -> list[DistrictStat]:
    """Sum society rows per district id; the name is only carried for display."""
    districts: dict[object, DistrictStat] = {}
    for stat in society_stats:
        d = districts.setdefault(
            stat.district_id, DistrictStat(district_id=stat.district_id, district=stat.district)
        )
        d.target += stat.target
        d.achieved += stat.achieved
        d.societies += 1
        d.entries += stat.entries
    for d in districts.values():
        d.remaining = remaining(d.achieved, d.target)
        d.percentage = percentage(d.achieved, d.target)
    return list(districts.values())


#
# ----------------------------------------------------------------------
# Dashboard
# ----------------------------------------------------------------------
#
def _dashboard(ctx, season_id):
    season = get_season(ctx, season_id)
    limit = getattr(settings, "GATEPASS_RECENT_ENTRIES", 10)

    target_sum = (
        AggregateQuery(SocietyTarget.objects.filter(season_id=season.id, society__rice_mill_id=ctx.rice_mill_id))
        .sum("total_target", "target_quantity")
    )
    achieved_sum = (
        AggregateQuery(season_entries(ctx, season))
        .sum("total_quantity", "quantity")
        .count("entry_count")
    )
    targets, achieved, per_society, recent = read_together(
        ctx,
        target_sum.one,
        achieved_sum.one,
        society_progress_query(ctx, season).all,
        partial(_recent, ctx, season, limit),
    )

    total_target = dec(targets["total_target"])
    total_achieved = dec(achieved["total_quantity"])
    society_stats = [_society_stat(row) for row in per_society]
    district_stats = rollup_districts(society_stats)

    return DashboardStats(
        season=SeasonInfo(season.id, season.name, season.type),
        overall=Overall(
            total_target=total_target,
            total_achieved=total_achieved,
            total_remaining=remaining(total_achieved, total_target),
            percentage=percentage(total_achieved, total_target),
            total_entries=achieved["entry_count"],
        ),
        society_stats=sorted(society_stats, key=lambda s: s.percentage, reverse=True),
        district_stats=sorted(district_stats, key=lambda d: d.percentage, reverse=True),
        recent_entries=[
            RecentEntry(
                id=e.id,
                token_no=e.token_no,
                date=e.date,
                society=e.society.name,
                district=e.district.name,
                quantity=e.quantity,
                bags=e.bags,
            )
            for e in recent
        ],
    )


def dashboard_stats(ctx, season_id) -> DashboardStats:
    stats = _dashboard(ctx, season_id)
    ctx.log.info(
        f"Dashboard for season {stats.season.name}: {len(stats.society_stats)} societies, "
        f"{stats.overall.total_entries} entries"
    )
    return stats


#
# ----------------------------------------------------------------------
# Charts
# ----------------------------------------------------------------------
#
def target_vs_actual(ctx, season_id, group_by="society") -> list[ChartPoint]:
    if group_by not in CHART_GROUPINGS:
        raise ValidationFailed(f"group_by must be one of {list(CHART_GROUPINGS)}")
    season = get_season(ctx, season_id)
    (rows,) = read_together(ctx, society_progress_query(ctx, season).all)
    stats = [_society_stat(row) for row in rows]

    if group_by == "society":
        points = [ChartPoint(s.society_id, s.society_name, s.target, s.achieved) for s in stats]
    else:
        points = [
            ChartPoint(d.district_id, d.district, d.target, d.achieved)
            for d in rollup_districts(stats)
        ]
    return sorted(points, key=lambda p: p.name.lower())


def trend(ctx, season_id) -> list[TrendPoint]:
    """Daily received quantity over the season with a running total."""
    season = get_season(ctx, season_id)
    query = (
        AggregateQuery(season_entries(ctx, season))
        .group_by(day=TruncDate("date"))
        .sum("total_quantity", "quantity")
        .order("day")
    )
    (rows,) = read_together(ctx, query.all)

    points, cumulative = [], ZERO
    for row in rows:
        daily = dec(row["total_quantity"])
        cumulative += daily
        points.append(TrendPoint(date=row["day"], daily=daily, cumulative=cumulative))
    return points

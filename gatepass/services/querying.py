"""Predicate, pagination and aggregate helpers shared by the gatepass services."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time
from itertools import islice
from math import ceil
from typing import Iterable

from asgiref.sync import async_to_sync, sync_to_async
from django.conf import settings
from django.db import connection, connections
from django.db.models import Count, F, Q, Sum
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from gatepass.errors import NotFound, QueryTimeout, ValidationFailed

END_OF_DAY = time(23, 59, 59, 999000)
SORT_ORDERS = ("asc", "desc")


#
# ----------------------------------------------------------------------
# Pagination / ordering / search
# ----------------------------------------------------------------------
#
@dataclass
class Pagination:
    page: int = 1
    limit: int | None = None
    sort_by: str | None = None
    sort_order: str = "desc"
    search: str | None = None

    def __post_init__(self):
        try:
            self.page = max(int(self.page or 1), 1)
            limit = int(self.limit or settings.GATEPASS_DEFAULT_PAGE_SIZE)
        except (TypeError, ValueError):
            raise ValidationFailed("page and limit must be integers")
        self.limit = min(max(limit, 1), settings.GATEPASS_MAX_PAGE_SIZE)
        self.sort_order = (self.sort_order or "desc").lower()
        if self.sort_order not in SORT_ORDERS:
            raise ValidationFailed("sort_order must be 'asc' or 'desc'")
        if self.search is not None:
            self.search = self.search.strip() or None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def window(self, queryset):
        return queryset[self.offset:self.offset + self.limit]


def paginate_meta(total: int, page: int, limit: int) -> dict:
    total_pages = ceil(total / limit) if limit else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }


def build_order_by(sort_by, sort_order="desc", allowed=(), default="created_at"):
    """Translate ``society.name`` style sort keys into ORM ``order_by`` args.

    Only keys listed in ``allowed`` are accepted so callers cannot order by
    arbitrary relations.
    """
    key = sort_by or default
    if sort_by and sort_by not in allowed:
        raise ValidationFailed(f"Cannot sort by '{sort_by}'")
    lookup = key.replace(".", "__")
    return [f"-{lookup}" if sort_order == "desc" else lookup]


def build_search(term, fields) -> Q | None:
    """OR of case-insensitive ``icontains`` over ``fields``; None for a blank term."""
    if not term or not fields:
        return None
    term = term.strip()
    if not term:
        return None
    q = Q()
    for f in fields:
        q |= Q(**{f"{f.replace('.', '__')}__icontains": term})
    return q


def parse_id(value, label="Record") -> uuid.UUID:
    """Primary keys arrive as strings from callers; a malformed one cannot exist."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise NotFound(f"{label} not found") from None


def build_where(**filters) -> dict:
    return {k: v for k, v in filters.items() if v not in (None, "")}


def chunked(iterable: Iterable, size: int):
    it = iter(iterable)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            return
        yield chunk


#
# ----------------------------------------------------------------------
# Dates
# ----------------------------------------------------------------------
#
def parse_date_param(value, field="date") -> date | None:
    """Accept ``YYYY-MM-DD`` (or an ISO datetime) and return a ``date``."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    try:
        parsed = parse_date(raw)
        if parsed is None:
            dt = parse_datetime(raw)
            parsed = dt.date() if dt else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationFailed(f"{field} must be a valid date (YYYY-MM-DD), got '{value}'")
    return parsed


def _aware(dt: datetime) -> datetime:
    if settings.USE_TZ and timezone.is_naive(dt):
        return timezone.make_aware(dt, timezone.get_current_timezone())
    return dt


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day window; the end day runs to 23:59:59.999."""

    start: date | None = None
    end: date | None = None

    @classmethod
    def parse(cls, start=None, end=None) -> "DateRange":
        rng = cls(parse_date_param(start, "from_date"), parse_date_param(end, "to_date"))
        if rng.start and rng.end and rng.start > rng.end:
            raise ValidationFailed("from_date must not be after to_date")
        return rng

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None

    @property
    def start_dt(self) -> datetime | None:
        return _aware(datetime.combine(self.start, time.min)) if self.start else None

    @property
    def end_dt(self) -> datetime | None:
        return _aware(datetime.combine(self.end, END_OF_DAY)) if self.end else None

    def predicate(self, field="date") -> Q:
        q = Q()
        if self.start:
            q &= Q(**{f"{field}__gte": self.start_dt})
        if self.end:
            q &= Q(**{f"{field}__lte": self.end_dt})
        return q

    def before_start(self, field="date") -> Q:
        """Strictly earlier than the window; matches nothing for an open start."""
        if not self.start:
            return Q(pk__in=[])
        return Q(**{f"{field}__lt": self.start_dt})


#
# ----------------------------------------------------------------------
# Concurrent reads
# ----------------------------------------------------------------------
#
def _on_own_connection(read):
    def run():
        try:
            return read()
        finally:
            # worker threads are pooled; don't leave their connections open
            connections.close_all()
    return run


async def fan_out(ctx, *reads, isolated=None):
    """Run independent read-only store calls together, bounded by the caller deadline.

    ``reads`` are zero-argument callables (``qs.first``, ``query.all``...).
    When isolated, each read gets its own worker thread and database
    connection, so the wait is the slowest read rather than the sum of all
    of them. ``isolated=False`` keeps every read on the caller's connection,
    one after another. ``None`` follows ``GATEPASS_PARALLEL_READS``.

    On timeout the caller stops waiting; a read already sent to the
    database runs to completion on its worker.
    """
    if isolated is None:
        isolated = settings.GATEPASS_PARALLEL_READS
    if isolated:
        calls = [sync_to_async(_on_own_connection(r), thread_sensitive=False)() for r in reads]
    else:
        calls = [sync_to_async(r)() for r in reads]
    try:
        return await asyncio.wait_for(asyncio.gather(*calls), timeout=ctx.deadline)
    except TimeoutError:
        ctx.log.warning(f"Store reads exceeded deadline of {ctx.deadline}s")
        raise QueryTimeout() from None


def read_together(ctx, *reads, isolated=None) -> list:
    """Blocking entry to :func:`fan_out` for the synchronous services.

    Inside a transaction the reads stay on the caller's connection so they
    see its uncommitted writes.
    """
    if isolated is None and connection.in_atomic_block:
        isolated = False
    return async_to_sync(fan_out)(ctx, *reads, isolated=isolated)


#
# ----------------------------------------------------------------------
# Aggregate builder
# ----------------------------------------------------------------------
#
class AggregateQuery:
    """Grouped sums/counts composed from named parts instead of raw SQL.

    >>> (AggregateQuery(GatePassEntry.objects.filter(rice_mill_id=mill))
    ...     .where(Q(season_id=season))
    ...     .group_by(society_id="society_id", name="society__name")
    ...     .sum("total_quantity", "quantity")
    ...     .count("entry_count")
    ...     .order("name"))

    Aliases must not collide with model field names.
    """

    def __init__(self, queryset):
        self._qs = queryset
        self._where = []
        self._group = {}
        self._aggregates = {}
        self._order = []

    def _clone(self):
        c = AggregateQuery(self._qs)
        c._where = list(self._where)
        c._group = dict(self._group)
        c._aggregates = dict(self._aggregates)
        c._order = list(self._order)
        return c

    def where(self, *predicates: Q, **lookups):
        c = self._clone()
        c._where.extend(p for p in predicates if p is not None)
        if lookups:
            c._where.append(Q(**lookups))
        return c

    def group_by(self, **columns):
        c = self._clone()
        c._group.update(columns)
        return c

    def sum(self, alias, field, filter=None):
        c = self._clone()
        c._aggregates[alias] = Sum(field, filter=filter)
        return c

    def count(self, alias, field="id", distinct=False, filter=None):
        c = self._clone()
        c._aggregates[alias] = Count(field, distinct=distinct, filter=filter)
        return c

    def order(self, *aliases):
        c = self._clone()
        c._order = list(aliases)
        return c

    def queryset(self):
        qs = self._qs.filter(*self._where)
        if not self._group:
            return qs
        plain = [alias for alias, lookup in self._group.items() if alias == lookup]
        renamed = {
            alias: F(lookup) if isinstance(lookup, str) else lookup
            for alias, lookup in self._group.items()
            if alias != lookup
        }
        return (
            qs.values(*plain, **renamed)
            .annotate(**self._aggregates)
            .order_by(*self._order)
        )

    def rows(self, chunk_size=None):
        chunk_size = chunk_size or settings.GATEPASS_REPORT_CHUNK_SIZE
        return self.queryset().iterator(chunk_size=chunk_size)

    def all(self) -> list[dict]:
        return list(self.rows())

    def one(self) -> dict:
        """Ungrouped aggregate; empty sums come back as 0 rather than None."""
        result = self._qs.filter(*self._where).aggregate(**self._aggregates)
        return {k: (v if v is not None else 0) for k, v in result.items()}

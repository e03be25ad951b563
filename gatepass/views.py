from dataclasses import asdict

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from .context import TenantContext
from .models import UserProfile
from .serializers import (
    EntryQuerySerializer,
    GateEntryCreateSerializer,
    GateEntryUpdateSerializer,
    GatePassEntrySerializer,
    PartySerializer,
    SeasonSerializer,
    SeasonWriteSerializer,
    TargetItemSerializer,
    TargetRowSerializer,
)
from .services import analytics, ledger, parties, reports, seasons


def tenant_context(request) -> TenantContext:
    """Resolve the caller's rice mill from their profile."""
    try:
        return TenantContext.for_user(request.user)
    except UserProfile.DoesNotExist:
        raise PermissionDenied("User is not linked to a rice mill")


class GateEntryViewSet(viewsets.ViewSet):
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request):
        ctx = tenant_context(request)
        query = EntryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        filters = ledger.EntryFilters(
            society_id=params["society_id"],
            district_id=params["district_id"],
            season_id=params["season_id"],
            party_id=params["party_id"],
            vehicle_type=params["vehicle_type"],
            from_date=params["from_date"],
            to_date=params["to_date"],
        )
        page = ledger.list_entries(ctx, filters, query.pagination())
        return Response({
            "data": GatePassEntrySerializer(page["data"], many=True).data,
            "meta": page["meta"],
        })

    def create(self, request):
        ctx = tenant_context(request)
        payload = GateEntryCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        entry = ledger.create_entry(ctx, ledger.NewGateEntry(**payload.validated_data))
        return Response(GatePassEntrySerializer(entry).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        entry = ledger.get_entry(tenant_context(request), pk)
        return Response(GatePassEntrySerializer(entry).data)

    def partial_update(self, request, pk=None):
        ctx = tenant_context(request)
        payload = GateEntryUpdateSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        entry = ledger.update_entry(ctx, pk, dict(payload.validated_data))
        return Response(GatePassEntrySerializer(entry).data)

    update = partial_update

    def destroy(self, request, pk=None):
        ledger.delete_entry(tenant_context(request), pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class SeasonViewSet(viewsets.ViewSet):
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request):
        qs = seasons.list_seasons(tenant_context(request))
        return Response(SeasonSerializer(qs, many=True).data)

    def create(self, request):
        ctx = tenant_context(request)
        payload = SeasonWriteSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        season = seasons.create_season(
            ctx, data.get("year"), data.get("type"), data.get("is_active", False)
        )
        return Response(SeasonSerializer(season).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        season = seasons.get_season(tenant_context(request), pk)
        return Response(SeasonSerializer(season).data)

    def partial_update(self, request, pk=None):
        ctx = tenant_context(request)
        payload = SeasonWriteSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        season = seasons.update_season(
            ctx, pk, year=data.get("year"), season_type=data.get("type"),
            is_active=data.get("is_active"),
        )
        return Response(SeasonSerializer(season).data)

    update = partial_update

    def destroy(self, request, pk=None):
        seasons.delete_season(tenant_context(request), pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def active(self, request):
        season = seasons.get_active_season(tenant_context(request))
        return Response(SeasonSerializer(season).data)

    @action(detail=True, methods=["post"])
    def activate(self, request, pk=None):
        season = seasons.set_active(tenant_context(request), pk)
        return Response(SeasonSerializer(season).data)

    @action(detail=True, methods=["get", "put"])
    def targets(self, request, pk=None):
        ctx = tenant_context(request)
        if request.method == "PUT":
            items = TargetItemSerializer(data=request.data, many=True)
            items.is_valid(raise_exception=True)
            count = seasons.set_targets(ctx, pk, items.validated_data)
            return Response({"updated": count})
        rows = seasons.get_targets(ctx, pk)
        return Response(TargetRowSerializer(rows, many=True).data)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def dashboard_stats(request, season_id):
    stats = analytics.dashboard_stats(tenant_context(request), season_id)
    return Response(asdict(stats))


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def target_vs_actual(request, season_id):
    group_by = request.query_params.get("group_by", "society")
    points = analytics.target_vs_actual(tenant_context(request), season_id, group_by)
    return Response([asdict(p) for p in points])


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def trend(request, season_id):
    points = analytics.trend(tenant_context(request), season_id)
    return Response([asdict(p) for p in points])


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def report(request, report_type):
    """Report rows as JSON; ``?layout=table`` returns the flattened grid."""
    params = request.query_params
    result = reports.generate_report(
        tenant_context(request),
        report_type,
        from_date=params.get("from_date"),
        to_date=params.get("to_date"),
        society_id=params.get("society_id"),
        district_id=params.get("district_id"),
        season_id=params.get("season_id"),
    )
    rng = result.filters.date_range
    body = {
        "report_type": result.report_type,
        "from_date": rng.start,
        "to_date": rng.end,
        "headers": result.headers,
    }
    if params.get("layout") == "table":
        body["table"] = result.as_table()
    else:
        body["rows"] = [asdict(r) for r in result.rows]
        body["total"] = asdict(result.total)
    return Response(body)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def party_search(request):
    ctx = tenant_context(request)
    found = parties.search_parties(
        ctx, request.query_params.get("q"), request.query_params.get("society_id")
    )
    return Response(PartySerializer(found, many=True).data)

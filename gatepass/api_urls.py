from django.urls import path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.register("gate-entries", views.GateEntryViewSet, basename="gate-entry")
router.register("seasons", views.SeasonViewSet, basename="season")

urlpatterns = router.urls + [
    path("analytics/dashboard/<uuid:season_id>/", views.dashboard_stats, name="dashboard-stats"),
    path("analytics/target-vs-actual/<uuid:season_id>/", views.target_vs_actual, name="target-vs-actual"),
    path("analytics/trend/<uuid:season_id>/", views.trend, name="trend"),
    path("reports/<str:report_type>/", views.report, name="report"),
    path("parties/search/", views.party_search, name="party-search"),
]

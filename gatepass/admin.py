from django.contrib import admin

from .models import (
    District,
    GatePassEntry,
    Party,
    RiceMill,
    Season,
    Society,
    SocietyTarget,
    UserProfile,
)


@admin.register(RiceMill)
class RiceMillAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "created_at")
    search_fields = ("name", "code")


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "rice_mill", "role")
    list_filter = ("rice_mill", "role")


@admin.register(Season)
class SeasonAdmin(admin.ModelAdmin):
    list_display = ("name", "type", "rice_mill", "is_active", "created_at")
    list_filter = ("rice_mill", "type", "is_active")


@admin.register(District)
class DistrictAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "state", "rice_mill")
    list_filter = ("rice_mill",)
    search_fields = ("name", "code")


@admin.register(Society)
class SocietyAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "district", "rice_mill")
    list_filter = ("rice_mill", "district")
    search_fields = ("name", "code")


@admin.register(Party)
class PartyAdmin(admin.ModelAdmin):
    list_display = ("name", "father_name", "society", "phone")
    search_fields = ("name", "phone")
    list_select_related = ("society",)


@admin.register(SocietyTarget)
class SocietyTargetAdmin(admin.ModelAdmin):
    list_display = ("season", "society", "target_quantity", "updated_at")
    list_filter = ("season",)


@admin.register(GatePassEntry)
class GatePassEntryAdmin(admin.ModelAdmin):
    list_display = (
        "token_no",
        "date",
        "party_name",
        "society_name",
        "vehicle_no",
        "bags",
        "quantity",
        "season",
    )
    list_filter = ("rice_mill", "season", "vehicle_type", "district")
    search_fields = ("token_no", "party_name", "society_name", "vehicle_no")
    date_hierarchy = "date"
    readonly_fields = ("created_at", "updated_at", "created_by")

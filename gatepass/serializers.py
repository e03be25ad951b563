from rest_framework import serializers

from .models import GatePassEntry, Party, Season
from .services.querying import Pagination


class GatePassEntrySerializer(serializers.ModelSerializer):
    qty_per_bag = serializers.DecimalField(max_digits=12, decimal_places=3, read_only=True)
    district_name = serializers.CharField(source="district.name", read_only=True)
    season_name = serializers.SerializerMethodField()

    class Meta:
        model = GatePassEntry
        fields = [
            "id",
            "token_no",
            "challan_no",
            "date",
            "party",
            "party_name",
            "society",
            "society_name",
            "district",
            "district_name",
            "season",
            "season_name",
            "vehicle_type",
            "vehicle_no",
            "bags",
            "quantity",
            "qty_per_bag",
            "remarks",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_season_name(self, obj):
        return str(obj.season)


class GateEntryCreateSerializer(serializers.Serializer):
    # only shape checks here; business validation lives in the ledger service
    token_no = serializers.CharField(max_length=50)
    society_id = serializers.CharField()
    party_name = serializers.CharField(max_length=150)
    bags = serializers.CharField()
    quantity = serializers.CharField()
    vehicle_type = serializers.CharField(required=False, default=GatePassEntry.TRUCK)
    vehicle_no = serializers.CharField(required=False, allow_blank=True, default="")
    challan_no = serializers.CharField(required=False, allow_blank=True, default="")
    date = serializers.CharField(required=False, allow_null=True, default=None)
    remarks = serializers.CharField(required=False, allow_blank=True, default="")
    season_id = serializers.CharField(required=False, allow_null=True, default=None)


class GateEntryUpdateSerializer(serializers.Serializer):
    token_no = serializers.CharField(required=False, max_length=50)
    challan_no = serializers.CharField(required=False, allow_blank=True)
    date = serializers.CharField(required=False)
    vehicle_type = serializers.CharField(required=False)
    vehicle_no = serializers.CharField(required=False, allow_blank=True)
    bags = serializers.CharField(required=False)
    quantity = serializers.CharField(required=False)
    remarks = serializers.CharField(required=False, allow_blank=True)
    society_id = serializers.CharField(required=False)
    party_id = serializers.CharField(required=False)


class EntryQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, default=None)
    sort_by = serializers.CharField(required=False, default=None)
    sort_order = serializers.ChoiceField(choices=["asc", "desc"], required=False, default="desc")
    search = serializers.CharField(required=False, allow_blank=True, default=None)
    society_id = serializers.CharField(required=False, default=None)
    district_id = serializers.CharField(required=False, default=None)
    season_id = serializers.CharField(required=False, default=None)
    party_id = serializers.CharField(required=False, default=None)
    vehicle_type = serializers.CharField(required=False, default=None)
    from_date = serializers.CharField(required=False, default=None)
    to_date = serializers.CharField(required=False, default=None)

    PAGINATION = ("page", "limit", "sort_by", "sort_order", "search")

    def pagination(self):
        return Pagination(**{k: self.validated_data[k] for k in self.PAGINATION})


class SeasonSerializer(serializers.ModelSerializer):
    entry_count = serializers.IntegerField(read_only=True, default=None)
    target_count = serializers.IntegerField(read_only=True, default=None)

    class Meta:
        model = Season
        fields = ["id", "name", "type", "is_active", "created_at", "updated_at",
                  "entry_count", "target_count"]
        read_only_fields = fields


class SeasonWriteSerializer(serializers.Serializer):
    year = serializers.CharField(max_length=20, required=False)
    type = serializers.ChoiceField(choices=Season.TYPE_CHOICES, required=False)
    is_active = serializers.BooleanField(required=False)


class TargetItemSerializer(serializers.Serializer):
    society_id = serializers.CharField()
    target_quantity = serializers.DecimalField(max_digits=14, decimal_places=2)


class TargetRowSerializer(serializers.Serializer):
    target_id = serializers.IntegerField(allow_null=True)
    season_id = serializers.UUIDField()
    society_id = serializers.UUIDField()
    society_name = serializers.CharField()
    society_code = serializers.CharField()
    district_id = serializers.UUIDField()
    district_name = serializers.CharField()
    target_quantity = serializers.DecimalField(max_digits=14, decimal_places=2)


class PartySerializer(serializers.ModelSerializer):
    society_name = serializers.CharField(source="society.name", read_only=True)
    district_name = serializers.CharField(source="society.district.name", read_only=True)

    class Meta:
        model = Party
        fields = ["id", "name", "father_name", "phone", "address", "society",
                  "society_name", "district_name"]

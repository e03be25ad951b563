from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from gatepass.context import TenantContext
from gatepass.models import District, RiceMill, Season, Society, UserProfile
from gatepass.services import reference, seasons

DEMO_MILL = ("Demo Rice Mill", "DEMO")
DEMO_DISTRICTS = {
    "Bargarh": ["Attabira PACS", "Bheden PACS", "Sohela PACS"],
    "Sambalpur": ["Rengali PACS", "Jujumura PACS"],
    "Kalahandi": ["Dharamgarh PACS", "Koksara PACS"],
}
DEMO_TARGET = Decimal("5000")


class Command(BaseCommand):
    help = "Create a demo rice mill with districts, societies, an active season and targets."

    def add_arguments(self, parser):
        parser.add_argument("--season", default="2025-2026", help="Season year label")
        parser.add_argument("--type", default=Season.KHARIF, choices=[Season.KHARIF, Season.RABI])
        parser.add_argument("--username", help="Also create a login linked to the demo mill")
        parser.add_argument("--password", default="demo1234")

    @transaction.atomic
    def handle(self, *args, **opts):
        self.stdout.write(self.style.NOTICE("Seeding gate pass demo data..."))
        mill, _ = RiceMill.objects.get_or_create(code=DEMO_MILL[1], defaults={"name": DEMO_MILL[0]})
        ctx = TenantContext(rice_mill_id=mill.id)

        societies = []
        for district_name, society_names in DEMO_DISTRICTS.items():
            district = self._ensure_district(ctx, mill, district_name)
            for name in society_names:
                societies.append(self._ensure_society(ctx, mill, district, name))

        season = Season.objects.filter(
            rice_mill=mill, name=opts["season"], type=opts["type"]
        ).first()
        if season is None:
            season = seasons.create_season(ctx, opts["season"], opts["type"])
        seasons.set_active(ctx, season.id)
        seasons.set_targets(
            ctx, season.id,
            [{"society_id": s.id, "target_quantity": DEMO_TARGET} for s in societies],
        )

        if opts.get("username"):
            self._ensure_user(mill, opts["username"], opts["password"])

        self.stdout.write(self.style.SUCCESS(
            f"Demo seed complete: mill={mill.code}, districts={len(DEMO_DISTRICTS)}, "
            f"societies={len(societies)}, season={season}"
        ))

    def _ensure_district(self, ctx, mill, name):
        district = District.objects.filter(rice_mill=mill, name__iexact=name).first()
        return district or reference.create_district(ctx, name, state="Odisha")

    def _ensure_society(self, ctx, mill, district, name):
        society = Society.objects.filter(rice_mill=mill, district=district, name__iexact=name).first()
        return society or reference.create_society(ctx, district.id, name)

    def _ensure_user(self, mill, username, password):
        User = get_user_model()
        user, created = User.objects.get_or_create(username=username)
        if created:
            user.set_password(password)
            user.save(update_fields=["password"])
        UserProfile.objects.update_or_create(
            user=user, defaults={"rice_mill": mill, "role": UserProfile.ADMIN}
        )

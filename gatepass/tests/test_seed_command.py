from io import StringIO

import pytest
from django.core.management import call_command

from gatepass.models import District, RiceMill, Season, Society, SocietyTarget, UserProfile


@pytest.mark.django_db
def test_seed_gatepass_demo_is_idempotent():
    out = StringIO()
    call_command("seed_gatepass_demo", "--username", "demo", stdout=out)
    call_command("seed_gatepass_demo", "--username", "demo", stdout=out)

    mill = RiceMill.objects.get(code="DEMO")
    assert District.objects.filter(rice_mill=mill).count() == 3
    assert Society.objects.filter(rice_mill=mill).count() == 7
    assert Season.objects.filter(rice_mill=mill, is_active=True).count() == 1
    assert SocietyTarget.objects.filter(society__rice_mill=mill).count() == 7
    assert UserProfile.objects.get(user__username="demo").rice_mill == mill
    assert "Demo seed complete" in out.getvalue()
    codes = set(Society.objects.filter(rice_mill=mill).values_list("code", flat=True))
    assert "PACS-BARGAR-001" in codes


@pytest.mark.django_db
def test_seed_switches_active_season():
    call_command("seed_gatepass_demo", stdout=StringIO())
    call_command("seed_gatepass_demo", "--season", "2026-2027", "--type", "RABI", stdout=StringIO())
    active = Season.objects.get(rice_mill__code="DEMO", is_active=True)
    assert (active.name, active.type) == ("2026-2027", "RABI")
    assert Season.objects.filter(rice_mill__code="DEMO").count() == 2

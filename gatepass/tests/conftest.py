from decimal import Decimal

import pytest

from gatepass.context import TenantContext
from gatepass.models import Season
from gatepass.services import ledger, reference, seasons
from gatepass.tests.factories import make_mill


@pytest.fixture
def mill(db):
    return make_mill()


@pytest.fixture
def ctx(mill):
    return TenantContext(rice_mill_id=mill.id, user_id=None, role="ADMIN")


@pytest.fixture
def district(ctx):
    return reference.create_district(ctx, "Bargarh", state="Odisha")


@pytest.fixture
def society(ctx, district):
    return reference.create_society(ctx, district.id, "Attabira PACS")


@pytest.fixture
def season(ctx):
    return seasons.create_season(ctx, "2025-2026", Season.KHARIF, is_active=True)


@pytest.fixture
def add_entry(ctx, society, season):
    """Record an entry for the default society; keyword arguments override."""
    counter = {"n": 0}

    def _add(tenant=None, **kw):
        counter["n"] += 1
        data = {
            "token_no": f"T{counter['n']:04d}",
            "society_id": society.id,
            "party_name": "Ramesh Kumar",
            "bags": 10,
            "quantity": Decimal("100"),
            "date": "2025-11-03T10:00:00",
        }
        data.update(kw)
        return ledger.create_entry(tenant or ctx, ledger.NewGateEntry(**data))

    return _add

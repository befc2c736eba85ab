"""Shared pytest fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tests.fake_supabase import FakeSupabaseClient, make_session  # noqa: E402


WAREHOUSE_ROWS = [
    {"id": "wh-2", "name": "Sede"},
    {"id": "wh-1", "name": "Frantoio"},
]

STOCK_ROWS = [
    {"warehouse": "Frantoio", "year": 2024, "lot": "A", "size": "ml_500", "qty_ml": 25000, "approx_units": 50},
    {"warehouse": "Frantoio", "year": 2024, "lot": "B", "size": "lt_5", "qty_ml": 12500.5, "approx_units": 2.5001},
    {"warehouse": "Sede", "year": 2025, "lot": "A", "size": "ml_250", "qty_ml": 1750, "approx_units": 7},
]

PRODUCT_ROWS = [
    {"id": "prod-2024-A-500", "year": 2024, "lot": "A", "size": "ml_500"},
    {"id": "prod-2024-A-5l", "year": 2024, "lot": "A", "size": "lt_5"},
    {"id": "prod-2025-B-250", "year": 2025, "lot": "B", "size": "ml_250"},
]


def build_client(role: str | None = "operator", *, signed_in: bool = True) -> FakeSupabaseClient:
    users = [{"user_id": "user-1", "role": role}] if role is not None else []
    client = FakeSupabaseClient(
        {
            "app_users": users,
            "warehouses": WAREHOUSE_ROWS,
            "v_stock_detailed": STOCK_ROWS,
            "products": PRODUCT_ROWS,
        }
    )
    if signed_in:
        client.auth.session = make_session()
    return client


@pytest.fixture
def fake_client() -> FakeSupabaseClient:
    """Signed-in operator with a small catalogue."""

    return build_client("operator")


@pytest.fixture
def anonymous_client() -> FakeSupabaseClient:
    return build_client(None, signed_in=False)


@pytest.fixture(autouse=True)
def _clean_supabase_env(monkeypatch):
    for name in (
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "NEXT_PUBLIC_SUPABASE_URL",
        "NEXT_PUBLIC_SUPABASE_ANON_KEY",
        "EMAIL_REDIRECT_URL",
        "VINTAGE_YEARS",
        "SUPABASE_AUTO_REFRESH_TOKEN",
        "SUPABASE_PERSIST_SESSION",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

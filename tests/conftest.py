"""Shared fixtures."""
from decimal import Decimal

import pytest

from carbon.config import EngineConfig
from carbon.engine import CarbonEngine
from carbon.factors import FactorTable

SAMPLE_BATCH = [
    {"id": "TX101", "date": "2024-10-25", "vendor": "Saudi Electricity Company", "category": "electricity", "amount_sar": 12500, "scope": 2},
    {"id": "TX102", "date": "2024-10-24", "vendor": "Aramco Fuel Station", "category": "fuel", "amount_sar": 8400, "scope": 1},
    {"id": "TX103", "date": "2024-10-22", "vendor": "SABIC Materials", "category": "raw_materials", "amount_sar": 15000, "scope": 3},
    {"id": "TX104", "date": "2024-10-20", "vendor": "Naqel Logistics", "category": "logistics", "amount_sar": 3200, "scope": 3},
    {"id": "TX105", "date": "2024-10-20", "vendor": "Aramco Fuel Station", "category": "fuel", "amount_sar": 6100, "scope": 1},
    {"id": "TX106", "date": "2024-10-18", "vendor": "Saudi Electricity Company", "category": "electricity", "amount_sar": 2100, "scope": 2},
    {"id": "TX107", "date": "2024-10-15", "vendor": "Azure Cloud Middle East", "category": "software", "amount_sar": 1500, "scope": 3},
    {"id": "TX108", "date": "2024-10-12", "vendor": "SABIC Materials", "category": "raw_materials", "amount_sar": 18000, "scope": 3},
]


@pytest.fixture
def sample_batch():
    return [dict(tx) for tx in SAMPLE_BATCH]


@pytest.fixture
def factor_table():
    return FactorTable.default()


@pytest.fixture
def engine():
    return CarbonEngine(EngineConfig(baseline_tonnes=Decimal("120")))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's CARBON_* variables out of the tests."""
    for name in (
        "CARBON_BASELINE_TONNES", "CARBON_FACTORS_FILE", "CARBON_DEFAULT_FACTOR",
        "CARBON_REFUND_POLICY", "CARBON_FINANCING_THRESHOLD", "CARBON_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)


def make_tx(tx_id, category, amount, scope, date="2024-10-01", vendor="Vendor"):
    return {"id": tx_id, "date": date, "vendor": vendor, "category": category, "amount": amount, "scope": scope}

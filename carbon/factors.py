"""
Spend-based Emission Factors
=============================
kg CO2e per unit of currency (SAR) spent in a category.

    emissions_kg = amount x factor

Unknown categories never fail and are never dropped: they are estimated with
the default factor, and the enricher flags them so reports can show how much
of the footprint is a fallback estimate.
"""
import json
import math
from decimal import Decimal, InvalidOperation
from types import MappingProxyType

from .errors import ConfigurationError

# ═══════════════════════════════════════════════════════════════
# DEFAULT FACTORS (kg CO2e per SAR)
# ═══════════════════════════════════════════════════════════════
DEFAULT_FACTORS = {
    "electricity": "0.45",      # Saudi grid power
    "fuel": "0.82",             # diesel / petrol
    "raw_materials": "1.2",     # steel, concrete
    "logistics": "0.6",         # road freight
    "software": "0.01",         # cloud + licences, negligible
}

# Applied to any category not in the table
DEFAULT_FALLBACK_FACTOR = "0.1"


def _positive_factor(value, name: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ConfigurationError(f"Emission factor for {name!r} is missing")
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        raise ConfigurationError(f"Emission factor for {name!r} is not finite")
    try:
        factor = Decimal(str(value).strip())
    except InvalidOperation:
        raise ConfigurationError(f"Emission factor for {name!r} is not numeric: {value!r}")
    if not factor.is_finite() or factor <= 0:
        raise ConfigurationError(f"Emission factor for {name!r} must be positive, got {value!r}")
    return factor


def normalize_category(category) -> str:
    return str(category or "").strip().lower()


class FactorTable:
    """
    Read-only category -> factor lookup with a fallback.

    Usage:
        table = FactorTable({"electricity": 0.45}, default_factor=0.1)
        table.factor_for("electricity")   # Decimal("0.45")
        table.factor_for("catering")      # Decimal("0.1")
    """

    def __init__(self, factors: dict, default_factor=DEFAULT_FALLBACK_FACTOR):
        if factors is None:
            raise ConfigurationError("Factor table is missing")
        if not hasattr(factors, "items"):
            raise ConfigurationError("Factor table must be a mapping of category -> factor")

        parsed = {}
        for category, value in factors.items():
            key = normalize_category(category)
            if not key:
                raise ConfigurationError("Factor table contains an empty category name")
            parsed[key] = _positive_factor(value, key)

        self._factors = MappingProxyType(parsed)
        self._default = _positive_factor(default_factor, "<default>")

    @classmethod
    def default(cls) -> "FactorTable":
        return cls(DEFAULT_FACTORS, DEFAULT_FALLBACK_FACTOR)

    @classmethod
    def from_json(cls, path: str, default_factor=None) -> "FactorTable":
        """
        Load a factor file.

        Either a flat {"category": factor} object, or
        {"factors": {...}, "default_factor": x}. An explicit default_factor
        argument wins over the one in the file.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Could not read factor file {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Factor file {path} must contain a JSON object")

        if "factors" in data:
            factors = data["factors"]
            file_default = data.get("default_factor", DEFAULT_FALLBACK_FACTOR)
        else:
            factors = data
            file_default = DEFAULT_FALLBACK_FACTOR

        return cls(factors, default_factor if default_factor is not None else file_default)

    @property
    def default_factor(self) -> Decimal:
        return self._default

    @property
    def categories(self) -> tuple:
        return tuple(self._factors)

    def is_registered(self, category) -> bool:
        return normalize_category(category) in self._factors

    def factor_for(self, category) -> Decimal:
        """Factor for a category, or the default factor. Never raises."""
        return self._factors.get(normalize_category(category), self._default)

    def with_factors(self, updates: dict = None, default_factor=None) -> "FactorTable":
        """Return a new table with `updates` layered on top. This table is untouched."""
        merged = dict(self._factors)
        merged.update({normalize_category(k): v for k, v in (updates or {}).items()})
        return FactorTable(merged, self._default if default_factor is None else default_factor)

    def __contains__(self, category) -> bool:
        return self.is_registered(category)

    def __len__(self) -> int:
        return len(self._factors)

    def __repr__(self) -> str:
        return f"FactorTable({len(self._factors)} categories, default={self._default})"

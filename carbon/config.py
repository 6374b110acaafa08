"""
Engine configuration.

Everything the engine needs is passed in through an EngineConfig. Defaults
live here; `load_config()` layers environment variables (and a project .env
file) on top for the CLI and the web app.

Environment:
    CARBON_BASELINE_TONNES       baseline in tCO2e (default 120)
    CARBON_FACTORS_FILE          JSON factor file (default: built-in table)
    CARBON_DEFAULT_FACTOR        fallback factor for unknown categories
    CARBON_REFUND_POLICY         net | zero | exclude (default net)
    CARBON_FINANCING_THRESHOLD   minimum score for green financing (default 70)
    CARBON_WORKERS               enrichment threads (default 1)
"""
import os
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from enum import Enum

from dotenv import load_dotenv

from .errors import ConfigurationError
from .factors import FactorTable

PROJECT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Baseline for a construction SME of this size, tCO2e per month
DEFAULT_BASELINE_TONNES = Decimal("120")

# Green-finance products require at least this score
DEFAULT_FINANCING_THRESHOLD = 70


class RefundPolicy(str, Enum):
    """How negative amounts (refunds) are treated."""
    NET = "net"          # negative emissions, reduces the footprint
    ZERO = "zero"        # reported, but contributes 0 kg
    EXCLUDE = "exclude"  # rejected like any other invalid transaction


def parse_refund_policy(value) -> RefundPolicy:
    if isinstance(value, RefundPolicy):
        return value
    try:
        return RefundPolicy(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(p.value for p in RefundPolicy)
        raise ConfigurationError(f"Unknown refund policy {value!r} (expected one of: {choices})")


def parse_baseline(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ConfigurationError("Baseline emissions are not configured")
    try:
        baseline = Decimal(str(value).strip())
    except InvalidOperation:
        raise ConfigurationError(f"Baseline {value!r} is not numeric")
    if not baseline.is_finite() or baseline <= 0:
        raise ConfigurationError(f"Baseline must be a positive number of tonnes, got {value!r}")
    return baseline


def parse_financing_threshold(value) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"Financing threshold must be an integer, got {value!r}")
    try:
        threshold = Decimal(str(value).strip())
    except InvalidOperation:
        raise ConfigurationError(f"Financing threshold must be an integer, got {value!r}")
    if not threshold.is_finite() or threshold != threshold.to_integral_value():
        raise ConfigurationError(f"Financing threshold must be an integer, got {value!r}")
    threshold = int(threshold)
    if not 0 <= threshold <= 100:
        raise ConfigurationError(f"Financing threshold must be within 0-100, got {threshold}")
    return threshold


@dataclass(frozen=True)
class EngineConfig:
    factor_table: FactorTable = field(default_factory=FactorTable.default)
    baseline_tonnes: Decimal = DEFAULT_BASELINE_TONNES
    refund_policy: RefundPolicy = RefundPolicy.NET
    financing_threshold: int = DEFAULT_FINANCING_THRESHOLD
    workers: int = 1

    def validated(self) -> "EngineConfig":
        """Return a normalized copy, or raise ConfigurationError."""
        if not isinstance(self.factor_table, FactorTable):
            raise ConfigurationError("A FactorTable is required")
        try:
            workers = int(self.workers)
        except (TypeError, ValueError):
            raise ConfigurationError(f"workers must be an integer, got {self.workers!r}")
        if workers < 1:
            raise ConfigurationError(f"workers must be at least 1, got {workers}")
        return replace(
            self,
            baseline_tonnes=parse_baseline(self.baseline_tonnes),
            refund_policy=parse_refund_policy(self.refund_policy),
            financing_threshold=parse_financing_threshold(self.financing_threshold),
            workers=workers,
        )


def load_config(env_file: str = None, **overrides) -> EngineConfig:
    """
    Build an EngineConfig from the environment, then apply keyword overrides.

    Overrides set to None are ignored, so CLI flags can be passed straight
    through.
    """
    load_dotenv(env_file or os.path.join(PROJECT_DIR, ".env"), override=False)

    factors_file = overrides.pop("factors_file", None) or os.environ.get("CARBON_FACTORS_FILE")
    default_factor = overrides.pop("default_factor", None) or os.environ.get("CARBON_DEFAULT_FACTOR")

    if factors_file:
        table = FactorTable.from_json(factors_file, default_factor=default_factor)
    elif default_factor:
        table = FactorTable.default().with_factors(default_factor=default_factor)
    else:
        table = FactorTable.default()

    values = {
        "factor_table": table,
        "baseline_tonnes": os.environ.get("CARBON_BASELINE_TONNES", DEFAULT_BASELINE_TONNES),
        "refund_policy": os.environ.get("CARBON_REFUND_POLICY", RefundPolicy.NET),
        "financing_threshold": os.environ.get("CARBON_FINANCING_THRESHOLD", DEFAULT_FINANCING_THRESHOLD),
        "workers": os.environ.get("CARBON_WORKERS", 1),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    return EngineConfig(**values).validated()

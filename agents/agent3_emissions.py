"""
Agent 3: Scope Aggregation + Sustainability Score
===================================================
DETERMINISTIC ONLY.

Aggregation sums kg CO2e into scope buckets in ingestion order. Partial
totals from partitioned batches are merged in partition order, so the same
batch always produces the same numbers.

Score:
    score = clamp(100 - (total_t / baseline_t) x 50, 0, 100)

At baseline the score is 50, at 2x baseline it is 0, with zero emissions it
is 100. Rounded half-up to an integer.
"""
from decimal import ROUND_HALF_UP, Decimal

from carbon.config import parse_baseline
from carbon.errors import ValidationError
from carbon.models import SCOPES, ZERO, ScopeTotals

SCORE_MIN = Decimal("0")
SCORE_MAX = Decimal("100")
# Points lost per baseline's worth of emissions
POINTS_PER_BASELINE = Decimal("50")


def aggregate_scopes(enriched) -> ScopeTotals:
    """
    Sum emissions per scope, in ingestion order.

    Raises:
        ValidationError: if a record carries a scope other than 1, 2 or 3.
    """
    buckets = {1: ZERO, 2: ZERO, 3: ZERO}
    for e in enriched:
        if e.scope not in buckets:
            raise ValidationError(e.id, f"scope {e.scope} is not one of 1, 2, 3")
        buckets[e.scope] += e.emissions

    return ScopeTotals(scope_1=buckets[1], scope_2=buckets[2], scope_3=buckets[3])


def merge_scope_totals(partials) -> ScopeTotals:
    """Merge partition results, strictly in the order given."""
    buckets = {1: ZERO, 2: ZERO, 3: ZERO}
    for partial in partials:
        for scope in SCOPES:
            buckets[scope] += partial.for_scope(scope)

    return ScopeTotals(scope_1=buckets[1], scope_2=buckets[2], scope_3=buckets[3])


def aggregate_categories(enriched) -> dict:
    """kg CO2e per category, in first-seen order."""
    totals = {}
    for e in enriched:
        totals[e.category] = totals.get(e.category, ZERO) + e.emissions
    return totals


def calculate_score(total_tonnes, baseline_tonnes) -> int:
    """
    Map total emissions against the baseline onto 0-100.

    Raises:
        ConfigurationError: if the baseline is missing, zero or negative.
    """
    baseline = parse_baseline(baseline_tonnes)
    total = Decimal(str(total_tonnes))
    raw = SCORE_MAX - (total / baseline) * POINTS_PER_BASELINE
    clamped = max(SCORE_MIN, min(raw, SCORE_MAX))
    return int(clamped.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

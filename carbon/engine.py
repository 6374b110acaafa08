"""
Carbon Metrics Engine
======================
One batch in, one MetricsReport out:

    validate -> enrich -> aggregate -> score -> build report

Stateless: nothing survives between calls except the immutable config.
Invalid transactions are rejected one by one and listed on the report; a bad
configuration fails before any data is touched.
"""
from agents.agent1_ingest import validate_batch
from agents.agent2_enrichment import enrich_batch
from agents.agent3_emissions import aggregate_categories, aggregate_scopes, calculate_score
from agents.agent4_report import build_report

from .config import (
    DEFAULT_FINANCING_THRESHOLD, EngineConfig, RefundPolicy,
    parse_baseline, parse_financing_threshold, parse_refund_policy,
)
from .errors import ConfigurationError
from .factors import FactorTable
from .models import KG_PER_TONNE, MetricsReport


def calculate_metrics(batch, factor_table: FactorTable, baseline_tonnes,
                      refund_policy=RefundPolicy.NET,
                      financing_threshold: int = DEFAULT_FINANCING_THRESHOLD,
                      workers: int = 1) -> MetricsReport:
    """
    Compute a MetricsReport for one batch.

    Args:
        batch: raw transaction mappings and/or Transaction objects, in order
        factor_table: category -> kg CO2e per currency unit
        baseline_tonnes: reference emissions in tCO2e (score 50 at baseline)
        refund_policy: net | zero | exclude for negative amounts
        financing_threshold: minimum score for green-finance eligibility
        workers: threads used for enrichment

    Raises:
        ConfigurationError: factor table, baseline or threshold missing/invalid.
    """
    if not isinstance(factor_table, FactorTable):
        raise ConfigurationError("A FactorTable is required")
    baseline = parse_baseline(baseline_tonnes)
    refund_policy = parse_refund_policy(refund_policy)
    financing_threshold = parse_financing_threshold(financing_threshold)

    transactions, rejections = validate_batch(batch if batch is not None else [], refund_policy)
    enriched = enrich_batch(transactions, factor_table, refund_policy, workers=workers)

    totals = aggregate_scopes(enriched)
    score = calculate_score(totals.total / KG_PER_TONNE, baseline)

    return build_report(
        enriched,
        totals,
        score,
        rejections=rejections,
        category_totals=aggregate_categories(enriched),
        baseline_tonnes=baseline,
        financing_threshold=financing_threshold,
    )


class CarbonEngine:
    """
    Configured engine.

    Usage:
        engine = CarbonEngine(EngineConfig(baseline_tonnes=120))
        report = engine.calculate(transactions)
    """

    def __init__(self, config: EngineConfig = None):
        self.config = (config or EngineConfig()).validated()

    def calculate(self, batch) -> MetricsReport:
        cfg = self.config
        return calculate_metrics(
            batch,
            cfg.factor_table,
            cfg.baseline_tonnes,
            refund_policy=cfg.refund_policy,
            financing_threshold=cfg.financing_threshold,
            workers=cfg.workers,
        )

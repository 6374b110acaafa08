from decimal import Decimal

from agents.agent1_ingest import validate_batch
from agents.agent2_enrichment import enrich, enrich_batch
from carbon.config import RefundPolicy
from carbon.models import Transaction
from conftest import make_tx


def _tx(category, amount, scope=1, tx_id="T1"):
    return Transaction.from_dict(make_tx(tx_id, category, amount, scope))


def test_emissions_are_amount_times_factor(factor_table):
    e = enrich(_tx("electricity", 12500, 2), factor_table)

    assert e.emissions == Decimal("5625.00")
    assert e.factor == Decimal("0.45")
    assert e.default_factor_used is False


def test_unregistered_category_uses_default_factor_and_is_flagged(factor_table):
    e = enrich(_tx("catering", 1000), factor_table)

    assert e.emissions == Decimal("100.0")
    assert e.factor == factor_table.default_factor
    assert e.default_factor_used is True


def test_refund_yields_negative_emissions_under_net(factor_table):
    e = enrich(_tx("fuel", -1000), factor_table)
    assert e.emissions == Decimal("-820.00")


def test_refund_yields_zero_emissions_under_zero_policy(factor_table):
    e = enrich(_tx("fuel", -1000), factor_table, RefundPolicy.ZERO)

    assert e.emissions == 0
    assert e.amount == Decimal("-1000")


def test_enrichment_does_not_touch_the_transaction(factor_table):
    tx = _tx("fuel", 100)
    e = enrich(tx, factor_table)
    assert e.transaction is tx


def test_parallel_enrichment_matches_sequential(sample_batch, factor_table):
    transactions, _ = validate_batch(sample_batch + [
        make_tx(f"X{i}", "logistics", i * 7.3, 3) for i in range(50)
    ])

    sequential = enrich_batch(transactions, factor_table)
    parallel = enrich_batch(transactions, factor_table, workers=4)

    assert parallel == sequential
    assert [e.id for e in parallel] == [tx.id for tx in transactions]


def test_empty_batch(factor_table):
    assert enrich_batch([], factor_table, workers=4) == []

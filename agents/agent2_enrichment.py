"""
Agent 2: Transaction Enrichment
================================
DETERMINISTIC ONLY. For every transaction:
    amount x emission_factor = kg CO2e

Each transaction is enriched on its own, so the batch can be fanned out to
worker threads; results always come back in ingestion order.
"""
from concurrent.futures import ThreadPoolExecutor

from rich.console import Console
from rich.table import Table as RichTable

from carbon.config import RefundPolicy
from carbon.factors import FactorTable
from carbon.models import ZERO, EnrichedTransaction, Transaction

console = Console()


def enrich(tx: Transaction, factor_table: FactorTable,
           refund_policy: RefundPolicy = RefundPolicy.NET) -> EnrichedTransaction:
    """Attach emissions (kg CO2e) to one transaction."""
    factor = factor_table.factor_for(tx.category)
    emissions = tx.amount * factor

    if emissions < 0 and refund_policy == RefundPolicy.ZERO:
        emissions = ZERO

    return EnrichedTransaction(
        transaction=tx,
        emissions=emissions,
        factor=factor,
        default_factor_used=not factor_table.is_registered(tx.category),
    )


def enrich_batch(transactions, factor_table: FactorTable,
                 refund_policy: RefundPolicy = RefundPolicy.NET, workers: int = 1) -> list:
    """
    Enrich a whole batch.

    Args:
        transactions: validated Transactions, in ingestion order
        factor_table: category -> factor lookup
        refund_policy: what to do with negative amounts
        workers: >1 maps the batch over a thread pool

    Returns:
        List of EnrichedTransaction in the same order as the input
    """
    transactions = list(transactions)

    if workers <= 1 or len(transactions) < 2:
        return [enrich(tx, factor_table, refund_policy) for tx in transactions]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        # map() yields in submission order regardless of completion order
        return list(pool.map(lambda tx: enrich(tx, factor_table, refund_policy), transactions))


def print_enrichment(enriched: list) -> None:
    """Print the per-transaction ledger."""
    table = RichTable(title="Transaction Ledger")
    table.add_column("ID", style="bold")
    table.add_column("Date")
    table.add_column("Vendor")
    table.add_column("Category")
    table.add_column("Scope", justify="center")
    table.add_column("Amount", justify="right")
    table.add_column("Factor", justify="right")
    table.add_column("kg CO2e", justify="right", style="bold")

    for e in enriched:
        tx = e.transaction
        category = f"{tx.category} [yellow](default)[/yellow]" if e.default_factor_used else tx.category
        table.add_row(
            tx.id,
            tx.date.isoformat(),
            tx.vendor,
            category,
            str(tx.scope),
            f"{tx.amount:,.2f}",
            f"{e.factor}",
            f"{e.emissions:,.2f}",
        )

    console.print(table)

    unclassified = sum(1 for e in enriched if e.default_factor_used)
    if unclassified:
        console.print(f"  [yellow]{unclassified} transaction(s) estimated with the default factor[/yellow]")

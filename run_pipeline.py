#!/usr/bin/env python3
"""
SME Carbon Metrics Pipeline
============================
One command runs the entire pipeline:
    python run_pipeline.py data/sample_transactions.csv

What it does:
1. Loads the engine configuration (.env, flags)
2. Reads the transaction batch (CSV or JSON)
3. Calculates per-transaction emissions, Scope 1/2/3 totals and the
   sustainability score (deterministic, no AI)
4. Optionally exports the report as JSON and/or a Word document

Setup:
  pip install -e .
  cp .env.example .env   # optional overrides
  carbon-pipeline data/sample_transactions.csv --export output/
"""
import argparse

from rich.console import Console
from rich.panel import Panel

from agents.agent1_ingest import ingest_file
from agents.agent2_enrichment import print_enrichment
from agents.agent4_report import export_json, generate_report, print_report
from carbon.config import RefundPolicy, load_config
from carbon.engine import CarbonEngine
from carbon.errors import ConfigurationError, IngestionError

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="carbon-pipeline",
        description="Estimate emissions and a sustainability score for a transaction batch.",
    )
    parser.add_argument("batch", help="CSV or JSON file with transactions")
    parser.add_argument("--baseline", dest="baseline_tonnes", help="baseline emissions in tCO2e")
    parser.add_argument("--factors", dest="factors_file", help="JSON file with emission factors")
    parser.add_argument("--default-factor", dest="default_factor",
                        help="factor for categories missing from the table")
    parser.add_argument("--refund-policy", choices=[p.value for p in RefundPolicy],
                        help="how to treat negative amounts")
    parser.add_argument("--threshold", dest="financing_threshold", type=int,
                        help="minimum score for green financing")
    parser.add_argument("--workers", type=int, help="threads used for enrichment")
    parser.add_argument("--json", dest="json_path", help="write the report as JSON to this path")
    parser.add_argument("--export", dest="export_dir", help="write a Word report into this folder")
    parser.add_argument("--company", default=None, help="company name for the Word report")
    parser.add_argument("--ledger", action="store_true", help="print every enriched transaction")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    console.print(Panel.fit(
        "[bold blue]SME Carbon Metrics Pipeline[/bold blue]\n"
        "[dim]Batch → Validate → Enrich → Aggregate → Score → Report[/dim]",
        border_style="blue",
    ))

    console.print("\n[bold]Step 1: Configuration[/bold]")
    try:
        config = load_config(
            factors_file=args.factors_file,
            default_factor=args.default_factor,
            baseline_tonnes=args.baseline_tonnes,
            refund_policy=args.refund_policy,
            financing_threshold=args.financing_threshold,
            workers=args.workers,
        )
        engine = CarbonEngine(config)
    except ConfigurationError as e:
        console.print(f"  [red]Configuration error: {e}[/red]")
        return 2

    console.print(f"  Categories: {len(config.factor_table)} "
                  f"(default factor {config.factor_table.default_factor})")
    console.print(f"  Baseline: {config.baseline_tonnes} tCO2e, refund policy: {config.refund_policy.value}")

    console.print("\n[bold]Step 2: Ingestion[/bold]")
    try:
        records = ingest_file(args.batch)
    except IngestionError as e:
        console.print(f"  [red]FAILED: {e}[/red]")
        return 1

    console.print("\n[bold]Step 3: Emissions Calculation[/bold]")
    report = engine.calculate(records)
    if args.ledger:
        print_enrichment(report.transactions)
    print_report(report)

    outputs = []
    if args.json_path:
        outputs.append(export_json(report, args.json_path))
    if args.export_dir:
        console.print("\n[bold]Step 4: Report Export[/bold]")
        outputs.append(generate_report(report, args.export_dir, args.company))

    saved = "\n".join(f"[bold]{p}[/bold]" for p in outputs) or "[dim]no files written[/dim]"
    console.print(Panel.fit(
        f"[bold green]Pipeline Complete![/bold green]\n\n{saved}",
        border_style="green",
    ))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

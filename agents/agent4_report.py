"""
Agent 4: Report Builder + Export
=================================
Assembles the MetricsReport, the single object that leaves the engine, and
renders it for humans: a rich console summary, a JSON file, or a Word
document.

Unit conversion (kg -> tCO2e) and 2-decimal display rounding happen here and
nowhere else. Aggregation upstream stays unrounded.

ALL exported reports are marked DRAFT, REQUIRES HUMAN REVIEW.
"""
import json
import os
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, localcontext
from types import MappingProxyType

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from carbon.models import KG_PER_TONNE, SCOPE_LABELS, SCOPES, ZERO, MetricsReport, ScopeTotals

console = Console()

DISPLAY_QUANTUM = Decimal("0.01")


def to_display_tonnes(kg: Decimal) -> Decimal:
    """kg -> tCO2e, rounded half-up to 2 decimals."""
    with localcontext() as ctx:
        # room for every integer digit plus the 2 display decimals
        ctx.prec = max(ctx.prec, (kg / KG_PER_TONNE).adjusted() + 3)
        tonnes = (kg / KG_PER_TONNE).quantize(DISPLAY_QUANTUM, rounding=ROUND_HALF_UP)
        return tonnes + ZERO  # folds -0.00 into 0.00


def is_financing_eligible(score: int, threshold: int) -> bool:
    return score >= threshold


def build_report(enriched, totals: ScopeTotals, score: int, rejections=(),
                 category_totals: dict = None, baseline_tonnes=ZERO,
                 financing_threshold: int = 70) -> MetricsReport:
    """
    Build the immutable MetricsReport.

    Args:
        enriched: EnrichedTransactions in ingestion order
        totals: unrounded kg per scope
        score: sustainability score, 0-100
        rejections: Rejection records from validation
        category_totals: unrounded kg per category
        baseline_tonnes: the baseline the score was computed against
        financing_threshold: minimum score for green-finance eligibility
    """
    categories = {
        category: to_display_tonnes(kg)
        for category, kg in (category_totals or {}).items()
    }

    return MetricsReport(
        total_emissions=to_display_tonnes(totals.total),
        scope_1_total=to_display_tonnes(totals.scope_1),
        scope_2_total=to_display_tonnes(totals.scope_2),
        scope_3_total=to_display_tonnes(totals.scope_3),
        score=score,
        transactions=tuple(enriched),
        rejections=tuple(rejections),
        category_totals=MappingProxyType(categories),
        financing_eligible=is_financing_eligible(score, financing_threshold),
        baseline=Decimal(str(baseline_tonnes)),
    )


# ═══════════════════════════════════════════════════════════════
# CONSOLE
# ═══════════════════════════════════════════════════════════════

def print_report(report: MetricsReport) -> None:
    """Print the scope breakdown, score and rejections."""
    table = RichTable(title="Carbon Metrics")
    table.add_column("Scope", style="bold")
    table.add_column("tCO2e", justify="right", style="bold")

    for scope in SCOPES:
        table.add_row(SCOPE_LABELS[scope], f"{report.scope_total(scope):,.2f}")
    table.add_section()
    table.add_row("[bold]TOTAL[/bold]", f"[bold]{report.total_emissions:,.2f}[/bold]")
    console.print(table)

    if report.category_totals:
        cat_table = RichTable(title="By Category")
        cat_table.add_column("Category", style="bold")
        cat_table.add_column("tCO2e", justify="right")
        for category, tonnes in report.category_totals.items():
            cat_table.add_row(category or "[dim](none)[/dim]", f"{tonnes:,.2f}")
        console.print(cat_table)

    colour = "green" if report.score > 75 else "yellow" if report.score >= 50 else "red"
    eligibility = ("[green]eligible[/green]" if report.financing_eligible
                   else "[yellow]not eligible[/yellow]")
    console.print(Panel.fit(
        f"Sustainability score: [bold {colour}]{report.score}/100[/bold {colour}]\n"
        f"Baseline: {report.baseline} tCO2e\n"
        f"Green financing: {eligibility}",
        border_style=colour,
    ))

    if report.unclassified_count:
        console.print(f"  [yellow]{report.unclassified_count} transaction(s) used the default factor[/yellow]")

    if report.rejections:
        console.print(f"  [yellow]Rejected transactions: {len(report.rejections)}[/yellow]")
        for r in report.rejections:
            console.print(f"    [dim]{r.transaction_id or '<no id>'}: {r.reason}[/dim]")


# ═══════════════════════════════════════════════════════════════
# EXPORT
# ═══════════════════════════════════════════════════════════════

def export_json(report: MetricsReport, file_path: str) -> str:
    """Write report.to_dict() as JSON. Returns the path."""
    directory = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(directory, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
    return file_path


def _style_row(cells, size: int = 9, bold: bool = False) -> None:
    for cell in cells:
        for paragraph in cell.paragraphs:
            for run in paragraph.runs:
                run.font.size = Pt(size)
                run.font.bold = bold


def export_docx(report: MetricsReport, file_path: str, company_name: str = None) -> str:
    """
    Write a Word carbon report: summary, scope breakdown, ledger, rejections.
    Returns the path.
    """
    doc = Document()

    style = doc.styles["Normal"]
    style.font.name = "Arial"
    style.font.size = Pt(11)

    # ─── Title ───
    title = doc.add_paragraph()
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = title.add_run("Carbon Footprint Report")
    run.font.size = Pt(24)
    run.font.color.rgb = RGBColor(0, 51, 102)
    run.bold = True

    info = doc.add_paragraph()
    info.alignment = WD_ALIGN_PARAGRAPH.CENTER
    label = f"Company: {company_name}  |  " if company_name else ""
    run = info.add_run(f"{label}Generated: {date.today().isoformat()}")
    run.font.size = Pt(11)
    run.font.color.rgb = RGBColor(100, 100, 100)

    draft = doc.add_paragraph()
    draft.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = draft.add_run("DRAFT — REQUIRES HUMAN REVIEW")
    run.font.size = Pt(12)
    run.font.color.rgb = RGBColor(198, 40, 40)
    run.bold = True

    # ─── Summary ───
    doc.add_heading("1. Summary", level=1)

    p = doc.add_paragraph()
    p.add_run("Total Estimated Emissions: ").bold = True
    p.add_run(f"{report.total_emissions:,.2f} tCO2e "
              f"(Scope 1: {report.scope_1_total:,.2f}, "
              f"Scope 2: {report.scope_2_total:,.2f}, "
              f"Scope 3: {report.scope_3_total:,.2f})")

    p = doc.add_paragraph()
    p.add_run("Sustainability Score: ").bold = True
    p.add_run(f"{report.score}/100 against a baseline of {report.baseline} tCO2e")

    p = doc.add_paragraph()
    p.add_run("Green Financing: ").bold = True
    p.add_run("eligible" if report.financing_eligible else "not eligible")

    # ─── Scopes ───
    doc.add_heading("2. Emissions by Scope", level=1)
    table = doc.add_table(rows=1, cols=2)
    table.style = "Light Grid Accent 1"
    table.alignment = WD_TABLE_ALIGNMENT.CENTER
    header = table.rows[0].cells
    header[0].text = "Scope"
    header[1].text = "tCO2e"
    _style_row(header, bold=True)

    for scope in SCOPES:
        row = table.add_row().cells
        row[0].text = SCOPE_LABELS[scope]
        row[1].text = f"{report.scope_total(scope):,.2f}"
        _style_row(row)

    # ─── Ledger ───
    doc.add_heading("3. Transaction Ledger", level=1)
    doc.add_paragraph(
        "Emissions are estimated from spend: amount x category emission factor. "
        "Rows marked 'default' had no registered category and were estimated "
        "with the fallback factor."
    )

    ledger = doc.add_table(rows=1, cols=7)
    ledger.style = "Light Grid Accent 1"
    header = ledger.rows[0].cells
    for cell, text in zip(header, ["ID", "Date", "Vendor", "Category", "Scope", "Amount", "kg CO2e"]):
        cell.text = text
    _style_row(header, bold=True)

    for e in report.transactions:
        tx = e.transaction
        row = ledger.add_row().cells
        row[0].text = tx.id
        row[1].text = tx.date.isoformat()
        row[2].text = tx.vendor
        row[3].text = f"{tx.category} (default)" if e.default_factor_used else tx.category
        row[4].text = str(tx.scope)
        row[5].text = f"{tx.amount:,.2f}"
        row[6].text = f"{e.emissions:,.2f}"
        _style_row(row)

    # ─── Rejections ───
    if report.rejections:
        doc.add_heading("4. Rejected Transactions", level=1)
        for r in report.rejections:
            doc.add_paragraph(f"{r.transaction_id or '<no id>'}: {r.reason}", style="List Bullet")

    footer = doc.add_paragraph()
    footer.add_run(
        f"Generated: {datetime.now().isoformat()}. Spend-based estimates should be "
        f"validated against actual consumption data for auditable reporting."
    ).italic = True

    directory = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(directory, exist_ok=True)
    doc.save(file_path)
    return file_path


def generate_report(report: MetricsReport, output_dir: str, company_name: str = None) -> str:
    """Write the Word report into output_dir with a dated file name. Returns the path."""
    safe_name = (company_name or "company").replace(" ", "_").replace("/", "-")
    filename = f"Carbon_Report_{safe_name}_{date.today().isoformat()}.docx"
    filepath = export_docx(report, os.path.join(output_dir, filename), company_name)
    console.print(f"\n  [bold green]Report generated: {filepath}[/bold green]")
    return filepath

"""
Agent 1: Batch Ingestion + Validation
======================================
Turns a transaction batch (CSV export, JSON file or in-memory records) into
validated Transaction records.

Handles:
- Encoding detection (UTF-8 / Windows-1252)
- Semicolon, comma or tab delimiters
- Column name variants (amount / amount_sar / Betrag, ...)
- Decimal comma (1.234,56 -> 1234.56)
- DD.MM.YYYY dates
- Per-row rejection: a bad row never aborts the batch
"""
import json
import os
import re

import chardet
import pandas as pd
from rich.console import Console

from carbon.config import RefundPolicy
from carbon.errors import IngestionError, ValidationError
from carbon.models import Rejection, Transaction

console = Console()

# ─── Field Mapping ───
# Bank / ERP exports name the same field differently; first match wins
FIELD_VARIANTS = {
    "id": ["id", "transaction_id", "TransactionID", "tx_id", "Reference", "Belegnummer"],
    "date": ["date", "booking_date", "Buchungsdatum", "Datum", "value_date"],
    "vendor": ["vendor", "merchant", "counterparty", "payee", "Lieferant"],
    "category": ["category", "spend_category", "Kategorie"],
    "amount": ["amount", "amount_sar", "Betrag", "value"],
    "scope": ["scope", "ghg_scope", "Scope"],
}

REQUIRED_FIELDS = ("id", "date", "amount", "scope")


def detect_encoding(file_path: str) -> str:
    """Detect file encoding. Try UTF-8 first, fall back to Windows-1252."""
    with open(file_path, "rb") as f:
        raw = f.read(10000)

    try:
        raw.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass

    result = chardet.detect(raw)
    detected = result.get("encoding") or "windows-1252"

    if detected.lower() in ("iso-8859-1", "latin-1", "ascii"):
        return "windows-1252"
    return detected


def normalize_date(date_str) -> str:
    """Convert DD.MM.YYYY (or DD.MM.YY) to ISO YYYY-MM-DD. Anything else passes through."""
    s = str(date_str or "").strip()

    match = re.fullmatch(r"(\d{1,2})\.(\d{1,2})\.(\d{4})", s)
    if match:
        day, month, year = match.groups()
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"

    match = re.fullmatch(r"(\d{1,2})\.(\d{1,2})\.(\d{2})", s)
    if match:
        day, month, year = match.groups()
        full_year = f"20{year}" if int(year) < 50 else f"19{year}"
        return f"{full_year}-{month.zfill(2)}-{day.zfill(2)}"

    return s


def normalize_number(num_str) -> str:
    """
    Convert decimal-comma numbers (1.234,56) to plain notation (1234.56).

    Returns a string; validation decides whether it is numeric, so a
    malformed value is rejected with its original text instead of becoming 0.
    """
    s = str(num_str or "").strip().replace(" ", "").replace("\u00a0", "")
    if "," in s and "." in s:
        # Whichever separator comes last is the decimal mark
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".")
    return s


def find_column(df_columns: list, field_variants: list) -> str:
    """Find matching column name from a list of variants."""
    df_cols_lower = {c.lower().strip(): c for c in df_columns}
    for variant in field_variants:
        if variant.lower() in df_cols_lower:
            return df_cols_lower[variant.lower()]
    return None


def read_csv(file_path: str) -> pd.DataFrame:
    """Read a CSV export, trying the usual delimiters."""
    encoding = detect_encoding(file_path)
    for sep in [";", ",", "\t"]:
        try:
            df = pd.read_csv(file_path, encoding=encoding, sep=sep, dtype=str, keep_default_na=False)
        except (pd.errors.ParserError, UnicodeDecodeError, ValueError):
            continue
        if len(df.columns) > 2:
            return df
    raise IngestionError(f"Could not parse {os.path.basename(file_path)} with any common delimiter")


def records_from_dataframe(df: pd.DataFrame) -> list:
    """Map an export's columns onto transaction records, one per row, in file order."""
    cols = df.columns.tolist()
    column_for = {name: find_column(cols, variants) for name, variants in FIELD_VARIANTS.items()}

    missing = [name for name in REQUIRED_FIELDS if not column_for[name]]
    if missing:
        raise IngestionError(f"Could not find column(s): {', '.join(missing)}")

    records = []
    for _, row in df.iterrows():
        record = {name: (row[col] if col else None) for name, col in column_for.items()}
        record["amount"] = normalize_number(record["amount"])
        if record["date"] is not None:
            record["date"] = normalize_date(record["date"])
        records.append(record)
    return records


def load_json(file_path: str) -> list:
    try:
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise IngestionError(f"Could not read {os.path.basename(file_path)}: {e}")

    if isinstance(data, dict):
        data = data.get("transactions")
    if not isinstance(data, list):
        raise IngestionError("JSON batch must be a list or an object with a 'transactions' list")
    return data


def load_batch(file_path: str) -> list:
    """Read a .csv or .json batch into raw records (not yet validated)."""
    if not os.path.exists(file_path):
        raise IngestionError(f"Batch file not found: {file_path}")

    if file_path.lower().endswith(".json"):
        return load_json(file_path)
    return records_from_dataframe(read_csv(file_path))


def validate_record(record, refund_policy: RefundPolicy = RefundPolicy.NET) -> Transaction:
    """Build one Transaction, applying the refund policy. Raises ValidationError."""
    if isinstance(record, Transaction):
        tx = record
    elif isinstance(record, dict):
        tx = Transaction.from_dict(record)
    else:
        raise ValidationError(None, f"expected a mapping, got {type(record).__name__}")

    if tx.amount < 0 and refund_policy == RefundPolicy.EXCLUDE:
        raise ValidationError(tx.id, "negative amount (refund) excluded by refund policy")
    return tx


def validate_batch(records, refund_policy: RefundPolicy = RefundPolicy.NET) -> tuple:
    """
    Validate a batch in order.

    Returns:
        (transactions, rejections): the valid Transactions in ingestion order,
        and one Rejection per refused record.
    """
    transactions = []
    rejections = []
    seen_ids = set()

    for record in records:
        try:
            tx = validate_record(record, refund_policy)
            if tx.id in seen_ids:
                raise ValidationError(tx.id, "duplicate transaction id in batch")
        except ValidationError as e:
            rejections.append(Rejection(e.transaction_id, e.reason))
            continue

        seen_ids.add(tx.id)
        transactions.append(tx)

    return transactions, rejections


def ingest_file(file_path: str) -> list:
    """
    Main ingestion function for the CLI. Reads a batch file and prints a
    short summary. Validation happens in the engine.
    """
    file_name = os.path.basename(file_path)

    console.print(f"\n[bold blue]Agent 1: Batch Ingestion[/bold blue]")
    console.print(f"  File: {file_name}")

    records = load_batch(file_path)
    if not file_path.lower().endswith(".json"):
        console.print(f"  Encoding: {detect_encoding(file_path)}")
    console.print(f"  [green]Rows read: {len(records)}[/green]")
    return records

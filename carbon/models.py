"""
Engine records
===============
Typed, immutable records that flow through the pipeline:

    Transaction -> EnrichedTransaction -> ScopeTotals -> MetricsReport

Money and mass are Decimal end to end. Floats only appear when a report is
serialized for JSON consumers.
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from .errors import ValidationError

# GHG Protocol scopes: 1 = direct, 2 = purchased energy, 3 = value chain
SCOPES = (1, 2, 3)

SCOPE_LABELS = {
    1: "Scope 1 (Direct Fuels)",
    2: "Scope 2 (Electricity)",
    3: "Scope 3 (Supply Chain)",
}

ZERO = Decimal("0")
KG_PER_TONNE = Decimal("1000")

# Largest accepted transaction amount, in currency units
MAX_AMOUNT = Decimal("1e15")


def to_decimal(value, transaction_id=None, field_name: str = "amount") -> Decimal:
    """Convert a number or numeric string to a finite Decimal, or raise ValidationError."""
    if value is None or isinstance(value, bool):
        raise ValidationError(transaction_id, f"{field_name} is missing or not a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValidationError(transaction_id, f"{field_name} is not a finite number")
        result = Decimal(str(value))
    elif isinstance(value, int):
        result = Decimal(value)
    else:
        text = str(value).strip()
        if not text:
            raise ValidationError(transaction_id, f"{field_name} is empty")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValidationError(transaction_id, f"{field_name} {text!r} is not numeric")
    if not result.is_finite():
        raise ValidationError(transaction_id, f"{field_name} is not a finite number")
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(transaction_id, f"{field_name} exceeds {MAX_AMOUNT:,.0f}")
    return result


def to_date(value, transaction_id=None) -> date:
    """Accept a date, a datetime or an ISO-8601 string (YYYY-MM-DD...)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or not str(value).strip():
        raise ValidationError(transaction_id, "date is missing")
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise ValidationError(transaction_id, f"date {text!r} is not ISO-8601")


def to_scope(value, transaction_id=None) -> int:
    if isinstance(value, bool):
        raise ValidationError(transaction_id, f"scope {value!r} is not one of 1, 2, 3")
    try:
        if isinstance(value, (float, Decimal)):
            # JSON numbers: 2.0 is scope 2, 2.5 is not a scope
            scope = int(value)
            if scope != value:
                raise ValueError(value)
        else:
            scope = int(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(transaction_id, f"scope {value!r} is not one of 1, 2, 3")
    if scope not in SCOPES:
        raise ValidationError(transaction_id, f"scope {scope} is not one of 1, 2, 3")
    return scope


@dataclass(frozen=True)
class Transaction:
    """One categorized spend line. Build it with from_dict() to get validation."""
    id: str
    date: date
    vendor: str
    category: str
    amount: Decimal
    scope: int

    @classmethod
    def from_dict(cls, record: dict) -> "Transaction":
        """
        Validate a raw record and build a Transaction.

        `amount_sar` is accepted as an alias of `amount`.

        Raises:
            ValidationError: on a missing id, bad date, non-numeric amount or
                a scope outside 1-3.
        """
        raw_id = record.get("id")
        tx_id = str(raw_id).strip() if raw_id is not None else ""
        if not tx_id:
            raise ValidationError(None, "transaction id is missing")

        amount_raw = record.get("amount")
        if amount_raw is None:
            amount_raw = record.get("amount_sar")

        return cls(
            id=tx_id,
            date=to_date(record.get("date"), tx_id),
            vendor=str(record.get("vendor") or "").strip(),
            category=str(record.get("category") or "").strip().lower(),
            amount=to_decimal(amount_raw, tx_id),
            scope=to_scope(record.get("scope"), tx_id),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "vendor": self.vendor,
            "category": self.category,
            "amount": float(self.amount),
            "scope": self.scope,
        }


@dataclass(frozen=True)
class EnrichedTransaction:
    """A Transaction plus its computed emissions in kg CO2e."""
    transaction: Transaction
    emissions: Decimal
    factor: Decimal
    default_factor_used: bool = False

    # Pass-throughs so callers can treat this like the Transaction it wraps
    @property
    def id(self) -> str:
        return self.transaction.id

    @property
    def scope(self) -> int:
        return self.transaction.scope

    @property
    def category(self) -> str:
        return self.transaction.category

    @property
    def amount(self) -> Decimal:
        return self.transaction.amount

    def to_dict(self) -> dict:
        data = self.transaction.to_dict()
        data["emissions"] = float(self.emissions)
        data["factor"] = float(self.factor)
        data["defaultFactorUsed"] = self.default_factor_used
        return data


@dataclass(frozen=True)
class ScopeTotals:
    """Unrounded kg CO2e per scope. The grand total is always the exact sum."""
    scope_1: Decimal = ZERO
    scope_2: Decimal = ZERO
    scope_3: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.scope_1 + self.scope_2 + self.scope_3

    def for_scope(self, scope: int) -> Decimal:
        if scope not in SCOPES:
            raise ValidationError(None, f"scope {scope} is not one of 1, 2, 3")
        return getattr(self, f"scope_{scope}")

    def as_dict(self) -> dict:
        return {scope: self.for_scope(scope) for scope in SCOPES}


@dataclass(frozen=True)
class Rejection:
    transaction_id: Optional[str]
    reason: str

    def to_dict(self) -> dict:
        return {"id": self.transaction_id, "reason": self.reason}


@dataclass(frozen=True)
class MetricsReport:
    """
    The only object handed to exporters, the CLI and the HTTP API.

    Emission figures are tonnes CO2e rounded to 2 decimals. Nothing in here
    points back at the factor table or the unrounded scope sums.
    """
    total_emissions: Decimal
    scope_1_total: Decimal
    scope_2_total: Decimal
    scope_3_total: Decimal
    score: int
    transactions: tuple = ()
    rejections: tuple = ()
    category_totals: dict = field(default_factory=dict)
    financing_eligible: bool = False
    baseline: Decimal = ZERO

    @property
    def rejected_ids(self) -> list:
        return [r.transaction_id for r in self.rejections]

    @property
    def unclassified_count(self) -> int:
        return sum(1 for tx in self.transactions if tx.default_factor_used)

    def scope_total(self, scope: int) -> Decimal:
        return {1: self.scope_1_total, 2: self.scope_2_total, 3: self.scope_3_total}[scope]

    def to_dict(self) -> dict:
        return {
            "totalEmissions": float(self.total_emissions),
            "score": self.score,
            "scope1Total": float(self.scope_1_total),
            "scope2Total": float(self.scope_2_total),
            "scope3Total": float(self.scope_3_total),
            "transactions": [tx.to_dict() for tx in self.transactions],
            "rejectedIds": self.rejected_ids,
            "rejections": [r.to_dict() for r in self.rejections],
            "categoryTotals": {k: float(v) for k, v in self.category_totals.items()},
            "financingEligible": self.financing_eligible,
            "unclassifiedCount": self.unclassified_count,
            "baseline": float(self.baseline),
        }

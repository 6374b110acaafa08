from datetime import date
from decimal import Decimal

import pytest

from carbon.errors import ValidationError
from carbon.models import MAX_AMOUNT, ScopeTotals, Transaction


def test_from_dict_builds_typed_record():
    tx = Transaction.from_dict({
        "id": "TX101", "date": "2024-10-25", "vendor": " Saudi Electricity Company ",
        "category": "Electricity", "amount_sar": 12500, "scope": "2",
    })

    assert tx.id == "TX101"
    assert tx.date == date(2024, 10, 25)
    assert tx.vendor == "Saudi Electricity Company"
    assert tx.category == "electricity"
    assert tx.amount == Decimal("12500")
    assert tx.scope == 2


def test_float_amount_keeps_its_decimal_value():
    tx = Transaction.from_dict({"id": "a", "date": "2024-01-01", "category": "fuel", "amount": 0.1, "scope": 1})
    assert tx.amount == Decimal("0.1")


@pytest.mark.parametrize("scope,expected", [(2.0, 2), (Decimal("3"), 3), (Decimal("1.00"), 1)])
def test_whole_number_scope_is_accepted(scope, expected):
    tx = Transaction.from_dict({"id": "a", "date": "2024-01-01", "amount": 1, "scope": scope})
    assert tx.scope == expected


@pytest.mark.parametrize("scope", [0, 4, "x", None, True, -1, 2.5, Decimal("1.5"), float("nan"), float("inf")])
def test_scope_outside_range_is_rejected(scope):
    with pytest.raises(ValidationError) as exc:
        Transaction.from_dict({"id": "a", "date": "2024-01-01", "amount": 1, "scope": scope})
    assert exc.value.transaction_id == "a"


@pytest.mark.parametrize("amount", [None, "", "abc", float("nan"), float("inf"), "NaN", False, "1e30", -(10 ** 16)])
def test_malformed_amount_is_rejected(amount):
    with pytest.raises(ValidationError):
        Transaction.from_dict({"id": "a", "date": "2024-01-01", "amount": amount, "scope": 1})


def test_missing_id_is_rejected():
    with pytest.raises(ValidationError) as exc:
        Transaction.from_dict({"date": "2024-01-01", "amount": 1, "scope": 1})
    assert exc.value.transaction_id is None


def test_bad_date_is_rejected():
    with pytest.raises(ValidationError):
        Transaction.from_dict({"id": "a", "date": "25/10/2024", "amount": 1, "scope": 1})


def test_transactions_are_immutable():
    tx = Transaction.from_dict({"id": "a", "date": "2024-01-01", "amount": 1, "scope": 1})
    with pytest.raises(AttributeError):
        tx.amount = Decimal("2")


def test_scope_totals_total_is_sum_of_scopes():
    totals = ScopeTotals(Decimal("1.1"), Decimal("2.2"), Decimal("3.3"))
    assert totals.total == Decimal("6.6")
    assert totals.as_dict() == {1: Decimal("1.1"), 2: Decimal("2.2"), 3: Decimal("3.3")}


def test_scope_totals_rejects_unknown_scope():
    with pytest.raises(ValidationError):
        ScopeTotals().for_scope(4)


def test_amount_at_the_bound_is_accepted():
    tx = Transaction.from_dict({"id": "a", "date": "2024-01-01", "amount": MAX_AMOUNT, "scope": 1})
    assert tx.amount == Decimal("1e15")

"""Record builders shared by the tests."""

from datetime import date
from decimal import Decimal

from bankrec.domain.entities import BankTransaction, GLEntry


def make_bank(
    amount,
    description="",
    check_number="",
    txn_date=date(2024, 1, 15),
    memo="",
    is_debit=True,
):
    """Build a bank transaction with the credit/debit split derived from direction."""
    value = Decimal(str(amount))
    return BankTransaction(
        date=txn_date,
        description=description,
        memo=memo,
        amount_credit=Decimal("0.00") if is_debit else value,
        amount_debit=value if is_debit else Decimal("0.00"),
        check_number=check_number,
        amount=value,
        is_debit=is_debit,
    )


def make_gl(amount, account_number="1000", description="", entry_date=None, **kwargs):
    """Build a debit GL entry."""
    value = Decimal(str(amount))
    return GLEntry(
        account_number=account_number,
        description=description,
        debit=value,
        amount=value,
        is_debit=True,
        date=entry_date,
        **kwargs,
    )

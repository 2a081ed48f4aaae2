"""Balance arithmetic for income/expense transactions.

Transaction amounts are stored as positive magnitudes; the direction of the
money movement comes from the transaction type. These helpers turn an
(amount, type) pair into its effect on an account balance, in both
directions:

    apply(balance, amount, type)    -> balance after the transaction
    reverse(balance, amount, type)  -> balance with the transaction undone

They are pure and exact (``Decimal``), so for every valid input
``reverse(apply(b, a, t), a, t) == b`` and ``apply(reverse(b, a, t), a, t) == b``.
"""

import enum
from decimal import Decimal, InvalidOperation

from finance_tracker.core.exceptions import InvalidAmountError, InvalidTransactionTypeError

# Amounts are stored as NUMERIC(12, 2)
CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("9999999999.99")


class TransactionType(str, enum.Enum):
    EXPENSE = "expense"
    INCOME = "income"


def parse_type(value: object) -> TransactionType:
    """Return the transaction type for ``value`` or raise.

    There is no fallback: an unknown, empty or missing type (``transfer``
    included) is rejected rather than booked as an expense.
    """
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(value)
    except ValueError:
        raise InvalidTransactionTypeError(value) from None


def check_amount(amount: object) -> Decimal:
    """Return ``amount`` as a non-negative ``Decimal`` with two decimal places, or raise.

    Values the amount column cannot hold exactly (sub-cent fractions, more
    than ten integer digits) are rejected rather than rounded, so the
    stored amount and the balance delta are always the same number.
    """
    if isinstance(amount, bool):
        raise InvalidAmountError()
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError() from None
    if not value.is_finite() or value < 0:
        raise InvalidAmountError("Amount must be a non-negative magnitude; use the type for direction")
    if value > MAX_AMOUNT:
        raise InvalidAmountError(f"Amount must not exceed {MAX_AMOUNT}")
    if value != value.quantize(CENT):
        raise InvalidAmountError("Amount must not have more than two decimal places")
    return value.quantize(CENT)


def signed_effect(amount: object, txn_type: object) -> Decimal:
    """Signed change a transaction makes to its account balance."""
    value = check_amount(amount)
    if parse_type(txn_type) is TransactionType.INCOME:
        return value
    return -value


def apply(balance: Decimal, amount: object, txn_type: object) -> Decimal:
    return balance + signed_effect(amount, txn_type)


def reverse(balance: Decimal, amount: object, txn_type: object) -> Decimal:
    return balance - signed_effect(amount, txn_type)

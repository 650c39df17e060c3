from typing import Dict, Iterable, List, Mapping, Optional

from bookkeeper.domain.models import (
    DIRECTORS,
    PAYMENT_TYPES,
    BalanceEntry,
    BalanceSnapshot,
    Expense,
    Income,
)


def sum_income_by_payment_type(incomes: Iterable[Income], payment_type: str) -> float:
    total = 0.0
    for income in incomes:
        for method in income.payment_methods:
            if method.type == payment_type:
                total += method.amount
    return total


def sum_expenses_by_category(expenses: Iterable[Expense], category: str) -> float:
    total = 0.0
    for expense in expenses:
        if expense.category == category:
            total += expense.amount
    return total


def _merge(calculated: float, override: Optional[float]) -> BalanceEntry:
    return BalanceEntry(
        calculated=calculated,
        override=override,
        final=override if override is not None else calculated,
    )


def compute_balances(
    incomes: List[Income],
    expenses: List[Expense],
    balance_overrides: Mapping[str, float],
    director_overrides: Mapping[str, float],
    payment_types: List[str] = PAYMENT_TYPES,
    directors: List[str] = DIRECTORS,
) -> BalanceSnapshot:
    """
    Build the calculated-vs-final snapshot for every payment type and director.

    Only names in ``payment_types`` are reported: income methods or expense
    categories using any other label do not show up anywhere in the result.
    Director loans have no contributing records, so their calculated value
    is always 0 and the final value is the override when one is set.
    """
    balances: Dict[str, BalanceEntry] = {}
    for payment_type in payment_types:
        calculated = sum_income_by_payment_type(
            incomes, payment_type
        ) - sum_expenses_by_category(expenses, payment_type)
        balances[payment_type] = _merge(
            calculated, balance_overrides.get(payment_type)
        )

    director_loans: Dict[str, BalanceEntry] = {}
    for director in directors:
        director_loans[director] = _merge(0.0, director_overrides.get(director))

    return BalanceSnapshot(balances=balances, director_loans=director_loans)

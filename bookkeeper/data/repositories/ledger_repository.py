from dataclasses import asdict
from typing import Dict, List, Optional

from bookkeeper.data.repositories.record_store import KVCollection, RecordStore
from bookkeeper.domain.models import (
    BalanceOverride,
    DirectorLoanOverride,
    Expense,
    Income,
)


def get_expense(store: RecordStore, expense_id: str) -> Optional[Expense]:
    data = store.expenses.get(expense_id)
    return Expense.from_dict(data) if data else None


def get_all_expenses(store: RecordStore) -> List[Expense]:
    return [Expense.from_dict(data) for data in store.expenses.get_all()]


def save_expense(store: RecordStore, expense: Expense) -> Expense:
    store.expenses.set(expense.id, expense.to_dict())
    return expense


def delete_expense(store: RecordStore, expense_id: str) -> bool:
    return store.expenses.remove(expense_id)


def get_income(store: RecordStore, income_id: str) -> Optional[Income]:
    data = store.income.get(income_id)
    return Income.from_dict(data) if data else None


def get_all_income(store: RecordStore) -> List[Income]:
    return [Income.from_dict(data) for data in store.income.get_all()]


def save_income(store: RecordStore, income: Income) -> Income:
    store.income.set(income.id, income.to_dict())
    return income


def delete_income(store: RecordStore, income_id: str) -> bool:
    return store.income.remove(income_id)


def _override_amounts(collection: KVCollection) -> Dict[str, float]:
    amounts = {}
    for data in collection.get_all():
        key = data.get("payment_type", data.get("director"))
        amounts[key] = float(data["amount"])
    return amounts


def get_balance_override_amounts(store: RecordStore) -> Dict[str, float]:
    return _override_amounts(store.balance_overrides)


def get_director_override_amounts(store: RecordStore) -> Dict[str, float]:
    return _override_amounts(store.director_loan_overrides)


def save_balance_override(store: RecordStore, override: BalanceOverride) -> None:
    store.balance_overrides.set(override.payment_type, asdict(override))


def save_director_override(store: RecordStore, override: DirectorLoanOverride) -> None:
    store.director_loan_overrides.set(override.director, asdict(override))


def delete_balance_override(store: RecordStore, payment_type: str) -> bool:
    return store.balance_overrides.remove(payment_type)


def delete_director_override(store: RecordStore, director: str) -> bool:
    return store.director_loan_overrides.remove(director)

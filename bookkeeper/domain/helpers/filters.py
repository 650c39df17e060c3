from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, TypeVar, Union

from bookkeeper.domain.models import Expense, Income

Record = TypeVar("Record", Expense, Income)


@dataclass
class RecordFilters:
    """Optional, conjunctive filters shared by list, live list and export.

    ``category`` and ``reimbursed`` only apply to expenses, ``room`` only to
    income. Dates are compared as ISO strings, which sort lexicographically.
    """

    month: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    category: Optional[str] = None
    room: Optional[str] = None
    reimbursed: Optional[bool] = None


def matches(record: Union[Expense, Income], filters: RecordFilters) -> bool:
    if filters.month and not record.date.startswith(filters.month):
        return False
    if filters.date_from and record.date < filters.date_from:
        return False
    if filters.date_to and record.date > filters.date_to:
        return False
    if isinstance(record, Expense):
        if filters.category and record.category != filters.category:
            return False
        if filters.reimbursed is not None and record.is_reimbursed != filters.reimbursed:
            return False
    if isinstance(record, Income):
        if filters.room and record.room != filters.room:
            return False
    return True


def _created_key(record: Union[Expense, Income]) -> datetime:
    return datetime.fromisoformat(record.created_at)


def filter_and_sort(
    records: List[Record],
    filters: RecordFilters,
    user_id: Optional[str] = None,
) -> List[Record]:
    """Apply filters, restrict to ``user_id`` when given, newest first.

    ``sorted(reverse=True)`` keeps equal timestamps in scan order.
    """
    selected = [
        r
        for r in records
        if (user_id is None or r.user_id == user_id) and matches(r, filters)
    ]
    return sorted(selected, key=_created_key, reverse=True)

import logging
import math
import uuid
from typing import List, Optional, Tuple

from bookkeeper.data.repositories.ledger_repository import (
    delete_expense as repo_delete_expense,
)
from bookkeeper.data.repositories.ledger_repository import (
    get_all_expenses,
    get_expense,
    save_expense,
)
from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.clock import utcnow
from bookkeeper.domain.errors import NotFound, ValidationFailure
from bookkeeper.domain.helpers.csv_format import (
    expenses_to_csv,
    parse_expense_row,
    split_rows,
)
from bookkeeper.domain.helpers.filters import RecordFilters, filter_and_sort
from bookkeeper.domain.models import Expense, ImportResult, Session
from bookkeeper.domain.services.authorization import (
    Operation,
    authorize,
    authorize_owner,
)

logger = logging.getLogger(__name__)


def _validate_amounts(amount: float, vat: float) -> None:
    if not (math.isfinite(amount) and math.isfinite(vat)):
        raise ValidationFailure("Amounts must be finite numbers")
    if amount < 0:
        raise ValidationFailure("Amount must not be negative")
    if vat < 0:
        raise ValidationFailure("VAT must not be negative")


def _require_expense(store: RecordStore, expense_id: str) -> Expense:
    expense = get_expense(store, expense_id)
    if expense is None:
        raise NotFound(f"Expense {expense_id} not found")
    return expense


def create_expense(
    store: RecordStore,
    session: Optional[Session],
    date: str,
    amount: float,
    vat: float,
    category: str,
    purchaser: str,
    company: str = "",
    receipt_path: Optional[str] = None,
) -> Expense:
    caller = authorize(Operation.CREATE_EXPENSE, session)
    if not date:
        raise ValidationFailure("Date is required")
    _validate_amounts(amount, vat)
    expense = Expense(
        id=str(uuid.uuid4()),
        user_id=caller.user_id,
        username=caller.username,
        date=date,
        amount=amount,
        vat=vat,
        category=category,
        purchaser=purchaser,
        company=company,
        receipt_path=receipt_path,
        is_reimbursed=False,
        created_at=utcnow().isoformat(),
    )
    return save_expense(store, expense)


def list_expenses(
    store: RecordStore, session: Optional[Session], filters: RecordFilters
) -> List[Expense]:
    caller = authorize(Operation.LIST_EXPENSES, session)
    user_id = None if caller.is_admin else caller.user_id
    return filter_and_sort(get_all_expenses(store), filters, user_id=user_id)


def live_expenses(
    store: RecordStore,
    session: Optional[Session],
    filters: RecordFilters,
    since_version: Optional[int] = None,
) -> Tuple[int, Optional[List[Expense]]]:
    """
    Poll endpoint for live tables.

    Returns the current change counter of the expenses collection and, when
    it differs from ``since_version`` (or no version was given), the freshly
    recomputed list. ``None`` means nothing changed since the last poll.
    """
    authorize(Operation.LIST_EXPENSES, session)
    version = store.expenses.version()
    if since_version is not None and since_version == version:
        return version, None
    return version, list_expenses(store, session, filters)


def update_expense(
    store: RecordStore,
    session: Optional[Session],
    expense_id: str,
    date: str,
    amount: float,
    vat: float,
    category: str,
    purchaser: str,
    company: str = "",
    receipt_path: Optional[str] = None,
) -> Expense:
    caller = authorize(Operation.UPDATE_EXPENSE, session)
    expense = _require_expense(store, expense_id)
    authorize_owner(caller, expense.user_id)
    _validate_amounts(amount, vat)
    expense.date = date
    expense.amount = amount
    expense.vat = vat
    expense.category = category
    expense.purchaser = purchaser
    expense.company = company
    if receipt_path is not None:
        expense.receipt_path = receipt_path
    return save_expense(store, expense)


def mark_reimbursed(
    store: RecordStore, session: Optional[Session], expense_id: str, is_reimbursed: bool
) -> Expense:
    authorize(Operation.MARK_REIMBURSED, session)
    expense = _require_expense(store, expense_id)
    expense.is_reimbursed = is_reimbursed
    return save_expense(store, expense)


def delete_expense(store: RecordStore, session: Optional[Session], expense_id: str) -> None:
    caller = authorize(Operation.DELETE_EXPENSE, session)
    if not repo_delete_expense(store, expense_id):
        raise NotFound(f"Expense {expense_id} not found")
    logger.info("%s deleted expense %s", caller.username, expense_id)


def list_categories(store: RecordStore, session: Optional[Session]) -> List[str]:
    authorize(Operation.LIST_CATEGORIES, session)
    return sorted({e.category for e in get_all_expenses(store)})


def export_expenses_csv(
    store: RecordStore, session: Optional[Session], filters: RecordFilters
) -> str:
    authorize(Operation.EXPORT_EXPENSES, session)
    expenses = filter_and_sort(get_all_expenses(store), filters)
    return expenses_to_csv(expenses)


def import_expenses_csv(
    store: RecordStore, session: Optional[Session], text: str
) -> ImportResult:
    """Create one expense per CSV row; bad rows are counted, not raised."""
    caller = authorize(Operation.IMPORT_EXPENSES, session)
    result = ImportResult()
    for line_no, cells in enumerate(split_rows(text), start=1):
        try:
            row = parse_expense_row(cells)
            create_expense(
                store,
                caller,
                date=row.date,
                amount=row.amount,
                vat=row.vat,
                category=row.category,
                purchaser=row.purchaser,
                company=row.company,
            )
            result.succeeded += 1
        except ValidationFailure as e:
            logger.warning("Skipping expense row %s: %s", line_no, e)
            result.failed += 1
    logger.info(
        "%s imported expenses: %s ok, %s failed",
        caller.username,
        result.succeeded,
        result.failed,
    )
    return result

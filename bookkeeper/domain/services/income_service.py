import logging
import math
import uuid
from typing import List, Optional, Tuple

from bookkeeper.data.repositories.ledger_repository import (
    delete_income as repo_delete_income,
)
from bookkeeper.data.repositories.ledger_repository import (
    get_all_income,
    get_income,
    save_income,
)
from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.clock import utcnow
from bookkeeper.domain.errors import NotFound, ValidationFailure
from bookkeeper.domain.helpers.csv_format import (
    income_to_csv,
    parse_income_row,
    split_rows,
)
from bookkeeper.domain.helpers.filters import RecordFilters, filter_and_sort
from bookkeeper.domain.models import ROOMS, ImportResult, Income, PaymentMethod, Session
from bookkeeper.domain.services.authorization import Operation, authorize

logger = logging.getLogger(__name__)


def _validate_paid(paid: float) -> None:
    if not math.isfinite(paid):
        raise ValidationFailure("Paid must be a finite number")


def _validate_payment_methods(payment_methods: List[PaymentMethod]) -> None:
    for method in payment_methods:
        if not math.isfinite(method.amount):
            raise ValidationFailure(f"Invalid amount for payment method {method.type}")
        if method.amount < 0:
            raise ValidationFailure(f"Negative amount for payment method {method.type}")


def create_income(
    store: RecordStore,
    session: Optional[Session],
    date: str,
    room: str,
    name: str,
    bill: float,
    paid: float,
    payment_methods: List[PaymentMethod],
) -> Income:
    caller = authorize(Operation.CREATE_INCOME, session)
    if not date:
        raise ValidationFailure("Date is required")
    if room not in ROOMS:
        raise ValidationFailure(f"Unknown room: {room}")
    if not math.isfinite(bill):
        raise ValidationFailure("Bill must be a finite number")
    if bill < 0:
        raise ValidationFailure("Bill must not be negative")
    _validate_paid(paid)
    _validate_payment_methods(payment_methods)
    income = Income(
        id=str(uuid.uuid4()),
        user_id=caller.user_id,
        username=caller.username,
        date=date,
        room=room,
        name=name,
        bill=bill,
        paid=paid,
        outstanding=bill - paid,
        payment_methods=list(payment_methods),
        created_at=utcnow().isoformat(),
    )
    return save_income(store, income)


def list_income(
    store: RecordStore, session: Optional[Session], filters: RecordFilters
) -> List[Income]:
    caller = authorize(Operation.LIST_INCOME, session)
    user_id = None if caller.is_admin else caller.user_id
    return filter_and_sort(get_all_income(store), filters, user_id=user_id)


def live_income(
    store: RecordStore,
    session: Optional[Session],
    filters: RecordFilters,
    since_version: Optional[int] = None,
) -> Tuple[int, Optional[List[Income]]]:
    authorize(Operation.LIST_INCOME, session)
    version = store.income.version()
    if since_version is not None and since_version == version:
        return version, None
    return version, list_income(store, session, filters)


def update_income(
    store: RecordStore,
    session: Optional[Session],
    income_id: str,
    paid: float,
    payment_methods: List[PaymentMethod],
) -> Income:
    """Only paid and payment methods change; date, room, name and bill are fixed."""
    authorize(Operation.UPDATE_INCOME, session)
    income = get_income(store, income_id)
    if income is None:
        raise NotFound(f"Income {income_id} not found")
    _validate_paid(paid)
    _validate_payment_methods(payment_methods)
    income.paid = paid
    income.outstanding = income.bill - paid
    income.payment_methods = list(payment_methods)
    return save_income(store, income)


def delete_income(store: RecordStore, session: Optional[Session], income_id: str) -> None:
    caller = authorize(Operation.DELETE_INCOME, session)
    if not repo_delete_income(store, income_id):
        raise NotFound(f"Income {income_id} not found")
    logger.info("%s deleted income %s", caller.username, income_id)


def export_income_csv(
    store: RecordStore, session: Optional[Session], filters: RecordFilters
) -> str:
    authorize(Operation.EXPORT_INCOME, session)
    return income_to_csv(filter_and_sort(get_all_income(store), filters))


def import_income_csv(
    store: RecordStore, session: Optional[Session], text: str
) -> ImportResult:
    caller = authorize(Operation.IMPORT_INCOME, session)
    result = ImportResult()
    for line_no, cells in enumerate(split_rows(text), start=1):
        try:
            row = parse_income_row(cells)
            create_income(
                store,
                caller,
                date=row.date,
                room=row.room,
                name=row.name,
                bill=row.bill,
                paid=row.paid,
                payment_methods=row.payment_methods,
            )
            result.succeeded += 1
        except ValidationFailure as e:
            logger.warning("Skipping income row %s: %s", line_no, e)
            result.failed += 1
    logger.info(
        "%s imported income: %s ok, %s failed",
        caller.username,
        result.succeeded,
        result.failed,
    )
    return result

from enum import Enum
from typing import Optional

from bookkeeper.domain.errors import Unauthorized
from bookkeeper.domain.models import Session


class Operation(Enum):
    CREATE_EXPENSE = "expenses.create"
    LIST_EXPENSES = "expenses.list"
    UPDATE_EXPENSE = "expenses.update"
    MARK_REIMBURSED = "expenses.mark_reimbursed"
    DELETE_EXPENSE = "expenses.delete"
    EXPORT_EXPENSES = "expenses.export"
    IMPORT_EXPENSES = "expenses.import"
    LIST_CATEGORIES = "expenses.categories"
    CREATE_INCOME = "income.create"
    LIST_INCOME = "income.list"
    UPDATE_INCOME = "income.update"
    DELETE_INCOME = "income.delete"
    EXPORT_INCOME = "income.export"
    IMPORT_INCOME = "income.import"
    GET_BALANCES = "balances.get"
    SET_OVERRIDE = "balances.set_override"
    CLEAR_OVERRIDE = "balances.clear_override"
    CREATE_USER = "auth.create_user"
    LIST_USERS = "auth.list_users"
    UPLOAD_RECEIPT = "uploads.save"
    READ_RECEIPT = "uploads.read"


ADMIN_ONLY = frozenset(
    {
        Operation.MARK_REIMBURSED,
        Operation.DELETE_EXPENSE,
        Operation.EXPORT_EXPENSES,
        Operation.DELETE_INCOME,
        Operation.EXPORT_INCOME,
        Operation.SET_OVERRIDE,
        Operation.CLEAR_OVERRIDE,
        Operation.CREATE_USER,
        Operation.LIST_USERS,
    }
)


def is_allowed(operation: Operation, is_admin: bool) -> bool:
    if operation in ADMIN_ONLY:
        return is_admin
    return True


def authorize(operation: Operation, session: Optional[Session]) -> Session:
    """Return the session when it may run ``operation``, raise otherwise."""
    if session is None:
        raise Unauthorized()
    if not is_allowed(operation, session.is_admin):
        raise Unauthorized(
            f"Admin role required for {operation.value}", authenticated=True
        )
    return session


def authorize_owner(session: Session, owner_id: str) -> None:
    if not session.is_admin and session.user_id != owner_id:
        raise Unauthorized("Only the owner or an admin may edit this record", authenticated=True)

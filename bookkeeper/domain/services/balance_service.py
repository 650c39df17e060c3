import logging
import math
from enum import Enum
from typing import Optional

from bookkeeper.data.repositories.ledger_repository import (
    delete_balance_override,
    delete_director_override,
    get_all_expenses,
    get_all_income,
    get_balance_override_amounts,
    get_director_override_amounts,
    save_balance_override,
    save_director_override,
)
from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.clock import utcnow
from bookkeeper.domain.errors import ValidationFailure
from bookkeeper.domain.helpers.aggregation import compute_balances
from bookkeeper.domain.models import (
    BalanceOverride,
    BalanceSnapshot,
    DirectorLoanOverride,
    Session,
)
from bookkeeper.domain.services.authorization import Operation, authorize

logger = logging.getLogger(__name__)


class OverrideKind(Enum):
    BALANCE = "balance"
    DIRECTOR = "director"


def get_balances(store: RecordStore, session: Optional[Session]) -> BalanceSnapshot:
    authorize(Operation.GET_BALANCES, session)
    return compute_balances(
        incomes=get_all_income(store),
        expenses=get_all_expenses(store),
        balance_overrides=get_balance_override_amounts(store),
        director_overrides=get_director_override_amounts(store),
    )


def set_override(
    store: RecordStore,
    session: Optional[Session],
    kind: OverrideKind,
    key: str,
    amount: float,
) -> None:
    caller = authorize(Operation.SET_OVERRIDE, session)
    if not math.isfinite(amount):
        raise ValidationFailure("Override amount must be a finite number")
    updated_at = utcnow().isoformat()
    if kind is OverrideKind.BALANCE:
        save_balance_override(
            store,
            BalanceOverride(payment_type=key, amount=amount, updated_at=updated_at),
        )
    else:
        save_director_override(
            store,
            DirectorLoanOverride(director=key, amount=amount, updated_at=updated_at),
        )
    logger.info("%s set %s override %s=%s", caller.username, kind.value, key, amount)


def clear_override(
    store: RecordStore, session: Optional[Session], kind: OverrideKind, key: str
) -> None:
    caller = authorize(Operation.CLEAR_OVERRIDE, session)
    if kind is OverrideKind.BALANCE:
        removed = delete_balance_override(store, key)
    else:
        removed = delete_director_override(store, key)
    if removed:
        logger.info("%s cleared %s override %s", caller.username, kind.value, key)

from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.models import Session
from bookkeeper.domain.services.balance_service import (
    OverrideKind,
    clear_override,
    get_balances,
    set_override,
)
from bookkeeper.presentation.dependencies import get_current_session, get_store

router = APIRouter(prefix="/api/balances", tags=["balances"])


class BalanceEntryResponse(BaseModel):
    calculated: float
    override: Optional[float] = None
    final: float


class BalancesResponse(BaseModel):
    balances: Dict[str, BalanceEntryResponse]
    director_loans: Dict[str, BalanceEntryResponse]


class OverrideRequest(BaseModel):
    amount: float


@router.get("", response_model=BalancesResponse)
def read_balances(
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    return get_balances(store, session).to_dict()


@router.put("/overrides/{payment_type}")
def put_balance_override(
    payment_type: str,
    req: OverrideRequest,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    set_override(store, session, OverrideKind.BALANCE, payment_type, req.amount)
    return {"success": True}


@router.delete("/overrides/{payment_type}")
def delete_balance_override(
    payment_type: str,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    clear_override(store, session, OverrideKind.BALANCE, payment_type)
    return {"success": True}


@router.put("/director-loans/{director}")
def put_director_loan_override(
    director: str,
    req: OverrideRequest,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    set_override(store, session, OverrideKind.DIRECTOR, director, req.amount)
    return {"success": True}


@router.delete("/director-loans/{director}")
def delete_director_loan_override(
    director: str,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    clear_override(store, session, OverrideKind.DIRECTOR, director)
    return {"success": True}

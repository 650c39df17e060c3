import io
from datetime import date as _date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.helpers.filters import RecordFilters
from bookkeeper.domain.models import Expense, Session
from bookkeeper.domain.services.expense_service import (
    create_expense,
    delete_expense,
    export_expenses_csv,
    import_expenses_csv,
    list_categories,
    list_expenses,
    live_expenses,
    mark_reimbursed,
    update_expense,
)
from bookkeeper.presentation.dependencies import get_current_session, get_store


class ExpenseRequest(BaseModel):
    date: str
    amount: float
    vat: float = 0.0
    category: str
    purchaser: str
    company: str = ""
    receipt_path: Optional[str] = None


class ReimbursedRequest(BaseModel):
    is_reimbursed: bool


class ExpenseResponse(BaseModel):
    id: str
    user_id: str
    username: str
    date: str
    amount: float
    vat: float
    category: str
    purchaser: str
    company: str
    receipt_path: Optional[str] = None
    is_reimbursed: bool
    created_at: str

    @staticmethod
    def from_domain(e: Expense) -> "ExpenseResponse":
        return ExpenseResponse(**e.to_dict())


class LiveExpensesResponse(BaseModel):
    version: int
    changed: bool
    expenses: Optional[List[ExpenseResponse]] = None


class ImportResponse(BaseModel):
    succeeded: int
    failed: int


router = APIRouter(prefix="/api/expenses", tags=["expenses"])


def expense_filters(
    month: Optional[str] = Query(None, description="Calendar month prefix, e.g. 2024-05"),
    date_from: Optional[str] = Query(None, description="Inclusive ISO start date"),
    date_to: Optional[str] = Query(None, description="Inclusive ISO end date"),
    category: Optional[str] = None,
    reimbursed: Optional[bool] = None,
) -> RecordFilters:
    return RecordFilters(
        month=month,
        date_from=date_from,
        date_to=date_to,
        category=category,
        reimbursed=reimbursed,
    )


@router.post("", response_model=ExpenseResponse)
def submit_expense(
    req: ExpenseRequest,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    try:
        expense = create_expense(store, session, **req.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ExpenseResponse.from_domain(expense)


@router.get("", response_model=List[ExpenseResponse])
def get_expenses(
    filters: RecordFilters = Depends(expense_filters),
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    return [ExpenseResponse.from_domain(e) for e in list_expenses(store, session, filters)]


@router.get("/live", response_model=LiveExpensesResponse)
def poll_expenses(
    since: Optional[int] = Query(None, description="Version seen on the last poll"),
    filters: RecordFilters = Depends(expense_filters),
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    version, expenses = live_expenses(store, session, filters, since_version=since)
    if expenses is None:
        return LiveExpensesResponse(version=version, changed=False)
    return LiveExpensesResponse(
        version=version,
        changed=True,
        expenses=[ExpenseResponse.from_domain(e) for e in expenses],
    )


@router.get("/categories", response_model=List[str])
def get_categories(
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    return list_categories(store, session)


@router.get("/export")
def export_expenses(
    filters: RecordFilters = Depends(expense_filters),
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    output = io.StringIO(export_expenses_csv(store, session, filters))
    filename = f"expenses-{_date.today().isoformat()}.csv"
    return StreamingResponse(
        output,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/import", response_model=ImportResponse)
async def import_expenses(
    file: UploadFile = File(..., description="CSV in the export layout"),
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    try:
        text = (await file.read()).decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded")
    finally:
        await file.close()
    result = import_expenses_csv(store, session, text)
    return ImportResponse(succeeded=result.succeeded, failed=result.failed)


@router.put("/{expense_id}", response_model=ExpenseResponse)
def edit_expense(
    expense_id: str,
    req: ExpenseRequest,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    try:
        expense = update_expense(store, session, expense_id, **req.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ExpenseResponse.from_domain(expense)


@router.patch("/{expense_id}/reimbursed", response_model=ExpenseResponse)
def set_reimbursed(
    expense_id: str,
    req: ReimbursedRequest,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    expense = mark_reimbursed(store, session, expense_id, req.is_reimbursed)
    return ExpenseResponse.from_domain(expense)


@router.delete("/{expense_id}")
def remove_expense(
    expense_id: str,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    delete_expense(store, session, expense_id)
    return {"deleted": True}

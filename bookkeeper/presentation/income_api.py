import io
from datetime import date as _date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.helpers.filters import RecordFilters
from bookkeeper.domain.models import Income, PaymentMethod, Session
from bookkeeper.domain.services.income_service import (
    create_income,
    delete_income,
    export_income_csv,
    import_income_csv,
    list_income,
    live_income,
    update_income,
)
from bookkeeper.presentation.dependencies import get_current_session, get_store
from bookkeeper.presentation.expenses_api import ImportResponse


class PaymentMethodModel(BaseModel):
    type: str
    amount: float
    wechat_cny: Optional[str] = None

    def to_domain(self) -> PaymentMethod:
        return PaymentMethod(type=self.type, amount=self.amount, wechat_cny=self.wechat_cny)


class IncomeCreateRequest(BaseModel):
    date: str
    room: str
    name: str
    bill: float
    paid: float
    payment_methods: List[PaymentMethodModel] = Field(default_factory=list)


class IncomeUpdateRequest(BaseModel):
    paid: float
    payment_methods: List[PaymentMethodModel] = Field(default_factory=list)


class IncomeResponse(BaseModel):
    id: str
    user_id: str
    username: str
    date: str
    room: str
    name: str
    bill: float
    paid: float
    outstanding: float
    payment_methods: List[PaymentMethodModel]
    created_at: str

    @staticmethod
    def from_domain(i: Income) -> "IncomeResponse":
        return IncomeResponse(**i.to_dict())


class LiveIncomeResponse(BaseModel):
    version: int
    changed: bool
    income: Optional[List[IncomeResponse]] = None


router = APIRouter(prefix="/api/income", tags=["income"])


def income_filters(
    month: Optional[str] = Query(None, description="Calendar month prefix, e.g. 2024-05"),
    date_from: Optional[str] = Query(None, description="Inclusive ISO start date"),
    date_to: Optional[str] = Query(None, description="Inclusive ISO end date"),
    room: Optional[str] = None,
) -> RecordFilters:
    return RecordFilters(month=month, date_from=date_from, date_to=date_to, room=room)


@router.post("", response_model=IncomeResponse)
def submit_income(
    req: IncomeCreateRequest,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    try:
        income = create_income(
            store,
            session,
            date=req.date,
            room=req.room,
            name=req.name,
            bill=req.bill,
            paid=req.paid,
            payment_methods=[pm.to_domain() for pm in req.payment_methods],
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return IncomeResponse.from_domain(income)


@router.get("", response_model=List[IncomeResponse])
def get_income(
    filters: RecordFilters = Depends(income_filters),
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    return [IncomeResponse.from_domain(i) for i in list_income(store, session, filters)]


@router.get("/live", response_model=LiveIncomeResponse)
def poll_income(
    since: Optional[int] = Query(None, description="Version seen on the last poll"),
    filters: RecordFilters = Depends(income_filters),
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    version, incomes = live_income(store, session, filters, since_version=since)
    if incomes is None:
        return LiveIncomeResponse(version=version, changed=False)
    return LiveIncomeResponse(
        version=version,
        changed=True,
        income=[IncomeResponse.from_domain(i) for i in incomes],
    )


@router.get("/export")
def export_income(
    filters: RecordFilters = Depends(income_filters),
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    output = io.StringIO(export_income_csv(store, session, filters))
    filename = f"income-{_date.today().isoformat()}.csv"
    return StreamingResponse(
        output,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/import", response_model=ImportResponse)
async def import_income(
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
    result = import_income_csv(store, session, text)
    return ImportResponse(succeeded=result.succeeded, failed=result.failed)


@router.put("/{income_id}", response_model=IncomeResponse)
def edit_income(
    income_id: str,
    req: IncomeUpdateRequest,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    try:
        income = update_income(
            store,
            session,
            income_id,
            paid=req.paid,
            payment_methods=[pm.to_domain() for pm in req.payment_methods],
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return IncomeResponse.from_domain(income)


@router.delete("/{income_id}")
def remove_income(
    income_id: str,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    delete_income(store, session, income_id)
    return {"deleted": True}

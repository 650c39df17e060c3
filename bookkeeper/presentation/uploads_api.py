from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse

from bookkeeper.config import Settings, get_settings
from bookkeeper.domain.models import Session
from bookkeeper.domain.services.upload_service import receipt_path, save_receipt
from bookkeeper.presentation.dependencies import get_current_session

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("")
def upload_receipt(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    session: Optional[Session] = Depends(get_current_session),
):
    try:
        path = save_receipt(settings.upload_dir, session, file.filename, file.file)
    finally:
        file.file.close()
    return {"path": path}


@router.get("/{name}")
def download_receipt(
    name: str,
    settings: Settings = Depends(get_settings),
    session: Optional[Session] = Depends(get_current_session),
):
    return FileResponse(receipt_path(settings.upload_dir, session, name))

import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, Optional

from bookkeeper.domain.errors import NotFound
from bookkeeper.domain.models import Session
from bookkeeper.domain.services.authorization import Operation, authorize

logger = logging.getLogger(__name__)


def save_receipt(
    upload_dir: str, session: Optional[Session], filename: str, stream: BinaryIO
) -> str:
    """Write the upload to disk under a fresh name and return that name.

    The file is fully written before the caller can reference it from an
    expense. Nothing removes receipts that end up unreferenced.
    """
    caller = authorize(Operation.UPLOAD_RECEIPT, session)
    _, ext = os.path.splitext(filename or "")
    stored_name = f"{uuid.uuid4()}{ext.lower()}"
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    with (directory / stored_name).open("wb") as target:
        shutil.copyfileobj(stream, target)
    logger.info("%s uploaded receipt %s", caller.username, stored_name)
    return stored_name


def receipt_path(upload_dir: str, session: Optional[Session], name: str) -> Path:
    authorize(Operation.READ_RECEIPT, session)
    directory = Path(upload_dir).resolve()
    path = (directory / name).resolve()
    if path.parent != directory or not path.is_file():
        raise NotFound(f"Receipt {name} not found")
    return path

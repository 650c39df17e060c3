from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from bookkeeper.config import Settings, get_settings
from bookkeeper.data.base import build_engine
from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.models import Session
from bookkeeper.domain.services.auth_service import validate_session

# auto_error=False: a missing token becomes an Unauthorized from the services
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


@lru_cache()
def _default_store() -> RecordStore:
    store = RecordStore(build_engine(get_settings().database_url))
    store.create_tables()
    return store


def get_store() -> RecordStore:
    return _default_store()


def get_current_session(
    token: Optional[str] = Depends(oauth2_scheme),
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> Optional[Session]:
    return validate_session(
        store, token, ttl=timedelta(hours=settings.session_ttl_hours)
    )

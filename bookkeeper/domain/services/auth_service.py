import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from passlib.context import CryptContext

from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.data.repositories.user_repository import (
    delete_session,
    get_session,
    get_user_by_username,
    list_users as repo_list_users,
    save_session,
    save_user,
)
from bookkeeper.domain.clock import utcnow
from bookkeeper.domain.errors import Unauthorized, ValidationFailure
from bookkeeper.domain.models import Session, User
from bookkeeper.domain.services.authorization import Operation, authorize

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

DEFAULT_SESSION_TTL = timedelta(hours=168)


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def authenticate_user(store: RecordStore, username: str, password: str) -> Optional[User]:
    user = get_user_by_username(store, username)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def login(store: RecordStore, username: str, password: str) -> Session:
    user = authenticate_user(store, username, password)
    if user is None:
        logger.info("Failed login for %s", username)
        raise Unauthorized("Invalid credentials")
    session = Session(
        id=str(uuid.uuid4()),
        user_id=user.id,
        username=user.username,
        is_admin=user.is_admin,
        created_at=utcnow().isoformat(),
    )
    save_session(store, session)
    logger.info("User %s logged in", user.username)
    return session


def logout(store: RecordStore, session_id: str) -> None:
    delete_session(store, session_id)


def validate_session(
    store: RecordStore,
    session_id: Optional[str],
    ttl: timedelta = DEFAULT_SESSION_TTL,
) -> Optional[Session]:
    """Resolve a token to its session, dropping it once it has expired."""
    if not session_id:
        return None
    session = get_session(store, session_id)
    if session is None:
        return None
    if datetime.fromisoformat(session.created_at) + ttl <= utcnow():
        logger.info("Session for %s expired", session.username)
        delete_session(store, session_id)
        return None
    return session


def register_user(store: RecordStore, username: str, password: str, is_admin: bool) -> User:
    username = username.strip()
    if not username:
        raise ValidationFailure("Username must not be empty")
    if not password:
        raise ValidationFailure("Password must not be empty")
    if get_user_by_username(store, username):
        raise ValidationFailure("Username already exists")
    user = User(
        id=str(uuid.uuid4()),
        username=username,
        hashed_password=get_password_hash(password),
        is_admin=is_admin,
    )
    save_user(store, user)
    return user


def create_user(
    store: RecordStore,
    session: Optional[Session],
    username: str,
    password: str,
    is_admin: bool,
) -> User:
    caller = authorize(Operation.CREATE_USER, session)
    user = register_user(store, username, password, is_admin)
    logger.info("%s created user %s (admin=%s)", caller.username, user.username, is_admin)
    return user


def list_users(store: RecordStore, session: Optional[Session]) -> List[User]:
    authorize(Operation.LIST_USERS, session)
    return repo_list_users(store)


def ensure_default_admin(store: RecordStore, username: str, password: str) -> Optional[User]:
    if repo_list_users(store):
        return None
    logger.warning("No users found, creating default admin %s", username)
    return register_user(store, username, password, is_admin=True)

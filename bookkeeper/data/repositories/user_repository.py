from dataclasses import asdict
from typing import List, Optional

from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.models import Session, User


def get_user_by_username(store: RecordStore, username: str) -> Optional[User]:
    for data in store.users.get_all():
        if data["username"] == username:
            return User(**data)
    return None


def list_users(store: RecordStore) -> List[User]:
    return [User(**data) for data in store.users.get_all()]


def save_user(store: RecordStore, user: User) -> None:
    store.users.set(user.id, asdict(user))


def get_session(store: RecordStore, session_id: str) -> Optional[Session]:
    data = store.sessions.get(session_id)
    return Session(**data) if data else None


def save_session(store: RecordStore, session: Session) -> None:
    store.sessions.set(session.id, asdict(session))


def delete_session(store: RecordStore, session_id: str) -> bool:
    return store.sessions.remove(session_id)

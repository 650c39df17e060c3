import logging
import threading
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, Integer, String, UniqueConstraint
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from bookkeeper.data.base import Base

logger = logging.getLogger(__name__)

EXPENSES = "expenses"
INCOME = "income"
BALANCE_OVERRIDES = "balance-overrides"
DIRECTOR_LOAN_OVERRIDES = "director-loan-overrides"
USERS = "users"
SESSIONS = "sessions"


class RecordORM(Base):
    __tablename__ = "records"
    __table_args__ = (
        UniqueConstraint("collection", "key", name="uq_records_collection_key"),
    )
    # Autoincrement id doubles as insertion position for full scans
    id = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String, nullable=False, index=True)
    key = Column(String, nullable=False)
    value = Column(JSON, nullable=False)


class KVCollection:
    """Key-value view over one named collection of the records table."""

    def __init__(self, store: "RecordStore", name: str):
        self._store = store
        self.name = name

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._store.session_factory() as db:
            row = (
                db.query(RecordORM)
                .filter(RecordORM.collection == self.name, RecordORM.key == key)
                .first()
            )
            return dict(row.value) if row else None

    def _update_existing(self, db, key: str, value: Dict[str, Any]) -> int:
        return (
            db.query(RecordORM)
            .filter(RecordORM.collection == self.name, RecordORM.key == key)
            .update({RecordORM.value: value}, synchronize_session=False)
        )

    def set(self, key: str, value: Dict[str, Any]) -> None:
        """Insert or overwrite; an overwrite keeps the record's position."""
        value = dict(value)
        with self._store.session_factory() as db:
            if not self._update_existing(db, key, value):
                db.add(RecordORM(collection=self.name, key=key, value=value))
            try:
                db.commit()
            except IntegrityError:
                # Another writer inserted the key first; last write wins
                db.rollback()
                self._update_existing(db, key, value)
                db.commit()
        self._store.bump_version(self.name)

    def remove(self, key: str) -> bool:
        with self._store.session_factory() as db:
            deleted = (
                db.query(RecordORM)
                .filter(RecordORM.collection == self.name, RecordORM.key == key)
                .delete()
            )
            db.commit()
        if deleted:
            self._store.bump_version(self.name)
        return bool(deleted)

    def get_all(self) -> List[Dict[str, Any]]:
        with self._store.session_factory() as db:
            rows = (
                db.query(RecordORM)
                .filter(RecordORM.collection == self.name)
                .order_by(RecordORM.id)
                .all()
            )
            return [dict(row.value) for row in rows]

    def version(self) -> int:
        return self._store.version(self.name)


class RecordStore:
    """Explicitly constructed record store shared by the services.

    Every collection keeps a change counter that starts at 0 for the process
    and increments on each successful write or removal. Pollers compare it
    against the last value they saw.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=engine
        )
        self._versions: Dict[str, int] = {}
        self._lock = threading.Lock()

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def collection(self, name: str) -> KVCollection:
        return KVCollection(self, name)

    @property
    def expenses(self) -> KVCollection:
        return self.collection(EXPENSES)

    @property
    def income(self) -> KVCollection:
        return self.collection(INCOME)

    @property
    def balance_overrides(self) -> KVCollection:
        return self.collection(BALANCE_OVERRIDES)

    @property
    def director_loan_overrides(self) -> KVCollection:
        return self.collection(DIRECTOR_LOAN_OVERRIDES)

    @property
    def users(self) -> KVCollection:
        return self.collection(USERS)

    @property
    def sessions(self) -> KVCollection:
        return self.collection(SESSIONS)

    def bump_version(self, name: str) -> int:
        with self._lock:
            self._versions[name] = self._versions.get(name, 0) + 1
            version = self._versions[name]
        logger.debug("Collection %s changed (version %s)", name, version)
        return version

    def version(self, name: str) -> int:
        with self._lock:
            return self._versions.get(name, 0)

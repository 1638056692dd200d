import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from src.db.database import UsageRecordDB, make_session_factory, create_tables
from src.models.location import UsageRecord

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class UsageStore(ABC):
    """Interface shared by the in-memory and SQL usage stores."""

    @abstractmethod
    def get(self, client_id: str, date: str) -> Optional[UsageRecord]:
        raise NotImplementedError

    @abstractmethod
    def ensure(self, client_id: str, date: str) -> UsageRecord:
        raise NotImplementedError

    @abstractmethod
    def increment_if_below(self, client_id: str, date: str, limit: int) -> Optional[UsageRecord]:
        raise NotImplementedError

    @abstractmethod
    def decrement(self, client_id: str, date: str) -> Optional[UsageRecord]:
        raise NotImplementedError


class MemoryUsageStore(UsageStore):
    """
    Process-local store. Nothing is persisted and nothing is evicted.

    Sync routes run in a thread pool, so every read-modify-write holds the lock.
    """

    def __init__(self):
        # Format: {(client_id, date): UsageRecord}
        self._records: Dict[Tuple[str, str], UsageRecord] = {}
        self._lock = Lock()

    def __len__(self):
        return len(self._records)

    def _ensure_locked(self, client_id, date):
        key = (client_id, date)
        record = self._records.get(key)
        if record is None:
            now = _now()
            record = UsageRecord(
                id=uuid.uuid4().hex,
                client_id=client_id,
                date=date,
                count=0,
                created_at=now,
                updated_at=now,
            )
            self._records[key] = record
        return record

    def get(self, client_id, date):
        with self._lock:
            record = self._records.get((client_id, date))
            return record.model_copy() if record else None

    def ensure(self, client_id, date):
        with self._lock:
            return self._ensure_locked(client_id, date).model_copy()

    def increment_if_below(self, client_id, date, limit):
        with self._lock:
            record = self._ensure_locked(client_id, date)
            if record.count >= limit:
                return None
            record.count += 1
            record.updated_at = _now()
            return record.model_copy()

    def decrement(self, client_id, date):
        with self._lock:
            record = self._records.get((client_id, date))
            if record is None:
                return None
            if record.count > 0:
                record.count -= 1
                record.updated_at = _now()
            return record.model_copy()


class SqlUsageStore(UsageStore):
    """
    Usage store backed by the usage_tracking table.

    The bump is a single conditional UPDATE, so it stays atomic across worker processes.
    """

    def __init__(self, engine):
        self.engine = engine
        self.SessionLocal = make_session_factory(engine)
        create_tables(engine)

    @staticmethod
    def _to_record(row):
        return UsageRecord(
            id=row.id,
            client_id=row.ip_address,
            date=row.date,
            count=row.usage_count,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _find(self, db, client_id, date):
        return db.query(UsageRecordDB).filter(
            UsageRecordDB.ip_address == client_id,
            UsageRecordDB.date == date,
        ).first()

    def get(self, client_id, date):
        db = self.SessionLocal()
        try:
            row = self._find(db, client_id, date)
            return self._to_record(row) if row else None
        finally:
            db.close()

    def ensure(self, client_id, date):
        db = self.SessionLocal()
        try:
            row = self._find(db, client_id, date)
            if row is None:
                now = _now()
                row = UsageRecordDB(
                    id=uuid.uuid4().hex,
                    ip_address=client_id,
                    usage_count=0,
                    date=date,
                    created_at=now,
                    updated_at=now,
                )
                db.add(row)
                try:
                    db.commit()
                except IntegrityError:
                    # Another worker created it first
                    db.rollback()
                    row = self._find(db, client_id, date)
            return self._to_record(row)
        finally:
            db.close()

    def increment_if_below(self, client_id, date, limit):
        self.ensure(client_id, date)
        db = self.SessionLocal()
        try:
            result = db.execute(
                update(UsageRecordDB)
                .where(
                    UsageRecordDB.ip_address == client_id,
                    UsageRecordDB.date == date,
                    UsageRecordDB.usage_count < limit,
                )
                .values(usage_count=UsageRecordDB.usage_count + 1, updated_at=_now())
            )
            db.commit()
            if result.rowcount == 0:
                return None
            return self._to_record(self._find(db, client_id, date))
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def decrement(self, client_id, date):
        db = self.SessionLocal()
        try:
            db.execute(
                update(UsageRecordDB)
                .where(
                    UsageRecordDB.ip_address == client_id,
                    UsageRecordDB.date == date,
                    UsageRecordDB.usage_count > 0,
                )
                .values(usage_count=UsageRecordDB.usage_count - 1, updated_at=_now())
            )
            db.commit()
            row = self._find(db, client_id, date)
            return self._to_record(row) if row else None
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

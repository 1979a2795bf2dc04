"""
Idempotency store: typed storage protocol.

All methods return Result for explicit error handling.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from kungfu import Result, Ok, Error

from kixstore.idempotency._types import IdempotencyRecord, RecordState
from kixstore.storage import DocumentStore, StoreError


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _expiry(ttl: timedelta | None) -> datetime | None:
    return _now() + ttl if ttl else None


class Store[T](Protocol):
    async def get(self, key: str) -> Result[IdempotencyRecord[T] | None, StoreError]:
        """Existing, unexpired record or Ok(None)."""
        ...

    async def set_pending(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        """
        Atomically claim the key.

        Ok(True) if claimed, Ok(False) if a live record already holds it.
        """
        ...

    async def set_completed(self, key: str, value: T, ttl: timedelta | None) -> Result[None, StoreError]:
        ...

    async def set_failed(self, key: str, error: str, ttl: timedelta | None) -> Result[None, StoreError]:
        ...

    async def delete(self, key: str) -> Result[bool, StoreError]:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store: for tests
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class _StoredRecord[T]:
    key: str
    state: RecordState
    value: T | None
    error: str | None
    created_at: datetime
    expires_at: datetime | None

    def to_record(self) -> IdempotencyRecord[T]:
        return IdempotencyRecord(
            key=self.key,
            state=self.state,
            value=self.value,
            error=self.error,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and _now() > self.expires_at


class MemoryStore[T]:
    """Single-process store; records do not survive a restart."""

    def __init__(self) -> None:
        self._records: dict[str, _StoredRecord[T]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Result[IdempotencyRecord[T] | None, StoreError]:
        async with self._lock:
            record = self._records.get(key)
            if record is None:
                return Ok(None)
            if record.expired:
                del self._records[key]
                return Ok(None)
            return Ok(record.to_record())

    async def set_pending(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is not None and not existing.expired:
                return Ok(False)
            self._records[key] = _StoredRecord(
                key=key,
                state=RecordState.PENDING,
                value=None,
                error=None,
                created_at=_now(),
                expires_at=_expiry(ttl),
            )
            return Ok(True)

    async def set_completed(self, key: str, value: T, ttl: timedelta | None) -> Result[None, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is None:
                return Error(StoreError(f"No pending record for key: {key}"))
            existing.state = RecordState.COMPLETED
            existing.value = value
            existing.expires_at = _expiry(ttl)
            return Ok(None)

    async def set_failed(self, key: str, error: str, ttl: timedelta | None) -> Result[None, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is None:
                return Error(StoreError(f"No pending record for key: {key}"))
            existing.state = RecordState.FAILED
            existing.error = error
            existing.expires_at = _expiry(ttl)
            return Ok(None)

    async def delete(self, key: str) -> Result[bool, StoreError]:
        async with self._lock:
            return Ok(self._records.pop(key, None) is not None)


# ═══════════════════════════════════════════════════════════════════════════════
# Document Store: records as documents in one collection
# ═══════════════════════════════════════════════════════════════════════════════


class DocumentRecordStore:
    """
    Records kept in a document collection, one document per key.

    Note: Values must be JSON-safe. Claiming a key is a create-if-absent,
    which the document store performs atomically.
    """

    def __init__(self, store: DocumentStore, collection: str) -> None:
        self._store = store
        self._collection = collection

    def _to_record(self, key: str, doc: dict[str, Any]) -> IdempotencyRecord[Any]:
        expires_at = doc.get("expires_at")
        return IdempotencyRecord(
            key=key,
            state=RecordState(doc["state"]),
            value=doc.get("value"),
            error=doc.get("error"),
            created_at=datetime.fromisoformat(doc["created_at"]),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
        )

    async def get(self, key: str) -> Result[IdempotencyRecord[Any] | None, StoreError]:
        match await self._store.get(self._collection, key):
            case Ok(None):
                return Ok(None)
            case Ok(doc):
                try:
                    record = self._to_record(key, doc)
                except (KeyError, ValueError) as e:
                    return Error(StoreError(f"Corrupt record {key}: {e}", e))
                return Ok(None if record.is_expired else record)
            case Error(err):
                return Error(err)

    async def set_pending(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        expires_at = _expiry(ttl)
        doc = {
            "state": RecordState.PENDING.value,
            "value": None,
            "error": None,
            "created_at": _now().isoformat(),
            "expires_at": expires_at.isoformat() if expires_at else None,
        }
        match await self._store.create(self._collection, key, doc):
            case Ok(True):
                return Ok(True)
            case Ok(_):
                pass
            case Error(err):
                return Error(err)

        # Taken: an expired holder may be replaced, atomically.
        def expired(current: dict[str, Any]) -> bool:
            raw = current.get("expires_at")
            return bool(raw) and datetime.fromisoformat(raw) < _now()

        return await self._store.compare_and_set(self._collection, key, expired, doc)

    async def _settle(self, key: str, changes: dict[str, Any]) -> Result[None, StoreError]:
        match await self._store.update(self._collection, key, changes):
            case Ok(True):
                return Ok(None)
            case Ok(False):
                return Error(StoreError(f"No pending record for key: {key}"))
            case Error(err):
                return Error(err)

    async def set_completed(self, key: str, value: Any, ttl: timedelta | None) -> Result[None, StoreError]:
        expires_at = _expiry(ttl)
        return await self._settle(
            key,
            {
                "state": RecordState.COMPLETED.value,
                "value": value,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
        )

    async def set_failed(self, key: str, error: str, ttl: timedelta | None) -> Result[None, StoreError]:
        expires_at = _expiry(ttl)
        return await self._settle(
            key,
            {
                "state": RecordState.FAILED.value,
                "error": error,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
        )

    async def delete(self, key: str) -> Result[bool, StoreError]:
        return await self._store.delete(self._collection, key)


type StoreAny = Store[Any]


__all__ = ("Store", "StoreAny", "MemoryStore", "DocumentRecordStore")

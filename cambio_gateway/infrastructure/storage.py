"""Durable client storage: key/value text store and the session snapshot"""

import json
import logging
from typing import Annotated, Any, Callable, List, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from cambio_gateway.config import settings
from cambio_gateway.domain.exceptions import SnapshotPersistenceError, StorageCorruptionError
from cambio_gateway.domain.models import TellerWindowSession, WindowStatus
from cambio_gateway.infrastructure.database.repositories import StorageRepository


class DurableStorage:
    """Text key/value storage; each call runs in its own committed session"""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _run(self, fn):
        db = self._session_factory()
        try:
            result = fn(StorageRepository(db))
            db.commit()
            return result
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def read(self, key: str) -> Optional[str]:
        return self._run(lambda repo: repo.read(key))

    def write(self, key: str, value: str) -> None:
        self._run(lambda repo: repo.write(key, value))

    def delete(self, key: str) -> bool:
        return self._run(lambda repo: repo.delete(key))

    def keys(self, prefix: str = "") -> List[str]:
        return self._run(lambda repo: repo.keys(prefix))

    def read_json(self, key: str) -> Any:
        """
        Decode a stored JSON value.

        Returns None for a missing key.

        Raises:
            StorageCorruptionError: stored text is not valid JSON
        """
        raw = self.read(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageCorruptionError(f"Corrupt value under {key!r}: {e}") from e

    def write_json(self, key: str, value: Any) -> None:
        self.write(key, json.dumps(value))


class _SnapshotBase(BaseModel):
    window_id: int = Field(gt=0)
    exchange_house_id: int = Field(gt=0)
    window_name: str
    operator_name: str
    exchange_house_name: str
    opened_at: str


class OpenSnapshot(_SnapshotBase):
    status: Literal["ABIERTA"]


class PausedSnapshot(_SnapshotBase):
    status: Literal["PAUSA"]


# CLOSED is never stored: absence of the key means closed
SessionSnapshot = Annotated[Union[OpenSnapshot, PausedSnapshot], Field(discriminator="status")]
_snapshot_adapter = TypeAdapter(SessionSnapshot)


class SessionSnapshotStore:
    """Persists the active teller window under a single durable key"""

    def __init__(self, storage: DurableStorage, key: str | None = None):
        self.storage = storage
        self.key = key or settings.session_storage_key

    def save(self, session: TellerWindowSession) -> None:
        """
        Raises:
            SnapshotPersistenceError: the storage backend failed
        """
        if session.status == WindowStatus.CLOSED:
            self.clear()
            return
        try:
            self._write(session)
        except SQLAlchemyError as e:
            logging.error(f"Session snapshot not saved: {e}")
            raise SnapshotPersistenceError("The session could not be saved locally") from e

    def _write(self, session: TellerWindowSession) -> None:
        self.storage.write_json(
            self.key,
            {
                "window_id": session.window_id,
                "exchange_house_id": session.exchange_house_id,
                "window_name": session.window_name,
                "operator_name": session.operator_name,
                "exchange_house_name": session.exchange_house_name,
                "opened_at": session.opened_at,
                "status": session.status.value,
            },
        )

    def load(self) -> Optional[TellerWindowSession]:
        """
        Restore the stored session.

        Missing, undecodable or mis-shaped snapshots all yield None (closed);
        the problem is logged, never raised.
        """
        try:
            payload = self.storage.read_json(self.key)
        except StorageCorruptionError as e:
            logging.warning(f"Discarding session snapshot: {e}")
            return None
        if payload is None:
            return None

        try:
            snapshot = _snapshot_adapter.validate_python(payload)
        except ValidationError as e:
            logging.warning(
                "Discarding session snapshot with unexpected shape",
                extra={"storage_key": self.key, "errors": e.error_count()},
            )
            return None

        return TellerWindowSession(
            window_id=snapshot.window_id,
            exchange_house_id=snapshot.exchange_house_id,
            window_name=snapshot.window_name,
            operator_name=snapshot.operator_name,
            exchange_house_name=snapshot.exchange_house_name,
            opened_at=snapshot.opened_at,
            status=WindowStatus(snapshot.status),
        )

    def clear(self) -> None:
        try:
            self.storage.delete(self.key)
        except SQLAlchemyError as e:
            logging.error(f"Session snapshot not cleared: {e}")
            raise SnapshotPersistenceError("The stored session could not be cleared") from e

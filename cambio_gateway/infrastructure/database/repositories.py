"""Data access layer for durable key/value entries"""

from typing import List, Optional
from sqlalchemy.orm import Session
from cambio_gateway.infrastructure.database.models import StorageEntry


class StorageRepository:
    """Repository for storage entries"""

    def __init__(self, db: Session):
        self.db = db

    def read(self, key: str) -> Optional[str]:
        entry = self.db.get(StorageEntry, key)
        return entry.value if entry is not None else None

    def write(self, key: str, value: str) -> None:
        """Insert or overwrite a key"""
        entry = self.db.get(StorageEntry, key)
        if entry is None:
            self.db.add(StorageEntry(key=key, value=value))
        else:
            entry.value = value
        self.db.flush()

    def delete(self, key: str) -> bool:
        deleted = self.db.query(StorageEntry).filter(StorageEntry.key == key).delete()
        return deleted > 0

    def keys(self, prefix: str = "") -> List[str]:
        """All keys starting with prefix, in key order"""
        query = self.db.query(StorageEntry.key)
        if prefix:
            query = query.filter(StorageEntry.key.startswith(prefix, autoescape=True))
        return [row[0] for row in query.order_by(StorageEntry.key).all()]

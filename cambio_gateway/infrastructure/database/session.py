"""Database session management for the durable workstation store"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from cambio_gateway.config import settings
from cambio_gateway.infrastructure.database.models import Base


def build_engine(database_url: str) -> Engine:
    """SQLite needs cross-thread access for the FastAPI threadpool"""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_storage(bind: Engine | None = None) -> None:
    """Create the storage table if missing"""
    Base.metadata.create_all(bind=bind or engine)


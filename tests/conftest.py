"""Pytest fixtures for testing"""

import httpx
import pytest
from decimal import Decimal
from typing import Generator
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from cambio_gateway.api.main import create_app
from cambio_gateway.domain.models import Currency, ExchangeRate
from cambio_gateway.infrastructure.clients.backoffice import BackofficeClient
from cambio_gateway.infrastructure.database.models import Base
from cambio_gateway.infrastructure.storage import DurableStorage
from cambio_gateway.utils.scheduler import VirtualScheduler
from cambio_gateway.workstation import Workstation, build_workstation
from mock_backoffice.main import create_mock_app

BACKOFFICE_BASE_URL = "http://backoffice.test/api"


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """In-memory SQLite shared across threads, fresh per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def storage(session_factory: sessionmaker) -> DurableStorage:
    return DurableStorage(session_factory)


@pytest.fixture
def scheduler() -> VirtualScheduler:
    """Clock starts at a realistic epoch-ms value; time moves only on advance()"""
    return VirtualScheduler(start_ms=1_700_000_000_000)


@pytest.fixture
def mock_backoffice() -> FastAPI:
    return create_mock_app()


@pytest.fixture
def backoffice_client(mock_backoffice: FastAPI) -> BackofficeClient:
    """Back-office client wired to the in-process mock server"""
    return BackofficeClient(
        base_url=BACKOFFICE_BASE_URL,
        token="test-token",
        transport=httpx.ASGITransport(app=mock_backoffice),
    )


@pytest.fixture
def workstation(
    session_factory: sessionmaker,
    scheduler: VirtualScheduler,
    backoffice_client: BackofficeClient,
) -> Workstation:
    return build_workstation(session_factory, scheduler, client=backoffice_client)


@pytest.fixture
def client(workstation: Workstation) -> Generator[TestClient, None, None]:
    """FastAPI test client running the app lifespan against the test workstation"""
    app = create_app(workstation)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def usd_pen_rate() -> ExchangeRate:
    """USD/PEN pair published at 3.70 buy / 3.75 sell"""
    return ExchangeRate(
        id=1,
        buy_rate=Decimal("3.70"),
        sell_rate=Decimal("3.75"),
        origin_currency=Currency(code="USD", symbol="$", id=1),
        destination_currency=Currency(code="PEN", symbol="S/", id=2),
        origin_currency_id=1,
        destination_currency_id=2,
        pair_label="USD/PEN",
    )


@pytest.fixture
def open_window_payload() -> dict:
    return {
        "window_id": 7,
        "window_name": "Ventanilla 1",
        "exchange_house_id": 1,
        "exchange_house_name": "Casa Central",
        "operator_id": 3,
        "operator_name": "  Ana Torres ",
        "opening_balances": [
            {"currency_id": 1, "amount": "1000"},
            {"currency_id": 2, "amount": "5000"},
            {"currency_id": 3, "amount": "0"},
        ],
        "notes": "Turno mañana",
    }

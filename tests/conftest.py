"""Shared test fixtures."""

import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from feecalc.api import create_app, limiter
from feecalc.config import FeeCalcConfig, reload_config
from feecalc.dependencies import get_app_config
from feecalc.repositories.invoices import InvoiceRepository
from feecalc.repositories.memory import InMemoryKeyValueStore

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class TickingClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(minutes=1)
        return value


@pytest.fixture(autouse=True)
def isolated_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    """Keep tests away from the user's store and env settings."""
    for name in [key for key in os.environ if key.upper().startswith("FEECALC_")]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FEECALC_STORAGE_PATH", str(tmp_path / "store.json"))
    reload_config()
    limiter.reset()
    yield
    limiter.reset()
    reload_config()


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def invoice_repository(
    memory_store: InMemoryKeyValueStore, clock: TickingClock
) -> InvoiceRepository:
    return InvoiceRepository(memory_store, clock=clock)


@pytest.fixture
def api_test_config(tmp_path: Path) -> FeeCalcConfig:
    """Provide a test-owned API config instance."""
    return FeeCalcConfig(_env_file=None, storage_path=tmp_path / "api-store.json")


@pytest.fixture
def api_test_app(api_test_config: FeeCalcConfig) -> Generator[Any, None, None]:
    """Create a fresh FastAPI app with explicit dependency overrides."""
    app = create_app(api_test_config)
    app.dependency_overrides[get_app_config] = lambda: api_test_config
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def api_test_client(api_test_app: Any) -> Generator[TestClient, None, None]:
    """Create a TestClient for the overridden API app."""
    with TestClient(api_test_app) as client:
        yield client

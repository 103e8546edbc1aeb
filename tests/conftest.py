from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.bins import build_default_bin_store
from datastore.users import build_default_user_store
from services.auth import build_default_auth_service
from services.bins import build_default_bin_service
from services.simulator import build_default_simulator
from services.sync_hub import build_default_hub
from settings import get_settings

TEST_SECRET = "test-secret-that-is-long-enough-for-hs256"

_CACHES = (
    get_settings,
    build_default_bin_store,
    build_default_user_store,
    build_default_hub,
    build_default_bin_service,
    build_default_auth_service,
    build_default_simulator,
)


def clear_caches() -> None:
    for cache in _CACHES:
        cache.cache_clear()


@pytest.fixture
def service_env(tmp_path, monkeypatch) -> Iterator[None]:
    monkeypatch.setenv("BIN_STORE_PATH", str(tmp_path / "bins.json"))
    monkeypatch.setenv("USER_STORE_PATH", str(tmp_path / "users.json"))
    monkeypatch.setenv("SIMULATOR_ENABLED", "false")
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    clear_caches()
    yield
    clear_caches()


@pytest.fixture
def api_client(service_env) -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client

"""
tests/conftest.py -- Shared test fixtures for Entry.

This module provides:
  - _make_test_stores(): isolated in-memory log and paste stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient over the full app for HTTP integration tests
  - settings / log_store / paste_store / resolver / service: unit fixtures

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
HTTP fixtures because TestClient runs route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Unit fixtures run on one thread and use plain :memory:.

DEBUG, ADMIN_PASSWORD and PASTE_RATE_LIMIT must be set before any app import:
get_settings() is cached and the rate limit is read at import time.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from types import SimpleNamespace

# CRITICAL: set before any api/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ADMIN_PASSWORD", "admin-password-123")
os.environ.setdefault("PASTE_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.association import AssociationResolver
from core.config import Settings
from logs.models import SessionRecord
from logs.store import LogStore
from pastes.service import PasteService
from pastes.store import PasteStore

ADMIN_PASSWORD = "admin-password-123"
BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"


def make_settings(**overrides) -> Settings:
    """Private Settings instance that ignores .env files."""
    values = {"debug": True, "admin_password": ADMIN_PASSWORD, "version": "test"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[LogStore, PasteStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api').
    """
    log_url = f"sqlite:///file:test_logs_{db_suffix}?mode=memory&cache=shared&uri=true"
    paste_url = f"sqlite:///file:test_pastes_{db_suffix}?mode=memory&cache=shared&uri=true"
    return LogStore(log_url), PasteStore(paste_url, version="test")


def _patch_lifespan(log_store: LogStore, paste_store: PasteStore, settings: Settings):
    """Return an async context manager that replaces the real lifespan.

    The expiry task is a long-sleeping coroutine so shutdown can cancel a
    real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        resolver = AssociationResolver(log_store, settings)
        app.state.settings = settings
        app.state.log_store = log_store
        app.state.paste_store = paste_store
        app.state.resolver = resolver
        app.state.paste_service = PasteService(paste_store, log_store, resolver, settings)
        app.state.expiry_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.expiry_task.cancel()

    return test_lifespan


def new_session(log_store: LogStore, associated: str | None = None) -> str:
    """Create a browser session directly in the log store and return its id."""
    created = log_store.create_session(SessionRecord(user_agent=BROWSER_UA, associated=associated))
    assert created.ok
    return created.record.id


# ---------------------------------------------------------------------------
# Module-scoped HTTP fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[SimpleNamespace, None, None]:
    """Yield a namespace with client, log_store and paste_store.

    follow_redirects=False is essential: form endpoints answer 302 and the
    tests assert on Location, X-Entry-Error and Set-Cookie.
    """
    suffix = uuid.uuid4().hex[:8]
    log_store, paste_store = _make_test_stores(suffix)
    settings = make_settings()

    app.router.lifespan_context = _patch_lifespan(log_store, paste_store, settings)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield SimpleNamespace(client=client, log_store=log_store, paste_store=paste_store)

    paste_store.close()
    log_store.close()


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def log_store() -> Generator[LogStore, None, None]:
    store = LogStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def paste_store() -> Generator[PasteStore, None, None]:
    store = PasteStore("sqlite:///:memory:", version="test")
    yield store
    store.close()


@pytest.fixture
def resolver(log_store: LogStore, settings: Settings) -> AssociationResolver:
    return AssociationResolver(log_store, settings)


@pytest.fixture
def service(paste_store: PasteStore, log_store: LogStore, resolver: AssociationResolver, settings: Settings):
    return PasteService(paste_store, log_store, resolver, settings)

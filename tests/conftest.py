"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files — pytest discovers this by convention.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.deps import get_current_user, get_properties_client, get_users_client
from app.errors import register_error_handlers
from app.routers.booking import router

from .factories import TODAY, make_admin, make_customer

ROUTER_PATH = "app.routers.booking"

# ---------------------------------------------------------------------------
# Default no-op client mocks — prevent real HTTP calls in tests
# ---------------------------------------------------------------------------


def _noop_properties_client():
    mock = MagicMock()
    mock.get_property = AsyncMock(return_value=None)
    mock.get_by_ids = AsyncMock(return_value=[])
    return mock


def _noop_users_client():
    mock = MagicMock()
    mock.get_by_ids = AsyncMock(return_value=[])
    return mock


# ---------------------------------------------------------------------------
# Router-level collaborators that must never be real in tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def occupied_cache():
    """Replace the redis-backed cache helpers the router calls."""
    with (
        patch(f"{ROUTER_PATH}.get_occupied_cache", AsyncMock(return_value=None)) as get_,
        patch(f"{ROUTER_PATH}.set_occupied_cache", AsyncMock()) as set_,
        patch(f"{ROUTER_PATH}.invalidate_occupied_cache", AsyncMock()) as invalidate,
    ):
        yield SimpleNamespace(get=get_, set=set_, invalidate=invalidate)


@pytest.fixture(autouse=True)
def fixed_today():
    """Pin the admission rules' notion of today to factories.TODAY."""
    with patch(f"{ROUTER_PATH}.local_today", return_value=TODAY):
        yield TODAY


# ---------------------------------------------------------------------------
# App builder — used by all client fixtures
# ---------------------------------------------------------------------------


def build_app(current_user, properties_client=None, users_client=None) -> FastAPI:
    """
    Fresh FastAPI app with the identity dependency overridden to return
    `current_user` unconditionally. Scope checks still run for real.

    Pass `properties_client` / `users_client` to inject custom mocks.
    Defaults to no-op mocks, avoiding real HTTP calls.
    """
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(router)

    async def _user():
        return current_user

    app.dependency_overrides[get_current_user] = _user

    pc = properties_client if properties_client is not None else _noop_properties_client()
    uc = users_client if users_client is not None else _noop_users_client()
    app.dependency_overrides[get_properties_client] = lambda: pc
    app.dependency_overrides[get_users_client] = lambda: uc

    return app


# ---------------------------------------------------------------------------
# Reusable client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_client():
    return TestClient(build_app(make_customer()), raise_server_exceptions=True)


@pytest.fixture()
def admin_client():
    return TestClient(build_app(make_admin()), raise_server_exceptions=True)


@pytest.fixture()
def anon_app():
    """
    App with NO identity override.
    Use this when you want the real identity dep to run so you can assert 401.
    """
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(router)
    app.dependency_overrides[get_properties_client] = _noop_properties_client
    app.dependency_overrides[get_users_client] = _noop_users_client
    return app


@pytest.fixture()
def client_factory():
    def _make(
        current_user,
        properties_client=None,
        users_client=None,
    ) -> TestClient:
        return TestClient(
            build_app(
                current_user,
                properties_client=properties_client,
                users_client=users_client,
            ),
            raise_server_exceptions=True,
        )

    return _make

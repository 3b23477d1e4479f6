"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files, pytest discovers this by convention.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from tortoise import Tortoise, connections

from app import settings
from app.deps import (
    can_pay_reservation,
    can_read_reservation,
    can_write_reservation,
    get_admission_coordinator,
    get_current_user,
    require_admin,
)
from app.catalog import get_catalog_client
from app.errors import register_exception_handlers
from app.guards import install_overlap_guard
from app.routers.reservations import router

from .factories import make_admin, make_customer, make_resource

TEST_DB_CONFIG = {
    **settings.TORTOISE_ORM,
    "connections": {"default": "sqlite://:memory:"},
}

# ---------------------------------------------------------------------------
# Default no-op collaborator mocks, prevent real HTTP calls in tests
# ---------------------------------------------------------------------------


def noop_catalog_client(resource=None):
    mock = MagicMock()
    mock.get_resource = AsyncMock(return_value=resource or make_resource())
    mock.get_by_ids = AsyncMock(return_value=[])
    return mock


def noop_coordinator():
    mock = MagicMock()
    mock.admit = AsyncMock()
    mock.load_resource = AsyncMock(return_value=make_resource())
    return mock


# ---------------------------------------------------------------------------
# App builder, used by all client fixtures
# ---------------------------------------------------------------------------


def build_app(current_user, catalog_client=None, coordinator=None) -> FastAPI:
    """
    Fresh FastAPI app with auth/scope dependencies overridden to return
    `current_user` unconditionally.

    Pass `catalog_client` / `coordinator` to inject custom mocks.
    """
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router)

    async def _user():
        return current_user

    for dep in (
        can_read_reservation,
        can_write_reservation,
        can_pay_reservation,
        require_admin,
        get_current_user,
    ):
        app.dependency_overrides[dep] = _user

    cc = catalog_client if catalog_client is not None else noop_catalog_client()
    co = coordinator if coordinator is not None else noop_coordinator()
    app.dependency_overrides[get_catalog_client] = lambda: cc
    app.dependency_overrides[get_admission_coordinator] = lambda: co

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
    Bare app with NO dependency overrides.
    Use this when you want real scope/auth deps to run so you can assert 401/403/422.
    """
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router)
    return app


@pytest.fixture()
def client_factory():
    def _make(current_user, catalog_client=None, coordinator=None) -> TestClient:
        return TestClient(
            build_app(
                current_user, catalog_client=catalog_client, coordinator=coordinator
            ),
            raise_server_exceptions=True,
        )

    return _make


# ---------------------------------------------------------------------------
# Database fixture: fresh in-memory SQLite per call, overlap guard installed
# ---------------------------------------------------------------------------


@pytest.fixture()
def run_db():
    """
    Returns `run(body)` which awaits `body()` against a fresh database.

        def test_x(run_db):
            async def body():
                ...
            run_db(body)
    """

    def _run(body):
        async def _main():
            await Tortoise.init(config=TEST_DB_CONFIG)
            await Tortoise.generate_schemas()
            await install_overlap_guard()
            try:
                return await body()
            finally:
                await connections.close_all()

        return asyncio.run(_main())

    return _run

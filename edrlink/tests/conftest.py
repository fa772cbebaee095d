from __future__ import annotations

import os
from pathlib import Path
import tempfile

# Settings and the engine are read at import time; pin test values before any edrlink import.
_TEST_DB = Path(tempfile.gettempdir()) / f"edrlink-tests-{os.getpid()}.sqlite3"
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DB}")
os.environ.setdefault("ACRONIS_BASE_URL", "https://acronis.test")
os.environ.setdefault("ACRONIS_CLIENT_ID", "test-client")
os.environ.setdefault("ACRONIS_CLIENT_SECRET", "test-secret")
os.environ.setdefault("ACRONIS_PARENT_TENANT_ID", "parent-tenant")
os.environ.setdefault("BITDEFENDER_API_URL", "https://bitdefender.test")
os.environ.setdefault("BITDEFENDER_API_KEY", "test-api-key")
os.environ.setdefault("BITDEFENDER_COMPANY_ID", "company-1")

import pytest

from edrlink.core.config import get_settings
from edrlink.domain.models import Base
from edrlink.persistence.db import engine
from edrlink.services.telemetry import reset_telemetry


@pytest.fixture(autouse=True)
def _reset_caches() -> None:
    # Ensure settings and in-process telemetry do not leak between tests.
    yield
    get_settings.cache_clear()
    reset_telemetry()


@pytest.fixture
async def database() -> None:
    # Build the schema from ORM metadata per test; SQLite stands in for Postgres.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Dispose the async engine to prevent cross-loop connection reuse between tests.
    await engine.dispose()

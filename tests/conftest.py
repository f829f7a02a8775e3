"""Shared pytest fixtures for Spotbook tests."""
import sys
sys.dont_write_bytecode = True

import os  # noqa: E402
import uuid  # noqa: E402

import pytest  # noqa: E402

from tests.helpers import drop_tenant, ensure_tenant_registry  # noqa: E402


@pytest.fixture
def tenant_id():
    """Provision a throwaway tenant schema; dropped after the test.

    Skips the test when DATABASE_URL is not set.
    """
    if not os.environ.get("DATABASE_URL"):
        pytest.skip("DATABASE_URL not set - skipping DB tests")

    from spotbook.infra.tenants import provision_tenant

    ensure_tenant_registry()
    tid = f"test-{uuid.uuid4().hex[:12]}"
    provision_tenant(tid, name="Test Tenant")
    yield tid
    drop_tenant(tid)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove engine tunables so defaults apply."""
    for name in (
        "RESERVATION_DEFAULT_HOLD_HOURS",
        "RESERVATION_MAX_HOLD_HOURS",
        "SWEEP_INTERVAL_SECONDS",
        "SWEEP_BATCH_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch

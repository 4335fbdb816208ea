"""
Pytest Configuration and Centralized Fixtures.

Provides reusable fakes and fixtures for testing:
- In-memory subscription authority and profile store
- Deterministic clock
- Entitlement service wired to the fakes
- API test client with dependency overrides
"""

import os
from collections.abc import Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

# Set required environment variables BEFORE importing app modules
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "json")
os.environ.setdefault("FIREBASE_SERVICE_ACCOUNT_JSON", "")
os.environ.setdefault("PLAY_SERVICE_ACCOUNT_JSON", "")

from app.exceptions import PersistenceError
from app.models.domain import EntitlementRecord
from app.models.google_play import PurchaseRecord, PurchaseShape, SubscriptionState
from app.services.entitlement import EntitlementService

NOW_MILLIS = 1_700_000_000_000
ONE_DAY_MILLIS = 86_400_000


# ============================================================================
# Fakes for the external collaborators
# ============================================================================


class FakeSubscriptionAuthority:
    """Returns a canned purchase record or raises a canned error."""

    def __init__(
        self,
        record: PurchaseRecord | None = None,
        error: Exception | None = None,
    ) -> None:
        self.record = record or PurchaseRecord(shape=PurchaseShape.MODERN)
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    async def fetch_purchase_record(
        self, package_id: str, product_id: str, token: str
    ) -> PurchaseRecord:
        self.calls.append((package_id, product_id, token))
        if self.error is not None:
            raise self.error
        return self.record


class FakeProfileStore:
    """In-memory profile documents with merge-upsert semantics."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.writes: list[tuple[str, EntitlementRecord]] = []
        self.fail_with = fail_with

    async def upsert_entitlement(self, user_id: str, record: EntitlementRecord) -> None:
        if self.fail_with is not None:
            raise PersistenceError(user_id, str(self.fail_with))
        self.writes.append((user_id, record))
        self.documents.setdefault(user_id, {}).update(record.to_profile_fields())


# ============================================================================
# Purchase Record Fixtures
# ============================================================================


@pytest.fixture
def active_purchase() -> PurchaseRecord:
    """Modern-shape active subscription expiring tomorrow."""
    return PurchaseRecord(
        shape=PurchaseShape.MODERN,
        expiry_time_millis=NOW_MILLIS + ONE_DAY_MILLIS,
        subscription_state=SubscriptionState.ACTIVE,
    )


@pytest.fixture
def expired_purchase() -> PurchaseRecord:
    """Modern-shape expired subscription."""
    return PurchaseRecord(
        shape=PurchaseShape.MODERN,
        expiry_time_millis=NOW_MILLIS - 1000,
        subscription_state=SubscriptionState.EXPIRED,
    )


@pytest.fixture
def valid_body() -> dict[str, str]:
    """Well-formed verification request body."""
    return {
        "packageId": "com.app",
        "token": "abc",
        "productId": "premium_monthly",
        "userId": "u1",
    }


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def authority() -> FakeSubscriptionAuthority:
    return FakeSubscriptionAuthority()


@pytest.fixture
def profile_store() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture
def entitlement_service(
    authority: FakeSubscriptionAuthority, profile_store: FakeProfileStore
) -> EntitlementService:
    """Entitlement service with fakes and a frozen clock."""
    return EntitlementService(authority=authority, store=profile_store, clock=lambda: NOW_MILLIS)


# ============================================================================
# API Client Fixtures
# ============================================================================


@pytest.fixture
def client(entitlement_service: EntitlementService) -> Iterator[TestClient]:
    """Test client whose verification endpoint uses the faked service."""
    from app.api.dependencies import get_entitlement_service_factory
    from app.main import app

    app.dependency_overrides[get_entitlement_service_factory] = lambda: (
        lambda: entitlement_service
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

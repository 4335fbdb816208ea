"""
Tests for the Firestore profile store.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.exceptions import ConfigurationFault, PersistenceError
from app.models.domain import EntitlementRecord
from app.services.profile_store import FirestoreProfileStore, get_or_initialize_firebase_app


@pytest.fixture
def firestore_client():
    """Mock AsyncClient whose document references record writes."""
    client = MagicMock()
    doc_ref = MagicMock()
    doc_ref.set = AsyncMock()
    client.collection.return_value.document.return_value = doc_ref
    return client


@pytest.fixture
def negative_record() -> EntitlementRecord:
    return EntitlementRecord(
        entitled=False,
        expiry_millis=0,
        verified_at_millis=1_700_000_000_000,
        product_id="premium_monthly",
    )


class TestUpsertEntitlement:
    """Tests for FirestoreProfileStore.upsert_entitlement."""

    async def test_merge_write_of_entitlement_fields(self, firestore_client, negative_record):
        """Only the four entitlement fields are written, with merge."""
        store = FirestoreProfileStore(firestore_client)

        await store.upsert_entitlement("u1", negative_record)

        firestore_client.collection.assert_called_once_with("profile")
        firestore_client.collection.return_value.document.assert_called_once_with("u1")
        doc_ref = firestore_client.collection.return_value.document.return_value
        doc_ref.set.assert_awaited_once_with(
            {
                "premiumPlan": False,
                "premiumExpiry": 0,
                "lastVerified": 1_700_000_000_000,
                "lastSubId": "premium_monthly",
            },
            merge=True,
        )

    async def test_custom_collection(self, firestore_client, negative_record):
        """The collection name is configurable."""
        store = FirestoreProfileStore(firestore_client, collection="users")

        await store.upsert_entitlement("u1", negative_record)

        firestore_client.collection.assert_called_once_with("users")

    async def test_write_failure_is_persistence_error(self, firestore_client, negative_record):
        """Store failures are wrapped in PersistenceError."""
        doc_ref = firestore_client.collection.return_value.document.return_value
        doc_ref.set.side_effect = RuntimeError("503 unavailable")
        store = FirestoreProfileStore(firestore_client)

        with pytest.raises(PersistenceError) as exc_info:
            await store.upsert_entitlement("u1", negative_record)

        assert exc_info.value.user_id == "u1"
        assert "503 unavailable" in exc_info.value.message


class TestFirebaseAppInitialization:
    """Tests for get_or_initialize_firebase_app."""

    def test_reuses_existing_app(self):
        """An already initialized default app is returned as-is."""
        existing = MagicMock()
        with (
            patch("app.services.profile_store.firebase_admin.get_app", return_value=existing),
            patch("app.services.profile_store.firebase_admin.initialize_app") as initialize,
        ):
            assert get_or_initialize_firebase_app({}) is existing

        initialize.assert_not_called()

    def test_initializes_when_absent(self):
        """The default app is created from the service account."""
        created = MagicMock()
        with (
            patch(
                "app.services.profile_store.firebase_admin.get_app",
                side_effect=ValueError("no app"),
            ),
            patch("app.services.profile_store.credentials.Certificate") as certificate,
            patch(
                "app.services.profile_store.firebase_admin.initialize_app", return_value=created
            ) as initialize,
        ):
            app = get_or_initialize_firebase_app({"project_id": "demo"})

        assert app is created
        certificate.assert_called_once_with({"project_id": "demo"})
        initialize.assert_called_once_with(certificate.return_value)

    def test_lost_race_returns_winner(self):
        """If another caller initialized first, its app is reused."""
        winner = MagicMock()
        with (
            patch(
                "app.services.profile_store.firebase_admin.get_app",
                side_effect=[ValueError("no app"), winner],
            ),
            patch("app.services.profile_store.credentials.Certificate"),
            patch(
                "app.services.profile_store.firebase_admin.initialize_app",
                side_effect=ValueError("already exists"),
            ),
        ):
            assert get_or_initialize_firebase_app({}) is winner

    def test_invalid_certificate_is_configuration_fault(self):
        """A certificate firebase_admin rejects is a configuration fault."""
        with (
            patch(
                "app.services.profile_store.firebase_admin.get_app",
                side_effect=ValueError("no app"),
            ),
            patch(
                "app.services.profile_store.credentials.Certificate",
                side_effect=ValueError("Invalid service account certificate"),
            ),
        ):
            with pytest.raises(ConfigurationFault) as exc_info:
                get_or_initialize_firebase_app({})

        assert exc_info.value.setting == "FIREBASE_SERVICE_ACCOUNT_JSON"

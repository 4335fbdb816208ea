"""
Firestore Profile Store.

Merge-upserts entitlement fields onto per-user profile documents.
"""

from typing import Any

import firebase_admin
from firebase_admin import credentials, firestore_async
from structlog import get_logger

from app.exceptions import ConfigurationFault, PersistenceError
from app.models.domain import EntitlementRecord

logger = get_logger(__name__)


def get_or_initialize_firebase_app(service_account_info: dict[str, Any]) -> firebase_admin.App:
    """
    Return the default Firebase app, initializing it on first use.

    Initializing twice is harmless: an existing default app is reused.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    try:
        cred = credentials.Certificate(service_account_info)
    except ValueError as exc:
        raise ConfigurationFault("FIREBASE_SERVICE_ACCOUNT_JSON", str(exc)) from exc

    try:
        app = firebase_admin.initialize_app(cred)
    except ValueError:
        # Another caller won the race
        return firebase_admin.get_app()

    logger.info("firebase_app_initialized", project_id=service_account_info.get("project_id"))
    return app


class FirestoreProfileStore:
    """
    Profile documents in a Firestore collection keyed by user ID.

    Implements the ProfileStore protocol.
    """

    def __init__(self, client: Any, collection: str = "profile") -> None:
        """
        Initialize profile store.

        Args:
            client: google.cloud.firestore.AsyncClient
            collection: Profile collection name
        """
        self.client = client
        self.collection = collection

    @classmethod
    def from_service_account(
        cls, service_account_info: dict[str, Any], collection: str = "profile"
    ) -> "FirestoreProfileStore":
        """Build a store backed by the default Firebase app."""
        app = get_or_initialize_firebase_app(service_account_info)
        return cls(firestore_async.client(app), collection=collection)

    async def upsert_entitlement(self, user_id: str, record: EntitlementRecord) -> None:
        """
        Merge entitlement fields into profile/{user_id}.

        Only the entitlement fields are written; other profile fields are untouched.

        Raises:
            PersistenceError: If the write fails
        """
        doc_ref = self.client.collection(self.collection).document(user_id)

        try:
            await doc_ref.set(record.to_profile_fields(), merge=True)
        except Exception as exc:
            logger.exception(
                "profile_entitlement_write_failed",
                user_id=user_id,
                collection=self.collection,
            )
            raise PersistenceError(user_id, str(exc)) from exc

        logger.info(
            "profile_entitlement_written",
            user_id=user_id,
            entitled=record.entitled,
            expiry_millis=record.expiry_millis,
        )

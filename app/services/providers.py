"""
Provider Protocols - Interfaces the entitlement core depends on.

The reconciler only ever sees these two operations; concrete Google Play and
Firestore adapters live in their own modules.
"""

from typing import Protocol

from app.models.domain import EntitlementRecord
from app.models.google_play import PurchaseRecord


class SubscriptionAuthority(Protocol):
    """
    External system of record for subscription validity.
    """

    async def fetch_purchase_record(
        self, package_id: str, product_id: str, token: str
    ) -> PurchaseRecord:
        """
        Fetch the subscription purchase for a token.

        Args:
            package_id: Application package name
            product_id: Subscription product ID
            token: Purchase token issued by the store

        Returns:
            Normalized purchase record

        Raises:
            UpstreamError: Authority answered with a structured error body
            UpstreamUnavailableError: Transport failure without a structured body
        """
        ...


class ProfileStore(Protocol):
    """
    Keyed document store holding per-user entitlement state.
    """

    async def upsert_entitlement(self, user_id: str, record: EntitlementRecord) -> None:
        """
        Merge the entitlement fields into the user's profile document.

        Raises:
            PersistenceError: If the write fails
        """
        ...

"""
Google Play domain models - Immutable dataclasses for subscription verification.

NO DICTIONARIES - All data uses strongly typed models.
"""

from dataclasses import dataclass
from enum import Enum


class SubscriptionState(str, Enum):
    """Subscription lifecycle state reported by purchases.subscriptionsv2."""

    UNSPECIFIED = "SUBSCRIPTION_STATE_UNSPECIFIED"
    PENDING = "SUBSCRIPTION_STATE_PENDING"
    ACTIVE = "SUBSCRIPTION_STATE_ACTIVE"
    PAUSED = "SUBSCRIPTION_STATE_PAUSED"
    IN_GRACE_PERIOD = "SUBSCRIPTION_STATE_IN_GRACE_PERIOD"
    ON_HOLD = "SUBSCRIPTION_STATE_ON_HOLD"
    CANCELED = "SUBSCRIPTION_STATE_CANCELED"
    EXPIRED = "SUBSCRIPTION_STATE_EXPIRED"
    PENDING_PURCHASE_CANCELED = "SUBSCRIPTION_STATE_PENDING_PURCHASE_CANCELED"

    @classmethod
    def parse(cls, value: str) -> "SubscriptionState":
        """Map an upstream state string to a member; unknown values are UNSPECIFIED."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNSPECIFIED


class PurchaseShape(str, Enum):
    """Which upstream API produced a purchase record."""

    LEGACY = "legacy"  # purchases.subscriptions.get
    MODERN = "modern"  # purchases.subscriptionsv2.get


@dataclass(frozen=True)
class PurchaseRecord:
    """
    Subscription purchase normalized from either upstream response shape.

    Absent upstream fields stay None; the reconciler decides what absence means.
    """

    shape: PurchaseShape
    expiry_time_millis: int | None = None
    subscription_state: SubscriptionState | None = None
    payment_state: int | None = None  # legacy only, informational

    def is_empty(self) -> bool:
        """Check if the record carries no evidence at all."""
        return self.expiry_time_millis is None and self.subscription_state is None

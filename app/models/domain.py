"""
Domain Models - Internal business logic models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

from dataclasses import dataclass

# Profile document field names (wire layout shared with the mobile client)
PROFILE_FIELD_ENTITLED = "premiumPlan"
PROFILE_FIELD_EXPIRY = "premiumExpiry"
PROFILE_FIELD_VERIFIED_AT = "lastVerified"
PROFILE_FIELD_PRODUCT = "lastSubId"


@dataclass(frozen=True)
class VerificationRequest:
    """Well-formed verification request - all four fields non-empty."""

    package_id: str
    token: str
    product_id: str
    user_id: str

    def __post_init__(self) -> None:
        """Validate request fields."""
        if not self.package_id:
            raise ValueError("package_id cannot be empty")
        if not self.token:
            raise ValueError("token cannot be empty")
        if not self.product_id:
            raise ValueError("product_id cannot be empty")
        if not self.user_id:
            raise ValueError("user_id cannot be empty")


@dataclass(frozen=True)
class EntitlementRecord:
    """Canonical entitlement state persisted on the user's profile."""

    entitled: bool
    expiry_millis: int
    verified_at_millis: int
    product_id: str

    def __post_init__(self) -> None:
        """Validate entitlement invariants."""
        if self.expiry_millis < 0:
            raise ValueError(f"expiry_millis cannot be negative: {self.expiry_millis}")
        if self.entitled and self.expiry_millis <= self.verified_at_millis:
            raise ValueError(
                f"Entitled record already expired: expiry={self.expiry_millis}, "
                f"verified_at={self.verified_at_millis}"
            )

    def to_profile_fields(self) -> dict[str, bool | int | str]:
        """Fields written to the profile document by a merge upsert."""
        return {
            PROFILE_FIELD_ENTITLED: self.entitled,
            PROFILE_FIELD_EXPIRY: self.expiry_millis,
            PROFILE_FIELD_VERIFIED_AT: self.verified_at_millis,
            PROFILE_FIELD_PRODUCT: self.product_id,
        }


@dataclass(frozen=True)
class EntitlementDecision:
    """Reconciled entitlement plus the explanation returned to the caller."""

    record: EntitlementRecord
    reason: str | None = None

"""
Entitlement Service - Verify a subscription and record the entitlement.

Flow per request is strictly sequential:
    fetch (subscription authority) -> reconcile -> persist (profile store)

No retries happen here; every failure is reported to the caller.
"""

import time
from collections.abc import Callable

from structlog import get_logger

from app.exceptions import PersistenceError, UpstreamError, UpstreamUnavailableError
from app.models.domain import EntitlementDecision, EntitlementRecord, VerificationRequest
from app.models.google_play import PurchaseRecord, SubscriptionState
from app.observability.metrics import metrics
from app.observability.tracing import trace_operation
from app.services.providers import ProfileStore, SubscriptionAuthority

logger = get_logger(__name__)


def now_millis() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def decide_entitlement(
    purchase: PurchaseRecord, product_id: str, verified_at_millis: int
) -> EntitlementDecision:
    """
    Derive the canonical entitlement from a purchase record.

    Rules:
    - Missing expiry means no evidence of validity (expiry 0, never entitled).
    - An explicit subscription state is authoritative: only ACTIVE counts.
    - Without a state (legacy shape) expiry alone gates entitlement; payment
      state is ignored.
    """
    expiry_millis = max(purchase.expiry_time_millis or 0, 0)
    is_expired = expiry_millis <= verified_at_millis

    if purchase.subscription_state is not None:
        is_active = purchase.subscription_state == SubscriptionState.ACTIVE
    else:
        is_active = True

    entitled = is_active and not is_expired

    reason = None
    if not entitled:
        state = purchase.subscription_state.value if purchase.subscription_state else None
        reason = f"State: {state}, Expired: {str(is_expired).lower()}"

    record = EntitlementRecord(
        entitled=entitled,
        expiry_millis=expiry_millis,
        verified_at_millis=verified_at_millis,
        product_id=product_id,
    )
    return EntitlementDecision(record=record, reason=reason)


class EntitlementService:
    """
    Entitlement reconciliation over the two external collaborators.

    Holds no per-request state; one instance can serve concurrent requests.
    """

    def __init__(
        self,
        authority: SubscriptionAuthority,
        store: ProfileStore,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.authority = authority
        self.store = store
        self.clock = clock

    async def reconcile(self, request: VerificationRequest) -> EntitlementDecision:
        """
        Fetch the purchase from the subscription authority and reconcile it.

        Raises:
            UpstreamError: Structured upstream error
            UpstreamUnavailableError: Upstream unreachable
        """
        start_time = time.time()
        with trace_operation(
            "subscription_fetch",
            package_id=request.package_id,
            product_id=request.product_id,
        ):
            try:
                purchase = await self.authority.fetch_purchase_record(
                    request.package_id, request.product_id, request.token
                )
            except (UpstreamError, UpstreamUnavailableError) as exc:
                metrics.record_upstream_fetch(False, time.time() - start_time)
                metrics.record_error(type(exc).__name__, "subscription_fetch")
                raise

        metrics.record_upstream_fetch(True, time.time() - start_time)

        decision = decide_entitlement(purchase, request.product_id, self.clock())

        logger.info(
            "entitlement_reconciled",
            user_id=request.user_id,
            product_id=request.product_id,
            shape=purchase.shape.value,
            entitled=decision.record.entitled,
            expiry_millis=decision.record.expiry_millis,
            empty_record=purchase.is_empty(),
        )
        return decision

    async def persist(self, user_id: str, record: EntitlementRecord) -> None:
        """
        Merge-upsert the entitlement onto the user's profile.

        Negative entitlements are written too, so stale positive state is replaced.

        Raises:
            PersistenceError: If the profile store write fails
        """
        with trace_operation("profile_write", user_id=user_id, entitled=record.entitled):
            try:
                await self.store.upsert_entitlement(user_id, record)
            except PersistenceError as exc:
                metrics.record_profile_write(record.entitled, False)
                metrics.record_error(type(exc).__name__, "profile_write")
                raise

        metrics.record_profile_write(record.entitled, True)

    async def verify(self, request: VerificationRequest) -> EntitlementDecision:
        """
        Verify a purchase token and record the resulting entitlement.

        Persistence is only attempted after a successful fetch.

        Raises:
            UpstreamError: Structured upstream error
            UpstreamUnavailableError: Upstream unreachable
            PersistenceError: Verified but not durably recorded
        """
        decision = await self.reconcile(request)
        await self.persist(request.user_id, decision.record)

        outcome = "entitled" if decision.record.entitled else "not_entitled"
        metrics.record_verification(outcome)

        logger.info(
            "entitlement_verified",
            user_id=request.user_id,
            product_id=request.product_id,
            entitled=decision.record.entitled,
        )
        return decision

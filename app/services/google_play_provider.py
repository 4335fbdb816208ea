"""
Google Play Subscription Authority.

Fetches subscription purchases from the Google Play Developer API and
normalizes both response shapes into a PurchaseRecord.
"""

import asyncio
import json
from datetime import datetime
from typing import Any

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from structlog import get_logger

from app.exceptions import ConfigurationFault, UpstreamError, UpstreamUnavailableError
from app.models.google_play import PurchaseRecord, PurchaseShape, SubscriptionState

logger = get_logger(__name__)

ANDROIDPUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"


# ============================================================================
# Response shape adapters
# ============================================================================


def _to_int(value: Any) -> int | None:
    """Coerce an upstream numeric value (often a string) to int."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("google_play_field_unparsable", value=str(value)[:40])
        return None


def _latest_line_item_expiry(payload: dict[str, Any]) -> int | None:
    """Latest lineItems[].expiryTime (RFC 3339) as epoch millis."""
    latest: int | None = None
    for item in payload.get("lineItems") or []:
        expiry_time = item.get("expiryTime") if isinstance(item, dict) else None
        if not expiry_time:
            continue
        try:
            parsed = datetime.fromisoformat(expiry_time.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("google_play_line_item_expiry_unparsable", value=expiry_time)
            continue
        millis = int(parsed.timestamp() * 1000)
        if latest is None or millis > latest:
            latest = millis
    return latest


def _expiry_millis(payload: dict[str, Any]) -> int | None:
    """Nested subscriptionPurchase.expiryTimeMillis wins over the top-level field."""
    nested = payload.get("subscriptionPurchase")
    if isinstance(nested, dict):
        expiry = _to_int(nested.get("expiryTimeMillis"))
        if expiry is not None:
            return expiry
    return _to_int(payload.get("expiryTimeMillis"))


def _subscription_state(payload: dict[str, Any]) -> SubscriptionState | None:
    state = payload.get("subscriptionState")
    if state is None:
        return None
    return SubscriptionState.parse(str(state))


def purchase_record_from_legacy(payload: dict[str, Any]) -> PurchaseRecord:
    """Normalize a purchases.subscriptions.get response."""
    return PurchaseRecord(
        shape=PurchaseShape.LEGACY,
        expiry_time_millis=_expiry_millis(payload),
        subscription_state=_subscription_state(payload),
        payment_state=_to_int(payload.get("paymentState")),
    )


def purchase_record_from_modern(payload: dict[str, Any]) -> PurchaseRecord:
    """Normalize a purchases.subscriptionsv2.get response."""
    expiry = _expiry_millis(payload)
    if expiry is None:
        expiry = _latest_line_item_expiry(payload)
    return PurchaseRecord(
        shape=PurchaseShape.MODERN,
        expiry_time_millis=expiry,
        subscription_state=_subscription_state(payload),
    )


def _structured_error_body(exc: HttpError) -> dict[str, Any] | None:
    """Decode the upstream error body if it is a JSON object."""
    if not exc.content:
        return None
    try:
        body = json.loads(exc.content)
    except (ValueError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


# ============================================================================
# Provider
# ============================================================================


class GooglePlaySubscriptionAuthority:
    """
    Google Play subscription verification.

    Implements the SubscriptionAuthority protocol.
    """

    def __init__(
        self,
        service_account_info: dict[str, Any],
        api_version: str = "v2",
    ) -> None:
        """
        Initialize Google Play provider.

        Args:
            service_account_info: Parsed service account credentials
            api_version: "v2" for subscriptionsv2.get, "v1" for subscriptions.get
        """
        self.api_version = api_version

        try:
            self.credentials = service_account.Credentials.from_service_account_info(  # type: ignore[no-untyped-call]
                service_account_info,
                scopes=[ANDROIDPUBLISHER_SCOPE],
            )
        except ValueError as exc:
            raise ConfigurationFault("PLAY_SERVICE_ACCOUNT_JSON", str(exc)) from exc

        # Build API client
        self.service = build(
            "androidpublisher", "v3", credentials=self.credentials, cache_discovery=False
        )

        logger.info("google_play_provider_initialized", api_version=api_version)

    def _build_request(self, package_id: str, product_id: str, token: str) -> Any:
        subscriptions = self.service.purchases()
        if self.api_version == "v1":
            return subscriptions.subscriptions().get(
                packageName=package_id,
                subscriptionId=product_id,
                token=token,
            )
        return subscriptions.subscriptionsv2().get(packageName=package_id, token=token)

    async def fetch_purchase_record(
        self, package_id: str, product_id: str, token: str
    ) -> PurchaseRecord:
        """
        Fetch and normalize a subscription purchase.

        Raises:
            UpstreamError: Google answered with a structured error body
            UpstreamUnavailableError: Transport failure or unstructured error
        """
        logger.info(
            "fetching_google_play_subscription",
            package_name=package_id,
            product_id=product_id,
            api_version=self.api_version,
        )

        try:
            request = self._build_request(package_id, product_id, token)
            result = await asyncio.to_thread(request.execute)

        except HttpError as exc:
            body = _structured_error_body(exc)
            logger.error(
                "google_play_fetch_failed",
                status=exc.resp.status,
                structured=body is not None,
            )
            if body is None:
                raise UpstreamUnavailableError(
                    f"Google Play API returned HTTP {exc.resp.status}"
                ) from exc
            raise UpstreamError(exc.resp.status, "Google API Error", details=body) from exc

        except Exception as exc:
            logger.exception("google_play_fetch_unexpected_error")
            raise UpstreamUnavailableError(f"Google Play API unreachable: {exc}") from exc

        payload = result if isinstance(result, dict) else {}
        if self.api_version == "v1":
            record = purchase_record_from_legacy(payload)
        else:
            record = purchase_record_from_modern(payload)

        logger.info(
            "google_play_subscription_fetched",
            product_id=product_id,
            shape=record.shape.value,
            subscription_state=record.subscription_state.value
            if record.subscription_state
            else None,
            expiry_time_millis=record.expiry_time_millis,
        )
        return record

"""
Lazily-initialized, process-wide clients for the two external services.

Each client is built at most once per process on first use. Concurrent first
callers serialize on a lock; the first one to finish wins and later callers
reuse its instance.
"""

import threading

from app.config import settings
from app.exceptions import ConfigurationFault
from app.observability.metrics import metrics
from app.services.credentials import parse_service_account
from app.services.google_play_provider import GooglePlaySubscriptionAuthority
from app.services.profile_store import FirestoreProfileStore
from app.services.providers import ProfileStore, SubscriptionAuthority

_lock = threading.Lock()
_subscription_authority: SubscriptionAuthority | None = None
_profile_store: ProfileStore | None = None


def get_subscription_authority() -> SubscriptionAuthority:
    """
    Get the Google Play subscription authority, building it on first use.

    Raises:
        ConfigurationFault: PLAY_SERVICE_ACCOUNT_JSON missing or invalid
    """
    global _subscription_authority

    if _subscription_authority is not None:
        return _subscription_authority

    with _lock:
        if _subscription_authority is None:
            try:
                info = parse_service_account(
                    "PLAY_SERVICE_ACCOUNT_JSON", settings.PLAY_SERVICE_ACCOUNT_JSON
                )
                _subscription_authority = GooglePlaySubscriptionAuthority(
                    info, api_version=settings.play_api_version
                )
            except ConfigurationFault as exc:
                metrics.record_configuration_fault(exc.setting)
                raise
        return _subscription_authority


def get_profile_store() -> ProfileStore:
    """
    Get the Firestore profile store, building it on first use.

    Raises:
        ConfigurationFault: FIREBASE_SERVICE_ACCOUNT_JSON missing or invalid
    """
    global _profile_store

    if _profile_store is not None:
        return _profile_store

    with _lock:
        if _profile_store is None:
            try:
                info = parse_service_account(
                    "FIREBASE_SERVICE_ACCOUNT_JSON", settings.FIREBASE_SERVICE_ACCOUNT_JSON
                )
                _profile_store = FirestoreProfileStore.from_service_account(
                    info, collection=settings.profile_collection
                )
            except ConfigurationFault as exc:
                metrics.record_configuration_fault(exc.setting)
                raise
        return _profile_store


def reset_clients() -> None:
    """Drop cached clients so the next call rebuilds them."""
    global _subscription_authority, _profile_store

    with _lock:
        _subscription_authority = None
        _profile_store = None

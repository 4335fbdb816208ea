"""
API Dependencies - Wire external clients into request handlers.

The process-wide clients are only reachable through these dependencies, so
tests replace them with app.dependency_overrides.
"""

from collections.abc import Callable

from app.services.clients import get_profile_store, get_subscription_authority
from app.services.entitlement import EntitlementService

EntitlementServiceFactory = Callable[[], EntitlementService]


def build_entitlement_service() -> EntitlementService:
    """
    Build the entitlement service from the lazily-initialized clients.

    Raises:
        ConfigurationFault: If either credential blob is missing or invalid
    """
    return EntitlementService(
        authority=get_subscription_authority(),
        store=get_profile_store(),
    )


def get_entitlement_service_factory() -> EntitlementServiceFactory:
    """
    Provide the service factory rather than the service itself.

    Handlers validate the request body before touching credentials, so
    client construction is deferred until the handler asks for it.
    """
    return build_entitlement_service

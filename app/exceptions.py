"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes (upstream diagnostics excepted).
"""

from typing import Any


class EntitlementError(Exception):
    """Base exception for all entitlement verification errors."""

    pass


class InvalidRequestError(EntitlementError):
    """Raised when the verification request body is malformed or incomplete."""

    def __init__(self, message: str, missing_fields: list[str] | None = None) -> None:
        self.message = message
        self.missing_fields = missing_fields or []
        super().__init__(f"Invalid request: {message}")


class ConfigurationFault(EntitlementError):
    """Raised when required credentials are absent or unparsable."""

    def __init__(self, setting: str, message: str) -> None:
        self.setting = setting
        self.message = message
        super().__init__(f"Configuration fault in {setting}: {message}")


class UpstreamError(EntitlementError):
    """Raised when the subscription authority returns a structured error."""

    def __init__(self, status: int, message: str, details: Any = None) -> None:
        self.status = status
        self.message = message
        self.details = details
        super().__init__(f"Upstream error ({status}): {message}")


class UpstreamUnavailableError(EntitlementError):
    """Raised when the subscription authority cannot be reached."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Upstream unavailable: {message}")


class PersistenceError(EntitlementError):
    """Raised when the profile store write fails after a successful fetch."""

    def __init__(self, user_id: str, message: str) -> None:
        self.user_id = user_id
        self.message = message
        super().__init__(f"Failed to persist entitlement for {user_id}: {message}")

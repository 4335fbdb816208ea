"""
Request Validator - Parse and sanity-check inbound verification requests.

Pure and synchronous: no network or storage access happens here.
"""

import json
from collections.abc import Mapping
from typing import Any

from app.exceptions import InvalidRequestError
from app.models.domain import VerificationRequest

# Canonical wire name -> accepted aliases (checked in order after the canonical name)
REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "packageId": ("packageName",),
    "token": ("purchaseToken",),
    "productId": ("subscriptionId",),
    "userId": (),
}


def _decode_body(raw: Any) -> Mapping[str, Any]:
    """
    Accept a JSON string, JSON bytes, or an already-decoded mapping.

    A JSON document whose value is itself a JSON-encoded string (a body sent
    as text) is unwrapped once more.
    """
    if isinstance(raw, bytes | bytearray):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidRequestError("malformed body") from exc

    for _ in range(2):
        if not isinstance(raw, str):
            break
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidRequestError("malformed body") from exc

    if not isinstance(raw, Mapping):
        raise InvalidRequestError("malformed body")

    return raw


def _field_value(body: Mapping[str, Any], name: str) -> str | None:
    """Return the stripped field value, or None when it counts as missing."""
    for key in (name, *REQUIRED_FIELDS[name]):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def parse_verification_request(raw: Any) -> VerificationRequest:
    """
    Build a well-formed VerificationRequest from a raw request body.

    Args:
        raw: JSON-encoded string/bytes or decoded mapping

    Returns:
        Validated VerificationRequest

    Raises:
        InvalidRequestError: Malformed body, or one or more required fields missing.
            Every missing field is reported, not just the first.
    """
    body = _decode_body(raw)

    values = {name: _field_value(body, name) for name in REQUIRED_FIELDS}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise InvalidRequestError(format_missing_fields(missing), missing_fields=missing)

    return VerificationRequest(
        package_id=values["packageId"],  # type: ignore[arg-type]
        token=values["token"],  # type: ignore[arg-type]
        product_id=values["productId"],  # type: ignore[arg-type]
        user_id=values["userId"],  # type: ignore[arg-type]
    )


def format_missing_fields(missing: list[str]) -> str:
    """Render missing field names the way callers expect them."""
    return f"MISSING_FIELDS: {', '.join(missing)}"

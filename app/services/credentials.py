"""
Service account credential parsing.

Blobs come from the environment as raw JSON or base64-encoded JSON.
"""

import base64
import binascii
import json
from typing import Any

from structlog import get_logger

from app.exceptions import ConfigurationFault

logger = get_logger(__name__)


def parse_service_account(setting: str, blob: str) -> dict[str, Any]:
    """
    Parse a service account blob into a credential mapping.

    Args:
        setting: Name of the setting the blob came from (for diagnostics)
        blob: Raw JSON or base64-encoded JSON

    Returns:
        Parsed service account info

    Raises:
        ConfigurationFault: If the blob is empty or not a JSON object
    """
    blob = blob.strip()
    if not blob:
        logger.error("configuration_fault", setting=setting, reason="missing")
        raise ConfigurationFault(setting, "service account JSON is not set")

    if not blob.startswith("{"):
        try:
            blob = base64.b64decode(blob, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            logger.error("configuration_fault", setting=setting, reason="undecodable")
            raise ConfigurationFault(setting, "value is neither JSON nor base64 JSON") from exc

    try:
        info = json.loads(blob)
    except json.JSONDecodeError as exc:
        logger.error("configuration_fault", setting=setting, reason="invalid_json", error=str(exc))
        raise ConfigurationFault(setting, f"invalid JSON: {exc.msg}") from exc

    if not isinstance(info, dict):
        logger.error("configuration_fault", setting=setting, reason="not_an_object")
        raise ConfigurationFault(setting, "service account JSON must be an object")

    return info

"""Normalize list-shaped upstream payloads."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def unwrap_list(payload: Any, key: str) -> list[Any]:
    """Extract the resource list from any of the accepted response shapes.

    Accepted shapes, for ``key="accounts"``::

        [...]
        {"accounts": [...]}
        {"success": true, "data": {"accounts": [...]}}
        {"success": true, "data": [...]}

    Args:
        payload: Decoded JSON response body
        key: Property name the resource list may be stored under

    Returns:
        list: The resource elements, or an empty list for an unrecognized shape
    """
    if isinstance(payload, list):
        return payload

    if isinstance(payload, dict):
        if isinstance(payload.get(key), list):
            return payload[key]

        data = payload.get("data")
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get(key), list):
            return data[key]

        logger.warning(
            f"Unrecognized {key} response shape with keys: {sorted(payload)[:10]}"
        )
        return []

    logger.warning(f"Unrecognized {key} response type: {type(payload).__name__}")
    return []

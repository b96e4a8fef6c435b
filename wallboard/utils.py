"""
Utility functions for the wall routes.
"""

import hmac
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the way the walls table stores it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def extract_nested(form: Mapping[str, Any], group: str) -> Dict[str, str]:
    """
    Collect the `group[field]` entries of a submitted form.

    Args:
        form: Parsed form data (e.g. Starlette FormData)
        group: Name of the field group, e.g. "wall"

    Returns:
        Mapping of field name to value. Uploaded files and nested
        sub-groups are skipped.
    """
    prefix = f"{group}["
    fields = {}
    for key, value in form.items():
        if not key.startswith(prefix) or not key.endswith("]"):
            continue
        name = key[len(prefix):-1]
        if not name or "[" in name or not isinstance(value, str):
            continue
        fields[name] = value
    logger.debug(f"Extracted {group} fields: {sorted(fields)}")
    return fields


def verify_creator_name(submitted: Optional[str], stored: str) -> bool:
    """
    Check the name typed by the user against the wall's creator.

    Args:
        submitted: The created_by value from the request, if any
        stored: The wall's created_by

    Returns:
        True only on an exact match
    """
    if submitted is None:
        logger.info("Creator name verification: missing")
        return False

    # compare_digest only takes ASCII str, so compare the UTF-8 bytes
    is_valid = hmac.compare_digest(submitted.encode("utf-8"), stored.encode("utf-8"))
    logger.info(f"Creator name verification: {'valid' if is_valid else 'invalid'}")

    return is_valid

"""
Resolve a conversation locator into connection credentials.

A locator is either a bare agent identifier or a share link such as
``https://host/talk?targetId=abc&shareKey=xyz``. Share links that are too
mangled to parse as URLs are still mined for their parameters with a
pattern match.
"""

import logging
import os
import re
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from pydantic import ValidationError

from app.config.constants import (
    LOGGER_NAME,
    PARAM_SHARE_KEY,
    PARAM_TARGET_ID,
    PARAM_TARGET_ID_ALIAS,
)
from app.models.session import ConnectionConfig

logger = logging.getLogger(LOGGER_NAME)

# Public credential used when the locator carries no shareKey
DEFAULT_CREDENTIAL = os.getenv("VOICE_PUBLIC_KEY", "")

_TARGET_PATTERN = re.compile(
    rf"(?:{PARAM_TARGET_ID}|{PARAM_TARGET_ID_ALIAS})=([^&#\s]+)"
)
_SHARE_KEY_PATTERN = re.compile(rf"{PARAM_SHARE_KEY}=([^&#\s]+)")


def _is_structured(locator: str) -> bool:
    return (
        "://" in locator
        or locator.startswith("http")
        or "?" in locator
        or f"{PARAM_TARGET_ID}=" in locator
        or f"{PARAM_TARGET_ID_ALIAS}=" in locator
        or f"{PARAM_SHARE_KEY}=" in locator
    )


def _parse_url(locator: str) -> tuple[Optional[str], Optional[str]]:
    """Read the parameters from a well-formed absolute URL; raise ValueError otherwise."""
    parts = urlsplit(locator)
    if not parts.scheme or not parts.netloc or any(c.isspace() for c in locator):
        raise ValueError(f"not an absolute URL: {locator!r}")
    params = parse_qs(parts.query)

    def first(name: str) -> Optional[str]:
        values = [v for v in params.get(name, []) if v]
        return values[0] if values else None

    return first(PARAM_TARGET_ID) or first(PARAM_TARGET_ID_ALIAS), first(PARAM_SHARE_KEY)


def _extract(locator: str) -> tuple[Optional[str], Optional[str]]:
    target = _TARGET_PATTERN.search(locator)
    share_key = _SHARE_KEY_PATTERN.search(locator)
    return (
        target.group(1) if target else None,
        share_key.group(1) if share_key else None,
    )


def resolve(
    locator: Optional[str], default_credential: Optional[str] = None
) -> Optional[ConnectionConfig]:
    """
    Turn a conversation locator into a ConnectionConfig.

    Args:
        locator: Bare identifier, share URL, or a string containing
            ``targetId=``/``shareKey=`` fragments
        default_credential: Credential used when the locator has no shareKey,
            defaults to VOICE_PUBLIC_KEY

    Returns:
        The resolved config, or None when no usable target and credential
        can be derived. Never raises.
    """
    if locator is None or not locator.strip():
        return None

    locator = locator.strip()
    target_id = locator
    credential = DEFAULT_CREDENTIAL if default_credential is None else default_credential

    if _is_structured(locator):
        try:
            extracted_id, share_key = _parse_url(locator)
        except ValueError as e:
            logger.debug(f"Locator is not a valid URL ({e}), falling back to pattern extraction")
            extracted_id, share_key = _extract(locator)

        if extracted_id:
            target_id = extracted_id
        if share_key:
            credential = share_key

    try:
        return ConnectionConfig(targetId=target_id, credential=credential)
    except ValidationError:
        logger.warning("Locator resolved without a usable target or credential")
        return None

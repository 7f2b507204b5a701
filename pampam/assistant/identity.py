"""Identity normalization — canonical digits-only sender keys."""
from __future__ import annotations

import logging
import re
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

_STRIP_RE = re.compile(r"[\s\-+]")
_VALID_RE = re.compile(r"^\d{6,15}$")

# Transport-level lookup: raw sender -> canonical number (or None)
Resolver = Callable[[str], Awaitable[Optional[str]]]


def normalize_identity(raw: str) -> str:
    """Drop any ``@suffix`` and strip spaces, dashes and plus signs.

    >>> normalize_identity("+62 812-3456@c.us")
    '628123456'
    """
    head = (raw or "").split("@", 1)[0]
    return _STRIP_RE.sub("", head)


async def resolve_identity(sender_raw: str, resolver: Resolver | None = None) -> str:
    """Prefer the transport-resolved number; fall back to suffix stripping.

    Never raises.
    """
    if resolver is not None:
        try:
            resolved = await resolver(sender_raw)
            if resolved:
                return normalize_identity(resolved)
        except Exception as e:
            logger.debug("Identity lookup failed for %s: %s", sender_raw, e)
    return normalize_identity(sender_raw)


def validate_identity(value: str) -> bool:
    """True when ``value`` normalizes to 6-15 digits."""
    return bool(_VALID_RE.match(normalize_identity(value)))

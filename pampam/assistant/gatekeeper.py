"""Gatekeeper — ordered admission checks run before any session change.

Regex-based spam heuristic plus four origin/membership checks.  The first
failing check wins; nothing here sends or writes anything.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

# Rejection reasons, in evaluation order
REASON_GROUP = "group"
REASON_SELF = "self"
REASON_INACTIVE = "inactive"
REASON_NOT_WHITELISTED = "not_whitelisted"
REASON_SPAM = "spam"

# Same character 11+ times in a row ("aaaaaaaaaaa")
_RE_REPEATED = re.compile(r"(.)\1{10,}")


class AdmissionStore(Protocol):
    async def is_active(self) -> bool: ...

    async def is_whitelisted(self, identity: str) -> bool: ...


@dataclass
class Admission:
    """Result of an admission check."""

    allowed: bool
    reason: str = ""


ADMITTED = Admission(allowed=True)


def is_spam(body: str) -> bool:
    """Empty, a lone non-digit character, or a long single-character run.

    Single digits are menu choices and never count as spam.
    """
    text = (body or "").strip()
    if not text:
        return True
    if len(text) == 1 and not text.isdigit():
        return True
    return bool(_RE_REPEATED.search(text))


async def check_admission(
    *,
    identity: str,
    body: str,
    is_group: bool,
    is_self: bool,
    store: AdmissionStore,
) -> Admission:
    """Run the admission chain for one event.

    Storage is only read once the cheaper origin checks have passed.
    """
    if is_group:
        return Admission(False, REASON_GROUP)
    if is_self:
        return Admission(False, REASON_SELF)
    if not await store.is_active():
        return Admission(False, REASON_INACTIVE)
    if not await store.is_whitelisted(identity):
        return Admission(False, REASON_NOT_WHITELISTED)
    if is_spam(body):
        return Admission(False, REASON_SPAM)
    return ADMITTED

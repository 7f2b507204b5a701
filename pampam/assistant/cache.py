"""Bounded in-process sets — dedup processed message ids."""
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Hashable, Iterator

logger = logging.getLogger(__name__)

# Recently-seen message ids kept for dedup
RECENT_MESSAGE_CAPACITY = 100


class BoundedSet:
    """Insertion-ordered set with a hard capacity.

    Adding past capacity evicts the oldest-inserted member.  Membership
    checks do not refresh an entry's position.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._items: OrderedDict[Hashable, None] = OrderedDict()

    def add(self, item: Hashable) -> bool:
        """Insert ``item``. Returns False if it was already present."""
        if item in self._items:
            return False
        self._items[item] = None
        if len(self._items) > self._capacity:
            self._items.popitem(last=False)
        return True

    def discard(self, item: Hashable) -> None:
        self._items.pop(item, None)

    def clear(self) -> None:
        self._items.clear()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._items)


class RecentMessageIds:
    """Dedup guard for transport re-deliveries."""

    def __init__(self, capacity: int = RECENT_MESSAGE_CAPACITY) -> None:
        self._seen = BoundedSet(capacity)

    def admit(self, message_id: str) -> bool:
        """Accept a new id (and remember it); reject one already seen."""
        if self._seen.add(message_id):
            return True
        logger.info("Duplicate message detected: %s", message_id)
        return False

    @property
    def size(self) -> int:
        return len(self._seen)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._seen

"""
Usage Ledger — Fixed-Size FIFO Window

Keeps the most recent HISTORY_LIMIT usage records in chronological order
(oldest first, newest last). Appending past the limit evicts the oldest.
"""

from collections import deque
from typing import Deque, Iterator, List

from .schemas import HISTORY_LIMIT, UsageHistoryItem


class UsageLedger:
    """Bounded, ordered log of dispensing and refill records."""

    def __init__(self, limit: int = HISTORY_LIMIT):
        if limit <= 0:
            raise ValueError(f"limit must be > 0, got {limit}")
        self._items: Deque[UsageHistoryItem] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._items.maxlen

    def append(self, item: UsageHistoryItem) -> None:
        self._items.append(item)

    def items(self) -> List[UsageHistoryItem]:
        """Copy of the window, newest last."""
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[UsageHistoryItem]:
        return iter(list(self._items))

"""
Short-lived holder for uploads awaiting a processing-mode decision.

Simple in-memory store, entries expire after a TTL and the oldest entries
are evicted once the store is full. Losing entries on restart is fine: the
bot treats a missing file as "expired, please re-upload".
"""

import time
from collections import OrderedDict
from typing import Callable, Optional

from endpoints_bot.models import PendingFile
from endpoints_bot.telegram_bot.logging_config import bot_logger as logger


class PendingFileStore:
    """One pending file per user, bounded by TTL and entry count."""

    def __init__(self, ttl_seconds: float = 600, max_entries: int = 200,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._files: "OrderedDict[int, PendingFile]" = OrderedDict()

    def _expired(self, pending: PendingFile) -> bool:
        return self._clock() - pending.created_at > self.ttl_seconds

    def _evict(self) -> None:
        for user_id in [uid for uid, pending in self._files.items() if self._expired(pending)]:
            del self._files[user_id]
            logger.debug(f"Pending file expired for user_id={user_id}")

        while len(self._files) > self.max_entries:
            user_id, _ = self._files.popitem(last=False)
            logger.debug(f"Pending file evicted for user_id={user_id}")

    def put(self, user_id: int, pending: PendingFile) -> None:
        """Store a pending file, replacing any previous one for the user."""
        pending.created_at = self._clock()
        self._files.pop(user_id, None)
        self._files[user_id] = pending
        self._evict()

    def peek(self, user_id: int) -> Optional[PendingFile]:
        self._evict()
        return self._files.get(user_id)

    def pop(self, user_id: int) -> Optional[PendingFile]:
        """Take the pending file for the user. Returns None if absent or expired."""
        self._evict()
        return self._files.pop(user_id, None)

    def discard(self, user_id: int) -> bool:
        return self._files.pop(user_id, None) is not None

    def __len__(self) -> int:
        self._evict()
        return len(self._files)

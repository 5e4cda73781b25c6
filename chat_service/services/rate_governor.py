"""
Rate Governor

Per-user admission control for chat submissions. Each user owns one
window entry ``{count, window_start}``; a submission inside a live window
increments the count, a submission after the window has elapsed opens a
new one. The check-and-increment never awaits, so concurrent requests on
the event loop cannot interleave inside it.

The state is held by the governor instance, not the module. It is local to
one process: horizontally scaled deployments need a shared counter store.
"""

import math
import time
from dataclasses import dataclass
from typing import Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class RateWindowEntry:
    """Request count of one user inside the current admission window"""
    count: int
    window_start: float


@dataclass(frozen=True)
class Admission:
    """
    Result of an admission check

    Attributes:
        allowed: Whether the submission may proceed
        retry_after_seconds: Seconds until the window resets (0 when allowed)
        count: Submissions counted in the current window
        limit: Configured maximum per window
    """
    allowed: bool
    retry_after_seconds: int
    count: int
    limit: int


class RateGovernor:
    """Sliding per-user admission window held in process memory"""

    def __init__(self, max_requests: int = 100, window_seconds: float = 900.0):
        """
        Args:
            max_requests: Submissions allowed per user per window
            window_seconds: Window duration
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._entries: Dict[str, RateWindowEntry] = {}

    def admit(self, user_id: str, now: Optional[float] = None) -> Admission:
        """
        Count a submission for a user and decide whether it may proceed

        Args:
            user_id: Submitting user
            now: Current time in seconds; defaults to ``time.time()``

        Returns:
            Admission describing the decision
        """
        if now is None:
            now = time.time()

        self.purge_stale(now)

        entry = self._entries.get(user_id)
        if entry is None:
            self._entries[user_id] = RateWindowEntry(count=1, window_start=now)
            return Admission(allowed=True, retry_after_seconds=0, count=1, limit=self.max_requests)

        if entry.count >= self.max_requests:
            remaining = self.window_seconds - (now - entry.window_start)
            retry_after = max(1, math.ceil(remaining))
            logger.warning(
                "Chat submission denied by rate governor",
                user_id=user_id,
                count=entry.count,
                limit=self.max_requests,
                retry_after_seconds=retry_after
            )
            return Admission(
                allowed=False,
                retry_after_seconds=retry_after,
                count=entry.count,
                limit=self.max_requests
            )

        entry.count += 1
        return Admission(allowed=True, retry_after_seconds=0, count=entry.count, limit=self.max_requests)

    def purge_stale(self, now: Optional[float] = None) -> int:
        """
        Drop entries whose window has elapsed

        Args:
            now: Current time in seconds; defaults to ``time.time()``

        Returns:
            Number of entries removed
        """
        if now is None:
            now = time.time()

        stale = [
            user_id for user_id, entry in self._entries.items()
            if now - entry.window_start > self.window_seconds
        ]
        for user_id in stale:
            del self._entries[user_id]

        if stale:
            logger.debug("Purged stale rate windows", purged=len(stale), remaining=len(self._entries))
        return len(stale)

    def peek(self, user_id: str) -> Optional[RateWindowEntry]:
        """Current window entry for a user, if any"""
        return self._entries.get(user_id)

    def __len__(self) -> int:
        return len(self._entries)

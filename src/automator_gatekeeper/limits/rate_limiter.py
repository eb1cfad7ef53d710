"""Daily rate limiter keyed by ``(action kind, calendar day)``.

Counters live for the lifetime of the process.  A new local calendar day
produces a new key, so yesterday's counters simply stop being consulted.

Example
-------
>>> limiter = RateLimiter()
>>> limiter.try_consume("send_email")
True
>>> limiter.usage("send_email")
1
"""
from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Callable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_LIMITS: dict[str, int] = {
    "send_email": 10,
    "file_operation": 100,
    "run_application": 50,
    "execute_script": 30,
}

DEFAULT_LIMIT: int = 50

Clock = Callable[[], datetime]


class RateLimiter:
    """Thread-safe per-day counter with a ceiling per action kind.

    Parameters
    ----------
    limits:
        Ceiling per action kind.  Defaults to :data:`DEFAULT_LIMITS`.
    default_limit:
        Ceiling for action kinds missing from ``limits``.
    clock:
        Returns the current local datetime.  Injected by tests to cross
        a day boundary.
    """

    def __init__(
        self,
        limits: Mapping[str, int] | None = None,
        default_limit: int = DEFAULT_LIMIT,
        clock: Clock | None = None,
    ) -> None:
        self._limits: dict[str, int] = dict(DEFAULT_LIMITS if limits is None else limits)
        self._default_limit = default_limit
        self._clock: Clock = clock or datetime.now
        self._counters: dict[tuple[str, date], int] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def limit_for(self, action: str) -> int:
        """Return the configured daily ceiling for ``action``."""
        return self._limits.get(action, self._default_limit)

    def try_consume(self, action: str, ceiling: int | None = None) -> bool:
        """Count one use of ``action`` today if it is still under its ceiling.

        Parameters
        ----------
        action:
            The action kind being requested.
        ceiling:
            Optional tighter ceiling for this call.  The effective ceiling
            is the smaller of this and :meth:`limit_for`.

        Returns
        -------
        bool
            ``True`` when the use was counted, ``False`` (with no state
            change) when the ceiling has been reached.
        """
        limit = self.limit_for(action)
        if ceiling is not None:
            limit = min(limit, ceiling)

        key = (action, self._clock().date())
        with self._lock:
            current = self._counters.get(key, 0)
            if current >= limit:
                logger.warning(
                    "Rate limit reached for %r on %s: %d of %d used",
                    action,
                    key[1].isoformat(),
                    current,
                    limit,
                )
                return False
            self._counters[key] = current + 1

        logger.debug("Rate limit usage for %r: %d of %d", action, current + 1, limit)
        return True

    def usage(self, action: str, day: date | None = None) -> int:
        """Return how many uses of ``action`` were counted on ``day`` (default today)."""
        key = (action, day or self._clock().date())
        with self._lock:
            return self._counters.get(key, 0)

    def remaining(self, action: str, ceiling: int | None = None) -> int:
        """Return how many more uses of ``action`` fit under today's ceiling.

        ``ceiling`` narrows the limit the same way it does for
        :meth:`try_consume`.
        """
        limit = self.limit_for(action)
        if ceiling is not None:
            limit = min(limit, ceiling)
        return max(0, limit - self.usage(action))

    @property
    def limits(self) -> dict[str, int]:
        """A copy of the per-kind ceilings."""
        return dict(self._limits)

    @property
    def default_limit(self) -> int:
        """Ceiling applied to unrecognised action kinds."""
        return self._default_limit

"""Fixed-window rate limiter.

Counts requests per (client key, route class) in discrete windows. The
check-then-increment is atomic per window, so concurrent requests can never
overshoot the limit. State is per process; rolled-over windows are evicted
every ``purge_every`` checks so the table stays bounded by the active clients.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Mapping

from keygate_config import RateLimitRule, RouteClass
from keygate_config.policies import DEFAULT_RATE_LIMIT_RULES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    # 0 when allowed; otherwise whole seconds until the window rolls over,
    # rounded up (HTTP Retry-After has no fractions) and never past the window
    retry_after_seconds: int
    # Clock value at which the current window ends
    reset_at: float


class _Window:
    __slots__ = ("count", "lock", "retired", "started_at")

    def __init__(self, started_at: float):
        self.started_at = started_at
        self.count = 0
        self.retired = False
        self.lock = threading.Lock()


class FixedWindowRateLimiter:
    """Per-key fixed-window counters.

    Thread-safe; in multi-process deployments use a shared store.

    Examples
    --------
    >>> limiter = FixedWindowRateLimiter()
    >>> limiter.check("203.0.113.7", RouteClass.AUTH).allowed
    True
    """

    def __init__(
        self,
        rules: Mapping[RouteClass, RateLimitRule] | None = None,
        clock: Callable[[], float] = time.time,
        purge_every: int = 1000,
    ):
        self._rules = dict(rules or DEFAULT_RATE_LIMIT_RULES)
        self._clock = clock
        self._purge_every = purge_every
        self._checks = 0
        self._windows: dict[tuple[str, RouteClass], _Window] = {}
        self._windows_lock = threading.Lock()

    def rule_for(self, route_class: RouteClass) -> RateLimitRule:
        try:
            return self._rules[route_class]
        except KeyError:
            msg = f"No rate limit rule for route class {route_class!r}"
            raise ValueError(msg) from None

    def check(self, client_key: str, route_class: RouteClass) -> RateLimitDecision:
        """Count one request and decide whether it may proceed.

        A rejected request does not touch the counter.
        """
        rule = self.rule_for(route_class)
        while True:
            window = self._get_window(client_key, route_class)
            now = self._clock()
            with window.lock:
                if window.retired:
                    # Evicted between lookup and lock; take the live one
                    continue
                return self._count(window, rule, client_key, route_class, now)

    def _count(
        self,
        window: _Window,
        rule: RateLimitRule,
        client_key: str,
        route_class: RouteClass,
        now: float,
    ) -> RateLimitDecision:
        self._rotate_if_needed(window, rule, now)
        reset_at = window.started_at + rule.window_seconds

        if window.count >= rule.max_requests:
            retry_after = min(max(1, math.ceil(reset_at - now)), rule.window_seconds)
            logger.warning(
                "Rate limit exceeded for %s on %s (retry in %ss)",
                client_key,
                route_class.value,
                retry_after,
            )
            return RateLimitDecision(
                allowed=False,
                limit=rule.max_requests,
                remaining=0,
                retry_after_seconds=retry_after,
                reset_at=reset_at,
            )

        window.count += 1
        return RateLimitDecision(
            allowed=True,
            limit=rule.max_requests,
            remaining=rule.max_requests - window.count,
            retry_after_seconds=0,
            reset_at=reset_at,
        )

    def refund(self, client_key: str, route_class: RouteClass) -> None:
        """Give back one request for classes that skip successful requests."""
        rule = self.rule_for(route_class)
        if not rule.skip_successful:
            return

        with self._windows_lock:
            window = self._windows.get((client_key, route_class))
        if window is None:
            return

        now = self._clock()
        with window.lock:
            if now < window.started_at + rule.window_seconds and window.count > 0:
                window.count -= 1

    def reset(self, client_key: str, route_class: RouteClass | None = None) -> None:
        with self._windows_lock:
            if route_class is not None:
                keys = [(client_key, route_class)]
            else:
                keys = [k for k in self._windows if k[0] == client_key]
            for key in keys:
                window = self._windows.pop(key, None)
                if window is not None:
                    with window.lock:
                        window.retired = True

    def purge_expired(self) -> int:
        """Drop windows that have rolled over. Returns how many were removed."""
        with self._windows_lock:
            return self._purge_locked(self._clock())

    def __len__(self) -> int:
        with self._windows_lock:
            return len(self._windows)

    def _purge_locked(self, now: float) -> int:
        removed = 0
        for key, window in list(self._windows.items()):
            with window.lock:
                if now < window.started_at + self._rules[key[1]].window_seconds:
                    continue
                window.retired = True
            del self._windows[key]
            removed += 1
        if removed:
            logger.debug("Purged %d expired rate limit windows", removed)
        return removed

    def _get_window(self, client_key: str, route_class: RouteClass) -> _Window:
        key = (client_key, route_class)
        with self._windows_lock:
            self._checks += 1
            if self._checks >= self._purge_every:
                self._checks = 0
                self._purge_locked(self._clock())

            window = self._windows.get(key)
            if window is None:
                window = _Window(started_at=self._clock())
                self._windows[key] = window
            return window

    @staticmethod
    def _rotate_if_needed(window: _Window, rule: RateLimitRule, now: float) -> None:
        if now >= window.started_at + rule.window_seconds:
            window.started_at = now
            window.count = 0

"""Thread-safe frequency / context tracker.

Holds the only shared mutable state in the pipeline: when the user last
interacted with the app, and a sorted log of recent OTP arrival times.

    is_context_suspicious → an OTP arrived long after the user last did anything
    is_possible_attack    → too many OTPs inside a trailing window (OTP bombing)

Each tracker instance owns its own state. The clock is injectable.
"""

import bisect
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from otp_insight.models import ContextFlags, utc_now

logger = logging.getLogger(__name__)


# OTP events older than this are pruned on every insertion
OTP_RETENTION_MINUTES: int = 10

DEFAULT_INTERACTION_THRESHOLD_MINUTES: int = 2
DEFAULT_ATTACK_WINDOW_MINUTES: int = 5
DEFAULT_MAX_IN_WINDOW: int = 3


def _as_utc(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


class ContextTracker:
    """Interaction and OTP-frequency state guarded by a single lock."""

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        retention_minutes: int = OTP_RETENTION_MINUTES,
    ) -> None:
        self._clock = clock or utc_now
        self._retention = timedelta(minutes=retention_minutes)
        self._lock = threading.Lock()
        self._last_interaction: Optional[datetime] = None
        self._otp_events: List[datetime] = []

    def now(self) -> datetime:
        return _as_utc(self._clock())

    @property
    def retention(self) -> timedelta:
        return self._retention

    # ==================== Recording ====================

    def record_interaction(self, now: Optional[datetime] = None) -> datetime:
        """Mark that the user did something in the app."""
        ts = _as_utc(now) if now is not None else self.now()
        with self._lock:
            self._last_interaction = ts
        logger.debug(f"Interaction recorded at {ts.isoformat()}")
        return ts

    def record_otp_event(self, now: Optional[datetime] = None) -> datetime:
        ts = _as_utc(now) if now is not None else self.now()
        with self._lock:
            self._insert_and_prune(ts)
        return ts

    def _insert_and_prune(self, ts: datetime) -> None:
        # Caller holds the lock
        bisect.insort(self._otp_events, ts)
        cutoff = ts - self._retention
        keep_from = bisect.bisect_left(self._otp_events, cutoff)
        if keep_from:
            del self._otp_events[:keep_from]

    def forget_otp_event(self, ts: datetime) -> bool:
        """Remove one recorded event at exactly ts. Used to roll back a failed analysis."""
        ts = _as_utc(ts)
        with self._lock:
            index = bisect.bisect_left(self._otp_events, ts)
            if index < len(self._otp_events) and self._otp_events[index] == ts:
                del self._otp_events[index]
                return True
        return False

    # ==================== Queries ====================

    def is_context_suspicious(
        self,
        arrival_time: datetime,
        threshold_minutes: int = DEFAULT_INTERACTION_THRESHOLD_MINUTES,
    ) -> bool:
        with self._lock:
            return self._context_suspicious(_as_utc(arrival_time), threshold_minutes)

    def _context_suspicious(self, arrival_time: datetime, threshold_minutes: int) -> bool:
        # First use is never penalized
        if self._last_interaction is None:
            return False
        elapsed = arrival_time - self._last_interaction
        return elapsed > timedelta(minutes=threshold_minutes)

    def is_possible_attack(
        self,
        window_minutes: int = DEFAULT_ATTACK_WINDOW_MINUTES,
        max_in_window: int = DEFAULT_MAX_IN_WINDOW,
        now: Optional[datetime] = None,
    ) -> bool:
        now = _as_utc(now) if now is not None else self.now()
        with self._lock:
            return self._possible_attack(now, window_minutes, max_in_window)

    def _possible_attack(self, now: datetime, window_minutes: int, max_in_window: int) -> bool:
        window_start = now - timedelta(minutes=window_minutes)
        first = bisect.bisect_left(self._otp_events, window_start)
        return len(self._otp_events) - first > max_in_window

    def observe(
        self,
        arrival_time: datetime,
        threshold_minutes: int = DEFAULT_INTERACTION_THRESHOLD_MINUTES,
        window_minutes: int = DEFAULT_ATTACK_WINDOW_MINUTES,
        max_in_window: int = DEFAULT_MAX_IN_WINDOW,
    ) -> ContextFlags:
        """Record the OTP event for this message, then read both flags.

        Both happen under one lock acquisition so the current message always
        counts toward its own attack window.
        """
        ts = _as_utc(arrival_time)
        with self._lock:
            self._insert_and_prune(ts)
            flags = ContextFlags(
                context_suspicious=self._context_suspicious(ts, threshold_minutes),
                possible_attack=self._possible_attack(ts, window_minutes, max_in_window),
            )
            in_log = len(self._otp_events)
        logger.debug(
            f"Context observed at {ts.isoformat()}: suspicious={flags.context_suspicious} "
            f"attack={flags.possible_attack} events={in_log}"
        )
        return flags

    # ==================== State Management ====================

    @property
    def last_interaction(self) -> Optional[datetime]:
        with self._lock:
            return self._last_interaction

    def otp_events(self) -> List[datetime]:
        with self._lock:
            return list(self._otp_events)

    def restore(
        self,
        otp_events: Iterable[datetime] = (),
        last_interaction: Optional[datetime] = None,
    ) -> None:
        """Seed state from a persistent log (after a restart)."""
        events = sorted(_as_utc(ts) for ts in otp_events)
        with self._lock:
            if events:
                cutoff = events[-1] - self._retention
                events = [ts for ts in events if ts >= cutoff]
            self._otp_events = events
            if last_interaction is not None:
                self._last_interaction = _as_utc(last_interaction)
        logger.info(f"Context restored: {len(events)} OTP events, last interaction {last_interaction}")

    def reset(self) -> None:
        with self._lock:
            self._last_interaction = None
            self._otp_events = []

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "lastInteraction": self._last_interaction.isoformat() if self._last_interaction else None,
                "otpEvents": [ts.isoformat() for ts in self._otp_events],
            }

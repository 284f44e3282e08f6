"""Persistent event log for OTP timestamps and last-interaction time.

Lets the context tracker survive process restarts. Two implementations:

    NullEventLog      — logs each call and stores nothing (in-memory only)
    JsonFileEventLog  — a single JSON document, keeps the last 1000 events

    {
        "otpEvents":       ["2026-01-01T10:00:00+00:00", ...],
        "lastInteraction": "2026-01-01T09:59:00+00:00"
    }

Storage failures are logged and swallowed here; an analysis never fails
because its event could not be written.
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


MAX_STORED_EVENTS: int = 1000


class EventLog(Protocol):
    def save_otp_event(self, ts: datetime) -> None: ...
    def load_otp_events(self, since: Optional[datetime] = None) -> List[datetime]: ...
    def delete_otp_events_before(self, cutoff: datetime) -> int: ...
    def save_last_interaction(self, ts: datetime) -> None: ...
    def load_last_interaction(self) -> Optional[datetime]: ...
    def clear(self) -> None: ...


class NullEventLog:
    """Accepts every call, stores nothing."""

    def save_otp_event(self, ts: datetime) -> None:
        logger.debug(f"Event log disabled; OTP event at {ts.isoformat()} not stored")

    def load_otp_events(self, since: Optional[datetime] = None) -> List[datetime]:
        return []

    def delete_otp_events_before(self, cutoff: datetime) -> int:
        return 0

    def save_last_interaction(self, ts: datetime) -> None:
        logger.debug(f"Event log disabled; interaction at {ts.isoformat()} not stored")

    def load_last_interaction(self) -> Optional[datetime]:
        return None

    def clear(self) -> None:
        pass


def _parse_ts(raw: Any) -> Optional[datetime]:
    if not isinstance(raw, str):
        return None
    try:
        ts = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


class JsonFileEventLog:
    """Event log backed by one JSON file. Thread-safe within a process."""

    def __init__(self, path: str, max_events: int = MAX_STORED_EVENTS) -> None:
        self.path = path
        self.max_events = max_events
        self._lock = threading.Lock()

    # ==================== File I/O ====================

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {"otpEvents": [], "lastInteraction": None}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError, ValueError) as exc:
            logger.warning(f"Event log {self.path} unreadable, starting empty: {exc}")
            return {"otpEvents": [], "lastInteraction": None}
        if not isinstance(data, dict):
            return {"otpEvents": [], "lastInteraction": None}
        events = data.get("otpEvents")
        return {
            "otpEvents": events if isinstance(events, list) else [],
            "lastInteraction": data.get("lastInteraction"),
        }

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            with open(self.path, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
        except OSError as exc:
            logger.warning(f"Failed to persist event log {self.path}: {exc}")

    # ==================== OTP Events ====================

    def save_otp_event(self, ts: datetime) -> None:
        with self._lock:
            data = self._read()
            data["otpEvents"].append(ts.isoformat())
            # Keep only the most recent events to prevent unbounded growth
            if len(data["otpEvents"]) > self.max_events:
                data["otpEvents"] = data["otpEvents"][-self.max_events:]
            self._write(data)

    def load_otp_events(self, since: Optional[datetime] = None) -> List[datetime]:
        with self._lock:
            data = self._read()
        events = [ts for ts in (_parse_ts(raw) for raw in data["otpEvents"]) if ts is not None]
        if since is not None:
            events = [ts for ts in events if ts >= since]
        return sorted(events)

    def delete_otp_events_before(self, cutoff: datetime) -> int:
        with self._lock:
            data = self._read()
            kept = []
            for raw in data["otpEvents"]:
                ts = _parse_ts(raw)
                if ts is not None and ts >= cutoff:
                    kept.append(raw)
            removed = len(data["otpEvents"]) - len(kept)
            if removed:
                data["otpEvents"] = kept
                self._write(data)
        return removed

    # ==================== Interaction ====================

    def save_last_interaction(self, ts: datetime) -> None:
        with self._lock:
            data = self._read()
            data["lastInteraction"] = ts.isoformat()
            self._write(data)

    def load_last_interaction(self) -> Optional[datetime]:
        with self._lock:
            data = self._read()
        return _parse_ts(data.get("lastInteraction"))

    def clear(self) -> None:
        with self._lock:
            self._write({"otpEvents": [], "lastInteraction": None})

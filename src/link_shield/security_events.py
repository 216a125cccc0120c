"""
Security event log.

Persistent, newest-first audit trail of authentication and lockout events,
capped at a fixed number of entries with the oldest evicted first. Events
are stored as one JSON blob in a KeyValueStore; concurrent writers are not
serialized and the last write wins.
"""

import csv
import io
import json
import secrets
import time
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .enums import LogLevel, SecurityEventSeverity, SecurityEventType
from .exceptions import StateError
from .models import EventFilter, SecurityEvent, SecurityMetrics
from .storage import InMemoryKeyValueStore, KeyValueStore

DAY_MS = 24 * 60 * 60 * 1000

CRITICAL_EVENTS = frozenset({
    SecurityEventType.ACCOUNT_LOCKED,
    SecurityEventType.ROOT_DETECTED,
    SecurityEventType.SECURITY_WARNING,
})

WARNING_EVENTS = frozenset({
    SecurityEventType.AUTH_FAILURE,
    SecurityEventType.RATE_LIMIT_TRIGGERED,
    SecurityEventType.OTP_FAILED,
    SecurityEventType.OTP_EXPIRED,
})

CSV_HEADERS = ["ID", "Timestamp", "Date", "Type", "Severity", "Message", "Details"]


def severity_for(event_type: SecurityEventType) -> SecurityEventSeverity:
    """Severity is a fixed function of the event type."""
    if event_type in CRITICAL_EVENTS:
        return SecurityEventSeverity.CRITICAL
    if event_type in WARNING_EVENTS:
        return SecurityEventSeverity.WARNING
    return SecurityEventSeverity.INFO


def _now_ms() -> int:
    return int(time.time() * 1000)


class SecurityEventLogger:
    """Ring buffer of security events backed by a key-value store."""

    STORAGE_KEY = "link_shield.security_events"

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        max_events: int = 1000,
        logger: Optional[AuditLogger] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """
        Initialize the event log.

        Args:
            store: Durable storage (in-memory if omitted)
            max_events: Capacity of the ring buffer
            logger: Optional audit logger mirroring each event
            clock: Time source in epoch milliseconds
        """
        self._store = store or InMemoryKeyValueStore()
        self._max_events = max_events
        self._logger = logger
        self._clock = clock

    @property
    def max_events(self) -> int:
        return self._max_events

    def log_event(
        self,
        event_type: SecurityEventType,
        message: str,
        details: Optional[dict] = None,
    ) -> Optional[SecurityEvent]:
        """
        Append an event.

        A storage failure is logged and the event is dropped; recording an
        audit event never breaks the calling flow.

        Returns:
            The stored event, or None if it could not be persisted
        """
        timestamp = self._clock()
        event = SecurityEvent(
            id=f"evt_{timestamp}_{secrets.token_hex(5)}",
            timestamp=timestamp,
            type=event_type,
            severity=severity_for(event_type),
            message=message,
            details=dict(details or {}),
        )

        try:
            events = self._load()
            events.insert(0, event)
            self._save(events[:self._max_events])
        except StateError as e:
            self._log_error("Failed to persist security event", e)
            return None

        if self._logger:
            level = LogLevel.WARN if event.severity != SecurityEventSeverity.INFO else LogLevel.INFO
            self._logger.log(level, "SecurityEventLogger", f"[{event_type.value}] {message}", event.details)
        return event

    def get_all_events(self) -> list[SecurityEvent]:
        """All events, newest first. Unreadable storage yields no events."""
        try:
            return self._load()
        except StateError as e:
            self._log_error("Failed to read security events", e)
            return []

    def get_events(self, event_filter: Optional[EventFilter] = None) -> list[SecurityEvent]:
        """Events matching a filter, newest first."""
        events = self.get_all_events()
        if event_filter is None:
            return events

        if event_filter.types:
            wanted = set(event_filter.types)
            events = [e for e in events if e.type in wanted]
        if event_filter.severity is not None:
            events = [e for e in events if e.severity == event_filter.severity]
        if event_filter.since is not None:
            events = [e for e in events if e.timestamp >= event_filter.since]
        if event_filter.until is not None:
            events = [e for e in events if e.timestamp <= event_filter.until]
        if event_filter.limit is not None:
            events = events[:max(0, event_filter.limit)]
        return events

    def get_metrics(self) -> SecurityMetrics:
        events = self.get_all_events()
        cutoff = self._clock() - DAY_MS
        recent = [e for e in events if e.timestamp >= cutoff]

        by_type: dict[str, int] = {}
        by_severity: dict[str, int] = {}
        for event in events:
            by_type[event.type.value] = by_type.get(event.type.value, 0) + 1
            by_severity[event.severity.value] = by_severity.get(event.severity.value, 0) + 1

        # Newest lock/unlock event decides whether a lockout is active
        lock_events = [
            e for e in recent
            if e.type in (SecurityEventType.ACCOUNT_LOCKED, SecurityEventType.ACCOUNT_UNLOCKED)
        ]
        active_lockouts = 1 if lock_events and lock_events[0].type == SecurityEventType.ACCOUNT_LOCKED else 0

        return SecurityMetrics(
            total_events=len(events),
            by_type=by_type,
            by_severity=by_severity,
            events_last_24h=len(recent),
            last_event_at=events[0].timestamp if events else None,
            auth_failures_last_24h=sum(1 for e in recent if e.type == SecurityEventType.AUTH_FAILURE),
            rate_limit_events_last_24h=sum(
                1 for e in recent
                if e.type in (SecurityEventType.RATE_LIMIT_TRIGGERED, SecurityEventType.ACCOUNT_LOCKED)
            ),
            active_lockouts=active_lockouts,
        )

    def export_json(self, event_filter: Optional[EventFilter] = None) -> str:
        return json.dumps([self._to_dict(e) for e in self.get_events(event_filter)], indent=2)

    def export_csv(self, event_filter: Optional[EventFilter] = None) -> str:
        """CSV export with a header row. An empty log exports the header only."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for event in self.get_events(event_filter):
            date = datetime.fromtimestamp(event.timestamp / 1000, tz=timezone.utc).isoformat()
            writer.writerow([
                event.id,
                event.timestamp,
                date,
                event.type.value,
                event.severity.value,
                event.message,
                json.dumps(event.details, sort_keys=True) if event.details else "",
            ])
        return buffer.getvalue()

    def delete_older_than(self, days: float) -> int:
        """
        Delete events older than ``days`` days.

        Returns:
            Number of deleted events

        Raises:
            StateError: If the pruned log cannot be written
        """
        cutoff = self._clock() - int(days * DAY_MS)
        events = self.get_all_events()
        kept = [e for e in events if e.timestamp >= cutoff]
        deleted = len(events) - len(kept)
        if deleted:
            self._save(kept)
        return deleted

    def clear(self) -> None:
        """
        Remove every event.

        Raises:
            StateError: If storage cannot be updated
        """
        self._store.remove(self.STORAGE_KEY)
        if self._logger:
            self._logger.log(LogLevel.INFO, "SecurityEventLogger", "All security events cleared")

    def _load(self) -> list[SecurityEvent]:
        raw = self._store.get(self.STORAGE_KEY)
        if not raw:
            return []
        try:
            return [self._from_dict(item) for item in json.loads(raw)]
        except (json.JSONDecodeError, TypeError, KeyError, ValueError) as e:
            raise StateError(
                code="invalid_format",
                message=f"Security event log is malformed: {e}",
            )

    def _save(self, events: list[SecurityEvent]) -> None:
        self._store.set(self.STORAGE_KEY, json.dumps([self._to_dict(e) for e in events]))

    @staticmethod
    def _to_dict(event: SecurityEvent) -> dict:
        data = asdict(event)
        data["type"] = event.type.value
        data["severity"] = event.severity.value
        return data

    @staticmethod
    def _from_dict(data: dict) -> SecurityEvent:
        return SecurityEvent(
            id=data["id"],
            timestamp=int(data["timestamp"]),
            type=SecurityEventType(data["type"]),
            severity=SecurityEventSeverity(data["severity"]),
            message=data["message"],
            details=data.get("details") or {},
        )

    def _log_error(self, message: str, error: Exception) -> None:
        if self._logger:
            self._logger.log_error("SecurityEventLogger", message, error=error)

"""
Property-based tests for the security event log.

Verifies ordering, the ring-buffer capacity, filtering, metrics and
the JSON/CSV exports.
"""

import csv
import io
import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from link_shield.enums import SecurityEventSeverity, SecurityEventType
from link_shield.exceptions import StateError
from link_shield.models import EventFilter
from link_shield.security_events import CSV_HEADERS, DAY_MS, SecurityEventLogger, severity_for
from link_shield.storage import InMemoryKeyValueStore, KeyValueStore


class FakeClock:
    """Controllable time source in epoch milliseconds."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class ReadOnlyStore(InMemoryKeyValueStore):
    """Store that can be read but never written."""

    def set(self, key, value):
        raise StateError(code="io_error", message="read-only")


event_type_strategy = st.sampled_from(list(SecurityEventType))


class TestRingBufferProperty:
    """Property tests for ordering and capacity."""

    @given(types=st.lists(event_type_strategy, min_size=1, max_size=30), capacity=st.integers(min_value=1, max_value=10))
    @settings(max_examples=100)
    def test_newest_first_and_capped(self, types: list, capacity: int) -> None:
        """
        *For any* sequence of events, the log SHALL hold at most its
        capacity, newest first, evicting the oldest.
        """
        clock = FakeClock()
        log = SecurityEventLogger(max_events=capacity, clock=clock)

        for i, event_type in enumerate(types):
            log.log_event(event_type, f"event {i}")
            clock.advance(1)

        events = log.get_all_events()
        expected = [f"event {i}" for i in reversed(range(len(types)))][:capacity]
        assert [event.message for event in events] == expected
        assert all(a.timestamp >= b.timestamp for a, b in zip(events, events[1:]))

    @given(event_type=event_type_strategy)
    def test_severity_fixed_by_type(self, event_type: SecurityEventType) -> None:
        """*For any* event type, the stored severity SHALL be the type's fixed severity."""
        event = SecurityEventLogger().log_event(event_type, "x")

        assert event.severity == severity_for(event_type)

    def test_severity_table(self) -> None:
        assert severity_for(SecurityEventType.ACCOUNT_LOCKED) == SecurityEventSeverity.CRITICAL
        assert severity_for(SecurityEventType.AUTH_FAILURE) == SecurityEventSeverity.WARNING
        assert severity_for(SecurityEventType.AUTH_SUCCESS) == SecurityEventSeverity.INFO

    def test_events_persist_through_store(self) -> None:
        store = InMemoryKeyValueStore()
        SecurityEventLogger(store=store).log_event(SecurityEventType.PIN_CREATED, "PIN created", {"source": "setup"})

        events = SecurityEventLogger(store=store).get_all_events()

        assert len(events) == 1
        assert events[0].details == {"source": "setup"}
        assert events[0].id.startswith("evt_")


class TestStorageFailureProperty:
    """Storage failures never break the caller."""

    def test_write_failure_drops_event(self) -> None:
        log = SecurityEventLogger(store=ReadOnlyStore())

        assert log.log_event(SecurityEventType.AUTH_FAILURE, "x") is None
        assert log.get_all_events() == []

    def test_malformed_log_reads_empty(self) -> None:
        store = InMemoryKeyValueStore({SecurityEventLogger.STORAGE_KEY: '[{"id": 1}]'})

        assert SecurityEventLogger(store=store).get_all_events() == []


class TestFilterProperty:
    """Property tests for event selection."""

    @given(types=st.lists(event_type_strategy, min_size=1, max_size=20), wanted=st.sets(event_type_strategy, min_size=1))
    @settings(max_examples=100)
    def test_type_filter(self, types: list, wanted: set) -> None:
        """*For any* type filter, only events of the selected types SHALL be returned."""
        log = SecurityEventLogger()
        for event_type in types:
            log.log_event(event_type, "x")

        selected = log.get_events(EventFilter(types=list(wanted)))

        assert all(event.type in wanted for event in selected)
        assert len(selected) == sum(1 for t in types if t in wanted)

    def test_time_severity_and_limit(self) -> None:
        clock = FakeClock()
        log = SecurityEventLogger(clock=clock)
        log.log_event(SecurityEventType.AUTH_FAILURE, "old failure")
        start = clock.now
        clock.advance(1000)
        log.log_event(SecurityEventType.AUTH_FAILURE, "new failure")
        log.log_event(SecurityEventType.AUTH_SUCCESS, "success")

        recent = log.get_events(EventFilter(since=start + 1))
        warnings = log.get_events(EventFilter(severity=SecurityEventSeverity.WARNING))
        limited = log.get_events(EventFilter(limit=1))

        assert [e.message for e in recent] == ["success", "new failure"]
        assert [e.message for e in warnings] == ["new failure", "old failure"]
        assert [e.message for e in limited] == ["success"]
        assert [e.message for e in log.get_events(EventFilter(until=start))] == ["old failure"]


class TestMetricsProperty:
    """Aggregate counts."""

    def test_metrics(self) -> None:
        clock = FakeClock()
        log = SecurityEventLogger(clock=clock)
        log.log_event(SecurityEventType.AUTH_FAILURE, "ancient")
        clock.advance(2 * DAY_MS)
        for _ in range(3):
            log.log_event(SecurityEventType.AUTH_FAILURE, "failure")
        log.log_event(SecurityEventType.ACCOUNT_LOCKED, "locked")

        metrics = log.get_metrics()

        assert metrics.total_events == 5
        assert metrics.events_last_24h == 4
        assert metrics.auth_failures_last_24h == 3
        assert metrics.rate_limit_events_last_24h == 1
        assert metrics.active_lockouts == 1
        assert metrics.by_type["auth_failure"] == 4
        assert metrics.by_severity["critical"] == 1
        assert metrics.last_event_at == clock.now

    def test_unlock_clears_active_lockout(self) -> None:
        log = SecurityEventLogger(clock=FakeClock())
        log.log_event(SecurityEventType.ACCOUNT_LOCKED, "locked")
        log.log_event(SecurityEventType.ACCOUNT_UNLOCKED, "unlocked")

        assert log.get_metrics().active_lockouts == 0

    def test_empty_metrics(self) -> None:
        metrics = SecurityEventLogger().get_metrics()

        assert metrics.total_events == 0
        assert metrics.last_event_at is None


class TestExportProperty:
    """JSON and CSV exports."""

    def test_csv_header_only_when_empty(self) -> None:
        assert SecurityEventLogger().export_csv() == ",".join(CSV_HEADERS) + "\n"

    @given(messages=st.lists(
        st.text(alphabet=st.characters(blacklist_categories=("Cc", "Cs")), min_size=1, max_size=30),
        min_size=1,
        max_size=10,
    ))
    @settings(max_examples=50)
    def test_csv_rows_parse_back(self, messages: list) -> None:
        """*For any* messages, including commas and quotes, each CSV row SHALL parse back to its event."""
        log = SecurityEventLogger(clock=FakeClock())
        for message in messages:
            log.log_event(SecurityEventType.SECURITY_WARNING, message, {"note": "a,b"})

        rows = list(csv.reader(io.StringIO(log.export_csv())))

        assert rows[0] == CSV_HEADERS
        assert len(rows) == len(messages) + 1
        assert [row[5] for row in rows[1:]] == list(reversed(messages))
        assert json.loads(rows[1][6]) == {"note": "a,b"}

    def test_json_export(self) -> None:
        log = SecurityEventLogger(clock=FakeClock())
        log.log_event(SecurityEventType.OTP_FAILED, "bad code", {"attempt": 2})

        exported = json.loads(log.export_json())

        assert exported[0]["type"] == "otp_failed"
        assert exported[0]["severity"] == "warning"
        assert exported[0]["details"] == {"attempt": 2}


class TestRetentionProperty:
    """Pruning and clearing."""

    def test_delete_older_than(self) -> None:
        clock = FakeClock()
        log = SecurityEventLogger(clock=clock)
        log.log_event(SecurityEventType.AUTH_SUCCESS, "old")
        clock.advance(10 * DAY_MS)
        log.log_event(SecurityEventType.AUTH_SUCCESS, "new")

        deleted = log.delete_older_than(7)

        assert deleted == 1
        assert [e.message for e in log.get_all_events()] == ["new"]

    def test_clear(self) -> None:
        log = SecurityEventLogger()
        log.log_event(SecurityEventType.AUTH_SUCCESS, "x")

        log.clear()

        assert log.get_all_events() == []

    def test_clear_failure_raises(self) -> None:
        class BrokenStore(KeyValueStore):
            def get(self, key):
                return None

            def set(self, key, value):
                pass

            def remove(self, key):
                raise StateError(code="io_error", message="locked")

        with pytest.raises(StateError):
            SecurityEventLogger(store=BrokenStore()).clear()

"""
PIN verification rate limiter.

Tracks failed PIN attempts in a KeyValueStore and locks verification for a
fixed period once the attempt threshold is reached. Failed attempts older
than the cooldown period are forgotten.

Any storage failure fails closed: when the attempt record cannot be read
or written, verification is reported as blocked for a full lockout period
rather than silently allowed.
"""

import json
import math
import time
from dataclasses import asdict
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .config import PinLockoutConfig
from .enums import LogLevel, SecurityEventType
from .exceptions import StateError
from .models import RateLimitResult, RateLimitState
from .security_events import SecurityEventLogger
from .storage import InMemoryKeyValueStore, KeyValueStore


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def format_lockout_time(wait_time_ms: int) -> str:
    """Round a wait time up to whole minutes ("1 minute", "15 minutes")."""
    minutes = max(1, math.ceil(wait_time_ms / 60000))
    if minutes == 1:
        return "1 minute"
    return f"{minutes} minutes"


class PinRateLimiter:
    """
    Failed-attempt counter with lockout.

    The record is read and written as one blob; two racing writers are not
    serialized and the last write wins.
    """

    STORAGE_KEY = "link_shield.pin_attempts"

    format_lockout_time = staticmethod(format_lockout_time)

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        config: Optional[PinLockoutConfig] = None,
        security_log: Optional[SecurityEventLogger] = None,
        logger: Optional[AuditLogger] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            store: Storage for the attempt record (in-memory if omitted)
            config: Attempt threshold, lockout and cooldown durations
            security_log: Optional security event log for lock/unlock events
            logger: Optional audit logger
            clock: Time source in epoch milliseconds
        """
        self._store = store or InMemoryKeyValueStore()
        self._config = config or PinLockoutConfig()
        self._security_log = security_log
        self._logger = logger
        self._clock = clock

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    @property
    def lockout_ms(self) -> int:
        return int(self._config.lockout_seconds * 1000)

    @property
    def cooldown_ms(self) -> int:
        return int(self._config.cooldown_seconds * 1000)

    def check_rate_limit(self) -> RateLimitResult:
        """Report whether a PIN verification may be attempted now."""
        try:
            state = self.get_state()
            now = self._clock()

            if self._is_locked(state, now):
                return self._locked_result(state, now)

            if self._is_stale(state, now):
                self.clear_attempts()
                return RateLimitResult(allowed=True, remaining_attempts=self.max_attempts)

            return RateLimitResult(
                allowed=True,
                remaining_attempts=max(0, self.max_attempts - state.failed_attempts),
            )
        except StateError as e:
            return self._fail_closed("Rate limit check failed", e)

    def record_failed_attempt(self) -> RateLimitResult:
        """
        Count a failed PIN attempt, locking once the threshold is reached.

        Attempts made while already locked do not extend the lockout.
        """
        try:
            state = self.get_state()
            now = self._clock()

            if self._is_locked(state, now):
                return self._locked_result(state, now)
            if self._is_stale(state, now):
                state = RateLimitState()

            state.failed_attempts += 1
            state.first_attempt_at = state.first_attempt_at or now
            state.last_attempt_at = now

            self._log(
                LogLevel.WARN,
                "Failed PIN attempt recorded",
                {"attempt_number": state.failed_attempts, "max_attempts": self.max_attempts},
            )
            self._emit(
                SecurityEventType.AUTH_FAILURE,
                "PIN verification failed",
                {"attempt_number": state.failed_attempts},
            )

            if state.failed_attempts >= self.max_attempts:
                state.lockout_ends_at = now + self.lockout_ms
                self._save_state(state)
                self._log(
                    LogLevel.WARN,
                    "PIN lockout triggered",
                    {"attempts": state.failed_attempts, "lockout_ends_at": state.lockout_ends_at},
                )
                self._emit(
                    SecurityEventType.ACCOUNT_LOCKED,
                    "PIN verification locked after too many failed attempts",
                    {"attempt_count": state.failed_attempts, "lockout_duration_ms": self.lockout_ms},
                )
                return RateLimitResult(
                    allowed=False,
                    lockout_ends_at=state.lockout_ends_at,
                    wait_time_ms=self.lockout_ms,
                )

            self._save_state(state)
            return RateLimitResult(
                allowed=True,
                remaining_attempts=self.max_attempts - state.failed_attempts,
            )
        except StateError as e:
            return self._fail_closed("Failed to record PIN attempt", e)

    def record_successful_attempt(self) -> RateLimitResult:
        """Clear the failed-attempt record after a correct PIN."""
        try:
            had_attempts = self.get_state().failed_attempts > 0
            self.clear_attempts()
        except StateError as e:
            return self._fail_closed("Failed to clear attempts after success", e)

        self._emit(SecurityEventType.AUTH_SUCCESS, "PIN verified successfully")
        if had_attempts:
            self._emit(SecurityEventType.RATE_LIMIT_CLEARED, "Failed PIN attempts cleared after success")
        return RateLimitResult(allowed=True, remaining_attempts=self.max_attempts)

    def force_unlock(self) -> RateLimitResult:
        """Clear any lockout immediately (recovery/admin flow)."""
        try:
            self.clear_attempts()
        except StateError as e:
            return self._fail_closed("Failed to force unlock", e)

        self._log(LogLevel.WARN, "PIN rate limit force unlocked")
        self._emit(SecurityEventType.ACCOUNT_UNLOCKED, "PIN lockout cleared by recovery action")
        return RateLimitResult(allowed=True, remaining_attempts=self.max_attempts)

    def clear_attempts(self) -> None:
        """
        Remove the attempt record.

        Raises:
            StateError: If storage cannot be updated
        """
        self._store.remove(self.STORAGE_KEY)

    def get_state(self) -> RateLimitState:
        """
        Read the attempt record.

        Raises:
            StateError: If storage is unreadable or the record is malformed
        """
        raw = self._store.get(self.STORAGE_KEY)
        if not raw:
            return RateLimitState()
        try:
            state = RateLimitState(**json.loads(raw))
        except (json.JSONDecodeError, TypeError) as e:
            raise StateError(
                code="invalid_format",
                message=f"PIN attempt record is malformed: {e}",
            )

        if not _is_count(state.failed_attempts):
            raise StateError(
                code="invalid_format",
                message="PIN attempt record has an invalid failed_attempts value",
                details={"failed_attempts": repr(state.failed_attempts)},
            )
        for name in ("lockout_ends_at", "last_attempt_at", "first_attempt_at"):
            value = getattr(state, name)
            if value is not None and not _is_count(value):
                raise StateError(
                    code="invalid_format",
                    message=f"PIN attempt record has an invalid {name} value",
                    details={name: repr(value)},
                )
        return state

    def _save_state(self, state: RateLimitState) -> None:
        self._store.set(self.STORAGE_KEY, json.dumps(asdict(state)))

    def _is_locked(self, state: RateLimitState, now: int) -> bool:
        return state.lockout_ends_at is not None and now < state.lockout_ends_at

    def _is_stale(self, state: RateLimitState, now: int) -> bool:
        # An expired lockout or an attempt window past the cooldown starts over
        if state.lockout_ends_at is not None:
            return now >= state.lockout_ends_at
        return state.first_attempt_at is not None and now - state.first_attempt_at > self.cooldown_ms

    def _locked_result(self, state: RateLimitState, now: int) -> RateLimitResult:
        wait_time_ms = state.lockout_ends_at - now
        self._log(
            LogLevel.WARN,
            "PIN verification blocked - account locked",
            {"lockout_ends_at": state.lockout_ends_at, "wait_time_ms": wait_time_ms},
        )
        return RateLimitResult(
            allowed=False,
            lockout_ends_at=state.lockout_ends_at,
            wait_time_ms=wait_time_ms,
        )

    def _fail_closed(self, message: str, error: StateError) -> RateLimitResult:
        if self._logger:
            self._logger.log_error("PinRateLimiter", message, error=error)
        return RateLimitResult(allowed=False, wait_time_ms=self.lockout_ms)

    def _emit(self, event_type: SecurityEventType, message: str, details: Optional[dict] = None) -> None:
        if self._security_log:
            self._security_log.log_event(event_type, message, details)

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, "PinRateLimiter", message, data)

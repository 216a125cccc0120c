"""
Trust registry: static trusted domains plus user-earned trust.

Static trust covers the curated domain list, subdomains of listed domains,
and whole government/academic zones. User-earned trust is granted after
repeated explicit "this is safe" feedback and revoked by a single "unsafe"
report. Feedback counters persist through a KeyValueStore.
"""

import json
import time
from dataclasses import asdict
from typing import Callable, Iterable, Optional

from .audit_logger import AuditLogger
from .enums import LogLevel
from .exceptions import StateError
from .models import DomainFeedback, TrustRecord
from .storage import InMemoryKeyValueStore, KeyValueStore
from .trust_data import OFFICIAL_BRAND_DOMAINS, TRUSTED_DOMAINS, TRUSTED_SUFFIXES
from .url_parser import host_matches


def _now_ms() -> int:
    return int(time.time() * 1000)


def normalize_domain(domain: str) -> str:
    """Lowercase a domain and drop a trailing dot and leading 'www.'."""
    normalized = domain.strip().lower().rstrip(".")
    if normalized.startswith("www."):
        normalized = normalized[4:]
    return normalized


def parent_domains(domain: str) -> Iterable[str]:
    """Yield the domain and each of its parents, most specific first."""
    labels = domain.split(".")
    for i in range(len(labels) - 1):
        yield ".".join(labels[i:])


class TrustRegistry:
    """
    Lookup of statically trusted and user-trusted domains.

    Static trust costs O(depth) set lookups: the host and each parent domain
    are tested against the trusted set.
    """

    AUTO_TRUST_THRESHOLD = 3
    STORAGE_KEY = "link_shield.trust_feedback"

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        trusted_domains: Optional[Iterable[str]] = None,
        logger: Optional[AuditLogger] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """
        Initialize the registry.

        Args:
            store: Storage for feedback counters (in-memory if omitted)
            trusted_domains: Override of the static trusted list
            logger: Optional audit logger
            clock: Time source in epoch milliseconds
        """
        self._store = store or InMemoryKeyValueStore()
        self._trusted = frozenset(
            normalize_domain(d) for d in (TRUSTED_DOMAINS if trusted_domains is None else trusted_domains)
        )
        self._logger = logger
        self._clock = clock

    def is_statically_trusted(self, domain: str) -> bool:
        host = normalize_domain(domain)
        if not host:
            return False
        if any(parent in self._trusted for parent in parent_domains(host)):
            return True
        return host.endswith(TRUSTED_SUFFIXES)

    def is_official_brand_domain(self, domain: str) -> bool:
        host = normalize_domain(domain)
        return any(host_matches(host, official) for official in OFFICIAL_BRAND_DOMAINS)

    def is_user_trusted(self, domain: str) -> bool:
        feedback = self.get_feedback(domain)
        return feedback is not None and feedback.auto_trusted

    def is_trusted(self, domain: str) -> bool:
        return self.is_statically_trusted(domain) or self.is_user_trusted(domain)

    def get_record(self, domain: str) -> TrustRecord:
        host = normalize_domain(domain)
        return TrustRecord(
            domain=host,
            statically_trusted=self.is_statically_trusted(host),
            user_earned_trust=self.is_user_trusted(host),
        )

    def get_feedback(self, domain: str) -> Optional[DomainFeedback]:
        return self._load_feedback().get(normalize_domain(domain))

    def record_feedback(self, domain: str, is_safe: bool) -> DomainFeedback:
        """
        Record explicit user feedback for a domain.

        Three "safe" reports grant trust; any "unsafe" report revokes it.
        Counts are kept either way.

        Raises:
            StateError: If the feedback cannot be persisted
        """
        host = normalize_domain(domain)
        all_feedback = self._load_feedback()
        feedback = all_feedback.get(host) or DomainFeedback(domain=host)

        if is_safe:
            feedback.safe_count += 1
            if feedback.safe_count >= self.AUTO_TRUST_THRESHOLD:
                feedback.auto_trusted = True
        else:
            feedback.unsafe_count += 1
            feedback.auto_trusted = False

        feedback.last_updated = self._clock()
        all_feedback[host] = feedback
        self._save_feedback(all_feedback)

        self._log(
            LogLevel.INFO,
            "Recorded domain feedback",
            {
                "domain": host,
                "is_safe": is_safe,
                "safe_count": feedback.safe_count,
                "unsafe_count": feedback.unsafe_count,
                "auto_trusted": feedback.auto_trusted,
            },
        )
        return feedback

    def remove_feedback(self, domain: str) -> None:
        host = normalize_domain(domain)
        all_feedback = self._load_feedback()
        if all_feedback.pop(host, None) is not None:
            self._save_feedback(all_feedback)

    def _load_feedback(self) -> dict[str, DomainFeedback]:
        # Unreadable feedback means no user trust, never extra trust
        try:
            raw = self._store.get(self.STORAGE_KEY)
        except StateError as e:
            self._log_error("Failed to read trust feedback", e)
            return {}
        if not raw:
            return {}

        try:
            data = json.loads(raw)
            return {
                domain: DomainFeedback(**entry)
                for domain, entry in data.items()
            }
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            self._log_error("Discarding malformed trust feedback", e)
            return {}

    def _save_feedback(self, all_feedback: dict[str, DomainFeedback]) -> None:
        payload = {domain: asdict(feedback) for domain, feedback in all_feedback.items()}
        self._store.set(self.STORAGE_KEY, json.dumps(payload, sort_keys=True))

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, "TrustRegistry", message, data)

    def _log_error(self, message: str, error: Exception) -> None:
        if self._logger:
            self._logger.log_error("TrustRegistry", message, error=error)

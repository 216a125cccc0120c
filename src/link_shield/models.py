"""
Data models for the link safety engine.

This module defines the result objects passed between components: redirect
chains, reputation and domain-age lookups, threat-intel verdicts, heuristic
scores, review checks, and the persisted state of the PIN rate limiter and
security event log. Results are created once and consumed read-only.
"""

from dataclasses import dataclass, field
from typing import Optional

from .enums import (
    CheckId,
    HopType,
    ReputationTier,
    RiskLevel,
    SecurityEventSeverity,
    SecurityEventType,
    Severity,
    ThreatSource,
)


@dataclass
class RedirectHop:
    """A single URL visited while following a redirect chain."""

    url: str
    domain: str
    hop_type: HopType
    status_code: Optional[int] = None


@dataclass
class ResolvedURL:
    """Outcome of following a URL to its final destination."""

    original_url: str
    final_url: str
    chain: list[RedirectHop]
    cross_domain_hop_count: int
    is_suspicious_redirect: bool
    total_redirects: int
    error: Optional[str] = None


@dataclass
class TrustRecord:
    """Trust status of a domain."""

    domain: str
    statically_trusted: bool
    user_earned_trust: bool

    @property
    def is_trusted(self) -> bool:
        return self.statically_trusted or self.user_earned_trust


@dataclass
class DomainFeedback:
    """Accumulated user feedback for a single domain."""

    domain: str
    safe_count: int = 0
    unsafe_count: int = 0
    auto_trusted: bool = False
    last_updated: Optional[int] = None  # epoch milliseconds


@dataclass
class ReputationResult:
    """Popularity tier of a domain and the score adjustment it earns."""

    domain: str
    tier: ReputationTier
    score_adjustment: int
    is_known: bool


@dataclass
class DomainAgeResult:
    """
    Registration age of a domain.

    A ``None`` age with ``is_lookup_available=False`` means the age is
    unknown, not that the domain is old.
    """

    domain: str
    age_in_days: Optional[int]
    registration_date: Optional[str]
    is_new_domain: bool
    is_young_domain: bool
    is_lookup_available: bool
    from_cache: bool = False

    @classmethod
    def unavailable(cls, domain: str) -> "DomainAgeResult":
        return cls(
            domain=domain,
            age_in_days=None,
            registration_date=None,
            is_new_domain=False,
            is_young_domain=False,
            is_lookup_available=False,
        )


@dataclass
class ThreatIntelResult:
    """Verdict of an external threat intelligence lookup."""

    is_threat: bool
    threat_type: Optional[str] = None
    description: Optional[str] = None
    is_api_available: bool = True
    from_cache: bool = False
    source: Optional[ThreatSource] = None
    verified: bool = False
    detail_url: Optional[str] = None

    @classmethod
    def unavailable(cls, source: Optional[ThreatSource] = None) -> "ThreatIntelResult":
        return cls(is_threat=False, is_api_available=False, source=source)


@dataclass
class HeuristicDetails:
    """Per-category breakdown of a heuristic score."""

    brand_score: int = 0
    tld_score: int = 0
    structure_score: int = 0
    keyword_score: int = 0
    path_score: int = 0


@dataclass
class HeuristicScoreResult:
    """Heuristic phishing score of a URL (0-100)."""

    score: int
    is_suspicious: bool
    reasons: list[str]
    details: HeuristicDetails
    matched_brand: Optional[str] = None


@dataclass
class SafetyCheck:
    """A single named signal shown to the user."""

    id: CheckId
    passed: bool
    severity: Severity
    title: str
    description: str


@dataclass
class SafetyReviewResult:
    """Ordered checks and final risk level of a safety review."""

    url: str
    host: Optional[str]
    checks: list[SafetyCheck]
    risk_level: RiskLevel
    heuristic_score: int
    summary: str = ""
    recommendation: str = ""

    def get_check(self, check_id: CheckId) -> Optional[SafetyCheck]:
        """Return the check with the given identity, if present."""
        for check in self.checks:
            if check.id == check_id:
                return check
        return None

    @property
    def failed_checks(self) -> list[SafetyCheck]:
        return [check for check in self.checks if not check.passed]


@dataclass
class SafeLinkSignals:
    """Individual signals evaluated by the fast allow gate."""

    is_trusted_domain: bool = False
    is_https: bool = False
    has_no_dangerous_file: bool = False
    is_not_shortener: bool = False
    has_low_phish_score: bool = False
    reputation_tier: ReputationTier = ReputationTier.UNKNOWN


@dataclass
class SafeLinkResult:
    """Verdict of the fast allow gate."""

    is_safe: bool
    reason: str
    signals: SafeLinkSignals


@dataclass
class RateLimitState:
    """Persisted failed-attempt counter for PIN verification."""

    failed_attempts: int = 0
    lockout_ends_at: Optional[int] = None  # epoch milliseconds
    last_attempt_at: Optional[int] = None  # epoch milliseconds
    first_attempt_at: Optional[int] = None  # epoch milliseconds


@dataclass
class RateLimitResult:
    """Whether a PIN attempt may proceed."""

    allowed: bool
    remaining_attempts: Optional[int] = None
    lockout_ends_at: Optional[int] = None
    wait_time_ms: Optional[int] = None


@dataclass
class SecurityEvent:
    """A single entry of the security audit log."""

    id: str
    timestamp: int  # epoch milliseconds
    type: SecurityEventType
    severity: SecurityEventSeverity
    message: str
    details: dict = field(default_factory=dict)


@dataclass
class EventFilter:
    """Selection criteria for security events."""

    types: Optional[list[SecurityEventType]] = None
    severity: Optional[SecurityEventSeverity] = None
    since: Optional[int] = None
    until: Optional[int] = None
    limit: Optional[int] = None


@dataclass
class SecurityMetrics:
    """Aggregate counts over the security event log."""

    total_events: int
    by_type: dict[str, int]
    by_severity: dict[str, int]
    events_last_24h: int
    last_event_at: Optional[int] = None
    auth_failures_last_24h: int = 0
    rate_limit_events_last_24h: int = 0
    active_lockouts: int = 0


@dataclass
class LinkAnalysis:
    """Complete result of analysing a link end to end."""

    url: str
    resolved: ResolvedURL
    review: SafetyReviewResult
    heuristic: HeuristicScoreResult
    ml_probability: float
    reputation: ReputationResult
    adjusted_score: int
    fast_allow: SafeLinkResult
    domain_age: Optional[DomainAgeResult] = None
    threat_intel: Optional[ThreatIntelResult] = None
    duration_ms: float = 0.0

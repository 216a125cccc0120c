"""
Link Shield - Link safety analysis engine.

This package decides whether a link is likely a phishing, scam or malware
vector by combining redirect resolution, phishing heuristics, a small
feed-forward classifier, domain reputation and registration age, and
external threat intelligence into an ordered list of checks and a risk level.
"""

__version__ = "0.1.0"
__author__ = "Link Shield Team"

from link_shield.exceptions import (
    LinkShieldError,
    InputError,
    TransportError,
    ConfigError,
    StateError,
    TamperingError,
)
from link_shield.enums import (
    CheckId,
    HopType,
    LogLevel,
    LookupErrorCode,
    ReputationTier,
    RiskLevel,
    SecurityEventSeverity,
    SecurityEventType,
    Severity,
    ThreatSource,
    URLErrorCode,
)
from link_shield.config import (
    SafeBrowsingConfig,
    PhishTankConfig,
    DomainAgeConfig,
    ResolverConfig,
    PinLockoutConfig,
    SecurityLogConfig,
    PersistenceConfig,
    LoggingConfig,
    EngineConfig,
    config_from_dict,
    config_to_dict,
    load_config_from_file,
    save_config_to_file,
    apply_env_overrides,
)
from link_shield.models import (
    RedirectHop,
    ResolvedURL,
    TrustRecord,
    DomainFeedback,
    ReputationResult,
    DomainAgeResult,
    ThreatIntelResult,
    HeuristicDetails,
    HeuristicScoreResult,
    SafetyCheck,
    SafetyReviewResult,
    SafeLinkSignals,
    SafeLinkResult,
    RateLimitState,
    RateLimitResult,
    SecurityEvent,
    EventFilter,
    SecurityMetrics,
    LinkAnalysis,
)
from link_shield.url_parser import (
    URLCandidate,
    URLParseError,
    parse_url,
)
from link_shield.ttl_cache import TTLCache
from link_shield.storage import (
    KeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from link_shield.audit_logger import (
    AuditLogger,
    LogEntry,
)
from link_shield.trust_registry import TrustRegistry
from link_shield.domain_reputation import DomainReputationService
from link_shield.heuristic_scorer import HeuristicScorer
from link_shield.ml_classifier import (
    NetworkWeights,
    PhishingModel,
    extract_features,
)
from link_shield.redirect_resolver import RedirectResolver
from link_shield.rdap_client import (
    RDAPClient,
    RDAPResponse,
    RDAPParsedFields,
    RDAPEvent,
    RDAPError,
)
from link_shield.domain_age import DomainAgeChecker
from link_shield.threat_intel import (
    SafeBrowsingClient,
    PhishTankClient,
    combine_threat_results,
)
from link_shield.safe_link import SafeLinkHeuristic
from link_shield.review import (
    ReviewAggregator,
    perform_safety_review,
)
from link_shield.security_events import SecurityEventLogger
from link_shield.rate_limiter import (
    PinRateLimiter,
    format_lockout_time,
)
from link_shield.engine import LinkSafetyEngine
from link_shield.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
)

__all__ = [
    # Exceptions
    "LinkShieldError",
    "InputError",
    "TransportError",
    "ConfigError",
    "StateError",
    "TamperingError",
    # Enums
    "CheckId",
    "HopType",
    "LogLevel",
    "LookupErrorCode",
    "ReputationTier",
    "RiskLevel",
    "SecurityEventSeverity",
    "SecurityEventType",
    "Severity",
    "ThreatSource",
    "URLErrorCode",
    # Configuration
    "SafeBrowsingConfig",
    "PhishTankConfig",
    "DomainAgeConfig",
    "ResolverConfig",
    "PinLockoutConfig",
    "SecurityLogConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "EngineConfig",
    "config_from_dict",
    "config_to_dict",
    "load_config_from_file",
    "save_config_to_file",
    "apply_env_overrides",
    # Models
    "RedirectHop",
    "ResolvedURL",
    "TrustRecord",
    "DomainFeedback",
    "ReputationResult",
    "DomainAgeResult",
    "ThreatIntelResult",
    "HeuristicDetails",
    "HeuristicScoreResult",
    "SafetyCheck",
    "SafetyReviewResult",
    "SafeLinkSignals",
    "SafeLinkResult",
    "RateLimitState",
    "RateLimitResult",
    "SecurityEvent",
    "EventFilter",
    "SecurityMetrics",
    "LinkAnalysis",
    # URL Parser
    "URLCandidate",
    "URLParseError",
    "parse_url",
    # Cache and Storage
    "TTLCache",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Trust and Reputation
    "TrustRegistry",
    "DomainReputationService",
    # Scoring
    "HeuristicScorer",
    "NetworkWeights",
    "PhishingModel",
    "extract_features",
    # Redirects
    "RedirectResolver",
    # RDAP Client
    "RDAPClient",
    "RDAPResponse",
    "RDAPParsedFields",
    "RDAPEvent",
    "RDAPError",
    # External Lookups
    "DomainAgeChecker",
    "SafeBrowsingClient",
    "PhishTankClient",
    "combine_threat_results",
    # Review
    "SafeLinkHeuristic",
    "ReviewAggregator",
    "perform_safety_review",
    # PIN Guard
    "SecurityEventLogger",
    "PinRateLimiter",
    "format_lockout_time",
    # Engine
    "LinkSafetyEngine",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
]

"""
Enumeration types for the link safety engine.

These enums provide closed sets of constants for check identities, severity
and risk levels, redirect hop types and security event categories.
"""

from enum import Enum


class Severity(Enum):
    """Severity of a single safety check."""

    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


class RiskLevel(Enum):
    """Overall verdict of a safety review."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    BLOCKED = "blocked"


class CheckId(Enum):
    """Stable identities of the checks produced by a safety review."""

    TRUSTED = "trusted"
    DOMAIN_AGE = "domain_age"
    HTTPS = "https"
    TLD = "tld"
    IP_ADDRESS = "ip_address"
    SUBDOMAINS = "subdomains"
    TYPOSQUATTING = "typosquatting"
    HOMOGLYPH = "homoglyph"
    PATTERNS = "patterns"
    REDIRECT_CHAIN = "redirect_chain"
    DANGEROUS_FILE = "dangerous_file"
    THREAT_INTEL = "threat_intel"
    INVALID_URL = "invalid_url"


class HopType(Enum):
    """How a hop in a redirect chain was reached."""

    ORIGIN = "origin"
    HTTP = "http"
    CLIENT_SIDE = "client-side"


class ReputationTier(Enum):
    """Popularity tier of a domain."""

    TOP_100 = "top-100"
    TOP_1000 = "top-1000"
    UNKNOWN = "unknown"


class ThreatSource(Enum):
    """External threat intelligence providers."""

    SAFE_BROWSING = "safe_browsing"
    PHISHTANK = "phishtank"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class URLErrorCode(Enum):
    """Error codes for URL parsing failures."""

    EMPTY_INPUT = "empty_input"
    FORBIDDEN_CHARS = "forbidden_chars"
    MALFORMED = "malformed"
    MISSING_HOST = "missing_host"
    IDNA_ERROR = "idna_error"


class LookupErrorCode(Enum):
    """Error codes for external lookups."""

    NOT_CONFIGURED = "not_configured"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"


class SecurityEventType(Enum):
    """Categories of security-relevant events."""

    AUTH_SUCCESS = "auth_success"
    AUTH_FAILURE = "auth_failure"
    RATE_LIMIT_TRIGGERED = "rate_limit_triggered"
    RATE_LIMIT_CLEARED = "rate_limit_cleared"
    ACCOUNT_LOCKED = "account_locked"
    ACCOUNT_UNLOCKED = "account_unlocked"
    OTP_GENERATED = "otp_generated"
    OTP_VERIFIED = "otp_verified"
    OTP_FAILED = "otp_failed"
    OTP_EXPIRED = "otp_expired"
    ROOT_DETECTED = "root_detected"
    SECURITY_WARNING = "security_warning"
    PIN_CREATED = "pin_created"
    PIN_CHANGED = "pin_changed"
    RECOVERY_SETUP = "recovery_setup"
    RECOVERY_USED = "recovery_used"


class SecurityEventSeverity(Enum):
    """Severity of a security event, derived from its type."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

"""
Fast-allow gate for obviously safe links.

A cheap AND over core signals, evaluated in order and stopping at the
first failure:
1. Domain is trusted (static list, official brand domain, or user-earned)
2. URL uses HTTPS
3. No dangerous file download in the path
4. Domain is not a URL shortener
5. Heuristic score is below 20

Only when all five pass may a link bypass the full review. The domain's
reputation tier is reported for display and never gates the verdict.
"""

from typing import Iterable, Optional

from .audit_logger import AuditLogger
from .domain_reputation import DomainReputationService
from .enums import LogLevel
from .heuristic_scorer import HeuristicScorer
from .models import SafeLinkResult, SafeLinkSignals
from .rdap_bootstrap import registrable_domain
from .trust_data import DANGEROUS_EXTENSIONS, URL_SHORTENERS
from .trust_registry import TrustRegistry, normalize_domain
from .url_parser import URLCandidate, parse_url

LOW_SCORE_THRESHOLD = 20


def has_dangerous_extension(candidate: URLCandidate, extensions: Iterable[str] = DANGEROUS_EXTENSIONS) -> bool:
    """True if the URL path ends in an executable or installer extension."""
    if not candidate.valid:
        return False
    path = candidate.path.lower()
    return any(path.endswith(ext) for ext in extensions)


def is_url_shortener(domain: str, shorteners: Iterable[str] = URL_SHORTENERS) -> bool:
    host = normalize_domain(domain)
    known = frozenset(shorteners)
    return host in known or registrable_domain(host) in known


class SafeLinkHeuristic:
    """Short-circuit safety gate."""

    def __init__(
        self,
        trust_registry: Optional[TrustRegistry] = None,
        scorer: Optional[HeuristicScorer] = None,
        reputation: Optional[DomainReputationService] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._trust = trust_registry or TrustRegistry()
        self._scorer = scorer or HeuristicScorer(trust_registry=self._trust)
        self._reputation = reputation or DomainReputationService()
        self._logger = logger

    def check(self, url: str, domain: Optional[str] = None) -> SafeLinkResult:
        """
        Decide whether a link is safe enough to skip the full review.

        Args:
            url: The link as received
            domain: Host to evaluate for trust; derived from ``url`` if omitted

        Returns:
            SafeLinkResult with the reason of the first failing signal
        """
        candidate = parse_url(url)
        host = normalize_domain(domain if domain else candidate.host)
        signals = SafeLinkSignals(reputation_tier=self._reputation.get_tier(host))

        signals.is_trusted_domain = bool(host) and (
            self._trust.is_trusted(host) or self._trust.is_official_brand_domain(host)
        )
        if not signals.is_trusted_domain:
            return SafeLinkResult(False, "Domain is not in trusted list", signals)

        signals.is_https = candidate.valid and candidate.is_https
        if not signals.is_https:
            return SafeLinkResult(False, "URL does not use HTTPS", signals)

        signals.has_no_dangerous_file = not has_dangerous_extension(candidate)
        if not signals.has_no_dangerous_file:
            return SafeLinkResult(False, "URL contains dangerous file extension", signals)

        signals.is_not_shortener = not is_url_shortener(host)
        if not signals.is_not_shortener:
            return SafeLinkResult(False, "Domain is a URL shortener", signals)

        score = self._scorer.analyze(candidate).score
        signals.has_low_phish_score = score < LOW_SCORE_THRESHOLD
        if not signals.has_low_phish_score:
            return SafeLinkResult(False, f"PhishGuard score too high: {score}", signals)

        if self._logger:
            self._logger.log(LogLevel.INFO, "SafeLinkHeuristic", "Auto-allowing link", {"domain": host})
        return SafeLinkResult(True, "All safety signals pass", signals)

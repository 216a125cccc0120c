"""
Domain reputation lookups against a static popularity ranking.

Popular domains earn a negative score adjustment that offsets heuristic
false positives. Lookup only, no I/O.
"""

from typing import Iterable, Optional

from .enums import ReputationTier
from .models import ReputationResult
from .trust_data import TOP_100_DOMAINS, TOP_1000_DOMAINS
from .trust_registry import normalize_domain, parent_domains


class DomainReputationService:
    """Tiered popularity lookup with parent-domain matching."""

    TIER_ADJUSTMENTS = {
        ReputationTier.TOP_100: -20,
        ReputationTier.TOP_1000: -10,
        ReputationTier.UNKNOWN: 0,
    }

    def __init__(
        self,
        top_100: Optional[Iterable[str]] = None,
        top_1000: Optional[Iterable[str]] = None,
    ) -> None:
        self._top_100 = frozenset(TOP_100_DOMAINS if top_100 is None else top_100)
        self._top_1000 = frozenset(TOP_1000_DOMAINS if top_1000 is None else top_1000)

    def get_tier(self, domain: str) -> ReputationTier:
        host = normalize_domain(domain)
        if not host:
            return ReputationTier.UNKNOWN
        for parent in parent_domains(host):
            if parent in self._top_100:
                return ReputationTier.TOP_100
            if parent in self._top_1000:
                return ReputationTier.TOP_1000
        return ReputationTier.UNKNOWN

    def lookup(self, domain: str) -> ReputationResult:
        """
        Return the reputation of a domain.

        A subdomain inherits the tier of the nearest listed parent, so
        "mail.google.com" is top-100 like "google.com".
        """
        tier = self.get_tier(domain)
        return ReputationResult(
            domain=normalize_domain(domain),
            tier=tier,
            score_adjustment=self.TIER_ADJUSTMENTS[tier],
            is_known=tier != ReputationTier.UNKNOWN,
        )

    def adjust_score(self, score: int, domain: str) -> int:
        """Apply the reputation adjustment to a score, clamped at 0."""
        return max(0, score + self.lookup(domain).score_adjustment)

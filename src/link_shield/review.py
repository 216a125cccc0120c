"""
Safety review aggregation.

Builds the ordered list of named checks shown to the user and derives the
final risk level. The order is fixed:

    trusted, domain_age (only when the lookup succeeded), https, tld,
    ip_address, subdomains, typosquatting, homoglyph, patterns,
    redirect_chain (only when a resolution was supplied), dangerous_file,
    threat_intel (only when a threat result was supplied)

Malformed input never raises; it yields a single failed ``invalid_url``
check and the ``blocked`` risk level.
"""

from typing import Optional

from .audit_logger import AuditLogger
from .enums import CheckId, LogLevel, RiskLevel, Severity
from .heuristic_scorer import HeuristicScorer
from .models import (
    DomainAgeResult,
    HeuristicScoreResult,
    ResolvedURL,
    SafetyCheck,
    SafetyReviewResult,
    ThreatIntelResult,
)
from .rdap_bootstrap import registrable_domain
from .safe_link import has_dangerous_extension
from .trust_data import (
    INVITATION_KEYWORDS,
    REVIEW_SUSPICIOUS_TLDS,
    SUSPICIOUS_URL_PATTERNS,
    TRUSTED_INVITATION_DOMAINS,
)
from .trust_registry import TrustRegistry
from .url_parser import URLCandidate, parse_url

MAX_HOST_PARTS = 3

SUMMARIES = {
    RiskLevel.BLOCKED: (
        "This link was confirmed as dangerous. It may install malware or steal "
        "your personal information or money."
    ),
    RiskLevel.HIGH: (
        "We found several warning signs about this link. It may be trying to "
        "trick you or steal your information."
    ),
    RiskLevel.MEDIUM: (
        "We noticed some things about this link that seem unusual. Please be "
        "careful if you decide to continue."
    ),
}

RECOMMENDATIONS = {
    RiskLevel.BLOCKED: "Do not open this link.",
    RiskLevel.HIGH: (
        "We recommend not opening this link. If you were expecting something "
        "from a company, go to their website directly instead."
    ),
    RiskLevel.MEDIUM: (
        "Be cautious with this link. Make sure you trust the person who sent it "
        "before continuing."
    ),
    RiskLevel.LOW: (
        "This link seems okay, but always be careful about entering personal "
        "information on websites."
    ),
}


def _check(check_id: CheckId, passed: bool, failed_severity: Severity, title: str, ok: str, bad: str) -> SafetyCheck:
    return SafetyCheck(
        id=check_id,
        passed=passed,
        severity=Severity.INFO if passed else failed_severity,
        title=title,
        description=ok if passed else bad,
    )


def format_age(age_in_days: int) -> str:
    """Human wording of a domain age ("1 day", "3 months", "2+ years")."""
    if age_in_days >= 365:
        return f"{age_in_days // 365}+ years"
    if age_in_days >= 60:
        return f"{age_in_days // 30} months"
    if age_in_days == 1:
        return "1 day"
    return f"{age_in_days} days"


def calculate_risk_level(checks: list[SafetyCheck]) -> RiskLevel:
    """
    Derive the risk level from the checks.

    Dangerous files, confirmed threats and invalid URLs block outright.
    Otherwise two danger failures, or one danger with two warnings, is high;
    one danger or two warnings is medium; anything else is low.
    """
    for check in checks:
        if check.passed:
            continue
        if check.id in (CheckId.THREAT_INTEL, CheckId.INVALID_URL):
            return RiskLevel.BLOCKED
        if check.id == CheckId.DANGEROUS_FILE and check.severity == Severity.DANGER:
            return RiskLevel.BLOCKED

    danger = sum(1 for c in checks if not c.passed and c.severity == Severity.DANGER)
    warning = sum(1 for c in checks if not c.passed and c.severity == Severity.WARNING)

    if danger >= 2 or (danger >= 1 and warning >= 2):
        return RiskLevel.HIGH
    if danger >= 1 or warning >= 2:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def summarize(risk_level: RiskLevel, checks: list[SafetyCheck]) -> str:
    if risk_level in SUMMARIES:
        return SUMMARIES[risk_level]
    if any(not check.passed for check in checks):
        return "This link appears mostly normal, but we noticed a few minor concerns."
    return "This link appears to be from a known, trusted source."


class ReviewAggregator:
    """Produces the ordered safety checks for a URL."""

    def __init__(
        self,
        trust_registry: Optional[TrustRegistry] = None,
        scorer: Optional[HeuristicScorer] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._trust = trust_registry or TrustRegistry()
        self._scorer = scorer or HeuristicScorer(trust_registry=self._trust)
        self._logger = logger

    def perform_safety_review(
        self,
        url: str,
        threat_intel: Optional[ThreatIntelResult] = None,
        domain_age: Optional[DomainAgeResult] = None,
        resolved: Optional[ResolvedURL] = None,
        heuristic: Optional[HeuristicScoreResult] = None,
    ) -> SafetyReviewResult:
        """
        Review a URL.

        Args:
            url: The URL to review (scheme optional)
            threat_intel: Merged external threat verdict; omitted check if None
            domain_age: Registration age; omitted check if None or unavailable
            resolved: Redirect resolution of the URL; omitted check if None
            heuristic: Precomputed heuristic score for the same URL

        Returns:
            SafetyReviewResult; never raises
        """
        candidate = parse_url(url)
        if not candidate.valid:
            return self._invalid_result(url, candidate)

        host = candidate.host
        if heuristic is None:
            heuristic = self._scorer.analyze(candidate)

        checks = [self.check_trusted(host)]
        if domain_age is not None and domain_age.is_lookup_available:
            checks.append(self.check_domain_age(domain_age))
        checks.extend([
            self.check_https(candidate),
            self.check_tld(host),
            self.check_ip_address(candidate),
            self.check_subdomains(host),
            self.check_typosquatting(heuristic),
            self.check_homoglyph(candidate),
            self.check_patterns(candidate),
        ])
        if resolved is not None:
            checks.append(self.check_redirect_chain(resolved))
        checks.append(self.check_dangerous_file(candidate))
        if threat_intel is not None:
            checks.append(self.check_threat_intel(threat_intel))

        risk_level = calculate_risk_level(checks)
        if self._logger:
            self._logger.log(
                LogLevel.INFO,
                "ReviewAggregator",
                "Safety review completed",
                {
                    "url": candidate.href,
                    "risk_level": risk_level.value,
                    "failed_checks": [c.id.value for c in checks if not c.passed],
                },
            )

        return SafetyReviewResult(
            url=url,
            host=host,
            checks=checks,
            risk_level=risk_level,
            heuristic_score=heuristic.score,
            summary=summarize(risk_level, checks),
            recommendation=RECOMMENDATIONS[risk_level],
        )

    def _invalid_result(self, url: str, candidate: URLCandidate) -> SafetyReviewResult:
        check = SafetyCheck(
            id=CheckId.INVALID_URL,
            passed=False,
            severity=Severity.DANGER,
            title="Invalid Link",
            description="This link is malformed and cannot be checked safely",
        )
        if self._logger:
            self._logger.log(
                LogLevel.WARN,
                "ReviewAggregator",
                "Blocking unparseable URL",
                {"error_code": candidate.error.code.value if candidate.error else None},
            )
        return SafetyReviewResult(
            url=url if isinstance(url, str) else "",
            host=None,
            checks=[check],
            risk_level=RiskLevel.BLOCKED,
            heuristic_score=100,
            summary=SUMMARIES[RiskLevel.BLOCKED],
            recommendation=RECOMMENDATIONS[RiskLevel.BLOCKED],
        )

    def check_trusted(self, host: str) -> SafetyCheck:
        trusted = self._trust.is_trusted(host) or self._trust.is_official_brand_domain(host)
        return _check(
            CheckId.TRUSTED, trusted, Severity.WARNING, "Known Website",
            "This appears to be a well-known, established website",
            "This website is not in our list of commonly trusted sites",
        )

    def check_domain_age(self, result: DomainAgeResult) -> SafetyCheck:
        age = result.age_in_days or 0
        if result.is_new_domain:
            when = "today" if age == 0 else f"{format_age(age)} ago"
            return SafetyCheck(
                id=CheckId.DOMAIN_AGE,
                passed=False,
                severity=Severity.DANGER,
                title="Domain Age",
                description=f"Domain registered {when}. Brand-new websites are often used for scams",
            )
        if result.is_young_domain:
            return SafetyCheck(
                id=CheckId.DOMAIN_AGE,
                passed=False,
                severity=Severity.WARNING,
                title="Domain Age",
                description=f"Domain registered {format_age(age)} ago. This website is fairly new",
            )
        return SafetyCheck(
            id=CheckId.DOMAIN_AGE,
            passed=True,
            severity=Severity.INFO,
            title="Domain Age",
            description=f"Domain registered {format_age(age)} ago",
        )

    def check_https(self, candidate: URLCandidate) -> SafetyCheck:
        return _check(
            CheckId.HTTPS, candidate.is_https, Severity.WARNING, "Secure Connection",
            "This site uses a secure encrypted connection",
            "This site does not use encryption - your data may not be private",
        )

    def check_tld(self, host: str) -> SafetyCheck:
        suspicious = any(host.endswith(tld) for tld in REVIEW_SUSPICIOUS_TLDS)
        return _check(
            CheckId.TLD, not suspicious, Severity.DANGER, "Website Address",
            "The website address ending appears normal",
            "This website ending is often associated with less trustworthy sites",
        )

    def check_ip_address(self, candidate: URLCandidate) -> SafetyCheck:
        return _check(
            CheckId.IP_ADDRESS, not candidate.is_ip_address, Severity.DANGER, "Website Identity",
            "The website has a proper name",
            "This link uses numbers instead of a website name - unusual for legitimate sites",
        )

    def check_subdomains(self, host: str) -> SafetyCheck:
        excessive = len(host.split(".")) > MAX_HOST_PARTS
        return _check(
            CheckId.SUBDOMAINS, not excessive, Severity.WARNING, "Website Structure",
            "The website address structure looks normal",
            "This website has an unusually complex address",
        )

    def check_typosquatting(self, heuristic: HeuristicScoreResult) -> SafetyCheck:
        brand = heuristic.matched_brand
        return _check(
            CheckId.TYPOSQUATTING, brand is None, Severity.DANGER, "Brand Impersonation",
            "No obvious attempt to impersonate a known brand",
            f'This looks similar to "{brand}" but may not be the real website',
        )

    def check_homoglyph(self, candidate: URLCandidate) -> SafetyCheck:
        disguised = candidate.is_punycode or candidate.unicode_host != candidate.host
        return _check(
            CheckId.HOMOGLYPH, not disguised, Severity.WARNING, "Lookalike Characters",
            "The website name uses ordinary characters",
            (
                f"This address uses Punycode (shown as {candidate.unicode_host}); "
                "lookalike letters can disguise a fake website"
            ),
        )

    def check_patterns(self, candidate: URLCandidate) -> SafetyCheck:
        text = candidate.href
        suspicious = any(pattern.search(text) for pattern in SUSPICIOUS_URL_PATTERNS)
        return _check(
            CheckId.PATTERNS, not suspicious, Severity.DANGER, "Link Content",
            "The link text appears normal",
            "This link contains words often used in scam messages",
        )

    def check_redirect_chain(self, resolved: ResolvedURL) -> SafetyCheck:
        return _check(
            CheckId.REDIRECT_CHAIN, not resolved.is_suspicious_redirect, Severity.WARNING, "Redirect Chain",
            (
                "This link does not redirect"
                if resolved.total_redirects == 0
                else f"This link redirects {resolved.total_redirects} time(s) to {resolved.final_url}"
            ),
            (
                f"This link bounces through {resolved.total_redirects} redirects across "
                f"{resolved.cross_domain_hop_count + 1} websites before reaching {resolved.final_url}"
            ),
        )

    def check_dangerous_file(self, candidate: URLCandidate) -> SafetyCheck:
        href = candidate.href.lower()
        invitation = any(keyword in href for keyword in INVITATION_KEYWORDS)

        if has_dangerous_extension(candidate):
            description = (
                "This link contains a dangerous file disguised as an invitation. "
                "Installing it can drain your bank account."
                if invitation
                else "This link downloads an application file directly. Do not install unknown apps."
            )
            return SafetyCheck(
                id=CheckId.DANGEROUS_FILE,
                passed=False,
                severity=Severity.DANGER,
                title="Dangerous File",
                description=description,
            )

        trusted_platform = (
            registrable_domain(candidate.host) in TRUSTED_INVITATION_DOMAINS
            or self._trust.is_trusted(candidate.host)
        )
        if invitation and not trusted_platform:
            return SafetyCheck(
                id=CheckId.DANGEROUS_FILE,
                passed=False,
                severity=Severity.WARNING,
                title="Unverified Invitation",
                description="This link claims to be an invitation but comes from an unknown website. Be careful.",
            )

        return SafetyCheck(
            id=CheckId.DANGEROUS_FILE,
            passed=True,
            severity=Severity.INFO,
            title="Content Safety",
            description="No dangerous file download detected",
        )

    def check_threat_intel(self, result: ThreatIntelResult) -> SafetyCheck:
        if result.is_threat:
            return SafetyCheck(
                id=CheckId.THREAT_INTEL,
                passed=False,
                severity=Severity.DANGER,
                title="Threat Intelligence",
                description=result.description or "This link is listed in a threat database",
            )
        description = (
            "This link is not listed in threat databases"
            if result.is_api_available
            else "Threat databases could not be reached; no verdict available"
        )
        return SafetyCheck(
            id=CheckId.THREAT_INTEL,
            passed=True,
            severity=Severity.INFO,
            title="Threat Intelligence",
            description=description,
        )


def perform_safety_review(
    url: str,
    threat_intel: Optional[ThreatIntelResult] = None,
    domain_age: Optional[DomainAgeResult] = None,
) -> SafetyReviewResult:
    """Review a URL with the built-in trust data and no user feedback."""
    return ReviewAggregator().perform_safety_review(url, threat_intel=threat_intel, domain_age=domain_age)

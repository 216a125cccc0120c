"""
Property-based tests for the safety review.

Verifies check order, the optional domain age, redirect and threat
checks, and risk level derivation.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from link_shield.enums import CheckId, HopType, RiskLevel, Severity, ThreatSource
from link_shield.models import DomainAgeResult, RedirectHop, SafetyCheck, ThreatIntelResult
from link_shield.redirect_resolver import summarize_chain
from link_shield.review import (
    RECOMMENDATIONS,
    ReviewAggregator,
    calculate_risk_level,
    format_age,
    perform_safety_review,
)


BASE_ORDER = [
    CheckId.TRUSTED,
    CheckId.HTTPS,
    CheckId.TLD,
    CheckId.IP_ADDRESS,
    CheckId.SUBDOMAINS,
    CheckId.TYPOSQUATTING,
    CheckId.HOMOGLYPH,
    CheckId.PATTERNS,
    CheckId.DANGEROUS_FILE,
]


def age_result(days: int) -> DomainAgeResult:
    return DomainAgeResult(
        domain="example.com",
        age_in_days=days,
        registration_date="2024-01-01T00:00:00+00:00",
        is_new_domain=days < 30,
        is_young_domain=days < 180,
        is_lookup_available=True,
    )


class TestCheckOrderProperty:
    """Property tests for the fixed check order."""

    def test_trusted_https_link_is_low_risk(self) -> None:
        result = perform_safety_review("https://google.com/")

        assert [check.id for check in result.checks] == BASE_ORDER
        assert all(check.passed for check in result.checks)
        assert result.risk_level == RiskLevel.LOW
        assert result.recommendation == RECOMMENDATIONS[RiskLevel.LOW]
        assert result.summary == "This link appears to be from a known, trusted source."

    @given(
        with_age=st.booleans(),
        with_redirect=st.booleans(),
        with_threat=st.booleans(),
    )
    @settings(max_examples=20)
    def test_optional_checks_keep_order(self, with_age: bool, with_redirect: bool, with_threat: bool) -> None:
        """
        *For any* combination of optional inputs, the supplied optional
        checks SHALL appear at their fixed positions.
        """
        resolved = summarize_chain("https://example.com/", [
            RedirectHop(url="https://example.com/", domain="example.com", hop_type=HopType.ORIGIN),
        ])
        result = ReviewAggregator().perform_safety_review(
            "https://example.com/",
            threat_intel=ThreatIntelResult(is_threat=False) if with_threat else None,
            domain_age=age_result(900) if with_age else None,
            resolved=resolved if with_redirect else None,
        )

        expected = list(BASE_ORDER)
        if with_age:
            expected.insert(1, CheckId.DOMAIN_AGE)
        if with_redirect:
            expected.insert(expected.index(CheckId.DANGEROUS_FILE), CheckId.REDIRECT_CHAIN)
        if with_threat:
            expected.append(CheckId.THREAT_INTEL)

        assert [check.id for check in result.checks] == expected


class TestDomainAgeCheckProperty:
    """Registration age appears only when the lookup succeeded."""

    @pytest.mark.parametrize("days,passed,severity", [
        (5, False, Severity.DANGER),
        (90, False, Severity.WARNING),
        (730, True, Severity.INFO),
    ])
    def test_age_severity(self, days: int, passed: bool, severity: Severity) -> None:
        check = perform_safety_review("https://example.com/", domain_age=age_result(days)).get_check(CheckId.DOMAIN_AGE)

        assert check.passed == passed
        assert check.severity == severity
        assert format_age(days) in check.description

    def test_registered_today(self) -> None:
        check = perform_safety_review("https://example.com/", domain_age=age_result(0)).get_check(CheckId.DOMAIN_AGE)

        assert "today" in check.description

    def test_unavailable_age_omitted(self) -> None:
        result = perform_safety_review(
            "https://example.com/",
            domain_age=DomainAgeResult.unavailable("example.com"),
        )

        assert result.get_check(CheckId.DOMAIN_AGE) is None

    @pytest.mark.parametrize("days,text", [
        (0, "0 days"),
        (1, "1 day"),
        (45, "45 days"),
        (90, "3 months"),
        (364, "12 months"),
        (365, "1+ years"),
        (730, "2+ years"),
    ])
    def test_format_age(self, days: int, text: str) -> None:
        assert format_age(days) == text


class TestIndividualChecksProperty:
    """Behaviour of single checks."""

    def test_punycode_host_warns(self) -> None:
        check = perform_safety_review("https://xn--80ak6aa92e.com").get_check(CheckId.HOMOGLYPH)

        assert not check.passed
        assert check.severity == Severity.WARNING
        assert "Punycode" in check.description

    def test_ip_host(self) -> None:
        result = perform_safety_review("http://192.168.1.1/")

        assert not result.get_check(CheckId.IP_ADDRESS).passed
        assert not result.get_check(CheckId.HTTPS).passed
        assert result.risk_level == RiskLevel.HIGH

    @given(tld=st.sampled_from([".xyz", ".top", ".tk", ".click"]))
    @settings(max_examples=10)
    def test_suspicious_tld_is_danger(self, tld: str) -> None:
        """*For any* listed suspicious ending, the tld check SHALL fail with danger severity."""
        check = perform_safety_review(f"https://shop{tld}/").get_check(CheckId.TLD)

        assert not check.passed
        assert check.severity == Severity.DANGER

    def test_brand_impersonation(self) -> None:
        check = perform_safety_review("https://paypa1.com/").get_check(CheckId.TYPOSQUATTING)

        assert not check.passed
        assert "PayPal" in check.description

    def test_scam_words(self) -> None:
        check = perform_safety_review("https://example.com/claim-prize").get_check(CheckId.PATTERNS)

        assert not check.passed
        assert check.severity == Severity.DANGER

    def test_unverified_invitation_warns(self) -> None:
        check = perform_safety_review("https://undangan-nikah.example/").get_check(CheckId.DANGEROUS_FILE)

        assert not check.passed
        assert check.severity == Severity.WARNING

    def test_invitation_on_known_platform_passes(self) -> None:
        check = perform_safety_review("https://www.canva.com/design/wedding-invitation").get_check(CheckId.DANGEROUS_FILE)

        assert check.passed

    def test_suspicious_redirect_warns(self) -> None:
        chain = [
            RedirectHop(url=f"https://{host}/", domain=host, hop_type=HopType.HTTP)
            for host in ("a.example", "b.example", "c.example")
        ]
        result = ReviewAggregator().perform_safety_review("https://a.example/", resolved=summarize_chain(chain[0].url, chain))

        check = result.get_check(CheckId.REDIRECT_CHAIN)
        assert not check.passed
        assert check.severity == Severity.WARNING


class TestBlockingProperty:
    """Outright blocks."""

    @given(ext=st.sampled_from([".apk", ".exe", ".msi", ".jar", ".scr"]))
    @settings(max_examples=10)
    def test_dangerous_download_blocked(self, ext: str) -> None:
        """*For any* executable download, the review SHALL block."""
        result = perform_safety_review(f"https://google.com/files/app{ext}")

        assert result.risk_level == RiskLevel.BLOCKED
        assert result.get_check(CheckId.DANGEROUS_FILE).severity == Severity.DANGER

    def test_invitation_apk_description(self) -> None:
        check = perform_safety_review("https://example.com/undangan-pernikahan.apk").get_check(CheckId.DANGEROUS_FILE)

        assert "invitation" in check.description

    def test_confirmed_threat_blocked(self) -> None:
        threat = ThreatIntelResult(
            is_threat=True,
            threat_type="SOCIAL_ENGINEERING",
            description="Phishing",
            source=ThreatSource.SAFE_BROWSING,
        )

        result = perform_safety_review("https://google.com/", threat_intel=threat)

        assert result.risk_level == RiskLevel.BLOCKED
        assert result.checks[-1].id == CheckId.THREAT_INTEL

    def test_unavailable_threat_service_passes(self) -> None:
        result = perform_safety_review("https://google.com/", threat_intel=ThreatIntelResult.unavailable())

        check = result.get_check(CheckId.THREAT_INTEL)
        assert check.passed
        assert check.severity == Severity.INFO
        assert result.risk_level == RiskLevel.LOW

    @given(url=st.sampled_from(["", "   ", "https://", "http://exa mple.com", None]))
    def test_invalid_input_blocked(self, url) -> None:
        """*For any* malformed input, the review SHALL return a single invalid_url check and block."""
        result = perform_safety_review(url)

        assert [check.id for check in result.checks] == [CheckId.INVALID_URL]
        assert result.risk_level == RiskLevel.BLOCKED
        assert result.heuristic_score == 100
        assert result.host is None


failing_check_strategy = st.builds(
    lambda check_id, severity: SafetyCheck(check_id, False, severity, "t", "d"),
    st.sampled_from([CheckId.TRUSTED, CheckId.HTTPS, CheckId.TLD, CheckId.PATTERNS, CheckId.SUBDOMAINS]),
    st.sampled_from([Severity.WARNING, Severity.DANGER]),
)


class TestRiskLevelProperty:
    """Property tests for risk derivation."""

    @given(
        failing=st.lists(failing_check_strategy, max_size=6),
        passing=st.integers(min_value=0, max_value=4),
    )
    @settings(max_examples=200)
    def test_counts_determine_level(self, failing: list, passing: int) -> None:
        """
        *For any* non-blocking checks, two dangers or one danger with two
        warnings SHALL be high, one danger or two warnings medium, else low.
        """
        checks = failing + [SafetyCheck(CheckId.HTTPS, True, Severity.INFO, "t", "d")] * passing
        danger = sum(1 for c in failing if c.severity == Severity.DANGER)
        warning = len(failing) - danger

        level = calculate_risk_level(checks)

        if danger >= 2 or (danger >= 1 and warning >= 2):
            assert level == RiskLevel.HIGH
        elif danger >= 1 or warning >= 2:
            assert level == RiskLevel.MEDIUM
        else:
            assert level == RiskLevel.LOW

    def test_dangerous_file_warning_does_not_block(self) -> None:
        checks = [SafetyCheck(CheckId.DANGEROUS_FILE, False, Severity.WARNING, "t", "d")]

        assert calculate_risk_level(checks) == RiskLevel.LOW

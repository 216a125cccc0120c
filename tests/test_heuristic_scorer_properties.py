"""
Property-based tests for the heuristic phishing scorer.

Verifies category caps, the fail-closed score for unparseable input,
brand impersonation detection and path analysis.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from link_shield.heuristic_scorer import (
    INVALID_URL_REASON,
    HeuristicScorer,
    fold_lookalikes,
    levenshtein_distance,
    undo_leetspeak,
)
from link_shield.url_parser import parse_url


# Strategies for generating test data

label_strategy = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-", min_size=1, max_size=15).filter(
    lambda s: not s.startswith("-") and not s.endswith("-")
)

path_segment_strategy = st.sampled_from([
    "login", "verify", "otp", "reset-password", "internet-banking", "wallet",
    "a", "b", "docs", "images", "checkout", "promo", "index.html",
])


@st.composite
def url_strategy(draw) -> str:
    """Generate URLs with random hosts, paths and queries."""
    labels = draw(st.lists(label_strategy, min_size=1, max_size=6))
    tld = draw(st.sampled_from(["com", "xyz", "id", "co.id", "top", "net", "example"]))
    segments = draw(st.lists(path_segment_strategy, max_size=9))
    query = draw(st.sampled_from([
        "",
        "?data=U2VjcmV0UGF5bG9hZERhdGExMjM0NTY=",
        "?email=test@test.com",
        "?phone=+6281234567890",
        "?q=shoes&page=2",
    ]))
    scheme = draw(st.sampled_from(["http", "https"]))
    return f"{scheme}://{'.'.join(labels)}.{tld}/{'/'.join(segments)}{query}"


class TestScoreBoundsProperty:
    """Property tests for category caps and totals."""

    @given(url=url_strategy())
    @settings(max_examples=200)
    def test_categories_capped_and_summed(self, url: str) -> None:
        """
        *For any* URL, every category SHALL stay within its cap and the
        score SHALL be their sum, clamped to 0..100.
        """
        result = HeuristicScorer().analyze_url(url)
        details = result.details

        assert details.brand_score in (0, 40)
        assert details.tld_score in (0, 20)
        assert 0 <= details.structure_score <= 20
        assert 0 <= details.keyword_score <= 20
        assert 0 <= details.path_score <= 15

        total = (
            details.brand_score + details.tld_score + details.structure_score
            + details.keyword_score + details.path_score
        )
        assert result.score == min(total, 100)
        assert result.is_suspicious == (result.score >= 40)

    @given(raw=st.sampled_from(["", "   ", "https://", "http://exa mple.com", "https://a..b", None]))
    def test_invalid_input_scores_100(self, raw) -> None:
        """*For any* malformed or empty input, analyze_url SHALL return score 100 and never raise."""
        result = HeuristicScorer().analyze_url(raw)

        assert result.score == 100
        assert result.is_suspicious
        assert result.reasons == [INVALID_URL_REASON]

    def test_path_score_capped_when_signals_stack(self) -> None:
        url = (
            "bad.xyz/internet-banking/login/verify/otp/reset-password/a/b"
            "?data=U2VjcmV0UGF5bG9hZERhdGExMjM0NTY=&email=test@test.com"
        )

        result = HeuristicScorer().analyze_url(url)

        assert result.details.path_score == 15

    def test_keyword_score_capped(self) -> None:
        result = HeuristicScorer().analyze_url("https://example.com/login/verify/update/secure/account")

        assert result.details.keyword_score == 20

    def test_ip_host_gets_full_structure_score(self) -> None:
        result = HeuristicScorer().analyze_url("http://192.168.10.5/index.html")

        assert result.details.structure_score == 20
        assert any("IP address" in reason for reason in result.reasons)


class TestBrandImpersonationProperty:
    """Property tests for typosquatting and brand lookalikes."""

    @given(url=st.sampled_from([
        "paypa1.com",
        "faceb00k.com",
        "google-login-secure.xyz",
    ]))
    def test_known_typosquats_flagged(self, url: str) -> None:
        """*For any* known typosquat, the scorer SHALL report a brand match and be suspicious."""
        result = HeuristicScorer().analyze_url(url)

        assert result.matched_brand is not None
        assert result.details.brand_score == 40
        assert result.is_suspicious

    def test_official_domain_not_flagged(self) -> None:
        result = HeuristicScorer().analyze_url("google.com")

        assert result.matched_brand is None
        assert result.details.brand_score == 0
        assert not result.is_suspicious

    @given(sub=st.sampled_from(["accounts", "mail", "drive", "login"]))
    def test_official_subdomains_not_scored_for_brand_or_login_path(self, sub: str) -> None:
        """*For any* subdomain of an official domain, brand and login-path points SHALL be zero."""
        result = HeuristicScorer().analyze_url(f"https://{sub}.google.com/login")

        assert result.details.brand_score == 0
        assert result.details.path_score == 0

    def test_matched_brand_name(self) -> None:
        assert HeuristicScorer().analyze_url("paypa1.com").matched_brand == "PayPal"
        assert HeuristicScorer().analyze_url("faceb00k.com").matched_brand == "Facebook"
        assert HeuristicScorer().analyze_url("google-login-secure.xyz").matched_brand == "Google"

    def test_edit_distance_match(self) -> None:
        result = HeuristicScorer().analyze_url("https://netflx.example/")

        assert result.matched_brand == "Netflix"

    @given(url=st.sampled_from([
        "https://bcapromo.xyz/",
        "https://bribank-hadiah.com/",
        "https://klaim-bni.example/",
        "https://fbgiveaway.top/",
        "https://dhlpaket.example/",
    ]))
    def test_short_keywords_matched_by_containment(self, url: str) -> None:
        """*For any* host embedding a short brand keyword, the scorer SHALL report that brand."""
        result = HeuristicScorer().analyze_url(url)

        assert result.matched_brand is not None
        assert result.details.brand_score == 40

    def test_short_keyword_brand_names(self) -> None:
        assert HeuristicScorer().analyze_url("bcapromo.xyz").matched_brand == "BCA"
        assert HeuristicScorer().analyze_url("bribank-hadiah.com").matched_brand == "BRI"

    def test_short_keywords_not_fuzzy_matched(self) -> None:
        # "bcx" is one edit from "bca" but short keywords only match by containment
        result = HeuristicScorer().analyze_url("https://bcx-store.example/")

        assert result.matched_brand is None

    def test_cyrillic_lookalike_detected(self) -> None:
        # "pаypal" with a Cyrillic 'а'
        result = HeuristicScorer().analyze_url("https://pаypal-secure.example/")

        assert result.matched_brand == "PayPal"

    def test_punycode_not_scored_as_structure(self) -> None:
        result = HeuristicScorer().analyze_url("https://xn--80ak6aa92e.com")

        assert result.details.structure_score == 0
        assert not any("Punycode" in reason for reason in result.reasons)


class TestHelperProperty:
    """Property tests for string helpers."""

    @given(a=st.text(max_size=12), b=st.text(max_size=12))
    @settings(max_examples=200)
    def test_levenshtein_symmetric_and_bounded(self, a: str, b: str) -> None:
        """*For any* strings, the edit distance SHALL be symmetric and bounded by the longer length."""
        distance = levenshtein_distance(a, b)

        assert distance == levenshtein_distance(b, a)
        assert abs(len(a) - len(b)) <= distance <= max(len(a), len(b))
        assert (distance == 0) == (a == b)

    def test_leetspeak(self) -> None:
        assert undo_leetspeak("p4yp41") == "paypal"
        assert undo_leetspeak("g00gle") == "google"

    def test_fold_lookalikes(self) -> None:
        assert fold_lookalikes("раypal") == "paypal"
        assert fold_lookalikes("bücher") == "bucher"

    def test_parsed_candidate_scoring_matches_raw(self) -> None:
        scorer = HeuristicScorer()
        url = "https://secure-login.example.top/verify"

        assert scorer.analyze(parse_url(url)).score == scorer.analyze_url(url).score

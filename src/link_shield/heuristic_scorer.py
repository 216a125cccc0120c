"""
Heuristic phishing scorer.

Computes a 0-100 risk score for a URL from five independently capped
categories:
- Brand impersonation (cap 40): brand keywords in a non-official host,
  directly, within edit distance 2, or after undoing leetspeak and
  lookalike-letter substitutions
- TLD risk (cap 20): suffix in the high-abuse list
- Structure (cap 20): raw IPv4 host, else deep subdomains and many hyphens
- Keywords (cap 20): suspicious security wording in host, path and query
- Path analysis (cap 15): login/payment pages, encoded payloads, personal
  data in the query, deep nesting, banking path mimicry

A URL is suspicious when the total reaches 40.
"""

import unicodedata
from typing import Iterable, Optional
from urllib.parse import parse_qsl

from .audit_logger import AuditLogger
from .enums import LogLevel
from .models import HeuristicDetails, HeuristicScoreResult
from .rdap_bootstrap import public_suffix
from .trust_data import (
    BANKING_PATH_PATTERN,
    BASE64_VALUE_PATTERN,
    CONFUSABLES_MAP,
    EMAIL_PATTERN,
    KNOWN_BRANDS,
    LEETSPEAK_MAP,
    LOGIN_PATH_PATTERN,
    PHONE_PATTERN,
    RISKY_TLDS,
    SUSPICIOUS_KEYWORDS,
    Brand,
)
from .trust_registry import TrustRegistry
from .url_parser import URLCandidate, parse_url

INVALID_URL_REASON = "Invalid URL Structure"


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def fold_lookalikes(text: str) -> str:
    """Map Cyrillic/Greek lookalikes to Latin and strip diacritics."""
    mapped = "".join(CONFUSABLES_MAP.get(char, char) for char in text.lower())
    decomposed = unicodedata.normalize("NFKD", mapped)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def undo_leetspeak(text: str) -> str:
    return "".join(LEETSPEAK_MAP.get(char, char) for char in text)


def split_segments(name: str) -> list[str]:
    """Split a hostname (without suffix) into label/hyphen segments."""
    return [segment for segment in name.replace("-", ".").split(".") if segment]


class HeuristicScorer:
    """
    Explainable phishing score for a URL.

    Hosts that are official brand domains or statically trusted are never
    scored for brand impersonation or page-pattern path signals.
    """

    SUSPICIOUS_THRESHOLD = 40

    BRAND_SCORE = 40
    TLD_SCORE = 20
    STRUCTURE_CAP = 20
    KEYWORD_CAP = 20
    PATH_CAP = 15

    KEYWORD_POINTS = 10
    PATH_POINTS = 5
    STRUCTURE_POINTS = 10

    MAX_EDIT_DISTANCE = 2
    SHORT_KEYWORD_LENGTH = 3
    MAX_SUBDOMAIN_DOTS = 3
    MAX_HYPHENS = 2
    MAX_PATH_DEPTH = 5
    MAX_KEYWORD_EXAMPLES = 3

    def __init__(
        self,
        trust_registry: Optional[TrustRegistry] = None,
        brands: Iterable[Brand] = KNOWN_BRANDS,
        risky_tlds: Iterable[str] = RISKY_TLDS,
        keywords: Iterable[str] = SUSPICIOUS_KEYWORDS,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._trust = trust_registry or TrustRegistry()
        self._brands = tuple(brands)
        self._risky_tlds = tuple(tld.lower() for tld in risky_tlds)
        self._keywords = tuple(dict.fromkeys(kw.lower() for kw in keywords))
        self._keyword_set = frozenset(self._keywords)
        self._logger = logger

    def analyze_url(self, url: str) -> HeuristicScoreResult:
        """
        Score a raw URL string. Never raises.

        Unparseable input returns score 100 with the single reason
        "Invalid URL Structure".
        """
        candidate = parse_url(url)
        if not candidate.valid:
            if self._logger:
                self._logger.log(
                    LogLevel.DEBUG,
                    "HeuristicScorer",
                    "Unparseable URL scored as maximal risk",
                    {"error_code": candidate.error.code.value},
                )
            return HeuristicScoreResult(
                score=100,
                is_suspicious=True,
                reasons=[INVALID_URL_REASON],
                details=HeuristicDetails(),
            )
        return self.analyze(candidate)

    def analyze(self, candidate: URLCandidate) -> HeuristicScoreResult:
        """Score an already parsed, valid URL."""
        host = candidate.host
        details = HeuristicDetails()
        reasons: list[str] = []

        is_official = self.is_official_host(host)

        brand = None if is_official else self.detect_brand(candidate)
        if brand is not None:
            details.brand_score = self.BRAND_SCORE
            reasons.append(f"Potential impersonation of {brand.name} detected")

        if self.has_risky_tld(host):
            details.tld_score = self.TLD_SCORE
            reasons.append("Uses a high-risk Top Level Domain (TLD)")

        details.structure_score = self._score_structure(candidate, reasons)
        details.keyword_score = self._score_keywords(candidate, reasons)
        details.path_score = self._score_path(candidate, is_official, reasons)

        total = (
            details.brand_score
            + details.tld_score
            + details.structure_score
            + details.keyword_score
            + details.path_score
        )
        score = max(0, min(total, 100))

        return HeuristicScoreResult(
            score=score,
            is_suspicious=score >= self.SUSPICIOUS_THRESHOLD,
            reasons=reasons,
            details=details,
            matched_brand=brand.name if brand else None,
        )

    def is_official_host(self, host: str) -> bool:
        return self._trust.is_official_brand_domain(host) or self._trust.is_statically_trusted(host)

    def has_risky_tld(self, host: str) -> bool:
        return any(host.endswith(tld) for tld in self._risky_tlds)

    def detect_brand(self, candidate: URLCandidate) -> Optional[Brand]:
        """
        Find the brand a host appears to impersonate.

        Direct evidence (keyword containment after leetspeak and lookalike
        folding) is checked for every brand before any edit-distance match,
        and within each pass the first brand in list order wins.
        """
        suffix_labels = public_suffix(candidate.host).count(".") + 1
        unicode_labels = (candidate.unicode_host or candidate.host).split(".")
        name = ".".join(unicode_labels[:-suffix_labels]) if len(unicode_labels) > suffix_labels else unicode_labels[0]

        folded = fold_lookalikes(name)
        variants = (folded, undo_leetspeak(folded))
        variant_segments = [split_segments(variant) for variant in variants]

        for brand in self._brands:
            for keyword in brand.keywords:
                if any(keyword in variant for variant in variants):
                    return brand

        fuzzy_segments = [
            segment for segment in dict.fromkeys(variant_segments[0] + variant_segments[1])
            if segment not in self._keyword_set
        ]
        for brand in self._brands:
            for keyword in brand.keywords:
                if len(keyword) <= self.SHORT_KEYWORD_LENGTH:
                    continue
                for segment in fuzzy_segments:
                    if abs(len(segment) - len(keyword)) > self.MAX_EDIT_DISTANCE:
                        continue
                    distance = levenshtein_distance(keyword, segment)
                    if 0 < distance <= self.MAX_EDIT_DISTANCE:
                        return brand
        return None

    def _score_structure(self, candidate: URLCandidate, reasons: list[str]) -> int:
        host = candidate.host
        if candidate.is_ip_address:
            reasons.append("Uses raw IP address instead of domain name")
            return self.STRUCTURE_CAP

        score = 0
        if host.count(".") > self.MAX_SUBDOMAIN_DOTS:
            score += self.STRUCTURE_POINTS
            reasons.append("Excessive number of subdomains")
        if host.count("-") > self.MAX_HYPHENS:
            score += self.STRUCTURE_POINTS
            reasons.append("Excessive use of hyphens in domain")
        return min(score, self.STRUCTURE_CAP)

    def _score_keywords(self, candidate: URLCandidate, reasons: list[str]) -> int:
        text = f"{candidate.host}{candidate.path}?{candidate.query}".lower()
        matched = [keyword for keyword in self._keywords if keyword in text]
        if not matched:
            return 0

        examples = ", ".join(matched[:self.MAX_KEYWORD_EXAMPLES])
        if len(matched) > self.MAX_KEYWORD_EXAMPLES:
            examples += ", ..."
        reasons.append(
            f"Contains {len(matched)} suspicious security-related keywords ({examples})"
        )
        return min(len(matched) * self.KEYWORD_POINTS, self.KEYWORD_CAP)

    def _score_path(self, candidate: URLCandidate, is_official: bool, reasons: list[str]) -> int:
        path = candidate.path or "/"
        query_values = [value.strip() for _, value in parse_qsl(candidate.query, keep_blank_values=True)]
        score = 0

        if not is_official and LOGIN_PATH_PATTERN.search(path):
            score += self.PATH_POINTS
            reasons.append("URL path contains a login/payment page pattern on a non-official domain")

        if any(self._looks_like_base64(value) for value in query_values):
            score += self.PATH_POINTS
            reasons.append("URL carries encoded data in its query (possible Base64 payload)")

        has_email = any(EMAIL_PATTERN.search(value) for value in query_values)
        has_phone = any(PHONE_PATTERN.match(value) for value in query_values)
        if has_email or has_phone:
            score += self.PATH_POINTS
            found = "an email address" if has_email else "a phone number"
            reasons.append(f"URL query contains {found}")

        depth = len([segment for segment in path.split("/") if segment])
        if depth > self.MAX_PATH_DEPTH:
            score += self.PATH_POINTS
            reasons.append(f"Deeply nested URL path ({depth} levels)")

        if not is_official and BANKING_PATH_PATTERN.search(path):
            score += self.PATH_POINTS
            reasons.append("URL path mimics banking/financial service pages")

        return min(score, self.PATH_CAP)

    @staticmethod
    def _looks_like_base64(value: str) -> bool:
        if not BASE64_VALUE_PATTERN.match(value):
            return False
        has_upper = any(char.isupper() for char in value)
        has_lower = any(char.islower() for char in value)
        has_digit = any(char.isdigit() for char in value)
        return has_upper and has_lower and (has_digit or value.endswith("="))

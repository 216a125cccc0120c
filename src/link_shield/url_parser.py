"""
URL parsing and host normalization.

Turns a raw, possibly scheme-less string into a URLCandidate. Unparseable
input is represented as an invalid candidate with an error code rather
than an exception, so every caller can take the maximal-risk path without
a try/except of its own.
"""

import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

import idna

from .enums import URLErrorCode
from .exceptions import InputError

SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")

IPV4_PATTERN = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")

# Characters never valid in a hostname (control chars, whitespace, symbols)
FORBIDDEN_HOST_CHARS = re.compile(
    r'[\x00-\x1f\x7f'
    r'\s'
    r'!#$%^&*()+=\[\]{}|\;"\'<>,?/`~]'
)


@dataclass
class URLParseError:
    """Structured error information for URL parsing failures."""

    code: URLErrorCode
    message: str
    details: dict = field(default_factory=dict)


@dataclass
class URLCandidate:
    """A raw URL string and its parsed parts."""

    raw: str
    valid: bool
    scheme: str = ""
    host: str = ""  # lowercase ASCII (Punycode) form
    unicode_host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    error: Optional[URLParseError] = None

    @property
    def href(self) -> str:
        if not self.valid:
            return self.raw
        netloc = self.host if self.port is None else f"{self.host}:{self.port}"
        href = f"{self.scheme}://{netloc}{self.path or '/'}"
        if self.query:
            href += f"?{self.query}"
        return href

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"

    @property
    def is_ip_address(self) -> bool:
        return bool(IPV4_PATTERN.match(self.host))

    @property
    def is_punycode(self) -> bool:
        return any(label.startswith("xn--") for label in self.host.split("."))

    @property
    def tld(self) -> str:
        return self.host.rsplit(".", 1)[-1] if "." in self.host else ""


def _invalid(raw: str, code: URLErrorCode, message: str, **details) -> URLCandidate:
    return URLCandidate(
        raw=raw,
        valid=False,
        error=URLParseError(code=code, message=message, details=details),
    )


def normalize_host(host: str) -> tuple[str, str]:
    """
    Normalize a hostname to its ASCII and Unicode forms.

    Args:
        host: Hostname in any case, ASCII, Punycode or Unicode

    Returns:
        Tuple of (ascii_host, unicode_host), both lowercase

    Raises:
        InputError: If the hostname contains non-ASCII characters that
            cannot be IDNA-encoded
    """
    host_lower = host.lower().rstrip(".")

    if any(ord(c) > 127 for c in host_lower):
        try:
            ascii_host = idna.encode(host_lower, uts46=True).decode("ascii")
        except (idna.IDNAError, UnicodeError) as e:
            raise InputError(
                code=URLErrorCode.IDNA_ERROR.value,
                message=f"IDNA encoding failed: {e}",
                details={"host": host},
            )
        return ascii_host, host_lower

    ascii_host = host_lower
    unicode_host = host_lower
    if "xn--" in host_lower:
        try:
            unicode_host = idna.decode(host_lower)
        except (idna.IDNAError, UnicodeError):
            # Undecodable Punycode is still a valid ASCII hostname
            unicode_host = host_lower
    return ascii_host, unicode_host


def parse_url(raw_url: str) -> URLCandidate:
    """
    Parse a raw URL string.

    A missing scheme defaults to https. Never raises.

    Args:
        raw_url: The raw URL as received (SMS, QR, share intent)

    Returns:
        URLCandidate, with ``valid=False`` and an error for unparseable input
    """
    if not isinstance(raw_url, str) or not raw_url.strip():
        return _invalid(str(raw_url or ""), URLErrorCode.EMPTY_INPUT, "URL input is empty")

    text = raw_url.strip()
    if not SCHEME_PATTERN.match(text):
        text = f"https://{text}"

    try:
        parts = urlsplit(text)
        hostname = parts.hostname
        port = parts.port
    except ValueError as e:
        return _invalid(raw_url, URLErrorCode.MALFORMED, f"Malformed URL: {e}")

    if not hostname:
        return _invalid(raw_url, URLErrorCode.MISSING_HOST, "URL has no host")

    if FORBIDDEN_HOST_CHARS.search(hostname):
        return _invalid(
            raw_url,
            URLErrorCode.FORBIDDEN_CHARS,
            "Host contains forbidden characters",
            host=hostname,
        )

    try:
        ascii_host, unicode_host = normalize_host(hostname)
    except InputError as e:
        return _invalid(raw_url, URLErrorCode.IDNA_ERROR, e.message, **e.details)

    if not ascii_host or ".." in ascii_host or ascii_host.startswith("."):
        return _invalid(raw_url, URLErrorCode.MALFORMED, "Host has empty labels", host=hostname)

    return URLCandidate(
        raw=raw_url,
        valid=True,
        scheme=parts.scheme.lower(),
        host=ascii_host,
        unicode_host=unicode_host,
        port=port,
        path=parts.path,
        query=parts.query,
    )


def host_matches(host: str, domain: str) -> bool:
    """Return True if host equals domain or is a subdomain of it."""
    return host == domain or host.endswith("." + domain)

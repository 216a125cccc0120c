"""
RDAP bootstrap table - registry servers used for registration-age lookups.

Keys are top-level or compound suffixes; a compound suffix ("co.id") wins
over its top-level suffix ("id") when both are present. Suffixes that are
not listed have no lookup server and resolve to an "unavailable" age result
without any network call.

Registrable roots come from the Public Suffix List snapshot bundled with
tldextract; the list is never fetched at runtime.
"""

from typing import Optional

import tldextract

IDENTITY_DIGITAL = "https://rdap.identitydigital.services/rdap/v1"
GOOGLE_REGISTRY = "https://rdap.nic.google/v1"
PANDI = "https://rdap.pandi.or.id/v1"

# ============================================================================
# GENERIC TLDs
# ============================================================================
GENERIC_SERVERS = {
    "com": "https://rdap.verisign.com/com/v1",
    "net": "https://rdap.verisign.com/net/v1",
    "org": "https://rdap.org/org/v1",
    "info": "https://rdap.afilias.net/rdap/info/v1",
}

# ============================================================================
# NEW gTLDs
# ============================================================================
NEW_GTLD_SERVERS = {
    **{tld: IDENTITY_DIGITAL for tld in ("biz", "club", "io", "me", "link", "click", "live")},
    **{
        tld: f"https://rdap.centralnic.com/{tld}/v1"
        for tld in ("xyz", "online", "site", "top", "shop", "fun", "buzz", "space", "store")
    },
    "app": GOOGLE_REGISTRY,
    "dev": GOOGLE_REGISTRY,
}

# ============================================================================
# COUNTRY CODE TLDs
# ============================================================================
CCTLD_SERVERS = {
    "id": PANDI,
    "co.id": PANDI,
    "my": "https://rdap.mynic.my/v1",
    "sg": "https://rdap.sgnic.sg/v1",
    "ph": "https://rdap.dot.ph/v1",
    "uk": "https://rdap.nominet.uk/v1",
    "de": "https://rdap.denic.de/v1",
    "au": "https://rdap.auda.org.au/v1",
    "jp": "https://rdap.jprs.jp/v1",
    "kr": "https://rdap.kisa.or.kr/v1",
    "in": "https://rdap.registry.in/v1",
    "ru": "https://rdap.tcinet.ru/v1",
    "br": "https://rdap.registro.br/v1",
}

DEFAULT_RDAP_SERVERS: dict[str, str] = {
    **GENERIC_SERVERS,
    **NEW_GTLD_SERVERS,
    **CCTLD_SERVERS,
}

# ICANN section only, no network refresh of the suffix list.
_extract = tldextract.TLDExtract(suffix_list_urls=(), include_psl_private_domains=False)


def _split(hostname: str) -> tuple[list[str], str, str]:
    host = hostname.lower().strip(".")
    labels = [label for label in host.split(".") if label]
    if not labels:
        return [], "", ""
    parts = _extract(".".join(labels))
    return labels, parts.domain, parts.suffix


def public_suffix(hostname: str) -> str:
    """
    Return the public suffix of a hostname ("co.id" for "bca.co.id").

    Args:
        hostname: Lowercase ASCII hostname

    Returns:
        The listed public suffix, else the last label
    """
    labels, _, suffix = _split(hostname)
    if suffix:
        return suffix
    return labels[-1] if labels else ""


def registrable_domain(hostname: str) -> str:
    """
    Extract the registrable root of a hostname.

    Hosts under an unlisted suffix keep their last two labels.

    Examples:
        "login.secure.example.com" -> "example.com"
        "ib.bri.co.id" -> "bri.co.id"
        "shop.example.co.za" -> "example.co.za"
    """
    labels, domain, suffix = _split(hostname)
    if domain and suffix:
        return f"{domain}.{suffix}"
    return ".".join(labels[-2:])


def find_rdap_server(domain: str, servers: Optional[dict[str, str]] = None) -> Optional[str]:
    """
    Look up the RDAP server for a registrable domain.

    The compound suffix is tried first, then the top-level suffix.
    """
    table = DEFAULT_RDAP_SERVERS if servers is None else servers
    labels = domain.lower().strip(".").split(".")
    if len(labels) >= 3:
        compound = ".".join(labels[-2:])
        if compound in table:
            return table[compound]
    return table.get(labels[-1])

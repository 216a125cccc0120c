"""
Static trust and threat tables.

Brands, trusted domains, risky suffixes, keyword lists and popularity tiers
are plain immutable data loaded once at import time. Adding a brand, keyword
or suffix is a data change here, not a code change in the scorers.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Brand:
    """A brand commonly impersonated in phishing links."""

    name: str
    official_domains: tuple[str, ...]
    keywords: tuple[str, ...]


# Order matters: brand detection reports the first matching brand.
KNOWN_BRANDS: tuple[Brand, ...] = (
    Brand("BCA", ("bca.co.id", "klikbca.com", "klikbca.co.id", "mybca.bca.co.id"), ("bca", "klikbca", "mybca")),
    Brand("BRI", ("bri.co.id", "ib.bri.co.id", "brimo.bri.co.id"), ("bri", "brimo", "bankbri")),
    Brand("Mandiri", ("bankmandiri.co.id", "mandirinline.com", "livin.bankmandiri.co.id", "livin.id"), ("mandiri", "livin", "bankmandiri")),
    Brand("BNI", ("bni.co.id", "ib.bni.co.id"), ("bni", "bankbni")),
    Brand("DANA", ("dana.id", "dana.com"), ("dana", "danaid")),
    Brand("GoJek", ("gojek.com", "gopay.co.id"), ("gojek", "gopay")),
    Brand("Shopee", ("shopee.co.id", "shopee.com"), ("shopee", "shopeepay")),
    Brand("Tokopedia", ("tokopedia.com",), ("tokopedia",)),
    Brand("Google", ("google.com", "google.co.id", "gmail.com", "accounts.google.com"), ("google", "gmail")),
    Brand("Facebook", ("facebook.com", "fb.com"), ("facebook", "fb")),
    Brand("Instagram", ("instagram.com",), ("instagram", "ig")),
    Brand("WhatsApp", ("whatsapp.com", "wa.me"), ("whatsapp",)),
    Brand("SatuSehat", ("satusehat.kemkes.go.id", "pedulilindungi.id"), ("satusehat", "pedulilindungi")),
    Brand("PayPal", ("paypal.com", "paypal.me"), ("paypal",)),
    Brand("Netflix", ("netflix.com",), ("netflix",)),
    Brand("Microsoft", ("microsoft.com", "live.com", "office.com", "outlook.com"), ("microsoft", "office365", "outlook")),
    Brand("Apple", ("apple.com", "icloud.com"), ("apple", "icloud", "itunes")),
    Brand("Amazon", ("amazon.com", "amazon.co.uk", "amazon.de", "amazon.co.jp"), ("amazon", "prime")),
    Brand("DHL", ("dhl.com",), ("dhl", "delivery")),
    Brand("FedEx", ("fedex.com",), ("fedex",)),
)

OFFICIAL_BRAND_DOMAINS = frozenset(
    domain for brand in KNOWN_BRANDS for domain in brand.official_domains
)

# ============================================================================
# TRUSTED DOMAINS
# ============================================================================
GLOBAL_TECH = (
    "google.com", "youtube.com", "gmail.com", "android.com",
    "facebook.com", "instagram.com", "whatsapp.com", "messenger.com",
    "twitter.com", "x.com",
    "linkedin.com", "microsoft.com", "live.com", "office.com", "bing.com",
    "apple.com", "icloud.com", "itunes.com",
    "amazon.com", "aws.amazon.com",
    "netflix.com", "spotify.com", "twitch.tv",
    "github.com", "gitlab.com", "stackoverflow.com",
    "zoom.us", "slack.com", "atlassian.com", "trello.com",
    "dropbox.com", "drive.google.com", "wetransfer.com",
    "paypal.com", "wise.com",
    "wikipedia.org", "reddit.com", "medium.com",
    "adobe.com", "figma.com", "canva.com",
    "salesforce.com", "oracle.com", "ibm.com",
    "cloudflare.com",
)

INDONESIA_BANKS = (
    "bankmandiri.co.id", "bankmandiri.com", "livin.id",
    "bri.co.id", "ib.bri.co.id", "brimo.bri.co.id",
    "bni.co.id", "ibank.bni.co.id",
    "bca.co.id", "klikbca.com", "mybca.bca.co.id",
    "cimbniaga.co.id", "octoclicks.co.id",
    "danamon.co.id", "danamonline.com",
    "maybank.co.id", "permatabank.com",
    "btpn.com", "jenius.com", "btn.co.id",
    "bsi.co.id", "bankbsi.co.id",
    "bankmega.com", "panin.co.id", "ocbcnisp.com",
    "uob.co.id", "shinhan.co.id", "commonwealth.co.id",
    "bi.go.id", "ojk.go.id", "lps.go.id",
)

INDONESIA_FINTECH = (
    "gopay.co.id", "gojek.com", "ovo.id", "dana.id", "linkaja.id",
    "sakuku.bca.co.id", "shopeepay.co.id", "dokupay.com", "flip.id",
    "investree.id", "koinworks.com", "modalku.co.id",
    "bibit.id", "ajaib.co.id", "bareksa.com",
)

INDONESIA_ECOMMERCE = (
    "tokopedia.com", "shopee.co.id", "bukalapak.com", "lazada.co.id",
    "blibli.com", "jd.id", "zalora.co.id", "sociolla.com",
    "tiket.com", "traveloka.com", "pegipegi.com",
    "agoda.com", "booking.com",
    "halodoc.com", "alodokter.com",
    "ruangguru.com", "zenius.net",
)

INDONESIA_PUBLIC = (
    "kemkes.go.id", "kemdikbud.go.id", "kemenkeu.go.id", "pajak.go.id",
    "dukcapil.kemendagri.go.id", "bpjs-kesehatan.go.id", "bpjsketenagakerjaan.go.id",
    "pln.co.id", "telkom.co.id", "indihome.co.id", "pertamina.com",
    "posindonesia.co.id", "kai.id", "garuda-indonesia.com", "lionair.co.id",
    "citilink.co.id", "batikair.com", "pelni.co.id", "damri.co.id",
    "pedulilindungi.id", "satusehat.kemkes.go.id",
)

INDONESIA_MEDIA = (
    "kompas.com", "kompas.id", "detik.com", "cnnindonesia.com",
    "cnbcindonesia.com", "tribunnews.com", "liputan6.com", "merdeka.com",
    "viva.co.id", "suara.com", "kumparan.com", "idntimes.com", "tempo.co",
    "republika.co.id", "antaranews.com", "jawapos.com", "bisnis.com",
    "katadata.co.id",
)

INDONESIA_TELCO = (
    "telkomsel.com", "indosatooredoo.com", "im3.id", "xl.co.id", "axis.co.id",
    "smartfren.com", "tri.co.id", "biznetnetworks.com", "firstmedia.com",
    "myrepublic.co.id",
)

INDONESIA_EDU = (
    "ui.ac.id", "ugm.ac.id", "itb.ac.id", "ipb.ac.id", "unpad.ac.id",
    "its.ac.id", "undip.ac.id", "unair.ac.id", "ub.ac.id", "binus.ac.id",
)

TRUSTED_DOMAINS = frozenset(
    GLOBAL_TECH
    + INDONESIA_BANKS
    + INDONESIA_FINTECH
    + INDONESIA_ECOMMERCE
    + INDONESIA_PUBLIC
    + INDONESIA_MEDIA
    + INDONESIA_TELCO
    + INDONESIA_EDU
)

# Government and academic zones are trusted as a whole
TRUSTED_SUFFIXES = (".go.id", ".ac.id")

# ============================================================================
# HEURISTIC SCORER TABLES
# ============================================================================
RISKY_TLDS = (
    ".xyz", ".top", ".icu", ".link", ".tk", ".ga", ".cf", ".ml", ".cn", ".bd",
    ".pk", ".ke", ".ng", ".buzz", ".work", ".surf", ".cam", ".bar", ".rest",
    ".wiki", ".live", ".monster", ".gq", ".cc", ".ru", ".ir", ".info", ".net",
    ".org", ".biz", ".club", ".vip", ".pro",
)

SUSPICIOUS_KEYWORDS = (
    # Indonesian
    "login", "signin", "verify", "verifikasi", "update", "secure", "account",
    "akun", "banking", "promo", "hadiah", "undian", "bonus", "claim", "klaim",
    "winner", "pemenang", "alert", "warning", "confirm", "konfirmasi",
    "password", "credential", "wallet", "dompet", "free", "gratis",
    # English
    "auth", "authenticate", "billing", "invoice", "payment", "pay", "support",
    "service", "security", "suspended", "locked", "unlock", "mobile",
    "validation", "check", "notification", "urgent", "limited", "offer",
    "server", "admin", "recover", "restore",
)

LEETSPEAK_MAP = {
    "0": "o",
    "1": "l",
    "3": "e",
    "4": "a",
    "@": "a",
    "5": "s",
    "7": "t",
}

# Cyrillic and Greek letters that render like Latin ones
CONFUSABLES_MAP = {
    "а": "a", "в": "b", "с": "c", "ԁ": "d", "е": "e", "һ": "h", "і": "i",
    "ј": "j", "к": "k", "ӏ": "l", "м": "m", "н": "h", "о": "o", "р": "p",
    "ԛ": "q", "ѕ": "s", "т": "t", "у": "y", "х": "x", "ԝ": "w", "ɡ": "g",
    "α": "a", "ε": "e", "ι": "i", "κ": "k", "ν": "v", "ο": "o", "ρ": "p",
    "τ": "t", "υ": "u", "χ": "x",
}

LOGIN_PATH_PATTERN = re.compile(
    r"/(login|log-in|signin|sign-in|masuk|verify|verifikasi|account|akun|"
    r"checkout|payment|pembayaran|billing|otp|reset-password|password|secure|update)(/|$|\.)",
    re.IGNORECASE,
)

BANKING_PATH_PATTERN = re.compile(
    r"/(internet-banking|ibank|mobile-banking|m-banking|netbanking|e-wallet|ewallet|"
    r"wallet|topup|top-up|transfer|rekening|kartu-kredit|credit-card)(/|$)",
    re.IGNORECASE,
)

BASE64_VALUE_PATTERN = re.compile(r"^[A-Za-z0-9+/_-]{24,}={0,2}$")

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

PHONE_PATTERN = re.compile(r"^\+?\d{9,15}$")

# ============================================================================
# FAST ALLOW GATE TABLES
# ============================================================================
DANGEROUS_EXTENSIONS = (
    ".apk", ".exe", ".msi", ".bat", ".cmd", ".scr", ".pif", ".com", ".vbs", ".js", ".jar",
)

URL_SHORTENERS = frozenset({
    "bit.ly", "tinyurl.com", "t.co", "goo.gl", "ow.ly", "is.gd", "buff.ly",
    "adf.ly", "bit.do", "mcaf.ee", "su.pr", "dlvr.it", "fb.me", "lnkd.in",
    "youtu.be", "amzn.to", "rb.gy", "cutt.ly", "shorturl.at", "tiny.cc",
    "bc.vc", "v.gd", "clck.ru", "rebrand.ly", "s.id", "linktr.ee", "qr.ae",
    "surl.li", "shorturl.asia", "u.to",
})

# ============================================================================
# SAFETY REVIEW TABLES
# ============================================================================
REVIEW_SUSPICIOUS_TLDS = (
    ".xyz", ".top", ".work", ".click", ".link", ".info", ".biz", ".win",
    ".loan", ".gq", ".ml", ".cf", ".tk", ".ga",
)

# Fake wedding/event invitations are a common APK malware lure
INVITATION_KEYWORDS = (
    "undangan", "pernikahan", "wedding", "marry", "invitation",
    "surat", "digital", "nikah", "resepsi", "hajatan",
)

TRUSTED_INVITATION_DOMAINS = frozenset({
    "canva.com", "sebarundangan.com", "kitalulus.com", "linkedin.com",
    "bridestory.com", "invit.id", "datengdong.com",
})

SUSPICIOUS_URL_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"free[.-]?gift",
        r"claim[.-]?prize",
        r"winner",
        r"urgent",
        r"expire",
        r"suspended",
        r"verify[.-]?account",
        r"update[.-]?payment",
        r"\d{10,}",
        r"[a-z]{20,}",
    )
)

# ============================================================================
# DOMAIN POPULARITY (Tranco-style ranking)
# ============================================================================
TOP_100_DOMAINS = frozenset({
    "google.com", "youtube.com", "facebook.com", "microsoft.com", "apple.com",
    "amazon.com", "netflix.com", "instagram.com", "linkedin.com", "twitter.com",
    "x.com", "whatsapp.com", "wikipedia.org", "reddit.com", "yahoo.com",
    "tiktok.com", "bing.com", "live.com", "office.com", "outlook.com",
    "github.com", "stackoverflow.com", "medium.com", "wordpress.com", "wordpress.org",
    "adobe.com", "spotify.com", "twitch.tv", "discord.com", "pinterest.com",
    "paypal.com", "ebay.com", "dropbox.com", "salesforce.com", "zoom.us",
    "slack.com", "notion.so", "figma.com", "canva.com", "cloudflare.com",
    "amazonaws.com", "icloud.com", "telegram.org", "signal.org", "whatsapp.net",
    "vimeo.com", "dailymotion.com", "quora.com", "tumblr.com", "flickr.com",
    "bbc.com", "bbc.co.uk", "cnn.com", "nytimes.com", "theguardian.com",
    "reuters.com", "bloomberg.com", "washingtonpost.com", "wsj.com", "forbes.com",
    "msn.com", "aol.com", "indeed.com", "glassdoor.com", "zillow.com",
    "booking.com", "airbnb.com", "tripadvisor.com", "expedia.com", "uber.com",
    "lyft.com", "doordash.com", "grubhub.com", "walmart.com", "target.com",
    "bestbuy.com", "homedepot.com", "lowes.com", "costco.com", "etsy.com",
    "shopify.com", "stripe.com", "squarespace.com", "wix.com", "godaddy.com",
    "namecheap.com", "bluehost.com", "digitalocean.com", "heroku.com", "netlify.com",
    "vercel.com", "docker.com", "kubernetes.io", "oracle.com", "ibm.com",
})

TOP_1000_DOMAINS = frozenset({
    # Indonesian
    "tokopedia.com", "shopee.co.id", "bukalapak.com", "lazada.co.id",
    "gojek.com", "grab.com", "traveloka.com", "tiket.com",
    "detik.com", "kompas.com", "tribunnews.com", "liputan6.com", "cnnindonesia.com",
    "kumparan.com", "tempo.co", "suara.com", "okezone.com", "sindonews.com",
    "antaranews.com", "republika.co.id", "viva.co.id", "merdeka.com",
    "bca.co.id", "bri.co.id", "bankmandiri.co.id", "bni.co.id",
    "dana.id", "gopay.co.id", "ovo.id", "linkaja.co.id",
    "ruangguru.com", "zenius.net", "brainly.co.id",
    "telkomsel.com", "indosat.com", "xl.co.id", "smartfren.com",
    "kaskus.co.id", "idntimes.com", "grid.id", "dream.co.id",
    # International
    "samsung.com", "huawei.com", "xiaomi.com", "oppo.com", "vivo.com",
    "sony.com", "lg.com", "dell.com", "hp.com", "lenovo.com",
    "intel.com", "amd.com", "nvidia.com", "qualcomm.com",
    "visa.com", "mastercard.com", "americanexpress.com",
    "chase.com", "bankofamerica.com", "wellsfargo.com", "citibank.com",
    "hsbc.com", "barclays.com", "goldmansachs.com",
    "att.com", "verizon.com", "tmobile.com",
    "nike.com", "adidas.com", "puma.com",
    "coca-cola.com", "pepsi.com", "mcdonalds.com", "starbucks.com",
    "tesla.com", "ford.com", "toyota.com", "honda.com", "bmw.com",
    "mercedes-benz.com", "audi.com", "volkswagen.com",
    "nfl.com", "nba.com", "fifa.com", "espn.com",
    "imdb.com", "gitlab.com", "bitbucket.org", "npmjs.com",
    "pypi.org", "maven.org", "nuget.org", "rubygems.org",
    "w3.org", "w3schools.com", "developer.mozilla.org",
})

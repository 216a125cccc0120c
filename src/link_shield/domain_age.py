"""
Domain registration age checker.

Looks up the registration date of a domain's registrable root over RDAP
and classifies it as new (< 30 days) or young (< 180 days). Every failure
(unknown suffix, timeout, non-2xx, malformed payload) degrades to the same
"unavailable" result, which callers must treat as "unknown", never as old.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import httpx

from .audit_logger import AuditLogger
from .config import DomainAgeConfig
from .enums import LogLevel
from .models import DomainAgeResult
from .rdap_bootstrap import find_rdap_server, registrable_domain
from .rdap_client import RDAPClient, RDAPEvent
from .ttl_cache import TTLCache


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_event_date(value: str) -> Optional[datetime]:
    """Parse an RDAP eventDate (RFC 3339). Returns None if unparseable."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def find_registration_date(events: list[RDAPEvent]) -> Optional[datetime]:
    """
    Pick the registration date from RDAP events.

    An explicit "registration" event wins; otherwise the earliest event
    date of any kind is used.
    """
    dated = [
        (event.event_action, parsed)
        for event in events
        if (parsed := parse_event_date(event.event_date)) is not None
    ]
    for action, parsed in dated:
        if action == "registration":
            return parsed
    if not dated:
        return None
    return min(parsed for _, parsed in dated)


class DomainAgeChecker:
    """
    Cached RDAP registration-age lookups.

    Results are cached per registrable root, unavailable results included,
    so a failing registry is not queried again until the entry expires.
    """

    def __init__(
        self,
        config: Optional[DomainAgeConfig] = None,
        rdap_client: Optional[RDAPClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
        cache: Optional[TTLCache[DomainAgeResult]] = None,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Initialize the checker.

        Args:
            config: Thresholds, timeout, cache and bootstrap table settings
            rdap_client: Optional RDAP client (built from config if omitted)
            transport: Optional httpx transport for the default RDAP client
            logger: Optional audit logger
            cache: Optional cache instance (built from config if omitted)
            now: Source of the current UTC time
        """
        self._config = config or DomainAgeConfig()
        self._rdap = rdap_client or RDAPClient(
            timeout=self._config.timeout_seconds,
            transport=transport,
        )
        self._logger = logger
        self._cache = cache if cache is not None else TTLCache(
            ttl_seconds=self._config.cache_ttl_seconds,
            capacity=self._config.cache_capacity,
        )
        self._now = now

    async def __aenter__(self) -> "DomainAgeChecker":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def cache(self) -> TTLCache[DomainAgeResult]:
        return self._cache

    def classify(self, domain: str, registered_at: datetime) -> DomainAgeResult:
        """Build an available result from a registration date."""
        age_in_days = max(0, (self._now() - registered_at).days)
        return DomainAgeResult(
            domain=domain,
            age_in_days=age_in_days,
            registration_date=registered_at.astimezone(timezone.utc).isoformat(),
            is_new_domain=age_in_days < self._config.new_domain_days,
            is_young_domain=age_in_days < self._config.young_domain_days,
            is_lookup_available=True,
        )

    async def check_domain_age(self, hostname: str) -> DomainAgeResult:
        """
        Look up the registration age of a hostname's registrable root.

        Args:
            hostname: Hostname in ASCII form (subdomains allowed)

        Returns:
            DomainAgeResult; never raises
        """
        root = registrable_domain(hostname)
        if not root:
            return DomainAgeResult.unavailable(hostname)

        cached = self._cache.get(root)
        if cached is not None:
            return DomainAgeResult(
                domain=cached.domain,
                age_in_days=cached.age_in_days,
                registration_date=cached.registration_date,
                is_new_domain=cached.is_new_domain,
                is_young_domain=cached.is_young_domain,
                is_lookup_available=cached.is_lookup_available,
                from_cache=True,
            )

        if not self._config.enabled:
            return DomainAgeResult.unavailable(root)

        server = find_rdap_server(root, self._config.servers)
        if server is None:
            self._log(LogLevel.DEBUG, "No RDAP server for suffix", {"domain": root})
            result = DomainAgeResult.unavailable(root)
            self._cache.set(root, result)
            return result

        response = await self._rdap.query(root, server)
        if not response.ok:
            error = response.error
            self._log(
                LogLevel.WARN,
                "RDAP lookup unavailable",
                {
                    "domain": root,
                    "error_code": error.code.value if error else None,
                    "error_message": error.message if error else None,
                    "request_url": RDAPClient.build_url(server, root),
                },
            )
            result = DomainAgeResult.unavailable(root)
            self._cache.set(root, result)
            return result

        registered_at = find_registration_date(response.parsed_fields.events)
        if registered_at is None:
            self._log(LogLevel.WARN, "RDAP response carries no usable event date", {"domain": root})
            result = DomainAgeResult.unavailable(root)
        else:
            result = self.classify(root, registered_at)
            self._log(
                LogLevel.INFO,
                "Domain age resolved",
                {"domain": root, "age_in_days": result.age_in_days},
            )

        self._cache.set(root, result)
        return result

    def clear_cache(self) -> None:
        self._cache.clear()

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, "DomainAgeChecker", message, data)

    async def close(self) -> None:
        """Close the underlying RDAP client."""
        await self._rdap.close()

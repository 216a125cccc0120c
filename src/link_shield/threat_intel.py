"""
External threat intelligence clients.

Two independent lookups are supported:
- SafeBrowsingClient: blocklist-style Safe Browsing v4 Lookup API, with a
  batch variant that checks many URLs in one request
- PhishTankClient: community-report-style lookup

Both clients check their configuration before anything else (an
unconfigured client makes zero network calls), consult a per-URL TTL cache
before each request, and bound every request with a cancellation timeout.
Any failure degrades to "not a threat / unavailable": an outage must never
turn into a block.
"""

import asyncio
from dataclasses import replace
from typing import Any, Iterable, Optional

import httpx

from .audit_logger import AuditLogger
from .config import PhishTankConfig, SafeBrowsingConfig
from .enums import LogLevel, LookupErrorCode, ThreatSource
from .exceptions import TransportError
from .models import ThreatIntelResult
from .ttl_cache import TTLCache

THREAT_DESCRIPTIONS = {
    "MALWARE": "This site may contain malware that can harm your device",
    "SOCIAL_ENGINEERING": "This site may be attempting to trick you into sharing personal information (phishing)",
    "UNWANTED_SOFTWARE": "This site may contain unwanted or deceptive software",
    "POTENTIALLY_HARMFUL_APPLICATION": "This site may contain potentially harmful applications",
}

PHISHTANK_THREAT_TYPE = "PHISHING"
PHISHTANK_DESCRIPTION = "This URL is listed as a phishing site in the PhishTank community database"


def describe_threat(threat_type: str) -> str:
    return THREAT_DESCRIPTIONS.get(threat_type, f"Threat detected: {threat_type}")


def combine_threat_results(results: Iterable[Optional[ThreatIntelResult]]) -> Optional[ThreatIntelResult]:
    """
    Merge the verdicts of several threat lookups.

    A threat reported by any source wins. Otherwise the merged result is
    available if at least one source answered. Returns None when no result
    was supplied at all.
    """
    supplied = [result for result in results if result is not None]
    if not supplied:
        return None
    for result in supplied:
        if result.is_threat:
            return result
    for result in supplied:
        if result.is_api_available:
            return result
    return supplied[0]


class _ThreatIntelClient:
    """Shared plumbing: lazy HTTP client, cache, timeout and logging."""

    SOURCE: ThreatSource
    COMPONENT = "ThreatIntel"

    def __init__(
        self,
        timeout: float,
        cache: TTLCache[ThreatIntelResult],
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._timeout = timeout
        self._cache = cache
        self._transport = transport
        self._logger = logger
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def cache(self) -> TTLCache[ThreatIntelResult]:
        return self._cache

    @property
    def is_configured(self) -> bool:
        raise NotImplementedError

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    def _unavailable(self) -> ThreatIntelResult:
        return ThreatIntelResult.unavailable(self.SOURCE)

    def _get_cached(self, url: str) -> Optional[ThreatIntelResult]:
        cached = self._cache.get(url)
        if cached is None:
            return None
        return replace(cached, from_cache=True)

    def _store(self, url: str, result: ThreatIntelResult) -> None:
        self._cache.set(url, replace(result, from_cache=False))

    async def _post(self, request_url: str, **kwargs) -> Any:
        """
        POST with a cancellation timeout and decode the JSON body.

        Raises:
            TransportError: On timeout, connection failure, non-2xx status
                or a body that is not JSON
        """
        try:
            response = await asyncio.wait_for(
                self._get_client().post(request_url, **kwargs),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise TransportError(
                code=LookupErrorCode.TIMEOUT.value,
                message=f"Request timed out after {self._timeout}s",
            )
        except httpx.HTTPError as e:
            raise TransportError(
                code=LookupErrorCode.NETWORK_ERROR.value,
                message=f"Connection error: {e}",
            )

        if not response.is_success:
            if response.status_code == 429:
                self._log(LogLevel.WARN, "Rate limit hit", {"status_code": 429})
            raise TransportError(
                code=LookupErrorCode.HTTP_ERROR.value,
                message=f"API returned {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                code=LookupErrorCode.PARSE_ERROR.value,
                message=f"Response is not valid JSON: {e}",
            )

    def clear_cache(self) -> None:
        self._cache.clear()

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)

    def _log_error(self, message: str, error: TransportError, request_url: str) -> None:
        if self._logger:
            self._logger.log_error(
                self.COMPONENT,
                message,
                error=error,
                request_url=request_url,
                response_status_code=error.details.get("status_code"),
                additional_data={"error_code": error.code},
            )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


class SafeBrowsingClient(_ThreatIntelClient):
    """Blocklist-style lookup against the Safe Browsing v4 Lookup API."""

    SOURCE = ThreatSource.SAFE_BROWSING
    COMPONENT = "SafeBrowsingClient"

    def __init__(
        self,
        config: Optional[SafeBrowsingConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
        cache: Optional[TTLCache[ThreatIntelResult]] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: API key, endpoint, threat lists, timeout and cache sizing
            transport: Optional httpx transport (tests use MockTransport)
            logger: Optional audit logger
            cache: Optional cache instance (built from config if omitted)
        """
        self._config = config or SafeBrowsingConfig()
        super().__init__(
            timeout=self._config.timeout_seconds,
            cache=cache if cache is not None else TTLCache(
                ttl_seconds=self._config.cache_ttl_seconds,
                capacity=self._config.cache_capacity,
            ),
            transport=transport,
            logger=logger,
        )

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def build_request_body(self, urls: list[str]) -> dict:
        return {
            "client": {
                "clientId": self._config.client_id,
                "clientVersion": self._config.client_version,
            },
            "threatInfo": {
                "threatTypes": list(self._config.threat_types),
                "platformTypes": list(self._config.platform_types),
                "threatEntryTypes": list(self._config.threat_entry_types),
                "threatEntries": [{"url": url} for url in urls],
            },
        }

    def parse_response(self, data: Any, queried_urls: list[str]) -> dict[str, ThreatIntelResult]:
        """
        Map a threatMatches:find response to per-URL results.

        Every queried URL defaults to "not a threat"; each match marks its
        URL as a threat. An empty object means no matches.

        Raises:
            TransportError: If the payload is not a JSON object
        """
        if not isinstance(data, dict):
            raise TransportError(
                code=LookupErrorCode.PARSE_ERROR.value,
                message="Safe Browsing payload is not a JSON object",
            )

        results = {url: ThreatIntelResult(is_threat=False, source=self.SOURCE) for url in queried_urls}

        matches = data.get("matches") or []
        if not isinstance(matches, list):
            raise TransportError(
                code=LookupErrorCode.PARSE_ERROR.value,
                message="Safe Browsing 'matches' is not a list",
            )
        for match in matches:
            if not isinstance(match, dict):
                continue
            threat = match.get("threat")
            url = threat.get("url") if isinstance(threat, dict) else None
            threat_type = match.get("threatType")
            if not isinstance(url, str) or not isinstance(threat_type, str):
                continue
            results[url] = ThreatIntelResult(
                is_threat=True,
                threat_type=threat_type,
                description=describe_threat(threat_type),
                source=self.SOURCE,
            )
        return results

    async def _query_batch(self, urls: list[str]) -> dict[str, ThreatIntelResult]:
        data = await self._post(
            self._config.endpoint,
            params={"key": self._config.api_key},
            json=self.build_request_body(urls),
        )
        return self.parse_response(data, urls)

    def _request_url(self) -> str:
        return f"{self._config.endpoint}?key={self._config.api_key}"

    async def check_url(self, url: str) -> ThreatIntelResult:
        """
        Check a single URL.

        Returns:
            ThreatIntelResult; never raises
        """
        if not self.is_configured:
            return self._unavailable()

        cached = self._get_cached(url)
        if cached is not None:
            return cached

        try:
            batch = await self._query_batch([url])
        except TransportError as e:
            self._log_error("Safe Browsing lookup failed", e, self._request_url())
            return self._unavailable()

        result = batch.get(url, ThreatIntelResult(is_threat=False, source=self.SOURCE))
        self._store(url, result)
        if result.is_threat:
            self._log(LogLevel.WARN, "URL flagged by Safe Browsing", {"url": url, "threat_type": result.threat_type})
        return result

    async def check_urls(self, urls: Iterable[str]) -> dict[str, ThreatIntelResult]:
        """
        Check several URLs with at most one network request.

        Cached URLs are answered from the cache; all others go into a single
        batch request. If that request fails, every uncached URL is reported
        as "not a threat / unavailable".
        """
        if not self.is_configured:
            return {url: self._unavailable() for url in dict.fromkeys(urls)}

        results: dict[str, ThreatIntelResult] = {}
        uncached: list[str] = []

        for url in dict.fromkeys(urls):
            cached = self._get_cached(url)
            if cached is not None:
                results[url] = cached
            else:
                uncached.append(url)

        if not uncached:
            return results

        try:
            batch = await self._query_batch(uncached)
        except TransportError as e:
            self._log_error("Safe Browsing batch lookup failed", e, self._request_url())
            for url in uncached:
                results[url] = self._unavailable()
            return results

        for url in uncached:
            result = batch.get(url, ThreatIntelResult(is_threat=False, source=self.SOURCE))
            results[url] = result
            self._store(url, result)
        return results


class PhishTankClient(_ThreatIntelClient):
    """Community-report-style lookup against the PhishTank check endpoint."""

    SOURCE = ThreatSource.PHISHTANK
    COMPONENT = "PhishTankClient"

    def __init__(
        self,
        config: Optional[PhishTankConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
        cache: Optional[TTLCache[ThreatIntelResult]] = None,
    ) -> None:
        self._config = config or PhishTankConfig()
        super().__init__(
            timeout=self._config.timeout_seconds,
            cache=cache if cache is not None else TTLCache(
                ttl_seconds=self._config.cache_ttl_seconds,
                capacity=self._config.cache_capacity,
            ),
            transport=transport,
            logger=logger,
        )

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def build_form(self, url: str) -> dict[str, str]:
        form = {"url": url, "format": "json"}
        if self._config.api_key:
            form["app_key"] = self._config.api_key
        return form

    def parse_response(self, data: Any) -> ThreatIntelResult:
        """
        Map a PhishTank response to a result.

        A URL is a threat only when it is in the database and still valid.

        Raises:
            TransportError: If the payload lacks a ``results`` object
        """
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, dict):
            raise TransportError(
                code=LookupErrorCode.PARSE_ERROR.value,
                message="PhishTank payload has no 'results' object",
            )

        in_database = results.get("in_database") is True
        is_threat = in_database and results.get("valid") is True
        detail_url = results.get("phish_detail_page")
        return ThreatIntelResult(
            is_threat=is_threat,
            threat_type=PHISHTANK_THREAT_TYPE if is_threat else None,
            description=PHISHTANK_DESCRIPTION if is_threat else None,
            source=self.SOURCE,
            verified=results.get("verified") is True,
            detail_url=detail_url if isinstance(detail_url, str) else None,
        )

    async def check_url(self, url: str) -> ThreatIntelResult:
        """
        Check a URL against the community database.

        Returns:
            ThreatIntelResult; never raises
        """
        if not self.is_configured:
            return self._unavailable()

        cached = self._get_cached(url)
        if cached is not None:
            return cached

        try:
            data = await self._post(
                self._config.endpoint,
                data=self.build_form(url),
                headers={"User-Agent": self._config.user_agent},
            )
            result = self.parse_response(data)
        except TransportError as e:
            self._log_error("PhishTank lookup failed", e, self._config.endpoint)
            return self._unavailable()

        self._store(url, result)
        if result.is_threat:
            self._log(LogLevel.WARN, "URL listed by PhishTank", {"url": url, "verified": result.verified})
        return result

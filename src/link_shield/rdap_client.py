"""
RDAP client for registration-date lookups.

This module provides an async RDAP client with TLS enforcement that parses
only the fields the engine needs (handle, status, events) and maps every
failure to a structured error instead of raising.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from .enums import LookupErrorCode
from .exceptions import ConfigError, TransportError


@dataclass
class RDAPEvent:
    """A single RDAP event (e.g., registration, expiration)."""

    event_action: str
    event_date: str


@dataclass
class RDAPParsedFields:
    """Parsed RDAP response fields. Undefined fields are ignored."""

    domain_name: str
    status: list[str]
    events: list[RDAPEvent]


@dataclass
class RDAPError:
    """Error information from an RDAP query."""

    code: LookupErrorCode
    message: str
    http_status_code: Optional[int] = None


@dataclass
class RDAPResponse:
    """Complete RDAP query response."""

    http_status_code: int
    parsed_fields: Optional[RDAPParsedFields]
    error: Optional[RDAPError]
    response_time_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.parsed_fields is not None


class RDAPClient:
    """
    Async RDAP client.

    Queries ``{server}/domain/{name}`` over HTTPS only. The request carries
    both the httpx timeout and an outer cancellation timer, so a stalled
    server cannot hold the caller longer than ``timeout`` seconds.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the RDAP client.

        Args:
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "RDAPClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                verify=True,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
            )
        return self._client

    @staticmethod
    def validate_endpoint_url(endpoint: str) -> None:
        """
        Validate that the endpoint uses HTTPS.

        Raises:
            ConfigError: If the endpoint does not use HTTPS
        """
        parsed = urlparse(endpoint)
        if parsed.scheme.lower() != "https" or not parsed.netloc:
            raise ConfigError(
                code="insecure_endpoint",
                message=f"RDAP endpoint must use HTTPS: {endpoint}",
                details={"endpoint": endpoint, "scheme": parsed.scheme},
            )

    @staticmethod
    def build_url(endpoint: str, domain: str) -> str:
        return f"{endpoint.rstrip('/')}/domain/{domain}"

    def parse_response(self, json_data: Any) -> RDAPParsedFields:
        """
        Extract the defined fields of an RDAP domain object.

        Raises:
            TransportError: If the payload is not a JSON object
        """
        if not isinstance(json_data, dict):
            raise TransportError(
                code=LookupErrorCode.PARSE_ERROR.value,
                message="RDAP payload is not a JSON object",
            )

        domain_name = json_data.get("ldhName") or json_data.get("unicodeName") or ""

        status = json_data.get("status", [])
        if not isinstance(status, list):
            status = [status] if status else []

        events = []
        raw_events = json_data.get("events", [])
        if isinstance(raw_events, list):
            for event in raw_events:
                if not isinstance(event, dict):
                    continue
                event_action = event.get("eventAction")
                event_date = event.get("eventDate")
                if isinstance(event_action, str) and isinstance(event_date, str) and event_date:
                    events.append(RDAPEvent(event_action=event_action, event_date=event_date))

        return RDAPParsedFields(
            domain_name=str(domain_name),
            status=[str(s) for s in status],
            events=events,
        )

    async def query(self, domain: str, endpoint: str) -> RDAPResponse:
        """
        Query RDAP for a domain.

        Args:
            domain: Registrable domain in ASCII form
            endpoint: Base URL of the registry's RDAP service

        Returns:
            RDAPResponse; failures are reported in ``error``, never raised
        """
        start_time = time.perf_counter()

        try:
            self.validate_endpoint_url(endpoint)
        except ConfigError as e:
            return self._error(LookupErrorCode.NOT_CONFIGURED, e.message, start_time)

        rdap_url = self.build_url(endpoint, domain)

        try:
            response = await asyncio.wait_for(
                self._get_client().get(
                    rdap_url,
                    headers={"Accept": "application/rdap+json, application/json"},
                ),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._error(
                LookupErrorCode.TIMEOUT,
                f"RDAP request timed out after {self._timeout}s",
                start_time,
            )
        except httpx.HTTPError as e:
            return self._error(LookupErrorCode.NETWORK_ERROR, f"Connection error: {e}", start_time)

        if response.status_code != 200:
            return self._error(
                LookupErrorCode.HTTP_ERROR,
                f"Unexpected HTTP status: {response.status_code}",
                start_time,
                http_status_code=response.status_code,
            )

        try:
            parsed = self.parse_response(response.json())
        except (ValueError, TransportError) as e:
            return self._error(
                LookupErrorCode.PARSE_ERROR,
                f"Failed to parse RDAP response: {e}",
                start_time,
                http_status_code=200,
            )

        return RDAPResponse(
            http_status_code=200,
            parsed_fields=parsed,
            error=None,
            response_time_ms=self._elapsed_ms(start_time),
        )

    def _error(
        self,
        code: LookupErrorCode,
        message: str,
        start_time: float,
        http_status_code: Optional[int] = None,
    ) -> RDAPResponse:
        return RDAPResponse(
            http_status_code=http_status_code or 0,
            parsed_fields=None,
            error=RDAPError(code=code, message=message, http_status_code=http_status_code),
            response_time_ms=self._elapsed_ms(start_time),
        )

    def _elapsed_ms(self, start_time: float) -> float:
        return (time.perf_counter() - start_time) * 1000

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

"""
Link safety engine: the end-to-end analysis pipeline.

This module coordinates all components to analyse a link:
- URL parsing and the fast-allow gate
- Redirect resolution to the final destination
- Heuristic scoring, ML inference and reputation lookup (local, no I/O)
- Domain age and threat intelligence lookups (concurrent, each degradable)
- Review aggregation into ordered checks and a risk level

It also owns the auxiliary services sharing the same state store: trust
feedback, the PIN rate limiter and the security event log.
"""

import asyncio
import time
from pathlib import Path
from typing import Optional

import httpx

from .audit_logger import AuditLogger
from .config import EngineConfig, PersistenceConfig
from .domain_age import DomainAgeChecker
from .domain_reputation import DomainReputationService
from .enums import HopType, LogLevel
from .heuristic_scorer import HeuristicScorer
from .ml_classifier import PhishingModel
from .models import (
    DomainAgeResult,
    DomainFeedback,
    LinkAnalysis,
    RedirectHop,
    ResolvedURL,
    SafeLinkResult,
    ThreatIntelResult,
)
from .rate_limiter import PinRateLimiter
from .redirect_resolver import RedirectResolver, summarize_chain
from .review import ReviewAggregator
from .safe_link import SafeLinkHeuristic
from .security_events import SecurityEventLogger
from .storage import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from .threat_intel import PhishTankClient, SafeBrowsingClient, combine_threat_results
from .trust_registry import TrustRegistry
from .url_parser import URLCandidate, parse_url


def create_store(config: PersistenceConfig) -> KeyValueStore:
    """HMAC-protected file store when a state file is configured, else in-memory."""
    if config.state_file_path:
        return JsonFileKeyValueStore(Path(config.state_file_path), config.hmac_secret)
    return InMemoryKeyValueStore()


class LinkSafetyEngine:
    """
    Main entry point for link analysis.

    Network-bound collaborators hold HTTP clients; use the engine as an
    async context manager or call close() when done.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[KeyValueStore] = None,
        logger: Optional[AuditLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        model: Optional[PhishingModel] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Engine configuration (defaults if omitted)
            store: Key-value store for feedback, PIN attempts and events
            logger: Optional audit logger shared by all components
            transport: Optional httpx transport shared by all HTTP clients
            model: Optional phishing model (default weights if omitted)
        """
        self._config = config or EngineConfig()
        self._logger = logger
        self._store = store if store is not None else create_store(self._config.persistence)

        self._trust = TrustRegistry(store=self._store, logger=logger)
        self._scorer = HeuristicScorer(trust_registry=self._trust, logger=logger)
        self._reputation = DomainReputationService()
        self._model = model or PhishingModel()
        self._safe_link = SafeLinkHeuristic(
            trust_registry=self._trust,
            scorer=self._scorer,
            reputation=self._reputation,
            logger=logger,
        )
        self._reviewer = ReviewAggregator(trust_registry=self._trust, scorer=self._scorer, logger=logger)

        self._resolver = RedirectResolver(self._config.resolver, transport=transport, logger=logger)
        self._domain_age = DomainAgeChecker(self._config.domain_age, transport=transport, logger=logger)
        self._safe_browsing = SafeBrowsingClient(self._config.safe_browsing, transport=transport, logger=logger)
        self._phishtank = PhishTankClient(self._config.phishtank, transport=transport, logger=logger)

        self._security_log = SecurityEventLogger(
            store=self._store,
            max_events=self._config.security_log.max_events,
            logger=logger,
        )
        self._rate_limiter = PinRateLimiter(
            store=self._store,
            config=self._config.pin_lockout,
            security_log=self._security_log,
            logger=logger,
        )

    async def __aenter__(self) -> "LinkSafetyEngine":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def trust_registry(self) -> TrustRegistry:
        return self._trust

    @property
    def scorer(self) -> HeuristicScorer:
        return self._scorer

    @property
    def model(self) -> PhishingModel:
        return self._model

    @property
    def reputation(self) -> DomainReputationService:
        return self._reputation

    @property
    def security_log(self) -> SecurityEventLogger:
        return self._security_log

    @property
    def rate_limiter(self) -> PinRateLimiter:
        return self._rate_limiter

    def quick_check(self, url: str) -> SafeLinkResult:
        """Fast-allow verdict only. No I/O."""
        return self._safe_link.check(url)

    def record_feedback(self, domain: str, is_safe: bool) -> DomainFeedback:
        return self._trust.record_feedback(domain, is_safe)

    async def analyze(self, url: str, use_network: bool = True) -> LinkAnalysis:
        """
        Analyse a link end to end.

        Links that pass the fast-allow gate skip redirect resolution and the
        external lookups. Otherwise the URL is resolved first and every later
        step looks at the final destination.

        Args:
            url: The link as received (scheme optional)
            use_network: False keeps the analysis fully offline

        Returns:
            LinkAnalysis; never raises for bad input or failing services
        """
        start_time = time.perf_counter()

        # Step 1: Parse and apply the fast-allow gate
        candidate = parse_url(url)
        fast_allow = self._safe_link.check(url)

        if not candidate.valid:
            self._log(
                LogLevel.WARN,
                "Unparseable URL",
                {"error_code": candidate.error.code.value if candidate.error else None},
            )
            return self._build_analysis(
                url=url,
                target=candidate,
                resolved=summarize_chain(url, [], error="invalid_url"),
                fast_allow=fast_allow,
                start_time=start_time,
            )

        go_online = use_network and not fast_allow.is_safe

        # Step 2: Resolve redirects
        if go_online and self._config.resolver.enabled:
            resolved = await self._resolver.resolve(candidate.href)
        else:
            resolved = self._origin_only(candidate)

        target = parse_url(resolved.final_url)
        if not target.valid:
            target = candidate

        # Step 3: External lookups, concurrently
        domain_age: Optional[DomainAgeResult] = None
        threat_intel: Optional[ThreatIntelResult] = None
        if go_online:
            domain_age, threat_intel = await self._run_lookups(target)

        return self._build_analysis(
            url=url,
            target=target,
            resolved=resolved,
            fast_allow=fast_allow,
            start_time=start_time,
            domain_age=domain_age,
            threat_intel=threat_intel,
        )

    async def _run_lookups(
        self, target: URLCandidate
    ) -> tuple[Optional[DomainAgeResult], Optional[ThreatIntelResult]]:
        lookups = {}
        if self._config.domain_age.enabled:
            lookups["domain_age"] = self._domain_age.check_domain_age(target.host)
        if self._safe_browsing.is_configured:
            lookups["safe_browsing"] = self._safe_browsing.check_url(target.href)
        if self._phishtank.is_configured:
            lookups["phishtank"] = self._phishtank.check_url(target.href)

        if not lookups:
            return None, None

        outcomes = await asyncio.gather(*lookups.values(), return_exceptions=True)
        results = {}
        for name, outcome in zip(lookups, outcomes):
            if isinstance(outcome, BaseException):
                # Lookups degrade internally; anything escaping is a bug, not a verdict
                self._log_error(f"Lookup '{name}' raised unexpectedly", outcome)
                continue
            results[name] = outcome

        threat_intel = None
        if "safe_browsing" in lookups or "phishtank" in lookups:
            threat_intel = combine_threat_results([
                results.get("safe_browsing"),
                results.get("phishtank"),
            ]) or ThreatIntelResult.unavailable()
        return results.get("domain_age"), threat_intel

    def _build_analysis(
        self,
        url: str,
        target: URLCandidate,
        resolved: ResolvedURL,
        fast_allow: SafeLinkResult,
        start_time: float,
        domain_age: Optional[DomainAgeResult] = None,
        threat_intel: Optional[ThreatIntelResult] = None,
    ) -> LinkAnalysis:
        # Step 4: Local scoring and review
        if target.valid:
            heuristic = self._scorer.analyze(target)
            ml_probability = self._model.predict(target.href)
        else:
            heuristic = self._scorer.analyze_url(url)
            ml_probability = self._model.predict(url if isinstance(url, str) else "")

        reputation = self._reputation.lookup(target.host)
        review = self._reviewer.perform_safety_review(
            target.href if target.valid else url,
            threat_intel=threat_intel,
            domain_age=domain_age,
            resolved=resolved if target.valid else None,
            heuristic=heuristic if target.valid else None,
        )

        duration_ms = (time.perf_counter() - start_time) * 1000
        analysis = LinkAnalysis(
            url=url,
            resolved=resolved,
            review=review,
            heuristic=heuristic,
            ml_probability=ml_probability,
            reputation=reputation,
            adjusted_score=max(0, heuristic.score + reputation.score_adjustment),
            fast_allow=fast_allow,
            domain_age=domain_age,
            threat_intel=threat_intel,
            duration_ms=duration_ms,
        )

        self._log(
            LogLevel.INFO,
            f"Analysis completed: {review.risk_level.value}",
            {
                "url": resolved.final_url,
                "risk_level": review.risk_level.value,
                "heuristic_score": heuristic.score,
                "adjusted_score": analysis.adjusted_score,
                "ml_probability": round(ml_probability, 4),
                "total_redirects": resolved.total_redirects,
                "fast_allow": fast_allow.is_safe,
                "duration_ms": duration_ms,
            },
        )
        return analysis

    @staticmethod
    def _origin_only(candidate: URLCandidate) -> ResolvedURL:
        return summarize_chain(
            candidate.href,
            [RedirectHop(url=candidate.href, domain=candidate.host, hop_type=HopType.ORIGIN)],
        )

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, "LinkSafetyEngine", message, data)

    def _log_error(self, message: str, error: BaseException) -> None:
        if self._logger:
            self._logger.log_error("LinkSafetyEngine", message, error=error)

    async def close(self) -> None:
        """Close all HTTP clients."""
        await self._resolver.close()
        await self._domain_age.close()
        await self._safe_browsing.close()
        await self._phishtank.close()

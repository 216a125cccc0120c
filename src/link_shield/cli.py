"""
Command-line interface for the link safety engine.

This module provides the main CLI entry point with commands for:
- check: Full analysis of a link (redirects, scoring, external lookups)
- quick: Fast-allow verdict only
- score: Heuristic and ML scores without any network access
- feedback: Record "safe"/"unsafe" feedback for a domain
- events: Show or export the security event log
- config: Configuration management
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    DEFAULT_STATE_DIR,
    EngineConfig,
    PersistenceConfig,
    apply_env_overrides,
    load_config_from_file,
    save_config_to_file,
)
from .engine import LinkSafetyEngine
from .enums import RiskLevel, SecurityEventSeverity, SecurityEventType, Severity
from .exceptions import ConfigError, LinkShieldError
from .models import EventFilter, LinkAnalysis

DEFAULT_CONFIG_PATH = DEFAULT_STATE_DIR / "config.json"
DEFAULT_STATE_FILE = DEFAULT_STATE_DIR / "state.json"

RISK_ICONS = {
    RiskLevel.LOW: "✅",
    RiskLevel.MEDIUM: "⚠️",
    RiskLevel.HIGH: "🚨",
    RiskLevel.BLOCKED: "⛔",
}

SEVERITY_MARKS = {
    Severity.INFO: "ok",
    Severity.WARNING: "!!",
    Severity.DANGER: "XX",
}

# Exit codes by risk level
EXIT_CODES = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.BLOCKED: 3,
}


def create_default_config(state_file: Optional[Path] = None) -> EngineConfig:
    """
    Create a default engine configuration.

    Args:
        state_file: Path to the state file for persistence

    Returns:
        EngineConfig with default settings and a persistent state file
    """
    return EngineConfig(
        persistence=PersistenceConfig(
            state_file_path=state_file or DEFAULT_STATE_FILE,
        ),
    )


def load_config(config_path: Optional[str]) -> EngineConfig:
    """
    Resolve the configuration for a command.

    An explicit path must exist; otherwise the default location is used when
    present and built-in defaults when not. Secrets from the environment are
    applied afterwards.

    Raises:
        ConfigError: If the configuration file is missing or invalid
    """
    if config_path:
        config = load_config_from_file(Path(config_path))
    elif DEFAULT_CONFIG_PATH.exists():
        config = load_config_from_file(DEFAULT_CONFIG_PATH)
    else:
        config = create_default_config()

    if config.persistence.state_file_path is None:
        config.persistence.state_file_path = DEFAULT_STATE_FILE
    return apply_env_overrides(config)


def create_logger(config: EngineConfig, verbose: bool) -> Optional[AuditLogger]:
    """Audit logger on stderr when verbose, so stdout stays machine-readable."""
    if not verbose:
        return None
    try:
        return AuditLogger.from_config(config.logging, output_stream=sys.stderr)
    except ValueError as e:
        raise ConfigError(code="invalid_logging", message=str(e))


def _json_default(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(obj) -> str:
    """Serialize a result dataclass to indented JSON."""
    return json.dumps(asdict(obj), indent=2, ensure_ascii=False, default=_json_default)


def print_analysis(analysis: LinkAnalysis, verbose: bool = False) -> None:
    """Print a human-readable report of a link analysis."""
    review = analysis.review
    print(f"{RISK_ICONS[review.risk_level]} Risk: {review.risk_level.value.upper()}")
    print(f"  URL: {analysis.url}")
    if analysis.resolved.final_url != analysis.url:
        print(f"  Final URL: {analysis.resolved.final_url}")
    if analysis.resolved.total_redirects:
        print(f"  Redirects: {analysis.resolved.total_redirects}")

    print(f"  Heuristic score: {analysis.heuristic.score}/100 (adjusted: {analysis.adjusted_score})")
    print(f"  ML probability: {analysis.ml_probability:.2f}")
    print(f"  Reputation: {analysis.reputation.tier.value}")

    print("  Checks:")
    for check in review.checks:
        mark = "ok" if check.passed else SEVERITY_MARKS[check.severity]
        print(f"    [{mark}] {check.title}: {check.description}")

    if review.summary:
        print(f"\n{review.summary}")
    if review.recommendation:
        print(review.recommendation)

    if verbose:
        if analysis.heuristic.reasons:
            print("  Reasons:")
            for reason in analysis.heuristic.reasons:
                print(f"    - {reason}")
        print(f"  Fast allow: {analysis.fast_allow.reason}")
        print(f"  Duration: {analysis.duration_ms:.1f}ms")


async def analyze_link(
    url: str,
    config: EngineConfig,
    use_network: bool = True,
    as_json: bool = False,
    verbose: bool = False,
) -> int:
    """
    Analyse a single link.

    Args:
        url: Link to analyse
        config: Engine configuration
        use_network: False keeps the analysis offline
        as_json: Print the full result as JSON
        verbose: Enable verbose output

    Returns:
        Exit code derived from the risk level
    """
    logger = create_logger(config, verbose)

    async with LinkSafetyEngine(config=config, logger=logger) as engine:
        analysis = await engine.analyze(url, use_network=use_network)

    if as_json:
        print(to_json(analysis))
    else:
        print_analysis(analysis, verbose=verbose)

    return EXIT_CODES[analysis.review.risk_level]


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    try:
        config = load_config(args.config)
        return asyncio.run(analyze_link(
            url=args.url,
            config=config,
            use_network=not args.no_network,
            as_json=args.json,
            verbose=args.verbose,
        ))
    except LinkShieldError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


def cmd_quick(args: argparse.Namespace) -> int:
    """Handle the 'quick' command."""
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    engine = LinkSafetyEngine(config=config)
    result = engine.quick_check(args.url)

    if result.is_safe:
        print(f"✅ Safe: {result.reason}")
    else:
        print(f"⚠️ Needs review: {result.reason}")
    print(f"  Reputation: {result.signals.reputation_tier.value}")
    return 0 if result.is_safe else 1


def cmd_score(args: argparse.Namespace) -> int:
    """Handle the 'score' command."""
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    engine = LinkSafetyEngine(config=config)
    heuristic = engine.scorer.analyze_url(args.url)
    probability = engine.model.predict(args.url)

    if args.json:
        data = asdict(heuristic)
        data["ml_probability"] = probability
        print(json.dumps(data, indent=2, ensure_ascii=False, default=_json_default))
        return 1 if heuristic.is_suspicious else 0

    details = heuristic.details
    print(f"Heuristic score: {heuristic.score}/100 ({'suspicious' if heuristic.is_suspicious else 'ok'})")
    print(
        f"  brand={details.brand_score} tld={details.tld_score} "
        f"structure={details.structure_score} keywords={details.keyword_score} "
        f"path={details.path_score}"
    )
    if heuristic.matched_brand:
        print(f"  Matched brand: {heuristic.matched_brand}")
    for reason in heuristic.reasons:
        print(f"  - {reason}")
    print(f"ML probability: {probability:.2f}")
    return 1 if heuristic.is_suspicious else 0


def cmd_feedback(args: argparse.Namespace) -> int:
    """Handle the 'feedback' command."""
    try:
        config = load_config(args.config)
        engine = LinkSafetyEngine(config=config)
        feedback = engine.record_feedback(args.domain, args.verdict == "safe")
    except LinkShieldError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(f"Feedback recorded for {feedback.domain}")
    print(f"  Safe reports: {feedback.safe_count}")
    print(f"  Unsafe reports: {feedback.unsafe_count}")
    print(f"  Trusted: {feedback.auto_trusted}")
    return 0


def cmd_events(args: argparse.Namespace) -> int:
    """Handle the 'events' command."""
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    event_filter = EventFilter(
        types=[SecurityEventType(t) for t in args.type] if args.type else None,
        severity=SecurityEventSeverity(args.severity) if args.severity else None,
        limit=args.limit,
    )

    security_log = LinkSafetyEngine(config=config).security_log
    if args.format == "json":
        print(security_log.export_json(event_filter))
    elif args.format == "csv":
        sys.stdout.write(security_log.export_csv(event_filter))
    else:
        events = security_log.get_events(event_filter)
        if not events:
            print("No security events recorded.")
            return 0
        for event in events:
            print(f"{event.timestamp} {event.severity.value.upper():8} {event.type.value}: {event.message}")
        metrics = security_log.get_metrics()
        print(
            f"\nTotal: {metrics.total_events} event(s), "
            f"{metrics.events_last_24h} in the last 24h, "
            f"active lockouts: {metrics.active_lockouts}"
        )
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        if not config_path.exists():
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1
        try:
            config = load_config_from_file(config_path)
        except ConfigError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Safe Browsing: {'configured' if config.safe_browsing.is_configured else 'not configured'}")
        print(f"  PhishTank: {'enabled' if config.phishtank.is_configured else 'disabled'}")
        print(f"  Domain age lookups: {config.domain_age.enabled}")
        print(f"  Redirect resolution: {config.resolver.enabled} (max depth {config.resolver.max_depth})")
        print(f"  PIN lockout: {config.pin_lockout.max_attempts} attempts, {config.pin_lockout.lockout_seconds:.0f}s")
        print(f"  State file: {config.persistence.state_file_path}")
        print(f"  Log level: {config.logging.level}")
        print(f"  Audit mode: {config.logging.audit_mode}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        config = create_default_config(state_file=config_path.parent / "state.json")
        try:
            save_config_to_file(config, config_path)
        except ConfigError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1
        print(f"Configuration created at: {config_path}")
        return 0

    elif args.action == "validate":
        try:
            load_config_from_file(config_path)
        except ConfigError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="link-shield",
        description="Link safety analysis: redirects, phishing heuristics and threat lookups",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Analyse a link end to end",
    )
    check_parser.add_argument(
        "url",
        help="Link to analyse (e.g., https://example.com/login)",
    )
    check_parser.add_argument(
        "--no-network",
        action="store_true",
        help="Offline analysis - no redirect resolution or external lookups",
    )
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full analysis as JSON",
    )
    _add_common_arguments(check_parser)
    check_parser.set_defaults(func=cmd_check)

    # 'quick' command
    quick_parser = subparsers.add_parser(
        "quick",
        help="Fast-allow verdict for a link",
    )
    quick_parser.add_argument("url", help="Link to check")
    _add_common_arguments(quick_parser)
    quick_parser.set_defaults(func=cmd_quick)

    # 'score' command
    score_parser = subparsers.add_parser(
        "score",
        help="Heuristic and ML scores for a link",
    )
    score_parser.add_argument("url", help="Link to score")
    score_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the scores as JSON",
    )
    _add_common_arguments(score_parser)
    score_parser.set_defaults(func=cmd_score)

    # 'feedback' command
    feedback_parser = subparsers.add_parser(
        "feedback",
        help="Record feedback for a domain",
    )
    feedback_parser.add_argument("domain", help="Domain the feedback is about")
    feedback_parser.add_argument(
        "verdict",
        choices=["safe", "unsafe"],
        help="Whether the domain turned out to be safe",
    )
    _add_common_arguments(feedback_parser)
    feedback_parser.set_defaults(func=cmd_feedback)

    # 'events' command
    events_parser = subparsers.add_parser(
        "events",
        help="Show or export security events",
    )
    events_parser.add_argument(
        "--type", "-t",
        action="append",
        choices=[t.value for t in SecurityEventType],
        help="Only events of this type (repeatable)",
    )
    events_parser.add_argument(
        "--severity", "-s",
        choices=[s.value for s in SecurityEventSeverity],
        help="Only events of this severity",
    )
    events_parser.add_argument(
        "--limit", "-n",
        type=int,
        help="Maximum number of events",
    )
    events_parser.add_argument(
        "--format", "-f",
        choices=["text", "json", "csv"],
        default="text",
        help="Output format (default: text)",
    )
    _add_common_arguments(events_parser)
    events_parser.set_defaults(func=cmd_events)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

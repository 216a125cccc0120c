"""
Configuration dataclasses for the link safety engine.

This module defines the configuration tree for the external lookups
(blocklist, community reports, registration age), redirect resolution,
PIN lockout, the security event log, persistence and logging, together with
JSON file loading/saving and environment-variable overrides for secrets.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .exceptions import ConfigError
from .rdap_bootstrap import DEFAULT_RDAP_SERVERS

ENV_SAFE_BROWSING_API_KEY = "LINK_SHIELD_SAFE_BROWSING_API_KEY"
ENV_PHISHTANK_API_KEY = "LINK_SHIELD_PHISHTANK_API_KEY"
ENV_HMAC_SECRET = "LINK_SHIELD_HMAC_SECRET"

DEFAULT_STATE_DIR = Path.home() / ".link_shield"

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 13; Pixel 7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)


@dataclass
class SafeBrowsingConfig:
    """Blocklist-style threat lookup (Safe Browsing v4 Lookup API)."""

    api_key: Optional[str] = None
    enabled: bool = True
    endpoint: str = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
    client_id: str = "link-shield"
    client_version: str = "0.1.0"
    threat_types: list[str] = field(
        default_factory=lambda: [
            "MALWARE",
            "SOCIAL_ENGINEERING",
            "UNWANTED_SOFTWARE",
            "POTENTIALLY_HARMFUL_APPLICATION",
        ]
    )
    platform_types: list[str] = field(default_factory=lambda: ["ANY_PLATFORM"])
    threat_entry_types: list[str] = field(default_factory=lambda: ["URL"])
    timeout_seconds: float = 5.0
    cache_ttl_seconds: float = 300.0
    cache_capacity: int = 500

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key)


@dataclass
class PhishTankConfig:
    """Community-report-style threat lookup. The app key is optional."""

    api_key: Optional[str] = None
    enabled: bool = True
    endpoint: str = "https://checkurl.phishtank.com/checkurl/"
    user_agent: str = "phishtank/link-shield/0.1"
    timeout_seconds: float = 8.0
    cache_ttl_seconds: float = 600.0
    cache_capacity: int = 200

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.endpoint)


@dataclass
class DomainAgeConfig:
    """Registration-age lookups over RDAP."""

    enabled: bool = True
    timeout_seconds: float = 5.0
    cache_ttl_seconds: float = 24 * 60 * 60
    cache_capacity: int = 200
    new_domain_days: int = 30
    young_domain_days: int = 180
    servers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_RDAP_SERVERS))


@dataclass
class ResolverConfig:
    """Redirect resolution settings."""

    enabled: bool = True
    max_depth: int = 7
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 5.0
    user_agent: str = MOBILE_USER_AGENT
    max_body_bytes: int = 512 * 1024


@dataclass
class PinLockoutConfig:
    """PIN verification rate limiting."""

    max_attempts: int = 5
    lockout_seconds: float = 15 * 60
    cooldown_seconds: float = 60 * 60


@dataclass
class SecurityLogConfig:
    """Security event log settings."""

    max_events: int = 1000


@dataclass
class PersistenceConfig:
    """Persistence and state storage configuration."""

    state_file_path: Optional[Path] = None
    hmac_secret: str = "change-me"


@dataclass
class LoggingConfig:
    """Logging and audit configuration."""

    level: str = "info"
    audit_mode: bool = False
    audit_signing_key: Optional[str] = None
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class EngineConfig:
    """Main configuration combining all sub-configurations."""

    safe_browsing: SafeBrowsingConfig = field(default_factory=SafeBrowsingConfig)
    phishtank: PhishTankConfig = field(default_factory=PhishTankConfig)
    domain_age: DomainAgeConfig = field(default_factory=DomainAgeConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    pin_lockout: PinLockoutConfig = field(default_factory=PinLockoutConfig)
    security_log: SecurityLogConfig = field(default_factory=SecurityLogConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    "safe_browsing": SafeBrowsingConfig,
    "phishtank": PhishTankConfig,
    "domain_age": DomainAgeConfig,
    "resolver": ResolverConfig,
    "pin_lockout": PinLockoutConfig,
    "security_log": SecurityLogConfig,
    "persistence": PersistenceConfig,
    "logging": LoggingConfig,
}


def config_from_dict(data: Mapping) -> EngineConfig:
    """
    Build an EngineConfig from a plain mapping.

    Unknown sections or keys are rejected so typos do not silently fall back
    to defaults.

    Raises:
        ConfigError: If the mapping has an unknown section, an unknown key,
            or a section that is not an object
    """
    if not isinstance(data, Mapping):
        raise ConfigError(
            code="invalid_config",
            message="Configuration root must be a JSON object",
        )

    sections = {}
    for name, value in data.items():
        section_cls = _SECTIONS.get(name)
        if section_cls is None:
            raise ConfigError(
                code="unknown_section",
                message=f"Unknown configuration section: {name}",
                details={"section": name},
            )
        if not isinstance(value, Mapping):
            raise ConfigError(
                code="invalid_section",
                message=f"Configuration section '{name}' must be an object",
                details={"section": name},
            )
        try:
            section = section_cls(**value)
        except TypeError as e:
            raise ConfigError(
                code="unknown_key",
                message=f"Invalid key in section '{name}': {e}",
                details={"section": name},
            )
        sections[name] = section

    config = EngineConfig(**sections)
    if isinstance(config.persistence.state_file_path, str):
        config.persistence.state_file_path = Path(config.persistence.state_file_path)
    return config


def config_to_dict(config: EngineConfig) -> dict:
    """Serialize an EngineConfig to JSON-compatible primitives."""
    data = asdict(config)
    state_file = data["persistence"]["state_file_path"]
    data["persistence"]["state_file_path"] = str(state_file) if state_file else None
    return data


def load_config_from_file(config_path: Path) -> EngineConfig:
    """
    Load configuration from a JSON file.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(
            code="not_found",
            message=f"Configuration file not found: {config_path}",
            details={"path": str(config_path)},
        )
    except json.JSONDecodeError as e:
        raise ConfigError(
            code="parse_error",
            message=f"Failed to parse configuration file: {e}",
            details={"path": str(config_path)},
        )
    except OSError as e:
        raise ConfigError(
            code="io_error",
            message=f"Failed to read configuration file: {e}",
            details={"path": str(config_path)},
        )
    return config_from_dict(data)


def save_config_to_file(config: EngineConfig, config_path: Path) -> None:
    """
    Save configuration to a JSON file.

    Raises:
        ConfigError: If the file cannot be written
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config_to_dict(config), f, indent=2)
    except OSError as e:
        raise ConfigError(
            code="io_error",
            message=f"Failed to write configuration file: {e}",
            details={"path": str(config_path)},
        )


def apply_env_overrides(
    config: EngineConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> EngineConfig:
    """
    Fill secrets from environment variables.

    Values already present in the configuration win over the environment.
    """
    env = os.environ if environ is None else environ

    if not config.safe_browsing.api_key and env.get(ENV_SAFE_BROWSING_API_KEY):
        config.safe_browsing.api_key = env[ENV_SAFE_BROWSING_API_KEY]
    if not config.phishtank.api_key and env.get(ENV_PHISHTANK_API_KEY):
        config.phishtank.api_key = env[ENV_PHISHTANK_API_KEY]
    if env.get(ENV_HMAC_SECRET) and config.persistence.hmac_secret == PersistenceConfig.hmac_secret:
        config.persistence.hmac_secret = env[ENV_HMAC_SECRET]
    return config

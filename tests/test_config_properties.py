"""
Property-based tests for the configuration module.

Verifies JSON round-trips, rejection of unknown sections and keys, and
environment-variable overrides for secrets.
"""

import json
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from link_shield.config import (
    ENV_HMAC_SECRET,
    ENV_PHISHTANK_API_KEY,
    ENV_SAFE_BROWSING_API_KEY,
    DomainAgeConfig,
    EngineConfig,
    LoggingConfig,
    PersistenceConfig,
    PhishTankConfig,
    PinLockoutConfig,
    ResolverConfig,
    SafeBrowsingConfig,
    apply_env_overrides,
    config_from_dict,
    config_to_dict,
    load_config_from_file,
    save_config_to_file,
)
from link_shield.exceptions import ConfigError


# Strategies for generating valid configuration objects

secret_strategy = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_",
    min_size=8,
    max_size=40,
)


@st.composite
def engine_config_strategy(draw) -> EngineConfig:
    """Generate valid EngineConfig objects."""
    return EngineConfig(
        safe_browsing=SafeBrowsingConfig(
            api_key=draw(st.one_of(st.none(), secret_strategy)),
            enabled=draw(st.booleans()),
            timeout_seconds=draw(st.floats(min_value=0.5, max_value=30.0)),
        ),
        phishtank=PhishTankConfig(
            api_key=draw(st.one_of(st.none(), secret_strategy)),
            enabled=draw(st.booleans()),
        ),
        domain_age=DomainAgeConfig(
            new_domain_days=draw(st.integers(min_value=1, max_value=60)),
            young_domain_days=draw(st.integers(min_value=61, max_value=365)),
        ),
        resolver=ResolverConfig(max_depth=draw(st.integers(min_value=1, max_value=10))),
        pin_lockout=PinLockoutConfig(
            max_attempts=draw(st.integers(min_value=1, max_value=10)),
            lockout_seconds=draw(st.floats(min_value=1.0, max_value=3600.0)),
        ),
        persistence=PersistenceConfig(
            state_file_path=draw(st.one_of(st.none(), st.just(Path("/tmp/link_shield/state.json")))),
            hmac_secret=draw(secret_strategy),
        ),
        logging=LoggingConfig(
            level=draw(st.sampled_from(["debug", "info", "warn", "error"])),
            output_format=draw(st.sampled_from(["json", "text", "both"])),
        ),
    )


class TestConfigRoundTripProperty:
    """Property tests for configuration serialization."""

    @given(config=engine_config_strategy())
    @settings(max_examples=100)
    def test_dict_round_trip(self, config: EngineConfig) -> None:
        """*For any* valid configuration, config_from_dict(config_to_dict(c)) SHALL equal c."""
        data = json.loads(json.dumps(config_to_dict(config)))

        assert config_from_dict(data) == config

    def test_file_round_trip(self, tmp_path: Path) -> None:
        config = EngineConfig(
            safe_browsing=SafeBrowsingConfig(api_key="abc123"),
            persistence=PersistenceConfig(state_file_path=tmp_path / "state.json"),
        )
        path = tmp_path / "nested" / "config.json"

        save_config_to_file(config, path)

        assert load_config_from_file(path) == config

    def test_partial_config_uses_defaults(self) -> None:
        config = config_from_dict({"resolver": {"max_depth": 3}})

        assert config.resolver.max_depth == 3
        assert config.pin_lockout.max_attempts == 5
        assert config.domain_age.new_domain_days == 30
        assert config.domain_age.young_domain_days == 180


class TestConfigValidationProperty:
    """Invalid configuration is rejected with ConfigError."""

    @given(section=st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=12))
    @settings(max_examples=50)
    def test_unknown_section_rejected(self, section: str) -> None:
        """*For any* unknown section name, loading SHALL raise ConfigError."""
        if section in config_to_dict(EngineConfig()):
            section = section + "x"

        with pytest.raises(ConfigError) as exc_info:
            config_from_dict({section: {}})
        assert exc_info.value.code == "unknown_section"

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            config_from_dict({"resolver": {"max_deph": 3}})
        assert exc_info.value.code == "unknown_key"

    def test_non_object_section_rejected(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            config_from_dict({"resolver": [1, 2]})
        assert exc_info.value.code == "invalid_section"

    def test_non_object_root_rejected(self) -> None:
        with pytest.raises(ConfigError):
            config_from_dict([])

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config_from_file(tmp_path / "absent.json")
        assert exc_info.value.code == "not_found"

    def test_invalid_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{oops", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            load_config_from_file(path)
        assert exc_info.value.code == "parse_error"


class TestEnvOverridesProperty:
    """Property tests for secrets from the environment."""

    @given(sb_key=secret_strategy, pt_key=secret_strategy, hmac_secret=secret_strategy)
    @settings(max_examples=50)
    def test_env_fills_missing_secrets(self, sb_key: str, pt_key: str, hmac_secret: str) -> None:
        """*For any* secrets in the environment, unset config values SHALL be filled from it."""
        environ = {
            ENV_SAFE_BROWSING_API_KEY: sb_key,
            ENV_PHISHTANK_API_KEY: pt_key,
            ENV_HMAC_SECRET: hmac_secret,
        }

        config = apply_env_overrides(EngineConfig(), environ)

        assert config.safe_browsing.api_key == sb_key
        assert config.phishtank.api_key == pt_key
        assert config.persistence.hmac_secret == hmac_secret
        assert config.safe_browsing.is_configured

    @given(file_key=secret_strategy, env_key=secret_strategy)
    @settings(max_examples=50)
    def test_config_values_win_over_env(self, file_key: str, env_key: str) -> None:
        """*For any* key already in the configuration, the environment SHALL NOT replace it."""
        config = EngineConfig(safe_browsing=SafeBrowsingConfig(api_key=file_key))

        apply_env_overrides(config, {ENV_SAFE_BROWSING_API_KEY: env_key})

        assert config.safe_browsing.api_key == file_key

    def test_empty_environment_changes_nothing(self) -> None:
        config = apply_env_overrides(EngineConfig(), {})

        assert config == EngineConfig()
        assert not config.safe_browsing.is_configured
        assert config.phishtank.is_configured

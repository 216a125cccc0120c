"""
Tests for the command-line interface.

Every command runs offline against a configuration and state file in a
temporary directory.
"""

import json
from pathlib import Path

import pytest

from link_shield.cli import EXIT_CODES, create_default_config, create_parser, main
from link_shield.enums import RiskLevel


@pytest.fixture
def config_path(tmp_path: Path) -> str:
    path = tmp_path / "config.json"
    assert main(["config", "init", "--path", str(path)]) == 0
    return str(path)


class TestConfigCommand:
    """config init/show/validate."""

    def test_init_writes_state_file_next_to_config(self, config_path: str) -> None:
        data = json.loads(Path(config_path).read_text(encoding="utf-8"))

        assert data["persistence"]["state_file_path"] == str(Path(config_path).parent / "state.json")

    def test_init_refuses_to_overwrite(self, config_path: str) -> None:
        assert main(["config", "init", "--path", config_path]) == 1
        assert main(["config", "init", "--path", config_path, "--force"]) == 0

    def test_show_and_validate(self, config_path: str, capsys) -> None:
        assert main(["config", "show", "--path", config_path]) == 0
        assert main(["config", "validate", "--path", config_path]) == 0

        out = capsys.readouterr().out
        assert "Safe Browsing: not configured" in out
        assert "is valid" in out

    def test_validate_rejects_unknown_section(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"whois": {}}), encoding="utf-8")

        assert main(["config", "validate", "--path", str(path)]) == 1
        assert "Unknown configuration section" in capsys.readouterr().err

    def test_show_missing(self, tmp_path: Path) -> None:
        assert main(["config", "show", "--path", str(tmp_path / "none.json")]) == 1


class TestAnalysisCommands:
    """check, quick and score."""

    def test_check_offline_trusted_link(self, config_path: str, capsys) -> None:
        code = main(["check", "https://google.com/", "--no-network", "-c", config_path])

        assert code == EXIT_CODES[RiskLevel.LOW] == 0
        assert "Risk: LOW" in capsys.readouterr().out

    def test_check_invalid_link_blocked(self, config_path: str, capsys) -> None:
        code = main(["check", "http://exa mple.com", "--no-network", "--json", "-c", config_path])

        assert code == 3
        data = json.loads(capsys.readouterr().out)
        assert data["review"]["risk_level"] == "blocked"
        assert data["review"]["checks"][0]["id"] == "invalid_url"

    def test_check_missing_config_fails(self, tmp_path: Path, capsys) -> None:
        code = main(["check", "https://google.com/", "--no-network", "-c", str(tmp_path / "missing.json")])

        assert code == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_score_json(self, config_path: str, capsys) -> None:
        code = main(["score", "paypa1.com", "--json", "-c", config_path])

        data = json.loads(capsys.readouterr().out)
        assert code == 1
        assert data["matched_brand"] == "PayPal"
        assert 0.0 <= data["ml_probability"] <= 1.0

    def test_score_text(self, config_path: str, capsys) -> None:
        assert main(["score", "https://google.com/", "-c", config_path]) == 0
        assert "Heuristic score: 0/100" in capsys.readouterr().out

    def test_quick(self, config_path: str) -> None:
        assert main(["quick", "https://google.com/", "-c", config_path]) == 0
        assert main(["quick", "http://google.com/", "-c", config_path]) == 1


class TestStatefulCommands:
    """feedback and events share the state file."""

    def test_feedback_grants_trust(self, config_path: str, capsys) -> None:
        assert main(["quick", "https://shop-local.example/", "-c", config_path]) == 1

        for _ in range(3):
            assert main(["feedback", "shop-local.example", "safe", "-c", config_path]) == 0

        assert "Trusted: True" in capsys.readouterr().out
        assert main(["quick", "https://shop-local.example/", "-c", config_path]) == 0

    def test_events_empty(self, config_path: str, capsys) -> None:
        assert main(["events", "-c", config_path]) == 0
        assert "No security events recorded." in capsys.readouterr().out

        assert main(["events", "--format", "json", "-c", config_path]) == 0
        assert json.loads(capsys.readouterr().out) == []

        assert main(["events", "--format", "csv", "-c", config_path]) == 0
        assert capsys.readouterr().out.startswith("ID,Timestamp,Date,Type,Severity,Message,Details")


class TestParser:
    """Argument parsing."""

    def test_no_command_prints_help(self, capsys) -> None:
        assert main([]) == 0
        assert "link-shield" in capsys.readouterr().out

    def test_feedback_verdict_restricted(self) -> None:
        with pytest.raises(SystemExit):
            create_parser().parse_args(["feedback", "shop.example", "maybe"])

    def test_event_type_choices(self) -> None:
        args = create_parser().parse_args(["events", "-t", "auth_failure", "-t", "account_locked"])

        assert args.type == ["auth_failure", "account_locked"]

    def test_default_config_has_state_file(self, tmp_path: Path) -> None:
        config = create_default_config(tmp_path / "state.json")

        assert config.persistence.state_file_path == tmp_path / "state.json"

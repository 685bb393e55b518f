"""Unit tests for the command line interface."""

import pytest
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from nftsafe import __version__
from nftsafe.cli import app
from nftsafe.core.exceptions import (
    ApplyTimeoutError,
    ConfirmationDeniedError,
    ExitOutcome,
    InvalidRulesetError,
    PrivilegeError,
    RollbackError,
    UnreadableDestinationError,
    UnreadableSourceError,
)
from nftsafe.services.apply import ApplyResult


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch) -> Generator[None, None, None]:
    """Keep the host's config file, environment and uid out of the tests."""
    for name in ("SOURCE_FILE", "DESTINATION_FILE", "BACKUP_DIR", "TIMEOUT"):
        monkeypatch.delenv(f"NFTSAFE_{name}", raising=False)
    with patch("nftsafe.core.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml"), \
            patch("nftsafe.core.safety.os.geteuid", return_value=0):
        yield


@pytest.fixture
def mock_build() -> Generator[MagicMock, None, None]:
    """Replace the wired state machine."""
    with patch("nftsafe.cli.build_state_machine") as mock:
        machine = mock.return_value
        machine.run.return_value = ApplyResult(
            outcome=ExitOutcome.SUCCESS,
            archive_entry=Path("/etc/nftables/nftables-installed-2024-01-01_00h00m00s.nft"),
            normalized=True,
            guard_services_stopped=["fail2ban"],
        )
        machine.store.list_archive.return_value = []
        yield mock


class TestHelpAndVersion:
    """Tests for informational options."""

    @pytest.mark.parametrize("flag", ["-h", "--help"])
    def test_help_exits_2(self, flag, mock_build):
        result = runner.invoke(app, [flag])
        assert result.exit_code == 2
        assert "--source-file" in result.output
        mock_build.assert_not_called()

    @pytest.mark.parametrize("flag", ["-V", "--version"])
    def test_version_exits_2(self, flag, mock_build):
        result = runner.invoke(app, [flag])
        assert result.exit_code == 2
        assert __version__ in result.output
        mock_build.assert_not_called()

    def test_unknown_option_is_usage_error(self, mock_build):
        result = runner.invoke(app, ["--bogus"])
        assert result.exit_code == 2

    def test_zero_timeout_is_usage_error(self, mock_build):
        result = runner.invoke(app, ["-t", "0"])
        assert result.exit_code == 2
        mock_build.assert_not_called()


class TestRun:
    """Tests for a normal invocation."""

    def test_success(self, mock_build):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "Ruleset committed" in result.output

    def test_options_reach_run_config(self, mock_build, tmp_path):
        result = runner.invoke(
            app,
            [
                "-s", str(tmp_path / "new.nft"),
                "-d", str(tmp_path / "nftables.conf"),
                "-b", str(tmp_path / "backups"),
                "-t", "30",
                "-g", "fail2ban",
                "-g", "sshguard",
            ],
        )
        assert result.exit_code == 0

        config = mock_build.call_args.args[1]
        assert config.source_file == tmp_path / "new.nft"
        assert config.destination_file == tmp_path / "nftables.conf"
        assert config.backup_dir == tmp_path / "backups"
        assert config.timeout == 30
        assert config.guard_services == ("fail2ban", "sshguard")

    def test_config_file(self, mock_build, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("timeout: 42\n")

        result = runner.invoke(app, ["-c", str(path)])
        assert result.exit_code == 0
        assert mock_build.call_args.args[1].timeout == 42

    def test_missing_config_file(self, mock_build, tmp_path):
        result = runner.invoke(app, ["-c", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        mock_build.assert_not_called()

    def test_dry_run(self, mock_build):
        mock_build.return_value.run.return_value = ApplyResult(
            outcome=ExitOutcome.SUCCESS, dry_run=True
        )
        result = runner.invoke(app, ["--dry-run"])

        assert result.exit_code == 0
        assert "Dry run complete" in result.output
        ctx = mock_build.call_args.args[0]
        assert ctx.dry_run is True


class TestExitCodes:
    """Each failure class maps to its documented exit code."""

    @pytest.mark.parametrize(
        "error, code",
        [
            (PrivilegeError("not root"), 3),
            (UnreadableDestinationError("no dest"), 4),
            (UnreadableSourceError("no source"), 5),
            (InvalidRulesetError("bad syntax"), 6),
            (ApplyTimeoutError("too slow"), 7),
            (ConfirmationDeniedError("no answer"), 8),
            (RollbackError("rollback failed", exit_code=8), 8),
        ],
    )
    def test_error_exit_code(self, mock_build, error, code):
        mock_build.return_value.run.side_effect = error
        result = runner.invoke(app, [])
        assert result.exit_code == code

    def test_hint_is_shown(self, mock_build):
        mock_build.return_value.run.side_effect = PrivilegeError(
            "This operation requires root privileges",
            hint="Run with: sudo nftsafe ...",
        )
        result = runner.invoke(app, [])
        assert result.exit_code == 3
        assert "sudo nftsafe" in result.output


class TestPrivilegeOrder:
    """The privilege check runs before any configuration is read."""

    @pytest.fixture
    def not_root(self) -> Generator[None, None, None]:
        with patch("nftsafe.core.safety.os.geteuid", return_value=1000):
            yield

    def test_invalid_config_file_still_exits_3(self, mock_build, not_root, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("timeout: [unclosed\n")

        result = runner.invoke(app, ["-c", str(path)])
        assert result.exit_code == 3
        mock_build.assert_not_called()

    def test_invalid_env_still_exits_3(self, mock_build, not_root, monkeypatch):
        monkeypatch.setenv("NFTSAFE_TIMEOUT", "soon")

        result = runner.invoke(app, [])
        assert result.exit_code == 3

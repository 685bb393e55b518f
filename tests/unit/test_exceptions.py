"""Unit tests for the exception hierarchy and exit codes."""

import pytest

from nftsafe.core.exceptions import (
    ApplyFailedError,
    ApplyTimeoutError,
    BackupError,
    CommandTimeoutError,
    ConfigurationError,
    ConfirmationDeniedError,
    EngineError,
    ExecutionError,
    ExitOutcome,
    InvalidRulesetError,
    NftSafeError,
    PrivilegeError,
    RollbackError,
    ServiceError,
    UnreadableDestinationError,
    UnreadableSourceError,
)


class TestExitOutcome:
    """Tests for the exit code table."""

    def test_exit_code_values(self):
        """Exit codes are part of the command line contract."""
        assert ExitOutcome.SUCCESS == 0
        assert ExitOutcome.ERROR == 1
        assert ExitOutcome.USAGE == 2
        assert ExitOutcome.NOT_PRIVILEGED == 3
        assert ExitOutcome.UNREADABLE_DESTINATION == 4
        assert ExitOutcome.UNREADABLE_SOURCE == 5
        assert ExitOutcome.INVALID_RULESET == 6
        assert ExitOutcome.APPLY_TIMEOUT == 7
        assert ExitOutcome.CONFIRMATION_DENIED == 8

    @pytest.mark.parametrize(
        "error_cls, code",
        [
            (NftSafeError, 1),
            (ConfigurationError, 1),
            (EngineError, 1),
            (BackupError, 1),
            (ServiceError, 1),
            (PrivilegeError, 3),
            (UnreadableDestinationError, 4),
            (UnreadableSourceError, 5),
            (InvalidRulesetError, 6),
            (ApplyTimeoutError, 7),
            (ApplyFailedError, 7),
            (ConfirmationDeniedError, 8),
        ],
    )
    def test_error_exit_codes(self, error_cls, code):
        """Each failure class maps to its exit code."""
        assert error_cls("boom").exit_code == code


class TestNftSafeError:
    """Tests for the base error."""

    def test_message_hint_details(self):
        """Message, hint and details should be kept."""
        error = NftSafeError("broken", hint="fix it", details=["a", "b"])
        assert str(error) == "broken"
        assert error.message == "broken"
        assert error.hint == "fix it"
        assert error.details == ["a", "b"]

    def test_details_default_empty(self):
        """Details default to an empty list."""
        assert NftSafeError("x").details == []


class TestExecutionError:
    """Tests for command failures."""

    def test_return_code_and_stderr_in_details(self):
        """Exit code and stderr should be appended to details."""
        error = ExecutionError(
            "Command failed",
            command="nft -f x",
            return_code=1,
            stderr="syntax error\n",
        )
        assert "Exit code: 1" in error.details
        assert "Error output: syntax error" in error.details
        assert error.command == "nft -f x"

    def test_timeout_is_execution_error(self):
        """A timeout is a kind of execution error."""
        error = CommandTimeoutError("timed out", command="nft -f x", timeout=3)
        assert isinstance(error, ExecutionError)
        assert error.timeout == 3
        assert error.return_code is None


class TestRollbackError:
    """Tests for rollback failures."""

    def test_carries_trigger_exit_code(self):
        """A failed rollback keeps the exit code of what triggered it."""
        error = RollbackError("rollback failed", exit_code=ExitOutcome.CONFIRMATION_DENIED)
        assert error.exit_code == 8

    def test_does_not_change_class_default(self):
        """Per-instance codes must not leak to other instances."""
        RollbackError("a", exit_code=7)
        assert RollbackError("b").exit_code == ExitOutcome.ERROR

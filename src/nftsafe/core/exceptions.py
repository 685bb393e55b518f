"""Custom exceptions for nftsafe.

All exceptions provide:
- Clear error messages
- Optional hints for resolution
- Optional details for debugging
- Exit codes for proper shell integration

Exit codes are part of the command line contract:

    0  success
    1  unexpected failure (configuration, engine, I/O)
    2  help, version or usage error
    3  not running with root privileges
    4  destination file unreadable
    5  source file unreadable
    6  candidate ruleset failed the syntax check
    7  activation timed out or failed (rolled back)
    8  confirmation denied or missing (rolled back)
"""

from enum import IntEnum
from typing import Optional


class ExitOutcome(IntEnum):
    """Process exit codes, one per failure class."""
    SUCCESS = 0
    ERROR = 1
    USAGE = 2
    NOT_PRIVILEGED = 3
    UNREADABLE_DESTINATION = 4
    UNREADABLE_SOURCE = 5
    INVALID_RULESET = 6
    APPLY_TIMEOUT = 7
    CONFIRMATION_DENIED = 8


class NftSafeError(Exception):
    """Base exception for all nftsafe errors.

    Attributes:
        message: Human-readable error description
        hint: Suggested action to resolve the error
        details: Additional context for debugging
        exit_code: Shell exit code (1-127)
    """

    exit_code: int = ExitOutcome.ERROR

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or []

    def __str__(self) -> str:
        return self.message


class ConfigurationError(NftSafeError):
    """Configuration file or settings errors.

    Raised when:
    - Config file unreadable
    - Invalid YAML syntax
    - Invalid configuration values
    """
    exit_code = ExitOutcome.ERROR


class ExecutionError(NftSafeError):
    """Command execution failures.

    Raised when:
    - Command returns non-zero exit code
    - Command binary cannot be found
    - Command exceeds its time limit
    """
    exit_code = ExitOutcome.ERROR

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        return_code: Optional[int] = None,
        stderr: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        if not details:
            details = []
        if return_code is not None:
            details.append(f"Exit code: {return_code}")
        if stderr:
            details.append(f"Error output: {stderr.strip()}")
        super().__init__(message, hint=hint, details=details)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class CommandTimeoutError(ExecutionError):
    """A command did not finish before its deadline and was killed."""

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        timeout: Optional[float] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message, command=command, hint=hint)
        self.timeout = timeout


class EngineError(NftSafeError):
    """Packet-filter engine errors outside activation.

    Raised when:
    - Listing the live ruleset fails
    - Resetting or loading a ruleset fails
    """
    exit_code = ExitOutcome.ERROR


class BackupError(NftSafeError):
    """Backup directory, snapshot or archive errors."""
    exit_code = ExitOutcome.ERROR


class ServiceError(NftSafeError):
    """Systemd service errors.

    Raised when:
    - Start/stop fails
    - Status check fails

    Guard service callers always catch this.
    """
    exit_code = ExitOutcome.ERROR

    def __init__(
        self,
        message: str,
        *,
        service: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, hint=hint, details=details)
        self.service = service


# Precondition failures


class PrivilegeError(NftSafeError):
    """Not running with the privileges needed to change the ruleset."""
    exit_code = ExitOutcome.NOT_PRIVILEGED


class UnreadableDestinationError(NftSafeError):
    """The active configuration file cannot be read."""
    exit_code = ExitOutcome.UNREADABLE_DESTINATION


class UnreadableSourceError(NftSafeError):
    """The candidate configuration file cannot be read."""
    exit_code = ExitOutcome.UNREADABLE_SOURCE


class InvalidRulesetError(NftSafeError):
    """The candidate ruleset was rejected by the engine's dry-run check."""
    exit_code = ExitOutcome.INVALID_RULESET


# Activation and confirmation failures (always rolled back)


class ApplyTimeoutError(NftSafeError):
    """Activation did not finish before the deadline."""
    exit_code = ExitOutcome.APPLY_TIMEOUT


class ApplyFailedError(NftSafeError):
    """Activation finished with an error."""
    exit_code = ExitOutcome.APPLY_TIMEOUT


class ConfirmationDeniedError(NftSafeError):
    """The operator did not confirm connectivity in time."""
    exit_code = ExitOutcome.CONFIRMATION_DENIED


class RollbackError(NftSafeError):
    """Rollback to the snapshot failed.

    Carries the exit code of the failure that triggered the rollback, so
    scripts still see the original failure class. The live ruleset may be
    in an inconsistent state when this is raised.
    """

    def __init__(
        self,
        message: str,
        *,
        exit_code: int = ExitOutcome.ERROR,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, hint=hint, details=details)
        self.exit_code = exit_code

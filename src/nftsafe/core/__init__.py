"""Core framework components for nftsafe."""

from nftsafe.core.exceptions import (
    ExitOutcome,
    NftSafeError,
    ConfigurationError,
    ExecutionError,
    CommandTimeoutError,
    EngineError,
    BackupError,
    ServiceError,
    PrivilegeError,
    UnreadableDestinationError,
    UnreadableSourceError,
    InvalidRulesetError,
    ApplyTimeoutError,
    ApplyFailedError,
    ConfirmationDeniedError,
    RollbackError,
)

from nftsafe.core.context import ExecutionContext, create_context
from nftsafe.core.output import console, Console, Verbosity
from nftsafe.core.config import RunConfig, ToolConfig, resolve_run_config
from nftsafe.core.executor import CommandExecutor, CommandResult

__all__ = [
    # Exceptions
    "ExitOutcome",
    "NftSafeError",
    "ConfigurationError",
    "ExecutionError",
    "CommandTimeoutError",
    "EngineError",
    "BackupError",
    "ServiceError",
    "PrivilegeError",
    "UnreadableDestinationError",
    "UnreadableSourceError",
    "InvalidRulesetError",
    "ApplyTimeoutError",
    "ApplyFailedError",
    "ConfirmationDeniedError",
    "RollbackError",
    # Context
    "ExecutionContext",
    "create_context",
    # Output
    "console",
    "Console",
    "Verbosity",
    # Config
    "RunConfig",
    "ToolConfig",
    "resolve_run_config",
    # Executor
    "CommandExecutor",
    "CommandResult",
]

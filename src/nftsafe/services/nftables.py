"""nftables ruleset engine.

Wraps the ``nft`` binary behind a narrow interface so the apply state
machine never talks to the kernel directly:

- list the live ruleset
- dry-run check a ruleset file
- load a ruleset file under a hard deadline
- reset the live ruleset and load a file (used for rollback)

Every load goes through ``nft -f``, which commits the whole file as one
transaction, so the live ruleset is never a mix of old and new rules.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from nftsafe.core.context import ExecutionContext
from nftsafe.core.executor import CommandExecutor
from nftsafe.core.exceptions import (
    ApplyFailedError,
    ApplyTimeoutError,
    CommandTimeoutError,
    EngineError,
    ExecutionError,
    InvalidRulesetError,
)


# Directive that clears the live ruleset before the rest of a file loads
RESET_DIRECTIVE = "flush ruleset"

# Bounds for calls that have no operator-supplied timeout
LIST_TIMEOUT = 60
CHECK_TIMEOUT = 60


def first_effective_line(text: str) -> Optional[str]:
    """Return the first line that is neither blank nor a comment."""
    for line in text.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            return stripped
    return None


def has_reset_directive(text: str) -> bool:
    """Check whether a ruleset starts from a clean slate."""
    line = first_effective_line(text)
    if line is None:
        return False
    # "flush ruleset;" and trailing comments are equivalent
    line = line.split("#", 1)[0].strip().rstrip(";").strip()
    return " ".join(line.split()) == RESET_DIRECTIVE


def ensure_reset_directive(path: Path) -> bool:
    """Prepend the reset directive to a ruleset file if it lacks one.

    The original content follows unchanged.

    Args:
        path: Ruleset file, rewritten in place

    Returns:
        True if the file was rewritten
    """
    text = path.read_text()
    if has_reset_directive(text):
        return False
    path.write_text(f"{RESET_DIRECTIVE}\n{text}")
    return True


class RulesetEngine(ABC):
    """Capability over the packet-filter engine."""

    @abstractmethod
    def list_ruleset(self) -> str:
        """Return the live ruleset in loadable form.

        Raises:
            EngineError: If the ruleset cannot be listed
        """
        ...

    @abstractmethod
    def check_syntax(self, path: Path) -> None:
        """Dry-run check a ruleset file without loading it.

        Raises:
            InvalidRulesetError: If the engine rejects the file
        """
        ...

    @abstractmethod
    def apply_bounded(self, path: Path, timeout: float) -> None:
        """Load a ruleset file, giving up after ``timeout`` seconds.

        Raises:
            ApplyTimeoutError: If the load did not finish in time
            ApplyFailedError: If the engine rejected the load
        """
        ...

    @abstractmethod
    def reset_and_load(self, path: Path, timeout: Optional[float] = None) -> None:
        """Empty the live ruleset, then load a ruleset file verbatim.

        Raises:
            EngineError: If either step fails or times out
        """
        ...


class NftablesEngine(RulesetEngine):
    """RulesetEngine backed by the nft command line tool."""

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        *,
        nft_binary: str = "nft",
    ) -> None:
        """Initialize the engine.

        Args:
            ctx: Execution context
            executor: Command executor
            nft_binary: Name or path of the nft executable
        """
        self.ctx = ctx
        self.executor = executor
        self.nft_binary = nft_binary

    def list_ruleset(self) -> str:
        try:
            result = self.executor.run(
                [self.nft_binary, "list", "ruleset"],
                timeout=LIST_TIMEOUT,
                read_only=True,
            )
        except ExecutionError as e:
            raise EngineError(
                "Could not list the live ruleset",
                details=e.details,
                hint="Is the nf_tables kernel module available?",
            ) from e
        return result.stdout

    def check_syntax(self, path: Path) -> None:
        try:
            self.executor.run(
                [self.nft_binary, "--check", "--file", str(path)],
                description=f"Checking syntax of {path}",
                timeout=CHECK_TIMEOUT,
                read_only=True,
            )
        except ExecutionError as e:
            raise InvalidRulesetError(
                f"Candidate ruleset failed the syntax check: {path}",
                details=[e.stderr.strip()] if e.stderr else e.details,
                hint="Fix the ruleset and run again; nothing was changed",
            ) from e

    def apply_bounded(self, path: Path, timeout: float) -> None:
        try:
            self.executor.run(
                [self.nft_binary, "--file", str(path)],
                description=f"Activating {path}",
                timeout=timeout,
            )
        except CommandTimeoutError as e:
            raise ApplyTimeoutError(
                f"Activation did not finish within {timeout}s",
            ) from e
        except ExecutionError as e:
            raise ApplyFailedError(
                f"Activation of {path} failed",
                details=e.details,
            ) from e

    def reset_and_load(self, path: Path, timeout: Optional[float] = None) -> None:
        try:
            self.executor.run(
                [self.nft_binary, *RESET_DIRECTIVE.split()],
                description="Flushing the live ruleset",
                timeout=timeout,
            )
            self.executor.run(
                [self.nft_binary, "--file", str(path)],
                description=f"Loading {path}",
                timeout=timeout,
            )
        except ExecutionError as e:
            raise EngineError(
                f"Could not restore ruleset from {path}",
                details=e.details or [str(e)],
            ) from e

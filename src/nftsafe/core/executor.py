"""Command execution with bounded waits.

Provides:
- Safe command execution with output capture
- Hard wall-clock deadlines (the child is killed and reaped on expiry)
- Dry-run mode support for commands that change state
"""

import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional

from nftsafe.core.context import ExecutionContext
from nftsafe.core.exceptions import CommandTimeoutError, ExecutionError


@dataclass
class CommandResult:
    """Result of a command execution."""
    command: list[str]
    return_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        """Check if command succeeded."""
        return self.return_code == 0


class CommandExecutor:
    """Safe command execution with dry-run support and output capture.

    Features:
    - Dry-run mode skips commands that change state
    - Output capture for processing
    - Deadline support (kill and reap on expiry)
    """

    def __init__(self, ctx: ExecutionContext) -> None:
        """Initialize executor with context.

        Args:
            ctx: Execution context with flags
        """
        self.ctx = ctx

    def run(
        self,
        command: list[str],
        *,
        description: Optional[str] = None,
        check: bool = True,
        timeout: Optional[float] = None,
        read_only: bool = False,
    ) -> CommandResult:
        """Execute a command safely.

        The command is started as a child process and raced against
        ``timeout``. If the deadline wins the child is killed and reaped,
        and the command counts as not having happened in time regardless
        of what it did before it was killed.

        Args:
            command: Command as list of strings
            description: Human-readable description for logging
            check: Raise exception on non-zero exit
            timeout: Deadline in seconds (None waits forever)
            read_only: Command does not change state and also runs in dry-run

        Returns:
            CommandResult with output

        Raises:
            CommandTimeoutError: If the deadline expired
            ExecutionError: If command fails and check=True
        """
        if description:
            self.ctx.console.step(description)

        cmd_display = shlex.join(command)
        self.ctx.console.debug(f"Running: {cmd_display}")

        if self.ctx.dry_run and not read_only:
            self.ctx.console.dry_run_msg(f"Run: {cmd_display}")
            return CommandResult(
                command=command,
                return_code=0,
                stdout="",
                stderr="",
            )

        try:
            proc = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise ExecutionError(
                f"Command not found: {command[0]}",
                command=cmd_display,
                hint="Check that nftables and systemd are installed",
            ) from e

        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.communicate()
            raise CommandTimeoutError(
                f"Command timed out after {timeout}s: {description or cmd_display}",
                command=cmd_display,
                timeout=timeout,
            )
        except BaseException:
            # Ctrl-C or a signal while waiting: never leave the child behind
            proc.kill()
            proc.wait()
            raise

        result = CommandResult(
            command=command,
            return_code=proc.returncode,
            stdout=stdout,
            stderr=stderr,
        )
        self.ctx.console.debug(f"Exit code {result.return_code}: {cmd_display}")

        if check and not result.success:
            raise ExecutionError(
                f"Command failed: {description or cmd_display}",
                command=cmd_display,
                return_code=result.return_code,
                stderr=result.stderr,
            )

        return result

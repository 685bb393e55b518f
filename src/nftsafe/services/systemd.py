"""Systemd service abstraction.

Provides a safe interface for querying and toggling systemd services.
"""

from typing import Optional

from nftsafe.core.context import ExecutionContext
from nftsafe.core.executor import CommandExecutor
from nftsafe.core.exceptions import ServiceError


# Upper bound for a single systemctl call
SYSTEMCTL_TIMEOUT = 30


class SystemdService:
    """Safe interface for managing systemd services.

    All operations respect dry-run mode and log appropriately.
    """

    def __init__(self, ctx: ExecutionContext, executor: CommandExecutor) -> None:
        """Initialize systemd service manager.

        Args:
            ctx: Execution context
            executor: Command executor
        """
        self.ctx = ctx
        self.executor = executor

    def is_active(self, service: str) -> bool:
        """Check if a service is active (running).

        Args:
            service: Service name

        Returns:
            True if service is active
        """
        result = self.executor.run(
            ["systemctl", "is-active", "--quiet", service],
            check=False,
            timeout=SYSTEMCTL_TIMEOUT,
            read_only=True,
        )
        return result.success

    def is_enabled(self, service: str) -> bool:
        """Check if a service is enabled.

        Args:
            service: Service name

        Returns:
            True if service is enabled
        """
        result = self.executor.run(
            ["systemctl", "is-enabled", "--quiet", service],
            check=False,
            timeout=SYSTEMCTL_TIMEOUT,
            read_only=True,
        )
        return result.success

    def start(self, service: str, *, description: Optional[str] = None) -> None:
        """Start a service.

        Args:
            service: Service name
            description: Optional description for logging

        Raises:
            ServiceError: If service fails to start
        """
        try:
            self.executor.run(
                ["systemctl", "start", service],
                description=description or f"Starting {service}",
                timeout=SYSTEMCTL_TIMEOUT,
            )
        except Exception as e:
            raise ServiceError(
                f"Failed to start {service}",
                service=service,
                hint=f"Check logs: journalctl -xeu {service}",
                details=[str(e)],
            ) from e

    def stop(self, service: str, *, description: Optional[str] = None) -> None:
        """Stop a service.

        Args:
            service: Service name
            description: Optional description for logging

        Raises:
            ServiceError: If service fails to stop
        """
        try:
            self.executor.run(
                ["systemctl", "stop", service],
                description=description or f"Stopping {service}",
                timeout=SYSTEMCTL_TIMEOUT,
            )
        except Exception as e:
            raise ServiceError(
                f"Failed to stop {service}",
                service=service,
                details=[str(e)],
            ) from e

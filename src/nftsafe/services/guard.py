"""Guard service control.

Intrusion-prevention daemons such as fail2ban manipulate the ruleset and
ban addresses on their own. While a candidate ruleset is being tested they
can lock the operator out for reasons unrelated to the candidate, so active
guard services are stopped for the transition and started again afterwards.

Every operation here is best-effort: failures are reported as warnings and
never abort a run.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from nftsafe.core.context import ExecutionContext
from nftsafe.core.exceptions import NftSafeError
from nftsafe.services.systemd import SystemdService


class GuardServiceController(ABC):
    """Capability to query and toggle guard services."""

    @abstractmethod
    def is_enabled(self, name: str) -> bool:
        """Check if a guard service is enabled."""
        ...

    @abstractmethod
    def is_active(self, name: str) -> bool:
        """Check if a guard service is running."""
        ...

    @abstractmethod
    def stop(self, name: str) -> None:
        """Stop a guard service."""
        ...

    @abstractmethod
    def start(self, name: str) -> None:
        """Start a guard service."""
        ...

    def quiesce(self, names: Iterable[str]) -> list[str]:
        """Stop every active service in ``names``.

        Args:
            names: Guard service names

        Returns:
            Names of the services that were active when asked, in order.
            They are returned even if stopping failed, so they get started
            again later.
        """
        stopped = []
        for name in names:
            try:
                if not self.is_active(name):
                    if self.is_enabled(name):
                        self._note(f"Guard service {name} is enabled but not running")
                    continue
            except Exception as e:
                self._warn(f"Could not query guard service {name}: {e}")
                continue

            stopped.append(name)
            try:
                self.stop(name)
            except Exception as e:
                self._warn(f"Could not stop guard service {name}: {e}")
        return stopped

    def resume(self, names: Iterable[str]) -> None:
        """Start every service in ``names``, ignoring failures."""
        for name in names:
            try:
                self.start(name)
            except Exception as e:
                self._warn(f"Could not start guard service {name}: {e}")

    def _warn(self, message: str) -> None:
        """Report a swallowed failure. Subclasses with a console override."""

    def _note(self, message: str) -> None:
        """Report an informational detail."""


class SystemdGuardController(GuardServiceController):
    """Guard services managed by systemd."""

    def __init__(self, ctx: ExecutionContext, systemd: SystemdService) -> None:
        """Initialize the controller.

        Args:
            ctx: Execution context
            systemd: Systemd service manager
        """
        self.ctx = ctx
        self.systemd = systemd

    def is_enabled(self, name: str) -> bool:
        try:
            return self.systemd.is_enabled(name)
        except NftSafeError as e:
            self._warn(f"Could not query {name}: {e}")
            return False

    def is_active(self, name: str) -> bool:
        try:
            return self.systemd.is_active(name)
        except NftSafeError as e:
            self._warn(f"Could not query {name}: {e}")
            return False

    def stop(self, name: str) -> None:
        self.systemd.stop(name, description=f"Stopping guard service {name}")

    def start(self, name: str) -> None:
        self.systemd.start(name, description=f"Starting guard service {name}")

    def _warn(self, message: str) -> None:
        self.ctx.console.warn(message)

    def _note(self, message: str) -> None:
        self.ctx.console.verbose(message)

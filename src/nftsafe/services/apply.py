"""Apply, confirm and roll back a candidate ruleset.

The state machine runs a single transition of the live ruleset:

    INIT -> VALIDATED -> SNAPSHOTTED -> ACTIVATING -> CONFIRM_PENDING
         -> COMMITTED | ROLLED_BACK | FAILED

VALIDATED means the run preconditions hold (privileges, readable active
configuration). The candidate itself is checked after the snapshot is
taken. Once activation has started, every way out other than an explicit
"y" from the operator restores the snapshot.
"""

import signal
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Generator, Optional

from nftsafe.core.config import RunConfig
from nftsafe.core.context import ExecutionContext
from nftsafe.core.exceptions import (
    ApplyFailedError,
    ApplyTimeoutError,
    ConfirmationDeniedError,
    ExitOutcome,
    NftSafeError,
    RollbackError,
)
from nftsafe.core.safety import (
    is_root,
    require_readable_destination,
    require_readable_source,
    require_root,
)
from nftsafe.services.backup import BackupStore
from nftsafe.services.guard import GuardServiceController
from nftsafe.services.nftables import (
    RulesetEngine,
    ensure_reset_directive,
    has_reset_directive,
)


# Answers that keep the new ruleset; anything else rolls back
AFFIRMATIVE_ANSWERS = frozenset({"y", "Y"})

# Signals that end the operator's session while a transition is in flight
SESSION_SIGNALS = (signal.SIGHUP, signal.SIGTERM)

# Signals ignored while the snapshot is being restored
ROLLBACK_SIGNALS = (*SESSION_SIGNALS, signal.SIGINT)


class ApplyState(Enum):
    """States of a single run."""
    INIT = "init"
    VALIDATED = "validated"
    SNAPSHOTTED = "snapshotted"
    ACTIVATING = "activating"
    CONFIRM_PENDING = "confirm_pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


@dataclass
class ApplyResult:
    """Outcome of a successful run."""
    outcome: ExitOutcome
    archive_entry: Optional[Path] = None
    normalized: bool = False
    guard_services_stopped: list[str] = field(default_factory=list)
    dry_run: bool = False


class SessionInterrupted(Exception):
    """The controlling session went away (SIGHUP/SIGTERM)."""


@contextmanager
def session_signals(*, ignore: bool = False) -> Generator[None, None, None]:
    """Turn SIGHUP and SIGTERM into SessionInterrupted while active.

    A dropped SSH session must lead to a rollback, not to a dead process
    that leaves an untested ruleset in place. With ``ignore`` these signals
    and SIGINT are ignored instead, so a rollback in progress runs to
    completion. Child processes started meanwhile inherit the ignored
    dispositions, so a Ctrl-C on the terminal does not kill them either.
    Outside the main thread signal handlers cannot be installed and this
    is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum: int, frame: object) -> None:
        raise SessionInterrupted(signal.Signals(signum).name)

    if ignore:
        action, signals = signal.SIG_IGN, ROLLBACK_SIGNALS
    else:
        action, signals = handler, SESSION_SIGNALS
    previous = {sig: signal.signal(sig, action) for sig in signals}
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


class ApplyStateMachine:
    """Validates, activates and then commits or rolls back a candidate.

    Collaborators are injected so tests can substitute fakes:

    - ``engine`` talks to the packet filter
    - ``guards`` toggles intrusion-prevention services
    - ``store`` holds the snapshot and the archive
    - ``ask`` waits for the operator's answer (seconds -> answer or None)
    - ``privileged`` reports whether the process may change the ruleset
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        config: RunConfig,
        engine: RulesetEngine,
        guards: GuardServiceController,
        *,
        store: Optional[BackupStore] = None,
        ask: Optional[Callable[[float], Optional[str]]] = None,
        privileged: Callable[[], bool] = is_root,
    ) -> None:
        self.ctx = ctx
        self.config = config
        self.engine = engine
        self.guards = guards
        self.store = store or BackupStore(ctx, engine, config.backup_dir)
        self._ask = ask or self._ask_operator
        self._privileged = privileged

        self.state = ApplyState.INIT
        self.history: list[ApplyState] = [ApplyState.INIT]
        self._stopped: list[str] = []

    def run(self) -> ApplyResult:
        """Run the whole transition.

        Returns:
            ApplyResult with outcome SUCCESS

        Raises:
            NftSafeError: A subclass whose exit_code names the failure class.
                For activation and confirmation failures the snapshot has
                already been restored when this is raised.
        """
        cfg = self.config

        require_root(self._privileged())
        require_readable_destination(cfg.destination_file)
        self._enter(ApplyState.VALIDATED)

        if self.ctx.dry_run:
            return self._dry_run()

        try:
            return self._transition()
        finally:
            if self._stopped:
                self.guards.resume(self._stopped)

    # =========================================================================
    # Phases
    # =========================================================================

    def _transition(self) -> ApplyResult:
        cfg = self.config
        console = self.ctx.console

        self.store.ensure_dir()
        if self.store.has_snapshot():
            console.warn(
                f"Replacing snapshot left by an earlier run: {self.store.snapshot_path}"
            )

        console.step("Saving the live ruleset")
        self.store.snapshot_current_ruleset()
        self._enter(ApplyState.SNAPSHOTTED)

        try:
            require_readable_source(cfg.source_file)
            self.engine.check_syntax(cfg.source_file)
            normalized = self._normalize()
        except NftSafeError:
            # Nothing was changed; a leftover snapshot would only suggest
            # an abandoned transition
            self._enter(ApplyState.FAILED)
            self._discard_snapshot_quietly()
            raise

        self._stopped = self.guards.quiesce(cfg.guard_services)

        self._activate()
        self._confirm()
        entry = self._commit()

        return ApplyResult(
            outcome=ExitOutcome.SUCCESS,
            archive_entry=entry,
            normalized=normalized,
            guard_services_stopped=list(self._stopped),
        )

    def _normalize(self) -> bool:
        path = self.config.source_file
        try:
            rewritten = ensure_reset_directive(path)
        except OSError as e:
            raise NftSafeError(
                f"Cannot rewrite candidate ruleset: {path}",
                details=[str(e)],
            ) from e
        if rewritten:
            self.ctx.console.info(f"Prepended 'flush ruleset' to {path}")
        return rewritten

    def _activate(self) -> None:
        self._enter(ApplyState.ACTIVATING)
        try:
            with session_signals():
                self.engine.apply_bounded(self.config.source_file, self.config.timeout)
        except (ApplyTimeoutError, ApplyFailedError) as e:
            self.ctx.console.error(e.message)
            self._rollback(e)
            raise
        except (KeyboardInterrupt, SessionInterrupted) as e:
            error = ApplyFailedError(f"Activation interrupted ({str(e) or 'Ctrl-C'})")
            self.ctx.console.error(error.message)
            self._rollback(error)
            raise error from e
        self.ctx.console.success("New ruleset is active")

    def _confirm(self) -> None:
        self._enter(ApplyState.CONFIRM_PENDING)
        try:
            answer = self._ask(self.config.timeout)
        except (Exception, KeyboardInterrupt) as e:
            self.ctx.console.warn(f"Could not read confirmation: {e!r}")
            answer = None

        if answer in AFFIRMATIVE_ANSWERS:
            return

        if answer is None:
            reason = f"No confirmation within {self.config.timeout}s"
        else:
            reason = f"Confirmation denied (answer: {answer!r})"
        error = ConfirmationDeniedError(
            f"{reason}; previous ruleset restored",
            hint="Fix the candidate ruleset and run again",
        )
        self.ctx.console.warn(reason)
        self._rollback(error)
        raise error

    def _commit(self) -> Path:
        cfg = self.config
        entry = self.store.archive(cfg.source_file)
        self.store.install(cfg.source_file, cfg.destination_file)
        self._discard_snapshot_quietly()
        self._enter(ApplyState.COMMITTED)
        self.ctx.console.success(f"Ruleset committed to {cfg.destination_file}")
        return entry

    def _rollback(self, trigger: NftSafeError) -> None:
        """Restore the snapshot. Not retried; failure is fatal."""
        snapshot = self.store.snapshot_path
        self.ctx.console.warn("Rolling back to the previous ruleset...")

        try:
            with session_signals(ignore=True):
                self.engine.reset_and_load(snapshot, timeout=self.config.timeout)
        except (NftSafeError, KeyboardInterrupt) as e:
            self._enter(ApplyState.FAILED)
            if isinstance(e, NftSafeError):
                reason, details = e.message, e.details
            else:
                reason, details = "interrupted", []
            raise RollbackError(
                f"Rollback failed: {reason}",
                exit_code=trigger.exit_code,
                details=[f"Rollback triggered by: {trigger.message}", *details],
                hint=f"The live ruleset may be inconsistent. Restore it with: nft -f {snapshot}",
            ) from e

        self._discard_snapshot_quietly()
        self._enter(ApplyState.ROLLED_BACK)
        self.ctx.console.warn("Previous ruleset restored")

    def _dry_run(self) -> ApplyResult:
        cfg = self.config
        console = self.ctx.console

        console.dry_run_msg(f"Create backup directory {cfg.backup_dir}")
        console.dry_run_msg(f"Save the live ruleset to {cfg.snapshot_path}")

        require_readable_source(cfg.source_file)
        self.engine.check_syntax(cfg.source_file)
        console.success(f"Syntax check passed: {cfg.source_file}")

        candidate = cfg.source_file.read_text()
        if self.ctx.is_verbose:
            console.ruleset(candidate, title=str(cfg.source_file))

        normalized = not has_reset_directive(candidate)
        if normalized:
            console.dry_run_msg(f"Prepend 'flush ruleset' to {cfg.source_file}")
        if cfg.guard_services:
            console.dry_run_msg(f"Stop active guard services: {', '.join(cfg.guard_services)}")
        console.dry_run_msg(f"Activate {cfg.source_file} (deadline {cfg.timeout}s)")
        console.dry_run_msg(f"Wait {cfg.timeout}s for confirmation, roll back otherwise")
        console.dry_run_msg(f"Archive the candidate in {cfg.backup_dir} and install it as {cfg.destination_file}")

        return ApplyResult(outcome=ExitOutcome.SUCCESS, normalized=normalized, dry_run=True)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ask_operator(self, timeout: float) -> Optional[str]:
        """Default confirmation gate: one keystroke on the terminal."""
        console = self.ctx.console
        console.print()
        console.print("[bold yellow]The new ruleset is active.[/bold yellow]")
        console.print("Open a NEW connection to this host to check that you can still get in.")
        try:
            with session_signals():
                return console.ask_key(
                    f"Keep the new ruleset? Press [bold]y[/bold] within {timeout}s [y/N]: ",
                    timeout=timeout,
                )
        except (KeyboardInterrupt, SessionInterrupted, EOFError, OSError):
            return None

    def _discard_snapshot_quietly(self) -> None:
        try:
            self.store.discard_snapshot()
        except NftSafeError as e:
            self.ctx.console.warn(str(e))

    def _enter(self, state: ApplyState) -> None:
        self.state = state
        self.history.append(state)
        self.ctx.console.debug(f"State: {state.value}")

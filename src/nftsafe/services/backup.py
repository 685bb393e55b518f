"""Backup directory management.

The backup directory holds two kinds of files:

- ``nftables.conf.bak``: snapshot of the live ruleset taken right before
  activation. At most one exists; its presence means a transition is in
  flight or was abandoned.
- ``nftables-installed-<timestamp>.nft``: permanent copy of every accepted
  candidate. Append-only; never deleted by nftsafe.
"""

import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from nftsafe.core.context import ExecutionContext
from nftsafe.core.config import (
    ARCHIVE_PREFIX,
    ARCHIVE_SUFFIX,
    ARCHIVE_TIMESTAMP_FORMAT,
    SNAPSHOT_FILENAME,
)
from nftsafe.core.exceptions import BackupError
from nftsafe.services.nftables import RulesetEngine


class BackupStore:
    """Snapshot and archive storage under one backup directory."""

    def __init__(
        self,
        ctx: ExecutionContext,
        engine: RulesetEngine,
        backup_dir: Path,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the store.

        Args:
            ctx: Execution context
            engine: Ruleset engine used to capture the live ruleset
            backup_dir: Directory holding snapshot and archive entries
            clock: Source of archive timestamps
        """
        self.ctx = ctx
        self.engine = engine
        self.backup_dir = backup_dir
        self._clock = clock

    @property
    def snapshot_path(self) -> Path:
        """Fixed location of the snapshot."""
        return self.backup_dir / SNAPSHOT_FILENAME

    def ensure_dir(self) -> None:
        """Create the backup directory if it does not exist yet.

        Raises:
            BackupError: If the directory cannot be created
        """
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except FileExistsError as e:
            raise BackupError(
                f"Backup path exists but is not a directory: {self.backup_dir}",
            ) from e
        except OSError as e:
            raise BackupError(
                f"Cannot create backup directory: {self.backup_dir}",
                details=[str(e)],
            ) from e

    def has_snapshot(self) -> bool:
        """Check whether a snapshot is present."""
        return self.snapshot_path.exists()

    def snapshot_current_ruleset(self) -> Path:
        """Write the live ruleset verbatim to the snapshot path.

        Returns:
            Path of the snapshot

        Raises:
            EngineError: If the live ruleset cannot be listed
            BackupError: If the snapshot cannot be written
        """
        ruleset = self.engine.list_ruleset()

        try:
            fd = os.open(
                self.snapshot_path,
                os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
                0o600,
            )
            with os.fdopen(fd, "w") as f:
                f.write(ruleset)
        except OSError as e:
            raise BackupError(
                f"Cannot write snapshot: {self.snapshot_path}",
                details=[str(e)],
            ) from e

        self.ctx.console.debug(f"Snapshot written to {self.snapshot_path}")
        return self.snapshot_path

    def discard_snapshot(self) -> None:
        """Delete the snapshot. A missing snapshot is not an error."""
        try:
            self.snapshot_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise BackupError(
                f"Cannot remove snapshot: {self.snapshot_path}",
                details=[str(e)],
            ) from e
        self.ctx.console.debug(f"Snapshot removed: {self.snapshot_path}")

    def archive(self, candidate: Path) -> Path:
        """Copy an accepted candidate into a new timestamped archive entry.

        Args:
            candidate: Accepted ruleset file

        Returns:
            Path of the new archive entry

        Raises:
            BackupError: If the copy fails
        """
        entry = self._next_archive_path()
        try:
            shutil.copyfile(candidate, entry)
        except OSError as e:
            raise BackupError(
                f"Cannot archive {candidate} to {entry}",
                details=[str(e)],
            ) from e

        self.ctx.console.info(f"Archived accepted ruleset: {entry}")
        return entry

    def install(self, candidate: Path, destination: Path) -> None:
        """Copy an accepted candidate over the active configuration.

        Raises:
            BackupError: If the copy fails
        """
        try:
            shutil.copyfile(candidate, destination)
        except OSError as e:
            raise BackupError(
                f"Cannot install {candidate} as {destination}",
                details=[str(e)],
            ) from e

        self.ctx.console.info(f"Installed accepted ruleset as {destination}")

    def list_archive(self) -> list[Path]:
        """Archive entries, oldest first."""
        if not self.backup_dir.is_dir():
            return []
        return sorted(
            self.backup_dir.glob(f"{ARCHIVE_PREFIX}*{ARCHIVE_SUFFIX}"),
            key=lambda p: p.name,
        )

    def _next_archive_path(self) -> Path:
        now = self._clock()
        entry = self.backup_dir / archive_name(now)

        # Two commits within one second must not share an entry
        counter = 0
        while entry.exists():
            counter += 1
            entry = self.backup_dir / archive_name(now, counter)
        return entry


def archive_name(when: datetime, counter: Optional[int] = None) -> str:
    """Archive entry file name for ``when``."""
    suffix = f"-{counter}" if counter else ""
    return f"{ARCHIVE_PREFIX}{when.strftime(ARCHIVE_TIMESTAMP_FORMAT)}{suffix}{ARCHIVE_SUFFIX}"

"""Precondition checks run before the live ruleset is touched."""

import os
from pathlib import Path

from nftsafe.core.exceptions import (
    PrivilegeError,
    UnreadableDestinationError,
    UnreadableSourceError,
)


def is_root() -> bool:
    """Check for root privileges."""
    return os.geteuid() == 0


def is_readable(path: Path) -> bool:
    """Check that ``path`` is a regular file the process can read."""
    return path.is_file() and os.access(path, os.R_OK)


def require_root(privileged: bool) -> None:
    """Raise PrivilegeError unless ``privileged``."""
    if not privileged:
        raise PrivilegeError(
            "This operation requires root privileges",
            hint="Run with: sudo nftsafe ...",
        )


def require_readable_destination(path: Path) -> None:
    """Raise UnreadableDestinationError if the active config is unreadable."""
    if not is_readable(path):
        raise UnreadableDestinationError(
            f"Destination file is not readable: {path}",
            hint="Use -d/--destination-file to point at the active nftables config",
        )


def require_readable_source(path: Path) -> None:
    """Raise UnreadableSourceError if the candidate config is unreadable."""
    if not is_readable(path):
        raise UnreadableSourceError(
            f"Source file is not readable: {path}",
            hint="Use -s/--source-file to point at the candidate ruleset",
        )

"""Execution context for a run.

The ExecutionContext holds the runtime flags that affect how a run is
executed. It is passed to the executor, the services and the state
machine.
"""

from dataclasses import dataclass, field

from nftsafe.core.output import Console, console, Verbosity


@dataclass
class ExecutionContext:
    """Execution context passed to services.

    Attributes:
        dry_run: If True, validate and report without changing anything
        verbosity: Output verbosity level (0-3)
        no_color: If True, disable colored output
    """

    # Runtime flags
    dry_run: bool = False
    verbosity: int = 1
    no_color: bool = False

    _console: Console = field(default_factory=lambda: console, repr=False)

    def __post_init__(self) -> None:
        """Configure console after initialization."""
        self._console.configure(
            verbosity=self.verbosity,
            dry_run=self.dry_run,
            no_color=self.no_color,
        )

    @property
    def console(self) -> Console:
        """Get console for output."""
        return self._console

    @property
    def is_verbose(self) -> bool:
        """Check if verbose output is enabled."""
        return self.verbosity >= Verbosity.VERBOSE


def create_context(
    dry_run: bool = False,
    verbose: int = 0,
    quiet: bool = False,
    no_color: bool = False,
) -> ExecutionContext:
    """Create an execution context from CLI options.

    Args:
        dry_run: Validate without changing anything
        verbose: Increase verbosity (can be repeated)
        quiet: Suppress non-essential output
        no_color: Disable colored output

    Returns:
        Configured execution context
    """
    if quiet:
        verbosity = Verbosity.QUIET
    else:
        verbosity = min(Verbosity.NORMAL + verbose, Verbosity.DEBUG)

    return ExecutionContext(
        dry_run=dry_run,
        verbosity=verbosity,
        no_color=no_color,
    )

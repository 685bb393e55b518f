"""Configuration management using Pydantic.

Provides:
- Typed configuration models with validation
- YAML file loading with defaults
- Environment variable overrides
- Resolution of the immutable per-run configuration
"""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nftsafe.core.exceptions import ConfigurationError


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("/etc/nftsafe/config.yaml")
DEFAULT_SOURCE_FILE = Path("/etc/nftables-candidate.conf")
DEFAULT_DESTINATION_FILE = Path("/etc/nftables.conf")
DEFAULT_BACKUP_DIR = Path("/etc/nftables")
DEFAULT_TIMEOUT = 15
DEFAULT_GUARD_SERVICES = ["fail2ban"]
DEFAULT_NFT_BINARY = "nft"

# Persisted state layout inside the backup directory
SNAPSHOT_FILENAME = "nftables.conf.bak"
ARCHIVE_PREFIX = "nftables-installed-"
ARCHIVE_SUFFIX = ".nft"
ARCHIVE_TIMESTAMP_FORMAT = "%Y-%m-%d_%Hh%Mm%Ss"


def _validate_timeout(v: int) -> int:
    if v < 1:
        raise ValueError("timeout must be at least 1 second")
    return v


def _validate_service_names(v: list[str]) -> list[str]:
    for name in v:
        if not name or any(c.isspace() for c in name) or name.startswith("-"):
            raise ValueError(f"Invalid service name: {name!r}")
    return v


class ToolConfig(BaseModel):
    """Defaults loaded from /etc/nftsafe/config.yaml.

    Every value can still be overridden by environment variables and
    command line options.
    """

    model_config = ConfigDict(extra="forbid")

    source_file: Path = DEFAULT_SOURCE_FILE
    destination_file: Path = DEFAULT_DESTINATION_FILE
    backup_dir: Path = DEFAULT_BACKUP_DIR
    timeout: int = DEFAULT_TIMEOUT
    guard_services: list[str] = Field(default_factory=lambda: list(DEFAULT_GUARD_SERVICES))
    nft_binary: str = DEFAULT_NFT_BINARY

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        return _validate_timeout(v)

    @field_validator("guard_services")
    @classmethod
    def validate_guard_services(cls, v: list[str]) -> list[str]:
        return _validate_service_names(v)

    @classmethod
    def load(cls, path: Path) -> "ToolConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            Loaded configuration

        Raises:
            ConfigurationError: If file not found or invalid
        """
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {path}",
                details=[str(e)],
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read configuration file: {path}",
                hint="Check that the path is a readable file",
                details=[str(e)],
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping: {path}",
            )

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration in {path}",
                details=[err["msg"] for err in e.errors()],
            ) from e

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> "ToolConfig":
        """Load configuration, falling back to defaults if file doesn't exist."""
        if path is None:
            path = DEFAULT_CONFIG_PATH

        if path.exists():
            return cls.load(path)
        return cls()


class EnvOverrides(BaseSettings):
    """Overrides loaded from NFTSAFE_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="NFTSAFE_", extra="ignore")

    source_file: Optional[Path] = None
    destination_file: Optional[Path] = None
    backup_dir: Optional[Path] = None
    timeout: Optional[int] = None


class RunConfig(BaseModel):
    """Resolved, immutable configuration for a single run."""

    model_config = ConfigDict(frozen=True)

    source_file: Path
    destination_file: Path
    backup_dir: Path
    timeout: int = DEFAULT_TIMEOUT
    guard_services: tuple[str, ...] = tuple(DEFAULT_GUARD_SERVICES)
    nft_binary: str = DEFAULT_NFT_BINARY

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        return _validate_timeout(v)

    @field_validator("guard_services")
    @classmethod
    def validate_guard_services(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_validate_service_names(list(v)))

    @property
    def snapshot_path(self) -> Path:
        """Location of the single pre-activation snapshot."""
        return self.backup_dir / SNAPSHOT_FILENAME


def resolve_run_config(
    *,
    config_path: Optional[Path] = None,
    source_file: Optional[Path] = None,
    destination_file: Optional[Path] = None,
    backup_dir: Optional[Path] = None,
    timeout: Optional[int] = None,
    guard_services: Optional[list[str]] = None,
) -> RunConfig:
    """Build the RunConfig for a run.

    Precedence: explicit argument, then NFTSAFE_* environment variable,
    then configuration file, then built-in default.

    Raises:
        ConfigurationError: If any source holds an invalid value
    """
    # An explicitly requested file must exist
    if config_path is not None:
        file_config = ToolConfig.load(config_path)
    else:
        file_config = ToolConfig.load_or_default()

    try:
        env = EnvOverrides()
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid NFTSAFE_* environment variable",
            details=[err["msg"] for err in e.errors()],
        ) from e

    def pick(name: str, explicit: Any) -> Any:
        if explicit is not None:
            return explicit
        from_env = getattr(env, name, None)
        if from_env is not None:
            return from_env
        return getattr(file_config, name)

    try:
        return RunConfig(
            source_file=pick("source_file", source_file),
            destination_file=pick("destination_file", destination_file),
            backup_dir=pick("backup_dir", backup_dir),
            timeout=pick("timeout", timeout),
            guard_services=tuple(
                guard_services if guard_services else file_config.guard_services
            ),
            nft_binary=file_config.nft_binary,
        )
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid run configuration",
            details=[err["msg"] for err in e.errors()],
        ) from e

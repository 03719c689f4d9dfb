"""
sitedeploy - Configuration Settings

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables and a .env file in the
current working directory.

Two immutable values are derived from the raw settings for each run:
    - DeployConfig: FTP target and local build directory
    - RunFlags: command-line switches (--clean, --skip-deploy, --preserve-dist)

Usage:
    from config.settings import get_settings, parse_flags

    settings = get_settings()
    flags = parse_flags(sys.argv[1:])
    config = DeployConfig.from_settings(settings)
"""

import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Sequence

from pydantic import Field, SecretStr, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_FTP_PORT = 21
DEFAULT_REMOTE_DIR = "/public_html/"
DEFAULT_LOCAL_DIR = "dist"
DEFAULT_BUILD_COMMAND = "pnpm run build"

TRUE_LITERALS = frozenset({"1", "true", "yes", "on"})

FLAG_CLEAN = "--clean"
FLAG_SKIP_DEPLOY = "--skip-deploy"
FLAG_PRESERVE_DIST = "--preserve-dist"


def parse_bool(value: Any, default: bool = False) -> bool:
    """
    Interpret an environment value as a boolean.

    Only the literals 1, true, yes and on (case-insensitive, surrounding
    whitespace ignored) are true. Unset or blank values yield the default;
    anything else is false.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return default
    return text in TRUE_LITERALS


# =============================================================================
# Settings Classes
# =============================================================================

class Settings(BaseSettings):
    """
    Deployment settings loaded from environment variables.

    Variable names are the upper-cased field names (FTP_HOST, REMOTE_DIR, ...).
    No prefix is used so existing .env files for the site keep working.

    Required for deployment (checked by DeployConfig.from_settings):
        - FTP_HOST
        - FTP_USER
        - FTP_PASSWORD
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # -------------------------------------------------------------------------
    # FTP Target
    # -------------------------------------------------------------------------
    ftp_host: Optional[str] = Field(
        default=None,
        description="FTP hostname",
    )
    ftp_port: int = Field(
        default=DEFAULT_FTP_PORT,
        description="FTP control port",
    )
    ftp_user: Optional[str] = Field(
        default=None,
        description="FTP username",
    )
    ftp_password: Optional[SecretStr] = Field(
        default=None,
        description="FTP password",
    )
    ftp_secure: bool = Field(
        default=False,
        description="Use explicit FTPS (AUTH TLS) for the control and data channels",
    )
    ftp_tls_insecure: bool = Field(
        default=False,
        description="Skip certificate and hostname verification for FTPS",
    )
    ftp_debug: int = Field(
        default=0,
        description="ftplib debug level (0 = silent, 1 = commands, 2 = full trace)",
    )

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------
    remote_dir: str = Field(
        default=DEFAULT_REMOTE_DIR,
        description="Remote directory the site is published into",
    )
    local_dir: str = Field(
        default=DEFAULT_LOCAL_DIR,
        description="Local build output directory",
    )

    # -------------------------------------------------------------------------
    # Build
    # -------------------------------------------------------------------------
    build_command: str = Field(
        default=DEFAULT_BUILD_COMMAND,
        description="Shell command that produces the local build directory",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path; file output is always JSON",
    )
    log_format: str = Field(
        default="text",
        description="Console log format (text or json)",
    )
    log_max_bytes: int = Field(
        default=10_485_760,  # 10 MB
        description="Maximum log file size before rotation",
    )
    log_backup_count: int = Field(
        default=5,
        description="Number of backup log files to keep",
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("ftp_secure", "ftp_tls_insecure", mode="before")
    @classmethod
    def validate_bool(cls, v: Any) -> bool:
        """Accept 1/true/yes/on as true and treat every other value as false."""
        return parse_bool(v, default=False)

    @field_validator("ftp_port", mode="before")
    @classmethod
    def validate_port(cls, v: Any) -> int:
        """Parse the port as a base-10 integer; blank means the default."""
        if v is None or isinstance(v, int):
            return DEFAULT_FTP_PORT if v is None else v
        text = str(v).strip()
        if not text:
            return DEFAULT_FTP_PORT
        return int(text, 10)

    @field_validator(
        "ftp_debug",
        "remote_dir",
        "local_dir",
        "build_command",
        "log_level",
        "log_file",
        "log_format",
        "log_max_bytes",
        "log_backup_count",
        mode="before",
    )
    @classmethod
    def blank_means_default(cls, v: Any, info: ValidationInfo) -> Any:
        """An empty or whitespace-only variable behaves as if it were unset."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Ensure log format is valid."""
        v_lower = v.lower()
        if v_lower not in {"text", "json"}:
            raise ValueError(f"Invalid log format: {v}. Must be 'text' or 'json'")
        return v_lower

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def is_ftp_configured(self) -> bool:
        """Check if FTP deployment is fully configured."""
        password = self.ftp_password.get_secret_value() if self.ftp_password else ""
        return all([self.ftp_host, self.ftp_user, password])

    def get_local_path(self) -> Path:
        """Get the absolute path to the local build directory."""
        return Path(self.local_dir).resolve()


# =============================================================================
# Per-run Values
# =============================================================================

@dataclass(frozen=True)
class DeployConfig:
    """Everything the uploader needs to publish one build."""

    host: str
    user: str
    password: SecretStr
    port: int = DEFAULT_FTP_PORT
    secure: bool = False
    tls_insecure: bool = False
    remote_dir: str = DEFAULT_REMOTE_DIR
    local_dir: str = DEFAULT_LOCAL_DIR

    @classmethod
    def from_settings(cls, settings: Settings) -> "DeployConfig":
        """
        Build the deploy configuration from loaded settings.

        Raises:
            ConfigurationError: if FTP_HOST, FTP_USER or FTP_PASSWORD is
                absent or empty
        """
        from publishing.exceptions import ConfigurationError

        password = settings.ftp_password.get_secret_value() if settings.ftp_password else ""
        missing = [
            name
            for name, value in (
                ("FTP_HOST", settings.ftp_host),
                ("FTP_USER", settings.ftp_user),
                ("FTP_PASSWORD", password),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing FTP credentials: set {', '.join(missing)} "
                "(via .env or environment)."
            )

        return cls(
            host=settings.ftp_host,
            user=settings.ftp_user,
            password=settings.ftp_password,
            port=settings.ftp_port,
            secure=settings.ftp_secure,
            tls_insecure=settings.ftp_tls_insecure,
            remote_dir=settings.remote_dir,
            local_dir=settings.local_dir,
        )


@dataclass(frozen=True)
class RunFlags:
    """Command-line switches for one run."""

    clean: bool = False
    skip_deploy: bool = False
    preserve_dist: bool = False


def parse_flags(argv: Optional[Sequence[str]] = None) -> RunFlags:
    """
    Parse run flags by exact presence of each token.

    There are no short or combined forms and unknown tokens are ignored.
    """
    tokens = set(sys.argv[1:] if argv is None else argv)
    return RunFlags(
        clean=FLAG_CLEAN in tokens,
        skip_deploy=FLAG_SKIP_DEPLOY in tokens,
        preserve_dist=FLAG_PRESERVE_DIST in tokens,
    )


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get the settings singleton.

    Settings are cached after first load. To reload settings (e.g., in tests),
    call clear_settings_cache() first.

    Raises:
        ConfigurationError: if a variable cannot be parsed (e.g. a
            non-numeric FTP_PORT)
    """
    from publishing.exceptions import ConfigurationError

    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing reload on next access."""
    get_settings.cache_clear()


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "Settings",
    "DeployConfig",
    "RunFlags",
    "get_settings",
    "clear_settings_cache",
    "parse_bool",
    "parse_flags",
]

"""
sitedeploy - Build and Deploy

Builds the site with the configured build command and publishes the build
output over FTP.

Usage:
    sitedeploy                    Build and deploy
    sitedeploy --clean            Clear the remote directory before upload
    sitedeploy --skip-deploy      Build only, don't deploy
    sitedeploy --preserve-dist    Keep the build folder after deployment

Config via .env or environment variables:
    FTP_HOST, FTP_PORT, FTP_USER, FTP_PASSWORD, FTP_SECURE, FTP_TLS_INSECURE,
    REMOTE_DIR, LOCAL_DIR, BUILD_COMMAND, FTP_DEBUG,
    LOG_LEVEL, LOG_FORMAT, LOG_FILE
"""

import enum
import sys
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence

from config.logging import get_logger, register_secret, setup_logging
from config.settings import DeployConfig, RunFlags, Settings, get_settings, parse_flags
from publishing.builder import BuildResult, SiteBuilder
from publishing.cleanup import delete_dist
from publishing.deployer import DeploymentResult, FTPDeployer
from publishing.exceptions import ConfigurationError, DeployError


logger = get_logger(__name__)


class RunState(str, enum.Enum):
    """Stages of a build-and-deploy run."""

    START = "start"
    BUILDING = "building"
    SKIP_DEPLOY = "skip_deploy"
    DEPLOYING = "deploying"
    CLEANING_UP = "cleaning_up"
    PRESERVED = "preserved"
    DONE = "done"
    FAILED = "failed"


class Builder(Protocol):
    def build(self) -> BuildResult: ...


class Deployer(Protocol):
    def deploy(self, clean: bool = False) -> DeploymentResult: ...


DeployerFactory = Callable[[DeployConfig], Deployer]


@dataclass
class RunResult:
    """Outcome of one run, with every state that was entered."""

    states: list[RunState] = field(default_factory=lambda: [RunState.START])
    build: Optional[BuildResult] = None
    deployment: Optional[DeploymentResult] = None
    error: Optional[Exception] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def state(self) -> RunState:
        return self.states[-1]

    @property
    def success(self) -> bool:
        return self.state is not RunState.FAILED

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def enter(self, state: RunState) -> None:
        logger.debug(f"Run state: {state.value}", extra={"phase": state.value})
        self.states.append(state)

    def fail(self, error: Exception) -> None:
        """Record a terminal error."""
        self.error = error
        self.enter(RunState.FAILED)


def run(
    flags: RunFlags,
    settings: Settings,
    builder: Optional[Builder] = None,
    deployer_factory: Optional[DeployerFactory] = None,
) -> RunResult:
    """
    Build, then deploy, then clean up, as selected by flags.

    Failures are recorded on the returned RunResult rather than raised.
    Credentials are only required once the run reaches the deploy stage,
    so --skip-deploy works without them.

    Args:
        flags: Command-line switches
        settings: Loaded settings
        builder: Build step (SiteBuilder with BUILD_COMMAND if None)
        deployer_factory: Creates the upload step from a DeployConfig
            (FTPDeployer if None)

    Returns:
        RunResult describing the states entered
    """
    result = RunResult()

    if settings.ftp_password:
        register_secret(settings.ftp_password.get_secret_value())

    builder = builder or SiteBuilder(settings.build_command)
    if deployer_factory is None:
        def deployer_factory(config: DeployConfig) -> Deployer:
            return FTPDeployer(config, debug_level=settings.ftp_debug)

    try:
        result.enter(RunState.BUILDING)
        result.build = builder.build()

        if flags.skip_deploy:
            logger.info("Skipping deploy (--skip-deploy). Done.")
            result.enter(RunState.SKIP_DEPLOY)
            result.enter(RunState.DONE)
            return result

        result.enter(RunState.DEPLOYING)
        config = DeployConfig.from_settings(settings)
        result.deployment = deployer_factory(config).deploy(clean=flags.clean)

    except DeployError as e:
        logger.exception(f"Failed: {e}")
        result.fail(e)
        return result

    if flags.preserve_dist:
        logger.info(
            f"Preserving {config.local_dir}/ folder (--preserve-dist).",
            extra={"phase": "cleanup"},
        )
        result.enter(RunState.PRESERVED)
    else:
        result.enter(RunState.CLEANING_UP)
        try:
            delete_dist(settings.get_local_path())
        except OSError as e:
            # The site is already published; a leftover build folder is not a failure
            message = f"Could not delete {config.local_dir}: {e}"
            logger.warning(message, extra={"phase": "cleanup"})
            result.warnings.append(message)

    result.enter(RunState.DONE)
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Command-line entry point.

    Returns:
        Process exit code (0 on success, 1 on any failure)
    """
    flags = parse_flags(argv)

    try:
        settings = get_settings()
    except ConfigurationError as e:
        setup_logging(settings=Settings.model_construct())
        logger.exception(f"Failed: {e}")
        return 1

    setup_logging(settings=settings)

    try:
        result = run(flags, settings)
    except Exception as e:
        logger.exception(f"Failed: {e}")
        return 1

    deployment = result.deployment
    if deployment is not None and result.success:
        logger.info(
            f"Uploaded {deployment.files_uploaded} files "
            f"({deployment.bytes_transferred:,} bytes) in {deployment.duration_seconds:.1f}s",
            extra={"phase": "done"},
        )

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())

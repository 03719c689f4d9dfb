"""
Deployment exceptions.

Every failure that ends a run derives from DeployError. None of them are
retried; the command-line entry point reports them and exits non-zero.
"""

from typing import Optional


class DeployError(Exception):
    """Base class for all errors that abort a build-and-deploy run."""
    pass


class ConfigurationError(DeployError):
    """
    Raised when required configuration is missing or unparseable.

    Examples:
        - FTP_HOST, FTP_USER or FTP_PASSWORD not set
        - FTP_PORT is not an integer
    """
    pass


class BuildError(DeployError):
    """
    Raised when the external build command fails or cannot be started.

    Carries the captured output so the operator can see why.
    """

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class MissingArtifactError(DeployError):
    """Raised when the local build directory is absent at upload time."""
    pass


class FTPConnectionError(DeployError):
    """
    Raised when connecting or authenticating to the FTP server fails.

    Examples:
        - Host unreachable or connection refused
        - TLS negotiation failed
        - 530 Login incorrect
    """
    pass


class UploadError(DeployError):
    """
    Raised when preparing the remote directory or transferring a file fails.

    Examples:
        - Remote directory could not be created
        - --clean could not remove a remote entry
        - STOR rejected or connection dropped mid-transfer
    """
    pass


__all__ = [
    "DeployError",
    "ConfigurationError",
    "BuildError",
    "MissingArtifactError",
    "FTPConnectionError",
    "UploadError",
]

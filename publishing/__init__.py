"""
sitedeploy - Publishing Package

Building the static site and publishing it over FTP.

Modules:
    builder: Runs the external build command
    deployer: FTP/FTPS upload of the build directory
    cleanup: Removes the local build directory after publishing
    exceptions: Error kinds that abort a run

Usage:
    from publishing import SiteBuilder, FTPDeployer, delete_dist

    SiteBuilder("pnpm run build").build()
    FTPDeployer(config).deploy(clean=True)
    delete_dist("dist")
"""

from publishing.builder import BuildResult, SiteBuilder
from publishing.cleanup import delete_dist
from publishing.deployer import DeploymentResult, FTPDeployer
from publishing.exceptions import (
    BuildError,
    ConfigurationError,
    DeployError,
    FTPConnectionError,
    MissingArtifactError,
    UploadError,
)

__all__ = [
    "BuildResult",
    "SiteBuilder",
    "delete_dist",
    "DeploymentResult",
    "FTPDeployer",
    "DeployError",
    "ConfigurationError",
    "BuildError",
    "MissingArtifactError",
    "FTPConnectionError",
    "UploadError",
]

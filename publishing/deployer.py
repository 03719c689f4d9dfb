"""
sitedeploy - FTP Deployer

Publishes the local build directory to a remote host over FTP or explicit
FTPS.

Steps:
- Check the local build directory exists
- Connect and log in (TLS-protected when FTP_SECURE is set)
- Ensure the remote directory exists and change into it
- Optionally clear everything inside it (--clean)
- Upload the local tree, preserving relative paths
- Always close the connection

Any failure aborts the whole deployment; there is no partial-success
accounting and no resume.

Usage:
    deployer = FTPDeployer(DeployConfig.from_settings(settings))
    result = deployer.deploy(clean=False)
"""

import ftplib
import posixpath
import ssl
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from config.logging import get_logger, mask_secret
from config.settings import DeployConfig
from publishing.exceptions import FTPConnectionError, MissingArtifactError, UploadError


logger = get_logger(__name__)


@dataclass
class DeploymentResult:
    """Statistics for a completed deployment."""

    files_uploaded: int = 0
    directories_created: int = 0
    bytes_transferred: int = 0
    entries_cleared: int = 0  # Remote files and directories removed by --clean

    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0


class FTPDeployer:
    """
    Uploads a static site to an FTP server.

    One instance owns at most one connection at a time, opened and
    closed within deploy().
    """

    def __init__(self, config: DeployConfig, debug_level: int = 0):
        """
        Initialize the deployer.

        Args:
            config: FTP target and local build directory
            debug_level: ftplib debug level (ftplib masks the PASS command)
        """
        self.config = config
        self.debug_level = debug_level
        self.local_dir = Path(config.local_dir)

        self._ftp: Optional[ftplib.FTP] = None

    def deploy(self, clean: bool = False) -> DeploymentResult:
        """
        Publish the local build directory.

        Args:
            clean: Delete everything inside the remote directory first

        Returns:
            DeploymentResult with statistics

        Raises:
            MissingArtifactError: local build directory is missing
            FTPConnectionError: connect or login failed
            UploadError: remote directory or transfer failure
        """
        self._check_local_dir()

        result = DeploymentResult()
        config = self.config

        logger.info(
            f"FTP target: {config.host}:{config.port} secure={config.secure} "
            f"user={config.user} pass={mask_secret(config.password.get_secret_value())}",
            extra={"phase": "target"},
        )

        try:
            self._connect()

            remote_dir = config.remote_dir
            logger.info(f"Ensuring remote directory: {remote_dir}", extra={"phase": "remote"})
            # Leaves the session inside remote_dir, relative paths included
            result.directories_created += self.ensure_dir(remote_dir)

            if clean:
                logger.info("Clearing remote directory (--clean)...", extra={"phase": "clear"})
                result.entries_cleared = self.clear_working_dir()

            logger.info(
                f"Uploading {self.local_dir.resolve()} -> {remote_dir}",
                extra={"phase": "upload"},
            )
            self.upload_from_dir(self.local_dir, result)

        finally:
            self._disconnect()

        result.completed_at = datetime.now()

        logger.info(
            f"Deployment completed successfully: {result.files_uploaded} files, "
            f"{result.bytes_transferred:,} bytes, {result.directories_created} directories created, "
            f"{result.entries_cleared} entries cleared in {result.duration_seconds:.1f}s",
            extra={"phase": "done"},
        )

        return result

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    def _check_local_dir(self) -> None:
        """Fail before any network activity if there is nothing to upload."""
        if not self.local_dir.is_dir():
            raise MissingArtifactError(
                f"Build directory not found: {self.local_dir}. Build step may have failed."
            )

    def _tls_context(self) -> ssl.SSLContext:
        """TLS context for FTPS, optionally without certificate checks."""
        context = ssl.create_default_context()
        if self.config.tls_insecure:
            logger.warning(
                "TLS certificate verification disabled (FTP_TLS_INSECURE)",
                extra={"phase": "connect"},
            )
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _connect(self) -> None:
        """
        Connect and authenticate to the FTP server.

        The session is only kept once login has succeeded; a half-open
        socket is closed before FTPConnectionError is raised.
        """
        config = self.config
        logger.info(
            f"Connecting to {config.host}:{config.port} (secure={config.secure}) ...",
            extra={"phase": "connect"},
        )

        if config.secure:
            ftp = ftplib.FTP_TLS(context=self._tls_context())
        else:
            ftp = ftplib.FTP()
        ftp.set_debuglevel(self.debug_level)

        try:
            ftp.connect(host=config.host, port=config.port)
            ftp.login(
                user=config.user,
                passwd=config.password.get_secret_value(),
            )
            if config.secure:
                # Protect the data channel as well as the control channel
                ftp.prot_p()

            # Switch to binary mode
            ftp.voidcmd("TYPE I")
        except ftplib.all_errors as e:
            ftp.close()
            raise FTPConnectionError(
                f"Could not connect to {config.host}:{config.port} as {config.user}: {e}"
            ) from e

        self._ftp = ftp
        logger.debug("FTP connection established", extra={"phase": "connect"})

    def _disconnect(self) -> None:
        """Disconnect from the FTP server."""
        if self._ftp:
            try:
                self._ftp.quit()
            except ftplib.all_errors as e:
                logger.debug(f"QUIT failed ({e}), closing socket", extra={"phase": "disconnect"})
                self._ftp.close()
            self._ftp = None
            logger.debug("FTP disconnected", extra={"phase": "disconnect"})

    def _require_connection(self) -> ftplib.FTP:
        if not self._ftp:
            raise RuntimeError("Not connected to FTP")
        return self._ftp

    # -------------------------------------------------------------------------
    # Remote Directory Operations
    # -------------------------------------------------------------------------

    def ensure_dir(self, remote_path: str) -> int:
        """
        Create every missing component of a remote path.

        Leaves the working directory at remote_path.

        Returns:
            Number of directories created
        """
        ftp = self._require_connection()
        created = 0

        try:
            if remote_path.startswith("/"):
                ftp.cwd("/")
            for part in remote_path.split("/"):
                if not part:
                    continue
                try:
                    ftp.cwd(part)
                except ftplib.error_perm:
                    # Directory doesn't exist, create it
                    ftp.mkd(part)
                    ftp.cwd(part)
                    created += 1
                    logger.debug(f"Created remote directory: {part}", extra={"phase": "remote"})
        except ftplib.all_errors as e:
            raise UploadError(f"Could not ensure remote directory {remote_path}: {e}") from e

        return created

    def clear_working_dir(self) -> int:
        """
        Delete all files and subdirectories in the current remote directory.

        The directory itself is kept.

        Returns:
            Number of entries removed (nested entries included)
        """
        try:
            return self._remove_contents()
        except ftplib.all_errors as e:
            raise UploadError(f"Could not clear remote directory: {e}") from e

    def _remove_contents(self) -> int:
        ftp = self._require_connection()
        removed = 0

        for name, is_dir in self._list_dir():
            if is_dir:
                ftp.cwd(name)
                removed += self._remove_contents()
                ftp.cwd("..")
                ftp.rmd(name)
                logger.debug(f"Removed remote directory: {name}", extra={"phase": "clear"})
            else:
                ftp.delete(name)
                logger.debug(f"Deleted remote file: {name}", extra={"phase": "clear"})
            removed += 1

        return removed

    def _list_dir(self) -> list[tuple[str, bool]]:
        """
        List the current remote directory as (name, is_dir) pairs.

        Uses MLSD where the server supports it; otherwise falls back to
        NLST and probes each entry with CWD.
        """
        ftp = self._require_connection()

        try:
            entries = list(ftp.mlsd(facts=["type"]))
        except ftplib.error_perm:
            return self._list_dir_fallback()

        listing = []
        for name, facts in entries:
            entry_type = facts.get("type", "file").lower()
            if entry_type in ("cdir", "pdir") or name in (".", ".."):
                continue
            listing.append((name, entry_type == "dir"))
        return listing

    def _list_dir_fallback(self) -> list[tuple[str, bool]]:
        ftp = self._require_connection()
        listing = []

        for entry in ftp.nlst():
            name = posixpath.basename(entry.rstrip("/"))
            if name in ("", ".", ".."):
                continue
            try:
                ftp.cwd(name)
            except ftplib.error_perm:
                listing.append((name, False))
            else:
                ftp.cwd("..")
                listing.append((name, True))

        return listing

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    def upload_from_dir(
        self,
        local_dir: Path,
        result: Optional[DeploymentResult] = None,
    ) -> DeploymentResult:
        """
        Upload the contents of local_dir into the current remote directory.

        Subdirectories are created as needed and relative paths preserved.

        Raises:
            UploadError: on the first transfer failure
        """
        result = result if result is not None else DeploymentResult()
        self._upload_tree(Path(local_dir), Path(local_dir), result)
        return result

    def _upload_tree(self, root: Path, directory: Path, result: DeploymentResult) -> None:
        ftp = self._require_connection()

        for local_path in sorted(directory.iterdir()):
            rel_path = local_path.relative_to(root).as_posix()

            if local_path.is_dir():
                try:
                    result.directories_created += self._enter_subdir(local_path.name)
                except ftplib.all_errors as e:
                    raise UploadError(f"Could not create remote directory {rel_path}: {e}") from e

                self._upload_tree(root, local_path, result)

                try:
                    ftp.cwd("..")
                except ftplib.all_errors as e:
                    raise UploadError(f"Could not leave remote directory {rel_path}: {e}") from e
            else:
                self._upload_file(local_path, rel_path)
                result.files_uploaded += 1
                result.bytes_transferred += local_path.stat().st_size

    def _enter_subdir(self, name: str) -> int:
        """Change into a remote subdirectory, creating it if needed."""
        ftp = self._require_connection()
        try:
            ftp.cwd(name)
            return 0
        except ftplib.error_perm:
            ftp.mkd(name)
            ftp.cwd(name)
            return 1

    def _upload_file(self, local_path: Path, rel_path: str) -> None:
        """Upload a single file into the current remote directory."""
        ftp = self._require_connection()
        try:
            with open(local_path, "rb") as f:
                ftp.storbinary(f"STOR {local_path.name}", f)
        except ftplib.all_errors as e:
            raise UploadError(f"Failed to upload {rel_path}: {e}") from e

        logger.debug(f"Uploaded: {rel_path}", extra={"phase": "upload"})


__all__ = [
    "DeploymentResult",
    "FTPDeployer",
]

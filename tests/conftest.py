"""
sitedeploy - Test Configuration

Pytest fixtures shared by the unit and integration suites:
environment isolation, settings factories, a build-directory factory
and an in-memory FTP server double.
"""

import ftplib
import logging
import posixpath
import socket
from typing import Optional

import pytest

from config.logging import clear_secrets
from config.settings import Settings, clear_settings_cache


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as an integration test",
    )


# =============================================================================
# Environment Isolation
# =============================================================================

ENV_VARS = [
    "FTP_HOST",
    "FTP_PORT",
    "FTP_USER",
    "FTP_PASSWORD",
    "FTP_SECURE",
    "FTP_TLS_INSECURE",
    "FTP_DEBUG",
    "REMOTE_DIR",
    "LOCAL_DIR",
    "BUILD_COMMAND",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FILE",
    "LOG_MAX_BYTES",
    "LOG_BACKUP_COUNT",
]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Run every test in an empty working directory with no deploy variables.

    The working directory change keeps a developer's .env out of the tests.
    """
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    clear_secrets()

    yield

    clear_settings_cache()
    clear_secrets()


@pytest.fixture
def restore_logging():
    """Restore root logger handlers after a test calls setup_logging()."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level

    yield root_logger

    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def settings_factory(tmp_path):
    """Factory for Settings that ignores the environment's .env file."""
    def _create_settings(**kwargs):
        defaults = {
            "ftp_host": "ftp.example.com",
            "ftp_user": "deploy",
            "ftp_password": "s3cr3t-Pa55word",
            "local_dir": str(tmp_path / "dist"),
        }
        defaults.update(kwargs)
        return Settings(_env_file=None, **defaults)
    return _create_settings


@pytest.fixture
def build_dir_factory(tmp_path):
    """Factory that writes a build output tree from a {relative path: content} dict."""
    def _create_build_dir(files: Optional[dict] = None, name: str = "dist"):
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        if files is None:
            files = {
                "index.html": "<h1>Home</h1>",
                "assets/app.js": "console.log('hi');",
                "assets/css/site.css": "body { margin: 0; }",
            }
        for rel_path, content in files.items():
            path = root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return root
    return _create_build_dir


# =============================================================================
# FTP Server Double
# =============================================================================

class FakeFTP:
    """
    In-memory stand-in for ftplib.FTP with a real directory tree.

    Files are stored as {absolute path: bytes}; directories as a set of
    absolute paths, and the session starts in home (the login
    directory). Errors are raised as the ftplib exceptions a real server
    reply would produce.
    """

    def __init__(
        self,
        files: Optional[dict] = None,
        dirs: Optional[set] = None,
        fail_login: bool = False,
        fail_connect: bool = False,
        fail_on_stor: Optional[set] = None,
        support_mlsd: bool = True,
        fail_quit: bool = False,
        home: str = "/",
    ):
        self.files = {}
        self.dirs = {"/"}
        self._add_dir(home)
        for path in dirs or ():
            self._add_dir(path)
        for path, content in (files or {}).items():
            self._add_dir(posixpath.dirname(path))
            self.files[path] = content

        self.fail_login = fail_login
        self.fail_connect = fail_connect
        self.fail_on_stor = set(fail_on_stor or ())
        self.support_mlsd = support_mlsd
        self.fail_quit = fail_quit

        self.cwd_path = home
        self.connected = False
        self.logged_in = False
        self.closed = False
        self.protected = False
        self.debug_level = 0
        self.host = None
        self.port = None
        self.user = None
        self.passwd = None
        self.commands = []

    def _add_dir(self, path: str) -> None:
        while path and path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def _abs(self, name: str) -> str:
        return posixpath.normpath(posixpath.join(self.cwd_path, name))

    def _children(self, path: str):
        for entry in sorted(self.dirs | set(self.files)):
            if entry != path and posixpath.dirname(entry) == path:
                yield posixpath.basename(entry), entry in self.dirs

    # ftplib.FTP API ----------------------------------------------------------

    def set_debuglevel(self, level):
        self.debug_level = level

    def connect(self, host="", port=0, timeout=None, source_address=None):
        if self.fail_connect:
            raise ConnectionRefusedError(111, "Connection refused")
        self.connected = True
        self.host = host
        self.port = port
        return "220 Welcome"

    def login(self, user="", passwd="", acct=""):
        if self.fail_login:
            raise ftplib.error_perm("530 Login incorrect.")
        self.user = user
        self.passwd = passwd
        self.logged_in = True
        return "230 Logged in"

    def prot_p(self):
        self.protected = True
        return "200 PROT now Private"

    def voidcmd(self, cmd):
        self.commands.append(cmd)
        return "200 OK"

    def pwd(self):
        return self.cwd_path

    def cwd(self, dirname):
        path = self._abs(dirname)
        if path not in self.dirs:
            raise ftplib.error_perm(f"550 {dirname}: No such file or directory")
        self.cwd_path = path
        return "250 OK"

    def mkd(self, dirname):
        path = self._abs(dirname)
        if posixpath.dirname(path) not in self.dirs:
            raise ftplib.error_perm(f"550 {dirname}: No such file or directory")
        if path in self.dirs or path in self.files:
            raise ftplib.error_perm(f"550 {dirname}: File exists")
        self.dirs.add(path)
        return path

    def rmd(self, dirname):
        path = self._abs(dirname)
        if path not in self.dirs:
            raise ftplib.error_perm(f"550 {dirname}: No such file or directory")
        if any(True for _ in self._children(path)):
            raise ftplib.error_perm(f"550 {dirname}: Directory not empty")
        self.dirs.remove(path)
        return "250 OK"

    def delete(self, filename):
        path = self._abs(filename)
        if path not in self.files:
            raise ftplib.error_perm(f"550 {filename}: No such file")
        del self.files[path]
        return "250 OK"

    def mlsd(self, path="", facts=()):
        if not self.support_mlsd:
            raise ftplib.error_perm("500 Unknown command MLSD")
        base = self._abs(path or ".")
        yield ".", {"type": "cdir"}
        yield "..", {"type": "pdir"}
        for name, is_dir in self._children(base):
            yield name, {"type": "dir" if is_dir else "file"}

    def nlst(self, *args):
        return [".", ".."] + [name for name, _ in self._children(self.cwd_path)]

    def storbinary(self, cmd, fp, blocksize=8192, callback=None, rest=None):
        name = cmd.split(" ", 1)[1]
        path = self._abs(name)
        if name in self.fail_on_stor or path in self.fail_on_stor:
            raise ftplib.error_temp("451 Requested action aborted: local error")
        if posixpath.dirname(path) not in self.dirs:
            raise ftplib.error_perm(f"553 {name}: No such directory")
        self.files[path] = fp.read()
        return "226 Transfer complete"

    def quit(self):
        if self.fail_quit:
            raise EOFError()
        self.connected = False
        self.closed = True
        return "221 Goodbye"

    def close(self):
        self.connected = False
        self.closed = True


@pytest.fixture
def fake_ftp_factory():
    """Factory for FakeFTP servers."""
    def _create_fake_ftp(**kwargs):
        return FakeFTP(**kwargs)
    return _create_fake_ftp


@pytest.fixture
def fake_ftp():
    """An empty FakeFTP server."""
    return FakeFTP()


@pytest.fixture
def closed_port():
    """A local TCP port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]

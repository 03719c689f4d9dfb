"""
sitedeploy - Local Build Cleanup

Removes the local build directory once it has been published.
"""

import shutil
from pathlib import Path
from typing import Union

from config.logging import get_logger


logger = get_logger(__name__)


def delete_dist(path: Union[str, Path]) -> bool:
    """
    Recursively and forcibly delete a build directory.

    A path that does not exist is silently ignored. Removal errors
    propagate as OSError.

    Args:
        path: Directory (or file) to remove

    Returns:
        True if something was removed, False if the path did not exist
    """
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return False

    logger.info(f"Deleting {path} ...", extra={"phase": "cleanup"})

    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()

    logger.info("Build folder deleted.", extra={"phase": "cleanup"})
    return True


__all__ = ["delete_dist"]

"""
Collision-safe placement of accepted files into the destination directory.
"""
from pathlib import Path
from typing import Dict, Set, Tuple
import os
import shutil
import threading
import logging

logger = logging.getLogger(__name__)

MAX_SUFFIX = 10_000


class PlacementError(OSError):
    """Raised when no free destination name is found within MAX_SUFFIX attempts."""


def split_name(base: str) -> Tuple[str, str]:
    """
    Split a base name on its final dot into (name, ext).

    A name without a dot, or whose only dot is leading (".bashrc"),
    has an empty extension.
    """
    name, dot, ext = base.rpartition(".")
    if not dot or not name:
        return base, ""
    return name, ext


def suffixed_name(base: str, count: int) -> str:
    """Name for the count-th collision: report.csv -> report_1.csv, README -> README_1."""
    name, ext = split_name(base)
    if ext:
        return f"{name}_{count}.{ext}"
    return f"{name}_{count}"


class Placer:
    """
    Chooses a free path in a destination directory and copies the file there.

    Path selection and the copy are serialized per destination directory, and
    every path handed out in this run is reserved, so two accepted files can
    never be given the same destination. Existing files are never overwritten.
    """

    def __init__(self, max_suffix: int = MAX_SUFFIX):
        self.max_suffix = max_suffix
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._reserved: Set[str] = set()

    def _lock_for(self, directory: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(directory)
            if lock is None:
                lock = self._locks[directory] = threading.Lock()
            return lock

    def _taken(self, path: str) -> bool:
        return path in self._reserved or os.path.lexists(path)

    def free_path(self, destination_dir: str, base: str) -> str:
        """
        Find the first destination path not already in use.

        Tries destination_dir/base, then name_1.ext, name_2.ext, ...

        Raises:
            PlacementError: If max_suffix candidates are all taken
        """
        dest = os.path.join(destination_dir, base)
        count = 1
        while self._taken(dest):
            if count > self.max_suffix:
                raise PlacementError(
                    f"No free name for {base} in {destination_dir} after {self.max_suffix} attempts")
            dest = os.path.join(destination_dir, suffixed_name(base, count))
            count += 1
        return dest

    def place(self, source: str, destination_dir: str) -> str:
        """
        Copy a file into destination_dir under a collision-free name.

        Modification time and permission bits are preserved.

        Args:
            source: File to copy
            destination_dir: Directory to place it in

        Returns:
            The destination path

        Raises:
            OSError: If the copy fails or no free name exists
        """
        destination_dir = os.path.abspath(destination_dir)
        base = Path(source).name

        with self._lock_for(destination_dir):
            dest = self.free_path(destination_dir, base)
            self._reserved.add(dest)
            try:
                shutil.copy2(source, dest)
            except OSError:
                logger.error(f"Copy failed, removing partial file: {dest}")
                try:
                    if os.path.exists(dest):
                        os.unlink(dest)
                except OSError as e:
                    logger.warning(f"Could not remove partial file {dest}: {e}")
                raise

        logger.debug(f"Placed {source} -> {dest}")
        return dest

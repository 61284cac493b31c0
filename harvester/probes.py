"""
Filesystem probes: source traversal, candidate metadata, header lines and MIME types.
"""
from pathlib import Path
from typing import Iterator, Optional, Tuple
import os
import stat
import logging

from .models import CandidateFile

logger = logging.getLogger(__name__)

try:
    import magic
    HAS_MAGIC = True
except ImportError:
    HAS_MAGIC = False
    logger.warning("python-magic/libmagic not available - MIME filtering disabled")

UNKNOWN_MIME = "unknown/unknown"
HEADER_SCAN_LIMIT = 1024 * 1024


def iter_source_files(directory: str, min_size: int = 0, max_size: int = 0) -> Iterator[str]:
    """
    Lazily yield absolute paths of regular files under a directory.

    Args:
        directory: Root of the source tree
        min_size: Skip files smaller than this at the OS level (0 = off)
        max_size: Skip files larger than this at the OS level (0 = off)

    Yields:
        Absolute file paths, in sorted order within each directory
    """
    dir_path = Path(directory)

    if not dir_path.exists():
        logger.warning(f"Directory does not exist: {directory}")
        return

    def on_error(error: OSError):
        logger.warning(f"Could not read directory: {error.filename} ({error.strerror})")

    for root, dirs, files in os.walk(dir_path.resolve(), onerror=on_error):
        dirs.sort()
        for filename in sorted(files):
            filepath = os.path.join(root, filename)
            if os.path.islink(filepath) or not os.path.isfile(filepath):
                continue
            if min_size or max_size:
                try:
                    size = os.path.getsize(filepath)
                except OSError:
                    logger.warning(f"Could not access file: {filepath}")
                    continue
                if (min_size and size < min_size) or (max_size and size > max_size):
                    continue
            yield filepath


def build_candidate(filepath: str) -> CandidateFile:
    """
    Stat a file into a CandidateFile.

    Birth time comes from st_birthtime where the platform records it;
    otherwise it is 0, which fails any cutoff check.

    Raises:
        OSError: If the file cannot be stat'ed or is not a regular file
    """
    st = os.stat(filepath)
    if not stat.S_ISREG(st.st_mode):
        raise OSError(f"not a regular file: {filepath}")
    return CandidateFile(
        path=os.path.abspath(filepath),
        size=st.st_size,
        created_at=getattr(st, "st_birthtime", 0.0) or 0.0,
    )


def read_header(filepath: str, limit: int = HEADER_SCAN_LIMIT) -> Optional[str]:
    """
    Return the first line with at least one non-whitespace character.

    The line terminator is removed; anything else on the line is kept as is.
    At most limit bytes are read, so a line longer than that is truncated and
    a file whose first limit bytes are blank has no header.

    Args:
        filepath: File to read
        limit: Maximum number of bytes to scan

    Returns:
        The header line, or None when the file has no such line

    Raises:
        OSError: If the file cannot be read
    """
    remaining = limit
    with open(filepath, "rb") as f:
        while remaining > 0:
            raw = f.readline(remaining)
            if not raw:
                break
            remaining -= len(raw)
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if line.strip():
                return line
    return None


class MimeProbe:
    """Detects MIME types from file content via libmagic."""

    def probe(self, filepath: str) -> Tuple[str, bool]:
        """
        Detect the MIME type of a file.

        Returns:
            Tuple of (mime_type, ok); on failure ("unknown/unknown", False)
        """
        if not HAS_MAGIC:
            return UNKNOWN_MIME, False

        try:
            return magic.from_file(filepath, mime=True), True
        except (OSError, magic.MagicException) as e:
            logger.debug(f"MIME probe failed for {filepath}: {e}")
            return UNKNOWN_MIME, False

"""
Digest index answering "is this content new?" across the destination and the current run.
"""
from enum import Enum
from pathlib import Path
from typing import Set, Optional
import os
import threading
import logging

from .hasher import HashCalculator

logger = logging.getLogger(__name__)


class DedupResult(Enum):
    NEW = "new"
    DUPLICATE_IN_RUN = "duplicate-in-run"
    DUPLICATE_IN_DESTINATION = "duplicate-in-destination"


class DedupIndex:
    """
    Two digest sets: prior digests seeded once from the destination tree,
    and run digests that grow as candidates are accepted.

    check_and_record() is atomic, so two workers hashing identical content
    can never both be told their digest is new.
    """

    def __init__(self, hasher: Optional[HashCalculator] = None, track_run: bool = True):
        """
        Initialize dedup index.

        Args:
            hasher: Hash calculator used when seeding from the destination
            track_run: If False, duplicates within the run are not detected
        """
        self.hasher = hasher or HashCalculator()
        self.track_run = track_run
        self._prior: frozenset = frozenset()
        self._run: Set[str] = set()
        self._lock = threading.Lock()
        self.seeded = False
        self.prescan_ok = True
        self.prescan_errors = 0
        self.skipped_over_ceiling = 0

    @property
    def prior_count(self) -> int:
        return len(self._prior)

    @property
    def run_count(self) -> int:
        with self._lock:
            return len(self._run)

    def seed(self, destination: str, size_ceiling: int = 0) -> int:
        """
        Hash every regular file under the destination tree into the prior set.

        Files larger than size_ceiling (when non-zero) are not hashed, so they
        cannot be recognized as duplicates of new candidates. Read failures are
        logged and leave the index in a degraded but usable state.

        Args:
            destination: Destination directory
            size_ceiling: Skip files above this size in bytes (0 = no limit)

        Returns:
            Number of prior digests recorded

        Raises:
            RuntimeError: If the index was already seeded
        """
        if self.seeded:
            raise RuntimeError("DedupIndex has already been seeded")
        self.seeded = True

        dest_path = Path(destination)
        if not dest_path.is_dir():
            logger.info(f"Destination does not exist yet, nothing to pre-scan: {destination}")
            return 0

        logger.info("Pre-scanning target for existing hashes…")

        def on_error(error: OSError):
            self.prescan_ok = False
            self.prescan_errors += 1
            logger.warning(f"Could not read destination directory {error.filename}: {error.strerror}")

        digests = set()
        for root, dirs, files in os.walk(dest_path, onerror=on_error):
            for filename in files:
                filepath = os.path.join(root, filename)
                try:
                    if not os.path.isfile(filepath) or os.path.islink(filepath):
                        continue
                    if size_ceiling and os.path.getsize(filepath) > size_ceiling:
                        self.skipped_over_ceiling += 1
                        continue
                    digests.add(self.hasher.digest(filepath))
                except OSError as e:
                    self.prescan_ok = False
                    self.prescan_errors += 1
                    logger.warning(f"Could not hash destination file {filepath}: {e}")

        self._prior = frozenset(digests)
        logger.info(f"Pre-scan complete: {len(self._prior)} hashes recorded.")
        if self.skipped_over_ceiling:
            logger.info(f"{self.skipped_over_ceiling} destination files above "
                        f"{size_ceiling}B were not hashed")
        return len(self._prior)

    def check_and_record(self, digest: str) -> DedupResult:
        """
        Classify a digest and record it when new.

        Run digests are checked before prior digests.
        """
        with self._lock:
            if self.track_run and digest in self._run:
                return DedupResult.DUPLICATE_IN_RUN
            if digest in self._prior:
                return DedupResult.DUPLICATE_IN_DESTINATION
            self._run.add(digest)
            return DedupResult.NEW

"""
Content digests for duplicate detection.
"""
import hashlib
import xxhash
from typing import BinaryIO

from .models import ConfigurationError

XXH3 = "xxh3"


class HashCalculator:
    """Computes full-content digests, streaming the file in chunks."""

    def __init__(self, algorithm: str = "sha256", chunk_size: int = 65536):
        """
        Initialize hash calculator.

        Args:
            algorithm: "sha256" (default), any other hashlib algorithm name,
                or "xxh3" for a fast non-cryptographic digest
            chunk_size: Chunk size for streaming hash computation

        Raises:
            ConfigurationError: If the algorithm is unknown
        """
        self.algorithm = algorithm.lower()
        self.chunk_size = chunk_size

        if self.algorithm != XXH3 and self.algorithm not in hashlib.algorithms_available:
            raise ConfigurationError([f"Unknown hash algorithm: {algorithm}"])

    def _new_hasher(self):
        if self.algorithm == XXH3:
            return xxhash.xxh3_128()
        return hashlib.new(self.algorithm)

    def digest(self, filepath: str) -> str:
        """
        Hash the full content of a file.

        Identical bytes always give identical digests, whatever the
        file name, path or metadata.

        Args:
            filepath: Path to file to hash

        Returns:
            Hex digest string

        Raises:
            OSError: If the file cannot be read
        """
        with open(filepath, 'rb') as f:
            return self.digest_stream(f)

    def digest_stream(self, stream: BinaryIO) -> str:
        """Hash everything remaining in a binary stream."""
        hasher = self._new_hasher()

        while chunk := stream.read(self.chunk_size):
            hasher.update(chunk)

        return hasher.hexdigest()

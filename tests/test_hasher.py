"""
Tests for harvester.hasher module.
"""
import hashlib
import io
import pytest
import xxhash
from harvester.hasher import HashCalculator
from harvester.models import ConfigurationError


class TestHashCalculator:
    """Tests for HashCalculator class."""

    def test_init_defaults(self):
        """Test HashCalculator initialization with defaults."""
        hasher = HashCalculator()
        assert hasher.algorithm == "sha256"
        assert hasher.chunk_size == 65536

    def test_init_unknown_algorithm(self):
        """Test unknown algorithm is a configuration error."""
        with pytest.raises(ConfigurationError, match="Unknown hash algorithm"):
            HashCalculator("not-a-hash")

    def test_digest_matches_sha256(self, tmp_path):
        """Test digest equals the SHA-256 of the full content."""
        content = b"Timestamp,Drug\n1,2\n"
        test_file = tmp_path / "data.csv"
        test_file.write_bytes(content)

        assert HashCalculator().digest(str(test_file)) == hashlib.sha256(content).hexdigest()

    def test_digest_independent_of_name(self, tmp_path):
        """Test identical bytes give identical digests whatever the name."""
        hasher = HashCalculator()
        first = tmp_path / "a.csv"
        second = tmp_path / "nested" / "other-name.txt"
        second.parent.mkdir()
        first.write_bytes(b"same content here")
        second.write_bytes(b"same content here")

        assert hasher.digest(str(first)) == hasher.digest(str(second))

    def test_digest_different_content(self, tmp_path):
        """Test different content produces different digests."""
        hasher = HashCalculator()
        file1 = tmp_path / "file1.txt"
        file1.write_bytes(b"content A")
        file2 = tmp_path / "file2.txt"
        file2.write_bytes(b"content B")

        assert hasher.digest(str(file1)) != hasher.digest(str(file2))

    def test_digest_empty_file(self, tmp_path):
        """Test hashing an empty file."""
        empty = tmp_path / "empty.txt"
        empty.write_bytes(b"")

        assert HashCalculator().digest(str(empty)) == hashlib.sha256(b"").hexdigest()

    def test_digest_nonexistent_raises(self, tmp_path):
        """Test unreadable files raise OSError for the caller to handle."""
        with pytest.raises(OSError):
            HashCalculator().digest(str(tmp_path / "does_not_exist.txt"))

    def test_chunked_digest(self, tmp_path):
        """Test small chunk size gives the same digest as one read."""
        content = b"x" * 10240 + b"tail"
        test_file = tmp_path / "large.bin"
        test_file.write_bytes(content)

        assert HashCalculator(chunk_size=1000).digest(str(test_file)) == hashlib.sha256(content).hexdigest()

    def test_xxh3(self, tmp_path):
        """Test the fast xxh3 option."""
        content = b"fast digest content"
        test_file = tmp_path / "fast.bin"
        test_file.write_bytes(content)

        assert HashCalculator("xxh3").digest(str(test_file)) == xxhash.xxh3_128(content).hexdigest()

    def test_other_hashlib_algorithm(self):
        """Test any hashlib algorithm name is accepted."""
        hasher = HashCalculator("SHA512")
        assert hasher.digest_stream(io.BytesIO(b"abc")) == hashlib.sha512(b"abc").hexdigest()

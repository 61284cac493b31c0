"""
Pytest configuration and fixtures for File Harvester tests.
"""
import pytest
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


class FakeMimeProbe:
    """MIME probe returning fixed types by file name."""

    def __init__(self, types=None, default="text/plain"):
        self.types = types or {}
        self.default = default
        self.calls = []

    def probe(self, filepath):
        self.calls.append(filepath)
        name = Path(filepath).name
        if name in self.types:
            mime = self.types[name]
            return mime, mime != "unknown/unknown"
        return self.default, True


@pytest.fixture
def fake_mime():
    """Create a FakeMimeProbe reporting text/plain for everything."""
    return FakeMimeProbe()


@pytest.fixture
def source_dir(tmp_path):
    """Create an empty source directory."""
    path = tmp_path / "source"
    path.mkdir()
    return path


@pytest.fixture
def dest_dir(tmp_path):
    """Path for the destination directory (not created)."""
    return tmp_path / "dest"


@pytest.fixture
def harvest_config(source_dir, dest_dir):
    """Create a HarvestConfig with any-header mode and no filters."""
    from harvester.models import HarvestConfig
    return HarvestConfig(
        source_dir=str(source_dir),
        destination_dir=str(dest_dir),
        parallel_workers=1,
    )


@pytest.fixture
def write_file():
    """Return a helper writing text or bytes to a path, creating parents."""
    def _write(path, content):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
        return path
    return _write

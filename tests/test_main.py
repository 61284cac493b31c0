"""
Tests for the command line entry point.
"""
import logging
import pytest
from click.testing import CliRunner
from harvester.models import HeaderMode, ConfigurationError
import main as cli


@pytest.fixture(autouse=True)
def reset_logging():
    """Leave root logging as pytest configured it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def build(source, destination, **overrides):
    values = dict(
        dry_run=False, no_dedup_run=False, no_dedup_destination=False,
        min_size=0, max_size=0, cutoff=None, ext=(), name_contains=None, name_regex=None,
        mime=(), header_exact=None, header_any=True, header_first_word=None,
        header_min_columns=None, prescan_ceiling=None, hash_algorithm="sha256",
        workers=1, log_file=None, utc_offset=10.0,
    )
    values.update(overrides)
    return cli.build_config(str(source), str(destination), **values)


class TestBuildConfig:
    def test_defaults(self, source_dir, dest_dir):
        config = build(source_dir, dest_dir)
        assert config.filters.header_mode is HeaderMode.ANY
        assert config.copy_enabled is True
        assert config.filters.cutoff is None

    def test_options_mapped(self, source_dir, dest_dir):
        config = build(source_dir, dest_dir, dry_run=True, no_dedup_run=True,
                       ext=(".CSV", "xlsx"), mime=("text/csv",), max_size=4096,
                       header_any=False, header_min_columns=10,
                       cutoff="2025-01-01 00:00:00")
        assert config.copy_enabled is False
        assert config.dedup_in_run is False
        assert config.filters.allowed_extensions == frozenset({"csv", "xlsx"})
        assert config.filters.allowed_mime_types == frozenset({"text/csv"})
        assert config.filters.header_mode is HeaderMode.MIN_COLUMNS
        assert config.filters.min_columns == 10
        assert config.filters.cutoff is not None

    def test_prescan_ceiling_defaults_to_max_size(self, source_dir, dest_dir):
        assert build(source_dir, dest_dir, max_size=4096).prescan_size_ceiling == 4096
        assert build(source_dir, dest_dir, max_size=4096, prescan_ceiling=0).prescan_size_ceiling == 0

    def test_two_header_modes(self, source_dir, dest_dir):
        with pytest.raises(ConfigurationError):
            build(source_dir, dest_dir, header_exact="A,B")

    def test_no_header_mode(self, source_dir, dest_dir):
        with pytest.raises(ConfigurationError):
            build(source_dir, dest_dir, header_any=False)

    def test_bad_cutoff(self, source_dir, dest_dir):
        with pytest.raises(ConfigurationError):
            build(source_dir, dest_dir, cutoff="not a date")


class TestCommand:
    def test_harvest_and_summary(self, source_dir, dest_dir, write_file):
        write_file(source_dir / "a.csv", "H1,H2\nX\n")
        write_file(source_dir / "b.csv", "H1,H2\nX\n")
        write_file(source_dir / "c.csv", "H1,H2\nY\n")

        result = CliRunner().invoke(cli.main, [
            str(source_dir), str(dest_dir), "--header-any", "--workers", "1",
        ])

        assert result.exit_code == 0, result.output
        assert "Copied: 2" in result.output
        assert "Duplicates: 1" in result.output
        assert sorted(p.name for p in dest_dir.iterdir()) == ["a.csv", "c.csv"]

    def test_dry_run(self, source_dir, dest_dir, write_file):
        write_file(source_dir / "a.csv", "H1,H2\nX\n")

        result = CliRunner().invoke(cli.main, [
            str(source_dir), str(dest_dir), "--header-any", "--dry-run",
        ])

        assert result.exit_code == 0, result.output
        assert "Planned (dry run): 1" in result.output
        assert not dest_dir.exists()

    def test_configuration_error_exits_1(self, source_dir, dest_dir):
        result = CliRunner().invoke(cli.main, [str(source_dir), str(dest_dir)])

        assert result.exit_code == 1
        assert "Exactly one header mode must be selected" in result.output

    def test_log_file(self, source_dir, dest_dir, tmp_path, write_file):
        write_file(source_dir / "a.csv", "H1,H2\nX\n")
        log_file = tmp_path / "logs" / "harvest.log"

        result = CliRunner().invoke(cli.main, [
            str(source_dir), str(dest_dir), "--header-any", "--log-file", str(log_file),
        ])

        assert result.exit_code == 0, result.output
        assert "COPIED: " in log_file.read_text()

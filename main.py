#!/usr/bin/env python3
"""
File Harvester - Main entry point.

Collects files from a source tree into a destination directory, filtering on
size, age, name, MIME type and header shape, skipping duplicate content and
never overwriting an existing file.
"""
import sys
import logging
import click
from pathlib import Path
from typing import Optional

from harvester.models import (HarvestConfig, FilterConfig, ConfigurationError,
                              resolve_header_mode, normalize_set)
from harvester.clock import parse_cutoff, FixedOffsetFormatter
from harvester.engine import harvest


def setup_logging(verbose: bool = False, log_file: Optional[str] = None,
                  utc_offset_hours: float = 10.0):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    fmt = '%(asctime)s  %(levelname)s  %(name)s  %(message)s' if verbose else '%(asctime)s  %(message)s'

    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    formatter = FixedOffsetFormatter(fmt, utc_offset_hours=utc_offset_hours)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)


def build_config(source, destination, dry_run, no_dedup_run, no_dedup_destination,
                 min_size, max_size, cutoff, ext, name_contains, name_regex, mime,
                 header_exact, header_any, header_first_word, header_min_columns,
                 prescan_ceiling, hash_algorithm, workers, log_file, utc_offset) -> HarvestConfig:
    """
    Build a validated HarvestConfig from command line values.

    Raises:
        ConfigurationError: If any option is invalid
    """
    header_mode = resolve_header_mode(
        exact=header_exact is not None,
        any_header=header_any,
        first_word=header_first_word is not None,
        min_columns=header_min_columns is not None,
    )

    filters = FilterConfig(
        min_size=min_size,
        max_size=max_size,
        cutoff=parse_cutoff(cutoff, utc_offset),
        allowed_extensions=normalize_set(ext, lower=True),
        filename_substring=name_contains or None,
        filename_regex=name_regex or None,
        allowed_mime_types=normalize_set(mime),
        header_mode=header_mode,
        header_exact_value=header_exact,
        first_word_required=header_first_word,
        min_columns=header_min_columns or 0,
    )

    config = HarvestConfig(
        source_dir=source,
        destination_dir=destination,
        filters=filters,
        copy_enabled=not dry_run,
        dedup_in_run=not no_dedup_run,
        dedup_against_destination=not no_dedup_destination,
        prescan_size_ceiling=max_size if prescan_ceiling is None else prescan_ceiling,
        hash_algorithm=hash_algorithm,
        parallel_workers=workers,
        log_file=log_file,
        utc_offset_hours=utc_offset,
    )
    return config.check()


@click.command()
@click.argument('source', type=click.Path(file_okay=False))
@click.argument('destination', type=click.Path(file_okay=False))
@click.option('--dry-run', is_flag=True, help='Run the full pipeline but copy nothing')
@click.option('--no-dedup-run', is_flag=True, help="Don't skip duplicates found earlier in this run")
@click.option('--no-dedup-destination', is_flag=True, help="Don't pre-scan the destination for existing content")
@click.option('--min-size', default=0, type=int, help='Minimum file size in bytes (0 = no minimum)')
@click.option('--max-size', default=0, type=int, help='Maximum file size in bytes (0 = no maximum)')
@click.option('--cutoff', default=None, help='Only files created after "YYYY-MM-DD HH:MM:SS" (local to --utc-offset)')
@click.option('--ext', multiple=True, help='Allowed extension, case-insensitive (can specify multiple)')
@click.option('--name-contains', default=None, help='Filename must contain this text, case-insensitive')
@click.option('--name-regex', default=None, help='Filename must match this regex, case-insensitive')
@click.option('--mime', multiple=True, help='Allowed MIME type (can specify multiple)')
@click.option('--header-exact', default=None, help='Header line must equal this text exactly')
@click.option('--header-any', is_flag=True, help='Accept any non-empty header line')
@click.option('--header-first-word', default=None, help='First header token must equal this text')
@click.option('--header-min-columns', default=None, type=int, help='Header must have at least N comma separated columns')
@click.option('--prescan-ceiling', default=None, type=int,
              help='Largest destination file hashed during pre-scan (default: --max-size, 0 = no limit)')
@click.option('--hash', 'hash_algorithm', default='sha256', help='Digest algorithm: sha256 (default), other hashlib names, or xxh3')
@click.option('--workers', default=4, type=int, help='Number of parallel workers')
@click.option('--log-file', default=None, help='Also append log lines to this file')
@click.option('--utc-offset', default=10.0, type=float, help='Fixed UTC offset in hours for cutoff and log timestamps')
@click.option('--verbose', '-v', is_flag=True, help='Verbose logging')
def main(source, destination, dry_run, no_dedup_run, no_dedup_destination, min_size, max_size,
         cutoff, ext, name_contains, name_regex, mime, header_exact, header_any,
         header_first_word, header_min_columns, prescan_ceiling, hash_algorithm,
         workers, log_file, utc_offset, verbose):
    """
    File Harvester - Copy unique, matching files from SOURCE into DESTINATION.

    Exactly one header mode (--header-exact, --header-any, --header-first-word,
    --header-min-columns) must be given.
    """
    setup_logging(verbose, log_file, utc_offset)

    try:
        config = build_config(
            source, destination, dry_run, no_dedup_run, no_dedup_destination,
            min_size, max_size, cutoff, ext, name_contains, name_regex, mime,
            header_exact, header_any, header_first_word, header_min_columns,
            prescan_ceiling, hash_algorithm, workers, log_file, utc_offset,
        )
        summary = harvest(config)
    except ConfigurationError as e:
        click.echo("Configuration errors:", err=True)
        for error in e.errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)

    click.echo("")
    for line in summary.lines():
        click.echo(line)


if __name__ == '__main__':
    main()

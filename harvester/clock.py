"""
Fixed-offset local time used for cutoff parsing and log timestamps.

The harvester runs on a single fixed UTC offset (no daylight saving), so a
cutoff such as "2025-01-01 00:00:00" means the same instant on every machine.
"""
from datetime import datetime, timedelta, timezone
import logging
from typing import Optional

from .models import ConfigurationError

CUTOFF_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def fixed_zone(utc_offset_hours: float) -> timezone:
    return timezone(timedelta(hours=utc_offset_hours))


def parse_cutoff(value: Optional[str], utc_offset_hours: float = 10.0) -> Optional[float]:
    """
    Convert a local "YYYY-MM-DD HH:MM:SS" string to UTC epoch seconds.

    Args:
        value: Cutoff string; empty or None disables the cutoff
        utc_offset_hours: Offset the string is expressed in

    Returns:
        Epoch seconds, or None when no cutoff was given

    Raises:
        ConfigurationError: If the string is malformed
    """
    if value is None or not value.strip():
        return None

    try:
        local = datetime.strptime(value.strip(), CUTOFF_FORMAT)
    except ValueError:
        raise ConfigurationError([
            f"Malformed cutoff timestamp {value!r}, expected YYYY-MM-DD HH:MM:SS"
        ])

    return local.replace(tzinfo=fixed_zone(utc_offset_hours)).timestamp()


def describe_epoch(epoch: float) -> str:
    """Human readable UTC rendering of an epoch, for startup logging."""
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%a %d %b %Y %H:%M:%S UTC")


class FixedOffsetFormatter(logging.Formatter):
    """Formatter that stamps records in a fixed UTC offset as YYYYMMDDHHMMSS."""

    def __init__(self, fmt: Optional[str] = None, utc_offset_hours: float = 10.0):
        super().__init__(fmt or "%(asctime)s  %(message)s", datefmt=LOG_TIMESTAMP_FORMAT)
        self.zone = fixed_zone(utc_offset_hours)

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, tz=self.zone)
        return stamp.strftime(datefmt or self.datefmt)


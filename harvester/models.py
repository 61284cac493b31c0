"""
Data models and configuration for the File Harvester.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, FrozenSet, Iterable
from pathlib import Path
import re


class ConfigurationError(Exception):
    """Raised when the run configuration is invalid. Fatal before traversal."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class HeaderMode(Enum):
    """How the header line of a candidate is validated."""
    EXACT = "exact"
    ANY = "any"
    FIRST_WORD = "first-word"
    MIN_COLUMNS = "min-columns"


class DecisionKind(Enum):
    ACCEPTED = "accepted"
    REJECTED_FILTER = "rejected-filter"
    REJECTED_DUPLICATE = "rejected-duplicate"


class DuplicateScope(Enum):
    THIS_RUN = "this run"
    EXISTING_DESTINATION = "already in target"


def split_extension(name: str) -> str:
    """
    Return the lowercased text after the last dot of a base name.

    A name without a dot yields the whole name, lowercased.
    """
    return name.rsplit(".", 1)[-1].lower()


@dataclass
class CandidateFile:
    """A filesystem entry under consideration."""
    path: str
    size: int
    created_at: float = 0.0  # birth time, 0 when the platform has none

    @property
    def name(self) -> str:
        """Base name of the file."""
        return Path(self.path).name

    @property
    def extension(self) -> str:
        """Lowercased extension used for allow-list comparisons."""
        return split_extension(self.name)


@dataclass(frozen=True)
class FilterConfig:
    """Immutable set of filter criteria. Zero, empty and None disable a check."""
    min_size: int = 0
    max_size: int = 0
    cutoff: Optional[float] = None  # epoch seconds
    allowed_extensions: FrozenSet[str] = frozenset()
    filename_substring: Optional[str] = None
    filename_regex: Optional[str] = None
    allowed_mime_types: FrozenSet[str] = frozenset()
    header_mode: HeaderMode = HeaderMode.ANY
    header_exact_value: Optional[str] = None
    first_word_required: Optional[str] = None
    min_columns: int = 0

    def validate(self) -> List[str]:
        """Validate filter criteria, return list of errors."""
        errors = []

        if self.min_size < 0:
            errors.append("min_size must be >= 0")

        if self.max_size < 0:
            errors.append("max_size must be >= 0")

        if self.min_size > 0 and self.max_size > 0 and self.max_size < self.min_size:
            errors.append("max_size must be >= min_size")

        if self.filename_regex:
            try:
                re.compile(self.filename_regex, re.IGNORECASE)
            except re.error as e:
                errors.append(f"filename_regex is not a valid pattern: {e}")

        if self.header_mode is HeaderMode.EXACT and self.header_exact_value is None:
            errors.append("header_exact_value is required for exact header mode")

        if self.header_mode is HeaderMode.FIRST_WORD and not self.first_word_required:
            errors.append("first_word_required is required for first-word header mode")

        if self.header_mode is HeaderMode.MIN_COLUMNS and self.min_columns < 1:
            errors.append("min_columns must be >= 1 for min-columns header mode")

        return errors


def resolve_header_mode(exact: bool = False, any_header: bool = False,
                        first_word: bool = False, min_columns: bool = False) -> HeaderMode:
    """Turn the four header-mode toggles into a single mode; exactly one must be set."""
    selected = [
        mode for mode, enabled in (
            (HeaderMode.EXACT, exact),
            (HeaderMode.ANY, any_header),
            (HeaderMode.FIRST_WORD, first_word),
            (HeaderMode.MIN_COLUMNS, min_columns),
        ) if enabled
    ]
    if len(selected) != 1:
        raise ConfigurationError([
            f"Exactly one header mode must be selected (got {len(selected)})"
        ])
    return selected[0]


def normalize_set(values: Optional[Iterable[str]], lower: bool = False) -> FrozenSet[str]:
    """Strip blanks (and a leading dot for extensions) from user supplied values."""
    result = set()
    for value in values or ():
        value = value.strip()
        if lower:
            value = value.lstrip(".").lower()
        if value:
            result.add(value)
    return frozenset(result)


@dataclass
class HarvestConfig:
    """Application configuration."""
    source_dir: str = ""
    destination_dir: str = ""
    filters: FilterConfig = field(default_factory=FilterConfig)
    copy_enabled: bool = True
    dedup_in_run: bool = True
    dedup_against_destination: bool = True
    prescan_size_ceiling: int = 0  # bytes, 0 = hash everything
    hash_algorithm: str = "sha256"
    parallel_workers: int = 4
    log_file: Optional[str] = None
    utc_offset_hours: float = 10.0

    @property
    def hashing_enabled(self) -> bool:
        return self.dedup_in_run or self.dedup_against_destination

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = self.filters.validate()

        if not self.source_dir:
            errors.append("A source directory is required")
        elif not Path(self.source_dir).is_dir():
            errors.append(f"Source directory does not exist: {self.source_dir}")

        if not self.destination_dir:
            errors.append("A destination directory is required")

        if self.prescan_size_ceiling < 0:
            errors.append("prescan_size_ceiling must be >= 0")

        if self.parallel_workers < 1:
            errors.append("parallel_workers must be >= 1")

        if not -24 < self.utc_offset_hours < 24:
            errors.append("utc_offset_hours must be between -24 and 24")

        return errors

    def check(self) -> "HarvestConfig":
        """Raise ConfigurationError unless the configuration is valid."""
        errors = self.validate()
        if errors:
            raise ConfigurationError(errors)
        return self


@dataclass(frozen=True)
class FilterResult:
    """Outcome of running the filter chain on one candidate."""
    accepted: bool
    tag: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def accept(cls) -> "FilterResult":
        return cls(True)

    @classmethod
    def reject(cls, tag: str, reason: str) -> "FilterResult":
        return cls(False, tag, reason)


IO_ERROR = "io-error"


@dataclass(frozen=True)
class Decision:
    """Final verdict for one candidate. Used for reporting only."""
    source: str
    kind: DecisionKind
    destination: Optional[str] = None
    tag: Optional[str] = None
    reason: Optional[str] = None
    scope: Optional[DuplicateScope] = None
    dry_run: bool = False

    @classmethod
    def accepted(cls, source: str, destination: Optional[str], dry_run: bool = False) -> "Decision":
        return cls(source, DecisionKind.ACCEPTED, destination=destination, dry_run=dry_run)

    @classmethod
    def rejected(cls, source: str, tag: str, reason: str) -> "Decision":
        return cls(source, DecisionKind.REJECTED_FILTER, tag=tag, reason=reason)

    @classmethod
    def duplicate(cls, source: str, scope: DuplicateScope) -> "Decision":
        return cls(source, DecisionKind.REJECTED_DUPLICATE, scope=scope,
                   reason=f"duplicate ({scope.value})")

    @property
    def is_accepted(self) -> bool:
        return self.kind is DecisionKind.ACCEPTED

    @property
    def verdict(self) -> str:
        """Log line body for the decision sink."""
        if self.kind is DecisionKind.ACCEPTED:
            if self.dry_run:
                return f"DRY-RUN (no copy): {self.source}"
            return f"COPIED: {self.source} -> {self.destination}"
        return f"SKIP {self.reason}: {self.source}"


@dataclass
class RunSummary:
    """Counts reported at the end of a run."""
    candidates: int = 0
    accepted: int = 0
    dry_run: bool = False
    rejected: Dict[str, int] = field(default_factory=dict)
    duplicates: Dict[str, int] = field(default_factory=dict)
    prior_digests: int = 0
    run_digests: int = 0
    prescan_ok: bool = True
    prescan_errors: int = 0

    @property
    def io_errors(self) -> int:
        return self.rejected.get(IO_ERROR, 0)

    @property
    def total_rejected(self) -> int:
        return sum(self.rejected.values())

    @property
    def total_duplicates(self) -> int:
        return sum(self.duplicates.values())

    def record(self, decision: Decision) -> None:
        self.candidates += 1
        if decision.kind is DecisionKind.ACCEPTED:
            self.accepted += 1
        elif decision.kind is DecisionKind.REJECTED_DUPLICATE:
            key = decision.scope.value
            self.duplicates[key] = self.duplicates.get(key, 0) + 1
        else:
            self.rejected[decision.tag] = self.rejected.get(decision.tag, 0) + 1

    def lines(self) -> List[str]:
        """Human readable summary lines."""
        verb = "Planned (dry run)" if self.dry_run else "Copied"
        lines = [
            f"Candidates: {self.candidates}",
            f"{verb}: {self.accepted}",
            f"Rejected: {self.total_rejected}",
        ]
        for tag in sorted(self.rejected):
            lines.append(f"  {tag}: {self.rejected[tag]}")
        lines.append(f"Duplicates: {self.total_duplicates}")
        for scope in sorted(self.duplicates):
            lines.append(f"  {scope}: {self.duplicates[scope]}")
        lines.append(f"Known destination digests: {self.prior_digests}")
        lines.append(f"New digests this run: {self.run_digests}")
        if not self.prescan_ok:
            lines.append(
                f"WARNING: destination pre-scan incomplete ({self.prescan_errors} errors); "
                "duplicates of existing destination content may have been copied"
            )
        return lines

"""
Filter chain deciding whether a candidate file is accepted.

Each check accepts a CandidateFile and returns None when the file passes, or a
FilterResult rejection. Checks run in a fixed order, cheapest and most selective
first, and the chain stops at the first rejection:

    size bounds -> creation-time cutoff -> extension -> filename substring
    -> filename regex -> MIME type -> header shape

A disabled criterion (zero bound or empty value) always passes.
"""

import re
from typing import Callable, List, Optional

from .models import CandidateFile, ConfigurationError, FilterConfig, FilterResult, HeaderMode
from . import probes
from .probes import MimeProbe, read_header

HeaderReader = Callable[[str], Optional[str]]

_FIRST_WORD_SPLIT = re.compile(r"[,\s]")


def first_word(header: str) -> str:
    """Token of the header before the first comma or whitespace character."""
    return _FIRST_WORD_SPLIT.split(header, 1)[0]


def column_count(header: str) -> int:
    """Comma separated field count. Quotes are not interpreted."""
    return header.count(",") + 1


class FilterChain:
    """Ordered, short-circuiting set of predicates over a FilterConfig."""

    def __init__(self, config: FilterConfig, mime_probe: Optional[MimeProbe] = None,
                 header_reader: HeaderReader = read_header):
        """
        Initialize filter chain.

        Args:
            config: Filter criteria
            mime_probe: MIME detector; defaults to a libmagic MimeProbe
            header_reader: Returns the header line of a file, or None

        Raises:
            ConfigurationError: If MIME filtering is requested without libmagic
        """
        if config.allowed_mime_types and mime_probe is None and not probes.HAS_MAGIC:
            raise ConfigurationError(["MIME filtering requires python-magic and libmagic"])

        self.config = config
        self.mime_probe = mime_probe or MimeProbe()
        self.header_reader = header_reader
        self._regex = re.compile(config.filename_regex, re.IGNORECASE) if config.filename_regex else None
        self._extensions = frozenset(e.lower() for e in config.allowed_extensions)
        self._substring = (config.filename_substring or "").lower()

        self.checks: List[Callable[[CandidateFile], Optional[FilterResult]]] = [
            self.check_size,
            self.check_cutoff,
            self.check_extension,
            self.check_substring,
            self.check_regex,
            self.check_mime,
            self.check_header,
        ]

    def evaluate(self, candidate: CandidateFile) -> FilterResult:
        """
        Run every check in order and return the first rejection, or accept.

        Raises:
            OSError: If the header line cannot be read
        """
        for check in self.checks:
            result = check(candidate)
            if result is not None:
                return result
        return FilterResult.accept()

    def check_size(self, candidate: CandidateFile) -> Optional[FilterResult]:
        """Reject files outside the inclusive min/max byte bounds."""
        cfg = self.config
        if cfg.min_size > 0 and candidate.size < cfg.min_size:
            return FilterResult.reject(
                "size-min", f"size < min ({candidate.size}B < {cfg.min_size}B)")
        if cfg.max_size > 0 and candidate.size > cfg.max_size:
            return FilterResult.reject(
                "size-max", f"size > max ({candidate.size}B > {cfg.max_size}B)")
        return None

    def check_cutoff(self, candidate: CandidateFile) -> Optional[FilterResult]:
        """Reject files born at or before the cutoff epoch."""
        cutoff = self.config.cutoff
        if cutoff is not None and candidate.created_at <= cutoff:
            return FilterResult.reject(
                "too-old", f"too old (birth {int(candidate.created_at)} <= cutoff {int(cutoff)})")
        return None

    def check_extension(self, candidate: CandidateFile) -> Optional[FilterResult]:
        """Reject files whose lowercased extension is not in the allow-list."""
        if self._extensions and candidate.extension not in self._extensions:
            return FilterResult.reject("extension", f"ext not allowed (.{candidate.extension})")
        return None

    def check_substring(self, candidate: CandidateFile) -> Optional[FilterResult]:
        if self._substring and self._substring not in candidate.name.lower():
            return FilterResult.reject(
                "filename-substring", f"filename substring miss ({self.config.filename_substring})")
        return None

    def check_regex(self, candidate: CandidateFile) -> Optional[FilterResult]:
        if self._regex is not None and not self._regex.search(candidate.name):
            return FilterResult.reject(
                "filename-regex", f"filename regex miss ({self.config.filename_regex})")
        return None

    def check_mime(self, candidate: CandidateFile) -> Optional[FilterResult]:
        """
        Reject files whose detected MIME type is not allowed.

        A failed probe reports unknown/unknown, which only passes when that
        type is listed explicitly.
        """
        allowed = self.config.allowed_mime_types
        if not allowed:
            return None
        mime, _ok = self.mime_probe.probe(candidate.path)
        if mime not in allowed:
            return FilterResult.reject("mime", f"MIME not allowed ({mime})")
        return None

    def check_header(self, candidate: CandidateFile) -> Optional[FilterResult]:
        """
        Check the first non-blank line against the configured header mode.

        Args:
            candidate: File to check

        Returns:
            None when the header passes, otherwise a header-* rejection

        Raises:
            OSError: If the file cannot be read
        """
        cfg = self.config
        header = self.header_reader(candidate.path)

        if not header:
            return FilterResult.reject("header-missing", "empty/absent header")

        if cfg.header_mode is HeaderMode.EXACT:
            if header != cfg.header_exact_value:
                return FilterResult.reject("header-exact", "header mismatch (EXACT)")

        elif cfg.header_mode is HeaderMode.FIRST_WORD:
            token = first_word(header)
            if token != cfg.first_word_required:
                return FilterResult.reject(
                    "header-first-word",
                    f"first-word mismatch (need '{cfg.first_word_required}', got '{token}')")

        elif cfg.header_mode is HeaderMode.MIN_COLUMNS:
            columns = column_count(header)
            if columns < cfg.min_columns:
                return FilterResult.reject(
                    "header-columns", f"header has only {columns} cols (< {cfg.min_columns})")

        return None

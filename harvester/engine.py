"""
Harvest engine: runs every candidate through filter, hash, dedup and placement.
"""
from concurrent.futures import ThreadPoolExecutor, FIRST_COMPLETED, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional
import threading
import logging

from .models import (HarvestConfig, ConfigurationError, Decision, DuplicateScope,
                     RunSummary, IO_ERROR)
from .hasher import HashCalculator
from .filters import FilterChain
from .dedup import DedupIndex, DedupResult
from .placer import Placer
from .probes import MimeProbe, build_candidate, iter_source_files
from .clock import describe_epoch

logger = logging.getLogger(__name__)
decision_log = logging.getLogger("harvester.decisions")

_SCOPES = {
    DedupResult.DUPLICATE_IN_RUN: DuplicateScope.THIS_RUN,
    DedupResult.DUPLICATE_IN_DESTINATION: DuplicateScope.EXISTING_DESTINATION,
}


@dataclass(frozen=True)
class RunContext:
    """Everything resolved once at startup and shared read-only by the workers."""
    config: HarvestConfig
    filters: FilterChain
    hasher: Optional[HashCalculator]
    index: Optional[DedupIndex]
    placer: Placer


def prepare(config: HarvestConfig, mime_probe: Optional[MimeProbe] = None) -> RunContext:
    """
    Validate the configuration and build the run context.

    Creates the destination directory in copy mode and seeds the dedup index
    from it when destination dedup is enabled.

    Raises:
        ConfigurationError: If the configuration is invalid or the destination
            directory cannot be created
    """
    config.check()
    filters = FilterChain(config.filters, mime_probe=mime_probe)

    if config.filters.cutoff is not None:
        logger.info(f"Cutoff epoch(UTC) {int(config.filters.cutoff)} "
                    f"({describe_epoch(config.filters.cutoff)})")

    if config.copy_enabled:
        try:
            Path(config.destination_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError([
                f"Cannot create destination directory {config.destination_dir}: {e}"
            ])

    hasher = None
    index = None
    if config.hashing_enabled:
        hasher = HashCalculator(config.hash_algorithm)
        index = DedupIndex(hasher, track_run=config.dedup_in_run)
        if config.dedup_against_destination:
            index.seed(config.destination_dir, config.prescan_size_ceiling)

    return RunContext(config=config, filters=filters, hasher=hasher,
                      index=index, placer=Placer())


class HarvestEngine:
    """Orchestrates a harvest run over a stream of candidate paths."""

    def __init__(self, context: RunContext,
                 on_decision: Optional[Callable[[Decision], None]] = None):
        """
        Initialize harvest engine.

        Args:
            context: Prepared run context
            on_decision: Optional callback receiving every Decision
        """
        self.context = context
        self.config = context.config
        self.on_decision = on_decision
        self.summary = RunSummary(dry_run=not self.config.copy_enabled)
        self._summary_lock = threading.Lock()

        if context.index is not None:
            self.summary.prior_digests = context.index.prior_count
            self.summary.prescan_ok = context.index.prescan_ok
            self.summary.prescan_errors = context.index.prescan_errors

    def process(self, filepath: str) -> Decision:
        """
        Run one candidate through the full pipeline.

        Never raises for a single file. I/O problems and unexpected errors
        become io-error decisions so the run always completes.
        """
        try:
            return self._process(filepath)
        except Exception as e:
            logger.error(f"Error processing {filepath}: {type(e).__name__}: {e}")
            return Decision.rejected(filepath, IO_ERROR,
                                     f"processing failed ({type(e).__name__}: {e})")

    def _process(self, filepath: str) -> Decision:
        try:
            candidate = build_candidate(filepath)
            result = self.context.filters.evaluate(candidate)
        except OSError as e:
            return Decision.rejected(filepath, IO_ERROR, f"unreadable file ({e.strerror or e})")

        if not result.accepted:
            return Decision.rejected(candidate.path, result.tag, result.reason)

        index = self.context.index
        if index is not None:
            try:
                digest = self.context.hasher.digest(candidate.path)
            except OSError as e:
                return Decision.rejected(candidate.path, IO_ERROR, f"hashing failed ({e.strerror or e})")

            verdict = index.check_and_record(digest)
            if verdict is not DedupResult.NEW:
                return Decision.duplicate(candidate.path, _SCOPES[verdict])

        if not self.config.copy_enabled:
            return Decision.accepted(candidate.path, None, dry_run=True)

        try:
            dest = self.context.placer.place(candidate.path, self.config.destination_dir)
        except OSError as e:
            return Decision.rejected(candidate.path, IO_ERROR, f"copy failed ({e.strerror or e})")

        return Decision.accepted(candidate.path, dest)

    def _report(self, decision: Decision) -> None:
        if decision.tag == IO_ERROR:
            decision_log.warning(decision.verdict)
        else:
            decision_log.info(decision.verdict)

        with self._summary_lock:
            self.summary.record(decision)

        if self.on_decision:
            self.on_decision(decision)

    def _process_and_report(self, filepath: str) -> Decision:
        decision = self.process(filepath)
        self._report(decision)
        return decision

    def run(self, paths: Optional[Iterable[str]] = None) -> RunSummary:
        """
        Process every candidate path and return the run summary.

        Args:
            paths: Candidate paths; defaults to walking the configured source

        Returns:
            RunSummary with counts by outcome
        """
        if paths is None:
            paths = iter_source_files(self.config.source_dir)

        logger.info(f"Scanning: {self.config.source_dir}")
        workers = self.config.parallel_workers

        if workers == 1:
            for filepath in paths:
                self._process_and_report(filepath)
        else:
            max_pending = workers * 2
            with ThreadPoolExecutor(max_workers=workers) as pool:
                pending = set()
                for filepath in paths:
                    if len(pending) >= max_pending:
                        done, pending = wait(pending, return_when=FIRST_COMPLETED)
                        for fut in done:
                            fut.result()
                    pending.add(pool.submit(self._process_and_report, filepath))
                for fut in wait(pending).done:
                    fut.result()

        if self.context.index is not None:
            self.summary.run_digests = self.context.index.run_count

        logger.info(f"Done. Source='{self.config.source_dir}' "
                    f"Target='{self.config.destination_dir}' Copy={self.config.copy_enabled}")
        return self.summary


def harvest(config: HarvestConfig, mime_probe: Optional[MimeProbe] = None,
            on_decision: Optional[Callable[[Decision], None]] = None) -> RunSummary:
    """Prepare a run context from the configuration and run it to completion."""
    context = prepare(config, mime_probe=mime_probe)
    return HarvestEngine(context, on_decision=on_decision).run()

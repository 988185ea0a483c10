#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Reconciliation Pipeline - Copies library metadata onto high-quality files.

Runs the full sweep:
    Index library -> Index high-quality folder -> Resolve -> Merge -> (Archive/Replace)

Usage:
    from orchestrator import ConfigManager, ReconciliationPipeline

    config = ConfigManager('reconcile-config.yaml')
    pipeline = ReconciliationPipeline(config)
    summary = pipeline.run()
"""

import os
import shutil
from pathlib import Path
from typing import Optional, Set

from agents.fixer import FixerAgent, MergePlan
from agents.resolver import MatchResolver, PromptCallback, ResolutionPolicy
from agents.scanner import CatalogIndex, ScannerAgent
from agents.similarity import CONTAINMENT_SCORE
from media.errors import MergeFatal
from media.records import MediaRecord
from media.tags import TagIO

from .config import ConfigManager
from .report import (
    ItemOutcome, ItemState, ReportLog, RunSummary,
    SKIP_AMBIGUOUS, SKIP_DECLINED, SKIP_NO_MATCH
)


class ReconciliationPipeline:
    """
    Sequential reconciliation of a high-quality folder against a library.

    Each high-quality file is one work item. Items never raise past the
    pipeline: every item ends in exactly one RunSummary bucket.
    """

    name = "Pipeline"

    def __init__(
        self,
        config: ConfigManager,
        tag_io: Optional[TagIO] = None,
        prompt: Optional[PromptCallback] = None,
        report: Optional[ReportLog] = None
    ):
        """
        Initialize pipeline.

        Args:
            config: ConfigManager with library/run/matching settings
            tag_io: Tag I/O collaborator (mutagen adapter by default)
            prompt: Selection callback for the prompt policy
            report: Reporting sink (a console-only sink by default)
        """
        if tag_io is None:
            from media.tags import MutagenTagIO
            tag_io = MutagenTagIO()

        self.config = config
        self.tag_io = tag_io
        self._owns_report = report is None
        self.report = report or ReportLog(config.log_path)
        self.prompt = prompt
        self._cancelled = False
        self._replaced: Set[str] = set()

        self.scanner = ScannerAgent(config, tag_io, self.report)
        self.fixer = FixerAgent(config, tag_io, self.report)
        self.resolver: Optional[MatchResolver] = None
        self.policy = ResolutionPolicy.SKIP_ON_AMBIGUITY

    def cancel(self) -> None:
        """Stop before the next work item"""
        self._cancelled = True

    @property
    def what_if(self) -> bool:
        return self.config.what_if

    def run(self) -> RunSummary:
        """
        Run the reconciliation.

        Returns:
            RunSummary with one outcome per processed work item

        Raises:
            ConfigurationError: configuration is missing or invalid
        """
        self.config.validate()

        self.policy = ResolutionPolicy.from_name(self.config.policy)
        self.resolver = MatchResolver(
            threshold=float(self.config.confidence_threshold),
            prompt=self.prompt,
            require_manual=self.config.always_prompt,
            containment_score=float(self.config.get('matching.containment_score', CONTAINMENT_SCORE))
        )
        summary = RunSummary(what_if=self.what_if)
        self._replaced = set()

        if self._owns_report:
            self.report.open()
        try:
            self._log_settings()
            if self.policy is ResolutionPolicy.PROMPT_FOR_SELECTION and self.prompt is None:
                self.log_warning("Prompt policy without a selection callback, ambiguous items will be skipped")

            library = self.scanner.scan(self.config.library_path)
            work_set = self.scanner.scan(
                self.config.high_quality_path,
                exclude=[self.config.processed_folder]
            )
            items = list(work_set.records())
            self.log(f"Processing {len(items)} high-quality files...")

            for i, record in enumerate(items, 1):
                if self._cancelled:
                    self.log_warning(f"Cancelled, {len(items) - i + 1} files not processed")
                    summary.cancelled = True
                    break
                self.log(f"[{i}/{len(items)}] Processing: {record.file_name}")
                summary.add(self.process_item(record, library))
        except KeyboardInterrupt:
            self.log_warning("Interrupted")
            summary.cancelled = True
        finally:
            self._log_summary(summary)
            if self._owns_report:
                self.report.close()

        return summary

    def process_item(self, record: MediaRecord, library: CatalogIndex) -> ItemOutcome:
        """
        Take one high-quality file through resolve, merge and replace.

        Args:
            record: Work item record
            library: Catalog of candidate source records

        Returns:
            Final outcome of the item
        """
        outcome = ItemOutcome(path=record.path)

        candidates = library.get(record.file_name_key)
        if not candidates:
            return self._skip(outcome, SKIP_NO_MATCH)

        if self.resolver is None:
            self.resolver = MatchResolver()
        try:
            source = self.resolver.resolve(record, candidates, self.policy)
        except Exception as e:
            return self._fail(outcome, f"Resolution failed: {e}")
        resolution = self.resolver.last_outcome
        if resolution.best is not None:
            outcome.score = resolution.best.score

        if source is None:
            for candidate in resolution.candidates:
                self.log(f"  Candidate {candidate.record.path}: {candidate.describe()}")
            reason = SKIP_DECLINED if resolution.reason == "selection skipped" else SKIP_AMBIGUOUS
            return self._skip(outcome, reason, resolution.reason)

        outcome.source_path = source.path
        self._transition(outcome, ItemState.MATCHED, f"{source.path} ({resolution.reason})")

        try:
            processed_path = self._processed_path(record)
            self._merge(record, source, processed_path, outcome)
            outcome.merged = True
            self._transition(outcome, ItemState.MERGED, processed_path)

            if self.config.replace_in_library:
                library_file = os.path.abspath(source.path)
                if library_file in self._replaced:
                    raise MergeFatal("Library file already replaced in this run", source.path)
                self.fixer.archive_and_replace(
                    processed_path,
                    source.path,
                    self.config.archive_path,
                    library_root=self.config.library_path,
                    dry_run=self.what_if
                )
                self._replaced.add(library_file)
                self._transition(outcome, ItemState.ARCHIVED, source.path)
        except Exception as e:
            return self._fail(outcome, str(e))

        self._transition(outcome, ItemState.DONE)
        return outcome

    def _merge(self, record: MediaRecord, source: MediaRecord, processed_path: str, outcome: ItemOutcome) -> None:
        plan = MergePlan(destination=processed_path, source=source)

        if self.what_if:
            self.log(f"[WHAT-IF] Would copy {record.path} to {processed_path}")
            self.fixer.process({'plan': plan, 'dry_run': True})
            return

        Path(processed_path).parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(record.path, processed_path)
        result = self.fixer.apply(plan)
        outcome.warnings.extend(result.warnings)

    def _processed_path(self, record: MediaRecord) -> str:
        """Processed copy location; keeps the file's subfolder under the high-quality root"""
        root = os.path.abspath(self.config.high_quality_path)
        relative = os.path.relpath(record.path, root)
        if relative.startswith('..'):
            relative = record.file_name
        return os.path.join(root, self.config.processed_folder, relative)

    def _fail(self, outcome: ItemOutcome, reason: str) -> ItemOutcome:
        outcome.reason = reason
        self._transition(outcome, ItemState.FAILED, reason, error=True)
        return outcome

    def _skip(self, outcome: ItemOutcome, reason: str, detail: str = "") -> ItemOutcome:
        outcome.reason = reason
        self._transition(outcome, ItemState.SKIPPED, f"{reason}: {detail}" if detail else reason)
        return outcome

    def _transition(self, outcome: ItemOutcome, state: ItemState, detail: str = "", error: bool = False) -> None:
        outcome.state = state
        message = f"  {state.value.capitalize()}" + (f": {detail}" if detail else "")
        if error:
            self.log_error(message)
        else:
            self.log(message)

    def _log_settings(self) -> None:
        self.log(f"Library path: {self.config.library_path}")
        self.log(f"High-quality path: {self.config.high_quality_path}")
        if self.config.replace_in_library:
            self.log(f"Archive path: {self.config.archive_path}")
        self.log(f"Policy: {self.policy.value}, threshold {float(self.config.confidence_threshold):.2f}")
        if self.what_if:
            self.log("[WHAT-IF] Dry run, no files will be changed")

    def _log_summary(self, summary: RunSummary) -> None:
        prefix = "[WHAT-IF] " if summary.what_if else ""
        self.log(f"{prefix}Summary:")
        self.log(f"  Total files processed: {summary.total}")
        self.log(f"  Matched: {summary.matched}")
        self.log(f"  Merged successfully: {summary.merged}")
        self.log(f"  Skipped (no match): {summary.skipped_no_match}")
        self.log(f"  Skipped (ambiguous): {summary.skipped_ambiguous}")
        self.log(f"  Failed: {summary.failed}")
        if self.resolver is not None and self.resolver.manual_review:
            self.log(f"  Needs manual resolution: {', '.join(self.resolver.manual_review)}")

    def log(self, message: str) -> None:
        self.report.write(message, source=self.name)

    def log_warning(self, message: str) -> None:
        self.report.warning(message, source=self.name)

    def log_error(self, message: str) -> None:
        self.report.error(message, source=self.name)

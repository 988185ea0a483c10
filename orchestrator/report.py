#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Run reporting: item states, per-item outcomes, summary counters and the
append-only log sink.

Every line goes to the console with its component prefix and, when a log
file is configured, to that file with a timestamp.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO


class ItemState(Enum):
    """Work item processing state"""
    DISCOVERED = "discovered"
    MATCHED = "matched"
    MERGED = "merged"
    ARCHIVED = "archived"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


# Skip reasons
SKIP_NO_MATCH = "no match"
SKIP_AMBIGUOUS = "ambiguous"
SKIP_DECLINED = "declined"


@dataclass
class ItemOutcome:
    """Final state of one work item"""
    path: str
    state: ItemState = ItemState.DISCOVERED
    reason: Optional[str] = None
    source_path: Optional[str] = None
    score: Optional[float] = None
    merged: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "state": self.state.value,
            "reason": self.reason,
            "source_path": self.source_path,
            "score": self.score,
            "merged": self.merged,
            "warnings": self.warnings
        }


@dataclass
class RunSummary:
    """
    Terminal counters for a run.

    matched + skipped_no_match + skipped_ambiguous + failed == total.
    merged counts successful merges, including items that later failed in
    the archive/replace step.
    """
    total: int = 0
    matched: int = 0
    merged: int = 0
    skipped_no_match: int = 0
    skipped_ambiguous: int = 0
    failed: int = 0
    what_if: bool = False
    cancelled: bool = False
    outcomes: List[ItemOutcome] = field(default_factory=list)

    def add(self, outcome: ItemOutcome) -> None:
        """Count a finished item in exactly one bucket"""
        self.total += 1
        if outcome.merged:
            self.merged += 1

        if outcome.state is ItemState.FAILED:
            self.failed += 1
        elif outcome.state is ItemState.SKIPPED:
            if outcome.reason == SKIP_NO_MATCH:
                self.skipped_no_match += 1
            else:
                self.skipped_ambiguous += 1
        else:
            self.matched += 1

        self.outcomes.append(outcome)

    @property
    def is_partition(self) -> bool:
        return self.matched + self.skipped_no_match + self.skipped_ambiguous + self.failed == self.total

    def counters(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "matched": self.matched,
            "merged": self.merged,
            "skipped_no_match": self.skipped_no_match,
            "skipped_ambiguous": self.skipped_ambiguous,
            "failed": self.failed
        }

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.counters())
        data["what_if"] = self.what_if
        data["cancelled"] = self.cancelled
        data["items"] = [o.to_dict() for o in self.outcomes]
        return data


class ReportLog:
    """
    Append-only, line-oriented reporting sink.

    Usage:
        with ReportLog('run.log') as report:
            report.write("Indexing library files...", source="Pipeline")
    """

    def __init__(self, log_path: Optional[str] = None, echo: bool = True):
        self.log_path = Path(log_path) if log_path else None
        self.echo = echo
        self.lines: List[str] = []
        self._handle: Optional[TextIO] = None

    def open(self) -> "ReportLog":
        if self.log_path and self._handle is None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = open(self.log_path, 'a', encoding='utf-8')
        return self

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "ReportLog":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def write(self, message: str, source: Optional[str] = None, level: str = "INFO") -> None:
        """Write one line to the console and the log file"""
        prefix = f"[{source}] " if source else ""
        if level != "INFO":
            prefix += f"{level}: "
        line = f"{prefix}{message}"

        self.lines.append(line)
        if self.echo:
            print(line)
        if self._handle is not None:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self._handle.write(f"[{timestamp}] {line}\n")
            self._handle.flush()

    def warning(self, message: str, source: Optional[str] = None) -> None:
        self.write(message, source=source, level="WARNING")

    def error(self, message: str, source: Optional[str] = None) -> None:
        self.write(message, source=source, level="ERROR")

    def __repr__(self) -> str:
        return f"ReportLog(log_path={self.log_path})"

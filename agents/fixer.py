#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fixer Agent - Merges metadata into destination files.

Responsibilities:
- Copy a defined field set from a source record onto a destination file
- Never overwrite a destination field with an empty source value
- Replace the destination's pictures with one normalized front cover
- Archive library originals (copy) before replacing them
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from media.artwork import normalize_artwork
from media.errors import MergeFatal, MergeFieldWarning, TagWriteError
from media.records import MediaRecord, SCALAR_FIELDS
from media.tags import TagIO

from .base import BaseAgent


DEFAULT_FIELDS: FrozenSet[str] = frozenset(SCALAR_FIELDS)


@dataclass(frozen=True)
class MergePlan:
    """What to merge where; consumed once"""
    destination: str
    source: MediaRecord
    fields: FrozenSet[str] = DEFAULT_FIELDS
    include_artwork: bool = True


@dataclass
class MergeResult:
    """Result of a merge operation"""
    destination: str
    fields_copied: List[str] = field(default_factory=list)
    artwork_copied: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destination": self.destination,
            "fields_copied": self.fields_copied,
            "artwork_copied": self.artwork_copied,
            "warnings": self.warnings
        }


class FixerAgent(BaseAgent):
    """
    Fixer agent for applying merged metadata.

    Handles field copy, artwork normalization and the archive-then-replace
    step for library files.
    """

    def __init__(self, config=None, tag_io: Optional[TagIO] = None, report=None):
        super().__init__(config, report)
        if tag_io is None:
            from media.tags import MutagenTagIO
            tag_io = MutagenTagIO()
        self.tag_io = tag_io

    @property
    def name(self) -> str:
        return "Fixer"

    def process(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply one merge plan.

        Args:
            item: Dictionary with 'plan' (MergePlan) and optional 'dry_run'

        Returns:
            Merge results
        """
        plan = item.get('plan')
        if plan is None:
            return {"status": "error", "error": "No merge plan provided"}

        if item.get('dry_run', False):
            self.log(f"[WHAT-IF] Would copy metadata from {plan.source.file_name} to {plan.destination}")
            return {"status": "success", "path": plan.destination, "dry_run": True}

        try:
            result = self.apply(plan)
        except MergeFatal as e:
            self.log_error(str(e))
            return {"status": "error", "path": plan.destination, "error": str(e)}

        return {
            "status": "success" if not result.warnings else "partial",
            "path": plan.destination,
            "fields_copied": len(result.fields_copied),
            "warnings": len(result.warnings),
            "data": result.to_dict()
        }

    def apply(self, plan: MergePlan) -> MergeResult:
        """Apply a merge plan (see merge)"""
        return self.merge(plan.source, plan.destination, plan.fields, plan.include_artwork)

    def merge(
        self,
        source: MediaRecord,
        destination: str,
        fields: Iterable[str] = DEFAULT_FIELDS,
        include_artwork: bool = True
    ) -> MergeResult:
        """
        Copy metadata from a source record onto a destination file.

        Args:
            source: Record to copy from
            destination: File to write
            fields: Field names to copy
            include_artwork: Replace destination pictures with the normalized cover

        Returns:
            MergeResult with copied fields and warnings

        Raises:
            MergeFatal: destination could not be opened or saved
        """
        result = MergeResult(destination=destination)
        values: Dict[str, Any] = {}

        for name in sorted(fields, key=_field_order):
            if name not in SCALAR_FIELDS:
                result.warnings.append(str(MergeFieldWarning(name, "unknown field, not copied")))
                continue
            value = source.get(name)
            if value:
                values[name] = value

        pictures = None
        if include_artwork and source.pictures:
            cover, artwork_warnings = normalize_artwork(source.pictures)
            result.warnings.extend(str(MergeFieldWarning('artwork', w)) for w in artwork_warnings)
            if cover is not None:
                pictures = [cover]

        if not values and pictures is None:
            self.log(f"  Nothing to copy from {source.file_name}")
            return result

        try:
            write_warnings = self.tag_io.write_tags(destination, values, pictures)
        except TagWriteError as e:
            raise MergeFatal(f"Cannot update destination: {e}", destination) from e

        failed = set()
        for warning in write_warnings:
            result.warnings.append(warning)
            failed.add(warning.split(':', 1)[0])

        result.fields_copied = [name for name in values if name not in failed]
        result.artwork_copied = pictures is not None and 'artwork' not in failed

        self.log(
            f"  Copied {len(result.fields_copied)} fields"
            + (" and cover art" if result.artwork_copied else "")
            + f" from {source.file_name}"
        )
        for warning in result.warnings:
            self.log_warning(f"  {warning}")

        return result

    def archive_and_replace(
        self,
        processed_file: str,
        library_file: str,
        archive_dir: str,
        library_root: Optional[str] = None,
        dry_run: bool = False
    ) -> Dict[str, Any]:
        """
        Copy the library original to the archive, then overwrite it with the
        processed file.

        The archive copy keeps the file's path relative to library_root so
        same-named files from different folders do not overwrite each other.
        The archive copy must succeed before the library file is touched, and
        an existing archive file is never overwritten.

        Returns:
            Change record with archive and library paths

        Raises:
            MergeFatal: the archive already holds a file at the target path
        """
        archive_path = self._archive_path(library_file, archive_dir, library_root)
        if archive_path.exists():
            raise MergeFatal(f"Archive already holds {archive_path}, library file left unchanged", library_file)

        if dry_run:
            self.log(f"[WHAT-IF] Would archive {library_file} to {archive_path}")
            self.log(f"[WHAT-IF] Would replace {library_file} with {processed_file}")
            return {"archive_path": str(archive_path), "library_path": library_file, "status": "would_apply"}

        archive_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(library_file, archive_path)
        self.log(f"Archived original: {archive_path}")

        shutil.copy2(processed_file, library_file)
        self.log(f"Replaced in library: {library_file}")

        return {"archive_path": str(archive_path), "library_path": library_file, "status": "applied"}

    def _archive_path(self, library_file: str, archive_dir: str, library_root: Optional[str]) -> Path:
        if library_root:
            relative = os.path.relpath(library_file, library_root)
            if not relative.startswith('..'):
                return Path(archive_dir) / relative
        return Path(archive_dir) / Path(library_file).name


def _field_order(name: str) -> int:
    try:
        return SCALAR_FIELDS.index(name)
    except ValueError:
        return len(SCALAR_FIELDS)

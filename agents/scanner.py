#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Scanner Agent - Catalogs media files under a directory tree.

Responsibilities:
- Traverse the directory tree (sorted, recursive)
- Read tags for each media file through the Tag I/O collaborator
- Index records by case-insensitive file name
- Flag collisions (several files sharing one file name)
- Record unreadable files without dropping them from the catalog
"""

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

from media.errors import ScanError
from media.records import MediaRecord
from media.tags import TagIO

from .base import BaseAgent


DEFAULT_EXTENSIONS = ('.mp3',)


@dataclass(frozen=True)
class ScanResult:
    """Outcome of reading one file: always a record, plus the error if any"""
    record: MediaRecord
    error: Optional[ScanError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CatalogIndex:
    """
    Immutable mapping of file name key -> records, in traversal order.

    Keys with more than one record are collisions and are listed in
    `collisions`; callers must not merge from them without resolving.
    """

    def __init__(self, root: str, results: Iterable[ScanResult]):
        self.root = root
        entries: Dict[str, List[MediaRecord]] = {}
        collisions = set()
        errors = []

        for result in results:
            key = result.record.file_name_key
            bucket = entries.setdefault(key, [])
            bucket.append(result.record)
            if len(bucket) == 2:
                collisions.add(key)
            if result.error is not None:
                errors.append(result.error)

        self._entries: Dict[str, Tuple[MediaRecord, ...]] = {
            key: tuple(records) for key, records in entries.items()
        }
        self._collisions: FrozenSet[str] = frozenset(collisions)
        self._errors: Tuple[ScanError, ...] = tuple(errors)

    @property
    def collisions(self) -> FrozenSet[str]:
        return self._collisions

    @property
    def scan_errors(self) -> Tuple[ScanError, ...]:
        return self._errors

    @property
    def file_count(self) -> int:
        return sum(len(records) for records in self._entries.values())

    def get(self, key: str) -> Tuple[MediaRecord, ...]:
        """Records for a key (empty tuple when unknown); key is lower-cased"""
        return self._entries.get(key.lower(), ())

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def records(self) -> Iterator[MediaRecord]:
        """All records in traversal order"""
        for records in self._entries.values():
            yield from records

    def is_collision(self, key: str) -> bool:
        return key.lower() in self._collisions

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return (f"CatalogIndex(root={self.root!r}, keys={len(self)}, "
                f"files={self.file_count}, collisions={len(self._collisions)})")


def find_media_files(root_dir: str, extensions: Sequence[str] = DEFAULT_EXTENSIONS,
                     exclude: Sequence[str] = ()) -> List[str]:
    """
    Recursively list media files in deterministic (sorted) order.

    Args:
        root_dir: Directory to walk
        extensions: Accepted suffixes, compared case-insensitively
        exclude: Directories to skip entirely (absolute or relative to root)
    """
    wanted = {e.lower() if e.startswith('.') else f".{e.lower()}" for e in extensions}
    excluded = {os.path.abspath(os.path.join(root_dir, d)) for d in exclude}
    files = []

    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames[:] = sorted(
            d for d in dirnames
            if os.path.abspath(os.path.join(dirpath, d)) not in excluded
        )
        for filename in sorted(filenames):
            if Path(filename).suffix.lower() in wanted:
                files.append(os.path.abspath(os.path.join(dirpath, filename)))

    return files


def read_record(path: str, tag_reader: TagIO) -> ScanResult:
    """Read one file into a record; failures give a blank record plus ScanError"""
    try:
        size_bytes = os.path.getsize(path)
    except OSError:
        size_bytes = 0

    try:
        fields = tag_reader.read_tags(path)
        return ScanResult(MediaRecord.from_fields(path, fields, size_bytes))
    except Exception as e:
        error = ScanError(f"Cannot read tags: {e}", path)
        return ScanResult(MediaRecord.from_fields(path, None, size_bytes), error)


def build_index(
    root_dir: str,
    tag_reader: TagIO,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    workers: int = 1,
    log: Optional[Callable[[str], None]] = None,
    exclude: Sequence[str] = ()
) -> Tuple[CatalogIndex, FrozenSet[str]]:
    """
    Catalog every media file under root_dir.

    Tag reads may run on a thread pool; results are aggregated in traversal
    order so the index does not depend on the worker count.

    Args:
        root_dir: Directory tree to scan
        tag_reader: Tag I/O collaborator
        extensions: Media file suffixes to include
        workers: Number of concurrent tag readers
        log: Optional callable for scan error messages
        exclude: Directories to skip

    Returns:
        (CatalogIndex, collision keys)
    """
    paths = find_media_files(root_dir, extensions, exclude)

    if workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda p: read_record(p, tag_reader), paths))
    else:
        results = [read_record(p, tag_reader) for p in paths]

    if log:
        for result in results:
            if result.error is not None:
                log(f"Scan error, indexed with blank fields: {result.error}")

    index = CatalogIndex(os.path.abspath(root_dir), results)
    return index, index.collisions


class ScannerAgent(BaseAgent):
    """
    Scanner agent for cataloging media files.

    Wraps build_index with configuration (extensions, worker count) and
    logging of counts and collisions.
    """

    def __init__(self, config=None, tag_io: Optional[TagIO] = None, report=None):
        super().__init__(config, report)
        if tag_io is None:
            from media.tags import MutagenTagIO
            tag_io = MutagenTagIO()
        self.tag_io = tag_io
        self.extensions = tuple(self.get_config('library.extensions', list(DEFAULT_EXTENSIONS)))
        self.workers = int(self.get_config('scan.workers', 4) or 1)

    @property
    def name(self) -> str:
        return "Scanner"

    def process(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """
        Catalog one directory tree.

        Args:
            item: Dictionary with 'path' key pointing to the root folder

        Returns:
            Scan results including the index
        """
        root = item.get('path')
        if not root:
            return {"status": "error", "error": "No path provided"}
        if not os.path.isdir(root):
            return {"status": "error", "path": root, "error": f"Directory not found: {root}"}

        index = self.scan(root, exclude=item.get('exclude', ()))
        return {
            "status": "success",
            "path": root,
            "file_count": index.file_count,
            "key_count": len(index),
            "collisions": sorted(index.collisions),
            "scan_errors": len(index.scan_errors),
            "index": index
        }

    def scan(self, root: str, exclude: Sequence[str] = ()) -> CatalogIndex:
        """Build and log a catalog for a directory tree"""
        self.log(f"Indexing files in {root}...")
        index, collisions = build_index(
            root,
            self.tag_io,
            extensions=self.extensions,
            workers=self.workers,
            log=self.log_warning,
            exclude=exclude
        )

        self.log(f"Found {index.file_count} files ({len(index)} distinct names)")
        for key in sorted(collisions):
            paths = [r.path for r in index.get(key)]
            self.log_warning(f"Name collision '{key}': {len(paths)} candidates")
            for path in paths:
                self.log(f"  - {path}")

        return index

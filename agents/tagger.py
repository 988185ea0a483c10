#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tagger Agent - Tags files from a remote recording search.

Responsibilities:
- Optionally convert each file to a target format first (FFmpeg)
- Find the seeder hints for each file (command line or seeders CSV)
- Search the remote source and pick the best release with the Match Resolver;
  files whose releases all fall below the confidence threshold are skipped
- Write the release's fields and front cover through the Fixer's merge
"""

import dataclasses
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from media.artwork import COVER_DESCRIPTION, DEFAULT_MIME, detect_image_format
from media.converter import FFmpegConverter
from media.errors import ConversionError, MergeFatal, TagReadError
from media.records import EmbeddedPicture, MediaRecord, PictureType
from media.tags import TagIO
from sources.base import DataSource
from sources.seeders import Seeder, SeederTable

from .base import BaseAgent
from .fixer import FixerAgent
from .resolver import MatchResolver


AUDIO_EXTENSIONS = ('.mp3', '.flac', '.m4a', '.ogg', '.wav', '.wma', '.aac')


class TaggerAgent(BaseAgent):
    """
    Tagger agent for remote metadata lookups.

    Usage:
        tagger = TaggerAgent(config, source=MusicBrainzSource(), seeders=table)
        tagger.process({'path': '/music/new/track01.flac'})
    """

    def __init__(
        self,
        config=None,
        source: Optional[DataSource] = None,
        tag_io: Optional[TagIO] = None,
        seeders: Optional[SeederTable] = None,
        seeder: Optional[Seeder] = None,
        converter: Optional[FFmpegConverter] = None,
        convert_format: Optional[str] = None,
        quality: Optional[str] = None,
        output_dir: Optional[str] = None,
        preserve_original: bool = False,
        dry_run: bool = False,
        report=None
    ):
        """
        Initialize tagger.

        Args:
            config: ConfigManager instance (optional)
            source: Remote data source (MusicBrainz by default)
            tag_io: Tag I/O collaborator
            seeders: Per-file seeder table loaded from CSV
            seeder: Seeder applied to every file (overrides the table)
            converter: FFmpeg converter used when convert_format is set
            convert_format: Target audio format, or None to keep files as-is
            quality: Codec-specific conversion quality
            output_dir: Directory for converted files
            preserve_original: Keep the source file after a conversion
            dry_run: Search and resolve only; change nothing
        """
        super().__init__(config, report)
        if tag_io is None:
            from media.tags import MutagenTagIO
            tag_io = MutagenTagIO()
        if source is None:
            from sources.musicbrainz import MusicBrainzSource
            source = MusicBrainzSource.from_config(config, report) if config is not None \
                else MusicBrainzSource(report=report)

        self.tag_io = tag_io
        self.source = source
        self.seeders = seeders
        self.seeder = seeder if seeder is not None and not seeder.is_empty else None
        self.convert_format = convert_format.lower().lstrip('.') if convert_format else None
        self.quality = quality
        self.output_dir = output_dir
        self.preserve_original = preserve_original
        self.dry_run = dry_run

        if converter is None and self.convert_format:
            converter = FFmpegConverter(
                ffmpeg_path=self.get_config('ffmpeg.path', 'ffmpeg'),
                default_qualities=self.get_config('ffmpeg.default_qualities')
            )
        self.converter = converter

        self.fixer = FixerAgent(config, tag_io, report)
        self.resolver = MatchResolver(
            threshold=float(self.get_config('matching.confidence_threshold', 0.5))
        )

    @property
    def name(self) -> str:
        return "Tagger"

    def find_files(self, path: str) -> List[Dict[str, Any]]:
        """Work items for a file or every audio file under a directory"""
        if os.path.isfile(path):
            return [{'path': path}]
        items = []
        for dirpath, dirnames, filenames in os.walk(path):
            dirnames.sort()
            for filename in sorted(filenames):
                if Path(filename).suffix.lower() in AUDIO_EXTENSIONS:
                    items.append({'path': os.path.join(dirpath, filename)})
        return items

    def find_seeder(self, path: str) -> Optional[Seeder]:
        """Command-line seeder first, then the seeders table"""
        if self.seeder is not None:
            return self.seeder
        if self.seeders is not None:
            return self.seeders.find(path)
        return None

    def process(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """
        Tag a single file.

        Args:
            item: Dictionary with 'path' key pointing to the audio file

        Returns:
            Tagging results
        """
        path = item.get('path')
        if not path or not os.path.isfile(path):
            return {"status": "error", "path": path, "error": f"File not found: {path}"}

        working_path = path
        converted = False

        # Step 1: Convert format if requested
        if self.convert_format and Path(path).suffix.lower().lstrip('.') != self.convert_format:
            if self.dry_run:
                self.log(f"[WHAT-IF] Would convert {Path(path).name} to {self.convert_format.upper()}")
            else:
                self.log(f"Converting to {self.convert_format.upper()}...")
                try:
                    working_path = self.converter.convert(path, self.convert_format, self.quality, self.output_dir)
                except ConversionError as e:
                    self.log_error(f"Conversion failed: {e}")
                    return {"status": "error", "path": path, "error": str(e)}
                converted = True
                self.log(f"  Converted: {working_path}")

        # Step 2: Seeder hints
        seeder = self.find_seeder(working_path)
        if seeder is None:
            self.log("  No seeder data found for this file")
            return {"status": "skipped", "path": path, "reason": "no seeder"}

        # Step 3: Current tags
        current = self._read_current(working_path)
        if current is not None:
            self.log(f"  Current: {current.display_artist or '?'} - {current.title or '?'} [{current.album or '?'}]")

        # Step 4: Remote search
        self.log(f"  Searching with: {seeder.artist} - {seeder.title}")
        releases = self.source.search(seeder.artist, seeder.title, seeder.album)
        if not releases:
            self.log("  No matches found")
            return {"status": "skipped", "path": path, "reason": "no match"}

        target = MediaRecord.from_fields(working_path, {
            "artist": seeder.artist,
            "title": seeder.title,
            "album": seeder.album
        })
        if len(releases) > 1:
            self.log(f"  Found {len(releases)} matches, selecting best match...")
        chosen = self.resolver.resolve_releases(target, releases)
        if chosen is None:
            self.log(f"  No confident match ({self.resolver.last_outcome.reason})")
            return {"status": "skipped", "path": path, "reason": "ambiguous"}
        self.log(f"  Selected: {chosen.artist} - {chosen.title} [{chosen.album or '?'}] "
                 f"({chosen.confidence:.1%} service score)")

        # Step 5: Write tags and cover
        record = chosen.to_record()
        if self.dry_run:
            self.log(f"[WHAT-IF] Would write metadata and cover art to {working_path}")
            return {"status": "success", "path": path, "dry_run": True, "match": chosen.to_dict()}

        picture = self._fetch_cover(chosen.release_id)
        if picture is not None:
            record = dataclasses.replace(record, pictures=(picture,))

        try:
            result = self.fixer.merge(record, working_path)
        except MergeFatal as e:
            self.log_error(str(e))
            return {"status": "error", "path": path, "error": str(e)}

        # Step 6: Remove the original after a conversion
        if converted and not self.preserve_original:
            try:
                os.remove(path)
                self.log("  Original file removed")
            except OSError as e:
                self.log_warning(f"Could not remove original file: {e}")

        return {
            "status": "success" if not result.warnings else "partial",
            "path": working_path,
            "match": chosen.to_dict(),
            "fields_copied": len(result.fields_copied),
            "artwork": result.artwork_copied,
            "warnings": result.warnings
        }

    def _read_current(self, path: str) -> Optional[MediaRecord]:
        try:
            return MediaRecord.from_fields(path, self.tag_io.read_tags(path))
        except TagReadError as e:
            self.log_warning(f"Error reading tags: {e}")
            return None

    def _fetch_cover(self, release_id: Optional[str]) -> Optional[EmbeddedPicture]:
        url = self.source.get_cover_url(release_id) if release_id else None
        if not url:
            return None
        self.log("  Downloading cover art...")
        data = self.source.download_image(url)
        if not data:
            return None
        return EmbeddedPicture(
            data=data,
            mime=detect_image_format(data) or DEFAULT_MIME,
            picture_type=PictureType.FRONT_COVER,
            description=COVER_DESCRIPTION
        )

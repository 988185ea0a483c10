#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Base class for remote metadata sources.
Sources return ranked ReleaseCandidate lists that the Match Resolver scores
exactly like local catalog records.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import time

from media.records import MediaRecord


OFFICIAL_STATUS = "official"


@dataclass
class ReleaseCandidate:
    """A recording on a release, as returned by a remote search"""
    source: str
    recording_id: str
    title: str
    artist: str
    album: str = ""
    album_artist: str = ""
    release_id: Optional[str] = None
    year: Optional[int] = None
    track_number: int = 0
    track_count: int = 0
    disc_number: int = 0
    country: Optional[str] = None
    status: Optional[str] = None
    duration_ms: Optional[int] = None
    genre: str = ""
    cover_url: Optional[str] = None
    confidence: float = 0.0
    raw_data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_official(self) -> bool:
        """Official retail release with a release country"""
        return bool(self.status and self.status.lower() == OFFICIAL_STATUS and self.country)

    def to_record(self) -> MediaRecord:
        """View this candidate as a MediaRecord for scoring and merging"""
        return MediaRecord.from_fields(
            f"{self.source}:{self.recording_id}",
            {
                "artist": self.artist,
                "album_artist": self.album_artist,
                "album": self.album,
                "title": self.title,
                "genre": self.genre,
                "year": self.year or 0,
                "track_number": self.track_number,
                "track_count": self.track_count,
                "disc_number": self.disc_number,
            }
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "source": self.source,
            "recording_id": self.recording_id,
            "release_id": self.release_id,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "album_artist": self.album_artist,
            "year": self.year,
            "track_number": self.track_number,
            "track_count": self.track_count,
            "country": self.country,
            "status": self.status,
            "cover_url": self.cover_url,
            "confidence": self.confidence
        }


class DataSource(ABC):
    """
    Abstract base class for remote metadata sources.

    Data sources provide metadata from external services:
    - MusicBrainz: recording/release search and cover art
    """

    def __init__(self, rate_limit: float = 1.0, report=None):
        """
        Initialize data source with rate limiting.

        Args:
            rate_limit: Minimum seconds between requests
            report: Optional ReportLog for messages
        """
        self.rate_limit = rate_limit
        self.report = report
        self._last_request: float = 0

    @property
    @abstractmethod
    def name(self) -> str:
        """Source name identifier"""
        pass

    @abstractmethod
    def search(self, artist: str = "", title: str = "", album: str = "") -> List[ReleaseCandidate]:
        """
        Search for recordings.

        Args:
            artist: Artist name
            title: Track title
            album: Album (release) title

        Returns:
            Candidates ranked by the service's relevance score
        """
        pass

    def get_cover_url(self, release_id: str) -> Optional[str]:
        """
        Get cover art URL for a release.

        Args:
            release_id: Source-specific release ID

        Returns:
            URL to cover art image or None
        """
        return None

    def download_image(self, url: str) -> Optional[bytes]:
        """Download cover art bytes; None when unavailable"""
        return None

    def _rate_limit_wait(self) -> None:
        """Wait if necessary to respect rate limits"""
        if self._last_request > 0:
            elapsed = time.time() - self._last_request
            if elapsed < self.rate_limit:
                time.sleep(self.rate_limit - elapsed)
        self._last_request = time.time()

    def _extract_year(self, date_str: Optional[str]) -> Optional[int]:
        """Extract year from date string"""
        if date_str and len(date_str) >= 4:
            try:
                return int(date_str[:4])
            except ValueError:
                pass
        return None

    def log(self, message: str) -> None:
        """Log a message"""
        if self.report is not None:
            self.report.write(message, source=self.name)
        else:
            print(f"[{self.name}] {message}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rate_limit={self.rate_limit})"

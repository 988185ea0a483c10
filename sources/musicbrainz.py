#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
MusicBrainz API adapter.
Free, no authentication required, but needs user agent.

API Documentation:
https://musicbrainz.org/doc/MusicBrainz_API

Rate Limits: 1 request per second per IP
"""

import requests
from typing import List, Optional, Dict, Any
from .base import DataSource, ReleaseCandidate


class MusicBrainzSource(DataSource):
    """
    MusicBrainz API data source.

    Searches recordings by title/artist/release and reads the first release
    of each hit for album, date and album artist.
    """

    BASE_URL = "https://musicbrainz.org/ws/2"
    COVER_ART_URL = "https://coverartarchive.org"

    def __init__(
        self,
        user_agent: str = "MusicReconcile/1.0",
        rate_limit: float = 1.0,
        base_url: Optional[str] = None,
        search_limit: int = 5,
        max_results: int = 3,
        session: Optional[requests.Session] = None,
        report=None
    ):
        """
        Initialize MusicBrainz source.

        Args:
            user_agent: User agent string (required by API)
            rate_limit: Seconds between requests (1.0 required by API)
            base_url: Web service root, without trailing slash
            search_limit: Number of recordings requested per search
            max_results: Number of recordings kept from each search
            session: Preconfigured requests session
        """
        super().__init__(rate_limit, report)
        self.user_agent = user_agent
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.search_limit = search_limit
        self.max_results = max_results
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "application/json"
        })

    @classmethod
    def from_config(cls, config, report=None) -> "MusicBrainzSource":
        """Build from the api.musicbrainz configuration section"""
        return cls(
            user_agent=config.get("api.musicbrainz.user_agent", "MusicReconcile/1.0"),
            rate_limit=float(config.get("api.musicbrainz.rate_limit", 1.0)),
            base_url=config.get("api.musicbrainz.base_url"),
            search_limit=int(config.get("api.musicbrainz.search_limit", 5)),
            max_results=int(config.get("api.musicbrainz.max_results", 3)),
            report=report
        )

    @property
    def name(self) -> str:
        return "musicbrainz"

    @staticmethod
    def build_query(artist: str = "", title: str = "", album: str = "") -> str:
        """Lucene query for the recording search; empty when no hint is given"""
        parts = []
        if title:
            parts.append(f'recording:"{title}"')
        if artist:
            parts.append(f'artist:"{artist}"')
        if album:
            parts.append(f'release:"{album}"')
        return " AND ".join(parts)

    def search(self, artist: str = "", title: str = "", album: str = "") -> List[ReleaseCandidate]:
        """
        Search for recordings.

        Args:
            artist: Artist name
            title: Track title
            album: Release title

        Returns:
            Up to max_results candidates in service rank order
        """
        query = self.build_query(artist, title, album)
        if not query:
            return []

        self.log(f"Searching MusicBrainz: {query}")
        self._rate_limit_wait()

        params = {
            "query": query,
            "fmt": "json",
            "limit": self.search_limit
        }

        try:
            response = self.session.get(
                f"{self.base_url}/recording",
                params=params,
                timeout=30
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            self.log(f"Search error: {e}")
            return []

        results = []
        for recording in data.get("recordings", [])[:self.max_results]:
            candidate = self._parse_recording(recording)
            results.append(candidate)
            self.log(f"  Found: {candidate.artist} - {candidate.title} (Score: {candidate.confidence:.1%})")

        return results

    def _parse_recording(self, recording: Dict[str, Any]) -> ReleaseCandidate:
        candidate = ReleaseCandidate(
            source="musicbrainz",
            recording_id=recording.get("id", ""),
            title=recording.get("title", ""),
            artist=self._credit_name(recording.get("artist-credit")),
            duration_ms=recording.get("length"),
            confidence=(recording.get("score") or 0) / 100.0,  # MB returns 0-100
            raw_data=recording
        )

        releases = recording.get("releases") or []
        if releases:
            release = releases[0]
            candidate.release_id = release.get("id")
            candidate.album = release.get("title", "")
            candidate.album_artist = self._credit_name(release.get("artist-credit"))
            candidate.year = self._extract_year(release.get("date"))
            candidate.country = release.get("country")
            candidate.status = release.get("status")

            media = release.get("media") or []
            if media:
                medium = media[0]
                candidate.disc_number = medium.get("position") or 0
                candidate.track_count = medium.get("track-count") or 0
                tracks = medium.get("track") or medium.get("tracks") or []
                if tracks:
                    candidate.track_number = self._parse_number(tracks[0].get("number"))

        return candidate

    def get_cover_url(self, release_id: str) -> Optional[str]:
        """
        Get cover art URL from Cover Art Archive.

        Args:
            release_id: MusicBrainz release ID

        Returns:
            Front image URL, else the first image, else None
        """
        if not release_id:
            return None

        try:
            response = self.session.get(
                f"{self.COVER_ART_URL}/release/{release_id}",
                timeout=10
            )
            if response.status_code != 200:
                return None
            images = response.json().get("images") or []
        except (requests.RequestException, ValueError) as e:
            self.log(f"Cover art lookup error: {e}")
            return None

        for image in images:
            if image.get("front") or "Front" in (image.get("types") or []):
                return image.get("image")
        return images[0].get("image") if images else None

    def download_image(self, url: str) -> Optional[bytes]:
        """Download image bytes; None on any HTTP failure"""
        try:
            response = self.session.get(url, timeout=30)
            response.raise_for_status()
            return response.content
        except requests.RequestException as e:
            self.log(f"Image download error: {e}")
            return None

    @staticmethod
    def _credit_name(credits) -> str:
        if not credits:
            return ""
        first = credits[0]
        artist = first.get("artist") or {}
        return first.get("name") or artist.get("name", "")

    @staticmethod
    def _parse_number(value) -> int:
        try:
            return int(str(value).split("/")[0])
        except (TypeError, ValueError):
            return 0

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Media record data model.

A MediaRecord is a snapshot of one file's tags taken at catalog time.
Records are frozen; re-tagging a file means cataloging it again.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class PictureType(Enum):
    """Semantic type of an embedded image"""
    FRONT_COVER = "front_cover"
    OTHER = "other"
    UNKNOWN = "unknown"

    @classmethod
    def from_apic_type(cls, value: Optional[int]) -> "PictureType":
        """Map ID3 APIC / FLAC picture type codes (3 = front, 0 = other)"""
        if value == 3:
            return cls.FRONT_COVER
        if value == 0:
            return cls.OTHER
        return cls.UNKNOWN


@dataclass(frozen=True)
class EmbeddedPicture:
    """Embedded image: raw bytes plus declared MIME type"""
    data: bytes
    mime: str = ""
    picture_type: PictureType = PictureType.UNKNOWN
    description: str = ""

    @property
    def size_bytes(self) -> int:
        return len(self.data)


# Scalar fields copied between files, in display order
TEXT_FIELDS = ('artist', 'album_artist', 'album', 'title', 'genre')
NUMBER_FIELDS = ('year', 'track_number', 'track_count', 'disc_number', 'disc_count')
SCALAR_FIELDS = TEXT_FIELDS + NUMBER_FIELDS


def make_file_name_key(path: str) -> str:
    """Case-insensitive join key: base file name, lower-cased"""
    return os.path.basename(path).lower()


@dataclass(frozen=True)
class MediaRecord:
    """One cataloged file"""
    path: str
    file_name_key: str
    artist: str = ""
    album_artist: str = ""
    album: str = ""
    title: str = ""
    genre: str = ""
    year: int = 0
    track_number: int = 0
    track_count: int = 0
    disc_number: int = 0
    disc_count: int = 0
    size_bytes: int = 0
    pictures: Tuple[EmbeddedPicture, ...] = field(default_factory=tuple)

    @classmethod
    def from_fields(
        cls,
        path: str,
        fields: Optional[Dict[str, Any]] = None,
        size_bytes: int = 0
    ) -> "MediaRecord":
        """
        Build a record from the field dictionary returned by a tag reader.

        Unknown keys are ignored; missing text becomes "" and missing
        numbers become 0.

        Args:
            path: File location (made absolute)
            fields: Tag values keyed by MediaRecord field name
            size_bytes: File size for logging

        Returns:
            MediaRecord with its file name key derived from the path
        """
        fields = fields or {}
        abs_path = os.path.abspath(path)

        values: Dict[str, Any] = {}
        for name in TEXT_FIELDS:
            value = fields.get(name)
            values[name] = str(value).strip() if value else ""
        for name in NUMBER_FIELDS:
            values[name] = _to_uint(fields.get(name))

        return cls(
            path=abs_path,
            file_name_key=make_file_name_key(abs_path),
            size_bytes=size_bytes,
            pictures=tuple(fields.get('pictures') or ()),
            **values
        )

    @property
    def file_name(self) -> str:
        return os.path.basename(self.path)

    @property
    def display_artist(self) -> str:
        """Track artist, falling back to album artist"""
        return self.artist or self.album_artist

    def get(self, name: str) -> Any:
        """Field value by name"""
        return getattr(self, name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/reports (pictures summarized)"""
        data = {name: getattr(self, name) for name in SCALAR_FIELDS}
        data.update({
            "path": self.path,
            "file_name_key": self.file_name_key,
            "size_bytes": self.size_bytes,
            "pictures": [
                {
                    "mime": p.mime,
                    "type": p.picture_type.value,
                    "description": p.description,
                    "size_bytes": p.size_bytes
                }
                for p in self.pictures
            ]
        })
        return data


def _to_uint(value: Any) -> int:
    """Parse unsigned ints from tag values like 3, '03', '3/12' or '1999-05-01'"""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value > 0 else 0

    text = str(value).strip()
    if '/' in text:
        text = text.split('/')[0]
    digits = ""
    for char in text:
        if char in "0123456789":
            digits += char
        else:
            break
    return int(digits) if digits else 0

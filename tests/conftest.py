#!/usr/bin/env python3
"""
Shared fixtures: an in-memory Tag I/O and helpers for building folders of
dummy media files.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from media.errors import TagReadError, TagWriteError
from media.records import EmbeddedPicture, MediaRecord, PictureType
from media.tags import TagIO


JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class FakeTagIO(TagIO):
    """
    Tag I/O backed by a dictionary of absolute path -> fields.

    Files listed in `unreadable` raise TagReadError, files in `unwritable`
    raise TagWriteError, and `field_failures` maps a field name to the
    warning the writer reports for it.
    """

    def __init__(self):
        self.tags: Dict[str, Dict[str, Any]] = {}
        self.unreadable = set()
        self.unwritable = set()
        self.field_failures: Dict[str, str] = {}
        self.writes: List[str] = []

    def set(self, path, **fields) -> None:
        self.tags[os.path.abspath(str(path))] = dict(fields)

    def fields(self, path) -> Dict[str, Any]:
        return self.tags.get(os.path.abspath(str(path)), {})

    def read_tags(self, path: str) -> Dict[str, Any]:
        path = os.path.abspath(path)
        if path in self.unreadable:
            raise TagReadError("corrupt container", path)
        return dict(self.tags.get(path, {}))

    def write_tags(self, path: str, fields: Dict[str, Any],
                   pictures: Optional[List[EmbeddedPicture]] = None) -> List[str]:
        path = os.path.abspath(path)
        if path in self.unwritable:
            raise TagWriteError("cannot save", path)

        warnings = []
        stored = self.tags.setdefault(path, {})
        for name, value in fields.items():
            if name in self.field_failures:
                warnings.append(f"{name}: {self.field_failures[name]}")
                continue
            stored[name] = value
        if pictures is not None:
            if 'artwork' in self.field_failures:
                warnings.append(f"artwork: {self.field_failures['artwork']}")
            else:
                stored['pictures'] = list(pictures)

        self.writes.append(path)
        return warnings


def make_file(path, content: bytes = b"audio") -> str:
    """Create a dummy media file (and its parent folders)"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return str(path)


def make_record(path: str = "/music/Song.mp3", **fields) -> MediaRecord:
    return MediaRecord.from_fields(path, fields)


def picture(data: bytes = JPEG_BYTES, mime: str = "image/jpeg",
            picture_type: PictureType = PictureType.FRONT_COVER,
            description: str = "") -> EmbeddedPicture:
    return EmbeddedPicture(data=data, mime=mime, picture_type=picture_type, description=description)


@pytest.fixture
def tag_io():
    return FakeTagIO()

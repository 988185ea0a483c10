#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tag I/O on top of mutagen.

Reads and writes the fixed MediaRecord field set plus embedded pictures for
MP3 (ID3v2), FLAC (Vorbis comments) and M4A/MP4 files. Other formats that
mutagen understands can be read through its "easy" interface but not written.

The rest of the system only sees field dictionaries and EmbeddedPicture
objects; container differences stay inside this module.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import mutagen
from mutagen import MutagenError
from mutagen.flac import FLAC, Picture
from mutagen.id3 import (
    ID3, ID3NoHeaderError, APIC, TALB, TCON, TDRC, TIT2, TPE1, TPE2, TPOS, TRCK
)
from mutagen.mp4 import MP4, MP4Cover

from .errors import TagReadError, TagWriteError
from .records import EmbeddedPicture, PictureType


# ID3 text frames for the plain text fields
ID3_TEXT_FRAMES = {
    'artist': TPE1,
    'album_artist': TPE2,
    'album': TALB,
    'title': TIT2,
    'genre': TCON,
}

VORBIS_KEYS = {
    'artist': 'artist',
    'album_artist': 'albumartist',
    'album': 'album',
    'title': 'title',
    'genre': 'genre',
}

MP4_KEYS = {
    'artist': '\xa9ART',
    'album_artist': 'aART',
    'album': '\xa9alb',
    'title': '\xa9nam',
    'genre': '\xa9gen',
}

FRONT_COVER_CODE = 3


class TagIO(ABC):
    """
    Tag reader/writer interface.

    read_tags returns a dictionary keyed by MediaRecord field names
    (artist, album_artist, album, title, genre, year, track_number,
    track_count, disc_number, disc_count, pictures).
    """

    @abstractmethod
    def read_tags(self, path: str) -> Dict[str, Any]:
        """Read tag fields; raises TagReadError on a corrupt container"""
        pass

    @abstractmethod
    def write_tags(
        self,
        path: str,
        fields: Dict[str, Any],
        pictures: Optional[Sequence[EmbeddedPicture]] = None
    ) -> List[str]:
        """
        Write tag fields onto a file.

        Args:
            path: Destination file
            fields: Values to set (only the keys present are touched)
            pictures: Replacement picture set, or None to leave pictures alone

        Returns:
            Warnings for individual fields that could not be written

        Raises:
            TagWriteError: file could not be opened or saved
        """
        pass


class MutagenTagIO(TagIO):
    """Tag I/O for MP3, FLAC and MP4 files using mutagen"""

    WRITABLE_EXTENSIONS = {'.mp3', '.flac', '.m4a', '.mp4'}

    def read_tags(self, path: str) -> Dict[str, Any]:
        ext = Path(path).suffix.lower()
        try:
            if ext == '.mp3':
                return self._read_mp3(path)
            elif ext == '.flac':
                return self._read_flac(path)
            elif ext in ('.m4a', '.mp4'):
                return self._read_mp4(path)
            return self._read_generic(path)
        except TagReadError:
            raise
        except (MutagenError, OSError, ValueError) as e:
            raise TagReadError(f"Cannot read tags: {e}", path) from e

    def write_tags(
        self,
        path: str,
        fields: Dict[str, Any],
        pictures: Optional[Sequence[EmbeddedPicture]] = None
    ) -> List[str]:
        ext = Path(path).suffix.lower()
        if ext not in self.WRITABLE_EXTENSIONS:
            raise TagWriteError(f"Writing {ext or 'extensionless'} files is not supported", path)

        if ext == '.mp3':
            return self._write_mp3(path, fields, pictures)
        elif ext == '.flac':
            return self._write_flac(path, fields, pictures)
        return self._write_mp4(path, fields, pictures)

    # ==================== MP3 / ID3 ====================

    def _read_mp3(self, path: str) -> Dict[str, Any]:
        try:
            tags = ID3(path)
        except ID3NoHeaderError:
            # Untagged file: valid, just empty
            return {}

        fields: Dict[str, Any] = {}
        for name, frame_class in ID3_TEXT_FRAMES.items():
            frame = tags.get(frame_class.__name__)
            if frame is None:
                continue
            if name == 'genre' and getattr(frame, 'genres', None):
                fields[name] = frame.genres[0]
            else:
                fields[name] = _first_text(frame.text)

        date = tags.get('TDRC')
        if date is not None and date.text:
            fields['year'] = str(date.text[0])

        fields['track_number'], fields['track_count'] = _split_pair(
            _first_text(tags['TRCK'].text) if 'TRCK' in tags else None
        )
        fields['disc_number'], fields['disc_count'] = _split_pair(
            _first_text(tags['TPOS'].text) if 'TPOS' in tags else None
        )

        fields['pictures'] = [
            EmbeddedPicture(
                data=bytes(frame.data),
                mime=frame.mime or "",
                picture_type=PictureType.from_apic_type(int(frame.type)),
                description=frame.desc or ""
            )
            for frame in tags.getall('APIC')
        ]
        return fields

    def _write_mp3(
        self,
        path: str,
        fields: Dict[str, Any],
        pictures: Optional[Sequence[EmbeddedPicture]]
    ) -> List[str]:
        try:
            tags = ID3(path)
        except ID3NoHeaderError:
            tags = ID3()
        except (MutagenError, OSError) as e:
            raise TagWriteError(f"Cannot open for writing: {e}", path) from e

        warnings: List[str] = []

        for name, frame_class in ID3_TEXT_FRAMES.items():
            if name in fields:
                try:
                    tags.setall(frame_class.__name__, [frame_class(encoding=3, text=[str(fields[name])])])
                except (ValueError, TypeError) as e:
                    warnings.append(f"{name}: {e}")

        if 'year' in fields:
            try:
                tags.setall('TDRC', [TDRC(encoding=3, text=[str(int(fields['year']))])])
            except (ValueError, TypeError) as e:
                warnings.append(f"year: {e}")

        for frame_class, number_key, count_key in (
            (TRCK, 'track_number', 'track_count'),
            (TPOS, 'disc_number', 'disc_count'),
        ):
            if number_key not in fields and count_key not in fields:
                continue
            frame_id = frame_class.__name__
            try:
                current = _split_pair(_first_text(tags[frame_id].text) if frame_id in tags else None)
                value = _join_pair(
                    fields.get(number_key) or current[0],
                    fields.get(count_key) or current[1]
                )
                tags.setall(frame_id, [frame_class(encoding=3, text=[value])])
            except (ValueError, TypeError) as e:
                warnings.append(f"{number_key}: {e}")

        if pictures is not None:
            tags.delall('APIC')
            for picture in pictures:
                tags.add(
                    APIC(
                        encoding=3,  # UTF-8
                        mime=picture.mime,
                        type=_picture_code(picture.picture_type),
                        desc=picture.description,
                        data=picture.data
                    )
                )

        try:
            tags.save(path)
        except (MutagenError, OSError) as e:
            raise TagWriteError(f"Cannot save tags: {e}", path) from e

        return warnings

    # ==================== FLAC ====================

    def _read_flac(self, path: str) -> Dict[str, Any]:
        audio = FLAC(path)
        fields: Dict[str, Any] = {}

        for name, key in VORBIS_KEYS.items():
            fields[name] = _first_text(audio.get(key))
        fields['year'] = _first_text(audio.get('date'))

        number, count = _split_pair(_first_text(audio.get('tracknumber')))
        fields['track_number'] = number
        fields['track_count'] = count or _first_text(audio.get('tracktotal') or audio.get('totaltracks'))
        number, count = _split_pair(_first_text(audio.get('discnumber')))
        fields['disc_number'] = number
        fields['disc_count'] = count or _first_text(audio.get('disctotal') or audio.get('totaldiscs'))

        fields['pictures'] = [
            EmbeddedPicture(
                data=bytes(p.data),
                mime=p.mime or "",
                picture_type=PictureType.from_apic_type(p.type),
                description=p.desc or ""
            )
            for p in audio.pictures
        ]
        return fields

    def _write_flac(
        self,
        path: str,
        fields: Dict[str, Any],
        pictures: Optional[Sequence[EmbeddedPicture]]
    ) -> List[str]:
        try:
            audio = FLAC(path)
        except (MutagenError, OSError) as e:
            raise TagWriteError(f"Cannot open for writing: {e}", path) from e

        warnings: List[str] = []
        mapping = dict(VORBIS_KEYS, year='date', track_number='tracknumber',
                       track_count='tracktotal', disc_number='discnumber',
                       disc_count='disctotal')

        for name, key in mapping.items():
            if name in fields:
                try:
                    audio[key] = [str(fields[name])]
                except (ValueError, TypeError) as e:
                    warnings.append(f"{name}: {e}")

        if pictures is not None:
            audio.clear_pictures()
            for embedded in pictures:
                picture = Picture()
                picture.type = _picture_code(embedded.picture_type)
                picture.mime = embedded.mime
                picture.desc = embedded.description
                picture.data = embedded.data
                audio.add_picture(picture)

        try:
            audio.save()
        except (MutagenError, OSError) as e:
            raise TagWriteError(f"Cannot save tags: {e}", path) from e

        return warnings

    # ==================== MP4 / M4A ====================

    def _read_mp4(self, path: str) -> Dict[str, Any]:
        audio = MP4(path)
        fields: Dict[str, Any] = {}
        if not audio.tags:
            return fields

        for name, key in MP4_KEYS.items():
            fields[name] = _first_text(audio.tags.get(key))
        fields['year'] = _first_text(audio.tags.get('\xa9day'))

        trkn = audio.tags.get('trkn', [(0, 0)])[0]
        if isinstance(trkn, tuple):
            fields['track_number'], fields['track_count'] = trkn[0], trkn[1]
        disk = audio.tags.get('disk', [(0, 0)])[0]
        if isinstance(disk, tuple):
            fields['disc_number'], fields['disc_count'] = disk[0], disk[1]

        fields['pictures'] = [
            EmbeddedPicture(
                data=bytes(cover),
                mime="image/png" if cover.imageformat == MP4Cover.FORMAT_PNG else "image/jpeg",
                picture_type=PictureType.UNKNOWN  # MP4 covers carry no type
            )
            for cover in audio.tags.get('covr', [])
        ]
        return fields

    def _write_mp4(
        self,
        path: str,
        fields: Dict[str, Any],
        pictures: Optional[Sequence[EmbeddedPicture]]
    ) -> List[str]:
        try:
            audio = MP4(path)
            if audio.tags is None:
                audio.add_tags()
        except (MutagenError, OSError) as e:
            raise TagWriteError(f"Cannot open for writing: {e}", path) from e

        warnings: List[str] = []

        for name, key in MP4_KEYS.items():
            if name in fields:
                audio.tags[key] = [str(fields[name])]
        if 'year' in fields:
            audio.tags['\xa9day'] = [str(fields['year'])]

        for key, number_key, count_key in (
            ('trkn', 'track_number', 'track_count'),
            ('disk', 'disc_number', 'disc_count'),
        ):
            if number_key not in fields and count_key not in fields:
                continue
            try:
                current = audio.tags.get(key, [(0, 0)])[0]
                audio.tags[key] = [(
                    int(fields.get(number_key) or current[0]),
                    int(fields.get(count_key) or current[1])
                )]
            except (ValueError, TypeError, IndexError) as e:
                warnings.append(f"{number_key}: {e}")

        if pictures is not None:
            covers = []
            for picture in pictures:
                if picture.mime == "image/png":
                    covers.append(MP4Cover(picture.data, imageformat=MP4Cover.FORMAT_PNG))
                else:
                    if picture.mime != "image/jpeg":
                        warnings.append(f"MP4 cannot declare {picture.mime} artwork, stored as JPEG")
                    covers.append(MP4Cover(picture.data, imageformat=MP4Cover.FORMAT_JPEG))
            audio.tags['covr'] = covers

        try:
            audio.save()
        except (MutagenError, OSError) as e:
            raise TagWriteError(f"Cannot save tags: {e}", path) from e

        return warnings

    # ==================== Other formats ====================

    def _read_generic(self, path: str) -> Dict[str, Any]:
        """Read-only fallback using the generic mutagen interface"""
        audio = mutagen.File(path, easy=True)
        if audio is None:
            raise TagReadError("Unsupported or unrecognized file", path)

        fields: Dict[str, Any] = {}
        if audio.tags is None:
            return fields
        for name, key in VORBIS_KEYS.items():
            fields[name] = _first_text(audio.get(key))
        fields['year'] = _first_text(audio.get('date'))
        fields['track_number'], fields['track_count'] = _split_pair(_first_text(audio.get('tracknumber')))
        fields['disc_number'], fields['disc_count'] = _split_pair(_first_text(audio.get('discnumber')))
        return fields


def _first_text(value) -> str:
    """Get first element from list or return string"""
    if isinstance(value, list):
        value = value[0] if value else None
    return str(value) if value is not None else ""


def _split_pair(value: Optional[str]) -> Tuple[int, int]:
    """Parse '3/12' style number/total pairs"""
    if not value:
        return 0, 0
    number, _, total = str(value).partition('/')
    return _parse_int(number), _parse_int(total)


def _join_pair(number: Any, total: Any) -> str:
    number = int(number or 0)
    total = int(total or 0)
    return f"{number}/{total}" if total else str(number)


def _parse_int(text: str) -> int:
    try:
        return max(int(text.strip()), 0)
    except (ValueError, AttributeError):
        return 0


def _picture_code(picture_type: PictureType) -> int:
    """ID3/FLAC picture type code; anything but a front cover is stored as 'other'"""
    return FRONT_COVER_CODE if picture_type is PictureType.FRONT_COVER else 0

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Artwork normalization.

Turns whatever pictures a source file exposes into one front cover that
players recognize:
    1. Pick the best image (front cover > other > first)
    2. Check the bytes against the format's magic signature
    3. Normalize the MIME type (image/jpeg when unknown)
    4. Re-tag it as FrontCover with description "Cover"

Validation problems are warnings; the image is embedded anyway.
"""

from typing import List, Optional, Sequence, Tuple

from .records import EmbeddedPicture, PictureType


COVER_DESCRIPTION = "Cover"
DEFAULT_MIME = "image/jpeg"

# Magic-byte signatures per canonical MIME type
SIGNATURES = {
    "image/jpeg": b"\xff\xd8",
    "image/png": b"\x89PNG",
    "image/gif": b"GIF",
    "image/bmp": b"BM",
}

MIME_ALIASES = {
    "image/jpeg": "image/jpeg",
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "image/png": "image/png",
    "image/x-png": "image/png",
    "png": "image/png",
    "image/gif": "image/gif",
    "gif": "image/gif",
    "image/bmp": "image/bmp",
    "image/x-bmp": "image/bmp",
    "image/x-ms-bmp": "image/bmp",
    "bmp": "image/bmp",
}


def select_best_picture(pictures: Sequence[EmbeddedPicture]) -> Optional[EmbeddedPicture]:
    """Prefer a front cover, then an 'other' image, then the first available"""
    if not pictures:
        return None

    for wanted in (PictureType.FRONT_COVER, PictureType.OTHER):
        for picture in pictures:
            if picture.picture_type is wanted:
                return picture

    return pictures[0]


def canonical_mime(declared: Optional[str]) -> str:
    """Map a declared MIME type to its canonical form"""
    if not declared:
        return DEFAULT_MIME
    key = declared.strip().lower()
    return MIME_ALIASES.get(key, DEFAULT_MIME)


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect the image MIME type from its magic bytes"""
    if not data:
        return None
    for mime, signature in SIGNATURES.items():
        if data.startswith(signature):
            return mime
    return None


def validate_picture(data: bytes, mime: str) -> Optional[str]:
    """
    Check image bytes against the signature of the given format.

    Returns:
        Warning message, or None when the bytes match
    """
    signature = SIGNATURES.get(mime)
    if signature is None:
        return f"no signature known for {mime}"

    if data.startswith(signature):
        return None

    detected = detect_image_format(data)
    if detected:
        return f"artwork declared as {mime} but looks like {detected}"
    if not data:
        return f"artwork declared as {mime} is empty"
    return f"artwork declared as {mime} does not match its signature ({data[:4].hex().upper()})"


def normalize_artwork(
    pictures: Sequence[EmbeddedPicture]
) -> Tuple[Optional[EmbeddedPicture], List[str]]:
    """
    Produce the single normalized front cover for a picture set.

    Args:
        pictures: Pictures exposed by the source file

    Returns:
        (normalized picture or None when there are no pictures, warnings)
    """
    warnings: List[str] = []

    best = select_best_picture(pictures)
    if best is None:
        return None, warnings

    mime = canonical_mime(best.mime)
    if best.mime and best.mime.strip().lower() not in MIME_ALIASES:
        warnings.append(f"unrecognized artwork MIME type '{best.mime}', using {mime}")

    problem = validate_picture(best.data, mime)
    if problem:
        warnings.append(problem)

    cover = EmbeddedPicture(
        data=best.data,
        mime=mime,
        picture_type=PictureType.FRONT_COVER,
        description=COVER_DESCRIPTION
    )
    return cover, warnings

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Error types for tag I/O, conversion and reconciliation.

Only configuration problems stop a whole run. Everything defined here is
caught per item and turned into a logged outcome.
"""

from typing import Optional


class MediaError(Exception):
    """Base class for media file errors"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        message = super().__str__()
        if self.path:
            return f"{message} ({self.path})"
        return message


class TagReadError(MediaError):
    """Tag container could not be read (corrupt or unsupported file)"""


class TagWriteError(MediaError):
    """Destination file could not be opened or saved"""


class ConversionError(MediaError):
    """Audio conversion failed"""


class ScanError(MediaError):
    """A single file could not be read while cataloging"""


class MatchAmbiguous(MediaError):
    """Several candidates and none could be chosen"""


class MergeFieldWarning(MediaError):
    """One field or the artwork could not be copied"""

    def __init__(self, field: str, message: str, path: Optional[str] = None):
        super().__init__(message, path)
        self.field = field

    def __str__(self) -> str:
        return f"{self.field}: {super().__str__()}"


class MergeFatal(MediaError):
    """Destination file could not be opened or saved during merge"""

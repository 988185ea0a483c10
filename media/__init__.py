# Media File Layer
# Records, tag I/O (mutagen), artwork normalization and conversion

from .records import MediaRecord, EmbeddedPicture, PictureType, SCALAR_FIELDS, make_file_name_key
from .errors import (
    MediaError, TagReadError, TagWriteError, ConversionError,
    ScanError, MatchAmbiguous, MergeFieldWarning, MergeFatal
)
from .tags import TagIO, MutagenTagIO
from .artwork import normalize_artwork, select_best_picture, canonical_mime, detect_image_format
from .converter import FFmpegConverter, SUPPORTED_FORMATS

__all__ = [
    'MediaRecord',
    'EmbeddedPicture',
    'PictureType',
    'SCALAR_FIELDS',
    'make_file_name_key',
    'MediaError',
    'TagReadError',
    'TagWriteError',
    'ConversionError',
    'ScanError',
    'MatchAmbiguous',
    'MergeFieldWarning',
    'MergeFatal',
    'TagIO',
    'MutagenTagIO',
    'normalize_artwork',
    'select_best_picture',
    'canonical_mime',
    'detect_image_format',
    'FFmpegConverter',
    'SUPPORTED_FORMATS'
]

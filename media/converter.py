#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Audio format conversion through FFmpeg.

Supported targets: mp3, flac, wav, m4a, ogg.

Quality values follow FFmpeg conventions per codec:
    MP3:  0-9 VBR quality (0=best) or a bitrate such as 192 / 320
    FLAC: compression level 0-8
    M4A:  AAC bitrate (128, 192, 256, 320)
    OGG:  Vorbis quality 0-10
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from .errors import ConversionError


SUPPORTED_FORMATS = ('mp3', 'flac', 'wav', 'm4a', 'ogg')

DEFAULT_QUALITIES = {
    'mp3': '2',
    'flac': '5',
    'm4a': '192',
    'ogg': '5',
}


class FFmpegConverter:
    """Converts audio files by shelling out to ffmpeg"""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        default_qualities: Optional[Dict[str, str]] = None,
        timeout: int = 600
    ):
        self.ffmpeg_path = ffmpeg_path
        self.default_qualities = dict(DEFAULT_QUALITIES)
        if default_qualities:
            self.default_qualities.update({k: str(v) for k, v in default_qualities.items()})
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check that ffmpeg runs"""
        try:
            result = subprocess.run(
                [self.ffmpeg_path, '-version'],
                capture_output=True,
                text=True,
                timeout=30
            )
            return result.returncode == 0
        except (OSError, subprocess.TimeoutExpired):
            return False

    def convert(
        self,
        path: str,
        target_format: str,
        quality: Optional[str] = None,
        output_dir: Optional[str] = None
    ) -> str:
        """
        Convert a file to another audio format.

        Args:
            path: Source audio file
            target_format: One of SUPPORTED_FORMATS
            quality: Codec-specific quality (see module docstring)
            output_dir: Directory for the new file (default: next to the source)

        Returns:
            Path of the converted file

        Raises:
            ConversionError: unsupported format or ffmpeg failure
        """
        target_format = target_format.lower().lstrip('.')
        if target_format not in SUPPORTED_FORMATS:
            raise ConversionError(
                f"Invalid format: {target_format} (valid: {', '.join(SUPPORTED_FORMATS)})", path
            )

        source = Path(path)
        out_dir = Path(output_dir) if output_dir else source.parent
        out_dir.mkdir(parents=True, exist_ok=True)
        output_path = out_dir / f"{source.stem}.{target_format}"

        if output_path.resolve() == source.resolve():
            raise ConversionError("Output would overwrite the source file", path)

        cmd = self.build_arguments(str(source), str(output_path), target_format, quality)

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise ConversionError(f"ffmpeg timed out after {self.timeout}s", path) from e
        except OSError as e:
            raise ConversionError(f"Cannot run ffmpeg: {e}", path) from e

        if result.returncode != 0 or not output_path.exists():
            error_msg = result.stderr.strip().splitlines()[-1] if result.stderr.strip() else "Unknown error"
            raise ConversionError(f"ffmpeg failed: {error_msg}", path)

        return str(output_path)

    def build_arguments(
        self,
        input_path: str,
        output_path: str,
        target_format: str,
        quality: Optional[str] = None
    ) -> List[str]:
        """Build the ffmpeg command line for a conversion"""
        args = [self.ffmpeg_path, '-i', input_path, '-y']

        if target_format == 'mp3':
            args += ['-codec:a', 'libmp3lame', '-ar', '44100', '-ac', '2']
            value = quality or self.default_qualities['mp3']
            if value.isdigit() and int(value) > 9:
                args += ['-b:a', f"{value}k"]
            else:
                args += ['-q:a', value]

        elif target_format == 'flac':
            args += ['-codec:a', 'flac', '-compression_level', quality or self.default_qualities['flac']]

        elif target_format == 'wav':
            args += ['-codec:a', 'pcm_s16le']

        elif target_format == 'm4a':
            args += ['-codec:a', 'aac', '-b:a', f"{quality or self.default_qualities['m4a']}k"]

        elif target_format == 'ogg':
            args += ['-codec:a', 'libvorbis', '-q:a', quality or self.default_qualities['ogg']]

        args.append(output_path)
        return args

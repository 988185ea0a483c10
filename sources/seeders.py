#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Seeder hints for remote lookups.

A seeder names the artist/title/album to search for a file. Seeders come
from the command line (one for every file) or from a CSV file:

    artist,title,album,filename
    # comment lines are ignored
    Daft Punk,One More Time,Discovery,01 one more time

Rows are keyed by filename, or by title when the filename column is empty.
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class Seeder:
    """Search hints for one track"""
    artist: str = ""
    title: str = ""
    album: str = ""
    file_name: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.artist or self.title)


class SeederTable:
    """
    Case-insensitive seeder lookup for files.

    Lookup order for a file stem:
    1. exact key match
    2. a seeder whose filename is contained in the stem
    3. a seeder whose artist and title both appear in the stem
    """

    def __init__(self, seeders: Optional[Dict[str, Seeder]] = None):
        self._seeders: Dict[str, Seeder] = {}
        for key, seeder in (seeders or {}).items():
            self._seeders[key.lower()] = seeder

    @classmethod
    def load(cls, csv_path: str) -> "SeederTable":
        """
        Load seeders from a CSV file.

        Raises:
            OSError: file cannot be read
        """
        table = cls()
        with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
            lines = [line for line in f if line.strip() and not line.strip().startswith("#")]

        for i, row in enumerate(csv.reader(lines)):
            if i == 0 and _looks_like_header(row):
                continue
            if len(row) < 2:
                continue
            values = [v.strip() for v in row] + ["", ""]
            seeder = Seeder(artist=values[0], title=values[1], album=values[2], file_name=values[3])
            table.add(seeder)

        return table

    def add(self, seeder: Seeder) -> None:
        key = seeder.file_name or seeder.title
        if key:
            self._seeders[key.lower()] = seeder

    def find(self, file_path: str) -> Optional[Seeder]:
        """Seeder for a file path (matched on the name without extension)"""
        stem = Path(file_path).stem.lower()

        exact = self._seeders.get(stem)
        if exact is not None:
            return exact

        for seeder in self._seeders.values():
            if seeder.file_name and seeder.file_name.lower() in stem:
                return seeder

        for seeder in self._seeders.values():
            if seeder.artist and seeder.title \
                    and seeder.artist.lower() in stem and seeder.title.lower() in stem:
                return seeder

        return None

    def seeders(self) -> List[Seeder]:
        return list(self._seeders.values())

    def __len__(self) -> int:
        return len(self._seeders)


def _looks_like_header(row: List[str]) -> bool:
    text = ",".join(row).lower()
    return "artist" in text or "title" in text

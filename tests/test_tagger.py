#!/usr/bin/env python3
"""
Test suite for the remote tagging workflow
"""

import tempfile
from pathlib import Path

from agents.tagger import TaggerAgent
from media.errors import ConversionError
from media.records import PictureType
from orchestrator.report import ReportLog
from sources.base import DataSource, ReleaseCandidate
from sources.seeders import Seeder, SeederTable
from conftest import JPEG_BYTES, make_file


class FakeSource(DataSource):
    """Remote source returning canned releases"""

    def __init__(self, releases=(), cover=JPEG_BYTES):
        super().__init__(rate_limit=0)
        self.releases = list(releases)
        self.cover = cover
        self.searches = []

    @property
    def name(self):
        return "fake"

    def search(self, artist="", title="", album=""):
        self.searches.append((artist, title, album))
        return list(self.releases)

    def get_cover_url(self, release_id):
        return f"http://covers/{release_id}" if self.cover else None

    def download_image(self, url):
        return self.cover


class FakeConverter:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def convert(self, path, target_format, quality=None, output_dir=None):
        self.calls.append((path, target_format, quality))
        if self.fail:
            raise ConversionError("ffmpeg failed", path)
        output = str(Path(path).with_suffix(f".{target_format}"))
        Path(output).write_bytes(b"converted")
        return output


def _release(recording_id, **kwargs):
    values = dict(source="fake", recording_id=recording_id, title="Yesterday", artist="The Beatles",
                  album="Help!", album_artist="The Beatles", year=1965, track_number=13,
                  release_id=f"rel-{recording_id}", status="Official", country="GB")
    values.update(kwargs)
    return ReleaseCandidate(**values)


def _tagger(tag_io, source, **kwargs):
    return TaggerAgent(source=source, tag_io=tag_io, report=ReportLog(echo=False), **kwargs)


class TestTagging:
    """Test the search-and-write path"""

    def test_tags_and_cover_written(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.mp3")
            source = FakeSource([_release("1")])
            tagger = _tagger(tag_io, source, seeder=Seeder(artist="The Beatles", title="Yesterday"))

            result = tagger.process({'path': path})

            assert result['status'] == 'success'
            stored = tag_io.fields(path)
            assert stored['album'] == "Help!"
            assert stored['year'] == 1965
            assert stored['track_number'] == 13
            assert stored['pictures'][0].picture_type is PictureType.FRONT_COVER
            assert stored['pictures'][0].mime == "image/jpeg"
            assert source.searches == [("The Beatles", "Yesterday", "")]

    def test_best_release_chosen(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.mp3")
            source = FakeSource([
                _release("1", album="Greatest Hits", status="Bootleg"),
                _release("2", album="Help!"),
            ])
            tagger = _tagger(tag_io, source,
                             seeder=Seeder(artist="The Beatles", title="Yesterday", album="Help!"))

            result = tagger.process({'path': path})

            assert result['match']['recording_id'] == "2"
            assert tag_io.fields(path)['album'] == "Help!"

    def test_no_cover_available(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.mp3")
            tagger = _tagger(tag_io, FakeSource([_release("1")], cover=None), seeder=Seeder(title="Yesterday"))

            result = tagger.process({'path': path})

            assert result['artwork'] is False
            assert 'pictures' not in tag_io.fields(path)

    def test_dry_run_writes_nothing(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.mp3")
            tagger = _tagger(tag_io, FakeSource([_release("1")]), seeder=Seeder(title="Yesterday"), dry_run=True)

            result = tagger.process({'path': path})

            assert result['dry_run'] is True
            assert tag_io.writes == []


class TestSkips:
    """Test the skip and error paths"""

    def test_no_seeder(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.mp3")
            source = FakeSource([_release("1")])
            result = _tagger(tag_io, source, seeders=SeederTable()).process({'path': path})
            assert result['status'] == 'skipped'
            assert source.searches == []

    def test_seeder_table_lookup(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "01 yesterday.mp3")
            table = SeederTable()
            table.add(Seeder(artist="The Beatles", title="Yesterday", file_name="01 yesterday"))
            source = FakeSource([_release("1")])

            _tagger(tag_io, source, seeders=table).process({'path': path})

            assert source.searches == [("The Beatles", "Yesterday", "")]

    def test_no_results(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.mp3")
            result = _tagger(tag_io, FakeSource([]), seeder=Seeder(title="x")).process({'path': path})
            assert result == {"status": "skipped", "path": path, "reason": "no match"}

    def test_unrelated_releases_skipped(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.mp3")
            source = FakeSource([
                _release("1", artist="Queen", title="Bohemian Rhapsody", album="A Night at the Opera"),
                _release("2", artist="Queen", title="Innuendo", album="Innuendo"),
            ])
            tagger = _tagger(tag_io, source, seeder=Seeder(artist="The Beatles", title="Yesterday", album="Help!"))

            result = tagger.process({'path': path})

            assert result == {"status": "skipped", "path": path, "reason": "ambiguous"}
            assert tag_io.writes == []

    def test_missing_file(self, tag_io):
        result = _tagger(tag_io, FakeSource()).process({'path': '/no/such/file.mp3'})
        assert result['status'] == 'error'


class TestConversion:
    """Test conversion before tagging"""

    def test_converted_file_tagged_and_original_removed(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.wav")
            converter = FakeConverter()
            tagger = _tagger(tag_io, FakeSource([_release("1")]), seeder=Seeder(title="Yesterday"),
                             converter=converter, convert_format="mp3", quality="0")

            result = tagger.process({'path': path})

            converted = str(Path(tmpdir) / "track01.mp3")
            assert result['path'] == converted
            assert converter.calls == [(path, "mp3", "0")]
            assert tag_io.fields(converted)['title'] == "Yesterday"
            assert not Path(path).exists()

    def test_preserve_original(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.wav")
            tagger = _tagger(tag_io, FakeSource([_release("1")]), seeder=Seeder(title="Yesterday"),
                             converter=FakeConverter(), convert_format="mp3", preserve_original=True)

            tagger.process({'path': path})

            assert Path(path).exists()

    def test_same_format_not_converted(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.mp3")
            converter = FakeConverter()
            tagger = _tagger(tag_io, FakeSource([_release("1")]), seeder=Seeder(title="Yesterday"),
                             converter=converter, convert_format="MP3")

            tagger.process({'path': path})

            assert converter.calls == []

    def test_conversion_failure(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = make_file(Path(tmpdir) / "track01.wav")
            source = FakeSource([_release("1")])
            tagger = _tagger(tag_io, source, seeder=Seeder(title="Yesterday"),
                             converter=FakeConverter(fail=True), convert_format="mp3")

            result = tagger.process({'path': path})

            assert result['status'] == 'error'
            assert source.searches == []
            assert Path(path).exists()


class TestBatch:
    """Test batch processing over a folder"""

    def test_find_files_and_batch(self, tag_io):
        with tempfile.TemporaryDirectory() as tmpdir:
            make_file(Path(tmpdir) / "b" / "2.flac")
            make_file(Path(tmpdir) / "a" / "1.mp3")
            make_file(Path(tmpdir) / "notes.txt")
            tagger = _tagger(tag_io, FakeSource([_release("1")]), seeder=Seeder(title="Yesterday"))

            items = tagger.find_files(tmpdir)
            results = tagger.process_batch(items)

            assert [Path(i['path']).name for i in items] == ["1.mp3", "2.flac"]
            assert results['total'] == 2
            assert results['success'] == 2

#!/usr/bin/env python3
"""
Test suite for the tag merge (fixer)
"""

import tempfile
from pathlib import Path

import pytest

from agents.fixer import DEFAULT_FIELDS, FixerAgent, MergePlan
from media.errors import MergeFatal
from media.records import PictureType
from orchestrator.report import ReportLog
from conftest import FakeTagIO, JPEG_BYTES, PNG_BYTES, make_file, make_record, picture


def _fixer(tag_io):
    return FixerAgent(tag_io=tag_io, report=ReportLog(echo=False))


class TestMerge:
    """Test field copy rules"""

    def test_copies_non_empty_fields(self, tag_io):
        source = make_record("/lib/Song.mp3", artist="The Beatles", album="Help!", title="Yesterday",
                             year=1965, track_number=13, track_count=14)
        result = _fixer(tag_io).merge(source, "/hq/Song.mp3")

        stored = tag_io.fields("/hq/Song.mp3")
        assert stored['artist'] == "The Beatles"
        assert stored['year'] == 1965
        assert stored['track_count'] == 14
        assert result.fields_copied == ['artist', 'album', 'title', 'year', 'track_number', 'track_count']
        assert result.warnings == []

    def test_empty_source_never_overwrites(self, tag_io):
        tag_io.set("/hq/Song.mp3", genre="Rock", album_artist="Keep Me", disc_number=2)
        source = make_record("/lib/Song.mp3", artist="The Beatles", genre="", disc_number=0)

        _fixer(tag_io).merge(source, "/hq/Song.mp3")

        stored = tag_io.fields("/hq/Song.mp3")
        assert stored['genre'] == "Rock"
        assert stored['album_artist'] == "Keep Me"
        assert stored['disc_number'] == 2
        assert stored['artist'] == "The Beatles"

    def test_field_subset(self, tag_io):
        source = make_record("/lib/Song.mp3", artist="A", album="B", title="C")
        result = _fixer(tag_io).merge(source, "/hq/Song.mp3", fields={'title'})
        assert tag_io.fields("/hq/Song.mp3") == {'title': "C"}
        assert result.fields_copied == ['title']

    def test_unknown_field_is_warning(self, tag_io):
        source = make_record("/lib/Song.mp3", title="C")
        result = _fixer(tag_io).merge(source, "/hq/Song.mp3", fields={'title', 'composer'})
        assert result.fields_copied == ['title']
        assert result.warnings == ["composer: unknown field, not copied"]

    def test_nothing_to_copy_writes_nothing(self, tag_io):
        result = _fixer(tag_io).merge(make_record("/lib/Song.mp3"), "/hq/Song.mp3")
        assert tag_io.writes == []
        assert result.fields_copied == []

    def test_field_failure_does_not_stop_others(self, tag_io):
        tag_io.field_failures['album'] = "frame rejected"
        source = make_record("/lib/Song.mp3", artist="A", album="B", title="C")

        result = _fixer(tag_io).merge(source, "/hq/Song.mp3")

        assert result.fields_copied == ['artist', 'title']
        assert result.warnings == ["album: frame rejected"]

    def test_unwritable_destination_is_fatal(self, tag_io):
        tag_io.unwritable.add("/hq/Song.mp3")
        with pytest.raises(MergeFatal):
            _fixer(tag_io).merge(make_record("/lib/Song.mp3", title="C"), "/hq/Song.mp3")

    def test_default_fields(self):
        assert DEFAULT_FIELDS == {'artist', 'album_artist', 'album', 'title', 'genre', 'year',
                                  'track_number', 'track_count', 'disc_number', 'disc_count'}


class TestArtworkMerge:
    """Test picture replacement"""

    def test_single_normalized_cover(self, tag_io):
        """Scenario D"""
        source = make_record("/lib/Song.mp3", title="C",
                             pictures=[picture(mime="image/jpg", picture_type=PictureType.OTHER)])

        result = _fixer(tag_io).merge(source, "/hq/Song.mp3")

        pictures = tag_io.fields("/hq/Song.mp3")['pictures']
        assert len(pictures) == 1
        assert pictures[0].picture_type is PictureType.FRONT_COVER
        assert pictures[0].mime == "image/jpeg"
        assert pictures[0].description == "Cover"
        assert result.artwork_copied is True

    def test_destination_pictures_replaced(self, tag_io):
        tag_io.set("/hq/Song.mp3", pictures=[picture(PNG_BYTES, "image/png"), picture()])
        source = make_record("/lib/Song.mp3", pictures=[picture(JPEG_BYTES)])

        _fixer(tag_io).merge(source, "/hq/Song.mp3")

        pictures = tag_io.fields("/hq/Song.mp3")['pictures']
        assert [p.data for p in pictures] == [JPEG_BYTES]

    def test_source_without_pictures_leaves_destination_art(self, tag_io):
        tag_io.set("/hq/Song.mp3", pictures=[picture(PNG_BYTES, "image/png")])
        _fixer(tag_io).merge(make_record("/lib/Song.mp3", title="C"), "/hq/Song.mp3")
        assert len(tag_io.fields("/hq/Song.mp3")['pictures']) == 1

    def test_include_artwork_false(self, tag_io):
        source = make_record("/lib/Song.mp3", title="C", pictures=[picture()])
        result = _fixer(tag_io).merge(source, "/hq/Song.mp3", include_artwork=False)
        assert 'pictures' not in tag_io.fields("/hq/Song.mp3")
        assert result.artwork_copied is False

    def test_artwork_write_failure_is_warning(self, tag_io):
        tag_io.field_failures['artwork'] = "unsupported"
        source = make_record("/lib/Song.mp3", title="C", pictures=[picture()])
        result = _fixer(tag_io).merge(source, "/hq/Song.mp3")
        assert result.artwork_copied is False
        assert result.fields_copied == ['title']

    def test_merge_is_idempotent(self, tag_io):
        source = make_record("/lib/Song.mp3", artist="A", title="C", year=2001,
                             pictures=[picture(picture_type=PictureType.OTHER), picture(PNG_BYTES, "image/png")])
        fixer = _fixer(tag_io)

        fixer.apply(MergePlan(destination="/hq/Song.mp3", source=source))
        first = dict(tag_io.fields("/hq/Song.mp3"))
        fixer.apply(MergePlan(destination="/hq/Song.mp3", source=source))
        second = tag_io.fields("/hq/Song.mp3")

        assert first == second
        assert len(second['pictures']) == 1


class TestProcess:
    """Test the agent interface"""

    def test_dry_run_writes_nothing(self, tag_io):
        report = ReportLog(echo=False)
        fixer = FixerAgent(tag_io=tag_io, report=report)
        plan = MergePlan(destination="/hq/Song.mp3", source=make_record("/lib/Song.mp3", title="C"))

        result = fixer.process({'plan': plan, 'dry_run': True})

        assert result['status'] == 'success'
        assert tag_io.writes == []
        assert report.lines[0].startswith("[Fixer] [WHAT-IF] Would copy metadata from Song.mp3")

    def test_fatal_reported_as_error(self, tag_io):
        tag_io.unwritable.add("/hq/Song.mp3")
        plan = MergePlan(destination="/hq/Song.mp3", source=make_record("/lib/Song.mp3", title="C"))
        assert _fixer(tag_io).process({'plan': plan})['status'] == 'error'


class TestArchiveAndReplace:
    """Test archive-then-replace"""

    def test_archive_then_replace(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            library_file = make_file(root / "library" / "Beatles" / "Song.mp3", b"old")
            processed = make_file(root / "hq" / "Processed_With_Metadata" / "Song.mp3", b"new")

            result = _fixer(FakeTagIO()).archive_and_replace(
                processed, library_file, str(root / "archive"), library_root=str(root / "library")
            )

            archived = root / "archive" / "Beatles" / "Song.mp3"
            assert archived.read_bytes() == b"old"
            assert Path(library_file).read_bytes() == b"new"
            assert Path(processed).exists()
            assert result['archive_path'] == str(archived)

    def test_archive_without_root_uses_file_name(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            library_file = make_file(root / "library" / "Song.mp3", b"old")
            processed = make_file(root / "processed" / "Song.mp3", b"new")

            _fixer(FakeTagIO()).archive_and_replace(processed, library_file, str(root / "archive"))

            assert (root / "archive" / "Song.mp3").read_bytes() == b"old"

    def test_dry_run_touches_nothing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            library_file = make_file(root / "library" / "Song.mp3", b"old")
            processed = make_file(root / "processed" / "Song.mp3", b"new")

            result = _fixer(FakeTagIO()).archive_and_replace(
                processed, library_file, str(root / "archive"), dry_run=True
            )

            assert result['status'] == 'would_apply'
            assert not (root / "archive").exists()
            assert Path(library_file).read_bytes() == b"old"

    def test_failed_archive_leaves_library_untouched(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            library_file = make_file(root / "library" / "Song.mp3", b"old")
            blocker = make_file(root / "archive", b"not a directory")

            with pytest.raises(OSError):
                _fixer(FakeTagIO()).archive_and_replace(
                    str(root / "missing.mp3"), library_file, blocker
                )

            assert Path(library_file).read_bytes() == b"old"

    def test_existing_archive_file_never_overwritten(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            library_file = make_file(root / "library" / "Song.mp3", b"replaced")
            processed = make_file(root / "processed" / "Song.mp3", b"new")
            archived = make_file(root / "archive" / "Song.mp3", b"original")

            with pytest.raises(MergeFatal):
                _fixer(FakeTagIO()).archive_and_replace(
                    processed, library_file, str(root / "archive"), library_root=str(root / "library")
                )

            assert Path(archived).read_bytes() == b"original"
            assert Path(library_file).read_bytes() == b"replaced"

"""Test the music folder scanner"""

import os
import struct

import pytest
from unittest.mock import patch
from mutagen import MutagenError
from mutagen.flac import FLAC

from muzport.exceptions import ScanError
from muzport.library.scanner import scan_directory, read_track, iter_audio_files
from muzport.library.view import TrackListView


def touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00")
    return path


class TestScanDirectory:
    """Test scanning folders"""

    def test_only_recognized_files_become_tracks(self, temp_dir, settings, audio_tags):
        """Test N audio files plus M other files give N tracks"""
        for name in ["a.mp3", "b.flac", "sub/c.m4a"]:
            touch(temp_dir / name)
        for name in ["notes.txt", "cover.jpg", "sub/playlist.m3u"]:
            touch(temp_dir / name)

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags({})) as mock_file:
            tracks = scan_directory(temp_dir, settings=settings)

        assert len(tracks) == 3
        assert mock_file.call_count == 3
        assert {os.path.basename(t.path) for t in tracks} == {"a.mp3", "b.flac", "c.m4a"}

    def test_empty_folder_gives_no_tracks(self, temp_dir, settings):
        touch(temp_dir / "readme.txt")
        assert scan_directory(temp_dir, settings=settings) == []

    def test_unreadable_files_are_skipped(self, temp_dir, settings, audio_tags):
        """Test files mutagen rejects are excluded"""
        for name in ["good.mp3", "unknown.mp3", "broken.flac"]:
            touch(temp_dir / name)

        mapping = {
            'good.mp3': {'artist': ['Radiohead'], 'title': ['Creep']},
            'unknown.mp3': None,
            'broken.flac': MutagenError("not a FLAC file"),
        }
        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags(mapping)):
            tracks = scan_directory(temp_dir, settings=settings)

        assert [t.title for t in tracks] == ["Creep"]

    def test_tagged_and_untagged_example(self, temp_dir, settings, audio_tags):
        """Test a tagged and an untagged file, then removing the untagged one"""
        touch(temp_dir / "a.mp3")
        touch(temp_dir / "b.flac")

        mapping = {
            'a.mp3': {'artist': ['X'], 'title': ['Y'], 'genre': ['Rock'], 'date': ['1999']},
            'b.flac': {},
        }
        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags(mapping)):
            tracks = scan_directory(temp_dir, settings=settings)

        assert len(tracks) == 2
        tagged, untagged = tracks

        assert (tagged.artist, tagged.title, tagged.genre, tagged.year) == ("X", "Y", "Rock", 1999)
        assert (untagged.artist, untagged.title, untagged.genre, untagged.year) == \
            ("Unknown Artist", "Unknown Title", "Unknown", None)

        view = TrackListView(tracks)
        view.remove(untagged.path)
        assert view.filtered() == [tagged]

    def test_missing_folder_raises(self, temp_dir, settings):
        with pytest.raises(ScanError):
            scan_directory(temp_dir / "missing", settings=settings)

    def test_file_instead_of_folder_raises(self, temp_dir, settings):
        song = touch(temp_dir / "song.mp3")
        with pytest.raises(ScanError):
            scan_directory(song, settings=settings)

    def test_extensions_are_case_insensitive(self, temp_dir, settings, audio_tags):
        touch(temp_dir / "LOUD.MP3")
        touch(temp_dir / "Quiet.Flac")

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags({})):
            tracks = scan_directory(temp_dir, settings=settings)

        assert len(tracks) == 2

    def test_configured_extensions(self, temp_dir, settings, audio_tags):
        touch(temp_dir / "a.mp3")
        touch(temp_dir / "b.ogg")
        settings.scan.extensions = ["ogg"]

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags({})):
            tracks = scan_directory(temp_dir, settings=settings)

        assert [os.path.basename(t.path) for t in tracks] == ["b.ogg"]

    def test_non_recursive_scan(self, temp_dir, settings, audio_tags):
        touch(temp_dir / "top.mp3")
        touch(temp_dir / "sub" / "deep.mp3")
        settings.scan.recursive = False

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags({})):
            tracks = scan_directory(temp_dir, settings=settings)

        assert [os.path.basename(t.path) for t in tracks] == ["top.mp3"]

    def test_ignore_hidden(self, temp_dir, settings, audio_tags):
        touch(temp_dir / "visible.mp3")
        touch(temp_dir / ".hidden.mp3")
        touch(temp_dir / ".cache" / "cached.mp3")
        settings.scan.ignore_hidden = True

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags({})):
            tracks = scan_directory(temp_dir, settings=settings)

        assert [os.path.basename(t.path) for t in tracks] == ["visible.mp3"]

    @pytest.mark.skipif(not hasattr(os, 'symlink'), reason="symlinks not supported")
    def test_symlinked_file_is_kept_once(self, temp_dir, settings, audio_tags):
        """Test paths resolving to the same file produce one track"""
        original = touch(temp_dir / "a.mp3")
        os.symlink(original, temp_dir / "b.mp3")

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags({})):
            tracks = scan_directory(temp_dir, settings=settings)

        assert len(tracks) == 1

    @pytest.mark.skipif(not hasattr(os, 'symlink'), reason="symlinks not supported")
    def test_symlink_loop_terminates(self, temp_dir, audio_tags):
        touch(temp_dir / "music" / "a.mp3")
        os.symlink(temp_dir / "music", temp_dir / "music" / "loop")

        files = list(iter_audio_files(temp_dir, ["mp3"], follow_symlinks=True))

        assert len(files) == 1


class TestReadTrack:
    """Test tag reading for a single file"""

    def test_defaults_and_year_parsing(self, temp_dir, audio_tags):
        song = touch(temp_dir / "song.m4a")
        mapping = {'song.m4a': {'title': ['Track'], 'genre': ['Jazz', 'Bebop'], 'date': ['1959-08-17']}}

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags(mapping)):
            track = read_track(song)

        assert track.artist == "Unknown Artist"
        assert track.title == "Track"
        assert track.genre == "Jazz"
        assert track.year == 1959
        assert track.path == str(song)

    def test_year_tag_fallback(self, temp_dir, audio_tags):
        song = touch(temp_dir / "song.flac")
        mapping = {'song.flac': {'year': ['2004']}}

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags(mapping)):
            track = read_track(song)

        assert track.year == 2004

    def test_unparsable_year_is_none(self, temp_dir, audio_tags):
        song = touch(temp_dir / "song.mp3")
        mapping = {'song.mp3': {'date': ['sometime']}}

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags(mapping)):
            track = read_track(song)

        assert track.year is None

    def test_unrecognized_file_returns_none(self, temp_dir, audio_tags):
        song = touch(temp_dir / "song.mp3")

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags({'song.mp3': None})):
            assert read_track(song) is None

    def test_mutagen_is_asked_for_easy_tags(self, temp_dir, audio_tags):
        song = touch(temp_dir / "song.mp3")

        with patch('muzport.library.scanner.MutagenFile', side_effect=audio_tags({})) as mock_file:
            read_track(song)

        mock_file.assert_called_once_with(str(song), easy=True)


def write_silent_flac(path):
    """Write a FLAC file holding only a STREAMINFO block (44.1 kHz, stereo, 16 bit)"""
    streaminfo = (
        struct.pack(">HH", 4096, 4096)          # min/max block size
        + b"\x00" * 6                           # min/max frame size unknown
        + bytes([0x0A, 0xC4, 0x42, 0xF0])       # sample rate, channels, bits per sample
        + b"\x00" * 4                           # total samples
        + b"\x00" * 16                          # MD5 signature
    )
    path.write_bytes(b"fLaC" + bytes([0x80, 0, 0, len(streaminfo)]) + streaminfo)
    return path


class TestRealTags:
    """Test scanning files read by mutagen itself"""

    def test_tagged_and_untagged_flac(self, temp_dir, settings):
        tagged = write_silent_flac(temp_dir / "a.flac")
        untagged = write_silent_flac(temp_dir / "b.flac")

        audio = FLAC(str(tagged))
        audio["artist"] = "A"
        audio["title"] = "T"
        audio["genre"] = "Jazz"
        audio["date"] = "1959-03-02"
        audio.save()

        tracks = scan_directory(temp_dir, settings=settings)

        assert [(t.artist, t.title, t.genre, t.year) for t in tracks] == [
            ("A", "T", "Jazz", 1959),
            ("Unknown Artist", "Unknown Title", "Unknown", None),
        ]

        view = TrackListView()
        view.load(tracks)
        view.remove(str(untagged))
        assert [t.title for t in view.filtered()] == ["T"]

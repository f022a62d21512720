"""
Data models for local music tracks

A Track is the record produced by the folder scanner for every recognized
audio file. The file path is its identity: the track list view filters,
removes and edits tracks by path, and the playlist builder receives a plain
list of them.

Tracks are immutable. Editing a title or artist produces a new record that
replaces the old one in the view, so the scanner output is never mutated.
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional

from ..utils.helpers import format_track_label


# Placeholder values used when a file has no usable tag
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_GENRE = "Unknown"


@dataclass(frozen=True)
class Track:
    """
    A local music file and the tags read from it

    Attributes:
        artist: Artist name, or UNKNOWN_ARTIST when the tag is missing
        title: Track title, or UNKNOWN_TITLE when the tag is missing
        genre: First genre entry, or UNKNOWN_GENRE when the tag is missing
        year: Release year, or None when no four-digit year could be read
        path: Absolute path of the audio file (unique within one scan)
    """
    artist: str
    title: str
    genre: str
    year: Optional[int]
    path: str

    @property
    def has_unknown_artist(self) -> bool:
        """True when the artist tag was missing"""
        return self.artist == UNKNOWN_ARTIST

    @property
    def label(self) -> str:
        """Human-readable "Artist - Title" label"""
        return format_track_label(self.artist, self.title)

    def with_edits(self, title: Optional[str] = None, artist: Optional[str] = None) -> 'Track':
        """
        Return a copy with a new title and/or artist

        Blank values leave the field unchanged. Genre, year and path are
        always preserved.
        """
        changes = {}
        if title is not None and title.strip():
            changes['title'] = title.strip()
        if artist is not None and artist.strip():
            changes['artist'] = artist.strip()
        return replace(self, **changes)


@dataclass
class PlaylistRequest:
    """
    A playlist to create: its name and the tracks to look up on Spotify

    Built from the track list view at the moment the user submits.
    """
    name: str
    tracks: List[Track] = field(default_factory=list)

    @property
    def total_tracks(self) -> int:
        return len(self.tracks)

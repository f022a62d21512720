"""
Track list view state

TrackListView holds everything the user manipulates between scanning a
folder and creating a playlist: the scanned tracks, the paths removed from
the list, the three filter fields and the track currently being edited.
It does no I/O, so any front end (the CLI session, tests) can drive it.
"""

from typing import Dict, List, Optional, Set

from ..utils.helpers import parse_year_filter
from .models import Track


class TrackListView:
    """
    Filterable, editable list of scanned tracks

    Filters are case-insensitive substring matches on artist and genre plus
    an exact match on year. The year field is kept as text, like a number
    input: it applies only when it starts with an integer.

    Removing a track hides it until the next load(). Edits replace the
    stored record by path and only ever touch title and artist.
    """

    def __init__(self, tracks: Optional[List[Track]] = None):
        self._tracks: List[Track] = []
        self._index: Dict[str, int] = {}
        self._excluded: Set[str] = set()
        self._editing: Optional[str] = None

        self.artist_filter = ""
        self.genre_filter = ""
        self.year_filter = ""

        if tracks:
            self.load(tracks)

    def load(self, tracks: List[Track]) -> None:
        """Replace the track list; clears removals and any pending edit"""
        self._tracks = list(tracks)
        self._index = {track.path: i for i, track in enumerate(self._tracks)}
        self._excluded = set()
        self._editing = None

    def reset(self) -> None:
        """Clear tracks, removals, filters and edit state"""
        self.load([])
        self.clear_filters()

    @property
    def tracks(self) -> List[Track]:
        """All loaded tracks, edits applied, removals included"""
        return list(self._tracks)

    @property
    def excluded(self) -> Set[str]:
        return set(self._excluded)

    @property
    def total_count(self) -> int:
        return len(self._tracks)

    @property
    def filtered_count(self) -> int:
        return len(self.filtered())

    def get(self, path: str) -> Optional[Track]:
        index = self._index.get(path)
        return self._tracks[index] if index is not None else None

    def set_filters(
        self,
        artist: Optional[str] = None,
        genre: Optional[str] = None,
        year: Optional[str] = None
    ) -> None:
        """
        Update filter fields; None leaves a field unchanged, "" clears it
        """
        if artist is not None:
            self.artist_filter = artist
        if genre is not None:
            self.genre_filter = genre
        if year is not None:
            self.year_filter = str(year)

    def clear_filters(self) -> None:
        self.artist_filter = ""
        self.genre_filter = ""
        self.year_filter = ""

    def _matches(self, track: Track) -> bool:
        artist = self.artist_filter.strip().lower()
        if artist and artist not in track.artist.lower():
            return False

        genre = self.genre_filter.strip().lower()
        if genre and genre not in track.genre.lower():
            return False

        year = parse_year_filter(self.year_filter)
        if year is not None and track.year != year:
            return False

        return True

    def filtered(self) -> List[Track]:
        """
        Tracks that are not removed and pass every active filter

        Returns:
            Matching tracks in scan order
        """
        return [
            track for track in self._tracks
            if track.path not in self._excluded and self._matches(track)
        ]

    def remove(self, path: str) -> bool:
        """
        Remove a track from the list by path

        Returns:
            True if the path belonged to a loaded track
        """
        if path not in self._index:
            return False
        self._excluded.add(path)
        if self._editing == path:
            self._editing = None
        return True

    @property
    def editing(self) -> Optional[Track]:
        """Track currently being edited, if any"""
        return self.get(self._editing) if self._editing else None

    def begin_edit(self, path: str) -> Track:
        """
        Select a track for editing

        Raises:
            KeyError: If no loaded track has this path
        """
        track = self.get(path)
        if track is None:
            raise KeyError(path)
        self._editing = path
        return track

    def cancel_edit(self) -> None:
        self._editing = None

    def save_edit(self, title: Optional[str], artist: Optional[str]) -> Track:
        """
        Apply new title/artist to the track being edited

        Raises:
            ValueError: If no edit is in progress
        """
        if self._editing is None:
            raise ValueError("No track is being edited")
        updated = self.edit(self._editing, title, artist)
        self._editing = None
        return updated

    def edit(self, path: str, title: Optional[str], artist: Optional[str]) -> Track:
        """
        Replace title and/or artist of the track at path

        Raises:
            KeyError: If no loaded track has this path
        """
        index = self._index.get(path)
        if index is None:
            raise KeyError(path)
        updated = self._tracks[index].with_edits(title=title, artist=artist)
        self._tracks[index] = updated
        return updated

    def can_create_playlist(self, authorized: bool, name: Optional[str]) -> bool:
        """True when connected, the name is non-blank and something is left to add"""
        return bool(authorized) and bool(name and name.strip()) and self.filtered_count > 0

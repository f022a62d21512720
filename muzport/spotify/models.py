"""
Data models for Spotify search results and created playlists

Only the fields MUZPORT actually uses are kept: a search result needs its
URI (to be added to a playlist) and enough metadata to log what was
matched; a created playlist needs its id and public URL.

All models are built with `from_spotify_data()` factory methods that read
raw Web API dictionaries defensively, falling back to defaults for optional
fields.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from ..library.models import Track


@dataclass
class SpotifyArtist:
    """
    Artist reference embedded in a track object

    Attributes:
        id: Spotify artist id
        name: Artist display name
        uri: Spotify URI (spotify:artist:id)
    """
    id: str
    name: str
    uri: Optional[str] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyArtist':
        return cls(
            id=data.get('id') or '',
            name=data.get('name') or '',
            uri=data.get('uri')
        )


@dataclass
class SpotifyTrack:
    """
    Track returned by the search endpoint

    Attributes:
        id: Spotify track id
        name: Track title as published
        uri: Spotify URI (spotify:track:id), the value added to playlists
        artists: Contributing artists
        album_name: Album title, empty when missing
        external_urls: Links to the track (external_urls.spotify is the web URL)
    """
    id: str
    name: str
    uri: str
    artists: List[SpotifyArtist] = field(default_factory=list)
    album_name: str = ""
    external_urls: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyTrack':
        """
        Factory method for constructing SpotifyTrack from a track object

        Accepts both bare track objects (search results) and playlist items
        where the track is nested under a 'track' key.

        Args:
            data: Raw track data from Spotify API response

        Returns:
            SpotifyTrack instance
        """
        track_data = data.get('track', data)
        return cls(
            id=track_data.get('id') or '',
            name=track_data.get('name') or '',
            uri=track_data['uri'],
            artists=[SpotifyArtist.from_spotify_data(a) for a in track_data.get('artists') or []],
            album_name=(track_data.get('album') or {}).get('name', ''),
            external_urls=track_data.get('external_urls') or {}
        )

    @property
    def artist_names(self) -> str:
        """Comma-separated artist names"""
        return ", ".join(artist.name for artist in self.artists if artist.name)


@dataclass
class SpotifyPlaylist:
    """
    Playlist created on the user's account

    Attributes:
        id: Spotify playlist id, used for the add-items calls
        name: Playlist title
        description: Playlist description
        public: Visibility flag
        external_urls: Links to the playlist; 'spotify' holds the public URL
        uri: Spotify URI (spotify:playlist:id)
        owner_id: Spotify user id of the owner
    """
    id: str
    name: str
    description: str = ""
    public: bool = False
    external_urls: Dict[str, str] = field(default_factory=dict)
    uri: Optional[str] = None
    owner_id: Optional[str] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyPlaylist':
        """
        Factory method for constructing SpotifyPlaylist from a playlist object

        Args:
            data: Raw playlist data (e.g. the create-playlist response)

        Returns:
            SpotifyPlaylist instance
        """
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            description=data.get('description') or '',
            public=bool(data.get('public', False)),
            external_urls=data.get('external_urls') or {},
            uri=data.get('uri'),
            owner_id=(data.get('owner') or {}).get('id')
        )

    @property
    def url(self) -> str:
        """
        Public web URL of the playlist

        Falls back to the canonical open.spotify.com URL built from the id
        when the response carries no external URL.
        """
        return self.external_urls.get('spotify') or f"https://open.spotify.com/playlist/{self.id}"


@dataclass
class PlaylistBuildResult:
    """
    Outcome of building a playlist from local tracks

    Attributes:
        playlist_id: Id of the created playlist
        name: Playlist name
        url: Public web URL of the playlist
        requested: Number of local tracks submitted
        added_uris: URIs added to the playlist, in input order
        not_found: Local tracks for which no match was found
    """
    playlist_id: str
    name: str
    url: str
    requested: int = 0
    added_uris: List[str] = field(default_factory=list)
    not_found: List[Track] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.added_uris)

    @property
    def not_found_count(self) -> int:
        return len(self.not_found)

    @property
    def match_rate(self) -> float:
        """Share of submitted tracks that were found, in percent"""
        if self.requested == 0:
            return 0.0
        return (self.added_count / self.requested) * 100

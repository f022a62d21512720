"""
Playlist builder: local tracks in, Spotify playlist out

Given an authorized session, a playlist name and a list of local tracks,
the builder:

1. Refreshes the session's access token
2. Creates an empty playlist (private by default)
3. Searches the catalog for every track ("track:<title> artist:<artist>",
   best match only); tracks without a match are reported, not fatal
4. Adds the matched URIs in batches of at most 100, in input order
5. Returns the playlist URL

Searches run one after another unless playlist.search_concurrency is set
above 1, in which case a small thread pool is used; the matched URIs keep
the input order either way.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

import requests
from spotipy.exceptions import SpotifyException

from ..config.auth import AuthSession, SpotifyAuth, get_auth
from ..config.settings import Settings, get_settings, SPOTIFY_MAX_BATCH_SIZE
from ..exceptions import ConfigError, NotAuthorizedError, PlaylistCreationError
from ..library.models import Track
from ..utils.helpers import build_search_query, chunked
from ..utils.logger import OperationLogger, get_logger
from .client import SpotifyClient
from .models import PlaylistBuildResult, SpotifyPlaylist

logger = get_logger(__name__)


class PlaylistBuilder:
    """
    Creates a Spotify playlist from local tracks

    The session is passed to every build() call; the builder keeps no
    credentials of its own.
    """

    def __init__(
        self,
        auth: Optional[SpotifyAuth] = None,
        settings: Optional[Settings] = None,
        client_factory: Optional[Callable[..., SpotifyClient]] = None
    ):
        """
        Args:
            auth: Authorization manager used to refresh the session
            settings: Settings to use, defaults to the global settings
            client_factory: Builds the API client for a session, defaults to SpotifyClient
        """
        self.settings = settings or get_settings()
        self.auth = auth or get_auth()
        self.client_factory = client_factory or SpotifyClient
        self.logger = logger

    @property
    def batch_size(self) -> int:
        """Items per add request, capped at Spotify's limit of 100"""
        return max(1, min(self._int_setting('batch_size'), SPOTIFY_MAX_BATCH_SIZE))

    @property
    def search_workers(self) -> int:
        return max(1, self._int_setting('search_concurrency'))

    def _int_setting(self, name: str) -> int:
        value = getattr(self.settings.playlist, name)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"playlist.{name} must be a whole number, got {value!r}", details={name: value})

    def build(self, session: Optional[AuthSession], name: str, tracks: List[Track]) -> PlaylistBuildResult:
        """
        Create a playlist and fill it with the matches for tracks

        Args:
            session: Authorized session
            name: Playlist name
            tracks: Local tracks to look up, in the order they should appear

        Returns:
            PlaylistBuildResult with the URL, added URIs and unmatched tracks

        Raises:
            NotAuthorizedError: If the session is missing or unauthorized;
                no remote call has been made in that case
            ConfigError: If playlist.batch_size or search_concurrency is not a number
            AuthError: If the access token cannot be refreshed
            PlaylistCreationError: If Spotify rejects the create or an add
        """
        if session is None or not session.is_authorized:
            raise NotAuthorizedError()

        batch_size = self.batch_size
        workers = self.search_workers

        self.auth.refresh(session)
        client = self.client_factory(session, self.settings)

        playlist = self._create_playlist(client, name)

        uris = self._resolve_uris(client, tracks, workers)
        added_uris = [uri for uri in uris if uri]
        not_found = [track for track, uri in zip(tracks, uris) if not uri]

        self._add_in_batches(client, playlist, added_uris, batch_size)

        result = PlaylistBuildResult(
            playlist_id=playlist.id,
            name=playlist.name or name,
            url=playlist.url,
            requested=len(tracks),
            added_uris=added_uris,
            not_found=not_found
        )

        self.logger.console_info(
            f"Playlist '{result.name}' ready: {result.added_count}/{result.requested} tracks added"
        )
        if not_found:
            self.logger.warning(f"{len(not_found)} tracks were not found on Spotify")

        return result

    def _create_playlist(self, client: SpotifyClient, name: str) -> SpotifyPlaylist:
        try:
            return client.create_playlist(
                name,
                public=bool(self.settings.playlist.public),
                description=self.settings.playlist.description
            )
        except (SpotifyException, requests.RequestException, KeyError) as e:
            raise PlaylistCreationError(
                f"Spotify rejected playlist creation: {e}",
                details={'name': name}
            )

    def _search_one(self, client: SpotifyClient, track: Track) -> Optional[str]:
        """URI of the best match for a track, None when missing or on error"""
        artist = None if track.has_unknown_artist else track.artist
        query = build_search_query(track.title, artist)

        try:
            uri = client.search_first_uri(query)
        except Exception as e:
            self.logger.warning(f"Search failed for {track.label}: {e}")
            return None

        if not uri:
            self.logger.warning(f"Not found on Spotify: {track.label}")
        return uri

    def _resolve_uris(self, client: SpotifyClient, tracks: List[Track], workers: int = 1) -> List[Optional[str]]:
        """
        Search every track

        Returns:
            One entry per input track, in input order (None for misses)
        """
        operation = OperationLogger(self.logger, "Searching", unit="track")
        operation.start(f"Searching Spotify for {len(tracks)} tracks")

        uris: List[Optional[str]] = []

        if workers == 1:
            for index, track in enumerate(tracks, 1):
                uris.append(self._search_one(client, track))
                operation.progress(track.label, index, len(tracks))
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                results = executor.map(lambda t: self._search_one(client, t), tracks)
                for index, (track, uri) in enumerate(zip(tracks, results), 1):
                    uris.append(uri)
                    operation.progress(track.label, index, len(tracks))

        found = sum(1 for uri in uris if uri)
        operation.complete(f"Found {found} of {len(tracks)} tracks")
        return uris

    def _add_in_batches(self, client: SpotifyClient, playlist: SpotifyPlaylist, uris: List[str], batch_size: int) -> None:
        for batch_number, batch in enumerate(chunked(uris, batch_size), 1):
            try:
                client.add_tracks(playlist.id, batch)
            except (SpotifyException, requests.RequestException) as e:
                raise PlaylistCreationError(
                    f"Spotify rejected adding tracks to '{playlist.name}': {e}",
                    details={'playlist_id': playlist.id, 'url': playlist.url, 'batch': batch_number}
                )
            self.logger.debug(f"Added batch {batch_number} ({len(batch)} tracks) to {playlist.id}")


def build_playlist(
    session: Optional[AuthSession],
    name: str,
    tracks: List[Track],
    auth: Optional[SpotifyAuth] = None,
    settings: Optional[Settings] = None
) -> str:
    """
    Create a playlist from local tracks and return its public URL

    See PlaylistBuilder.build() for the raised errors.
    """
    return PlaylistBuilder(auth=auth, settings=settings).build(session, name, tracks).url

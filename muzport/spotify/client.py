"""
Spotify Web API client bound to an explicit AuthSession

This module wraps spotipy with the small set of calls MUZPORT needs to build
a playlist: read the current user, create a playlist, search for a track
and add items to a playlist.

The client never owns credentials. It reads the access token from the
AuthSession it was given on every call, so a refresh performed by
SpotifyAuth.refresh() (which overwrites the session in place) is picked up
without rebuilding anything by hand.

Rate limiting:
- A configurable minimum interval between requests (network.rate_limit_delay)
- HTTP 429 responses are retried once after the Retry-After delay
- spotipy's own urllib3 retries are disabled so 429 handling stays here

Usage:

    client = SpotifyClient(session)
    playlist = client.create_playlist("Road trip", public=False)
    uri = client.search_first_uri("track:Creep artist:Radiohead")
    client.add_tracks(playlist.id, [uri])
"""

import threading
import time
from typing import List, Optional, Dict, Any

import spotipy
from spotipy.exceptions import SpotifyException

from ..config.auth import AuthSession
from ..config.settings import Settings, get_settings
from ..exceptions import NotAuthorizedError
from .models import SpotifyPlaylist, SpotifyTrack
from ..utils.logger import get_logger

# Suppress Spotipy's verbose logging to reduce noise in application logs
import logging
logging.getLogger('spotipy.client').setLevel(logging.ERROR)
logging.getLogger('requests.packages.urllib3').setLevel(logging.ERROR)


class SpotifyClient:
    """
    Thin Spotify Web API client with rate limiting

    Every public method goes through _make_request(), which throttles
    requests and retries once on HTTP 429. Errors other than rate limiting
    propagate as spotipy's SpotifyException (or requests exceptions for
    network failures) so callers decide what is fatal.
    """

    def __init__(self, session: AuthSession, settings: Optional[Settings] = None):
        """
        Initialize the client for one authorized session

        Args:
            session: Authorized session whose access token is used for every call
            settings: Settings to use, defaults to the global settings

        Raises:
            NotAuthorizedError: If the session is missing or has no access token
        """
        if session is None or not session.is_authorized:
            raise NotAuthorizedError()

        self.session = session
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self._client: Optional[spotipy.Spotify] = None
        self._client_token: Optional[str] = None

        self.last_request_time = 0
        self._rate_lock = threading.Lock()
        self.min_request_interval = float(self.settings.network.rate_limit_delay)

    @property
    def client(self) -> spotipy.Spotify:
        """
        spotipy client carrying the session's current access token

        Rebuilt whenever the session token changed since the last call.
        """
        if self._client is None or self._client_token != self.session.access_token:
            self._client = spotipy.Spotify(
                auth=self.session.access_token,
                requests_timeout=self.settings.network.request_timeout,
                retries=0,
                status_retries=0
            )
            self._client_token = self.session.access_token
        return self._client

    def _rate_limit(self) -> None:
        """Sleep so that consecutive requests are at least min_request_interval apart"""
        with self._rate_lock:
            current_time = time.time()
            time_since_last = current_time - self.last_request_time

            if time_since_last < self.min_request_interval:
                time.sleep(self.min_request_interval - time_since_last)

            self.last_request_time = time.time()

    def _make_request(self, func, *args, **kwargs) -> Any:
        """
        Rate-limited API request wrapper

        Args:
            func: Bound spotipy method to call
            *args: Positional arguments for the API method
            **kwargs: Keyword arguments for the API method

        Returns:
            API response data from the Spotify endpoint

        Raises:
            SpotifyException: For API errors, including a second 429
        """
        self._rate_limit()

        try:
            return func(*args, **kwargs)
        except SpotifyException as e:
            if e.http_status != 429:
                raise
            headers = e.headers or {}
            retry_after = int(headers.get('Retry-After', 1))
            self.logger.warning(f"Rate limited, waiting {retry_after} seconds...")
            time.sleep(retry_after)
            self._rate_limit()
            return func(*args, **kwargs)

    def get_current_user(self) -> Dict[str, Any]:
        """
        Profile of the user the session belongs to

        Returns:
            User object (id, display_name, ...)
        """
        return self._make_request(self.client.current_user)

    def create_playlist(self, name: str, public: bool = False, description: str = "") -> SpotifyPlaylist:
        """
        Create an empty playlist on the current user's account

        Args:
            name: Playlist title
            public: Visibility of the new playlist
            description: Playlist description

        Returns:
            The created playlist, including its public URL
        """
        user = self.get_current_user()
        data = self._make_request(
            self.client.user_playlist_create,
            user['id'],
            name,
            public=public,
            description=description
        )
        playlist = SpotifyPlaylist.from_spotify_data(data)
        self.logger.info(f"Created playlist '{playlist.name}' ({playlist.id})")
        return playlist

    def search_tracks(self, query: str, limit: int = 1) -> List[SpotifyTrack]:
        """
        Search the catalog for tracks

        Args:
            query: Search query, e.g. "track:Creep artist:Radiohead"
            limit: Maximum number of results (1-50)

        Returns:
            Matching tracks in Spotify's relevance order
        """
        results = self._make_request(
            self.client.search,
            q=query,
            type='track',
            limit=limit
        )

        tracks = []
        for track_data in (results or {}).get('tracks', {}).get('items', []):
            if track_data and track_data.get('uri'):
                tracks.append(SpotifyTrack.from_spotify_data(track_data))
        return tracks

    def search_first_uri(self, query: str) -> Optional[str]:
        """URI of the best match for a query, or None when nothing matches"""
        tracks = self.search_tracks(query, limit=self.settings.playlist.search_limit)
        if not tracks:
            return None

        best = tracks[0]
        self.logger.debug(f"Matched \"{query}\" to {best.name} by {best.artist_names}")
        return best.uri

    def add_tracks(self, playlist_id: str, uris: List[str]) -> Optional[str]:
        """
        Append items to a playlist in a single request

        The caller is responsible for keeping each call within Spotify's
        100-item limit.

        Returns:
            The playlist snapshot id after the change
        """
        result = self._make_request(self.client.playlist_add_items, playlist_id, uris)
        return (result or {}).get('snapshot_id')

"""
Application controller

MuzportApp ties the pieces together for a front end: it owns the AuthSession
obtained by connect(), the TrackListView filled by open_folder(), and turns
each user action into a single method call. Errors are raised as
MuzportError subclasses (or ValueError/KeyError for invalid input) and
left to the caller to display.
"""

from pathlib import Path
from typing import Callable, List, Optional, Union

from .config.auth import AuthSession, SpotifyAuth, get_auth
from .config.settings import Settings, get_settings
from .exceptions import NotAuthorizedError, ScanError
from .library.models import PlaylistRequest, Track
from .library.scanner import scan_directory
from .library.view import TrackListView
from .spotify.models import PlaylistBuildResult
from .spotify.playlist import PlaylistBuilder
from .utils.helpers import open_with_default_app
from .utils.logger import get_logger
from .utils.validation import validate_playlist_name


class MuzportApp:
    """
    User actions for one MUZPORT session

    The session lives only on this object: it is created by connect() and
    passed explicitly to the playlist builder.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        auth: Optional[SpotifyAuth] = None,
        builder: Optional[PlaylistBuilder] = None,
        opener: Callable[[Union[str, Path]], None] = open_with_default_app
    ):
        self.settings = settings or get_settings()
        self.auth = auth or get_auth()
        self.builder = builder or PlaylistBuilder(auth=self.auth, settings=self.settings)
        self.opener = opener
        self.logger = get_logger(__name__)

        self.view = TrackListView()
        self.session: Optional[AuthSession] = None
        self.folder: Optional[Path] = None

    @property
    def is_connected(self) -> bool:
        return self.session is not None and self.session.is_authorized

    def connect(self, timeout: Optional[float] = None, open_browser: Optional[Callable[[str], object]] = None) -> AuthSession:
        """
        Run the Spotify authorization flow

        Raises:
            ConfigError: If client credentials are missing
            AuthError: If the user does not complete the authorization
        """
        self.session = self.auth.authorize(timeout=timeout, open_browser=open_browser)
        self.logger.console_info("Connected to Spotify")
        return self.session

    def disconnect(self) -> None:
        """Forget the in-memory session"""
        self.session = None

    def open_folder(self, path: Union[str, Path]) -> List[Track]:
        """
        Scan a folder and load its tracks into the view

        A folder that cannot be scanned yields an empty list; the reason is
        logged as a warning.

        Returns:
            The loaded tracks
        """
        try:
            tracks = scan_directory(path, settings=self.settings)
        except ScanError as e:
            self.logger.warning(f"No tracks loaded: {e}")
            tracks = []

        self.folder = Path(path).expanduser()
        self.view.load(tracks)
        return self.view.tracks

    def preview(self, path: Union[str, Path]) -> None:
        """Open a local file with the default application"""
        self.opener(path)

    def set_filters(self, artist: Optional[str] = None, genre: Optional[str] = None, year: Optional[str] = None) -> List[Track]:
        self.view.set_filters(artist=artist, genre=genre, year=year)
        return self.view.filtered()

    def edit_track(self, path: str, title: Optional[str], artist: Optional[str]) -> Track:
        """Change title and/or artist of a loaded track"""
        return self.view.edit(path, title, artist)

    def remove_track(self, path: str) -> bool:
        """Hide a track from the list until the next folder scan"""
        return self.view.remove(path)

    def can_create_playlist(self, name: Optional[str]) -> bool:
        return self.view.can_create_playlist(self.is_connected, name)

    def build_request(self, name: str) -> PlaylistRequest:
        return PlaylistRequest(name=name.strip(), tracks=self.view.filtered())

    def create_playlist(self, name: Optional[str]) -> PlaylistBuildResult:
        """
        Create a playlist with the currently visible tracks

        On success the view is reset (tracks, removals and filters cleared).

        Raises:
            NotAuthorizedError: If connect() has not succeeded
            ValueError: If the name is blank or no track is visible
            AuthError, PlaylistCreationError: From the playlist builder
        """
        if not self.is_connected:
            raise NotAuthorizedError()

        is_valid, error = validate_playlist_name(name)
        if not is_valid:
            raise ValueError(error)

        request = self.build_request(name)
        if not request.tracks:
            raise ValueError("No tracks to add: load a folder or relax the filters")

        result = self.builder.build(self.session, request.name, request.tracks)
        self.view.reset()
        return result

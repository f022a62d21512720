"""Test configuration and fixtures"""

import pytest
import tempfile
import time
from pathlib import Path
from unittest.mock import Mock

from muzport.config.auth import AuthSession, SpotifyAuth
from muzport.config.settings import Settings
from muzport.library.models import Track
from muzport.spotify.models import SpotifyPlaylist


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def settings(temp_dir):
    """Real settings with test credentials, an ephemeral callback port and no throttling"""
    settings = Settings(config_path=str(temp_dir / "missing.yaml"))
    settings.config_dir = temp_dir / ".muzport"
    settings.spotify.client_id = "test_client_id"
    settings.spotify.client_secret = "test_client_secret"
    settings.spotify.redirect_url = "http://127.0.0.1:0/callback"
    settings.scan.extensions = ["mp3", "flac", "m4a"]
    settings.scan.recursive = True
    settings.scan.follow_symlinks = True
    settings.scan.ignore_hidden = False
    settings.playlist.public = False
    settings.playlist.description = "Playlist created with MUZPORT"
    settings.playlist.batch_size = 100
    settings.playlist.search_limit = 1
    settings.playlist.search_concurrency = 1
    settings.network.rate_limit_delay = 0
    settings.logging.file = ""
    return settings


@pytest.fixture
def session():
    """Authorized in-memory session"""
    return AuthSession(
        access_token="access_123",
        refresh_token="refresh_123",
        expires_at=int(time.time()) + 3600,
        scope="playlist-modify-public playlist-modify-private"
    )


@pytest.fixture
def mock_auth(session):
    """SpotifyAuth double whose refresh returns the session unchanged"""
    auth = Mock(spec=SpotifyAuth)
    auth.refresh.side_effect = lambda s: s
    auth.authorize.return_value = session
    return auth


@pytest.fixture
def make_track():
    """Factory for Track records with sensible defaults"""
    def _make(title="Song", artist="Artist", genre="Rock", year=2000, path=None):
        return Track(
            artist=artist,
            title=title,
            genre=genre,
            year=year,
            path=path or f"/music/{artist} - {title}.mp3"
        )
    return _make


@pytest.fixture
def sample_tracks(make_track):
    """Small library with varied artists, genres and years"""
    return [
        make_track("So What", "Miles Davis", "Jazz", 1959, "/music/jazz/so_what.mp3"),
        make_track("Take Five", "Dave Brubeck", "Jazz", 1959, "/music/jazz/take_five.flac"),
        make_track("Blue in Green", "Miles Davis", "Cool Jazz", 1959, "/music/jazz/blue.m4a"),
        make_track("Creep", "Radiohead", "Alternative Rock", 1992, "/music/rock/creep.mp3"),
        make_track("Karma Police", "Radiohead", "Alternative Rock", 1997, "/music/rock/karma.mp3"),
        make_track("Intro", "Unknown Artist", "Unknown", None, "/music/misc/intro.mp3"),
    ]


@pytest.fixture
def created_playlist():
    """Playlist as returned by the create call"""
    return SpotifyPlaylist(
        id="playlist_123",
        name="Test Playlist",
        description="Playlist created with MUZPORT",
        public=False,
        external_urls={'spotify': 'https://open.spotify.com/playlist/playlist_123'}
    )


@pytest.fixture
def fake_client(created_playlist):
    """SpotifyClient double: every search finds a URI derived from the query"""
    client = Mock()
    client.create_playlist.return_value = created_playlist
    client.search_first_uri.side_effect = lambda query: f"spotify:track:{query}"
    client.add_tracks.return_value = "snapshot"
    return client


@pytest.fixture
def audio_tags():
    """
    Patch target helper: maps file names to the easy-tag dicts mutagen returns

    A value of None makes the fake MutagenFile return None (unrecognized
    format); an Exception instance is raised instead.
    """
    def _factory(mapping):
        def fake_file(path, easy=False):
            name = Path(path).name
            value = mapping.get(name, {})
            if isinstance(value, Exception):
                raise value
            if value is None:
                return None
            return Mock(tags=value)
        return fake_file
    return _factory

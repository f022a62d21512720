"""
Spotify integration package

This package holds everything that talks to the Spotify Web API:

1. Client Module (client.py):
   - SpotifyClient: spotipy wrapper bound to an explicit AuthSession
   - Rate limiting and HTTP 429 handling

2. Models Module (models.py):
   - SpotifyTrack, SpotifyArtist: search results
   - SpotifyPlaylist: the created playlist and its public URL
   - PlaylistBuildResult: what was added and what was not found

3. Playlist Module (playlist.py):
   - PlaylistBuilder: refresh, create, search, add in batches of 100
   - build_playlist(): one-call helper returning the playlist URL

Usage Example:

    from muzport.spotify import build_playlist

    url = build_playlist(session, "Road trip", tracks)
"""

from .client import SpotifyClient
from .models import SpotifyArtist, SpotifyTrack, SpotifyPlaylist, PlaylistBuildResult
from .playlist import PlaylistBuilder, build_playlist

__all__ = [
    # Client
    'SpotifyClient',

    # Models
    'SpotifyArtist',
    'SpotifyTrack',
    'SpotifyPlaylist',
    'PlaylistBuildResult',

    # Playlist creation
    'PlaylistBuilder',
    'build_playlist',
]

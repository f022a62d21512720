"""
MUZPORT: create Spotify playlists from local music folders

MUZPORT scans a folder for music files, reads their embedded tags (artist,
title, genre, year), lets you filter and lightly edit the resulting list, and
then creates a private Spotify playlist with the matching tracks.

Packages and modules:

**Configuration (`muzport/config/`)**
- YAML + environment variable settings
- Spotify OAuth2 authorization through a short-lived loopback listener;
  tokens stay in memory for the lifetime of the process

**Library (`muzport/library/`)**
- Folder scanner built on mutagen
- Track model and the filterable, editable track list view

**Spotify (`muzport/spotify/`)**
- Thin spotipy wrapper bound to an explicit AuthSession
- Playlist builder: create, search, add in batches of 100

**Application (`muzport/app.py`, `muzport/main.py`)**
- User actions (connect, open folder, preview, edit, remove, create playlist)
- Click command-line interface with an interactive session

Quick start:

    export SPOTIFY_CLIENT_ID=...
    export SPOTIFY_CLIENT_SECRET=...
    muzport create ~/Music/Jazz --name "Jazz night" --year 1959
"""

__version__ = "0.1.0"

__author__ = "MUZPORT contributors"

__description__ = "Create Spotify playlists from the tags of your local music files"

__all__ = [
    "__version__",
    "__author__",
    "__description__"
]

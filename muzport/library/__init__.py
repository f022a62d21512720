"""
Local music library
Folder scanning, track model and the filterable track list
"""

from .models import Track, PlaylistRequest, UNKNOWN_ARTIST, UNKNOWN_TITLE, UNKNOWN_GENRE
from .scanner import scan_directory, read_track, iter_audio_files
from .view import TrackListView

__all__ = [
    'Track',
    'PlaylistRequest',
    'UNKNOWN_ARTIST',
    'UNKNOWN_TITLE',
    'UNKNOWN_GENRE',
    'scan_directory',
    'read_track',
    'iter_audio_files',
    'TrackListView',
]

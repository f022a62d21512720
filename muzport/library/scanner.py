"""
Music folder scanner

Walks a folder, picks the files whose extension is a recognized audio
format and reads their tags with mutagen's "easy" interface, which exposes
the same keys (artist, title, genre, date) for ID3, Vorbis comments and MP4
atoms. Each readable file becomes a Track; files mutagen cannot open are
skipped with a warning.

Usage:

    tracks = scan_directory("~/Music/Jazz")
    for track in tracks:
        print(track.label, track.year)
"""

import os
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

from mutagen import File as MutagenFile

from ..config.settings import Settings, get_settings
from ..exceptions import ScanError
from ..utils.helpers import first_value, parse_year
from ..utils.logger import create_operation_logger, get_logger
from .models import Track, UNKNOWN_ARTIST, UNKNOWN_GENRE, UNKNOWN_TITLE

logger = get_logger(__name__)


def _is_hidden(name: str) -> bool:
    return name.startswith('.')


def iter_audio_files(
    root: Union[str, Path],
    extensions: Sequence[str],
    recursive: bool = True,
    follow_symlinks: bool = True,
    ignore_hidden: bool = False
) -> Iterator[Path]:
    """
    Yield audio files below root in a stable (sorted) order

    Args:
        root: Folder to walk
        extensions: Recognized extensions, lowercase and without the dot
        recursive: Descend into subfolders
        follow_symlinks: Follow symlinked folders and files
        ignore_hidden: Skip dot-files and dot-folders

    Note:
        Unreadable subfolders are logged and skipped. Symlinked folders that
        point back into an already visited folder are not walked twice.
    """
    wanted = {ext.lower().lstrip('.') for ext in extensions}
    visited = set()

    def on_walk_error(error: OSError) -> None:
        logger.warning(f"Cannot read folder {error.filename}: {error.strerror}")

    for dirpath, dirnames, filenames in os.walk(root, followlinks=follow_symlinks, onerror=on_walk_error):
        real_dir = os.path.realpath(dirpath)
        if real_dir in visited:
            dirnames[:] = []
            continue
        visited.add(real_dir)

        if ignore_hidden:
            dirnames[:] = [d for d in dirnames if not _is_hidden(d)]
        dirnames.sort()
        if not recursive:
            dirnames[:] = []

        for filename in sorted(filenames):
            if ignore_hidden and _is_hidden(filename):
                continue

            suffix = os.path.splitext(filename)[1].lower().lstrip('.')
            if suffix not in wanted:
                continue

            file_path = Path(dirpath) / filename
            if not follow_symlinks and file_path.is_symlink():
                continue
            yield file_path


def read_track(path: Union[str, Path]) -> Optional[Track]:
    """
    Read tags from one audio file

    Missing tags fall back to placeholder values; a file without any tag
    block still produces a Track.

    Args:
        path: Audio file path

    Returns:
        Track, or None when mutagen cannot read the file
    """
    try:
        audio = MutagenFile(str(path), easy=True)
    except Exception as e:
        logger.warning(f"Could not read tags from {path}: {e}")
        return None

    if audio is None:
        logger.warning(f"Unrecognized audio format, skipping: {path}")
        return None

    tags = audio.tags or {}

    # Vorbis comments sometimes carry 'year' instead of 'date'
    year = parse_year(tags.get('date')) or parse_year(tags.get('year'))

    return Track(
        artist=first_value(tags.get('artist')) or UNKNOWN_ARTIST,
        title=first_value(tags.get('title')) or UNKNOWN_TITLE,
        genre=first_value(tags.get('genre')) or UNKNOWN_GENRE,
        year=year,
        path=str(path)
    )


def scan_directory(root: Union[str, Path], settings: Optional[Settings] = None) -> List[Track]:
    """
    Scan a folder and return a Track for every readable audio file

    Args:
        root: Folder to scan
        settings: Settings to use, defaults to the global settings

    Returns:
        Tracks in path order, one per distinct file (symlinks and repeated
        paths resolving to the same file are kept once)

    Raises:
        ScanError: If root does not exist, is not a folder or cannot be read
    """
    settings = settings or get_settings()
    root_path = Path(root).expanduser().absolute()

    if not root_path.exists():
        raise ScanError(f"Folder does not exist: {root_path}", details={'path': str(root_path)})
    if not root_path.is_dir():
        raise ScanError(f"Not a folder: {root_path}", details={'path': str(root_path)})

    try:
        with os.scandir(root_path):
            pass
    except OSError as e:
        raise ScanError(f"Cannot read folder {root_path}: {e.strerror}", details={'path': str(root_path)})

    files = list(iter_audio_files(
        root_path,
        settings.get_extensions(),
        recursive=settings.scan.recursive,
        follow_symlinks=settings.scan.follow_symlinks,
        ignore_hidden=settings.scan.ignore_hidden
    ))

    operation = create_operation_logger(__name__, "Scanning", unit="file")
    operation.start(f"Scanning {root_path} ({len(files)} audio files)")

    tracks = []
    seen_paths = set()
    skipped = 0

    for index, file_path in enumerate(files, 1):
        real_path = os.path.realpath(file_path)
        if real_path in seen_paths:
            continue
        seen_paths.add(real_path)

        track = read_track(file_path)
        if track is None:
            skipped += 1
        else:
            tracks.append(track)

        operation.progress(file_path.name, index, len(files))

    summary = f"Found {len(tracks)} tracks"
    if skipped:
        summary += f" ({skipped} unreadable files skipped)"
    operation.complete(summary)

    return tracks

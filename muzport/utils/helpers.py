"""
Utility functions and helpers for MUZPORT
Common functions for batching, tag value parsing, search queries and opening files
"""

import os
import platform
import re
import shutil
import subprocess
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, TypeVar, Union

import click

from ..exceptions import MuzportError


T = TypeVar('T')


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """
    Split a sequence into consecutive chunks of at most `size` items

    Args:
        items: Sequence to split
        size: Maximum chunk length (must be positive)

    Returns:
        Iterator over lists, in input order; the last one may be shorter
    """
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def first_value(value: Any) -> Optional[str]:
    """
    Reduce a tag value to a single stripped string

    mutagen returns most text frames as lists; the first non-empty entry wins.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        for item in value:
            text = first_value(item)
            if text:
                return text
        return None
    text = str(value).strip()
    return text or None


def parse_year(value: Any) -> Optional[int]:
    """
    Extract a four-digit year from a tag value

    Handles "1999", "1999-05-01", "05/1999" and list-wrapped values.

    Returns:
        The year as int, or None when no four-digit group is present
    """
    text = first_value(value)
    if not text:
        return None
    match = re.search(r'(\d{4})', text)
    return int(match.group(1)) if match else None


def parse_year_filter(text: Optional[str]) -> Optional[int]:
    """
    Parse the year filter field the way a number input is read

    Leading whitespace is skipped and the leading integer is used
    ("1995" and "1995 " give 1995); anything without a leading integer
    means "no year filter".
    """
    if text is None:
        return None
    match = re.match(r'^\s*([+-]?\d+)', str(text))
    return int(match.group(1)) if match else None


def build_search_query(title: str, artist: Optional[str] = None) -> str:
    """
    Build a Spotify track search query using field filters

    Args:
        title: Track title
        artist: Artist name, or None to search by title only

    Returns:
        Query such as "track:Creep artist:Radiohead"
    """
    query = f"track:{title.strip()}"
    if artist and artist.strip():
        query += f" artist:{artist.strip()}"
    return query


def format_track_label(artist: str, title: str) -> str:
    """Human-readable "Artist - Title" label"""
    return f"{artist} - {title}"


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix

    Args:
        text: Original text
        max_length: Maximum length including suffix
        suffix: Suffix to add when truncating

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    truncate_length = max_length - len(suffix)
    if truncate_length <= 0:
        return suffix[:max_length]

    return text[:truncate_length] + suffix


def is_wsl() -> bool:
    """True when running inside Windows Subsystem for Linux"""
    if os.getenv('WSL_DISTRO_NAME'):
        return True
    return 'microsoft' in platform.release().lower()


def open_with_default_app(path: Union[str, Path]) -> None:
    """
    Open a local file with the operating system's default application

    Under WSL the file is handed to `wslview`, which translates /mnt/x/...
    paths for Windows; everywhere else click.launch() picks the platform
    launcher.

    Raises:
        MuzportError: If the file does not exist or the launcher fails
    """
    file_path = Path(path).expanduser()
    if not file_path.exists():
        raise MuzportError(f"File not found: {file_path}", details={'path': str(file_path)})

    if is_wsl() and shutil.which('wslview'):
        try:
            result = subprocess.run(['wslview', str(file_path)], capture_output=True, text=True)
        except OSError as e:
            raise MuzportError(f"Could not run wslview: {e}", details={'path': str(file_path)})
        if result.returncode != 0:
            raise MuzportError(
                f"wslview could not open {file_path}",
                details={'path': str(file_path), 'stderr': result.stderr.strip()}
            )
        return

    exit_code = click.launch(str(file_path))
    if exit_code:
        raise MuzportError(
            f"Could not open {file_path} (launcher exit code {exit_code})",
            details={'path': str(file_path)}
        )

"""
Input validation utilities
"""
import os
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse

from .helpers import parse_year_filter


def validate_music_directory(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a folder chosen for scanning

    Args:
        path: Directory path to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path or not str(path).strip():
        return False, "Folder path cannot be empty"

    path_obj = Path(path).expanduser()
    if not path_obj.exists():
        return False, f"Folder does not exist: {path_obj}"

    if not path_obj.is_dir():
        return False, f"Not a folder: {path_obj}"

    if not os.access(path_obj, os.R_OK):
        return False, f"Folder is not readable: {path_obj}"

    return True, None


def validate_playlist_name(name: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate playlist name

    Only a blank name is rejected.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not name or not name.strip():
        return False, "Playlist name cannot be empty"

    return True, None


def validate_year_filter(text: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate the year filter field

    An empty field is valid (no filter). Anything else must start with
    an integer.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if text is None or not str(text).strip():
        return True, None

    if parse_year_filter(text) is None:
        return False, f"Year filter must be a number, got '{text}'"

    return True, None


def validate_redirect_url(url: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate the OAuth redirect URL

    The callback listener binds to the URL's host and port, so it must be
    a plain http URL on a loopback address with an explicit port.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not url.strip():
        return False, "Redirect URL cannot be empty"

    parsed = urlparse(url.strip())
    if parsed.scheme != 'http':
        return False, f"Redirect URL must use http, got '{parsed.scheme}'"

    if parsed.hostname not in ('127.0.0.1', 'localhost'):
        return False, f"Redirect URL must point at a loopback address, got '{parsed.hostname}'"

    try:
        port = parsed.port
    except ValueError:
        return False, f"Redirect URL has an invalid port: {url}"
    if port is None:
        return False, "Redirect URL must include a port"

    return True, None

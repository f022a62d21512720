"""
Exception classes for MUZPORT.

Every error raised by MUZPORT's own code derives from MuzportError, so the
command-line boundary can catch all of them with a single except clause and
turn them into a user-visible message.

Exception Hierarchy:
    MuzportError (base)
        ConfigError - Missing or invalid configuration
        AuthError - Authorization never completed or token exchange failed
        NotAuthorizedError - Playlist action attempted without a session
        PlaylistCreationError - Spotify rejected a create/add call
        ScanError - Music folder missing, unreadable or not walkable
"""

from typing import Optional


class MuzportError(Exception):
    """
    Base exception for all MUZPORT errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (paths, status codes).

    Example:
        try:
            app.create_playlist(name)
        except MuzportError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary with additional context. Common keys:
                     - 'path': file or folder involved in the error
                     - 'status_code': HTTP status returned by Spotify
                     - 'original_error': the wrapped exception as text
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(MuzportError):
    """
    Raised when the configuration cannot be used.

    Common causes:
        - SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET not set
        - Redirect URL is not a loopback http URL
        - Config file has invalid YAML syntax
    """
    pass


class AuthError(MuzportError):
    """
    Raised when the Spotify authorization handshake does not produce a session.

    Common causes:
        - The user never completed the browser redirect (timeout)
        - Spotify redirected back with an error instead of a code
        - The callback port is already taken by another process
        - The token endpoint rejected the code or the refresh token
        - Another authorization attempt is already running
    """
    pass


class NotAuthorizedError(MuzportError):
    """
    Raised when a playlist action is attempted before connecting to Spotify.

    No remote call is made when this is raised.
    """

    def __init__(self, message: str = "Not connected to Spotify. Connect first.",
                 details: Optional[dict] = None) -> None:
        super().__init__(message, details)


class PlaylistCreationError(MuzportError):
    """
    Raised when Spotify rejects the playlist create or add-items call.

    Per-track search misses never raise this; they only shrink the playlist.

    Example:
        raise PlaylistCreationError(
            "Failed to create playlist 'Road Trip'",
            details={'status_code': 403, 'original_error': str(e)}
        )
    """
    pass


class ScanError(MuzportError):
    """
    Raised when a music folder cannot be scanned at all.

    The presentation layer treats this as "no tracks found" rather than a
    fatal error. Individual unreadable files never raise this; they are
    skipped by the scanner.
    """
    pass

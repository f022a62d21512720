"""
Configuration package for MUZPORT

Two components live here:

1. Settings Management (settings.py):
   - Application configuration from YAML files and environment variables
   - Settings validation
   - Singleton access through get_settings()

2. Authorization (auth.py):
   - Spotify OAuth2 authorization code flow with a loopback callback listener
   - In-memory AuthSession objects, refreshed on demand, never persisted

Typical usage:

    from muzport.config import get_settings, get_auth

    settings = get_settings()
    session = get_auth().authorize()
"""

from .settings import get_settings, reload_settings, Settings
from .auth import get_auth, reset_auth, SpotifyAuth, AuthSession, CallbackServer

__all__ = [
    # Settings management
    'get_settings',
    'reload_settings',
    'Settings',

    # Spotify authorization
    'get_auth',
    'reset_auth',
    'SpotifyAuth',
    'AuthSession',
    'CallbackServer',
]

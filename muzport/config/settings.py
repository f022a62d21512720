"""
Configuration management for MUZPORT

This module handles loading, validation, and management of application settings
from YAML files and environment variables. It provides a centralized configuration
object shared by the scanner, the authorization flow and the playlist builder.

The configuration is organized into logical sections using dataclasses:
- Spotify API settings (credentials, redirect URL, scopes)
- Folder scanning preferences (extensions, symlinks, hidden files)
- Playlist creation options (visibility, description, batching)
- Logging and network settings

Sensitive data (client id and secret) should come from environment variables
or a .env file, while non-sensitive settings can be stored in YAML files.
Tokens are never part of the configuration: they live in memory only.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field, asdict
from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()


# Spotify caps the number of items per add-to-playlist request
SPOTIFY_MAX_BATCH_SIZE = 100


@dataclass
class SpotifyConfig:
    """
    Spotify API configuration and authorization settings

    The redirect URL must be registered in the Spotify developer dashboard
    and must point at a loopback address: MUZPORT listens on that exact
    host and port while waiting for the authorization callback.
    """
    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = "http://127.0.0.1:1234/callback"
    scope: str = "playlist-modify-public playlist-modify-private"
    auth_timeout: int = 300


@dataclass
class ScanConfig:
    """
    Music folder scanning options

    Controls which files are considered music and how the folder tree is
    walked. Extensions are given without the leading dot.
    """
    extensions: List[str] = field(default_factory=lambda: ["mp3", "flac", "m4a"])
    recursive: bool = True
    follow_symlinks: bool = True
    ignore_hidden: bool = False


@dataclass
class PlaylistConfig:
    """
    Playlist creation options

    search_concurrency greater than 1 runs track searches through a small
    thread pool; results keep the input order either way.
    """
    public: bool = False
    description: str = "Playlist created with MUZPORT"
    batch_size: int = SPOTIFY_MAX_BATCH_SIZE
    search_limit: int = 1
    search_concurrency: int = 1


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    A relative log file is placed inside the config directory. An empty
    value disables file logging.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class NetworkConfig:
    """
    Network and HTTP configuration settings
    """
    request_timeout: int = 30
    rate_limit_delay: float = 0.1


class Settings:
    """
    Main settings class that manages all configuration

    Loads settings from YAML files, overrides them with environment
    variables and exposes each section as an attribute:

        settings = get_settings()
        settings.spotify.redirect_url
        settings.scan.extensions
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".muzport"

        # Initialize all configuration objects with default values
        self.spotify = SpotifyConfig()
        self.scan = ScanConfig()
        self.playlist = PlaylistConfig()
        self.logging = LoggingConfig()
        self.network = NetworkConfig()

        # Load configuration from various sources in order of precedence
        self._load_config()
        self._load_environment_variables()

    def _sections(self) -> Dict[str, Any]:
        return {
            'spotify': self.spotify,
            'scan': self.scan,
            'playlist': self.playlist,
            'logging': self.logging,
            'network': self.network,
        }

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        The first existing file wins, searched in this order: explicit path,
        ~/.muzport/config.yaml, config/config.yaml, config.yaml.
        """
        config_paths = [
            self.config_path,
            self.config_dir / "config.yaml",
            Path("config/config.yaml"),
            Path("config.yaml")
        ]

        config_data = {}
        for path in config_paths:
            if path and Path(path).exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except Exception as e:
                    print(f"Warning: Failed to load config from {path}: {e}")

        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Only keys that exist on the matching dataclass are applied; unknown
        sections and keys are ignored.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self) -> None:
        """
        Load sensitive configuration from environment variables

        Environment variables take precedence over file-based configuration.
        """
        env_mappings = {
            'SPOTIFY_CLIENT_ID': lambda v: setattr(self.spotify, 'client_id', v),
            'SPOTIFY_CLIENT_SECRET': lambda v: setattr(self.spotify, 'client_secret', v),
            'SPOTIFY_REDIRECT_URL': lambda v: setattr(self.spotify, 'redirect_url', v),
            'MUZPORT_LOG_LEVEL': lambda v: setattr(self.logging, 'level', v),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def get_config_directory(self) -> Path:
        """Get the expanded config directory path"""
        return self.config_dir.expanduser()

    def get_log_file_path(self) -> Optional[Path]:
        """
        Get the log file path, or None when file logging is disabled

        Relative paths are resolved against the config directory.
        """
        if not self.logging.file:
            return None
        log_path = Path(self.logging.file).expanduser()
        if log_path.is_absolute():
            return log_path
        return self.get_config_directory() / log_path

    def get_extensions(self) -> List[str]:
        """Normalized scan extensions: lowercase, without leading dot"""
        return [e.strip().lower().lstrip('.') for e in self.scan.extensions if e and e.strip()]

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Save current configuration to file

        Serializes the current configuration to YAML, leaving out the Spotify
        client credentials.

        Args:
            path: Custom path to save config, defaults to user config directory

        Returns:
            Path the configuration was written to

        Raises:
            Exception: If the configuration cannot be saved
        """
        if not path:
            path = self.get_config_directory() / "config.yaml"
        else:
            path = Path(path)

        config_data = {name: asdict(section) for name, section in self._sections().items()}

        # Remove sensitive data from saved config
        config_data['spotify']['client_id'] = ""
        config_data['spotify']['client_secret'] = ""

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                yaml.dump(config_data, f, default_flow_style=False, indent=2)
        except Exception as e:
            raise Exception(f"Failed to save config to {path}: {e}")
        return path

    def validate(self) -> List[str]:
        """
        Validate current configuration

        Returns:
            List of human-readable problems, empty when the configuration is usable
        """
        # utils.logger imports this module, so the validator is imported late
        from ..utils.validation import validate_redirect_url

        errors = []

        if not self.spotify.client_id or not self.spotify.client_secret:
            errors.append("Spotify client_id and client_secret are required "
                          "(set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET)")

        is_valid, error = validate_redirect_url(self.spotify.redirect_url)
        if not is_valid:
            errors.append(error)

        if not self.get_extensions():
            errors.append("At least one scan extension is required")

        try:
            if not 1 <= int(self.playlist.batch_size) <= SPOTIFY_MAX_BATCH_SIZE:
                errors.append(f"Playlist batch_size must be between 1 and {SPOTIFY_MAX_BATCH_SIZE}")
        except (TypeError, ValueError):
            errors.append(f"Playlist batch_size must be a whole number, got {self.playlist.batch_size!r}")

        try:
            if int(self.playlist.search_concurrency) < 1:
                errors.append("Playlist search_concurrency must be at least 1")
        except (TypeError, ValueError):
            errors.append(f"Playlist search_concurrency must be a whole number, got {self.playlist.search_concurrency!r}")

        return errors

    def __str__(self) -> str:
        sections = [
            f"Redirect: {self.spotify.redirect_url}",
            f"Extensions: {', '.join(self.get_extensions())}",
            f"Public playlists: {self.playlist.public}",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance for singleton pattern
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance

    Returns:
        The global Settings instance
    """
    return settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Creates a new settings instance with updated configuration from files
    and environment variables.

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global settings
    settings = Settings(config_path)
    return settings

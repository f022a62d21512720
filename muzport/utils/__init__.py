"""
Utilities package
Common helpers, logging, and validation functions
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    OperationLogger,
    create_operation_logger,
    get_current_log_file
)
from .helpers import (
    chunked,
    first_value,
    parse_year,
    parse_year_filter,
    build_search_query,
    format_track_label,
    truncate_string,
    is_wsl,
    open_with_default_app
)
from .validation import (
    validate_music_directory,
    validate_playlist_name,
    validate_year_filter,
    validate_redirect_url
)

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'OperationLogger',
    'create_operation_logger',
    'get_current_log_file',

    # Helper exports
    'chunked',
    'first_value',
    'parse_year',
    'parse_year_filter',
    'build_search_query',
    'format_track_label',
    'truncate_string',
    'is_wsl',
    'open_with_default_app',

    # Validation exports
    'validate_music_directory',
    'validate_playlist_name',
    'validate_year_filter',
    'validate_redirect_url',
]

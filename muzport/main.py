"""
Main CLI interface for MUZPORT

This module provides the command-line interface: scanning a music folder,
creating a Spotify playlist from it, an interactive session for filtering
and editing the track list before creating the playlist, and the usual
authentication, configuration and diagnostics commands.

The CLI is built using Click framework and provides:
- Library commands (scan, create, session, preview)
- Authentication handling (auth login, auth status)
- Configuration management (config show, config set)
- System diagnostics (doctor)
"""

import logging
import shlex
import shutil
import sys
import click
import functools
from pathlib import Path
from typing import List, Optional

from . import __version__
from .app import MuzportApp
from .config.settings import get_settings, reload_settings
from .config.auth import get_auth, reset_auth
from .exceptions import MuzportError
from .library.models import Track
from .spotify.client import SpotifyClient
from .spotify.models import PlaylistBuildResult
from .utils.logger import configure_from_settings, get_logger, get_current_log_file
from .utils.helpers import is_wsl, open_with_default_app, truncate_string
from .utils.validation import (
    validate_music_directory,
    validate_playlist_name,
    validate_redirect_url,
    validate_year_filter
)


# Initialize logging system from configuration settings
configure_from_settings()
logger = get_logger(__name__)


def print_banner():
    """Print application banner to console"""
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                            MUZPORT                            ║
║                                                               ║
║     Turn a folder of music files into a Spotify playlist      ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """
    click.echo(click.style(banner, fg='green', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Catches every exception at the command boundary, logs it and prints a
    short message instead of a traceback.

    Args:
        func: The CLI command function to wrap

    Returns:
        Wrapped function with error handling
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            # Handle user cancellation gracefully
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)  # Standard exit code for SIGINT
        except Exception as e:
            # Log error for debugging and show user-friendly message
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)  # Standard exit code for general errors
    return wrapper


def format_track_line(index: int, track: Track) -> str:
    """One numbered line of the track table"""
    year = str(track.year) if track.year else "----"
    label = truncate_string(track.label, 50)
    genre = truncate_string(track.genre, 16)
    return f"{index:>4}. {label:<50}  {genre:<16}  {year}"


def print_tracks(tracks: List[Track], total: Optional[int] = None) -> None:
    if not tracks:
        click.echo("No tracks to show")
    for index, track in enumerate(tracks, 1):
        click.echo(format_track_line(index, track))
    if total is not None:
        click.echo(f"\nShowing {len(tracks)} of {total} tracks")


def print_build_result(result: PlaylistBuildResult) -> None:
    click.echo(click.style(f"\nPlaylist created: {result.name}", fg='green', bold=True))
    click.echo(f"   URL: {result.url}")
    click.echo(f"   Tracks added: {result.added_count}/{result.requested} ({result.match_rate:.0f}%)")

    if result.not_found:
        click.echo(click.style(f"   Not found on Spotify: {result.not_found_count}", fg='yellow'))
        for track in result.not_found:
            click.echo(f"      • {track.label}")


def check_year_option(year: Optional[str]) -> None:
    is_valid, error = validate_year_filter(year)
    if not is_valid:
        raise click.BadParameter(error, param_hint="'--year'")


# Main CLI group - root command that all subcommands attach to
@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    MUZPORT - Create Spotify playlists from your local music

    Scans a folder for music files, reads their tags, and builds a private
    Spotify playlist with the matching tracks.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"MUZPORT v{__version__}")
        return

    if config:
        reload_settings(config)
        reset_auth()
        configure_from_settings()
        click.echo(f"Loaded config: {config}")

    if verbose:
        ctx.obj['verbose'] = True
        logging.getLogger().setLevel(logging.DEBUG)
        logger.info("Verbose mode enabled")

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@cli.command()
@click.argument('folder', type=click.Path())
@click.option('--artist', default='', help='Only tracks whose artist contains this text')
@click.option('--genre', default='', help='Only tracks whose genre contains this text')
@click.option('--year', default='', help='Only tracks from this year')
@handle_error
def scan(folder, artist, genre, year):
    """
    List the tracks found in FOLDER

    Reads artist, title, genre and year from every recognized music file.
    """
    check_year_option(year)

    is_valid, error = validate_music_directory(folder)
    if not is_valid:
        raise MuzportError(error)

    app = MuzportApp()
    app.open_folder(folder)
    tracks = app.set_filters(artist=artist, genre=genre, year=year)
    print_tracks(tracks, total=app.view.total_count)


@cli.command()
@click.argument('folder', type=click.Path())
@click.option('--name', '-n', required=True, help='Playlist name')
@click.option('--artist', default='', help='Only tracks whose artist contains this text')
@click.option('--genre', default='', help='Only tracks whose genre contains this text')
@click.option('--year', default='', help='Only tracks from this year')
@click.option('--exclude', '-x', multiple=True, type=click.Path(), help='File to leave out (repeatable)')
@click.option('--public', is_flag=True, help='Create a public playlist')
@click.option('--dry-run', is_flag=True, help='Show the tracks that would be searched without connecting')
@handle_error
def create(folder, name, artist, genre, year, exclude, public, dry_run):
    """
    Create a Spotify playlist from the tracks in FOLDER

    Tracks are matched on Spotify by title and artist; tracks without a
    match are listed at the end.
    """
    check_year_option(year)

    is_valid, error = validate_playlist_name(name)
    if not is_valid:
        raise click.BadParameter(error, param_hint="'--name'")

    is_valid, error = validate_music_directory(folder)
    if not is_valid:
        raise MuzportError(error)

    settings = get_settings()
    if public:
        settings.playlist.public = True

    app = MuzportApp(settings=settings)
    app.open_folder(folder)
    app.set_filters(artist=artist, genre=genre, year=year)

    known_paths = {track.path for track in app.view.tracks}
    for path in exclude:
        if not app.remove_track(_match_path(path, known_paths)):
            click.echo(click.style(f"Not in the scanned list, ignoring: {path}", fg='yellow'))

    tracks = app.view.filtered()
    if not tracks:
        raise MuzportError("No tracks left to add: check the folder and the filters")

    click.echo(f"{len(tracks)} tracks selected for '{name}'")

    if dry_run:
        print_tracks(tracks, total=app.view.total_count)
        return

    click.echo("Opening the browser for Spotify authorization...")
    app.connect()

    result = app.create_playlist(name)
    print_build_result(result)


def _match_path(path: str, known_paths) -> str:
    """Map a user-given path onto the absolute path used by the scanner"""
    absolute = str(Path(path).expanduser().absolute())
    return absolute if absolute in known_paths else path


SESSION_HELP = """
Commands:
   connect                    Authorize MUZPORT with Spotify
   open <folder>              Scan a folder (replaces the current list)
   list                       Show the visible tracks
   filter artist|genre|year <text>
                              Set a filter (no text clears it)
   clear                      Clear all filters
   remove <n>                 Remove track n from the list
   edit <n>                   Change title/artist of track n
   preview <n>                Open track n with the default player
   create <name>              Create the playlist with the visible tracks
   help                       Show this help
   quit                       Leave the session
"""


def _pick(app: MuzportApp, argument: str) -> Track:
    """Resolve a 1-based index into the visible list"""
    try:
        index = int(argument)
    except ValueError:
        raise ValueError(f"Expected a track number, got '{argument}'")

    tracks = app.view.filtered()
    if not 1 <= index <= len(tracks):
        raise ValueError(f"Track number must be between 1 and {len(tracks)}")
    return tracks[index - 1]


def run_session_command(app: MuzportApp, line: str) -> bool:
    """
    Execute one interactive command

    Returns:
        False when the session should end
    """
    parts = shlex.split(line)
    if not parts:
        return True

    command, args = parts[0].lower(), parts[1:]
    argument = " ".join(args)

    if command in ('quit', 'exit', 'q'):
        return False

    if command in ('help', '?'):
        click.echo(SESSION_HELP)
    elif command == 'connect':
        app.connect()
    elif command == 'open':
        if not argument:
            raise ValueError("Usage: open <folder>")
        app.open_folder(argument)
        click.echo(f"Loaded {app.view.total_count} tracks")
    elif command == 'list':
        print_tracks(app.view.filtered(), total=app.view.total_count)
    elif command == 'filter':
        if not args or args[0] not in ('artist', 'genre', 'year'):
            raise ValueError("Usage: filter artist|genre|year <text>")
        value = " ".join(args[1:])
        if args[0] == 'year':
            is_valid, error = validate_year_filter(value)
            if not is_valid:
                raise ValueError(error)
        app.set_filters(**{args[0]: value})
        click.echo(f"{app.view.filtered_count} of {app.view.total_count} tracks match")
    elif command == 'clear':
        app.view.clear_filters()
        click.echo(f"{app.view.filtered_count} of {app.view.total_count} tracks match")
    elif command == 'remove':
        track = _pick(app, argument)
        app.remove_track(track.path)
        click.echo(f"Removed: {track.label}")
    elif command == 'edit':
        track = _pick(app, argument)
        app.view.begin_edit(track.path)
        title = click.prompt("Title", default=track.title)
        artist = click.prompt("Artist", default=track.artist)
        updated = app.view.save_edit(title, artist)
        click.echo(f"Saved: {updated.label}")
    elif command == 'preview':
        track = _pick(app, argument)
        app.preview(track.path)
    elif command == 'create':
        if not app.can_create_playlist(argument):
            if not app.is_connected:
                raise ValueError("Connect to Spotify first (command: connect)")
            if not app.view.filtered_count:
                raise ValueError("No tracks to add")
            raise ValueError("Usage: create <playlist name>")
        result = app.create_playlist(argument)
        print_build_result(result)
    else:
        raise ValueError(f"Unknown command '{command}', type 'help' for the list")

    return True


@cli.command()
@click.argument('folder', required=False, type=click.Path())
@handle_error
def session(folder):
    """
    Interactive session: connect, scan, filter, edit, create

    Errors are shown and the session continues; type 'quit' to leave.
    """
    app = MuzportApp()
    print_banner()
    click.echo(SESSION_HELP)

    if folder:
        app.open_folder(folder)
        click.echo(f"Loaded {app.view.total_count} tracks")

    while True:
        status = "connected" if app.is_connected else "not connected"
        try:
            line = click.prompt(f"muzport ({status}, {app.view.filtered_count} tracks)",
                                default='', show_default=False)
        except click.Abort:
            click.echo()
            break

        try:
            if not run_session_command(app, line):
                break
        except click.Abort:
            app.view.cancel_edit()
            click.echo("\nCancelled")
        except (MuzportError, ValueError, KeyError) as e:
            logger.debug(f"Session command failed: {line!r}: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)

    click.echo("Bye")


@cli.command()
@click.argument('file', type=click.Path())
@handle_error
def preview(file):
    """Open FILE with the default application"""
    open_with_default_app(file)


@cli.group()
def auth():
    """
    Authentication management

    MUZPORT keeps Spotify tokens in memory only, so every command that
    needs Spotify runs the authorization in the browser again.
    """
    pass


@auth.command()
@click.option('--timeout', type=int, help='Seconds to wait for the browser redirect')
@handle_error
def login(timeout):
    """
    Authenticate with Spotify and show the connected account

    Useful to check the client credentials and redirect URL before
    creating a playlist.
    """
    click.echo("Starting Spotify authorization...")

    auth_manager = get_auth()
    session = auth_manager.authorize(timeout=timeout)

    user_info = SpotifyClient(session).get_current_user()
    username = user_info.get('display_name') or user_info.get('id', 'Unknown')
    click.echo(f"Successfully authenticated as: {username}")
    click.echo("   The token is not stored; it is discarded when this command exits.")


@auth.command()
@handle_error
def status():
    """Show the authorization settings"""
    settings = get_settings()

    has_credentials = bool(settings.spotify.client_id and settings.spotify.client_secret)
    click.echo(f"Client credentials: {'configured' if has_credentials else 'missing'}")
    click.echo(f"Redirect URL: {settings.spotify.redirect_url}")
    click.echo(f"Scopes: {settings.spotify.scope}")
    click.echo(f"Timeout: {settings.spotify.auth_timeout}s")
    if not has_credentials:
        click.echo("   Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET (or use a .env file)")


@cli.group()
def config():
    """
    Configuration management

    View and modify scan, playlist and logging settings.
    """
    pass


@config.command()
@handle_error
def show():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:\n")

    click.echo("Spotify:")
    click.echo(f"   Redirect URL: {settings.spotify.redirect_url}")
    click.echo(f"   Authorization timeout: {settings.spotify.auth_timeout}s")

    click.echo("\nScan:")
    click.echo(f"   Extensions: {', '.join(settings.get_extensions())}")
    click.echo(f"   Recursive: {settings.scan.recursive}")
    click.echo(f"   Follow symlinks: {settings.scan.follow_symlinks}")
    click.echo(f"   Ignore hidden: {settings.scan.ignore_hidden}")

    click.echo("\nPlaylist:")
    click.echo(f"   Public: {settings.playlist.public}")
    click.echo(f"   Description: {settings.playlist.description}")
    click.echo(f"   Batch size: {settings.playlist.batch_size}")
    click.echo(f"   Search concurrency: {settings.playlist.search_concurrency}")

    click.echo("\nLogging:")
    click.echo(f"   Level: {settings.logging.level}")
    click.echo(f"   File: {settings.get_log_file_path() or 'disabled'}")


@config.command()
@click.option('--redirect-url', help='Set the OAuth redirect URL (loopback only)')
@click.option('--extensions', help='Comma-separated list of music file extensions')
@click.option('--public/--private', default=None, help='Visibility of new playlists')
@click.option('--batch-size', type=click.IntRange(1, 100), help='Tracks per add request')
@click.option('--search-concurrency', type=click.IntRange(1, 8), help='Parallel track searches')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Set log level')
@handle_error
def set(redirect_url, extensions, public, batch_size, search_concurrency, log_level):
    """
    Update configuration settings

    Changes are written to ~/.muzport/config.yaml (client credentials are
    never saved there).
    """
    settings = get_settings()
    changes = []

    if redirect_url:
        is_valid, error = validate_redirect_url(redirect_url)
        if not is_valid:
            raise click.BadParameter(error, param_hint="'--redirect-url'")
        settings.spotify.redirect_url = redirect_url
        changes.append(f"Redirect URL: {redirect_url}")

    if extensions:
        values = [e.strip().lower().lstrip('.') for e in extensions.split(',') if e.strip()]
        if not values:
            raise click.BadParameter("at least one extension is required", param_hint="'--extensions'")
        settings.scan.extensions = values
        changes.append(f"Extensions: {', '.join(values)}")

    if public is not None:
        settings.playlist.public = public
        changes.append(f"Public playlists: {public}")

    if batch_size:
        settings.playlist.batch_size = batch_size
        changes.append(f"Batch size: {batch_size}")

    if search_concurrency:
        settings.playlist.search_concurrency = search_concurrency
        changes.append(f"Search concurrency: {search_concurrency}")

    if log_level:
        settings.logging.level = log_level.upper()
        changes.append(f"Log level: {log_level.upper()}")

    if changes:
        path = settings.save_config()
        click.echo(f"Configuration updated ({path}):")
        for change in changes:
            click.echo(f"   • {change}")
    else:
        click.echo("No changes specified")


# System diagnostic commands
@cli.command()
@handle_error
def doctor():
    """
    Run system diagnostics

    Checks credentials, redirect URL, configuration values, dependencies
    and the file opener.
    """
    click.echo("Running diagnostics...\n")

    issues = []
    settings = get_settings()

    if settings.spotify.client_id and settings.spotify.client_secret:
        click.echo("Spotify credentials: OK")
    else:
        click.echo("Spotify credentials: Missing")

    is_valid, error = validate_redirect_url(settings.spotify.redirect_url)
    if is_valid:
        click.echo(f"Redirect URL: {settings.spotify.redirect_url}")
    else:
        click.echo(f"Redirect URL: Invalid - {error}")

    issues.extend(settings.validate())

    dependencies = [
        ('mutagen', 'mutagen', 'required for reading tags'),
        ('spotipy', 'spotipy', 'required for the Spotify Web API'),
    ]

    for module_name, display_name, purpose in dependencies:
        try:
            __import__(module_name)
            click.echo(f"{display_name}: OK")
        except ImportError:
            click.echo(f"{display_name}: Not installed")
            issues.append(f"{display_name} is {purpose}")

    if is_wsl():
        if shutil.which('wslview'):
            click.echo("File opener: wslview")
        else:
            click.echo("File opener: wslview not found")
            issues.append("Install wslu to preview files from WSL")
    else:
        click.echo("File opener: system default")

    current_log = get_current_log_file()
    if current_log:
        click.echo(f"Logging: {current_log}")
    else:
        click.echo("Logging: Console only")

    if issues:
        click.echo(f"\nFound {len(issues)} issues:")
        for issue in issues:
            click.echo(f"   • {issue}")
    else:
        click.echo("\nAll systems operational!")


# Entry point for module execution
if __name__ == '__main__':
    cli()

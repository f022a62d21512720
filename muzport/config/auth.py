"""
OAuth2 authorization for the Spotify Web API

This module implements the authorization code flow MUZPORT uses to obtain a
bearer token. The user's browser is sent to Spotify's consent page, Spotify
redirects back to a short-lived HTTP listener on the loopback address, and
the received code is exchanged for an access/refresh token pair.

The flow:
1. Bind the callback listener on the redirect URL's host and port
2. Build the authorization URL with the required scopes and a random state
3. Open the user's default browser on that URL
4. Wait for GET /callback?code=... and answer with a static confirmation page
5. Close the listener
6. Exchange the code for tokens at the token endpoint

Tokens are kept in an AuthSession object owned by the caller and are never
written to disk. The listener is closed on every exit path (success, error,
timeout, Ctrl-C) so a retry can bind the same port again.
"""

import html
import secrets
import threading
import time
import urllib.parse
import webbrowser
from dataclasses import dataclass, field
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Callable, Dict, Optional

import requests

from .settings import Settings, get_settings
from ..exceptions import AuthError, ConfigError
from ..utils import logger as log_utils


SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

# Only one handshake may own the callback port at a time
_authorization_lock = threading.Lock()

SUCCESS_HTML = """
<html>
<head><title>Authorization Success</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #1DB954;">Authorization Successful!</h1>
    <p>You can now close this tab and return to MUZPORT.</p>
</body>
</html>
"""

ERROR_HTML = """
<html>
<head><title>Authorization Error</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #E22134;">Authorization Failed</h1>
    <p>Error: {error}</p>
    <p>Please return to MUZPORT and try again.</p>
</body>
</html>
"""

NOT_FOUND_HTML = "<html><body><h1>Not Found</h1></body></html>"


@dataclass
class AuthSession:
    """
    In-memory Spotify credentials for one authorized user

    Created by SpotifyAuth.authorize(), overwritten in place by
    SpotifyAuth.refresh() and discarded when the process exits.
    """
    access_token: str = field(repr=False)
    refresh_token: Optional[str] = field(default=None, repr=False)
    token_type: str = "Bearer"
    expires_at: int = 0
    scope: str = ""

    @property
    def is_authorized(self) -> bool:
        return bool(self.access_token)

    def apply_token_response(self, token_data: Dict[str, Any]) -> None:
        """
        Overwrite the credentials with a token endpoint response

        Spotify may or may not rotate the refresh token, so the existing one
        is kept when the response carries none.
        """
        expires_in = int(token_data.get('expires_in', 3600))
        self.access_token = token_data['access_token']
        self.token_type = token_data.get('token_type', 'Bearer')
        self.expires_at = int(time.time()) + expires_in
        self.refresh_token = token_data.get('refresh_token') or self.refresh_token
        self.scope = token_data.get('scope', self.scope)


class CallbackHandler(BaseHTTPRequestHandler):
    """
    HTTP request handler for the OAuth2 callback

    Only GET requests on the configured callback path are considered.
    The outcome is stored on the parent server (authorization_code or
    authorization_error) and callback_received is set so the waiting
    thread wakes up.
    """

    def do_GET(self):
        parsed_url = urllib.parse.urlparse(self.path)

        # Browsers also ask for /favicon.ico and the like
        if parsed_url.path != self.server.callback_path:
            self._send_html(404, NOT_FOUND_HTML)
            return

        query_params = urllib.parse.parse_qs(parsed_url.query)
        expected_state = self.server.expected_state
        received_state = query_params.get('state', [None])[0]

        if expected_state and received_state != expected_state:
            self.server.authorization_error = 'state_mismatch'
            self._send_html(400, ERROR_HTML.format(error='state mismatch'))
        elif 'code' in query_params and query_params['code'][0]:
            self.server.authorization_code = query_params['code'][0]
            self._send_html(200, SUCCESS_HTML)
        elif 'error' in query_params:
            error = query_params['error'][0]
            self.server.authorization_error = error
            self._send_html(400, ERROR_HTML.format(error=html.escape(error)))
        else:
            self.server.authorization_error = 'missing_code'
            self._send_html(400, ERROR_HTML.format(error='no authorization code received'))

        self.server.callback_received.set()

    def _send_html(self, status: int, body: str) -> None:
        payload = body.encode('utf-8')
        self.send_response(status)
        self.send_header('Content-type', 'text/html; charset=utf-8')
        self.send_header('Content-Length', str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        """Keep the console clean; callback requests are not interesting"""
        pass


class _CallbackHTTPServer(HTTPServer):
    allow_reuse_address = True

    def __init__(self, server_address, handler_class, callback_path: str,
                 expected_state: Optional[str]):
        super().__init__(server_address, handler_class)
        self.callback_path = callback_path
        self.expected_state = expected_state
        self.authorization_code: Optional[str] = None
        self.authorization_error: Optional[str] = None
        self.callback_received = threading.Event()


class CallbackServer:
    """
    Short-lived loopback listener for the authorization redirect

    Use as a context manager; the socket is released on exit whatever
    happened inside the block:

        with CallbackServer(redirect_url, expected_state=state) as server:
            webbrowser.open(url_for(server.redirect_uri))
            code = server.wait_for_code(timeout=300)

    A port of 0 in the redirect URL binds an ephemeral port; redirect_uri
    then reports the port actually bound.
    """

    def __init__(self, redirect_url: str, expected_state: Optional[str] = None):
        parsed = urllib.parse.urlparse(redirect_url)
        self.host = parsed.hostname or '127.0.0.1'
        try:
            port = parsed.port
        except ValueError:
            raise ConfigError(f"Invalid port in redirect URL: {redirect_url}", details={'redirect_url': redirect_url})
        self.requested_port = port if port is not None else 80
        self.path = parsed.path or '/'
        self.expected_state = expected_state
        self._server: Optional[_CallbackHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self.logger = log_utils.get_logger(__name__)

    def __enter__(self) -> 'CallbackServer':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> int:
        if not self._server:
            return self.requested_port
        return self._server.server_address[1]

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}{self.path}"

    def start(self) -> None:
        """
        Bind the listener and serve requests on a background thread

        Raises:
            AuthError: If the address cannot be bound (port already in use)
        """
        if self._server:
            return
        try:
            server = _CallbackHTTPServer(
                (self.host, self.requested_port),
                CallbackHandler,
                callback_path=self.path,
                expected_state=self.expected_state,
            )
        except OSError as e:
            raise AuthError(
                f"Cannot listen for the Spotify callback on {self.host}:{self.requested_port}: {e}",
                details={'host': self.host, 'port': self.requested_port, 'original_error': str(e)}
            )

        self._server = server
        self._thread = threading.Thread(
            target=server.serve_forever,
            name="muzport-auth-callback",
            daemon=True,
        )
        self._thread.start()
        self.logger.debug(f"Callback listener started on {self.redirect_uri}")

    def wait_for_code(self, timeout: float) -> str:
        """
        Block until the callback arrives and return the authorization code

        Raises:
            AuthError: On timeout, on an error redirect or when no code was sent
        """
        if not self._server:
            raise AuthError("Callback listener is not running")

        if not self._server.callback_received.wait(timeout):
            raise AuthError(
                f"Authorization timed out after {int(timeout)} seconds",
                details={'timeout': timeout}
            )

        if self._server.authorization_error:
            raise AuthError(
                f"Spotify authorization failed: {self._server.authorization_error}",
                details={'error': self._server.authorization_error}
            )

        if not self._server.authorization_code:
            raise AuthError("No authorization code received")

        return self._server.authorization_code

    def close(self) -> None:
        """Stop serving and release the port; safe to call more than once"""
        if not self._server:
            return
        server, self._server = self._server, None
        server.shutdown()
        server.server_close()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        self.logger.debug("Callback listener closed")


class SpotifyAuth:
    """
    Spotify OAuth2 authorization code flow

    Performs the browser + loopback handshake and token refresh. It holds
    only configuration; every token lives in the AuthSession returned to
    the caller, which passes it back into each Spotify operation.

    Attributes:
        settings: Application settings instance
        client_id: Spotify application client ID
        client_secret: Spotify application client secret
        redirect_uri: OAuth2 callback URL on the loopback address
        scope: Required permission scopes for playlist creation
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.client_id = self.settings.spotify.client_id
        self.client_secret = self.settings.spotify.client_secret
        self.redirect_uri = self.settings.spotify.redirect_url
        self.scope = self.settings.spotify.scope
        self.logger = log_utils.get_logger(__name__)

    def _require_credentials(self) -> None:
        if not self.client_id or not self.client_secret:
            raise ConfigError(
                "Spotify client_id and client_secret must be configured "
                "(set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET)"
            )

    def build_authorization_url(self, redirect_uri: str, state: str) -> str:
        """
        Build the Spotify consent page URL

        Args:
            redirect_uri: Exact callback URL the listener is bound to
            state: Random value echoed back by Spotify in the callback
        """
        params = {
            'client_id': self.client_id,
            'response_type': 'code',
            'redirect_uri': redirect_uri,
            'scope': self.scope,
            'state': state,
        }
        return f"{SPOTIFY_AUTHORIZE_URL}?{urllib.parse.urlencode(params)}"

    def authorize(
        self,
        timeout: Optional[float] = None,
        open_browser: Optional[Callable[[str], Any]] = None
    ) -> AuthSession:
        """
        Run the complete authorization handshake

        Args:
            timeout: Seconds to wait for the browser redirect
                     (defaults to spotify.auth_timeout)
            open_browser: Callable receiving the authorization URL
                          (defaults to webbrowser.open)

        Returns:
            A fresh AuthSession

        Raises:
            ConfigError: If client credentials are missing
            AuthError: If the handshake does not complete, a second attempt is
                       already running, or the code exchange fails
        """
        self._require_credentials()

        if not _authorization_lock.acquire(blocking=False):
            raise AuthError("Another Spotify authorization is already in progress")

        try:
            state = secrets.token_urlsafe(16)
            wait_seconds = timeout if timeout is not None else self.settings.spotify.auth_timeout

            with CallbackServer(self.redirect_uri, expected_state=state) as server:
                callback_url = server.redirect_uri
                authorization_url = self.build_authorization_url(callback_url, state)

                self.logger.console_info("Opening browser for Spotify authorization...")
                self.logger.console_info(f"If the browser doesn't open, visit: {authorization_url}")
                (open_browser or webbrowser.open)(authorization_url)

                self.logger.console_info("Waiting for authorization callback...")
                code = server.wait_for_code(wait_seconds)

            session = self._exchange_code_for_token(code, callback_url)
            self.logger.console_info("Authorization successful!")
            return session
        finally:
            _authorization_lock.release()

    def _request_token(self, data: Dict[str, str]) -> Dict[str, Any]:
        """
        POST to the token endpoint and return the parsed JSON body

        Raises:
            AuthError: On network errors, HTTP errors or a body without access_token
        """
        payload = {
            **data,
            'client_id': self.client_id,
            'client_secret': self.client_secret,
        }
        headers = {'Content-Type': 'application/x-www-form-urlencoded'}

        try:
            response = requests.post(
                SPOTIFY_TOKEN_URL,
                headers=headers,
                data=payload,
                timeout=self.settings.network.request_timeout,
            )
            response.raise_for_status()
            token_data = response.json()
        except requests.RequestException as e:
            status = getattr(getattr(e, 'response', None), 'status_code', None)
            raise AuthError(
                f"Token request failed: {e}",
                details={'grant_type': data.get('grant_type'), 'status_code': status}
            )
        except ValueError as e:
            raise AuthError(f"Token endpoint returned invalid JSON: {e}")

        if not token_data.get('access_token'):
            raise AuthError("Token endpoint response has no access_token",
                            details={'grant_type': data.get('grant_type')})
        return token_data

    def _exchange_code_for_token(self, code: str, redirect_uri: str) -> AuthSession:
        """
        Exchange the authorization code for access and refresh tokens

        The redirect_uri must exactly match the one sent in the
        authorization request.
        """
        token_data = self._request_token({
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': redirect_uri,
        })
        session = AuthSession(access_token='', scope=self.scope)
        session.apply_token_response(token_data)
        return session

    def refresh(self, session: AuthSession) -> AuthSession:
        """
        Refresh the session's access token in place

        Args:
            session: Session obtained from authorize()

        Returns:
            The same session object with new credentials

        Raises:
            AuthError: If the session has no refresh token or Spotify rejects it
        """
        self._require_credentials()
        if not session.refresh_token:
            raise AuthError("Session has no refresh token; connect to Spotify again")

        token_data = self._request_token({
            'grant_type': 'refresh_token',
            'refresh_token': session.refresh_token,
        })
        session.apply_token_response(token_data)
        self.logger.debug("Access token refreshed")
        return session


_auth_instance: Optional[SpotifyAuth] = None


def get_auth() -> SpotifyAuth:
    """
    Get the global SpotifyAuth instance bound to the current settings
    """
    global _auth_instance
    if not _auth_instance:
        _auth_instance = SpotifyAuth()
    return _auth_instance


def reset_auth() -> None:
    """
    Reset the global SpotifyAuth instance

    Needed after reload_settings() so new credentials are picked up.
    """
    global _auth_instance
    _auth_instance = None

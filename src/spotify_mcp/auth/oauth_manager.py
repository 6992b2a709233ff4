"""OAuth manager for Spotify authentication.

This module runs the Spotify Authorization Code flow against a loopback
redirect URI and keeps the CredentialStore's tokens fresh.

Flow overview:
    1. A random state nonce is generated and the authorization URL is built.
    2. A single-purpose HTTP listener is bound to the redirect host/port.
    3. The URL is opened in a browser (or shown to the user).
    4. The first callback on the redirect path either fails the flow or
       exchanges its code for tokens and stores them.
    5. The listener is closed on every outcome before the flow resolves.
"""

import asyncio
import logging
import secrets
import threading
import webbrowser
from concurrent.futures import Future
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from spotify_mcp.auth.models import AuthorizationRequest, OAuthToken, TokenSource
from spotify_mcp.auth.token_storage import CredentialStore
from spotify_mcp.config import SpotifySettings
from spotify_mcp.errors import (
    AuthorizationError,
    ConfigurationError,
    ConsentDeniedError,
    MissingCodeError,
    StateMismatchError,
    TokenExchangeError,
    TokenRefreshError,
)

logger = logging.getLogger(__name__)

SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint

SPOTIFY_SCOPES = [
    "user-read-private",
    "user-read-email",
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-private",
    "playlist-modify-public",
    "user-library-read",
    "user-library-modify",
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "user-read-recently-played",
    "user-top-read",
    "user-follow-read",
    "user-follow-modify",
    "streaming",
    "app-remote-control",
]

# Seconds between listener wake-ups to check for cancellation
LISTENER_POLL_INTERVAL = 0.5

# Socket read timeout for each accepted callback connection
CONNECTION_TIMEOUT = 5.0

_SUCCESS_PAGE = (
    b"<html><body><h1>Authentication Successful!</h1>"
    b"<p>Your Spotify account is connected. You can close this window and "
    b"return to your assistant.</p></body></html>"
)


def _failure_page(detail: str) -> bytes:
    return (
        "<html><body><h1>Authentication Failed</h1>"
        f"<p>{detail}</p><p>Please close this window and try again.</p>"
        "</body></html>"
    ).encode()


class AuthorizationFlow:
    """A single in-flight authorization attempt and its loopback listener.

    The listener runs on a daemon thread until a callback on the redirect
    path reaches a terminal outcome, or the flow is cancelled. Each accepted
    connection is served on its own thread with a read timeout, so an idle
    connection (a browser preconnect, say) cannot hold up the callback.
    Callbacks themselves are processed one at a time. The socket is closed
    before ``result`` resolves, so a finished flow never holds the port.

    Attributes:
        request: State nonce and redirect target for this attempt.
        authorization_url: URL the user must visit to grant consent.
        result: Future resolving to the stored OAuthToken or an AuthorizationError.
    """

    def __init__(
        self,
        manager: "OAuthManager",
        request: AuthorizationRequest,
        authorization_url: str,
    ) -> None:
        self._manager = manager
        self.request = request
        self.authorization_url = authorization_url
        self.result: Future[OAuthToken] = Future()
        self._outcome: OAuthToken | AuthorizationError | None = None
        self._cancelled = threading.Event()
        self._callback_lock = threading.Lock()
        self._server = self._bind()
        self._thread = threading.Thread(
            target=self._serve, name="spotify-oauth-callback", daemon=True
        )

    def _bind(self) -> ThreadingHTTPServer:
        try:
            server = ThreadingHTTPServer(
                (self.request.redirect_host, self.request.redirect_port),
                self._handler_class(),
            )
        except OSError as e:
            raise ConfigurationError(
                f"Cannot listen on {self.request.redirect_host}:{self.request.redirect_port} "
                f"for the OAuth callback ({e.strerror or e}). Stop whatever is using the port "
                "or choose another port in SPOTIFY_REDIRECT_URI."
            ) from e
        server.timeout = LISTENER_POLL_INTERVAL
        return server

    def start(self) -> None:
        self._thread.start()

    @property
    def done(self) -> bool:
        return self.result.done()

    def wait(self, timeout: float | None = None) -> OAuthToken:
        """Block until the flow finishes.

        Raises:
            AuthorizationError: If the flow failed or was cancelled.
            TimeoutError: If ``timeout`` elapsed first.
        """
        return self.result.result(timeout=timeout)

    def cancel(self) -> None:
        """Abandon the flow and release the listener.

        Returns once the listener thread has exited and the port is free.
        """
        self._cancelled.set()
        if self._thread.is_alive():
            if threading.current_thread() is not self._thread:
                self._thread.join(timeout=LISTENER_POLL_INTERVAL * 4)
        elif not self.done:
            self._finish()

    def _serve(self) -> None:
        try:
            while self._outcome is None and not self._cancelled.is_set():
                self._server.handle_request()
        finally:
            self._finish()

    def _finish(self) -> None:
        self._server.server_close()
        with self._callback_lock:
            outcome = self._outcome
        if outcome is None:
            outcome = AuthorizationError("the authorization flow was cancelled")
        if self.result.done():
            return
        if isinstance(outcome, AuthorizationError):
            logger.warning("Spotify authorization failed: %s", outcome.reason)
            self.result.set_exception(outcome)
        else:
            logger.info("Spotify authorization completed")
            self.result.set_result(outcome)

    def handle_callback(self, query: dict[str, list[str]]) -> tuple[bytes, bool]:
        """Process a redirect to the callback path.

        Returns:
            Tuple of (HTML page body, whether the flow succeeded).
        """
        with self._callback_lock:
            return self._handle_callback(query)

    def _handle_callback(self, query: dict[str, list[str]]) -> tuple[bytes, bool]:
        if self._outcome is not None or self._cancelled.is_set():
            return _failure_page("This authorization request has already been used."), False

        if "error" in query:
            self._outcome = ConsentDeniedError(
                f"Spotify returned an error ({query['error'][0]})"
            )
            return _failure_page("Spotify did not grant access."), False

        returned_state = query.get("state", [""])[0]
        if not secrets.compare_digest(returned_state, self.request.state_token):
            self._outcome = StateMismatchError("state mismatch")
            return _failure_page("State verification failed."), False

        code = query.get("code", [""])[0]
        if not code:
            self._outcome = MissingCodeError("no authorization code received")
            return _failure_page("No authorization code received."), False

        try:
            self._outcome = self._manager.exchange_code(code, self.request.redirect_uri)
        except AuthorizationError as e:
            self._outcome = e
            return _failure_page("Could not exchange the authorization code for tokens."), False
        return _SUCCESS_PAGE, True

    def _handler_class(self) -> type[BaseHTTPRequestHandler]:
        flow = self
        callback_path = self.request.redirect_path

        class OAuthCallbackHandler(BaseHTTPRequestHandler):
            """HTTP handler for the OAuth redirect."""

            timeout = CONNECTION_TIMEOUT

            def log_message(self, format: str, *args: Any) -> None:
                """Suppress HTTP server logs (query strings carry secrets)."""
                pass

            def do_GET(self) -> None:
                """Handle GET request from OAuth redirect."""
                request_parsed = urlparse(self.path)

                if request_parsed.path != callback_path:
                    self.send_response(404)
                    self.send_header("Content-type", "text/plain")
                    self.end_headers()
                    self.wfile.write(b"Not Found")
                    return

                body, _ = flow.handle_callback(parse_qs(request_parsed.query))
                self.send_response(200)
                self.send_header("Content-type", "text/html")
                self.send_header("Cache-Control", "no-store")
                self.end_headers()
                self.wfile.write(body)

        return OAuthCallbackHandler


class OAuthManager:
    """OAuth authentication manager for Spotify.

    Handles the authorization flow, code exchange, and token refresh, and
    writes every result into the shared CredentialStore.

    Attributes:
        settings: Client credentials and redirect configuration.
        store: Credential store updated by the flow and by refreshes.

    Example:
        ```python
        manager = OAuthManager(settings, store)

        flow = manager.start_authorization()
        print(f"Visit: {flow.authorization_url}")
        token = await manager.authenticate()
        ```
    """

    def __init__(
        self,
        settings: SpotifySettings,
        store: CredentialStore,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize OAuth manager.

        Args:
            settings: Client credentials and redirect URI.
            store: Credential store to populate.
            http_client: Client for the accounts service. Creates one if not provided.
        """
        self.settings = settings
        self.store = store
        self._http_client = http_client
        self._flow_lock = threading.Lock()
        self._active_flow: AuthorizationFlow | None = None
        self._refresh_lock: asyncio.Lock | None = None

    def _get_http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=httpx.Timeout(30.0, connect=10.0))
        return self._http_client

    def close(self) -> None:
        """Cancel any pending flow and close the accounts-service client."""
        flow = self._active_flow
        if flow is not None and not flow.done:
            flow.cancel()
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    @property
    def active_flow(self) -> AuthorizationFlow | None:
        return self._active_flow

    def build_authorization_url(self, state: str) -> str:
        """Construct the Spotify authorize URL for a given state nonce."""
        client_id, _ = self.settings.require_client_credentials()
        params = {
            "client_id": client_id,
            "response_type": "code",
            "redirect_uri": self.settings.redirect_uri,
            "scope": " ".join(SPOTIFY_SCOPES),
            "state": state,
            "show_dialog": "true",
        }
        return f"{SPOTIFY_AUTHORIZE_URL}?{urlencode(params)}"

    def start_authorization(self, open_browser: bool = True) -> AuthorizationFlow:
        """Start the authorization flow, or return the one already pending.

        Configuration is validated before any socket is opened: client
        credentials must be present and the redirect URI must be loopback.

        Args:
            open_browser: Try to open the authorization URL in a browser.

        Returns:
            The active AuthorizationFlow.

        Raises:
            ConfigurationError: If configuration is missing/invalid or the port is busy.
        """
        with self._flow_lock:
            if self._active_flow is not None and not self._active_flow.done:
                return self._active_flow

            self.settings.require_client_credentials()
            host, port, path = self.settings.validate_redirect_uri()

            state = secrets.token_urlsafe(32)
            request = AuthorizationRequest(
                state_token=state,
                redirect_uri=self.settings.redirect_uri,
                redirect_host=host,
                redirect_port=port,
                redirect_path=path,
            )
            flow = AuthorizationFlow(self, request, self.build_authorization_url(state))
            flow.start()
            self._active_flow = flow

        logger.info("Started Spotify authorization; callback listener on %s:%s%s", host, port, path)
        if open_browser:
            self._open_browser(flow.authorization_url)
        return flow

    def take_failed_flow(self) -> AuthorizationFlow | None:
        """Return and forget the last flow if it finished with an error."""
        with self._flow_lock:
            flow = self._active_flow
            if flow is not None and flow.done and flow.result.exception() is not None:
                self._active_flow = None
                return flow
            return None

    @staticmethod
    def _open_browser(url: str) -> None:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error:
            opened = False
        if not opened:
            logger.info("Could not open a browser; the authorization URL must be visited manually")

    async def authenticate(self, open_browser: bool = True) -> OAuthToken:
        """Perform the complete OAuth flow and wait for the user to finish.

        Returns:
            OAuthToken containing access and refresh tokens.

        Raises:
            ConfigurationError: If configuration is missing or invalid.
            AuthorizationError: If the flow fails.
        """
        flow = self.start_authorization(open_browser=open_browser)
        return await asyncio.wrap_future(flow.result)

    def exchange_code(self, code: str, redirect_uri: str) -> OAuthToken:
        """Exchange an authorization code for tokens and store them.

        Raises:
            TokenExchangeError: If Spotify rejects the exchange.
        """
        try:
            payload = self._token_request(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": redirect_uri,
                }
            )
        except (httpx.HTTPError, ValueError) as e:
            raise TokenExchangeError(f"token exchange failed ({_describe_http_error(e)})") from e

        if not payload.get("access_token"):
            raise TokenExchangeError("token exchange returned no access token")

        return self.store.set(
            payload["access_token"],
            refresh=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            scopes=payload.get("scope", "").split() or list(SPOTIFY_SCOPES),
            source=TokenSource.OAUTH_FLOW,
        )

    async def refresh_access_token(self, stale_token: str | None = None) -> OAuthToken:
        """Refresh the access token using the stored refresh token.

        Concurrent callers are serialized; a caller whose ``stale_token`` was
        already replaced by another refresh gets the new token without a
        second network call.

        Args:
            stale_token: Access token the caller saw rejected or expired.

        Returns:
            The refreshed token.

        Raises:
            TokenRefreshError: If there is no refresh token or Spotify rejects it.
        """
        if self._refresh_lock is None:
            self._refresh_lock = asyncio.Lock()

        async with self._refresh_lock:
            current = self.store.get()
            if (
                stale_token is not None
                and current is not None
                and current.access_token
                and current.access_token != stale_token
                and not current.is_expired(buffer_seconds=0)
            ):
                return current

            if current is None or not current.refresh_token:
                raise TokenRefreshError(
                    "No refresh token available. Call get_initial_context to re-authorize."
                )

            logger.info("Refreshing Spotify access token")
            loop = asyncio.get_running_loop()
            try:
                payload = await loop.run_in_executor(
                    None,
                    self._token_request,
                    {"grant_type": "refresh_token", "refresh_token": current.refresh_token},
                )
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Spotify token refresh failed: %s", _describe_http_error(e))
                raise TokenRefreshError(
                    f"Failed to refresh Spotify access token ({_describe_http_error(e)}). "
                    "Call get_initial_context to re-authorize."
                ) from e

            if not payload.get("access_token"):
                raise TokenRefreshError("Token refresh returned no access token")

            token = self.store.set(
                payload["access_token"],
                refresh=payload.get("refresh_token"),
                expires_in=payload.get("expires_in"),
                scopes=payload["scope"].split() if payload.get("scope") else None,
            )
            logger.info("Successfully refreshed Spotify access token")
            return token

    def _token_request(self, data: dict[str, str]) -> dict[str, Any]:
        """POST to the accounts token endpoint with client authentication."""
        client_id, client_secret = self.settings.require_client_credentials()
        response = self._get_http_client().post(
            SPOTIFY_TOKEN_URL,
            data=data,
            auth=(client_id, client_secret),
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        result: dict[str, Any] = response.json()
        return result


def _describe_http_error(exc: Exception) -> str:
    """Short description of a token endpoint failure without echoing secrets."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = {}
        detail = body.get("error_description") or body.get("error") if isinstance(body, dict) else None
        status = exc.response.status_code
        return f"HTTP {status}: {detail}" if detail else f"HTTP {status}"
    if isinstance(exc, httpx.HTTPError):
        return type(exc).__name__
    return "invalid response"

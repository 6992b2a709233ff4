"""In-memory credential storage for the Spotify MCP server.

Credentials live only for the lifetime of the process. They are seeded from
pre-provisioned configuration (SPOTIFY_API_TOKEN / SPOTIFY_REFRESH_TOKEN) or
filled in by the OAuth authorization flow, and updated on every refresh.

The store is the single owner of the credentials. Components keep a
reference to the store rather than a copy of the token, so a refresh is
visible everywhere as soon as it is written.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone

from spotify_mcp.auth.models import (
    OAuthToken,
    StoredToken,
    TokenMetadata,
    TokenSource,
    TokenStatus,
)

logger = logging.getLogger(__name__)


class CredentialStore:
    """Thread-safe holder for the current Spotify credentials.

    The OAuth callback handler writes from the listener thread while tool
    calls read from the event loop, so every access goes through a lock.

    Example:
        ```python
        store = CredentialStore()
        store.set("access", refresh="refresh", expires_in=3600)

        if store.is_usable():
            token = store.get()
            print(token.expires_at)
        ```
    """

    def __init__(
        self,
        access_token: str | None = None,
        refresh_token: str | None = None,
    ) -> None:
        """Initialize the store, optionally with pre-provisioned tokens.

        Args:
            access_token: Access token from configuration.
            refresh_token: Refresh token from configuration.
        """
        self._lock = threading.Lock()
        self._stored: StoredToken | None = None
        if access_token or refresh_token:
            self._stored = StoredToken(
                token=OAuthToken(access_token=access_token, refresh_token=refresh_token),
                metadata=TokenMetadata(source=TokenSource.ENVIRONMENT),
            )

    def get(self) -> OAuthToken | None:
        """Return the current credentials, or None if there are none."""
        with self._lock:
            return self._stored.token if self._stored else None

    def retrieve(self) -> StoredToken | None:
        """Return the credentials together with their metadata."""
        with self._lock:
            return self._stored

    def set(
        self,
        access: str,
        refresh: str | None = None,
        expires_in: int | None = None,
        scopes: list[str] | None = None,
        source: TokenSource | None = None,
    ) -> OAuthToken:
        """Overwrite the current credentials.

        Args:
            access: New access token.
            refresh: New refresh token. The previous one is kept when omitted,
                since Spotify does not always rotate refresh tokens.
            expires_in: Lifetime in seconds; expiry becomes unknown when omitted.
            scopes: Granted scopes; previous scopes are kept when omitted.
            source: Origin of the credentials; previous source kept when omitted.

        Returns:
            The newly stored token.
        """
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=expires_in) if expires_in is not None else None

        with self._lock:
            previous = self._stored
            token = OAuthToken(
                access_token=access,
                refresh_token=refresh or (previous.token.refresh_token if previous else None),
                expires_at=expires_at,
                scopes=scopes if scopes is not None else (previous.token.scopes if previous else []),
            )
            if previous is None:
                metadata = TokenMetadata(source=source or TokenSource.OAUTH_FLOW, created_at=now)
            else:
                metadata = previous.metadata.model_copy(
                    update={
                        "source": source or previous.metadata.source,
                        "last_refreshed": now if source is None else previous.metadata.last_refreshed,
                    }
                )
            self._stored = StoredToken(token=token, metadata=metadata)

        logger.debug("Stored credentials (source=%s)", metadata.source.value)
        return token

    def is_usable(self) -> bool:
        """Check whether the credentials can authorize a request.

        Usable means an access token that is not known to be expired, or a
        refresh token that can obtain a new one.
        """
        token = self.get()
        if token is None:
            return False
        if token.access_token and not token.is_expired(buffer_seconds=0):
            return True
        return bool(token.refresh_token)

    def get_status(self) -> TokenStatus:
        """Get the status of the stored access token."""
        token = self.get()
        if token is None or (not token.access_token and not token.refresh_token):
            return TokenStatus.MISSING
        if not token.access_token or token.is_expired():
            return TokenStatus.EXPIRED
        return TokenStatus.VALID

    @property
    def source(self) -> TokenSource | None:
        stored = self.retrieve()
        return stored.metadata.source if stored else None

    def clear(self) -> None:
        """Forget all credentials."""
        with self._lock:
            self._stored = None

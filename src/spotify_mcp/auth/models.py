"""Data models for Spotify OAuth credentials and authorization state."""

from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, Field


class TokenStatus(str, Enum):
    """State of the credentials held by the CredentialStore."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"


class TokenSource(str, Enum):
    """Where the current credentials came from."""

    ENVIRONMENT = "environment"
    OAUTH_FLOW = "oauth_flow"


class OAuthToken(BaseModel):
    """Access/refresh token pair with optional expiry.

    Pre-provisioned credentials may carry only a refresh token, or an access
    token whose expiry is unknown (``expires_at`` is None).
    """

    access_token: str | None = Field(default=None, description="Bearer access token")
    refresh_token: str | None = Field(default=None, description="Refresh token")
    expires_at: datetime | None = Field(default=None, description="Absolute expiry (UTC)")
    scopes: list[str] = Field(default_factory=list, description="Granted scopes")
    token_type: str = Field(default="Bearer", description="Token type")

    def is_expired(self, buffer_seconds: int = 60) -> bool:
        """Check whether the access token is expired or about to expire.

        Args:
            buffer_seconds: Treat tokens expiring within this window as expired.

        Returns:
            True if expiry is known and falls within the buffer.
        """
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) + timedelta(seconds=buffer_seconds) >= self.expires_at


class TokenMetadata(BaseModel):
    """Bookkeeping about the stored credentials."""

    source: TokenSource = Field(default=TokenSource.ENVIRONMENT)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_refreshed: datetime | None = Field(default=None)


class StoredToken(BaseModel):
    """Credentials plus metadata, as held by the CredentialStore."""

    token: OAuthToken
    metadata: TokenMetadata = Field(default_factory=TokenMetadata)


class AuthorizationRequest(BaseModel):
    """One authorization attempt's anti-forgery state and redirect target.

    Created when a flow starts and consumed by the first callback that
    reaches a terminal outcome.
    """

    model_config = {"frozen": True}

    state_token: str = Field(..., repr=False, description="Random state nonce")
    redirect_uri: str
    redirect_host: str
    redirect_port: int
    redirect_path: str

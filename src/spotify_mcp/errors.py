"""Error types for the Spotify MCP server.

Every failure surfaced to the agent is one of these types. Messages are
written for the person driving the agent: they say what went wrong and
what to do next.
"""

from typing import Any

import httpx

INITIALIZER_TOOL = "get_initial_context"


class SpotifyMCPError(Exception):
    """Base class for all Spotify MCP errors."""


class ConfigurationError(SpotifyMCPError):
    """Required configuration is missing or invalid."""


class AuthorizationError(SpotifyMCPError):
    """The OAuth authorization flow failed.

    The in-flight flow is terminated and its listener released. The caller
    must start a new flow by calling the initializer again.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"Spotify authorization failed: {reason}. "
            f"Call {INITIALIZER_TOOL} again to restart authorization."
        )


class ConsentDeniedError(AuthorizationError):
    """The user (or Spotify) returned an error instead of a code."""


class StateMismatchError(AuthorizationError):
    """The state returned on the redirect does not match the one we sent."""


class MissingCodeError(AuthorizationError):
    """The redirect carried neither an error nor an authorization code."""


class TokenExchangeError(AuthorizationError):
    """Spotify rejected the authorization code exchange."""


class AuthorizationPendingError(SpotifyMCPError):
    """Authorization has started and is waiting for the user's browser."""

    def __init__(self, authorization_url: str) -> None:
        self.authorization_url = authorization_url
        super().__init__(
            "Spotify Authorization Required!\n\n"
            "To use this Spotify MCP server, you need to authorize the application:\n\n"
            f"1. Open this URL in your browser:\n   {authorization_url}\n\n"
            "2. Log in to Spotify and authorize the application\n\n"
            "3. After authorization, you'll be redirected and the callback "
            "will be handled automatically\n\n"
            f"4. Once complete, call {INITIALIZER_TOOL} again\n\n"
            "The authorization server is now running and waiting for your response."
        )


class TokenRefreshError(SpotifyMCPError):
    """Refreshing the access token failed."""


class NotInitializedError(SpotifyMCPError):
    """A tool was called before the initializer completed."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(
            f"Cannot run '{tool_name}': Spotify initial context has not been retrieved. "
            f"Please call the {INITIALIZER_TOOL} tool first to initialize your "
            "Spotify connection and get usage instructions."
        )


class SpotifyAPIError(SpotifyMCPError):
    """An error response from the Spotify Web API.

    Attributes:
        status_code: HTTP status returned by Spotify.
        message: Error message from the response body, if any.
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Spotify API error ({status_code}): {message}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "SpotifyAPIError":
        """Build the matching error subclass for a failed response."""
        message = _extract_message(response)
        status = response.status_code

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            return RateLimitError(
                message, retry_after=int(retry_after) if retry_after else None
            )

        error_class = _STATUS_ERRORS.get(status)
        if error_class is None:
            error_class = UpstreamServerError if status >= 500 else SpotifyAPIError
        return error_class(status, message)


class AuthenticationExpiredError(SpotifyAPIError):
    """Spotify rejected the access token (HTTP 401)."""


class PermissionDeniedError(SpotifyAPIError):
    """The token lacks permission for the operation (HTTP 403)."""


class NotFoundError(SpotifyAPIError):
    """The requested resource does not exist (HTTP 404)."""


class UpstreamValidationError(SpotifyAPIError):
    """Spotify rejected the request parameters (HTTP 400)."""


class UpstreamServerError(SpotifyAPIError):
    """Spotify failed to handle the request (HTTP 5xx)."""


class RateLimitError(SpotifyAPIError):
    """Too many requests (HTTP 429)."""

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(429, message)


_STATUS_ERRORS: dict[int, type[SpotifyAPIError]] = {
    400: UpstreamValidationError,
    401: AuthenticationExpiredError,
    403: PermissionDeniedError,
    404: NotFoundError,
}


def _extract_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a Spotify error body."""
    try:
        body: Any = response.json()
    except ValueError:
        return response.reason_phrase or "Unknown error"

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            # Accounts service format: {"error": "...", "error_description": "..."}
            return str(body.get("error_description") or error)
    return response.reason_phrase or "Unknown error"


def is_authorization_failure(exc: BaseException) -> bool:
    """Check whether an exception means the access token was rejected.

    Classification uses an explicit status code when one is available:
    either a ``status_code`` attribute or ``exc.response.status_code``.
    Errors from clients that expose no status at all fall back to looking
    for "401" in the message.
    """
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status == 401
    return "401" in str(exc)

"""Test helpers: loopback ports and mocked Spotify endpoints."""

import socket
from collections.abc import Callable
from typing import Any

import httpx

ApiHandler = Callable[[httpx.Request], httpx.Response]


def get_free_port() -> int:
    """Find a loopback port that is currently free."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def port_is_free(port: int) -> bool:
    """Check that a loopback port can be bound again."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("127.0.0.1", port))
        except OSError:
            return False
        return True


def json_response(data: Any, status_code: int = 200, **kwargs: Any) -> httpx.Response:
    return httpx.Response(status_code, json=data, **kwargs)


DEFAULT_TOKEN_PAYLOAD = {
    "access_token": "new_access_token",
    "refresh_token": "new_refresh_token",
    "expires_in": 3600,
    "scope": "user-read-private playlist-read-private",
    "token_type": "Bearer",
}


class TokenEndpoint:
    """Programmable stand-in for https://accounts.spotify.com/api/token.

    Queued ``responses`` are served first; afterwards every request gets
    DEFAULT_TOKEN_PAYLOAD.
    """

    def __init__(self) -> None:
        self.requests: list[dict[str, str]] = []
        self.raw_requests: list[httpx.Request] = []
        self.responses: list[httpx.Response] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.raw_requests.append(request)
        self.requests.append(dict(httpx.QueryParams(request.content.decode())))
        if self.responses:
            return self.responses.pop(0)
        return json_response(DEFAULT_TOKEN_PAYLOAD)

    def grants(self) -> list[str]:
        return [r["grant_type"] for r in self.requests]


class SpotifyApi:
    """Routes mocked Web API requests by (method, path).

    Each route holds a list of (body, status) pairs served in order; the
    last one repeats once the list is exhausted. Unknown routes get 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[tuple[Any, int]] | ApiHandler] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body: Any, status_code: int = 200) -> None:
        self.routes[(method, path)] = [(body, status_code)]

    def add_sequence(self, method: str, path: str, replies: list[tuple[Any, int]]) -> None:
        self.routes[(method, path)] = list(replies)

    def add_handler(self, method: str, path: str, handler: ApiHandler) -> None:
        self.routes[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v1")
        route = self.routes.get((request.method, path))
        if route is None:
            return json_response({"error": {"status": 404, "message": "Not found"}}, 404)
        if callable(route):
            return route(request)
        body, status = route.pop(0) if len(route) > 1 else route[0]
        if body is None:
            return httpx.Response(status)
        return json_response(body, status)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path.removeprefix("/v1") == path
        ]

    def bearer_tokens(self) -> list[str]:
        return [r.headers["Authorization"].removeprefix("Bearer ") for r in self.requests]


def send_callback(flow: Any, path: str | None = None, **params: str) -> httpx.Response:
    """Simulate the browser redirect to an AuthorizationFlow's listener."""
    url = f"http://127.0.0.1:{flow.request.redirect_port}{path or flow.request.redirect_path}"
    return httpx.get(url, params=params, trust_env=False, timeout=5.0)

"""Initialization gate for tool calls.

No tool other than the initializer may run until the initializer has
completed once. The gate is a one-way latch: it opens on the first
successful initialization and stays open for the life of the process.
``reset()`` exists for test isolation only.
"""

import functools
import logging
import threading
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from spotify_mcp.errors import INITIALIZER_TOOL, NotInitializedError

logger = logging.getLogger(__name__)

HandlerT = TypeVar("HandlerT", bound=Callable[..., Awaitable[Any]])


class InitializationGate:
    """One-way latch guarding every tool except the initializer.

    Attributes:
        initializer: Name of the tool that is always allowed and opens the gate.
    """

    def __init__(self, initializer: str = INITIALIZER_TOOL) -> None:
        self.initializer = initializer
        self._lock = threading.Lock()
        self._opened_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self._opened_at is not None

    @property
    def opened_at(self) -> datetime | None:
        return self._opened_at

    def check(self, operation_name: str) -> None:
        """Allow the operation or explain that initialization is required.

        Raises:
            NotInitializedError: If the gate is closed and the operation is not
                the initializer.
        """
        if operation_name == self.initializer or self.is_open:
            return
        raise NotInitializedError(operation_name)

    def open(self) -> None:
        """Open the gate. Later calls keep the original opening time."""
        with self._lock:
            if self._opened_at is None:
                self._opened_at = datetime.now(timezone.utc)
                logger.info("Initialization gate opened")

    def reset(self) -> None:
        """Close the gate again. Intended for tests."""
        with self._lock:
            self._opened_at = None


def gated(gate: InitializationGate, name: str) -> Callable[[HandlerT], HandlerT]:
    """Wrap a tool handler so it checks the gate before running.

    Example:
        ```python
        @gated(gate, "get_user_playlists")
        async def get_user_playlists(ctx, params):
            ...
        ```
    """

    def decorator(handler: HandlerT) -> HandlerT:
        @functools.wraps(handler)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            gate.check(name)
            return await handler(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator

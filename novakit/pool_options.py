"""Message types, heartbeats and timeouts for pooled websocket clients."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Iterator, Optional

DEFAULT_HEART_INTERVAL = 60.0
DEFAULT_MESSAGE_TIMEOUT = 5.0


class MessageType(IntEnum):
    """Websocket frame opcodes."""

    TEXT = 1
    BINARY = 2
    CLOSE = 8
    PING = 9
    PONG = 10


@dataclass
class Heart:
    """A connection heartbeat: ``fn`` runs with the client every ``interval`` seconds."""

    interval: float = 0.0
    fn: Optional[Callable[[Any], Any]] = None
    _stopped: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.interval < 0:
            raise ValueError("interval must not be negative")

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def stop(self) -> "Heart":
        """Stop the heartbeat."""
        self._stopped.set()
        return self

    def beats(self) -> Iterator[None]:
        """Yield once per interval until stopped; without an interval, never."""
        while not self._stopped.wait(self.interval if self.interval > 0 else None):
            yield None


@dataclass
class MessageTimeout:
    """How long, in seconds, a synchronous message waits for its reply."""

    interval: float = 0.0


def default_heart() -> Heart:
    """A heartbeat every 60 seconds that does nothing."""
    return Heart(interval=DEFAULT_HEART_INTERVAL, fn=None)


def default_message_timeout() -> MessageTimeout:
    """A five-second message timeout."""
    return MessageTimeout(interval=DEFAULT_MESSAGE_TIMEOUT)
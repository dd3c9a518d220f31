"""Websocket message framing, connection status and callback sets."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

Connection = Any

ClientCallbackFn = Callable[[str, str, bytes], None]
ClientStandardSuccessFn = Callable[[str, str, Connection], None]
ClientStandardFailFn = Callable[[str, str, Connection, BaseException], None]
ClientReceiveMessageSuccessFn = Callable[[str, str, bytes], None]
ClientHeartFn = Callable[[str, str, Any], None]
PingFn = Callable[[Connection], None]
ServerConnectionFailFn = Callable[[BaseException], None]
ServerConnectionSuccessFn = Callable[[Connection], None]
ServerConnectionCheckFn = Callable[[Any], str]
ServerReceiveMessageSuccessFn = Callable[[Any, "Message"], None]
ServerReceiveMessageFailFn = Callable[[Connection, BaseException], None]
ServerSendMessageFailFn = Callable[[BaseException], None]
ServerSendMessageSuccessFn = Callable[[Connection, bytes, bytes], None]
ServerCloseCallbackFn = Callable[[Connection], None]


class ConnStatus(str, Enum):
    """Whether a connection is online."""

    ONLINE = "ON-LINE"
    OFFLINE = "OFF-LINE"


@dataclass(frozen=True)
class Message:
    """A framed message; asynchronous ones are sent as ``<id>:<payload>``."""

    is_async: bool = False
    message_id: str = ""
    message: bytes = b""
    prototype_message: bytes = b""

    def content(self) -> bytes:
        """The body: the framed message when asynchronous, else the original."""
        return self.message if self.is_async else self.prototype_message


def _uuid6() -> uuid.UUID:
    """A time-ordered version 6 UUID."""
    base = uuid.uuid1()
    timestamp = base.time
    value = (
        ((timestamp >> 12) << 80)
        | (0x6 << 76)
        | ((timestamp & 0xFFF) << 64)
        | (base.int & 0xFFFFFFFFFFFFFFFF)
    )
    return uuid.UUID(int=value)


def new_message(is_async: bool, payload: bytes) -> Message:
    """Build a message; asynchronous ones get a fresh id prefixed to the payload."""
    payload = bytes(payload)
    if not is_async:
        return Message(is_async=False, message_id="", message=payload, prototype_message=payload)
    message_id = str(_uuid6())
    return Message(
        is_async=True,
        message_id=message_id,
        message=message_id.encode() + b":" + payload,
        prototype_message=payload,
    )


def parse_message(raw: bytes) -> Message:
    """Parse received bytes; exactly one ``:`` marks an asynchronous reply."""
    raw = bytes(raw)
    parts: Tuple[bytes, ...] = tuple(raw.split(b":"))
    if len(parts) == 2:
        return Message(
            is_async=True,
            message_id=parts[0].decode("utf-8", "replace"),
            message=parts[1],
            prototype_message=raw,
        )
    return Message(is_async=False, message_id="", message=raw, prototype_message=raw)


@dataclass
class ClientCallbacks:
    """Callbacks a websocket client reports its events to."""

    on_conn_success: Optional[ClientStandardSuccessFn] = None
    on_conn_fail: Optional[ClientStandardFailFn] = None
    on_close_success: Optional[ClientStandardSuccessFn] = None
    on_close_fail: Optional[ClientStandardFailFn] = None
    on_receive_message_success: Optional[ClientReceiveMessageSuccessFn] = None
    on_receive_message_fail: Optional[ClientStandardFailFn] = None
    on_send_message_fail: Optional[ClientStandardFailFn] = None


@dataclass
class ServerCallbacks:
    """Callbacks a websocket server pool reports its events to."""

    on_connection_fail: Optional[ServerConnectionFailFn] = None
    on_connection_success: Optional[ServerConnectionSuccessFn] = None
    on_send_message_success: Optional[ServerSendMessageSuccessFn] = None
    on_send_message_fail: Optional[ServerSendMessageFailFn] = None
    on_receive_message_fail: Optional[ServerReceiveMessageFailFn] = None
    on_receive_message_success: Optional[ServerReceiveMessageSuccessFn] = None
    on_close: Optional[ServerCloseCallbackFn] = None
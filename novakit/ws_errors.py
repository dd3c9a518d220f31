"""Exceptions raised by the websocket client and server helpers."""

from __future__ import annotations

from typing import Optional


class WebsocketError(Exception):
    """Base of every websocket failure.

    ``WebsocketError(detail)`` appends a non-empty ``detail`` to the class's
    default message, separated by ``：``; without a detail the default
    message stands alone.
    """

    default_message = "websocket错误"
    wrap_message: Optional[str] = None

    def __init__(self, detail: Optional[str] = None) -> None:
        parts = (self.default_message, "" if detail is None else str(detail))
        super().__init__("：".join(part for part in parts if part))
        self.detail = detail

    @property
    def message(self) -> str:
        return self.args[0]

    def __str__(self) -> str:
        return self.args[0]

    @classmethod
    def wrap(cls, cause: Optional[BaseException]) -> "WebsocketError":
        """Create an error describing ``cause`` and chained to it."""
        prefix = cls.wrap_message or cls.default_message
        error = cls()
        if cause is None:
            error.args = (prefix,)
            return error
        error.args = (f"{prefix}：{cause}",)
        error.detail = str(cause)
        error.__cause__ = cause
        return error


class WebsocketConnOptionError(WebsocketError):
    """The options given for a connection are invalid."""

    default_message = "websocket连接参数错误"
    wrap_message = "websocket链接参数错误"


class SyncMessageTimeoutError(WebsocketError):
    """No reply arrived for a synchronous message in time."""

    default_message = "消息同步超时"
    wrap_message = "同步消息超时"


class WebsocketOfflineError(WebsocketError):
    """The connection is not online."""

    default_message = "连接不在线"


class AsyncMessageCallbackEmptyError(WebsocketError):
    """An asynchronous message was sent without a callback."""

    default_message = "异步消息回调不能为空"


class AsyncMessageTimeoutError(WebsocketError):
    """An asynchronous message timed out or was given no positive timeout."""

    default_message = "异步消息回调超时必须大于0"


class WebsocketClientExistError(WebsocketError):
    """A client with that name is already registered."""

    default_message = "websocket客户端已存在"


class WebsocketClientNotExistError(WebsocketError):
    """No client with that name is registered."""

    default_message = "websocket客户端不存在"


class WebsocketServerConnConditionFuncEmptyError(WebsocketError):
    """A server connection was handled without a condition function."""

    default_message = "websocket服务端连接函数不能为空"


class WebsocketServerConnTagEmptyError(WebsocketError):
    """A server connection has no identifying tag."""

    default_message = "websocket服务端连接标识不能为空"


class WebsocketServerConnTagExistError(WebsocketError):
    """A server connection tag is already taken."""

    default_message = "websocket服务端连接标识重复"


class WebsocketServerOnReceiveMessageSuccessCallbackEmptyError(WebsocketError):
    """A server was started without a receive callback."""

    default_message = "websocket服务端接收消息成功回调不能为空"
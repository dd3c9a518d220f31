"""Websocket server connections and a process-wide pool of them."""

from __future__ import annotations

import threading
from typing import Any, Dict, Mapping, Optional

from websockets.exceptions import ConnectionClosed

from .ws_errors import (
    WebsocketError,
    WebsocketServerConnConditionFuncEmptyError,
    WebsocketServerOnReceiveMessageSuccessCallbackEmptyError,
)
from .ws_message import (
    ConnStatus,
    ServerCallbacks,
    ServerCloseCallbackFn,
    ServerConnectionCheckFn,
    ServerReceiveMessageFailFn,
    ServerReceiveMessageSuccessFn,
    ServerSendMessageFailFn,
    ServerSendMessageSuccessFn,
    new_message,
    parse_message,
)

_CLOSED = (ConnectionClosed, EOFError)


def _remote_addr(conn: Any) -> str:
    address = getattr(conn, "remote_address", None)
    if isinstance(address, (tuple, list)) and len(address) >= 2:
        host, port = str(address[0]), address[1]
        return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"
    return "" if address is None else str(address)


def _text(data: bytes) -> str:
    return bytes(data).decode("utf-8", "replace")


def _send_frame(conn: Any, data: bytes) -> None:
    """Send ``data`` as a text frame, or as binary when it is not UTF-8."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        conn.send(data)
    else:
        conn.send(text)


class Server:
    """One accepted websocket connection on the server side."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn
        self._addr = _remote_addr(conn)
        self._status = ConnStatus.OFFLINE
        self._closing = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def addr(self) -> str:
        return self._addr

    @property
    def conn(self) -> Any:
        return self._conn

    def is_online(self) -> bool:
        return self._status is ConnStatus.ONLINE

    def is_offline(self) -> bool:
        return self._status is ConnStatus.OFFLINE

    def _send(
        self,
        is_async: bool,
        payload: bytes,
        on_success: Optional[ServerSendMessageSuccessFn],
        on_fail: Optional[ServerSendMessageFailFn],
    ) -> None:
        payload = bytes(payload)
        if self.is_offline():
            if on_fail is not None:
                on_fail(ConnectionError(f"发送失败：连接离线：{self._addr} -> {_text(payload)}"))
            return

        message = new_message(is_async, payload)
        try:
            _send_frame(self._conn, message.content())
        except Exception as error:
            if on_fail is not None:
                failure = ConnectionError(
                    f"发送失败：{error} [{self._addr} -> {_text(message.content())}] "
                    f"{_text(message.prototype_message)}"
                )
                failure.__cause__ = error
                on_fail(failure)
            return
        if on_success is not None:
            on_success(self._conn, message.content(), message.prototype_message)

    def sync_message(
        self,
        payload: bytes,
        on_success: Optional[ServerSendMessageSuccessFn] = None,
        on_fail: Optional[ServerSendMessageFailFn] = None,
    ) -> None:
        """Send ``payload`` unframed."""
        self._send(False, payload, on_success, on_fail)

    def async_message(
        self,
        payload: bytes,
        on_success: Optional[ServerSendMessageSuccessFn] = None,
        on_fail: Optional[ServerSendMessageFailFn] = None,
    ) -> None:
        """Send ``payload`` framed with a fresh message id."""
        self._send(True, payload, on_success, on_fail)

    def close(self) -> "Server":
        """Ask the receive loop to stop and close the connection."""
        self._closing.set()
        try:
            self._conn.close()
        except Exception:
            pass
        return self

    def boot(
        self,
        on_receive_success: Optional[ServerReceiveMessageSuccessFn],
        on_receive_fail: Optional[ServerReceiveMessageFailFn] = None,
        on_send_fail: Optional[ServerSendMessageFailFn] = None,
        on_close: Optional[ServerCloseCallbackFn] = None,
    ) -> None:
        """Start receiving in the background.

        Each text message is parsed and handed to ``on_receive_success`` in
        its own thread; binary messages are ignored. Pings are answered by
        the connection itself, so ``on_send_fail`` is kept only for symmetry
        with the send methods.
        """
        if on_receive_success is None:
            raise WebsocketServerOnReceiveMessageSuccessCallbackEmptyError("onReceiveMessageSuccess")
        self._on_send_fail = on_send_fail
        self._status = ConnStatus.ONLINE
        self._thread = threading.Thread(
            target=self._serve,
            args=(on_receive_success, on_receive_fail, on_close),
            daemon=True,
        )
        self._thread.start()

    def _finish(self, on_close: Optional[ServerCloseCallbackFn]) -> None:
        self._status = ConnStatus.OFFLINE
        if on_close is not None:
            on_close(self._conn)

    def _serve(
        self,
        on_receive_success: ServerReceiveMessageSuccessFn,
        on_receive_fail: Optional[ServerReceiveMessageFailFn],
        on_close: Optional[ServerCloseCallbackFn],
    ) -> None:
        try:
            while True:
                if self._closing.is_set():
                    self._finish(on_close)
                    return
                try:
                    raw = self._conn.recv()
                except _CLOSED:
                    self._finish(on_close)
                    return
                except Exception as error:
                    if self._closing.is_set():
                        self._finish(on_close)
                        return
                    if on_receive_fail is not None:
                        on_receive_fail(self._conn, error)
                    continue
                if isinstance(raw, str):
                    message = parse_message(raw.encode("utf-8"))
                    threading.Thread(
                        target=on_receive_success, args=(self, message), daemon=True
                    ).start()
        finally:
            try:
                self._conn.close()
            except Exception:
                pass


class ServerPool:
    """Server connections keyed by remote address, each tagged with an identity."""

    def __init__(self, callbacks: Optional[ServerCallbacks] = None) -> None:
        self.callbacks = callbacks or ServerCallbacks()
        self._connections: Dict[str, Server] = {}
        self._auth: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, addr: object) -> bool:
        return addr in self._connections

    def _append_conn(self, auth_id: str, conn: Any) -> Server:
        server = Server(conn)
        with self._lock:
            self._auth[server.addr] = auth_id
            self._connections[server.addr] = server
        return server

    def _remove_conn(self, addr: str) -> None:
        with self._lock:
            self._auth.pop(addr, None)
            self._connections.pop(addr, None)

    def _report_connection_fail(self, error: BaseException) -> None:
        if self.callbacks.on_connection_fail is not None:
            self.callbacks.on_connection_fail(error)

    def handle(
        self,
        conn: Any,
        headers: Optional[Mapping[str, Any]] = None,
        condition: Optional[ServerConnectionCheckFn] = None,
    ) -> Optional[Server]:
        """Identify an upgraded connection, add it to the pool and start receiving.

        ``condition`` receives the request headers and returns the identity;
        raising rejects the connection. Returns the started server, or None
        when the connection was rejected. A handler run by a websocket server
        must keep running while the connection should stay open.
        """
        if condition is None:
            self._report_connection_fail(WebsocketServerConnConditionFuncEmptyError())
            return None

        if headers is None:
            headers = getattr(getattr(conn, "request", None), "headers", None)
        try:
            identity = condition(headers)
        except Exception as error:
            self._report_connection_fail(error)
            return None

        server = self._append_conn(identity, conn)
        cb = self.callbacks
        try:
            server.boot(
                cb.on_receive_message_success,
                cb.on_receive_message_fail,
                cb.on_send_message_fail,
                cb.on_close,
            )
        except WebsocketError as error:
            self._report_connection_fail(error)
            server.close()
            self._remove_conn(server.addr)
            return None

        if cb.on_connection_success is not None:
            cb.on_connection_success(conn)
        return server

    def send_message_by_addr(self, addr: str, payload: bytes) -> None:
        """Send a framed message to the connection at ``addr``."""
        server = self._connections.get(addr)
        cb = self.callbacks
        if server is None:
            if cb.on_send_message_fail is not None:
                cb.on_send_message_fail(LookupError(f"没有找到连接：{addr}"))
            return
        server.async_message(payload, cb.on_send_message_success, cb.on_send_message_fail)

    def send_message_by_auth_id(self, auth_id: str, payload: bytes) -> None:
        """Send a framed message to every connection tagged ``auth_id``."""
        with self._lock:
            servers = [
                self._connections[addr]
                for addr, identity in self._auth.items()
                if identity == auth_id and addr in self._connections
            ]
        cb = self.callbacks
        for server in servers:
            server.async_message(payload, cb.on_send_message_success, cb.on_send_message_fail)


_pool_lock = threading.Lock()
_pool: Optional[ServerPool] = None


def server_pool(callbacks: Optional[ServerCallbacks] = None) -> ServerPool:
    """Return the process-wide server pool; ``callbacks`` apply only when it is first made."""
    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = ServerPool(callbacks)
    return _pool
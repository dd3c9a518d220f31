"""Pooled websocket clients grouped into named instances."""

from __future__ import annotations

import queue
import threading
from typing import Any, Callable, Dict, Optional

from websockets.sync.client import connect as _ws_connect

from .pool_options import Heart, MessageTimeout, MessageType, default_heart

ReceiveFn = Callable[[str, str, bytes], bytes]
Connector = Callable[[str], Any]


def _default_connect(url: str) -> Any:
    return _ws_connect(url)


def _build_url(host: str, path: str) -> str:
    if path and host and not path.startswith("/"):
        path = "/" + path
    return f"ws://{host}{path}"


def _write(conn: Any, msg_type: int, data: bytes) -> None:
    kind = MessageType(msg_type)
    if kind is MessageType.TEXT:
        conn.send(bytes(data).decode("utf-8"))
    elif kind is MessageType.BINARY:
        conn.send(bytes(data))
    elif kind is MessageType.PING:
        conn.ping(bytes(data))
    elif kind is MessageType.PONG:
        conn.pong(bytes(data))
    else:
        conn.close()


class PoolClient:
    """One websocket connection that sends a message and waits for the reply."""

    def __init__(
        self,
        instance_name: str,
        name: str,
        host: str,
        path: str = "",
        on_receive: Optional[ReceiveFn] = None,
        connect: Optional[Connector] = None,
    ) -> None:
        self.instance_name = instance_name
        self.name = name
        self.url = _build_url(host, path)
        self.conn = (connect or _default_connect)(self.url)
        self.on_receive = on_receive
        self.heart: Optional[Heart] = None
        self.timeout: Optional[MessageTimeout] = None
        self.pool: Optional["ClientPool"] = None
        self._lock = threading.Lock()
        self._replies: "queue.Queue[bytes]" = queue.Queue()
        self._closed = threading.Event()
        self._detach: Optional[Callable[[], None]] = None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _fail(self, error: BaseException) -> BaseException:
        if self.pool is not None:
            self.pool.error = error
        return error

    def send_msg(self, msg_type: int, msg: bytes) -> bytes:
        """Send ``msg`` and return the next reply, passed through ``on_receive`` if set."""
        if self.timeout is None or not self.timeout.interval:
            raise self._fail(ValueError("同步消息，需要设置超时时间"))

        with self._lock:
            try:
                _write(self.conn, msg_type, msg)
            except Exception as error:
                if self.pool is not None and self.pool.on_send_msg_err is not None:
                    self.pool.on_send_msg_err(self.instance_name, self.name, error)
                self._fail(error)
                raise
            try:
                reply = self._replies.get(timeout=self.timeout.interval)
            except queue.Empty:
                raise self._fail(TimeoutError("请求超时")) from None

        if self.on_receive is not None:
            return self.on_receive(self.instance_name, self.name, reply)
        return reply

    def _mark_closed(self) -> None:
        self._closed.set()
        if self.heart is not None:
            self.heart.stop()
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()

    def close(self) -> None:
        """Close the connection and leave the owning instance."""
        try:
            self.conn.close()
        except Exception as error:
            if self.pool is not None and self.pool.on_close_err is not None:
                self.pool.on_close_err(self.instance_name, self.name, error)
            self._mark_closed()
            raise
        self._mark_closed()

    def _listen(self) -> None:
        while not self._closed.is_set():
            try:
                raw = self.conn.recv()
            except Exception as error:
                if self._closed.is_set():
                    return
                if self.pool is not None and self.pool.on_receive_msg_err is not None:
                    self.pool.on_receive_msg_err(self.instance_name, self.name, b"", error)
                return
            self._replies.put(raw.encode("utf-8") if isinstance(raw, str) else bytes(raw))

    def _beat(self) -> None:
        heart = self.heart
        if heart is None:
            return
        for _ in heart.beats():
            if self._closed.is_set():
                return
            if heart.fn is not None:
                heart.fn(self)


class PoolClientInstance:
    """Clients of one instance, keyed by client name."""

    def __init__(self, name: str, pool: Optional["ClientPool"] = None) -> None:
        self.name = name
        self.pool = pool
        self._clients: Dict[str, PoolClient] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, name: object) -> bool:
        return name in self._clients

    def get_client(self, client_name: str) -> Optional[PoolClient]:
        """Return the client called ``client_name``, or None."""
        return self._clients.get(client_name)

    def _discard(self, client_name: str, client: PoolClient) -> None:
        with self._lock:
            if self._clients.get(client_name) is client:
                del self._clients[client_name]

    def set_client(
        self,
        client_name: str,
        host: str,
        path: str = "",
        on_receive: Optional[ReceiveFn] = None,
        heart: Optional[Heart] = None,
        timeout: Optional[MessageTimeout] = None,
    ) -> PoolClient:
        """Connect a client, replacing any client of that name, and start listening."""
        pool = self.pool
        with self._lock:
            existing = self._clients.pop(client_name, None)
        if existing is not None:
            existing.conn.close()
            existing._detach = None
            existing._mark_closed()

        connect = pool.connect if pool is not None else None
        try:
            client = PoolClient(self.name, client_name, host, path, on_receive, connect)
        except Exception as error:
            if pool is not None and pool.on_connect_err is not None:
                pool.on_connect_err(self.name, client_name, error)
            raise
        client.pool = pool
        client._detach = lambda: self._discard(client_name, client)
        with self._lock:
            self._clients[client_name] = client

        if pool is not None and pool.on_connect is not None:
            pool.on_connect(self.name, client_name)

        client.heart = heart if heart is not None else default_heart()
        if timeout is not None:
            client.timeout = timeout

        threading.Thread(target=client._listen, daemon=True).start()
        threading.Thread(target=client._beat, daemon=True).start()
        return client

    def send_msg_by_name(self, client_name: str, msg_type: int, msg: bytes) -> bytes:
        """Send through the client called ``client_name``."""
        client = self._clients.get(client_name)
        if client is None:
            error = LookupError("没有找到客户端链接")
            if self.pool is not None:
                if self.pool.on_send_msg_err is not None:
                    self.pool.on_send_msg_err(self.name, client_name, error)
                self.pool.error = error
            raise error
        return client.send_msg(msg_type, msg)

    def close(self) -> None:
        """Close every client and leave the pool."""
        for client in list(self._clients.values()):
            try:
                client.close()
            except Exception:
                pass
        with self._lock:
            self._clients.clear()
        if self.pool is not None:
            self.pool._instances.pop(self.name, None)


class ClientPool:
    """Client instances keyed by name, sharing one set of event callbacks."""

    def __init__(self, connect: Optional[Connector] = None) -> None:
        self.connect = connect
        self.on_connect: Optional[Callable[[str, str], None]] = None
        self.on_connect_err: Optional[Callable[[str, str, BaseException], None]] = None
        self.on_send_msg_err: Optional[Callable[[str, str, BaseException], None]] = None
        self.on_close_err: Optional[Callable[[str, str, BaseException], None]] = None
        self.on_receive_msg_err: Optional[Callable[[str, str, bytes, BaseException], None]] = None
        self.error: Optional[BaseException] = None
        self._instances: Dict[str, PoolClientInstance] = {}

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, name: object) -> bool:
        return name in self._instances

    def get_client_instance(self, instance_name: str) -> Optional[PoolClientInstance]:
        """Return the instance called ``instance_name``, or None."""
        return self._instances.get(instance_name)

    def set_client_instance(self, instance_name: str) -> PoolClientInstance:
        """Create an instance; the name must not be taken."""
        if instance_name in self._instances:
            raise ValueError(f"创建实例失败：{instance_name}已经存在")
        instance = PoolClientInstance(instance_name, self)
        self._instances[instance_name] = instance
        return instance

    def get_client(self, instance_name: str, client_name: str) -> PoolClient:
        """Return a client, raising LookupError when it or its instance is missing."""
        instance = self._instances.get(instance_name)
        if instance is None:
            self.error = LookupError(f"实例不存在：{instance_name}")
            raise self.error
        client = instance.get_client(client_name)
        if client is None:
            self.error = LookupError(f"链接不存在：{client_name}")
            raise self.error
        return client

    def set_client(
        self,
        instance_name: str,
        client_name: str,
        host: str,
        path: str = "",
        on_receive: Optional[ReceiveFn] = None,
        heart: Optional[Heart] = None,
        timeout: Optional[MessageTimeout] = None,
    ) -> PoolClient:
        """Connect a client in an instance, creating the instance if needed."""
        instance = self._instances.get(instance_name)
        if instance is None:
            instance = PoolClientInstance(instance_name, self)
            self._instances[instance_name] = instance
        return instance.set_client(client_name, host, path, on_receive, heart, timeout)

    def send_msg_by_name(
        self, instance_name: str, client_name: str, msg_type: int, msg: bytes
    ) -> bytes:
        """Send through a client found by instance and client name."""
        instance = self._instances.get(instance_name)
        if instance is None:
            error = LookupError("没有找到客户端实例")
            if self.on_send_msg_err is not None:
                self.on_send_msg_err(instance_name, client_name, error)
            self.error = error
            raise error
        return instance.send_msg_by_name(client_name, msg_type, msg)

    def close(self) -> None:
        """Close every instance."""
        for instance in list(self._instances.values()):
            instance.close()
        self._instances.clear()

    def close_client(self, instance_name: str, client_name: str) -> None:
        """Close one client."""
        instance = self._instances.get(instance_name)
        if instance is None:
            error = LookupError("没有找到客户端实例")
            if self.on_close_err is not None:
                self.on_close_err(instance_name, client_name, error)
            raise error
        client = instance.get_client(client_name)
        if client is None:
            error = LookupError("没有找到客户端链接")
            if self.on_close_err is not None:
                self.on_close_err(instance_name, client_name, error)
            raise error
        client.close()


_pool_lock = threading.Lock()
_pool: Optional[ClientPool] = None


def client_pool() -> ClientPool:
    """Return the process-wide client pool, creating it once."""
    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = ClientPool()
    return _pool
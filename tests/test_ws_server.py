import queue
import threading
import time

import pytest

from novakit.ws_errors import WebsocketServerOnReceiveMessageSuccessCallbackEmptyError
from novakit.ws_message import ServerCallbacks, parse_message
from novakit.ws_server import Server, ServerPool, server_pool


class FakeConn:
    def __init__(self, incoming=(), remote_address=("127.0.0.1", 5000), fail_send=None):
        self._incoming = queue.Queue()
        for item in incoming:
            self._incoming.put(item)
        self.remote_address = remote_address
        self.fail_send = fail_send
        self.sent = []
        self.closed = threading.Event()

    def recv(self):
        item = self._incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    def send(self, data):
        if self.fail_send is not None:
            raise self.fail_send
        self.sent.append(data)

    def close(self):
        if not self.closed.is_set():
            self.closed.set()
            self._incoming.put(EOFError())


def test_addr_from_remote_address():
    assert Server(FakeConn()).addr == "127.0.0.1:5000"
    assert Server(FakeConn(remote_address=("::1", 80))).addr == "[::1]:80"


def test_new_server_is_offline_and_refuses_to_send():
    conn = FakeConn()
    server = Server(conn)
    failures = []
    server.sync_message(b"hi", None, failures.append)
    assert server.is_offline()
    assert not server.is_online()
    assert str(failures[0]) == "发送失败：连接离线：127.0.0.1:5000 -> hi"
    assert conn.sent == []


def test_boot_requires_receive_callback():
    with pytest.raises(WebsocketServerOnReceiveMessageSuccessCallbackEmptyError):
        Server(FakeConn()).boot(None)


def test_boot_dispatches_text_messages():
    conn = FakeConn(["abc:hello"])
    received = queue.Queue()
    server = Server(conn)
    server.boot(lambda srv, msg: received.put((srv, msg)))
    srv, msg = received.get(timeout=2)
    assert server.is_online()
    assert srv is server
    assert msg.is_async
    assert msg.message_id == "abc"
    assert msg.message == b"hello"
    server.close()


def test_binary_messages_are_ignored():
    conn = FakeConn([b"raw", "plain"])
    received = queue.Queue()
    server = Server(conn)
    server.boot(lambda srv, msg: received.put(msg))
    msg = received.get(timeout=2)
    assert msg.content() == b"plain"
    time.sleep(0.1)
    assert received.empty()
    server.close()


def test_receive_failure_is_reported_and_loop_continues():
    problem = ValueError("bad")
    conn = FakeConn([problem, "next"])
    failures = queue.Queue()
    received = queue.Queue()
    server = Server(conn)
    server.boot(lambda srv, msg: received.put(msg), lambda c, e: failures.put((c, e)))
    failed_conn, error = failures.get(timeout=2)
    assert failed_conn is conn
    assert error is problem
    assert received.get(timeout=2).content() == b"next"
    server.close()


def test_sync_message_sends_unframed():
    conn = FakeConn()
    server = Server(conn)
    server.boot(lambda srv, msg: None)
    successes = []
    server.sync_message(b"hello", lambda c, m, p: successes.append((c, m, p)))
    assert conn.sent == ["hello"]
    assert successes == [(conn, b"hello", b"hello")]
    server.close()


def test_async_message_sends_framed():
    conn = FakeConn()
    server = Server(conn)
    server.boot(lambda srv, msg: None)
    successes = []
    server.async_message(b"payload", lambda c, m, p: successes.append((m, p)))
    parsed = parse_message(conn.sent[0].encode())
    assert parsed.is_async
    assert parsed.content() == b"payload"
    message, prototype = successes[0]
    assert message == conn.sent[0].encode()
    assert prototype == b"payload"
    server.close()


def test_send_failure_reports_and_skips_success():
    conn = FakeConn(fail_send=OSError("broken"))
    server = Server(conn)
    server.boot(lambda srv, msg: None)
    successes, failures = [], []
    server.sync_message(b"x", successes.append, failures.append)
    assert successes == []
    assert str(failures[0]).startswith("发送失败：broken [127.0.0.1:5000 -> x]")
    server.close()


def test_close_stops_loop_and_reports():
    conn = FakeConn()
    closed = threading.Event()
    seen = []
    server = Server(conn)
    server.boot(lambda srv, msg: None, on_close=lambda c: (seen.append(c), closed.set()))
    server.close()
    assert closed.wait(2)
    assert seen == [conn]
    assert server.is_offline()
    assert conn.closed.is_set()


def _pool(**extra):
    callbacks = ServerCallbacks(on_receive_message_success=lambda srv, msg: None, **extra)
    return ServerPool(callbacks)


def test_send_by_auth_id_reaches_matching_connections():
    sent_ok = []
    pool = _pool(on_send_message_success=lambda c, m, p: sent_ok.append(c))
    c1 = FakeConn(remote_address=("10.0.0.1", 1))
    c2 = FakeConn(remote_address=("10.0.0.2", 2))
    c3 = FakeConn(remote_address=("10.0.0.3", 3))
    for conn, ident in ((c1, "u1"), (c2, "u1"), (c3, "u2")):
        pool.handle(conn, {"Identity": ident}, lambda h: h["Identity"])
    assert len(pool) == 3
    pool.send_message_by_auth_id("u1", b"hi")
    assert parse_message(c1.sent[0].encode()).content() == b"hi"
    assert parse_message(c2.sent[0].encode()).content() == b"hi"
    assert c3.sent == []
    assert sorted(sent_ok, key=id) == sorted([c1, c2], key=id)


def test_send_by_addr():
    pool = _pool()
    conn = FakeConn(remote_address=("10.0.0.9", 9))
    pool.handle(conn, {}, lambda h: "someone")
    assert "10.0.0.9:9" in pool
    pool.send_message_by_addr("10.0.0.9:9", b"data")
    assert parse_message(conn.sent[0].encode()).content() == b"data"


def test_send_by_unknown_addr_reports_failure():
    failures = []
    pool = _pool(on_send_message_fail=failures.append)
    pool.send_message_by_addr("nowhere", b"x")
    assert isinstance(failures[0], LookupError)
    assert str(failures[0]) == "没有找到连接：nowhere"


def test_handle_without_condition_fails():
    failures = []
    pool = _pool(on_connection_fail=failures.append)
    assert pool.handle(FakeConn(), {}, None) is None
    assert len(failures) == 1
    assert len(pool) == 0


def test_handle_with_rejecting_condition():
    failures = []
    pool = _pool(on_connection_fail=failures.append)
    problem = PermissionError("denied")

    def reject(headers):
        raise problem

    assert pool.handle(FakeConn(), {}, reject) is None
    assert failures == [problem]
    assert len(pool) == 0


def test_handle_without_receive_callback_removes_connection():
    failures = []
    pool = ServerPool(ServerCallbacks(on_connection_fail=failures.append))
    conn = FakeConn()
    assert pool.handle(conn, {}, lambda h: "id") is None
    assert isinstance(failures[0], WebsocketServerOnReceiveMessageSuccessCallbackEmptyError)
    assert "127.0.0.1:5000" not in pool
    assert conn.closed.is_set()


def test_handle_reports_success_and_returns_server():
    connected = []
    pool = _pool(on_connection_success=connected.append)
    conn = FakeConn()
    server = pool.handle(conn, {}, lambda h: "id")
    assert server.conn is conn
    assert server.is_online()
    assert connected == [conn]
    server.close()


def test_server_pool_is_shared():
    assert server_pool() is server_pool(ServerCallbacks())
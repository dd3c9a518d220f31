import uuid

from novakit.ws_message import (
    ClientCallbacks,
    ConnStatus,
    Message,
    ServerCallbacks,
    new_message,
    parse_message,
)


def test_sync_message_keeps_payload():
    msg = new_message(False, b"hello")
    assert msg.is_async is False
    assert msg.message_id == ""
    assert msg.content() == b"hello"
    assert msg.prototype_message == b"hello"


def test_async_message_is_framed_with_v6_id():
    msg = new_message(True, b"123")
    parsed_id = uuid.UUID(msg.message_id)
    assert parsed_id.version == 6
    assert msg.content() == msg.message_id.encode() + b":" + b"123"
    assert msg.prototype_message == b"123"


def test_async_ids_are_unique_and_ordered():
    ids = [new_message(True, b"x").message_id for _ in range(20)]
    assert len(set(ids)) == 20
    assert ids == sorted(ids)


def test_parse_round_trip_of_async_message():
    sent = new_message(True, b"payload")
    received = parse_message(sent.content())
    assert received.is_async is True
    assert received.message_id == sent.message_id
    assert received.content() == b"payload"
    assert received.prototype_message == sent.content()


def test_parse_without_colon_is_sync():
    received = parse_message(b"plain")
    assert received.is_async is False
    assert received.message_id == ""
    assert received.content() == b"plain"


def test_parse_with_several_colons_is_sync():
    raw = b"a:b:c"
    received = parse_message(raw)
    assert received.is_async is False
    assert received.content() == raw


def test_content_of_sync_message_uses_prototype():
    msg = Message(is_async=False, message=b"framed", prototype_message=b"raw")
    assert msg.content() == b"raw"


def test_status_values():
    assert ConnStatus.ONLINE.value == "ON-LINE"
    assert ConnStatus.OFFLINE.value == "OFF-LINE"
    assert ConnStatus("OFF-LINE") is ConnStatus.OFFLINE


def test_callbacks_default_to_none_and_accept_functions():
    calls = []
    client = ClientCallbacks(on_receive_message_success=lambda g, n, m: calls.append(m))
    client.on_receive_message_success("g", "n", b"m")
    assert calls == [b"m"]
    assert client.on_conn_fail is None
    server = ServerCallbacks()
    assert server.on_close is None and server.on_receive_message_success is None
# novakit

A small toolkit with two parts:

- **Rule-based validation** of dataclass instances (`novakit.validator`, `novakit.rules`,
  `novakit.validation_errors`).
- **Websocket helpers**: message framing (`novakit.ws_message`), a server-side connection
  pool (`novakit.ws_server`), and a pool of named client instances whose clients send a
  message and wait for the reply (`novakit.pool_client`, `novakit.pool_options`).
  Websocket errors live in `novakit.ws_errors`.

## Installation

```
pip install novakit
```

To run the tests, install the test extra (`pip install "novakit[test]"`) and run `pytest`.

## Validation

Declare fields with `rule_field(rule, name, kind)`. `rule` is a `;`-separated list of
rules; an empty rule or `"-"` switches checking off. `name` is used in error messages
(when omitted, the class name with its first letter lower-cased is used). `kind` is
`"string"`, `"time"` or a `NumberKind` (or its value, such as `"int8"`); when omitted it is
inferred from the value at validation time.

```python
from dataclasses import dataclass
from novakit.rules import NumberKind
from novakit.validator import Validator, rule_field

@dataclass
class Account:
    name: str = rule_field("required;max>10", "name", "string")
    email: str = rule_field("required;email", "email", "string")
    age: int = rule_field("range=0~150", "age", NumberKind.INT)

account = Validator(Account(name="alice", email="alice@example.com", age=30)).validate()
```

Rules for strings:

- `required` — fails only when the value is `None`. An empty string passes every rule.
- `email`, `date`, `time`, `datetime` — match the default patterns in `rules.Formats`;
  `date=<pattern>` and `datetime=<pattern>` use a pattern of their own.
- `min<`, `min<=`, `max>`, `max>=` — fail when the length is below / at-or-below /
  above / at-or-above the limit.
- `range=a,b` — length must lie between `a` and `b`; `length=n` — length must be exactly `n`.

Rules for numbers: `required`, `min<`, `min<=`, `max>`, `max>=` and `range=a~b`. Integer
kinds wrap the rule's limits to their width; `float32` rounds to single precision.
Fields of kind `"time"` must hold a `datetime.datetime`.

`validate(*checks)` raises the first error it finds, then runs each extra check with the
data; a check fails by raising or by returning an exception. On success it returns the
data. `Validator(data, "outer", "inner")` prefixes field names in messages with
`outer.inner.`.

Change the default patterns with `email_format`, `date_format`, `time_format` and
`datetime_format`; each returns the validator, so calls chain.

The errors are `ValidateError` and its subclasses `RequiredError`, `EmailError`,
`TimeError`, `LengthError` and `RuleError` (raised for a malformed `range=` rule).
The single-rule functions `check_string`, `check_number` and `check_time` in
`novakit.rules` can also be called directly.

## Message framing

`new_message(is_async, payload)` builds a `Message`. An asynchronous message gets a fresh
id and is sent as `<id>:<payload>`; a synchronous one is the bare payload.
`parse_message(raw)` treats bytes with exactly one `:` as an asynchronous reply.
`ConnStatus`, `ClientCallbacks` and `ServerCallbacks` are also defined there.

## Server pool

`server_pool(callbacks)` returns the process-wide `ServerPool` (callbacks take effect only
when it is first created). `handle(conn, headers, condition)` asks `condition` for the
connection's identity, adds it to the pool and starts receiving in the background; each
text message is parsed and passed to `on_receive_message_success`. It works with the
connections of `websockets.sync.server`:

```python
import time
from websockets.sync.server import serve
from novakit.ws_message import ServerCallbacks
from novakit.ws_server import server_pool

pool = server_pool(ServerCallbacks(
    on_receive_message_success=lambda server, message: print(message.content()),
))

def handler(conn):
    server = pool.handle(conn, condition=lambda headers: headers.get("Identity", ""))
    while server is not None and server.is_online():
        time.sleep(0.1)

with serve(handler, "127.0.0.1", 8080) as ws_server:
    ws_server.serve_forever()
```

`send_message_by_addr(addr, payload)` and `send_message_by_auth_id(auth_id, payload)`
send framed messages; failures go to `on_send_message_fail`.

## Client pool

`client_pool()` returns the process-wide `ClientPool`. `set_client(instance_name,
client_name, host, path, on_receive, heart, timeout)` connects to `ws://host/path`,
creating the instance if needed and replacing any client of the same name.
`send_msg_by_name(instance_name, client_name, msg_type, msg)` sends and returns the next
reply (passed through `on_receive` if given). A client needs a `MessageTimeout`; without
one sending raises `ValueError`, and a missing reply raises `TimeoutError`. Missing
instances or clients raise `LookupError`.

```python
from novakit.pool_client import client_pool
from novakit.pool_options import MessageType, default_heart, default_message_timeout

pool = client_pool()
pool.set_client("main", "01", "127.0.0.1:8080", "", None,
                default_heart(), default_message_timeout())
reply = pool.send_msg_by_name("main", "01", MessageType.TEXT, b"hello")
pool.close()
```

Event callbacks are attributes of the pool: `on_connect`, `on_connect_err`,
`on_send_msg_err`, `on_close_err` and `on_receive_msg_err`; the last failure is kept in
`pool.error`. `Heart(interval, fn)` runs `fn` with the client every `interval` seconds.

## What this package does not do

- It sets up no logging; it writes no log files.
- It has no standalone client that speaks the `<id>:<payload>` framing of
  `novakit.ws_message`; only the server pool uses that framing.
- It has no router that dispatches incoming messages to registered handlers.
- It provides no command-line program.
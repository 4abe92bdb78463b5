# imserverkit

Building blocks for an instant-messaging server.

The package provides:

- `imserverkit.protocol` – the wire protocol: a 44-byte packet header
  (`PacketHeader`), the `Command`, `PacketFlags`, `ErrorCode`,
  `DeliveryStatus`, `AckCode` and `PayloadFormat` enums, the message
  dataclasses (`LoginReq`, `P2PMsgNotify`, `PullOfflineResp`, …),
  `is_response_command`, `guess_flags_from_command` and a CRC16-CCITT
  checksum (`calc_crc16`).
- `imserverkit.buffer` – `Buffer`, a growable byte buffer with a reader and
  writer position and room to prepend; `read_socket` reads straight from a
  socket into it.
- `imserverkit.codec` – `encode_header` / `decode_header`, `pack` /
  `pack_header` to frame a payload, and `Codec`, a state machine that splits
  a byte stream into packets, checks magic, version, lengths and checksum,
  and calls your callbacks.
- `imserverkit.message_serializer` – `serialize` and `deserialize` between the
  message dataclasses and their JSON payloads; bad input raises
  `DeserializeError`, an unknown message type raises `TypeError`.
- `imserverkit.proto_codec` – `parse_payload_format` and
  `payload_format_name` for the `json` / `protobuf` payload setting.
- `imserverkit.config` – `Config`, a shared INI-style configuration
  (`Config.instance()`) with typed getters that fall back to defaults.
- `imserverkit.log` – `init_logging`, `set_level`, `get_logger` and the
  `LogLevel` enum: console plus size-rotated file logging in a
  `time=... level=... thread=... msg=...` line format.
- `imserverkit.redis_client` – `RedisClient`, a small synchronous, locked
  wrapper for string, counter, hash, list and set commands. Failures raise
  `redis.exceptions.RedisError` and are kept in `last_error`; `get`, `hget`,
  `lpop` and `rpop` return `None` for a missing value.
- `imserverkit.blocking_queue` and `imserverkit.threadpool` – a thread-safe
  `BlockingQueue` and a fixed-size `ThreadPool` whose `submit` returns a
  `concurrent.futures.Future`, with an optional queue limit
  (`max_queue_size`, `reject_callback`, `QueueFullError`).
- `imserverkit.metrics_server` – `MetricsServer`, a tiny HTTP endpoint that
  serves the text returned by a `render` callable on a configured path and
  answers anything else with 404.
- `imserverkit.util` – byte-order helpers, timestamps and string helpers.

## Framing and decoding packets

```python
from imserverkit.buffer import Buffer
from imserverkit.codec import Codec, pack
from imserverkit.message_serializer import serialize, deserialize
from imserverkit.protocol import Command, LoginReq

out = Buffer()
request = LoginReq(user_id="alice", token="token", device_id="device-demo")
pack(out, Command.LOGIN_REQ, 1, serialize(request))

received = []

def on_message(conn, command, seq_id, message):
    received.append((command, seq_id, deserialize(message, LoginReq)))

codec = Codec()
codec.set_message_callback(on_message)
codec.set_error_callback(lambda conn, error_code: print("error", error_code))

codec.on_message(None, out, None)
command, seq_id, login = received[0]
assert login.user_id == "alice"
```

`Codec.on_message` may be called with partial data; it keeps its state and
waits until a whole packet is in the buffer. A packet with a bad magic number,
version or length empties the buffer and reports the matching `ErrorCode`; a
checksum mismatch drops just that packet.

## Configuration

```ini
[server]
port = 8888
worker_threads = 4

[redis]
host = 127.0.0.1
port = 6379
```

```python
from imserverkit.config import Config

config = Config.instance()
config.load("server.ini")          # raises OSError if the file cannot be read
port = config.get_int("server", "port", 8888)
```

## Thread pool

```python
from imserverkit.threadpool import ThreadPool

with ThreadPool(4) as pool:
    future = pool.submit(lambda a, b: a + b, 1, 2)
    assert future.result() == 3
```

`stop(drain=False)` drops queued tasks and cancels their futures.

## Metrics endpoint

```python
from imserverkit.metrics_server import MetricsServer

with MetricsServer("127.0.0.1", 9100, "/metrics", render=lambda: "up 1\n"):
    ...  # GET /metrics returns "up 1\n"
```

## What is not included

This package has no chat server of its own: there is no TCP listener, event
loop or connection class, no login, routing or offline-message storage, and
no command to run. `Codec` and `Buffer` are meant to be driven by your own
networking code. There is no metrics registry either; `MetricsServer` serves
whatever its `render` callable returns. `PayloadFormat.PROTOBUF` is only a
named setting: payloads are encoded as JSON only.

## Testing

The test suite uses pytest; install the `test` extra to get it.
# lspkit

`lspkit` holds the building blocks of the Live Sequence Protocol (LSP), a
small message-oriented protocol that runs on top of UDP and adds
connections, in-order exactly-once delivery, a sliding window, retransmission
with optional exponential back-off, checksums and lost-connection detection.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

### `lspkit.params`

`Params` is a dataclass with `epoch_limit`, `epoch_millis`, `window_size`,
`max_back_off_interval` and `max_unacked_messages`. The defaults are 5,
2000, 1, 0 and 1.

### `lspkit.message`

`MsgType` (`CONNECT`, `DATA`, `ACK`, `CACK`) and the `Message` dataclass,
with the constructors `new_connect`, `new_data`, `new_ack` and `new_cack`.
`Message.to_json()` encodes a message as compact JSON bytes (the payload as
base64); `Message.from_json()` decodes one and raises `ValueError` for
anything that is not a valid message.

### `lspkit.checksum`

`calculate_checksum(conn_id, seq_num, size, payload)` returns the 16-bit
one's-complement checksum that a data message carries. `int_to_checksum`
and `bytes_checksum` are the word sums it is built from.

### `lspkit.connection`

`Connection` is the protocol state of one end of a connection. It does no
I/O: feed it received messages with `handle`, epoch ticks with `on_epoch`,
call `heard_from_peer` whenever a packet arrives, and collect the encoded
packets to send with `take_outgoing`.

```python
from lspkit.connection import Connection
from lspkit.message import Message
from lspkit.params import Params

params = Params()
client = Connection.for_client(1, params)          # queues a connect
server = Connection.for_server(1, params, 1)       # queues the connect ack

for packet in server.take_outgoing():
    client.handle(Message.from_json(packet))       # client now has conn_id 1

client.queue_write(b"hello")
for packet in client.take_outgoing():
    server.handle(Message.from_json(packet))

print(server.pop_data())  # b'hello'
```

`has_data`/`pop_data` give in-order payloads, `is_lost` tells whether
`epoch_limit` epochs have passed without word from the peer, and `is_idle`
whether everything written has been acknowledged. Operations that cannot be
carried out raise `LspError`. `validate_size` rejects data messages whose
payload is shorter than their size field and trims longer ones.

### `lspkit.udp`

`resolve_udp_addr`, `listen_udp` and `dial_udp` give `UDPAddr` and `UDPConn`
objects. `UDPConn` has `read`, `read_from`, `write`, `write_to`, `settimeout`
and `close`; every read and write passes through the fault injection of
`lspkit.faults`. `join_host_port` and `split_host_port` handle `host:port`
strings, bracketing IPv6 hosts.

### `lspkit.faults`

Process-wide settings for testing on an unreliable network: read and write
drop percents for clients and servers (`set_read_drop_percent`,
`set_client_write_drop_percent`, `reset_drop_percent` and the like),
delayed, shortened, lengthened or corrupted packets, a sniffer
(`start_sniff`, `stop_sniff` returning a `SniffResult`) and a pluggable
`Middlebox` (`start_middlebox`, `stop_middlebox`).

## What the package does not do

There is no ready-made blocking client or server endpoint that runs the
epoch timer and socket loop around `Connection`, and no echo-server command.
To talk LSP over the network, drive `Connection` objects with `UDPConn`
sockets and a timer of your own.
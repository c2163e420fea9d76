"""Protocol state of one LSP connection: sliding windows, acks, epochs and back-off.

A connection does no I/O itself. Incoming messages are fed to ``handle``,
epoch ticks to ``on_epoch``, and encoded outgoing packets are collected
with ``take_outgoing``.
"""

from __future__ import annotations

from collections import deque

from .checksum import calculate_checksum
from .message import Message, MsgType, new_ack, new_connect, new_data
from .params import Params


class LspError(Exception):
    """Raised when an LSP operation cannot be carried out."""


def validate_size(msg: Message) -> bool:
    """Check a data message's payload against its size field.

    A payload shorter than its size is rejected; a longer one is cut down
    to the size in place. Other message types are always accepted.
    """
    if msg.type != MsgType.DATA:
        return True
    if msg.size < 0 or len(msg.payload) < msg.size:
        return False
    if len(msg.payload) > msg.size:
        msg.payload = bytes(msg.payload[: msg.size])
    return True


class Connection:
    """Sending and receiving state for one end of an LSP connection."""

    def __init__(self, initial_seq_num: int, params: Params, conn_id: int = 0) -> None:
        self._isn = initial_seq_num
        self._window = params.window_size
        self._epoch_limit = params.epoch_limit
        self._max_back_off = params.max_back_off_interval
        self._max_unacked = params.max_unacked_messages
        self._conn_id = conn_id

        self._epoch = 0
        self._last_heard = 0
        self._heard_this_epoch = False

        self._pending: deque[bytes] = deque()
        self._next_send_seq = initial_seq_num + 1
        self._unacked: dict[int, bytes] = {}
        self._back_off: dict[int, int] = {}
        self._wait: dict[int, int] = {}

        self._next_recv_seq = initial_seq_num + 1
        self._out_of_order: dict[int, bytes] = {}
        self._ready: deque[bytes] = deque()

        self._outgoing: list[bytes] = []

    @classmethod
    def for_client(cls, initial_seq_num: int, params: Params) -> Connection:
        """Return a client-side connection that has queued its connect request."""
        conn = cls(initial_seq_num, params)
        conn._send(new_connect(initial_seq_num))
        return conn

    @classmethod
    def for_server(cls, initial_seq_num: int, params: Params, conn_id: int) -> Connection:
        """Return a server-side connection that has queued the connect acknowledgement."""
        conn = cls(initial_seq_num, params, conn_id)
        conn._send(new_ack(conn_id, initial_seq_num))
        return conn

    @property
    def conn_id(self) -> int:
        """The connection ID, 0 until a client's connect is acknowledged."""
        return self._conn_id

    @property
    def initial_seq_num(self) -> int:
        return self._isn

    def has_data(self) -> bool:
        """Whether an in-order payload is waiting to be read."""
        return bool(self._ready)

    def pop_data(self) -> bytes:
        """Remove and return the next in-order payload."""
        if self._conn_id == 0:
            raise LspError("connection is not established")
        if not self._ready:
            raise LspError("no data is waiting to be read")
        return self._ready.popleft()

    def queue_write(self, payload: bytes) -> None:
        """Queue a payload for sending and send as much as the window allows."""
        if self._conn_id == 0:
            raise LspError("connection is not established")
        if self.is_lost():
            raise LspError("connection is lost")
        self._pending.append(bytes(payload))
        self._next_send_seq += 1
        self._flush()

    def handle(self, msg: Message) -> None:
        """Process one message received from the peer."""
        if msg.type == MsgType.CONNECT:
            self._heard_this_epoch = True
        elif msg.type == MsgType.DATA:
            self._on_data(msg)
            self._heard_this_epoch = True
        elif msg.type in (MsgType.ACK, MsgType.CACK):
            self._on_ack(msg)
        else:
            raise LspError(f"unknown message type {msg.type!r}")

    def heard_from_peer(self) -> None:
        """Note that a packet arrived from the peer in the current epoch."""
        self._last_heard = self._epoch

    def on_epoch(self) -> None:
        """Advance one epoch: retransmit with back-off and send keep-alives."""
        self._epoch += 1
        if self._conn_id > 0 and not self.is_lost():
            for seq, payload in sorted(self._unacked.items()):
                if self._wait[seq] == 0:
                    self._send_data(seq, payload)
                    self._wait[seq] = self._back_off[seq]
                    self._back_off[seq] = min(2 * self._back_off[seq], self._max_back_off)
                else:
                    self._wait[seq] -= 1
            if not self._heard_this_epoch:
                self._send(new_ack(self._conn_id, 0))
        if self._conn_id == 0:
            self._send(new_connect(self._isn))
        self._heard_this_epoch = False

    def take_outgoing(self) -> list[bytes]:
        """Return the encoded packets waiting to be sent and clear the queue."""
        packets, self._outgoing = self._outgoing, []
        return packets

    def is_lost(self) -> bool:
        """Whether the epoch limit has passed without word from the peer."""
        return self._epoch - self._last_heard >= self._epoch_limit

    def is_idle(self) -> bool:
        """Whether every written payload has been sent and acknowledged."""
        return not self._unacked and not self._pending

    def _send(self, msg: Message) -> None:
        self._outgoing.append(msg.to_json())

    def _send_data(self, seq: int, payload: bytes) -> None:
        checksum = calculate_checksum(self._conn_id, seq, len(payload), payload)
        self._send(new_data(self._conn_id, seq, len(payload), payload, checksum))

    def _front_seq(self) -> int:
        return self._next_send_seq - len(self._pending)

    def _flush(self) -> None:
        """Move pending payloads into flight while window and unacked limits allow."""
        lowest = min(self._unacked, default=self._front_seq())
        while self._pending:
            front = self._front_seq()
            if front >= lowest + self._window or len(self._unacked) >= self._max_unacked:
                break
            payload = self._pending.popleft()
            self._unacked[front] = payload
            self._back_off[front] = min(1, self._max_back_off)
            self._wait[front] = 0
            self._send_data(front, payload)

    def _on_data(self, msg: Message) -> None:
        if self._conn_id == 0:
            return
        seq = msg.seq_num
        if seq >= self._next_recv_seq + self._window:
            return
        if calculate_checksum(msg.conn_id, seq, msg.size, msg.payload) != msg.checksum:
            return
        self._send(new_ack(self._conn_id, seq))
        if seq < self._next_recv_seq:
            return
        self._out_of_order[seq] = bytes(msg.payload)
        while self._next_recv_seq in self._out_of_order:
            self._ready.append(self._out_of_order.pop(self._next_recv_seq))
            self._next_recv_seq += 1

    def _on_ack(self, msg: Message) -> None:
        if self._conn_id == 0:
            if msg.seq_num == self._isn:
                self._conn_id = msg.conn_id
            return
        if msg.seq_num == 0:
            return
        if msg.type == MsgType.ACK:
            if self._unacked.pop(msg.seq_num, None) is not None:
                self._flush()
        else:
            lowest = min(self._unacked, default=self._front_seq())
            acked = [seq for seq in self._unacked if lowest <= seq <= msg.seq_num]
            for seq in acked:
                del self._unacked[seq]
            if acked:
                self._flush()
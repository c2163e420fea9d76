"""LSP messages and their JSON wire form."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from enum import IntEnum


class MsgType(IntEnum):
    """Kind of an LSP message."""

    CONNECT = 0
    DATA = 1
    ACK = 2
    CACK = 3


_NAMES = {
    MsgType.CONNECT: "Connect",
    MsgType.DATA: "Data",
    MsgType.ACK: "Ack",
    MsgType.CACK: "CAck",
}

_FIELDS = ("type", "connid", "seqnum", "size", "checksum", "payload")


@dataclass
class Message:
    """A single LSP protocol message."""

    type: MsgType
    conn_id: int = 0
    seq_num: int = 0
    size: int = 0
    checksum: int = 0
    payload: bytes = b""

    def __str__(self) -> str:
        extra = ""
        if self.type == MsgType.DATA:
            text = bytes(self.payload).decode("utf-8", errors="replace")
            extra = f" {self.checksum} {text}"
        return f"[{_NAMES[MsgType(self.type)]} {self.conn_id} {self.seq_num}{extra}]"

    def to_json(self) -> bytes:
        """Encode the message as compact JSON bytes."""
        document = {
            "Type": int(self.type),
            "ConnID": self.conn_id,
            "SeqNum": self.seq_num,
            "Size": self.size,
            "Checksum": self.checksum,
            "Payload": base64.b64encode(bytes(self.payload)).decode("ascii")
            if self.payload
            else None,
        }
        return json.dumps(document, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes | str) -> Message:
        """Decode a message; raise ValueError if ``data`` is not a valid message."""
        document = json.loads(data)
        if not isinstance(document, dict):
            raise ValueError("message must be a JSON object")
        fields = {key.lower(): value for key, value in document.items() if key.lower() in _FIELDS}

        def integer(name: str) -> int:
            value = fields.get(name)
            if value is None:
                return 0
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"field {name!r} must be an integer")
            return value

        raw_type = integer("type")
        try:
            msg_type = MsgType(raw_type)
        except ValueError:
            raise ValueError(f"unknown message type {raw_type}") from None

        checksum = integer("checksum")
        if not 0 <= checksum <= 0xFFFF:
            raise ValueError("checksum out of range")

        raw_payload = fields.get("payload")
        if raw_payload is None:
            payload = b""
        elif isinstance(raw_payload, str):
            try:
                payload = base64.b64decode(raw_payload, validate=True)
            except binascii.Error as exc:
                raise ValueError("payload is not valid base64") from exc
        else:
            raise ValueError("payload must be a base64 string")

        return cls(
            type=msg_type,
            conn_id=integer("connid"),
            seq_num=integer("seqnum"),
            size=integer("size"),
            checksum=checksum,
            payload=payload,
        )


def new_connect(initial_seq_num: int) -> Message:
    """Return a connect message."""
    return Message(MsgType.CONNECT, seq_num=initial_seq_num)


def new_data(conn_id: int, seq_num: int, size: int, payload: bytes, checksum: int) -> Message:
    """Return a data message."""
    return Message(
        MsgType.DATA,
        conn_id=conn_id,
        seq_num=seq_num,
        size=size,
        checksum=checksum,
        payload=payload,
    )


def new_ack(conn_id: int, seq_num: int) -> Message:
    """Return an acknowledgement message."""
    return Message(MsgType.ACK, conn_id=conn_id, seq_num=seq_num)


def new_cack(conn_id: int, seq_num: int) -> Message:
    """Return a cumulative acknowledgement message."""
    return Message(MsgType.CACK, conn_id=conn_id, seq_num=seq_num)
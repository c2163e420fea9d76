"""Process-wide fault injection and traffic observation for LSP sockets.

Drop, delay, resize and corruption rates, a packet sniffer and a pluggable
middlebox that sees every outgoing message.
"""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass, field

from .message import Message, MsgType

_MASK32 = 0xFFFFFFFF


@dataclass
class SniffResult:
    """Counts and copies of the messages written while sniffing."""

    num_sent_acks: int = 0
    num_dropped_acks: int = 0
    num_sent_data: int = 0
    num_dropped_data: int = 0
    all_messages: list[Message] = field(default_factory=list)
    sent_messages: list[Message] = field(default_factory=list)


@dataclass
class MiddleboxOutput:
    """What a middlebox decided about one message."""

    send_msg: bool = True
    modified_msg: bool = False


class Middlebox:
    """Inspects outgoing messages; this base passes every message through unchanged."""

    def run(self, msg: Message) -> MiddleboxOutput:
        return MiddleboxOutput(send_msg=True, modified_msg=False)


@dataclass
class _State:
    debug_logs: bool = False
    client_read_drop: int = 0
    client_write_drop: int = 0
    server_read_drop: int = 0
    server_write_drop: int = 0
    shortening: int = 0
    lengthening: int = 0
    delay: int = 0
    corrupted: bool = False
    sniffing: bool = False
    sniff: SniffResult = field(default_factory=SniffResult)


_lock = threading.Lock()
_state = _State()
_middlebox_lock = threading.Lock()
_middlebox: Middlebox | None = None


def _checked(p: int) -> int | None:
    return p if 0 <= p <= 100 else None


def _unchecked(p: int) -> int | None:
    # Only the upper bound is enforced; a negative value wraps to a huge rate.
    return p & _MASK32 if p <= 100 else None


def enable_debug_logs(enable: bool) -> None:
    """Turn logging of dropped and delayed packets on or off."""
    with _lock:
        _state.debug_logs = bool(enable)


def set_read_drop_percent(p: int) -> None:
    """Set the read drop percent for clients and servers."""
    set_client_read_drop_percent(p)
    set_server_read_drop_percent(p)


def set_write_drop_percent(p: int) -> None:
    """Set the write drop percent for clients and servers."""
    set_client_write_drop_percent(p)
    set_server_write_drop_percent(p)


def set_msg_shortening_percent(p: int) -> None:
    """Set how often outgoing data messages have their payload shortened."""
    value = _unchecked(p)
    if value is not None:
        with _lock:
            _state.shortening = value


def set_msg_lengthening_percent(p: int) -> None:
    """Set how often outgoing data messages have their payload lengthened."""
    value = _unchecked(p)
    if value is not None:
        with _lock:
            _state.lengthening = value


def set_msg_corrupted(corrupted: bool) -> None:
    """Turn corruption of outgoing data payloads on or off."""
    with _lock:
        _state.corrupted = bool(corrupted)


def set_client_read_drop_percent(p: int) -> None:
    """Set the read drop percent for clients; values outside 0..100 are ignored."""
    value = _checked(p)
    if value is not None:
        with _lock:
            _state.client_read_drop = value


def set_client_write_drop_percent(p: int) -> None:
    """Set the write drop percent for clients; values outside 0..100 are ignored."""
    value = _checked(p)
    if value is not None:
        with _lock:
            _state.client_write_drop = value


def set_server_read_drop_percent(p: int) -> None:
    """Set the read drop percent for servers; values outside 0..100 are ignored."""
    value = _checked(p)
    if value is not None:
        with _lock:
            _state.server_read_drop = value


def set_server_write_drop_percent(p: int) -> None:
    """Set the write drop percent for servers; values outside 0..100 are ignored."""
    value = _checked(p)
    if value is not None:
        with _lock:
            _state.server_write_drop = value


def set_delay_message_percent(p: int) -> None:
    """Set how often outgoing packets are held back before sending."""
    value = _unchecked(p)
    if value is not None:
        with _lock:
            _state.delay = value


def reset_drop_percent() -> None:
    """Reset all read and write drop percents to zero."""
    set_read_drop_percent(0)
    set_write_drop_percent(0)


def start_sniff() -> None:
    """Clear the sniffer's counters and start recording written messages."""
    with _lock:
        _state.sniff = SniffResult()
        _state.sniffing = True


def stop_sniff() -> SniffResult:
    """Stop recording and return what was recorded."""
    with _lock:
        _state.sniffing = False
        result = _state.sniff
        return SniffResult(
            num_sent_acks=result.num_sent_acks,
            num_dropped_acks=result.num_dropped_acks,
            num_sent_data=result.num_sent_data,
            num_dropped_data=result.num_dropped_data,
            all_messages=list(result.all_messages),
            sent_messages=list(result.sent_messages),
        )


def start_middlebox(m: Middlebox) -> None:
    """Route every outgoing message through ``m``."""
    global _middlebox
    with _middlebox_lock:
        _middlebox = m


def stop_middlebox() -> None:
    """Stop routing outgoing messages through a middlebox."""
    global _middlebox
    with _middlebox_lock:
        _middlebox = None


def _debug_logs_enabled() -> bool:
    with _lock:
        return _state.debug_logs


def _read_drop_percent(is_server: bool) -> int:
    with _lock:
        return _state.server_read_drop if is_server else _state.client_read_drop


def _write_drop_percent(is_server: bool) -> int:
    with _lock:
        return _state.server_write_drop if is_server else _state.client_write_drop


def _shortening_percent() -> int:
    with _lock:
        return _state.shortening


def _lengthening_percent() -> int:
    with _lock:
        return _state.lengthening


def _delay_percent() -> int:
    with _lock:
        return _state.delay


def _corruption_enabled() -> bool:
    with _lock:
        return _state.corrupted


def _sometimes(percentage: int) -> bool:
    return random.randrange(100) < percentage


def _record(msg: Message, is_sent: bool) -> None:
    """Record a written message if the sniffer is running."""
    with _lock:
        if not _state.sniffing:
            return
        result = _state.sniff
        result.all_messages.append(msg)
        if is_sent:
            result.sent_messages.append(msg)
        if msg.type == MsgType.DATA:
            if is_sent:
                result.num_sent_data += 1
            else:
                result.num_dropped_data += 1
        elif msg.type == MsgType.ACK:
            if is_sent:
                result.num_sent_acks += 1
            else:
                result.num_dropped_acks += 1


def _run_middlebox(msg: Message) -> MiddleboxOutput | None:
    """Run the installed middlebox on ``msg``; None when none is installed."""
    with _middlebox_lock:
        if _middlebox is None:
            return None
        return _middlebox.run(msg)
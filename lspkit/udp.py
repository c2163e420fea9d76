"""UDP sockets for LSP traffic, with the process-wide fault injection applied."""

from __future__ import annotations

import json
import logging
import socket
import threading
from dataclasses import dataclass

from . import faults
from .message import Message, MsgType

_BUFFER_SIZE = 2000
_DELAY_SECONDS = 0.5

_log = logging.getLogger(__name__)


def join_host_port(host: str, port: int | str) -> str:
    """Combine a host and a port into ``host:port``, bracketing IPv6 hosts."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def split_host_port(hostport: str) -> tuple[str, str]:
    """Split ``host:port`` or ``[host]:port`` into host and port strings."""
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"address {hostport}: missing ']' in address")
        rest = hostport[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"address {hostport}: missing port in address")
        host = hostport[1:end]
        port = rest[1:]
        if "[" in host:
            raise ValueError(f"address {hostport}: unexpected '[' in address")
    else:
        colon = hostport.rfind(":")
        if colon < 0:
            raise ValueError(f"address {hostport}: missing port in address")
        host = hostport[:colon]
        port = hostport[colon + 1 :]
        if ":" in host:
            raise ValueError(f"address {hostport}: too many colons in address")
        if "[" in host or "]" in host:
            raise ValueError(f"address {hostport}: unexpected bracket in address")
    if "[" in port or "]" in port:
        raise ValueError(f"address {hostport}: unexpected bracket in address")
    return host, port


def _parse_port(port: str) -> int:
    if port == "":
        return 0
    if port.isdigit():
        number = int(port)
        if number > 0xFFFF:
            raise ValueError(f"invalid port {port!r}")
        return number
    try:
        return socket.getservbyname(port, "udp")
    except OSError:
        raise ValueError(f"unknown port {port!r}") from None


@dataclass(frozen=True)
class UDPAddr:
    """A UDP endpoint: an IP address (empty for any) and a port."""

    host: str
    port: int

    def __str__(self) -> str:
        return join_host_port(self.host, self.port)

    @property
    def _family(self) -> int:
        return socket.AF_INET6 if ":" in self.host else socket.AF_INET

    @property
    def _sockaddr(self) -> tuple[str, int]:
        return self.host, self.port


def resolve_udp_addr(address: str) -> UDPAddr:
    """Resolve ``host:port`` to a UDP address, preferring IPv4."""
    host, port = split_host_port(address)
    number = _parse_port(port)
    if not host:
        return UDPAddr("", number)
    infos = socket.getaddrinfo(host, number, type=socket.SOCK_DGRAM)
    chosen = next((info for info in infos if info[0] == socket.AF_INET), infos[0])
    return UDPAddr(chosen[4][0], number)


def _is_json_int(payload: bytes) -> bool:
    try:
        value = json.loads(payload)
    except ValueError:
        return False
    return value is None or (isinstance(value, int) and not isinstance(value, bool))


class UDPConn:
    """A UDP socket whose reads and writes pass through the fault injector."""

    def __init__(self, sock: socket.socket, is_server: bool) -> None:
        self._sock = sock
        self._is_server = is_server

    @property
    def is_server(self) -> bool:
        return self._is_server

    @property
    def local_addr(self) -> UDPAddr:
        host, port = self._sock.getsockname()[:2]
        return UDPAddr(host, port)

    def settimeout(self, timeout: float | None) -> None:
        """Set the blocking timeout of reads in seconds (None blocks forever)."""
        self._sock.settimeout(timeout)

    def read(self, size: int) -> bytes:
        """Read one packet from the connected peer, at most ``size`` bytes of it."""
        while True:
            data = self._sock.recv(_BUFFER_SIZE)
            if not self._drop_read(len(data)):
                return data[:size]

    def read_from(self, size: int) -> tuple[bytes, UDPAddr]:
        """Read one packet and return at most ``size`` bytes of it with its sender."""
        while True:
            data, sockaddr = self._sock.recvfrom(_BUFFER_SIZE)
            if not self._drop_read(len(data)):
                return data[:size], UDPAddr(sockaddr[0], sockaddr[1])

    def write(self, data: bytes) -> int:
        """Send a packet to the connected peer."""
        return self._write_with_delay(bytes(data), None)

    def write_to(self, data: bytes, addr: UDPAddr) -> int:
        """Send a packet to ``addr``."""
        if addr is None:
            raise ValueError("addr must not be None")
        return self._write_with_delay(bytes(data), addr)

    def close(self) -> None:
        """Close the socket."""
        self._sock.close()

    def _drop_read(self, length: int) -> bool:
        if faults._sometimes(faults._read_drop_percent(self._is_server)):
            if faults._debug_logs_enabled():
                _log.info("DROPPING read packet of length %d", length)
            return True
        return False

    def _write_with_delay(self, data: bytes, addr: UDPAddr | None) -> int:
        if faults._sometimes(faults._delay_percent()):
            if faults._debug_logs_enabled():
                _log.info("DELAYING written packet of length %d", len(data))
            timer = threading.Timer(_DELAY_SECONDS, self._send_later, args=(data, addr))
            timer.daemon = True
            timer.start()
            return len(data)
        return self._send(data, addr)

    def _send_later(self, data: bytes, addr: UDPAddr | None) -> None:
        try:
            self._send(data, addr)
        except OSError:
            pass

    def _send(self, data: bytes, addr: UDPAddr | None) -> int:
        try:
            msg: Message | None = Message.from_json(data)
        except ValueError:
            msg = None
            _log.warning("outgoing packet is not an LSP message")

        if faults._sometimes(faults._write_drop_percent(self._is_server)):
            if faults._debug_logs_enabled():
                _log.info("DROPPING written packet of length %d", len(data))
            if msg is not None:
                faults._record(msg, False)
            return len(data)

        wire = data
        if msg is not None:
            faults._record(msg, True)
            tampered = self._tamper(msg, data)
            if tampered is None:
                return len(data)
            wire = tampered

        if addr is None:
            try:
                return self._sock.send(wire)
            except OSError:
                return 0
        return self._sock.sendto(wire, addr._sockaddr)

    @staticmethod
    def _tamper(msg: Message, data: bytes) -> bytes | None:
        """Apply the middlebox or payload faults; None means the packet is dropped."""
        verdict = faults._run_middlebox(msg)
        if verdict is not None:
            if not verdict.send_msg:
                return None
            return msg.to_json() if verdict.modified_msg else data

        if msg.type != MsgType.DATA:
            return data

        shorten = faults._sometimes(faults._shortening_percent())
        lengthen = faults._sometimes(faults._lengthening_percent())
        corrupt = faults._corruption_enabled()
        payload = bytes(msg.payload)

        if shorten:
            msg.payload = payload[: len(payload) // 2] if _is_json_int(payload) else b"0"
        elif lengthen:
            msg.payload = payload + b"\x02\x03\x04" if _is_json_int(payload) else b"0"
        elif corrupt:
            if payload:
                msg.payload = bytes([~payload[0] & 0xFF]) + payload[1:]
            else:
                msg.payload = b"\xff"

        if shorten or lengthen or corrupt:
            return msg.to_json()
        return data


def listen_udp(laddr: UDPAddr | None) -> UDPConn:
    """Open a server socket bound to ``laddr`` (any address and port if None)."""
    family = laddr._family if laddr is not None else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        sock.bind(laddr._sockaddr if laddr is not None else ("", 0))
    except OSError:
        sock.close()
        raise
    return UDPConn(sock, is_server=True)


def dial_udp(laddr: UDPAddr | None, raddr: UDPAddr | None) -> UDPConn:
    """Open a client socket connected to ``raddr``, optionally bound to ``laddr``."""
    if raddr is None:
        raise ValueError("missing remote address")
    family = raddr._family
    host = raddr.host or ("::1" if family == socket.AF_INET6 else "127.0.0.1")
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        if laddr is not None:
            sock.bind(laddr._sockaddr)
        sock.connect((host, raddr.port))
    except OSError:
        sock.close()
        raise
    return UDPConn(sock, is_server=False)
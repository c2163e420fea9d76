"""Live Sequence Protocol building blocks: messages, checksums, connection state and UDP sockets."""

__version__ = "0.1.0"

__all__ = ["checksum", "message", "params", "faults", "udp", "connection"]
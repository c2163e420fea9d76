"""Tunable parameters of an LSP client or server."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_EPOCH_LIMIT = 5
DEFAULT_EPOCH_MILLIS = 2000
DEFAULT_WINDOW_SIZE = 1
DEFAULT_MAX_BACK_OFF_INTERVAL = 0
DEFAULT_MAX_UNACKED_MESSAGES = 1


@dataclass
class Params:
    """Epoch timing, sliding window and back-off settings.

    epoch_limit: epochs without word from the peer before the connection is lost.
    epoch_millis: milliseconds between epochs.
    window_size: size of the sliding window.
    max_back_off_interval: largest number of epochs between two sends of one message.
    max_unacked_messages: most unacknowledged messages in flight at once.
    """

    epoch_limit: int = DEFAULT_EPOCH_LIMIT
    epoch_millis: int = DEFAULT_EPOCH_MILLIS
    window_size: int = DEFAULT_WINDOW_SIZE
    max_back_off_interval: int = DEFAULT_MAX_BACK_OFF_INTERVAL
    max_unacked_messages: int = DEFAULT_MAX_UNACKED_MESSAGES

    def __str__(self) -> str:
        return (
            f"[EpochLimit: {self.epoch_limit}, EpochMillis: {self.epoch_millis}, "
            f"WindowSize: {self.window_size}, MaxBackOffInterval: {self.max_back_off_interval},"
            f"MaxUnackedMessages: {self.max_unacked_messages}]"
        )
"""A FizzBuzz message producer that fans messages out to connected clients."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Union

__all__ = ["CLOSED", "NumberMessage", "SpecialMessage", "Producer", "message_for"]

_log = logging.getLogger(__name__)


class _Closed:
    def __repr__(self) -> str:
        return "CLOSED"


CLOSED = _Closed()
"""Put on a client queue when the producer stops sending to it."""


@dataclass(frozen=True)
class NumberMessage:
    value: int


@dataclass(frozen=True)
class SpecialMessage:
    value: str


Message = Union[NumberMessage, SpecialMessage]


def message_for(i: int) -> Message:
    """The FizzBuzz message for ``i``."""
    if i % 3 == 0 and i % 5 == 0:
        return SpecialMessage("fizzbuzz")
    if i % 3 == 0:
        return SpecialMessage("fizz")
    if i % 5 == 0:
        return SpecialMessage("buzz")
    return NumberMessage(i)


def _close(client: queue.Queue) -> None:
    try:
        client.put_nowait(CLOSED)
    except queue.Full:
        while True:
            try:
                client.get_nowait()
            except queue.Empty:
                break
        client.put_nowait(CLOSED)


class Producer:
    """Emits the FizzBuzz sequence from 1 to 999 and round again, one message per interval."""

    def __init__(self, interval: float = 0.5):
        self.interval = interval
        self._clients: list[queue.Queue] = []
        self._lock = threading.Lock()
        self._cancelled = threading.Event()

    def add_client(self, client: queue.Queue) -> None:
        """Register a queue to receive every message produced from now on."""
        with self._lock:
            self._clients.append(client)

    def emit(self, data: Any) -> None:
        """Send ``data`` to every client; clients whose queue is full are dropped and closed."""
        with self._lock:
            for client in reversed(list(self._clients)):
                try:
                    client.put_nowait(data)
                except queue.Full:
                    _close(client)
                    self._clients.remove(client)

    def produce(self) -> None:
        """Emit messages until :meth:`cancel` is called, then close every client."""
        i = 1
        while True:
            self.emit(message_for(i))
            if self._cancelled.wait(self.interval):
                _log.info("Stopping producer...")
                with self._lock:
                    for client in self._clients:
                        _close(client)
                    self._clients.clear()
                return
            i = (i + 1) % 1000

    def cancel(self) -> None:
        """Ask a running (or the next) :meth:`produce` to stop."""
        self._cancelled.set()
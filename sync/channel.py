"""Logical device-to-device message channel.

Only the request/response contract lives here. Reachability, retries and
encoding belong to the transport behind an implementation.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from exceptions import ChannelUnavailable, SyncTimeout
from log_config.logger import get_logger
from sync.clock import SimulatedClock

logger = get_logger(__name__)

Message = Dict[str, Any]
MessageHandler = Callable[[Message], Optional[Message]]
Delay = Union[float, Callable[[], float]]


class MessageChannel(ABC):
    """One device's end of a replyable message channel."""

    @abstractmethod
    def send(self, payload: Message, timeout_s: float) -> Message:
        """Send a request and wait for the reply.

        Raises:
            SyncTimeout: If no reply arrives within ``timeout_s``
            ChannelUnavailable: If the peer is unreachable
        """

    @abstractmethod
    def send_fire_and_forget(self, payload: Message) -> None:
        """Send a payload without waiting for a reply.

        Raises:
            ChannelUnavailable: If the peer is unreachable
        """

    @abstractmethod
    def on_message(self, handler: MessageHandler) -> None:
        """Register a handler for inbound payloads.

        Handlers return a reply payload for requests they answer, or None.
        """


class LoopbackChannel(MessageChannel):
    """In-process channel endpoint with simulated one-way delays.

    Both endpoints share a ``SimulatedClock``; delivering a message advances it
    by the outbound delay, and a reply advances it by the return delay. Delays
    may be constants or callables drawn once per message.
    """

    def __init__(self, world: SimulatedClock, outbound_delay_s: Delay = 0.0, name: str = "endpoint") -> None:
        self.name = name
        self._world = world
        self._outbound_delay_s = outbound_delay_s
        self._peer: Optional["LoopbackChannel"] = None
        self._handlers: List[MessageHandler] = []
        self._reachable = True
        self._lock = threading.RLock()
        self.sent_count = 0

    @classmethod
    def pair(
        cls,
        world: SimulatedClock,
        a_to_b_delay_s: Delay = 0.005,
        b_to_a_delay_s: Delay = 0.005,
        names: Tuple[str, str] = ("camera", "wrist"),
    ) -> Tuple["LoopbackChannel", "LoopbackChannel"]:
        a = cls(world, a_to_b_delay_s, name=names[0])
        b = cls(world, b_to_a_delay_s, name=names[1])
        a._peer = b
        b._peer = a
        return a, b

    def set_reachable(self, reachable: bool) -> None:
        """Simulate the peer going out of range (affects both directions)."""
        with self._lock:
            self._reachable = reachable
        if self._peer is not None:
            with self._peer._lock:
                self._peer._reachable = reachable

    def on_message(self, handler: MessageHandler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def send(self, payload: Message, timeout_s: float) -> Message:
        peer = self._require_peer()
        start = self._world.now()
        out_delay = self._draw(self._outbound_delay_s)
        if out_delay >= timeout_s:
            self._world.advance(timeout_s)
            raise SyncTimeout(f"{self.name}: request not delivered within {timeout_s * 1000:.0f}ms")
        self._world.advance(out_delay)
        self.sent_count += 1

        reply = peer._dispatch(payload)
        elapsed = self._world.now() - start
        if reply is None:
            self._world.advance(max(0.0, timeout_s - elapsed))
            raise SyncTimeout(f"{self.name}: no reply from {peer.name} within {timeout_s * 1000:.0f}ms")

        back_delay = self._draw(peer._outbound_delay_s)
        if elapsed + back_delay >= timeout_s:
            self._world.advance(max(0.0, timeout_s - elapsed))
            raise SyncTimeout(f"{self.name}: reply from {peer.name} arrived after {timeout_s * 1000:.0f}ms")
        self._world.advance(back_delay)
        return reply

    def send_fire_and_forget(self, payload: Message) -> None:
        peer = self._require_peer()
        self._world.advance(self._draw(self._outbound_delay_s))
        self.sent_count += 1
        peer._dispatch(payload)

    def _require_peer(self) -> "LoopbackChannel":
        with self._lock:
            if self._peer is None or not self._reachable:
                raise ChannelUnavailable(f"{self.name}: peer not reachable")
            return self._peer

    def _dispatch(self, payload: Message) -> Optional[Message]:
        with self._lock:
            handlers = list(self._handlers)
        reply: Optional[Message] = None
        for handler in handlers:
            result = handler(payload)
            if result is not None and reply is None:
                reply = result
        return reply

    @staticmethod
    def _draw(delay: Delay) -> float:
        value = delay() if callable(delay) else delay
        return max(0.0, float(value))

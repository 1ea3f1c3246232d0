"""Four-timestamp clock synchronization between the camera and wrist devices.

Each round exchanges one request/reply pair:

    t1  local send        (camera clock)
    t2  remote receive    (wrist clock)
    t3  remote reply      (wrist clock)
    t4  local receive     (camera clock)

    offset     = ((t2 - t1) + (t3 - t4)) / 2     remote minus local
    round_trip = (t4 - t1) - (t3 - t2)

With equal one-way delays the offset is exact; otherwise its error is bounded
by round_trip / 2, which is why the lowest round-trip round is kept.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from configs.settings import SyncConfig
from contracts.messages import (
    SYNC_REQUEST,
    decode_sync_reply,
    decode_sync_request,
    encode_sync_reply,
    encode_sync_request,
    message_type,
)
from contracts.types import ClockOffset
from exceptions import ChannelUnavailable, MessageDecodeError, SyncCancelled, SyncError, SyncTimeout
from log_config.logger import get_logger
from sync.channel import Message, MessageChannel
from sync.clock import Clock

logger = get_logger(__name__)


@dataclass(frozen=True)
class SyncRound:
    """One completed request/reply exchange."""
    t1: float
    t2: float
    t3: float
    t4: float

    @property
    def offset_s(self) -> float:
        return ((self.t2 - self.t1) + (self.t3 - self.t4)) / 2.0

    @property
    def round_trip_s(self) -> float:
        return (self.t4 - self.t1) - (self.t3 - self.t2)


class ClockSyncCoordinator:
    """Camera-side owner of the wrist-to-camera ClockOffset.

    Args:
        channel: Camera end of the device channel
        config: Round limits and round-trip ceiling
        clock: Local monotonic clock
        sleep: Wait between rounds (only used when ``retry_delay_s`` > 0)
    """

    def __init__(
        self,
        channel: MessageChannel,
        config: Optional[SyncConfig] = None,
        clock: Clock = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._channel = channel
        self._config = config or SyncConfig()
        self._clock = clock
        self._sleep = sleep
        self._offset: Optional[ClockOffset] = None
        self._lock = threading.Lock()
        self._cancel = threading.Event()

    @property
    def offset(self) -> Optional[ClockOffset]:
        with self._lock:
            return self._offset

    @property
    def is_synced(self) -> bool:
        offset = self.offset
        return offset is not None and offset.is_complete

    def convert(self, remote_t_s: float) -> Optional[float]:
        """Map a wrist timestamp onto the camera clock, if an offset is known."""
        offset = self.offset
        if offset is None:
            return None
        return offset.convert(remote_t_s)

    def cancel(self) -> None:
        """Stop an in-flight ``sync`` after its current round."""
        self._cancel.set()

    def reset(self) -> None:
        with self._lock:
            self._offset = None
        self._cancel.clear()

    def sync(self, timeout_s: float) -> ClockOffset:
        """Run up to ``max_rounds`` exchanges within ``timeout_s``.

        Returns:
            The minimum round-trip offset. ``is_complete`` is False when every
            round exceeded the round-trip ceiling.

        Raises:
            SyncTimeout: No round completed in time
            SyncCancelled: Cancelled before any round completed
            ChannelUnavailable: The wrist device was unreachable on every round
        """
        cfg = self._config
        self._cancel.clear()
        deadline = self._clock() + timeout_s
        best: Optional[SyncRound] = None
        last_error: Optional[SyncError] = None
        attempts = 0

        while attempts < cfg.max_rounds:
            if self._cancel.is_set():
                logger.info(f"Clock sync cancelled after {attempts} round(s)")
                break
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            attempts += 1

            try:
                sample = self._run_round(min(cfg.round_timeout_s, remaining))
            except SyncError as e:
                logger.debug(f"Sync round {attempts} failed: {e}")
                last_error = e
            except MessageDecodeError as e:
                logger.warning(f"Sync round {attempts} got a malformed reply: {e}")
                last_error = SyncTimeout(f"Malformed sync reply: {e}", attempts)
            else:
                if sample.round_trip_s < 0:
                    logger.warning(f"Discarding sync round {attempts} with negative round trip {sample.round_trip_s:.6f}s")
                else:
                    logger.debug(
                        f"Sync round {attempts}: offset={sample.offset_s * 1000:.3f}ms "
                        f"rtt={sample.round_trip_s * 1000:.3f}ms"
                    )
                    if best is None or sample.round_trip_s < best.round_trip_s:
                        best = sample
                    if sample.round_trip_s <= cfg.early_stop_rtt_s:
                        break

            if cfg.retry_delay_s > 0 and attempts < cfg.max_rounds:
                self._sleep(cfg.retry_delay_s)

        if best is None:
            if self._cancel.is_set():
                raise SyncCancelled("Clock sync cancelled before any round completed", attempts)
            if isinstance(last_error, ChannelUnavailable):
                raise ChannelUnavailable(f"Wrist device unreachable: {last_error}", attempts)
            raise SyncTimeout(f"No sync round completed within {timeout_s:.3f}s", attempts)

        result = ClockOffset(
            offset_s=best.offset_s,
            round_trip_s=best.round_trip_s,
            is_complete=best.round_trip_s <= cfg.max_round_trip_s,
            rounds=attempts,
        )
        self._store(result)

        if result.is_complete:
            logger.info(
                f"Clock sync complete: offset={result.offset_s * 1000:.2f}ms "
                f"rtt={result.round_trip_s * 1000:.2f}ms over {attempts} round(s)"
            )
        else:
            logger.warning(
                f"Clock sync incomplete: best rtt {result.round_trip_s * 1000:.1f}ms "
                f"exceeds ceiling {cfg.max_round_trip_s * 1000:.0f}ms"
            )
        return result

    def _run_round(self, timeout_s: float) -> SyncRound:
        t1 = self._clock()
        reply_message = self._channel.send(encode_sync_request(t1), timeout_s)
        t4 = self._clock()
        reply = decode_sync_reply(reply_message)
        if reply.t1 != t1:
            raise MessageDecodeError(f"Sync reply echoes t1={reply.t1}, expected {t1}")
        return SyncRound(t1=t1, t2=reply.t2, t3=reply.t3, t4=t4)

    def _store(self, result: ClockOffset) -> None:
        # A complete offset is never replaced by an incomplete one.
        with self._lock:
            current = self._offset
            if current is not None and current.is_complete and not result.is_complete:
                return
            self._offset = result


class ClockSyncResponder:
    """Wrist-side answer to sync requests."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self.replies_sent = 0

    def attach(self, channel: MessageChannel) -> None:
        channel.on_message(self.handle)

    def handle(self, message: Message) -> Optional[Message]:
        t2 = self._clock()
        try:
            if message_type(message) != SYNC_REQUEST:
                return None
            t1 = decode_sync_request(message)
        except MessageDecodeError as e:
            logger.warning(f"Ignoring malformed sync request: {e}")
            return None
        t3 = self._clock()
        self.replies_sent += 1
        return encode_sync_reply(t1, t2, t3)

"""
Stream Relay

Forwards generated fragments to the caller as server-sent event frames,
accumulates the full response, and on completion persists the turn and
invalidates the user's cached history.

Session states: streaming, then exactly one of completed, failed or
disconnected. The sink is closed exactly once whichever state is reached,
and nothing is sent after the terminal ``[DONE]`` frame.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Callable, List, Optional, Protocol, Set

from chat_service.config.constants import RelayOutcome
from chat_service.models.chat_turn import ChatTurn, utc_now
from chat_service.services.base_service import BaseService
from chat_service.services.inference_client import StreamHandle
from chat_service.utils.formatters import delta_frame, done_frame, error_frame
from chat_service.utils.metrics import MetricsCollector

STREAM_ERROR_MESSAGE = "Stream error"


class SinkClosedError(Exception):
    """Raised when sending to a sink whose consumer has gone away."""


class StreamSink(Protocol):
    """Outbound channel to the caller"""

    @property
    def closed(self) -> bool: ...

    async def send(self, frame: str) -> None: ...

    async def close(self) -> None: ...


class ChatTurnWriter(Protocol):
    async def insert(self, turn: ChatTurn) -> ChatTurn: ...


class HistoryInvalidator(Protocol):
    async def invalidate(self, user_id: str) -> int: ...


_END = object()


class QueueSink:
    """
    Sink backed by an asyncio.Queue and drained by the HTTP response

    The producer (the relay) sends frames and closes the sink; the consumer
    iterates ``frames()`` and calls ``disconnect()`` when the caller goes away.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._disconnected = False

    @property
    def closed(self) -> bool:
        return self._closed or self._disconnected

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    async def send(self, frame: str) -> None:
        if self.closed:
            raise SinkClosedError("Sink is closed")
        self._queue.put_nowait(frame)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)

    def disconnect(self) -> None:
        """Mark the consumer as gone; later sends raise SinkClosedError."""
        self._disconnected = True

    async def frames(self) -> AsyncIterator[str]:
        """Yield frames in send order until the producer closes the sink."""
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item


@dataclass
class RelayResult:
    """Terminal state of one streaming session"""
    outcome: RelayOutcome
    response: str
    fragments: int
    turn: Optional[ChatTurn] = None
    error: Optional[str] = None


class StreamRelay(BaseService):
    """Relays one inference stream to one caller"""

    def __init__(
            self,
            store: ChatTurnWriter,
            history: HistoryInvalidator,
            metrics: Optional[MetricsCollector] = None,
            clock: Callable[[], datetime] = utc_now
    ):
        super().__init__()
        self.store = store
        self.history = history
        self.metrics = metrics
        self._clock = clock
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_persists(self) -> int:
        """Number of turn writes that have not finished yet"""
        return len(self._pending)

    async def relay(
            self,
            stream: StreamHandle,
            sink: StreamSink,
            user_id: str,
            message: str
    ) -> RelayResult:
        """
        Relay a stream until it completes, fails, or the caller disconnects

        Args:
            stream: Generated fragments
            sink: Outbound channel to the caller
            user_id: Owner of the turn
            message: Message that started the generation

        Returns:
            RelayResult describing the terminal state
        """
        buffer: List[str] = []
        outcome = RelayOutcome.FAILED
        error_message: Optional[str] = None
        turn: Optional[ChatTurn] = None

        try:
            try:
                async for fragment in stream:
                    if sink.closed:
                        outcome = RelayOutcome.DISCONNECTED
                        break
                    buffer.append(fragment)
                    await sink.send(delta_frame(fragment))
                else:
                    outcome = RelayOutcome.COMPLETED
            except SinkClosedError:
                outcome = RelayOutcome.DISCONNECTED
            except asyncio.CancelledError:
                outcome = RelayOutcome.DISCONNECTED
                raise
            except Exception as e:
                outcome = RelayOutcome.FAILED
                error_message = str(e) or STREAM_ERROR_MESSAGE
                self.logger.error(
                    "Inference stream failed",
                    user_id=user_id,
                    provider=stream.provider,
                    fragments=len(buffer),
                    error=error_message,
                    error_type=type(e).__name__
                )

            if outcome is RelayOutcome.COMPLETED:
                # Persistence runs to completion even if the caller disconnects now
                persist = asyncio.create_task(self._persist(user_id, message, "".join(buffer)))
                self._pending.add(persist)
                persist.add_done_callback(self._pending.discard)
                turn = await asyncio.shield(persist)
                await self._send(sink, done_frame())
            elif outcome is RelayOutcome.FAILED:
                await self._send(sink, error_frame(error_message or STREAM_ERROR_MESSAGE))
            else:
                self.logger.info(
                    "Caller disconnected, turn discarded",
                    user_id=user_id,
                    fragments=len(buffer)
                )
        finally:
            await self._release(stream)
            await sink.close()
            if self.metrics is not None:
                self.metrics.record_stream(outcome.value)

        return RelayResult(
            outcome=outcome,
            response="".join(buffer),
            fragments=len(buffer),
            turn=turn,
            error=error_message
        )

    async def _persist(self, user_id: str, message: str, response: str) -> Optional[ChatTurn]:
        turn = ChatTurn(user_id=user_id, message=message, response=response, timestamp=self._clock())
        try:
            stored = await self.store.insert(turn)
        except Exception as e:
            self.logger.error(
                "Failed to persist chat turn, turn lost",
                user_id=user_id,
                response_chars=len(response),
                error=str(e)
            )
            return None

        removed = await self.history.invalidate(user_id)
        self.log_operation("persist_turn", user_id=user_id, response_chars=len(response), cache_keys_removed=removed)
        return stored

    async def _send(self, sink: StreamSink, frame: str) -> bool:
        if sink.closed:
            return False
        try:
            await sink.send(frame)
        except SinkClosedError:
            return False
        return True

    async def _release(self, stream: StreamHandle) -> None:
        try:
            await stream.aclose()
        except Exception as e:
            self.logger.warning("Failed to close inference stream", provider=stream.provider, error=str(e))

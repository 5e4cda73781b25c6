"""
Chat Service

Entry point of the chat submission path: admission, context assembly and
stream start. Everything here happens before the response stream opens, so
errors raised by ``open_stream`` become JSON error responses. Relaying the
opened stream is delegated to the StreamRelay.
"""

import time
from typing import Callable, List, Optional, Protocol

from chat_service.exceptions.base_exceptions import ChatServiceException, RateLimitError
from chat_service.models.chat_turn import ChatTurn
from chat_service.services.base_service import BaseService
from chat_service.services.context_assembler import ContextAssembler
from chat_service.services.fallback_orchestrator import FallbackOrchestrator
from chat_service.services.inference_client import GenerationParams, StreamHandle
from chat_service.services.rate_governor import RateGovernor
from chat_service.services.stream_relay import RelayResult, StreamRelay, StreamSink
from chat_service.utils.metrics import MetricsCollector


class RecentTurnReader(Protocol):
    async def find_recent(self, user_id: str, limit: int) -> List[ChatTurn]: ...


class ChatService(BaseService):
    """Chat submission pipeline"""

    def __init__(
            self,
            governor: RateGovernor,
            store: RecentTurnReader,
            assembler: ContextAssembler,
            orchestrator: FallbackOrchestrator,
            relay: StreamRelay,
            params: Optional[GenerationParams] = None,
            context_turns: int = 5,
            metrics: Optional[MetricsCollector] = None,
            clock: Callable[[], float] = time.time
    ):
        super().__init__()
        self.governor = governor
        self.store = store
        self.assembler = assembler
        self.orchestrator = orchestrator
        self.stream_relay = relay
        self.params = params if params is not None else GenerationParams()
        self.context_turns = context_turns
        self.metrics = metrics
        self._clock = clock

    async def open_stream(self, user_id: str, message: str) -> StreamHandle:
        """
        Admit a submission and start generating the response

        Args:
            user_id: Authenticated user
            message: Validated message text

        Returns:
            StreamHandle primed with the first fragment

        Raises:
            RateLimitError: If the user's admission window is exhausted
            PersistenceError: If recent history cannot be read
            ProviderError, ProviderTimeoutError: If both models fail
        """
        admission = self.governor.admit(user_id, self._clock())
        if not admission.allowed:
            self._record_request("rate_limited")
            if self.metrics is not None:
                self.metrics.record_denial()
            raise RateLimitError(
                admission.retry_after_seconds,
                limit=admission.limit,
                window_seconds=self.governor.window_seconds,
                user_id=user_id
            )

        history = await self.store.find_recent(user_id, self.context_turns)
        prompt = self.assembler.build_prompt(history, message)

        self.log_operation("open_stream", user_id=user_id, history_turns=len(history), prompt_turns=len(prompt))

        try:
            stream = await self.orchestrator.run(prompt.render(), self.params)
        except ChatServiceException:
            self._record_request("provider_error")
            raise

        self._record_request("streaming")
        return stream

    async def relay(self, stream: StreamHandle, sink: StreamSink, user_id: str, message: str) -> RelayResult:
        """Relay an opened stream to the caller; see StreamRelay.relay"""
        return await self.stream_relay.relay(stream, sink, user_id, message)

    def _record_request(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.record_request(outcome)

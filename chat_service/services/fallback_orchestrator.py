"""
Fallback Orchestrator

Runs a generation against the primary model and switches to the fallback
model when the primary fails before producing any content. The first
fragment is fetched eagerly so that a stream which errors before its first
fragment still counts as a pre-content failure. Once a fragment exists the
stream is committed to its provider.
"""

from typing import AsyncIterator, Optional, Protocol

import structlog

from chat_service.services.inference_client import GenerationParams, StreamHandle
from chat_service.utils.metrics import MetricsCollector

logger = structlog.get_logger(__name__)


class InferenceTarget(Protocol):
    """Anything that can start a streaming generation"""

    @property
    def name(self) -> str: ...

    async def generate(self, prompt: str, params: GenerationParams) -> StreamHandle: ...


class FallbackOrchestrator:
    """Primary/fallback hop with no retries and no backoff"""

    def __init__(
            self,
            primary: InferenceTarget,
            fallback: InferenceTarget,
            metrics: Optional[MetricsCollector] = None
    ):
        self.primary = primary
        self.fallback = fallback
        self.metrics = metrics

    async def run(self, prompt: str, params: GenerationParams) -> StreamHandle:
        """
        Start a generation, falling back once on a pre-content failure

        Args:
            prompt: Rendered prompt text
            params: Generation parameters, passed unchanged to both targets

        Returns:
            StreamHandle replaying the primed first fragment

        Raises:
            ProviderError, ProviderTimeoutError: The fallback's error when both targets fail
        """
        try:
            return await self._start(self.primary, prompt, params)
        except Exception as primary_error:
            logger.warning(
                "Primary model failed, switching to fallback",
                primary=self.primary.name,
                fallback=self.fallback.name,
                error=str(primary_error),
                error_type=type(primary_error).__name__,
                status_code=getattr(primary_error, "status_code", None)
            )

        if self.metrics is not None:
            self.metrics.record_fallback()

        try:
            return await self._start(self.fallback, prompt, params)
        except Exception as fallback_error:
            logger.error(
                "Fallback model failed",
                fallback=self.fallback.name,
                error=str(fallback_error),
                error_type=type(fallback_error).__name__,
                status_code=getattr(fallback_error, "status_code", None)
            )
            raise

    async def _start(self, target: InferenceTarget, prompt: str, params: GenerationParams) -> StreamHandle:
        handle = await target.generate(prompt, params)
        try:
            first = await handle.__anext__()
        except StopAsyncIteration:
            await handle.aclose()
            logger.info("Model produced an empty stream", provider=target.name)
            return StreamHandle.from_fragments([], provider=target.name)
        except BaseException:
            await handle.aclose()
            raise

        return StreamHandle(_replay(first, handle), provider=target.name, on_close=handle.aclose)


async def _replay(first: str, handle: StreamHandle) -> AsyncIterator[str]:
    yield first
    async for fragment in handle:
        yield fragment

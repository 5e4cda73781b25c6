"""
Inference Client

Streaming client for a Hugging Face style text-generation endpoint. One
client instance serves one model. Provider failures are tagged at this
boundary: a timeout becomes ProviderTimeoutError, a non-2xx answer or a
transport failure becomes ProviderError carrying the provider's status.
"""

import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, Optional

import httpx
import structlog

from chat_service.config.constants import SSE_DONE_MARKER
from chat_service.config.settings import Settings
from chat_service.exceptions.base_exceptions import ProviderError, ProviderTimeoutError
from chat_service.utils.formatters import truncate

logger = structlog.get_logger(__name__)

BAD_GATEWAY = 502


@dataclass(frozen=True)
class GenerationParams:
    """Generation parameters sent with every request"""
    max_new_tokens: int = 1000
    temperature: float = 0.7
    top_p: float = 0.95
    return_full_text: bool = False
    stream: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationParams":
        return cls(
            max_new_tokens=settings.MAX_NEW_TOKENS,
            temperature=settings.TEMPERATURE,
            top_p=settings.TOP_P,
        )

    def to_parameters(self) -> Dict[str, Any]:
        return {
            "max_new_tokens": self.max_new_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "return_full_text": self.return_full_text,
        }


class StreamHandle:
    """
    Finite async iterator of generated text fragments

    Iteration ends at the provider's end-of-stream signal. ``aclose`` releases
    the underlying response and is safe to call more than once.
    """

    def __init__(
            self,
            fragments: AsyncIterator[str],
            provider: str = "",
            on_close: Optional[Callable[[], Awaitable[None]]] = None
    ):
        self._fragments = fragments
        self._on_close = on_close
        self.provider = provider
        self._closed = False

    @classmethod
    def from_fragments(cls, fragments: Iterable[str], provider: str = "static") -> "StreamHandle":
        """Handle over an in-memory sequence of fragments"""
        async def _generate():
            for fragment in fragments:
                yield fragment
        return cls(_generate(), provider=provider)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "StreamHandle":
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        return await self._fragments.__anext__()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        close_fragments = getattr(self._fragments, "aclose", None)
        try:
            if close_fragments is not None:
                await close_fragments()
        finally:
            if self._on_close is not None:
                await self._on_close()


class InferenceClient:
    """Client for one model endpoint"""

    def __init__(
            self,
            model: str,
            url: str,
            api_key: Optional[str] = None,
            timeout: float = 60.0,
            connect_timeout: float = 10.0,
            http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Args:
            model: Model id, used as the provider name in logs and errors
            url: Full endpoint URL for the model
            api_key: Bearer token for the provider
            timeout: Read timeout in seconds
            connect_timeout: Connect timeout in seconds
            http_client: Shared client; one is created when omitted
        """
        self.model = model
        self.url = url
        self._api_key = api_key
        self.timeout = timeout
        self._timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._client = http_client
        self._owns_client = http_client is None

    @classmethod
    def for_model(
            cls,
            settings: Settings,
            model: str,
            http_client: Optional[httpx.AsyncClient] = None
    ) -> "InferenceClient":
        return cls(
            model=model,
            url=settings.model_url(model),
            api_key=settings.HUGGINGFACE_API_KEY,
            timeout=settings.INFERENCE_TIMEOUT_SECONDS,
            connect_timeout=settings.INFERENCE_CONNECT_TIMEOUT_SECONDS,
            http_client=http_client,
        )

    @property
    def name(self) -> str:
        return self.model

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def generate(self, prompt: str, params: GenerationParams) -> StreamHandle:
        """
        Start a streaming generation

        Args:
            prompt: Rendered prompt text
            params: Generation parameters

        Returns:
            StreamHandle over the generated fragments

        Raises:
            ProviderTimeoutError: If the provider does not answer in time
            ProviderError: On a non-2xx status or a transport failure
        """
        payload = {
            "inputs": prompt,
            "parameters": params.to_parameters(),
            "stream": params.stream,
        }

        logger.info(
            "Inference stream started",
            provider=self.name,
            prompt_chars=len(prompt),
            max_new_tokens=params.max_new_tokens
        )

        client = self._get_client()
        request = client.build_request(
            "POST",
            self.url,
            headers=self._get_headers(),
            json=payload,
            timeout=self._timeout,
        )

        try:
            response = await client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(timeout_seconds=self.timeout, provider=self.name, caused_by=e)
        except httpx.HTTPError as e:
            raise ProviderError(BAD_GATEWAY, f"Failed to reach AI service: {e}", provider=self.name, caused_by=e)

        if not response.is_success:
            body = await self._read_error_body(response)
            logger.warning(
                "Inference provider returned an error",
                provider=self.name,
                status_code=response.status_code,
                body=truncate(body or "")
            )
            raise ProviderError(response.status_code, body, provider=self.name)

        return StreamHandle(self._iter_fragments(response), provider=self.name, on_close=response.aclose)

    async def _read_error_body(self, response: httpx.Response) -> Optional[str]:
        try:
            await response.aread()
        except httpx.HTTPError:
            return None
        finally:
            await response.aclose()

        try:
            data = response.json()
        except ValueError:
            return response.text or None

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            return error if isinstance(error, str) else json.dumps(error)
        return response.text or None

    async def _iter_fragments(self, response: httpx.Response) -> AsyncIterator[str]:
        fragment_count = 0
        try:
            async for line in response.aiter_lines():
                line = line.strip()
                if not line or not line.startswith("data:"):
                    continue

                raw = line[len("data:"):].strip()
                if not raw:
                    continue

                if raw == SSE_DONE_MARKER:
                    break

                try:
                    frame = json.loads(raw)
                except ValueError:
                    logger.warning("Skipping unparseable provider frame", provider=self.name, frame=truncate(raw))
                    continue

                if isinstance(frame, dict) and frame.get("error"):
                    raise ProviderError(BAD_GATEWAY, str(frame["error"]), provider=self.name)

                fragment = self.extract_fragment(frame)
                if fragment:
                    fragment_count += 1
                    yield fragment

        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(timeout_seconds=self.timeout, provider=self.name, caused_by=e)
        except httpx.HTTPError as e:
            raise ProviderError(BAD_GATEWAY, f"AI stream interrupted: {e}", provider=self.name, caused_by=e)
        finally:
            await response.aclose()

        logger.info("Inference stream complete", provider=self.name, fragments=fragment_count)

    @staticmethod
    def extract_fragment(frame: Any) -> Optional[str]:
        """
        Text contributed by one stream frame

        Token frames contribute ``token.text`` unless the token is special;
        frames without a token object contribute ``generated_text``.
        """
        if not isinstance(frame, dict):
            return None

        token = frame.get("token")
        if isinstance(token, dict):
            if token.get("special"):
                return None
            text = token.get("text")
            return text if isinstance(text, str) and text else None

        generated = frame.get("generated_text")
        if isinstance(generated, str) and generated:
            return generated
        return None

    async def probe(self) -> None:
        """
        Short non-streaming request used by diagnostics

        Raises:
            ProviderTimeoutError: If the provider does not answer in time
            ProviderError: On a non-2xx status or a transport failure
        """
        payload = {"inputs": "Hello", "parameters": {"max_new_tokens": 10}}
        try:
            response = await self._get_client().post(self.url, headers=self._get_headers(), json=payload)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(timeout_seconds=self.timeout, provider=self.name, caused_by=e)
        except httpx.HTTPError as e:
            raise ProviderError(BAD_GATEWAY, f"Failed to reach AI service: {e}", provider=self.name, caused_by=e)

        if not response.is_success:
            raise ProviderError(response.status_code, response.text or None, provider=self.name)

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it"""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

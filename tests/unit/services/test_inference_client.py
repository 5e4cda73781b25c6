"""
Unit tests for InferenceClient and StreamHandle.

The provider is simulated with httpx.MockTransport.
"""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from chat_service.exceptions.base_exceptions import ProviderError, ProviderTimeoutError
from chat_service.services.inference_client import GenerationParams, InferenceClient, StreamHandle

MODEL_URL = "https://inference.test/models/test-model"


def sse_body(*frames: Any) -> bytes:
    lines = []
    for frame in frames:
        payload = frame if isinstance(frame, str) else json.dumps(frame)
        lines.append(f"data: {payload}\n\n")
    return "".join(lines).encode()


def token(text: str, special: bool = False) -> Dict[str, Any]:
    return {"token": {"id": 1, "text": text, "logprob": -0.1, "special": special}, "generated_text": None}


def make_client(handler: Callable[[httpx.Request], Any], **kwargs) -> InferenceClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return InferenceClient("test-model", MODEL_URL, api_key="hf_key", http_client=http_client, **kwargs)


async def collect(handle: StreamHandle) -> List[str]:
    return [fragment async for fragment in handle]


class TestGenerate:

    @pytest.mark.asyncio
    async def test_streams_token_text_until_done(self):
        body = sse_body(token("Hi"), token(" there"), "[DONE]", token("ignored"))
        client = make_client(lambda request: httpx.Response(200, content=body))

        handle = await client.generate("prompt", GenerationParams())

        assert await collect(handle) == ["Hi", " there"]
        assert handle.provider == "test-model"

    @pytest.mark.asyncio
    async def test_sends_prompt_parameters_and_credentials(self):
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=sse_body("[DONE]"))

        client = make_client(handler)
        params = GenerationParams(max_new_tokens=64, temperature=0.2, top_p=0.9)

        handle = await client.generate("<s>[INST] hi [/INST]", params)
        await collect(handle)

        request = seen[0]
        payload = json.loads(request.content)
        assert request.method == "POST"
        assert str(request.url) == MODEL_URL
        assert request.headers["Authorization"] == "Bearer hf_key"
        assert payload == {
            "inputs": "<s>[INST] hi [/INST]",
            "parameters": {
                "max_new_tokens": 64,
                "temperature": 0.2,
                "top_p": 0.9,
                "return_full_text": False,
            },
            "stream": True,
        }

    @pytest.mark.asyncio
    async def test_skips_special_tokens_and_unparseable_frames(self):
        body = sse_body(token("Hi"), "not json", token("</s>", special=True), token("!")) + b": keep-alive\n\n"
        client = make_client(lambda request: httpx.Response(200, content=body))

        handle = await client.generate("prompt", GenerationParams())

        assert await collect(handle) == ["Hi", "!"]

    @pytest.mark.asyncio
    async def test_generated_text_frames_without_token(self):
        body = sse_body({"generated_text": "Whole answer"})
        client = make_client(lambda request: httpx.Response(200, content=body))

        handle = await client.generate("prompt", GenerationParams())

        assert await collect(handle) == ["Whole answer"]

    @pytest.mark.asyncio
    async def test_non_success_status_carries_provider_status_and_message(self):
        client = make_client(lambda request: httpx.Response(503, json={"error": "Model is currently loading"}))

        with pytest.raises(ProviderError) as exc_info:
            await client.generate("prompt", GenerationParams())

        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "Model is currently loading"
        assert exc_info.value.provider == "test-model"

    @pytest.mark.asyncio
    async def test_non_json_error_body_is_used_verbatim(self):
        client = make_client(lambda request: httpx.Response(400, text="bad request"))

        with pytest.raises(ProviderError) as exc_info:
            await client.generate("prompt", GenerationParams())

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "bad request"

    @pytest.mark.asyncio
    async def test_empty_error_body_gets_generic_message(self):
        client = make_client(lambda request: httpx.Response(500))

        with pytest.raises(ProviderError) as exc_info:
            await client.generate("prompt", GenerationParams())

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Provider returned status 500"

    @pytest.mark.asyncio
    async def test_timeout_is_tagged(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler, timeout=5.0)

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await client.generate("prompt", GenerationParams())

        assert exc_info.value.status_code == 504
        assert exc_info.value.details["timeout_seconds"] == 5.0

    @pytest.mark.asyncio
    async def test_connection_failure_is_bad_gateway(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(ProviderError) as exc_info:
            await client.generate("prompt", GenerationParams())

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_error_frame_mid_stream_raises(self):
        body = sse_body(token("Hi"), {"error": "Input validation error"})
        client = make_client(lambda request: httpx.Response(200, content=body))

        handle = await client.generate("prompt", GenerationParams())

        assert await handle.__anext__() == "Hi"
        with pytest.raises(ProviderError) as exc_info:
            await handle.__anext__()
        assert exc_info.value.message == "Input validation error"

    @pytest.mark.asyncio
    async def test_transport_failure_mid_stream_raises(self):
        async def body():
            yield sse_body(token("Hi"))
            raise httpx.ReadError("connection reset")

        client = make_client(lambda request: httpx.Response(200, content=body()))

        handle = await client.generate("prompt", GenerationParams())

        assert await handle.__anext__() == "Hi"
        with pytest.raises(ProviderError) as exc_info:
            await handle.__anext__()
        assert exc_info.value.status_code == 502


class TestProbe:

    @pytest.mark.asyncio
    async def test_probe_sends_short_request(self):
        seen: List[Dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=[{"generated_text": "Hello!"}])

        client = make_client(handler)

        await client.probe()

        assert seen == [{"inputs": "Hello", "parameters": {"max_new_tokens": 10}}]

    @pytest.mark.asyncio
    async def test_probe_failure_raises_provider_error(self):
        client = make_client(lambda request: httpx.Response(401, text="Invalid credentials"))

        with pytest.raises(ProviderError) as exc_info:
            await client.probe()

        assert exc_info.value.status_code == 401


class TestExtractFragment:

    @pytest.mark.parametrize("frame, expected", [
        ({"token": {"text": "a", "special": False}}, "a"),
        ({"token": {"text": "<s>", "special": True}}, None),
        ({"token": {"text": "b"}, "generated_text": "ab"}, "b"),
        ({"generated_text": "full"}, "full"),
        ({"token": {"text": ""}}, None),
        ({"details": {}}, None),
        (["not", "a", "dict"], None),
    ])
    def test_extract_fragment(self, frame, expected):
        assert InferenceClient.extract_fragment(frame) == expected


class TestStreamHandle:

    @pytest.mark.asyncio
    async def test_from_fragments_iterates_in_order(self):
        handle = StreamHandle.from_fragments(["a", "b", "c"], provider="static")

        assert await collect(handle) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent_and_stops_iteration(self):
        calls = []

        async def on_close():
            calls.append(True)

        async def fragments():
            yield "a"
            yield "b"

        handle = StreamHandle(fragments(), provider="static", on_close=on_close)

        await handle.aclose()
        await handle.aclose()

        assert handle.closed
        assert calls == [True]
        assert await collect(handle) == []


class TestGenerationParams:

    def test_from_settings(self, settings):
        params = GenerationParams.from_settings(settings)

        assert params.max_new_tokens == settings.MAX_NEW_TOKENS
        assert params.temperature == settings.TEMPERATURE
        assert params.top_p == settings.TOP_P
        assert params.to_parameters()["return_full_text"] is False

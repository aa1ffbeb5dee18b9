import json

import httpx
import pytest

from cryptoagent.core.assembler import assemble
from cryptoagent.models.errors import TransportFailure
from cryptoagent.services.llm import OllamaService


def make_service(handler):
    return OllamaService(base_url="http://ollama.test/", model="llama3.2", timeout=None,
                         transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_open_stream_posts_model_and_prompt():
    seen = {}

    async def body():
        yield b'{"response":"Hel"}\n'
        yield b'{"response":"lo","done":true}\n'

    def handler(request):
        seen["url"] = str(request.url)
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, content=body())

    service = make_service(handler)
    async with service.open_stream("say hello") as stream:
        text = await assemble(stream)

    assert text == "Hello"
    assert seen["url"] == "http://ollama.test/api/generate"
    assert seen["payload"] == {"model": "llama3.2", "prompt": "say hello"}


@pytest.mark.asyncio
async def test_error_status_is_transport_failure():
    service = make_service(lambda request: httpx.Response(404, content=b'{"error":"model not found"}'))
    with pytest.raises(TransportFailure) as exc_info:
        async with service.open_stream("hi") as stream:
            await assemble(stream)
    assert exc_info.value.extra["http_status"] == 404


@pytest.mark.asyncio
async def test_connect_error_is_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = make_service(handler)
    with pytest.raises(TransportFailure) as exc_info:
        async with service.open_stream("hi") as stream:
            await assemble(stream)
    assert exc_info.value.code == "NETWORK_ERROR"


@pytest.mark.asyncio
async def test_broken_read_is_transport_failure():
    async def body():
        yield b'{"response":"partial"}\n'
        raise httpx.ReadError("connection reset")

    service = make_service(lambda request: httpx.Response(200, content=body()))
    with pytest.raises(TransportFailure) as exc_info:
        async with service.open_stream("hi") as stream:
            await assemble(stream)
    assert exc_info.value.code == "STREAM_ERROR"

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from cryptoagent.config.settings import INFERENCE_TIMEOUT, LLM_MODEL, OLLAMA_URL
from cryptoagent.models.errors import TransportFailure

logger = logging.getLogger(__name__)


class OllamaService:
    """Client for a local Ollama server's streaming generate endpoint."""

    def __init__(self, base_url: str = OLLAMA_URL, model: str = LLM_MODEL,
                 timeout: Optional[float] = INFERENCE_TIMEOUT, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @asynccontextmanager
    async def open_stream(self, prompt: str) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a generate request and yield its raw byte chunks.

        Any transport problem, whether connecting, a non-2xx status, or a
        broken read part way through, is raised as TransportFailure.
        """
        payload = {"model": self.model, "prompt": prompt}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                async with client.stream("POST", f"{self.base_url}/api/generate", json=payload) as resp:
                    if resp.status_code >= 400:
                        body = await resp.aread()
                        logger.error(f"Ollama returned {resp.status_code}: {body[:500]!r}")
                        raise TransportFailure("API_ERROR", f"Inference service returned {resp.status_code}",
                                               http_status=resp.status_code)
                    yield self._iter_bytes(resp)
            except httpx.HTTPError as e:
                logger.error(f"Error streaming from Ollama: {e}")
                raise TransportFailure("NETWORK_ERROR", str(e))

    @staticmethod
    async def _iter_bytes(resp: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.aiter_bytes():
                yield chunk
        except httpx.HTTPError as e:
            logger.error(f"Ollama stream broke: {e}")
            raise TransportFailure("STREAM_ERROR", str(e))

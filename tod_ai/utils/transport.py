# tod_ai/utils/transport.py
"""
Thin async adapter over google-genai.

The router never talks to the SDK directly; it goes through this class so
tests can swap in a scripted transport. One genai.Client is kept per
(api key, API version) pair.
"""
from typing import Any, Dict, List, Tuple

from google import genai
from google.genai import types

from tod_ai.config import GEMINI_API_BASE_URL, REQUEST_TIMEOUT_SECONDS, get_logger
from tod_ai.memory.schema import ModelCandidate

logger = get_logger(__name__)


class GeminiTransport:
    def __init__(self, base_url: str = GEMINI_API_BASE_URL, timeout_seconds: int = REQUEST_TIMEOUT_SECONDS):
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._clients: Dict[Tuple[str, str], genai.Client] = {}

    def _client(self, api_key: str, version: str) -> genai.Client:
        key = (api_key, version)
        client = self._clients.get(key)
        if client is None:
            logger.info("🔌 Creating Gemini client for API %s", version)
            client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(
                    api_version=version,
                    base_url=self.base_url,
                    timeout=self.timeout_seconds * 1000,  # milliseconds
                ),
            )
            self._clients[key] = client
        return client

    def release(self, api_key: str):
        """Drop every client built for this key."""
        for key in [k for k in self._clients if k[0] == api_key]:
            del self._clients[key]

    async def list_models(self, api_key: str, version: str) -> List[types.Model]:
        """All models the key can see under one API version."""
        pager = await self._client(api_key, version).aio.models.list()
        return [model async for model in pager]

    async def generate_content(
        self,
        api_key: str,
        candidate: ModelCandidate,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
    ) -> Any:
        client = self._client(api_key, candidate.version)
        return await client.aio.models.generate_content(
            model=candidate.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_output_tokens,
            ),
        )


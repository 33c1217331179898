from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from google.genai import errors, types

from tod_ai.config import GenerationSettings
from tod_ai.memory.model_cache import ModelCache
from tod_ai.utils.model_router import GeminiRouter

TEST_KEY = "AIzaTestKey1234567890"


def listed_model(name: str, actions=("generateContent", "countTokens")):
    """Shape of an entry returned by models.list()."""
    return SimpleNamespace(name=f"models/{name}", supported_actions=list(actions))


def text_response(text: Optional[str]) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=[types.Part(text=text)]))]
    )


def api_error(code: int, status: str, message: str, reason: Optional[str] = None) -> errors.APIError:
    body = {"code": code, "status": status, "message": message}
    if reason:
        body["details"] = [{"@type": "type.googleapis.com/google.rpc.ErrorInfo", "reason": reason}]
    error_cls = errors.ServerError if code >= 500 else errors.ClientError
    return error_cls(code, {"error": body})


def quota_error():
    return api_error(429, "RESOURCE_EXHAUSTED", "You exceeded your current quota")


def overloaded_error():
    return api_error(503, "UNAVAILABLE", "The model is overloaded. Please try again later.")


def invalid_key_error():
    return api_error(400, "INVALID_ARGUMENT", "API key not valid. Please pass a valid API key.", "API_KEY_INVALID")


def not_enabled_error():
    return api_error(
        403,
        "PERMISSION_DENIED",
        "Generative Language API has not been used in project 123 before or it is disabled.",
        "SERVICE_DISABLED",
    )


def not_found_error(model: str = "gemini-x"):
    return api_error(404, "NOT_FOUND", f"models/{model} is not found for API version v1beta")


class FakeTransport:
    """
    Scripted stand-in for GeminiTransport.

    `models` maps API version -> listed models (or an exception to raise).
    `script` maps model name -> outcomes consumed in order; the last outcome
    repeats. An outcome is a str (reply text), an exception, or a response.
    """

    def __init__(self, models: Optional[Dict] = None, script: Optional[Dict[str, List]] = None):
        self.models = models or {}
        self.script = script or {}
        self.list_calls: List[str] = []
        self.generate_calls: List[str] = []
        self.requests: List[Dict] = []
        self.released: List[str] = []

    async def list_models(self, api_key, version):
        self.list_calls.append(version)
        outcome = self.models.get(version, [])
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)

    def release(self, api_key):
        self.released.append(api_key)

    async def generate_content(self, api_key, candidate, prompt, temperature, max_output_tokens):
        self.generate_calls.append(candidate.model)
        self.requests.append({
            "api_key": api_key,
            "version": candidate.version,
            "model": candidate.model,
            "prompt": prompt,
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        })
        outcomes = self.script.get(candidate.model)
        if not outcomes:
            raise not_found_error(candidate.model)
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, str):
            return text_response(outcome)
        return outcome


@pytest.fixture
def settings():
    return GenerationSettings(api_versions=["v1beta", "v1"], overload_retry_delay=0, abort_on_not_enabled=True)


@pytest.fixture
def make_router(settings):
    def _make(transport, api_key=TEST_KEY, cache=None, **overrides):
        router_settings = settings.model_copy(update=overrides) if overrides else settings
        return GeminiRouter(
            api_key=api_key,
            transport=transport,
            cache=cache if cache is not None else ModelCache(),
            settings=router_settings,
        )

    return _make

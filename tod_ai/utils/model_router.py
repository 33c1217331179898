# tod_ai/utils/model_router.py
"""
Gemini model router with dynamic model discovery.

Every feature that needs generated text calls GeminiRouter.generate():
  1. try the last model that worked (if any)
  2. otherwise discover the models the key can use, ranked by priority
  3. walk the ranked list until one answers

Overloaded models get one retry after a short pause. Quota and overload
failures move on to the next model; an invalid key stops everything.
"""
import asyncio
from typing import Any, List, Optional

from google.genai import errors

from tod_ai.config import (
    GEMINI_API_KEY,
    PLACEHOLDER_API_KEY,
    GenerationSettings,
    get_logger,
    load_settings,
)
from tod_ai.memory.model_cache import ModelCache
from tod_ai.memory.schema import ConnectionResult, ModelCandidate
from tod_ai.utils.diagnostics import render_diagnostic
from tod_ai.utils.errors import (
    ErrorKind,
    FailedModel,
    FailureKind,
    GenerationError,
    ModelCallError,
    classify_api_error,
    summarize_failures,
)
from tod_ai.utils.model_priority import get_model_priority, rank_candidates
from tod_ai.utils.transport import GeminiTransport

logger = get_logger(__name__)

GENERATE_CONTENT_ACTION = "generateContent"
CONNECTION_TEST_PROMPT = 'Say "Hello! Your API is working!" in a friendly way.'


def is_usable_api_key(api_key: Optional[str]) -> bool:
    if not api_key or not api_key.strip():
        return False
    return api_key.strip() != PLACEHOLDER_API_KEY


def extract_text(response: Any, candidate: ModelCandidate) -> str:
    """Pull candidates[0].content.parts[0].text out of a response, or fail."""

    def invalid(reason: str) -> ModelCallError:
        logger.warning("⚠️ Invalid response from %s: %s", candidate.model, reason)
        return ModelCallError(ErrorKind.UNCLASSIFIED, candidate, f"Invalid response format: {reason}")

    candidates = getattr(response, "candidates", None)
    if not candidates:
        raise invalid("No response candidates returned")

    content = getattr(candidates[0], "content", None)
    if content is None:
        raise invalid("No content in response")

    parts = getattr(content, "parts", None)
    if not parts:
        raise invalid("No parts in response content")

    text = getattr(parts[0], "text", None)
    if not isinstance(text, str):
        raise invalid("Response text is not a string")
    if not text.strip():
        raise invalid("Empty response text")

    return text


class GeminiRouter:
    """Resilient text generation over whichever Gemini models the key can reach."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[GeminiTransport] = None,
        cache: Optional[ModelCache] = None,
        settings: Optional[GenerationSettings] = None,
    ):
        self.api_key = GEMINI_API_KEY if api_key is None else api_key
        self.settings = settings or load_settings()
        self.transport = transport or GeminiTransport(
            base_url=self.settings.base_url,
            timeout_seconds=self.settings.request_timeout,
        )
        self.cache = cache if cache is not None else ModelCache()

    # ===== MODEL DISCOVERY =====

    async def discover_models(self) -> List[ModelCandidate]:
        """Ranked candidates that support generateContent. Empty means not ready."""
        cached = self.cache.get_models()
        if cached:
            logger.info("📦 Using %d cached models", len(cached))
            return cached

        logger.info("🔍 Discovering available models...")
        found: List[ModelCandidate] = []
        seen = set()

        for version in self.settings.api_versions:
            try:
                models = await self.transport.list_models(self.api_key, version)
            except Exception as e:
                logger.warning("⚠️ Could not list %s models: %s", version, str(e)[:120])
                continue

            for info in models:
                actions = getattr(info, "supported_actions", None) or []
                if GENERATE_CONTENT_ACTION not in actions:
                    continue

                name = getattr(info, "name", None) or ""
                if name.startswith("models/"):
                    name = name[len("models/"):]
                if not name:
                    continue

                candidate = ModelCandidate(version=version, model=name)
                if candidate in seen:
                    continue
                seen.add(candidate)
                found.append(candidate)
                logger.info("✅ Found: %s/%s", version, name)

        ranked = rank_candidates(found)

        if ranked:
            logger.info(
                "📊 Models sorted by priority: %s",
                ", ".join(f"{c.model} ({get_model_priority(c.model)})" for c in ranked),
            )
            self.cache.store_models(ranked)
        else:
            logger.warning("⚠️ No models found! API might not be enabled or ready.")

        return ranked

    async def list_available_models(self, api_key: Optional[str] = None) -> List[str]:
        """Debug helper: 'version:model' labels for the given (or own) key."""
        if api_key is not None and api_key != self.api_key:
            probe = GeminiRouter(api_key=api_key, transport=self.transport, cache=ModelCache(), settings=self.settings)
            try:
                models = await probe.discover_models()
            finally:
                self.transport.release(api_key)
        else:
            models = await self.discover_models()
        return [candidate.label for candidate in models]

    # ===== SINGLE CALL =====

    def _resolve_params(self, temperature: Optional[float], max_output_tokens: Optional[int]):
        temperature = self.settings.temperature if temperature is None else temperature
        max_output_tokens = self.settings.max_output_tokens if max_output_tokens is None else max_output_tokens
        if max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be a positive integer")
        return temperature, max_output_tokens

    async def call_model(
        self,
        candidate: ModelCandidate,
        prompt: str,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        """One model, one prompt. Overload gets exactly one retry."""
        temperature, max_output_tokens = self._resolve_params(temperature, max_output_tokens)

        retried = False
        while True:
            try:
                response = await self.transport.generate_content(
                    self.api_key, candidate, prompt, temperature, max_output_tokens
                )
            except errors.APIError as e:
                kind = classify_api_error(e)
                if kind is ErrorKind.OVERLOADED and not retried:
                    retried = True
                    logger.warning(
                        "⏳ Model %s overloaded, retrying in %.0f seconds...",
                        candidate.model,
                        self.settings.overload_retry_delay,
                    )
                    await asyncio.sleep(self.settings.overload_retry_delay)
                    continue
                raise ModelCallError(kind, candidate, e.message or str(e)) from e
            except Exception as e:
                raise ModelCallError(ErrorKind.UNCLASSIFIED, candidate, str(e) or type(e).__name__) from e

            return extract_text(response, candidate)

    # ===== FALLBACK LOOP =====

    def _require_api_key(self):
        if not is_usable_api_key(self.api_key):
            logger.warning("🚫 Missing or placeholder Gemini API key")
            raise GenerationError(FailureKind.INVALID_KEY, last_error="API key missing")

    async def generate(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate text with the best available model.

        Raises GenerationError when no model could answer; its kind says why.
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("prompt must be a non-empty string")

        temperature, max_output_tokens = self._resolve_params(temperature, max_output_tokens)
        self._require_api_key()

        cached = self.cache.working_config
        if cached is not None:
            try:
                text = await self.call_model(cached, prompt, temperature, max_output_tokens)
                logger.info("⚡ Cached model answered: %s", cached)
                return text
            except ModelCallError as e:
                logger.warning("⚠️ Cached config failed, rediscovering models... (%s)", e.message[:120])
                self.cache.clear()
                if e.kind is ErrorKind.INVALID_KEY:
                    raise GenerationError(
                        FailureKind.INVALID_KEY,
                        failed_models=[e.to_failed_model()],
                        last_error=e.message,
                        total_candidates=1,
                    ) from e

        candidates = await self.discover_models()
        if not candidates:
            raise GenerationError(FailureKind.NO_MODELS)

        failed: List[FailedModel] = []
        last_error: Optional[str] = None

        for candidate in candidates:
            logger.info("🧠 Trying %s...", candidate)
            try:
                text = await self.call_model(candidate, prompt, temperature, max_output_tokens)
            except ModelCallError as e:
                failed.append(e.to_failed_model())
                last_error = e.message

                if e.kind is ErrorKind.INVALID_KEY:
                    logger.warning("🚫 API key rejected by %s, giving up", candidate.model)
                    raise GenerationError(
                        FailureKind.INVALID_KEY,
                        failed_models=failed,
                        last_error=last_error,
                        total_candidates=len(candidates),
                    ) from e

                if e.kind is ErrorKind.NOT_ENABLED and self.settings.abort_on_not_enabled:
                    logger.warning("🚫 Generative Language API not enabled, giving up")
                    raise GenerationError(
                        FailureKind.NOT_ENABLED,
                        failed_models=failed,
                        last_error=last_error,
                        total_candidates=len(candidates),
                    ) from e

                if e.kind is ErrorKind.QUOTA_EXCEEDED:
                    logger.warning("⚠️ Quota exceeded for %s, trying next model...", candidate.model)
                elif e.kind is ErrorKind.OVERLOADED:
                    logger.warning("⚠️ Model %s is overloaded, trying next model...", candidate.model)
                else:
                    logger.warning("⚠️ Failed with %s: %s", candidate, e.message[:120])
                continue

            self.cache.remember(candidate)
            logger.info("✅ Success with %s", candidate)
            if failed:
                logger.info("ℹ️ Skipped %d failing model(s) before %s answered", len(failed), candidate.model)
            return text

        kind = summarize_failures(len(candidates), failed)
        logger.warning("❌ All %d models failed (%s)", len(candidates), kind.value)
        raise GenerationError(kind, failed_models=failed, last_error=last_error, total_candidates=len(candidates))

    # ===== CONNECTION TEST =====

    async def test_connection(self, api_key: Optional[str] = None) -> ConnectionResult:
        """Validate a key end to end without touching this router's cache."""
        key = self.api_key if api_key is None else api_key

        if not is_usable_api_key(key):
            error = GenerationError(FailureKind.INVALID_KEY, last_error="API key missing")
            return ConnectionResult(success=False, reason=error.kind.value, diagnostic=render_diagnostic(error))

        logger.info("🔍 Testing API connection (key %s..., length %d)", key[:6], len(key))
        probe = GeminiRouter(api_key=key, transport=self.transport, cache=ModelCache(), settings=self.settings)
        try:
            return await self._probe_connection(probe)
        finally:
            if key != self.api_key:
                self.transport.release(key)

    @staticmethod
    async def _probe_connection(probe: "GeminiRouter") -> ConnectionResult:
        models = await probe.discover_models()
        if not models:
            error = GenerationError(FailureKind.NO_MODELS)
            return ConnectionResult(success=False, reason=error.kind.value, diagnostic=render_diagnostic(error))

        labels = [candidate.label for candidate in models]
        try:
            text = await probe.generate(CONNECTION_TEST_PROMPT, temperature=0.5, max_output_tokens=50)
        except GenerationError as e:
            logger.warning("❌ Connection test failed: %s", e.kind.value)
            return ConnectionResult(
                success=False,
                reason=e.kind.value,
                diagnostic=render_diagnostic(e),
                available_models=labels,
            )

        working = probe.cache.working_config
        logger.info("✅ Connection test passed with %s", working)
        return ConnectionResult(
            success=True,
            model=working.model if working else None,
            version=working.version if working else None,
            message=text,
            available_models=labels,
        )

    # ===== CACHE CONTROL =====

    def get_working_config(self) -> Optional[ModelCandidate]:
        return self.cache.working_config

    def clear_cache(self):
        self.cache.clear()


def create_router(api_key: Optional[str] = None) -> GeminiRouter:
    """Router wired to the environment configuration."""
    return GeminiRouter(api_key=api_key, settings=load_settings())

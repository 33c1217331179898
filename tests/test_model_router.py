import asyncio

import pytest
from google.genai import types

from conftest import (
    TEST_KEY,
    FakeTransport,
    invalid_key_error,
    listed_model,
    not_enabled_error,
    not_found_error,
    overloaded_error,
    quota_error,
    text_response,
)
from tod_ai.memory.model_cache import ModelCache
from tod_ai.memory.schema import ModelCandidate
from tod_ai.utils.errors import ErrorKind, FailureKind, GenerationError, ModelCallError
from tod_ai.utils.model_router import extract_text


def two_model_transport(script):
    return FakeTransport(
        models={"v1beta": [listed_model("model-a"), listed_model("model-b")]},
        script=script,
    )


# ===== DISCOVERY =====

@pytest.mark.asyncio
async def test_discovery_filters_dedups_and_ranks(make_router):
    transport = FakeTransport(models={
        "v1beta": [
            listed_model("gemini-2.5-pro"),
            listed_model("text-embedding-004", actions=("embedContent",)),
            listed_model("gemini-1.5-flash"),
            listed_model("gemini-1.5-flash"),
        ],
        "v1": [listed_model("gemini-1.5-flash"), listed_model("gemini-pro")],
    })
    router = make_router(transport)

    models = await router.discover_models()

    assert [m.label for m in models] == [
        "v1beta:gemini-1.5-flash",
        "v1:gemini-1.5-flash",
        "v1:gemini-pro",
        "v1beta:gemini-2.5-pro",
    ]
    assert transport.list_calls == ["v1beta", "v1"]


@pytest.mark.asyncio
async def test_discovery_skips_failing_version(make_router):
    transport = FakeTransport(models={
        "v1beta": RuntimeError("boom"),
        "v1": [listed_model("gemini-pro")],
    })
    router = make_router(transport)

    models = await router.discover_models()

    assert [m.label for m in models] == ["v1:gemini-pro"]


@pytest.mark.asyncio
async def test_discovery_total_failure_is_empty_not_error(make_router):
    transport = FakeTransport(models={"v1beta": RuntimeError("down"), "v1": RuntimeError("down")})
    router = make_router(transport)

    assert await router.discover_models() == []
    assert router.cache.get_models() == []


@pytest.mark.asyncio
async def test_discovery_result_is_cached(make_router):
    transport = FakeTransport(models={"v1beta": [listed_model("gemini-pro")]})
    router = make_router(transport)

    await router.discover_models()
    await router.discover_models()

    assert transport.list_calls == ["v1beta", "v1"]


@pytest.mark.asyncio
async def test_list_available_models_labels(make_router):
    transport = FakeTransport(models={"v1": [listed_model("gemini-pro")]})
    router = make_router(transport)

    assert await router.list_available_models() == ["v1:gemini-pro"]


@pytest.mark.asyncio
async def test_list_available_models_for_other_key_releases_its_clients(make_router):
    transport = FakeTransport(models={"v1": [listed_model("gemini-pro")]})
    router = make_router(transport)

    assert await router.list_available_models("AIzaOtherKey") == ["v1:gemini-pro"]
    assert transport.released == ["AIzaOtherKey"]
    assert router.cache.get_models() == []


# ===== EXECUTOR =====

@pytest.mark.asyncio
async def test_overload_retries_same_model_once(make_router, monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    transport = two_model_transport({"model-a": [overloaded_error(), "hello"]})
    router = make_router(transport, overload_retry_delay=2.0)

    text = await router.call_model(ModelCandidate(version="v1beta", model="model-a"), "hi")

    assert text == "hello"
    assert transport.generate_calls == ["model-a", "model-a"]
    assert delays == [2.0]


@pytest.mark.asyncio
async def test_overload_twice_raises_overloaded(make_router):
    transport = two_model_transport({"model-a": [overloaded_error()]})
    router = make_router(transport)

    with pytest.raises(ModelCallError) as exc_info:
        await router.call_model(ModelCandidate(version="v1beta", model="model-a"), "hi")

    assert exc_info.value.kind is ErrorKind.OVERLOADED
    assert transport.generate_calls == ["model-a", "model-a"]


@pytest.mark.asyncio
async def test_quota_is_not_retried(make_router):
    transport = two_model_transport({"model-a": [quota_error()]})
    router = make_router(transport)

    with pytest.raises(ModelCallError) as exc_info:
        await router.call_model(ModelCandidate(version="v1beta", model="model-a"), "hi")

    assert exc_info.value.kind is ErrorKind.QUOTA_EXCEEDED
    assert transport.generate_calls == ["model-a"]


@pytest.mark.asyncio
async def test_network_failure_is_unclassified(make_router):
    transport = two_model_transport({"model-a": [ConnectionError("connection reset")]})
    router = make_router(transport)

    with pytest.raises(ModelCallError) as exc_info:
        await router.call_model(ModelCandidate(version="v1beta", model="model-a"), "hi")

    assert exc_info.value.kind is ErrorKind.UNCLASSIFIED
    assert "connection reset" in exc_info.value.message


@pytest.mark.asyncio
async def test_generation_parameters_are_forwarded(make_router):
    transport = two_model_transport({"model-a": ["ok"]})
    router = make_router(transport)

    await router.generate("hi", temperature=0.2, max_output_tokens=77)

    request = transport.requests[0]
    assert (request["temperature"], request["max_output_tokens"]) == (0.2, 77)
    assert request["api_key"] == TEST_KEY


@pytest.mark.asyncio
async def test_defaults_come_from_settings(make_router):
    transport = two_model_transport({"model-a": ["ok"]})
    router = make_router(transport, temperature=0.7, max_output_tokens=1024)

    await router.generate("hi")

    assert (transport.requests[0]["temperature"], transport.requests[0]["max_output_tokens"]) == (0.7, 1024)


@pytest.mark.asyncio
@pytest.mark.parametrize("max_output_tokens", [0, -5])
async def test_non_positive_token_limit_is_rejected(make_router, max_output_tokens):
    transport = two_model_transport({"model-a": ["ok"]})
    router = make_router(transport)

    with pytest.raises(ValueError):
        await router.generate("hi", max_output_tokens=max_output_tokens)

    assert transport.list_calls == []
    assert transport.generate_calls == []


@pytest.mark.parametrize("response, reason", [
    (types.GenerateContentResponse(candidates=[]), "No response candidates"),
    (types.GenerateContentResponse(candidates=[types.Candidate()]), "No content"),
    (types.GenerateContentResponse(candidates=[types.Candidate(content=types.Content(parts=[]))]), "No parts"),
    (text_response(None), "not a string"),
    (text_response("   "), "Empty response"),
])
def test_extract_text_rejects_malformed_responses(response, reason):
    with pytest.raises(ModelCallError) as exc_info:
        extract_text(response, ModelCandidate(version="v1", model="m"))

    assert exc_info.value.kind is ErrorKind.UNCLASSIFIED
    assert reason in exc_info.value.message


@pytest.mark.asyncio
async def test_empty_text_is_never_a_success(make_router):
    transport = two_model_transport({"model-a": [""], "model-b": ["real answer"]})
    router = make_router(transport)

    assert await router.generate("hi") == "real answer"


# ===== FALLBACK LOOP =====

@pytest.mark.asyncio
async def test_quota_on_first_model_falls_back_and_caches_second(make_router):
    transport = two_model_transport({"model-a": [quota_error()], "model-b": ["from b"]})
    router = make_router(transport)

    text = await router.generate("hi")

    assert text == "from b"
    assert router.get_working_config() == ModelCandidate(version="v1beta", model="model-b")
    assert transport.generate_calls == ["model-a", "model-b"]


@pytest.mark.asyncio
async def test_success_short_circuits(make_router):
    transport = two_model_transport({"model-a": ["from a"], "model-b": ["from b"]})
    router = make_router(transport)

    assert await router.generate("hi") == "from a"
    assert transport.generate_calls == ["model-a"]


@pytest.mark.asyncio
async def test_cached_config_skips_discovery(make_router):
    transport = two_model_transport({"model-a": ["one", "two"]})
    router = make_router(transport)

    await router.generate("first")
    list_calls_after_first = list(transport.list_calls)
    text = await router.generate("second")

    assert text == "two"
    assert transport.list_calls == list_calls_after_first


@pytest.mark.asyncio
async def test_cached_failure_clears_cache_and_rediscovers_once(make_router):
    transport = two_model_transport({"model-a": ["one", quota_error()], "model-b": ["from b"]})
    router = make_router(transport)

    await router.generate("first")
    assert transport.list_calls == ["v1beta", "v1"]

    text = await router.generate("second")

    assert text == "from b"
    # cached model-a, then rediscovery, then model-a again and model-b
    assert transport.list_calls == ["v1beta", "v1", "v1beta", "v1"]
    assert transport.generate_calls == ["model-a", "model-a", "model-a", "model-b"]
    assert router.get_working_config().model == "model-b"


@pytest.mark.asyncio
async def test_cached_invalid_key_aborts_without_trying_others(make_router):
    cache = ModelCache()
    cache.remember(ModelCandidate(version="v1", model="model-x"))
    cache.store_models([ModelCandidate(version="v1", model="model-x"), ModelCandidate(version="v1", model="model-y")])
    transport = FakeTransport(
        models={"v1": [listed_model("model-x"), listed_model("model-y")]},
        script={"model-x": [invalid_key_error()], "model-y": ["would work"]},
    )
    router = make_router(transport, cache=cache)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    assert exc_info.value.kind is FailureKind.INVALID_KEY
    assert transport.generate_calls == ["model-x"]
    assert transport.list_calls == []
    assert router.get_working_config() is None


@pytest.mark.asyncio
async def test_invalid_key_makes_exactly_one_attempt(make_router):
    transport = two_model_transport({"model-a": [invalid_key_error()], "model-b": ["from b"]})
    router = make_router(transport)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    assert exc_info.value.kind is FailureKind.INVALID_KEY
    assert transport.generate_calls == ["model-a"]
    assert [f.kind for f in exc_info.value.failed_models] == [ErrorKind.INVALID_KEY]


@pytest.mark.asyncio
@pytest.mark.parametrize("api_key", ["", "   ", "YOUR_API_KEY_HERE"])
async def test_unusable_key_fails_without_network(make_router, api_key):
    transport = two_model_transport({"model-a": ["from a"]})
    router = make_router(transport, api_key=api_key)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    assert exc_info.value.kind is FailureKind.INVALID_KEY
    assert transport.list_calls == [] and transport.generate_calls == []


@pytest.mark.asyncio
async def test_empty_prompt_is_rejected(make_router):
    router = make_router(two_model_transport({"model-a": ["x"]}))

    with pytest.raises(ValueError):
        await router.generate("  ")


@pytest.mark.asyncio
async def test_no_models_fails_without_generation(make_router):
    transport = FakeTransport(models={})
    router = make_router(transport)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    assert exc_info.value.kind is FailureKind.NO_MODELS
    assert transport.generate_calls == []


@pytest.mark.asyncio
async def test_all_overloaded(make_router):
    transport = two_model_transport({"model-a": [overloaded_error()], "model-b": [overloaded_error()]})
    router = make_router(transport)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    error = exc_info.value
    assert error.kind is FailureKind.ALL_OVERLOADED
    assert error.overloaded_models == ["model-a", "model-b"]
    # one retry per candidate
    assert transport.generate_calls == ["model-a", "model-a", "model-b", "model-b"]


@pytest.mark.asyncio
async def test_all_quota_exceeded(make_router):
    transport = two_model_transport({"model-a": [quota_error()], "model-b": [quota_error()]})
    router = make_router(transport)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    assert exc_info.value.kind is FailureKind.ALL_QUOTA_EXCEEDED
    assert exc_info.value.quota_exceeded_models == ["model-a", "model-b"]


@pytest.mark.asyncio
async def test_mixed_failures(make_router):
    transport = FakeTransport(
        models={"v1beta": [listed_model("model-a"), listed_model("model-b"), listed_model("model-c")]},
        script={"model-a": [quota_error()], "model-b": [overloaded_error()], "model-c": [not_found_error("model-c")]},
    )
    router = make_router(transport)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    error = exc_info.value
    assert error.kind is FailureKind.MIXED
    assert error.last_error.startswith("models/model-c")
    assert [f.kind for f in error.failed_models] == [
        ErrorKind.QUOTA_EXCEEDED, ErrorKind.OVERLOADED, ErrorKind.NOT_FOUND,
    ]


@pytest.mark.asyncio
async def test_partial_quota(make_router):
    transport = two_model_transport({"model-a": [quota_error()], "model-b": [not_found_error("model-b")]})
    router = make_router(transport)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    assert exc_info.value.kind is FailureKind.PARTIALLY_QUOTA_EXCEEDED


@pytest.mark.asyncio
async def test_unclassified_failures(make_router):
    transport = two_model_transport({"model-a": [RuntimeError("weird")], "model-b": [not_found_error("model-b")]})
    router = make_router(transport)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    assert exc_info.value.kind is FailureKind.ALL_FAILED
    assert exc_info.value.total_candidates == 2


@pytest.mark.asyncio
async def test_not_enabled_aborts_by_default(make_router):
    transport = two_model_transport({"model-a": [not_enabled_error()], "model-b": ["from b"]})
    router = make_router(transport)

    with pytest.raises(GenerationError) as exc_info:
        await router.generate("hi")

    assert exc_info.value.kind is FailureKind.NOT_ENABLED
    assert transport.generate_calls == ["model-a"]


@pytest.mark.asyncio
async def test_not_enabled_can_exhaust_list(make_router):
    transport = two_model_transport({"model-a": [not_enabled_error()], "model-b": ["from b"]})
    router = make_router(transport, abort_on_not_enabled=False)

    assert await router.generate("hi") == "from b"
    assert transport.generate_calls == ["model-a", "model-b"]


@pytest.mark.asyncio
async def test_clear_cache_forces_rediscovery(make_router):
    transport = two_model_transport({"model-a": ["one"]})
    router = make_router(transport)

    await router.generate("first")
    router.clear_cache()

    assert router.get_working_config() is None
    await router.generate("second")
    assert transport.list_calls == ["v1beta", "v1", "v1beta", "v1"]


@pytest.mark.asyncio
async def test_routers_with_separate_caches_are_isolated(make_router):
    transport = two_model_transport({"model-a": ["one"]})
    first = make_router(transport)
    second = make_router(transport)

    await first.generate("hi")

    assert first.get_working_config() is not None
    assert second.get_working_config() is None


# ===== CONNECTION TEST =====

@pytest.mark.asyncio
async def test_connection_success_reports_model(make_router):
    transport = two_model_transport({"model-a": ["Hello! Your API is working!"]})
    router = make_router(transport)

    result = await router.test_connection("AIzaOtherKey")

    assert result.success is True
    assert (result.version, result.model) == ("v1beta", "model-a")
    assert result.available_models == ["v1beta:model-a", "v1beta:model-b"]
    assert transport.requests[0]["api_key"] == "AIzaOtherKey"
    assert transport.requests[0]["max_output_tokens"] == 50
    # the router's own cache is untouched
    assert router.get_working_config() is None
    assert transport.released == ["AIzaOtherKey"]


@pytest.mark.asyncio
async def test_connection_no_models(make_router):
    router = make_router(FakeTransport(models={}))

    result = await router.test_connection()

    assert result.success is False
    assert result.reason == FailureKind.NO_MODELS.value
    assert "No Models Available" in result.diagnostic


@pytest.mark.asyncio
async def test_connection_invalid_key(make_router):
    transport = two_model_transport({"model-a": [invalid_key_error()]})
    router = make_router(transport)

    result = await router.test_connection()

    assert result.success is False
    assert result.reason == FailureKind.INVALID_KEY.value
    assert "Invalid API Key" in result.diagnostic
    assert result.available_models == ["v1beta:model-a", "v1beta:model-b"]
    # the router's own key keeps its clients
    assert transport.released == []


@pytest.mark.asyncio
async def test_connection_rejects_placeholder_key(make_router):
    transport = two_model_transport({"model-a": ["x"]})
    router = make_router(transport)

    result = await router.test_connection("YOUR_API_KEY_HERE")

    assert result.success is False
    assert result.reason == FailureKind.INVALID_KEY.value
    assert transport.list_calls == []

import json
import logging

import httpx
import pytest

from errors import UpstreamError
from services.llm import LLMProvider


def provider_with(handler, **kwargs):
    return LLMProvider(
        base_url="http://llm.test/api/v1/",
        api_key="sk-test",
        model="test-model",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.mark.asyncio
async def test_generate_sends_instructions_history_and_prompt():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return completion("  Paris.  ")

    llm = provider_with(handler, instructions="Be brief.")
    history = [
        {"sender": "user", "content": "Hi", "timestamp": "2025-02-07T12:34:56+00:00"},
        {"sender": "assistant", "content": "Hello!", "timestamp": "2025-02-07T12:34:57+00:00"},
    ]
    answer = await llm.generate("Capital of France?", history)

    assert answer == "Paris."
    assert seen["url"] == "http://llm.test/api/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["stream"] is False
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "Capital of France?"},
    ]


def test_build_messages_without_instructions_has_no_system_message():
    llm = provider_with(lambda request: completion("ok"))
    assert llm.build_messages("Hi", []) == [{"role": "user", "content": "Hi"}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="upstream exploded"),
        httpx.Response(429, json={"error": "rate limited"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json={"choices": [{"message": {"content": "   "}}]}),
    ],
)
async def test_generate_maps_bad_responses_to_upstream_error(response):
    llm = provider_with(lambda request: response)
    with pytest.raises(UpstreamError):
        await llm.generate("Hi", [])


@pytest.mark.asyncio
@pytest.mark.parametrize("exc_class", [httpx.ConnectError, httpx.ReadTimeout])
async def test_generate_maps_transport_failures_to_upstream_error(exc_class):
    def handler(request):
        raise exc_class("boom", request=request)

    llm = provider_with(handler)
    with pytest.raises(UpstreamError):
        await llm.generate("Hi", [])


def test_shared_provider_is_built_from_settings_and_logged(caplog):
    from deps import get_llm_provider
    from settings import settings

    get_llm_provider.cache_clear()
    try:
        with caplog.at_level(logging.INFO, logger="deps"):
            llm = get_llm_provider()
            assert get_llm_provider() is llm
    finally:
        get_llm_provider.cache_clear()

    assert llm.base_url == settings.get_llm_base_url()
    assert llm.model == settings.get_llm_model()
    assert [r.name for r in caplog.records if "Initializing LLMProvider" in r.getMessage()] == ["deps"]

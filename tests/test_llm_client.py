"""Tests for the streamed generation client."""

from freshmarket_assistant.llm.client import FALLBACK_MESSAGE, LLMClient
from freshmarket_assistant.models.schemas import ChatTurn

from tests.conftest import FakeOpenAI

CONTEXT = [
    ChatTurn(role="system", content="Siz FreshMarket yordamchisisiz."),
    ChatTurn(role="user", content="olma bormi?"),
]


def _client(backend: FakeOpenAI) -> LLMClient:
    return LLMClient(model="test-model", temperature=0.2, timeout_sec=5.0, client=backend)


async def _collect(stream):
    return [fragment async for fragment in stream]


async def test_fragments_arrive_in_order():
    backend = FakeOpenAI(fragments=["Ha, ", "Olma ", "bor: ", "15000 so'm."])

    fragments = await _collect(_client(backend).stream(CONTEXT))

    assert fragments == ["Ha, ", "Olma ", "bor: ", "15000 so'm."]
    assert "".join(fragments) == "Ha, Olma bor: 15000 so'm."
    assert backend.completions.streams[0].closed


async def test_request_carries_model_settings_and_context():
    backend = FakeOpenAI(fragments=["Salom"])

    await _collect(_client(backend).stream(CONTEXT))

    call = backend.completions.calls[0]
    assert call["stream"] is True
    assert call["model"] == "test-model"
    assert call["temperature"] == 0.2
    assert call["messages"] == [
        {"role": "system", "content": "Siz FreshMarket yordamchisisiz."},
        {"role": "user", "content": "olma bormi?"},
    ]


async def test_backend_error_yields_single_fallback():
    backend = FakeOpenAI(error=RuntimeError("401 Unauthorized"))

    fragments = await _collect(_client(backend).stream(CONTEXT))

    assert fragments == [FALLBACK_MESSAGE]


async def test_failure_before_first_fragment_yields_fallback():
    backend = FakeOpenAI(fragments=["Ha"], fail_after=0)

    fragments = await _collect(_client(backend).stream(CONTEXT))

    assert fragments == [FALLBACK_MESSAGE]
    assert backend.completions.streams[0].closed


async def test_mid_stream_failure_keeps_sent_fragments():
    backend = FakeOpenAI(fragments=["Ha, ", "Olma ", "bor"], fail_after=2)

    fragments = await _collect(_client(backend).stream(CONTEXT))

    assert fragments == ["Ha, ", "Olma "]
    assert backend.completions.streams[0].closed


async def test_consumer_stopping_early_releases_upstream():
    backend = FakeOpenAI(fragments=["bir ", "ikki ", "uch ", "to'rt"])
    stream = _client(backend).stream(CONTEXT)

    first = await stream.__anext__()
    await stream.aclose()

    upstream = backend.completions.streams[0]
    assert first == "bir "
    assert upstream.closed
    assert upstream.consumed < 4


async def test_custom_fallback_message():
    backend = FakeOpenAI(error=RuntimeError("boom"))
    client = LLMClient(model="m", temperature=0.0, timeout_sec=1.0, client=backend, fallback_message="Uzr!")

    assert await _collect(client.stream(CONTEXT)) == ["Uzr!"]

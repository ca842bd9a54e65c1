from unittest.mock import AsyncMock, Mock, patch

import pytest
from openai import OpenAIError

from fixdesk.adapters.openai_adapter import (
    DEFAULT_CHAT_MODEL,
    MAX_IMAGE_COUNT,
    OpenAIAdapter,
)


@pytest.fixture
def mock_openai():
    with patch("fixdesk.adapters.openai_adapter.AsyncOpenAI") as mock:
        mock.return_value.responses.create = AsyncMock(
            return_value=Mock(output_text='{"predictedCategory": "plumbing"}', usage=None)
        )
        yield mock


@pytest.fixture
def adapter(mock_openai):
    return OpenAIAdapter(api_key="test-key")


def _request(mock_openai):
    return mock_openai.return_value.responses.create.call_args.kwargs


@pytest.mark.asyncio
async def test_generate_text(adapter, mock_openai):
    result = await adapter.generate_text("Classify this", system_prompt="Be strict")

    assert result == '{"predictedCategory": "plumbing"}'
    request = _request(mock_openai)
    assert request["model"] == DEFAULT_CHAT_MODEL
    assert request["input"] == "Classify this"
    assert request["instructions"] == "Be strict"


@pytest.mark.asyncio
async def test_model_override(mock_openai):
    adapter = OpenAIAdapter(api_key="test-key", model="gpt-4.1-mini")

    await adapter.generate_text("Classify this")
    assert _request(mock_openai)["model"] == "gpt-4.1-mini"
    assert "instructions" not in _request(mock_openai)

    await adapter.generate_text("Classify this", model="o4-mini")
    assert _request(mock_openai)["model"] == "o4-mini"


@pytest.mark.asyncio
async def test_empty_output_is_empty_string(adapter, mock_openai):
    mock_openai.return_value.responses.create.return_value = Mock(output_text=None, usage=None)

    assert await adapter.generate_text("Classify this") == ""


@pytest.mark.asyncio
async def test_api_errors_propagate(adapter, mock_openai):
    mock_openai.return_value.responses.create.side_effect = OpenAIError("quota exceeded")

    with pytest.raises(OpenAIError):
        await adapter.generate_text("Classify this")


@pytest.mark.asyncio
async def test_images_are_sent_as_input_images(adapter, mock_openai):
    images = ["https://example.com/a.jpg", "ftp://example.com/b.jpg", "data:image/png;base64,AAA"]

    await adapter.generate_text_with_images("Classify this", images, system_prompt="Be strict")

    content = _request(mock_openai)["input"][0]["content"]
    assert content[0] == {"type": "input_text", "text": "Classify this"}
    assert [item["image_url"] for item in content[1:]] == [
        "https://example.com/a.jpg",
        "data:image/png;base64,AAA",
    ]


@pytest.mark.asyncio
async def test_image_count_is_capped(adapter, mock_openai):
    images = [f"https://example.com/{i}.jpg" for i in range(MAX_IMAGE_COUNT + 3)]

    await adapter.generate_text_with_images("Classify this", images)

    assert len(_request(mock_openai)["input"][0]["content"]) == MAX_IMAGE_COUNT + 1


@pytest.mark.asyncio
async def test_no_images_falls_back_to_text(adapter, mock_openai):
    await adapter.generate_text_with_images("Classify this", [])

    assert _request(mock_openai)["input"] == "Classify this"


def test_logfire_failure_is_not_fatal(mock_openai):
    with patch("fixdesk.adapters.openai_adapter.logfire") as mock_logfire:
        mock_logfire.configure.side_effect = RuntimeError("bad token")
        adapter = OpenAIAdapter(api_key="test-key", logfire_api_key="lf-key")

    assert adapter.logfire is False


def test_logfire_instruments_client(mock_openai):
    with patch("fixdesk.adapters.openai_adapter.logfire") as mock_logfire:
        adapter = OpenAIAdapter(api_key="test-key", logfire_api_key="lf-key")

    assert adapter.logfire is True
    mock_logfire.instrument_openai.assert_called_once_with(adapter.client)

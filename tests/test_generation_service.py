"""Unit tests for ImageGenerationService and the OpenAI generator."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from imagegen_api.adapters.image.base import AbstractImageGenerator, InsufficientPromptError
from imagegen_api.adapters.image.openai_client import (
    INSUFFICIENT_DETAIL_KEY,
    OpenAIImageGenerator,
    capitalize_first_char,
)
from imagegen_api.core.errors import GenerationAppError, ValidationAppError
from imagegen_api.services.generation_service import ARTISTIC_STYLES, ImageGenerationService


@pytest.fixture
def generator() -> MagicMock:
    mock = MagicMock(spec=AbstractImageGenerator)
    mock.optimize_prompt = AsyncMock(return_value="Optimized prompt")
    mock.generate_image = AsyncMock(return_value="https://images.example.com/1.png")
    mock.suggest_prompt = AsyncMock(return_value="Suggested prompt")
    return mock


class TestImageGenerationService:
    def test_custom_prompt_is_optimized(self, generator) -> None:
        service = ImageGenerationService(generator)

        image = asyncio.run(service.generate("  a dog in a park  ", "custom"))

        generator.optimize_prompt.assert_awaited_once_with("a dog in a park")
        generator.generate_image.assert_awaited_once_with("Optimized prompt")
        assert image.optimized is True
        assert image.image_url == "https://images.example.com/1.png"

    def test_blank_prompt_rejected(self, generator) -> None:
        service = ImageGenerationService(generator)

        with pytest.raises(ValidationAppError) as exc_info:
            asyncio.run(service.generate("   "))

        assert exc_info.value.code == "empty_prompt"
        generator.generate_image.assert_not_awaited()

    def test_insufficient_prompt_maps_to_validation_error(self, generator) -> None:
        generator.optimize_prompt.side_effect = InsufficientPromptError("cat")
        service = ImageGenerationService(generator)

        with pytest.raises(ValidationAppError) as exc_info:
            asyncio.run(service.generate("cat"))

        assert exc_info.value.code == "insufficient_prompt_detail"

    def test_provider_error_maps_to_generation_error(self, generator) -> None:
        generator.generate_image.side_effect = RuntimeError("Image URL not returned from OpenAI")
        service = ImageGenerationService(generator)

        with pytest.raises(GenerationAppError) as exc_info:
            asyncio.run(service.generate("a dog in a park", "suggestion"))

        assert exc_info.value.code == "image_generation_failed"

    def test_suggest_uses_chosen_style(self, generator) -> None:
        service = ImageGenerationService(generator, choose=lambda styles: styles[0])

        assert asyncio.run(service.suggest()) == "Suggested prompt"
        generator.suggest_prompt.assert_awaited_once_with(ARTISTIC_STYLES[0])

    def test_suggest_failure(self, generator) -> None:
        generator.suggest_prompt.side_effect = RuntimeError("empty")
        service = ImageGenerationService(generator)

        with pytest.raises(GenerationAppError) as exc_info:
            asyncio.run(service.suggest())

        assert exc_info.value.code == "suggestion_failed"


def _chat_response(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def openai_generator() -> OpenAIImageGenerator:
    generator = OpenAIImageGenerator(api_key="test-key")
    generator.client = MagicMock()
    generator.client.chat.completions.create = AsyncMock(return_value=_chat_response("golden retriever, detailed"))
    generator.client.images.generate = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(url="https://images.example.com/2.png")])
    )
    return generator


class TestOpenAIImageGenerator:
    def test_optimize_prompt_capitalizes(self, openai_generator) -> None:
        assert asyncio.run(openai_generator.optimize_prompt("dog")) == "Golden retriever, detailed"

        kwargs = openai_generator.client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4.1-nano"
        assert kwargs["messages"][-1] == {"role": "user", "content": "dog"}

    def test_optimize_prompt_insufficient_detail(self, openai_generator) -> None:
        openai_generator.client.chat.completions.create.return_value = _chat_response(INSUFFICIENT_DETAIL_KEY)

        with pytest.raises(InsufficientPromptError):
            asyncio.run(openai_generator.optimize_prompt("car"))

    def test_generate_image_returns_url(self, openai_generator) -> None:
        assert asyncio.run(openai_generator.generate_image("A dog")) == "https://images.example.com/2.png"

        openai_generator.client.images.generate.assert_awaited_once_with(
            model="dall-e-3", prompt="A dog", n=1, size="1024x1024"
        )

    def test_generate_image_without_url_fails(self, openai_generator) -> None:
        openai_generator.client.images.generate.return_value = SimpleNamespace(data=[SimpleNamespace(url=None)])

        with pytest.raises(RuntimeError):
            asyncio.run(openai_generator.generate_image("A dog"))

    def test_api_errors_become_runtime_errors(self, openai_generator) -> None:
        openai_generator.client.images.generate.side_effect = Exception("rate limited upstream")

        with pytest.raises(RuntimeError, match="OpenAI API error"):
            asyncio.run(openai_generator.generate_image("A dog"))

    def test_empty_suggestion_fails(self, openai_generator) -> None:
        openai_generator.client.chat.completions.create.return_value = _chat_response("  ")

        with pytest.raises(RuntimeError):
            asyncio.run(openai_generator.suggest_prompt("Watercolor"))


@pytest.mark.parametrize(
    ("text", "expected"),
    [("hello", "Hello"), ("", ""), (None, ""), (INSUFFICIENT_DETAIL_KEY, INSUFFICIENT_DETAIL_KEY)],
)
def test_capitalize_first_char(text, expected) -> None:
    assert capitalize_first_char(text) == expected

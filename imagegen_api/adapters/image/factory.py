"""Factory pattern for creating image generator instances."""

from imagegen_api.adapters.image.base import AbstractImageGenerator
from imagegen_api.adapters.image.openai_client import OpenAIImageGenerator
from imagegen_api.core.config import settings
from imagegen_api.core.errors import ValidationAppError


def create_image_generator() -> AbstractImageGenerator:
    """Factory function to instantiate the image generator based on provider.

    Returns:
        AbstractImageGenerator: Configured generator instance.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    provider = settings.llm.provider.lower()

    if provider == "openai":
        if not settings.llm.api_key:
            raise ValidationAppError(
                code="llm_missing_api_key",
                message="OpenAI provider requires LLM_API_KEY environment variable",
            )
        return OpenAIImageGenerator(
            api_key=settings.llm.api_key,
            prompt_model=settings.llm.prompt_model,
            image_model=settings.llm.image_model,
            image_size=settings.llm.image_size,
            base_url=settings.llm.base_url,
            timeout_seconds=settings.llm.timeout_seconds,
        )

    raise ValidationAppError(
        code="llm_unknown_provider",
        message=f"Unknown image provider: '{provider}'. Supported providers: openai",
    )

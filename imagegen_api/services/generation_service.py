"""Image generation service.

Orchestrates prompt optimization and image generation, and converts provider
failures into AppError subclasses. This is the guarded operation: usage is
only recorded by the caller once ``generate`` returned.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Literal, Sequence

from imagegen_api.adapters.image.base import AbstractImageGenerator, InsufficientPromptError
from imagegen_api.core.errors import GenerationAppError, ValidationAppError

logger = logging.getLogger(__name__)

ARTISTIC_STYLES: tuple[str, ...] = (
    "Anime highly exaggerated",
    "Studio Ghibli",
    "Hi-res Minecraft",
    "Lego art",
    "3D voxel art",
    "Watercolor",
    "Marionette",
    "Rubber hose animation",
    "Pixar",
    "ASCII",
    "Black and white",
    "Oil painting",
    "Van Gogh",
    "32-bit isometric",
    "Art nouveau",
    "Diagramatic drawing",
    "Crayon drawing",
    "SynthWave",
    "Pop-art cartoon",
    "Stained glass window",
    "Charley Harper",
    "Vintage polaroid",
    "1990s manga",
    "1990s point and click 16-bit adventure game",
)


@dataclass(frozen=True)
class GeneratedImage:
    prompt: str
    image_url: str
    optimized: bool


class ImageGenerationService:
    """Service turning user prompts into generated images."""

    def __init__(
        self,
        generator: AbstractImageGenerator,
        *,
        styles: Sequence[str] = ARTISTIC_STYLES,
        choose: Callable[[Sequence[str]], str] = random.choice,
    ) -> None:
        self.generator = generator
        self.styles = styles
        self._choose = choose

    async def generate(
        self,
        raw_prompt: str,
        source: Literal["custom", "suggestion"] = "custom",
    ) -> GeneratedImage:
        """Generate one image for the prompt.

        Custom prompts are optimized first; suggestions were produced by the
        model already and are used as-is.

        Raises:
            ValidationAppError: If the prompt is blank or too vague.
            GenerationAppError: If the provider fails.
        """
        prompt = raw_prompt.strip()
        if not prompt:
            raise ValidationAppError(code="empty_prompt", message="Prompt must not be empty.")

        optimized = source == "custom"
        try:
            if optimized:
                prompt = await self.generator.optimize_prompt(prompt)
                logger.info("generation.prompt_optimized")
            image_url = await self.generator.generate_image(prompt)
        except InsufficientPromptError as exc:
            raise ValidationAppError(
                code="insufficient_prompt_detail",
                message="Your prompt is too vague. Please provide more detail.",
            ) from exc
        except RuntimeError as exc:
            logger.error(
                "generation.failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            raise GenerationAppError(
                code="image_generation_failed",
                message="An internal server error occurred.",
            ) from exc

        logger.info("generation.completed", extra={"optimized": optimized})
        return GeneratedImage(prompt=prompt, image_url=image_url, optimized=optimized)

    async def suggest(self) -> str:
        """Produce a prompt suggestion in a randomly selected artistic style.

        Raises:
            GenerationAppError: If the provider fails.
        """
        style = self._choose(self.styles)
        logger.info("suggestion.style_selected", extra={"style": style})

        try:
            return await self.generator.suggest_prompt(style)
        except RuntimeError as exc:
            logger.error(
                "suggestion.failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            raise GenerationAppError(
                code="suggestion_failed",
                message="Failed to generate a prompt suggestion at this time.",
            ) from exc

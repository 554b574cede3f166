from typing import Literal

from pydantic import BaseModel, Field


class CreateImageRequest(BaseModel):
    """Request body for image generation."""

    raw_prompt: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Prompt typed by the user or taken from a suggestion",
    )
    source: Literal["custom", "suggestion"] = Field(
        "custom",
        description="custom prompts are optimized first; suggestions are used as-is",
    )


class CreateImageResponse(BaseModel):
    """Result of a successful generation."""

    prompt: str = Field(..., description="Prompt actually sent to the image model")
    image_url: str = Field(..., description="Temporary URL of the generated image")
    optimized: bool = Field(..., description="Whether the prompt was rewritten")


class SuggestionResponse(BaseModel):
    suggestion: str = Field(..., description="Ready-to-use image prompt")

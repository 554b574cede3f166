from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends

from imagegen_api.adapters.image.factory import create_image_generator
from imagegen_api.adapters.rate_limit.usage_quota import UsageQuotaTracker
from imagegen_api.core.rate_limit import (
    enforce_generation_limits,
    enforce_rate_limit,
    get_usage_tracker,
    record_usage,
)
from imagegen_api.schemas.images import (
    CreateImageRequest,
    CreateImageResponse,
    SuggestionResponse,
)
from imagegen_api.services.generation_service import ImageGenerationService

router = APIRouter(tags=["Images"])

_generation_service: ImageGenerationService | None = None


def get_generation_service() -> ImageGenerationService:
    """Return the process-wide generation service, built on first use."""
    global _generation_service

    if _generation_service is None:
        _generation_service = ImageGenerationService(create_image_generator())
    return _generation_service


@router.post("/images", response_model=CreateImageResponse)
async def create_image(
    body: CreateImageRequest,
    background_tasks: BackgroundTasks,
    identifier: Annotated[str, Depends(enforce_generation_limits)],
    tracker: Annotated[UsageQuotaTracker, Depends(get_usage_tracker)],
    service: Annotated[ImageGenerationService, Depends(get_generation_service)],
) -> CreateImageResponse:
    """Generate an image from a prompt.

    Throttled per rolling window and metered against the daily budget. The
    usage counter advances only after the image was generated; failures
    (including vague prompts) are never counted.

    Raises:
        ThrottledAppError / QuotaExhaustedAppError: 429.
        StoreUnavailableAppError: 500 when throttling cannot be verified.
        ValidationAppError: 400 for empty or too vague prompts.
        GenerationAppError: 500 when the provider fails.
    """
    image = await service.generate(body.raw_prompt, body.source)

    background_tasks.add_task(record_usage, identifier, tracker)

    return CreateImageResponse(
        prompt=image.prompt,
        image_url=image.image_url,
        optimized=image.optimized,
    )


@router.get(
    "/suggestions",
    response_model=SuggestionResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def generate_suggestion(
    service: Annotated[ImageGenerationService, Depends(get_generation_service)],
) -> SuggestionResponse:
    """Suggest a creative prompt. Throttled, but not metered."""
    suggestion = await service.suggest()
    return SuggestionResponse(suggestion=suggestion)

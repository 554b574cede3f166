"""OpenAI image generation adapter."""

from typing import Any

from openai import AsyncOpenAI

from imagegen_api.adapters.image.base import AbstractImageGenerator, InsufficientPromptError

INSUFFICIENT_DETAIL_KEY = "insufficient_detail"
MAX_COMPLETION_TOKENS = 50

PROMPT_OPTIMIZER_INSTRUCTIONS = f"""
You are an expert image prompt optimizer. Turn the user's prompt into a
visually rich description for an image model in under {MAX_COMPLETION_TOKENS} tokens.

- Add specific subject details, colors, lighting, composition and style.
- Add quality qualifiers such as "detailed", "high resolution", "professional".
- Preserve the user's intent.

If the prompt is too vague to optimize meaningfully (e.g. "cat", "car"),
respond with the exact string `{INSUFFICIENT_DETAIL_KEY}`.

Return only the optimized prompt.
""".strip()

SUGGESTION_INSTRUCTIONS = """
You are an AI art director. Create ONE visually striking image prompt that
MUST use this artistic style: "{style}". Pick a surprising subject, include
lighting, colors, composition and mood, stay under {max_tokens} tokens, and
return ONLY the raw prompt text with no labels or quotes.
""".strip()


def capitalize_first_char(text: str | None) -> str:
    """Uppercase the first character, leaving sentinel values untouched."""
    if not text:
        return ""
    if text == INSUFFICIENT_DETAIL_KEY:
        return text
    return text[0].upper() + text[1:]


class OpenAIImageGenerator(AbstractImageGenerator):
    """Generator using OpenAI chat completions for prompts and DALL-E for images.

    Uses the official OpenAI Python SDK with async support.
    """

    def __init__(
        self,
        api_key: str,
        *,
        prompt_model: str = "gpt-4.1-nano",
        image_model: str = "dall-e-3",
        image_size: str = "1024x1024",
        base_url: str | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: OpenAI API key for authentication.
            prompt_model: Chat model for prompt optimization and suggestions.
            image_model: Image model name (e.g., "dall-e-3").
            image_size: Requested image size.
            base_url: Optional custom base URL for OpenAI API.
            timeout_seconds: Timeout for requests in seconds.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.prompt_model = prompt_model
        self.image_model = image_model
        self.image_size = image_size

    async def _complete(self, system_prompt: str, user_prompt: str | None, *, temperature: float) -> str:
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        if user_prompt is not None:
            messages.append({"role": "user", "content": user_prompt})

        try:
            response = await self.client.chat.completions.create(
                model=self.prompt_model,
                messages=messages,
                max_completion_tokens=MAX_COMPLETION_TOKENS,
                temperature=temperature,
            )
        except Exception as exc:
            raise RuntimeError(f"OpenAI API error: {str(exc)}") from exc

        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()

    async def optimize_prompt(self, raw_prompt: str) -> str:
        optimized = capitalize_first_char(
            await self._complete(PROMPT_OPTIMIZER_INSTRUCTIONS, raw_prompt, temperature=0.7)
        )

        if optimized == INSUFFICIENT_DETAIL_KEY:
            raise InsufficientPromptError(raw_prompt)
        if not optimized:
            raise RuntimeError("LLM returned empty response")
        return optimized

    async def generate_image(self, prompt: str) -> str:
        try:
            response = await self.client.images.generate(
                model=self.image_model,
                prompt=prompt,
                n=1,
                size=self.image_size,
            )
        except Exception as exc:
            raise RuntimeError(f"OpenAI API error: {str(exc)}") from exc

        image_url = response.data[0].url if response.data else None
        if not image_url:
            raise RuntimeError("Image URL not returned from OpenAI")
        return image_url

    async def suggest_prompt(self, style: str) -> str:
        system_prompt = SUGGESTION_INSTRUCTIONS.format(style=style, max_tokens=MAX_COMPLETION_TOKENS)
        suggestion = await self._complete(system_prompt, None, temperature=0.9)

        if not suggestion:
            raise RuntimeError("OpenAI returned an empty suggestion")
        return capitalize_first_char(suggestion)

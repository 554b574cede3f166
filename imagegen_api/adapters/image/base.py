from abc import ABC, abstractmethod


class InsufficientPromptError(Exception):
	"""Raised when a prompt is too vague to be turned into an image."""


class AbstractImageGenerator(ABC):
	"""Interface for providers that turn text prompts into images."""

	@abstractmethod
	async def optimize_prompt(self, raw_prompt: str) -> str:
		"""Rewrite a user prompt into a more detailed, image-model friendly one.

		Args:
			raw_prompt: Prompt as typed by the user.

		Returns:
			str: Optimized prompt.

		Raises:
			InsufficientPromptError: If the prompt lacks enough detail.
			RuntimeError: If the provider call fails.
		"""
		...

	@abstractmethod
	async def generate_image(self, prompt: str) -> str:
		"""Generate one image and return its (temporary) URL.

		Raises:
			RuntimeError: If the provider call fails or returns no image.
		"""
		...

	@abstractmethod
	async def suggest_prompt(self, style: str) -> str:
		"""Produce a creative prompt suggestion in the given artistic style.

		Raises:
			RuntimeError: If the provider call fails or returns nothing.
		"""
		...

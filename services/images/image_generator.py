"""Text-to-image generation using the OpenAI Images API."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from utils.errors import ImageServiceError
from utils.media_validation import to_data_url

LOGGER = logging.getLogger(__name__)
DEFAULT_MODEL = "dall-e-3"
DEFAULT_SIZE = "1024x1024"


@dataclass
class GeneratedImage:
    """Base64 image returned by the image service."""

    b64: str
    model: str

    @property
    def data_url(self) -> str:
        return to_data_url(self.b64)


def describe_image_error(exc: Exception) -> str:
    """Map an image API error to a reason that is safe to show to users."""
    code = getattr(exc, "code", None)
    error_type = getattr(exc, "type", None)
    text = str(exc)
    if code == "rate_limit_exceeded" or isinstance(exc, openai.RateLimitError):
        return "Too many requests. Please wait a moment and try again."
    if "content_policy_violation" in text or code == "content_policy_violation":
        return "Image content not suitable for editing. Please use a different photo."
    if error_type == "image_generation_user_error":
        return "Image format or content not suitable for editing. Please try with a different, clearer photo."
    if code == "invalid_request_error" or error_type == "invalid_request_error":
        return "Invalid image format. Please use a clear photo with a person facing the camera."
    return "The image AI model is currently unavailable. Please try again later."


def extract_b64(response: Any) -> Optional[str]:
    """Return the first base64 image in an Images API response, if any."""
    data = getattr(response, "data", None)
    if not data:
        return None
    return getattr(data[0], "b64_json", None)


class ImageGenerationService:
    """Generate images from a text prompt."""

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL, size: str = DEFAULT_SIZE) -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.size = size

    async def generate(self, prompt: str) -> GeneratedImage:
        """Generate one image for `prompt`.

        Raises:
            ValueError: If the prompt is empty.
            ImageServiceError: If the API call fails or returns no image data.
        """
        if not prompt or not prompt.strip():
            raise ValueError("A prompt is required to generate an image.")

        try:
            response = await self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=self.size,
                quality="standard",
                response_format="b64_json",
            )
        except openai.APIError as exc:
            LOGGER.error("Image generation error: %s", exc)
            raise ImageServiceError(describe_image_error(exc), detail=str(exc)) from exc

        b64 = extract_b64(response)
        if not b64:
            LOGGER.error("No image data in generation response")
            raise ImageServiceError("No image data in response")
        return GeneratedImage(b64=b64, model=self.model)

"""Career visualization: age the student's uploaded photo into a future career self.

The source photo is the most recent upload in the caller's thread, falling
back to the most recent upload of any thread. Without any upload the
portrait is generated from the prompt alone. Results are written to the
uploads directory so they stay reachable under `/uploads`.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import openai
from openai import AsyncOpenAI

from models.upload_record import KIND_CAREER, UploadRecord
from services.assistant.prompts import career_description, career_image_prompt
from services.image_store import ImageStore
from services.images.image_generator import ImageGenerationService, describe_image_error, extract_b64
from services.images.image_normalizer import ImageNormalizer
from utils.errors import ImageServiceError
from utils.media_validation import to_data_url

LOGGER = logging.getLogger(__name__)
DEFAULT_EDIT_MODEL = "gpt-image-1"


@dataclass
class CareerVisualization:
    """A generated career image and where it can be viewed."""

    image_b64: str
    server_url: str
    description: str
    model: str
    used_source_image: bool
    source_upload_id: Optional[int] = None

    @property
    def image_url(self) -> str:
        return to_data_url(self.image_b64)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "careerImageUrl": self.image_url,
            "careerImageServerUrl": self.server_url,
            "description": self.description,
            "usedSourceImage": self.used_source_image,
            "model": self.model,
        }


class CareerVisualizationService:
    """Produce a future-self career portrait for a conversation thread."""

    def __init__(
        self,
        client: AsyncOpenAI,
        image_store: ImageStore,
        generator: ImageGenerationService,
        *,
        edit_model: str = DEFAULT_EDIT_MODEL,
        url_for: Optional[Callable[[str], str]] = None,
        normalizer: Optional[ImageNormalizer] = None,
    ) -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.image_store = image_store
        self.generator = generator
        self.edit_model = edit_model
        self.url_for = url_for or (lambda filename: f"/uploads/{filename}")
        self.normalizer = normalizer or ImageNormalizer()

    async def visualize(
        self,
        career_field: str,
        specific_role: Optional[str] = None,
        thread_id: Optional[str] = None,
    ) -> CareerVisualization:
        """Create the career image for `career_field` (and optional role).

        Args:
            career_field: Career field chosen by the student.
            specific_role: Optional job title within the field.
            thread_id: Thread whose latest upload should be used as the source photo.

        Returns:
            The stored `CareerVisualization`.

        Raises:
            ImageServiceError: If the source photo is unusable or the image API fails.
        """
        prompt = career_image_prompt(career_field, specific_role)
        source = await self.image_store.find_source_image(thread_id)

        if source is None:
            LOGGER.info("No uploaded photo found for thread %s; generating without a source image", thread_id)
            generated = await self.generator.generate(prompt)
            image_b64, model = generated.b64, generated.model
        else:
            if source.thread_id != thread_id:
                LOGGER.warning(
                    "Using upload %s from thread %s for thread %s (no thread-scoped upload)",
                    source.id,
                    source.thread_id,
                    thread_id,
                )
            image_b64 = await self._edit(await self._load_source_png(source), prompt)
            model = self.edit_model

        stored = await self.image_store.save(
            base64.b64decode(image_b64), "image/png", kind=KIND_CAREER, thread_id=thread_id, prefix="aged"
        )
        LOGGER.info("Career image saved: %s", stored.stored_path)
        return CareerVisualization(
            image_b64=image_b64,
            server_url=self.url_for(stored.filename),
            description=career_description(career_field, specific_role),
            model=model,
            used_source_image=source is not None,
            source_upload_id=source.id if source is not None else None,
        )

    async def _load_source_png(self, source: UploadRecord) -> bytes:
        try:
            raw = await self.image_store.read(source)
            # Pillow work is CPU-bound -> run in thread
            return await asyncio.to_thread(self.normalizer.to_png, raw)
        except (OSError, ValueError) as exc:
            LOGGER.error("Source image %s could not be prepared: %s", source.stored_path, exc)
            raise ImageServiceError(
                "Invalid image format. Please use a clear photo with a person facing the camera.",
                detail=str(exc),
            ) from exc

    async def _edit(self, source_png: bytes, prompt: str) -> str:
        LOGGER.info("Running OpenAI image edit with %s", self.edit_model)
        try:
            response = await self.client.images.edit(
                model=self.edit_model,
                image=("image.png", source_png, "image/png"),
                prompt=prompt,
            )
        except openai.APIError as exc:
            LOGGER.error("Error with OpenAI image editing: %s", exc)
            raise ImageServiceError(describe_image_error(exc), detail=str(exc)) from exc

        image_b64 = extract_b64(response)
        if not image_b64:
            LOGGER.error("No base64 image data returned from OpenAI API")
            raise ImageServiceError("No base64 image data returned from OpenAI API")
        return image_b64

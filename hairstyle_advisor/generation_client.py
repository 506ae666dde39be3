"""
Hairstyle rendering client.

Asks the Gemini image model to re-cut the hair in the user's photo and pulls
the resulting image (and optional caption) out of the mixed-content response.
"""

import asyncio
import base64
import logging
from typing import Iterable, Mapping, Optional

import google.generativeai as genai

from .config import settings
from .errors import BlockedRequestError, NoImageProducedError
from .models import CutPreference, EncodedImage, GeneratedHairstyle
from .prompts import DEFAULT_CAPTION, build_generation_prompt

logger = logging.getLogger(__name__)


def _block_reason(response) -> Optional[str]:
    feedback = getattr(response, "prompt_feedback", None)
    reason = getattr(feedback, "block_reason", None) if feedback else None
    if not reason:
        return None
    return getattr(reason, "name", None) or str(reason)


def _response_parts(response) -> Iterable:
    """Yield content parts from every candidate, or from response.parts when there are none"""
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        for candidate in candidates:
            content = getattr(candidate, "content", None)
            if content and getattr(content, "parts", None):
                yield from content.parts
        return

    try:
        parts = getattr(response, "parts", None)
    except ValueError:
        # the SDK accessor raises unless there is exactly one candidate
        parts = None
    if parts:
        yield from parts


def extract_generated_image(response, request_id: str = "") -> GeneratedHairstyle:
    """
    Find the first inline image and first text part in a Gemini response.

    Raises:
        NoImageProducedError: no part carries image data
    """
    logger.info(f"EXTRACT-{request_id}: Extracting image data")

    image = None
    caption = None
    for i, part in enumerate(_response_parts(response)):
        inline_data = getattr(part, "inline_data", None)
        data = getattr(inline_data, "data", None) if inline_data else None
        if data and image is None:
            if isinstance(data, bytes):
                payload = base64.b64encode(data).decode("utf-8")
            else:
                payload = str(data)
            mime_type = getattr(inline_data, "mime_type", None) or "image/png"
            image = EncodedImage(payload=payload, content_type=mime_type)
            logger.info(f"EXTRACT-{request_id}: Image found in part {i} ({mime_type})")
            continue

        text = getattr(part, "text", None)
        if text and caption is None:
            caption = text

    if image is None:
        logger.warning(f"EXTRACT-{request_id}: No valid image data found")
        raise NoImageProducedError()

    return GeneratedHairstyle(image=image, caption=caption or DEFAULT_CAPTION)


class GenerationClient:
    """Renders one suggested hairstyle onto the user's photo."""

    def __init__(self, model=None, model_name: str = None,
                 severity_definitions: Optional[Mapping[CutPreference, str]] = None,
                 temperature: float = None):
        self.model_name = model_name or settings.GENERATION_MODEL
        self.severity_definitions = severity_definitions
        self.temperature = settings.GENERATION_TEMPERATURE if temperature is None else temperature
        self._model = model

    @property
    def model(self):
        if self._model is None:
            self._model = genai.GenerativeModel(self.model_name)
            logger.info(f"GENERATE: Model ready: {self.model_name}")
        return self._model

    async def generate(self, image: EncodedImage, hairstyle_name: str,
                       original_hair_length: str, preference: CutPreference,
                       request_id: str = "") -> GeneratedHairstyle:
        logger.info(f"GENERATE-{request_id}: '{hairstyle_name}' at '{preference.value}' with {self.model_name}")

        prompt = build_generation_prompt(
            hairstyle_name, original_hair_length, preference,
            self.severity_definitions, request_id
        )
        content = [image.to_inline_part(), prompt]
        generation_config = {
            "temperature": self.temperature,
            "response_modalities": ["IMAGE", "TEXT"],
        }

        try:
            response = await asyncio.to_thread(
                self.model.generate_content, content, generation_config=generation_config
            )
        except Exception as e:
            logger.error(f"GENERATE-{request_id}: '{hairstyle_name}' failed: {e}")
            raise

        reason = _block_reason(response)
        if reason:
            logger.error(f"GENERATE-{request_id}: Request was blocked: {reason}")
            raise BlockedRequestError(reason)

        result = extract_generated_image(response, request_id)
        logger.info(f"GENERATE-{request_id}: ✓ SUCCESS for '{hairstyle_name}'")
        return result

"""
Face-shape analysis client.

Sends one selfie to the Gemini text model with a fixed JSON response schema
and validates the structure of what comes back.
"""

import asyncio
import json
import logging
from typing import Optional

import google.generativeai as genai

from .config import settings
from .errors import AnalysisError, AnalysisFailedError, EmptyResponseError, MalformedResponseError
from .models import EncodedImage, FaceAnalysis
from .prompts import ANALYSIS_INSTRUCTION, ANALYSIS_RESPONSE_SCHEMA

logger = logging.getLogger(__name__)


def _response_text(response) -> Optional[str]:
    """
    Read response.text, or None when the model answered without any parts.

    The SDK accessor raises instead of returning "" for an empty candidate.
    Blocked prompts still go through .text so the SDK error surfaces.
    """
    feedback = getattr(response, "prompt_feedback", None)
    blocked = getattr(feedback, "block_reason", None) if feedback else None
    if not blocked:
        candidates = getattr(response, "candidates", None) or []
        content = getattr(candidates[0], "content", None) if candidates else None
        if not content or not getattr(content, "parts", None):
            return None
    return response.text


def parse_analysis_response(raw: Optional[str]) -> FaceAnalysis:
    """
    Validate the raw JSON text returned by the analysis model.

    Only structure is checked: the category values are taken as-is.

    Raises:
        EmptyResponseError: raw is None, blank or the literal null
        MalformedResponseError: decoded value lacks faceShape or hairstyles
        json.JSONDecodeError: raw is not JSON at all
    """
    if raw is None or not raw.strip() or raw.strip().lower() == "null":
        raise EmptyResponseError()

    result = json.loads(raw)

    if not isinstance(result, dict) or not result.get("faceShape") or not result.get("hairstyles"):
        logger.error(f"ANALYZE: Invalid JSON structure received from AI: {result!r}")
        raise MalformedResponseError()

    hairstyles = result["hairstyles"]
    if not isinstance(hairstyles, list) or not all(
        isinstance(item, dict) and isinstance(item.get("name"), str) and item["name"]
        for item in hairstyles
    ):
        logger.error(f"ANALYZE: Invalid hairstyles received from AI: {hairstyles!r}")
        raise MalformedResponseError()

    # outcomes are keyed by name, so keep only the first of any duplicates
    unique = {}
    for item in hairstyles:
        unique.setdefault(item["name"], item)
    if len(unique) < len(hairstyles):
        logger.warning(f"ANALYZE: Dropped {len(hairstyles) - len(unique)} duplicate hairstyle name(s)")

    return FaceAnalysis.from_payload(dict(result, hairstyles=list(unique.values())))


class AnalysisClient:
    """Classifies face shape and suggests hairstyles for one image."""

    def __init__(self, model=None, model_name: str = None):
        """
        Args:
            model: object with a google-generativeai style generate_content();
                built lazily from model_name when omitted
            model_name: Gemini model used for analysis
        """
        self.model_name = model_name or settings.ANALYSIS_MODEL
        self._model = model

    @property
    def model(self):
        if self._model is None:
            self._model = genai.GenerativeModel(self.model_name)
            logger.info(f"ANALYZE: Model ready: {self.model_name}")
        return self._model

    async def analyze(self, image: EncodedImage, request_id: str = "") -> FaceAnalysis:
        logger.info(f"ANALYZE-{request_id}: Sending image to {self.model_name}")

        content = [image.to_inline_part(), ANALYSIS_INSTRUCTION]
        generation_config = {
            "response_mime_type": "application/json",
            "response_schema": ANALYSIS_RESPONSE_SCHEMA,
        }

        try:
            response = await asyncio.to_thread(
                self.model.generate_content, content, generation_config=generation_config
            )
            analysis = parse_analysis_response(_response_text(response))
        except AnalysisError as e:
            logger.error(f"ANALYZE-{request_id}: {e}")
            raise
        except Exception as e:
            logger.error(f"ANALYZE-{request_id}: Error analyzing face shape: {e}")
            raise AnalysisFailedError() from e

        logger.info(
            f"ANALYZE-{request_id}: ✓ {analysis.face_shape} face, "
            f"{analysis.original_hair_length or 'unknown'} hair, "
            f"{len(analysis.hairstyles)} suggestions"
        )
        return analysis

"""
Hairstyle Advisor: face-shape analysis and hairstyle previews with Gemini.

Modules:
- encoder: image bytes <-> base64 payload
- analysis_client: face shape + hairstyle suggestions
- generation_client: photorealistic hairstyle renders
- orchestrator: per-user workflow and concurrent render fan-out
- main: FastAPI app
"""

from .analysis_client import AnalysisClient, parse_analysis_response
from .encoder import decode_image, encode_data_url, encode_image
from .generation_client import GenerationClient
from .models import (CutPreference, EncodedImage, FaceAnalysis, GeneratedHairstyle,
                     GenerationOutcome, HairstyleSuggestion, WorkflowState)
from .orchestrator import HairstyleSession

__all__ = [
    "AnalysisClient",
    "CutPreference",
    "EncodedImage",
    "FaceAnalysis",
    "GeneratedHairstyle",
    "GenerationClient",
    "GenerationOutcome",
    "HairstyleSession",
    "HairstyleSuggestion",
    "WorkflowState",
    "decode_image",
    "encode_data_url",
    "encode_image",
    "parse_analysis_response",
]

"""Prompt text and response schema for the analysis and generation models."""

import logging
from typing import Dict, Mapping, Optional

from .models import FACE_SHAPES, CutPreference

logger = logging.getLogger(__name__)

# ============= ANALYSIS =============

ANALYSIS_INSTRUCTION = (
    f"Analyze the face shape in this image (for example {', '.join(FACE_SHAPES[:-1])}). "
    'Also determine the current hair length (for example "Short", "Shoulder-length", "Long"). '
    "Based on the identified face shape, recommend 3 different, suitable hairstyles, "
    "each with a short one-sentence description of why it suits this face. "
    "Respond strictly in the specified JSON format."
)

ANALYSIS_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "faceShape": {
            "type": "string",
            "description": "The identified face shape, e.g. Oval, Round, Square, Heart or Diamond.",
        },
        "originalHairLength": {
            "type": "string",
            "description": "The hair length identified in the image, e.g. Short, Shoulder-length or Long.",
        },
        "hairstyles": {
            "type": "array",
            "description": "An array of hairstyle recommendations.",
            "items": {
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Name of the hairstyle.",
                    },
                    "description": {
                        "type": "string",
                        "description": "One-sentence description of why this hairstyle suits the face.",
                    },
                },
                "required": ["name", "description"],
            },
        },
    },
    "required": ["faceShape", "originalHairLength", "hairstyles"],
}

# ============= GENERATION =============

DEFAULT_CAPTION = "Here is your new look!"

CUT_SEVERITY_DEFINITIONS: Dict[CutPreference, str] = {
    CutPreference.MEDIUM: (
        "A visible medium cut. Reduce the hair length significantly, but do not turn it "
        "into a very short cut. The change must be clear and noticeable."
    ),
    CutPreference.SHORT: (
        "A major transformation into a short cut. Change the hairstyle into a much shorter "
        "version of the original (for example from long to a bob, or from shoulder-length to a pixie)."
    ),
    CutPreference.VERY_SHORT: (
        "An extreme transformation into a very short, bold cut. This is the shortest option. "
        "Think pixie cut, undercut or a very short bob, regardless of the original length. "
        "The change must be dramatic."
    ),
}

_missing = set(CutPreference) - set(CUT_SEVERITY_DEFINITIONS)
if _missing:
    raise RuntimeError(f"No cut severity definition for: {sorted(p.value for p in _missing)}")


def resolve_severity_definitions(prompts_config: Optional[Mapping] = None) -> Dict[CutPreference, str]:
    """
    Merge `cut_severity_definitions` from prompt.json over the defaults.

    Unknown keys are dropped; preferences without an override keep the
    default text, so the result always covers every CutPreference.
    """
    definitions = dict(CUT_SEVERITY_DEFINITIONS)
    if not isinstance(prompts_config, Mapping):
        return definitions

    overrides = prompts_config.get("cut_severity_definitions") or {}
    if not isinstance(overrides, Mapping):
        logger.warning("PROMPTS: cut_severity_definitions is not an object - ignoring")
        return definitions

    for key, text in overrides.items():
        try:
            preference = CutPreference.parse(key)
        except ValueError:
            logger.warning(f"PROMPTS: Ignoring definition for unknown preference {key!r}")
            continue
        if isinstance(text, str) and text.strip():
            definitions[preference] = text.strip()
    return definitions


def build_generation_prompt(hairstyle_name: str, original_hair_length: str,
                            preference: CutPreference,
                            definitions: Optional[Mapping[CutPreference, str]] = None,
                            request_id: str = "") -> str:
    """Build the edit instruction for one hairstyle at one cut severity"""
    logger.info(f"PROMPT-{request_id}: Building prompt for '{hairstyle_name}' ({preference.value})")

    definitions = definitions or CUT_SEVERITY_DEFINITIONS
    severity = definitions[preference]
    current_length = original_hair_length or "unknown"

    prompt_parts = [
        "You are an expert photo editor with one specific task: modify the person's hair "
        "in the photo so it is shorter, matching the requested cut level.",
        "",
        "**PRIMARY INSTRUCTION (NON-NEGOTIABLE):**",
        "You MUST change the hair in the photo so it visually matches this cut level:",
        f"- **Cut level:** '{preference.value}'",
        f"- **Definition:** '{severity}'",
        f"- **Current hair length:** '{current_length}'",
        "This is your main goal. The hair length in the final result MUST match this definition.",
        "",
        "**STYLE INSPIRATION (SECONDARY):**",
        "Once the length is right, use the following hairstyle name as INSPIRATION for the "
        "texture and shape of the cut:",
        f"- **Style inspiration:** '{hairstyle_name}'",
        "",
        "**LOGIC EXAMPLES & STRICT RULES:**",
        "- IF the cut level is 'short' AND the inspiration is 'Long Beach Waves', the result MUST be "
        "a SHORT hairstyle (like a bob or pixie) with a wavy texture. DO NOT create long hair.",
        "- IF the cut level is 'medium' AND the inspiration is 'Pixie Cut' and the original hair is "
        "already short, cut it a little shorter still according to the 'medium' definition. "
        "DO NOT make it longer.",
        "- Always prioritize the cut level over the style inspiration when they conflict.",
        "",
        "**PROHIBITIONS:**",
        "- DO NOT change anything except the hair (face, expression, clothing, background and "
        "lighting must stay identical).",
        "- DO NOT ignore the cut level. That is a task failure.",
        "- DO NOT produce a result that looks AI-generated; it must be photorealistic.",
        "",
        "Apply this change to the provided image now.",
    ]

    prompt = "\n".join(prompt_parts)
    logger.debug(f"PROMPT-{request_id}: FULL PROMPT BEING USED:\n{prompt}")
    return prompt

"""Domain types shared by the clients and the workflow."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

FACE_SHAPES = ("Oval", "Round", "Square", "Heart", "Diamond", "Unknown")


class WorkflowState(str, Enum):
    INITIAL = "initial"
    IMAGE_UPLOADED = "image_uploaded"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


class CutPreference(str, Enum):
    """How much hair the generated image should take off"""

    MEDIUM = "medium"
    SHORT = "short"
    VERY_SHORT = "very short"

    @classmethod
    def parse(cls, value) -> "CutPreference":
        """Accept a member, its value or its name (case-insensitive)"""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown cut preference: {value!r}")


@dataclass(frozen=True)
class EncodedImage:
    payload: str  # base64 text
    content_type: str

    def to_data_url(self) -> str:
        return f"data:{self.content_type};base64,{self.payload}"

    def to_inline_part(self) -> dict:
        """Content part in the shape google-generativeai accepts"""
        return {
            "inline_data": {
                "mime_type": self.content_type,
                "data": self.payload,
            }
        }


@dataclass(frozen=True)
class HairstyleSuggestion:
    name: str
    description: str


@dataclass(frozen=True)
class FaceAnalysis:
    face_shape: str
    original_hair_length: str
    hairstyles: Tuple[HairstyleSuggestion, ...]

    @classmethod
    def from_payload(cls, payload: dict) -> "FaceAnalysis":
        """Build from the camelCase JSON the analysis model returns"""
        hairstyles = tuple(
            HairstyleSuggestion(
                name=item["name"],
                description=item.get("description") or "",
            )
            for item in payload["hairstyles"]
        )
        return cls(
            face_shape=payload["faceShape"],
            original_hair_length=payload.get("originalHairLength") or "",
            hairstyles=hairstyles,
        )

    def to_payload(self) -> dict:
        return {
            "faceShape": self.face_shape,
            "originalHairLength": self.original_hair_length,
            "hairstyles": [
                {"name": style.name, "description": style.description}
                for style in self.hairstyles
            ],
        }


@dataclass(frozen=True)
class GeneratedHairstyle:
    image: EncodedImage
    caption: str


@dataclass(frozen=True)
class GenerationOutcome:
    image: Optional[EncodedImage] = None
    caption: Optional[str] = None
    error_message: Optional[str] = None
    is_pending: bool = True

    @classmethod
    def pending(cls) -> "GenerationOutcome":
        return cls()

    @classmethod
    def succeeded(cls, result: GeneratedHairstyle) -> "GenerationOutcome":
        return cls(image=result.image, caption=result.caption, is_pending=False)

    @classmethod
    def failed(cls, message: str) -> "GenerationOutcome":
        return cls(error_message=message, is_pending=False)

    def to_payload(self) -> dict:
        return {
            "image_url": self.image.to_data_url() if self.image else None,
            "caption": self.caption,
            "error": self.error_message,
            "loading": self.is_pending,
        }

from typing import Dict, List, Optional

from pydantic import BaseModel


class HairstyleSuggestionSchema(BaseModel):
    name: str
    description: str


class FaceAnalysisSchema(BaseModel):
    faceShape: str
    originalHairLength: str
    hairstyles: List[HairstyleSuggestionSchema]


class GeneratedImageSchema(BaseModel):
    image_url: Optional[str] = None  # data URL
    caption: Optional[str] = None
    error: Optional[str] = None
    loading: bool


class SessionResponse(BaseModel):
    session_id: str
    state: str  # initial, image_uploaded, analyzing, analyzed, generating, complete, error
    error: Optional[str] = None
    image_url: Optional[str] = None
    analysis: Optional[FaceAnalysisSchema] = None
    preference: Optional[str] = None
    run_id: Optional[str] = None
    generated_images: Dict[str, GeneratedImageSchema] = {}


class PreferenceInfo(BaseModel):
    value: str
    definition: str

"""
Shared fixtures: real PNG bytes from Pillow and small stand-ins for the
google-generativeai model and response objects.
"""

import asyncio
import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hairstyle_advisor.errors import BlockedRequestError
from hairstyle_advisor.models import (EncodedImage, FaceAnalysis, GeneratedHairstyle,
                                      HairstyleSuggestion)


def make_png(color=(200, 120, 90), size=(8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def encoded_image(png_bytes):
    from hairstyle_advisor.encoder import encode_image
    return encode_image(png_bytes, "image/png")


@pytest.fixture
def sample_analysis():
    return FaceAnalysis(
        face_shape="Oval",
        original_hair_length="Long",
        hairstyles=(
            HairstyleSuggestion("Bob", "d1"),
            HairstyleSuggestion("Pixie", "d2"),
            HairstyleSuggestion("Layers", "d3"),
        ),
    )


# ============= FAKE SDK OBJECTS =============

class FakeInlineData:
    def __init__(self, data, mime_type="image/png"):
        self.data = data
        self.mime_type = mime_type


class FakePart:
    def __init__(self, inline_data=None, text=None):
        self.inline_data = inline_data
        self.text = text


class FakeContent:
    def __init__(self, parts):
        self.parts = parts


class FakeCandidate:
    def __init__(self, parts):
        self.content = FakeContent(parts)


class FakeBlockReason:
    def __init__(self, name):
        self.name = name

    def __bool__(self):
        return True


class FakeFeedback:
    def __init__(self, block_reason=None):
        self.block_reason = block_reason


class FakeResponse:
    def __init__(self, text=None, parts=None, block_reason=None, use_candidates=False):
        self.text = text
        if text is not None and parts is None:
            parts = [FakePart(text=text)]
        parts = parts or []
        self.parts = [] if use_candidates else parts
        self.candidates = [FakeCandidate(parts)] if parts else []
        self.prompt_feedback = FakeFeedback(FakeBlockReason(block_reason) if block_reason else None)


class FakeModel:
    """Records generate_content calls and returns (or raises) a canned result"""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def generate_content(self, content, generation_config=None):
        self.calls.append({"content": content, "generation_config": generation_config})
        if self.error is not None:
            raise self.error
        return self.response


# ============= FAKE CLIENTS FOR THE WORKFLOW =============

class FakeAnalysisClient:
    def __init__(self, analysis=None, error=None):
        self.analysis = analysis
        self.error = error
        self.calls = 0
        self.gate = None

    async def analyze(self, image, request_id=""):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.analysis


class FakeGenerationClient:
    """
    Returns a caption naming the hairstyle and preference.

    `failures` maps hairstyle name -> exception to raise; `gates` maps
    preference -> asyncio.Event that calls for that preference wait on.
    """

    def __init__(self, failures=None):
        self.failures = failures or {}
        self.gates = {}
        self.calls = []
        self.settled = 0

    async def generate(self, image, hairstyle_name, original_hair_length, preference, request_id=""):
        self.calls.append({
            "hairstyle_name": hairstyle_name,
            "original_hair_length": original_hair_length,
            "preference": preference,
            "request_id": request_id,
        })
        gate = self.gates.get(preference)
        try:
            if gate is not None:
                await gate.wait()
            else:
                await asyncio.sleep(0)
            if hairstyle_name in self.failures:
                raise self.failures[hairstyle_name]
            return GeneratedHairstyle(
                image=EncodedImage(payload="aW1n", content_type="image/png"),
                caption=f"{hairstyle_name} at {preference.value}",
            )
        finally:
            self.settled += 1


@pytest.fixture
def blocked_error():
    return BlockedRequestError("SAFETY")

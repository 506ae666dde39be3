"""
Workflow for one user: upload -> analyze -> fan out one render per suggested
hairstyle -> collect every outcome.

Each generation fan-out is tagged with a run id. Results are written only
while their run id is still the current one, so a reset or a new preference
makes late answers from the previous run harmless.
"""

import asyncio
import logging
import uuid
from typing import Dict, Optional

from .analysis_client import AnalysisClient
from .encoder import encode_image
from .errors import DecodeError, InvalidTransitionError
from .generation_client import GenerationClient
from .models import (CutPreference, EncodedImage, FaceAnalysis, GenerationOutcome,
                     WorkflowState)

logger = logging.getLogger(__name__)

DEFAULT_GENERATION_ERROR = "Failed to create the image."
DEFAULT_ANALYSIS_ERROR = "An unknown error occurred during analysis."

_ANALYZABLE_STATES = (
    WorkflowState.IMAGE_UPLOADED,
    WorkflowState.ANALYZED,
    WorkflowState.COMPLETE,
    WorkflowState.ERROR,
)
_GENERATABLE_STATES = (
    WorkflowState.ANALYZED,
    WorkflowState.GENERATING,
    WorkflowState.COMPLETE,
)


def generate_request_id() -> str:
    """Generate a unique request ID for tracking"""
    return str(uuid.uuid4())[:8]


class HairstyleSession:
    """State machine driving one user's analysis and generation runs."""

    def __init__(self, analysis_client: AnalysisClient = None,
                 generation_client: GenerationClient = None, session_id: str = None):
        self.session_id = session_id or generate_request_id()
        self.analysis_client = analysis_client or AnalysisClient()
        self.generation_client = generation_client or GenerationClient()

        # bumped on every reset; guards the analysis step against late answers
        self._epoch = 0
        self._tasks = set()
        self._clear()

    def _clear(self):
        self.state = WorkflowState.INITIAL
        self.image: Optional[EncodedImage] = None
        self.analysis: Optional[FaceAnalysis] = None
        self.preference: Optional[CutPreference] = None
        self.outcomes: Dict[str, GenerationOutcome] = {}
        self.error: Optional[str] = None
        self.run_id: Optional[str] = None

    def reset(self):
        """Drop image, analysis, preference and outcomes. In-flight calls are orphaned."""
        self._epoch += 1
        self._clear()
        logger.info(f"SESSION-{self.session_id}: Reset")

    # ============= UPLOAD =============

    def load_image(self, data: bytes, media_type: str = None) -> EncodedImage:
        self.reset()
        try:
            self.image = encode_image(data, media_type, context=self.session_id)
        except DecodeError as e:
            self.error = str(e)
            self.state = WorkflowState.ERROR
            logger.error(f"UPLOAD-{self.session_id}: {e}")
            raise

        self.state = WorkflowState.IMAGE_UPLOADED
        logger.info(f"UPLOAD-{self.session_id}: Image accepted ({self.image.content_type})")
        return self.image

    # ============= ANALYSIS =============

    async def analyze(self) -> Optional[FaceAnalysis]:
        """
        Run the face analysis for the current image.

        Failures are not raised: they move the session to ERROR with the
        message stored in `error`.
        """
        if self.image is None or self.state not in _ANALYZABLE_STATES:
            raise InvalidTransitionError(f"Cannot analyze from state {self.state.value}")

        epoch = self._epoch
        image = self.image
        self.state = WorkflowState.ANALYZING
        self.error = None
        self.preference = None
        self.outcomes = {}
        self.run_id = None

        try:
            analysis = await self.analysis_client.analyze(image, request_id=self.session_id)
        except Exception as e:
            if epoch != self._epoch:
                logger.info(f"ANALYZE-{self.session_id}: Ignoring failure from a discarded upload")
                return None
            self.error = str(e) or DEFAULT_ANALYSIS_ERROR
            self.state = WorkflowState.ERROR
            return None

        if epoch != self._epoch:
            logger.info(f"ANALYZE-{self.session_id}: Ignoring result from a discarded upload")
            return None

        self.analysis = analysis
        self.state = WorkflowState.ANALYZED
        return analysis

    # ============= GENERATION =============

    def _begin_run(self, preference) -> str:
        preference = CutPreference.parse(preference)
        if self.analysis is None or self.image is None or self.state not in _GENERATABLE_STATES:
            raise InvalidTransitionError(f"Cannot generate from state {self.state.value}")

        run_id = generate_request_id()
        self.run_id = run_id
        self.preference = preference
        self.outcomes = {
            style.name: GenerationOutcome.pending() for style in self.analysis.hairstyles
        }
        self.state = WorkflowState.GENERATING
        logger.info(
            f"GENERATE-{run_id}: Session {self.session_id} starting "
            f"{len(self.analysis.hairstyles)} renders at '{preference.value}'"
        )
        return run_id

    def _apply_outcome(self, run_id: str, hairstyle_name: str, outcome: GenerationOutcome) -> bool:
        if run_id != self.run_id:
            logger.info(f"GENERATE-{run_id}: Discarding stale result for '{hairstyle_name}'")
            return False
        self.outcomes[hairstyle_name] = outcome
        return True

    async def _generate_one(self, run_id: str, image: EncodedImage, hairstyle_name: str,
                            original_hair_length: str, preference: CutPreference):
        try:
            result = await self.generation_client.generate(
                image, hairstyle_name, original_hair_length, preference, request_id=run_id
            )
        except Exception as e:
            self._apply_outcome(run_id, hairstyle_name, GenerationOutcome.failed(str(e) or DEFAULT_GENERATION_ERROR))
            return
        self._apply_outcome(run_id, hairstyle_name, GenerationOutcome.succeeded(result))

    async def _run_generation(self, run_id: str, image: EncodedImage, analysis: FaceAnalysis,
                              preference: CutPreference):
        calls = [
            self._generate_one(run_id, image, style.name, analysis.original_hair_length, preference)
            for style in analysis.hairstyles
        ]
        await asyncio.gather(*calls, return_exceptions=True)

        if run_id != self.run_id:
            logger.info(f"GENERATE-{run_id}: Run superseded; leaving session state alone")
            return

        self.state = WorkflowState.COMPLETE
        failed = sum(1 for outcome in self.outcomes.values() if outcome.error_message)
        logger.info(f"GENERATE-{run_id}: Complete ({len(self.outcomes) - failed} ok, {failed} failed)")

    async def select_preference(self, preference) -> str:
        """Start a run for `preference` and wait until every render has settled"""
        run_id = self._begin_run(preference)
        await self._run_generation(run_id, self.image, self.analysis, self.preference)
        return run_id

    def start_generation(self, preference) -> str:
        """Start a run in the background and return its id right away"""
        run_id = self._begin_run(preference)
        task = asyncio.create_task(
            self._run_generation(run_id, self.image, self.analysis, self.preference)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return run_id

    # ============= PRESENTATION =============

    def snapshot(self) -> dict:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "error": self.error,
            "image_url": self.image.to_data_url() if self.image else None,
            "analysis": self.analysis.to_payload() if self.analysis else None,
            "preference": self.preference.value if self.preference else None,
            "run_id": self.run_id,
            "generated_images": {
                name: outcome.to_payload() for name, outcome in self.outcomes.items()
            },
        }

"""Hairstyle Advisor API: face-shape analysis and hairstyle previews with Gemini."""

import logging
import sys
from typing import List

import uvicorn
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .analysis_client import AnalysisClient
from .config import Settings, configure_gemini, load_prompts_config, settings, setup_logging
from .errors import ConfigurationError, DecodeError, InvalidTransitionError, SessionNotFoundError
from .generation_client import GenerationClient
from .models import CutPreference
from .orchestrator import HairstyleSession
from .prompts import resolve_severity_definitions
from .schemas import PreferenceInfo, SessionResponse
from .sessions import SessionStore

logger = logging.getLogger(__name__)


def build_session_store(config: Settings = None, definitions=None) -> SessionStore:
    """Configure Gemini and return a store whose sessions share one pair of clients"""
    config = config or settings
    configure_gemini(config)

    if definitions is None:
        definitions = resolve_severity_definitions(load_prompts_config(config.PROMPTS_PATH))
    analysis_client = AnalysisClient(model_name=config.ANALYSIS_MODEL)
    generation_client = GenerationClient(
        model_name=config.GENERATION_MODEL,
        severity_definitions=definitions,
        temperature=config.GENERATION_TEMPERATURE,
    )
    return SessionStore(
        lambda session_id: HairstyleSession(analysis_client, generation_client, session_id),
        ttl_seconds=config.SESSION_TTL_SECONDS,
    )


def create_app(config: Settings = None, store: SessionStore = None) -> FastAPI:
    """
    Build the FastAPI app.

    Raises:
        ConfigurationError: when no store is given and GEMINI_API_KEY is missing
    """
    config = config or settings
    definitions = resolve_severity_definitions(load_prompts_config(config.PROMPTS_PATH))
    if store is None:
        store = build_session_store(config, definitions)

    app = FastAPI(title="Hairstyle Advisor API")
    app.state.sessions = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_session(session_id: str) -> HairstyleSession:
        try:
            return store.get(session_id)
        except SessionNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/preferences", response_model=List[PreferenceInfo])
    async def list_preferences():
        return [
            {"value": preference.value, "definition": definitions[preference]}
            for preference in CutPreference
        ]

    @app.post("/sessions")
    async def create_session():
        session_id, session = store.create()
        return {"session_id": session_id, "state": session.state.value}

    @app.get("/sessions/{session_id}", response_model=SessionResponse)
    async def get_session_state(session_id: str):
        return get_session(session_id).snapshot()

    @app.delete("/sessions/{session_id}")
    async def delete_session(session_id: str):
        get_session(session_id)
        store.discard(session_id)
        return {"deleted": True}

    @app.post("/sessions/{session_id}/image", response_model=SessionResponse)
    async def upload_image(session_id: str, image: UploadFile = File(...)):
        """Store the selfie for this session; resets any previous results"""
        session = get_session(session_id)

        if not image.content_type or not image.content_type.startswith("image/"):
            raise HTTPException(status_code=400, detail="File must be an image")

        image_data = await image.read()
        logger.info(f"UPLOAD-{session_id}: Received {image.filename} ({len(image_data) / 1024:.1f} KB)")

        try:
            session.load_image(image_data, image.content_type)
        except DecodeError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return session.snapshot()

    @app.post("/sessions/{session_id}/analyze", response_model=SessionResponse)
    async def analyze(session_id: str):
        """Run face analysis; a failed analysis is reported in the returned state"""
        session = get_session(session_id)
        try:
            await session.analyze()
        except InvalidTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except Exception as e:
            logger.error(f"ANALYZE-{session_id}: ERROR: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Analysis failed: {str(e)}")
        return session.snapshot()

    @app.post("/sessions/{session_id}/generate", response_model=SessionResponse)
    async def generate(session_id: str, preference: str = Form(...)):
        """Start rendering every suggested hairstyle; poll the session for results"""
        session = get_session(session_id)
        try:
            cut_preference = CutPreference.parse(preference)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        try:
            session.start_generation(cut_preference)
        except InvalidTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except Exception as e:
            logger.error(f"GENERATE-{session_id}: ERROR: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Generation failed: {str(e)}")
        return session.snapshot()

    @app.post("/sessions/{session_id}/reset", response_model=SessionResponse)
    async def reset(session_id: str):
        session = get_session(session_id)
        session.reset()
        return session.snapshot()

    return app


if __name__ == "__main__":
    setup_logging()
    try:
        app = create_app()
    except ConfigurationError as e:
        logger.error(f"STARTUP: {e}")
        print(f"CRITICAL ERROR: {e}")
        print("Set GEMINI_API_KEY in the environment or in a .env file.")
        sys.exit(1)

    logger.info("STARTUP: Hairstyle Advisor API")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)

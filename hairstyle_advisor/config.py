"""
Configuration for the hairstyle advisor service.
Loads environment variables, sets up logging and configures the Gemini SDK.
"""

import json
import logging
import os
from typing import List

import google.generativeai as genai
from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Settings:
    """Application settings read from the environment."""

    # Gemini API Configuration
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    ANALYSIS_MODEL = os.getenv("ANALYSIS_MODEL", "gemini-2.5-flash")
    GENERATION_MODEL = os.getenv("GENERATION_MODEL", "gemini-2.5-flash-image-preview")
    GENERATION_TEMPERATURE = float(os.getenv("GENERATION_TEMPERATURE", "0.4"))

    # Server Configuration
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8000"))

    # Idle sessions are dropped after this many seconds (0 keeps them forever)
    SESSION_TTL_SECONDS = float(os.getenv("SESSION_TTL_SECONDS", "3600"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "hairstyle_advisor.log")

    # Optional prompt overrides
    PROMPTS_PATH = os.getenv("PROMPTS_PATH", "prompt.json")

    def validate(self) -> List[str]:
        """
        Check that required configuration is present.

        Returns:
            list: names of missing required settings (empty when valid)
        """
        required = [
            ("GEMINI_API_KEY", self.GEMINI_API_KEY),
        ]
        return [name for name, value in required if not value]


settings = Settings()


def setup_logging(level: str = None, log_file: str = None):
    """Configure root logging: console always, file when a path is set"""
    level = level or settings.LOG_LEVEL
    log_file = settings.LOG_FILE if log_file is None else log_file

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def configure_gemini(config: Settings = None):
    """
    Configure the Gemini SDK with the API key from the environment.

    Raises:
        ConfigurationError: if GEMINI_API_KEY is not set
    """
    config = config or settings
    missing = config.validate()
    if missing:
        logger.error(f"CONFIG: Missing required configuration: {', '.join(missing)}")
        raise ConfigurationError(f"Missing required environment variable: {', '.join(missing)}")

    try:
        genai.configure(api_key=config.GEMINI_API_KEY)
        logger.info("CONFIG: Gemini API configured successfully")
    except Exception as e:
        logger.error(f"CONFIG: Failed to configure Gemini API: {e}")
        raise


def load_prompts_config(path: str = None) -> dict:
    """Load prompt overrides from prompt.json, {} when absent or invalid"""
    path = path or settings.PROMPTS_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = json.load(f)
            logger.info(f"PROMPTS: Configuration loaded successfully from {path}")
            return config
    except FileNotFoundError:
        logger.warning(f"PROMPTS: {path} not found - using default prompts")
        return {}
    except json.JSONDecodeError as e:
        logger.error(f"PROMPTS: Invalid JSON in {path}: {e}")
        return {}

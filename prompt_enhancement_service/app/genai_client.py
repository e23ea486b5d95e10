# prompt_enhancement_service/app/genai_client.py
import logging
from google import genai
from .config import settings

logger = logging.getLogger(__name__)
_genai_client: genai.Client | None = None


class ConfigurationError(Exception):
    """Raised when the service is missing configuration needed to call Gemini."""

    pass


def is_api_key_configured() -> bool:
    return bool(settings.GEMINI_API_KEY and settings.GEMINI_API_KEY.strip())


def get_genai_client() -> genai.Client:
    global _genai_client
    if _genai_client is None:
        if not is_api_key_configured():
            raise ConfigurationError(
                "GEMINI_API_KEY is not set in the environment."
            )
        try:
            _genai_client = genai.Client(api_key=settings.GEMINI_API_KEY)
            logger.info("Gemini GenAI client initialized successfully.")
        except Exception as e:
            logger.error(
                f"Could not initialize Gemini GenAI client. Error: {e}",
                exc_info=True,
            )
            raise
    return _genai_client


def reset_genai_client() -> None:
    global _genai_client
    _genai_client = None

# prompt_enhancement_service/app/config.py
import os
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file at the earliest


class Settings:
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Gemini (Google AI Studio key, not Vertex AI)
    GEMINI_API_KEY: str | None = os.getenv("GEMINI_API_KEY")
    ENHANCER_GEMINI_MODEL_NAME: str = os.getenv(
        "ENHANCER_GEMINI_MODEL_NAME", "gemini-2.0-flash"
    )
    MODIFIER_GEMINI_MODEL_NAME: str = os.getenv(
        "MODIFIER_GEMINI_MODEL_NAME", "gemini-2.0-flash"
    )

    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    LLM_MAX_OUTPUT_TOKENS: int = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "2048"))
    # Name of a google.genai HarmBlockThreshold member
    LLM_SAFETY_THRESHOLD: str = os.getenv(
        "LLM_SAFETY_THRESHOLD", "BLOCK_MEDIUM_AND_ABOVE"
    )

    # Model call governance
    LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
    LLM_MAX_ATTEMPTS: int = int(os.getenv("LLM_MAX_ATTEMPTS", "2"))
    LLM_RETRY_BACKOFF_SECONDS: float = float(
        os.getenv("LLM_RETRY_BACKOFF_SECONDS", "1.0")
    )

    # Per-client fixed window rate limiting
    RATE_LIMIT_MAX_REQUESTS: int = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "5"))
    RATE_LIMIT_WINDOW_SECONDS: float = float(
        os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60")
    )
    # Expired windows are swept after this many checks
    RATE_LIMIT_PRUNE_INTERVAL: int = int(os.getenv("RATE_LIMIT_PRUNE_INTERVAL", "1000"))

    # Response parser heuristics for replies without section markers.
    # A bare reply is accepted as the enhanced prompt when shorter than
    # MULTIPLIER * len(original prompt) + ALLOWANCE.
    PARSER_FALLBACK_LENGTH_MULTIPLIER: float = float(
        os.getenv("PARSER_FALLBACK_LENGTH_MULTIPLIER", "2")
    )
    PARSER_FALLBACK_LENGTH_ALLOWANCE: int = int(
        os.getenv("PARSER_FALLBACK_LENGTH_ALLOWANCE", "400")
    )
    # Hard ceiling used by the last-chance check when the enhanced prompt is still missing
    PARSER_DIRECT_RESPONSE_MAX_LENGTH: int = int(
        os.getenv("PARSER_DIRECT_RESPONSE_MAX_LENGTH", "1000")
    )


# Instantiate settings to be imported by other modules
settings = Settings()

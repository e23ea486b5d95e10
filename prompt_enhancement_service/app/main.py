# prompt_enhancement_service/app/main.py
import logging
from typing import Any

from fastapi import FastAPI, Request
from contextlib import asynccontextmanager

from .utils.logging_config import setup_logging

setup_logging()

from .config import settings
from .genai_client import ConfigurationError, get_genai_client, is_api_key_configured
from .models import EnhancementResult, ModificationResult
from .services.enhancement_flow import enhance_prompt
from .services.modification_flow import modify_prompt
from .services.rate_limiter import get_rate_limiter

logger = logging.getLogger(__name__)


def get_client_key(request: Request) -> str:
    """Identifies the caller for rate limiting, honouring proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown-ip"


async def read_json_body(request: Request) -> Any:
    """
    Returns the decoded JSON body, or None when the body is empty or not JSON.
    The flows report None as an Input Error record.
    """
    try:
        return await request.json()
    except ValueError as e:
        logger.warning(f"API: Request body is not valid JSON: {e}")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Prompt Enhancement Service starting up...")
    get_rate_limiter()
    try:
        get_genai_client()
        logger.info("Gemini GenAI client initialized successfully on startup.")
    except ConfigurationError as e:
        # Requests will be answered with a Configuration Error record
        logger.warning(f"Gemini client not initialized on startup: {e}")
    except Exception as e:
        logger.critical(
            f"Failed to initialize Gemini GenAI client on startup: {e}",
            exc_info=True,
        )
        raise
    yield
    logger.info("Prompt Enhancement Service shutting down...")


app = FastAPI(
    title="Prompt Enhancement Service",
    description="Rewrites user prompts into more effective ones using Gemini and parses the analysis.",
    version="0.2.0",
    lifespan=lifespan,
)


@app.post("/prompts/enhance", response_model=EnhancementResult)
async def api_enhance_prompt(request: Request):
    """
    Receives a raw user prompt and returns the structured enhancement.
    Failures are reported inside the result, never as HTTP errors.
    """
    client_key = get_client_key(request)
    logger.info(f"API: Received prompt enhancement request from {client_key}")
    payload = await read_json_body(request)
    return await enhance_prompt(payload, client_key)


@app.post("/prompts/modify", response_model=ModificationResult)
async def api_modify_prompt(request: Request):
    """
    Applies a free-text modification request to an already enhanced prompt.
    """
    client_key = get_client_key(request)
    logger.info(f"API: Received prompt modification request from {client_key}")
    payload = await read_json_body(request)
    return await modify_prompt(payload, client_key)


@app.get("/")
async def read_root():
    return {"message": "Welcome to the Prompt Enhancement Service"}


@app.get("/health")
async def health_check():
    api_key_ok = is_api_key_configured()
    if api_key_ok:
        return {
            "status": "ok",
            "api_key_configured": True,
            "enhancer_model": settings.ENHANCER_GEMINI_MODEL_NAME,
            "modifier_model": settings.MODIFIER_GEMINI_MODEL_NAME,
        }
    else:
        return {
            "status": "degraded",
            "api_key_configured": False,
            "detail": "GEMINI_API_KEY is not set.",
        }

# prompt_enhancement_service/app/services/enhancement_flow.py
import logging
from typing import Any, Optional

from google import genai

from ..config import settings
from ..genai_client import ConfigurationError, get_genai_client, is_api_key_configured
from ..llm_prompts import enhancer_system_prompt
from ..models import EnhancementResult, EnhancePromptRequest
from .generation import (
    ContentBlockedError,
    EmptyModelResponseError,
    ModelCallError,
    generate_text,
)
from .rate_limiter import RateLimiter, format_rate_limit_message, get_rate_limiter
from .response_parser import parse_enhancement_response
from .schema_validation import (
    SchemaValidationError,
    validate_enhance_request,
    validate_enhancement_result,
)

logger = logging.getLogger(__name__)


def _error_result(
    original_prompt: str,
    *,
    category: str,
    intent: str,
    opportunities: str,
    enhanced_prompt: str,
    explanation: str,
) -> EnhancementResult:
    return validate_enhancement_result(
        {
            "originalPrompt": original_prompt,
            "promptAnalysis": {
                "primaryCategory": category,
                "secondaryCategories": [],
                "intentRecognition": intent,
                "enhancementOpportunities": opportunities,
            },
            "enhancedPrompt": enhanced_prompt,
            "enhancementExplanation": explanation,
        }
    )


def _raw_original_prompt(payload: Any) -> str:
    # Echo whatever the caller sent, even when it failed validation
    if isinstance(payload, EnhancePromptRequest):
        return payload.original_prompt
    if isinstance(payload, dict):
        value = payload.get("originalPrompt", payload.get("original_prompt"))
        if isinstance(value, str):
            return value
    return ""


async def enhance_prompt(
    payload: Any,
    client_key: str,
    *,
    client: Optional[genai.Client] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> EnhancementResult:
    """
    Enhances a user prompt with Gemini and parses the reply.
    Every failure is returned as an EnhancementResult carrying an error category.
    """
    original_prompt = _raw_original_prompt(payload)
    limiter = rate_limiter or get_rate_limiter()

    # 1. Rate limit
    decision = limiter.check(client_key)
    if decision.limited:
        logger.warning(f"Rate limit exceeded for client (enhancePrompt): {client_key}")
        message = format_rate_limit_message(decision)
        return _error_result(
            original_prompt,
            category="Rate Limit Error",
            intent="Too Many Requests",
            opportunities=message,
            enhanced_prompt=f"Error: {message}",
            explanation="Too many enhancement requests were made in a short period. Please wait and try again.",
        )

    # 2. Input validation
    try:
        request_data = validate_enhance_request(payload)
    except SchemaValidationError as e:
        logger.info(f"Invalid input for enhancePrompt from {client_key}: {e}")
        return _error_result(
            original_prompt,
            category="Input Error",
            intent="Invalid Input",
            opportunities=str(e),
            enhanced_prompt=f"Error: Invalid input. {e}",
            explanation="The request did not contain a valid prompt to enhance.",
        )
    original_prompt = request_data.original_prompt

    # 3. Configuration
    if not is_api_key_configured():
        logger.error("GEMINI_API_KEY is not configured; cannot enhance prompt.")
        return _error_result(
            original_prompt,
            category="Configuration Error",
            intent="API Key Missing",
            opportunities="GEMINI_API_KEY is not set in the environment.",
            enhanced_prompt="Error: Application configuration issue. API key not found.",
            explanation="The GEMINI_API_KEY environment variable must be set for the application to function.",
        )

    # 4. Model call
    logger.info(
        f"Enhancing prompt for client {client_key}. Prompt snippet: {original_prompt[:100]}..."
    )
    try:
        genai_client = client or get_genai_client()
        response_text = await generate_text(
            genai_client,
            system_instruction=enhancer_system_prompt,
            contents=original_prompt,
            model_name=settings.ENHANCER_GEMINI_MODEL_NAME,
        )
    except ConfigurationError as e:
        logger.error(f"Gemini client unavailable: {e}")
        return _error_result(
            original_prompt,
            category="Configuration Error",
            intent="API Key Missing",
            opportunities=str(e),
            enhanced_prompt="Error: Application configuration issue. API key not found.",
            explanation="The GEMINI_API_KEY environment variable must be set for the application to function.",
        )
    except ContentBlockedError as e:
        return _error_result(
            original_prompt,
            category="API Error - Content Moderation",
            intent="Blocked",
            opportunities=f"The AI refused to respond due to content policy ({e.reason}).",
            enhanced_prompt=(
                f"Error: AI response blocked due to content policy ({e.reason}). "
                "Please revise your prompt."
            ),
            explanation="The prompt was flagged by the AI provider's safety filters. Rephrasing it usually helps.",
        )
    except EmptyModelResponseError:
        return _error_result(
            original_prompt,
            category="API Error",
            intent="Empty Response",
            opportunities="The AI returned an empty response.",
            enhanced_prompt="Error: AI returned an empty response.",
            explanation="The AI service did not provide any content for the prompt.",
        )
    except ModelCallError as e:
        logger.error(f"Error calling Gemini API for enhancement: {e}")
        return _error_result(
            original_prompt,
            category="API Error",
            intent="API Call Failed",
            opportunities=f"Failed to get response from AI: {e}",
            enhanced_prompt=f"Error: Could not enhance prompt due to an API error. {e}",
            explanation=f"The AI service encountered an error: {e}",
        )
    except Exception as e:
        logger.error(
            f"Unexpected error during prompt enhancement for client {client_key}: {e}",
            exc_info=True,
        )
        return _error_result(
            original_prompt,
            category="API Error",
            intent="API Call Failed",
            opportunities=f"Unexpected error: {e}",
            enhanced_prompt=f"Error: Could not enhance prompt due to an unexpected error. {e}",
            explanation=f"The AI service encountered an error: {e}",
        )

    # 5. Parse
    return parse_enhancement_response(response_text, original_prompt)

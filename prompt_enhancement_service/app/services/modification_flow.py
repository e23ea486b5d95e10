# prompt_enhancement_service/app/services/modification_flow.py
import logging
from typing import Any, Optional

from google import genai

from ..config import settings
from ..genai_client import ConfigurationError, get_genai_client, is_api_key_configured
from ..llm_prompts import construct_modification_message, modifier_system_prompt
from ..models import ModificationResult
from .generation import (
    ContentBlockedError,
    EmptyModelResponseError,
    ModelCallError,
    generate_text,
)
from .rate_limiter import RateLimiter, format_rate_limit_message, get_rate_limiter
from .schema_validation import (
    SchemaValidationError,
    validate_modification_result,
    validate_modify_request,
)

logger = logging.getLogger(__name__)


def _result(modified_prompt: str) -> ModificationResult:
    return validate_modification_result({"modifiedPrompt": modified_prompt})


async def modify_prompt(
    payload: Any,
    client_key: str,
    *,
    client: Optional[genai.Client] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> ModificationResult:
    """
    Applies a user's modification request to an enhanced prompt.
    The trimmed model reply is the modified prompt; failures come back as
    "Error: ..." strings in modifiedPrompt.
    """
    limiter = rate_limiter or get_rate_limiter()

    decision = limiter.check(client_key)
    if decision.limited:
        logger.warning(f"Rate limit exceeded for client (modifyPrompt): {client_key}")
        return _result(f"Error: {format_rate_limit_message(decision)}")

    try:
        request_data = validate_modify_request(payload)
    except SchemaValidationError as e:
        logger.info(f"Invalid input for modifyPrompt from {client_key}: {e}")
        return _result(f"Error: Invalid input. {e}")

    modification_request = request_data.modification_request

    if not is_api_key_configured():
        logger.error("GEMINI_API_KEY is not configured; cannot modify prompt.")
        return _result(
            "Error: Application configuration issue. API key not found. "
            f"Original request: {modification_request}"
        )

    logger.info(
        f"Modifying prompt for client {client_key}. Request snippet: {modification_request[:100]}..."
    )
    try:
        genai_client = client or get_genai_client()
        response_text = await generate_text(
            genai_client,
            system_instruction=modifier_system_prompt,
            contents=construct_modification_message(request_data),
            model_name=settings.MODIFIER_GEMINI_MODEL_NAME,
        )
    except ConfigurationError:
        return _result(
            "Error: Application configuration issue. API key not found. "
            f"Original request: {modification_request}"
        )
    except ContentBlockedError as e:
        return _result(
            f"Error: AI response blocked due to content policy ({e.reason}) for modification "
            f'request: "{modification_request}". Please revise your modification request.'
        )
    except EmptyModelResponseError:
        return _result(
            "Error: AI returned an empty or malformed response for modification. "
            f"Original request: {modification_request}"
        )
    except ModelCallError as e:
        logger.error(f"Error calling Gemini API for modification: {e}")
        return _result(
            f"Error: Could not modify prompt due to an API error. {e}. "
            f"Original request: {modification_request}"
        )
    except Exception as e:
        logger.error(
            f"Unexpected error during prompt modification for client {client_key}: {e}",
            exc_info=True,
        )
        return _result(
            f"Error: Could not modify prompt due to an unexpected error. {e}. "
            f"Original request: {modification_request}"
        )

    return _result(response_text.strip())

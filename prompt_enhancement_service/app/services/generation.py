# prompt_enhancement_service/app/services/generation.py
import asyncio
import logging

import backoff
from google import genai
from google.genai import errors, types

from ..config import settings

logger = logging.getLogger(__name__)


class ModelCallError(Exception):
    """Transport or provider failure while calling the generative model."""

    pass


class ModelTimeoutError(ModelCallError):
    pass


class ContentBlockedError(ModelCallError):
    """The provider refused to generate because of its safety policy."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Response blocked by content policy ({reason}).")


class EmptyModelResponseError(ModelCallError):
    pass


# Only failures that may succeed on a second attempt. Content blocks and 4xx
# client errors are never retried.
TRANSIENT_ERRORS = (ModelTimeoutError, errors.ServerError)

_BLOCKING_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}

_HARM_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


def _safety_threshold() -> types.HarmBlockThreshold:
    try:
        return types.HarmBlockThreshold[settings.LLM_SAFETY_THRESHOLD]
    except KeyError:
        logger.warning(
            f"Unknown LLM_SAFETY_THRESHOLD '{settings.LLM_SAFETY_THRESHOLD}', using BLOCK_MEDIUM_AND_ABOVE."
        )
        return types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE


def build_content_config(system_instruction: str) -> types.GenerateContentConfig:
    threshold = _safety_threshold()
    return types.GenerateContentConfig(
        system_instruction=system_instruction,
        temperature=settings.LLM_TEMPERATURE,
        max_output_tokens=settings.LLM_MAX_OUTPUT_TOKENS,
        safety_settings=[
            types.SafetySetting(category=category, threshold=threshold)
            for category in _HARM_CATEGORIES
        ],
    )


@backoff.on_exception(
    backoff.expo,
    TRANSIENT_ERRORS,
    max_tries=lambda: max(1, settings.LLM_MAX_ATTEMPTS),
    factor=lambda: settings.LLM_RETRY_BACKOFF_SECONDS,
    logger=logger,
)
async def _request_generation(
    client: genai.Client,
    model_name: str,
    contents: str,
    config: types.GenerateContentConfig,
) -> types.GenerateContentResponse:
    try:
        return await asyncio.wait_for(
            client.aio.models.generate_content(
                model=model_name,
                contents=contents,
                config=config,
            ),
            timeout=settings.LLM_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError as e:
        raise ModelTimeoutError(
            f"Model call timed out after {settings.LLM_TIMEOUT_SECONDS} seconds."
        ) from e


def _enum_name(value) -> str:
    return getattr(value, "name", None) or str(value)


def _response_text(response) -> str:
    try:
        text = getattr(response, "text", None)
    except ValueError:
        # Older SDK versions raise when the candidate has no text part
        text = None
    return text if isinstance(text, str) else ""


def _block_reason(response, text: str) -> str | None:
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is not None and getattr(feedback, "block_reason", None):
        return _enum_name(feedback.block_reason)

    if text.strip():
        return None
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        finish_reason = getattr(candidates[0], "finish_reason", None)
        if finish_reason is not None and _enum_name(finish_reason) in _BLOCKING_FINISH_REASONS:
            return _enum_name(finish_reason)
    return None


async def generate_text(
    client: genai.Client,
    *,
    system_instruction: str,
    contents: str,
    model_name: str,
) -> str:
    """
    Sends one system instruction + user message to Gemini and returns the reply text.
    Raises ContentBlockedError, EmptyModelResponseError or ModelCallError.
    """
    config = build_content_config(system_instruction)
    logger.info(f"Sending request to Gemini (model: {model_name}).")
    logger.debug(f"Full request contents: {contents}")

    try:
        response = await _request_generation(client, model_name, contents, config)
    except ModelCallError:
        raise
    except Exception as e:
        logger.error(f"Error during Gemini call (model: {model_name}): {e}", exc_info=True)
        raise ModelCallError(str(e)) from e

    text = _response_text(response)
    block_reason = _block_reason(response, text)
    if block_reason:
        logger.warning(f"Gemini response blocked. Reason: {block_reason}")
        raise ContentBlockedError(block_reason)

    if not text.strip():
        logger.warning(f"Gemini returned no text (model: {model_name}).")
        raise EmptyModelResponseError("The AI returned an empty response.")

    logger.info(f"Received Gemini reply. Snippet: {text[:100]}...")
    logger.debug(f"Full Gemini reply: {text}")
    return text

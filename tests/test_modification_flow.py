"""Tests for the modification flow."""

from __future__ import annotations

import pytest
from google.genai import types

from helpers import make_client, make_response
from prompt_enhancement_service.app.config import settings
from prompt_enhancement_service.app.llm_prompts import (
    construct_modification_message,
    modifier_system_prompt,
)
from prompt_enhancement_service.app.models import ModifyPromptRequest
from prompt_enhancement_service.app.services.modification_flow import modify_prompt
from prompt_enhancement_service.app.services.rate_limiter import FixedWindowRateLimiter

PAYLOAD = {
    "originalPrompt": "write a poem",
    "enhancedPrompt": "Write a 12-line poem about the sea in iambic pentameter.",
    "modificationRequest": "Make it about mountains instead",
}


@pytest.mark.asyncio
async def test_reply_is_trimmed_and_returned_verbatim(limiter: FixedWindowRateLimiter) -> None:
    reply = "\n  Write a 12-line poem about mountains in iambic pentameter.  \n"
    client = make_client(make_response(text=reply))

    result = await modify_prompt(PAYLOAD, "ip", client=client, rate_limiter=limiter)

    assert result.modified_prompt == "Write a 12-line poem about mountains in iambic pentameter."
    call = client.aio.models.generate_content.await_args
    assert call.kwargs["model"] == settings.MODIFIER_GEMINI_MODEL_NAME
    assert call.kwargs["config"].system_instruction == modifier_system_prompt
    contents = call.kwargs["contents"]
    assert "ORIGINAL PROMPT:\nwrite a poem" in contents
    assert "CURRENT ENHANCED PROMPT:\n" + PAYLOAD["enhancedPrompt"] in contents
    assert "USER MODIFICATION REQUEST:\nMake it about mountains instead" in contents


@pytest.mark.asyncio
async def test_markers_in_reply_are_not_parsed(limiter: FixedWindowRateLimiter) -> None:
    reply = "ENHANCED PROMPT:\nSomething"
    client = make_client(make_response(text=reply))

    result = await modify_prompt(PAYLOAD, "ip", client=client, rate_limiter=limiter)

    assert result.modified_prompt == reply


@pytest.mark.asyncio
async def test_rate_limited(limiter: FixedWindowRateLimiter) -> None:
    client = make_client(make_response(text="ok"))
    for _ in range(5):
        await modify_prompt(PAYLOAD, "ip", client=client, rate_limiter=limiter)

    result = await modify_prompt(PAYLOAD, "ip", client=client, rate_limiter=limiter)

    assert result.modified_prompt.startswith("Error: Rate limit exceeded.")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {**PAYLOAD, "modificationRequest": ""},
        {"originalPrompt": "a", "enhancedPrompt": "b"},
        {**PAYLOAD, "enhancedPrompt": ["not", "text"]},
        None,
    ],
)
async def test_invalid_input(payload, limiter: FixedWindowRateLimiter) -> None:
    client = make_client(make_response(text="unused"))

    result = await modify_prompt(payload, "ip", client=client, rate_limiter=limiter)

    assert result.modified_prompt.startswith("Error: Invalid input.")
    client.aio.models.generate_content.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_api_key(
    monkeypatch: pytest.MonkeyPatch, limiter: FixedWindowRateLimiter
) -> None:
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "")

    result = await modify_prompt(PAYLOAD, "ip", rate_limiter=limiter)

    assert result.modified_prompt.startswith("Error: Application configuration issue.")
    assert PAYLOAD["modificationRequest"] in result.modified_prompt


@pytest.mark.asyncio
async def test_content_block(limiter: FixedWindowRateLimiter) -> None:
    client = make_client(make_response(block_reason=types.BlockedReason.PROHIBITED_CONTENT))

    result = await modify_prompt(PAYLOAD, "ip", client=client, rate_limiter=limiter)

    assert result.modified_prompt.startswith("Error: AI response blocked due to content policy")
    assert "PROHIBITED_CONTENT" in result.modified_prompt


@pytest.mark.asyncio
async def test_empty_reply(limiter: FixedWindowRateLimiter) -> None:
    client = make_client(make_response(text="  "))

    result = await modify_prompt(PAYLOAD, "ip", client=client, rate_limiter=limiter)

    assert result.modified_prompt.startswith("Error: AI returned an empty or malformed response")


@pytest.mark.asyncio
async def test_transport_error(limiter: FixedWindowRateLimiter) -> None:
    client = make_client(side_effect=ConnectionError("network unreachable"))

    result = await modify_prompt(PAYLOAD, "ip", client=client, rate_limiter=limiter)

    assert result.modified_prompt.startswith("Error: Could not modify prompt due to an API error.")
    assert "network unreachable" in result.modified_prompt


def test_construct_modification_message_ends_with_instruction() -> None:
    message = construct_modification_message(ModifyPromptRequest.model_validate(PAYLOAD))

    assert message.startswith("ORIGINAL PROMPT:\n")
    assert message.endswith("Based on the above, please provide ONLY the refined prompt.")

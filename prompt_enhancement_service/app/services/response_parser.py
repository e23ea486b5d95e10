# prompt_enhancement_service/app/services/response_parser.py
"""
Turns the enhancer model's free-text reply into an EnhancementResult.

The model is asked for four labeled sections (see llm_prompts.py) but may
omit, reorder or ignore them. Parsing degrades through four tiers:

1. labeled extraction of the analysis, enhanced prompt and explanation sections
2. field extraction inside the analysis section
3. a bare reply with no markers is taken as the enhanced prompt when it is
   short enough relative to the original prompt
4. defaults for anything still missing, then schema validation; if that fails
   a synthetic "Parsing Failed" record is returned

parse_enhancement_response never raises.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from ..config import settings
from ..models import (
    DEFAULT_ENHANCEMENT_EXPLANATION,
    EnhancementResult,
    PromptAnalysis,
)
from .schema_validation import SchemaValidationError, validate_enhancement_result

logger = logging.getLogger(__name__)

ORIGINAL_PROMPT_MARKER = "ORIGINAL PROMPT:"
PROMPT_ANALYSIS_MARKER = "PROMPT ANALYSIS:"
ENHANCED_PROMPT_MARKER = "ENHANCED PROMPT:"
ENHANCEMENT_EXPLANATION_MARKER = "ENHANCEMENT EXPLANATION:"

SECTION_MARKERS: Tuple[str, ...] = (
    ORIGINAL_PROMPT_MARKER,
    PROMPT_ANALYSIS_MARKER,
    ENHANCED_PROMPT_MARKER,
    ENHANCEMENT_EXPLANATION_MARKER,
)

MINIMAL_RESPONSE_EXPLANATION = (
    "AI response format was minimal; direct enhancement assumed."
)
DIRECT_RESPONSE_EXPLANATION = (
    "AI provided a direct response instead of a fully structured enhancement."
)
MISSING_ENHANCED_PROMPT_SENTINEL = (
    "Error: AI failed to generate an enhanced prompt in the expected format."
)
ERROR_RESPONSE_SNIPPET_LENGTH = 500

# Single-line fields may be written as bullets ("- Primary Category: ...")
_LINE_PREFIX = r"^[ \t]*(?:[-*][ \t]*)?"
_PRIMARY_CATEGORY_RE = re.compile(
    _LINE_PREFIX + r"Primary Category:[ \t]*(.*)$", re.MULTILINE
)
_SECONDARY_CATEGORIES_RE = re.compile(
    _LINE_PREFIX + r"Secondary Categories:[ \t]*(.*)$", re.MULTILINE
)
# Categories written as a bullet list on the lines after an empty label
_OTHER_FIELD_LABEL = r"(?:Primary Category|Intent Recognition|Enhancement Opportunities):"
_SECONDARY_BULLETS_RE = re.compile(
    _LINE_PREFIX
    + r"Secondary Categories:[ \t]*\n((?:[ \t]*[-*][ \t]+(?!"
    + _OTHER_FIELD_LABEL
    + r").*(?:\n|\Z))+)",
    re.MULTILINE,
)
_BULLET_RE = re.compile(r"^[ \t]*[-*][ \t]+", re.MULTILINE)
_INTENT_RE = re.compile(_LINE_PREFIX + r"Intent Recognition:[ \t]*(.*)$", re.MULTILINE)
_OPPORTUNITIES_RE = re.compile(
    _LINE_PREFIX + r"Enhancement Opportunities:(.*)\Z", re.MULTILINE | re.DOTALL
)


class ParserLimits(BaseModel):
    """Length heuristics for accepting a reply that carries no section markers."""

    fallback_length_multiplier: float = 2.0
    fallback_length_allowance: int = 400
    direct_response_max_length: int = 1000

    @classmethod
    def from_settings(cls) -> "ParserLimits":
        return cls(
            fallback_length_multiplier=settings.PARSER_FALLBACK_LENGTH_MULTIPLIER,
            fallback_length_allowance=settings.PARSER_FALLBACK_LENGTH_ALLOWANCE,
            direct_response_max_length=settings.PARSER_DIRECT_RESPONSE_MAX_LENGTH,
        )

    def fallback_ceiling(self, original_prompt: str) -> float:
        return (
            self.fallback_length_multiplier * len(original_prompt)
            + self.fallback_length_allowance
        )


def split_sections(
    text: str, markers: Sequence[str] = SECTION_MARKERS
) -> List[Tuple[str, str]]:
    """
    Splits text into (marker, content) spans, ordered by position in text.

    Each marker is located by its first occurrence. Its content runs up to the
    earliest occurrence of any other marker after the marker's end, or to the
    end of the text. Markers that never occur produce no span.
    """
    starts = {marker: text.find(marker) for marker in markers}
    spans: List[Tuple[int, str, str]] = []

    for marker, start in starts.items():
        if start == -1:
            continue
        content_start = start + len(marker)
        content_end = len(text)
        for other in markers:
            if other == marker:
                continue
            other_index = text.find(other, content_start)
            if other_index != -1 and other_index < content_end:
                content_end = other_index
        spans.append((start, marker, text[content_start:content_end].strip()))

    spans.sort(key=lambda span: span[0])
    return [(marker, content) for _, marker, content in spans]


def _has_any_marker(text: str) -> bool:
    return any(marker in text for marker in SECTION_MARKERS)


def _first_group(pattern: re.Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def _secondary_categories(analysis_text: str) -> Any:
    # PromptAnalysis normalizes the raw text ("None", blanks, separators)
    match = _SECONDARY_CATEGORIES_RE.search(analysis_text)
    if not match:
        return []
    if match.group(1).strip():
        return match.group(1)
    bullets = _SECONDARY_BULLETS_RE.search(analysis_text)
    if bullets:
        return _BULLET_RE.sub("", bullets.group(1))
    return []


def parse_prompt_analysis(analysis_text: str) -> Dict[str, Any]:
    """Extracts the analysis sub-fields that are present. Missing ones are omitted."""
    fields: Dict[str, Any] = {}

    primary = _first_group(_PRIMARY_CATEGORY_RE, analysis_text)
    if primary:
        fields["primaryCategory"] = primary

    fields["secondaryCategories"] = _secondary_categories(analysis_text)

    intent = _first_group(_INTENT_RE, analysis_text)
    if intent:
        fields["intentRecognition"] = intent

    opportunities = _first_group(_OPPORTUNITIES_RE, analysis_text)
    if opportunities:
        fields["enhancementOpportunities"] = opportunities

    return fields


def _minimal_response_analysis() -> Dict[str, Any]:
    return {
        "primaryCategory": "Other",
        "secondaryCategories": [],
        "intentRecognition": "Unknown",
        "enhancementOpportunities": "N/A (Minimal AI Response)",
    }


def _parsing_failed_result(
    raw_text: str, original_prompt: str, reason: str
) -> EnhancementResult:
    snippet = raw_text[:ERROR_RESPONSE_SNIPPET_LENGTH]
    return EnhancementResult(
        original_prompt=original_prompt,
        prompt_analysis=PromptAnalysis(
            primary_category="Error",
            secondary_categories=[],
            intent_recognition="Parsing Failed",
            enhancement_opportunities=(
                f"AI response did not match the expected format. Parser error: {reason}"
            ),
        ),
        enhanced_prompt=(
            f"Error: AI response could not be parsed. Original response: {snippet}..."
        ),
        enhancement_explanation=f"Parsing failed. Details: {reason}",
    )


def _assemble(
    raw_text: str, original_prompt: str, limits: ParserLimits
) -> Dict[str, Any]:
    output: Dict[str, Any] = {"originalPrompt": original_prompt}
    sections = dict(split_sections(raw_text))

    # Tier 1 + 2: labeled sections
    if PROMPT_ANALYSIS_MARKER in sections:
        output["promptAnalysis"] = parse_prompt_analysis(
            sections[PROMPT_ANALYSIS_MARKER]
        )
    if sections.get(ENHANCED_PROMPT_MARKER):
        output["enhancedPrompt"] = sections[ENHANCED_PROMPT_MARKER]
    if sections.get(ENHANCEMENT_EXPLANATION_MARKER):
        output["enhancementExplanation"] = sections[ENHANCEMENT_EXPLANATION_MARKER]

    trimmed = raw_text.strip()
    unmarked = not _has_any_marker(raw_text)

    # Tier 3: a bare reply of plausible length is the enhanced prompt
    if (
        unmarked
        and trimmed
        and len(trimmed) < limits.fallback_ceiling(original_prompt)
    ):
        logger.info("Enhancer reply had no section markers; using it as a direct enhancement.")
        output["enhancedPrompt"] = trimmed
        output["promptAnalysis"] = _minimal_response_analysis()
        output["enhancementExplanation"] = MINIMAL_RESPONSE_EXPLANATION
        return output

    # Tier 4: fill whatever is still missing
    output.setdefault("promptAnalysis", {})
    if "enhancedPrompt" not in output:
        if unmarked and trimmed and len(trimmed) < limits.direct_response_max_length:
            output["enhancedPrompt"] = trimmed
            output.setdefault("enhancementExplanation", DIRECT_RESPONSE_EXPLANATION)
        else:
            logger.warning(
                f"Could not locate an enhanced prompt in the model reply. "
                f"Reply snippet: {raw_text[:200]}..."
            )
            output["enhancedPrompt"] = MISSING_ENHANCED_PROMPT_SENTINEL
    output.setdefault("enhancementExplanation", DEFAULT_ENHANCEMENT_EXPLANATION)
    return output


def parse_enhancement_response(
    raw_text: Any, original_prompt: str, limits: Optional[ParserLimits] = None
) -> EnhancementResult:
    """Parses the enhancer's reply. Always returns a valid EnhancementResult."""
    if raw_text is None:
        raw_text = ""
    elif not isinstance(raw_text, str):
        raw_text = str(raw_text)
    if not isinstance(original_prompt, str):
        original_prompt = "" if original_prompt is None else str(original_prompt)
    limits = limits or ParserLimits.from_settings()

    try:
        output = _assemble(raw_text, original_prompt, limits)
        return validate_enhancement_result(output)
    except SchemaValidationError as e:
        logger.error(f"Failed to validate parsed enhancer reply: {e}")
        logger.debug(f"Original LLM response text: {raw_text}")
        return _parsing_failed_result(raw_text, original_prompt, str(e))
    except Exception as e:
        logger.error(f"Unexpected error while parsing enhancer reply: {e}", exc_info=True)
        return _parsing_failed_result(raw_text, original_prompt, str(e))

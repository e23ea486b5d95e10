# prompt_enhancement_service/app/models.py
import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_PRIMARY_CATEGORY = "General"
DEFAULT_NOT_SPECIFIED = "Not specified"
DEFAULT_ENHANCEMENT_EXPLANATION = (
    "No explanation provided or explanation parsing failed."
)

_CATEGORY_SEPARATORS = re.compile(r"[,;\n]")


def split_category_list(value: str) -> List[str]:
    """
    Normalizes a free-text category line into a list.
    "None" (any case) and blank text mean no categories.
    """
    stripped = value.strip()
    if not stripped or stripped.lower() == "none":
        return []
    items = []
    for item in _CATEGORY_SEPARATORS.split(stripped):
        item = item.strip()
        if item.startswith("- "):
            item = item[2:].strip()
        if item:
            items.append(item)
    return items


class _WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_none_values(cls, data: Any) -> Any:
        # An explicit null is treated the same as an absent field so defaults apply
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


# --- Request models ---


class EnhancePromptRequest(_WireModel):
    original_prompt: str = Field(
        ...,
        min_length=1,
        examples=["Write a function that sorts a list."],
    )

    @field_validator("original_prompt")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Prompt cannot be empty.")
        return value


class ModifyPromptRequest(_WireModel):
    original_prompt: str = Field(..., min_length=1)
    enhanced_prompt: str = Field(..., min_length=1)
    modification_request: str = Field(
        ...,
        min_length=1,
        examples=["Make it shorter and target Python 3.12."],
    )

    @field_validator("original_prompt", "enhanced_prompt", "modification_request")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Field cannot be empty.")
        return value


# --- Result models ---


class PromptAnalysis(_WireModel):
    primary_category: str = DEFAULT_PRIMARY_CATEGORY
    secondary_categories: List[str] = Field(default_factory=list)
    intent_recognition: str = DEFAULT_NOT_SPECIFIED
    enhancement_opportunities: str = DEFAULT_NOT_SPECIFIED

    @field_validator("secondary_categories", mode="before")
    @classmethod
    def _normalize_secondary_categories(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_category_list(value)
        return value


class EnhancementResult(_WireModel):
    original_prompt: str
    prompt_analysis: PromptAnalysis = Field(default_factory=PromptAnalysis)
    enhanced_prompt: str = Field(..., min_length=1)
    enhancement_explanation: str = DEFAULT_ENHANCEMENT_EXPLANATION


class ModificationResult(_WireModel):
    modified_prompt: str = Field(..., min_length=1)


# --- Rate limiting ---


class RateLimitWindow(BaseModel):
    client_key: str
    count: int
    window_start: float


class RateLimitDecision(_WireModel):
    limited: bool
    retry_after_seconds: Optional[int] = None

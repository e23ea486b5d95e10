# prompt_enhancement_service/app/services/schema_validation.py
import logging
from typing import Any, Mapping, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..models import (
    EnhancementResult,
    EnhancePromptRequest,
    ModificationResult,
    ModifyPromptRequest,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class SchemaValidationError(Exception):
    """Raised when a payload does not fit the request/result contract."""

    def __init__(self, model_name: str, field_errors: dict[str, str]):
        self.model_name = model_name
        self.field_errors = field_errors
        details = "; ".join(f"{field}: {msg}" for field, msg in field_errors.items())
        super().__init__(f"Invalid {model_name}: {details}")


def _field_errors(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "__root__"
        # Keep the first message per field
        errors.setdefault(location, error["msg"])
    return errors


def _validate(model: Type[ModelT], candidate: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    if isinstance(candidate, model):
        # Re-run validation so mutated instances cannot slip through
        candidate = candidate.model_dump(by_alias=True)
    try:
        return model.model_validate(candidate)
    except ValidationError as e:
        field_errors = _field_errors(e)
        logger.debug(f"{model.__name__} validation failed: {field_errors}")
        raise SchemaValidationError(model.__name__, field_errors) from e


def validate_enhancement_result(
    candidate: Union[EnhancementResult, Mapping[str, Any]],
) -> EnhancementResult:
    return _validate(EnhancementResult, candidate)


def validate_modification_result(
    candidate: Union[ModificationResult, Mapping[str, Any]],
) -> ModificationResult:
    return _validate(ModificationResult, candidate)


def validate_enhance_request(candidate: Any) -> EnhancePromptRequest:
    if not isinstance(candidate, (Mapping, EnhancePromptRequest)):
        raise SchemaValidationError(
            "EnhancePromptRequest", {"__root__": "Request body must be an object."}
        )
    return _validate(EnhancePromptRequest, candidate)


def validate_modify_request(candidate: Any) -> ModifyPromptRequest:
    if not isinstance(candidate, (Mapping, ModifyPromptRequest)):
        raise SchemaValidationError(
            "ModifyPromptRequest", {"__root__": "Request body must be an object."}
        )
    return _validate(ModifyPromptRequest, candidate)

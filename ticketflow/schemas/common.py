from pydantic import BaseModel, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from typing import Any, Optional, Type, TypeVar

from ticketflow.utils.exceptions import ValidationError

T = TypeVar("T", bound=BaseModel)


class CamelModel(BaseModel):
    """Base model exposing camelCase wire names (subjectLine <-> subject_line)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ErrorResponse(BaseModel):
    """Error response envelope."""
    error: str
    message: str
    details: Optional[dict[str, Any]] = None
    path: Optional[str] = None


def parse_payload(model: Type[T], payload: Optional[dict]) -> T:
    """
    Validate a raw JSON payload against a schema.

    Raises:
        ValidationError: with per-field messages when the payload is invalid
    """
    try:
        return model.model_validate(payload or {})
    except PydanticValidationError as exc:
        fields = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
            fields.setdefault(field, error.get("msg", "Invalid value"))
        raise ValidationError("Invalid request data", details={"fields": fields}) from exc

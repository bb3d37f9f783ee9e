"""Turns pydantic validation errors into domain ValidationFailures."""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from fieldtrack.domain.exceptions import ValidationFailure

M = TypeVar("M", bound=BaseModel)

_VALUE_ERROR_PREFIX = "Value error, "


def validate_model(schema: type[M], data: Any) -> M:
    """Validate ``data`` against ``schema``.

    Raises:
        ValidationFailure: Carrying the first error's field and message.
    """
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ())) or None
        message = error.get("msg", "Invalid value")
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        raise ValidationFailure(message, field=field) from exc

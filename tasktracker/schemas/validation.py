"""Explicit request validation.

Handlers parse their raw input through :func:`validate`, which never raises:
it returns :class:`Valid` carrying the typed contract or :class:`Invalid`
carrying the field errors, and the caller decides what to do with each.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T


@dataclass(frozen=True)
class Invalid:
    errors: List[Dict[str, str]] = field(default_factory=list)


ValidationResult = Union[Valid[T], Invalid]


def _format_errors(exc: ValidationError) -> List[Dict[str, str]]:
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        errors.append({"field": location or "body", "message": error["msg"]})
    return errors


def validate(contract: Type[T], data: Any) -> ValidationResult:
    """Validate ``data`` against ``contract``."""
    if data is None:
        data = {}
    try:
        return Valid(contract.model_validate(data))
    except ValidationError as exc:
        return Invalid(_format_errors(exc))

"""
Result type returned by every public service operation.

Callers receive either ``{"data": ...}`` or ``{"error": ..., "field_errors": ...}``,
never both and never neither. Guard helpers inside the services raise
ServiceError; the @service_operation decorator turns that into a failure result
so expected failures never cross the service boundary as exceptions.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

VALIDATION_FAILED = "Validation failed"


class ServiceError(ValueError):
    """Expected business failure with a user-facing message."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors


class AlreadyMemberError(ServiceError):
    """Raised when joining a league the user already belongs to."""

    def __init__(self, message: str = "You are already a member of this league"):
        super().__init__(message)


@dataclass(frozen=True)
class ServiceResult:
    """Discriminated success/failure result."""

    data: Any = None
    error: Optional[str] = None
    field_errors: Optional[Dict[str, str]] = None

    def __post_init__(self):
        if self.error is None and self.field_errors:
            raise ValueError("field_errors requires an error message")
        if self.error is not None and self.data is not None:
            raise ValueError("A result carries either data or an error, not both")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = True) -> "ServiceResult":
        # None is not a valid payload; an empty result is still a success
        return cls(data=data if data is not None else {})

    @classmethod
    def failure(
        cls, error: str, field_errors: Optional[Dict[str, str]] = None
    ) -> "ServiceResult":
        return cls(error=error, field_errors=field_errors or None)

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"data": self.data}
        payload = {"error": self.error}
        if self.field_errors:
            payload["field_errors"] = self.field_errors
        return payload


def service_operation(func):
    """
    Wrap an async service coroutine so it always returns a ServiceResult.

    A ServiceError raised anywhere inside becomes a failure result. Any other
    exception is unexpected and propagates to the caller unchanged.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> ServiceResult:
        try:
            value = await func(*args, **kwargs)
        except ServiceError as e:
            return ServiceResult.failure(e.message, e.field_errors)
        if isinstance(value, ServiceResult):
            return value
        return ServiceResult.success(value)

    return wrapper


def format_validation_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten pydantic errors into {field_path: first message}."""
    field_errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "_root"
        message = err.get("msg", "Invalid value")
        # "Value error, ..." prefix comes from custom validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        field_errors.setdefault(loc, message)
    return field_errors


def parse_input(schema: Type[SchemaT], payload: Any) -> SchemaT:
    """Validate raw input against a pydantic schema or raise ServiceError."""
    if isinstance(payload, schema):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise ServiceError(VALIDATION_FAILED, field_errors=format_validation_errors(e))

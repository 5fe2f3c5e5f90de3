"""Timeout policy table mapping operation classes to deadlines."""

from enum import Enum
from types import MappingProxyType
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from src.transport.constants import (
    TIMEOUT_DEFAULT_MS,
    TIMEOUT_FAST_MS,
    TIMEOUT_UPLOAD_AI_MS,
    TIMEOUT_UPLOAD_STANDARD_MS,
)


class OperationClass(str, Enum):
    """Operation classes with distinct deadlines.

    - FAST: Metadata reads, lists, quick validations
    - DEFAULT: Standard CRUD
    - UPLOAD_AI: AI-assisted document processing uploads
    - UPLOAD_STANDARD: Plain file uploads
    """

    FAST = "fast"
    DEFAULT = "default"
    UPLOAD_AI = "upload-ai"
    UPLOAD_STANDARD = "upload-standard"


# Names used by older call sites
_ALIASES: dict[str, OperationClass] = {
    "claude-upload": OperationClass.UPLOAD_AI,
    "standard-upload": OperationClass.UPLOAD_STANDARD,
}

TIMEOUT_TABLE = MappingProxyType(
    {
        OperationClass.FAST: TIMEOUT_FAST_MS,
        OperationClass.DEFAULT: TIMEOUT_DEFAULT_MS,
        OperationClass.UPLOAD_AI: TIMEOUT_UPLOAD_AI_MS,
        OperationClass.UPLOAD_STANDARD: TIMEOUT_UPLOAD_STANDARD_MS,
    }
)


def resolve_operation_class(operation_class: "str | OperationClass") -> OperationClass:
    """Resolve a name to an operation class, falling back to DEFAULT.

    Args:
        operation_class: Operation class or its name.

    Returns:
        The matching operation class, DEFAULT for unknown input.
    """
    if isinstance(operation_class, OperationClass):
        return operation_class
    name = str(operation_class).strip().lower()
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return OperationClass(name)
    except ValueError:
        return OperationClass.DEFAULT


def timeout_for(operation_class: "str | OperationClass") -> int:
    """Get the deadline for an operation class.

    Args:
        operation_class: Operation class or its name.

    Returns:
        Deadline in milliseconds. Unknown classes get the default deadline.
    """
    return TIMEOUT_TABLE[resolve_operation_class(operation_class)]


class TimeoutPolicy(BaseModel):
    """Configurable deadlines per operation class.

    Same fall-back rule as ``timeout_for``: anything unrecognized gets
    ``default_ms``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    fast_ms: Annotated[int, Field(gt=0, le=600_000)] = TIMEOUT_FAST_MS
    default_ms: Annotated[int, Field(gt=0, le=600_000)] = TIMEOUT_DEFAULT_MS
    upload_ai_ms: Annotated[int, Field(gt=0, le=600_000)] = TIMEOUT_UPLOAD_AI_MS
    upload_standard_ms: Annotated[int, Field(gt=0, le=600_000)] = (
        TIMEOUT_UPLOAD_STANDARD_MS
    )

    def timeout_for(self, operation_class: "str | OperationClass") -> int:
        """Get the deadline for an operation class.

        Args:
            operation_class: Operation class or its name.

        Returns:
            Deadline in milliseconds.
        """
        resolved = resolve_operation_class(operation_class)
        return {
            OperationClass.FAST: self.fast_ms,
            OperationClass.DEFAULT: self.default_ms,
            OperationClass.UPLOAD_AI: self.upload_ai_ms,
            OperationClass.UPLOAD_STANDARD: self.upload_standard_ms,
        }[resolved]

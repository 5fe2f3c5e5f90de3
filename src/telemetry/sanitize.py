"""Redaction of sensitive form fields before they are reported."""

from typing import Any

from src.telemetry.constants import REDACTED_VALUE, SENSITIVE_FIELD_MARKERS


def is_sensitive_field(field_name: str) -> bool:
    """Check if a form field name looks like it holds a secret.

    Matches case-insensitively on password, token, secret and apiKey
    appearing anywhere in the name.

    Args:
        field_name: Form field name.

    Returns:
        True if the value must be redacted.
    """
    lowered = field_name.lower()
    return any(marker in lowered for marker in SENSITIVE_FIELD_MARKERS)


def sanitize_form_data(data: dict[str, Any]) -> dict[str, Any]:
    """Redact sensitive form fields.

    Args:
        data: Submitted form data.

    Returns:
        Shallow copy with sensitive values replaced by [REDACTED].
    """
    return {
        key: REDACTED_VALUE if is_sensitive_field(key) else value
        for key, value in data.items()
    }

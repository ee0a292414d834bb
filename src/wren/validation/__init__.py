"""Input validation: rule strings in, clean results out.

Usage::

    from wren.validation import validate

    result = validate(request.all(), {
        "title": "required|max:200",
        "email": "required|email",
    })
    if not result:
        # result.errors == {"email": ["The email must be a valid email address."]}
        ...
"""

from collections.abc import Mapping
from typing import Any

from wren.validation.result import ValidationResult
from wren.validation.rules import MESSAGES, RULES
from wren.validation.validator import RuleSpec, Validator

__all__ = [
    "MESSAGES",
    "RULES",
    "RuleSpec",
    "ValidationResult",
    "Validator",
    "validate",
]


def validate(
    data: Mapping[str, Any],
    rules: Mapping[str, RuleSpec],
    messages: Mapping[str, str] | None = None,
) -> ValidationResult:
    """Validate *data* against *rules* and return the result."""
    return Validator(data, rules, messages).result()

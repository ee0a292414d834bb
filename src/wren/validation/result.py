"""Validation result: immutable container for validated data or errors."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of validating input against a set of rules.

    The result is falsy when invalid, so you can write::

        result = validate(request.all(), rules)
        if not result:
            return self.view("posts.create", {"errors": result.errors})

    ``data`` holds the values of every field that passed all its rules.
    ``errors`` maps field names to lists of messages::

        {"title": ["The title field is required."]}
    """

    data: dict[str, Any]
    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        """True if validation passed with no errors."""
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid

    def first(self, field: str) -> str | None:
        """The first error message for *field*, if any."""
        messages = self.errors.get(field)
        return messages[0] if messages else None

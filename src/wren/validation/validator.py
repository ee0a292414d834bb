"""Rule-string validator.

Rules per field are a pipe-separated string or a list::

    Validator(data, {
        "name": "required|alpha|max:50",
        "email": ["required", "email"],
        "role": "in:admin,editor",
        "code": ["required", "regex:^[A-Z]{3}|[0-9]{3}$"],
        "nick": ["required", no_spaces],
    })

List items may also be callables ``(value) -> str | None`` that return
an error message on failure. Unknown rule names are ignored.

Custom messages are keyed ``"field.rule"`` or ``"rule"`` and may use the
``:field`` and ``:param`` placeholders.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from wren.validation.result import ValidationResult
from wren.validation.rules import DEFAULT_MESSAGE, MESSAGES, RULES, UNSPLIT_PARAMS

type RuleSpec = str | Sequence[str | Callable[[Any], str | None]]


class Validator:
    """Validate a mapping of input against per-field rules."""

    def __init__(
        self,
        data: Mapping[str, Any],
        rules: Mapping[str, RuleSpec],
        messages: Mapping[str, str] | None = None,
    ) -> None:
        self.data = data
        self.rules = rules
        self.messages = dict(messages or {})
        self._errors: dict[str, list[str]] = {}
        self._validated: dict[str, Any] = {}
        self._run()

    def _run(self) -> None:
        for field, spec in self.rules.items():
            items = spec.split("|") if isinstance(spec, str) else list(spec)
            value = self.data.get(field)
            for item in items:
                if callable(item):
                    error = item(value)
                    if error is not None:
                        self._errors.setdefault(field, []).append(error)
                    continue
                name, params = _parse(item)
                rule = RULES.get(name)
                if rule is None:
                    continue
                if not rule(field, value, params, self.data):
                    self._errors.setdefault(field, []).append(self._message(field, name, params))
            if field not in self._errors and field in self.data:
                self._validated[field] = value

    def _message(self, field: str, rule: str, params: list[str]) -> str:
        template = (
            self.messages.get(f"{field}.{rule}")
            or self.messages.get(rule)
            or MESSAGES.get(rule, DEFAULT_MESSAGE)
        )
        return template.replace(":field", field).replace(":param", params[0] if params else "")

    def passes(self) -> bool:
        return not self._errors

    def fails(self) -> bool:
        return bool(self._errors)

    @property
    def errors(self) -> dict[str, list[str]]:
        return {field: list(messages) for field, messages in self._errors.items()}

    def validated(self) -> dict[str, Any]:
        """Values of the fields that passed every rule."""
        return dict(self._validated)

    def result(self) -> ValidationResult:
        return ValidationResult(data=self.validated(), errors=self.errors)


def _parse(rule: str) -> tuple[str, list[str]]:
    """``"min:5"`` gives ``("min", ["5"])``; ``"in:a,b"`` gives ``("in", ["a", "b"])``."""
    name, sep, raw = rule.strip().partition(":")
    if not sep:
        return name, []
    if name in UNSPLIT_PARAMS:
        return name, [raw]
    return name, raw.split(",")

"""Built-in validation rules.

Every rule is a predicate with the signature::

    def rule(field: str, value: object, params: list[str], data: Mapping) -> bool

and is looked up by name from ``RULES``. Rules other than ``required``,
``confirmed``, ``same`` and ``different`` accept an empty value; combine
them with ``required`` to demand presence.

``MESSAGES`` holds the default error message per rule, with ``:field``
and ``:param`` placeholders.
"""

import re
from collections.abc import Callable, Mapping
from decimal import Decimal, InvalidOperation
from urllib.parse import urlsplit

type Rule = Callable[[str, object, list[str], Mapping[str, object]], bool]

# Basic email pattern; checks structure, not deliverability
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9\-]+(\.[a-zA-Z0-9\-]+)*\.[a-zA-Z]{2,}$")
_INT_RE = re.compile(r"^[+-]?\d+$")


def _empty(value: object) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple, dict)) and not value)


def _number(value: object) -> Decimal | None:
    if isinstance(value, bool):
        return None
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        return None


def _size(value: object) -> Decimal | int | None:
    """Numeric strings compare by value, other strings and lists by length."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    if isinstance(value, str):
        number = _number(value)
        return number if number is not None and number.is_finite() else len(value)
    if isinstance(value, (list, tuple, dict)):
        return len(value)
    return None


# ---------------------------------------------------------------------------
# Presence and equality
# ---------------------------------------------------------------------------


def required(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    if isinstance(value, str):
        return value.strip() != ""
    return not _empty(value)


def confirmed(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    other = f"{field}_confirmation"
    return other in data and data[other] == value


def same(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    if not params:
        return False
    return params[0] in data and data[params[0]] == value


def different(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    if not params:
        return False
    return params[0] not in data or data[params[0]] != value


# ---------------------------------------------------------------------------
# Size
# ---------------------------------------------------------------------------


def min_(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    if _empty(value):
        return True
    size = _size(value)
    return size is not None and size >= Decimal(params[0] if params else "0")


def max_(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    if _empty(value):
        return True
    size = _size(value)
    return size is not None and size <= Decimal(params[0] if params else "0")


# ---------------------------------------------------------------------------
# Type and format
# ---------------------------------------------------------------------------


def numeric(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    if _empty(value):
        return True
    number = _number(value)
    return number is not None and number.is_finite()


def integer(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    if _empty(value):
        return True
    if isinstance(value, int) and not isinstance(value, bool):
        return True
    return isinstance(value, str) and _INT_RE.match(value.strip()) is not None


def string(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    return _empty(value) or isinstance(value, str)


def alpha(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    return _empty(value) or (isinstance(value, str) and value.isalpha())


def alpha_num(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    return _empty(value) or (isinstance(value, str) and value.isalnum())


def email(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    return _empty(value) or (isinstance(value, str) and _EMAIL_RE.match(value) is not None)


def url(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    if _empty(value):
        return True
    if not isinstance(value, str):
        return False
    parts = urlsplit(value)
    return bool(parts.scheme) and bool(parts.netloc or parts.path) and " " not in value


def in_(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    return _empty(value) or str(value) in params


def not_in(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    return _empty(value) or str(value) not in params


def regex(field: str, value: object, params: list[str], data: Mapping[str, object]) -> bool:
    if _empty(value):
        return True
    if not params:
        return False
    return re.search(params[0], str(value)) is not None


RULES: dict[str, Rule] = {
    "required": required,
    "email": email,
    "min": min_,
    "max": max_,
    "numeric": numeric,
    "integer": integer,
    "string": string,
    "alpha": alpha,
    "alpha_num": alpha_num,
    "in": in_,
    "not_in": not_in,
    "url": url,
    "confirmed": confirmed,
    "same": same,
    "different": different,
    "regex": regex,
}

# Rules whose parameter is one string that may itself contain commas
UNSPLIT_PARAMS = frozenset({"regex"})

MESSAGES: dict[str, str] = {
    "required": "The :field field is required.",
    "email": "The :field must be a valid email address.",
    "min": "The :field must be at least :param.",
    "max": "The :field may not be greater than :param.",
    "numeric": "The :field must be a number.",
    "integer": "The :field must be an integer.",
    "string": "The :field must be a string.",
    "alpha": "The :field may only contain letters.",
    "alpha_num": "The :field may only contain letters and numbers.",
    "in": "The selected :field is invalid.",
    "not_in": "The selected :field is invalid.",
    "url": "The :field must be a valid URL.",
    "confirmed": "The :field confirmation does not match.",
    "same": "The :field and :param must match.",
    "different": "The :field and :param must be different.",
    "regex": "The :field format is invalid.",
}

DEFAULT_MESSAGE = "The :field is invalid."

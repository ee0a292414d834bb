"""HTTP value types: Request, Response and their building blocks."""

from wren.http.headers import Headers
from wren.http.query import QueryParams
from wren.http.request import Request, normalize_path
from wren.http.response import Response, Terminated

__all__ = [
    "Headers",
    "QueryParams",
    "Request",
    "Response",
    "Terminated",
    "normalize_path",
]

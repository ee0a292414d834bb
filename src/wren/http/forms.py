"""Request body parsing: URL-encoded and multipart forms.

URL-encoded bodies parse like a query string; multipart bodies go
through ``python-multipart``. Both produce a ``QueryParams`` of string
fields plus a dict of ``UploadFile`` objects.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from python_multipart.multipart import MultipartParser, parse_options_header

from wren.errors import BadRequest
from wren.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class UploadFile:
    """A file field from a multipart form, held in memory."""

    filename: str
    content_type: str
    size: int
    _content: bytes

    @property
    def extension(self) -> str:
        """Lower-cased suffix without the dot (``"png"``), or ``""``."""
        return Path(self.filename).suffix.lstrip(".").lower()

    def read(self) -> bytes:
        return self._content

    def save(self, path: str | Path) -> Path:
        """Write the content to *path* (its directory must exist) and return it."""
        target = Path(path)
        target.write_bytes(self._content)
        return target

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


def parse_form_data(body: bytes, content_type: str) -> tuple[QueryParams, dict[str, UploadFile]]:
    """Split a form body into string fields and uploaded files.

    Anything other than a form encoding (JSON included, which
    ``Request.json()`` reads) gives empty results.

    Raises:
        BadRequest: The body is not valid UTF-8, or the multipart
            payload has no boundary or does not parse.
    """
    media_type = content_type.partition(";")[0].strip().lower()
    try:
        if media_type == "application/x-www-form-urlencoded":
            return QueryParams(body.decode("utf-8")), {}
        if media_type == "multipart/form-data":
            return _parse_multipart(body, content_type)
    except ValueError as exc:
        msg = f"Malformed {media_type} body: {exc}"
        raise BadRequest(msg) from exc
    return QueryParams(), {}


class _PartCollector:
    """python-multipart callbacks that sort parts into fields and files.

    Header names and values may arrive split across several callbacks,
    so both are buffered until ``on_header_end``.
    """

    def __init__(self) -> None:
        self.fields: dict[str, list[str]] = {}
        self.files: dict[str, UploadFile] = {}
        self._headers: dict[str, str] = {}
        self._header_name = bytearray()
        self._header_value = bytearray()
        self._body = bytearray()

    def callbacks(self) -> dict[str, Any]:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
        }

    def on_part_begin(self) -> None:
        self._headers = {}
        self._body = bytearray()

    def on_header_field(self, chunk: bytes, start: int, end: int) -> None:
        self._header_name.extend(chunk[start:end])

    def on_header_value(self, chunk: bytes, start: int, end: int) -> None:
        self._header_value.extend(chunk[start:end])

    def on_header_end(self) -> None:
        name = self._header_name.decode("latin-1").lower()
        self._headers[name] = self._header_value.decode("latin-1")
        self._header_name.clear()
        self._header_value.clear()

    def on_part_data(self, chunk: bytes, start: int, end: int) -> None:
        self._body.extend(chunk[start:end])

    def on_part_end(self) -> None:
        _, params = parse_options_header(self._headers.get("content-disposition", "").encode("latin-1"))
        name = params.get(b"name")
        if name is None:
            return
        field = name.decode("utf-8")
        filename = params.get(b"filename")
        if filename is None:
            self.fields.setdefault(field, []).append(self._body.decode("utf-8", errors="replace"))
            return
        content = bytes(self._body)
        self.files[field] = UploadFile(
            filename=filename.decode("utf-8"),
            content_type=self._headers.get("content-type", "application/octet-stream"),
            size=len(content),
            _content=content,
        )


def _parse_multipart(body: bytes, content_type: str) -> tuple[QueryParams, dict[str, UploadFile]]:
    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        msg = "Multipart form data missing boundary parameter"
        raise ValueError(msg)

    collector = _PartCollector()
    parser = MultipartParser(boundary, collector.callbacks())
    parser.write(body)
    parser.finalize()
    return QueryParams(data=collector.fields), collector.files

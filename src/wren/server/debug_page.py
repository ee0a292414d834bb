"""Self-contained debug error page renderer.

Renders the 500 page shown in debug mode without touching jinja2 or any
user template, using plain f-strings, so a broken template setup cannot
hide the error it caused.

The page shows:
- Exception type, message and originating ``file:line``
- Traceback with source context, locals and app-frame highlighting
- Template location for jinja2 syntax errors
- Request context (method, path, route parameters, query, headers)
- Editor-clickable file:line links (via the WREN_EDITOR env var)
"""

import html
import linecache
import os
import sys
import types
from typing import Any

_EDITOR_PRESETS: dict[str, str] = {
    "vscode": "vscode://file/__FILE__:__LINE__",
    "cursor": "cursor://file/__FILE__:__LINE__",
    "sublime": "subl://open?url=file://__FILE__&line=__LINE__",
    "pycharm": "pycharm://open?file=__FILE__&line=__LINE__",
}

# Headers whose values are masked in debug output
_SENSITIVE_HEADERS = frozenset({
    "authorization",
    "cookie",
    "proxy-authorization",
    "x-api-key",
    "x-auth-token",
    "x-csrf-token",
})


def _editor_url(filepath: str, lineno: int) -> str | None:
    """Build a clickable editor URL from WREN_EDITOR, or None if unset."""
    pattern = os.environ.get("WREN_EDITOR", "")
    if not pattern:
        return None
    pattern = _EDITOR_PRESETS.get(pattern.lower(), pattern)
    return pattern.replace("__FILE__", filepath).replace("__LINE__", str(lineno))


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _is_app_frame(filename: str) -> bool:
    """True if the frame is from the application (not stdlib/site-packages)."""
    if "site-packages" in filename or filename.startswith("<"):
        return False
    stdlib_prefix = os.path.dirname(os.__file__)
    return not filename.startswith(stdlib_prefix)


def extract_frames(tb: types.TracebackType | None) -> list[dict[str, Any]]:
    """Walk a traceback and collect frame info with source context and locals."""
    frames: list[dict[str, Any]] = []
    while tb is not None:
        frame = tb.tb_frame
        lineno = tb.tb_lineno
        filename = frame.f_code.co_filename

        source_lines: list[tuple[int, str]] = []
        for i in range(max(1, lineno - 5), lineno + 6):
            line = linecache.getline(filename, i, frame.f_globals)
            if line:
                source_lines.append((i, line.rstrip()))

        local_vars: dict[str, str] = {}
        for name, value in frame.f_locals.items():
            if name.startswith("__") and name.endswith("__"):
                continue
            try:
                r = repr(value)
            except Exception:  # a broken __repr__ must not break the error page
                r = "<unrepresentable>"
            local_vars[name] = r if len(r) <= 200 else r[:197] + "..."

        frames.append({
            "filename": filename,
            "lineno": lineno,
            "func_name": frame.f_code.co_name,
            "source_lines": source_lines,
            "locals": local_vars,
            "is_app": _is_app_frame(filename),
        })
        tb = tb.tb_next
    return frames


def error_location(exc: BaseException) -> tuple[str, int] | None:
    """The ``(filename, lineno)`` where *exc* was raised."""
    tb = exc.__traceback__
    if tb is None:
        return None
    while tb.tb_next is not None:
        tb = tb.tb_next
    return tb.tb_frame.f_code.co_filename, tb.tb_lineno


def _template_context(exc: BaseException) -> dict[str, Any] | None:
    """Location info from a jinja2 ``TemplateSyntaxError``, if that is what *exc* is."""
    if type(exc).__module__.split(".")[0] != "jinja2":
        return None
    lineno = getattr(exc, "lineno", None)
    ctx: dict[str, Any] = {
        "type": type(exc).__name__,
        "message": getattr(exc, "message", None) or str(exc),
        "template": getattr(exc, "filename", None) or getattr(exc, "name", None),
        "lineno": lineno,
    }
    source = getattr(exc, "source", None)
    if source and lineno:
        lines = source.splitlines()
        start = max(0, lineno - 3)
        end = min(len(lines), lineno + 2)
        ctx["source_lines"] = [(i + 1, lines[i]) for i in range(start, end)]
    return ctx


def _request_context(request: Any) -> dict[str, Any]:
    ctx: dict[str, Any] = {
        "method": getattr(request, "method", "?"),
        "path": getattr(request, "path", "?"),
        "ip": getattr(request, "ip", None),
    }
    headers = getattr(request, "headers", None)
    if headers:
        ctx["headers"] = [
            (name, "••••••••" if name.lower() in _SENSITIVE_HEADERS else str(value))
            for name, value in headers.items()
        ]
    query = getattr(request, "query", None)
    if query:
        ctx["query"] = [(str(k), str(v)) for k, v in query.items()]
    path_params = getattr(request, "path_params", None)
    if path_params:
        ctx["path_params"] = dict(path_params)
    return ctx


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

_CSS = """\
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: ui-monospace, Menlo, Consolas, monospace; background: #1e1f29; color: #c0c5d8;
       line-height: 1.6; padding: 2rem; font-size: 14px; }
.error-page { max-width: 960px; margin: 0 auto; }
h1 { color: #ff7a93; font-size: 1.4rem; margin-bottom: 0.5rem; }
h2 { color: #7aa7ff; font-size: 1.1rem; margin: 1.5rem 0 0.5rem; border-bottom: 1px solid #33374a; }
.exc-message { color: #e6b673; font-size: 1rem; margin-bottom: 0.5rem; white-space: pre-wrap; }
.exc-where { color: #6b7194; margin-bottom: 1rem; }
.frame { margin: 0.5rem 0; border: 1px solid #33374a; border-radius: 6px; overflow: hidden; }
.frame.app-frame { border-color: #7aa7ff; }
.frame-header { padding: 0.4rem 0.8rem; background: #272a3a; display: flex; justify-content: space-between; }
.frame-header a { color: #7dd3ff; text-decoration: none; }
.func { color: #c49cff; }
.app-badge { color: #a3d977; font-size: 0.75rem; margin-left: 0.5rem; }
.source-line { display: flex; padding: 0 0.8rem; font-size: 0.82rem; }
.source-line .lineno { color: #6b7194; min-width: 3.5rem; text-align: right; padding-right: 1rem; }
.source-line .code { white-space: pre; }
.source-line.error-line { background: rgba(255, 122, 147, 0.15); }
details.locals { padding: 0.3rem 0.8rem; font-size: 0.8rem; border-top: 1px solid #33374a; }
.row { display: flex; gap: 0.5rem; padding: 0.15rem 0; font-size: 0.85rem; }
.row .label { color: #7aa7ff; min-width: 140px; flex-shrink: 0; }
.row .val { word-break: break-all; white-space: pre-wrap; }
.panel { background: #272a3a; border-radius: 6px; padding: 0.8rem; margin: 0.5rem 0; }
.panel.template { border: 1px solid #e6b673; }
"""


def _esc(text: object) -> str:
    return html.escape(str(text), quote=True)


def _row(label: str, value: str) -> str:
    return f'<div class="row"><span class="label">{_esc(label)}</span><span class="val">{value}</span></div>'


def _render_source_lines(source_lines: list[tuple[int, str]], error_lineno: int) -> str:
    return "".join(
        f'<div class="source-line{" error-line" if lineno == error_lineno else ""}">'
        f'<span class="lineno">{lineno}</span><span class="code">{_esc(code)}</span></div>'
        for lineno, code in source_lines
    )


def _render_frame(frame: dict[str, Any]) -> str:
    filename = frame["filename"]
    lineno = frame["lineno"]
    location = f"{_esc(filename)}:{lineno}"
    editor_link = _editor_url(filename, lineno)
    if editor_link:
        location = f'<a href="{_esc(editor_link)}">{location}</a>'
    badge = '<span class="app-badge">APP</span>' if frame["is_app"] else ""
    css = "frame app-frame" if frame["is_app"] else "frame"

    locals_html = ""
    if frame["locals"]:
        rows = "".join(_row(name, _esc(value)) for name, value in frame["locals"].items())
        locals_html = f'<details class="locals"><summary>locals</summary>{rows}</details>'

    return (
        f'<div class="{css}">'
        f'<div class="frame-header"><span>{location}</span>'
        f'<span><span class="func">{_esc(frame["func_name"])}</span>{badge}</span></div>'
        f"<div>{_render_source_lines(frame['source_lines'], lineno)}</div>"
        f"{locals_html}</div>"
    )


def _render_template_panel(ctx: dict[str, Any]) -> str:
    parts = ['<div class="panel template">', _row("Template error", _esc(ctx["type"]))]
    parts.append(_row("Message", _esc(ctx["message"])))
    if ctx.get("template") or ctx.get("lineno"):
        where = _esc(ctx.get("template") or "<template>")
        if ctx.get("lineno"):
            where += f":{ctx['lineno']}"
        parts.append(_row("Location", where))
    if ctx.get("source_lines"):
        parts.append(_render_source_lines(ctx["source_lines"], ctx["lineno"]))
    parts.append("</div>")
    return "".join(parts)


def _render_request_panel(request: Any) -> str:
    ctx = _request_context(request)
    parts = ['<div class="panel">', _row("Request", f"{_esc(ctx['method'])} {_esc(ctx['path'])}")]
    if ctx.get("ip"):
        parts.append(_row("Client", _esc(ctx["ip"])))
    if ctx.get("path_params"):
        parts.append(_row("Route Params", _esc(", ".join(f"{k}={v!r}" for k, v in ctx["path_params"].items()))))
    if ctx.get("query"):
        parts.append(_row("Query", " ".join(f"{_esc(k)}={_esc(v)}" for k, v in ctx["query"])))
    if ctx.get("headers"):
        parts.append(_row("Headers", "<br>".join(f"{_esc(k)}: {_esc(v)}" for k, v in ctx["headers"])))
    parts.append("</div>")
    return "".join(parts)


def render_debug_page(exc: BaseException, request: Any) -> str:
    """Render a rich debug error page for *exc* raised while handling *request*."""
    exc_type = type(exc).__name__
    exc_module = type(exc).__module__ or ""
    qualified = f"{exc_module}.{exc_type}" if exc_module not in ("", "builtins") else exc_type
    message = str(exc)

    sections = [f"<h1>{_esc(qualified)}</h1>", f'<div class="exc-message">{_esc(message)}</div>']

    location = error_location(exc)
    if location is not None:
        sections.append(f'<div class="exc-where">in {_esc(location[0])} on line {location[1]}</div>')

    cause = exc.__cause__ or (None if exc.__suppress_context__ else exc.__context__)
    if cause is not None:
        sections.append(f'<div class="exc-where">caused by {_esc(type(cause).__name__)}: {_esc(cause)}</div>')

    template_ctx = _template_context(exc) or (_template_context(cause) if cause else None)
    if template_ctx:
        sections.append(_render_template_panel(template_ctx))

    frames = extract_frames(exc.__traceback__)
    if frames:
        sections.append("<h2>Stack trace</h2>")
        sections.extend(_render_frame(f) for f in frames)

    sections.append("<h2>Request</h2>")
    sections.append(_render_request_panel(request))

    from wren import __version__

    sections.append("<h2>Environment</h2>")
    sections.append(
        f'<div class="panel">{_row("Python", _esc(sys.version))}{_row("Wren", _esc(__version__))}</div>'
    )

    body_html = "\n".join(sections)
    return (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1">'
        f"<title>{_esc(qualified)}: {_esc(message[:80])}</title>"
        f"<style>{_CSS}</style>"
        f'</head><body><div class="error-page">{body_html}</div></body></html>'
    )

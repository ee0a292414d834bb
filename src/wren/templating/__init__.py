"""Templating: jinja2-backed views with dotted names and shared data."""

from wren.templating.view import View

__all__ = ["View"]

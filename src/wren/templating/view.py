"""Server-side views over a jinja2 environment.

View names use dots for directories: ``"users.index"`` renders
``users/index.html`` under the template directory. Layout inheritance
is jinja2's ``{% extends %}`` / ``{% block %}``::

    {# layouts/app.html #}
    <main>{% block content %}{% endblock %}</main>

    {# users/index.html #}
    {% extends "layouts/app.html" %}
    {% block content %}{% for u in users %}{{ u.name }}{% endfor %}{% endblock %}

The environment is created once by the App and lives as long as it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup, escape

from wren.config import AppConfig

EXTENSION = ".html"


class View:
    """Render named templates with shared data."""

    __slots__ = ("_env", "_shared", "extension")

    def __init__(
        self,
        directory: str | Path = "templates",
        *,
        autoescape: bool = True,
        auto_reload: bool = False,
        trim_blocks: bool = True,
        lstrip_blocks: bool = True,
        extension: str = EXTENSION,
        shared: Mapping[str, Any] | None = None,
    ) -> None:
        self.extension = extension
        self._shared: dict[str, Any] = dict(shared or {})
        self._env = Environment(
            loader=FileSystemLoader(str(directory)),
            autoescape=select_autoescape(default=True, default_for_string=True) if autoescape else False,
            auto_reload=auto_reload,
            trim_blocks=trim_blocks,
            lstrip_blocks=lstrip_blocks,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> View:
        return cls(
            config.template_dir,
            autoescape=config.autoescape,
            auto_reload=config.debug,
            trim_blocks=config.trim_blocks,
            lstrip_blocks=config.lstrip_blocks,
        )

    @property
    def environment(self) -> Environment:
        return self._env

    def template_name(self, name: str) -> str:
        """Map a dotted view name to a template path."""
        if name.endswith(self.extension):
            return name
        return name.replace(".", "/") + self.extension

    def render(self, name: str, data: Mapping[str, Any] | None = None) -> str:
        """Render view *name* with shared data overlaid by *data*.

        Raises:
            jinja2.TemplateNotFound: No such view.
        """
        template = self._env.get_template(self.template_name(name))
        return template.render({**self._shared, **(data or {})})

    def render_string(self, source: str, data: Mapping[str, Any] | None = None) -> str:
        return self._env.from_string(source).render({**self._shared, **(data or {})})

    def exists(self, name: str) -> bool:
        try:
            self._env.get_template(self.template_name(name))
        except TemplateNotFound:
            return False
        return True

    def share(self, key: str, value: Any) -> None:
        """Make *value* available to every view as *key*."""
        self._shared[key] = value

    def add_global(self, name: str, value: Any) -> None:
        self._env.globals[name] = value

    def add_filter(self, name: str, func: Callable[..., Any]) -> None:
        self._env.filters[name] = func

    @staticmethod
    def escape(value: Any) -> Markup:
        """HTML-escape *value* (already-safe markup passes through)."""
        return escape(value)

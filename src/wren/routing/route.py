"""A single route: verb set, URI template, compiled matcher and action.

Templates use ``{name}`` for a required segment and ``{name?}`` for an
optional one::

    /users/{id}                  matches /users/7             id="7"
    /post/{id}/comment/{cid?}    matches /post/4/comment/9    id="4", cid="9"
                                 matches /post/4/comment      id="4", cid=""

An optional segment that is empty and one that is missing both bind
``""``; the two cases are indistinguishable.

Routes are configured during registration (``with_prefix``,
``with_middleware``, ``named``) and read-only once dispatch begins.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from wren.container import Container
from wren.errors import ActionResolutionError, ConfigurationError, InvalidActionError
from wren.routing.actions import Action, ControllerAction, ControllerRegistry, parse_action

PARAMETER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)(\?)?\}")

REQUIRED_SEGMENT = "([^/]+)"
OPTIONAL_SEGMENT = "([^/]*)"


def normalize(template: str) -> str:
    """One leading slash, no trailing slash."""
    return "/" + template.strip("/")


def compile_template(template: str) -> tuple[re.Pattern[str], tuple[str, ...]]:
    """Compile a normalized URI template into a full-match regex.

    Returns the pattern and the parameter names in template order.
    A trailing ``/{name?}`` segment also matches when the slash itself
    is missing, so ``/users/{id?}`` accepts both ``/users/`` and
    ``/users``. Elsewhere the surrounding slashes stay literal:
    ``/a/{x?}/b`` matches ``/a//b`` but not ``/a/b``.

    Raises:
        ConfigurationError: A parameter name appears twice.
    """
    names: list[str] = []
    parts: list[str] = []
    pos = 0
    for m in PARAMETER.finditer(template):
        name, optional = m.group(1), m.group(2)
        if name in names:
            msg = f"Duplicate route parameter {{{name}}} in {template!r}"
            raise ConfigurationError(msg)
        names.append(name)

        literal = template[pos : m.start()]
        if optional and literal.endswith("/") and m.end() == len(template):
            parts.append(re.escape(literal[:-1]))
            parts.append(f"(?:/{OPTIONAL_SEGMENT})?")
        else:
            parts.append(re.escape(literal))
            parts.append(OPTIONAL_SEGMENT if optional else REQUIRED_SEGMENT)
        pos = m.end()
    parts.append(re.escape(template[pos:]))
    return re.compile("".join(parts)), tuple(names)


class Route:
    """One URI template bound to a set of HTTP methods and an action.

    Actions are callables, ``"Controller@method"`` strings or
    ``(ControllerClass, "method")`` pairs. Path parameters are always
    passed positionally, in the order they appear in the template.
    """

    __slots__ = (
        "_action",
        "_container",
        "_controller",
        "_controllers",
        "_methods",
        "_middleware",
        "_name",
        "_names",
        "_on_name",
        "_parameters",
        "_path",
        "_prefix",
        "_regex",
        "_target",
        "_uri",
    )

    def __init__(
        self,
        methods: Iterable[str],
        uri: str,
        action: Action,
        *,
        container: Container | None = None,
        controllers: ControllerRegistry | None = None,
        on_name: Callable[[str, Route], None] | None = None,
    ) -> None:
        verbs = tuple(dict.fromkeys(m.upper() for m in methods))
        if not verbs:
            msg = f"Route {uri!r} needs at least one HTTP method"
            raise ConfigurationError(msg)

        self._methods = verbs
        self._uri = uri
        self._action = action
        self._middleware: tuple[str, ...] = ()
        self._name: str | None = None
        self._prefix = ""
        self._parameters: dict[str, str] = {}
        self._container = container
        self._controllers = controllers
        self._on_name = on_name
        self._controller: type | None = None

        try:
            self._target: Callable[..., Any] | ControllerAction | None = parse_action(action)
        except InvalidActionError:
            self._target = None

        self.compile()

    # -- Properties --

    @property
    def methods(self) -> tuple[str, ...]:
        return self._methods

    @property
    def uri(self) -> str:
        """The raw template as registered, without prefix."""
        return self._uri

    @property
    def path(self) -> str:
        """The normalized ``prefix + uri`` template."""
        return self._path

    @property
    def pattern(self) -> re.Pattern[str]:
        return self._regex

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return self._names

    @property
    def parameters(self) -> dict[str, str]:
        """Parameters from the last ``extract_parameters`` call."""
        return dict(self._parameters)

    @property
    def action(self) -> Action:
        return self._action

    @property
    def action_name(self) -> str:
        """``Controller@method``, or the callable's qualified name."""
        if isinstance(self._target, ControllerAction):
            return str(self._target)
        return getattr(self._target, "__qualname__", None) or repr(self._action)

    @property
    def middleware(self) -> tuple[str, ...]:
        return self._middleware

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def is_literal(self) -> bool:
        return not self._names

    # -- Builders (registration phase) --

    def with_middleware(self, *names: str | Iterable[str]) -> Route:
        """Replace the middleware list. Accepts names or one iterable of names."""
        flat: list[str] = []
        for item in names:
            if isinstance(item, str):
                flat.append(item)
            else:
                flat.extend(item)
        self._middleware = tuple(flat)
        return self

    def named(self, name: str) -> Route:
        """Set the route name used by ``Router.route()``."""
        if self._on_name is not None:
            self._on_name(name, self)
        self._name = name
        return self

    def with_prefix(self, prefix: str) -> Route:
        """Set the path prefix and recompile the matcher."""
        self._prefix = normalize(prefix)
        self.compile()
        return self

    # -- Matching --

    def compile(self) -> None:
        """Rebuild the matcher from ``prefix + uri``."""
        parts = (self._prefix.strip("/"), self._uri.strip("/"))
        self._path = "/" + "/".join(p for p in parts if p)
        self._regex, self._names = compile_template(self._path)

    def matches(self, path: str, method: str) -> bool:
        """True if *method* is accepted and *path* matches the whole template."""
        if method.upper() not in self._methods:
            return False
        path = normalize(path)
        if not self._names and "{" not in self._path:
            return path == self._path
        return self._regex.fullmatch(path) is not None

    def extract_parameters(self, path: str) -> dict[str, str]:
        """Bind the captured segments of *path* to the parameter names.

        Call only after ``matches`` succeeded; the method is not checked.
        Returns ``{}`` when the path does not match.
        """
        m = self._regex.fullmatch(normalize(path))
        if m is None:
            return {}
        self._parameters = {
            name: value or "" for name, value in zip(self._names, m.groups(), strict=True)
        }
        return dict(self._parameters)

    # -- Action --

    def resolve(self) -> None:
        """Resolve a controller reference now instead of at first dispatch.

        No-op for callables.

        Raises:
            InvalidActionError: The action has an unusable shape.
            ActionResolutionError: The controller or its method is missing.
        """
        target = self._require_target()
        if isinstance(target, ControllerAction):
            controller = self._controller_class(target)
            if not callable(getattr(controller, target.method, None)):
                raise ActionResolutionError(
                    f"Method {target.method} not found in controller {target.controller_name}"
                )

    def run(self, parameters: Mapping[str, str] | Sequence[str] | None = None) -> Any:
        """Invoke the action with the path parameters, positionally.

        A mapping is read in ``parameter_names`` order; a sequence is
        passed through as is. Omitted, the last extracted parameters
        are used.
        """
        if parameters is None:
            parameters = self._parameters
        if isinstance(parameters, Mapping):
            args = [parameters[name] for name in self._names if name in parameters]
        else:
            args = list(parameters)

        target = self._require_target()
        if not isinstance(target, ControllerAction):
            return target(*args)

        controller = self._controller_class(target)
        instance = (self._container or Container()).resolve(controller)
        method = getattr(instance, target.method, None)
        if not callable(method):
            raise ActionResolutionError(
                f"Method {target.method} not found in controller {target.controller_name}"
            )
        return method(*args)

    def _require_target(self) -> Callable[..., Any] | ControllerAction:
        if self._target is None:
            raise InvalidActionError("Invalid route action")
        return self._target

    def _controller_class(self, target: ControllerAction) -> type:
        if self._controller is None:
            if isinstance(target.controller, type):
                self._controller = target.controller
            else:
                registry = self._controllers or ControllerRegistry()
                self._controller = registry.resolve(target.controller)
        return self._controller

    def __repr__(self) -> str:
        methods = ",".join(self._methods)
        name = f" name={self._name!r}" if self._name else ""
        return f"<Route {methods} {self._path}{name}>"

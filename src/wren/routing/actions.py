"""Controller references and their lookup table.

A route action can name a controller method instead of holding a
callable: ``"UserController@show"`` or ``(UserController, "show")``.
``ControllerRegistry`` maps controller names to classes. Names are
looked up in the registered table first, then by module convention
under the configured namespace package::

    registry = ControllerRegistry(namespace="app.controllers")
    registry.resolve("UserController")        # app.controllers:UserController
    registry.resolve("admin.UserController")  # app.controllers.admin:UserController
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from wren.errors import ActionResolutionError, InvalidActionError

logger = logging.getLogger("wren.routing")

type Action = Callable[..., Any] | str | tuple[type | str, str]


@dataclass(frozen=True, slots=True)
class ControllerAction:
    """A parsed ``Controller@method`` reference."""

    controller: type | str
    method: str

    @property
    def controller_name(self) -> str:
        if isinstance(self.controller, type):
            return self.controller.__name__
        return self.controller

    def __str__(self) -> str:
        return f"{self.controller_name}@{self.method}"


def parse_action(action: Any) -> Callable[..., Any] | ControllerAction:
    """Normalize a route action.

    Raises:
        InvalidActionError: *action* is not callable, not a
            ``"Controller@method"`` string and not a
            ``(controller, "method")`` pair.
    """
    if isinstance(action, str):
        controller, sep, method = action.partition("@")
        if sep and controller and method and "@" not in method:
            return ControllerAction(controller, method)
        raise InvalidActionError("Invalid route action")
    if isinstance(action, tuple) and len(action) == 2:
        controller, method = action
        if isinstance(controller, (type, str)) and isinstance(method, str) and method:
            return ControllerAction(controller, method)
        raise InvalidActionError("Invalid route action")
    if callable(action):
        return action
    raise InvalidActionError("Invalid route action")


class ControllerRegistry:
    """Controller name to class lookup table."""

    __slots__ = ("_controllers", "namespace")

    def __init__(self, namespace: str | None = None) -> None:
        self.namespace = namespace
        self._controllers: dict[str, type] = {}

    def register(self, controller: type, name: str | None = None) -> type:
        """Add *controller* under *name* (default: its class name).

        Returns the class, so it also works as a decorator.
        """
        self._controllers[name or controller.__name__] = controller
        return controller

    def __contains__(self, name: object) -> bool:
        return name in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)

    def resolve(self, name: str) -> type:
        """Return the controller class registered or importable as *name*.

        Raises:
            ActionResolutionError: Nothing by that name exists.
        """
        controller = self._controllers.get(name)
        if controller is not None:
            return controller

        controller = self._import(name)
        if controller is None:
            msg = f"Controller {name} not found"
            raise ActionResolutionError(msg)
        self._controllers[name] = controller
        return controller

    def _import(self, name: str) -> type | None:
        module_part, _, attr = name.rpartition(".")
        if self.namespace:
            module_path = f"{self.namespace}.{module_part}" if module_part else self.namespace
        elif module_part:
            module_path = module_part
        else:
            return None
        try:
            module = importlib.import_module(module_path)
        except ModuleNotFoundError as exc:
            # Only a miss on the module we asked for; broken imports inside it propagate
            if exc.name and module_path.startswith(exc.name):
                logger.debug("No controller module %s for %s", module_path, name)
                return None
            raise
        obj = getattr(module, attr, None)
        return obj if isinstance(obj, type) else None

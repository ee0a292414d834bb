"""Dependency-injection container.

Resolves classes by reading their constructor signatures and building
each annotated dependency in turn. Bindings map a key (a class or a
string name) to a factory; singletons cache the first instance.

Request-scoped instances (the current ``Request``, its ``Session``)
are provided with ``scope()``, which keeps them in a ``ContextVar``
so concurrent requests never see each other's values.

Usage::

    container = Container()
    container.singleton(View, lambda c: View("templates"))

    with container.scope({Request: request}):
        controller = container.resolve(UserController)
"""

from __future__ import annotations

import inspect
import types
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from itertools import count
from typing import Any, Union, get_args, get_origin

from wren.errors import ResolutionError

type Key = type | str
type Factory = Callable[[Container], Any]

_EMPTY = inspect.Parameter.empty
_container_ids = count()


@dataclass(frozen=True, slots=True)
class _Binding:
    factory: Factory | type
    shared: bool


class Container:
    """A small reflection-based service container."""

    __slots__ = ("_aliases", "_bindings", "_instances", "_scoped")

    def __init__(self) -> None:
        self._bindings: dict[Key, _Binding] = {}
        self._instances: dict[Key, Any] = {}
        self._aliases: dict[str, Key] = {}
        self._scoped: ContextVar[Mapping[Key, Any]] = ContextVar(
            f"wren_container_scope_{next(_container_ids)}", default={}
        )

    # -- Registration --

    def bind(self, key: Key, factory: Factory | type | None = None, *, shared: bool = False) -> None:
        """Register how to build *key*.

        *factory* is a class (built with injection) or a callable taking
        the container. Omitted, *key* itself must be a class.
        """
        if factory is None:
            if not isinstance(key, type):
                msg = f"Binding {key!r} needs a factory"
                raise ResolutionError(msg)
            factory = key
        self._instances.pop(key, None)
        self._bindings[key] = _Binding(factory, shared)

    def singleton(self, key: Key, factory: Factory | type | None = None) -> None:
        """Like ``bind`` but the first resolved instance is reused."""
        self.bind(key, factory, shared=True)

    def instance(self, key: Key, value: Any) -> None:
        """Register an already-built object."""
        self._instances[key] = value

    def alias(self, name: str, key: Key) -> None:
        """Make *name* resolve to whatever *key* resolves to."""
        self._aliases[name] = key

    def has(self, key: Key) -> bool:
        key = self._aliases.get(key, key) if isinstance(key, str) else key
        return key in self._scoped.get() or key in self._instances or key in self._bindings

    def flush(self) -> None:
        """Forget every binding, instance and alias."""
        self._bindings.clear()
        self._instances.clear()
        self._aliases.clear()

    @contextmanager
    def scope(self, instances: Mapping[Key, Any]) -> Iterator[Container]:
        """Provide request-scoped instances for the duration of a block."""
        token = self._scoped.set({**self._scoped.get(), **instances})
        try:
            yield self
        finally:
            self._scoped.reset(token)

    # -- Resolution --

    def resolve(self, key: Key) -> Any:
        """Return an instance for *key*.

        Raises:
            ResolutionError: *key* is an unbound name, or a class whose
                constructor needs something the container cannot build.
        """
        return self._make(key, ())

    make = resolve

    def build(self, cls: type) -> Any:
        """Instantiate *cls* with injected constructor arguments, ignoring bindings."""
        return self._build(cls, ())

    def call(self, func: Callable[..., Any], /, **overrides: Any) -> Any:
        """Call *func*, injecting parameters by annotation.

        Keyword *overrides* win over injection.
        """
        kwargs = self._arguments(func, overrides, ())
        return func(**kwargs)

    def _make(self, key: Key, chain: tuple[Key, ...]) -> Any:
        if isinstance(key, str):
            key = self._aliases.get(key, key)

        scoped = self._scoped.get()
        if key in scoped:
            return scoped[key]
        if key in self._instances:
            return self._instances[key]

        if key in chain:
            path = " -> ".join(_name(k) for k in (*chain, key))
            msg = f"Circular dependency: {path}"
            raise ResolutionError(msg)
        chain = (*chain, key)

        binding = self._bindings.get(key)
        if binding is not None:
            if isinstance(binding.factory, type):
                obj = self._build(binding.factory, chain)
            else:
                obj = binding.factory(self)
            if binding.shared:
                self._instances[key] = obj
            return obj

        if isinstance(key, type):
            return self._build(key, chain)

        msg = f"Target [{key}] is not bound in the container"
        raise ResolutionError(msg)

    def _build(self, cls: type, chain: tuple[Key, ...]) -> Any:
        if inspect.isabstract(cls):
            msg = f"Target [{_name(cls)}] is abstract and cannot be instantiated"
            raise ResolutionError(msg)
        kwargs = self._arguments(cls, {}, chain)
        return cls(**kwargs)

    def _arguments(
        self,
        target: Callable[..., Any],
        overrides: Mapping[str, Any],
        chain: tuple[Key, ...],
    ) -> dict[str, Any]:
        try:
            sig = inspect.signature(target, eval_str=True)
        except NameError:
            # Annotation names only imported under TYPE_CHECKING
            sig = inspect.signature(target)
        except ValueError:
            return dict(overrides)

        kwargs: dict[str, Any] = {}
        for name, param in sig.parameters.items():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if name in overrides:
                kwargs[name] = overrides[name]
                continue

            annotation = _unwrap_optional(param.annotation)
            has_default = param.default is not _EMPTY

            if annotation is _EMPTY or not _is_injectable(annotation):
                if has_default:
                    continue
                msg = (
                    f"Unresolvable dependency [{name}] "
                    f"in {_name(target)}: no usable type annotation"
                )
                raise ResolutionError(msg)

            if has_default and not self.has(annotation):
                continue
            kwargs[name] = self._make(annotation, chain)
        return kwargs


def _unwrap_optional(annotation: Any) -> Any:
    """``X | None`` (or ``Optional[X]``) becomes ``X``."""
    if isinstance(annotation, types.UnionType) or get_origin(annotation) is Union:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _is_injectable(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return True
    return isinstance(annotation, type) and annotation.__module__ != "builtins"


def _name(obj: Any) -> str:
    return getattr(obj, "__qualname__", None) or str(obj)

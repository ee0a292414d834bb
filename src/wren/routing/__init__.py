"""Routing: URI templates, the route registry and request dispatch."""

from wren.routing.actions import ControllerAction, ControllerRegistry, parse_action
from wren.routing.route import Route, compile_template
from wren.routing.router import ALL_METHODS, Router, to_response

__all__ = [
    "ALL_METHODS",
    "ControllerAction",
    "ControllerRegistry",
    "Route",
    "Router",
    "compile_template",
    "parse_action",
    "to_response",
]

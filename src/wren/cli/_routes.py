"""``wren routes``: list registered routes.

Prints one row per route with its methods, path, action, name and
middleware, in registration order (which is match priority).
"""

import argparse
import sys

from wren.cli._resolve import resolve_app
from wren.errors import WrenError
from wren.routing.route import Route

HEADERS = ("METHOD", "PATH", "ACTION", "NAME", "MIDDLEWARE")


def route_rows(routes: tuple[Route, ...]) -> list[tuple[str, ...]]:
    return [
        (
            "|".join(route.methods),
            route.path,
            route.action_name,
            route.name or "",
            ", ".join(route.middleware),
        )
        for route in routes
    ]


def run_routes(args: argparse.Namespace) -> None:
    """Resolve ``args.app``, check its controllers and print the route table."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        app.freeze()
    except WrenError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    rows = route_rows(app.router.routes)
    if not rows:
        print("No routes registered.")
        return

    widths = [max(len(HEADERS[i]), *(len(row[i]) for row in rows)) for i in range(len(HEADERS))]
    fmt = "  ".join(f"{{:<{w}}}" for w in widths)
    print(fmt.format(*HEADERS).rstrip())
    print("-" * min(sum(widths) + 2 * (len(widths) - 1), 100))
    for row in rows:
        print(fmt.format(*row).rstrip())

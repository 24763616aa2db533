"""
Route table introspection.
"""

from typing import Iterable, Iterator, Tuple

from fastapi import FastAPI
from starlette.routing import BaseRoute, Mount, Route, WebSocketRoute


def iter_routes(routes: Iterable[BaseRoute], prefix: str = "") -> Iterator[Tuple[str, str]]:
    """Yield ``(methods, path)`` for every route.

    Descends into mounted applications and into routers that FastAPI keeps
    as a single included entry.
    """
    for route in routes:
        if isinstance(route, Mount):
            yield from iter_routes(route.routes, prefix + route.path)
        elif isinstance(route, WebSocketRoute):
            yield "WS", prefix + route.path
        elif isinstance(route, Route):
            # raw ASGI endpoints accept any method
            methods = route.methods or ["*"]
            yield ",".join(sorted(methods)), prefix + route.path
        elif hasattr(route, "original_router"):
            yield from iter_routes(route.original_router.routes, prefix + (route.include_context.prefix or ""))
        else:
            yield "*", prefix + route.path


def log_routes(app: FastAPI, logger) -> None:
    """Emit one debug line per registered route."""
    logger.debug("added new routes")
    for methods, path in iter_routes(app.routes):
        logger.debug(f"{methods} -> {path}")

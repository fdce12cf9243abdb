"""
LifeMon Backend — Route-Group Registry
========================================

What:  The fixed table of route groups and the code that mounts them.
How:   Each entry names a module that must export `router` (an APIRouter).
       Every entry is loaded at startup and tagged available/unavailable.
Who:   lifemon.main.create_app(); the report is served by GET /health.

Route Inventory:
    users           /api/users          lifemon.routes.users
    food_logs       /api/food-logs      lifemon.routes.food_logs
    sleep_logs      /api/sleep-logs     lifemon.routes.sleep_logs
    exercise_logs   /api/exercise-logs  lifemon.routes.exercise_logs
    reports         /api/laporan        lifemon.routes.reports
    admin           /api/admin          lifemon.routes.admin
    chat            /api/chat           lifemon.routes.chat
    journals        /api/journals       lifemon.routes.journals

Degradation:
    A group whose module cannot be imported, or that exports no APIRouter, is
    not mounted; its prefix answers 404 and startup continues. The failure is
    logged and reported with state="unavailable".
"""

import importlib
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from fastapi import APIRouter, FastAPI

from lifemon.schemas.common import RouteGroupStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteGroup:
    name: str
    prefix: str
    module: str


ROUTE_GROUPS = (
    RouteGroup("users", "/api/users", "lifemon.routes.users"),
    RouteGroup("food_logs", "/api/food-logs", "lifemon.routes.food_logs"),
    RouteGroup("sleep_logs", "/api/sleep-logs", "lifemon.routes.sleep_logs"),
    RouteGroup("exercise_logs", "/api/exercise-logs", "lifemon.routes.exercise_logs"),
    RouteGroup("reports", "/api/laporan", "lifemon.routes.reports"),
    RouteGroup("admin", "/api/admin", "lifemon.routes.admin"),
    RouteGroup("chat", "/api/chat", "lifemon.routes.chat"),
    RouteGroup("journals", "/api/journals", "lifemon.routes.journals"),
)


def load_route_group(group: RouteGroup) -> Tuple[Optional[APIRouter], RouteGroupStatus]:
    """
    Import one route group.

    Returns:
        (router or None, RouteGroupStatus). Never raises: a broken module is
        reported, not propagated.
    """
    try:
        module = importlib.import_module(group.module)
    except Exception as e:
        logger.error(
            "Route group '%s' failed to load from %s: %s",
            group.name,
            group.module,
            str(e),
            exc_info=not isinstance(e, ModuleNotFoundError),
        )
        return None, RouteGroupStatus(
            name=group.name,
            prefix=group.prefix,
            state="unavailable",
            error=f"{type(e).__name__}: {e}",
        )

    router = getattr(module, "router", None)
    if not isinstance(router, APIRouter):
        logger.error("Route group '%s' (%s) does not export an APIRouter", group.name, group.module)
        return None, RouteGroupStatus(
            name=group.name,
            prefix=group.prefix,
            state="unavailable",
            error="module does not export an APIRouter named 'router'",
        )

    return router, RouteGroupStatus(name=group.name, prefix=group.prefix, state="available")


def mount_route_groups(app: FastAPI, groups: Iterable[RouteGroup]) -> List[RouteGroupStatus]:
    """Mount every loadable group under its prefix and record the report on app.state."""
    report: List[RouteGroupStatus] = []
    for group in groups:
        router, status = load_route_group(group)
        if router is not None:
            app.include_router(router, prefix=group.prefix)
        report.append(status)

    available = [s.name for s in report if s.state == "available"]
    unavailable = [s.name for s in report if s.state == "unavailable"]
    logger.info("Route groups mounted: %s", ", ".join(available) or "none")
    if unavailable:
        logger.warning("Route groups unavailable (404 on their prefix): %s", ", ".join(unavailable))

    app.state.route_groups = report
    return report

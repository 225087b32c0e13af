"""
Dynamic route loader for the dashboard backend
"""

import importlib
import logging
from pathlib import Path

from fastapi import APIRouter, FastAPI

logger = logging.getLogger(__name__)

ROUTES_PACKAGE = "shoulders_platform.dashboard.routes"


def _route_modules() -> list[str]:
    routes_dir = Path(__file__).parent / "routes"
    if not routes_dir.exists():
        logger.warning("Routes directory not found: %s", routes_dir)
        return []
    return sorted(
        f.stem
        for f in routes_dir.glob("*.py")
        if f.name != "__init__.py" and not f.name.startswith("_")
    )


def load_routes(app: FastAPI) -> None:
    """
    Include the router of every module in the routes package.

    Each route module must have a 'router' attribute that is a FastAPI APIRouter instance.
    """
    for stem in _route_modules():
        module_name = f"{ROUTES_PACKAGE}.{stem}"
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            logger.error("Failed to import route module %s: %s", module_name, e)
            continue

        router = getattr(module, "router", None)
        if isinstance(router, APIRouter):
            app.include_router(router)
            logger.info("Loaded router from module: %s", module_name)
        elif router is not None:
            logger.warning(
                "Module %s has 'router' attribute but it's not an APIRouter instance",
                module_name,
            )
        else:
            logger.debug("Module %s does not have a 'router' attribute, skipping", module_name)

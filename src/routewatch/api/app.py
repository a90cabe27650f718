from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routewatch.api.routes_reports import router as reports_router
from routewatch.api.routes_routes import router as routes_router
from routewatch.logging_config import configure_logging
from routewatch.settings import get_config


def create_app() -> FastAPI:
    configure_logging()
    config = get_config()

    app = FastAPI(title="RouteWatch API", version="0.1.0")

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(reports_router, tags=["reports"])
    app.include_router(routes_router, tags=["routes"])

    return app

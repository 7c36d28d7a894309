import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orchestration.routes import orchestration

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    return [origin.strip() for origin in origins_env.split(",") if origin.strip()]


def create_app() -> FastAPI:
    app = FastAPI(title="Workload Orchestration API", version="0.1.0")

    log_level = os.getenv("ORCHESTRATION_LOG_LEVEL")
    if log_level:
        logging.getLogger("orchestration").setLevel(log_level.upper())

    # same-origin only unless a planner UI is configured
    origins = _cors_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET", "POST"],
            allow_headers=["Content-Type"],
        )

    app.include_router(orchestration.router, prefix=API_PREFIX)

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """List the orchestration entry points."""
        base = f"{API_PREFIX}{orchestration.router.prefix}"
        return JSONResponse(
            {
                "message": "Workload Orchestration API",
                "docs": "/docs",
                "schedules": f"{base}/schedules",
                "log": f"{base}/log",
                "statistics": f"{base}/statistics",
            }
        )

    return app


app = create_app()

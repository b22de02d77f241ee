"""
Main application module for the netfold backend.

This file sets up the FastAPI application, configures CORS so browser
clients can make cross-origin requests and exposes a simple health
check endpoint.  Routers for the model and unfold APIs are included
under the ``/api`` namespace.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes_models import router as models_router
from .api.routes_unfold import router as unfold_router

# The init_db function creates tables in the SQLite database if they do
# not already exist.
from .services.models_store import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create the SQLite schema before any request is processed.  The
    # call is idempotent.
    init_db()
    yield


def create_app() -> FastAPI:
    """Factory to create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app = FastAPI(title="netfold", lifespan=lifespan)

    # Allow all origins by default.  In production you should restrict
    # this to the domains that are allowed to access your API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(models_router, prefix="/api", tags=["models"])
    app.include_router(unfold_router, prefix="/api", tags=["unfold"])

    return app


# Create the application instance.  Uvicorn will import this when
# running ``uvicorn netfold.main:app`` from within the backend directory.
app = create_app()

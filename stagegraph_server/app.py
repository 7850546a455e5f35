"""FastAPI application for storing pipeline descriptors and serving graph queries."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stagegraph.config import get_settings
from stagegraph.logging import configure_logging
from stagegraph_server.db import init_all
from stagegraph_server.descriptor_routes import router as descriptor_router
from stagegraph_server.policy_routes import router as policy_router

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and initialize database tables on startup."""
    configure_logging()
    init_all()
    yield


app = FastAPI(
    title="Stagegraph API",
    description="API server for pipeline descriptors, stage graphs and notification policies",
    version=VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routes
app.include_router(descriptor_router, prefix="/api")
app.include_router(policy_router, prefix="/api")


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": VERSION,
        "db": str(get_settings().db_path),
        "endpoints": {
            "descriptors": "/api/pipeline-yaml",
            "graph": "/api/pipeline-yaml/{id}/graph",
            "config_fields": "/api/pipeline-yaml/{id}/config-fields",
            "notification_policies": "/api/pipelines/{id}/notification-policies",
        },
    }


def main() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()

"""
FastAPI service exposing the workflow execution engine.

Graph editing, manual and scheduled runs, abort, and the execution log.
"""

from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from nodeflow import __version__
from nodeflow.core.container import container
from nodeflow.core.logging import configure_logging, get_logger
from nodeflow.routers import workflow

# Initialize settings and logging
settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting nodeflow service",
                script_engine=settings.script_engine,
                http_timeout=settings.http_timeout)
    yield

    # Timers are per-controller; stop them before the loop goes away
    container.workflow_service().shutdown()
    logger.info("Services shutdown complete")


app = FastAPI(
    title="nodeflow",
    version=__version__,
    description="Workflow execution engine: graph ordering, action dispatch, schedules and execution log",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled exception: {type(e).__name__}: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error": f"{type(e).__name__}: {str(e)}",
                    "detail": "Internal server error"
                }
            )


app.add_middleware(CatchAllExceptionsMiddleware)

logger.info("Configuring CORS middleware",
            origins_count=len(settings.cors_origins),
            origins=settings.cors_origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(workflow.router)


@app.get("/health")
async def health_check():
    """Detailed health check."""
    workflow_service = container.workflow_service()
    return {
        "status": "OK",
        "service": "nodeflow",
        "version": __version__,
        "environment": "development" if settings.is_development else "production",
        "script_engine": settings.script_engine,
        "workflow_state": workflow_service.state,
        "timestamp": datetime.now().isoformat()
    }


def run() -> None:
    """Console entry point."""
    import uvicorn
    logger.info("Starting nodeflow service",
                host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "nodeflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()

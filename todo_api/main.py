from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from .api.errors import register_exception_handlers
from .api.middleware import RequestIDMiddleware
from .api.v1.api import router as api_router
from .core.config import settings
from .core.logging import configure_logging
from .db.session import create_db_and_tables

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on startup
    create_db_and_tables()
    logger.info("application started", environment=settings.ENVIRONMENT)
    yield


def create_app() -> FastAPI:
    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Personal task management API with ordered, filterable task lists",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    register_exception_handlers(app)

    # Include API routers
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def read_root():
        return {"message": settings.PROJECT_NAME}

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("todo_api.main:app", host=settings.HOST, port=settings.PORT)

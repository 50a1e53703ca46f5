"""
Video interview API.

Middleware, outermost first: error boundary, request logging, bearer token
authentication, CORS. Routers are mounted under ``settings.api_prefix``
except the health probes.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    StructuredLoggingMiddleware,
    setup_error_handlers,
    setup_logging,
)
from database.engine import init_db, close_db
from api.routes import health
from api.routes.v1 import interviews, questions, roles

setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} ({settings.app_env})")
    await init_db()
    yield
    logger.info(f"Shutting down {settings.app_name}")
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Asynchronous pre-recorded video interviews",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

setup_error_handlers(app)

# add_middleware wraps, so the last one added runs first.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    # The browser player needs these to seek within proxied videos
    expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
)
app.add_middleware(
    AuthenticationMiddleware,
    jwt_secret=settings.jwt_secret_key,
    jwt_algorithm=settings.jwt_algorithm,
)
app.add_middleware(
    StructuredLoggingMiddleware,
    log_request_body=settings.log_request_body,
    max_body_size=settings.log_max_body_size,
)
app.add_middleware(ErrorHandlingMiddleware, debug=settings.debug)

app.include_router(health.router, tags=["Health"])
for router in (roles.router, questions.router, interviews.router):
    app.include_router(router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )

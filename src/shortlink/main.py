from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from src.shortlink.api.endpoints import users, links
from src.shortlink.api.deps import get_db, get_cache, get_request_settings
from src.shortlink.core.config import Settings, get_settings, get_redis, logger
from src.shortlink.db.session import create_db_engine, create_session_factory
from src.shortlink.middleware.logging import LoggingMiddleware
from src.shortlink.services.exceptions import NotFoundError, ServiceError
from src.shortlink.services.link_service import get_link_by_short_code


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # Both block: create_all round-trips to the store, get_redis sleeps between retries.
    engine = await run_in_threadpool(create_db_engine, settings.DATABASE_URL)
    app.state.session_factory = create_session_factory(engine)
    app.state.cache = await run_in_threadpool(get_redis, settings)
    logger.info("DB connected")

    yield

    app.state.cache.close()
    engine.dispose()
    logger.info("DB connection closed")


async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"msg": "Server error"})
    return JSONResponse(status_code=exc.status_code, content={"msg": exc.message})


async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"msg": "Server error"}
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"msg": "Server error"}
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected body on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"msg": "Invalid request body"}
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"msg": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def redirect_to_url(
    short_code: str,
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
    settings: Settings = Depends(get_request_settings),
):
    """Redirect a short code to the URL it was created for."""
    link = get_link_by_short_code(db, cache, short_code, settings.CACHE_TTL_SECONDS)
    if not link:
        raise NotFoundError("URL not found")

    return RedirectResponse(link.original_url, status_code=status.HTTP_302_FOUND)


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    The store and the cache are connected in the lifespan, not here, so
    building an app has no side effects.
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.LOG_LEVEL.upper())

    app = FastAPI(
        title="Shortlink API",
        description="""
    Authenticated URL shortening service.

    * Register and log in to get a token for the `x-auth-token` header
    * Shorten, list and delete your links
    * `GET /{shortUrl}` redirects anyone to the original URL
    """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["x-auth-token", "Content-Type"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(users.router, prefix="/api/user", tags=["users"])
    app.include_router(links.router, prefix="/api/url", tags=["links"])
    app.add_api_route("/{short_code}", redirect_to_url, methods=["GET"], tags=["redirect"])

    return app


app = create_app()


def run():
    settings = get_settings()
    logger.info(f"Server running on port {settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from artworks import router as artworks_router
from artworks.repository import ArtworkRepository, RecordStore
from artworks.service import ArtworkService
from core.db import Database
from core.errors import StoreError
from core.settings import Settings, load_settings
from core.storage import LOCAL_URL_PREFIX, LocalObjectStore, ObjectStore, create_object_store

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg', 'invalid value')}" if location else str(first.get("msg"))


async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse({"error": _validation_message(exc)}, status_code=400)


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("store_error method=%s path=%s error=%s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=500)


def create_app(
    settings: Settings | None = None,
    *,
    records: RecordStore | None = None,
    objects: ObjectStore | None = None,
) -> FastAPI:
    """
    Build the application.

    `records` and `objects` replace the PostgreSQL repository and the
    configured object store; when `records` is given no database pool is
    opened.
    """
    settings = settings or load_settings()
    if objects is None:
        objects = create_object_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database: Database | None = None
        record_store = records
        if record_store is None:
            database = Database(
                settings.database_url,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                command_timeout=settings.db_command_timeout_s,
            )
            await database.connect()
            repository = ArtworkRepository(database)
            await repository.ensure_schema()
            record_store = repository

        if isinstance(objects, LocalObjectStore):
            objects.root.mkdir(parents=True, exist_ok=True)

        app.state.artworks = ArtworkService(
            record_store,
            objects,
            max_upload_bytes=settings.max_upload_bytes,
        )
        try:
            yield
        finally:
            await objects.close()
            if database is not None:
                await database.close()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Every failure response carries an `error` field.
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)

    app.include_router(artworks_router.router, tags=["artworks"])

    if isinstance(objects, LocalObjectStore):
        app.mount(
            LOCAL_URL_PREFIX,
            StaticFiles(directory=Path(objects.root), check_dir=False),
            name="uploads",
        )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


def serve() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("server_starting host=%s port=%s env=%s", settings.host, settings.port, settings.environment)
    uvicorn.run("main:create_app", factory=True, host=settings.host, port=settings.port)


if __name__ == "__main__":
    serve()

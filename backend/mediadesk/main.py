"""MediaDesk FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from mediadesk import __version__
from mediadesk.config import settings
from mediadesk.database import init_db
from mediadesk.services import get_asset_store, init_services, shutdown_services
from mediadesk.services.asset_store import AssetStoreError, LocalAssetStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # === STARTUP ===
    _setup_logging()

    # Ensure data directories exist
    for d in (settings.data_dir, settings.upload_dir, settings.log_dir):
        Path(d).mkdir(parents=True, exist_ok=True)

    await init_db()
    logger.info("MediaDesk v%s started — listening on %s:%s", __version__, settings.host, settings.port)

    await init_services()

    try:
        yield
    finally:
        # === SHUTDOWN ===
        await shutdown_services()
        logger.info("MediaDesk shutting down")


def _setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Noisy third-party loggers to WARNING
    for noisy in ("aiosqlite", "httpx", "httpcore", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def create_app() -> FastAPI:
    """Application factory."""
    from mediadesk.api.routes import api_router

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        debug=settings.debug,
        lifespan=_lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    if settings.is_dev_mode:
        # Local asset store files, addressed by CDN-shaped URLs
        @app.get("/files/upload/{version}/{file_path:path}", include_in_schema=False)
        async def _local_asset(version: str, file_path: str):
            store = get_asset_store()
            if not isinstance(store, LocalAssetStore):
                raise HTTPException(404, "Not found")
            try:
                target = store.resolve_file(file_path)
            except AssetStoreError:
                raise HTTPException(404, "Not found")
            if not target.is_file():
                raise HTTPException(404, "Not found")
            return FileResponse(target)

        logger.info("Dev mode — serving local assets under /files")

    return app


app = create_app()


def run(**kwargs: Any) -> None:
    import uvicorn

    uvicorn.run(
        "mediadesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        **kwargs,
    )


if __name__ == "__main__":
    run()

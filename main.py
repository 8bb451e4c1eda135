from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from api.middleware import auth_and_log
from api.routes.files import router as files_router
from core.config import Settings
from core.exceptions import NotFoundError, PermissionDeniedError, RangeNotSatisfiableError
from core.logging_config import get_logger, setup_logging
from services.auth import AuthGate
from services.request_log import RequestLogger
from services.thumbnails import ThumbnailCache

logger = get_logger(__name__)


async def not_found_handler(request: Request, exc: NotFoundError):
    # escapes and missing paths look identical to the client
    logger.debug(f"Not found: {exc}")
    return PlainTextResponse("Not Found", status_code=404)


async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
    logger.debug(f"Permission denied: {exc}")
    return PlainTextResponse("Forbidden", status_code=403)


async def range_not_satisfiable_handler(request: Request, exc: RangeNotSatisfiableError):
    return PlainTextResponse(
        "Requested Range Not Satisfiable",
        status_code=416,
        headers={"Content-Range": f"bytes */{exc.file_size}", "Accept-Ranges": "bytes"},
    )


def create_app(
    settings: Optional[Settings] = None,
    thumbnail_cache: Optional[ThumbnailCache] = None,
    request_logger: Optional[RequestLogger] = None,
) -> FastAPI:
    if settings is None:
        settings = Settings.from_env()
    setup_logging(log_level=settings.log_level)

    app = FastAPI(
        title="File Share",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = settings
    app.state.auth_gate = AuthGate.for_settings(settings)
    app.state.request_logger = request_logger or RequestLogger()
    app.state.thumbnail_cache = thumbnail_cache or ThumbnailCache.for_settings(settings)

    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(PermissionDeniedError, permission_denied_handler)
    app.add_exception_handler(RangeNotSatisfiableError, range_not_satisfiable_handler)
    app.middleware("http")(auth_and_log)

    app.include_router(files_router)

    logger.info(
        f"Sharing {settings.share_root} "
        f"(auth {'enabled' if app.state.auth_gate.enabled else 'disabled'})"
    )
    return app


app = create_app()


def main() -> None:
    """
    Start the file share with uvicorn.
    """
    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()

import asyncio
import functools
from typing import Optional
from urllib.parse import quote

import aiofiles
from fastapi import APIRouter, Header, Request, Response
from fastapi.responses import RedirectResponse

from core.config import TEXT_PREVIEW_BYTES
from core.exceptions import NotFoundError, PermissionDeniedError, ThumbnailUnavailableError
from rendering.views import player_kind, render_listing, render_player
from schemas.listing import SortDirection, SortKey, ViewKind, parse_enum
from services.listing_service import build_listing
from services.path_resolver import ResolvedPath, resolve
from services.range_stream import file_response
from services.thumbnails import has_thumbnail

router = APIRouter(tags=["files"])

HTML_TYPE = "text/html; charset=utf-8"


def raw_request_path(request: Request) -> str:
    """The still percent-encoded request path, without query string."""
    raw = request.scope.get("raw_path")
    if raw:
        return raw.decode("utf-8", errors="surrogateescape").split("?", 1)[0]
    return quote(request.scope["path"])


def html_response(body: bytes, head_only: bool) -> Response:
    if head_only:
        return Response(
            status_code=200,
            headers={"Content-Length": str(len(body)), "Content-Type": HTML_TYPE},
        )
    return Response(content=body, media_type=HTML_TYPE)


async def directory_response(
    request: Request,
    resolved: ResolvedPath,
    view: ViewKind,
    sort_key: SortKey,
    direction: SortDirection,
) -> Response:
    loop = asyncio.get_running_loop()
    try:
        listing = await loop.run_in_executor(
            None,
            functools.partial(
                build_listing,
                resolved.real_path,
                sort_key,
                direction,
                share_root=request.app.state.settings.share_root,
            ),
        )
    except PermissionError:
        raise PermissionDeniedError(f"Access denied: {resolved.display_path}")
    except (FileNotFoundError, NotADirectoryError):
        raise NotFoundError(f"No such path: {resolved.display_path}")

    body = render_listing(listing, view, resolved.display_path, is_root=resolved.is_root)
    return html_response(body, request.method == "HEAD")


async def thumbnail_response(request: Request, resolved: ResolvedPath) -> Response:
    if not has_thumbnail(resolved.real_path.name):
        raise NotFoundError(f"No thumbnail for {resolved.display_path}")
    try:
        data = await request.app.state.thumbnail_cache.get_thumbnail(resolved.real_path)
    except ThumbnailUnavailableError:
        raise NotFoundError(f"No thumbnail for {resolved.display_path}")
    if request.method == "HEAD":
        return Response(
            status_code=200,
            headers={"Content-Length": str(len(data)), "Content-Type": "image/jpeg"},
        )
    return Response(content=data, media_type="image/jpeg")


async def player_response(request: Request, resolved: ResolvedPath) -> Response:
    name = resolved.real_path.name
    preview, truncated = None, False
    if player_kind(name) == "text":
        async with aiofiles.open(resolved.real_path, "rb") as f:
            raw = await f.read(TEXT_PREVIEW_BYTES + 1)
        truncated = len(raw) > TEXT_PREVIEW_BYTES
        preview = raw[:TEXT_PREVIEW_BYTES].decode("utf-8", errors="replace")
    return html_response(render_player(name, preview, truncated), request.method == "HEAD")


@router.api_route("/{full_path:path}", methods=["GET", "HEAD"])
async def serve_path(
    request: Request,
    full_path: str,
    view: Optional[str] = None,
    sort: Optional[str] = None,
    order: Optional[str] = None,
    thumbnail: Optional[str] = None,
    range: Optional[str] = Header(None),
):
    settings = request.app.state.settings
    raw_path = raw_request_path(request)
    resolved = resolve(settings.share_root, raw_path)

    if resolved.is_dir:
        if not raw_path.endswith("/"):
            query = request.url.query
            return RedirectResponse(raw_path + "/" + (f"?{query}" if query else ""), status_code=301)
        return await directory_response(
            request,
            resolved,
            parse_enum(ViewKind, view, ViewKind.LIST),
            parse_enum(SortKey, sort, SortKey.NAME),
            parse_enum(SortDirection, order, SortDirection.ASC),
        )

    if thumbnail:
        return await thumbnail_response(request, resolved)
    if view == "player" and player_kind(resolved.real_path.name):
        return await player_response(request, resolved)

    try:
        return file_response(resolved.real_path, range, head_only=request.method == "HEAD")
    except FileNotFoundError:
        raise NotFoundError(f"No such path: {resolved.display_path}")
    except PermissionError:
        raise PermissionDeniedError(f"Access denied: {resolved.display_path}")

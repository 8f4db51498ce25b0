"""Photogallery - FastAPI Application.

This module defines the FastAPI application factory, all routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
Route handlers are thin: every decision about *what* to serve is made by
the objects on the :class:`~photogallery.api.context.GalleryContext`.

- **The gallery page** comes from the webpage monitor, which rerenders only
  when settings, template or image list changed (and checks at most once
  per cooldown window).
- **Sized images** come from the image cache, which compresses an original
  the first time a ``(path, size)`` pair is requested.
- **The sitemap** comes from the sitemap monitor, checked on every request.

Handlers never touch the filesystem on the event loop: monitor reads,
settings lookups and path checks go through Starlette's thread pool.

Endpoints
---------
========  ==========================  ======================================
Method    Path                        Purpose
========  ==========================  ======================================
GET       ``/``                       Rendered gallery page
GET       ``/image/{path}?sz=<size>`` Compressed variant, or the original
GET       ``/sitemap.xml``            Sitemap of pages and images
GET       ``/robots.txt``             Crawler rules pointing at the sitemap
GET       ``/css/{path}.css``         Stylesheets from the templates dir
========  ==========================  ======================================

Unknown routes get ``templates/404.html`` with status 404.

Usage
-----
CLI (installed entry point)::

    photogallery

Direct invocation::

    python -m photogallery.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import (
    FileResponse,
    HTMLResponse,
    JSONResponse,
    PlainTextResponse,
    Response,
)
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from photogallery import __version__
from photogallery.api.context import GalleryContext
from photogallery.core.config import GalleryConfig, config
from photogallery.core.errors import CompressionError, GalleryError, ImageNotFoundError
from photogallery.core.sitemap import build_robots_txt

logger = logging.getLogger(__name__)

router = APIRouter()


def get_context(request: Request) -> GalleryContext:
    """Dependency returning the context built at startup."""
    return request.app.state.gallery


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
async def index(ctx: GalleryContext = Depends(get_context)) -> HTMLResponse:
    """Serve the gallery page, rerendering it if its inputs changed."""
    html = await run_in_threadpool(ctx.webpage_monitor.get_content, True)
    return HTMLResponse(content=html)


@router.get("/image/{image_path:path}")
async def get_image(
    image_path: str,
    sz: str | None = None,
    ctx: GalleryContext = Depends(get_context),
) -> FileResponse:
    """Serve an image, compressed to *sz* when it is a configured cache size.

    Unsupported sizes get the original. If compression fails the original is
    served as well, so a broken compressor degrades thumbnails instead of
    breaking the page.

    Raises:
        HTTPException: 404 if the image does not exist.
    """
    settings = await run_in_threadpool(ctx.get_settings)

    if sz is not None and sz in settings.cache_sizes:
        try:
            return FileResponse(await ctx.image_cache.get_or_create(image_path, sz))
        except ImageNotFoundError:
            raise HTTPException(status_code=404, detail="Image not found") from None
        except CompressionError as e:
            logger.warning(f"Serving original of {image_path}: {e}")

    try:
        original = await run_in_threadpool(ctx.image_cache.resolve_original, image_path)
    except ImageNotFoundError:
        raise HTTPException(status_code=404, detail="Image not found") from None
    return FileResponse(original)


@router.get("/sitemap.xml")
async def sitemap(ctx: GalleryContext = Depends(get_context)) -> Response:
    """Serve the sitemap, rebuilding it if the image list changed."""
    xml = await run_in_threadpool(ctx.sitemap_monitor.get_content, True)
    return Response(content=xml, media_type="application/xml")


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots(ctx: GalleryContext = Depends(get_context)) -> PlainTextResponse:
    settings = await run_in_threadpool(ctx.get_settings)
    return PlainTextResponse(build_robots_txt(settings.site_name))


@router.get("/css/{css_path:path}")
async def stylesheet(css_path: str, ctx: GalleryContext = Depends(get_context)) -> FileResponse:
    """Serve a stylesheet from ``<templates_dir>/css``.

    Raises:
        HTTPException: 404 for anything that is not an existing ``.css`` file
            inside the css directory.
    """
    css_dir = ctx.config.templates_dir / "css"
    css_file = await run_in_threadpool(_find_stylesheet, css_dir, css_path)
    if css_file is None:
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(css_file, media_type="text/css")


def _find_stylesheet(css_dir: Path, css_path: str) -> Path | None:
    css_dir = css_dir.resolve()
    css_file = (css_dir / css_path).resolve()
    if (
        css_file.suffix != ".css"
        or not css_file.is_relative_to(css_dir)
        or not css_file.is_file()
    ):
        return None
    return css_file


def _read_not_found_page(path: Path) -> str | None:
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(app_config: GalleryConfig | None = None) -> FastAPI:
    """Build the FastAPI application for a deployment configuration.

    Args:
        app_config: Configuration to use; defaults to the global ``config``.

    Returns:
        The configured application. Its :class:`GalleryContext` is created
        when the lifespan starts.
    """
    app_config = app_config or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.gallery = GalleryContext.from_config(app_config)
        logger.info(
            f"Serving gallery {app_config.gallery_dir} (cache: {app_config.cache_dir}, "
            f"settings: {app_config.settings_file})"
        )
        yield

    app = FastAPI(
        title="Photogallery",
        description="Self-hosted photo gallery.",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(router)

    async def not_found(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 404:
            page = await run_in_threadpool(_read_not_found_page, app_config.not_found_file)
            if page is not None:
                return HTMLResponse(content=page, status_code=404)
        return await http_exception_handler(request, exc)

    async def internal_error(request: Request, exc: Exception) -> JSONResponse:
        # Details go to the log only; the client never sees paths or tracebacks.
        logger.error(f"Error serving {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.add_exception_handler(StarletteHTTPException, not_found)
    app.add_exception_handler(GalleryError, internal_error)
    app.add_exception_handler(OSError, internal_error)

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    The port is ``PHOTOGALLERY_SERVER_PORT`` if set, otherwise the ``port``
    from the gallery settings file.

    This function is registered as the ``photogallery`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    from photogallery.core.monitors import SettingsMonitor

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    port = config.server_port or SettingsMonitor(config.settings_file).get_content().port
    logger.info(f"Photo gallery service is listening on {port}...")

    uvicorn.run(
        "photogallery.api.main:app",
        host=config.server_host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    main()

"""App factory and entrypoint for the design preview server.

- Redirects `/` to the standalone design index
- Expands SSI directives in `.html` pages under the designs directory
- Serves every other path as a static file from the site root
- `run()` prints the startup banner and serves the app with uvicorn

ASGI factory (uvicorn: `uvicorn design_server.main:create_app --factory`)
"""

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from starlette.staticfiles import StaticFiles

from . import __version__
from .core.config import SSI_INDEX_PAGE, Settings, load_settings
from .routers import designs, home
from .ssi import SSIEngine

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    if settings is None:
        settings = load_settings()

    app = FastAPI(
        title="Design Preview Server",
        version=__version__,
        description="Preview HTML design pages with server-side includes",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Read-only for the lifetime of the process
    app.state.settings = settings
    app.state.ssi = SSIEngine(
        base_dir=settings.base_dir,
        encoding=settings.encoding,
        payload=settings.payload,
    )

    # Order matters: first match wins, the static mount catches the rest
    app.include_router(home.router)
    app.include_router(designs.router, prefix=f"/{settings.designs_dir}")
    app.mount("/", StaticFiles(directory=settings.root_dir), name="static")

    return app


def banner(settings: Settings) -> str:
    base = settings.base_url
    return "\n".join([
        f"Design system server running at {base}",
        f"Home page: {base}",
        f"View standalone version: {base}{settings.index_url}",
        f"View SSI version: {base}/{settings.designs_dir}/{SSI_INDEX_PAGE}",
    ])


def run() -> None:
    """Start the server on the configured port (Ctrl+C to stop)."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    settings = load_settings()
    app = create_app(settings)

    print(banner(settings))
    logger.info("Serving %s (includes from %s)", settings.root_dir, settings.base_dir)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    run()

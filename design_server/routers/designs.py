"""SSI-expanded design pages.

Exposes:
- GET /<designs_dir>/{page}.html: the page with its include directives
  expanded, 404 when the file is missing, 500 when expansion fails

Only paths ending in `.html` match (see `HtmlPathConvertor`); everything
else under the designs directory falls through to the static mount.
"""

import logging

from fastapi import APIRouter, Depends, Request
from starlette.convertors import Convertor, register_url_convertor
from starlette.responses import HTMLResponse, PlainTextResponse

from ..core.config import Settings
from ..deps import get_engine, get_settings
from ..ssi import SSIEngine
from ..ssi.engine import is_within

logger = logging.getLogger(__name__)


class HtmlPathConvertor(Convertor):
    """Path segment(s) ending in `.html`, e.g. `index.html` or `cards/list.html`."""
    regex = r".*\.html"

    def convert(self, value: str) -> str:
        return value

    def to_string(self, value: str) -> str:
        return value


register_url_convertor("html", HtmlPathConvertor())

router = APIRouter()


@router.api_route("/{page:html}", methods=["GET", "HEAD"], include_in_schema=False)
def design_page(
    page: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    engine: SSIEngine = Depends(get_engine),
):
    """Expand and return one design page."""
    designs_root = settings.designs_path
    file_path = (designs_root / page).resolve()

    # a page outside the designs directory is reported like a missing one
    if not is_within(file_path, designs_root) or not file_path.is_file():
        logger.warning("Design page not found: %s", request.url.path)
        return PlainTextResponse(f"File not found: {request.url.path}", status_code=404)

    result = engine.compile_file(file_path)
    if not result.ok:
        logger.error("SSI error in %s: %s", file_path, result.error)
        return PlainTextResponse(
            f"Error processing SSI directives: {result.error}", status_code=500
        )

    return HTMLResponse(
        result.content.encode(settings.encoding),
        media_type=f"text/html; charset={settings.encoding}",
    )

"""Home redirect.

Exposes:
- GET /: redirect to the standalone design index
"""

from fastapi import APIRouter, Depends
from starlette.responses import RedirectResponse

from ..core.config import Settings
from ..deps import get_settings

router = APIRouter()


@router.api_route("/", methods=["GET", "HEAD"], include_in_schema=False)
def home(settings: Settings = Depends(get_settings)):
    return RedirectResponse(url=settings.index_url, status_code=302)

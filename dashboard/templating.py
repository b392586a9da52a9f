"""
Template rendering utilities
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from auction_api import get_config
from dashboard import lots

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def image_url(key) -> str:
    """Public URL of an uploaded photo"""
    if not key:
        return ""
    key = str(key)
    if key.startswith(("http://", "https://")):
        return key
    return f"{get_config().image_base_url}/{key.lstrip('/')}"


def format_date(value) -> str:
    """Epoch seconds or ISO strings, shown as a calendar date"""
    if value in (None, ""):
        return ""
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d")
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return str(value)


templates.env.filters["image_url"] = image_url
templates.env.filters["format_date"] = format_date
templates.env.filters["metadata_fields"] = lots.extra_metadata_fields
templates.env.filters["carried_extras"] = lots.carried_extras


def local_path(value: Optional[str], default: str) -> str:
    """A same-site path to return to after a form post, else the default"""
    if value and value.startswith("/") and not value.startswith("//"):
        return value
    return default


def redirect_with(url: str, notice: Optional[str] = None, error: Optional[str] = None) -> RedirectResponse:
    """Redirect after a POST, carrying a notification banner in the query string"""
    params = {}
    if notice:
        params["notice"] = notice
    if error:
        params["error"] = error
    if params:
        url = f"{url}{'&' if '?' in url else '?'}{urlencode(params)}"
    return RedirectResponse(url=url, status_code=303)


def render_template(template_name: str, context: dict, request: Request, status_code: int = 200):
    """Render template with the signed-in user and notification banners"""
    base = {
        "request": request,
        "user": getattr(request.state, "user", None),
        "notice": request.query_params.get("notice"),
        "error": request.query_params.get("error"),
    }
    base.update(context)
    return templates.TemplateResponse(request, template_name, base, status_code=status_code)

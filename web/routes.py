"""
web/routes.py -- Jinja2 route for the EventDesk single-page front-end.

The page is rendered once on the server and then talks to the JSON API from
the browser: it posts credentials to /api/login, keeps the returned token in
localStorage, and sends it as the raw Authorization header on GET /api/events.
When no token is stored (or the API answers 401/403) it shows the login form.

No API data is rendered server-side, so this route needs no authentication.

Routes:
  GET /  -- the single-page front-end
"""

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(request: Request) -> HTMLResponse:
    """Render the login + event list page."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {"api_base": "/api", "title": "EventDesk"},
    )

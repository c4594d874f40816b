"""
asgi.py -- Application assembly for EventDesk.

This is the ONLY file that imports from both api/ and web/. It joins the JSON
API and the front-end page into a single ASGI app without coupling them:
api/main.py knows nothing about web/; web/routes.py knows nothing about api/.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import app
from web.routes import router as web_router

app.include_router(web_router, tags=["Web UI"])

"""
asgi.py -- Application assembly for wuzzlmoasta.

This is the ONLY file that imports from both api/ and web/. It joins the two
independent layers into a single ASGI app without coupling them to each other.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from fastapi.staticfiles import StaticFiles

from api.main import app
from core.config import get_settings
from web.errors import register_error_handlers
from web.routes import router as web_router
from web.views import static_directory

app.include_router(web_router, tags=["Web UI"])
app.mount("/static", StaticFiles(directory=str(static_directory(get_settings()))), name="static")
register_error_handlers(app)

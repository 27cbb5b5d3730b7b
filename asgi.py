"""
asgi.py -- Application assembly for Entry.

api/main.py builds the app with every /api router. The site router carries
a catch-all page view, so it is included here, after everything else.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app
from api.routes.site import router as site_router

app.include_router(site_router, tags=["Site"])

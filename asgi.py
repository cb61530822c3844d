"""
asgi.py -- Application assembly for Audit Monitor.

Joins the JSON API (api/main.py) with the static file mount for uploaded
attachments. api/main.py knows nothing about the upload directory layout;
storage/local.py writes files there and this module serves them back at
/uploads, which is exactly the public path stored on each attachment row.

Run with:  uvicorn asgi:app --reload
"""

from pathlib import Path

from fastapi.staticfiles import StaticFiles

from api.main import app
from core.config import get_settings

_upload_dir = Path(get_settings().upload_dir)
_upload_dir.mkdir(parents=True, exist_ok=True)

# Mount here, not in api/main.py, so tests can import the API without
# touching the filesystem.
app.mount("/uploads", StaticFiles(directory=_upload_dir), name="uploads")

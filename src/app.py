"""Marketplace FastAPI application.

Web server that processes every command synchronously within the request.
Each request runs inside the marketplace domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from pyproject.toml:
#   - default      → memory provider, sync processing
#   - "production" → PostgreSQL, async event processing
from marketplace.api import create_app
from marketplace.domain import marketplace

marketplace.init()

app = create_app(marketplace)

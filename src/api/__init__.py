"""
API module for FastAPI routes.

Each route module defines a FastAPI APIRouter that is mounted on the
application in api.app.
"""

from api.routes import catalog, health

__all__ = ["catalog", "health"]

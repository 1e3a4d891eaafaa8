"""
Route modules for the API.
"""

from api.routes import catalog
from api.routes import health

__all__ = ["catalog", "health"]

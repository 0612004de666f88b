# src/nakama/api/v1/__init__.py
"""Version 1 API endpoints."""

from .errors import install_error_handlers
from .router import api_v1

__all__ = ["api_v1", "install_error_handlers"]

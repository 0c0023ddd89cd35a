"""HTTP routes, request models and dependencies."""

from .routes import router

__all__ = ["router"]

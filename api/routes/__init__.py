"""API Routes Package."""

from api.routes import health, injections

__all__ = [
    "health",
    "injections",
]

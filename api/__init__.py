"""API Package.

FastAPI server for starting and inspecting ERP injection runs.
"""

from api.server import create_app, app

__all__ = [
    "create_app",
    "app",
]

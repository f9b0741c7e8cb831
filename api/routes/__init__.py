"""API routes package."""

from api.routes.file_routes import router as file_router

__all__ = ["file_router"]

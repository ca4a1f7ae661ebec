"""FastAPI application exposing the scene autotester."""

from .app import create_app

__all__ = ["create_app"]

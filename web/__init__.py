"""HTTP boundary for the expense log."""

from .app import create_app

__all__ = ["create_app"]

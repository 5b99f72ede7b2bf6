"""HTTP trigger endpoints for the sync engine."""

from pagesync.api.app import create_app

__all__ = ["create_app"]

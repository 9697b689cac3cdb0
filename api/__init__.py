"""
HTTP front-end for the shared shopping list.

Provides the FastAPI application factory; the process entry point
(cli.py serve) builds it around the same store the chat bot uses.
"""

from api.main import create_app

__all__ = ["create_app"]

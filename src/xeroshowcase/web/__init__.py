"""
Web front end: FastAPI app, session cookie and Jinja2 pages.
"""

from xeroshowcase.web.app import create_app

__all__ = ["create_app"]

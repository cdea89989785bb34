"""
Xero API Showcase — a small web app that walks the Xero Accounting API
through an OAuth2 authorization-code flow.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

"""
Clients for the external accounting platform.
"""

from xeroshowcase.connectors.xero_client import XeroApiClient

__all__ = ["XeroApiClient"]

"""
Resource routes: the data-driven table of Xero demo pages.
"""

from xeroshowcase.resources.base import ResourceRoute, ResourceSummary
from xeroshowcase.resources.registry import ResourceRegistry

__all__ = ["ResourceRegistry", "ResourceRoute", "ResourceSummary"]

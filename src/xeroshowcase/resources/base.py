"""
Resource routes — one table entry per demo page.

Each entry names the path it is served on, the upstream endpoint it
reads, and the key of the collection in the response. Entries that need
more than one call supply an ``action`` coroutine instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from xeroshowcase.connectors.xero_client import XeroApiClient

    Action = Callable[
        [XeroApiClient, "ResourceRoute", Mapping[str, str]],
        Awaitable[Union["ResourceSummary", "ResourceDownload"]],
    ]


class ResourceSummary(BaseModel):
    """What a resource page renders."""

    resource: str = Field(description="Route path without the leading slash")
    title: str
    count: int | None = Field(default=None, description="Number of records returned upstream")
    details: dict[str, str] = Field(default_factory=dict)


class ResourceDownload(BaseModel):
    """A file the route sends back as an attachment instead of a page."""

    resource: str
    filename: str
    media_type: str
    content: bytes


@dataclass(frozen=True)
class ResourceRoute:
    """A single ``GET /<path>`` demo page."""

    path: str
    title: str
    endpoint: str
    collection: str
    params: dict[str, Any] = field(default_factory=dict)
    id_field: str | None = None
    action: Action | None = None

    @property
    def url_path(self) -> str:
        return f"/{self.path}"

    async def run(
        self, xero: XeroApiClient, query: Mapping[str, str] | None = None
    ) -> ResourceSummary | ResourceDownload:
        """Perform the upstream call(s) and summarize the result.

        ``query`` is the page request's query string; only actions read it.
        """
        if self.action is not None:
            return await self.action(xero, self, query or {})
        items = await xero.get_collection(self.endpoint, self.collection, params=self.params or None)
        return ResourceSummary(resource=self.path, title=self.title, count=len(items))

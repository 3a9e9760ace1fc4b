"""
Cursor pagination over GitHub GraphQL connections.

Pages are fetched strictly one after another with a fixed pause between
them. There is no retry here: the first failing page aborts the run.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .config import settings
from .domain import Connection, PageResult, PaginationError

logger = logging.getLogger(__name__)

Execute = Callable[[str, Dict[str, Any]], Awaitable[Dict[str, Any]]]
Transform = Callable[[List[Any]], Awaitable[List[Any]]]


def _page_items(collection: Dict[str, Any]) -> List[Any]:
    if collection.get("edges") is not None:
        return [edge["node"] for edge in collection["edges"]]
    return list(collection.get("nodes") or [])


class Paginator:
    """
    Drives repeated queries against one connection until ``hasNextPage``
    is false.

    ``execute`` is the remote call (query, variables) -> ``data``. ``sleep``
    is injectable so the inter-page delay can be observed in tests.
    """

    def __init__(
        self,
        execute: Execute,
        page_delay: float = settings.page_delay_seconds,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if page_delay < 0:
            raise ValueError("Page delay cannot be negative")
        self.execute = execute
        self.page_delay = page_delay
        self._sleep = sleep
        self.pages_fetched = 0

    async def fetch_page(
        self, connection: Connection, end_cursor: Optional[str] = None
    ) -> PageResult:
        """Fetch a single page and unwrap ``pageInfo`` and ``edges``."""
        owner_key, collection_key = connection.path
        variables = {**connection.variables, "endCursor": end_cursor}

        logger.info(f"📄 iterate on {connection.target} with {end_cursor}")
        data = await self.execute(connection.query, variables)
        self.pages_fetched += 1

        owner = (data or {}).get(owner_key)
        if owner is None:
            raise PaginationError(
                f"Unknown {owner_key} {connection.target}", payload=connection.target
            )
        collection = owner.get(collection_key)
        if collection is None:
            raise PaginationError(
                f"No {collection_key} found for {owner_key} {connection.target}",
                payload=connection.target,
            )

        page_info = collection.get("pageInfo") or {}
        return PageResult(
            items=_page_items(collection),
            end_cursor=page_info.get("endCursor"),
            has_next_page=page_info.get("hasNextPage") is True,
        )

    async def paginate(
        self, connection: Connection, transform: Optional[Transform] = None
    ) -> List[Any]:
        """
        Return every item of ``connection`` in page order.

        ``transform`` receives each page's items and returns the items to
        keep; it runs before the next page is requested.
        """
        items: List[Any] = []
        end_cursor = None
        page_number = 0

        while True:
            page = await self.fetch_page(connection, end_cursor)
            page_number += 1

            page_items = page.items
            if transform is not None:
                page_items = await transform(page_items)
            items.extend(page_items)

            logger.debug(
                f"Page {page_number} of {connection.target}: "
                f"{len(page_items)} items ({len(items)} total)"
            )

            if not page.has_next_page:
                return items

            end_cursor = page.end_cursor
            await self._sleep(self.page_delay)

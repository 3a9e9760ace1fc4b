"""
Unit tests for cursor pagination.

These tests verify that:
1. Pages are concatenated in order
2. The inter-page delay happens between pages only
3. Cursors advance from one page to the next
4. Unknown owners and collections fail the run
5. Remote errors abort pagination without retry
"""

import pytest
from unittest.mock import AsyncMock

from harvester.domain import (
    Connection,
    ErrorKind,
    PaginationError,
    RemoteQueryError,
)
from harvester.paginator import Paginator


def repositories_connection(owner="w3c"):
    return Connection(
        query="query repositories",
        variables={"login": owner, "pageSize": 10},
        path=("organization", "repositories"),
        target=owner,
    )


def numbered_nodes(start, count):
    return [{"nameWithOwner": f"w3c/repo-{i}"} for i in range(start, start + count)]


class TestPaginatorInitialization:
    """Test Paginator setup."""

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError, match="Page delay cannot be negative"):
            Paginator(AsyncMock(), page_delay=-1)


class TestFetchPage:
    """Test single page extraction."""

    @pytest.mark.asyncio
    async def test_fetch_first_page(self, page_data):
        execute = AsyncMock(
            return_value=page_data(
                "organization", "repositories", numbered_nodes(0, 2), "c1", True
            )
        )
        paginator = Paginator(execute, page_delay=0)

        page = await paginator.fetch_page(repositories_connection())

        assert [n["nameWithOwner"] for n in page.items] == ["w3c/repo-0", "w3c/repo-1"]
        assert page.end_cursor == "c1"
        assert page.has_next_page is True

        query, variables = execute.call_args[0]
        assert query == "query repositories"
        assert variables == {"login": "w3c", "pageSize": 10, "endCursor": None}

    @pytest.mark.asyncio
    async def test_fetch_page_with_nodes_selection(self):
        execute = AsyncMock(
            return_value={
                "repository": {
                    "labels": {
                        "pageInfo": {"endCursor": None, "hasNextPage": False},
                        "nodes": [{"name": "bug"}],
                    }
                }
            }
        )
        connection = Connection(
            query="query labels",
            variables={"owner": "w3c", "name": "foo"},
            path=("repository", "labels"),
            target="w3c/foo",
        )

        page = await Paginator(execute, page_delay=0).fetch_page(connection)

        assert page.items == [{"name": "bug"}]
        assert page.has_next_page is False

    @pytest.mark.asyncio
    async def test_unknown_owner(self):
        execute = AsyncMock(return_value={"organization": None})

        with pytest.raises(PaginationError, match="Unknown organization nobody") as exc_info:
            await Paginator(execute, page_delay=0).fetch_page(
                repositories_connection("nobody")
            )

        assert exc_info.value.kind == ErrorKind.PAGINATION
        assert exc_info.value.payload == "nobody"

    @pytest.mark.asyncio
    async def test_unknown_collection(self):
        execute = AsyncMock(return_value={"organization": {"repositories": None}})

        with pytest.raises(
            PaginationError, match="No repositories found for organization w3c"
        ):
            await Paginator(execute, page_delay=0).fetch_page(repositories_connection())


class TestPaginate:
    """Test the full pagination loop."""

    @pytest.mark.asyncio
    async def test_three_pages_concatenated_in_order(self, page_data, recording_sleep):
        pages = [
            page_data("organization", "repositories", numbered_nodes(0, 10), "c1", True),
            page_data("organization", "repositories", numbered_nodes(10, 10), "c2", True),
            page_data("organization", "repositories", numbered_nodes(20, 4), "c3", False),
        ]
        execute = AsyncMock(side_effect=pages)
        paginator = Paginator(execute, page_delay=5.0, sleep=recording_sleep)

        items = await paginator.paginate(repositories_connection())

        assert len(items) == 24
        assert [n["nameWithOwner"] for n in items] == [
            f"w3c/repo-{i}" for i in range(24)
        ]
        assert recording_sleep.calls == [5.0, 5.0]
        assert paginator.pages_fetched == 3

        cursors = [call.args[1]["endCursor"] for call in execute.call_args_list]
        assert cursors == [None, "c1", "c2"]

    @pytest.mark.asyncio
    async def test_single_page_has_no_delay(self, page_data, recording_sleep):
        execute = AsyncMock(
            return_value=page_data("organization", "repositories", numbered_nodes(0, 3))
        )
        paginator = Paginator(execute, page_delay=5.0, sleep=recording_sleep)

        items = await paginator.paginate(repositories_connection())

        assert len(items) == 3
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_empty_collection(self, page_data, recording_sleep):
        execute = AsyncMock(return_value=page_data("organization", "repositories", []))

        items = await Paginator(execute, sleep=recording_sleep).paginate(
            repositories_connection()
        )

        assert items == []

    @pytest.mark.asyncio
    async def test_transform_applied_per_page(self, page_data, recording_sleep):
        pages = [
            page_data("organization", "repositories", numbered_nodes(0, 2), "c1", True),
            page_data("organization", "repositories", numbered_nodes(2, 2)),
        ]
        execute = AsyncMock(side_effect=pages)
        seen = []

        async def transform(nodes):
            seen.append(len(nodes))
            return [node["nameWithOwner"].upper() for node in nodes]

        items = await Paginator(execute, sleep=recording_sleep).paginate(
            repositories_connection(), transform=transform
        )

        assert items == ["W3C/REPO-0", "W3C/REPO-1", "W3C/REPO-2", "W3C/REPO-3"]
        assert seen == [2, 2]

    @pytest.mark.asyncio
    async def test_unknown_owner_returns_nothing(self, recording_sleep):
        execute = AsyncMock(return_value={"organization": None})

        with pytest.raises(PaginationError, match="Unknown"):
            await Paginator(execute, sleep=recording_sleep).paginate(
                repositories_connection("ghost")
            )

        assert execute.call_count == 1
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_remote_error_aborts_without_retry(self, page_data, recording_sleep):
        error = RemoteQueryError.from_errors([{"message": "Something went wrong"}])
        execute = AsyncMock(
            side_effect=[
                page_data("organization", "repositories", numbered_nodes(0, 10), "c1", True),
                error,
            ]
        )

        with pytest.raises(RemoteQueryError, match="Something went wrong"):
            await Paginator(execute, page_delay=5.0, sleep=recording_sleep).paginate(
                repositories_connection()
            )

        assert execute.call_count == 2
        assert recording_sleep.calls == [5.0]

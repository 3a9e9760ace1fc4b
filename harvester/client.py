import aiohttp
import asyncio
import logging
from typing import Optional, List, Dict, Any
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from .config import Settings, settings
from .domain import (
    Connection,
    HarvestResult,
    RemoteQueryError,
    NormalizationError,
    PaginationError,
    TransportError,
    RateLimitError,
    AuthenticationError,
)
from .normalizer import normalize_repository
from .paginator import Paginator
from .queries import (
    CONNECTION_QUERY,
    LABELS_QUERY,
    REPOSITORIES_QUERY,
    REPOSITORY_QUERY,
)

logger = logging.getLogger(__name__)


class GitHubClient:
    """
    GitHub GraphQL client for harvesting repository metadata.

    The client owns the HTTP session and is the only component talking
    to the API. Pagination is delegated to a ``Paginator`` that calls back
    into ``execute``; every fetched repository node is widened (labels
    beyond the inline cap) and normalized before it joins the result.
    """

    def __init__(self, token: Optional[str] = None, config: Settings = settings):
        token = config.github_token if token is None else token
        if not token or token == "dummy_token_for_validation":
            raise ValueError("GitHub token is required and must be valid")

        self.config = config
        self.graphql_url = config.github_api_url
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v4.idl",
            "User-Agent": "GitHub-Harvester/1.0",
        }
        self.paginator = Paginator(self.execute, page_delay=config.page_delay_seconds)
        self._skipped: List[str] = []
        self._connector = None
        self._session = None

    async def __aenter__(self):
        """Async context manager entry."""
        self._connector = aiohttp.TCPConnector(
            limit=20,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        self._session = aiohttp.ClientSession(
            connector=self._connector,
            headers=self.headers,
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._session:
            await self._session.close()
        if self._connector:
            await self._connector.close()

    async def test_connection(self) -> bool:
        """Test GitHub API connection and authentication."""
        try:
            data = await self.execute(CONNECTION_QUERY)

            viewer_login = data["viewer"]["login"]
            rate_limit = data["rateLimit"]
            logger.info("✅ GitHub API connection successful")
            logger.info(f"📋 Authenticated as: {viewer_login}")
            logger.info(f"🚦 Rate limit remaining: {rate_limit['remaining']}")
            return True
        except Exception as e:
            logger.error(f"❌ GitHub API connection test failed: {e}")
            return False

    async def _make_graphql_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST one GraphQL payload and return the decoded body.

        Only network-level ``aiohttp.ClientError`` failures are retried, and
        only when ``request_attempts`` is above 1.
        """
        if not self._session:
            raise RuntimeError("Client must be used as async context manager")

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, self.config.request_attempts)),
            wait=wait_exponential(multiplier=1, min=1, max=60),
            retry=retry_if_exception_type(aiohttp.ClientError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self._post(payload)
        return {}  # Should never reach here, AsyncRetrying reraises

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self._session.post(self.graphql_url, json=payload) as resp:
                if resp.status == 401:
                    raise AuthenticationError(
                        "GitHub API authentication failed", payload={"status": 401}
                    )

                if resp.status == 403:
                    response_text = await resp.text()
                    if "rate limit" in response_text.lower():
                        raise RateLimitError(
                            "GitHub API rate limit exceeded",
                            payload={"status": 403, "body": response_text},
                        )
                    raise TransportError(
                        "GitHub API request forbidden",
                        payload={"status": 403, "body": response_text},
                    )

                if resp.status in {502, 503, 504}:
                    raise aiohttp.ClientResponseError(
                        resp.request_info,
                        resp.history,
                        status=resp.status,
                        message=f"Server error: {resp.status}",
                    )

                if resp.status != 200:
                    response_text = await resp.text()
                    raise TransportError(
                        f"Unexpected HTTP status {resp.status}",
                        payload={"status": resp.status, "body": response_text},
                    )

                return await resp.json()
        except aiohttp.ClientError as e:
            logger.warning(f"🔁 Network error: {e}")
            raise

    async def execute(
        self, query: str, variables: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Run a GraphQL query and return its ``data``.

        A response carrying ``errors`` raises RemoteQueryError for the
        first error, with the full list attached.
        """
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        response = await self._make_graphql_request(payload)
        if response.get("errors"):
            error = RemoteQueryError.from_errors(response["errors"])
            logger.error(f"❌ GraphQL error (line {error.line}): {error.message}")
            raise error
        return response.get("data") or {}

    def _fragment_variables(self) -> Dict[str, Any]:
        return {
            "labelPageSize": self.config.label_page_size,
            "milestonePageSize": self.config.milestone_page_size,
            "branchProtectionRulePageSize": self.config.branch_protection_page_size,
        }

    def labels_truncated(self, node: Dict[str, Any]) -> bool:
        """Whether the inline labels of ``node`` stop short of the full list."""
        labels = node.get("labels")
        if not isinstance(labels, dict) or not isinstance(labels.get("nodes"), list):
            return False
        count = len(labels["nodes"])
        total = labels.get("totalCount")
        if isinstance(total, int) and total > count:
            return True
        if (labels.get("pageInfo") or {}).get("hasNextPage") is True:
            return True
        return count >= self.config.label_page_size

    async def fetch_labels(self, owner: str, name: str) -> List[Dict[str, Any]]:
        """Fetch every label node of one repository."""
        connection = Connection(
            query=LABELS_QUERY,
            variables={
                "owner": owner,
                "name": name,
                "pageSize": self.config.label_fetch_page_size,
            },
            path=("repository", "labels"),
            target=f"{owner}/{name}",
        )
        return await self.paginator.paginate(connection)

    async def widen_labels(self, node: Any) -> Any:
        """
        Replace truncated inline labels with the complete list.

        Returns a new node; ``node`` itself is not modified.
        """
        if not isinstance(node, dict) or not self.labels_truncated(node):
            return node
        name_with_owner = node.get("nameWithOwner")
        if not isinstance(name_with_owner, str) or "/" not in name_with_owner:
            return node

        owner, name = name_with_owner.split("/", 1)
        logger.info(f"🏷️ Fetching all labels for {name_with_owner}")
        labels = await self.fetch_labels(owner, name)
        return {**node, "labels": {"nodes": labels}}

    async def _complete_page(self, nodes: List[Any]) -> List[Dict[str, Any]]:
        """Widen a page of raw nodes concurrently, then normalize them in order."""
        tasks = [asyncio.ensure_future(self.widen_labels(node)) for node in nodes]
        try:
            widened = await asyncio.gather(*tasks)
        except BaseException:
            # stop sibling fetches before the session goes away
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        records = []
        for node in widened:
            try:
                record = normalize_repository(node)
            except NormalizationError as e:
                if not self.config.skip_invalid_records:
                    raise
                logger.warning(f"⚠️ Skipping invalid repository: {e.payload!r}")
                self._skipped.append(repr(e.payload))
                continue
            if record.get("isPrivate") and not self.config.include_private:
                logger.debug(f"Ignoring private repository {record['nameWithOwner']}")
                continue
            records.append(record)
        return records

    async def fetch_repositories(self, owner: str) -> List[Dict[str, Any]]:
        """
        Fetch and normalize every repository of an organization.

        Raises PaginationError for an unknown owner, RemoteQueryError when
        the API reports an error, and NormalizationError for an invalid
        node unless ``skip_invalid_records`` is set.
        """
        self._skipped = []
        connection = Connection(
            query=REPOSITORIES_QUERY,
            variables={
                "login": owner,
                "pageSize": self.config.repository_page_size,
                **self._fragment_variables(),
            },
            path=("organization", "repositories"),
            target=owner,
        )
        return await self.paginator.paginate(connection, transform=self._complete_page)

    async def fetch_repository(self, owner: str, name: str) -> Dict[str, Any]:
        """Fetch and normalize a single repository."""
        variables = {"owner": owner, "name": name, **self._fragment_variables()}
        data = await self.execute(REPOSITORY_QUERY, variables)

        node = data.get("repository")
        if node is None:
            raise PaginationError(
                f"Unknown repository {owner}/{name}", payload=f"{owner}/{name}"
            )
        node = await self.widen_labels(node)
        return normalize_repository(node)

    async def crawl(self, owner: Optional[str] = None) -> HarvestResult:
        """Harvest an organization and log a summary of the run."""
        owner = owner or self.config.owner
        logger.info(f"🚀 Starting harvest of {owner}")

        repositories = await self.fetch_repositories(owner)
        result = HarvestResult(
            owner=owner, repositories=repositories, skipped=list(self._skipped)
        )

        if result.repositories:
            logger.info(f"🎉 {result.total} repositories retrieved for {owner}")
            logger.info(f"📊 Pages fetched: {self.paginator.pages_fetched}")
            if result.with_errors:
                logger.info(f"⚠️ {result.with_errors} repositories have field errors")
        else:
            logger.warning(f"⚠️ No repositories collected for {owner}")
        if result.skipped:
            logger.warning(f"⚠️ Skipped {len(result.skipped)} invalid repositories")

        return result

"""
Domain models for the repository harvester.

This module keeps the paging and error vocabulary independent of the
transport, so that the paginator and the normalizer can be exercised
without any network access.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple


@dataclass(frozen=True)
class PageResult:
    """One page of a cursor-paginated collection."""

    items: List[Any] = field(default_factory=list)
    end_cursor: Optional[str] = None
    has_next_page: bool = False


@dataclass(frozen=True)
class Connection:
    """
    A paged collection reachable through a GraphQL query.

    ``path`` names the owning object and the collection under it, e.g.
    ``("organization", "repositories")`` or ``("repository", "labels")``.
    ``target`` is only used in log and error messages.
    """

    query: str
    variables: Dict[str, Any]
    path: Tuple[str, str]
    target: str

    def __post_init__(self):
        """Validate connection data after initialization."""
        if len(self.path) != 2:
            raise ValueError("Connection path must name an owner and a collection")
        if "endCursor" in self.variables:
            raise ValueError("endCursor is managed by the paginator")


class ErrorKind(str, Enum):
    REMOTE_QUERY = "remote_query"
    NORMALIZATION = "normalization"
    PAGINATION = "pagination"
    TRANSPORT = "transport"


class HarvestError(Exception):
    """Base exception for every fatal harvesting error."""

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.payload = payload


class RemoteQueryError(HarvestError):
    """
    The GraphQL endpoint answered with an ``errors`` list.

    The first error drives the message; the whole list stays available
    in ``errors`` (also the payload).
    """

    kind = ErrorKind.REMOTE_QUERY

    def __init__(
        self,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        error_type: Optional[str] = None,
        line: int = -1,
    ):
        super().__init__(message, payload=errors or [])
        self.errors = errors or []
        self.error_type = error_type
        self.line = line

    @classmethod
    def from_errors(cls, errors: List[Dict[str, Any]]) -> "RemoteQueryError":
        first = errors[0] if errors else {}
        locations = first.get("locations") or []
        line = locations[0].get("line", -1) if locations else -1
        return cls(
            first.get("message", "Unknown GraphQL error"),
            errors=errors,
            error_type=first.get("type"),
            line=line,
        )


class NormalizationError(HarvestError):
    """A raw repository node cannot be normalized at all."""

    kind = ErrorKind.NORMALIZATION


class PaginationError(HarvestError):
    """The owner or the collection of a paged query does not exist."""

    kind = ErrorKind.PAGINATION


class TransportError(HarvestError):
    """Exception raised for HTTP-level failures."""

    kind = ErrorKind.TRANSPORT


class AuthenticationError(TransportError):
    """Exception raised when GitHub API authentication fails."""

    pass


class RateLimitError(TransportError):
    """Exception raised when GitHub API rate limit is exceeded."""

    pass


@dataclass(frozen=True)
class HarvestResult:
    """Immutable result of a harvesting run."""

    owner: str
    repositories: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.repositories)

    @property
    def with_errors(self) -> int:
        """Count records that carry field-level errors."""
        return sum(1 for repo in self.repositories if "errors" in repo)

    @property
    def names(self) -> List[str]:
        return [repo["nameWithOwner"] for repo in self.repositories]

"""
pytest configuration for harvester tests.

This file configures:
1. Test markers for different test types
2. Fixtures for raw GraphQL nodes and pages
3. A recording sleep so pagination delays can be counted
"""

import pytest

from harvester.config import Settings


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def make_repo_node(name_with_owner, labels=None, **fields):
    """Build a raw repository node as returned by the repositories query."""
    node = {
        "name": name_with_owner.split("/", 1)[1],
        "nameWithOwner": name_with_owner,
        "isPrivate": False,
        "labels": {"nodes": [{"name": label} for label in (labels or [])]},
        "milestones": {"nodes": []},
        "branchProtectionRules": {"nodes": []},
    }
    node.update(fields)
    return node


def make_page(owner_key, collection_key, nodes, end_cursor=None, has_next_page=False):
    """Build the ``data`` of one page of a connection query."""
    return {
        owner_key: {
            collection_key: {
                "pageInfo": {"endCursor": end_cursor, "hasNextPage": has_next_page},
                "edges": [{"node": node} for node in nodes],
            }
        }
    }


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.calls = []

    async def __call__(self, delay):
        self.calls.append(delay)


@pytest.fixture
def repo_node():
    return make_repo_node


@pytest.fixture
def page_data():
    return make_page


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def test_settings():
    """Settings isolated from the environment."""
    return Settings(
        github_token="test_token_12345",
        owner="w3c",
        page_delay_seconds=5.0,
        include_private=False,
        skip_invalid_records=False,
        request_attempts=1,
        _env_file=None,
    )


@pytest.fixture
def raw_repository():
    """Fixture providing a raw repository node with every field shape."""
    return {
        "name": "trace-context",
        "nameWithOwner": "w3c/trace-context",
        "homepageUrl": "",
        "isArchived": False,
        "isPrivate": False,
        "hasWikiEnabled": True,
        "hasIssuesEnabled": True,
        "pushedAt": "2023-12-01T10:00:00Z",
        "updatedAt": "2023-12-01T10:30:00Z",
        "createdAt": "2017-01-01T00:00:00Z",
        "mergeCommitAllowed": True,
        "squashMergeAllowed": None,
        "defaultBranch": {"name": "main"},
        "branchProtectionRules": {
            "nodes": [
                {
                    "pattern": "main",
                    "requiredApprovingReviewCount": 1,
                    "requiredStatusCheckContexts": [],
                    "isAdminEnforced": False,
                }
            ]
        },
        "milestones": {
            "nodes": [
                {"title": "CR", "description": "", "state": "OPEN", "dueOn": None}
            ]
        },
        "labels": {"totalCount": 2, "nodes": [{"name": "bug"}, {"name": "editorial"}]},
        "codeOwners": None,
        "w3cJson": {"text": '{"group": ["45211"], "contacts": ["plh"]}'},
        "contributing": {"text": "# Contributing"},
        "license": {"text": "W3C Software and Document License"},
        "readme": {"text": "# Trace Context"},
        "codeOfConduct": None,
        "preview": {"text": '{"src_file": "index.bs", "type": "bikeshed"}'},
        "travis": None,
    }

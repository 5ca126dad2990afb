"""Shared test fixtures."""

import json

import pytest
from pytest_httpx import HTTPXMock

from linctl.linear import LinearClient
from linctl.models import Issue, IssueSummary, Team
from linctl.settings import LinctlSettings
from linctl.tools import LinearTools

ISSUE_UUID = "3f2b6c1e-8a4d-4b7e-9c2f-1a2b3c4d5e6f"
STATE_UUID = "8d9e0f1a-2b3c-4d5e-8f6a-7b8c9d0e1f2a"


@pytest.fixture
def settings() -> LinctlSettings:
    return LinctlSettings(linear_api_key="lin_api_test")  # type: ignore[call-arg]


@pytest.fixture
def client(settings: LinctlSettings) -> LinearClient:
    return LinearClient(settings)


@pytest.fixture
def tools(client: LinearClient) -> LinearTools:
    return LinearTools(client)


@pytest.fixture
def sent(httpx_mock: HTTPXMock):
    """Return a callable listing the GraphQL bodies sent so far."""

    def _sent() -> list[dict]:
        return [json.loads(request.content) for request in httpx_mock.get_requests()]

    return _sent


@pytest.fixture
def linear_issue() -> Issue:
    return Issue(
        id=ISSUE_UUID,
        identifier="ENG-123",
        title="Fix null check in auth middleware",
        description="The middleware throws when session is None.",
        url="https://linear.app/team/issue/ENG-123",
        state="In Progress",
        priority=2,
        assignee="Jane Doe",
        team="ENG",
        labels=["bug", "auth"],
    )


@pytest.fixture
def issue_summary() -> IssueSummary:
    return IssueSummary(identifier="ENG-1", title="Test issue", state="Todo", priority=3, labels=["bug"])


@pytest.fixture
def sample_team() -> Team:
    return Team(id="team_xyz", name="Engineering", key="ENG")

"""Tests for LinearClient using pytest-httpx."""

import pytest
from pytest_httpx import HTTPXMock

from linctl.errors import UpstreamError
from linctl.linear import LinearClient
from linctl.settings import DEFAULT_GRAPHQL_URL, LinctlSettings

ENDPOINT = DEFAULT_GRAPHQL_URL


class TestExecute:
    def test_returns_data(self, client: LinearClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=ENDPOINT, json={"data": {"viewer": {"id": "u1"}}})
        assert client.execute("query { viewer { id } }") == {"viewer": {"id": "u1"}}

    def test_sends_raw_key_and_variables(self, client: LinearClient, httpx_mock: HTTPXMock, sent) -> None:
        httpx_mock.add_response(url=ENDPOINT, json={"data": {}})
        client.execute("query Q($key: String!) { x }", {"key": "ENG"})

        request = httpx_mock.get_requests()[0]
        assert request.headers["Authorization"] == "lin_api_test"
        assert sent()[0] == {"query": "query Q($key: String!) { x }", "variables": {"key": "ENG"}}

    def test_custom_endpoint(self, httpx_mock: HTTPXMock) -> None:
        url = "https://linear.internal.example/graphql"
        httpx_mock.add_response(url=url, json={"data": {"ok": True}})
        client = LinearClient(LinctlSettings(linear_api_key="k", linear_graphql_url=url))  # type: ignore[call-arg]
        assert client.execute("query { ok }") == {"ok": True}

    def test_graphql_errors_raise(self, client: LinearClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=ENDPOINT, json={"errors": [{"message": "Entity not found"}]})
        with pytest.raises(UpstreamError, match="Entity not found") as exc_info:
            client.execute("query { x }")
        assert exc_info.value.status_code == 200
        assert exc_info.value.errors == [{"message": "Entity not found"}]

    def test_http_error_status_raises(self, client: LinearClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=ENDPOINT, status_code=400, json={"errors": [{"message": "Bad input"}]})
        with pytest.raises(UpstreamError) as exc_info:
            client.execute("query { x }")
        assert exc_info.value.status_code == 400

    def test_non_json_body_carried_as_text(self, client: LinearClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=ENDPOINT, status_code=502, text="Bad gateway")
        with pytest.raises(UpstreamError, match="502") as exc_info:
            client.execute("query { x }")
        assert exc_info.value.errors == {"body": "Bad gateway"}

    def test_unauthorized_raises(self, client: LinearClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=ENDPOINT, status_code=401, json={"message": "Unauthorized"})
        with pytest.raises(UpstreamError, match="401"):
            client.execute("query { x }")


class TestNodes:
    def test_returns_nodes(self, client: LinearClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=ENDPOINT, json={"data": {"teams": {"nodes": [{"id": "t1"}, {"id": "t2"}]}}})
        assert client.nodes("query { teams { nodes { id } } }", None, "teams") == [{"id": "t1"}, {"id": "t2"}]

    def test_null_connection_is_empty(self, client: LinearClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=ENDPOINT, json={"data": {"teams": None}})
        assert client.nodes("query { teams { nodes { id } } }", None, "teams") == []


def test_requires_api_key() -> None:
    with pytest.raises(RuntimeError, match="linear_api_key is required"):
        LinearClient(LinctlSettings(linear_api_key=None))  # type: ignore[call-arg]

"""Linear GraphQL API client."""

import logging

import httpx

from linctl.errors import UpstreamError
from linctl.settings import LinctlSettings

logger = logging.getLogger(__name__)


class LinearClient:
    def __init__(self, settings: LinctlSettings) -> None:
        if not settings.linear_api_key:
            raise RuntimeError("linear_api_key is required")
        self._api_key = settings.linear_api_key.get_secret_value()
        self.endpoint = settings.linear_graphql_url

    def execute(self, query: str, variables: dict | None = None) -> dict:
        """POST a GraphQL document and return its ``data`` mapping.

        Raises UpstreamError for a non-2xx status or a non-empty ``errors`` list.
        """
        response = httpx.post(
            self.endpoint,
            json={"query": query, "variables": variables or {}},
            headers={
                "Authorization": self._api_key,
                "Content-Type": "application/json",
            },
            timeout=30,
        )
        try:
            payload = response.json()
        except ValueError:
            payload = {"body": response.text}
        if not isinstance(payload, dict):
            payload = {"body": payload}

        if response.is_error or payload.get("errors"):
            logger.debug("Linear returned %s: %s", response.status_code, payload)
            raise UpstreamError(response.status_code, payload.get("errors") or payload)
        return payload.get("data") or {}

    def nodes(self, query: str, variables: dict | None, field: str) -> list[dict]:
        """Run a connection query and return ``data[field].nodes`` in server order."""
        connection = self.execute(query, variables).get(field) or {}
        return connection.get("nodes") or []

"""Exception taxonomy shared by the client, the resolver and the webhook gate."""


class LinctlError(RuntimeError):
    """Base class for every error linctl raises on purpose."""


class NotFoundError(LinctlError):
    """A referenced team, user, issue, state, project or label did not match."""

    def __init__(self, kind: str, reference: str) -> None:
        self.kind = kind
        self.reference = reference
        super().__init__(f"{kind} not found: {reference}")


class UpstreamError(LinctlError):
    """Linear answered with a non-success status or a GraphQL error list."""

    def __init__(self, status_code: int, errors: object) -> None:
        self.status_code = status_code
        self.errors = errors
        super().__init__(f"Linear API error ({status_code}): {errors}")


class Unauthenticated(LinctlError):
    """A webhook delivery failed signature or freshness checks.

    The reason is meant for server logs; callers only ever see a bare 401.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)

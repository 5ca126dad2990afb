"""Reference resolution: human-supplied references to canonical Linear IDs.

A ``Resolver`` lives for exactly one tool invocation. It memoizes team lookups
for that invocation only, so several aliases resolved in the same request
(state, project, labels) share one team query, while every new invocation goes
back to Linear.
"""

import re
from collections.abc import Callable, Iterable, Sequence

from linctl import queries
from linctl.errors import NotFoundError
from linctl.linear import LinearClient
from linctl.models import ClassifiedReference, ReferenceKind

_CANONICAL_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE,
)
_COMPOUND_KEY_RE = re.compile(r"(?P<team>[A-Z][A-Z0-9_]*)-(?P<number>[0-9]+)")


def is_canonical_id(value: str) -> bool:
    return _CANONICAL_RE.fullmatch(value) is not None


def classify_reference(reference: str) -> ClassifiedReference:
    """Classify a reference by shape alone; no network access.

    ``ENG-123`` → COMPOUND_KEY(team_key="ENG", number=123)
    ``8a6f...-...`` (RFC 4122, version 1-5) → CANONICAL
    anything else (emails, names, state labels) → ALIAS
    """
    if is_canonical_id(reference):
        return ClassifiedReference(kind=ReferenceKind.CANONICAL, value=reference)
    match = _COMPOUND_KEY_RE.fullmatch(reference)
    if match:
        return ClassifiedReference(
            kind=ReferenceKind.COMPOUND_KEY,
            value=reference,
            team_key=match.group("team"),
            number=int(match.group("number")),
        )
    return ClassifiedReference(kind=ReferenceKind.ALIAS, value=reference)


def _normalize(text: str | None) -> str:
    return (text or "").strip().lower()


def match_names(names: Sequence[str], directory: Iterable[dict], kind: str) -> list[str]:
    """Map each requested name to an ID from ``directory`` ({id, name} records).

    Matching is on trimmed, lowercased names. Output preserves input order and
    duplicates. The first unmatched name fails the whole call.
    """
    by_name: dict[str, str] = {}
    for entry in directory:
        by_name.setdefault(_normalize(entry.get("name")), entry["id"])

    ids = []
    for name in names:
        found = by_name.get(_normalize(name))
        if found is None:
            raise NotFoundError(kind, name)
        ids.append(found)
    return ids


def resolve_dual_input(
    explicit_ids: Sequence[str] | None,
    names: Sequence[str] | None,
    resolve_names: Callable[[list[str]], list[str]],
) -> list[str] | None:
    """Shared "ID or name" ladder for state, project and label fields.

    Canonical IDs pass through untouched. A non-canonical value in the ID field
    is resolved as a name (older callers put names there). The name field is
    only consulted when no ID was given. ``resolve_names`` runs lazily, so an
    all-canonical input costs no lookups.
    """
    if explicit_ids:
        aliases = [value for value in explicit_ids if not is_canonical_id(value)]
        if not aliases:
            return list(explicit_ids)
        resolved = iter(resolve_names(aliases))
        return [value if is_canonical_id(value) else next(resolved) for value in explicit_ids]
    if names:
        return resolve_names(list(names))
    return None


def resolve_id_or_name(
    explicit_id: str | None,
    name: str | None,
    resolve_name: Callable[[str], str],
) -> str | None:
    """Single-valued form of ``resolve_dual_input``."""
    resolved = resolve_dual_input(
        [explicit_id] if explicit_id else None,
        [name] if name else None,
        lambda aliases: [resolve_name(alias) for alias in aliases],
    )
    return resolved[0] if resolved else None


class Resolver:
    def __init__(self, client: LinearClient) -> None:
        self._client = client
        self._team_ids: dict[str, str] = {}  # team key -> team id
        self._issue_teams: dict[str, str] = {}  # issue id -> team id

    def resolve_team_id(self, team_key: str) -> str:
        # Team keys are case-sensitive in Linear; no folding.
        if team_key not in self._team_ids:
            nodes = self._client.nodes(queries.TEAM_BY_KEY, {"key": team_key}, "teams")
            if not nodes:
                raise NotFoundError("Team", team_key)
            self._team_ids[team_key] = nodes[0]["id"]
        return self._team_ids[team_key]

    def resolve_user_id_by_email(self, email: str) -> str:
        nodes = self._client.nodes(queries.USER_BY_EMAIL, {"email": email}, "users")
        if not nodes:
            raise NotFoundError("User", email)
        return nodes[0]["id"]

    def resolve_issue_id(self, reference: str) -> str:
        classified = classify_reference(reference)

        if classified.kind is ReferenceKind.CANONICAL:
            return reference

        if classified.kind is ReferenceKind.COMPOUND_KEY:
            team_id = self.resolve_team_id(classified.team_key)
            nodes = self._client.nodes(
                queries.ISSUE_BY_TEAM_AND_NUMBER,
                {"teamId": team_id, "number": classified.number},
                "issues",
            )
            if not nodes:
                raise NotFoundError("Issue", reference)
            issue_id = nodes[0]["id"]
            self._issue_teams[issue_id] = team_id
            return issue_id

        # Permissive fallback: some valid Linear IDs do not match the strict UUID shape.
        issue = self._client.execute(queries.ISSUE_TEAM, {"id": reference}).get("issue")
        if not issue:
            raise NotFoundError("Issue", reference)
        if issue.get("team"):
            self._issue_teams[issue["id"]] = issue["team"]["id"]
        return issue["id"]

    def issue_team_id(self, issue_id: str) -> str:
        """Team ID of an issue, fetched at most once per Resolver."""
        if issue_id not in self._issue_teams:
            issue = self._client.execute(queries.ISSUE_TEAM, {"id": issue_id}).get("issue")
            if not issue or not issue.get("team"):
                raise NotFoundError("Issue team", issue_id)
            self._issue_teams[issue_id] = issue["team"]["id"]
        return self._issue_teams[issue_id]

    def resolve_alias_to_state_id(self, alias: str, team_id: str) -> str:
        """Match ``alias`` against the team's state names, then against state types."""
        states = self._client.nodes(queries.TEAM_WORKFLOW_STATES, {"teamId": team_id}, "workflowStates")
        wanted = _normalize(alias)
        for field in ("name", "type"):
            for state in states:
                if wanted and _normalize(state.get(field)) == wanted:
                    return state["id"]
        raise NotFoundError("State", alias)

    def resolve_project_id(self, name: str, team_id: str) -> str:
        projects = self._client.nodes(queries.TEAM_PROJECTS, {"teamId": team_id}, "projects")
        return match_names([name], projects, "Project")[0]

    def resolve_label_ids(self, names: Sequence[str], team_id: str) -> list[str]:
        labels = self._client.nodes(queries.TEAM_LABELS, {"teamId": team_id}, "issueLabels")
        return match_names(names, labels, "Label")

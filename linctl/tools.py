"""Tool operations exposed to agents and the CLI.

Mutations resolve every human reference first, then send exactly one mutation.
Each call builds its own Resolver, so nothing is cached between calls.
"""

import logging
from collections.abc import Sequence
from datetime import date

from linctl import queries
from linctl.errors import NotFoundError, UpstreamError
from linctl.linear import LinearClient
from linctl.models import Issue, IssueSummary, Label, MutationResult, Project, Team, User, Webhook, WorkflowState
from linctl.resolve import Resolver, resolve_dual_input, resolve_id_or_name

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_RESOURCES = ("Issue", "Comment", "Project")


def _day_start(day: date) -> str:
    return f"{day.isoformat()}T00:00:00.000Z"


def _day_end(day: date) -> str:
    return f"{day.isoformat()}T23:59:59.999Z"


def _date_range(after: date | None, before: date | None) -> dict | None:
    bounds = {}
    if after:
        bounds["gte"] = _day_start(after)
    if before:
        bounds["lte"] = _day_end(before)
    return bounds or None


def _label_names(node: dict) -> list[str]:
    return [label["name"] for label in (node.get("labels") or {}).get("nodes", [])]


class LinearTools:
    def __init__(self, client: LinearClient) -> None:
        self._client = client

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _mutate(self, query: str, variables: dict, field: str) -> dict:
        result = self._client.execute(query, variables).get(field)
        if not result or not result.get("success"):
            raise UpstreamError(200, f"{field} returned success=false")
        return result

    def _mutation_result(self, result: dict) -> MutationResult:
        issue = result["issue"]
        return MutationResult(id=issue["id"], identifier=issue["identifier"], title=issue["title"])

    def create_issue(
        self,
        team_key: str,
        title: str,
        description: str | None = None,
        assignee_email: str | None = None,
        project_id: str | None = None,
        project_name: str | None = None,
        state_id: str | None = None,
        state: str | None = None,
        label_ids: Sequence[str] | None = None,
        label_names: Sequence[str] | None = None,
        priority: int | None = None,
        due_date: date | None = None,
        due_today: bool = False,
    ) -> MutationResult:
        resolver = Resolver(self._client)
        team_id = resolver.resolve_team_id(team_key)

        payload: dict = {"teamId": team_id, "title": title}
        if description is not None:
            payload["description"] = description
        if assignee_email:
            payload["assigneeId"] = resolver.resolve_user_id_by_email(assignee_email)

        resolved_project = resolve_id_or_name(
            project_id, project_name, lambda name: resolver.resolve_project_id(name, team_id)
        )
        if resolved_project:
            payload["projectId"] = resolved_project

        resolved_state = resolve_id_or_name(
            state_id, state, lambda alias: resolver.resolve_alias_to_state_id(alias, team_id)
        )
        if resolved_state:
            payload["stateId"] = resolved_state

        resolved_labels = resolve_dual_input(
            label_ids, label_names, lambda names: resolver.resolve_label_ids(names, team_id)
        )
        if resolved_labels:
            payload["labelIds"] = resolved_labels

        if priority is not None:
            payload["priority"] = priority
        if due_today:
            payload["dueDate"] = date.today().isoformat()
        elif due_date:
            payload["dueDate"] = due_date.isoformat()

        result = self._mutate(queries.ISSUE_CREATE, {"input": payload}, "issueCreate")
        created = self._mutation_result(result)
        logger.info("Created %s", created.identifier)
        return created

    def update_issue(
        self,
        reference: str,
        title: str | None = None,
        description: str | None = None,
        state_id: str | None = None,
        state: str | None = None,
        assignee_email: str | None = None,
        project_id: str | None = None,
        project_name: str | None = None,
        label_ids: Sequence[str] | None = None,
        label_names: Sequence[str] | None = None,
        priority: int | None = None,
        due_date: date | None = None,
    ) -> MutationResult:
        resolver = Resolver(self._client)
        issue_id = resolver.resolve_issue_id(reference)

        update: dict = {}
        if title:
            update["title"] = title
        if description:
            update["description"] = description
        if assignee_email:
            update["assigneeId"] = resolver.resolve_user_id_by_email(assignee_email)

        # issue_team_id is memoized on the resolver; only the first alias pays for it
        resolved_state = resolve_id_or_name(
            state_id,
            state,
            lambda alias: resolver.resolve_alias_to_state_id(alias, resolver.issue_team_id(issue_id)),
        )
        if resolved_state:
            update["stateId"] = resolved_state

        resolved_project = resolve_id_or_name(
            project_id,
            project_name,
            lambda name: resolver.resolve_project_id(name, resolver.issue_team_id(issue_id)),
        )
        if resolved_project:
            update["projectId"] = resolved_project

        resolved_labels = resolve_dual_input(
            label_ids,
            label_names,
            lambda names: resolver.resolve_label_ids(names, resolver.issue_team_id(issue_id)),
        )
        if resolved_labels:
            update["labelIds"] = resolved_labels

        if priority is not None:
            update["priority"] = priority
        if due_date:
            update["dueDate"] = due_date.isoformat()

        result = self._mutate(queries.ISSUE_UPDATE, {"id": issue_id, "input": update}, "issueUpdate")
        updated = self._mutation_result(result)
        logger.info("Updated %s (%s)", updated.identifier, ", ".join(sorted(update)) or "no fields")
        return updated

    def delete_issue(self, reference: str) -> None:
        issue_id = Resolver(self._client).resolve_issue_id(reference)
        self._mutate(queries.ISSUE_DELETE, {"id": issue_id}, "issueDelete")
        logger.info("Deleted issue %s", reference)

    def comment(self, reference: str, body: str) -> str:
        """Add a comment and return its ID."""
        issue_id = Resolver(self._client).resolve_issue_id(reference)
        result = self._mutate(
            queries.COMMENT_CREATE,
            {"input": {"issueId": issue_id, "body": body}},
            "commentCreate",
        )
        return (result.get("comment") or {}).get("id", "")

    def create_webhook(
        self,
        url: str,
        team_key: str | None = None,
        all_public_teams: bool = False,
        resource_types: Sequence[str] = DEFAULT_WEBHOOK_RESOURCES,
        enabled: bool = True,
    ) -> Webhook:
        webhook_input: dict = {
            "url": url,
            "enabled": enabled,
            "resourceTypes": list(resource_types),
        }
        if team_key and not all_public_teams:
            webhook_input["teamId"] = Resolver(self._client).resolve_team_id(team_key)
        else:
            webhook_input["allPublicTeams"] = all_public_teams

        result = self._mutate(queries.WEBHOOK_CREATE, {"input": webhook_input}, "webhookCreate")
        hook = result["webhook"]
        return Webhook(id=hook["id"], enabled=hook["enabled"], url=hook.get("url"))

    def delete_webhook(self, webhook_id: str) -> None:
        self._mutate(queries.WEBHOOK_DELETE, {"id": webhook_id}, "webhookDelete")

    # ------------------------------------------------------------------
    # Read tools
    # ------------------------------------------------------------------

    def get_issue(self, reference: str) -> Issue:
        # Linear's issue(id:) accepts both UUIDs and ENG-123 identifiers
        node = self._client.execute(queries.GET_ISSUE, {"id": reference}).get("issue")
        if not node:
            raise NotFoundError("Issue", reference)
        return Issue(
            id=node["id"],
            identifier=node["identifier"],
            title=node["title"],
            description=node.get("description"),
            url=node.get("url"),
            state=(node.get("state") or {}).get("name"),
            priority=node.get("priority"),
            assignee=(node.get("assignee") or {}).get("name"),
            team=(node.get("team") or {}).get("key"),
            labels=_label_names(node),
            updated_at=node.get("updatedAt"),
        )

    def list_issues(
        self,
        team_key: str | None = None,
        assignee_email: str | None = None,
        created_on: date | None = None,
        updated_on: date | None = None,
        created_after: date | None = None,
        created_before: date | None = None,
        updated_after: date | None = None,
        updated_before: date | None = None,
    ) -> list[IssueSummary]:
        resolver = Resolver(self._client)
        issue_filter: dict = {}
        if team_key:
            issue_filter["team"] = {"id": {"eq": resolver.resolve_team_id(team_key)}}
        if assignee_email:
            issue_filter["assignee"] = {"id": {"eq": resolver.resolve_user_id_by_email(assignee_email)}}

        # *_on covers the whole day and overrides the explicit bounds
        if created_on:
            created_after = created_before = created_on
        if updated_on:
            updated_after = updated_before = updated_on
        if created := _date_range(created_after, created_before):
            issue_filter["createdAt"] = created
        if updated := _date_range(updated_after, updated_before):
            issue_filter["updatedAt"] = updated

        nodes = self._client.nodes(queries.ISSUES_BY_FILTER, {"filter": issue_filter}, "issues")
        return [
            IssueSummary(
                identifier=n["identifier"],
                title=n["title"],
                state=(n.get("state") or {}).get("name"),
                priority=n.get("priority"),
                project=(n.get("project") or {}).get("name"),
                labels=_label_names(n),
            )
            for n in nodes
        ]

    def list_issues_today(self, team_key: str | None = None, assignee_email: str | None = None) -> list[IssueSummary]:
        return self.list_issues(team_key=team_key, assignee_email=assignee_email, updated_on=date.today())

    def list_teams(self) -> list[Team]:
        nodes = self._client.nodes(queries.LIST_TEAMS, None, "teams")
        return [Team(id=n["id"], name=n["name"], key=n["key"]) for n in nodes]

    def list_users(self) -> list[User]:
        nodes = self._client.nodes(queries.LIST_USERS, None, "users")
        return [User(id=n["id"], name=n["name"], email=n.get("email")) for n in nodes]

    def list_states(self, team_key: str) -> list[WorkflowState]:
        team_id = Resolver(self._client).resolve_team_id(team_key)
        nodes = self._client.nodes(queries.TEAM_WORKFLOW_STATES, {"teamId": team_id}, "workflowStates")
        return [WorkflowState(id=n["id"], name=n["name"], type=n.get("type")) for n in nodes]

    def list_labels(self, team_key: str | None = None) -> list[Label]:
        if team_key:
            team_id = Resolver(self._client).resolve_team_id(team_key)
            nodes = self._client.nodes(queries.TEAM_LABELS, {"teamId": team_id}, "issueLabels")
        else:
            nodes = self._client.nodes(queries.ALL_LABELS, None, "issueLabels")
        return [Label(id=n["id"], name=n["name"]) for n in nodes]

    def list_projects(self, team_key: str | None = None) -> list[Project]:
        if team_key:
            team_id = Resolver(self._client).resolve_team_id(team_key)
            nodes = self._client.nodes(queries.TEAM_PROJECTS, {"teamId": team_id}, "projects")
        else:
            nodes = self._client.nodes(queries.ALL_PROJECTS, None, "projects")
        return [Project(id=n["id"], name=n["name"]) for n in nodes]

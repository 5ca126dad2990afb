"""linctl CLI commands."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from typing import Annotated

import httpx
import tomlkit
import typer
import uvicorn
from pydantic import SecretStr
from rich import print as rprint
from rich.logging import RichHandler
from rich.table import Table

from linctl.errors import LinctlError
from linctl.linear import LinearClient
from linctl.models import IssueSummary
from linctl.server import create_app
from linctl.settings import CONFIG_PATH, LinctlSettings, _list_profiles, get_settings
from linctl.tools import DEFAULT_WEBHOOK_RESOURCES, LinearTools

app = typer.Typer(help="linctl: manage Linear issues and receive Linear webhooks", no_args_is_help=True)

WorkspaceOpt = Annotated[
    str | None,
    typer.Option("--workspace", "-w", help="Profile name from ~/.config/linctl/config.toml"),
]
DateOpt = Annotated[datetime | None, typer.Option(formats=["%Y-%m-%d"])]

_PRIORITY_LABEL = {0: "— (No priority)", 1: "🔴 Urgent", 2: "🟠 High", 3: "🟡 Medium", 4: "🟢 Low"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_tools(workspace: str | None = None) -> LinearTools:
    settings = get_settings(workspace=workspace)
    return LinearTools(LinearClient(settings))


@contextmanager
def _surface_errors() -> Iterator[None]:
    """Turn linctl errors into a red one-liner and exit code 1."""
    try:
        yield
    except LinctlError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


def _day(value: datetime | None) -> date | None:
    return value.date() if value else None


def _issue_table(title: str, issues: list[IssueSummary]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("State")
    table.add_column("Pri")
    table.add_column("Title")
    table.add_column("Project")
    table.add_column("Labels", style="dim")

    for issue in issues:
        pri = _PRIORITY_LABEL.get(issue.priority, "—") if issue.priority is not None else "—"
        table.add_row(
            issue.identifier,
            issue.state or "",
            pri,
            issue.title,
            issue.project or "",
            ", ".join(issue.labels),
        )
    return table


# ---------------------------------------------------------------------------
# Issue commands
# ---------------------------------------------------------------------------


@app.command("list-issues")
def list_issues(
    workspace: WorkspaceOpt = None,
    team: Annotated[str | None, typer.Option("--team", "-t", help="Team key (e.g. ENG)")] = None,
    assignee: Annotated[str | None, typer.Option("--assignee", "-a", help="Assignee email")] = None,
    created_on: DateOpt = None,
    updated_on: DateOpt = None,
    created_after: DateOpt = None,
    created_before: DateOpt = None,
    updated_after: DateOpt = None,
    updated_before: DateOpt = None,
) -> None:
    """List issues, optionally filtered by team, assignee and dates."""
    tools = get_tools(workspace)
    with _surface_errors():
        issues = tools.list_issues(
            team_key=team,
            assignee_email=assignee,
            created_on=_day(created_on),
            updated_on=_day(updated_on),
            created_after=_day(created_after),
            created_before=_day(created_before),
            updated_after=_day(updated_after),
            updated_before=_day(updated_before),
        )
    rprint(_issue_table("Issues", issues))


@app.command("list-issues-today")
def list_issues_today(
    workspace: WorkspaceOpt = None,
    team: Annotated[str | None, typer.Option("--team", "-t", help="Team key (e.g. ENG)")] = None,
    assignee: Annotated[str | None, typer.Option("--assignee", "-a", help="Assignee email")] = None,
) -> None:
    """List issues updated today."""
    tools = get_tools(workspace)
    with _surface_errors():
        issues = tools.list_issues_today(team_key=team, assignee_email=assignee)
    rprint(_issue_table("Updated today", issues))


@app.command("get-issue")
def get_issue(
    reference: Annotated[str, typer.Argument(help="Issue ID or key (e.g. ENG-123)")],
    workspace: WorkspaceOpt = None,
) -> None:
    """Show full details for an issue."""
    tools = get_tools(workspace)
    with _surface_errors():
        issue = tools.get_issue(reference)

    table = Table(title=f"{issue.identifier}: {issue.title}")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("State", issue.state or "—")
    table.add_row("Team", issue.team or "—")
    table.add_row("Assignee", issue.assignee or "Unassigned")
    if issue.priority is not None:
        table.add_row("Priority", _PRIORITY_LABEL.get(issue.priority, str(issue.priority)))
    table.add_row("Labels", ", ".join(issue.labels) if issue.labels else "none")
    table.add_row("Updated", issue.updated_at or "—")
    table.add_row("URL", issue.url or "—")
    table.add_row("Description", issue.description or "_No description provided._")

    rprint(table)


@app.command("create-issue")
def create_issue(
    team: Annotated[str, typer.Argument(help="Team key (e.g. ENG)")],
    title: Annotated[str, typer.Argument(help="Issue title")],
    description: Annotated[str | None, typer.Argument(help="Issue description")] = None,
    workspace: WorkspaceOpt = None,
    assignee: Annotated[str | None, typer.Option("--assignee", "-a", help="Assignee email")] = None,
    project_id: Annotated[str | None, typer.Option("--project-id", help="Project ID")] = None,
    project: Annotated[str | None, typer.Option("--project", help="Project name")] = None,
    state_id: Annotated[str | None, typer.Option("--state-id", help="Workflow state ID")] = None,
    state: Annotated[str | None, typer.Option("--state", "-s", help="State name or type")] = None,
    label_id: Annotated[list[str] | None, typer.Option("--label-id", help="Label ID (repeatable)")] = None,
    label: Annotated[list[str] | None, typer.Option("--label", "-l", help="Label name (repeatable)")] = None,
    priority: Annotated[
        int | None, typer.Option("--priority", "-p", min=0, max=4, help="Priority 0-4")
    ] = None,
    due: DateOpt = None,
    due_today: Annotated[bool, typer.Option("--due-today", help="Set the due date to today")] = False,
) -> None:
    """Create a new issue."""
    tools = get_tools(workspace)
    with _surface_errors():
        created = tools.create_issue(
            team_key=team,
            title=title,
            description=description,
            assignee_email=assignee,
            project_id=project_id,
            project_name=project,
            state_id=state_id,
            state=state,
            label_ids=label_id,
            label_names=label,
            priority=priority,
            due_date=_day(due),
            due_today=due_today,
        )

    rprint(f"[green]✓[/green] Created [bold]{created.identifier}[/bold] {created.title}")


@app.command("update-issue")
def update_issue(
    reference: Annotated[str, typer.Argument(help="Issue ID or key (e.g. ENG-123)")],
    workspace: WorkspaceOpt = None,
    title: Annotated[str | None, typer.Option("--title", help="New title")] = None,
    description: Annotated[str | None, typer.Option("--description", "-d", help="New description")] = None,
    state_id: Annotated[str | None, typer.Option("--state-id", help="Workflow state ID")] = None,
    state: Annotated[str | None, typer.Option("--state", "-s", help="State name or type")] = None,
    assignee: Annotated[str | None, typer.Option("--assignee", "-a", help="Assignee email")] = None,
    project_id: Annotated[str | None, typer.Option("--project-id", help="Project ID")] = None,
    project: Annotated[str | None, typer.Option("--project", help="Project name")] = None,
    label_id: Annotated[list[str] | None, typer.Option("--label-id", help="Label ID (repeatable)")] = None,
    label: Annotated[list[str] | None, typer.Option("--label", "-l", help="Label name (repeatable)")] = None,
    priority: Annotated[
        int | None, typer.Option("--priority", "-p", min=0, max=4, help="Priority 0-4")
    ] = None,
    due: DateOpt = None,
) -> None:
    """Update fields of an existing issue."""
    tools = get_tools(workspace)
    with _surface_errors():
        updated = tools.update_issue(
            reference,
            title=title,
            description=description,
            state_id=state_id,
            state=state,
            assignee_email=assignee,
            project_id=project_id,
            project_name=project,
            label_ids=label_id,
            label_names=label,
            priority=priority,
            due_date=_day(due),
        )

    rprint(f"[green]✓[/green] Updated [bold]{updated.identifier}[/bold] {updated.title}")


@app.command("delete-issue")
def delete_issue(
    reference: Annotated[str, typer.Argument(help="Issue ID or key (e.g. ENG-123)")],
    workspace: WorkspaceOpt = None,
) -> None:
    """Delete an issue."""
    tools = get_tools(workspace)
    with _surface_errors():
        tools.delete_issue(reference)
    rprint(f"[green]✓[/green] Deleted {reference}")


@app.command("comment")
def comment(
    reference: Annotated[str, typer.Argument(help="Issue ID or key (e.g. ENG-123)")],
    body: Annotated[str, typer.Argument(help="Comment body (markdown)")],
    workspace: WorkspaceOpt = None,
) -> None:
    """Add a comment to an issue."""
    tools = get_tools(workspace)
    with _surface_errors():
        comment_id = tools.comment(reference, body)
    rprint(f"[green]✓[/green] Comment {comment_id or 'ok'}")


# ---------------------------------------------------------------------------
# Directory commands
# ---------------------------------------------------------------------------


@app.command("list-teams")
def list_teams(workspace: WorkspaceOpt = None) -> None:
    """List available teams."""
    tools = get_tools(workspace)
    with _surface_errors():
        teams = tools.list_teams()

    table = Table(title="Teams")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("ID", style="dim")

    for t in teams:
        table.add_row(t.key, t.name, t.id)

    rprint(table)


@app.command("list-users")
def list_users(workspace: WorkspaceOpt = None) -> None:
    """List workspace members."""
    tools = get_tools(workspace)
    with _surface_errors():
        users = tools.list_users()

    table = Table(title="Users")
    table.add_column("Name", style="cyan")
    table.add_column("Email")
    table.add_column("ID", style="dim")

    for u in users:
        table.add_row(u.name, u.email or "", u.id)

    rprint(table)


@app.command("list-states")
def list_states(
    team: Annotated[str, typer.Argument(help="Team key (e.g. ENG)")],
    workspace: WorkspaceOpt = None,
) -> None:
    """List workflow states for a team."""
    tools = get_tools(workspace)
    with _surface_errors():
        states = tools.list_states(team)

    table = Table(title=f"{team} states")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("ID", style="dim")

    for s in states:
        table.add_row(s.name, s.type or "", s.id)

    rprint(table)


@app.command("list-labels")
def list_labels(
    workspace: WorkspaceOpt = None,
    team: Annotated[str | None, typer.Option("--team", "-t", help="Team key (e.g. ENG)")] = None,
) -> None:
    """List issue labels, optionally for one team."""
    tools = get_tools(workspace)
    with _surface_errors():
        labels = tools.list_labels(team)

    table = Table(title="Labels")
    table.add_column("Name", style="cyan")
    table.add_column("ID", style="dim")

    for label in labels:
        table.add_row(label.name, label.id)

    rprint(table)


@app.command("list-projects")
def list_projects(
    workspace: WorkspaceOpt = None,
    team: Annotated[str | None, typer.Option("--team", "-t", help="Team key (e.g. ENG)")] = None,
) -> None:
    """List projects, optionally for one team."""
    tools = get_tools(workspace)
    with _surface_errors():
        projects = tools.list_projects(team)

    table = Table(title="Projects")
    table.add_column("Name", style="cyan")
    table.add_column("ID", style="dim")

    for p in projects:
        table.add_row(p.name, p.id)

    rprint(table)


# ---------------------------------------------------------------------------
# Webhook commands
# ---------------------------------------------------------------------------


@app.command("webhook-create")
def webhook_create(
    url: Annotated[str, typer.Argument(help="Delivery URL, e.g. https://host/webhooks/linear")],
    workspace: WorkspaceOpt = None,
    team: Annotated[str | None, typer.Option("--team", "-t", help="Team key (e.g. ENG)")] = None,
    all_public_teams: Annotated[bool, typer.Option("--all-public-teams", help="Subscribe to all public teams")] = False,
    resource: Annotated[
        list[str] | None, typer.Option("--resource", "-r", help="Resource type (repeatable)")
    ] = None,
    disabled: Annotated[bool, typer.Option("--disabled", help="Create the webhook disabled")] = False,
) -> None:
    """Register a Linear webhook."""
    tools = get_tools(workspace)
    with _surface_errors():
        hook = tools.create_webhook(
            url,
            team_key=team,
            all_public_teams=all_public_teams,
            resource_types=resource or DEFAULT_WEBHOOK_RESOURCES,
            enabled=not disabled,
        )
    rprint(f"[green]✓[/green] Webhook id={hook.id} enabled={hook.enabled}")


@app.command("webhook-delete")
def webhook_delete(
    webhook_id: Annotated[str, typer.Argument(help="Webhook ID")],
    workspace: WorkspaceOpt = None,
) -> None:
    """Delete a Linear webhook."""
    tools = get_tools(workspace)
    with _surface_errors():
        tools.delete_webhook(webhook_id)
    rprint(f"[green]✓[/green] Webhook {webhook_id} deleted")


@app.command("serve")
def serve(
    workspace: WorkspaceOpt = None,
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Bind port")] = 8787,
    log_level: Annotated[str, typer.Option("--log-level", help="Logging level")] = "info",
) -> None:
    """Run the webhook receiver."""
    settings = get_settings(workspace=workspace, require_api_key=False)
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    if not settings.webhook_secret:
        rprint("[yellow]Warning:[/yellow] no webhook_secret configured; every delivery will be rejected.")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=log_level.lower())


# ---------------------------------------------------------------------------
# Configuration commands
# ---------------------------------------------------------------------------


@app.command("set-default")
def set_default(
    workspace: Annotated[str, typer.Argument(help="Profile name to set as default")],
) -> None:
    """Set the default workspace profile in ~/.config/linctl/config.toml."""
    if not CONFIG_PATH.exists():
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        doc = tomlkit.document()
        doc.add("default_workspace", workspace)
        CONFIG_PATH.write_text(tomlkit.dumps(doc))
        rprint(f'[green]✓[/green] Default workspace set to "{workspace}" in {CONFIG_PATH}')
        return

    doc = tomlkit.load(CONFIG_PATH.open())
    profiles = _list_profiles(doc)
    if workspace not in profiles:
        rprint(f"[red]Workspace '{workspace}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}[/red]")
        raise typer.Exit(1)

    doc["default_workspace"] = workspace
    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    rprint(f'[green]✓[/green] Default workspace set to "{workspace}" in {CONFIG_PATH}')


@app.command("config-show")
def config_show(workspace: WorkspaceOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(workspace=workspace, require_api_key=False)

    def mask(val: str | None, prefix: str = "") -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"{prefix}...{val[-5:]}"

    def secret(field) -> str | None:
        return field.get_secret_value() if field else None

    table = Table(title="linctl Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("default_workspace", settings.default_workspace or "[dim](not set)[/dim]")
    table.add_row("linear_api_key", mask(secret(settings.linear_api_key), prefix="lin_api_"))
    table.add_row("linear_graphql_url", settings.linear_graphql_url)
    table.add_row("server_name", settings.server_name)
    table.add_row("webhook_secret", mask(secret(settings.webhook_secret)))
    table.add_row("forward_url", settings.forward_url or "[dim](not set)[/dim]")
    table.add_row("forward_signing_secret", mask(secret(settings.forward_signing_secret)))

    rprint(table)


@app.command("init")
def init_cmd() -> None:
    """Interactive first-time setup wizard."""
    rprint("[bold]linctl Setup Wizard[/bold]")
    rprint("")

    profile_name = typer.prompt("Workspace name (e.g. work, personal)").strip()
    if not profile_name:
        rprint("[red]Workspace name cannot be empty.[/red]")
        raise typer.Exit(1)

    rprint("Create a Personal API Key at: https://linear.app/settings/api")
    key = typer.prompt("Paste API key", hide_input=True).strip()
    profile_config: dict = {"linear_api_key": key}

    verify = typer.confirm("Fetch teams to confirm key works?", default=True)
    if verify:
        try:
            # the typed key must win over any LINCTL_LINEAR_API_KEY in the environment
            settings = LinctlSettings().model_copy(update={"linear_api_key": SecretStr(key)})
            teams = LinearTools(LinearClient(settings)).list_teams()
            rprint(f"[green]✓[/green] Connected. Found {len(teams)} team(s).")
        except (LinctlError, httpx.HTTPError) as exc:
            rprint(f"[yellow]Warning:[/yellow] Could not fetch teams: {exc}")

    webhook_secret = typer.prompt("Webhook signing secret (leave blank to skip)", default="", hide_input=True).strip()
    if webhook_secret:
        profile_config["webhook_secret"] = webhook_secret

    set_as_default = typer.confirm(f"Set '{profile_name}' as default workspace?", default=True)

    # round-trip preserves any existing comments
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    doc = tomlkit.load(CONFIG_PATH.open()) if CONFIG_PATH.exists() else tomlkit.document()

    doc[profile_name] = profile_config
    if set_as_default:
        doc["default_workspace"] = profile_name

    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    rprint(f"[green]✓[/green] Workspace '{profile_name}' written to {CONFIG_PATH}")

    rprint("")
    config_show(workspace=profile_name)

"""Shared pydantic models passed between the Linear layer and main.py."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # Linear UUID
    identifier: str  # ENG-123
    title: str
    description: str | None = None
    url: str | None = None
    state: str | None = None
    priority: int | None = None
    assignee: str | None = None
    team: str | None = None  # team key
    labels: list[str] = []
    updated_at: str | None = None


class IssueSummary(BaseModel):
    """Row returned by the list tools."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    title: str
    state: str | None = None
    priority: int | None = None
    project: str | None = None
    labels: list[str] = []


class Team(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    key: str


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str | None = None


class WorkflowState(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str | None = None  # backlog | unstarted | started | completed | canceled


class Label(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class MutationResult(BaseModel):
    """Returned by create/update: just what the caller needs."""

    model_config = ConfigDict(frozen=True)

    id: str
    identifier: str
    title: str


class Webhook(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    enabled: bool
    url: str | None = None


class ReferenceKind(str, Enum):
    CANONICAL = "canonical"
    COMPOUND_KEY = "compound_key"
    ALIAS = "alias"


class ClassifiedReference(BaseModel):
    """Syntactic classification of a caller-supplied reference string."""

    model_config = ConfigDict(frozen=True)

    kind: ReferenceKind
    value: str
    team_key: str | None = None  # set for COMPOUND_KEY only
    number: int | None = None  # set for COMPOUND_KEY only

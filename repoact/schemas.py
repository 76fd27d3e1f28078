"""Webhook payload schemas.

Only the fields the notifier reads are modelled; everything else GitHub sends
is ignored. Values outside the closed enums fail validation.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from repoact.errors import MalformedPayload


class Action(str, enum.Enum):
    """Webhook ``action`` values the notifier understands."""

    OPENED = "opened"
    CLOSED = "closed"
    REOPENED = "reopened"
    CREATED = "created"
    READY_FOR_REVIEW = "ready_for_review"
    WAITING = "waiting"


class State(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class Scenario(str, enum.Enum):
    """Which notification an event turns into."""

    ISSUE = "issue"
    ISSUE_COMMENT = "issue_comment"
    PULL_REQUEST = "pull_request"
    DISCUSSION = "discussion"
    DISCUSSION_COMMENT = "discussion_comment"
    WORKFLOW_JOB = "workflow_job"


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True)


class User(_Payload):
    login: str
    id: int
    avatar_url: str
    html_url: str


class Label(_Payload):
    name: str
    url: str


class Repository(_Payload):
    full_name: str
    html_url: str


class IssuePullRequestInfo(_Payload):
    """Marker GitHub attaches to issues that are really pull requests."""

    html_url: Optional[str] = None


class Issue(_Payload):
    number: int
    title: str
    html_url: str
    user: User
    labels: list[Label] = []
    body: Optional[str] = None
    state: State
    pull_request: Optional[IssuePullRequestInfo] = None

    def is_pr(self) -> bool:
        return self.pull_request is not None


class Ref(_Payload):
    label: str


class PullRequest(_Payload):
    number: int
    title: str
    html_url: str
    user: User
    body: Optional[str] = None
    head: Ref
    base: Ref
    # None means GitHub did not say; ask the API.
    merged: Optional[bool] = None
    draft: bool = False
    labels: list[Label] = []


class Discussion(_Payload):
    number: int
    title: str
    html_url: str
    user: User
    state: State
    body: Optional[str] = None


class WorkflowJob(_Payload):
    run_id: int
    run_url: str
    workflow_name: str
    name: str
    head_sha: str
    head_branch: Optional[str] = None
    html_url: Optional[str] = None


class DeploymentInfo(_Payload):
    environment: str
    url: Optional[str] = None


class Comment(_Payload):
    html_url: str
    user: User
    body: str = ""


class WebhookEvent(_Payload):
    action: Action
    sender: User
    repository: Repository
    issue: Optional[Issue] = None
    comment: Optional[Comment] = None
    pull_request: Optional[PullRequest] = None
    discussion: Optional[Discussion] = None
    workflow_job: Optional[WorkflowJob] = None
    deployment: Optional[DeploymentInfo] = None

    @model_validator(mode="after")
    def _has_resource(self) -> "WebhookEvent":
        if (
            self.issue is None
            and self.pull_request is None
            and self.discussion is None
            and self.workflow_job is None
        ):
            raise ValueError(
                "payload carries none of issue, pull_request, discussion, workflow_job"
            )
        return self


def parse_event(body: bytes) -> WebhookEvent:
    """Decode a raw webhook body, raising :class:`MalformedPayload` on failure."""
    try:
        return WebhookEvent.model_validate_json(body)
    except ValidationError as exc:
        raise MalformedPayload(
            f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}"
        ) from exc


def scenario_of(event: WebhookEvent) -> Scenario:
    """
    Pick the notification scenario for an event.

    GitHub may send more than one resource at once (an issue comment on a pull
    request carries ``issue``); the first match in this chain wins:
    issue or its comment, pull request, discussion or its comment, workflow job.
    """
    if event.issue is not None:
        return Scenario.ISSUE_COMMENT if event.comment is not None else Scenario.ISSUE
    elif event.pull_request is not None:
        return Scenario.PULL_REQUEST
    elif event.discussion is not None:
        if event.comment is not None:
            return Scenario.DISCUSSION_COMMENT
        return Scenario.DISCUSSION
    elif event.workflow_job is not None:
        return Scenario.WORKFLOW_JOB
    raise MalformedPayload("payload carries no known resource")

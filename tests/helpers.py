"""Payload builders and fakes shared by the tests."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Optional, Sequence

from repoact.services.github import (
    CommitInfo,
    PullRequestFlags,
    Reviewer,
    WorkflowRunDetails,
)

WEBHOOK_SECRET = "webhook-secret"
REPO_FULL_NAME = "octo/widgets"


def user(login: str = "octocat", uid: int = 1) -> dict[str, Any]:
    return {
        "login": login,
        "id": uid,
        "avatar_url": f"https://avatars.example.com/{login}",
        "html_url": f"https://github.com/{login}",
    }


def labels(*names: str) -> list[dict[str, str]]:
    return [{"name": n, "url": f"https://api.github.com/labels/{n}"} for n in names]


def issue(
    number: int = 7,
    *,
    state: str = "open",
    is_pr: bool = False,
    label_names: Sequence[str] = (),
    title: str = "Widget spins backwards",
) -> dict[str, Any]:
    data = {
        "number": number,
        "title": title,
        "html_url": f"https://github.com/{REPO_FULL_NAME}/issues/{number}",
        "user": user("reporter", 2),
        "labels": labels(*label_names),
        "body": "It should spin forwards.",
        "state": state,
    }
    if is_pr:
        data["pull_request"] = {"html_url": f"https://github.com/{REPO_FULL_NAME}/pull/{number}"}
    return data


def pull_request(
    number: int = 12,
    *,
    head: str = "octo:ft-login",
    base: str = "octo:dev",
    merged: Optional[bool] = False,
    draft: Optional[bool] = False,
    label_names: Sequence[str] = (),
    title: str = "Add login form",
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "number": number,
        "title": title,
        "html_url": f"https://github.com/{REPO_FULL_NAME}/pull/{number}",
        "user": user("author", 3),
        "body": "Adds the login form.",
        "head": {"label": head},
        "base": {"label": base},
        "labels": labels(*label_names),
    }
    if merged is not None:
        data["merged"] = merged
    if draft is not None:
        data["draft"] = draft
    return data


def discussion(number: int = 3, *, state: str = "open") -> dict[str, Any]:
    return {
        "number": number,
        "title": "Roadmap ideas",
        "html_url": f"https://github.com/{REPO_FULL_NAME}/discussions/{number}",
        "user": user("thinker", 4),
        "state": state,
        "body": "What should come next?",
    }


def comment(body: str = "Looks good to me") -> dict[str, Any]:
    return {
        "html_url": f"https://github.com/{REPO_FULL_NAME}/issues/7#issuecomment-1",
        "user": user("commenter", 5),
        "body": body,
    }


def workflow_job() -> dict[str, Any]:
    return {
        "run_id": 555,
        "run_url": f"https://api.github.com/repos/{REPO_FULL_NAME}/actions/runs/555",
        "workflow_name": "Deploy",
        "name": "release",
        "head_sha": "0123456789abcdef0123456789abcdef01234567",
        "head_branch": "master",
        "html_url": f"https://github.com/{REPO_FULL_NAME}/actions/runs/555/job/1",
    }


def event(action: str, **resources: Any) -> dict[str, Any]:
    data = {
        "action": action,
        "sender": user("sender", 9),
        "repository": {
            "full_name": REPO_FULL_NAME,
            "html_url": f"https://github.com/{REPO_FULL_NAME}",
        },
    }
    data.update(resources)
    return data


def encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode()


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def first_choice(options: Sequence[str]) -> str:
    return options[0]


class FakeGitHub:
    """Stands in for GitHubAppClient and counts the lookups made."""

    def __init__(
        self,
        flags: PullRequestFlags = PullRequestFlags(merged=False, draft=False),
        *,
        fail: Optional[Exception] = None,
    ) -> None:
        self.flags = flags
        self.fail = fail
        self.flag_queries: list[int] = []
        self.run_queries: list[str] = []
        self.commit_queries: list[str] = []
        self.reviewer_queries: list[str] = []

    async def query_pull_request_flags(self, number: int) -> PullRequestFlags:
        self.flag_queries.append(number)
        if self.fail:
            raise self.fail
        return self.flags

    async def fetch_workflow_run_details(self, run_url: str) -> WorkflowRunDetails:
        self.run_queries.append(run_url)
        if self.fail:
            raise self.fail
        return WorkflowRunDetails(run_number=42, html_url="https://github.com/octo/widgets/actions/runs/555")

    async def query_commit(self, sha: str) -> CommitInfo:
        self.commit_queries.append(sha)
        return CommitInfo(message="Bump version\n\nlong text", committer_name="Mona")

    async def query_environment_reviewers(self, environment_name: str) -> list[Reviewer]:
        self.reviewer_queries.append(environment_name)
        return [Reviewer(login="mona", name="Mona Lisa"), Reviewer(login="hubot")]


class Connector:
    """``connect`` callable handing out a FakeGitHub, counting connections."""

    def __init__(self, client: FakeGitHub) -> None:
        self.client = client
        self.calls = 0

    async def __call__(self, *args: Any) -> FakeGitHub:
        self.calls += 1
        return self.client

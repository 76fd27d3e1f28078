"""Fill in fields a webhook payload leaves unknown.

Each helper takes ``connect``, a zero-argument coroutine factory returning a
:class:`GitHubAppClient`. It is only awaited when a lookup is needed, so
events that carry everything never trigger a token exchange.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from repoact.errors import MissingRequiredField
from repoact.schemas import DeploymentInfo, Issue, PullRequest, WorkflowJob
from repoact.services.github import (
    CommitInfo,
    GitHubAppClient,
    PullRequestFlags,
    Reviewer,
    WorkflowRunDetails,
)

Connect = Callable[[], Awaitable[GitHubAppClient]]


@dataclass(frozen=True)
class DeploymentContext:
    environment: str
    environment_url: Optional[str]
    run: WorkflowRunDetails
    commit: CommitInfo
    reviewers: list[Reviewer] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedFields:
    """Everything looked up for one event. Empty when nothing was needed."""

    pr_flags: Optional[PullRequestFlags] = None
    deployment: Optional[DeploymentContext] = None


def needs_pull_request_lookup(pr: PullRequest) -> bool:
    return pr.merged is None


async def resolve_pull_request_flags(pr: PullRequest, connect: Connect) -> PullRequestFlags:
    if not needs_pull_request_lookup(pr):
        return PullRequestFlags(merged=bool(pr.merged), draft=pr.draft)
    client = await connect()
    return await client.query_pull_request_flags(pr.number)


async def resolve_comment_target(issue: Issue, connect: Connect) -> Optional[PullRequestFlags]:
    """Issue comment payloads never include PR flags; fetch them for PR issues."""
    if not issue.is_pr():
        return None
    client = await connect()
    return await client.query_pull_request_flags(issue.number)


async def resolve_deployment_context(
    job: WorkflowJob,
    deployment: Optional[DeploymentInfo],
    connect: Connect,
) -> DeploymentContext:
    if deployment is None:
        raise MissingRequiredField(
            f"workflow job {job.name!r} is waiting without deployment info"
        )
    client = await connect()
    lookups = [
        asyncio.ensure_future(client.fetch_workflow_run_details(job.run_url)),
        asyncio.ensure_future(client.query_commit(job.head_sha)),
        asyncio.ensure_future(client.query_environment_reviewers(deployment.environment)),
    ]
    try:
        run, commit, reviewers = await asyncio.gather(*lookups)
    except Exception:
        # The first failure decides the request; drop the lookups still in flight.
        for lookup in lookups:
            lookup.cancel()
        raise
    return DeploymentContext(
        environment=deployment.environment,
        environment_url=deployment.url,
        run=run,
        commit=commit,
        reviewers=reviewers,
    )

"""Slack messages for GitHub webhook events."""

from __future__ import annotations

import random
from typing import Callable, Optional, Sequence

from repoact.errors import MissingRequiredField, UnhandledAction
from repoact.schemas import (
    Action,
    Comment,
    Discussion,
    Issue,
    Label,
    PullRequest,
    Repository,
    Scenario,
    State,
    User,
    WebhookEvent,
    WorkflowJob,
    scenario_of,
)
from repoact.services.branch_flow import classify, strip_owner
from repoact.services.github import PullRequestFlags
from repoact.services.resolver import DeploymentContext, ResolvedFields
from repoact.services.slack import Attachment, AttachmentField, NotificationMessage

Chooser = Callable[[Sequence[str]], str]

COLOR_OPEN = "#6cc644"
COLOR_CLOSED = "#bd2c00"
COLOR_DRAFT_PR = "#6c737c"
COLOR_OPEN_PR = "#4078c0"
COLOR_MERGED_PR = "#6e5494"
COLOR_WAITING = "#dbab09"

ICON_ISSUE_OPEN = ":issue-o:"
ICON_ISSUE_CLOSED = ":issue-c:"
ICON_PR = ":pr:"
ICON_PR_DRAFT = ":pr-draft:"
ICON_PR_CLOSED = ":pr-closed:"
ICON_MERGE = ":merge:"
ICON_DISCUSSION = ":discussion:"

ISSUE_TEXTS: dict[Action, tuple[str, ...]] = {
    Action.OPENED: (
        ":issue-o: *{login}* opened an issue! :issue-o:",
        ":issue-o: New issue from *{login}*! :issue-o:",
    ),
    Action.CLOSED: (
        ":issue-c: *{login}* closed an issue :issue-c:",
        ":issue-c: *{login}* wrapped up an issue :issue-c:",
    ),
    Action.REOPENED: (
        ":issue-o: *{login}* reopened an issue :issue-o:",
        ":issue-o: *{login}* opened an issue once more :issue-o:",
    ),
}

COMMENT_TEXTS = (
    "*{login}* left a <{comment_url}|comment> on <{url}|{icon}#{number} ({title})>{tail}",
    "A <{comment_url}|comment> from *{login}* on <{url}|{icon}#{number} ({title})>{tail}",
)
COMMENT_TAILS = ("", "!", " :speech_balloon:")

PR_READY_TEXTS = (
    ":pr: <{url}|:pr-draft:#{number}: {title}> by *{login}* is ready for review! :pr:",
    ":pr: *{login}*'s <{url}|:pr-draft:#{number}: {title}> is ready for review. Have a look! :pr:",
)
PR_OPENED_DRAFT_TEXTS = (
    ":pr-draft: *{login}* opened a pull request! :pr-draft:",
    ":pr-draft: New pull request from *{login}*! :pr-draft:",
)
PR_REOPENED_DRAFT_TEXTS = (":pr-draft: *{login}* reopened a pull request! :pr-draft:",)
PR_OPENED_TEXTS = (
    ":pr: *{login}* opened a pull request! :pr:",
    ":pr: New pull request from *{login}*! :pr:",
)
PR_REOPENED_TEXTS = (":pr: *{login}* reopened a pull request! :pr:",)
PR_MERGED_TEXTS = (
    ":merge: *{login}* merged a pull request! :merge:",
    ":merge: *{login}* landed a pull request! :merge:",
)
PR_CLOSED_TEXTS = ("*{login}* closed a pull request",)

PULL_REQUEST_ACTIONS = frozenset(
    {Action.OPENED, Action.REOPENED, Action.CLOSED, Action.READY_FOR_REVIEW}
)

DRAFT_SUFFIXES = (
    "\nThis PR is still a draft!",
    "\nLooks like this PR is still in draft.",
    "\nWork in progress here!",
    "\nIt's still being worked on, so hold off on merging for a bit.",
)

DISCUSSION_TEXTS: dict[Action, tuple[str, ...]] = {
    Action.CREATED: (
        "*{login}* started a discussion!",
        "New discussion from *{login}*!",
    ),
    Action.CLOSED: ("*{login}* closed a discussion",),
    Action.REOPENED: ("*{login}* reopened a discussion",),
}

WAITING_TEXTS = (
    ":rocket: *{workflow}* #{run_number} is waiting for approval to deploy to `{environment}`",
    ":rocket: Deployment to `{environment}` from *{workflow}* #{run_number} needs a review",
)


def _esc_slack(value: object) -> str:
    return str(value or "").replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _first_line(text: Optional[str], limit: int = 120) -> str:
    if not text:
        return ""
    return text.splitlines()[0][:limit]


def _title(repo: Repository, number: int, title: str) -> str:
    return f"[{repo.full_name}]#{number}: {title}"


def label_field(labels: Sequence[Label]) -> Optional[AttachmentField]:
    """``Labelled`` field with sorted, comma-joined names; None when unlabelled."""
    if not labels:
        return None
    names = sorted(label.name for label in labels)
    return AttachmentField(title="Labelled", value=",".join(names))


def branch_flow_field(pr: PullRequest) -> AttachmentField:
    flow = classify(strip_owner(pr.head.label), strip_owner(pr.base.label))
    return AttachmentField(
        title="Branch Flow",
        value=f"{flow.value} ({pr.head.label} => {pr.base.label})",
    )


def issue_comment_style(issue: Issue, flags: Optional[PullRequestFlags]) -> tuple[str, str]:
    """(icon, color) for a comment on ``issue``; PR issues need resolved flags."""
    if not issue.is_pr():
        if issue.state is State.CLOSED:
            return ICON_ISSUE_CLOSED, COLOR_CLOSED
        return ICON_ISSUE_OPEN, COLOR_OPEN
    if flags is None:
        raise MissingRequiredField(f"pull request flags for #{issue.number} were not resolved")
    if issue.state is State.OPEN:
        if flags.draft:
            return ICON_PR_DRAFT, COLOR_DRAFT_PR
        return ICON_PR, COLOR_OPEN_PR
    if flags.merged:
        return ICON_MERGE, COLOR_MERGED_PR
    return ICON_PR_CLOSED, COLOR_CLOSED


def pull_request_color(action: Action, flags: PullRequestFlags) -> str:
    if action is Action.CLOSED:
        return COLOR_MERGED_PR if flags.merged else COLOR_CLOSED
    if flags.draft:
        return COLOR_DRAFT_PR
    return COLOR_OPEN_PR


def _author_attachment(user: User, **kwargs) -> Attachment:
    return Attachment(
        author_name=user.login,
        author_link=user.html_url,
        author_icon=user.avatar_url,
        **kwargs,
    )


class MessageSynthesizer:
    """
    Turn a parsed event plus resolved fields into a Slack message.

    ``choose`` picks one phrasing out of a tuple; the default is uniform
    random. Tests pass a deterministic picker.
    """

    def __init__(self, choose: Optional[Chooser] = None) -> None:
        self._choose: Chooser = choose or random.choice

    def build(
        self,
        event: WebhookEvent,
        channel: str,
        resolved: Optional[ResolvedFields] = None,
    ) -> Optional[NotificationMessage]:
        """Return the message, or None when the event is deliberately ignored."""
        resolved = resolved or ResolvedFields()
        scenario = scenario_of(event)
        if scenario is Scenario.ISSUE:
            return self.issue_event(event.action, event.issue, event.repository, event.sender, channel)
        if scenario is Scenario.ISSUE_COMMENT:
            return self.issue_comment(event.issue, event.comment, event.sender, channel, resolved.pr_flags)
        if scenario is Scenario.PULL_REQUEST:
            return self.pull_request(
                event.action, event.pull_request, event.repository, event.sender, channel, resolved.pr_flags
            )
        if scenario is Scenario.DISCUSSION:
            return self.discussion_event(
                event.action, event.discussion, event.repository, event.sender, channel
            )
        if scenario is Scenario.DISCUSSION_COMMENT:
            return self.discussion_comment(event.discussion, event.comment, event.sender, channel)
        return self.workflow_job(
            event.action, event.workflow_job, event.repository, event.sender, channel, resolved.deployment
        )

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    def issue_event(
        self, action: Action, issue: Issue, repo: Repository, sender: User, channel: str
    ) -> Optional[NotificationMessage]:
        texts = ISSUE_TEXTS.get(action)
        if texts is None:
            # New issue actions are ignored rather than failing the delivery.
            return None
        fields = [f for f in (label_field(issue.labels),) if f]
        return NotificationMessage(
            channel=channel,
            text=self._choose(texts).format(login=sender.login),
            attachment=_author_attachment(
                issue.user,
                title=_title(repo, issue.number, issue.title),
                title_link=issue.html_url,
                text=issue.body or "",
                fields=fields,
                color=COLOR_CLOSED if action is Action.CLOSED else COLOR_OPEN,
            ),
        )

    def issue_comment(
        self,
        issue: Issue,
        comment: Comment,
        sender: User,
        channel: str,
        flags: Optional[PullRequestFlags],
    ) -> NotificationMessage:
        icon, color = issue_comment_style(issue, flags)
        return self._comment_message(
            icon, color, issue.number, issue.title, issue.html_url, comment, sender, channel
        )

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    def pull_request(
        self,
        action: Action,
        pr: PullRequest,
        repo: Repository,
        sender: User,
        channel: str,
        flags: Optional[PullRequestFlags] = None,
    ) -> NotificationMessage:
        if action not in PULL_REQUEST_ACTIONS:
            raise UnhandledAction("pull_request", action.value)
        if flags is None:
            if pr.merged is None:
                raise MissingRequiredField(f"merged flag for #{pr.number} was not resolved")
            flags = PullRequestFlags(merged=pr.merged, draft=pr.draft)

        if action is Action.READY_FOR_REVIEW:
            texts = PR_READY_TEXTS
        elif action is Action.OPENED:
            texts = PR_OPENED_DRAFT_TEXTS if flags.draft else PR_OPENED_TEXTS
        elif action is Action.REOPENED:
            texts = PR_REOPENED_DRAFT_TEXTS if flags.draft else PR_REOPENED_TEXTS
        else:
            texts = PR_MERGED_TEXTS if flags.merged else PR_CLOSED_TEXTS

        text = self._choose(texts).format(
            login=sender.login,
            url=pr.html_url,
            number=pr.number,
            title=_esc_slack(pr.title),
        )
        if flags.draft and action is Action.OPENED:
            text += self._choose(DRAFT_SUFFIXES)

        fields = [branch_flow_field(pr)]
        labelled = label_field(pr.labels)
        if labelled:
            fields.append(labelled)

        return NotificationMessage(
            channel=channel,
            text=text,
            attachment=_author_attachment(
                pr.user,
                title=_title(repo, pr.number, pr.title),
                title_link=pr.html_url,
                text=pr.body or "",
                fields=fields,
                color=pull_request_color(action, flags),
            ),
        )

    # ------------------------------------------------------------------
    # Discussions
    # ------------------------------------------------------------------

    def discussion_event(
        self, action: Action, discussion: Discussion, repo: Repository, sender: User, channel: str
    ) -> NotificationMessage:
        texts = DISCUSSION_TEXTS.get(action)
        if texts is None:
            raise UnhandledAction("discussion", action.value)
        return NotificationMessage(
            channel=channel,
            text=self._choose(texts).format(login=sender.login),
            attachment=_author_attachment(
                discussion.user,
                title=_title(repo, discussion.number, discussion.title),
                title_link=discussion.html_url,
                text=discussion.body or "",
                color=COLOR_CLOSED if action is Action.CLOSED else COLOR_OPEN,
            ),
        )

    def discussion_comment(
        self, discussion: Discussion, comment: Comment, sender: User, channel: str
    ) -> NotificationMessage:
        color = COLOR_CLOSED if discussion.state is State.CLOSED else COLOR_OPEN
        return self._comment_message(
            ICON_DISCUSSION,
            color,
            discussion.number,
            discussion.title,
            discussion.html_url,
            comment,
            sender,
            channel,
        )

    # ------------------------------------------------------------------
    # Workflow jobs
    # ------------------------------------------------------------------

    def workflow_job(
        self,
        action: Action,
        job: WorkflowJob,
        repo: Repository,
        sender: User,
        channel: str,
        context: Optional[DeploymentContext],
    ) -> NotificationMessage:
        if action is not Action.WAITING:
            raise UnhandledAction("workflow_job", action.value)
        if context is None:
            raise MissingRequiredField(f"deployment details for job {job.name!r} were not resolved")

        text = self._choose(WAITING_TEXTS).format(
            workflow=_esc_slack(job.workflow_name),
            run_number=context.run.run_number,
            environment=_esc_slack(context.environment),
        )
        if context.reviewers:
            text += "\nReviewers: " + ", ".join(
                f"*{_esc_slack(r.display_name)}*" for r in context.reviewers
            )

        environment = context.environment
        if context.environment_url:
            environment = f"<{context.environment_url}|{_esc_slack(environment)}>"
        fields = [
            AttachmentField(title="Environment", value=environment, short=True),
            AttachmentField(title="Job", value=job.name, short=True),
        ]
        if job.head_branch:
            fields.append(AttachmentField(title="Branch", value=job.head_branch, short=True))
        committer = context.commit.committer_name or "unknown"
        fields.append(
            AttachmentField(title="Commit", value=f"`{job.head_sha[:7]}` by {committer}", short=True)
        )

        return NotificationMessage(
            channel=channel,
            text=text,
            attachment=_author_attachment(
                sender,
                title=f"[{repo.full_name}] {job.workflow_name} #{context.run.run_number}",
                title_link=context.run.html_url or job.html_url or repo.html_url,
                text=_first_line(context.commit.message, 200),
                fields=fields,
                color=COLOR_WAITING,
            ),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _comment_message(
        self,
        icon: str,
        color: str,
        number: int,
        title: str,
        url: str,
        comment: Comment,
        sender: User,
        channel: str,
    ) -> NotificationMessage:
        text = self._choose(COMMENT_TEXTS).format(
            login=sender.login,
            comment_url=comment.html_url,
            url=url,
            icon=icon,
            number=number,
            title=_esc_slack(title),
            tail=self._choose(COMMENT_TAILS),
        )
        return NotificationMessage(
            channel=channel,
            text=text,
            attachment=_author_attachment(sender, text=comment.body, color=color),
        )

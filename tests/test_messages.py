"""Tests for Slack message synthesis."""

import pytest

from repoact.errors import MissingRequiredField, UnhandledAction
from repoact.schemas import parse_event
from repoact.services import messages as m
from repoact.services.github import CommitInfo, PullRequestFlags, Reviewer, WorkflowRunDetails
from repoact.services.resolver import DeploymentContext, ResolvedFields

from helpers import (
    comment,
    discussion,
    encode,
    event,
    first_choice,
    issue,
    pull_request,
    workflow_job,
)

CHANNEL = "C123"


def _build(payload, resolved=None, choose=first_choice):
    synthesizer = m.MessageSynthesizer(choose)
    return synthesizer.build(parse_event(encode(payload)), CHANNEL, resolved)


def _field(message, title):
    for f in message.attachment.fields:
        if f.title == title:
            return f
    return None


class TestLabelField:
    def test_sorted_and_comma_joined(self):
        message = _build(event("opened", issue=issue(label_names=("bug", "a-fix"))))
        assert _field(message, "Labelled").value == "a-fix,bug"

    def test_absent_without_labels(self):
        message = _build(event("opened", issue=issue()))
        assert _field(message, "Labelled") is None
        assert message.attachment.fields == []


class TestIssueEvents:
    def test_opened(self):
        message = _build(event("opened", issue=issue()))
        assert message.channel == CHANNEL
        assert message.text == ":issue-o: *sender* opened an issue! :issue-o:"
        assert message.attachment.color == m.COLOR_OPEN
        assert message.attachment.title == "[octo/widgets]#7: Widget spins backwards"
        assert message.attachment.title_link == "https://github.com/octo/widgets/issues/7"
        assert message.attachment.author_name == "reporter"
        assert message.attachment.text == "It should spin forwards."

    def test_closed(self):
        message = _build(event("closed", issue=issue(state="closed")))
        assert message.attachment.color == m.COLOR_CLOSED
        assert message.text.startswith(":issue-c:")

    def test_reopened_uses_open_color(self):
        message = _build(event("reopened", issue=issue()))
        assert message.attachment.color == m.COLOR_OPEN

    @pytest.mark.parametrize("action", ["created", "ready_for_review", "waiting"])
    def test_other_actions_are_ignored(self, action):
        assert _build(event(action, issue=issue())) is None

    def test_random_variant_comes_from_the_set(self):
        message = _build(event("opened", issue=issue()), choose=lambda options: options[-1])
        assert message.text == m.ISSUE_TEXTS[m.Action.OPENED][-1].format(login="sender")


class TestIssueComments:
    def test_comment_on_closed_issue(self):
        message = _build(event("created", issue=issue(state="closed"), comment=comment()))
        assert message.attachment.color == m.COLOR_CLOSED
        assert ":issue-c:#7" in message.text
        assert message.attachment.title is None
        assert message.attachment.title_link is None
        assert message.attachment.author_name == "sender"
        assert message.attachment.text == "Looks good to me"

    def test_comment_on_open_issue(self):
        message = _build(event("created", issue=issue(), comment=comment()))
        assert message.attachment.color == m.COLOR_OPEN
        assert message.text.startswith("*sender* left a <https://github.com/octo/widgets/issues/7#issuecomment-1|comment>")

    @pytest.mark.parametrize(
        "state, flags, icon, color",
        [
            ("open", PullRequestFlags(merged=False, draft=True), m.ICON_PR_DRAFT, m.COLOR_DRAFT_PR),
            ("open", PullRequestFlags(merged=False, draft=False), m.ICON_PR, m.COLOR_OPEN_PR),
            ("closed", PullRequestFlags(merged=True, draft=False), m.ICON_MERGE, m.COLOR_MERGED_PR),
            ("closed", PullRequestFlags(merged=False, draft=False), m.ICON_PR_CLOSED, m.COLOR_CLOSED),
        ],
    )
    def test_comment_on_pull_request(self, state, flags, icon, color):
        payload = event("created", issue=issue(state=state, is_pr=True), comment=comment())
        message = _build(payload, ResolvedFields(pr_flags=flags))
        assert message.attachment.color == color
        assert f"{icon}#7" in message.text

    def test_comment_on_pull_request_needs_flags(self):
        payload = event("created", issue=issue(is_pr=True), comment=comment())
        with pytest.raises(MissingRequiredField):
            _build(payload)

    def test_title_is_escaped_in_text(self):
        payload = event("created", issue=issue(title="a < b & c"), comment=comment())
        assert "(a &lt; b &amp; c)" in _build(payload).text


class TestPullRequests:
    def test_draft_opened(self):
        payload = event(
            "opened",
            pull_request=pull_request(head="ft-login", base="dev", draft=True),
        )
        message = _build(payload)
        assert message.text.startswith(m.PR_OPENED_DRAFT_TEXTS[0].format(login="sender"))
        assert message.text.endswith(m.DRAFT_SUFFIXES[0])
        assert message.attachment.color == m.COLOR_DRAFT_PR
        assert _field(message, "Branch Flow").value == "Stable Promotion (ft-login => dev)"

    def test_draft_suffix_is_one_of_four(self):
        payload = event("opened", pull_request=pull_request(draft=True))
        picks = iter([m.PR_OPENED_DRAFT_TEXTS[1], m.DRAFT_SUFFIXES[2]])
        message = _build(payload, choose=lambda options: next(picks))
        assert len(m.DRAFT_SUFFIXES) == 4
        assert message.text == m.PR_OPENED_DRAFT_TEXTS[1].format(login="sender") + m.DRAFT_SUFFIXES[2]

    def test_opened(self):
        message = _build(event("opened", pull_request=pull_request()))
        assert message.text == ":pr: *sender* opened a pull request! :pr:"
        assert message.attachment.color == m.COLOR_OPEN_PR
        assert message.attachment.title == "[octo/widgets]#12: Add login form"

    def test_reopened_draft_has_no_suffix(self):
        message = _build(event("reopened", pull_request=pull_request(draft=True)))
        assert message.text == ":pr-draft: *sender* reopened a pull request! :pr-draft:"
        assert message.attachment.color == m.COLOR_DRAFT_PR

    def test_merged(self):
        message = _build(event("closed", pull_request=pull_request(merged=True)))
        assert message.text.startswith(":merge:")
        assert message.attachment.color == m.COLOR_MERGED_PR

    def test_closed_unmerged(self):
        message = _build(event("closed", pull_request=pull_request(merged=False, draft=True)))
        assert message.text == "*sender* closed a pull request"
        assert message.attachment.color == m.COLOR_CLOSED

    def test_resolved_flags_take_over(self):
        payload = event("closed", pull_request=pull_request(merged=None))
        message = _build(payload, ResolvedFields(pr_flags=PullRequestFlags(merged=True, draft=False)))
        assert message.attachment.color == m.COLOR_MERGED_PR

    def test_unresolved_merged_flag(self):
        with pytest.raises(MissingRequiredField):
            _build(event("closed", pull_request=pull_request(merged=None)))

    def test_ready_for_review_links_the_pull_request(self):
        message = _build(event("ready_for_review", pull_request=pull_request()))
        assert "<https://github.com/octo/widgets/pull/12|:pr-draft:#12: Add login form>" in message.text

    def test_fields_order_and_labels(self):
        payload = event(
            "opened",
            pull_request=pull_request(head="octo:fix-crash", base="octo:master", label_names=("urgent", "bug")),
        )
        message = _build(payload)
        assert [f.title for f in message.attachment.fields] == ["Branch Flow", "Labelled"]
        assert message.attachment.fields[0].value == "Emergent Patching (octo:fix-crash => octo:master)"
        assert message.attachment.fields[1].value == "bug,urgent"

    @pytest.mark.parametrize("action", ["created", "waiting"])
    def test_unhandled_actions(self, action):
        with pytest.raises(UnhandledAction):
            _build(event(action, pull_request=pull_request()))

    def test_unhandled_action_wins_over_unknown_merge_state(self):
        with pytest.raises(UnhandledAction):
            _build(event("created", pull_request=pull_request(merged=None)))


class TestDiscussions:
    def test_created(self):
        message = _build(event("created", discussion=discussion()))
        assert message.text == "*sender* started a discussion!"
        assert message.attachment.color == m.COLOR_OPEN
        assert message.attachment.title == "[octo/widgets]#3: Roadmap ideas"

    def test_closed(self):
        message = _build(event("closed", discussion=discussion(state="closed")))
        assert message.attachment.color == m.COLOR_CLOSED

    def test_opened_is_unhandled(self):
        with pytest.raises(UnhandledAction):
            _build(event("opened", discussion=discussion()))

    def test_comment(self):
        message = _build(event("created", discussion=discussion(state="closed"), comment=comment()))
        assert m.ICON_DISCUSSION in message.text
        assert message.attachment.color == m.COLOR_CLOSED
        assert message.attachment.title is None


class TestWorkflowJobs:
    CONTEXT = DeploymentContext(
        environment="production",
        environment_url="https://widgets.example.com",
        run=WorkflowRunDetails(run_number=42, html_url="https://github.com/octo/widgets/actions/runs/555"),
        commit=CommitInfo(message="Bump version\n\nDetails", committer_name="Mona"),
        reviewers=[Reviewer(login="mona", name="Mona Lisa"), Reviewer(login="hubot")],
    )

    def test_waiting(self):
        payload = event(
            "waiting",
            workflow_job=workflow_job(),
            deployment={"environment": "production"},
        )
        message = _build(payload, ResolvedFields(deployment=self.CONTEXT))
        assert message.text.startswith(":rocket: *Deploy* #42 is waiting for approval to deploy to `production`")
        assert message.text.endswith("Reviewers: *Mona Lisa*, *hubot*")
        assert message.attachment.color == m.COLOR_WAITING
        assert message.attachment.title == "[octo/widgets] Deploy #42"
        assert message.attachment.title_link == "https://github.com/octo/widgets/actions/runs/555"
        assert message.attachment.text == "Bump version"
        assert _field(message, "Environment").value == "<https://widgets.example.com|production>"
        assert _field(message, "Commit").value == "`0123456` by Mona"
        assert _field(message, "Branch").value == "master"

    def test_waiting_without_context(self):
        payload = event("waiting", workflow_job=workflow_job(), deployment={"environment": "production"})
        with pytest.raises(MissingRequiredField):
            _build(payload)

    def test_other_actions_are_unhandled(self):
        with pytest.raises(UnhandledAction):
            _build(event("created", workflow_job=workflow_job()))


class TestPayload:
    def test_slack_payload_shape(self):
        message = _build(event("created", issue=issue(), comment=comment()))
        payload = message.to_payload()
        assert payload["channel"] == CHANNEL
        assert payload["as_user"] is True
        assert payload["unfurl_links"] is False
        assert payload["unfurl_media"] is False
        attachment = payload["attachments"][0]
        assert "title" not in attachment
        assert attachment["fields"] == []
        assert attachment["author_icon"] == "https://avatars.example.com/sender"

"""GitHub App client used to fill in what webhook payloads leave out."""

from __future__ import annotations

import datetime as dt
import json
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import jwt

from repoact.config import settings
from repoact.errors import OriginLookupFailed
from repoact.logs import get_logger

log = get_logger(__name__)

GITHUB_WEB_BASE = "https://github.com"
GITHUB_API_VERSION = "2022-11-28"
# Pull request draft state is only reported under this media type.
DRAFT_PREVIEW_ACCEPT = "application/vnd.github.shadow-cat-preview+json"
JWT_LIFETIME_SECONDS = 10 * 60
JWT_BACKDATE_SECONDS = 60
REVIEWERS_PAGE_SIZE = 20

JSONDict = dict[str, Any]


@dataclass(frozen=True)
class InstallationToken:
    token: str
    expires_at: Optional[dt.datetime] = None


@dataclass(frozen=True)
class PullRequestFlags:
    merged: bool
    draft: bool


@dataclass(frozen=True)
class WorkflowRunDetails:
    run_number: int
    html_url: str = ""


@dataclass(frozen=True)
class CommitInfo:
    message: str
    committer_name: str


@dataclass(frozen=True)
class Reviewer:
    login: str
    name: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.login


def _parse_expiry(raw: Any) -> Optional[dt.datetime]:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return dt.datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def build_app_jwt(app_id: str, private_key: str, *, now: Optional[int] = None) -> str:
    """Sign the short-lived RS256 assertion GitHub expects from an App."""
    issued = int(time.time()) if now is None else now
    payload = {
        "iat": issued - JWT_BACKDATE_SECONDS,  # clock drift
        "exp": issued + JWT_LIFETIME_SECONDS,
        "iss": app_id,
    }
    try:
        return jwt.encode(payload, private_key, algorithm="RS256")
    except (ValueError, TypeError, jwt.PyJWTError) as exc:
        raise OriginLookupFailed(f"Failed to sign GitHub App assertion: {exc}") from exc


async def _send(http: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> JSONDict:
    try:
        resp = await http.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise OriginLookupFailed(f"GitHub request failed: {method} {url}: {exc}") from exc
    if resp.status_code >= 300:
        raise OriginLookupFailed(f"GitHub error: {resp.status_code} {resp.text}")
    try:
        data = resp.json()
    except ValueError as exc:
        raise OriginLookupFailed(f"GitHub returned a non-JSON body for {url}") from exc
    if not isinstance(data, dict):
        raise OriginLookupFailed(f"GitHub returned an unexpected body for {url}")
    return data


async def issue_app_token(
    http: httpx.AsyncClient,
    app_id: str,
    installation_id: str,
    private_key: str,
    *,
    api_base: Optional[str] = None,
) -> InstallationToken:
    """
    Exchange a signed App assertion for an installation access token.

    The token is good for the rest of one request; nothing is cached here.
    """
    base = (api_base or settings.github_api_base).rstrip("/")
    assertion = build_app_jwt(app_id, private_key)
    data = await _send(
        http,
        "POST",
        f"{base}/app/installations/{installation_id}/access_tokens",
        headers={
            "Authorization": f"Bearer {assertion}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        },
    )
    token = data.get("token")
    if not token:
        raise OriginLookupFailed("No access token returned from GitHub API")
    return InstallationToken(token=token, expires_at=_parse_expiry(data.get("expires_at")))


class GitHubAppClient:
    """Authenticated calls against one repository for the span of a request."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        token: InstallationToken,
        repo_fullname: str,
        *,
        api_base: Optional[str] = None,
    ) -> None:
        self._http = http
        self._token = token
        self.repo_fullname = repo_fullname
        self._api_base = (api_base or settings.github_api_base).rstrip("/")

    @classmethod
    async def connect(
        cls,
        http: httpx.AsyncClient,
        app_id: str,
        installation_id: str,
        private_key: str,
        repo_fullname: str,
        *,
        api_base: Optional[str] = None,
    ) -> "GitHubAppClient":
        token = await issue_app_token(
            http, app_id, installation_id, private_key, api_base=api_base
        )
        log.debug("github_token_issued", repo=repo_fullname, expires_at=str(token.expires_at))
        return cls(http, token, repo_fullname, api_base=api_base)

    def _headers(self, accept: str = "application/vnd.github+json") -> dict[str, str]:
        return {
            "Authorization": f"token {self._token.token}",
            "Accept": accept,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    # ------------------------------------------------------------------
    # REST
    # ------------------------------------------------------------------

    async def query_pull_request_flags(self, number: int) -> PullRequestFlags:
        url = f"{self._api_base}/repos/{self.repo_fullname}/pulls/{number}"
        data = await _send(self._http, "GET", url, headers=self._headers(DRAFT_PREVIEW_ACCEPT))
        merged = data.get("merged")
        if not isinstance(merged, bool):
            raise OriginLookupFailed(f"Pull request #{number} has no merged flag")
        return PullRequestFlags(merged=merged, draft=bool(data.get("draft")))

    async def fetch_workflow_run_details(self, run_url: str) -> WorkflowRunDetails:
        data = await _send(self._http, "GET", run_url, headers=self._headers())
        run_number = data.get("run_number")
        if not isinstance(run_number, int):
            raise OriginLookupFailed(f"Workflow run {run_url} has no run number")
        return WorkflowRunDetails(run_number=run_number, html_url=data.get("html_url") or "")

    # ------------------------------------------------------------------
    # GraphQL
    # ------------------------------------------------------------------

    def commit_message_and_committer_query(self, sha: str) -> str:
        url = f"{GITHUB_WEB_BASE}/{self.repo_fullname}/commit/{sha}"
        return (
            f"resource(url: {json.dumps(url)}) "
            "{ ...on Commit { message committer { name } } }"
        )

    def environment_protection_rule_query(
        self, environment_name: str, from_cursor: Optional[str] = None
    ) -> str:
        owner, _, name = self.repo_fullname.partition("/")
        page = f"first: {REVIEWERS_PAGE_SIZE}"
        if from_cursor:
            page += f", after: {json.dumps(from_cursor)}"
        return f"""repository(owner: {json.dumps(owner)}, name: {json.dumps(name)}) {{
            environment(name: {json.dumps(environment_name)}) {{
                protectionRules(first: 1) {{
                    totalCount
                    nodes {{
                        reviewers({page}) {{
                            pageInfo {{ endCursor hasNextPage }}
                            nodes {{
                                __typename
                                ... on User {{ name login }}
                                ... on Team {{ name slug }}
                            }}
                        }}
                    }}
                }}
            }}
        }}"""

    async def post_graphql(self, query: str) -> JSONDict:
        """Run ``query { <query> }`` and return its ``data`` object."""
        data = await _send(
            self._http,
            "POST",
            f"{self._api_base}/graphql",
            headers=self._headers(),
            json={"query": f"query {{ {query} }}"},
        )
        if data.get("errors"):
            raise OriginLookupFailed(f"GraphQL query failed: {data['errors']}")
        result = data.get("data")
        if not isinstance(result, dict):
            raise OriginLookupFailed("GraphQL response carried no data")
        return result

    async def query_commit(self, sha: str) -> CommitInfo:
        data = await self.post_graphql(self.commit_message_and_committer_query(sha))
        resource = data.get("resource") or {}
        if "message" not in resource:
            raise OriginLookupFailed(f"Commit {sha} not found in {self.repo_fullname}")
        committer = resource.get("committer") or {}
        return CommitInfo(
            message=resource.get("message") or "",
            committer_name=committer.get("name") or "",
        )

    async def query_environment_reviewers(self, environment_name: str) -> list[Reviewer]:
        reviewers: list[Reviewer] = []
        cursor: Optional[str] = None
        while True:
            data = await self.post_graphql(
                self.environment_protection_rule_query(environment_name, cursor)
            )
            environment = (data.get("repository") or {}).get("environment")
            if not environment:
                return reviewers
            rules = (environment.get("protectionRules") or {}).get("nodes") or []
            if not rules:
                return reviewers
            connection = rules[0].get("reviewers") or {}
            for node in connection.get("nodes") or []:
                if node.get("__typename") == "Team":
                    reviewers.append(Reviewer(login=node.get("slug") or "", name=node.get("name") or ""))
                elif node.get("login"):
                    reviewers.append(Reviewer(login=node["login"], name=node.get("name") or ""))
            page_info = connection.get("pageInfo") or {}
            cursor = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or not cursor:
                return reviewers

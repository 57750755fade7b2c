"""Async GitHub REST client for GitHub Org Analyser.

Every operation either returns a fully paginated, flattened collection or a
best-effort single value whose failure collapses to a neutral default
(``None``, ``False``, ``True`` or ``[]``, documented per method). Only the
organization-level fetches (organization profile, repository list, member
list) propagate ``APIError`` so that a report build can abort on them.

The "404 means absent" decision is made here and nowhere else.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar
from urllib.parse import quote

import httpx

from github_org_analyser.api.resilience import make_api_call_with_retry
from github_org_analyser.core.config import RetryConfig, WorkerConfig
from github_org_analyser.core.constants import (
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_PAGE_SIZE,
    GITHUB_ACCEPT_HEADER,
    GITHUB_API_BASE_URL,
    GITHUB_API_VERSION,
    RETRYABLE_STATUS_CODES,
)
from github_org_analyser.core.credentials import Credential
from github_org_analyser.core.dates import parse_timestamp
from github_org_analyser.core.exceptions import APIError, RetryableHTTPError

T = TypeVar("T")


@dataclass(frozen=True)
class RepositoryRecord:
    """A repository as listed by ``GET /orgs/{org}/repos``.

    Attributes:
        name: Repository name (without owner)
        full_name: ``owner/name``
        url: Web URL of the repository
        archived: Repository is archived
        fork: Repository is a fork
        private: Repository is private
        visibility: "public", "private" or "internal"
        pushed_at: Time of the last push, or None if never pushed
        default_branch: Default branch name
        language: Primary language reported by GitHub
        topics: Repository topics
    """

    name: str
    full_name: str = ""
    url: str = ""
    description: str | None = None
    archived: bool = False
    fork: bool = False
    private: bool = False
    visibility: str = "public"
    pushed_at: datetime | None = None
    created_at: datetime | None = None
    default_branch: str = "main"
    language: str | None = None
    topics: tuple[str, ...] = ()
    stargazers_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0

    @property
    def is_active(self) -> bool:
        """Neither archived nor a fork."""
        return not self.archived and not self.fork

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RepositoryRecord:
        private = bool(data.get("private", False))
        return cls(
            name=data.get("name", ""),
            full_name=data.get("full_name") or "",
            url=data.get("html_url") or "",
            description=data.get("description"),
            archived=bool(data.get("archived", False)),
            fork=bool(data.get("fork", False)),
            private=private,
            visibility=data.get("visibility") or ("private" if private else "public"),
            pushed_at=parse_timestamp(data.get("pushed_at")),
            created_at=parse_timestamp(data.get("created_at")),
            default_branch=data.get("default_branch") or "main",
            language=data.get("language"),
            topics=tuple(data.get("topics") or ()),
            stargazers_count=data.get("stargazers_count") or 0,
            forks_count=data.get("forks_count") or 0,
            open_issues_count=data.get("open_issues_count") or 0,
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase or "GitHub API request failed"


def _retry_after_seconds(response: httpx.Response) -> float | None:
    retry_after = response.headers.get("retry-after")
    if retry_after:
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            return None
    reset = response.headers.get("x-ratelimit-reset")
    if reset:
        try:
            return max(0.0, float(reset) - time.time())
        except ValueError:
            return None
    return None


def _segment(value: str) -> str:
    return quote(value, safe="")


class GitHubClient:
    """Authenticated async client for the GitHub REST API.

    Use as an async context manager. An injected ``http_client`` is used as-is
    and left open on exit; otherwise the client owns its ``httpx.AsyncClient``.

    Args:
        credential: Bearer credential (or raw token string)
        base_url: API root (default: https://api.github.com)
        http_client: Optional preconfigured ``httpx.AsyncClient``
        retry_config: Retry settings for transient failures
        worker_config: Concurrency caps
        page_size: Page size for collection endpoints (default: 100)
        logger: Logger instance
    """

    def __init__(
        self,
        credential: Credential | str,
        *,
        base_url: str = GITHUB_API_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        retry_config: RetryConfig | None = None,
        worker_config: WorkerConfig | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        logger: logging.Logger | None = None,
    ):
        if isinstance(credential, str):
            credential = Credential(credential)
        self.credential = credential
        self.base_url = base_url.rstrip("/")
        self.retry_config = retry_config or RetryConfig()
        self.worker_config = worker_config or WorkerConfig()
        self.page_size = page_size
        self.logger = logger or logging.getLogger(__name__)
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._request_slots = asyncio.Semaphore(self.worker_config.max_concurrent_requests)

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": GITHUB_ACCEPT_HEADER,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            **self.credential.authorization_header(),
        }

    # ==================== TRANSPORT ====================

    async def _request(self, endpoint: str, params: dict[str, Any] | None) -> httpx.Response:
        """Issue a single GET; raise RetryableHTTPError for transient statuses."""
        async with self._request_slots:
            response = await self._http.get(f"{self.base_url}{endpoint}", params=params, headers=self._headers())

        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHTTPError(status, _error_message(response), retry_after=_retry_after_seconds(response))
        if status == 403 and response.headers.get("x-ratelimit-remaining") == "0":
            raise RetryableHTTPError(status, "API rate limit exhausted", retry_after=_retry_after_seconds(response))
        return response

    async def send(self, endpoint: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET ``endpoint`` with retries; return the response if it is a 2xx.

        Raises:
            APIError: On any non-2xx status or transport failure
        """
        try:
            response = await make_api_call_with_retry(
                self._request,
                endpoint,
                params,
                logger=self.logger,
                operation_name=f"GET {endpoint}",
                retry_config=self.retry_config,
            )
        except RetryableHTTPError as e:
            raise APIError(
                "GitHub API request failed", status_code=e.status_code, operation=endpoint, original_error=e
            ) from e
        except (httpx.HTTPError, ConnectionError, TimeoutError) as e:
            raise APIError(
                "GitHub API request failed",
                operation=endpoint,
                details=str(e) or type(e).__name__,
                original_error=e,
            ) from e

        if not response.is_success:
            raise APIError(_error_message(response), status_code=response.status_code, operation=endpoint)
        return response

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``endpoint`` and decode the JSON body (None for an empty body)."""
        response = await self.send(endpoint, params)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise APIError(
                "Invalid JSON in GitHub API response",
                status_code=response.status_code,
                operation=endpoint,
                original_error=e,
            ) from e

    async def paginate(
        self, endpoint: str, params: dict[str, Any] | None = None, items_key: str | None = None
    ) -> list[Any]:
        """Fetch every page of a collection endpoint and concatenate them.

        Requests ``per_page=page_size`` and stops at the first page shorter than
        that. There is no upper bound on the number of pages.
        """
        items: list[Any] = []
        page = 1
        while True:
            body = await self.get(endpoint, {**(params or {}), "per_page": self.page_size, "page": page})
            batch = body.get(items_key) if items_key and isinstance(body, dict) else body
            if not isinstance(batch, list):
                self.logger.debug(f"Unexpected page payload from {endpoint} (page {page}); stopping")
                break
            items.extend(batch)
            if len(batch) < self.page_size:
                break
            page += 1
        return items

    async def paginate_cursor(self, endpoint: str, params: dict[str, Any] | None = None) -> list[Any]:
        """Follow ``Link: rel="next"`` headers for cursor-paginated endpoints."""
        items: list[Any] = []
        next_endpoint: str | None = endpoint
        next_params: dict[str, Any] | None = {**(params or {}), "per_page": self.page_size}
        while next_endpoint:
            response = await self.send(next_endpoint, next_params)
            batch = response.json() if response.content else []
            if not isinstance(batch, list):
                break
            items.extend(batch)
            next_url = response.links.get("next", {}).get("url")
            if not next_url or not next_url.startswith(self.base_url):
                break
            next_endpoint, next_params = next_url[len(self.base_url):], None
        return items

    async def _best_effort(
        self, operation: str, call: Awaitable[T], default: T, *, quiet_not_found: bool = False
    ) -> T:
        try:
            return await call
        except APIError as e:
            if not (quiet_not_found and e.is_not_found):
                self.logger.warning(f"{operation} failed, continuing without it: {e}")
            return default

    # ==================== USER & ORGANIZATION ====================

    async def validate_token(self) -> dict[str, Any]:
        """Check the credential against ``GET /user``. Never raises."""
        try:
            user = await self.get("/user")
        except APIError as e:
            return {"valid": False, "error": str(e)}
        return {"valid": True, "user": user}

    async def list_user_organizations(self) -> list[dict[str, Any]]:
        return await self.paginate("/user/orgs")

    async def get_organization(self, org: str) -> dict[str, Any]:
        """Organization profile. Raises APIError (aborting)."""
        return await self.get(f"/orgs/{_segment(org)}")

    async def list_org_repositories(self, org: str) -> list[RepositoryRecord]:
        """All repositories of ``org``. Raises APIError (aborting)."""
        repos = await self.paginate(f"/orgs/{_segment(org)}/repos", {"type": "all"})
        return [RepositoryRecord.from_api(repo) for repo in repos]

    async def list_org_members(self, org: str) -> list[dict[str, Any]]:
        """All members of ``org``. Raises APIError (aborting)."""
        return await self.paginate(f"/orgs/{_segment(org)}/members")

    async def list_org_admins(self, org: str) -> list[dict[str, Any]]:
        return await self._best_effort(
            f"List admins for {org}", self.paginate(f"/orgs/{_segment(org)}/members", {"role": "admin"}), []
        )

    async def list_outside_collaborators(self, org: str) -> list[dict[str, Any]]:
        return await self._best_effort(
            f"List outside collaborators for {org}",
            self.paginate(f"/orgs/{_segment(org)}/outside_collaborators"),
            [],
        )

    async def list_org_installations(self, org: str) -> list[dict[str, Any]]:
        return await self._best_effort(
            f"List installed apps for {org}",
            self.paginate(f"/orgs/{_segment(org)}/installations", items_key="installations"),
            [],
        )

    async def get_app_by_slug(self, slug: str) -> dict[str, Any] | None:
        """Public app metadata; None when the app is unknown (404 is not logged)."""
        return await self._best_effort(
            f"Get app {slug}", self.get(f"/apps/{_segment(slug)}"), None, quiet_not_found=True
        )

    async def get_user(self, login: str) -> dict[str, Any] | None:
        return await self._best_effort(f"Get user {login}", self.get(f"/users/{_segment(login)}"), None)

    # ==================== REPOSITORY ====================

    def _repo_path(self, org: str, repo: str) -> str:
        return f"/repos/{_segment(org)}/{_segment(repo)}"

    async def get_repository(self, org: str, repo: str) -> dict[str, Any] | None:
        return await self._best_effort(f"Get repository {org}/{repo}", self.get(self._repo_path(org, repo)), None)

    async def get_repo_languages(self, org: str, repo: str) -> dict[str, int]:
        return await self._best_effort(
            f"Get languages for {org}/{repo}", self.get(f"{self._repo_path(org, repo)}/languages"), {}
        ) or {}

    async def get_last_pull_request(self, org: str, repo: str) -> dict[str, Any] | None:
        """Most recently updated pull request in any state, or None."""
        pulls = await self._best_effort(
            f"Get last pull request for {org}/{repo}",
            self.get(
                f"{self._repo_path(org, repo)}/pulls",
                {"state": "all", "sort": "updated", "direction": "desc", "per_page": 1},
            ),
            None,
        )
        if isinstance(pulls, list) and pulls:
            return pulls[0]
        return None

    async def list_open_pull_requests(self, org: str, repo: str) -> list[dict[str, Any]]:
        return await self._best_effort(
            f"List open pull requests for {org}/{repo}",
            self.paginate(f"{self._repo_path(org, repo)}/pulls", {"state": "open"}),
            [],
        )

    async def list_branches(self, org: str, repo: str) -> list[dict[str, Any]]:
        return await self._best_effort(
            f"List branches for {org}/{repo}", self.paginate(f"{self._repo_path(org, repo)}/branches"), []
        )

    async def get_branch(self, org: str, repo: str, branch: str) -> dict[str, Any] | None:
        """Branch with its head commit (``commit.commit.author.date``), or None."""
        return await self._best_effort(
            f"Get branch {branch} of {org}/{repo}",
            self.get(f"{self._repo_path(org, repo)}/branches/{_segment(branch)}"),
            None,
        )

    async def get_branch_protection(self, org: str, repo: str, branch: str) -> bool:
        """True when the protection sub-resource exists, False on 404.

        Raises:
            APIError: For any failure other than 404
        """
        try:
            await self.send(f"{self._repo_path(org, repo)}/branches/{_segment(branch)}/protection")
        except APIError as e:
            if e.is_not_found:
                return False
            raise
        return True

    async def list_repo_collaborators(self, org: str, repo: str) -> list[dict[str, Any]]:
        return await self._best_effort(
            f"List collaborators for {org}/{repo}",
            self.paginate(f"{self._repo_path(org, repo)}/collaborators"),
            [],
        )

    async def list_repo_direct_collaborators(self, org: str, repo: str) -> list[dict[str, Any]]:
        return await self._best_effort(
            f"List direct collaborators for {org}/{repo}",
            self.paginate(f"{self._repo_path(org, repo)}/collaborators", {"affiliation": "direct"}),
            [],
        )

    async def list_repo_teams(self, org: str, repo: str) -> list[dict[str, Any]]:
        return await self._best_effort(
            f"List teams for {org}/{repo}", self.paginate(f"{self._repo_path(org, repo)}/teams"), []
        )

    async def compare_refs(self, org: str, repo: str, base: str, head: str) -> dict[str, int] | None:
        """``{"ahead_by", "behind_by"}`` of ``head`` relative to ``base``, or None (e.g. cross-fork unsupported)."""
        comparison = await self._best_effort(
            f"Compare {base}...{head} in {org}/{repo}",
            self.get(f"{self._repo_path(org, repo)}/compare/{quote(base, safe=':')}...{quote(head, safe=':')}"),
            None,
        )
        if not isinstance(comparison, dict):
            return None
        return {"ahead_by": comparison.get("ahead_by", 0), "behind_by": comparison.get("behind_by", 0)}

    # ==================== SECURITY ====================

    async def is_vulnerability_alerts_enabled(self, org: str, repo: str) -> bool:
        """204 means enabled and 404 means disabled. Other failures are assumed enabled."""
        try:
            await self.send(f"{self._repo_path(org, repo)}/vulnerability-alerts")
        except APIError as e:
            if e.is_not_found:
                return False
            self.logger.warning(f"Vulnerability alert status for {org}/{repo} unavailable, assuming enabled: {e}")
            return True
        return True

    async def get_dependabot_alerts_open(self, org: str, repo: str) -> list[dict[str, Any]]:
        """Open Dependabot alerts; ``[]`` on any failure (no alerts and feature unavailable are not distinguished)."""
        try:
            return await self.paginate_cursor(f"{self._repo_path(org, repo)}/dependabot/alerts", {"state": "open"})
        except (APIError, ValueError) as e:
            self.logger.debug(f"Dependabot alerts for {org}/{repo} unavailable: {e}")
            return []

    # ==================== BILLING ====================

    async def get_billing_usage(self, org: str, year: int | None = None, month: int | None = None) -> dict | None:
        params = {key: value for key, value in (("year", year), ("month", month)) if value is not None}
        return await self._best_effort(
            f"Get billing usage for {org}",
            self.get(f"/organizations/{_segment(org)}/settings/billing/usage", params or None),
            None,
        )

    async def get_copilot_billing(self, org: str) -> dict[str, Any] | None:
        return await self._best_effort(
            f"Get Copilot billing for {org}", self.get(f"/orgs/{_segment(org)}/copilot/billing"), None
        )

    async def get_budgets(self, org: str) -> list[dict[str, Any]]:
        body = await self._best_effort(
            f"Get budgets for {org}", self.get(f"/organizations/{_segment(org)}/settings/billing/budgets"), None
        )
        if isinstance(body, dict) and isinstance(body.get("budgets"), list):
            return body["budgets"]
        return []

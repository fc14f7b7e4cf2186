"""GitHub Actions REST client used as the monitor's snapshot provider."""

from __future__ import annotations

import dataclasses
import os
import typing as typ

import httpx
import msgspec

from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .models import WorkflowJobsPage, WorkflowRunsPage

if typ.TYPE_CHECKING:
    from .models import WorkflowJob, WorkflowRun

_DEFAULT_API_URL = "https://api.github.com"
_DEFAULT_RUN_WINDOW = 10
_DEFAULT_TIMEOUT_S = 10.0
_MAX_RUN_WINDOW = 100


def parse_repository_slug(slug: str) -> tuple[str, str]:
    """Split ``owner/name`` into its parts, rejecting anything else."""
    owner, sep, name = slug.strip().partition("/")
    if not sep or not owner or not name or "/" in name:
        raise GitHubConfigError.invalid_repository(slug)
    return (owner, name)


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubActionsConfig:
    """Configuration for the GitHub Actions REST client.

    ``run_window`` bounds how many of the most recently updated runs a
    snapshot covers. The client never paginates past it, so runs that fall
    out of the window between polls are not observed.
    """

    token: str
    api_url: str = _DEFAULT_API_URL
    run_window: int = _DEFAULT_RUN_WINDOW
    timeout_s: float = _DEFAULT_TIMEOUT_S
    user_agent: str = "runwatch/0.1"

    @staticmethod
    def _env_int(env_var: str, default: int) -> int:
        raw = os.environ.get(env_var, "").strip()
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise GitHubConfigError.invalid_setting(
                env_var, raw, f"an integer between 1 and {_MAX_RUN_WINDOW}"
            ) from exc
        if not 1 <= value <= _MAX_RUN_WINDOW:
            raise GitHubConfigError.invalid_setting(
                env_var, raw, f"an integer between 1 and {_MAX_RUN_WINDOW}"
            )
        return value

    @staticmethod
    def _env_seconds(env_var: str, default: float) -> float:
        raw = os.environ.get(env_var, "").strip()
        if not raw:
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            raise GitHubConfigError.invalid_setting(
                env_var, raw, "a positive number of seconds"
            ) from exc
        if value <= 0:
            raise GitHubConfigError.invalid_setting(
                env_var, raw, "a positive number of seconds"
            )
        return value

    @classmethod
    def from_env(cls, token: str | None = None) -> GitHubActionsConfig:
        """Build configuration from ``RUNWATCH_*`` environment variables.

        An explicit ``token`` takes precedence over ``RUNWATCH_GITHUB_TOKEN``.
        """
        resolved = (
            token if token is not None else os.environ.get("RUNWATCH_GITHUB_TOKEN")
        )
        if resolved is None:
            raise GitHubConfigError.missing_token()
        if not resolved.strip():
            raise GitHubConfigError.empty_token()
        api_url = os.environ.get("RUNWATCH_GITHUB_API_URL", "").strip()
        return cls(
            token=resolved.strip(),
            api_url=(api_url or _DEFAULT_API_URL).rstrip("/"),
            run_window=cls._env_int("RUNWATCH_RUN_WINDOW", _DEFAULT_RUN_WINDOW),
            timeout_s=cls._env_seconds(
                "RUNWATCH_HTTP_TIMEOUT_SECONDS", _DEFAULT_TIMEOUT_S
            ),
        )


_RUNS_DECODER = msgspec.json.Decoder(WorkflowRunsPage)
_JOBS_DECODER = msgspec.json.Decoder(WorkflowJobsPage)


class GitHubActionsClient:
    """GitHub REST implementation of the monitor's ``SnapshotProvider``."""

    def __init__(
        self,
        config: GitHubActionsConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        if not config.token.strip():
            raise GitHubConfigError.empty_token()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": f"Bearer {config.token}",
                "User-Agent": config.user_agent,
                "Accept": "application/vnd.github+json",
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GitHubActionsClient:
        """Return the client for use in ``async with`` blocks."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close owned HTTP resources on exit."""
        await self.aclose()

    def _repo_url(self, resource_key: str) -> str:
        owner, name = parse_repository_slug(resource_key)
        return f"{self._config.api_url}/repos/{owner}/{name}"

    async def fetch_runs_snapshot(
        self, resource_key: str
    ) -> tuple[WorkflowRun, ...]:
        """Return the ``run_window`` most recently updated runs of a repository.

        Only the first page is requested. Runs that fall out of that window
        between polls are not observed.
        """
        url = f"{self._repo_url(resource_key)}/actions/runs"
        body = await self._get(
            url, params={"sort": "updated", "per_page": self._config.run_window}
        )
        try:
            page = _RUNS_DECODER.decode(body)
        except msgspec.DecodeError as exc:
            raise GitHubResponseShapeError.invalid("workflow runs", exc) from exc
        return page.workflow_runs

    async def fetch_jobs_snapshot(
        self,
        resource_key: str,
        run_id: int,
        *,
        jobs_url: str | None = None,
    ) -> tuple[WorkflowJob, ...]:
        """Return the jobs, with their steps, for a single workflow run."""
        url = jobs_url or f"{self._repo_url(resource_key)}/actions/runs/{run_id}/jobs"
        body = await self._get(url)
        try:
            page = _JOBS_DECODER.decode(body)
        except msgspec.DecodeError as exc:
            raise GitHubResponseShapeError.invalid("workflow jobs", exc) from exc
        return page.jobs

    async def _get(
        self, url: str, *, params: dict[str, typ.Any] | None = None
    ) -> bytes:
        """Issue a GET request and return the body of a successful response."""
        try:
            response = await self._client.get(
                url, params=params, timeout=self._config.timeout_s
            )
        except httpx.HTTPError as exc:
            raise GitHubAPIError.request_failed(url, exc) from exc
        if not response.is_success:
            raise GitHubAPIError.http_error(response.status_code, response.text)
        return response.content

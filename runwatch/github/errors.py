"""GitHub Actions client errors."""

from __future__ import annotations

from runwatch.monitor.errors import (
    MonitorConfigError,
    SnapshotFetchError,
    SnapshotShapeError,
)

_MAX_BODY_PREVIEW = 200


class GitHubAPIError(SnapshotFetchError):
    """Raised when a GitHub request fails or returns an error response."""

    @classmethod
    def http_error(cls, status_code: int, body: str = "") -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        preview = body.strip()[:_MAX_BODY_PREVIEW]
        message = f"GitHub API error {status_code}"
        if preview:
            message = f"{message}: {preview}"
        return cls(message, status_code=status_code)

    @classmethod
    def request_failed(cls, url: str, exc: BaseException) -> GitHubAPIError:
        """Return an error for transport failures such as timeouts."""
        detail = str(exc) or type(exc).__name__
        return cls(f"GitHub request to {url} failed: {detail}")


class GitHubResponseShapeError(SnapshotShapeError):
    """Raised when a GitHub response does not match the expected schema."""

    @classmethod
    def invalid(cls, resource: str, detail: object) -> GitHubResponseShapeError:
        """Return an error for a payload that failed schema validation."""
        return cls(f"GitHub {resource} response is malformed: {detail}")


class GitHubConfigError(MonitorConfigError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def missing_token(cls) -> GitHubConfigError:
        """Return an error when no GitHub token is configured."""
        return cls("RUNWATCH_GITHUB_TOKEN is required for the GitHub API")

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")

    @classmethod
    def invalid_repository(cls, slug: str) -> GitHubConfigError:
        """Return an error for a repository identifier not shaped owner/name."""
        return cls(f"repository must be given as owner/name, got: {slug!r}")

    @classmethod
    def invalid_setting(
        cls, env_var: str, raw: str, expected: str
    ) -> GitHubConfigError:
        """Return an error for a malformed client setting."""
        return cls(f"{env_var} must be {expected}, got: {raw!r}")

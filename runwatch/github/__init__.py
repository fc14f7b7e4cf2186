"""GitHub Actions snapshot provider."""

from __future__ import annotations

from .client import GitHubActionsClient, GitHubActionsConfig, parse_repository_slug
from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .models import (
    WorkflowJob,
    WorkflowJobsPage,
    WorkflowRun,
    WorkflowRunsPage,
    WorkflowStep,
)

__all__ = [
    "GitHubAPIError",
    "GitHubActionsClient",
    "GitHubActionsConfig",
    "GitHubConfigError",
    "GitHubResponseShapeError",
    "WorkflowJob",
    "WorkflowJobsPage",
    "WorkflowRun",
    "WorkflowRunsPage",
    "WorkflowStep",
    "parse_repository_slug",
]

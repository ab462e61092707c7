"""GitHub source tables populated by the sync connectors.

The insights pipeline only reads these. Columns not used by any rubric
(raw payloads, sync bookkeeping) are left out of the mapping.
"""

import uuid as uuid_pkg
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field

from app.models.base import IntegrationScopedMixin, UUIDMixin


class GitHubRepository(UUIDMixin, IntegrationScopedMixin, table=True):
    """A repository synced for an integration."""

    __tablename__ = "github_repositories"

    github_id: int | None = Field(default=None)
    name: str | None = Field(default=None, max_length=255)
    full_name: str | None = Field(default=None, max_length=500)
    language: str | None = Field(default=None, max_length=50)
    size_kb: int | None = Field(default=None)
    stars_count: int | None = Field(default=None)
    forks_count: int | None = Field(default=None)
    open_issues_count: int | None = Field(default=None)


class GitHubCommit(UUIDMixin, IntegrationScopedMixin, table=True):
    """A commit synced for an integration."""

    __tablename__ = "github_commits"

    repository_id: uuid_pkg.UUID | None = Field(default=None)
    sha: str | None = Field(default=None, max_length=40)
    message: str | None = Field(default=None)
    author_name: str | None = Field(default=None, max_length=255)
    commit_date: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )
    additions: int | None = Field(default=None)
    deletions: int | None = Field(default=None)
    changed_files: int | None = Field(default=None)


class GitHubPullRequest(UUIDMixin, IntegrationScopedMixin, table=True):
    """A pull request synced for an integration."""

    __tablename__ = "github_pull_requests"

    repository_id: uuid_pkg.UUID | None = Field(default=None)
    number: int | None = Field(default=None)
    title: str | None = Field(default=None)
    state: str | None = Field(default=None, max_length=20)
    merged: bool | None = Field(default=None)
    mergeable: bool | None = Field(default=None)
    base_branch: str | None = Field(default=None, max_length=255)
    head_branch: str | None = Field(default=None, max_length=255)
    created_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )
    merged_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )


class GitHubContributor(UUIDMixin, IntegrationScopedMixin, table=True):
    """A contributor synced for an integration."""

    __tablename__ = "github_contributors"

    repository_id: uuid_pkg.UUID | None = Field(default=None)
    login: str | None = Field(default=None, max_length=255)
    contributions: int | None = Field(default=None)


class GitHubWorkflow(UUIDMixin, IntegrationScopedMixin, table=True):
    """A CI workflow definition synced for an integration."""

    __tablename__ = "github_workflows"

    repository_id: uuid_pkg.UUID | None = Field(default=None)
    name: str | None = Field(default=None, max_length=255)
    state: str | None = Field(default=None, max_length=50)


class GitHubWorkflowRun(UUIDMixin, IntegrationScopedMixin, table=True):
    """A single CI workflow run synced for an integration."""

    __tablename__ = "github_workflow_runs"

    repository_id: uuid_pkg.UUID | None = Field(default=None)
    workflow_name: str | None = Field(default=None, max_length=255)
    status: str | None = Field(default=None, max_length=50)
    conclusion: str | None = Field(default=None, max_length=50)
    duration_seconds: int | None = Field(default=None)
    run_started_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )


class GitHubRelease(UUIDMixin, IntegrationScopedMixin, table=True):
    """A published release synced for an integration."""

    __tablename__ = "github_releases"

    repository_id: uuid_pkg.UUID | None = Field(default=None)
    tag_name: str | None = Field(default=None, max_length=255)
    name: str | None = Field(default=None, max_length=255)
    prerelease: bool | None = Field(default=None)
    published_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )

"""Domain operations for reading synced GitHub activity.

Every read is scoped to one integration, ordered newest first where an
order makes sense, and capped. Empty results come back as empty lists;
deciding whether "no data" is a problem is the caller's job.
"""

import uuid as uuid_pkg
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.github import (
    GitHubCommit,
    GitHubContributor,
    GitHubPullRequest,
    GitHubRelease,
    GitHubRepository,
    GitHubWorkflow,
    GitHubWorkflowRun,
)


class ActivityOperations:
    """Read-only queries over the GitHub source tables."""

    async def get_repositories(
        self,
        db: AsyncSession,
        integration_id: uuid_pkg.UUID,
    ) -> list[GitHubRepository]:
        """Get all repositories synced for an integration."""
        statement = select(GitHubRepository).where(
            GitHubRepository.integration_id == integration_id  # type: ignore[arg-type]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_commits(
        self,
        db: AsyncSession,
        integration_id: uuid_pkg.UUID,
        limit: int = 100,
        since: datetime | None = None,
    ) -> list[GitHubCommit]:
        """
        Get recent commits, newest first.

        Args:
            db: Database session
            integration_id: Integration UUID
            limit: Maximum number of commits returned
            since: Only commits on or after this instant, if given

        Returns:
            Commits ordered by commit_date descending
        """
        statement = select(GitHubCommit).where(
            GitHubCommit.integration_id == integration_id  # type: ignore[arg-type]
        )
        if since is not None:
            statement = statement.where(GitHubCommit.commit_date >= since)  # type: ignore[operator]
        statement = statement.order_by(
            GitHubCommit.commit_date.desc()  # type: ignore[union-attr]
        ).limit(limit)
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_pull_requests(
        self,
        db: AsyncSession,
        integration_id: uuid_pkg.UUID,
        limit: int = 50,
    ) -> list[GitHubPullRequest]:
        """Get the most recently opened pull requests."""
        statement = (
            select(GitHubPullRequest)
            .where(GitHubPullRequest.integration_id == integration_id)  # type: ignore[arg-type]
            .order_by(GitHubPullRequest.created_at.desc())  # type: ignore[union-attr]
            .limit(limit)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_merged_pull_requests(
        self,
        db: AsyncSession,
        integration_id: uuid_pkg.UUID,
        limit: int = 50,
    ) -> list[GitHubPullRequest]:
        """Get closed and merged pull requests, most recently merged first."""
        statement = (
            select(GitHubPullRequest)
            .where(
                GitHubPullRequest.integration_id == integration_id,  # type: ignore[arg-type]
                GitHubPullRequest.state == "closed",  # type: ignore[arg-type]
                GitHubPullRequest.merged.is_(True),  # type: ignore[union-attr]
            )
            .order_by(GitHubPullRequest.merged_at.desc())  # type: ignore[union-attr]
            .limit(limit)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_contributors(
        self,
        db: AsyncSession,
        integration_id: uuid_pkg.UUID,
    ) -> list[GitHubContributor]:
        """Get contributors, highest contribution count first."""
        statement = (
            select(GitHubContributor)
            .where(GitHubContributor.integration_id == integration_id)  # type: ignore[arg-type]
            .order_by(GitHubContributor.contributions.desc())  # type: ignore[union-attr]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_workflows(
        self,
        db: AsyncSession,
        integration_id: uuid_pkg.UUID,
    ) -> list[GitHubWorkflow]:
        """Get all CI workflow definitions for an integration."""
        statement = select(GitHubWorkflow).where(
            GitHubWorkflow.integration_id == integration_id  # type: ignore[arg-type]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_workflow_runs(
        self,
        db: AsyncSession,
        integration_id: uuid_pkg.UUID,
        limit: int = 50,
    ) -> list[GitHubWorkflowRun]:
        """Get the most recently started workflow runs."""
        statement = (
            select(GitHubWorkflowRun)
            .where(GitHubWorkflowRun.integration_id == integration_id)  # type: ignore[arg-type]
            .order_by(GitHubWorkflowRun.run_started_at.desc())  # type: ignore[union-attr]
            .limit(limit)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_releases(
        self,
        db: AsyncSession,
        integration_id: uuid_pkg.UUID,
        limit: int = 20,
    ) -> list[GitHubRelease]:
        """Get the most recently published releases."""
        statement = (
            select(GitHubRelease)
            .where(GitHubRelease.integration_id == integration_id)  # type: ignore[arg-type]
            .order_by(GitHubRelease.published_at.desc())  # type: ignore[union-attr]
            .limit(limit)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())


activity_ops = ActivityOperations()

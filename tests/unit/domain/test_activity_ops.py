"""Unit tests for ActivityOperations: all DB calls mocked."""

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from app.domain.activity_operations import ActivityOperations

from tests.helpers.mock_factories import (
    make_mock_commit,
    make_mock_contributor,
    make_mock_github_repository,
    make_mock_pull_request,
    make_mock_release,
    make_mock_workflow,
    make_mock_workflow_run,
    mock_scalars_result,
)


def _executed_sql(db: AsyncMock) -> str:
    statement = db.execute.call_args.args[0]
    return str(statement.compile())


def _executed_params(db: AsyncMock) -> dict:
    statement = db.execute.call_args.args[0]
    return statement.compile().params


class TestRepositoryAndContributorReads:
    """Unbounded per-integration reads."""

    def setup_method(self):
        self.ops = ActivityOperations()
        self.db = AsyncMock()
        self.integration_id = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_get_repositories_returns_list(self):
        repos = [make_mock_github_repository(), make_mock_github_repository(name="web")]
        self.db.execute = AsyncMock(return_value=mock_scalars_result(repos))

        result = await self.ops.get_repositories(self.db, self.integration_id)

        assert result == repos
        assert isinstance(result, list)
        assert "FROM github_repositories" in _executed_sql(self.db)
        assert self.integration_id in _executed_params(self.db).values()

    @pytest.mark.asyncio
    async def test_get_repositories_empty(self):
        self.db.execute = AsyncMock(return_value=mock_scalars_result([]))

        assert await self.ops.get_repositories(self.db, self.integration_id) == []

    @pytest.mark.asyncio
    async def test_get_contributors_orders_by_contributions(self):
        contributors = [make_mock_contributor(contributions=50), make_mock_contributor()]
        self.db.execute = AsyncMock(return_value=mock_scalars_result(contributors))

        result = await self.ops.get_contributors(self.db, self.integration_id)

        assert result == contributors
        assert "ORDER BY github_contributors.contributions DESC" in _executed_sql(self.db)

    @pytest.mark.asyncio
    async def test_get_workflows(self):
        workflows = [make_mock_workflow()]
        self.db.execute = AsyncMock(return_value=mock_scalars_result(workflows))

        result = await self.ops.get_workflows(self.db, self.integration_id)

        assert result == workflows
        assert "FROM github_workflows" in _executed_sql(self.db)


class TestCommitReads:
    """Commit reads are newest first, capped and optionally windowed."""

    def setup_method(self):
        self.ops = ActivityOperations()
        self.db = AsyncMock()
        self.db.execute = AsyncMock(return_value=mock_scalars_result([make_mock_commit()]))
        self.integration_id = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_orders_newest_first_with_limit(self):
        await self.ops.get_commits(self.db, self.integration_id, limit=25)

        sql = _executed_sql(self.db)
        assert "ORDER BY github_commits.commit_date DESC" in sql
        assert "LIMIT" in sql
        assert 25 in _executed_params(self.db).values()

    @pytest.mark.asyncio
    async def test_since_adds_window_filter(self):
        since = datetime(2026, 1, 1, tzinfo=UTC)

        await self.ops.get_commits(self.db, self.integration_id, since=since)

        assert "github_commits.commit_date >=" in _executed_sql(self.db)
        assert since in _executed_params(self.db).values()

    @pytest.mark.asyncio
    async def test_no_window_without_since(self):
        await self.ops.get_commits(self.db, self.integration_id)

        assert "github_commits.commit_date >=" not in _executed_sql(self.db)


class TestBoundedReads:
    """Pull requests, runs and releases."""

    def setup_method(self):
        self.ops = ActivityOperations()
        self.db = AsyncMock()
        self.integration_id = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_get_pull_requests(self):
        prs = [make_mock_pull_request()]
        self.db.execute = AsyncMock(return_value=mock_scalars_result(prs))

        result = await self.ops.get_pull_requests(self.db, self.integration_id, limit=10)

        assert result == prs
        assert "ORDER BY github_pull_requests.created_at DESC" in _executed_sql(self.db)
        assert 10 in _executed_params(self.db).values()

    @pytest.mark.asyncio
    async def test_get_merged_pull_requests_filters_closed_and_merged(self):
        prs = [make_mock_pull_request(state="closed", merged=True)]
        self.db.execute = AsyncMock(return_value=mock_scalars_result(prs))

        result = await self.ops.get_merged_pull_requests(self.db, self.integration_id)

        assert result == prs
        sql = _executed_sql(self.db)
        assert "github_pull_requests.merged IS" in sql
        assert "ORDER BY github_pull_requests.merged_at DESC" in sql
        assert "closed" in _executed_params(self.db).values()

    @pytest.mark.asyncio
    async def test_get_workflow_runs(self):
        runs = [make_mock_workflow_run(), make_mock_workflow_run(conclusion="failure")]
        self.db.execute = AsyncMock(return_value=mock_scalars_result(runs))

        result = await self.ops.get_workflow_runs(self.db, self.integration_id)

        assert result == runs
        assert "ORDER BY github_workflow_runs.run_started_at DESC" in _executed_sql(self.db)
        assert 50 in _executed_params(self.db).values()

    @pytest.mark.asyncio
    async def test_get_releases(self):
        releases = [make_mock_release()]
        self.db.execute = AsyncMock(return_value=mock_scalars_result(releases))

        result = await self.ops.get_releases(self.db, self.integration_id)

        assert result == releases
        assert "ORDER BY github_releases.published_at DESC" in _executed_sql(self.db)
        assert 20 in _executed_params(self.db).values()

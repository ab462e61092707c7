"""
Activity aggregation for insight rubrics.

Reads the bounded source slices a rubric needs and shapes them into a
RubricContext: compact JSON-ready rows for the prompt, provenance counts
for the stored insight, and the derived metrics the summary uses.
"""

import logging
import re
import uuid as uuid_pkg
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.activity_operations import ActivityOperations, activity_ops
from app.models.github import GitHubCommit
from app.services.insights.types import ActivitySnapshot, RubricContext, RubricKind

logger = logging.getLogger(__name__)

# Window and caps per slice
SECURITY_COMMIT_WINDOW_DAYS = 30
RECENT_ACTIVITY_DAYS = 7
COMMIT_LIMIT = 100
PERFORMANCE_COMMIT_LIMIT = 50
DEV_PERFORMANCE_COMMIT_LIMIT = 200
PULL_REQUEST_LIMIT = 50
WORKFLOW_RUN_LIMIT = 50
RELEASE_LIMIT = 20

# Commits changing more lines than this count as "large"
LARGE_COMMIT_LINES = 500

TEST_COMMIT_PATTERN = re.compile(r"test|spec|jest|mocha|cypress|junit", re.IGNORECASE)
PERFORMANCE_COMMIT_PATTERN = re.compile(
    r"performance|optimization|slow|memory|cpu|cache|database", re.IGNORECASE
)
FEATURE_COMMIT_PATTERN = re.compile(r"feat|feature|add|new", re.IGNORECASE)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps from the store as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _churn(commit: GitHubCommit) -> int:
    return (commit.additions or 0) + (commit.deletions or 0)


def _message(commit: GitHubCommit) -> str:
    return commit.message or ""


class ActivityAggregator:
    """Collects and shapes source data for one rubric."""

    def __init__(self, ops: ActivityOperations | None = None):
        self.ops = ops or activity_ops

    async def collect(
        self,
        db: AsyncSession,
        integration_id: uuid_pkg.UUID,
        kind: RubricKind,
        now: datetime | None = None,
    ) -> ActivitySnapshot:
        """Read exactly the slices ``kind`` needs. Never fails on empty results."""
        now = now or datetime.now(UTC)
        ops = self.ops
        snapshot = ActivitySnapshot()

        if kind == RubricKind.SECURITY:
            snapshot.repositories = await ops.get_repositories(db, integration_id)
            snapshot.commits = await ops.get_commits(
                db,
                integration_id,
                limit=COMMIT_LIMIT,
                since=now - timedelta(days=SECURITY_COMMIT_WINDOW_DAYS),
            )
            snapshot.pull_requests = await ops.get_pull_requests(
                db, integration_id, limit=PULL_REQUEST_LIMIT
            )
        elif kind == RubricKind.CODE_QUALITY:
            snapshot.repositories = await ops.get_repositories(db, integration_id)
            snapshot.commits = await ops.get_commits(db, integration_id, limit=COMMIT_LIMIT)
            snapshot.contributors = await ops.get_contributors(db, integration_id)
        elif kind == RubricKind.TEST_COVERAGE:
            snapshot.commits = await ops.get_commits(db, integration_id, limit=COMMIT_LIMIT)
        elif kind == RubricKind.PERFORMANCE:
            snapshot.commits = await ops.get_commits(
                db, integration_id, limit=PERFORMANCE_COMMIT_LIMIT
            )
            snapshot.repositories = await ops.get_repositories(db, integration_id)
        elif kind == RubricKind.PIPELINE_HEALTH:
            snapshot.workflows = await ops.get_workflows(db, integration_id)
            snapshot.workflow_runs = await ops.get_workflow_runs(
                db, integration_id, limit=WORKFLOW_RUN_LIMIT
            )
        elif kind == RubricKind.DEV_PERFORMANCE:
            snapshot.commits = await ops.get_commits(
                db, integration_id, limit=DEV_PERFORMANCE_COMMIT_LIMIT
            )
            snapshot.contributors = await ops.get_contributors(db, integration_id)
        elif kind == RubricKind.RELEASE_PREDICTION:
            snapshot.releases = await ops.get_releases(db, integration_id, limit=RELEASE_LIMIT)
            snapshot.commits = await ops.get_commits(db, integration_id, limit=COMMIT_LIMIT)
            snapshot.pull_requests = await ops.get_merged_pull_requests(
                db, integration_id, limit=PULL_REQUEST_LIMIT
            )

        logger.info(
            f"[insights] {kind.value}: collected {len(snapshot.repositories)} repos, "
            f"{len(snapshot.commits)} commits, {len(snapshot.pull_requests)} PRs, "
            f"{len(snapshot.contributors)} contributors, {len(snapshot.workflows)} workflows, "
            f"{len(snapshot.workflow_runs)} runs, {len(snapshot.releases)} releases"
        )
        return snapshot

    def shape(
        self,
        kind: RubricKind,
        snapshot: ActivitySnapshot,
        now: datetime | None = None,
    ) -> RubricContext:
        """Turn a snapshot into prompt payload, provenance and metrics."""
        now = now or datetime.now(UTC)
        shaper = {
            RubricKind.SECURITY: self._shape_security,
            RubricKind.CODE_QUALITY: self._shape_code_quality,
            RubricKind.TEST_COVERAGE: self._shape_test_coverage,
            RubricKind.PERFORMANCE: self._shape_performance,
            RubricKind.PIPELINE_HEALTH: self._shape_pipeline_health,
            RubricKind.DEV_PERFORMANCE: self._shape_dev_performance,
            RubricKind.RELEASE_PREDICTION: self._shape_release_prediction,
        }[kind]
        return shaper(snapshot, now)

    # ─────────────────────────────────────────────────────────────
    # Per-rubric shaping
    # ─────────────────────────────────────────────────────────────

    def _shape_security(self, snapshot: ActivitySnapshot, now: datetime) -> RubricContext:
        return RubricContext(
            kind=RubricKind.SECURITY,
            payload={
                "repositories": [
                    {
                        "name": r.name,
                        "language": r.language,
                        "size_kb": r.size_kb,
                        "open_issues": r.open_issues_count,
                    }
                    for r in snapshot.repositories
                ],
                "recent_commits": [
                    {
                        "message": c.message,
                        "author": c.author_name,
                        "files_changed": c.changed_files,
                        "additions": c.additions,
                        "deletions": c.deletions,
                    }
                    for c in snapshot.commits
                ],
                "pull_requests": [
                    {
                        "title": pr.title,
                        "state": pr.state,
                        "mergeable": pr.mergeable,
                        "base_branch": pr.base_branch,
                        "head_branch": pr.head_branch,
                    }
                    for pr in snapshot.pull_requests
                ],
            },
            provenance={
                "repositories_analyzed": len(snapshot.repositories),
                "commits_analyzed": len(snapshot.commits),
                "prs_analyzed": len(snapshot.pull_requests),
            },
        )

    def _shape_code_quality(self, snapshot: ActivitySnapshot, now: datetime) -> RubricContext:
        return RubricContext(
            kind=RubricKind.CODE_QUALITY,
            payload={
                "repositories": [
                    {
                        "name": r.name,
                        "language": r.language,
                        "size_kb": r.size_kb,
                        "stars": r.stars_count,
                        "forks": r.forks_count,
                    }
                    for r in snapshot.repositories
                ],
                "commits": [
                    {
                        "message": c.message,
                        "additions": c.additions,
                        "deletions": c.deletions,
                        "files_changed": c.changed_files,
                    }
                    for c in snapshot.commits
                ],
                "contributors": [
                    {"login": c.login, "contributions": c.contributions}
                    for c in snapshot.contributors
                ],
            },
            provenance={
                "repositories_count": len(snapshot.repositories),
                "commits_analyzed": len(snapshot.commits),
            },
        )

    def _shape_test_coverage(self, snapshot: ActivitySnapshot, now: datetime) -> RubricContext:
        test_commits = [c for c in snapshot.commits if TEST_COMMIT_PATTERN.search(_message(c))]
        return RubricContext(
            kind=RubricKind.TEST_COVERAGE,
            payload={
                "total_commits": len(snapshot.commits),
                "test_commit_count": len(test_commits),
                "test_commit_messages": [_message(c) for c in test_commits],
                "recent_commit_messages": [_message(c) for c in snapshot.commits],
            },
            provenance={
                "total_commits": len(snapshot.commits),
                "test_commits": len(test_commits),
            },
        )

    def _shape_performance(self, snapshot: ActivitySnapshot, now: datetime) -> RubricContext:
        performance_commits = [
            c for c in snapshot.commits if PERFORMANCE_COMMIT_PATTERN.search(_message(c))
        ]
        large_commits = [c for c in snapshot.commits if _churn(c) > LARGE_COMMIT_LINES]
        return RubricContext(
            kind=RubricKind.PERFORMANCE,
            payload={
                "repositories": [
                    {"name": r.name, "size_kb": r.size_kb, "language": r.language}
                    for r in snapshot.repositories
                ],
                "performance_commit_messages": [_message(c) for c in performance_commits],
                "large_commit_count": len(large_commits),
                "recent_commits": [
                    {
                        "message": c.message,
                        "additions": c.additions,
                        "deletions": c.deletions,
                        "files": c.changed_files,
                    }
                    for c in snapshot.commits
                ],
            },
            provenance={
                "performance_commits": len(performance_commits),
                "large_commits": len(large_commits),
                "total_commits": len(snapshot.commits),
            },
        )

    def _shape_pipeline_health(self, snapshot: ActivitySnapshot, now: datetime) -> RubricContext:
        runs = snapshot.workflow_runs
        failed_runs = [r for r in runs if r.conclusion == "failure"]
        success_rate = (len(runs) - len(failed_runs)) / len(runs) if runs else 0.0
        return RubricContext(
            kind=RubricKind.PIPELINE_HEALTH,
            payload={
                "workflow_count": len(snapshot.workflows),
                "workflows": [{"name": w.name, "state": w.state} for w in snapshot.workflows],
                "recent_run_count": len(runs),
                "success_rate_percent": round(success_rate * 100),
                "failed_run_count": len(failed_runs),
                "runs": [
                    {
                        "workflow": r.workflow_name,
                        "status": r.status,
                        "conclusion": r.conclusion,
                        "duration": r.duration_seconds,
                    }
                    for r in runs
                ],
            },
            provenance={
                "workflows_count": len(snapshot.workflows),
                "recent_runs": len(runs),
                "success_rate": success_rate,
            },
            metrics={"success_rate": success_rate},
        )

    def _shape_dev_performance(self, snapshot: ActivitySnapshot, now: datetime) -> RubricContext:
        commits = snapshot.commits
        contributors = snapshot.contributors
        week_ago = now - timedelta(days=RECENT_ACTIVITY_DAYS)
        recent_commits = [
            c for c in commits if c.commit_date and _as_utc(c.commit_date) > week_ago
        ]
        commits_per_day = len(recent_commits) / RECENT_ACTIVITY_DAYS
        total_commits = len(commits) or 1
        top_contributor = contributors[0] if contributors else None
        contributor_balance = (
            (top_contributor.contributions or 0) / total_commits if top_contributor else 0.0
        )
        return RubricContext(
            kind=RubricKind.DEV_PERFORMANCE,
            payload={
                "total_commits": len(commits),
                "commits_last_7_days": len(recent_commits),
                "commits_per_day": round(commits_per_day, 1),
                "active_contributors": len(contributors),
                "contribution_distribution": [
                    {
                        "name": c.login,
                        "contributions": c.contributions,
                        "percentage": round(((c.contributions or 0) / total_commits) * 100),
                    }
                    for c in contributors
                ],
                "recent_commits": [
                    {"author": c.author_name, "message": c.message, "changes": _churn(c)}
                    for c in recent_commits
                ],
            },
            provenance={
                "commits_per_day": commits_per_day,
                "contributor_balance": contributor_balance,
                "total_contributors": len(contributors),
                "recent_activity": len(recent_commits),
            },
            metrics={"commits_per_day": commits_per_day},
        )

    def _shape_release_prediction(
        self, snapshot: ActivitySnapshot, now: datetime
    ) -> RubricContext:
        releases = snapshot.releases
        last_release = releases[0] if releases else None
        last_published = (
            _as_utc(last_release.published_at)
            if last_release and last_release.published_at
            else None
        )

        days_since_last_release: int | None = None
        if last_published is not None:
            days_since_last_release = (now - last_published).days
            commits_since: list[GitHubCommit] = [
                c
                for c in snapshot.commits
                if c.commit_date and _as_utc(c.commit_date) > last_published
            ]
        else:
            commits_since = list(snapshot.commits)

        feature_candidates = [
            _message(c) for c in commits_since if FEATURE_COMMIT_PATTERN.search(_message(c))
        ]

        payload: dict[str, Any] = {
            "releases": [
                {
                    "tag": r.tag_name,
                    "name": r.name,
                    "date": _iso(r.published_at),
                    "prerelease": r.prerelease,
                }
                for r in releases
            ],
            "last_release": last_release.tag_name if last_release else None,
            "days_since_last_release": days_since_last_release,
            "commits_since_last_release": len(commits_since),
            "recent_merged_prs": len(snapshot.pull_requests),
            "recent_commits": [
                {"message": c.message, "date": _iso(c.commit_date), "author": c.author_name}
                for c in commits_since
            ],
            "feature_candidates": feature_candidates,
        }
        return RubricContext(
            kind=RubricKind.RELEASE_PREDICTION,
            payload=payload,
            provenance={
                "releases_analyzed": len(releases),
                "commits_since_last_release": len(commits_since),
                "days_since_last_release": days_since_last_release,
            },
            metrics={"days_since_last_release": days_since_last_release},
        )


activity_aggregator = ActivityAggregator()

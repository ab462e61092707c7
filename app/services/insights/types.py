"""
Shared data types for the insight-generation pipeline.

These are passed between the aggregator, prompt builder, summary
generator, persister and the orchestration layers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.models.github import (
    GitHubCommit,
    GitHubContributor,
    GitHubPullRequest,
    GitHubRelease,
    GitHubRepository,
    GitHubWorkflow,
    GitHubWorkflowRun,
)


class RubricKind(str, Enum):
    """The fixed analysis dimensions. Values are stored as insight_type."""

    SECURITY = "security"
    CODE_QUALITY = "code_quality"
    TEST_COVERAGE = "test_coverage"
    PERFORMANCE = "performance"
    PIPELINE_HEALTH = "pipeline_health"
    DEV_PERFORMANCE = "dev_performance"
    RELEASE_PREDICTION = "release_prediction"


class AlertCategory(str, Enum):
    """Coarse alert label stored on each insight."""

    SECURITY = "SECURITY"
    QUALITY = "QUALITY"
    TESTING = "TESTING"
    PERFORMANCE = "PERFORMANCE"
    PIPELINE = "PIPELINE"
    DEV_PERFORMANCE = "DEV_PERFORMANCE"
    RELEASE = "RELEASE"
    GENERAL = "GENERAL"


class Severity(str, Enum):
    """Issue severities the model is asked to use, highest first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass
class ActivitySnapshot:
    """Bounded slices of source data read for one rubric.

    Slices a rubric does not need stay empty.
    """

    repositories: list[GitHubRepository] = field(default_factory=list)
    commits: list[GitHubCommit] = field(default_factory=list)
    pull_requests: list[GitHubPullRequest] = field(default_factory=list)
    contributors: list[GitHubContributor] = field(default_factory=list)
    workflows: list[GitHubWorkflow] = field(default_factory=list)
    workflow_runs: list[GitHubWorkflowRun] = field(default_factory=list)
    releases: list[GitHubRelease] = field(default_factory=list)

    def is_empty(self) -> bool:
        """True when every slice is empty."""
        return not any(
            (
                self.repositories,
                self.commits,
                self.pull_requests,
                self.contributors,
                self.workflows,
                self.workflow_runs,
                self.releases,
            )
        )


@dataclass
class RubricContext:
    """Shaped input for one rubric run.

    payload: JSON-ready data embedded in the prompt (full lists; the
        prompt builder truncates).
    provenance: counts merged into insight_data on persist.
    metrics: derived values the summary generator needs
        (success_rate, commits_per_day, days_since_last_release).
    """

    kind: RubricKind
    payload: dict[str, Any] = field(default_factory=dict)
    provenance: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)

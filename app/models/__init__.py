from app.models.github import (
    GitHubCommit,
    GitHubContributor,
    GitHubPullRequest,
    GitHubRelease,
    GitHubRepository,
    GitHubWorkflow,
    GitHubWorkflowRun,
)
from app.models.insight import Insight

__all__ = [
    "Insight",
    "GitHubRepository",
    "GitHubCommit",
    "GitHubPullRequest",
    "GitHubContributor",
    "GitHubWorkflow",
    "GitHubWorkflowRun",
    "GitHubRelease",
]

"""
Prompt templates for the insight rubrics.

Each rubric has a fixed task statement, a list of focus areas and an
explicit JSON output contract. ``build_prompt`` embeds truncated samples of
the shaped data. It is a pure function: identical inputs give identical
prompts.
"""

import json
from dataclasses import dataclass
from typing import Any

from app.services.insights.rubrics import get_rubric
from app.services.insights.types import RubricContext, RubricKind

# Bumped whenever any output contract below changes shape
OUTPUT_CONTRACT_VERSION = "1"

JSON_ONLY_INSTRUCTION = "Respond ONLY with valid JSON. No prose, no markdown."

SEVERITIES = "CRITICAL|HIGH|MEDIUM|LOW"


@dataclass(frozen=True)
class PromptSection:
    """One labelled block of embedded data.

    limit truncates list values; None embeds the value as-is.
    """

    label: str
    key: str
    limit: int | None = None


@dataclass(frozen=True)
class PromptTemplate:
    task: str
    sections: tuple[PromptSection, ...]
    focus: tuple[str, ...]
    output_schema: str


TEMPLATES: dict[RubricKind, PromptTemplate] = {
    RubricKind.SECURITY: PromptTemplate(
        task="Analyze the GitHub repository data below to identify security risks.",
        sections=(
            PromptSection("Repositories", "repositories"),
            PromptSection("Recent commits", "recent_commits", limit=10),
            PromptSection("Pull requests", "pull_requests", limit=10),
        ),
        focus=(
            "CRITICAL VULNERABILITIES: exposed credentials, secrets in code, outdated dependencies",
            "CODE RISKS: dangerous patterns, unreviewed code, sensitive changes",
            "PROCESS: missing code review, direct merges to main, unprotected branches",
            "DEPENDENCY ALERTS: libraries with known vulnerabilities",
        ),
        output_schema=f"""{{
  "security_score": 0.0-1.0,
  "critical_alerts": [
    {{
      "type": "credential_exposure|vulnerable_dependency|unsafe_code|process_violation",
      "severity": "{SEVERITIES}",
      "title": "Alert title",
      "description": "Detailed description",
      "affected_files": ["file1.js", "file2.py"],
      "recommendations": ["action1", "action2"]
    }}
  ],
  "vulnerabilities_found": number,
  "recommendations": ["recommendation1", "recommendation2"]
}}""",
    ),
    RubricKind.CODE_QUALITY: PromptTemplate(
        task="Assess code quality based on the GitHub data below.",
        sections=(
            PromptSection("Repositories", "repositories"),
            PromptSection("Latest commits", "commits", limit=20),
            PromptSection("Contributors", "contributors", limit=10),
        ),
        focus=(
            "TECHNICAL DEBT: large commits, needed refactoring, complex code",
            "CODE STANDARDS: consistency, conventions, structure",
            "MAINTAINABILITY: change frequency, commit size, modularity",
            "COLLABORATION: contribution distribution, code reviews",
        ),
        output_schema=f"""{{
  "quality_score": 0.0-1.0,
  "technical_debt_score": 0.0-1.0,
  "maintainability_score": 0.0-1.0,
  "critical_issues": [
    {{
      "type": "technical_debt|code_smell|maintainability|collaboration",
      "severity": "{SEVERITIES}",
      "title": "Issue title",
      "description": "Description",
      "impact": "Impact on the project",
      "recommendations": ["solution1", "solution2"]
    }}
  ],
  "improvements": ["improvement1", "improvement2"]
}}""",
    ),
    RubricKind.TEST_COVERAGE: PromptTemplate(
        task="Analyze test coverage and test quality based on the commits below.",
        sections=(
            PromptSection("Total commits", "total_commits"),
            PromptSection("Test-related commits", "test_commit_count"),
            PromptSection("Test commits", "test_commit_messages", limit=10),
            PromptSection("Recent commits", "recent_commit_messages", limit=20),
        ),
        focus=(
            "TEST COVERAGE: frequency of test commits versus code commits",
            "TEST PATTERNS: kinds of tests identified, frameworks",
            "RISKS: untested code, uncovered critical areas",
            "QUALITY: automated tests, continuous integration",
        ),
        output_schema=f"""{{
  "test_coverage_estimated": 0.0-1.0,
  "testing_maturity": "LOW|MEDIUM|HIGH",
  "test_to_code_ratio": 0.0-1.0,
  "critical_gaps": [
    {{
      "type": "missing_tests|failing_tests|outdated_tests",
      "severity": "{SEVERITIES}",
      "title": "Identified gap",
      "description": "Problem description",
      "risk_impact": "Impact of the risk",
      "recommendations": ["solution1", "solution2"]
    }}
  ],
  "testing_recommendations": ["rec1", "rec2"]
}}""",
    ),
    RubricKind.PERFORMANCE: PromptTemplate(
        task="Analyze the performance impact based on the repository data below.",
        sections=(
            PromptSection("Repositories", "repositories"),
            PromptSection("Performance commits", "performance_commit_messages", limit=5),
            PromptSection("Large commits (>500 lines)", "large_commit_count"),
            PromptSection("Latest commits", "recent_commits", limit=15),
        ),
        focus=(
            "PERFORMANCE RISKS: commits that may affect performance",
            "INEFFICIENT CODE: patterns suggesting performance problems",
            "SIZE ALERTS: very large repositories or commits",
            "OPTIMIZATIONS: improvement opportunities",
        ),
        output_schema=f"""{{
  "performance_score": 0.0-1.0,
  "efficiency_rating": "LOW|MEDIUM|HIGH",
  "performance_risks": [
    {{
      "type": "inefficient_code|large_commits|memory_issues|database_performance",
      "severity": "{SEVERITIES}",
      "title": "Identified risk",
      "description": "Problem description",
      "performance_impact": "Expected impact",
      "optimization_suggestions": ["optimization1", "optimization2"]
    }}
  ],
  "recommendations": ["rec1", "rec2"]
}}""",
    ),
    RubricKind.PIPELINE_HEALTH: PromptTemplate(
        task="Analyze the health of the CI/CD pipelines based on the data below.",
        sections=(
            PromptSection("Configured workflows", "workflow_count"),
            PromptSection("Workflows", "workflows"),
            PromptSection("Recent runs", "recent_run_count"),
            PromptSection("Success rate (%)", "success_rate_percent"),
            PromptSection("Recent failures", "failed_run_count"),
            PromptSection("Runs", "runs", limit=10),
        ),
        focus=(
            "PIPELINE HEALTH: status, success rate, build time",
            "CRITICAL PROBLEMS: failing workflows, slow builds, misconfiguration",
            "PERFORMANCE ALERTS: very long builds, bottlenecks",
            "RECOMMENDATIONS: process and configuration improvements",
        ),
        output_schema=f"""{{
  "pipeline_health_score": 0.0-1.0,
  "success_rate": 0.0-1.0,
  "pipeline_issues": [
    {{
      "type": "failing_builds|slow_builds|missing_tests|configuration_issues",
      "severity": "{SEVERITIES}",
      "title": "Pipeline problem",
      "description": "Detailed description",
      "affected_workflows": ["workflow1", "workflow2"],
      "recommendations": ["solution1", "solution2"]
    }}
  ],
  "performance_metrics": {{
    "average_build_time": "time in seconds",
    "failure_frequency": "failure frequency"
  }},
  "improvements": ["improvement1", "improvement2"]
}}""",
    ),
    RubricKind.DEV_PERFORMANCE: PromptTemplate(
        task="Analyze the development performance of the team.",
        sections=(
            PromptSection("Total commits", "total_commits"),
            PromptSection("Commits (last 7 days)", "commits_last_7_days"),
            PromptSection("Commits per day", "commits_per_day"),
            PromptSection("Active contributors", "active_contributors"),
            PromptSection("Contribution distribution", "contribution_distribution", limit=5),
            PromptSection("Recent commits", "recent_commits", limit=10),
        ),
        focus=(
            "VELOCITY: commit frequency, development pace",
            "DISTRIBUTION: balance between contributors, knowledge concentration",
            "ALERTS: low activity, overloaded developers, inactivity",
            "TRENDS: productivity patterns, seasonality",
        ),
        output_schema=f"""{{
  "development_velocity_score": 0.0-1.0,
  "team_balance_score": 0.0-1.0,
  "activity_level": "LOW|MEDIUM|HIGH",
  "performance_alerts": [
    {{
      "type": "low_commit_frequency|contributor_imbalance|team_inactivity|knowledge_concentration",
      "severity": "{SEVERITIES}",
      "title": "Performance alert",
      "description": "Problem description",
      "metrics": {{"commits_per_day": number, "contributor_balance": number}},
      "recommendations": ["action1", "action2"]
    }}
  ],
  "team_insights": {{
    "most_active_contributor": "name",
    "contribution_distribution": "BALANCED|UNBALANCED",
    "development_rhythm": "CONSISTENT|IRREGULAR"
  }},
  "recommendations": ["rec1", "rec2"]
}}""",
    ),
    RubricKind.RELEASE_PREDICTION: PromptTemplate(
        task="Analyze the release pattern and predict the next release.",
        sections=(
            PromptSection("Release history", "releases"),
            PromptSection("Last release", "last_release"),
            PromptSection("Days since last release", "days_since_last_release"),
            PromptSection("Commits since last release", "commits_since_last_release"),
            PromptSection("Recently merged PRs", "recent_merged_prs"),
            PromptSection("Recent commits", "recent_commits", limit=15),
            PromptSection("Candidate features (from commits)", "feature_candidates", limit=10),
        ),
        focus=(
            "RELEASE PATTERN: frequency, intervals, release types",
            "READINESS: amount of change, completed features, stability",
            "PREDICTION: estimated date of the next release, confidence",
            "CANDIDATES: features and fixes likely to be in the next release",
        ),
        output_schema=f"""{{
  "next_release_prediction": {{
    "estimated_days": number,
    "confidence": 0.0-1.0,
    "readiness_score": 0.0-1.0,
    "predicted_type": "MAJOR|MINOR|PATCH"
  }},
  "release_readiness": {{
    "commits_ready": number,
    "features_identified": [{{"name": "feature", "status": "ready|partial|pending"}}],
    "blockers": ["blocker1", "blocker2"]
  }},
  "release_risks": [
    {{
      "type": "overdue_release|insufficient_testing|breaking_changes|unstable_features",
      "severity": "{SEVERITIES}",
      "title": "Release risk",
      "description": "Risk description",
      "impact": "Schedule impact",
      "mitigation": ["action1", "action2"]
    }}
  ],
  "recommendations": ["rec1", "rec2"]
}}""",
    ),
}


def _render(value: Any, limit: int | None) -> str:
    if limit is not None and isinstance(value, list):
        value = value[:limit]
    if value is None:
        return "N/A"
    if isinstance(value, str | int | float):
        return str(value)
    return json.dumps(value, ensure_ascii=False, default=str)


def build_prompt(kind: RubricKind, context: RubricContext) -> str:
    """Render the user prompt for one rubric run."""
    template = TEMPLATES[kind]
    lines = [template.task, ""]

    for section in template.sections:
        value = context.payload.get(section.key)
        lines.append(f"{section.label}: {_render(value, section.limit)}")
    lines.append("")

    lines.append("Identify:")
    for index, focus in enumerate(template.focus, start=1):
        lines.append(f"{index}. {focus}")
    lines.append("")

    lines.append(
        f"Respond with valid JSON matching this contract (v{OUTPUT_CONTRACT_VERSION}). "
        f"Severities must be one of {SEVERITIES}:"
    )
    lines.append(template.output_schema)

    return "\n".join(lines)


def system_instruction(kind: RubricKind) -> str:
    """Persona for the model call; the client appends the JSON-only demand."""
    return get_rubric(kind).persona

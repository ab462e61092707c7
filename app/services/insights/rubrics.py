"""
Rubric registry.

One entry per analysis dimension. Keeping the default confidence, alert
category and persona in a single table stops the rubrics drifting apart.
"""

from dataclasses import dataclass

from app.services.insights.types import AlertCategory, RubricKind

# Action name of the "generate all" batch request
GENERATE_ALL_ACTION = "generate_github_insights"


@dataclass(frozen=True)
class RubricSpec:
    """Static configuration of one rubric."""

    kind: RubricKind
    name: str  # Human-readable, used in logs
    action: str  # Request action that runs this rubric alone
    alert_category: AlertCategory  # Used when any issue is CRITICAL
    default_confidence: float  # Used when the model reports no usable score
    persona: str  # System instruction for the model call
    requires_data: bool = False  # Empty source data is fatal for this rubric


RUBRICS: dict[RubricKind, RubricSpec] = {
    RubricKind.SECURITY: RubricSpec(
        kind=RubricKind.SECURITY,
        name="Security Analysis",
        action="security_analysis",
        alert_category=AlertCategory.SECURITY,
        default_confidence=0.8,
        persona="You are a code security specialist.",
        requires_data=True,
    ),
    RubricKind.CODE_QUALITY: RubricSpec(
        kind=RubricKind.CODE_QUALITY,
        name="Code Quality Assessment",
        action="code_quality_assessment",
        alert_category=AlertCategory.QUALITY,
        default_confidence=0.7,
        persona="You are a senior software architect.",
    ),
    RubricKind.TEST_COVERAGE: RubricSpec(
        kind=RubricKind.TEST_COVERAGE,
        name="Test Coverage Analysis",
        action="test_coverage_analysis",
        alert_category=AlertCategory.TESTING,
        default_confidence=0.6,
        persona="You are an experienced QA engineer.",
    ),
    RubricKind.PERFORMANCE: RubricSpec(
        kind=RubricKind.PERFORMANCE,
        name="Performance Analysis",
        action="performance_insights",
        alert_category=AlertCategory.PERFORMANCE,
        default_confidence=0.7,
        persona="You are a performance optimization specialist.",
    ),
    RubricKind.PIPELINE_HEALTH: RubricSpec(
        kind=RubricKind.PIPELINE_HEALTH,
        name="Pipeline Health Analysis",
        action="pipeline_health",
        alert_category=AlertCategory.PIPELINE,
        default_confidence=0.8,
        persona="You are a DevOps and CI/CD specialist.",
    ),
    RubricKind.DEV_PERFORMANCE: RubricSpec(
        kind=RubricKind.DEV_PERFORMANCE,
        name="Development Performance Analysis",
        action="dev_performance",
        alert_category=AlertCategory.DEV_PERFORMANCE,
        default_confidence=0.7,
        persona="You are an experienced tech lead.",
    ),
    RubricKind.RELEASE_PREDICTION: RubricSpec(
        kind=RubricKind.RELEASE_PREDICTION,
        name="Release Prediction Analysis",
        action="release_prediction",
        alert_category=AlertCategory.RELEASE,
        default_confidence=0.6,
        persona="You are an experienced release manager.",
    ),
}

# Fixed execution order of a batch run
RUBRIC_ORDER: tuple[RubricKind, ...] = (
    RubricKind.SECURITY,
    RubricKind.CODE_QUALITY,
    RubricKind.TEST_COVERAGE,
    RubricKind.PERFORMANCE,
    RubricKind.PIPELINE_HEALTH,
    RubricKind.DEV_PERFORMANCE,
    RubricKind.RELEASE_PREDICTION,
)

_BY_ACTION: dict[str, RubricSpec] = {spec.action: spec for spec in RUBRICS.values()}


def get_rubric(kind: RubricKind) -> RubricSpec:
    return RUBRICS[kind]


def rubric_for_action(action: str) -> RubricSpec | None:
    """Map a request action to its rubric, or None for unknown / batch actions."""
    return _BY_ACTION.get(action)

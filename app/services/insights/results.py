"""Pydantic models for the per-rubric JSON the model returns.

The model's output is untrusted: any field may be missing, mistyped or
out of range. Every field is therefore optional and coerced leniently at
the boundary (bad values become None or empty collections) so that
validation itself never fails on a parsed JSON object. Unknown keys are
kept (``extra="allow"``) and end up in insight_data unchanged.
"""

from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from app.services.insights.types import RubricKind, Severity

# ─────────────────────────────────────────────────────────────
# Lenient coercions
# ─────────────────────────────────────────────────────────────


def _coerce_score(value: Any) -> float | None:
    """Accept a real number in [0, 1]; anything else is treated as absent."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if 0.0 <= value <= 1.0:
        return float(value)
    return None


def _coerce_count(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _coerce_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def _coerce_label(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None


def _coerce_severity(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip().upper() or None


def _coerce_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _coerce_issue_list(value: Any) -> list[Any]:
    """Keep only object entries; strings or numbers in an issue list are noise."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _coerce_optional_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


Score = Annotated[float | None, BeforeValidator(_coerce_score)]
Count = Annotated[int | None, BeforeValidator(_coerce_count)]
Number = Annotated[float | None, BeforeValidator(_coerce_number)]
Label = Annotated[str | None, BeforeValidator(_coerce_label)]
LooseList = Annotated[list[Any], BeforeValidator(_coerce_list)]
LooseDict = Annotated[dict[str, Any], BeforeValidator(_coerce_dict)]


# ─────────────────────────────────────────────────────────────
# Issues
# ─────────────────────────────────────────────────────────────


class Issue(BaseModel):
    """One alert / issue / gap / risk reported by the model.

    Rubric-specific keys (affected_files, impact, mitigation, ...) are kept
    as extras.
    """

    model_config = ConfigDict(extra="allow")

    type: Label = None
    severity: Annotated[str | None, BeforeValidator(_coerce_severity)] = None
    title: Label = None
    description: Label = None
    recommendations: LooseList = Field(default_factory=list)

    @property
    def is_critical(self) -> bool:
        return self.severity == Severity.CRITICAL.value


IssueList = Annotated[list[Issue], BeforeValidator(_coerce_issue_list)]


# ─────────────────────────────────────────────────────────────
# Rubric results
# ─────────────────────────────────────────────────────────────


class RubricResult(BaseModel):
    """Common behaviour of every rubric result.

    Subclasses name the field holding their primary score and the field
    holding their issue list.
    """

    model_config = ConfigDict(extra="allow")

    kind: ClassVar[RubricKind]
    score_field: ClassVar[str]
    issues_field: ClassVar[str]

    @property
    def issues(self) -> list[Issue]:
        return getattr(self, self.issues_field)

    @property
    def primary_score(self) -> float | None:
        return getattr(self, self.score_field)

    def critical_count(self) -> int:
        return sum(1 for issue in self.issues if issue.is_critical)

    def has_critical(self) -> bool:
        return any(issue.is_critical for issue in self.issues)

    def reported_confidence(self) -> float | None:
        """The model's self-reported confidence, if well-formed."""
        return self.primary_score

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict including any extra keys the model returned."""
        return self.model_dump(mode="json")


class SecurityResult(RubricResult):
    kind = RubricKind.SECURITY
    score_field = "security_score"
    issues_field = "critical_alerts"

    security_score: Score = None
    critical_alerts: IssueList = Field(default_factory=list)
    vulnerabilities_found: Count = None
    recommendations: LooseList = Field(default_factory=list)


class CodeQualityResult(RubricResult):
    kind = RubricKind.CODE_QUALITY
    score_field = "quality_score"
    issues_field = "critical_issues"

    quality_score: Score = None
    technical_debt_score: Score = None
    maintainability_score: Score = None
    critical_issues: IssueList = Field(default_factory=list)
    improvements: LooseList = Field(default_factory=list)


class TestCoverageResult(RubricResult):
    __test__ = False  # not a pytest test class

    kind = RubricKind.TEST_COVERAGE
    score_field = "test_coverage_estimated"
    issues_field = "critical_gaps"

    test_coverage_estimated: Score = None
    testing_maturity: Label = None
    test_to_code_ratio: Score = None
    critical_gaps: IssueList = Field(default_factory=list)
    testing_recommendations: LooseList = Field(default_factory=list)


class PerformanceResult(RubricResult):
    kind = RubricKind.PERFORMANCE
    score_field = "performance_score"
    issues_field = "performance_risks"

    performance_score: Score = None
    efficiency_rating: Label = None
    performance_risks: IssueList = Field(default_factory=list)
    recommendations: LooseList = Field(default_factory=list)


class PipelineHealthResult(RubricResult):
    kind = RubricKind.PIPELINE_HEALTH
    score_field = "pipeline_health_score"
    issues_field = "pipeline_issues"

    pipeline_health_score: Score = None
    success_rate: Score = None
    pipeline_status: Label = None
    pipeline_issues: IssueList = Field(default_factory=list)
    performance_metrics: LooseDict = Field(default_factory=dict)
    improvements: LooseList = Field(default_factory=list)


class DevPerformanceResult(RubricResult):
    kind = RubricKind.DEV_PERFORMANCE
    score_field = "development_velocity_score"
    issues_field = "performance_alerts"

    development_velocity_score: Score = None
    team_balance_score: Score = None
    activity_level: Label = None
    performance_alerts: IssueList = Field(default_factory=list)
    team_insights: LooseDict = Field(default_factory=dict)
    recommendations: LooseList = Field(default_factory=list)


class ReleaseForecast(BaseModel):
    """The ``next_release_prediction`` block."""

    model_config = ConfigDict(extra="allow")

    estimated_days: Number = None
    confidence: Score = None
    readiness_score: Score = None
    predicted_type: Label = None


class ReleasePredictionResult(RubricResult):
    kind = RubricKind.RELEASE_PREDICTION
    score_field = "next_release_prediction"
    issues_field = "release_risks"

    next_release_prediction: Annotated[
        ReleaseForecast | None, BeforeValidator(_coerce_optional_dict)
    ] = None
    release_readiness: LooseDict = Field(default_factory=dict)
    release_risks: IssueList = Field(default_factory=list)
    recommendations: LooseList = Field(default_factory=list)

    @property
    def primary_score(self) -> float | None:
        if self.next_release_prediction is None:
            return None
        return self.next_release_prediction.confidence


RESULT_MODELS: dict[RubricKind, type[RubricResult]] = {
    model.kind: model
    for model in (
        SecurityResult,
        CodeQualityResult,
        TestCoverageResult,
        PerformanceResult,
        PipelineHealthResult,
        DevPerformanceResult,
        ReleasePredictionResult,
    )
}


def parse_result(kind: RubricKind, raw: dict[str, Any]) -> RubricResult:
    """Validate a parsed model response into the rubric's result model."""
    return RESULT_MODELS[kind].model_validate(raw)

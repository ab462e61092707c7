"""Executive summary lines for stored insights.

Each rubric maps its result to one short, severity-tagged sentence using
fixed thresholds. These functions never raise: missing scores render as
0% and missing metrics as N/A.
"""

from collections.abc import Callable
from typing import Any

from app.services.insights.results import (
    CodeQualityResult,
    DevPerformanceResult,
    PerformanceResult,
    PipelineHealthResult,
    ReleasePredictionResult,
    RubricResult,
    SecurityResult,
    TestCoverageResult,
)
from app.services.insights.types import RubricContext, RubricKind

URGENT = "CRITICAL"
WARNING = "WARNING"
OK = "OK"

# Warning cutoffs
QUALITY_SCORE_CUTOFF = 60
COVERAGE_CUTOFF = 50
PERFORMANCE_SCORE_CUTOFF = 60
PIPELINE_SUCCESS_CUTOFF = 70
COMMITS_PER_DAY_CUTOFF = 1.0
OVERDUE_RELEASE_DAYS = 60

NOT_CONFIGURED_PIPELINE_SUMMARY = (
    f"{WARNING}: No CI/CD pipeline configured - quality and deployment risks"
)


def _percent(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return round(value * 100)


def _security(result: SecurityResult, context: RubricContext) -> str:
    critical = result.critical_count()
    vulnerabilities = result.vulnerabilities_found or 0
    if critical > 0:
        return (
            f"{URGENT}: {critical} critical vulnerability(ies) detected - "
            "immediate action required"
        )
    if vulnerabilities > 0:
        return f"{WARNING}: {vulnerabilities} security issue(s) identified - review recommended"
    return f"{OK}: Security analysis complete - score {_percent(result.security_score)}%"


def _code_quality(result: CodeQualityResult, context: RubricContext) -> str:
    critical = result.critical_count()
    quality = _percent(result.quality_score)
    if critical > 0:
        return f"{URGENT}: {critical} critical quality issue(s) - high technical debt"
    if quality < QUALITY_SCORE_CUTOFF:
        return f"{WARNING}: Code quality needs attention - score {quality}%"
    maintainability = (
        f"{_percent(result.maintainability_score)}%"
        if result.maintainability_score is not None
        else "N/A"
    )
    return f"{OK}: Code quality {quality}% - maintainability {maintainability}"


def _test_coverage(result: TestCoverageResult, context: RubricContext) -> str:
    critical = result.critical_count()
    coverage = _percent(result.test_coverage_estimated)
    if critical > 0:
        return f"{URGENT}: {critical} critical testing gap(s) identified - quality at risk"
    if coverage < COVERAGE_CUTOFF:
        return f"{WARNING}: Low test coverage ~{coverage}% - more tests recommended"
    maturity = result.testing_maturity or "N/A"
    return f"{OK}: Estimated test coverage ~{coverage}% - maturity {maturity}"


def _performance(result: PerformanceResult, context: RubricContext) -> str:
    critical = result.critical_count()
    score = _percent(result.performance_score)
    if critical > 0:
        return f"{URGENT}: {critical} critical performance risk(s) detected - optimization urgent"
    if score < PERFORMANCE_SCORE_CUTOFF:
        return f"{WARNING}: Performance score {score}% - improvements recommended"
    return f"{OK}: Performance {score}% - efficiency {result.efficiency_rating or 'N/A'}"


def _pipeline_health(result: PipelineHealthResult, context: RubricContext) -> str:
    critical = result.critical_count()
    score = _percent(result.pipeline_health_score)
    success = _percent(context.metrics.get("success_rate", 0.0))
    if critical > 0:
        return f"{URGENT}: {critical} critical pipeline problem(s) - success rate {success}%"
    if success < PIPELINE_SUCCESS_CUTOFF:
        return f"{WARNING}: Unstable pipeline - success rate {success}% - review needed"
    return f"{OK}: Healthy pipeline - score {score}% - success rate {success}%"


def _dev_performance(result: DevPerformanceResult, context: RubricContext) -> str:
    critical = result.critical_count()
    velocity = _percent(result.development_velocity_score)
    commits_per_day = context.metrics.get("commits_per_day") or 0.0
    if critical > 0:
        return (
            f"{URGENT}: {critical} critical productivity alert(s) - "
            f"{commits_per_day:.1f} commits/day"
        )
    if commits_per_day < COMMITS_PER_DAY_CUTOFF:
        return (
            f"{WARNING}: Low activity {commits_per_day:.1f} commits/day - "
            f"velocity {velocity}%"
        )
    return f"{OK}: Productivity {velocity}% - activity {commits_per_day:.1f} commits/day"


def _release_prediction(result: ReleasePredictionResult, context: RubricContext) -> str:
    critical = result.critical_count()
    forecast = result.next_release_prediction
    confidence = _percent(forecast.confidence if forecast else None)
    estimated_days = forecast.estimated_days if forecast and forecast.estimated_days else 0
    days_since = context.metrics.get("days_since_last_release")
    if critical > 0:
        since = days_since if days_since is not None else "N/A"
        return (
            f"{URGENT}: {critical} critical risk(s) for the next release - "
            f"{since} days since the last one"
        )
    if days_since is not None and days_since > OVERDUE_RELEASE_DAYS:
        return (
            f"{WARNING}: Release overdue by {days_since} days - "
            f"next estimated in {estimated_days:g} days"
        )
    return f"{OK}: Next release estimated in {estimated_days:g} days - confidence {confidence}%"


_SUMMARIZERS: dict[RubricKind, Callable[[Any, RubricContext], str]] = {
    RubricKind.SECURITY: _security,
    RubricKind.CODE_QUALITY: _code_quality,
    RubricKind.TEST_COVERAGE: _test_coverage,
    RubricKind.PERFORMANCE: _performance,
    RubricKind.PIPELINE_HEALTH: _pipeline_health,
    RubricKind.DEV_PERFORMANCE: _dev_performance,
    RubricKind.RELEASE_PREDICTION: _release_prediction,
}


def summarize(result: RubricResult, context: RubricContext) -> str:
    """Build the executive summary for one rubric result."""
    return _SUMMARIZERS[result.kind](result, context)

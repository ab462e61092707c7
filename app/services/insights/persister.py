"""
Insight persistence.

Turns a rubric result into one append-only insight row: confidence
(model-reported or the rubric default), alert category, executive summary
and a fixed time-to-live computed from a single ``now``.
"""

import logging
import uuid as uuid_pkg
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.domain.insight_operations import InsightOperations, insight_ops
from app.models.insight import Insight
from app.services.insights.exceptions import PersistenceError
from app.services.insights.results import RubricResult
from app.services.insights.rubrics import get_rubric
from app.services.insights.summaries import NOT_CONFIGURED_PIPELINE_SUMMARY, summarize
from app.services.insights.types import AlertCategory, RubricContext, RubricKind, Severity

logger = logging.getLogger(__name__)

# The "no CI/CD" finding is certain, not a model estimate
NOT_CONFIGURED_CONFIDENCE = 0.9


class InsightPersister:
    """Computes the derived insight fields and appends the row."""

    def __init__(self, ops: InsightOperations | None = None, ttl_days: int | None = None):
        self.ops = ops or insight_ops
        self.ttl_days = ttl_days if ttl_days is not None else settings.insight_ttl_days

    def confidence_for(self, result: RubricResult) -> float:
        reported = result.reported_confidence()
        if reported is not None:
            return reported
        return get_rubric(result.kind).default_confidence

    def alert_category_for(self, result: RubricResult) -> AlertCategory:
        if result.has_critical():
            return get_rubric(result.kind).alert_category
        return AlertCategory.GENERAL

    async def save(
        self,
        db: AsyncSession,
        project_id: uuid_pkg.UUID,
        result: RubricResult,
        context: RubricContext,
        now: datetime | None = None,
    ) -> Insight:
        """
        Append one insight row for a rubric result.

        Args:
            db: Database session
            project_id: Owning project
            result: Validated model output
            context: Shaped rubric input; its provenance counts are stored
                alongside the result
            now: Generation instant (defaults to current UTC time)

        Returns:
            The inserted Insight

        Raises:
            PersistenceError: the store rejected the insert (not retried)
        """
        insight_data: dict[str, Any] = {
            **result.to_payload(),
            "analysis_type": result.kind.value,
            **context.provenance,
        }
        return await self._insert(
            db,
            project_id=project_id,
            kind=result.kind,
            confidence_score=self.confidence_for(result),
            insight_data=insight_data,
            executive_summary=summarize(result, context),
            alert_category=self.alert_category_for(result),
            now=now,
        )

    async def save_not_configured_pipeline(
        self,
        db: AsyncSession,
        project_id: uuid_pkg.UUID,
        now: datetime | None = None,
    ) -> Insight:
        """Append the synthetic insight for an integration without CI workflows."""
        insight_data = {
            "analysis_type": RubricKind.PIPELINE_HEALTH.value,
            "pipeline_status": "NOT_CONFIGURED",
            "pipeline_issues": [
                {
                    "type": "missing_cicd",
                    "severity": Severity.HIGH.value,
                    "title": "CI/CD not configured",
                    "description": "No CI/CD workflow was found in the repository",
                    "recommendations": [
                        "Configure GitHub Actions",
                        "Add automated tests",
                        "Set up automated deployment",
                    ],
                }
            ],
            "workflows_count": 0,
        }
        return await self._insert(
            db,
            project_id=project_id,
            kind=RubricKind.PIPELINE_HEALTH,
            confidence_score=NOT_CONFIGURED_CONFIDENCE,
            insight_data=insight_data,
            executive_summary=NOT_CONFIGURED_PIPELINE_SUMMARY,
            alert_category=AlertCategory.PIPELINE,
            now=now,
        )

    async def _insert(
        self,
        db: AsyncSession,
        project_id: uuid_pkg.UUID,
        kind: RubricKind,
        confidence_score: float,
        insight_data: dict[str, Any],
        executive_summary: str,
        alert_category: AlertCategory,
        now: datetime | None,
    ) -> Insight:
        generated_at = now or datetime.now(UTC)
        obj_in = {
            "project_id": project_id,
            "insight_type": kind.value,
            "confidence_score": confidence_score,
            "insight_data": insight_data,
            "executive_summary": executive_summary,
            "alert_category": alert_category.value,
            "generated_at": generated_at,
            "expires_at": generated_at + timedelta(days=self.ttl_days),
        }

        try:
            insight = await self.ops.create(db, obj_in=obj_in)
        except SQLAlchemyError as e:
            logger.error(f"[insights] Failed to store {kind.value} insight: {e}")
            raise PersistenceError(f"Failed to store {kind.value} insight: {e}") from e

        logger.info(
            f"[insights] Stored {kind.value} insight {insight.id} "
            f"(confidence={confidence_score:.2f}, category={alert_category.value})"
        )
        return insight


insight_persister = InsightPersister()

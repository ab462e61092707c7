"""Domain operations for persisted insights."""

import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.insight import Insight


class InsightOperations:
    """
    Operations for AI-generated insights.

    Note: There is deliberately no update path. Each analysis run appends a
    row, and readers pick the newest non-expired one.
    """

    def __init__(self) -> None:
        self.model = Insight

    async def create(self, db: AsyncSession, obj_in: dict[str, Any]) -> Insight:
        """Append a new insight row."""
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def get_active_by_project(
        self,
        db: AsyncSession,
        project_id: uuid_pkg.UUID,
        insight_type: str | None = None,
        now: datetime | None = None,
        limit: int = 50,
    ) -> list[Insight]:
        """
        Get non-expired insights for a project, newest first.

        Args:
            db: Database session
            project_id: Project UUID
            insight_type: Restrict to one rubric, if given
            now: Reference instant for expiry (defaults to current UTC time)
            limit: Maximum number of rows

        Returns:
            Insights whose expires_at is still in the future
        """
        now = now or datetime.now(UTC)
        statement = select(Insight).where(
            Insight.project_id == project_id,  # type: ignore[arg-type]
            Insight.expires_at > now,  # type: ignore[arg-type]
        )
        if insight_type is not None:
            statement = statement.where(
                Insight.insight_type == insight_type  # type: ignore[arg-type]
            )
        statement = statement.order_by(
            Insight.generated_at.desc()  # type: ignore[attr-defined]
        ).limit(limit)
        result = await db.execute(statement)
        return list(result.scalars().all())


insight_ops = InsightOperations()

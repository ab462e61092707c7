"""Insight model for AI-generated repository analyses."""

import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Column, DateTime, Index, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field

from app.models.base import UUIDMixin


class Insight(UUIDMixin, table=True):
    """
    One persisted result of running a rubric once.

    Rows are append-only: each analysis run inserts a new row and nothing
    updates it afterwards. Staleness is handled purely by ``expires_at``;
    readers filter on it and there is no reaper.
    """

    __tablename__ = "jira_ai_insights"
    __table_args__ = (
        Index("ix_jira_ai_insights_project_type", "project_id", "insight_type"),
        Index("ix_jira_ai_insights_expires_at", "expires_at"),
    )

    # Owning project; not validated by the insights pipeline
    project_id: uuid_pkg.UUID | None = Field(default=None, index=True)

    insight_type: str = Field(
        max_length=50,
        nullable=False,
        description="Rubric: security, code_quality, test_coverage, ...",
    )

    confidence_score: float = Field(
        nullable=False,
        description="Model-reported score in [0, 1], or the rubric default",
    )

    insight_data: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONB, nullable=False, server_default=text("'{}'::jsonb")),
    )

    executive_summary: str = Field(
        nullable=False,
        description="Short severity-tagged summary derived from insight_data",
    )

    alert_category: str = Field(
        max_length=30,
        nullable=False,
        default="GENERAL",
    )

    generated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": text("now()")},
    )

    expires_at: datetime = Field(  # type: ignore[call-overload]
        nullable=False,
        sa_type=DateTime(timezone=True),
        description="generated_at + insight TTL (7 days)",
    )

    created_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": text("now()")},
    )

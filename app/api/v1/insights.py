"""GitHub AI insights API.

POST runs one rubric (or all of them) for an integration and stores the
resulting insights; GET reads back the active ones for a project.
"""

import json
import logging
import uuid as uuid_pkg
from typing import Any

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.domain import insight_ops
from app.models import Insight
from app.services.insights import RubricKind, insight_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/github-ai-insights", tags=["insights"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@router.options("")
async def insights_preflight() -> Response:
    """CORS preflight: empty 200."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("")
async def generate_insights(request: Request) -> JSONResponse:
    """
    Generate GitHub insights.

    Body: ``{"action": ..., "integration_id": ..., "project_id": ...}`` where
    action is one rubric action or ``generate_github_insights`` for all.
    Single rubric runs are bounded at 30s and batches at 60s; on timeout the
    response is sent but the work keeps running and may still store insights.
    """
    try:
        payload: Any = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("[insights-api] Request body is not valid JSON")
        payload = None

    outcome = await insight_dispatcher.dispatch(payload)
    return JSONResponse(
        content=outcome.body,
        status_code=outcome.status_code,
        headers=CORS_HEADERS,
    )


def _serialize_insight(insight: Insight) -> dict[str, Any]:
    return {
        "id": str(insight.id),
        "project_id": str(insight.project_id) if insight.project_id else None,
        "insight_type": insight.insight_type,
        "confidence_score": insight.confidence_score,
        "insight_data": insight.insight_data,
        "executive_summary": insight.executive_summary,
        "alert_category": insight.alert_category,
        "generated_at": insight.generated_at.isoformat(),
        "expires_at": insight.expires_at.isoformat(),
    }


@router.get("/projects/{project_id}")
async def list_active_insights(
    project_id: uuid_pkg.UUID,
    insight_type: RubricKind | None = Query(None, description="Restrict to one rubric"),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Get non-expired insights for a project, newest first."""
    insights = await insight_ops.get_active_by_project(
        db,
        project_id,
        insight_type=insight_type.value if insight_type else None,
    )
    return JSONResponse(
        content={"insights": [_serialize_insight(insight) for insight in insights]},
        headers=CORS_HEADERS,
    )

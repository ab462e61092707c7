"""
Single-rubric insight chain.

aggregate -> build prompt -> model call -> summarize -> persist.
A run either fully succeeds (one insight row written) or raises.
"""

import logging
import time
import uuid as uuid_pkg
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import async_session_maker
from app.services.insights.aggregator import ActivityAggregator, activity_aggregator
from app.services.insights.exceptions import DataUnavailableError, PersistenceError
from app.services.insights.model_client import ModelClient, model_client
from app.services.insights.persister import InsightPersister, insight_persister
from app.services.insights.prompts import build_prompt, system_instruction
from app.services.insights.results import parse_result
from app.services.insights.rubrics import get_rubric
from app.services.insights.types import RubricKind

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class InsightRunner:
    """Runs one rubric end to end for an integration.

    Reads and the insert use separate sessions so no pooled connection is
    held while waiting on the model.
    """

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        aggregator: ActivityAggregator | None = None,
        client: ModelClient | None = None,
        persister: InsightPersister | None = None,
    ):
        self.session_factory = session_factory or async_session_maker
        self.aggregator = aggregator or activity_aggregator
        self.client = client or model_client
        self.persister = persister or insight_persister

    async def run(
        self,
        kind: RubricKind,
        integration_id: uuid_pkg.UUID,
        project_id: uuid_pkg.UUID,
    ) -> dict[str, Any]:
        """
        Run one rubric and persist its insight.

        Returns:
            The rubric's analysis object (what the caller echoes back)

        Raises:
            DataUnavailableError, ModelTimeoutError, ModelHttpError,
            ResponseParseError, PersistenceError
        """
        spec = get_rubric(kind)
        start = time.monotonic()
        now = datetime.now(UTC)
        logger.info(f"[insights] Starting {spec.name} for integration {integration_id}")

        async with self.session_factory() as db:
            snapshot = await self.aggregator.collect(db, integration_id, kind, now=now)

        if kind == RubricKind.PIPELINE_HEALTH and not snapshot.workflows:
            logger.info("[insights] No workflows found, storing NOT_CONFIGURED pipeline insight")
            async with self.session_factory() as db:
                insight = await self.persister.save_not_configured_pipeline(db, project_id)
                await self._commit(db, kind)
            return dict(insight.insight_data)

        if spec.requires_data and snapshot.is_empty():
            logger.warning(f"[insights] No data available for {spec.name}")
            raise DataUnavailableError(f"No GitHub data available for {spec.name.lower()}")

        context = self.aggregator.shape(kind, snapshot, now=now)
        prompt = build_prompt(kind, context)
        raw = await self.client.complete(system_instruction(kind), prompt)
        result = parse_result(kind, raw)

        async with self.session_factory() as db:
            # generated_at and expires_at are stamped at insert time, after the model call
            await self.persister.save(db, project_id, result, context)
            await self._commit(db, kind)

        duration_ms = round((time.monotonic() - start) * 1000)
        logger.info(f"[insights] {spec.name} completed in {duration_ms}ms")
        return result.to_payload()

    async def _commit(self, db: AsyncSession, kind: RubricKind) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"[insights] Commit of {kind.value} insight failed: {e}")
            raise PersistenceError(f"Failed to store {kind.value} insight: {e}") from e


insight_runner = InsightRunner()

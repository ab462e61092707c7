from app.domain.activity_operations import activity_ops
from app.domain.insight_operations import insight_ops

__all__ = [
    "activity_ops",
    "insight_ops",
]

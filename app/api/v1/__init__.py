from app.api.v1 import insights

__all__ = [
    "insights",
]

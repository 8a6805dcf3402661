"""
Pydantic schemas for API request/response models.
"""

from farewatch.api.schemas.alert import AlertCreate, AlertResponse
from farewatch.api.schemas.notification import NotificationTestRequest
from farewatch.api.schemas.route import CompareRoutesRequest
from farewatch.api.schemas.task import PriceHistoryRecord, TaskCreate, TaskResponse, TaskUpdate

__all__ = [
    "AlertCreate",
    "AlertResponse",
    "CompareRoutesRequest",
    "NotificationTestRequest",
    "PriceHistoryRecord",
    "TaskCreate",
    "TaskResponse",
    "TaskUpdate",
]

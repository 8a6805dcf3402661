"""
Pydantic schemas for scheduled task endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from farewatch.providers.schemas import CabinClass
from farewatch.utils.cron import describe_cron_schedule, is_valid_cron
from farewatch.utils.date_utils import is_valid_date_expression


def _iata(value: str) -> str:
    value = (value or "").strip().upper()
    if len(value) != 3 or not value.isalpha():
        raise ValueError("must be a 3-letter IATA code")
    return value


def _date_expression(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not is_valid_date_expression(value):
        raise ValueError("must be YYYY-MM-DD or a relative offset like +30d, +2w, +1m")
    return value


class TaskCreate(BaseModel):
    """Request body for creating a scheduled task."""

    name: str = Field(min_length=1, max_length=200)
    origin: str = Field(description="Origin airport IATA code (e.g., JFK)")
    destination: str = Field(description="Destination airport IATA code (e.g., NRT)")
    departure_date: str = Field(description="YYYY-MM-DD or +<n>d|w|m")
    return_date: Optional[str] = Field(None, description="YYYY-MM-DD or +<n>d|w|m")
    adults: int = Field(1, ge=1, le=9)
    cabin_class: CabinClass = CabinClass.ECONOMY
    cron_expression: str = Field("0 9 * * *", description="Five-field cron expression")
    price_target: Optional[float] = Field(None, gt=0)
    active: bool = True

    @field_validator("origin", "destination")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return _iata(v)

    @field_validator("departure_date", "return_date")
    @classmethod
    def validate_date_expression(cls, v: Optional[str]) -> Optional[str]:
        return _date_expression(v)

    @field_validator("cron_expression")
    @classmethod
    def validate_cron(cls, v: str) -> str:
        v = v.strip()
        if not is_valid_cron(v):
            raise ValueError("invalid cron expression")
        return v

    @model_validator(mode="after")
    def validate_route(self) -> "TaskCreate":
        if self.origin == self.destination:
            raise ValueError("origin and destination must differ")
        return self


class TaskUpdate(BaseModel):
    """Partial update; typically used to pause or resume a task."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    active: Optional[bool] = None
    price_target: Optional[float] = Field(None, gt=0)
    cron_expression: Optional[str] = None

    @field_validator("cron_expression")
    @classmethod
    def validate_cron(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_cron(v.strip()):
            raise ValueError("invalid cron expression")
        return v.strip() if v else v


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    origin: str
    destination: str
    departure_date: str
    return_date: Optional[str] = None
    adults: int
    cabin_class: str
    cron_expression: str
    price_target: Optional[float] = None
    active: bool
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    last_price: Optional[float] = None
    lowest_price: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def schedule(self) -> str:
        return describe_cron_schedule(self.cron_expression)


class PriceHistoryRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    task_id: int
    price: float
    currency: str
    airlines: List[str]
    stops: int
    duration: Optional[str] = None
    recorded_at: datetime

"""
Pydantic schemas for price alert endpoints.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AlertCreate(BaseModel):
    """
    Request body for creating a price alert.

    An alert expires on its departure date. Posting again for the same
    active route and departure date updates the existing alert.
    """

    origin: str = Field(min_length=3, max_length=3)
    destination: str = Field(min_length=3, max_length=3)
    departure_date: date
    return_date: Optional[date] = None
    target_price: float = Field(gt=0)
    current_price: Optional[float] = Field(None, gt=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    flight_offer_id: Optional[str] = None
    airlines: List[str] = Field(default_factory=list)

    @field_validator("origin", "destination", "currency")
    @classmethod
    def uppercase(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def validate_dates(self) -> "AlertCreate":
        if self.origin == self.destination:
            raise ValueError("origin and destination must differ")
        if self.return_date is not None and self.return_date <= self.departure_date:
            raise ValueError("return_date must be after departure_date")
        return self


class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    origin: str
    destination: str
    departure_date: date
    return_date: Optional[date] = None
    target_price: float
    current_price: Optional[float] = None
    currency: str
    flight_offer_id: Optional[str] = None
    airlines: List[str]
    triggered: bool
    active: bool
    notified_at: Optional[datetime] = None
    expires_at: datetime
    created_at: datetime

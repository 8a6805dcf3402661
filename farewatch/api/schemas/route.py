"""
Pydantic schemas for the route comparison endpoint.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from farewatch.providers.schemas import CabinClass
from farewatch.utils.date_utils import parse_date


class CompareRoutesRequest(BaseModel):
    origin: str = Field(description="Origin airport IATA code (e.g., JFK)")
    destination: str = Field(description="Destination airport IATA code (e.g., BKK)")
    departure_date: date = Field(description="YYYY-MM-DD")
    return_date: Optional[date] = Field(None, description="YYYY-MM-DD")
    adults: int = Field(1, ge=1, le=9)
    cabin_class: CabinClass = CabinClass.ECONOMY
    max_hubs: int = Field(3, ge=1, le=5)

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def validate_code(cls, v):
        if not isinstance(v, str) or len(v.strip()) != 3 or not v.strip().isalpha():
            raise ValueError("must be a 3-letter IATA code")
        return v.strip().upper()

    @field_validator("departure_date", "return_date", mode="before")
    @classmethod
    def validate_date_format(cls, v):
        if v is None or isinstance(v, date):
            return v
        parsed = parse_date(v) if isinstance(v, str) else None
        if parsed is None:
            raise ValueError("date must be YYYY-MM-DD")
        return parsed

    @model_validator(mode="after")
    def validate_route(self) -> "CompareRoutesRequest":
        if self.origin == self.destination:
            raise ValueError("origin and destination must differ")
        return self

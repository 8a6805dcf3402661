"""
Provider-neutral flight search types.

Providers convert their payloads into these dataclasses; the scheduler,
route optimizer and alert evaluator only ever see these.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from farewatch.providers.exceptions import FlightSearchErrorCode, SearchValidationError

IATA_CODE_LENGTH = 3
MAX_PASSENGERS = 9


class CabinClass(str, Enum):
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"


def is_iata_code(code: Optional[str]) -> bool:
    """True for exactly three uppercase ASCII letters."""
    return (
        isinstance(code, str)
        and len(code) == IATA_CODE_LENGTH
        and code.isascii()
        and code.isalpha()
        and code.isupper()
    )


@dataclass
class FlightSegment:
    origin: str
    destination: str
    departure_at: datetime
    arrival_at: datetime
    carrier: str
    flight_number: str
    aircraft: str = ""
    duration: str = ""
    cabin: Optional[str] = None


@dataclass
class FlightLeg:
    """One directional group of segments (outbound or return)."""

    origin: str
    destination: str
    departure_at: datetime
    arrival_at: datetime
    duration: str
    stops: int
    segments: List[FlightSegment] = field(default_factory=list)


@dataclass
class NormalizedOffer:
    id: str
    price: float
    currency: str
    legs: List[FlightLeg]
    airlines: List[str]
    total_duration: str
    bookable_seats: int = 0
    last_ticketing_date: Optional[str] = None
    source: str = "amadeus"

    @property
    def total_stops(self) -> int:
        return sum(leg.stops for leg in self.legs)

    @property
    def departure_at(self) -> datetime:
        return self.legs[0].departure_at

    @property
    def arrival_at(self) -> datetime:
        """Arrival of the first leg, i.e. at the outbound destination."""
        return self.legs[0].arrival_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "price": self.price,
            "currency": self.currency,
            "airlines": list(self.airlines),
            "total_duration": self.total_duration,
            "stops": self.total_stops,
            "bookable_seats": self.bookable_seats,
            "last_ticketing_date": self.last_ticketing_date,
            "legs": [
                {
                    "origin": leg.origin,
                    "destination": leg.destination,
                    "departure_at": leg.departure_at.isoformat(),
                    "arrival_at": leg.arrival_at.isoformat(),
                    "duration": leg.duration,
                    "stops": leg.stops,
                    "segments": [
                        {
                            "origin": s.origin,
                            "destination": s.destination,
                            "departure_at": s.departure_at.isoformat(),
                            "arrival_at": s.arrival_at.isoformat(),
                            "carrier": s.carrier,
                            "flight_number": s.flight_number,
                            "aircraft": s.aircraft,
                            "duration": s.duration,
                        }
                        for s in leg.segments
                    ],
                }
                for leg in self.legs
            ],
        }


@dataclass
class SearchResult:
    offers: List[NormalizedOffer] = field(default_factory=list)
    dictionaries: Dict[str, Any] = field(default_factory=dict)

    @property
    def cheapest(self) -> Optional[NormalizedOffer]:
        if not self.offers:
            return None
        return min(self.offers, key=lambda offer: offer.price)


@dataclass
class FlightSearchRequest:
    origin: str
    destination: str
    departure_date: date
    return_date: Optional[date] = None
    adults: int = 1
    children: int = 0
    infants: int = 0
    cabin_class: CabinClass = CabinClass.ECONOMY
    non_stop: bool = False
    max_price: Optional[int] = None
    max_results: int = 10
    currency: Optional[str] = None

    def validate(self, today: date) -> None:
        """
        Reject malformed requests before any network call.

        Raises:
            SearchValidationError: with the code of the first failed check
        """
        if not is_iata_code(self.origin):
            raise SearchValidationError(
                f"Invalid origin airport code: {self.origin}",
                FlightSearchErrorCode.INVALID_ORIGIN,
                field="origin",
            )
        if not is_iata_code(self.destination):
            raise SearchValidationError(
                f"Invalid destination airport code: {self.destination}",
                FlightSearchErrorCode.INVALID_DESTINATION,
                field="destination",
            )
        if self.origin == self.destination:
            raise SearchValidationError(
                "Origin and destination cannot be the same",
                FlightSearchErrorCode.SAME_ORIGIN_DESTINATION,
                field="destination",
            )
        if not isinstance(self.departure_date, date):
            raise SearchValidationError(
                f"Invalid departure date: {self.departure_date}",
                FlightSearchErrorCode.INVALID_DEPARTURE_DATE,
                field="departure_date",
            )
        if self.departure_date < today:
            raise SearchValidationError(
                "Departure date cannot be in the past",
                FlightSearchErrorCode.PAST_DEPARTURE_DATE,
                field="departure_date",
            )
        if self.return_date is not None:
            if not isinstance(self.return_date, date):
                raise SearchValidationError(
                    f"Invalid return date: {self.return_date}",
                    FlightSearchErrorCode.INVALID_RETURN_DATE,
                    field="return_date",
                )
            if self.return_date <= self.departure_date:
                raise SearchValidationError(
                    "Return date must be after departure date",
                    FlightSearchErrorCode.RETURN_BEFORE_DEPARTURE,
                    field="return_date",
                )
        if self.adults + self.children + self.infants > MAX_PASSENGERS:
            raise SearchValidationError(
                f"Maximum {MAX_PASSENGERS} passengers per booking",
                FlightSearchErrorCode.TOO_MANY_PASSENGERS,
                field="adults",
            )
        if self.adults < 1:
            raise SearchValidationError(
                "At least 1 adult is required", FlightSearchErrorCode.NO_ADULTS, field="adults"
            )
        if self.infants > self.adults:
            raise SearchValidationError(
                "Number of infants cannot exceed number of adults",
                FlightSearchErrorCode.TOO_MANY_INFANTS,
                field="infants",
            )

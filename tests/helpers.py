"""
Shared test doubles and builders: the pinned test time, a scripted flight
search gateway and a flight offer builder.
"""

from datetime import datetime, timedelta

from farewatch.providers.base import FlightSearchGateway
from farewatch.providers.schemas import (
    FlightLeg,
    FlightSegment,
    NormalizedOffer,
    SearchResult,
)
from farewatch.utils.date_utils import format_duration

NOW = datetime(2025, 1, 10, 12, 0)


class FakeGateway(FlightSearchGateway):
    """
    Gateway returning scripted outcomes per (origin, destination).

    An outcome is a SearchResult, an exception to raise, or a list of
    either consumed one search at a time. Unscripted routes find nothing.
    """

    PROVIDER_NAME = "fake"

    def __init__(self, clock, results=None, configured=True):
        super().__init__(timeout=5, clock=clock)
        self.results = dict(results or {})
        self.configured = configured
        self.requests = []

    def is_configured(self) -> bool:
        return self.configured

    def script(self, origin, destination, *outcomes):
        self.results[(origin, destination)] = list(outcomes) if len(outcomes) > 1 else outcomes[0]

    async def _perform_search(self, request):
        self.requests.append(request)
        outcome = self.results.get((request.origin, request.destination), SearchResult())
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if outcome else SearchResult()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def searched_routes(self):
        return [(r.origin, r.destination) for r in self.requests]


def build_offer(
    price,
    origin="LHR",
    destination="BKK",
    departure=datetime(2025, 6, 1, 10, 0),
    duration_hours=11,
    airlines=("BA",),
    currency="USD",
    offer_id="1",
):
    arrival = departure + timedelta(hours=duration_hours)
    duration = f"PT{duration_hours}H"
    segment = FlightSegment(
        origin=origin,
        destination=destination,
        departure_at=departure,
        arrival_at=arrival,
        carrier=airlines[0],
        flight_number=f"{airlines[0]}100",
        duration=format_duration(duration),
    )
    leg = FlightLeg(
        origin=origin,
        destination=destination,
        departure_at=departure,
        arrival_at=arrival,
        duration=duration,
        stops=0,
        segments=[segment],
    )
    return NormalizedOffer(
        id=offer_id,
        price=price,
        currency=currency,
        legs=[leg],
        airlines=list(airlines),
        total_duration=format_duration(duration),
    )

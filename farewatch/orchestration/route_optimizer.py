"""
Route optimizer comparing direct flights with two-leg stopover itineraries.

For an origin/destination pair it searches the direct route and, for each
suitable hub, an origin->hub leg followed by a hub->destination leg that
departs after the hub's minimum connection time. Every route is scored and
the best one is selected: the direct route unless there is none or the top
stopover saves at least 10%.

Example:
    >>> optimizer = RouteOptimizer(gateway)
    >>> comparison = await optimizer.compare_routes("LHR", "BKK", date(2025, 6, 1))
    >>> print(comparison.best_route.total_price)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from farewatch.config import settings
from farewatch.monitoring.metrics import track_route_comparison
from farewatch.orchestration.hubs import StopoverHub, find_suitable_hubs, minimum_layover_hours
from farewatch.orchestration.scoring import DEFAULT_SCORING_POLICY, RouteScoringPolicy, score_route
from farewatch.providers.base import FlightSearchGateway
from farewatch.providers.exceptions import FlightSearchError, GatewayConfigurationError
from farewatch.providers.schemas import CabinClass, FlightSearchRequest, NormalizedOffer, SearchResult
from farewatch.utils.clock import Clock, SystemClock
from farewatch.utils.date_utils import hours_between, parse_iso_duration
from farewatch.utils.price_utils import round_half_up

logger = logging.getLogger(__name__)

DIRECT_SEARCH_MAX_RESULTS = 10
LEG_SEARCH_MAX_RESULTS = 5
DIRECT_ALTERNATIVES = 4
LEG_ALTERNATIVES = 2
# Stopover savings (percent) needed to beat an available direct route
STOPOVER_PREFERENCE_THRESHOLD = 10

SHORT_LAYOVER_WARNING = "Short layover - connection may be tight"
LONG_LAYOVER_WARNING = "Long layover - may require overnight stay"
SHORT_LAYOVER_HOURS = 2
LONG_LAYOVER_HOURS = 24


@dataclass
class RouteSegment:
    origin: str
    destination: str
    departure_date: date
    best_offer: Optional[NormalizedOffer]
    alternatives: List[NormalizedOffer] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin,
            "destination": self.destination,
            "departure_date": self.departure_date.isoformat(),
            "best_offer": self.best_offer.to_dict() if self.best_offer else None,
            "alternatives": [offer.to_dict() for offer in self.alternatives],
        }


@dataclass
class MultiCityRoute:
    id: str
    type: str  # "direct" or "stopover"
    segments: List[RouteSegment]
    total_price: float
    currency: str
    total_duration: str
    score: int
    hub: Optional[StopoverHub] = None
    savings_vs_direct: Optional[float] = None
    savings_percent: Optional[int] = None
    layover_duration: Optional[str] = None
    layover_hours: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        hub = None
        if self.hub:
            hub = {
                "code": self.hub.code,
                "name": self.hub.name,
                "city": self.hub.city,
                "country": self.hub.country,
                "region": self.hub.region,
                "airlines": list(self.hub.airlines),
            }
        return {
            "id": self.id,
            "type": self.type,
            "hub": hub,
            "segments": [segment.to_dict() for segment in self.segments],
            "total_price": self.total_price,
            "currency": self.currency,
            "savings_vs_direct": self.savings_vs_direct,
            "savings_percent": self.savings_percent,
            "total_duration": self.total_duration,
            "layover_duration": self.layover_duration,
            "score": self.score,
            "warnings": list(self.warnings),
        }


@dataclass
class SearchStats:
    hubs_searched: int = 0
    total_searches: int = 0
    search_time_ms: int = 0


@dataclass
class RouteComparison:
    direct_route: Optional[MultiCityRoute]
    stopover_routes: List[MultiCityRoute]
    best_route: Optional[MultiCityRoute]
    stats: SearchStats

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direct_route": self.direct_route.to_dict() if self.direct_route else None,
            "stopover_routes": [route.to_dict() for route in self.stopover_routes],
            "best_route": self.best_route.to_dict() if self.best_route else None,
            "stats": {
                "hubs_searched": self.stats.hubs_searched,
                "total_searches": self.stats.total_searches,
                "search_time_ms": self.stats.search_time_ms,
            },
        }


def _format_hours(hours: float) -> str:
    return f"{hours:g}h"


def offer_duration_hours(offer: NormalizedOffer) -> Optional[float]:
    """Outbound duration in hours, or None when the provider gave none."""
    if not offer.legs:
        return None
    delta = parse_iso_duration(offer.legs[0].duration)
    if delta is None:
        return None
    return delta.total_seconds() / 3600


def select_best_route(
    direct_route: Optional[MultiCityRoute], stopover_routes: List[MultiCityRoute]
) -> Optional[MultiCityRoute]:
    """
    Direct wins by default; the top-scored stopover replaces it when there is
    no direct route or it saves at least the preference threshold.
    """
    if not stopover_routes:
        return direct_route
    top = stopover_routes[0]
    if direct_route is None:
        return top
    if top.savings_percent is not None and top.savings_percent >= STOPOVER_PREFERENCE_THRESHOLD:
        return top
    return direct_route


class RouteOptimizer:
    """
    Compares direct and stopover routings through one flight search gateway.

    Hubs are searched sequentially by default. ``hub_concurrency`` above 1
    searches that many hubs at once; the two legs of a hub always run in
    order because leg 2's date depends on leg 1's arrival.
    """

    def __init__(
        self,
        gateway: FlightSearchGateway,
        clock: Optional[Clock] = None,
        policy: RouteScoringPolicy = DEFAULT_SCORING_POLICY,
        hub_concurrency: Optional[int] = None,
    ):
        self.gateway = gateway
        self.clock = clock or SystemClock()
        self.policy = policy
        self.hub_concurrency = max(1, hub_concurrency or settings.hub_search_concurrency)

    async def compare_routes(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        return_date: Optional[date] = None,
        adults: int = 1,
        cabin_class: CabinClass = CabinClass.ECONOMY,
        max_hubs: Optional[int] = None,
    ) -> RouteComparison:
        """
        Search the direct route and up to ``max_hubs`` stopover routes.

        Raises:
            SearchValidationError: The request is malformed (nothing was searched)
            GatewayConfigurationError: The gateway cannot be used at all
        """
        started = time.monotonic()
        stats = SearchStats()
        origin = origin.upper()
        destination = destination.upper()
        max_hubs = max_hubs if max_hubs is not None else settings.default_max_hubs

        direct_request = FlightSearchRequest(
            origin=origin,
            destination=destination,
            departure_date=departure_date,
            return_date=return_date,
            adults=adults,
            cabin_class=cabin_class,
            max_results=DIRECT_SEARCH_MAX_RESULTS,
        )
        direct_request.validate(self.clock.today())

        hubs = find_suitable_hubs(origin, destination, max_hubs)
        logger.info(
            f"Comparing routes {origin}->{destination} on {departure_date}: "
            f"{len(hubs)} candidate hubs ({', '.join(h.code for h in hubs) or 'none'})"
        )

        direct_route = await self._search_direct(direct_request, stats)

        semaphore = asyncio.Semaphore(self.hub_concurrency)

        async def guarded(hub: StopoverHub) -> Optional[MultiCityRoute]:
            async with semaphore:
                return await self._search_hub(
                    hub, origin, destination, departure_date, adults, cabin_class,
                    direct_route, stats,
                )

        outcomes = await asyncio.gather(*(guarded(hub) for hub in hubs), return_exceptions=True)

        stopover_routes: List[MultiCityRoute] = []
        for hub, outcome in zip(hubs, outcomes):
            if isinstance(outcome, GatewayConfigurationError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.error(f"Hub search failed for {hub.code}: {outcome}")
                continue
            if outcome is not None:
                stopover_routes.append(outcome)

        stopover_routes.sort(key=lambda route: route.score, reverse=True)
        best_route = select_best_route(direct_route, stopover_routes)

        elapsed = time.monotonic() - started
        stats.search_time_ms = int(elapsed * 1000)
        track_route_comparison(elapsed)

        logger.info(
            f"Route comparison {origin}->{destination} finished: "
            f"direct={'yes' if direct_route else 'no'}, {len(stopover_routes)} stopover routes, "
            f"best={best_route.id if best_route else None}, "
            f"{stats.total_searches} searches in {stats.search_time_ms}ms"
        )
        return RouteComparison(direct_route, stopover_routes, best_route, stats)

    async def _search(self, request: FlightSearchRequest, stats: SearchStats) -> SearchResult:
        stats.total_searches += 1
        return await self.gateway.search(request)

    async def _search_direct(
        self, request: FlightSearchRequest, stats: SearchStats
    ) -> Optional[MultiCityRoute]:
        try:
            result = await self._search(request, stats)
        except GatewayConfigurationError:
            raise
        except FlightSearchError as e:
            logger.warning(f"Direct search {request.origin}->{request.destination} failed: {e}")
            return None
        except Exception as e:
            logger.error(
                f"Unexpected error in direct search {request.origin}->{request.destination}: {e}",
                exc_info=True,
            )
            return None

        if not result.offers:
            return None

        best = result.offers[0]
        return MultiCityRoute(
            id=f"direct-{request.origin}-{request.destination}",
            type="direct",
            segments=[
                RouteSegment(
                    origin=request.origin,
                    destination=request.destination,
                    departure_date=request.departure_date,
                    best_offer=best,
                    alternatives=result.offers[1 : 1 + DIRECT_ALTERNATIVES],
                )
            ],
            total_price=best.price,
            currency=best.currency,
            total_duration=best.total_duration,
            score=score_route(best.price, offer_duration_hours(best), None, self.policy),
        )

    async def _search_hub(
        self,
        hub: StopoverHub,
        origin: str,
        destination: str,
        departure_date: date,
        adults: int,
        cabin_class: CabinClass,
        direct_route: Optional[MultiCityRoute],
        stats: SearchStats,
    ) -> Optional[MultiCityRoute]:
        stats.hubs_searched += 1

        leg1_result = await self._search(
            FlightSearchRequest(
                origin=origin,
                destination=hub.code,
                departure_date=departure_date,
                adults=adults,
                cabin_class=cabin_class,
                max_results=LEG_SEARCH_MAX_RESULTS,
            ),
            stats,
        )
        if not leg1_result.offers:
            logger.info(f"No flights {origin}->{hub.code}, skipping hub")
            return None

        leg1_best = leg1_result.offers[0]
        leg1_arrival = leg1_best.legs[0].arrival_at
        earliest_connection = leg1_arrival + timedelta(hours=minimum_layover_hours(hub.code))
        leg2_date = earliest_connection.date()

        leg2_result = await self._search(
            FlightSearchRequest(
                origin=hub.code,
                destination=destination,
                departure_date=leg2_date,
                adults=adults,
                cabin_class=cabin_class,
                max_results=LEG_SEARCH_MAX_RESULTS,
            ),
            stats,
        )
        if not leg2_result.offers:
            logger.info(f"No flights {hub.code}->{destination} on {leg2_date}, skipping hub")
            return None

        leg2_best = leg2_result.offers[0]
        total_price = leg1_best.price + leg2_best.price

        layover_hours = round_half_up(hours_between(leg1_arrival, leg2_best.legs[0].departure_at), 1)
        total_hours = round_half_up(
            hours_between(leg1_best.legs[0].departure_at, leg2_best.legs[0].arrival_at), 1
        )

        warnings = []
        if layover_hours < SHORT_LAYOVER_HOURS:
            warnings.append(SHORT_LAYOVER_WARNING)
        elif layover_hours > LONG_LAYOVER_HOURS:
            warnings.append(LONG_LAYOVER_WARNING)

        savings = None
        savings_percent = None
        if direct_route is not None:
            difference = direct_route.total_price - total_price
            if difference > 0:
                savings = round_half_up(difference, 2)
                percent = int(round_half_up(difference / direct_route.total_price * 100))
                savings_percent = percent if percent > 0 else None

        return MultiCityRoute(
            id=f"stopover-{origin}-{hub.code}-{destination}",
            type="stopover",
            hub=hub,
            segments=[
                RouteSegment(
                    origin=origin,
                    destination=hub.code,
                    departure_date=departure_date,
                    best_offer=leg1_best,
                    alternatives=leg1_result.offers[1 : 1 + LEG_ALTERNATIVES],
                ),
                RouteSegment(
                    origin=hub.code,
                    destination=destination,
                    departure_date=leg2_date,
                    best_offer=leg2_best,
                    alternatives=leg2_result.offers[1 : 1 + LEG_ALTERNATIVES],
                ),
            ],
            total_price=total_price,
            currency=leg1_best.currency,
            savings_vs_direct=savings,
            savings_percent=savings_percent,
            total_duration=_format_hours(total_hours),
            layover_duration=f"{_format_hours(layover_hours)} in {hub.city}",
            layover_hours=layover_hours,
            score=score_route(total_price, total_hours, layover_hours, self.policy),
            warnings=warnings,
        )

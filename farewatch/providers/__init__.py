"""
Flight search providers.

``create_gateway()`` builds the gateway configured for this deployment.
"""

from typing import Optional

from farewatch.providers.base import FlightSearchGateway
from farewatch.providers.exceptions import (
    FlightSearchError,
    FlightSearchErrorCode,
    GatewayConfigurationError,
    SearchValidationError,
)
from farewatch.providers.schemas import (
    CabinClass,
    FlightLeg,
    FlightSearchRequest,
    FlightSegment,
    NormalizedOffer,
    SearchResult,
)
from farewatch.utils.clock import Clock


def create_gateway(clock: Optional[Clock] = None) -> FlightSearchGateway:
    """Build the Amadeus gateway from settings."""
    from farewatch.providers.amadeus_client import AmadeusGateway

    return AmadeusGateway(clock=clock)


__all__ = [
    "CabinClass",
    "FlightLeg",
    "FlightSearchError",
    "FlightSearchErrorCode",
    "FlightSearchGateway",
    "FlightSearchRequest",
    "FlightSegment",
    "GatewayConfigurationError",
    "NormalizedOffer",
    "SearchResult",
    "SearchValidationError",
    "create_gateway",
]

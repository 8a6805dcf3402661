"""
Route comparison endpoint: direct flight versus stopover itineraries.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from farewatch.api.dependencies import get_route_optimizer
from farewatch.api.schemas.route import CompareRoutesRequest
from farewatch.orchestration.hubs import find_suitable_hubs, region_of
from farewatch.orchestration.route_optimizer import RouteOptimizer
from farewatch.providers.exceptions import GatewayConfigurationError, SearchValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_CONFIGURED_BODY = {
    "success": False,
    "error": "Flight search service not configured",
    "error_code": "NOT_CONFIGURED",
}


@router.post("/flights/compare-routes")
async def compare_routes(
    payload: CompareRoutesRequest,
    optimizer: RouteOptimizer = Depends(get_route_optimizer),
):
    """Search the direct route and up to ``max_hubs`` stopover routes."""
    if not optimizer.gateway.is_configured():
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=NOT_CONFIGURED_BODY)

    try:
        comparison = await optimizer.compare_routes(
            origin=payload.origin,
            destination=payload.destination,
            departure_date=payload.departure_date,
            return_date=payload.return_date,
            adults=payload.adults,
            cabin_class=payload.cabin_class,
            max_hubs=payload.max_hubs,
        )
    except SearchValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": e.message, "error_code": e.code.value},
        )
    except GatewayConfigurationError as e:
        logger.error(f"Route comparison unavailable: {e}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=NOT_CONFIGURED_BODY)

    return {"success": True, "data": comparison.to_dict()}


@router.get("/flights/hubs")
async def suitable_hubs(origin: str, destination: str, max_hubs: int = 5):
    """Hubs that could bridge the two airports' regions."""
    origin, destination = origin.upper(), destination.upper()
    hubs = find_suitable_hubs(origin, destination, max_hubs)
    return {
        "origin_region": region_of(origin),
        "destination_region": region_of(destination),
        "hubs": [
            {"code": hub.code, "name": hub.name, "city": hub.city, "region": hub.region}
            for hub in hubs
        ],
    }

"""
Amadeus Self-Service flight offers integration.

Implements the flight search gateway on top of the Amadeus REST API:
OAuth2 client-credentials authentication, the Flight Offers Search v2
endpoint, translation of Amadeus error payloads into FlightSearchError
codes and normalization of offers into provider-neutral dataclasses.

API Documentation: https://developers.amadeus.com/self-service/category/flights
Test base URL: https://test.api.amadeus.com
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from farewatch.config import settings
from farewatch.providers.base import FlightSearchGateway
from farewatch.providers.exceptions import (
    FlightSearchError,
    FlightSearchErrorCode,
    GatewayConfigurationError,
    ProviderAuthenticationError,
    ProviderNetworkError,
    ProviderTimeoutError,
    RateLimitError,
)
from farewatch.providers.schemas import (
    FlightLeg,
    FlightSearchRequest,
    FlightSegment,
    NormalizedOffer,
    SearchResult,
)
from farewatch.utils.clock import Clock
from farewatch.utils.date_utils import format_duration
from farewatch.utils.retry import api_retry

logger = logging.getLogger(__name__)

BASE_URLS = {
    "test": "https://test.api.amadeus.com",
    "production": "https://api.amadeus.com",
}

# Amadeus error codes found in ``errors[0].code``
AMADEUS_NO_RESULTS = 4926
AMADEUS_INVALID_LOCATION = 477
AMADEUS_PAST_DATE = 572

# Refresh the access token this many seconds before it expires
TOKEN_EXPIRY_MARGIN = 60


class AmadeusGateway(FlightSearchGateway):
    """
    Flight search gateway backed by Amadeus.

    Credentials are checked on first use, not at construction, so the
    application can start (and serve hub or cron lookups) without them.

    Examples:
        >>> async with AmadeusGateway() as gateway:
        ...     result = await gateway.search(FlightSearchRequest("JFK", "LHR", date(2025, 6, 1)))
        ...     print(result.cheapest.price)
    """

    PROVIDER_NAME = "amadeus"
    TOKEN_ENDPOINT = "/v1/security/oauth2/token"
    SEARCH_ENDPOINT = "/v2/shopping/flight-offers"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        environment: Optional[str] = None,
        currency: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(
            timeout=timeout if timeout is not None else settings.gateway_timeout_seconds,
            clock=clock,
        )
        self.client_id = client_id if client_id is not None else settings.amadeus_client_id
        self.client_secret = (
            client_secret if client_secret is not None else settings.amadeus_client_secret
        )
        self.environment = environment or settings.amadeus_env
        self.base_url = BASE_URLS.get(self.environment, BASE_URLS["test"])
        self.currency = currency or settings.default_currency
        self.max_retries = max_retries if max_retries is not None else settings.gateway_max_retries

        self._client = http_client
        self._owns_client = http_client is None
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _ensure_configured(self) -> None:
        if not self.client_id:
            raise GatewayConfigurationError(
                "Amadeus API credentials are not configured",
                provider_name=self.PROVIDER_NAME,
                env_var="AMADEUS_CLIENT_ID",
            )
        if not self.client_secret:
            raise GatewayConfigurationError(
                "Amadeus API credentials are not configured",
                provider_name=self.PROVIDER_NAME,
                env_var="AMADEUS_CLIENT_SECRET",
            )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, retrying transient transport failures."""

        @api_retry(max_attempts=self.max_retries, min_wait_seconds=1, max_wait_seconds=10)
        async def _attempt() -> httpx.Response:
            return await self._get_client().request(method, url, **kwargs)

        try:
            return await _attempt()
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                "Flight search timed out. Please try again.",
                provider_name=self.PROVIDER_NAME,
                timeout_seconds=self.timeout,
                original_error=e,
            ) from e
        except httpx.TransportError as e:
            raise ProviderNetworkError(
                "Unable to connect to flight search service. Please check your internet connection.",
                provider_name=self.PROVIDER_NAME,
                original_error=e,
            ) from e

    async def _get_access_token(self) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        response = await self._send(
            "POST",
            f"{self.base_url}{self.TOKEN_ENDPOINT}",
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )
        if response.status_code != 200:
            raise ProviderAuthenticationError(
                "Amadeus API authentication failed. Please check your credentials.",
                provider_name=self.PROVIDER_NAME,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            access_token = payload["access_token"]
            expires_in = int(payload.get("expires_in", 1799))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise self._malformed_response("token", e) from e

        self._access_token = access_token
        self._token_expires_at = time.monotonic() + max(0, expires_in - TOKEN_EXPIRY_MARGIN)
        logger.debug(f"Obtained Amadeus access token (expires in {expires_in}s)")
        return self._access_token

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def build_params(self, request: FlightSearchRequest) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "originLocationCode": request.origin,
            "destinationLocationCode": request.destination,
            "departureDate": request.departure_date.isoformat(),
            "adults": request.adults,
            "travelClass": request.cabin_class.value,
            "currencyCode": request.currency or self.currency,
            "max": request.max_results,
        }
        if request.return_date:
            params["returnDate"] = request.return_date.isoformat()
        if request.children:
            params["children"] = request.children
        if request.infants:
            params["infants"] = request.infants
        if request.non_stop:
            params["nonStop"] = "true"
        if request.max_price is not None:
            params["maxPrice"] = request.max_price
        return params

    async def _perform_search(self, request: FlightSearchRequest) -> SearchResult:
        self._ensure_configured()
        token = await self._get_access_token()

        logger.info(
            f"Amadeus search: {request.origin} -> {request.destination}, "
            f"departure {request.departure_date}, return {request.return_date}, "
            f"{request.adults} adults"
        )

        response = await self._send(
            "GET",
            f"{self.base_url}{self.SEARCH_ENDPOINT}",
            params=self.build_params(request),
            headers={"Authorization": f"Bearer {token}"},
        )

        if response.status_code != 200:
            error = self.translate_error(response)
            if error.code == FlightSearchErrorCode.NO_RESULTS:
                logger.info(f"No flights found for {request.origin}->{request.destination}")
                return SearchResult()
            if error.code == FlightSearchErrorCode.AUTH_FAILED:
                self._access_token = None
            raise error

        try:
            payload = response.json()
            offers = normalize_flight_offers(payload.get("data") or [])
            dictionaries = payload.get("dictionaries") or {}
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise self._malformed_response("flight offers", e) from e
        return SearchResult(offers=offers, dictionaries=dictionaries)

    def _malformed_response(self, what: str, error: Exception) -> FlightSearchError:
        logger.error(f"Malformed Amadeus {what} response: {error}")
        return FlightSearchError(
            "Flight search service returned an unexpected response. Please try again later.",
            code=FlightSearchErrorCode.SERVICE_UNAVAILABLE,
            provider_name=self.PROVIDER_NAME,
            recoverable=True,
            status_code=200,
            original_error=error,
        )

    def translate_error(self, response: httpx.Response) -> FlightSearchError:
        """Map an Amadeus error response onto a FlightSearchError."""
        status = response.status_code

        if status == 401:
            return ProviderAuthenticationError(
                "Amadeus API authentication failed. Please check your credentials.",
                provider_name=self.PROVIDER_NAME,
                status_code=status,
            )
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            return RateLimitError(
                "Too many requests. Please try again in a moment.",
                provider_name=self.PROVIDER_NAME,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        try:
            errors = response.json().get("errors") or []
        except ValueError:
            errors = []
        first = errors[0] if errors else {}
        amadeus_code = first.get("code")
        title = first.get("title") or ""

        if amadeus_code == AMADEUS_NO_RESULTS:
            return FlightSearchError(
                "No flights found for this route and dates.",
                code=FlightSearchErrorCode.NO_RESULTS,
                provider_name=self.PROVIDER_NAME,
                status_code=status,
            )
        if amadeus_code == AMADEUS_INVALID_LOCATION or "INVALID CITY" in title.upper():
            return FlightSearchError(
                "Invalid airport code. Please check the origin and destination.",
                code=FlightSearchErrorCode.INVALID_AIRPORT,
                provider_name=self.PROVIDER_NAME,
                status_code=status,
            )
        if amadeus_code == AMADEUS_PAST_DATE:
            return FlightSearchError(
                "The travel date is in the past. Please select a future date.",
                code=FlightSearchErrorCode.PAST_DATE,
                provider_name=self.PROVIDER_NAME,
                status_code=status,
            )
        if status >= 500:
            return FlightSearchError(
                "Amadeus service is temporarily unavailable. Please try again later.",
                code=FlightSearchErrorCode.SERVICE_UNAVAILABLE,
                provider_name=self.PROVIDER_NAME,
                recoverable=True,
                status_code=status,
            )

        detail = first.get("detail") or title or f"Flight search failed (HTTP {status})"
        return FlightSearchError(
            detail,
            code=FlightSearchErrorCode.UNKNOWN,
            provider_name=self.PROVIDER_NAME,
            status_code=status,
        )


def _parse_instant(value: str) -> datetime:
    return datetime.fromisoformat(value)


def normalize_flight_offer(offer: Dict[str, Any]) -> NormalizedOffer:
    """Convert one Amadeus flight-offer object into a NormalizedOffer."""
    legs: List[FlightLeg] = []
    airlines: List[str] = []

    for itinerary in offer.get("itineraries", []):
        segments: List[FlightSegment] = []
        for raw in itinerary.get("segments", []):
            carrier = raw.get("carrierCode", "")
            if carrier and carrier not in airlines:
                airlines.append(carrier)
            segments.append(
                FlightSegment(
                    origin=raw["departure"]["iataCode"],
                    destination=raw["arrival"]["iataCode"],
                    departure_at=_parse_instant(raw["departure"]["at"]),
                    arrival_at=_parse_instant(raw["arrival"]["at"]),
                    carrier=carrier,
                    flight_number=f"{carrier}{raw.get('number', '')}",
                    aircraft=(raw.get("aircraft") or {}).get("code", ""),
                    duration=format_duration(raw.get("duration", "")),
                )
            )
        if not segments:
            continue
        legs.append(
            FlightLeg(
                origin=segments[0].origin,
                destination=segments[-1].destination,
                departure_at=segments[0].departure_at,
                arrival_at=segments[-1].arrival_at,
                duration=itinerary.get("duration", ""),
                stops=len(segments) - 1,
                segments=segments,
            )
        )

    price = offer.get("price") or {}
    return NormalizedOffer(
        id=str(offer.get("id", "")),
        price=float(price.get("grandTotal") or price.get("total") or 0),
        currency=price.get("currency", ""),
        legs=legs,
        airlines=airlines,
        total_duration=" + ".join(format_duration(leg.duration) for leg in legs),
        bookable_seats=int(offer.get("numberOfBookableSeats") or 0),
        last_ticketing_date=offer.get("lastTicketingDate"),
    )


def normalize_flight_offers(offers: List[Dict[str, Any]]) -> List[NormalizedOffer]:
    """Normalize offers, drop itinerary-less ones and order by ascending price."""
    normalized = []
    for raw in offers:
        try:
            offer = normalize_flight_offer(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            offer_id = raw.get("id") if isinstance(raw, dict) else raw
            logger.warning(f"Skipping malformed Amadeus offer {offer_id!r}: {e}")
            continue
        if offer.legs:
            normalized.append(offer)
    return sorted(normalized, key=lambda o: o.price)

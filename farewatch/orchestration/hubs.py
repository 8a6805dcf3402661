"""
Stopover hub catalog and airport region lookup.

Hub airports often offer cheaper connections between world regions. The
catalog is static knowledge loaded once at import; the region table is a
coarse mapping of common airports and is not a full airport database.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

UNKNOWN_REGION = "unknown"

EUROPE = "europe"
MIDDLE_EAST = "middle_east"
ASIA = "asia"
AMERICAS = "americas"
OCEANIA = "oceania"
AFRICA = "africa"


@dataclass(frozen=True)
class StopoverHub:
    """A hub airport and the regions it is a good connection point for."""

    code: str
    name: str
    city: str
    country: str
    region: str
    airlines: Tuple[str, ...]
    connects_regions: Tuple[str, ...]

    def bridges(self, region: str) -> bool:
        return self.region == region or region in self.connects_regions


STOPOVER_HUBS: Tuple[StopoverHub, ...] = (
    # Europe
    StopoverHub("IST", "Istanbul Airport", "Istanbul", "Turkey", EUROPE,
                ("TK",), (EUROPE, MIDDLE_EAST, ASIA, AMERICAS)),
    StopoverHub("LHR", "London Heathrow", "London", "UK", EUROPE,
                ("BA", "VS"), (EUROPE, AMERICAS, ASIA, OCEANIA)),
    StopoverHub("FRA", "Frankfurt Airport", "Frankfurt", "Germany", EUROPE,
                ("LH",), (EUROPE, AMERICAS, ASIA)),
    StopoverHub("AMS", "Amsterdam Schiphol", "Amsterdam", "Netherlands", EUROPE,
                ("KL",), (EUROPE, AMERICAS, ASIA)),
    StopoverHub("CDG", "Paris Charles de Gaulle", "Paris", "France", EUROPE,
                ("AF",), (EUROPE, AMERICAS, ASIA, AFRICA)),
    StopoverHub("MAD", "Madrid Barajas", "Madrid", "Spain", EUROPE,
                ("IB",), (EUROPE, AMERICAS)),
    StopoverHub("HEL", "Helsinki Airport", "Helsinki", "Finland", EUROPE,
                ("AY",), (EUROPE, ASIA)),
    StopoverHub("ZRH", "Zurich Airport", "Zurich", "Switzerland", EUROPE,
                ("LX",), (EUROPE, AMERICAS, ASIA)),
    # Middle East
    StopoverHub("DXB", "Dubai International", "Dubai", "UAE", MIDDLE_EAST,
                ("EK",), (EUROPE, ASIA, OCEANIA, AFRICA, AMERICAS)),
    StopoverHub("DOH", "Hamad International", "Doha", "Qatar", MIDDLE_EAST,
                ("QR",), (EUROPE, ASIA, OCEANIA, AFRICA, AMERICAS)),
    StopoverHub("AUH", "Abu Dhabi International", "Abu Dhabi", "UAE", MIDDLE_EAST,
                ("EY",), (EUROPE, ASIA, OCEANIA, AMERICAS)),
    # Asia
    StopoverHub("SIN", "Singapore Changi", "Singapore", "Singapore", ASIA,
                ("SQ",), (ASIA, OCEANIA, EUROPE, AMERICAS)),
    StopoverHub("HKG", "Hong Kong International", "Hong Kong", "China", ASIA,
                ("CX",), (ASIA, OCEANIA, EUROPE, AMERICAS)),
    StopoverHub("ICN", "Incheon International", "Seoul", "South Korea", ASIA,
                ("KE", "OZ"), (ASIA, AMERICAS, EUROPE)),
    StopoverHub("NRT", "Narita International", "Tokyo", "Japan", ASIA,
                ("NH", "JL"), (ASIA, AMERICAS, EUROPE)),
    StopoverHub("BKK", "Suvarnabhumi Airport", "Bangkok", "Thailand", ASIA,
                ("TG",), (ASIA, OCEANIA, EUROPE)),
    StopoverHub("KUL", "Kuala Lumpur International", "Kuala Lumpur", "Malaysia", ASIA,
                ("MH",), (ASIA, OCEANIA, EUROPE)),
    # Americas
    StopoverHub("JFK", "John F. Kennedy International", "New York", "USA", AMERICAS,
                ("AA", "DL", "UA"), (AMERICAS, EUROPE, ASIA)),
    StopoverHub("MIA", "Miami International", "Miami", "USA", AMERICAS,
                ("AA",), (AMERICAS, EUROPE)),
    StopoverHub("LAX", "Los Angeles International", "Los Angeles", "USA", AMERICAS,
                ("AA", "DL", "UA"), (AMERICAS, ASIA, OCEANIA)),
    StopoverHub("YYZ", "Toronto Pearson", "Toronto", "Canada", AMERICAS,
                ("AC",), (AMERICAS, EUROPE, ASIA)),
    StopoverHub("PTY", "Tocumen International", "Panama City", "Panama", AMERICAS,
                ("CM",), (AMERICAS,)),
    StopoverHub("GRU", "São Paulo Guarulhos", "São Paulo", "Brazil", AMERICAS,
                ("LA",), (AMERICAS, EUROPE)),
    StopoverHub("MEX", "Mexico City International", "Mexico City", "Mexico", AMERICAS,
                ("AM",), (AMERICAS, EUROPE)),
)

HUBS_BY_CODE: Dict[str, StopoverHub] = {hub.code: hub for hub in STOPOVER_HUBS}

# Secondary lookup for airports that are not hubs. First match wins, so
# CAI resolves to the Middle East.
REGION_AIRPORTS: Dict[str, Tuple[str, ...]] = {
    EUROPE: (
        "LHR", "LGW", "STN", "CDG", "ORY", "FRA", "MUC", "AMS", "MAD", "BCN",
        "FCO", "MXP", "ZRH", "VIE", "BRU", "CPH", "OSL", "ARN", "HEL", "DUB",
        "LIS", "ATH", "PRG", "WAW", "BUD",
    ),
    MIDDLE_EAST: ("DXB", "DOH", "AUH", "TLV", "AMM", "CAI", "RUH", "JED", "KWI", "BAH"),
    ASIA: (
        "SIN", "HKG", "NRT", "HND", "ICN", "PVG", "SHA", "PEK", "BKK", "KUL",
        "DEL", "BOM", "MNL", "TPE", "CGK", "SGN", "HAN",
    ),
    AMERICAS: (
        "JFK", "LAX", "ORD", "MIA", "SFO", "ATL", "DFW", "DEN", "SEA", "BOS",
        "YYZ", "YVR", "YUL", "MEX", "GRU", "EZE", "SCL", "BOG", "LIM", "PTY",
    ),
    OCEANIA: ("SYD", "MEL", "BNE", "PER", "AKL", "WLG", "CHC"),
    AFRICA: ("JNB", "CPT", "NBO", "ADD", "CMN", "ALG", "CAI", "LOS", "ACC"),
}

# Hours needed for a comfortable connection; large airports need more
MINIMUM_LAYOVER_HOURS: Dict[str, float] = {
    "LHR": 3,
    "JFK": 3,
    "LAX": 3,
    "CDG": 2.5,
    "FRA": 2,
    "DXB": 2,
    "DOH": 1.5,
    "SIN": 1.5,
    "AMS": 2,
    "ICN": 2,
}
DEFAULT_MINIMUM_LAYOVER_HOURS = 2.0


def get_hub(code: str) -> StopoverHub | None:
    return HUBS_BY_CODE.get((code or "").upper())


def region_of(code: str) -> str:
    """
    Resolve the coarse world region of an airport.

    Examples:
        >>> region_of("DXB")
        'middle_east'
        >>> region_of("EZE")
        'americas'
        >>> region_of("XYZ")
        'unknown'
    """
    code = (code or "").upper()
    hub = HUBS_BY_CODE.get(code)
    if hub:
        return hub.region

    for region, codes in REGION_AIRPORTS.items():
        if code in codes:
            return region

    return UNKNOWN_REGION


def find_suitable_hubs(origin: str, destination: str, max_hubs: int = 5) -> List[StopoverHub]:
    """
    Hubs worth trying as a stopover between ``origin`` and ``destination``.

    No stopovers are suggested when both airports resolve to the same
    region, including when both are unknown. A hub qualifies when it is not
    one of the endpoints and bridges both regions. Middle East hubs come
    first on Europe-Asia routes, then hubs with more connections.
    """
    origin = (origin or "").upper()
    destination = (destination or "").upper()
    origin_region = region_of(origin)
    destination_region = region_of(destination)

    if origin_region == destination_region:
        return []

    candidates = [
        hub
        for hub in STOPOVER_HUBS
        if hub.code not in (origin, destination)
        and hub.bridges(origin_region)
        and hub.bridges(destination_region)
    ]

    prefer_middle_east = {origin_region, destination_region} == {EUROPE, ASIA}

    def sort_key(hub: StopoverHub):
        middle_east_rank = 0 if prefer_middle_east and hub.region == MIDDLE_EAST else 1
        return (middle_east_rank, -len(hub.connects_regions))

    return sorted(candidates, key=sort_key)[: max(0, max_hubs)]


def minimum_layover_hours(code: str) -> float:
    return float(MINIMUM_LAYOVER_HOURS.get((code or "").upper(), DEFAULT_MINIMUM_LAYOVER_HOURS))

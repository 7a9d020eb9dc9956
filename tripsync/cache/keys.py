"""Cache key layout: ``{kind}_{id}``."""

TRIP_PREFIX = "trip_"
STOP_PREFIX = "stop_"
RESORT_PREFIX = "resort_"
MAP_REGION_PREFIX = "map_region_"


def trip_key(trip_id: str) -> str:
    return f"{TRIP_PREFIX}{trip_id}"


def stop_key(stop_id: str) -> str:
    return f"{STOP_PREFIX}{stop_id}"


def resort_key(resort_id: str) -> str:
    return f"{RESORT_PREFIX}{resort_id}"


def map_region_key(zoom: int) -> str:
    return f"{MAP_REGION_PREFIX}{zoom}"


def id_from_key(key: str, prefix: str) -> str:
    """Strip the kind prefix from a key."""
    return key[len(prefix):]

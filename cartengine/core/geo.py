# cartengine/core/geo.py
import math
from dataclasses import dataclass

# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two coordinates, in kilometers.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


@dataclass(frozen=True)
class ServiceRegion:
    name: str
    lat: float
    lng: float
    radius_km: float


SERVICE_REGIONS: tuple[ServiceRegion, ...] = (
    ServiceRegion(name="Dibrugarh", lat=27.4728, lng=94.9120, radius_km=20),
    ServiceRegion(name="Guwahati", lat=26.1445, lng=91.7362, radius_km=25),
)


def get_serviceable_region(
    lat: float,
    lng: float,
    regions: tuple[ServiceRegion, ...] = SERVICE_REGIONS,
) -> ServiceRegion | None:
    """
    Return the first region whose radius contains the point, else None.
    """
    for region in regions:
        if haversine_km(lat, lng, region.lat, region.lng) <= region.radius_km:
            return region
    return None

# backend/discovery/services/location/geo.py
"""
Pure geographic helpers: great-circle distance, display formatting, bounding
boxes for radius pre-filtering, and bearings.

No I/O happens here; everything is safe to call from any thread.
"""

import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, TypeVar

from ...schemas.location import Coordinate

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.32

COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)  # fmt: skip

T = TypeVar("T")


@dataclass(frozen=True)
class BoundingBox:
    north: float
    south: float
    east: float
    west: float

    def contains(self, latitude: float, longitude: float) -> bool:
        if not self.south <= latitude <= self.north:
            return False
        if self.west <= self.east:
            return self.west <= longitude <= self.east
        # Box straddles the antimeridian
        return longitude >= self.west or longitude <= self.east


def is_valid_coordinate(latitude: object, longitude: object) -> bool:
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        return False
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Unrounded great-circle distance in kilometers."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    # Clamp guards against float drift just above 1.0 for antipodal points
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))
    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance rounded to one decimal place."""
    return round(haversine_km(a, b), 1)


def format_distance(km: float) -> str:
    """Sub-kilometer distances in whole meters, otherwise kilometers to one decimal."""
    if km < 1:
        return f"{int(round(km * 1000))}m"
    return f"{km:.1f}km"


def bounding_box(center: Coordinate, radius_km: float) -> BoundingBox:
    """
    Approximate box enclosing every point within radius_km of center.

    Used as a cheap store-side pre-filter; the exact Haversine check runs
    afterwards on the rows that pass.
    """
    lat_change = radius_km / KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(center.latitude))
    if cos_lat < 1e-6 or lat_change >= 90:
        # Poles: every longitude is inside the radius
        return BoundingBox(
            north=min(90.0, center.latitude + lat_change),
            south=max(-90.0, center.latitude - lat_change),
            east=180.0,
            west=-180.0,
        )

    lng_change = radius_km / (KM_PER_DEGREE_LAT * cos_lat)
    if lng_change >= 180:
        east, west = 180.0, -180.0
    else:
        east = _wrap_longitude(center.longitude + lng_change)
        west = _wrap_longitude(center.longitude - lng_change)

    return BoundingBox(
        north=min(90.0, center.latitude + lat_change),
        south=max(-90.0, center.latitude - lat_change),
        east=east,
        west=west,
    )


def bearing(origin: Coordinate, target: Coordinate) -> float:
    """Initial bearing from origin to target in degrees [0, 360)."""
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    d_lng = math.radians(target.longitude - origin.longitude)

    y = math.sin(d_lng) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lng)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def compass_direction(bearing_degrees: float) -> str:
    index = int(round(bearing_degrees / 22.5)) % len(COMPASS_POINTS)
    return COMPASS_POINTS[index]


def within_radius(
    items: Iterable[T],
    get_coordinate: Callable[[T], Optional[Coordinate]],
    center: Coordinate,
    radius_km: float,
) -> List[T]:
    """Items whose coordinate lies within radius_km of center; items without one are dropped."""
    kept: List[T] = []
    for item in items:
        coordinate = get_coordinate(item)
        if coordinate is not None and haversine_km(center, coordinate) <= radius_km:
            kept.append(item)
    return kept


def _wrap_longitude(longitude: float) -> float:
    return ((longitude + 180) % 360) - 180

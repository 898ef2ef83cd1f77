"""Geographic calculations - Pure functions.

This module provides coordinate parsing, validation and distance
calculations for message locations. All functions are pure with no
side effects.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal, InvalidOperation


# Earth's radius in meters
EARTH_RADIUS_METERS = 6_371_000.0

# Radius (in degrees) of the circle used to spread co-located points
DEFAULT_JITTER_RADIUS = 0.00005

_COORDINATE_QUANTUM = Decimal("0.00001")
_DIRECTIONS = "NSEW"


def parse_coordinate(raw: str) -> float:
    """Parse a coordinate string into decimal degrees.

    Pure function.

    Accepts plain decimal degrees ("47.5", "-122.2"), decimal degrees with
    a direction suffix ("47.5N", "122.2W") and degree-minute notation
    ("47-32.23N"). South and west are negative. Degree-minute values are
    rounded to 5 decimal places toward positive infinity.

    Args:
        raw: Coordinate text

    Returns:
        Decimal degrees

    Raises:
        ValueError: If the text is not a recognizable coordinate
    """
    if raw is None:
        raise ValueError("coordinate is missing")

    text = raw.strip()
    if not text:
        raise ValueError("coordinate is empty")

    direction = ""
    if text[-1].upper() in _DIRECTIONS:
        direction = text[-1].upper()
        text = text[:-1].strip()
    negative = direction in ("S", "W")

    try:
        value = float(text)
    except ValueError:
        value = None

    if value is not None:
        if not math.isfinite(value):
            raise ValueError(f"coordinate is not finite: {raw!r}")
        return -value if negative and value > 0 else value

    fields = text.split("-")
    if len(fields) != 2 or not direction:
        raise ValueError(f"unrecognized coordinate: {raw!r}")

    try:
        degrees = Decimal(fields[0].strip())
        minutes = Decimal(fields[1].strip())
    except InvalidOperation as e:
        raise ValueError(f"unrecognized coordinate: {raw!r}") from e

    decimal_degrees = degrees + minutes / Decimal(60)
    if negative:
        decimal_degrees = -decimal_degrees

    return float(decimal_degrees.quantize(_COORDINATE_QUANTUM, rounding=ROUND_CEILING))


def _to_float(value: str | float | None) -> float | None:
    """Convert a raw coordinate value to a finite float, or None."""
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        number = float(value)
    return number if math.isfinite(number) else None


def is_valid_pair(latitude: str | float | None, longitude: str | float | None) -> bool:
    """Check whether a latitude/longitude pair is a usable location.

    Pure function. The origin (0, 0) means "unset" and is never valid.

    Args:
        latitude: Latitude as text or number
        longitude: Longitude as text or number

    Returns:
        True if both values are finite, in range and not the origin
    """
    lat = _to_float(latitude)
    lon = _to_float(longitude)
    if lat is None or lon is None:
        return False
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return False
    return not (lat == 0 and lon == 0)


@dataclass(frozen=True)
class GeoPoint:
    """A validated latitude/longitude pair.

    Attributes:
        latitude: Decimal degrees, -90 to 90
        longitude: Decimal degrees, -180 to 180
    """
    latitude: float
    longitude: float

    @classmethod
    def from_strings(
        cls,
        latitude: str | float | None,
        longitude: str | float | None,
    ) -> "GeoPoint | None":
        """Build a point from raw values, or None if the pair is invalid."""
        if not is_valid_pair(latitude, longitude):
            return None
        return cls(latitude=_to_float(latitude), longitude=_to_float(longitude))

    def as_context(self) -> str:
        """Render the point for rejection context."""
        return f"{{latitude: {self.latitude}, longitude: {self.longitude}}}"


def calculate_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters
    """
    # Convert to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    # Haversine formula
    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in meters.

    Pure function. Symmetric, and zero for identical points.
    """
    return calculate_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def jitter_points(
    points: list[GeoPoint],
    radius: float = DEFAULT_JITTER_RADIUS,
) -> list[GeoPoint]:
    """Spread points evenly on a small circle around their centroid.

    Pure function. Used so that several reports from one station do not
    render on top of each other.

    Args:
        points: Points to spread
        radius: Circle radius in degrees

    Returns:
        New points in the same order as the input
    """
    n = len(points)
    if n <= 1:
        return list(points)

    lat_center = sum(p.latitude for p in points) / n
    lon_center = sum(p.longitude for p in points) / n

    spread = []
    for i in range(n):
        theta = math.radians(360.0 * i / n)
        spread.append(GeoPoint(
            latitude=lat_center + radius * math.sin(theta),
            longitude=lon_center + radius * math.cos(theta),
        ))
    return spread


def _parse_location_text(text: str) -> GeoPoint | None:
    """Parse "40.187500N, 92.541667W (GPS)" style text into a point."""
    fields = text.split(",")
    if len(fields) < 2:
        return None
    lon_fields = fields[1].strip().split(" ")
    latitude = parse_coordinate(fields[0])
    longitude = parse_coordinate(lon_fields[0])
    return GeoPoint.from_strings(latitude, longitude)


def _location_source(text: str) -> str | None:
    """Return the parenthesized source annotation, if any."""
    left = text.find("(")
    right = text.find(")")
    if 0 <= left < right:
        return text[left + 1:right]
    return None


def parse_message_location(
    location_text: str | None,
    mime: str | None = None,
) -> tuple[GeoPoint | None, str | None]:
    """Parse the location Winlink Express attaches to a message.

    Pure function.

    The export's location element looks like "40.187500N, 92.541667W (GPS)".
    When it is missing, an "X-Location:" header in the MIME text is used.

    Args:
        location_text: Text of the export location element
        mime: Raw MIME text of the message

    Returns:
        Tuple of (point or None, location source or None)
    """
    if location_text and "," in location_text:
        try:
            return _parse_location_text(location_text), _location_source(location_text)
        except ValueError:
            return None, None

    for line in (mime or "").splitlines():
        upper = line.strip().upper()
        if not upper.startswith("X-LOCATION:"):
            continue
        value = upper[len("X-LOCATION:"):].strip()
        try:
            point = _parse_location_text(value)
        except ValueError:
            return None, None
        if "GRID SQUARE" in value:
            source = "GRID SQUARE"
        elif "SPECIFIED" in value:
            source = "SPECIFIED"
        elif "GPS" in value:
            source = "GPS"
        else:
            source = "UNKNOWN"
        return point, source

    return None, None

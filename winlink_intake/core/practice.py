"""Practice message generation.

Builds synthetic check-in and position messages for drills and tests.
Every generator owns its random source and its buckets, so separate
runs never share state.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Generic, Sequence, TypeVar

from winlink_intake.core.geo import GeoPoint
from winlink_intake.core.message import RawRecord


T = TypeVar("T")

PRACTICE_CALLS = (
    "KM6SO", "W1AW", "N7ABC", "KE7XYZ", "AD0QR", "KJ7LMN", "WA6DEF", "K2GHI",
    "N0JKL", "KF5MNO", "W7PQR", "KB9STU",
)
PRACTICE_BANDS = ("2M", "70CM", "HF 40M", "HF 80M", "Telnet")
PRACTICE_SESSIONS = ("Packet", "VARA HF", "VARA FM", "ARDOP", "Telnet")
PRACTICE_STATUSES = ("Exercise", "Real Event")

ETO_CHECK_IN_SUBJECT = "Winlink Thursday Net Check-In"
POSITION_SUBJECT = "Position Report"


class ShuffledBucket(Generic[T]):
    """Draws items in shuffled order, reshuffling when exhausted.

    Every item is drawn exactly once per cycle.
    """

    def __init__(self, items: Sequence[T], rng: random.Random) -> None:
        if not items:
            raise ValueError("bucket needs at least one item")
        self._items = list(items)
        self._rng = rng
        self._queue: list[T] = []

    def __len__(self) -> int:
        """Number of items left in the current cycle."""
        return len(self._queue)

    def draw(self) -> T:
        """Remove and return the next item, refilling if empty."""
        if not self._queue:
            self._queue = list(self._items)
            self._rng.shuffle(self._queue)
        return self._queue.pop()


def format_degrees_minutes(value: float, positive: str, negative: str) -> str:
    """Render decimal degrees as "DD-MM.MM<dir>"."""
    direction = positive if value >= 0 else negative
    value = abs(value)
    degrees = int(value)
    minutes = (value - degrees) * 60
    return f"{degrees}-{minutes:05.2f}{direction}"


class PracticeGenerator:
    """Generates synthetic messages around a center point.

    Attributes:
        center: Point messages are scattered around
    """

    def __init__(
        self,
        seed: int | None = None,
        center: GeoPoint = GeoPoint(47.6062, -122.3321),
        start: datetime | None = None,
    ) -> None:
        self.center = center
        self._rng = random.Random(seed)
        self._calls = ShuffledBucket(PRACTICE_CALLS, self._rng)
        self._bands = ShuffledBucket(PRACTICE_BANDS, self._rng)
        self._sessions = ShuffledBucket(PRACTICE_SESSIONS, self._rng)
        self._statuses = ShuffledBucket(PRACTICE_STATUSES, self._rng)
        self._time = start or datetime(2024, 1, 4, 18, 0, tzinfo=timezone.utc)
        self._count = 0

    def _next_id(self) -> str:
        self._count += 1
        return f"PRACTICE{self._count:04d}"

    def _next_time(self) -> datetime:
        self._time += timedelta(minutes=self._rng.randint(1, 5))
        return self._time

    def _next_point(self) -> GeoPoint:
        return GeoPoint(
            latitude=round(self.center.latitude + self._rng.uniform(-0.5, 0.5), 5),
            longitude=round(self.center.longitude + self._rng.uniform(-0.5, 0.5), 5),
        )

    def eto_check_in(self, call: str | None = None) -> RawRecord:
        """Build a Thursday net check-in message."""
        point = self._next_point()
        body = "\n".join([
            f"Status: {self._statuses.draw()}",
            f"Band Used: {self._bands.draw()}",
            f"Session Type: {self._sessions.draw()}",
            f"GPS Coordinates: LAT {point.latitude} LON {point.longitude}",
            "Comments:",
            "Practice check-in",
            "----------",
            "Version: ETO 1.0",
        ])
        return RawRecord(
            id=self._next_id(),
            sender=call or self._calls.draw(),
            subject=ETO_CHECK_IN_SUBJECT,
            timestamp=self._next_time(),
            body=body,
            recipient="ETO-PRACTICE",
        )

    def position(self, call: str | None = None) -> RawRecord:
        """Build a position report message."""
        point = self._next_point()
        body = "\n".join([
            f"Latitude: {format_degrees_minutes(point.latitude, 'N', 'S')}",
            f"Longitude: {format_degrees_minutes(point.longitude, 'E', 'W')}",
            "Comment: Practice position",
        ])
        return RawRecord(
            id=self._next_id(),
            sender=call or self._calls.draw(),
            subject=POSITION_SUBJECT,
            timestamp=self._next_time(),
            body=body,
            recipient="ETO-PRACTICE",
        )

    def batch(self, count: int) -> list[RawRecord]:
        """Build count messages, alternating check-ins and positions."""
        return [
            self.eto_check_in() if i % 2 == 0 else self.position()
            for i in range(count)
        ]

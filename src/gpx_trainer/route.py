"""Distance-indexed queries over a loaded route.

Every query takes a cumulative distance from the route start in meters and
finds the bracketing segment with a binary search over the point distances.
Degenerate data never raises: zero-length segments report a flat gradient,
and queries outside the route clamp to its first or last point.
"""

from bisect import bisect_left
from dataclasses import dataclass, field

from gpx_trainer.climb import climb_ahead, detect_climbs, segment_gradient
from gpx_trainer.distance import cumulative_distances
from gpx_trainer.models import Climb, RoutePoint


@dataclass(frozen=True)
class Route:
    name: str
    points: tuple[RoutePoint, ...]
    total_distance: float = 0.0  # meters
    total_ascent: float = 0.0  # meters
    total_descent: float = 0.0  # meters
    _distances: tuple[float, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_distances", tuple(p.distance for p in self.points))

    @classmethod
    def from_points(cls, raw: list[tuple[float, float, float]], name: str = "") -> "Route":
        """Build a route from (lat, lon, elevation) tuples in track order."""
        cum_dist = cumulative_distances([(lat, lon) for lat, lon, _ in raw])

        ascent = 0.0
        descent = 0.0
        for i in range(1, len(raw)):
            delta = raw[i][2] - raw[i - 1][2]
            if delta > 0:
                ascent += delta
            else:
                descent -= delta

        points = tuple(
            RoutePoint(lat=lat, lon=lon, elevation=ele, distance=d)
            for (lat, lon, ele), d in zip(raw, cum_dist)
        )
        return cls(
            name=name,
            points=points,
            total_distance=cum_dist[-1] if cum_dist else 0.0,
            total_ascent=ascent,
            total_descent=descent,
        )

    def _segment_end(self, distance: float) -> int:
        """Index of the first point at or beyond ``distance``, never below 1.

        Returns len(points) when the distance lies past the route end.
        """
        return bisect_left(self._distances, distance, lo=1)

    def gradient_at(self, distance: float) -> float:
        """Gradient (percent) of the segment containing ``distance``."""
        if len(self.points) < 2:
            return 0.0

        i = self._segment_end(distance)
        if i < len(self.points):
            return segment_gradient(self.points[i - 1], self.points[i])

        # Past the end: hold the last real slope
        for j in range(len(self.points) - 1, 0, -1):
            if self.points[j].distance > self.points[j - 1].distance:
                return segment_gradient(self.points[j - 1], self.points[j])
        return 0.0

    def _interpolate(self, distance: float) -> tuple[float, float, float]:
        """Return interpolated (lat, lon, elevation) at ``distance``."""
        if not self.points:
            return 0.0, 0.0, 0.0

        first = self.points[0]
        if distance <= 0:
            return first.lat, first.lon, first.elevation

        i = self._segment_end(distance)
        if i >= len(self.points):
            last = self.points[-1]
            return last.lat, last.lon, last.elevation

        prev = self.points[i - 1]
        curr = self.points[i]
        segment_dist = curr.distance - prev.distance
        if segment_dist == 0:
            return curr.lat, curr.lon, curr.elevation

        ratio = (distance - prev.distance) / segment_dist
        return (
            prev.lat + ratio * (curr.lat - prev.lat),
            prev.lon + ratio * (curr.lon - prev.lon),
            prev.elevation + ratio * (curr.elevation - prev.elevation),
        )

    def elevation_at(self, distance: float) -> float:
        return self._interpolate(distance)[2]

    def position_at(self, distance: float) -> tuple[float, float]:
        lat, lon, _ = self._interpolate(distance)
        return lat, lon

    def detect_climbs(self, gradient_threshold: float, elevation_threshold: float) -> list[Climb]:
        return detect_climbs(list(self.points), gradient_threshold, elevation_threshold)

    def next_climb(
        self,
        current_distance: float,
        lookahead_meters: float,
        gradient_threshold: float,
        elevation_threshold: float,
    ) -> Climb | None:
        climbs = self.detect_climbs(gradient_threshold, elevation_threshold)
        return climb_ahead(climbs, current_distance, lookahead_meters)

    def is_climb_approaching(
        self,
        current_distance: float,
        lookahead_meters: float,
        gradient_threshold: float,
        elevation_threshold: float,
    ) -> bool:
        return self.next_climb(
            current_distance, lookahead_meters, gradient_threshold, elevation_threshold
        ) is not None

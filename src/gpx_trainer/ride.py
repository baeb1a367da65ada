"""Ride recording: the ordered log of points captured during a session."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from gpx_trainer.models import RidePoint, RideStats


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Ride:
    start_time: datetime = field(default_factory=_now)
    end_time: datetime | None = None
    points: list[RidePoint] = field(default_factory=list)
    route_name: str | None = None
    paused: bool = False
    id: str = ""

    def __post_init__(self):
        if not self.id:
            self.id = self.start_time.strftime("%Y-%m-%d-%H%M%S")

    def add_point(self, point: RidePoint) -> None:
        """Record a point; paused periods are left out of the log."""
        if not self.paused:
            self.points.append(point)

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def finish(self, end_time: datetime | None = None) -> None:
        self.end_time = end_time or _now()

    def stats(self) -> RideStats:
        """Compute summary statistics over the recorded points."""
        if not self.points:
            return RideStats()

        total_power = 0.0
        total_cadence = 0.0
        total_speed = 0.0
        max_power = 0.0
        max_speed = 0.0
        total_ascent = 0.0

        for i, p in enumerate(self.points):
            total_power += p.power
            total_cadence += p.cadence
            total_speed += p.speed
            max_power = max(max_power, p.power)
            max_speed = max(max_speed, p.speed)
            if i > 0 and p.elevation > self.points[i - 1].elevation:
                total_ascent += p.elevation - self.points[i - 1].elevation

        n = len(self.points)
        end = self.end_time if self.end_time is not None else self.points[-1].timestamp

        return RideStats(
            duration=end - self.start_time,
            distance=self.points[-1].distance,
            avg_power=total_power / n,
            max_power=max_power,
            avg_cadence=total_cadence / n,
            avg_speed=total_speed / n,
            max_speed=max_speed,
            total_ascent=total_ascent,
        )

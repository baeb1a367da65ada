"""Ride history on disk.

Each ride is written as ``rides/<ride_id>.json`` under the data directory,
and an ``index.json`` keeps the summary rows used for listing history.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from pathlib import Path
from threading import Lock

from gpx_trainer.models import RidePoint
from gpx_trainer.ride import Ride

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "gpx-trainer"


class StoreError(Exception):
    """Saving or loading ride history failed."""


@dataclass
class RideSummary:
    """A lightweight ride listing row."""
    id: str
    start_time: datetime
    duration: timedelta
    distance: float  # meters
    avg_power: float
    route_name: str | None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start_time": self.start_time.isoformat(),
            "duration_seconds": int(self.duration.total_seconds()),
            "distance_meters": self.distance,
            "avg_power": self.avg_power,
            "route_name": self.route_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RideSummary":
        return cls(
            id=data["id"],
            start_time=datetime.fromisoformat(data["start_time"]),
            duration=timedelta(seconds=data.get("duration_seconds", 0)),
            distance=data.get("distance_meters", 0.0),
            avg_power=data.get("avg_power", 0.0),
            route_name=data.get("route_name"),
        )


def ride_to_dict(ride: Ride) -> dict:
    """Convert a ride to a JSON-serializable dict."""
    return {
        "id": ride.id,
        "start_time": ride.start_time.isoformat(),
        "end_time": ride.end_time.isoformat() if ride.end_time else None,
        "route_name": ride.route_name,
        "points": [
            {**asdict(p), "timestamp": p.timestamp.isoformat()}
            for p in ride.points
        ],
    }


def ride_from_dict(data: dict) -> Ride:
    points = [
        RidePoint(**{**p, "timestamp": datetime.fromisoformat(p["timestamp"])})
        for p in data.get("points", [])
    ]
    end_time = data.get("end_time")
    return Ride(
        id=data["id"],
        start_time=datetime.fromisoformat(data["start_time"]),
        end_time=datetime.fromisoformat(end_time) if end_time else None,
        points=points,
        route_name=data.get("route_name"),
    )


class RideStore:
    """Thread-safe JSON ride history."""

    def __init__(self, data_dir: Path | str = DEFAULT_DATA_DIR):
        self.data_dir = Path(data_dir)
        self.rides_dir = self.data_dir / "rides"
        self.index_path = self.data_dir / "index.json"
        self.lock = Lock()

    def _load_index(self) -> dict:
        """Load the ride index (maps ride_id -> summary row)."""
        if self.index_path.exists():
            try:
                with self.index_path.open() as f:
                    return json.load(f)
            except (json.JSONDecodeError, OSError):
                logger.warning("Ride index %s is unreadable, rebuilding", self.index_path)
                return {}
        return {}

    def _save_index(self, index: dict) -> None:
        with self.index_path.open("w") as f:
            json.dump(index, f, indent=2)

    def ride_path(self, ride_id: str) -> Path:
        return self.rides_dir / f"{ride_id}.json"

    def save_ride(self, ride: Ride) -> Path:
        """Write a finished ride and add it to the history index.

        Raises:
            StoreError: If the ride could not be written.
        """
        stats = ride.stats()
        summary = RideSummary(
            id=ride.id,
            start_time=ride.start_time,
            duration=stats.duration,
            distance=stats.distance,
            avg_power=stats.avg_power,
            route_name=ride.route_name,
        )
        path = self.ride_path(ride.id)
        with self.lock:
            try:
                self.rides_dir.mkdir(parents=True, exist_ok=True)
                with path.open("w") as f:
                    json.dump(ride_to_dict(ride), f)
                index = self._load_index()
                index[ride.id] = summary.to_dict()
                self._save_index(index)
            except (OSError, TypeError, ValueError) as e:
                raise StoreError(f"Failed to save ride {ride.id}: {e}") from e
        logger.info("Saved ride %s (%d points) to %s", ride.id, len(ride.points), path)
        return path

    def list_rides(self) -> list[RideSummary]:
        """Return saved rides, newest first."""
        with self.lock:
            index = self._load_index()
        rides = [RideSummary.from_dict(row) for row in index.values()]
        rides.sort(key=lambda r: r.start_time, reverse=True)
        return rides

    def load_ride(self, ride_id: str) -> Ride:
        """Load a saved ride.

        Raises:
            StoreError: If the ride does not exist or cannot be parsed.
        """
        path = self.ride_path(ride_id)
        try:
            with path.open() as f:
                return ride_from_dict(json.load(f))
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Failed to load ride {ride_id}: {e}") from e

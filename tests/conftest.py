import os
import queue

import pytest

from gpx_trainer.models import BikeParams, RoutePoint
from gpx_trainer.route import Route
from gpx_trainer.store import StoreError
from gpx_trainer.trainer import TrainerError

SAMPLE_GPX_PATH = os.path.join(
    os.path.dirname(__file__), "functional", "data", "sample_route.gpx"
)

ROAD_CASSETTE = [11, 13, 15, 17, 19, 21, 24, 28]


def make_route(elevations: list[float], spacing_m: float = 100.0, name: str = "Test Route") -> Route:
    """Create a route with exact cumulative distances and the given elevations."""
    base_lat, base_lon = 45.0, 6.0
    lat_delta = spacing_m / 111000
    points = tuple(
        RoutePoint(lat=base_lat + i * lat_delta, lon=base_lon, elevation=elev, distance=i * spacing_m)
        for i, elev in enumerate(elevations)
    )
    return Route(name=name, points=points, total_distance=(len(points) - 1) * spacing_m)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTrainer:
    """In-memory trainer link recording every command it receives."""

    def __init__(self, fail_connect: bool = False, fail_commands: bool = False):
        self.fail_connect = fail_connect
        self.fail_commands = fail_commands
        self.connected = False
        self.disconnect_calls = 0
        self.data = queue.Queue()
        self.shifts = queue.Queue()
        self.resistance_commands: list[float] = []
        self.power_commands: list[float] = []

    def connect(self) -> None:
        if self.fail_connect:
            raise TrainerError("trainer not found")
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False
        self.disconnect_calls += 1

    def is_connected(self) -> bool:
        return self.connected

    def data_queue(self):
        return self.data

    def shift_queue(self):
        return self.shifts

    def set_resistance(self, level: float) -> None:
        if self.fail_commands:
            raise TrainerError("resistance write failed")
        self.resistance_commands.append(level)

    def set_target_power(self, watts: float) -> None:
        if self.fail_commands:
            raise TrainerError("target power write failed")
        self.power_commands.append(watts)


class FakeStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved = []

    def save_ride(self, ride):
        if self.fail:
            raise StoreError("disk full")
        self.saved.append(ride)


@pytest.fixture
def bike_params():
    return BikeParams(
        chainrings=[50, 34],
        cassette=list(ROAD_CASSETTE),
        wheel_circumference=2.1,
        rider_weight=75.0,
        resistance_scaling=0.2,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_trainer():
    return FakeTrainer()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def climbing_route():
    """Flat approach, a steady 5% climb gaining 50m, then flat again."""
    elevations = [100.0, 100.0] + [100.0 + i * 5 for i in range(1, 11)] + [150.0, 150.0]
    return make_route(elevations)

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class Mode(Enum):
    SIM = "SIM"  # route-driven resistance
    ERG = "ERG"  # fixed target power
    FREE = "FREE"  # manual resistance

    def __str__(self) -> str:
        return self.value


@dataclass
class BikeParams:
    chainrings: list[int] = field(default_factory=lambda: [50, 34])
    cassette: list[int] = field(default_factory=lambda: [11, 12, 13, 14, 15, 17, 19, 21, 24, 28])
    wheel_circumference: float = 2.1  # meters
    rider_weight: float = 75.0  # kg (rider only, bike mass is added by the physics model)
    resistance_scaling: float = 0.2  # pedal force (N) -> trainer resistance (0-100)
    gradient_smoothing: float = 0.85  # EMA factor, 0 = instant response


@dataclass(frozen=True)
class EngineState:
    cadence: float  # rpm
    power: float  # watts
    speed: float  # km/h
    resistance: float  # 0-100
    target_power: float  # watts (ERG mode)
    gradient: float  # percent
    gear_ratio: float
    gear_label: str
    mode: Mode
    distance: float  # meters
    elapsed_time: float  # seconds


@dataclass(frozen=True)
class RoutePoint:
    lat: float
    lon: float
    elevation: float  # meters
    distance: float  # cumulative meters from start


@dataclass(frozen=True)
class Climb:
    start_distance: float  # meters
    end_distance: float  # meters
    start_elevation: float  # meters
    end_elevation: float  # meters
    avg_gradient: float  # percent
    max_gradient: float  # percent

    @property
    def length(self) -> float:
        return self.end_distance - self.start_distance

    @property
    def elevation_gain(self) -> float:
        return self.end_elevation - self.start_elevation


@dataclass
class RidePoint:
    timestamp: datetime
    power: float
    cadence: float
    speed: float  # km/h
    lat: float = 0.0
    lon: float = 0.0
    elevation: float = 0.0  # meters
    distance: float = 0.0  # meters
    gradient: float = 0.0  # percent
    gear_label: str = ""


@dataclass
class RideStats:
    duration: timedelta = timedelta(0)
    distance: float = 0.0  # meters
    avg_power: float = 0.0
    max_power: float = 0.0
    avg_cadence: float = 0.0
    avg_speed: float = 0.0  # km/h
    max_speed: float = 0.0  # km/h
    total_ascent: float = 0.0  # meters

"""Simulation engine: virtual drivetrain plus resistance model.

The engine is a small state machine tagged by Mode. Each trainer sample goes
through update(), which returns a fresh EngineState; distance and elapsed time
only advance through tick(), so a paused session can keep computing
resistance without moving the rider along the route.
"""

from gpx_trainer.gears import GearSystem
from gpx_trainer.models import BikeParams, EngineState, Mode
from gpx_trainer.physics import (
    MAX_RESISTANCE,
    MIN_RESISTANCE,
    calculate_resistance,
    clamp,
    resolve_scaling,
    resolve_smoothing,
    smooth_gradient,
    speed_kmh,
)

DEFAULT_MANUAL_RESISTANCE = 20.0
# FREE mode treats the manual level as calibrated for this ratio (roughly 50x20)
REFERENCE_GEAR_RATIO = 2.5


class Engine:
    def __init__(self, params: BikeParams | None = None):
        if params is None:
            params = BikeParams()
        self.params = params
        self.gears = GearSystem(params.chainrings, params.cassette)
        self.scaling_factor = resolve_scaling(params.resistance_scaling)
        self.smoothing_factor = resolve_smoothing(params.gradient_smoothing)
        self.smoothed_gradient = 0.0

        self._mode = Mode.SIM
        self._target_power = 0.0
        self._manual_resistance = DEFAULT_MANUAL_RESISTANCE
        self._distance = 0.0
        self._elapsed_time = 0.0

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def target_power(self) -> float:
        return self._target_power

    @property
    def manual_resistance(self) -> float:
        return self._manual_resistance

    @property
    def distance(self) -> float:
        return self._distance

    @property
    def elapsed_time(self) -> float:
        return self._elapsed_time

    @property
    def gear_ratio(self) -> float:
        return self.gears.ratio()

    @property
    def gear_label(self) -> str:
        return self.gears.label()

    def update(self, cadence: float, power: float, gradient: float) -> EngineState:
        """Compute the ride state for one trainer sample.

        Args:
            cadence: Pedal cadence in rpm from the trainer
            power: Measured power in watts from the trainer
            gradient: Route gradient in percent at the rider's position

        Returns:
            A new EngineState snapshot
        """
        ratio = self.gears.ratio()
        speed = speed_kmh(cadence, ratio, self.params.wheel_circumference)

        resistance = 0.0
        if self._mode is Mode.SIM:
            self.smoothed_gradient = smooth_gradient(
                self.smoothed_gradient, gradient, self.smoothing_factor
            )
            gradient = self.smoothed_gradient
            resistance = calculate_resistance(
                speed, gradient, self.params.rider_weight, ratio, self.scaling_factor
            )
        elif self._mode is Mode.FREE:
            resistance = clamp(
                self._manual_resistance * (ratio / REFERENCE_GEAR_RATIO),
                MIN_RESISTANCE,
                MAX_RESISTANCE,
            )
        # ERG: the trainer holds target power itself, resistance stays 0

        return EngineState(
            cadence=cadence,
            power=power,
            speed=speed,
            resistance=resistance,
            target_power=self._target_power,
            gradient=gradient,
            gear_ratio=ratio,
            gear_label=self.gears.label(),
            mode=self._mode,
            distance=self._distance,
            elapsed_time=self._elapsed_time,
        )

    def tick(self, delta_seconds: float, speed: float) -> None:
        """Advance elapsed time and distance by one sample interval."""
        if delta_seconds <= 0:
            return
        self._elapsed_time += delta_seconds
        self._distance += (speed / 3.6) * delta_seconds

    def set_mode(self, mode: Mode) -> None:
        self._mode = mode

    def set_target_power(self, watts: float) -> None:
        self._target_power = max(0.0, watts)

    def set_manual_resistance(self, level: float) -> None:
        self._manual_resistance = clamp(level, MIN_RESISTANCE, MAX_RESISTANCE)

    def adjust_manual_resistance(self, delta: float) -> None:
        self.set_manual_resistance(self._manual_resistance + delta)

    def shift_up(self) -> None:
        self.gears.shift_up()

    def shift_down(self) -> None:
        self.gears.shift_down()

    def reset(self) -> None:
        """Clear distance and elapsed time."""
        self._distance = 0.0
        self._elapsed_time = 0.0

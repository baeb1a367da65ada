"""Resistance model for a rider on a virtual road.

Forces are computed at the wheel for the combined rider + bike system and then
carried to the pedals through the current gear ratio:

    F_wheel = F_roll + F_drag + F_grade
    F_roll  = Crr * m * g
    F_drag  = 0.5 * rho * CdA * v^2
    F_grade = m * g * gradient / 100

The trainer understands a dimensionless 0-100 resistance level, so the pedal
force is mapped onto that scale with a single user-tunable scaling factor.
"""

G = 9.81  # m/s²
CRR = 0.005  # rolling resistance coefficient (road tyre on smooth tarmac)
CDA = 0.3  # m² (drag coefficient * frontal area, hoods position)
AIR_DENSITY = 1.225  # kg/m³ at sea level
BIKE_WEIGHT_KG = 10.0

DEFAULT_RESISTANCE_SCALING = 0.2
MIN_RESISTANCE_SCALING = 0.1
MAX_RESISTANCE_SCALING = 0.5

DEFAULT_GRADIENT_SMOOTHING = 0.85
MAX_GRADIENT_SMOOTHING = 0.95

MIN_RESISTANCE = 0.0
MAX_RESISTANCE = 100.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def speed_kmh(cadence_rpm: float, gear_ratio: float, wheel_circumference_m: float) -> float:
    """Virtual road speed in km/h for a cadence in a given gear.

    One crank revolution turns the wheel ``gear_ratio`` times, so the distance
    per minute is cadence * ratio * circumference meters.
    """
    if cadence_rpm <= 0:
        return 0.0
    return cadence_rpm * gear_ratio * wheel_circumference_m * 60 / 1000


def wheel_force(speed_kmh: float, gradient_percent: float, weight_kg: float) -> float:
    """Total resisting force at the wheel in newtons.

    Descents reduce the force through a negative grade term, but the result
    never goes below zero (the trainer cannot push the rider).
    """
    mass = weight_kg + BIKE_WEIGHT_KG
    v = speed_kmh / 3.6

    f_roll = CRR * mass * G
    f_drag = 0.5 * AIR_DENSITY * CDA * v**2
    f_grade = mass * G * (gradient_percent / 100)

    return max(0.0, f_roll + f_drag + f_grade)


def pedal_force(wheel_force_n: float, gear_ratio: float) -> float:
    """Force felt at the pedals; harder gears carry more of the wheel load."""
    return wheel_force_n * gear_ratio


def map_force_to_resistance(pedal_force_n: float, scaling_factor: float) -> float:
    """Map a pedal force onto the trainer's 0-100 resistance scale."""
    return clamp(pedal_force_n * scaling_factor, MIN_RESISTANCE, MAX_RESISTANCE)


def smooth_gradient(previous_smoothed: float, raw_gradient: float, factor: float) -> float:
    """Exponential moving average of the route gradient.

    A factor of 0 follows the raw gradient instantly; higher factors trade
    responsiveness for stability against noisy GPS elevation.
    """
    factor = clamp(factor, 0.0, MAX_GRADIENT_SMOOTHING)
    return factor * previous_smoothed + (1 - factor) * raw_gradient


def resolve_scaling(value: float | None) -> float:
    """Return a usable resistance scaling factor from a configured value.

    Unset or zero values fall back to the default, others are clamped into
    the documented 0.1-0.5 range.
    """
    if not value or value <= 0:
        return DEFAULT_RESISTANCE_SCALING
    return clamp(value, MIN_RESISTANCE_SCALING, MAX_RESISTANCE_SCALING)


def resolve_smoothing(value: float | None) -> float:
    """Return a usable gradient smoothing factor from a configured value."""
    if not value or value <= 0:
        return DEFAULT_GRADIENT_SMOOTHING
    return clamp(value, 0.0, MAX_GRADIENT_SMOOTHING)


def calculate_resistance(
    speed: float,
    gradient_percent: float,
    weight_kg: float,
    gear_ratio: float,
    scaling_factor: float = DEFAULT_RESISTANCE_SCALING,
) -> float:
    """Trainer resistance (0-100) for a rider at ``speed`` km/h in a gear."""
    if scaling_factor <= 0:
        scaling_factor = DEFAULT_RESISTANCE_SCALING
    force = wheel_force(speed, gradient_percent, weight_kg)
    return map_force_to_resistance(pedal_force(force, gear_ratio), scaling_factor)

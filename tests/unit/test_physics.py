import pytest

from gpx_trainer.physics import (
    DEFAULT_GRADIENT_SMOOTHING,
    DEFAULT_RESISTANCE_SCALING,
    calculate_resistance,
    map_force_to_resistance,
    pedal_force,
    resolve_scaling,
    resolve_smoothing,
    smooth_gradient,
    speed_kmh,
    wheel_force,
)


class TestSpeed:
    """Tests for speed from cadence and gearing."""

    def test_speed_at_90_rpm(self):
        """90 rpm in 50x17 on a 2.1 m wheel is about 33 km/h."""
        # 90 * 2.94 * 2.1 * 60 / 1000
        assert speed_kmh(90, 2.94, 2.1) == pytest.approx(33.34, abs=0.1)

    def test_zero_cadence(self):
        """No pedaling means no speed."""
        assert speed_kmh(0, 2.94, 2.1) == 0.0

    def test_negative_cadence(self):
        assert speed_kmh(-10, 2.94, 2.1) == 0.0


class TestWheelForce:
    """Tests for the resisting force at the wheel."""

    def test_flat_road_25_kmh(self):
        """Rolling + air drag."""
        assert 12.0 <= wheel_force(25.0, 0.0, 75.0) <= 14.0

    def test_five_percent_climb_15_kmh(self):
        """Rolling + air + gravity."""
        assert 48.0 <= wheel_force(15.0, 5.0, 75.0) <= 50.0

    def test_standstill_is_rolling_only(self):
        """At standstill only rolling resistance remains."""
        assert 4.0 <= wheel_force(0.0, 0.0, 75.0) <= 4.5

    def test_descent_reduces_force(self):
        assert wheel_force(30.0, -2.0, 75.0) < wheel_force(30.0, 0.0, 75.0)

    def test_steep_descent_never_negative(self):
        """Steep descents clamp the force at zero."""
        assert wheel_force(20.0, -15.0, 75.0) == 0.0

    def test_heavier_rider_needs_more_force_uphill(self):
        """Extra mass costs more force uphill."""
        assert wheel_force(15.0, 5.0, 90.0) > wheel_force(15.0, 5.0, 60.0)


class TestPedalForce:
    """Tests for wheel force seen at the pedals."""

    @pytest.mark.parametrize(
        "wheel,ratio,expected",
        [(50.0, 2.5, 125.0), (100.0, 3.0, 300.0), (50.0, 1.0, 50.0)],
    )
    def test_scales_with_gear_ratio(self, wheel, ratio, expected):
        assert pedal_force(wheel, ratio) == pytest.approx(expected)


class TestMapForceToResistance:
    """Tests for force to resistance mapping."""

    def test_linear_in_range(self):
        assert map_force_to_resistance(200, 0.2) == pytest.approx(40.0)

    def test_clamped_high(self):
        """Large forces saturate at 100."""
        assert map_force_to_resistance(600, 0.2) == 100.0

    def test_clamped_low(self):
        assert map_force_to_resistance(-10, 0.2) == 0.0


class TestCalculateResistance:
    """Tests for the composed resistance calculation."""

    def test_flat_road_moderate(self):
        """Flat road riding gives a low, non-zero resistance."""
        resistance = calculate_resistance(30.0, 0.0, 75.0, 2.5)
        assert 0.0 < resistance < 50.0

    def test_climb_harder_than_flat(self):
        """Climbing needs more resistance than flat."""
        assert calculate_resistance(20.0, 5.0, 75.0, 2.5) > calculate_resistance(20.0, 0.0, 75.0, 2.5)

    def test_descent_easier_than_flat(self):
        """Descending needs less resistance than flat."""
        assert calculate_resistance(30.0, -5.0, 75.0, 2.5) < calculate_resistance(30.0, 0.0, 75.0, 2.5)

    def test_extremes_clamped(self):
        """Results stay inside 0-100."""
        assert calculate_resistance(5.0, 20.0, 100.0, 4.5) <= 100.0
        assert calculate_resistance(50.0, -15.0, 75.0, 2.5) >= 0.0

    def test_harder_gear_more_resistance(self):
        """A bigger gear ratio means more resistance."""
        ratios = [1.5, 2.0, 2.5, 3.0, 3.5]
        levels = [calculate_resistance(25.0, 2.0, 75.0, r, 0.2) for r in ratios]
        assert all(a < b for a, b in zip(levels, levels[1:]))

    def test_non_positive_scaling_uses_default(self):
        """Zero or negative scaling falls back to the default."""
        expected = calculate_resistance(25.0, 0.0, 75.0, 2.5, DEFAULT_RESISTANCE_SCALING)
        assert calculate_resistance(25.0, 0.0, 75.0, 2.5, 0.0) == pytest.approx(expected)


class TestSmoothGradient:
    """Tests for the gradient moving average."""

    def test_ema(self):
        """One step blends previous and raw by the factor."""
        assert smooth_gradient(2.0, 10.0, 0.85) == pytest.approx(0.85 * 2.0 + 0.15 * 10.0)

    def test_zero_factor_is_instant(self):
        """Factor 0 follows the raw gradient exactly."""
        assert smooth_gradient(2.0, 10.0, 0.0) == 10.0

    def test_converges_to_raw(self):
        """Repeated smoothing approaches the raw value."""
        smoothed = 0.0
        for _ in range(200):
            smoothed = smooth_gradient(smoothed, 6.0, 0.85)
        assert smoothed == pytest.approx(6.0, abs=1e-3)

    def test_factor_capped(self):
        """Factors above 0.95 are capped."""
        # A factor of 1.0 would freeze the gradient forever
        assert smooth_gradient(0.0, 10.0, 1.0) == pytest.approx(0.5)


class TestResolveFactors:
    """Tests for resolving configured factors."""

    @pytest.mark.parametrize("value", [None, 0.0, -0.1])
    def test_unset_scaling_defaults(self, value):
        """Unset or zero scaling becomes 0.2."""
        assert resolve_scaling(value) == DEFAULT_RESISTANCE_SCALING

    def test_scaling_clamped_to_documented_range(self):
        """Scaling is clamped into 0.1-0.5."""
        assert resolve_scaling(0.05) == 0.1
        assert resolve_scaling(0.9) == 0.5
        assert resolve_scaling(0.3) == 0.3

    @pytest.mark.parametrize("value", [None, 0.0])
    def test_unset_smoothing_defaults(self, value):
        """Unset or zero smoothing becomes 0.85."""
        assert resolve_smoothing(value) == DEFAULT_GRADIENT_SMOOTHING

    def test_smoothing_kept_or_capped(self):
        assert resolve_smoothing(0.7) == 0.7
        assert resolve_smoothing(0.99) == 0.95

"""Tests for the simulation engine."""

import pytest

from gpx_trainer.models import BikeParams, Mode
from gpx_trainer.simulation import DEFAULT_MANUAL_RESISTANCE, Engine


@pytest.fixture
def engine(bike_params):
    return Engine(bike_params)


class TestUpdate:
    """Tests for engine updates in each mode."""

    def test_sim_mode_pedaling(self, engine):
        """SIM mode gives speed and a resistance from the physics."""
        state = engine.update(90, 200, 0)
        assert state.speed > 0
        assert state.cadence == 90
        assert state.power == 200
        assert state.resistance > 0
        assert state.mode is Mode.SIM

    def test_end_to_end_50x17(self, engine):
        """90 rpm in 50x17 on the flat gives a plausible state."""
        engine.gears.set_rear(3)  # 17t
        state = engine.update(90, 200, 0)
        assert state.gear_label == "50x17"
        assert state.gear_ratio == pytest.approx(2.94, abs=0.01)
        assert state.speed == pytest.approx(33.34, abs=0.1)
        assert 0 < state.resistance < 50

    def test_state_is_a_snapshot(self, engine):
        """Each update returns a new state object."""
        first = engine.update(90, 200, 0)
        engine.shift_up()
        engine.tick(1.0, 30.0)
        assert first.distance == 0.0
        assert first.gear_label == "50x19"

    def test_harder_gear_more_resistance_sim(self, engine):
        """A harder gear raises SIM resistance."""
        engine.gears.set_rear(5)  # 21t
        easy = engine.update(90, 200, 2.0)
        engine.gears.set_rear(1)  # 13t
        hard = engine.update(90, 200, 2.0)
        assert hard.resistance > easy.resistance
        assert hard.speed > easy.speed

    def test_harder_gear_more_resistance_free(self, engine):
        """A harder gear raises FREE resistance."""
        engine.set_mode(Mode.FREE)
        engine.set_manual_resistance(30)
        engine.gears.set_rear(5)
        easy = engine.update(80, 150, 0)
        engine.gears.set_rear(1)
        hard = engine.update(80, 150, 0)
        assert hard.resistance > easy.resistance

    def test_free_mode_formula(self, engine):
        """FREE resistance scales manual resistance by gear ratio."""
        engine.set_mode(Mode.FREE)
        engine.set_manual_resistance(30)
        engine.gears.set_rear(3)
        state = engine.update(80, 150, 12.0)
        assert state.resistance == pytest.approx(30 * (50 / 17) / 2.5)
        assert state.gradient == 12.0

    def test_free_mode_clamped(self, engine):
        """FREE resistance stays inside 0-100."""
        engine.set_mode(Mode.FREE)
        engine.set_manual_resistance(100)
        engine.gears.set_rear(0)  # 50x11, ratio 4.5
        assert engine.update(80, 150, 0).resistance == 100.0

    def test_erg_mode_carries_target_power(self, engine):
        """ERG mode reports the target power and no resistance."""
        engine.set_mode(Mode.ERG)
        engine.set_target_power(250)
        state = engine.update(90, 200, 8.0)
        assert state.mode is Mode.ERG
        assert state.target_power == 250
        assert state.resistance == 0


class TestGradientSmoothing:
    """Tests for SIM-mode gradient smoothing."""

    @pytest.mark.parametrize("configured,expected", [(0.0, 0.85), (None, 0.85), (0.7, 0.7)])
    def test_factor_initialization(self, configured, expected):
        """Configured factors are resolved on construction."""
        engine = Engine(BikeParams(chainrings=[50], cassette=[11, 13, 15, 17], gradient_smoothing=configured))
        assert engine.smoothing_factor == expected
        assert engine.smoothed_gradient == 0.0

    def test_sim_mode_smooths_gradient(self, engine):
        """Gradient changes are eased in."""
        state = engine.update(90, 200, 10.0)
        assert state.gradient == pytest.approx(1.5)
        state = engine.update(90, 200, 10.0)
        assert state.gradient == pytest.approx(0.85 * 1.5 + 1.5)

    def test_other_modes_leave_smoothing_alone(self, engine):
        """FREE updates do not move the smoothed gradient."""
        engine.set_mode(Mode.FREE)
        engine.update(90, 200, 10.0)
        assert engine.smoothed_gradient == 0.0


class TestConfiguration:
    """Tests for engine setters and defaults."""

    def test_defaults(self, engine):
        """New engines start in SIM with manual resistance 20."""
        assert engine.mode is Mode.SIM
        assert engine.manual_resistance == DEFAULT_MANUAL_RESISTANCE
        assert engine.target_power == 0.0

    def test_zero_scaling_falls_back(self):
        """Zero scaling uses the default."""
        engine = Engine(BikeParams(resistance_scaling=0.0))
        assert engine.scaling_factor == 0.2

    def test_manual_resistance_clamped(self, engine):
        """Manual resistance stays inside 0-100."""
        engine.set_manual_resistance(150)
        assert engine.manual_resistance == 100
        engine.adjust_manual_resistance(-250)
        assert engine.manual_resistance == 0
        engine.adjust_manual_resistance(5)
        assert engine.manual_resistance == 5

    def test_negative_target_power(self, engine):
        """Negative target power becomes zero."""
        engine.set_target_power(-50)
        assert engine.target_power == 0.0

    def test_default_params(self):
        engine = Engine()
        assert engine.gear_label == "50x17"


class TestShiftingAndTicks:
    """Tests for shifting and time integration."""

    def test_shift_round_trip(self, engine):
        """Shifting up then down returns to the same gear."""
        initial = engine.gear_ratio
        engine.shift_up()
        assert engine.gear_ratio > initial
        engine.shift_down()
        assert engine.gear_ratio == pytest.approx(initial)

    def test_tick_advances_distance_and_time(self, engine):
        """Ticks integrate speed into distance."""
        engine.tick(2.0, 36.0)
        assert engine.elapsed_time == 2.0
        assert engine.distance == pytest.approx(20.0)
        assert engine.update(0, 0, 0).distance == pytest.approx(20.0)

    def test_tick_ignores_non_positive_delta(self, engine):
        """Zero or negative deltas are ignored."""
        engine.tick(-1.0, 36.0)
        engine.tick(0.0, 36.0)
        assert engine.elapsed_time == 0.0
        assert engine.distance == 0.0

    def test_reset(self, engine):
        """Reset clears distance and time."""
        engine.tick(10.0, 30.0)
        engine.reset()
        assert engine.distance == 0.0
        assert engine.elapsed_time == 0.0

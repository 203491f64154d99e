"""
Hover Thrust Estimator Module - Unit Tests
"""
import logging

import numpy as np
import pytest

from hover_thrust import (
    HoverThrustEstimator,
    HoverThrustEstimatorConfig,
    Hysteresis,
    predicted_acc_z,
)


def fly(hte, n, hover_thrust_true=0.5, start_us=0, dt_us=20_000, noise=0.3, seed=42, **kwargs):
    """Feed ``n`` in-air samples consistent with ``hover_thrust_true``."""
    rng = np.random.default_rng(seed)
    estimates = []
    for k in range(n):
        t_s = k * dt_us * 1e-6
        thrust = hover_thrust_true + 0.05 * np.sin(2 * np.pi * 0.5 * t_s)
        acc_z = predicted_acc_z(thrust, hover_thrust_true) + rng.normal(0.0, noise)
        estimates.append(hte.update(start_us + k * dt_us, acc_z, thrust, **kwargs))
    return estimates


class TestConfig:
    """Test estimator module configuration."""

    def test_defaults(self):
        cfg = HoverThrustEstimatorConfig()
        assert cfg.hover_thrust == 0.5
        assert cfg.accel_gate == 3.0
        assert cfg.vz_threshold == 2.0
        assert cfg.vxy_threshold == 10.0

    def test_ekf_config_squares_std_devs(self):
        cfg = HoverThrustEstimatorConfig(hover_thrust_std_dev=0.2, process_noise_std_dev=0.01)
        ekf_cfg = cfg.ekf_config()
        assert ekf_cfg.hover_thrust_var == pytest.approx(0.04)
        assert ekf_cfg.process_noise_var == pytest.approx(1e-4)
        assert ekf_cfg.gate_size == 3.0

    def test_dict_config(self):
        hte = HoverThrustEstimator({"hover_thrust": 0.4, "accel_gate": 4.0})
        assert hte.hover_thrust == 0.4
        assert hte.ekf.gate_size == 4.0

    @pytest.mark.parametrize("kwargs", [
        {"hover_thrust": 0.0},
        {"hover_thrust": 1.0},
        {"hover_thrust_std_dev": -0.1},
        {"accel_gate": -1.0},
        {"vz_threshold": 0.0},
        {"valid_hysteresis_s": -1.0},
        {"dt_min": 0.5, "dt_max": 0.1},
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            HoverThrustEstimatorConfig(**kwargs)


class TestHysteresis:
    """Test the validity hysteresis."""

    def test_delayed_true(self):
        hyst = Hysteresis(2.0)
        assert not hyst.update(True, 0)
        assert not hyst.update(True, 1_000_000)
        assert hyst.update(True, 2_000_000)
        assert hyst.state

    def test_immediate_false(self):
        hyst = Hysteresis(2.0)
        hyst.update(True, 0)
        hyst.update(True, 3_000_000)
        assert not hyst.update(False, 3_020_000)

    def test_interrupted_request_restarts(self):
        hyst = Hysteresis(1.0)
        hyst.update(True, 0)
        hyst.update(False, 900_000)
        assert not hyst.update(True, 1_000_000)
        assert not hyst.update(True, 1_900_000)
        assert hyst.update(True, 2_000_000)

    def test_zero_time(self):
        assert Hysteresis(0.0).update(True, 0)


class TestTiming:
    """Test the prediction step derived from timestamps."""

    def test_first_sample_latches_timestamp(self):
        hte = HoverThrustEstimator()
        P = hte.ekf.hover_thrust_var
        estimate = hte.update(1_000_000, 0.0, 0.5)

        assert not estimate.fused
        assert estimate.timestamp_us == 1_000_000
        assert hte.ekf.hover_thrust_var == P

    def test_dt_from_timestamps(self):
        hte = HoverThrustEstimator()
        hte.update(0, 0.0, 0.5)
        estimate = hte.update(20_000, 0.0, 0.5)
        assert hte.ekf.dt == pytest.approx(0.02)
        assert estimate.fused

    def test_large_gap_constrained(self, caplog):
        hte = HoverThrustEstimator()
        hte.update(0, 0.0, 0.5)
        with caplog.at_level(logging.WARNING, logger="hover_thrust.estimator"):
            hte.update(1_000_000, 0.0, 0.5)
        assert hte.ekf.dt == 0.2
        assert "constrained" in caplog.text

    def test_repeated_timestamp_constrained(self):
        hte = HoverThrustEstimator()
        hte.update(500_000, 0.0, 0.5)
        hte.update(500_000, 0.0, 0.5)
        assert hte.ekf.dt == 0.002


class TestFusionConditions:
    """Test when acceleration is fused."""

    def _flying(self):
        hte = HoverThrustEstimator()
        hte.update(0, 0.0, 0.5)
        return hte

    def test_nominal(self):
        estimate = self._flying().update(20_000, 0.0, 0.5)
        assert estimate.fused

    def test_landed_no_prediction(self):
        hte = HoverThrustEstimator()
        hte.update(0, 0.0, 0.0, in_air=False)
        P = hte.ekf.hover_thrust_var
        estimate = hte.update(20_000, 0.0, 0.5, in_air=False)
        assert not estimate.fused
        assert hte.ekf.hover_thrust_var == P

    def test_high_vertical_speed(self):
        """Fast climbs are not fused but the variance still grows"""
        hte = self._flying()
        P = hte.ekf.hover_thrust_var
        estimate = hte.update(20_000, 0.0, 0.5, vz=3.0)
        assert not estimate.fused
        assert hte.ekf.hover_thrust_var > P

    def test_high_horizontal_speed(self):
        estimate = self._flying().update(20_000, 0.0, 0.5, vxy=12.0)
        assert not estimate.fused

    @pytest.mark.parametrize("acc_z, thrust", [
        (0.0, 0.0),
        (0.0, 1.2),
        (0.0, -0.3),
        (float("nan"), 0.5),
        (0.0, float("inf")),
    ])
    def test_invalid_inputs(self, acc_z, thrust):
        hte = self._flying()
        estimate = hte.update(20_000, acc_z, thrust)
        assert not estimate.fused
        assert hte.hover_thrust == 0.5

    def test_spike_not_fused(self):
        hte = HoverThrustEstimator()
        fly(hte, 100)
        estimate = hte.update(100 * 20_000, 50.0, 0.5)
        assert not estimate.fused
        assert estimate.innov_test_ratio > 1.0


class TestLifecycle:
    """Test convergence, validity and landing reset."""

    def test_converges(self):
        hte = HoverThrustEstimator()
        estimates = fly(hte, 1000, hover_thrust_true=0.6)
        assert abs(estimates[-1].hover_thrust - 0.6) < 0.01

    def test_validity_hysteresis(self):
        """Valid only after the variance stayed low for the hysteresis time"""
        hte = HoverThrustEstimator()
        estimates = fly(hte, 151)

        for estimate in estimates:
            if estimate.timestamp_us < 2_000_000:
                assert not estimate.valid
        assert estimates[-1].timestamp_us == 3_000_000
        assert estimates[-1].valid
        assert hte.valid

    def test_landing_resets(self):
        hte = HoverThrustEstimator()
        fly(hte, 500, hover_thrust_true=0.6)
        assert hte.valid
        assert hte.hover_thrust > 0.55
        assert hte.ekf.status.innov_var > 0.0

        estimate = hte.update(500 * 20_000, 0.0, 0.0, in_air=False)

        assert not hte.in_air
        assert estimate.hover_thrust == 0.5
        assert estimate.hover_thrust_var == pytest.approx(0.01)
        assert estimate.accel_noise_var == 5.0
        assert not estimate.valid
        assert not estimate.fused
        # No in-flight innovation is reported on the ground
        assert (estimate.innov, estimate.innov_var, estimate.innov_test_ratio) == (0.0, 0.0, 0.0)

    def test_landing_logged(self, caplog):
        hte = HoverThrustEstimator()
        fly(hte, 10)
        with caplog.at_level(logging.INFO, logger="hover_thrust.estimator"):
            hte.update(10 * 20_000, 0.0, 0.0, in_air=False)
        assert "Landed" in caplog.text

    def test_reset(self):
        hte = HoverThrustEstimator()
        fly(hte, 200, hover_thrust_true=0.6)
        hte.reset()

        assert hte.hover_thrust == 0.5
        assert not hte.in_air
        assert not hte.valid
        assert not hte.update(0, 0.0, 0.5).fused


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

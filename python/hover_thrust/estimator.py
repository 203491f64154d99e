"""
Hover Thrust Estimator - Estimator Module
=========================================

The control-loop task that owns a ``ZeroOrderHoverThrustEkf``:

- converts sample timestamps into a bounded prediction step
- fuses acceleration only when the vehicle is flying and the
  measurement can be trusted (finite, thrust in range, low velocity)
- resets the filter on landing
- flags the estimate as valid once its variance stayed low long enough

Usage:
    hte = HoverThrustEstimator(HoverThrustEstimatorConfig(hover_thrust=0.45))
    for sample in log:
        estimate = hte.update(sample.timestamp_us, sample.acc_z, sample.thrust,
                              vz=sample.vz, in_air=sample.in_air)
        if estimate.valid:
            controller.set_hover_thrust(estimate.hover_thrust)

License: MIT
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

import numpy as np

from .ekf import ZeroOrderHoverThrustEkf, HoverThrustEkfConfig

logger = logging.getLogger(__name__)


@dataclass
class HoverThrustEstimatorConfig:
    """
    Estimator module parameters.

    Args:
        hover_thrust: Hover thrust used at start and after landing [0, 1]
        hover_thrust_std_dev: Initial hover thrust uncertainty
        process_noise_std_dev: Hover thrust process noise [1/s]
        accel_gate: Innovation gate size [std-dev]
        vz_threshold: Max vertical speed for fusion [m/s]
        vxy_threshold: Max horizontal speed for fusion [m/s]
        valid_var_threshold: Variance below which the estimate is usable
        valid_hysteresis_s: Time the variance must stay low before valid [s]
        dt_min, dt_max: Bounds on the prediction step [s]
    """
    hover_thrust: float = 0.5
    hover_thrust_std_dev: float = 0.1
    process_noise_std_dev: float = 0.0036
    accel_gate: float = 3.0
    vz_threshold: float = 2.0
    vxy_threshold: float = 10.0
    valid_var_threshold: float = 1e-3
    valid_hysteresis_s: float = 2.0
    dt_min: float = 0.002
    dt_max: float = 0.2

    def __post_init__(self):
        if not 0.0 < self.hover_thrust < 1.0:
            raise ValueError(f"hover_thrust must be in (0, 1), got {self.hover_thrust}")
        if self.hover_thrust_std_dev < 0.0 or self.process_noise_std_dev < 0.0:
            raise ValueError("Standard deviations must be non-negative")
        if self.accel_gate <= 0.0:
            raise ValueError(f"accel_gate must be positive, got {self.accel_gate}")
        if self.vz_threshold <= 0.0 or self.vxy_threshold <= 0.0:
            raise ValueError("Velocity thresholds must be positive")
        if self.valid_hysteresis_s < 0.0:
            raise ValueError(f"valid_hysteresis_s must be >= 0, got {self.valid_hysteresis_s}")
        if not 0.0 < self.dt_min <= self.dt_max:
            raise ValueError(f"Invalid dt range [{self.dt_min}, {self.dt_max}]")

    def ekf_config(self) -> HoverThrustEkfConfig:
        """Initial EKF tuning derived from the module parameters."""
        return HoverThrustEkfConfig(
            hover_thrust=self.hover_thrust,
            hover_thrust_var=self.hover_thrust_std_dev ** 2,
            process_noise_var=self.process_noise_std_dev ** 2,
            gate_size=self.accel_gate,
        )


@dataclass(frozen=True)
class HoverThrustEstimate:
    """Output of one estimator module cycle."""
    timestamp_us: int
    hover_thrust: float
    hover_thrust_var: float
    innov: float
    innov_var: float
    innov_test_ratio: float
    accel_noise_var: float
    valid: bool
    fused: bool


class Hysteresis:
    """
    Boolean state that turns true only after the input stayed true for
    ``time_from_false_s``; it turns false immediately.
    """

    def __init__(self, time_from_false_s: float):
        self.time_from_false_s = time_from_false_s
        self._state = False
        self._requested_since_us: Optional[int] = None

    @property
    def state(self) -> bool:
        return self._state

    def update(self, requested: bool, now_us: int) -> bool:
        if not requested:
            self._state = False
            self._requested_since_us = None
            return self._state

        if self._requested_since_us is None:
            self._requested_since_us = now_us

        if now_us - self._requested_since_us >= self.time_from_false_s * 1e6:
            self._state = True

        return self._state

    def reset(self):
        self._state = False
        self._requested_since_us = None


class HoverThrustEstimator:
    """
    Hover thrust estimation task.

    Call ``update`` once per new acceleration sample with the thrust
    commanded at that time.
    """

    def __init__(self, config: Optional[Union[HoverThrustEstimatorConfig, Dict]] = None):
        if config is None:
            config = HoverThrustEstimatorConfig()
        elif isinstance(config, dict):
            config = HoverThrustEstimatorConfig(**config)
        self.config = config

        self.ekf = ZeroOrderHoverThrustEkf(config.ekf_config())
        self._valid_hysteresis = Hysteresis(config.valid_hysteresis_s)
        self._timestamp_last: Optional[int] = None
        self._in_air = False

    @property
    def valid(self) -> bool:
        return self._valid_hysteresis.state

    @property
    def hover_thrust(self) -> float:
        return self.ekf.get_hover_thrust_estimate()

    @property
    def in_air(self) -> bool:
        return self._in_air

    def update(self,
               timestamp_us: int,
               acc_z: float,
               thrust: float,
               vz: float = 0.0,
               vxy: float = 0.0,
               in_air: bool = True) -> HoverThrustEstimate:
        """
        Run one estimation cycle.

        Args:
            timestamp_us: Sample time [us]
            acc_z: Vertical acceleration, up positive [m/s^2]
            thrust: Commanded normalized collective thrust [0, 1]
            vz: Vertical velocity [m/s]
            vxy: Horizontal speed [m/s]
            in_air: Land detector output

        Returns:
            HoverThrustEstimate for this cycle
        """
        if self._in_air and not in_air:
            self._reset_on_landing()
        elif in_air and not self._in_air:
            logger.info("Takeoff detected, hover thrust %.3f", self.hover_thrust)
        self._in_air = in_air

        if self._timestamp_last is None:
            self._timestamp_last = timestamp_us
            return self._publish(timestamp_us, fused=False)

        dt = self._compute_dt(timestamp_us)
        self._timestamp_last = timestamp_us

        fused = False
        if in_air:
            self.ekf.predict(dt)

            if self._can_fuse(acc_z, thrust, vz, vxy):
                status = self.ekf.fuse_acc_z(acc_z, thrust)
                fused = status.accepted
            else:
                logger.debug("Fusion skipped: acc_z=%s thrust=%s vz=%s vxy=%s",
                             acc_z, thrust, vz, vxy)

        self._update_validity(timestamp_us)
        return self._publish(timestamp_us, fused)

    def reset(self):
        """Return to the initial state, as before the first sample."""
        self.ekf = ZeroOrderHoverThrustEkf(self.config.ekf_config())
        self._valid_hysteresis.reset()
        self._timestamp_last = None
        self._in_air = False

    def _compute_dt(self, timestamp_us: int) -> float:
        dt = (timestamp_us - self._timestamp_last) * 1e-6
        if not self.config.dt_min <= dt <= self.config.dt_max:
            logger.warning("Sample interval %.4f s outside [%.3f, %.3f] s, constrained",
                           dt, self.config.dt_min, self.config.dt_max)
            dt = float(np.clip(dt, self.config.dt_min, self.config.dt_max))
        return dt

    def _can_fuse(self, acc_z: float, thrust: float, vz: float, vxy: float) -> bool:
        if not np.all(np.isfinite([acc_z, thrust, vz, vxy])):
            return False
        if not 0.0 < thrust <= 1.0:
            return False
        return abs(vz) < self.config.vz_threshold and abs(vxy) < self.config.vxy_threshold

    def _update_validity(self, timestamp_us: int):
        was_valid = self._valid_hysteresis.state
        requested = self._in_air and self.ekf.hover_thrust_var < self.config.valid_var_threshold
        valid = self._valid_hysteresis.update(requested, timestamp_us)

        if valid != was_valid:
            logger.info("Hover thrust estimate %s (%.3f, var %.2e)",
                        "valid" if valid else "invalid",
                        self.hover_thrust, self.ekf.hover_thrust_var)

    def _reset_on_landing(self):
        logger.info("Landed, resetting hover thrust to %.3f", self.config.hover_thrust)
        self.ekf.set_hover_thrust(self.config.hover_thrust)
        self.ekf.set_hover_thrust_std_dev(self.config.hover_thrust_std_dev)
        self.ekf.reset_accel_noise()
        self.ekf.reset_innovation()
        self._valid_hysteresis.reset()

    def _publish(self, timestamp_us: int, fused: bool) -> HoverThrustEstimate:
        status = self.ekf.status
        return HoverThrustEstimate(
            timestamp_us=timestamp_us,
            hover_thrust=status.hover_thrust,
            hover_thrust_var=status.hover_thrust_var,
            innov=status.innov,
            innov_var=status.innov_var,
            innov_test_ratio=status.innov_test_ratio,
            accel_noise_var=status.accel_noise_var,
            valid=self.valid,
            fused=fused,
        )

"""
Hover Thrust Estimator - Zero-Order Hover Thrust EKF
====================================================

Single-state hover thrust estimator.

    state: hover thrust (Th)

Vertical acceleration is used as a measurement and the current thrust
T[k] enters the measurement model. The state is noise driven
(transition matrix A = 1):

    x[k+1] = A * x[k] + v      v ~ N(0, Q)
    y[k]   = h(u, x) + w       w ~ N(0, R)

    h(u, x)[k] = g * T[k] / Th[k] - g
    H[k]       = -g * T[k] / Th[k]**2

Each control cycle calls ``predict`` once, then ``fuse_acc_z`` for every
new acceleration sample. Measurements failing the innovation gate are
reported in the returned status but change nothing.

Deviations from the bare model:
- Th is constrained to [hover_thrust_min, hover_thrust_max] after each
  update, which keeps H finite.
- The state variance is constrained to [var_min, var_max] after each update.
- R is learned with a low-pass (see ``adaptive_noise``) and bounded.
- Degenerate settings (zero innovation variance, zero gate, negative dt)
  never raise: they yield inf or NaN, and a NaN test ratio rejects the
  measurement.

Example:
    >>> ekf = ZeroOrderHoverThrustEkf()
    >>> ekf.predict(0.02)
    >>> status = ekf.fuse_acc_z(acc_z=0.0, thrust=0.5)
    >>> status.hover_thrust
    0.5

License: MIT
"""

import logging
from dataclasses import dataclass, field, asdict, astuple
from typing import Dict, Optional, Tuple, Union

import numpy as np

from .adaptive_noise import AccelNoiseConfig, AccelNoiseEstimator, ACCEL_NOISE_RESET_VAR
from .gating import innovation_variance, innovation_test_ratio, is_test_ratio_passing
from .models import predicted_acc_z, linearize

logger = logging.getLogger(__name__)


@dataclass
class HoverThrustEkfConfig:
    """
    Initial filter tuning.

    Args:
        hover_thrust: Initial hover thrust guess [0, 1]
        hover_thrust_var: Initial hover thrust uncertainty (thrust^2)
        process_noise_var: Hover thrust process noise (thrust^2/s^2)
        accel_noise_var: Initial acceleration variance (m^2/s^4), used as given
            and only bounded by ``noise`` after the first accepted fusion
        gate_size: Innovation gate in standard deviations
        dt: Nominal prediction period used before the first predict [s]
        hover_thrust_min, hover_thrust_max: State constraint after updates
        var_min, var_max: State variance constraint after updates
        noise: Accelerometer noise learning configuration
    """
    hover_thrust: float = 0.5
    hover_thrust_var: float = 0.01
    process_noise_var: float = 0.25e-6
    accel_noise_var: float = ACCEL_NOISE_RESET_VAR
    gate_size: float = 3.0
    dt: float = 0.02
    hover_thrust_min: float = 0.1
    hover_thrust_max: float = 0.9
    var_min: float = 1e-10
    var_max: float = 1.0
    noise: AccelNoiseConfig = field(default_factory=AccelNoiseConfig)

    def __post_init__(self):
        if isinstance(self.noise, dict):
            self.noise = AccelNoiseConfig(**self.noise)
        if not 0.0 < self.hover_thrust_min < self.hover_thrust_max:
            raise ValueError(
                f"Invalid hover thrust range [{self.hover_thrust_min}, {self.hover_thrust_max}]")
        if not self.hover_thrust_min <= self.hover_thrust <= self.hover_thrust_max:
            raise ValueError(f"Initial hover thrust {self.hover_thrust} outside "
                             f"[{self.hover_thrust_min}, {self.hover_thrust_max}]")
        if not 0.0 <= self.var_min <= self.var_max:
            raise ValueError(f"Invalid variance range [{self.var_min}, {self.var_max}]")
        for name in ("hover_thrust_var", "process_noise_var", "accel_noise_var"):
            if getattr(self, name) < 0.0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.gate_size <= 0.0:
            raise ValueError(f"gate_size must be positive, got {self.gate_size}")
        if self.dt <= 0.0:
            raise ValueError(f"dt must be positive, got {self.dt}")


@dataclass(frozen=True)
class HoverThrustStatus:
    """
    Snapshot returned by every fusion.

    Field order is fixed; logging consumers rely on it.
    """
    hover_thrust: float
    hover_thrust_var: float
    innov: float
    innov_var: float
    innov_test_ratio: float
    accel_noise_var: float

    @property
    def accepted(self) -> bool:
        """True when the measurement passed the innovation gate."""
        return is_test_ratio_passing(self.innov_test_ratio)

    def as_tuple(self) -> Tuple[float, ...]:
        return astuple(self)

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


class ZeroOrderHoverThrustEkf:
    """
    Zero-order hold hover thrust Kalman filter.

    Not thread-safe: one instance belongs to one control loop.
    """

    def __init__(self, config: Optional[Union[HoverThrustEkfConfig, Dict]] = None):
        if config is None:
            config = HoverThrustEkfConfig()
        elif isinstance(config, dict):
            config = HoverThrustEkfConfig(**config)
        self.config = config

        self._hover_thr = config.hover_thrust
        self._gate_size = config.gate_size
        self._P = config.hover_thrust_var
        self._Q = config.process_noise_var
        self._dt = config.dt
        self._noise = AccelNoiseEstimator(config.accel_noise_var, config.noise)

        # Last innovation, reported by the status property
        self.reset_innovation()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_process_noise_std_dev(self, process_noise: float):
        self._Q = process_noise * process_noise

    def set_measurement_noise_std_dev(self, measurement_noise: float):
        """
        Overwrite the learned R. The value is not checked against
        [R_min, R_max]; the next accepted fusion brings it back in range.
        """
        self._noise.R = measurement_noise * measurement_noise

    def set_hover_thrust_std_dev(self, hover_thrust_noise: float):
        self._P = hover_thrust_noise * hover_thrust_noise

    def set_accel_innov_gate(self, gate_size: float):
        self._gate_size = gate_size

    def set_hover_thrust(self, hover_thrust: float):
        """Re-initialize the state, e.g. with the configured value after landing."""
        self._hover_thr = self._constrain_hover_thrust(hover_thrust)

    def reset_accel_noise(self):
        self._noise.reset(ACCEL_NOISE_RESET_VAR)

    def reset_innovation(self):
        """Forget the last innovation so the status no longer reports it."""
        self._innov = 0.0
        self._innov_var = 0.0
        self._innov_test_ratio = 0.0

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_hover_thrust_estimate(self) -> float:
        return self._hover_thr

    @property
    def hover_thrust(self) -> float:
        return self._hover_thr

    @property
    def hover_thrust_var(self) -> float:
        return self._P

    @property
    def process_noise_var(self) -> float:
        return self._Q

    @property
    def accel_noise_var(self) -> float:
        return self._noise.R

    @property
    def gate_size(self) -> float:
        return self._gate_size

    @property
    def dt(self) -> float:
        return self._dt

    @property
    def status(self) -> HoverThrustStatus:
        """Current state with the innovation of the last fusion."""
        return self._pack_status(self._innov, self._innov_var, self._innov_test_ratio)

    # ------------------------------------------------------------------
    # Filter
    # ------------------------------------------------------------------

    def predict(self, dt: float):
        """
        Propagate the state variance over ``dt`` seconds.

        The state is constant; only its uncertainty grows.
        """
        self._P += self._Q * dt * dt
        self._dt = dt

    def fuse_acc_z(self, acc_z: float, thrust: float) -> HoverThrustStatus:
        """
        Fuse one vertical acceleration sample.

        Args:
            acc_z: Measured vertical acceleration, up positive [m/s^2]
            thrust: Commanded normalized thrust [0, 1]

        Returns:
            HoverThrustStatus (also returned when the sample is rejected)
        """
        acc_z_pred, H = linearize(thrust, self._hover_thr)
        innov = acc_z - acc_z_pred
        innov_var = innovation_variance(H, self._P, self._noise.R)
        K = self._compute_kalman_gain(H, innov_var)
        test_ratio = innovation_test_ratio(innov, innov_var, self._gate_size)

        if is_test_ratio_passing(test_ratio):
            self._update_state(K, innov)
            self._update_state_covariance(K, H)

            # Residual differs from the innovation since the hover thrust changed
            residual = acc_z - predicted_acc_z(thrust, self._hover_thr)
            self._noise.update(residual, H, self._P, self._dt)
        else:
            logger.debug("Rejected acc_z=%.3f (thrust=%.3f): test ratio %.2f",
                         acc_z, thrust, test_ratio)

        self._innov = innov
        self._innov_var = innov_var
        self._innov_test_ratio = test_ratio

        return self._pack_status(innov, innov_var, test_ratio)

    def _compute_kalman_gain(self, H: float, innov_var: float) -> float:
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(np.divide(self._P * H, innov_var))

    def _update_state(self, K: float, innov: float):
        self._hover_thr = self._constrain_hover_thrust(self._hover_thr + K * innov)

    def _update_state_covariance(self, K: float, H: float):
        P = (1.0 - K * H) * self._P
        self._P = min(max(P, self.config.var_min), self.config.var_max)

    def _constrain_hover_thrust(self, hover_thrust: float) -> float:
        return min(max(hover_thrust, self.config.hover_thrust_min), self.config.hover_thrust_max)

    def _pack_status(self, innov: float, innov_var: float, innov_test_ratio: float) -> HoverThrustStatus:
        return HoverThrustStatus(
            hover_thrust=self._hover_thr,
            hover_thrust_var=self._P,
            innov=innov,
            innov_var=innov_var,
            innov_test_ratio=innov_test_ratio,
            accel_noise_var=self._noise.R,
        )

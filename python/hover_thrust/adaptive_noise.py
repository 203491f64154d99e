"""
Hover Thrust Estimator - Adaptive Accelerometer Noise
====================================================

Online estimation of the acceleration measurement variance R.

The vibration level seen by the accelerometer changes with the flight
regime (motor speed, airframe resonance, turbulence), so a fixed R either
makes the filter sluggish in calm air or overconfident in rough air.

Algorithm (first-order low-pass on the post-fit residual):

    alpha = dt / (tau + dt)
    R_k   = (1 - alpha) * R_{k-1} + alpha * (r_k**2 + H * P_k * H)

where r_k is the residual evaluated *after* the state update and P_k the
updated state variance. For a consistent filter E[r**2] = R - H * P * H, so
the blended term is an unbiased single-sample estimate of R. The result is
kept inside [R_min, R_max] so the filter never becomes overconfident.

Usage:
    estimator = AccelNoiseEstimator()
    R = estimator.update(residual, H, state_var, dt)

License: MIT
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

# Time constant of the measurement noise learning [s]
NOISE_LEARNING_TIME_CONSTANT = 0.5

# Variance used after a reset: accelerometer distrusted [m^2/s^4]
ACCEL_NOISE_RESET_VAR = 5.0


@dataclass
class AccelNoiseConfig:
    """Configuration for accelerometer noise adaptation."""

    # Low-pass time constant [s]
    time_constant: float = NOISE_LEARNING_TIME_CONSTANT

    # Bounds on the learned variance [m^2/s^4]
    R_min: float = 1.0
    R_max: float = 400.0

    def __post_init__(self):
        if self.time_constant <= 0.0:
            raise ValueError(f"time_constant must be positive, got {self.time_constant}")
        if not 0.0 < self.R_min <= self.R_max:
            raise ValueError(f"Invalid noise bounds: R_min={self.R_min}, R_max={self.R_max}")


def blend_weight(dt: float, time_constant: float = NOISE_LEARNING_TIME_CONSTANT) -> float:
    """Weight of the newest sample in a first-order discrete low-pass."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.divide(dt, time_constant + dt))


class AccelNoiseEstimator:
    """
    Low-pass estimator of the scalar acceleration measurement variance.

    The estimate only moves when ``update`` is called, i.e. on measurements
    accepted by the innovation gate.
    """

    def __init__(self,
                 R_init: float = ACCEL_NOISE_RESET_VAR,
                 config: Optional[Union[AccelNoiseConfig, Dict]] = None):
        if config is None:
            config = AccelNoiseConfig()
        elif isinstance(config, dict):
            config = AccelNoiseConfig(**config)
        self.config = config
        self._R = R_init

    @property
    def R(self) -> float:
        """Current measurement noise variance estimate."""
        return self._R

    @R.setter
    def R(self, value: float):
        self._R = value

    def update(self, residual: float, H: float, state_var: float, dt: float) -> float:
        """
        Blend one accepted measurement into the noise estimate.

        Args:
            residual: Post-update residual (measured - predicted) [m/s^2]
            H: Measurement derivative w.r.t. the state
            state_var: Post-update state variance
            dt: Time since the previous prediction [s]

        Returns:
            Updated variance estimate
        """
        alpha = blend_weight(dt, self.config.time_constant)
        R_sample = residual * residual + H * state_var * H
        R_new = (1.0 - alpha) * self._R + alpha * R_sample
        self._R = min(max(R_new, self.config.R_min), self.config.R_max)
        return self._R

    def reset(self, R_init: float = ACCEL_NOISE_RESET_VAR):
        """Forget the learned level; accelerometer is distrusted again."""
        logger.debug("Accel noise reset to %.3f", R_init)
        self._R = R_init

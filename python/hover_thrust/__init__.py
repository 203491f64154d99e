"""
Hover Thrust Estimator

Online estimation of the normalized thrust that makes a multirotor hover,
for feed-forward in vertical acceleration control.

Features:
- Single-state zero-order-hold EKF with nonlinear measurement model
- NIS innovation gate rejecting accelerometer spikes
- Adaptive accelerometer noise learning
- Estimator task with landing reset and validity hysteresis
- Synthetic flight generator for offline tuning

MIT License
"""

from .models import GRAVITY, predicted_acc_z, measurement_jacobian
from .gating import (
    innovation_test_ratio,
    gate_size_from_probability,
    nis_bounds,
    average_nis,
)
from .adaptive_noise import (
    AccelNoiseConfig,
    AccelNoiseEstimator,
    NOISE_LEARNING_TIME_CONSTANT,
    ACCEL_NOISE_RESET_VAR,
)
from .ekf import ZeroOrderHoverThrustEkf, HoverThrustEkfConfig, HoverThrustStatus
from .estimator import (
    HoverThrustEstimator,
    HoverThrustEstimatorConfig,
    HoverThrustEstimate,
    Hysteresis,
)
from .simulation import FlightLog, generate_hover_flight, replay, rmse

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Filter
    "ZeroOrderHoverThrustEkf",
    "HoverThrustEkfConfig",
    "HoverThrustStatus",
    # Estimator task
    "HoverThrustEstimator",
    "HoverThrustEstimatorConfig",
    "HoverThrustEstimate",
    "Hysteresis",
    # Building blocks
    "GRAVITY",
    "predicted_acc_z",
    "measurement_jacobian",
    "innovation_test_ratio",
    "gate_size_from_probability",
    "nis_bounds",
    "average_nis",
    "AccelNoiseConfig",
    "AccelNoiseEstimator",
    "NOISE_LEARNING_TIME_CONSTANT",
    "ACCEL_NOISE_RESET_VAR",
    # Simulation
    "FlightLog",
    "generate_hover_flight",
    "replay",
    "rmse",
]

"""
Hover Thrust Estimator - Synthetic Flight Generator
===================================================

Reproducible hover flights for offline tuning and testing.

The simulated controller commands a thrust oscillating around the true
hover thrust; the accelerometer measures the resulting vertical
acceleration plus vibration noise. Optional events:

- payload drop: the true hover thrust steps at a given time
- accelerometer spikes (hard landings, collisions)
- takeoff / landing times for the land detector flag

Example:
    log = generate_hover_flight(duration_s=20.0, payload_drop_time_s=10.0)
    history = replay(log)
    error = history["hover_thrust"] - log.hover_thrust_true

License: MIT
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .estimator import HoverThrustEstimator
from .models import predicted_acc_z


@dataclass
class FlightLog:
    """Time series of one flight, sampled at a fixed rate."""
    timestamp_us: np.ndarray        # (N,) int64
    thrust: np.ndarray              # (N,) commanded normalized thrust
    acc_z: np.ndarray               # (N,) measured vertical acceleration [m/s^2]
    hover_thrust_true: np.ndarray   # (N,)
    vz: np.ndarray                  # (N,) vertical velocity [m/s]
    in_air: np.ndarray              # (N,) bool

    def __len__(self) -> int:
        return len(self.timestamp_us)

    @property
    def time_s(self) -> np.ndarray:
        return (self.timestamp_us - self.timestamp_us[0]) * 1e-6


def generate_hover_flight(
    duration_s: float = 30.0,
    dt: float = 0.02,
    hover_thrust: float = 0.5,
    payload_drop_time_s: Optional[float] = None,
    hover_thrust_after_drop: float = 0.4,
    accel_noise_std: float = 0.5,
    thrust_excitation: float = 0.05,
    excitation_freq_hz: float = 0.5,
    spike_times_s: Sequence[float] = (),
    spike_magnitude: float = 50.0,
    takeoff_time_s: float = 0.0,
    landing_time_s: Optional[float] = None,
    seed: int = 42
) -> FlightLog:
    """
    Generate a synthetic hover flight.

    Args:
        duration_s: Flight length [s]
        dt: Sample period [s]
        hover_thrust: True hover thrust before any payload drop
        payload_drop_time_s: Time of the hover thrust step (None: no drop)
        hover_thrust_after_drop: True hover thrust after the drop
        accel_noise_std: Accelerometer vibration noise [m/s^2]
        thrust_excitation: Amplitude of the commanded thrust oscillation
        excitation_freq_hz: Frequency of the thrust oscillation [Hz]
        spike_times_s: Times at which an acceleration spike is injected
        spike_magnitude: Spike amplitude added to the measurement [m/s^2]
        takeoff_time_s: Land detector switches to in-air at this time
        landing_time_s: Land detector switches back to landed (None: never)
        seed: Random seed

    Returns:
        FlightLog
    """
    rng = np.random.default_rng(seed)
    n = int(round(duration_s / dt))
    t = np.arange(n) * dt

    hover_true = np.full(n, hover_thrust)
    if payload_drop_time_s is not None:
        hover_true[t >= payload_drop_time_s] = hover_thrust_after_drop

    in_air = t >= takeoff_time_s
    if landing_time_s is not None:
        in_air &= t < landing_time_s

    thrust = hover_true + thrust_excitation * np.sin(2 * np.pi * excitation_freq_hz * t)
    acc_true = predicted_acc_z(thrust, hover_true)

    # On ground the thrust is idle and the ground reaction cancels gravity
    thrust = np.where(in_air, thrust, 0.0)
    acc_true = np.where(in_air, acc_true, 0.0)

    acc_z = acc_true + rng.normal(0.0, accel_noise_std, n)
    for t_spike in spike_times_s:
        k = int(round(t_spike / dt))
        if 0 <= k < n:
            acc_z[k] += spike_magnitude

    vz = np.cumsum(acc_true) * dt
    vz = np.where(in_air, vz, 0.0)

    return FlightLog(
        timestamp_us=np.round(t * 1e6).astype(np.int64),
        thrust=thrust,
        acc_z=acc_z,
        hover_thrust_true=hover_true,
        vz=vz,
        in_air=in_air,
    )


def replay(log: FlightLog,
           estimator: Optional[HoverThrustEstimator] = None) -> Dict[str, np.ndarray]:
    """
    Run an estimator over a flight log.

    Args:
        log: Flight to replay
        estimator: Estimator to drive (default: a new default-configured one)

    Returns:
        Dict of per-sample arrays: hover_thrust, hover_thrust_var, innov,
        innov_var, innov_test_ratio, accel_noise_var, valid, fused
    """
    if estimator is None:
        estimator = HoverThrustEstimator()

    n = len(log)
    history = {
        "hover_thrust": np.zeros(n),
        "hover_thrust_var": np.zeros(n),
        "innov": np.zeros(n),
        "innov_var": np.zeros(n),
        "innov_test_ratio": np.zeros(n),
        "accel_noise_var": np.zeros(n),
        "valid": np.zeros(n, dtype=bool),
        "fused": np.zeros(n, dtype=bool),
    }

    for k in range(n):
        estimate = estimator.update(
            int(log.timestamp_us[k]),
            float(log.acc_z[k]),
            float(log.thrust[k]),
            vz=float(log.vz[k]),
            in_air=bool(log.in_air[k]),
        )
        for key in history:
            history[key][k] = getattr(estimate, key)

    return history


def rmse(estimates: np.ndarray, truth: np.ndarray, start: int = 0) -> float:
    """Root mean square error from sample ``start`` on."""
    err = np.asarray(estimates)[start:] - np.asarray(truth)[start:]
    return float(np.sqrt(np.mean(err ** 2)))

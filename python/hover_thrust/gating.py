"""
Hover Thrust Estimator - Innovation Gate
========================================

Normalized Innovation Squared (NIS) gating for the scalar acceleration
measurement.

The test ratio is the NIS divided by the squared gate size:

    innov_test_ratio = innov**2 / (gate_size**2 * innov_var)

so a ratio <= 1 means the innovation lies within ``gate_size`` standard
deviations of its prediction. With one measurement dimension the NIS is
chi-squared distributed with one degree of freedom, which lets a gate size
be derived from an acceptance probability.

A zero gate size or innovation variance gives an inf or NaN ratio, which
never passes the gate.

License: MIT
"""

import numpy as np
from scipy.stats import chi2
from typing import Tuple


def innovation_variance(H: float, state_var: float, meas_var: float) -> float:
    """Innovation variance S = H * P * H + R."""
    return H * state_var * H + meas_var


def innovation_test_ratio(innov: float, innov_var: float, gate_size: float) -> float:
    """
    Ratio between the NIS and its maximum gate size.

    Args:
        innov: Measurement innovation
        innov_var: Innovation variance
        gate_size: Gate size in standard deviations

    Returns:
        Test ratio (passing when <= 1)
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.divide(innov * innov, gate_size * gate_size * innov_var))


def is_test_ratio_passing(innov_test_ratio: float) -> bool:
    return innov_test_ratio <= 1.0


def gate_size_from_probability(probability: float) -> float:
    """
    Gate size (in standard deviations) accepting ``probability`` of
    consistent measurements.

    Example:
        >>> round(gate_size_from_probability(0.9973), 2)
        3.0
    """
    if not 0.0 < probability < 1.0:
        raise ValueError(f"Acceptance probability must be in (0, 1), got {probability}")
    return float(np.sqrt(chi2.ppf(probability, df=1)))


def nis_bounds(n_samples: int, confidence: float = 0.95) -> Tuple[float, float]:
    """
    Two-sided confidence interval for the average NIS of a consistent
    scalar filter over ``n_samples`` independent innovations.

    Returns:
        Tuple of (lower, upper) bound on the mean NIS
    """
    if n_samples < 1:
        raise ValueError(f"n_samples must be >= 1, got {n_samples}")

    tail = (1.0 - confidence) / 2.0
    lower = chi2.ppf(tail, df=n_samples) / n_samples
    upper = chi2.ppf(1.0 - tail, df=n_samples) / n_samples
    return float(lower), float(upper)


def average_nis(innovations: np.ndarray, innov_vars: np.ndarray) -> float:
    """Mean NIS over a sequence of scalar innovations."""
    innovations = np.asarray(innovations, dtype=np.float64)
    innov_vars = np.asarray(innov_vars, dtype=np.float64)
    return float(np.mean(innovations ** 2 / innov_vars))

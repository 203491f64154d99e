"""
Hover Thrust Estimator - Measurement Model
==========================================

Maps the commanded normalized thrust and the hover-thrust state to a
predicted vertical acceleration:

    h(T, Th) = g * T / Th - g
    H        = dh/dTh = -g * T / Th**2

A vehicle commanding exactly its hover thrust sees zero acceleration;
any deviation scales linearly with the thrust ratio.

License: MIT
"""

from typing import Tuple

# Standard gravity [m/s^2]
GRAVITY = 9.80665


def predicted_acc_z(thrust: float, hover_thrust: float) -> float:
    """
    Predicted vertical acceleration (up positive).

    Args:
        thrust: Commanded normalized thrust [0, 1]
        hover_thrust: Current hover thrust estimate

    Returns:
        Acceleration [m/s^2]
    """
    return GRAVITY * thrust / hover_thrust - GRAVITY


def measurement_jacobian(thrust: float, hover_thrust: float) -> float:
    """Partial derivative of the predicted acceleration w.r.t. hover thrust."""
    return -GRAVITY * thrust / (hover_thrust ** 2)


def linearize(thrust: float, hover_thrust: float) -> Tuple[float, float]:
    """
    Evaluate the measurement model and its derivative at one point.

    Returns:
        Tuple of (predicted_acc_z, H)
    """
    return predicted_acc_z(thrust, hover_thrust), measurement_jacobian(thrust, hover_thrust)


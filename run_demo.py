#!/usr/bin/env python3
"""
Hover Thrust Estimator - Demo
=============================

Simply run: python run_demo.py [--plot]

This will:
1. Simulate a hover flight with a payload drop and accelerometer spikes
2. Run the hover thrust estimator over it
3. Print the estimate against the true hover thrust
"""

import argparse
import logging

import numpy as np

from hover_thrust import (
    HoverThrustEstimator,
    HoverThrustEstimatorConfig,
    generate_hover_flight,
    replay,
    rmse,
)

try:
    import matplotlib.pyplot as plt
    HAS_PLOT = True
except ImportError:
    HAS_PLOT = False


def run_console_demo(log, history):
    print(f"{'Time':>6} | {'True':>6} | {'Estimate':>8} | {'Std':>7} | {'R':>6} | {'Valid':>5}")
    print("-" * 54)

    time_s = log.time_s
    for k in range(0, len(log), 50):
        print(f"{time_s[k]:>5.1f}s | {log.hover_thrust_true[k]:>6.3f} | "
              f"{history['hover_thrust'][k]:>8.3f} | {np.sqrt(history['hover_thrust_var'][k]):>7.4f} | "
              f"{history['accel_noise_var'][k]:>6.2f} | {str(history['valid'][k]):>5}")

    rejected = np.sum(history["innov_test_ratio"] > 1.0)
    start = len(log) // 10

    print("-" * 54)
    print(f"  RMSE (after first 10%):  {rmse(history['hover_thrust'], log.hover_thrust_true, start):.4f}")
    print(f"  Rejected measurements:   {rejected}")
    print(f"  Valid at end:            {bool(history['valid'][-1])}")


def run_visual_demo(log, history):
    fig, axes = plt.subplots(3, 1, sharex=True, figsize=(10, 8))
    t = log.time_s

    axes[0].plot(t, log.hover_thrust_true, "k--", label="true")
    axes[0].plot(t, history["hover_thrust"], "b", label="estimate")
    sigma = np.sqrt(history["hover_thrust_var"])
    axes[0].fill_between(t, history["hover_thrust"] - 3 * sigma,
                         history["hover_thrust"] + 3 * sigma, alpha=0.3)
    axes[0].set_ylabel("hover thrust")
    axes[0].legend()

    axes[1].plot(t, history["innov_test_ratio"])
    axes[1].axhline(1.0, color="r", linestyle=":")
    axes[1].set_yscale("log")
    axes[1].set_ylabel("test ratio")

    axes[2].plot(t, history["accel_noise_var"])
    axes[2].set_ylabel("accel var [m²/s⁴]")
    axes[2].set_xlabel("time [s]")

    plt.tight_layout()
    plt.show()


def main():
    parser = argparse.ArgumentParser(description="Hover thrust estimator demo")
    parser.add_argument("--plot", action="store_true", help="show matplotlib figures")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    log = generate_hover_flight(
        duration_s=40.0,
        hover_thrust=0.5,
        payload_drop_time_s=20.0,
        hover_thrust_after_drop=0.42,
        spike_times_s=(8.0, 25.0),
        takeoff_time_s=1.0,
        seed=args.seed,
    )
    estimator = HoverThrustEstimator(HoverThrustEstimatorConfig(process_noise_std_dev=0.1))
    history = replay(log, estimator)

    run_console_demo(log, history)

    if args.plot:
        if HAS_PLOT:
            run_visual_demo(log, history)
        else:
            print("For visualization, install matplotlib: pip install matplotlib")


if __name__ == "__main__":
    main()

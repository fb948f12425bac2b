#!/usr/bin/env python3
"""
Statistical benchmark of the corridor patrol simulation across link profiles.

Runs many seeded trials per link profile and computes:
- Mean and standard deviation
- 95% confidence intervals
- Paired t-test of applied deliveries against the nominal profile

Usage:
    python benchmark_stats.py
    python benchmark_stats.py --trials 50 --ticks 7200
"""

import argparse
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from corridor_sim.simulation import LINK_PROFILES, SimulationClock, SimulationConfig

logging.basicConfig(level=logging.WARNING)


@dataclass
class StatResult:
    """Statistical result for a metric."""
    mean: float
    std: float
    ci_lower: float
    ci_upper: float
    n: int

    def __str__(self) -> str:
        return f"{self.mean:.2f} ± {self.std:.2f} (95% CI: [{self.ci_lower:.2f}, {self.ci_upper:.2f}])"


# Two-sided 95% critical values of Student's t by degrees of freedom;
# interpolated in between, normal beyond the last entry
T_CRITICAL_DOF = np.array([1, 2, 3, 4, 5, 10, 20, 30, 60, 120])
T_CRITICAL_95 = np.array([12.706, 4.303, 3.182, 2.776, 2.571, 2.228, 2.086, 2.042, 2.000, 1.980])


def critical_t(dof: int) -> float:
    if dof > T_CRITICAL_DOF[-1]:
        return 1.96
    return float(np.interp(dof, T_CRITICAL_DOF, T_CRITICAL_95))


def compute_stats(values: List[float]) -> StatResult:
    """Mean, sample std and 95% t-interval of one metric across trials."""
    samples = np.asarray(values, dtype=float)
    n = int(samples.size)
    if n == 0:
        return StatResult(0.0, 0.0, 0.0, 0.0, 0)

    mean = float(samples.mean())
    if n == 1:
        return StatResult(mean, 0.0, mean, mean, 1)

    std = float(samples.std(ddof=1))
    margin = critical_t(n - 1) * std / math.sqrt(n)
    return StatResult(mean, std, mean - margin, mean + margin, n)


def paired_t_test(values: List[float], baseline: List[float]) -> Tuple[float, float]:
    """
    Paired t-test of ``values`` against ``baseline``, trial by trial.

    Trials are paired by seed, so the test runs on per-seed differences.

    Returns:
        (t_statistic, two-tailed p-value from the normal approximation)
    """
    diffs = np.asarray(values, dtype=float) - np.asarray(baseline, dtype=float)
    n = int(diffs.size)
    if n < 2:
        return 0.0, 1.0

    se = float(diffs.std(ddof=1)) / math.sqrt(n)
    if se == 0:
        return 0.0, 1.0

    t_stat = float(diffs.mean()) / se
    p_value = math.erfc(abs(t_stat) / math.sqrt(2))
    return t_stat, p_value


def run_trial(config: SimulationConfig, ticks: int) -> Dict[str, float]:
    """Run one seeded simulation and pull out the benchmarked numbers."""
    clock = SimulationClock(config)
    clock.run(ticks)
    metrics = clock.metrics
    return {
        "faults_detected": metrics.faults_detected,
        "repairs_completed": metrics.repairs_completed,
        "deliveries_applied": metrics.deliveries_applied,
        "loss_rate": metrics.loss_rate,
        "mean_latency_ms": metrics.latency_summary()["mean"],
        "faulted_at_end": len(clock.network.faulted()),
    }


def run_statistical_benchmark(
    profiles: List[str] = None,
    num_trials: int = 30,
    ticks: int = 3600,
    seed: int = 42
) -> Dict[str, Dict]:
    """
    Run ``num_trials`` seeds per link profile.

    Trial ``i`` of every profile uses seed ``seed + i``, so profiles are
    compared on the same sensor layouts.
    """
    if profiles is None:
        profiles = list(LINK_PROFILES)

    print("=" * 70)
    print(f"STATISTICAL BENCHMARK: {num_trials} trials x {ticks} ticks per link profile")
    print("=" * 70)

    samples: Dict[str, Dict[str, List[float]]] = {}
    for name in profiles:
        print(f"\nRunning {name}...", end=" ", flush=True)
        per_metric: Dict[str, List[float]] = {}
        for trial in range(num_trials):
            if (trial + 1) % 10 == 0:
                print(f"{trial + 1}", end=" ", flush=True)
            config = SimulationConfig(seed=seed + trial).with_link_profile(name)
            for key, value in run_trial(config, ticks).items():
                per_metric.setdefault(key, []).append(value)
        samples[name] = per_metric
        print("Done")

    baseline = samples.get("nominal")
    results = {}
    for name, per_metric in samples.items():
        stats = {key: compute_stats(values) for key, values in per_metric.items()}
        if baseline is not None and name != "nominal":
            t_stat, p_value = paired_t_test(per_metric["deliveries_applied"],
                                            baseline["deliveries_applied"])
        else:
            t_stat, p_value = 0.0, 1.0
        results[name] = {
            "stats": stats,
            "vs_nominal": {"t_statistic": t_stat, "p_value": p_value},
            "profile": LINK_PROFILES[name],
        }
    return results


def print_results(results: Dict[str, Dict]) -> None:
    """Print formatted results."""
    print("\n" + "=" * 70)
    print("RESULTS")
    print("=" * 70)

    for name, data in results.items():
        profile = data["profile"]
        stats = data["stats"]
        print(f"\n{name}: {profile.packet_loss_rate * 100:.0f}% loss, "
              f"{profile.latency_min_ms:.0f}-{profile.latency_max_ms:.0f} ms latency")
        for key, stat in stats.items():
            print(f"  {key:<20} {stat}")
        if name != "nominal":
            print(f"  deliveries vs nominal: p={data['vs_nominal']['p_value']:.4f}")


def generate_markdown_table(results: Dict[str, Dict]) -> str:
    """Generate a markdown summary table."""
    lines = [
        "| Profile | Faults | Repairs | Deliveries | Loss rate | Latency (ms) |",
        "|---------|--------|---------|------------|-----------|--------------|",
    ]
    for name, data in results.items():
        s = data["stats"]
        lines.append(
            f"| {name} | {s['faults_detected'].mean:.1f} ± {s['faults_detected'].std:.1f} | "
            f"{s['repairs_completed'].mean:.1f} | {s['deliveries_applied'].mean:.0f} | "
            f"{s['loss_rate'].mean * 100:.1f}% | {s['mean_latency_ms'].mean:.0f} |"
        )
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Corridor patrol statistical benchmark")
    parser.add_argument("--trials", type=int, default=30, help="Trials per link profile")
    parser.add_argument("--ticks", type=int, default=3600, help="Simulated seconds per trial")
    parser.add_argument("--seed", type=int, default=42, help="Base random seed")
    args = parser.parse_args()

    results = run_statistical_benchmark(num_trials=args.trials, ticks=args.ticks, seed=args.seed)
    print_results(results)

    print("\n" + "=" * 70)
    print("MARKDOWN TABLE")
    print("=" * 70)
    print(generate_markdown_table(results))


if __name__ == "__main__":
    main()

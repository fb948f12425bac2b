#!/usr/bin/env python
"""
Quick run script for the corridor patrol simulation.

Usage:
    python run_simulation.py
    python run_simulation.py --ticks 3600 --link-profile degraded
    python run_simulation.py --inject-at 30 --inject-at 90 --json output/run.json
    python run_simulation.py --realtime
"""

import argparse
import json
import logging
import os
import sys
import time

# Add repository root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from corridor_sim.simulation import (
    LINK_PROFILES,
    SimulationClock,
    SimulationConfig,
    Snapshot,
    fault_risk_profile,
    format_sim_time,
)


def print_status(snapshot: Snapshot) -> None:
    """One status line per poll cycle."""
    faulted = [s.sensor_id for s in snapshot.sensors if s.fault is not None]
    uav = snapshot.uav
    print(f"  Sim Time {format_sim_time(snapshot.sim_time):>7}  "
          f"UAV {uav.position:6.0f} m  battery {uav.battery:5.1f}%  "
          f"faulted: {faulted if faulted else '-'}")


def main():
    parser = argparse.ArgumentParser(description="Corridor Patrol Simulation")
    parser.add_argument("--ticks", type=int, default=600, help="Simulated seconds to run")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--sensors", type=int, default=50, help="Number of sensors")
    parser.add_argument("--poll-interval", type=int, default=10, help="Seconds between poll cycles")
    parser.add_argument("--link-profile", choices=sorted(LINK_PROFILES), default="nominal",
                        help="Packet loss / latency preset")
    parser.add_argument("--inject-at", type=int, action="append", default=[], metavar="TICK",
                        help="Inject a manual fault at a random sensor after TICK (repeatable)")
    parser.add_argument("--realtime", action="store_true", help="Pace ticks at one per second")
    parser.add_argument("--json", metavar="PATH", help="Write config, metrics and final snapshot")
    parser.add_argument("--verbose", action="store_true", help="Log every simulation event")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        config = SimulationConfig(
            sensor_count=args.sensors,
            poll_interval=args.poll_interval,
            seed=args.seed,
        ).with_link_profile(args.link_profile)
    except ValueError as exc:
        parser.error(str(exc))

    print("\n" + "=" * 60)
    print(" CORRIDOR PATROL SIMULATION")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Corridor: {config.corridor_length:.0f} m, {config.sensor_count} sensors "
          f"({config.sensors_per_block} per block)")
    print(f"  UAV speed: {config.uav_speed:.0f} m/s, poll every {config.poll_interval}s")
    print(f"  Link: {args.link_profile} ({config.packet_loss_rate * 100:.0f}% loss, "
          f"{config.latency_min_ms:.0f}-{config.latency_max_ms:.0f} ms)")
    print(f"  Ticks: {args.ticks}, seed: {config.seed}")
    print()

    clock = SimulationClock(config)
    injections = sorted(args.inject_at)
    seen_alerts = 0

    clock.start()
    for _ in range(args.ticks):
        snapshot = clock.step()

        while injections and injections[0] <= clock.sim_time:
            injections.pop(0)
            clock.inject_fault()

        if clock.sim_time % config.poll_interval == 0:
            print_status(snapshot)

        alerts = list(clock.alerts)
        for alert in alerts[seen_alerts:]:
            print(f"    ! {alert}")
        seen_alerts = len(alerts)

        if args.realtime:
            time.sleep(1.0)
    clock.stop()

    metrics = clock.metrics
    latency = metrics.latency_summary()
    risk = fault_risk_profile(clock.get_snapshot())

    print("\nSimulation complete!")
    print(f"  Polls: {metrics.polls_sent} sent, {metrics.polls_dropped} lost "
          f"({metrics.loss_rate * 100:.1f}%)")
    print(f"  Deliveries applied: {metrics.deliveries_applied} "
          f"(latency {latency['mean']:.0f} ± {latency['std']:.0f} ms), "
          f"{len(clock.link)} still in flight")
    print(f"  Faults: {metrics.faults_detected} detected, {metrics.manual_faults} injected, "
          f"{metrics.repairs_completed} repaired, {len(clock.dispatcher)} crews en route")
    print(f"  Fault risk: mean {risk.mean():.1f}%, max {risk.max():.1f}% "
          f"(sensor {int(risk.argmax())})")

    if args.json:
        output = {
            "config": config.to_dict(),
            "metrics": metrics.to_dict(),
            "snapshot": clock.get_snapshot().to_dict(),
            "alerts": [a.to_dict() for a in clock.alerts],
        }
        directory = os.path.dirname(args.json)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(args.json, "w") as f:
            json.dump(output, f, indent=2)
        print(f"Results saved to: {args.json}")


if __name__ == "__main__":
    main()

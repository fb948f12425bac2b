"""
Tests for the simulation clock.

These tests verify:
- Start / stop / reset state transitions
- Per-tick UAV movement and battery drain
- Poll cadence and delivery timing across ticks
- Manual fault injection
- Reproducibility of whole runs from a seed
- The one-fault / one-crew invariant over long runs
"""

import json
import math

import pytest

from corridor_sim.errors import InvalidSensorId
from corridor_sim.network import Severity
from corridor_sim.simulation import (
    ClockState,
    SimulationClock,
    SimulationConfig,
    fault_risk_profile,
    format_sim_time,
)


def dump(snapshots):
    return [json.dumps(s.to_dict(), sort_keys=True) for s in snapshots]


class TestClockStates:
    """Tests for start/stop/reset."""

    def test_starts_stopped(self):
        clock = SimulationClock()
        assert clock.state is ClockState.STOPPED
        assert clock.sim_time == 0

    def test_start_is_idempotent(self):
        clock = SimulationClock()
        assert clock.start() is True
        assert clock.start() is False
        assert clock.running

    def test_stop_is_idempotent(self):
        clock = SimulationClock()
        assert clock.stop() is False
        clock.start()
        assert clock.stop() is True
        assert clock.stop() is False

    def test_step_while_stopped_does_nothing(self):
        clock = SimulationClock()
        assert clock.step() is None
        assert clock.sim_time == 0

    def test_run_advances_time(self):
        clock = SimulationClock()
        snapshots = clock.run(25)
        assert [s.sim_time for s in snapshots] == list(range(1, 26))
        assert clock.sim_time == 25
        assert clock.metrics.ticks == 25

    def test_reset_restores_initial_state(self):
        clock = SimulationClock(SimulationConfig(packet_loss_rate=0.0))
        readings = [s.reading for s in clock.network]
        clock.run(35)
        clock.inject_fault(3)

        clock.reset()

        snapshot = clock.get_snapshot()
        assert clock.state is ClockState.STOPPED
        assert snapshot.sim_time == 0
        assert snapshot.uav.position == 0.0
        assert snapshot.uav.battery == 100.0
        assert snapshot.alerts == ()
        assert len(clock.alerts) == 0
        assert len(clock.dispatcher) == 0
        assert len(clock.link) == 0
        assert clock.network.faulted() == []
        assert all(s.last_polled == 0 for s in clock.network)
        assert [s.reading for s in clock.network] != readings
        assert clock.metrics.ticks == 0

    def test_reset_with_seed_reproduces_fresh_run(self):
        fresh = SimulationClock(SimulationConfig(seed=42))
        clock = SimulationClock(SimulationConfig(seed=42))
        clock.run(50)
        clock.reset(seed=42)
        assert dump([clock.get_snapshot()]) == dump([fresh.get_snapshot()])
        assert dump(clock.run(30)) == dump(fresh.run(30))


class TestUAV:
    """Tests for UAV movement and battery."""

    def test_full_loop_wraps_to_zero(self):
        clock = SimulationClock()
        ticks = int(clock.config.corridor_length / clock.config.uav_speed)
        snapshots = clock.run(ticks)
        assert snapshots[0].uav.position == 50.0
        assert snapshots[-1].uav.position == 0.0

    def test_wraparound_other_geometry(self):
        clock = SimulationClock(SimulationConfig(corridor_length=1000.0, uav_speed=25.0))
        clock.run(40)
        assert clock.uav.state.position == 0.0
        clock.run(3)
        assert clock.uav.state.position == 75.0

    def test_battery_drains(self):
        clock = SimulationClock()
        snapshots = clock.run(100)
        batteries = [s.uav.battery for s in snapshots]
        assert batteries == sorted(batteries, reverse=True)
        assert batteries[-1] == pytest.approx(99.0)

    def test_battery_floored_at_zero(self):
        clock = SimulationClock(SimulationConfig(battery_drain_per_tick=30.0))
        snapshots = clock.run(5)
        assert [s.uav.battery for s in snapshots] == [70.0, 40.0, 10.0, 0.0, 0.0]

    def test_wind_effect_is_zero(self):
        clock = SimulationClock()
        assert all(s.uav.wind_effect == 0.0 for s in clock.run(20))


class TestPolling:
    """Tests for poll cadence and delivery timing through the clock."""

    def test_polls_only_on_interval(self):
        clock = SimulationClock(SimulationConfig(packet_loss_rate=0.0))
        clock.run(9)
        assert clock.metrics.polls_sent == 0
        assert len(clock.link) == 0
        clock.run(1)
        assert clock.metrics.polls_sent == 50
        assert len(clock.link) == 50
        clock.run(10)
        assert clock.metrics.polls_sent == 100

    def test_deliveries_land_on_first_tick_at_or_after_due(self):
        clock = SimulationClock(SimulationConfig(packet_loss_rate=0.0,
                                                 fault_probability_per_minute=0.0))
        clock.run(10)
        pending = clock.link.pending()
        assert len(pending) == 50

        clock.run(5)
        for delivery in pending:
            sensor = clock.network.get(delivery.sensor_id)
            assert 1000.0 <= delivery.delay_ms <= 5000.0
            assert sensor.last_polled >= delivery.due_time
            assert sensor.last_polled == math.ceil(delivery.due_time)

    def test_dropped_polls_never_update(self):
        clock = SimulationClock(SimulationConfig(packet_loss_rate=1.0))
        before = [s.reading for s in clock.network]
        clock.run(100)
        assert all(s.last_polled == 0 for s in clock.network)
        assert [s.reading for s in clock.network] == before
        assert clock.metrics.deliveries_applied == 0

    def test_stop_keeps_pending_deliveries(self):
        clock = SimulationClock(SimulationConfig(packet_loss_rate=0.0,
                                                 latency_min_ms=1000.0,
                                                 latency_max_ms=1000.0,
                                                 fault_probability_per_minute=0.0))
        clock.run(10)
        clock.stop()
        assert len(clock.link) == 50
        assert clock.step() is None
        assert len(clock.link) == 50

        clock.start()
        clock.step()
        assert clock.sim_time == 11
        assert len(clock.link) == 0
        assert all(s.last_polled == 11 for s in clock.network)

    def test_stop_keeps_crews(self):
        clock = SimulationClock(SimulationConfig(fault_probability_per_minute=0.0))
        clock.inject_fault(3)
        crew = clock.dispatcher.crew_for(3)
        clock.run(10)
        clock.stop()
        assert clock.dispatcher.crew_for(3) == crew
        clock.run(2400)
        assert clock.dispatcher.crew_for(3) is None
        assert clock.network.get(3).fault is None


class TestManualInjection:
    """Tests for the inject_fault command."""

    def test_inject_on_clear_sensor(self):
        clock = SimulationClock()
        alert = clock.inject_fault(3)
        assert alert.sensor_id == 3
        assert "sensor 3" in alert.message
        assert list(clock.alerts) == [alert]
        fault = clock.network.get(3).fault
        assert fault.kind == "manual"
        assert fault.severity is Severity.HIGH
        assert len(clock.dispatcher) == 1
        assert clock.dispatcher.crew_for(3) is not None

    def test_second_inject_is_noop(self):
        clock = SimulationClock()
        clock.inject_fault(3)
        crew = clock.dispatcher.crew_for(3)
        assert clock.inject_fault(3) is None
        assert len(clock.alerts) == 1
        assert len(clock.dispatcher) == 1
        assert clock.dispatcher.crew_for(3) == crew
        assert clock.metrics.skipped_injections == 1

    def test_inject_with_crew_en_route_changes_nothing(self):
        clock = SimulationClock(SimulationConfig(fault_probability_per_minute=0.0))
        clock.inject_fault(3)
        crew = clock.dispatcher.crew_for(3)
        clock.network.clear_fault(3)

        assert clock.inject_fault(3) is None
        assert clock.network.get(3).fault is None
        assert [a.message for a in clock.alerts] == ["Manual fault injected at sensor 3"]
        assert clock.metrics.manual_faults == 1
        assert clock.metrics.skipped_injections == 1
        assert clock.dispatcher.crew_for(3) == crew

        clock.run(math.ceil(crew.eta_time))
        assert [a.message for a in clock.alerts.for_sensor(3)] == [
            "Manual fault injected at sensor 3",
            "Repair completed for sensor 3",
        ]
        assert clock.dispatcher.crew_for(3) is None
        assert clock.inject_fault(3) is not None

    def test_detected_fault_with_crew_en_route_is_ignored(self):
        # Every applied reading raises a fault
        clock = SimulationClock(SimulationConfig(packet_loss_rate=0.0,
                                                 fault_probability_per_minute=60.0))
        clock.inject_fault(3)
        clock.network.clear_fault(3)
        clock.run(15)

        assert clock.metrics.deliveries_applied == 50
        assert clock.metrics.faults_detected == 49
        assert clock.network.get(3).fault is None
        assert len(clock.alerts.for_sensor(3)) == 1
        assert len(clock.dispatcher) == 50

    def test_random_sensor_pick(self):
        clock = SimulationClock()
        alert = clock.inject_fault()
        assert 0 <= alert.sensor_id < 50
        assert clock.network.get(alert.sensor_id).fault is not None

    def test_invalid_sensor_surfaces_and_clock_continues(self):
        clock = SimulationClock()
        clock.run(5)
        with pytest.raises(InvalidSensorId):
            clock.inject_fault(50)
        assert len(clock.alerts) == 0
        assert clock.step().sim_time == 6

    def test_inject_while_stopped(self):
        clock = SimulationClock(SimulationConfig(fault_probability_per_minute=0.0))
        clock.run(20)
        clock.stop()
        alert = clock.inject_fault(7)
        assert alert.time == 20
        assert clock.network.get(7).fault.onset_time == 20

    def test_alert_window(self):
        clock = SimulationClock()
        for sensor_id in range(7):
            clock.inject_fault(sensor_id)
        snapshot = clock.get_snapshot()
        assert len(clock.alerts) == 7
        assert [a.sensor_id for a in snapshot.alerts] == [2, 3, 4, 5, 6]


class TestReproducibility:
    """Tests for seeded determinism."""

    def test_same_seed_identical_snapshots(self):
        config = SimulationConfig(seed=42, fault_probability_per_minute=6.0)
        a = SimulationClock(config)
        b = SimulationClock(config)
        assert dump(a.run(300)) == dump(b.run(300))

    def test_same_seed_with_injections(self):
        def scripted(clock):
            out = []
            for t in range(200):
                out.extend(clock.run(1))
                if t % 37 == 0:
                    clock.inject_fault()
            return dump(out)

        config = SimulationConfig(seed=9)
        assert scripted(SimulationClock(config)) == scripted(SimulationClock(config))

    def test_different_seeds_differ(self):
        a = SimulationClock(SimulationConfig(seed=1))
        b = SimulationClock(SimulationConfig(seed=2))
        assert dump([a.get_snapshot()]) != dump([b.get_snapshot()])

    def test_delivered_sensor_ids_reproducible(self):
        def delivered_ids():
            clock = SimulationClock(SimulationConfig(seed=42, sensor_count=10, poll_interval=10))
            clock.run(100)
            return [s.sensor_id for s in clock.network if s.last_polled > 0]

        first = delivered_ids()
        assert first == delivered_ids()
        assert len(first) > 0

    def test_snapshot_query_takes_no_draws(self):
        clock = SimulationClock()
        clock.run(15)
        draws = clock.ctx.rng.draws
        clock.get_snapshot()
        clock.get_snapshot()
        assert clock.ctx.rng.draws == draws

    def test_independent_instances(self):
        config = SimulationConfig(seed=3)
        a = SimulationClock(config)
        b = SimulationClock(config)
        a.inject_fault(3)
        a.run(50)
        assert b.sim_time == 0
        assert len(b.alerts) == 0
        assert b.network.get(3).fault is None


class TestInvariants:
    """Long-run invariants with frequent faults."""

    def test_one_fault_one_crew(self):
        clock = SimulationClock(SimulationConfig(sensor_count=10, packet_loss_rate=0.0,
                                                 fault_probability_per_minute=30.0))

        def check():
            for sensor in clock.network:
                assert (sensor.fault is not None) == (clock.dispatcher.crew_for(sensor.sensor_id) is not None)

        for t in range(3000):
            clock.run(1)
            if t % 13 == 0:
                clock.inject_fault()
            check()

        opened = sum(1 for a in clock.alerts if not a.message.startswith("Repair completed"))
        closed = sum(1 for a in clock.alerts if a.message.startswith("Repair completed"))
        assert opened - closed == len(clock.network.faulted())
        assert clock.metrics.faults_detected > 0

    def test_repairs_complete_in_window_with_one_alert_each(self):
        clock = SimulationClock(SimulationConfig(sensor_count=10, packet_loss_rate=0.0,
                                                 fault_probability_per_minute=30.0))
        clock.run(5000)
        metrics = clock.metrics
        assert metrics.repairs_completed > 0
        assert all(600 <= d <= 2400 for d in metrics.repair_durations)

        completions = [a for a in clock.alerts if a.message.startswith("Repair completed")]
        assert len(completions) == metrics.repairs_completed
        assert metrics.crews_dispatched == metrics.repairs_completed + len(clock.dispatcher)
        for sensor in clock.network:
            opened = [a for a in clock.alerts.for_sensor(sensor.sensor_id)
                      if not a.message.startswith("Repair completed")]
            closed = [a for a in clock.alerts.for_sensor(sensor.sensor_id)
                      if a.message.startswith("Repair completed")]
            assert len(opened) - len(closed) in (0, 1)


class TestObservers:
    """Tests for snapshot observers."""

    def test_observer_sees_every_tick(self):
        clock = SimulationClock()
        seen = []
        clock.subscribe(lambda s: seen.append(s.sim_time))
        clock.run(12)
        assert seen == list(range(1, 13))

    def test_failing_observer_does_not_stop_ticks(self):
        clock = SimulationClock()
        seen = []

        def broken(snapshot):
            raise RuntimeError("renderer crashed")

        clock.subscribe(broken)
        clock.subscribe(lambda s: seen.append(s.sim_time))
        clock.run(3)
        assert seen == [1, 2, 3]

    def test_observer_can_stop_run(self):
        clock = SimulationClock()

        def stop_at_five(snapshot):
            if snapshot.sim_time == 5:
                clock.stop()

        clock.subscribe(stop_at_five)
        assert len(clock.run(100)) == 5
        clock.unsubscribe(stop_at_five)
        assert len(clock.run(3)) == 3


class TestSnapshot:
    """Tests for the serializable snapshot."""

    def test_to_dict_shape(self):
        clock = SimulationClock()
        clock.inject_fault(3)
        clock.run(2)
        record = json.loads(json.dumps(clock.get_snapshot().to_dict()))

        assert record["simTime"] == 2
        assert set(record["uav"]) == {"position", "battery", "windEffect"}
        assert len(record["sensors"]) == 50
        sensor = record["sensors"][3]
        assert set(sensor) == {"id", "position", "block", "dominant", "temp", "vib",
                               "reliability", "lastPolled", "fault"}
        assert sensor["fault"] == {"kind": "manual", "severity": "high", "onsetTime": 0}
        assert record["sensors"][4]["fault"] is None
        assert record["alerts"] == [
            {"sensorId": 3, "message": "Manual fault injected at sensor 3", "time": 0}
        ]

    def test_fault_risk_profile(self):
        clock = SimulationClock()
        clock.inject_fault(3)
        risk = fault_risk_profile(clock.get_snapshot())
        assert risk.shape == (50,)
        assert risk[3] == 100.0
        assert risk[0] == pytest.approx(5.0)
        assert all(0.0 < r <= 80.0 for i, r in enumerate(risk) if i != 3 and i % 10)

    def test_inject_at_riskiest_sensor(self):
        clock = SimulationClock(SimulationConfig(fault_probability_per_minute=0.0))
        riskiest = fault_risk_profile(clock.get_snapshot()).argmax()
        alert = clock.inject_fault(riskiest)
        assert type(alert.sensor_id) is int
        assert alert.sensor_id == int(riskiest)
        assert clock.dispatcher.crew_for(alert.sensor_id).sensor_id == alert.sensor_id
        json.dumps(clock.get_snapshot().to_dict())


class TestTimeFormatting:
    """Tests for m:ss formatting."""

    @pytest.mark.parametrize("seconds,text", [(0, "0:00"), (65, "1:05"), (600, "10:00"), (3599, "59:59")])
    def test_format(self, seconds, text):
        assert format_sim_time(seconds) == text

    def test_alert_str(self):
        clock = SimulationClock(SimulationConfig(fault_probability_per_minute=0.0))
        clock.run(65)
        alert = clock.inject_fault(3)
        assert str(alert) == "Manual fault injected at sensor 3 at 1:05"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

import pytest

from bikeshare.sim.timebase import Simulation


def test_schedule_call_runs_at_delay():
    sim = Simulation()
    seen = []
    sim.schedule_call(lambda: seen.append(sim.now), 5.0)
    sim.schedule_call(lambda: seen.append(sim.now), 2.0)
    sim.run()
    assert seen == [2.0, 5.0]


def test_cancelled_call_does_not_run():
    sim = Simulation()
    seen = []
    handle = sim.schedule_call(lambda: seen.append("x"), 1.0)
    assert handle.pending
    assert handle.cancel()
    assert not handle.cancel()
    sim.run()
    assert seen == []
    assert not handle.pending


def test_negative_delay_rejected():
    sim = Simulation()
    with pytest.raises(ValueError):
        sim.schedule_call(lambda: None, -1.0)
    with pytest.raises(ValueError):
        sim.pause(-0.5)


def test_init_calls_run_once_before_first_event():
    sim = Simulation()
    order = []
    sim.schedule_init_call(lambda: order.append("init"))
    sim.schedule_call(lambda: order.append("event"), 0.0)
    sim.run(until=10.0)
    sim.run(until=20.0)
    assert order == ["init", "event"]
    assert sim.initialized

    # after initialization, init calls run immediately
    sim.schedule_init_call(lambda: order.append("late"))
    assert order[-1] == "late"


def test_task_suspends_without_blocking_others():
    sim = Simulation()
    log = []

    def routine(name, step):
        for _ in range(2):
            yield sim.pause(step)
            log.append((name, sim.now))

    sim.schedule_task(routine("slow", 3.0))
    sim.schedule_task(routine("fast", 1.0), delay=0.5)
    sim.run()
    assert log == [("fast", 1.5), ("fast", 2.5), ("slow", 3.0), ("slow", 6.0)]


def test_run_until_with_progress_reaches_end():
    sim = Simulation()
    sim.schedule_call(lambda: None, 100.0)
    sim.run(until=50.0, progress=True, steps=5)
    assert sim.now == pytest.approx(50.0)

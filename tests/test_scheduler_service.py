import threading
import time

import pytest

from best6.services.scheduler_service import (
    ImmediateSpawner,
    SchedulerService,
    make_spawner,
)


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def scheduler():
    service = SchedulerService(max_workers=2)
    yield service
    service.stop(wait=True)


def test_spawn_runs_in_background(scheduler):
    done = threading.Event()
    seen = []

    def task(value, flag=None):
        seen.append((value, flag, threading.current_thread() is threading.main_thread()))
        done.set()

    job_id = scheduler.spawn("sync-rounds", task, 42, flag="x")

    assert job_id.startswith("sync-rounds-")
    assert done.wait(5)
    assert seen == [(42, "x", False)]
    assert _wait_for(lambda: scheduler.get_stats()["successful_tasks"] == 1)
    assert scheduler.is_running


def test_failures_are_logged_not_raised(scheduler):
    def boom():
        raise RuntimeError("backend down")

    scheduler.spawn("sync-leagues", boom)

    assert _wait_for(lambda: scheduler.get_stats()["failed_tasks"] == 1)
    assert scheduler.get_stats()["last_error"] == "backend down"


def test_immediate_spawner_contains_errors():
    spawner = ImmediateSpawner()
    calls = []

    spawner.spawn("ok", calls.append, 1)
    spawner.spawn("bad", lambda: 1 / 0)

    stats = spawner.get_stats()
    assert calls == [1]
    assert (stats["successful_tasks"], stats["failed_tasks"]) == (1, 1)


def test_make_spawner():
    assert isinstance(make_spawner({"SYNC_IN_BACKGROUND": False}), ImmediateSpawner)
    service = make_spawner({"SYNC_IN_BACKGROUND": True, "SYNC_MAX_WORKERS": 1})
    assert isinstance(service, SchedulerService)
    assert not service.is_running

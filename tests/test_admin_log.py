from __future__ import annotations

from farmsim.admin_log import (
    ACTION_FAILED,
    ACTION_ROUTED,
    PROCESS_RESOLVED,
    PROCESS_STARTED,
    AdminEventLog,
)


def test_ring_buffer_caps_history():
    log = AdminEventLog(capacity=3)
    for minute in range(5):
        log.record(minute=minute, event_type="TEST", payload={"n": minute})

    events = list(log.iter_all())
    assert len(events) == 3
    assert [event.payload["n"] for event in events] == [2, 3, 4]


def test_actions_are_split_by_outcome():
    log = AdminEventLog()
    log.log_action(minute=1, action="plant", success=True, system="farm")
    log.log_action(minute=2, action="pump", success=False, system="farm", error="Water tank is already full")

    failed = log.get_recent(event_type=ACTION_FAILED)

    assert len(log.get_recent(event_type=ACTION_ROUTED)) == 1
    assert failed[0].summary() == "pump: Water tank is already full"
    assert log.counts_by_type() == {ACTION_FAILED: 1, ACTION_ROUTED: 1}


def test_process_records_and_filters():
    log = AdminEventLog()
    log.log_process(minute=5, process_id="crop_growth_1", kind="crop_growth", outcome="started", slot="plot_1")
    log.log_process(minute=35, process_id="crop_growth_1", kind="crop_growth", outcome="completed")
    log.log_refusal(minute=36, kind="mining", reason="a pickaxe is required")

    started = log.get_recent(event_type=PROCESS_STARTED)
    resolved = log.get_recent(event_type=PROCESS_RESOLVED)

    assert started[0].payload["slot"] == "plot_1"
    assert started[0].tags == ("crop_growth",)
    assert resolved[0].summary() == "crop_growth_1 -> completed"
    assert len(log.get_recent(system="processes", limit=2)) == 2
    assert log.get_recent(system="processes", limit=2)[-1].summary() == "mining refused (a pickaxe is required)"


def test_clear_empties_the_log():
    log = AdminEventLog()
    log.record(minute=0, event_type="X", payload={})

    log.clear()

    assert log.counts_by_type() == {}

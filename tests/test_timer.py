import pytest

from cue_runshow import ShowTimer, TimerPhase, TimerState
from cue_runshow.timer import (
    goto_page,
    hold,
    page_for_elapsed,
    remaining_seconds,
    seconds_to_next_page,
    start,
    stop,
    tick,
)


@pytest.fixture
def minute_pages():
    # 60 seconds per page
    return TimerState(total_pages=90, duration_minutes=90)


def test_page_follows_wall_time(minute_pages):
    state = start(minute_pages, now=0.0)

    state, warnings, completed = tick(state, now=125.0, props=[])

    assert state.current_page == 3
    assert state.elapsed == 125.0
    assert warnings == []
    assert completed is None
    assert seconds_to_next_page(state) == 55.0
    assert remaining_seconds(state) == 90 * 60 - 125.0


def test_page_for_elapsed_is_clamped(minute_pages):
    assert page_for_elapsed(0.0, minute_pages) == 1
    assert page_for_elapsed(59.9, minute_pages) == 1
    assert page_for_elapsed(60.0, minute_pages) == 2
    assert page_for_elapsed(10_000_000.0, minute_pages) == 90


def test_hold_then_resume_excludes_hold_time(minute_pages):
    state = start(minute_pages, now=0.0)
    state = hold(state, now=130.0)

    assert state.phase is TimerPhase.HELD
    assert state.elapsed == 130.0

    state = start(state, now=200.0)

    assert state.phase is TimerPhase.RUNNING
    assert state.start_ref == 70.0
    assert len(state.hold_log) == 1
    assert state.hold_log[0].duration_seconds == 70.0
    assert state.total_hold_seconds == 70.0

    state, _, _ = tick(state, now=260.0, props=[])
    assert state.elapsed == 190.0


def test_start_while_running_and_hold_while_idle_are_no_ops(minute_pages):
    assert hold(minute_pages, now=5.0) is minute_pages

    running = start(minute_pages, now=0.0)
    assert start(running, now=50.0) is running


def test_start_can_override_targets(minute_pages):
    state = start(minute_pages, now=0.0, total_pages=45, duration_minutes=30)

    assert state.total_pages == 45
    assert state.duration_minutes == 30


def test_stop_resets_playhead(minute_pages):
    state = start(minute_pages, now=0.0)
    state, _, _ = tick(state, now=700.0, props=[])

    state = stop(state)

    assert state.phase is TimerPhase.IDLE
    assert state.current_page == 1
    assert state.elapsed == 0.0


def test_fresh_start_clears_hold_log(minute_pages):
    state = start(minute_pages, now=0.0)
    state = hold(state, now=30.0)
    state = start(state, now=50.0)
    state = stop(state)

    state = start(state, now=100.0)

    assert state.hold_log == ()
    assert state.total_hold_seconds == 0


def test_goto_page_clamps_and_rebases_running_timer(minute_pages):
    state = start(minute_pages, now=0.0)

    state = goto_page(state, 200, now=10.0)

    assert state.current_page == 90
    assert state.elapsed == 89 * 60
    assert state.start_ref == 10.0 - 89 * 60

    state = goto_page(state, 0, now=20.0)
    assert state.current_page == 1


def test_tick_completes_at_full_duration(minute_pages):
    state = start(minute_pages, now=0.0)

    state, _, completed = tick(state, now=90 * 60 + 1.0, props=[])

    assert state.phase is TimerPhase.IDLE
    assert completed is not None
    assert completed.current_page == 90
    assert completed.elapsed == 90 * 60 + 1.0


def test_tick_on_idle_timer_changes_nothing(minute_pages):
    state, warnings, completed = tick(minute_pages, now=500.0, props=[])

    assert state is minute_pages
    assert warnings == [] and completed is None


def test_warning_fires_once_per_page(skull):
    state = start(TimerState(total_pages=20, duration_minutes=20, warn_pages=3), now=0.0)

    state, warnings, _ = tick(state, now=361.0, props=[skull])
    assert state.current_page == 7
    assert len(warnings) == 1
    warning = warnings[0]
    assert warning.pages_away == 3
    assert warning.message() == "Skull: 3 pages (pg 10) | MOVE SR→SL by Stagehand"

    state, warnings, _ = tick(state, now=370.0, props=[skull])
    assert warnings == []

    state, warnings, _ = tick(state, now=421.0, props=[skull])
    assert state.current_page == 8
    assert [w.pages_away for w in warnings] == [2]


def test_timer_state_validation():
    with pytest.raises(ValueError):
        TimerState(total_pages=0)
    with pytest.raises(ValueError):
        TimerState(total_pages=10, current_page=11)


class TestShowTimer:

    def make_timer(self, clock, props, **callbacks):
        return ShowTimer(
            state=TimerState(total_pages=20, duration_minutes=20, warn_pages=3),
            props_fn=lambda: props,
            clock=clock,
            tick_interval=3600,
            **callbacks,
        )

    def test_tick_once_reports_warnings_and_ticks(self, clock, skull):
        warnings, ticks = [], []
        timer = self.make_timer(clock, [skull], on_warning=warnings.append, on_tick=ticks.append)
        try:
            timer.start()
            clock.advance(361)
            state = timer.tick_once()
        finally:
            timer.shutdown()

        assert state.current_page == 7
        assert [w.prop_name for w in warnings] == ["Skull"]
        assert ticks[-1] is state

    def test_completion_callback_gets_final_snapshot(self, clock):
        completed = []
        timer = self.make_timer(clock, [], on_complete=completed.append)
        try:
            timer.start()
            clock.advance(20 * 60)
            state = timer.tick_once()
        finally:
            timer.shutdown()

        assert state.phase is TimerPhase.IDLE
        assert completed[0].current_page == 20
        assert completed[0].is_running

    def test_listener_errors_do_not_break_the_timer(self, clock):
        def explode(state):
            raise RuntimeError("listener failed")

        timer = self.make_timer(clock, [], on_tick=explode)
        try:
            timer.start()
            clock.advance(120)
            state = timer.tick_once()
        finally:
            timer.shutdown()

        assert state.current_page == 3

    def test_hold_and_restore(self, clock):
        timer = self.make_timer(clock, [])
        try:
            timer.start()
            clock.advance(90)
            held = timer.hold()
        finally:
            timer.shutdown()

        assert held.is_held
        assert held.elapsed == 90

        timer.restore(TimerState(total_pages=20, duration_minutes=20, phase=TimerPhase.HELD, elapsed=300.0, current_page=6))
        assert timer.snapshot().current_page == 6

from unittest.mock import MagicMock

import pytest

from cue_control import CommandArgumentError, CommandRegistry
from cue_props import Cue, Prop
from cue_runshow import RunShowService, ShowConfig, TimerPhase, TimerState
from cue_sync.schemas import SessionStatus


@pytest.fixture
def control_plane():
    control_plane = MagicMock()
    control_plane.command_registry = CommandRegistry()
    control_plane.connect.return_value = True
    return control_plane


@pytest.fixture
def service(repo, stored_props, control_plane, clock):
    config = ShowConfig(
        show_id="hamlet",
        production_id=repo.production_id,
        title="Tech Run",
        total_pages=20,
        duration_minutes=20,
    )
    service = RunShowService(
        config=config,
        repo=repo,
        control_plane=control_plane,
        uid="owner1",
        clock=clock,
        tick_interval=3600,
    )
    service.setup()
    service.start()
    yield service
    service.stop()


def run(service, command, **data):
    return service.control_plane.command_registry.execute(command, data)


def statuses(control_plane):
    return [call.args[0] for call in control_plane.publish_status.call_args_list]


def test_setup_loads_props_and_registers_commands(service):
    assert sorted(p.name for p in service.props()) == ["Skull", "Sword"]
    assert service.control_plane.command_registry.available_commands == {
        "start", "hold", "stop", "status", "goto_page", "scratchpad", "list_commands",
    }


def test_prop_changes_reach_the_service(service, stored_props):
    stored_props.save(Prop(id="cup", name="Cup", cues=(Cue(enter_page=2, exit_page=2),)))
    stored_props.delete("skull")

    assert sorted(p.name for p in service.props()) == ["Cup", "Sword"]


def test_start_opens_session(service, repo):
    run(service, "start")

    session = repo.sessions.require(service.session.id)
    assert session.status is SessionStatus.ACTIVE
    assert session.title == "Tech Run"
    assert session.created_by == "owner1"
    assert service.timer.snapshot().is_running
    assert statuses(service.control_plane)[-1] == "running"


def test_start_twice_keeps_one_session(service, repo):
    run(service, "start")
    first = service.session.id
    run(service, "start")

    assert service.session.id == first
    assert len(repo.sessions.list()) == 1


def test_hold_and_stop_end_session_with_summary(service, repo, clock):
    run(service, "start")
    session_id = service.session.id
    clock.advance(30)
    run(service, "hold")
    run(service, "stop")

    ended = repo.sessions.require(session_id)
    assert ended.status is SessionStatus.ENDED
    assert ended.duration_seconds == 30
    assert service.session is None

    phase, payload = service.control_plane.publish_status.call_args.args
    assert phase == "idle"
    assert payload['summary']['sessionId'] == session_id
    assert payload['summary']['durationSeconds'] == 30


def test_scratchpad_is_saved_on_end(service, repo):
    run(service, "start")
    session_id = service.session.id
    run(service, "scratchpad", text="Act 2 fight call ran long")
    run(service, "stop")

    assert repo.sessions.require(session_id).scratchpad_notes == "Act 2 fight call ran long"


def test_goto_page(service):
    run(service, "goto_page", page=7)

    assert service.timer.snapshot().current_page == 7


def test_goto_page_rejects_bad_input(service):
    with pytest.raises(ValueError, match="page must be an integer"):
        run(service, "goto_page", page="seven")
    with pytest.raises(CommandArgumentError):
        run(service, "goto_page")


def test_tick_publishes_prop_warnings(service, clock):
    run(service, "start")
    clock.advance(1)
    service.timer.tick_once()

    warnings = [
        call.args[1]['warning']
        for call in service.control_plane.publish_status.call_args_list
        if 'warning' in call.args[1]
    ]
    assert sorted(w['propName'] for w in warnings) == ["Skull", "Sword"]


def test_list_commands_publishes_help(service):
    run(service, "list_commands")

    phase, payload = service.control_plane.publish_status.call_args.args
    assert phase == "commands"
    assert payload['commands']['goto_page'] == "Move the playhead to a page"


def test_recover_discard_abandons(service, repo):
    session = service.session_manager.start_session("Dress", TimerState(total_pages=20, duration_minutes=20))

    assert service.recover(session, resume=False) is None
    assert repo.sessions.require(session.id).status is SessionStatus.ABANDONED
    assert service.session is None


def test_recover_resume_holds_at_recovered_time(service, clock):
    manager = service.session_manager
    session = manager.start_session("Dress", TimerState(total_pages=20, duration_minutes=20))
    manager.checkpoint(session.id, TimerState(
        phase=TimerPhase.RUNNING,
        total_pages=20,
        duration_minutes=20,
        start_ref=clock.now - 90,
    ), "pre-crash notes")
    clock.advance(30)

    state = service.recover(manager.detect_active_session(), resume=True)

    assert state.phase is TimerPhase.HELD
    assert state.elapsed == 120
    assert service.session.id == session.id
    assert service.scratchpad == "pre-crash notes"
    assert service.timer.snapshot() == state

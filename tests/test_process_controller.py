import threading
from unittest.mock import Mock

import pytest

from waymag.magnifier.launcher import SPAWN_FAILED_STATUS, HelperProcess
from waymag.magnifier.process_controller import ProcessController
from waymag.magnifier.settings import MagnifierSettings, Shape

PROG = "/usr/bin/mage"


@pytest.fixture
def controller(host, launcher):
    return ProcessController(host, launcher, PROG, logger=Mock())


def test_missing_helper_makes_controller_unavailable(host, launcher):
    launcher.installed = False
    controller = ProcessController(host, launcher, "mage", logger=Mock())
    assert not controller.available
    controller.toggle()
    assert launcher.spawned == []
    assert host.notifications == []
    assert not controller.is_running


def test_toggle_from_stopped_spawns_once_and_notifies_on(controller, host, launcher):
    controller.toggle()
    assert controller.is_running
    assert len(launcher.spawned) == 1
    assert launcher.spawned[0].argv == [PROG, "-c", "350", "-z", "2"]
    assert host.notifications == [True]
    assert launcher.spawned[0] in launcher.watchers


def test_spontaneous_exit_notifies_off_exactly_once(controller, host, launcher):
    controller.toggle()
    launcher.exit(launcher.spawned[0], status=1)
    assert not controller.is_running
    assert host.notifications == [True, False]
    assert len(launcher.spawned) == 1


def test_toggle_while_running_signals_and_waits_for_exit(controller, host, launcher):
    controller.toggle()
    process = launcher.spawned[0]
    controller.toggle()
    assert launcher.terminated == [process]
    assert host.notifications == [True, False]
    assert controller.is_running
    assert controller.terminating
    launcher.exit(process, status=-15)
    assert not controller.is_running
    assert not controller.terminating
    assert host.notifications == [True, False, False]


def test_second_toggle_while_awaiting_exit_sends_no_second_signal(controller, launcher):
    controller.toggle()
    controller.toggle()
    controller.toggle()
    controller.toggle()
    assert len(launcher.terminated) == 1
    assert len(launcher.spawned) == 1


def test_toggle_after_exit_starts_again(controller, host, launcher):
    controller.toggle()
    controller.toggle()
    launcher.exit(launcher.spawned[0])
    controller.toggle()
    assert len(launcher.spawned) == 2
    assert controller.is_running


def test_settings_change_while_running_restarts_after_exit(controller, host, launcher):
    controller.toggle()
    first = launcher.spawned[0]
    new_settings = MagnifierSettings(shape=Shape.RECTANGLE, width=400, height=200, zoom=4)
    controller.on_settings_changed(new_settings)
    assert launcher.terminated == [first]
    assert len(launcher.spawned) == 1
    assert controller.pending_restart
    launcher.exit(first)
    assert len(launcher.spawned) == 2
    assert launcher.spawned[1].argv == [PROG, "-r", "400", "200", "-z", "4"]
    assert controller.is_running
    assert not controller.pending_restart
    assert host.notifications == [True, False, True]


def test_settings_change_while_stopped_only_persists(controller, host, launcher):
    applied = controller.on_settings_changed(MagnifierSettings(zoom=6))
    assert applied.zoom == 6
    assert host.saved == [applied]
    assert launcher.spawned == []
    assert launcher.terminated == []
    assert not controller.pending_restart


def test_settings_change_normalizes_before_saving(controller, host):
    applied = controller.on_settings_changed(
        MagnifierSettings(shape=Shape.CIRCLE, width=750, zoom=50, x=-4)
    )
    assert (applied.width, applied.zoom, applied.x) == (350, 2, 0)
    assert host.saved[-1] == applied


def test_repeated_settings_changes_restart_once_with_latest(controller, host, launcher):
    controller.toggle()
    controller.on_settings_changed(MagnifierSettings(shape=Shape.CIRCLE, zoom=3))
    controller.on_settings_changed(MagnifierSettings(shape=Shape.CIRCLE, zoom=7))
    assert len(launcher.terminated) == 1
    launcher.exit(launcher.spawned[0])
    assert len(launcher.spawned) == 2
    assert launcher.spawned[1].argv == [PROG, "-c", "350", "-z", "7"]


def test_settings_change_during_user_stop_restarts_once(controller, host, launcher):
    controller.toggle()
    first = launcher.spawned[0]
    controller.toggle()
    controller.on_settings_changed(MagnifierSettings(zoom=9))
    assert controller.pending_restart
    assert launcher.terminated == [first]
    launcher.exit(first)
    assert len(launcher.spawned) == 2
    assert launcher.spawned[1].argv == [PROG, "-r", "350", "350", "-z", "9"]
    assert controller.is_running
    assert host.notifications == [True, False, False, True]


def test_toggle_during_settings_restart_is_ignored(controller, launcher):
    controller.toggle()
    controller.on_settings_changed(MagnifierSettings(zoom=5))
    controller.toggle()
    assert len(launcher.terminated) == 1
    launcher.exit(launcher.spawned[0])
    assert controller.is_running
    assert len(launcher.spawned) == 2


def test_spawn_failure_goes_through_exit_path(controller, host, launcher):
    launcher.spawn_error = FileNotFoundError(2, "No such file or directory")
    controller.toggle()
    assert not controller.is_running
    assert host.notifications == [True, False]
    assert launcher.watchers == {}


def test_spawn_failure_on_restart_leaves_controller_stopped(controller, host, launcher):
    controller.toggle()
    controller.on_settings_changed(MagnifierSettings(zoom=3))
    launcher.spawn_error = PermissionError(13, "Permission denied")
    launcher.exit(launcher.spawned[0])
    assert not controller.is_running
    assert not controller.pending_restart
    assert host.notifications == [True, False, True, False]


def test_spawn_failure_status_is_reported(host, launcher):
    launcher.spawn_error = FileNotFoundError()
    controller = ProcessController(host, launcher, PROG, logger=Mock())
    controller.on_process_exited = Mock(wraps=controller.on_process_exited)
    controller.toggle()
    (process, status), _ = controller.on_process_exited.call_args
    assert status == SPAWN_FAILED_STATUS
    assert not process.spawned


def test_exit_of_unknown_process_is_ignored(controller, host, launcher):
    controller.toggle()
    stranger = HelperProcess([PROG], popen=Mock(pid=1))
    controller.post_exit(stranger, 0)
    assert controller.is_running
    assert host.notifications == [True]


def test_exit_events_wait_for_the_owning_thread(host, launcher):
    pending = []
    controller = ProcessController(host, launcher, PROG, scheduler=pending.append, logger=Mock())
    controller.toggle()
    process = launcher.spawned[0]
    worker = threading.Thread(target=launcher.exit, args=(process, 0))
    worker.start()
    worker.join()
    assert controller.is_running
    assert host.notifications == [True]
    for callback in pending:
        callback()
    assert not controller.is_running
    assert host.notifications == [True, False]


def test_adjust_zoom_is_ignored_while_stopped(controller, host):
    assert controller.adjust_zoom(1) is None
    assert host.saved == []


def test_adjust_zoom_restarts_running_helper(controller, host, launcher):
    controller.toggle()
    applied = controller.adjust_zoom(1)
    assert applied.zoom == 3
    assert host.settings.zoom == 3
    assert controller.pending_restart
    launcher.exit(launcher.spawned[0])
    assert launcher.spawned[1].argv[-2:] == ["-z", "3"]


def test_adjust_zoom_stops_at_bounds(host, launcher):
    host.settings = MagnifierSettings(zoom=16)
    controller = ProcessController(host, launcher, PROG, logger=Mock())
    controller.toggle()
    controller.adjust_zoom(1)
    assert launcher.terminated == []
    assert host.saved == []
    controller.adjust_zoom(-1)
    assert host.settings.zoom == 15


def test_record_position_stores_clamped_coordinates(controller, host):
    updated = controller.record_position(lambda: (15, -3))
    assert (updated.x, updated.y) == (15, 0)
    assert host.saved == [updated]


def test_record_position_failure_keeps_settings(controller, host):
    before = host.settings
    assert controller.record_position(lambda: None) is before

    def broken():
        raise OSError("no display")

    assert controller.record_position(broken) is before
    assert host.saved == []


def test_record_position_does_not_restart(controller, launcher):
    controller.toggle()
    controller.record_position(lambda: (1, 2))
    assert launcher.terminated == []


def test_shutdown_signals_running_helper_and_suppresses_restart(controller, host, launcher):
    controller.toggle()
    controller.on_settings_changed(MagnifierSettings(zoom=4))
    controller.shutdown()
    assert len(launcher.terminated) == 1
    launcher.exit(launcher.spawned[0])
    assert not controller.is_running
    assert len(launcher.spawned) == 1
    assert host.notifications == [True]


def test_shutdown_of_idle_controller_sends_nothing(controller, launcher):
    controller.shutdown()
    controller.toggle()
    assert launcher.terminated == []
    assert launcher.spawned == []


def test_pending_restart_never_outlives_the_process(controller, launcher):
    controller.toggle()
    controller.on_settings_changed(MagnifierSettings(zoom=4))
    launcher.exit(launcher.spawned[0])
    launcher.exit(launcher.spawned[1])
    assert not controller.is_running
    assert not controller.pending_restart


def test_shutdown_with_timeout_reaps_the_helper(controller, launcher):
    controller.toggle()
    process = launcher.spawned[0]
    controller.shutdown(timeout=2.0)
    assert launcher.terminated == [process]
    assert launcher.reaped == [(process, 2.0)]


def test_shutdown_with_timeout_of_idle_controller_reaps_nothing(controller, launcher):
    controller.shutdown(timeout=2.0)
    assert launcher.reaped == []


def test_set_program_applies_to_next_start(controller, launcher):
    assert controller.set_program("/opt/bin/magnifier")
    assert not controller.set_program("/opt/bin/magnifier")
    controller.toggle()
    assert launcher.spawned[0].argv[0] == "/opt/bin/magnifier"
    assert controller.configured_program == "/opt/bin/magnifier"


def test_set_program_restarts_running_helper(controller, host, launcher):
    controller.toggle()
    controller.set_program("magnifier")
    assert controller.pending_restart
    assert len(launcher.terminated) == 1
    launcher.exit(launcher.spawned[0])
    assert launcher.spawned[1].argv[0] == "magnifier"
    assert host.notifications == [True, False, True]


def test_unavailable_program_stops_helper_without_restart(controller, host, launcher):
    controller.toggle()
    launcher.installed = False
    controller.set_program("missing-helper")
    assert not controller.available
    assert not controller.pending_restart
    assert host.notifications == [True, False]
    launcher.exit(launcher.spawned[0])
    assert not controller.is_running
    assert len(launcher.spawned) == 1
    controller.toggle()
    assert len(launcher.spawned) == 1


def test_program_vanishing_during_restart_cancels_restart(controller, launcher):
    controller.toggle()
    controller.on_settings_changed(MagnifierSettings(zoom=3))
    launcher.installed = False
    controller.set_program("missing-helper")
    launcher.exit(launcher.spawned[0])
    assert not controller.is_running
    assert not controller.pending_restart
    assert len(launcher.spawned) == 1

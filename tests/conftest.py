import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Allow importing waymag from the repository root
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from waymag.magnifier.launcher import HelperProcess  # noqa: E402
from waymag.magnifier.settings import MagnifierSettings, Shape  # noqa: E402


class FakeHost:
    def __init__(self, settings=None):
        self.settings = settings or MagnifierSettings(shape=Shape.CIRCLE, width=350, zoom=2)
        self.saved = []
        self.notifications = []

    def get_settings(self):
        return self.settings

    def save_settings(self, settings):
        self.settings = settings
        self.saved.append(settings)

    def notify_running_state_changed(self, is_running):
        self.notifications.append(is_running)


class FakeLauncher:
    def __init__(self, installed=True):
        self.installed = installed
        self.spawned = []
        self.watchers = {}
        self.terminated = []
        self.reaped = []
        self.spawn_error = None

    def resolve(self, program):
        return program if self.installed else None

    def spawn(self, argv):
        if self.spawn_error is not None:
            raise self.spawn_error
        process = HelperProcess(argv, popen=Mock(pid=1000 + len(self.spawned)))
        self.spawned.append(process)
        return process

    def watch(self, process, callback):
        assert process not in self.watchers
        self.watchers[process] = callback

    def terminate(self, process):
        self.terminated.append(process)

    def reap(self, process, timeout):
        self.reaped.append((process, timeout))

    def exit(self, process, status=0):
        self.watchers.pop(process)(process, status)


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def launcher():
    return FakeLauncher()

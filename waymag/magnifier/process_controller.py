"""
Lifecycle of the external magnifier helper.

The controller is driven from one thread (the GTK main loop). Exit watchers
run elsewhere and only enqueue an ExitEvent through post_exit(); the event is
applied on the owning thread by dispatch_exit_events(), which the scheduler
arranges to run.

States: stopped (no process) and running (a process handle is held). A
termination request does not leave the running state; only the observed exit
does. While a termination is in flight further toggles are ignored, so a
helper never receives two signals from us.
"""

import queue
from typing import Any, Callable, NamedTuple, Optional
import structlog
from waymag.magnifier.arguments import build_helper_argv
from waymag.magnifier.launcher import SPAWN_FAILED_STATUS, HelperProcess
from waymag.magnifier.settings import (
    ZOOM_BOUNDS,
    MagnifierSettings,
    normalize_settings,
)

Scheduler = Callable[[Callable[[], None]], Any]


class ExitEvent(NamedTuple):
    process: HelperProcess
    status: int


def _run_now(func: Callable[[], None]) -> None:
    func()


class ProcessController:
    """
    Owns the helper process and the restart flag.

    `host` is the collaborator that owns the settings and the button. It must
    provide get_settings(), save_settings(settings) and
    notify_running_state_changed(is_running).
    """

    def __init__(
        self,
        host: Any,
        launcher: Any,
        program: str,
        scheduler: Optional[Scheduler] = None,
        logger: Any = None,
    ):
        self.host = host
        self.launcher = launcher
        self.logger = logger or structlog.get_logger(__name__)
        self._scheduler: Scheduler = scheduler or _run_now
        self._program = program
        self._resolved_program = launcher.resolve(program)
        self._process: Optional[HelperProcess] = None
        self._pending_restart = False
        self._terminating = False
        self._closed = False
        self._exit_events: "queue.SimpleQueue[ExitEvent]" = queue.SimpleQueue()
        self._dispatching = False
        if self._resolved_program is None:
            self.logger.warning(
                f"Magnifier helper '{program}' not found; the magnifier is unavailable."
            )

    @property
    def available(self) -> bool:
        return self._resolved_program is not None

    @property
    def program(self) -> str:
        return self._resolved_program or self._program

    @property
    def configured_program(self) -> str:
        """The helper name or path as configured, before resolution."""
        return self._program

    @property
    def is_running(self) -> bool:
        return self._process is not None

    @property
    def pending_restart(self) -> bool:
        return self._pending_restart

    @property
    def terminating(self) -> bool:
        return self._terminating

    @property
    def process(self) -> Optional[HelperProcess]:
        return self._process

    def toggle(self) -> None:
        """Starts the helper when stopped, asks it to quit when running."""
        if self._closed:
            return
        if not self.available:
            self.logger.debug("Toggle ignored: magnifier helper is unavailable.")
            return
        if self._process is None:
            self._start()
        elif self._terminating:
            self.logger.debug("Toggle ignored: helper is already shutting down.")
        else:
            self._terminate()
            self._notify(False)

    def on_settings_changed(self, settings: MagnifierSettings) -> MagnifierSettings:
        """
        Normalizes and stores new settings; a running helper is restarted
        with them once its exit has been observed.
        """
        normalized = normalize_settings(settings)
        self.host.save_settings(normalized)
        if self._process is None or self._closed:
            return normalized
        self._pending_restart = True
        if self._terminating:
            self.logger.debug("Helper is already stopping; it restarts with the newest settings.")
        else:
            self._terminate()
        return normalized

    def adjust_zoom(self, step: int) -> Optional[MagnifierSettings]:
        """Scroll-wheel zoom: only acts on a running helper."""
        if self._process is None or self._terminating or step == 0:
            return None
        settings = normalize_settings(self.host.get_settings())
        low, high = ZOOM_BOUNDS
        zoom = min(high, max(low, settings.zoom + step))
        if zoom == settings.zoom:
            return settings
        return self.on_settings_changed(settings.replace(zoom=zoom))

    def record_position(
        self, query: Callable[[], Optional[tuple]]
    ) -> MagnifierSettings:
        """
        Stores the on-screen position reported by `query` as the static
        window position. A failing query leaves the settings untouched.
        """
        settings = self.host.get_settings()
        try:
            position = query()
        except Exception as e:
            self.logger.warning(f"Could not query magnifier position: {e}")
            return settings
        if position is None:
            self.logger.debug("Magnifier position query returned nothing.")
            return settings
        x, y = position
        updated = normalize_settings(settings.replace(x=int(x), y=int(y)))
        self.host.save_settings(updated)
        self.logger.info(f"Recorded static magnifier position {updated.x},{updated.y}.")
        return updated

    def post_exit(self, process: HelperProcess, status: int) -> None:
        """Thread-safe: queue an exit and have it handled on the owning thread."""
        self._exit_events.put(ExitEvent(process, status))
        self._scheduler(self.dispatch_exit_events)

    def dispatch_exit_events(self) -> None:
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while True:
                try:
                    event = self._exit_events.get_nowait()
                except queue.Empty:
                    break
                self.on_process_exited(event.process, event.status)
        finally:
            self._dispatching = False

    def on_process_exited(self, process: HelperProcess, status: int) -> None:
        if process is not self._process:
            self.logger.warning(f"Ignoring exit of unknown helper {process!r}.")
            return
        self.logger.info(
            f"Magnifier helper exited with status {status} "
            f"(termination requested: {self._terminating})."
        )
        self._process = None
        self._terminating = False
        if self._closed:
            self._pending_restart = False
            return
        self._notify(False)
        if self._pending_restart:
            self._pending_restart = False
            if self.available:
                self._start()

    def set_program(self, program: str) -> bool:
        """
        Switches to another helper executable. A running helper is stopped and,
        if the new program resolves, restarted with it. Returns True when the
        program changed.
        """
        if program == self._program:
            return False
        self._program = program
        self._resolved_program = self.launcher.resolve(program)
        if self._resolved_program is None:
            self.logger.warning(
                f"Magnifier helper '{program}' not found; the magnifier is unavailable."
            )
        if self._process is not None and not self._closed:
            self._pending_restart = self.available
            if not self._terminating:
                self._terminate()
                if not self.available:
                    self._notify(False)
        return True

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Teardown: no restarts, no notifications, and no helper left behind.
        With a timeout the helper gets that long to exit before it is killed.
        """
        self._pending_restart = False
        self._closed = True
        process = self._process
        if process is None:
            return
        if not self._terminating:
            self._terminate()
        if timeout is not None:
            self.launcher.reap(process, timeout)

    def _start(self) -> None:
        settings = normalize_settings(self.host.get_settings())
        argv = build_helper_argv(self.program, settings)
        try:
            process = self.launcher.spawn(argv)
        except OSError as e:
            self.logger.error(f"Failed to start magnifier helper {argv[0]}: {e}")
            process = HelperProcess(argv)
        self._process = process
        self._terminating = False
        self._notify(True)
        if process.spawned:
            self.launcher.watch(process, self.post_exit)
        else:
            self.post_exit(process, SPAWN_FAILED_STATUS)

    def _terminate(self) -> None:
        process = self._process
        if process is None:
            return
        self._terminating = True
        try:
            self.launcher.terminate(process)
        except OSError as e:
            self.logger.warning(f"Could not signal magnifier helper {process.pid}: {e}")

    def _notify(self, is_running: bool) -> None:
        try:
            self.host.notify_running_state_changed(is_running)
        except Exception as e:
            self.logger.error(f"Running-state listener failed: {e}", exc_info=True)

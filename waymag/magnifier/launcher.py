import os
import shutil
import subprocess
from concurrent.futures import Executor
from typing import Any, Callable, List, Optional
import structlog
from waymag.plugins.core._event_loop import get_global_executor

# Exit status reported for a helper that could not be executed at all,
# the same value a shell uses for "command not found".
SPAWN_FAILED_STATUS = 127

ExitCallback = Callable[["HelperProcess", int], None]


class HelperProcess:
    """Handle for one launch of the helper; `popen` is None if the launch failed."""

    def __init__(self, argv: List[str], popen: Optional[subprocess.Popen] = None):
        self.argv = list(argv)
        self.popen = popen

    @property
    def pid(self) -> Optional[int]:
        return self.popen.pid if self.popen is not None else None

    @property
    def spawned(self) -> bool:
        return self.popen is not None

    def __repr__(self) -> str:
        return f"<HelperProcess pid={self.pid} argv={self.argv!r}>"


class SubprocessLauncher:
    """
    Starts the helper without blocking the caller and reports its exit from
    a worker thread of the shared executor.
    """

    def __init__(self, executor: Optional[Executor] = None, logger: Any = None):
        self._executor = executor
        self.logger = logger or structlog.get_logger(__name__)

    @property
    def executor(self) -> Executor:
        if self._executor is None:
            self._executor = get_global_executor()
        return self._executor

    def resolve(self, program: str) -> Optional[str]:
        """Absolute path of `program`, or None if it is not executable."""
        if os.sep in program:
            if os.path.isfile(program) and os.access(program, os.X_OK):
                return program
            return None
        return shutil.which(program)

    def spawn(self, argv: List[str]) -> HelperProcess:
        """
        Launches argv with the inherited environment and stdio.
        Raises OSError when the executable cannot be started.
        """
        popen = subprocess.Popen(argv, start_new_session=True)
        self.logger.debug(f"Spawned helper pid {popen.pid}: {' '.join(argv)}")
        return HelperProcess(argv, popen)

    def watch(self, process: HelperProcess, callback: ExitCallback) -> None:
        """Calls callback(process, status) exactly once, from a worker thread."""
        self.executor.submit(self._wait_for_exit, process, callback)

    def _wait_for_exit(self, process: HelperProcess, callback: ExitCallback) -> None:
        status = -1
        try:
            if process.popen is not None:
                status = process.popen.wait()
        except Exception as e:
            self.logger.error(f"Waiting for helper {process.pid} failed: {e}")
        callback(process, status)

    def terminate(self, process: HelperProcess) -> None:
        """Sends SIGTERM. Completion is only observed through watch()."""
        if process.popen is None or process.popen.returncode is not None:
            return
        process.popen.terminate()

    def reap(self, process: HelperProcess, timeout: float) -> None:
        """Waits up to `timeout` seconds for the helper, then kills it."""
        if process.popen is None:
            return
        try:
            process.popen.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            self.logger.warning(
                f"Helper {process.pid} ignored SIGTERM for {timeout}s; killing it."
            )
            process.popen.kill()
            process.popen.wait()

from typing import Any, Callable
from gi.repository import GLib  # pyright: ignore
from waymag.plugins.core._event_loop import get_global_executor


class ConcurrencyHelper:
    """
    Gives a plugin the shared worker pool and a safe way back onto the
    GTK (GLib) main thread.
    """

    def __init__(self, plugin_instance: Any):
        self._plugin = plugin_instance
        self.global_executor = get_global_executor()

    @property
    def logger(self):
        """Access the plugin's logger."""
        return self._plugin.logger

    def schedule_in_gtk_thread(self, func: Callable, *args, **kwargs) -> None:
        """
        Schedules a function to be executed in the main GTK (GLib) thread.
        Safe to call from any thread; this is how worker results reach the UI.
        """

        def wrapper():
            try:
                func(*args, **kwargs)
            except Exception as e:
                self.logger.error(
                    f"Error executing function {func.__name__} in GTK thread: {e}",
                    exc_info=True,
                )
            return GLib.SOURCE_REMOVE

        GLib.idle_add(wrapper)

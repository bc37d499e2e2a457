import os
import sys
import inspect
import gi

gi.require_version("Gtk", "4.0")
from gi.repository import Gtk  # pyright: ignore  # noqa: E402
from typing import Any, Dict, Optional  # noqa: E402
from waymag.shared.config_handler import ConfigHandler  # noqa: E402
from waymag.shared.concurrency_helper import ConcurrencyHelper  # noqa: E402


class PluginLogAdapter:
    """
    A wrapper around the structlog logger that automatically injects the caller's
    file, package, function name and line number into the log event's 'extra' dictionary.
    """

    def __init__(self, logger):
        self._logger = logger
        self._base_plugin_filename = os.path.basename(__file__)

    def _get_caller_context(self) -> Dict[str, Any]:
        frame = inspect.currentframe()
        if not frame:
            return {}
        f = frame.f_back
        try:
            while f:
                caller_file = os.path.basename(f.f_code.co_filename)
                if caller_file != self._base_plugin_filename:
                    return {
                        "file": caller_file,
                        "package": f.f_globals.get("__package__", "unknown"),
                        "func": f.f_code.co_name,
                        "line": f.f_lineno,
                    }
                f = f.f_back
        finally:
            del f
            del frame
        return {}

    def _log_with_context(self, level: str, message: str, **kwargs):
        context = self._get_caller_context()
        if context:
            if "extra" in kwargs and isinstance(kwargs["extra"], dict):
                kwargs["extra"].update(context)
            else:
                kwargs["extra"] = context
        getattr(self._logger, level)(message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log_with_context("info", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log_with_context("warning", message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log_with_context("error", message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log_with_context("debug", message, **kwargs)

    def exception(self, message: str, **kwargs):
        self._log_with_context("exception", message, **kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


class BasePlugin:
    """
    Base class for all waymag plugins: injects the panel's shared services
    and removes the plugin's widget on disable.
    """

    def __init__(self, panel_instance: Any):
        self._panel_instance = panel_instance
        self._ipc = panel_instance.ipc
        self._ipc_server = panel_instance.ipc_server
        self._logger_adapter = PluginLogAdapter(panel_instance.logger)
        self._config_handler: ConfigHandler = panel_instance.config_handler
        self._concurrency_helper = ConcurrencyHelper(self)
        self.main_widget: Optional[tuple] = None
        self.gtk = Gtk
        metadata = self.get_plugin_metadata()
        self.plugin_id: Optional[str] = metadata.get("id") if metadata else None

    def get_plugin_metadata(self) -> Optional[Dict[str, Any]]:
        module_object = sys.modules.get(self.__module__)
        if module_object is None or not hasattr(module_object, "get_plugin_metadata"):
            return None
        return module_object.get_plugin_metadata(self._panel_instance)

    @property
    def logger(self) -> PluginLogAdapter:
        return self._logger_adapter

    @property
    def ipc(self) -> Any:
        """Compositor IPC client."""
        return self._ipc

    @property
    def ipc_server(self) -> Any:
        """Reference to the control CommandServer."""
        return self._ipc_server

    @property
    def config_handler(self) -> ConfigHandler:
        return self._config_handler

    @property
    def global_executor(self):
        return self._concurrency_helper.global_executor

    @property
    def schedule_in_gtk_thread(self):
        return self._concurrency_helper.schedule_in_gtk_thread

    def disable(self) -> None:
        """Disable the plugin and remove its widget from the panel."""
        try:
            self.on_disable()
            if self.main_widget:
                widget = self.main_widget[0]
                parent = widget.get_parent()
                if parent is not None:
                    parent.remove(widget)
        except Exception as e:
            self.logger.error(f"Error disabling plugin: {e}", exc_info=True)

    def on_disable(self):
        """Hook for when plugin is disabled. Plugin authors should add any necessary cleanup here."""
        pass

    def set_widget(self):
        """
        Returns the (widget, action) pair to place on the panel, or None.
        """
        if self.main_widget is None:
            self.logger.error(
                "self.main_widget is still None; the plugin did not build its widget in on_start()."
            )
            return None
        if not isinstance(self.main_widget, tuple) or len(self.main_widget) != 2:
            self.logger.error(
                "Invalid format for self.main_widget. Expected a tuple with two elements."
            )
            return None
        if not isinstance(self.main_widget[0], Gtk.Widget):
            self.logger.error("self.main_widget[0] is not a Gtk.Widget.")
            return None
        return self.main_widget

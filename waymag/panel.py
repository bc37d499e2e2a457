import gi

gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib, Gtk  # pyright: ignore  # noqa: E402
import lazy_loader as lazy  # noqa: E402
from waymag.shared.config_handler import ConfigHandler  # noqa: E402
from waymag.shared.path_handler import PathHandler  # noqa: E402

IPC_MODULE = lazy.load("waymag.core.compositor.ipc")
PLUGIN_LOADER_MODULE = lazy.load("waymag.core.plugin_loader")
EVENT_LOOP_MODULE = lazy.load("waymag.plugins.core._event_loop")


class Panel(Adw.Application):
    """
    Minimal panel host: one undecorated window with a horizontal box that
    receives the widgets of the loaded plugins.
    """

    def __init__(self, logger, ipc_server, application_id="org.waymag.Panel"):
        super().__init__(application_id=application_id)
        self.logger = logger
        self.ipc_server = ipc_server
        self.path_handler = PathHandler(self)
        self.config_handler = ConfigHandler(
            self, config_dir=str(self.path_handler.get_config_dir())
        )
        self.ipc = IPC_MODULE.IPC()  # pyright: ignore
        self.plugin_loader = None
        self.plugins = {}
        self.window = None
        self.box = None
        self.connect("activate", self.on_activate)
        self.connect("shutdown", self.on_shutdown)

    def get_config(self, key_path, default=None):
        """Safely retrieves a configuration value using a list of keys."""
        return self.config_handler.get_root_setting(key_path, default)

    def on_activate(self, app):
        if self.window is not None:
            self.window.present()
            return
        self.window = Gtk.ApplicationWindow(application=app)
        self.window.set_title(self.get_config(["org.waymag.panel", "title"], "waymag"))
        self.window.set_decorated(False)
        self.window.set_resizable(False)
        self.box = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=4)
        self.box.add_css_class("waymag-panel")
        self.window.set_child(self.box)
        self.config_handler.start_watcher()
        if self.ipc_server is not None:
            self.ipc_server.start()
        GLib.idle_add(self.start_plugin_loader)
        self.window.present()

    def start_plugin_loader(self):
        self.plugin_loader = PLUGIN_LOADER_MODULE.PluginLoader(self)  # pyright: ignore
        self.plugin_loader.load_plugins(self.box)
        self.plugins = self.plugin_loader.plugins
        return False

    def on_shutdown(self, app):
        self.logger.info("Shutting down waymag panel...")
        if self.plugin_loader is not None:
            self.plugin_loader.disable_all()
        if self.ipc_server is not None:
            self.ipc_server.stop()
        self.config_handler.stop_watcher()
        self.ipc.close()
        EVENT_LOOP_MODULE.shutdown_global_executor()  # pyright: ignore

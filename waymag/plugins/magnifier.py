# Time a helper gets to honour SIGTERM when the panel quits.
SHUTDOWN_GRACE_SECONDS = 2.0


def get_plugin_metadata(_):
    return {
        "id": "org.waymag.plugin.magnifier",
        "name": "Magnifier",
        "version": "1.0.0",
        "enabled": True,
        "index": 10,
        "container": "panel",
        "deps": [],
        "description": "Virtual magnifying glass: toggles the magnifier helper from the panel.",
    }


def get_plugin_class():
    from waymag.plugins.core._base import BasePlugin
    from waymag.magnifier.commands import MagnifierCommands
    from waymag.magnifier.launcher import SubprocessLauncher
    from waymag.magnifier.process_controller import ProcessController
    from waymag.magnifier.settings import MagnifierSettings
    from waymag.magnifier.store import MagnifierSettingsStore
    from waymag.magnifier.window_position import query_helper_position

    class MagnifierPlugin(BasePlugin):
        """
        Panel button for the virtual magnifier.

        Left click starts or stops the helper, scrolling over the button
        changes the zoom of a running magnifier, and edits to the plugin's
        section of config.toml restart a running magnifier with the new
        options.
        """

        def __init__(self, panel_instance):
            super().__init__(panel_instance)
            self.store = MagnifierSettingsStore(self.config_handler, self.plugin_id)
            self._applied_settings = self.store.load()
            self._visual_running = False
            self.button = None
            self._toggled_handler_id = None
            self.controller = ProcessController(
                host=self,
                launcher=SubprocessLauncher(
                    executor=self.global_executor,
                    logger=self.logger,
                ),
                program=self.store.helper_program,
                scheduler=self.schedule_in_gtk_thread,
                logger=self.logger,
            )
            self.commands = MagnifierCommands(self.controller, self.query_position)

        def on_start(self):
            self.button = self.gtk.ToggleButton()
            self.button.set_has_frame(False)
            self.button.add_css_class("magnifier-button")
            icon = self.gtk.Image.new_from_icon_name(self.store.icon)
            icon.set_pixel_size(
                self.config_handler.get_root_setting(["org.waymag.panel", "icon_size"], 24)
            )
            self.button.set_child(icon)
            self._toggled_handler_id = self.button.connect(
                "toggled", self._on_button_toggled
            )
            scroll_controller = self.gtk.EventControllerScroll.new(
                self.gtk.EventControllerScrollFlags.BOTH_AXES
            )
            scroll_controller.connect("scroll", self._on_scroll)
            self.button.add_controller(scroll_controller)
            self._sync_button()
            if self.ipc_server is not None:
                self.commands.register(self.ipc_server)
            self.config_handler.add_reload_listener(self._on_config_reloaded)
            self.main_widget = (self.button, "append")

        def get_settings(self) -> MagnifierSettings:
            return self.store.load()

        def save_settings(self, settings: MagnifierSettings) -> None:
            self._applied_settings = settings
            if not self.store.save(settings):
                self.logger.warning("Magnifier settings could not be written to config.toml.")

        def notify_running_state_changed(self, is_running: bool) -> None:
            self._visual_running = is_running
            self._sync_button()

        def _sync_button(self) -> None:
            if self.button is None:
                return
            with self.button.handler_block(self._toggled_handler_id):
                self.button.set_active(self._visual_running)
            self.button.set_sensitive(self.controller.available)
            if not self.controller.available:
                tooltip = f"Magnifier unavailable: '{self.controller.program}' is not installed"
            elif self._visual_running:
                tooltip = "Hide virtual magnifier"
            else:
                tooltip = "Show virtual magnifier"
            self.button.set_tooltip_text(tooltip)

        def _on_button_toggled(self, _button):
            self.controller.toggle()
            # A toggle ignored by the controller must not leave the button flipped.
            self._sync_button()

        def _on_scroll(self, _controller, dx: float, dy: float) -> bool:
            step = 1 if (dy < 0 or (dy == 0 and dx < 0)) else -1
            self.controller.adjust_zoom(step)
            return True

        def _on_config_reloaded(self) -> None:
            program = self.store.helper_program
            if self.controller.set_program(program):
                self.logger.info(f"Magnifier helper changed to '{program}'.")
                self._sync_button()
            settings = self.store.load()
            if settings == self._applied_settings:
                return
            self.logger.info("Magnifier settings changed in config.toml; applying.")
            self.controller.on_settings_changed(settings)

        def query_position(self):
            return query_helper_position(self.ipc, self.controller.program)

        def on_disable(self):
            self.controller.shutdown(timeout=SHUTDOWN_GRACE_SECONDS)
            self.config_handler.remove_reload_listener(self._on_config_reloaded)
            if self.ipc_server is not None:
                self.commands.unregister(self.ipc_server)

    return MagnifierPlugin

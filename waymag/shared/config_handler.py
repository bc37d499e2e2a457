import copy
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
import lazy_loader as lazy
from waymag.shared import config_template

TOML_MODULE = lazy.load("toml")

_MISSING_SETTING_SENTINEL = object()


class ConfigHandler:
    """
    Manages the application's configuration file (config.toml) and provides
    a layered access interface.
    Handles file I/O, config merging with defaults, file change monitoring
    (via GIO) and notification of reload listeners.
    """

    def __init__(self, panel_instance: Any, config_dir: str):
        """
        Initializes the configuration handler, sets up paths and loads the
        initial configuration. The file monitor is started separately with
        start_watcher() once a GLib main loop exists.
        Args:
            panel_instance: The main panel instance, used for logger access.
            config_dir: Directory holding config.toml (see PathHandler).
        """
        self.logger = panel_instance.logger
        self.panel_instance = panel_instance
        self._cached_config: Optional[Dict[str, Any]] = None
        self._last_mod_time: float = 0.0
        self._load_successful: bool = False
        self._reload_listeners: List[Callable[[], None]] = []
        self.default_config = copy.deepcopy(config_template.default_config)
        self.config_path: str = config_dir
        self.config_file = Path(self.config_path) / "config.toml"
        self.config_monitor: Any = None
        self.config_data: Dict[str, Any] = self.load_config()

    def _strip_hints(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Recursively removes hint keys so only configuration values reach the
        TOML file.
        """
        stripped_data = {}
        for key, value in data.items():
            if key.endswith("_hint"):
                continue
            if isinstance(value, dict):
                stripped_data[key] = self._strip_hints(value)
            else:
                stripped_data[key] = value
        return stripped_data

    @property
    def default_config_stripped(self) -> Dict[str, Any]:
        """Returns the default config without any setting metadata hints."""
        return self._strip_hints(self.default_config)

    def _recursive_merge(
        self,
        user_config: Dict[str, Any],
        default_config: Dict[str, Any],
    ) -> bool:
        """
        Recursively merges missing keys from `default_config` into `user_config`.
        Returns:
            True if any key was added, indicating a write-back is needed.
        """
        write_back_needed = False
        for key, default_value in default_config.items():
            if key not in user_config:
                user_config[key] = copy.deepcopy(default_value)
                write_back_needed = True
            elif isinstance(default_value, dict) and isinstance(
                user_config.get(key), dict
            ):
                if self._recursive_merge(user_config[key], default_value):
                    write_back_needed = True
        return write_back_needed

    def save_config(self) -> bool:
        """Writes the current state of self.config_data to the TOML file."""
        if not self._load_successful:
            self.logger.warning(
                "Skipping configuration save: Configuration is in an untrusted state (load failed). Please fix config.toml manually."
            )
            return False
        try:
            with open(self.config_file, "w") as f:
                TOML_MODULE.dump(self.config_data, f)  # pyright: ignore
            self._last_mod_time = os.path.getmtime(self.config_file)
            self.logger.info("Configuration saved successfully.")
            return True
        except OSError as e:
            self.logger.error(f"Failed to save configuration to file: {e}")
            return False

    def reload_config(self) -> None:
        """Loads the configuration from the file and notifies reload listeners."""
        try:
            new_config = self.load_config(force_reload=True)
        except Exception as e:
            self.logger.error(f"Error reloading configuration: {e}")
            return
        self.config_data.clear()
        self.config_data.update(new_config)
        self._cached_config = self.config_data
        self.logger.info("Configuration reloaded from file.")
        for listener in list(self._reload_listeners):
            try:
                listener()
            except Exception as e:
                self.logger.error(
                    f"Configuration reload listener {getattr(listener, '__name__', listener)} failed: {e}",
                    exc_info=True,
                )

    def load_config(self, force_reload: bool = False) -> Dict[str, Any]:
        """
        Loads the configuration from file, or uses defaults if missing/corrupt.
        Args:
            force_reload: If True, bypasses the internal cache.
        Returns:
            The loaded and merged configuration dictionary.
        """
        if self._cached_config and not force_reload:
            return self._cached_config
        config_from_file: Dict[str, Any] = {}
        file_must_be_created = not self.config_file.exists()
        load_succeeded = False
        if file_must_be_created:
            self.logger.info("Config file is missing. Will apply defaults and create.")
            load_succeeded = True
        else:
            max_retries = 3
            retry_delay_seconds = 0.1
            for attempt in range(max_retries):
                try:
                    with open(self.config_file, "r") as f:
                        config_from_file = TOML_MODULE.load(f)  # pyright: ignore
                    self.logger.debug("Existing config.toml loaded successfully.")
                    load_succeeded = True
                    self._last_mod_time = os.path.getmtime(self.config_file)
                    break
                except Exception as e:
                    self.logger.error(
                        f"Error loading config file on attempt {attempt + 1}: {e}. Retrying..."
                    )
                    time.sleep(retry_delay_seconds)
            else:
                self.logger.error(
                    "Failed to load config file after all retries. Using default configuration and skipping file save to preserve user data."
                )
                config_from_file = {}
        self._load_successful = load_succeeded
        self._recursive_merge(config_from_file, self.default_config_stripped)
        if file_must_be_created:
            self.logger.info(
                "Saving default configuration to file because it was missing."
            )
            original_config_data = getattr(self, "config_data", None)
            self.config_data = config_from_file
            self.save_config()
            if original_config_data is not None:
                self.config_data = original_config_data
        self._cached_config = config_from_file
        self.logger.debug("Configuration loaded and merged with defaults.")
        return config_from_file

    def add_reload_listener(self, callback: Callable[[], None]) -> None:
        """Registers a callable invoked after the file was edited externally."""
        if callback not in self._reload_listeners:
            self._reload_listeners.append(callback)

    def remove_reload_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._reload_listeners:
            self._reload_listeners.remove(callback)

    def start_watcher(self) -> None:
        """Starts the GIO file monitor for real-time config updates."""
        try:
            from gi.repository import Gio  # pyright: ignore

            gio_config_file = Gio.File.new_for_path(str(self.config_file))
            self.config_monitor = gio_config_file.monitor_file(
                Gio.FileMonitorFlags.NONE, None
            )
            self.config_monitor.connect("changed", self._on_config_file_changed)
        except Exception as e:
            self.logger.error(f"Failed to start Gio.FileMonitor: {e}")

    def stop_watcher(self) -> None:
        if self.config_monitor:
            self.config_monitor.cancel()
            self.config_monitor = None

    def _on_config_file_changed(self, monitor, file, other_file, event_type) -> None:
        """
        Callback triggered by the GIO file monitor when config.toml changes.
        Changes older than our own last save are ignored.
        """
        from gi.repository import Gio  # pyright: ignore

        if event_type not in (
            Gio.FileMonitorEvent.CHANGES_DONE_HINT,
            Gio.FileMonitorEvent.MOVED,
            Gio.FileMonitorEvent.CHANGED,
        ):
            return
        self.check_for_external_change()

    def check_for_external_change(self) -> bool:
        """
        Reloads the configuration if config.toml is newer than the last load
        or save. Returns True when a reload happened.
        """
        try:
            current_mod_time = os.path.getmtime(self.config_file)
        except FileNotFoundError:
            self.logger.warning("Config file not found during change check.")
            return False
        if current_mod_time <= self._last_mod_time:
            self.logger.debug("Change event received but ignored due to debounce.")
            return False
        self.logger.info("Configuration file modified. Reloading...")
        self.reload_config()
        self._last_mod_time = current_mod_time
        return True

    def set_root_setting(self, key_path: List[str], new_value: Any) -> bool:
        """Sets a configuration value by path and saves the file."""
        if not key_path:
            self.logger.error("Configuration key path cannot be empty.")
            return False
        return self.set_root_settings(key_path[:-1], {key_path[-1]: new_value})

    def set_root_settings(self, section_path: List[str], values: Dict[str, Any]) -> bool:
        """
        Sets several keys below one section with a single save.
        """
        if not self._load_successful:
            self.logger.warning(
                f"Update to {' -> '.join(section_path) or '<root>'} skipped: Config file failed to load. Please fix config.toml manually."
            )
            return False
        current_data = self.config_data
        for i, key in enumerate(section_path):
            if key not in current_data or not isinstance(current_data[key], dict):
                if key in current_data:
                    self.logger.error(
                        f"Configuration data corrupted: Expected dictionary at path {' -> '.join(section_path[: i + 1])}, found {type(current_data[key])}."
                    )
                    return False
                current_data[key] = {}
            current_data = current_data[key]
        current_data.update(values)
        self.logger.debug(
            f"Set config keys {sorted(values)} under {' -> '.join(section_path) or '<root>'}."
        )
        return self.save_config()

    def get_root_setting(self, key_path: List[str], default_value: Any = None) -> Any:
        """
        Traverses the configuration dict (self.config_data) to retrieve a value.
        Args:
            key_path: List of strings representing the path (e.g., ['plugins', 'disabled']).
            default_value: Value to return if the path is not found.
        """
        current_data = self.config_data
        for i, key in enumerate(key_path):
            if isinstance(current_data, dict) and key in current_data:
                current_data = current_data[key]
            else:
                self.logger.debug(
                    f"Missing configuration key at path: {' -> '.join(key_path[: i + 1])}. Using default value: {default_value}"
                )
                return default_value
        return current_data

    def get_plugin_setting(
        self,
        key: Optional[Union[str, List[str]]] = None,
        default_value: Any = None,
        plugin_id: Optional[str] = None,
    ) -> Any:
        """
        Retrieves a configuration value from a plugin's section. If 'key' is
        not provided, the whole section is returned.
        """
        if not plugin_id:
            return default_value
        key_path = [plugin_id]
        if isinstance(key, str):
            key_path.append(key)
        elif isinstance(key, list):
            key_path.extend(key)
        result = self.get_root_setting(key_path, _MISSING_SETTING_SENTINEL)
        if result is _MISSING_SETTING_SENTINEL:
            return default_value
        return result

    def set_plugin_setting(
        self,
        key: Union[str, List[str]],
        value: Any,
        plugin_id: Optional[str] = None,
    ) -> bool:
        """Sets and saves a plugin-specific setting."""
        if not plugin_id:
            self.logger.error("Plugin ID is not set, cannot save setting.")
            return False
        key_path: List[str] = [plugin_id]
        if isinstance(key, str):
            key_path.append(key)
        else:
            key_path.extend(key)
        return self.set_root_setting(key_path, value)

    def set_plugin_settings(
        self, values: Dict[str, Any], plugin_id: Optional[str] = None
    ) -> bool:
        """Sets and saves several keys of a plugin's section at once."""
        if not plugin_id:
            self.logger.error("Plugin ID is not set, cannot save settings.")
            return False
        return self.set_root_settings([plugin_id], values)

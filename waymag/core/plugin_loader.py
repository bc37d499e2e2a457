import importlib
import pkgutil
import sys
from typing import Any, Dict, List, Tuple

PLUGIN_PACKAGE = "waymag.plugins"
REQUIRED_METADATA_FIELDS = ("id", "name", "version")


class PluginLoader:
    """
    Discovers the modules in waymag.plugins, validates their metadata, starts
    them in (index, name) order and places their widgets in the panel box.
    Plugin modules expose get_plugin_metadata(panel) and get_plugin_class().
    """

    def __init__(self, panel_instance):
        self.panel_instance = panel_instance
        self.logger = panel_instance.logger
        self.config_handler = panel_instance.config_handler
        self.plugins: Dict[str, Any] = {}
        self.plugin_metadata_map: Dict[str, Dict[str, Any]] = {}
        disabled = self.config_handler.get_root_setting(["plugins", "disabled"], [])
        self.disabled_plugins: List[str] = disabled if isinstance(disabled, list) else []

    def discover(self) -> List[Tuple[str, str]]:
        package = importlib.import_module(PLUGIN_PACKAGE)
        found = []
        for module_info in pkgutil.iter_modules(package.__path__):
            name = module_info.name
            if name.startswith("_") or module_info.ispkg:
                continue
            found.append((name, f"{PLUGIN_PACKAGE}.{name}"))
        return sorted(found)

    def _import_and_validate(self, module_name: str, module_path: str):
        if module_name in self.disabled_plugins:
            self.logger.info(f"Skipping disabled plugin: {module_name}")
            return None
        try:
            module = importlib.import_module(module_path)
        except Exception as e:
            self.logger.error(f"Failed to import plugin {module_name}: {e}", exc_info=True)
            return None
        if not hasattr(module, "get_plugin_metadata") or not hasattr(
            module, "get_plugin_class"
        ):
            self.logger.error(
                f"Module {module_name} is missing required functions (get_plugin_metadata or get_plugin_class). Skipping."
            )
            sys.modules.pop(module_path, None)
            return None
        metadata = module.get_plugin_metadata(self.panel_instance)
        if not isinstance(metadata, dict):
            self.logger.error(
                f"Plugin {module_name} get_plugin_metadata did not return a dictionary. Skipping."
            )
            return None
        missing_fields = [f for f in REQUIRED_METADATA_FIELDS if f not in metadata]
        if missing_fields:
            self.logger.error(
                f"Plugin {module_name} is missing required metadata fields: {', '.join(missing_fields)}. Skipping."
            )
            return None
        if not metadata.get("enabled", True):
            self.logger.info(f"Skipping plugin disabled in its metadata: {module_name}")
            return None
        return module, metadata

    def load_plugins(self, container) -> None:
        candidates = []
        for module_name, module_path in self.discover():
            loaded = self._import_and_validate(module_name, module_path)
            if loaded is not None:
                module, metadata = loaded
                candidates.append((metadata.get("index", 0), module_name, module, metadata))
        for _, module_name, module, metadata in sorted(candidates, key=lambda c: c[:2]):
            self._initialize_plugin(module_name, module, metadata, container)

    def _initialize_plugin(self, module_name, module, metadata, container) -> None:
        try:
            plugin_instance = module.get_plugin_class()(self.panel_instance)
            if hasattr(plugin_instance, "on_start"):
                plugin_instance.on_start()
        except Exception as e:
            self.logger.error(f"Failed to initialize plugin '{module_name}': {e}", exc_info=True)
            return
        self.plugins[module_name] = plugin_instance
        self.plugin_metadata_map[module_name] = metadata
        self.logger.info(f"Initialized plugin: {module_name}")
        if metadata.get("container", "background") == "background":
            return
        widget_spec = plugin_instance.set_widget()
        if widget_spec is None:
            return
        widget, action = widget_spec
        getattr(container, action)(widget)

    def disable_plugin(self, module_name: str) -> None:
        plugin = self.plugins.pop(module_name, None)
        if plugin is None:
            self.logger.warning(f"Plugin {module_name} is not loaded.")
            return
        plugin.disable()
        self.logger.info(f"Plugin {module_name} disabled.")

    def disable_all(self) -> None:
        for module_name in list(self.plugins):
            self.disable_plugin(module_name)

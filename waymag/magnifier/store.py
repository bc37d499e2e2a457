from typing import Any, Dict
from waymag.magnifier.settings import MagnifierSettings
from waymag.shared.config_handler import ConfigHandler
from waymag.shared.config_template import MAGNIFIER_SECTION

DEFAULT_HELPER_PROGRAM = "mage"
DEFAULT_ICON = "system-search"


class MagnifierSettingsStore:
    """Reads and writes MagnifierSettings in the plugin's config.toml section."""

    def __init__(self, config_handler: ConfigHandler, plugin_id: str = MAGNIFIER_SECTION):
        self.config_handler = config_handler
        self.plugin_id = plugin_id

    def _section(self) -> Dict[str, Any]:
        section = self.config_handler.get_plugin_setting(
            default_value={}, plugin_id=self.plugin_id
        )
        return section if isinstance(section, dict) else {}

    def load(self) -> MagnifierSettings:
        return MagnifierSettings.from_config(self._section())

    def save(self, settings: MagnifierSettings) -> bool:
        return self.config_handler.set_plugin_settings(
            settings.to_config(), plugin_id=self.plugin_id
        )

    @property
    def helper_program(self) -> str:
        program = self._section().get("helper_program")
        if isinstance(program, str) and program.strip():
            return program.strip()
        return DEFAULT_HELPER_PROGRAM

    @property
    def icon(self) -> str:
        icon = self._section().get("icon")
        return icon if isinstance(icon, str) and icon else DEFAULT_ICON

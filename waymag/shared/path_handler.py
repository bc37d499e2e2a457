import os
from pathlib import Path


class PathHandler:
    """
    Resolves waymag's directories according to the XDG Base Directory
    Specification.
    """

    def __init__(self, panel_instance, app_name: str = "waymag"):
        """
        Args:
            panel_instance: The panel instance, used for accessing the logger.
            app_name: Directory name used under every XDG base directory.
        """
        self.app_name = app_name
        self._home = Path.home()
        self.logger = panel_instance.logger

    def _get_xdg_base_dir(self, env_var: str, default_path: Path) -> Path:
        """Helper to get XDG base directory with fallback."""
        path_str = os.getenv(env_var)
        if path_str:
            return Path(path_str)
        return default_path

    def get_config_dir(self) -> Path:
        """
        Returns $XDG_CONFIG_HOME/waymag (or ~/.config/waymag), creating it
        if it does not exist.
        """
        config_home = self._get_xdg_base_dir("XDG_CONFIG_HOME", self._home / ".config")
        config_dir = config_home / self.app_name
        try:
            config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Could not create configuration directory: {e}")
        return config_dir

from types import SimpleNamespace
from unittest.mock import Mock

from waymag.core.plugin_loader import PluginLoader
from waymag.shared.path_handler import PathHandler


def make_panel(disabled):
    config_handler = Mock()
    config_handler.get_root_setting.return_value = disabled
    return SimpleNamespace(logger=Mock(), config_handler=config_handler)


def test_discovers_magnifier_and_skips_private_modules():
    found = PluginLoader(make_panel([])).discover()
    assert ("magnifier", "waymag.plugins.magnifier") in found
    assert all(not name.startswith("_") for name, _ in found)


def test_magnifier_metadata_is_valid():
    loader = PluginLoader(make_panel([]))
    module, metadata = loader._import_and_validate("magnifier", "waymag.plugins.magnifier")
    assert metadata["id"] == "org.waymag.plugin.magnifier"
    assert metadata["container"] == "panel"
    assert callable(module.get_plugin_class)


def test_disabled_plugins_are_skipped():
    loader = PluginLoader(make_panel(["magnifier"]))
    assert loader._import_and_validate("magnifier", "waymag.plugins.magnifier") is None


def test_malformed_disabled_list_is_ignored():
    assert PluginLoader(make_panel("magnifier")).disabled_plugins == []


def test_config_dir_follows_xdg(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    config_dir = PathHandler(SimpleNamespace(logger=Mock())).get_config_dir()
    assert config_dir == tmp_path / "waymag"
    assert config_dir.is_dir()

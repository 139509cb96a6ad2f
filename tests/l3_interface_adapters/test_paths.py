"""Tests for shared path constants and model directory resolution."""

from __future__ import annotations

from pathlib import Path

from whisper_bind.l3_interface_adapters.gateways.paths import (
    CONFIG_DIR,
    DEFAULT_CONFIG_PATHS,
    DEFAULT_LIB_ROOT,
    default_model_dir,
)


class TestPaths:
    def test_config_dir_name(self):
        assert CONFIG_DIR.name == 'whisper-bind'

    def test_default_config_paths_are_under_config_dir(self):
        assert len(DEFAULT_CONFIG_PATHS) == 2
        for p in DEFAULT_CONFIG_PATHS:
            assert p.parent == CONFIG_DIR

    def test_lib_root(self):
        assert isinstance(DEFAULT_LIB_ROOT, Path)
        assert DEFAULT_LIB_ROOT.name == 'lib'


class TestDefaultModelDir:
    def test_windows_local_app_data(self):
        env = {'LOCALAPPDATA': 'C:/Users/u/AppData/Local', 'XDG_DATA_HOME': '/ignored'}
        assert default_model_dir(env, system='Windows') == Path('C:/Users/u/AppData/Local') / 'whisper.cpp'

    def test_xdg_data_home(self):
        env = {'XDG_DATA_HOME': '/data', 'HOME': '/home/u'}
        assert default_model_dir(env, system='Linux') == Path('/data/whisper.cpp')

    def test_home_fallback(self):
        assert default_model_dir({'HOME': '/home/u'}, system='Darwin') == Path('/home/u/.local/share/whisper.cpp')

    def test_local_app_data_ignored_off_windows(self):
        env = {'LOCALAPPDATA': '/nope', 'HOME': '/home/u'}
        assert default_model_dir(env, system='Linux') == Path('/home/u/.local/share/whisper.cpp')

    def test_empty_env_uses_home_dir(self):
        assert default_model_dir({}, system='Linux') == Path.home() / '.local' / 'share' / 'whisper.cpp'

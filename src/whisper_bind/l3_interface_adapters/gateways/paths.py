"""Shared path constants and default directory resolution."""

from __future__ import annotations

import os
import platform
from collections.abc import Mapping
from pathlib import Path

from platformdirs import user_config_path, user_data_path

APP_NAME = 'whisper-bind'

CONFIG_DIR = user_config_path(APP_NAME)
DEFAULT_CONFIG_PATHS = [
    CONFIG_DIR / 'config.yaml',
    CONFIG_DIR / 'config.yml',
]

# <root>/lib/<platform>/<prefix>.<ext>
DEFAULT_LIB_ROOT = user_data_path(APP_NAME, appauthor=False) / 'lib'

MODELS_SUBDIR = 'whisper.cpp'


def default_model_dir(env: Mapping[str, str] | None = None, system: str | None = None) -> Path:
    """Directory where downloaded ggml models live when no base dir is given.

    Order: ``%LOCALAPPDATA%`` on Windows, then ``$XDG_DATA_HOME``, then
    ``~/.local/share``; each gets a ``whisper.cpp`` subdirectory.
    """
    env = os.environ if env is None else env
    system = system or platform.system()

    if system.lower() == 'windows':
        local = env.get('LOCALAPPDATA')
        if local:
            return Path(local) / MODELS_SUBDIR
        return user_data_path(MODELS_SUBDIR, appauthor=False)

    xdg_data = env.get('XDG_DATA_HOME')
    if xdg_data:
        return Path(xdg_data) / MODELS_SUBDIR

    home = env.get('HOME')
    return (Path(home) if home else Path.home()) / '.local' / 'share' / MODELS_SUBDIR

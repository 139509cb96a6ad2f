"""Application config defaults — lives in L4, not domain."""

from __future__ import annotations

import copy

from whisper_bind.l1_entities.config import AppConfig
from whisper_bind.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

APP_CONFIG_DEFAULTS: dict = {
    'library': {
        'version': 'main',
        'lib_dir': None,
    },
    'models': {
        'default': 'tiny.en',
        'base_dir': None,
    },
    'transcription': {
        'n_threads': 4,
        'language': 'en',
        'translate': False,
        'parallel_workers': 1,
    },
}


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)

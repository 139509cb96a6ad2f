"""Layer directories ship as namespace packages under the versioned top-level package."""

from __future__ import annotations

import importlib

import pytest

import whisper_bind


@pytest.mark.parametrize(
    'name',
    [
        'whisper_bind.l1_entities',
        'whisper_bind.l2_use_cases',
        'whisper_bind.l2_use_cases.ports',
        'whisper_bind.l3_interface_adapters',
        'whisper_bind.l3_interface_adapters.gateways',
        'whisper_bind.l4_frameworks_and_drivers',
    ],
)
def test_layers_are_namespace_packages(name):
    assert getattr(importlib.import_module(name), '__file__', None) is None


def test_top_level_package_carries_version():
    assert whisper_bind.__version__

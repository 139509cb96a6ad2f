"""Catalog of pre-converted ggml models published for whisper.cpp."""

from __future__ import annotations

MODELS: tuple[str, ...] = (
    'tiny.en',
    'tiny',
    'base.en',
    'base',
    'small.en',
    'small',
    'medium.en',
    'medium',
    'large-v1',
    'large-v2',
    'large-v3',
    'large',
    'large-v3-turbo',
    'large-v3-turbo-q8_0',
    'large-v3-turbo-q5_0',
)


def is_known_model(name: str) -> bool:
    return name in MODELS


def model_filename(name: str) -> str:
    """Weight file name for a catalog model, e.g. ``ggml-tiny.en.bin``."""
    return f'ggml-{name}.bin'

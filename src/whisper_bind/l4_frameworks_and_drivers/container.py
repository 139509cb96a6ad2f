"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from whisper_bind.l1_entities.config import AppConfig
from whisper_bind.l1_entities.params import ContextParameters, RunParameters
from whisper_bind.l2_use_cases.ports.audio_loader import AudioLoader
from whisper_bind.l2_use_cases.ports.model_resolver import ModelResolver
from whisper_bind.l2_use_cases.transcription_session import TranscriptionSession
from whisper_bind.l3_interface_adapters.gateways.audio_file_loader import AUDIO_LOADERS
from whisper_bind.l3_interface_adapters.gateways.hf_model_resolver import HfModelResolver
from whisper_bind.l3_interface_adapters.gateways.library_downloader import LibraryDownloader
from whisper_bind.l3_interface_adapters.gateways.library_registry import LibraryRegistry
from whisper_bind.l3_interface_adapters.gateways.whisper_context import WhisperContext
from whisper_bind.l4_frameworks_and_drivers.config import build_app_config


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        on_progress: Callable[[int], None] | None = None,
        audio_decoder: str = 'native',
    ) -> None:
        self.config = config

        self.downloader = LibraryDownloader(lib_root=config.library.lib_dir, on_progress=on_progress)
        self.library_registry = LibraryRegistry(self.downloader, version=config.library.version)
        self.model_resolver: ModelResolver = HfModelResolver(base_dir=config.models.base_dir, on_progress=on_progress)
        self.audio_loader: AudioLoader = self._build_audio_loader(audio_decoder)

    def _build_audio_loader(self, decoder: str) -> AudioLoader:
        factory = AUDIO_LOADERS.get(decoder)
        if factory is None:
            raise ValueError(f'Unknown audio decoder: {decoder}')
        return factory(self.library_registry)

    def run_parameters(self) -> RunParameters:
        tc = self.config.transcription
        return RunParameters(n_threads=tc.n_threads, language=tc.language, translate=tc.translate)

    def open_session(
        self,
        model: str | None = None,
        params: RunParameters | None = None,
        context_params: ContextParameters | None = None,
    ) -> TranscriptionSession:
        """Resolve *model* (name or path), load it, and return a ready session."""
        model_path = self.model_resolver.resolve(model or self.config.models.default)
        context = WhisperContext.open(model_path, context_params, lib=self.library_registry.get('whisper'))
        context.reset_timings()
        return TranscriptionSession(context, params or self.run_parameters(), self.audio_loader)

    def close(self) -> None:
        self.library_registry.close()

    def __enter__(self) -> DependencyContainer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def from_pretrained(
    model_name: str,
    params: RunParameters | None = None,
    base_dir: str | Path | None = None,
) -> TranscriptionSession:
    """One-call setup: fetch libraries and model as needed, open a session.

    Closing the session also tears down the libraries' search-path override.
    """
    raw: dict = {}
    if base_dir is not None:
        raw['models'] = {'base_dir': str(base_dir)}
    container = DependencyContainer(build_app_config(raw))
    try:
        session = container.open_session(model_name, params=params)
    except Exception:
        container.close()
        raise
    session.call_on_close(container.close)
    return session

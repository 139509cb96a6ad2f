"""Gateway: owning wrappers around whisper.cpp context and state handles."""

from __future__ import annotations

import ctypes
import logging
import os
import threading
import weakref
from pathlib import Path

import numpy as np

from whisper_bind.l1_entities.errors import DecodeError, ModelLoadError, UseAfterReleaseError
from whisper_bind.l1_entities.params import ContextParameters, RunParameters
from whisper_bind.l3_interface_adapters.gateways.library_registry import default_registry
from whisper_bind.l3_interface_adapters.gateways.native_bindings import GGML_LOG_CALLBACK

log = logging.getLogger('wb.context')
native_log = logging.getLogger('wb.native')

# ggml_log_level -> logging level
_GGML_LEVELS = {1: logging.DEBUG, 2: logging.INFO, 3: logging.WARNING, 4: logging.ERROR, 5: logging.DEBUG}

_log_bridge_lock = threading.Lock()
_log_bridged: weakref.WeakSet = weakref.WeakSet()


def _forward_native_log(level: int, text: bytes | None, _user_data) -> None:
    if not text:
        return
    message = text.decode('utf-8', errors='replace').rstrip()
    if message:
        native_log.log(_GGML_LEVELS.get(level, logging.INFO), message)


# the engine keeps this pointer for the life of the process
_LOG_CALLBACK_REF = GGML_LOG_CALLBACK(_forward_native_log)


def install_log_bridge(lib) -> None:
    """Route the engine's fprintf-style logging into the ``wb.native`` logger."""
    with _log_bridge_lock:
        if lib in _log_bridged:
            return
        lib.whisper_log_set(_LOG_CALLBACK_REF, None)
        _log_bridged.add(lib)


def system_info(lib=None) -> str:
    lib = lib if lib is not None else default_registry().get('whisper')
    return lib.whisper_print_system_info().decode('utf-8', errors='replace')


def build_full_params(lib, params: RunParameters):
    """Start from the engine defaults for the strategy and overlay *params*."""
    native = lib.whisper_full_default_params(int(params.strategy))

    native.n_threads = params.n_threads
    native.offset_ms = params.offset_ms
    native.duration_ms = params.duration_ms
    for name in (
        'translate',
        'no_context',
        'no_timestamps',
        'single_segment',
        'print_special',
        'print_progress',
        'print_realtime',
        'print_timestamps',
        'token_timestamps',
        'max_len',
        'split_on_word',
        'max_tokens',
        'audio_ctx',
        'detect_language',
        'suppress_blank',
    ):
        setattr(native, name, getattr(params, name))

    for name in (
        'n_max_text_ctx',
        'temperature',
        'temperature_inc',
        'entropy_thold',
        'logprob_thold',
        'no_speech_thold',
    ):
        value = getattr(params, name)
        if value is not None:
            setattr(native, name, value)

    if params.greedy_best_of is not None:
        native.greedy.best_of = params.greedy_best_of
    if params.beam_size is not None:
        native.beam_search.beam_size = params.beam_size
    if params.beam_patience is not None:
        native.beam_search.patience = params.beam_patience

    native.language = (params.language or 'auto').encode('utf-8')
    native.initial_prompt = params.initial_prompt.encode('utf-8') if params.initial_prompt else None
    return native


class WhisperContext:
    """A loaded model. Release exactly once; every later call fails fast."""

    def __init__(self, lib, handle: int, model_path: Path) -> None:
        self._lib = lib
        self._handle: int | None = handle
        self.model_path = model_path
        self._states: list[WhisperState] = []
        self._lock = threading.Lock()

    @classmethod
    def open(
        cls,
        model_path: str | Path,
        params: ContextParameters | None = None,
        lib=None,
    ) -> WhisperContext:
        """Load *model_path* into a new context.

        Raises:
            ModelLoadError: the file is missing or the engine rejected it.
        """
        path = Path(model_path)
        if not path.is_file():
            raise ModelLoadError(f'Model file not found: {path}')

        lib = lib if lib is not None else default_registry().get('whisper')
        install_log_bridge(lib)

        params = params or ContextParameters()
        cparams = lib.whisper_context_default_params()
        cparams.use_gpu = params.use_gpu
        cparams.flash_attn = params.flash_attn
        cparams.gpu_device = params.gpu_device

        handle = lib.whisper_init_from_file_with_params_no_state(os.fsencode(path), cparams)
        if not handle:
            raise ModelLoadError(f'Failed to initialize whisper context from {path}')

        log.info('loaded model %s', path)
        return cls(lib, handle, path)

    @property
    def released(self) -> bool:
        return self._handle is None

    @property
    def handle(self) -> int:
        if self._handle is None:
            raise UseAfterReleaseError('Whisper context has been released')
        return self._handle

    @property
    def lib(self):
        return self._lib

    def create_state(self) -> WhisperState:
        with self._lock:
            ctx = self.handle
            state_handle = self._lib.whisper_init_state(ctx)
            if not state_handle:
                raise DecodeError('Failed to allocate whisper state')
            state = WhisperState(self, state_handle)
            self._states.append(state)
            return state

    def reset_timings(self) -> None:
        self._lib.whisper_reset_timings(self.handle)

    def print_timings(self) -> None:
        self._lib.whisper_print_timings(self.handle)

    def lang_id(self, language: str) -> int:
        return self._lib.whisper_lang_id(language.encode('utf-8'))

    def release(self) -> None:
        """Free live states, then the context. Safe to call more than once."""
        with self._lock:
            if self._handle is None:
                return
            for state in self._states:
                state._free()
            self._states.clear()
            self._lib.whisper_free(self._handle)
            self._handle = None
        log.debug('released context for %s', self.model_path)

    def _forget(self, state: WhisperState) -> None:
        with self._lock:
            if state in self._states:
                self._states.remove(state)

    def __enter__(self) -> WhisperContext:
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


class WhisperState:
    """Per-run decode workspace; owned by one thread, bounded by its context."""

    def __init__(self, context: WhisperContext, handle: int) -> None:
        self._context = context
        self._lib = context.lib
        self._handle: int | None = handle

    @property
    def released(self) -> bool:
        return self._handle is None

    def _require(self) -> int:
        if self._handle is None or self._context.released:
            raise UseAfterReleaseError('Whisper state has been released')
        return self._handle

    def full(self, samples: np.ndarray, params: RunParameters) -> None:
        """Run the full encoder/decoder pipeline over *samples*.

        Raises:
            DecodeError: the engine returned a non-zero status.
        """
        state = self._require()
        audio = np.ascontiguousarray(samples, dtype=np.float32).reshape(-1)
        native = build_full_params(self._lib, params)
        rc = self._lib.whisper_full_with_state(
            self._context.handle,
            state,
            native,
            audio.ctypes.data_as(ctypes.POINTER(ctypes.c_float)),
            len(audio),
        )
        if rc != 0:
            raise DecodeError(f'whisper_full_with_state failed with code {rc}')

    def n_segments(self) -> int:
        return self._lib.whisper_full_n_segments_from_state(self._require())

    def segment_t0(self, i: int) -> int:
        return self._lib.whisper_full_get_segment_t0_from_state(self._require(), i)

    def segment_t1(self, i: int) -> int:
        return self._lib.whisper_full_get_segment_t1_from_state(self._require(), i)

    def segment_text(self, i: int) -> str:
        raw = self._lib.whisper_full_get_segment_text_from_state(self._require(), i)
        return raw.decode('utf-8', errors='replace') if raw else ''

    def detected_language(self) -> str | None:
        lang_id = self._lib.whisper_full_lang_id_from_state(self._require())
        if lang_id < 0:
            return None
        raw = self._lib.whisper_lang_str(lang_id)
        return raw.decode('ascii') if raw else None

    def release(self) -> None:
        if self._handle is None:
            return
        self._free()
        self._context._forget(self)

    def _free(self) -> None:
        if self._handle is not None:
            self._lib.whisper_free_state(self._handle)
            self._handle = None

    def __enter__(self) -> WhisperState:
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

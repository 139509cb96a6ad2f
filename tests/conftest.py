"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import numpy as np
import pytest

from whisper_bind.l1_entities.config import AppConfig
from whisper_bind.l1_entities.platform_tag import PlatformTag
from whisper_bind.l3_interface_adapters.gateways.native_bindings import WhisperContextParams, WhisperFullParams
from whisper_bind.l4_frameworks_and_drivers.config import build_app_config

# --- Protocol-conforming Fakes ---


class FakeWhisperLib:
    """Stands in for the bound ``libwhisper`` CDLL; records every call."""

    def __init__(self, segments: list[tuple[int, int, str]] | None = None, full_rc: int = 0, init_ok: bool = True):
        self.segments = segments or []
        self.full_rc = full_rc
        self.init_ok = init_ok
        self.freed_contexts: list[int] = []
        self.freed_states: list[int] = []
        self.full_calls: list[tuple[int, int, WhisperFullParams, int]] = []
        self.log_set_calls = 0
        self.reset_timings_calls = 0
        self._next_state = 100
        self._lock = threading.Lock()

    def whisper_log_set(self, callback, user_data) -> None:
        self.log_set_calls += 1

    def whisper_context_default_params(self) -> WhisperContextParams:
        return WhisperContextParams(use_gpu=True, flash_attn=False, gpu_device=0)

    def whisper_init_from_file_with_params_no_state(self, path: bytes, cparams) -> int | None:
        self.init_params = cparams
        return 1 if self.init_ok else None

    def whisper_init_state(self, ctx: int) -> int:
        with self._lock:
            self._next_state += 1
            return self._next_state

    def whisper_free(self, ctx: int) -> None:
        self.freed_contexts.append(ctx)

    def whisper_free_state(self, state: int) -> None:
        self.freed_states.append(state)

    def whisper_full_default_params(self, strategy: int) -> WhisperFullParams:
        params = WhisperFullParams()
        params.strategy = strategy
        params.n_threads = 4
        params.n_max_text_ctx = 16384
        params.temperature = 0.0
        return params

    def whisper_full_with_state(self, ctx, state, params, samples, n_samples) -> int:
        self.full_calls.append((ctx, state, params, n_samples))
        return self.full_rc

    def whisper_full_n_segments_from_state(self, state) -> int:
        return len(self.segments)

    def whisper_full_get_segment_t0_from_state(self, state, i) -> int:
        return self.segments[i][0]

    def whisper_full_get_segment_t1_from_state(self, state, i) -> int:
        return self.segments[i][1]

    def whisper_full_get_segment_text_from_state(self, state, i) -> bytes:
        return self.segments[i][2].encode('utf-8')

    def whisper_full_lang_id_from_state(self, state) -> int:
        return 0

    def whisper_lang_str(self, lang_id: int) -> bytes:
        return b'en'

    def whisper_lang_id(self, lang: bytes) -> int:
        return 0 if lang == b'en' else -1

    def whisper_reset_timings(self, ctx) -> None:
        self.reset_timings_calls += 1

    def whisper_print_timings(self, ctx) -> None:
        pass

    def whisper_print_system_info(self) -> bytes:
        return b'AVX = 1 | NEON = 0'


class FakeState:
    """Fake decode state — segment times are derived from the samples it is given.

    Each second of non-silent audio (value > 0) becomes one segment labelled
    with the sample value, so slicing and merging can be checked exactly.
    """

    def __init__(self, owner: FakeContext):
        self._owner = owner
        self._segments: list[tuple[int, int, str]] = []
        self.released = False

    def full(self, samples: np.ndarray, params) -> None:
        self._owner.full_params.append(params)
        self._segments = []
        for second in range(len(samples) // 16000):
            value = samples[second * 16000]
            if value > 0:
                self._segments.append((second * 100, (second + 1) * 100, f'word{int(value)}'))

    def n_segments(self) -> int:
        return len(self._segments)

    def segment_t0(self, i: int) -> int:
        return self._segments[i][0]

    def segment_t1(self, i: int) -> int:
        return self._segments[i][1]

    def segment_text(self, i: int) -> str:
        return self._segments[i][2]

    def release(self) -> None:
        self.released = True


class FakeContext:
    """Fake native context for L2 orchestrator tests."""

    def __init__(self):
        self.states: list[FakeState] = []
        self.full_params: list = []
        self.released = False
        self._lock = threading.Lock()

    def create_state(self) -> FakeState:
        with self._lock:
            state = FakeState(self)
            self.states.append(state)
            return state

    def release(self) -> None:
        self.released = True


class FakeAudioLoader:
    def __init__(self, samples: np.ndarray):
        self._samples = samples
        self.load_calls: list[Path] = []

    def load(self, path: Path) -> np.ndarray:
        self.load_calls.append(path)
        return self._samples


class FakeKernel32:
    """In-memory ``SetDllDirectoryW`` / ``GetDllDirectoryW`` pair."""

    def __init__(self, current: str | None = None, fail: bool = False):
        self.current = current
        self.fail = fail
        self.set_calls: list[str | None] = []

    def GetDllDirectoryW(self, size, buf):  # noqa: N802 -- mirrors the Win32 name
        if self.current is None:
            return 0
        buf.value = self.current
        return len(self.current)

    def SetDllDirectoryW(self, path):  # noqa: N802 -- mirrors the Win32 name
        self.set_calls.append(path)
        if self.fail:
            return 0
        self.current = path
        return 1


def labelled_audio(values: list[int]) -> np.ndarray:
    """One second of constant samples per entry in *values*."""
    return np.repeat(np.asarray(values, dtype=np.float32), 16000)


# --- Standard Fixtures ---


@pytest.fixture(autouse=True)
def _reset_wb_logger():
    """setup_logging() detaches ``wb`` from the root logger; undo it between tests."""
    yield
    root = logging.getLogger('wb')
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture
def default_config() -> AppConfig:
    return build_app_config({})


@pytest.fixture
def linux_platform() -> PlatformTag:
    return PlatformTag(os='linux', arch='x86_64', extension='so')


@pytest.fixture
def fake_lib() -> FakeWhisperLib:
    return FakeWhisperLib(segments=[(0, 150, ' Hello'), (150, 320, ' world.')])


@pytest.fixture
def fake_context() -> FakeContext:
    return FakeContext()


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    path = tmp_path / 'ggml-tiny.en.bin'
    path.write_bytes(b'ggml')
    return path

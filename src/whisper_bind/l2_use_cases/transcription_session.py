"""Use case: transcription session — drives a model context through decode runs."""

from __future__ import annotations

import concurrent.futures
import contextlib
import logging
from collections.abc import Callable
from pathlib import Path

import numpy as np

from whisper_bind.l1_entities.audio_constants import CENTISECONDS_PER_SECOND, SAMPLE_RATE
from whisper_bind.l1_entities.errors import AudioDecodeError, AudioFileNotFoundError, ContextNotInitializedError
from whisper_bind.l1_entities.params import RunParameters
from whisper_bind.l1_entities.transcript import Segment
from whisper_bind.l2_use_cases.ports.audio_loader import AudioLoader
from whisper_bind.l2_use_cases.ports.speech_engine import SpeechContext, SpeechState

log = logging.getLogger('wb.session')

MIN_SLICE_SAMPLES = SAMPLE_RATE  # one second per worker at least


def samples_to_centiseconds(n_samples: int) -> int:
    return n_samples * CENTISECONDS_PER_SECOND // SAMPLE_RATE


def split_audio(n_samples: int, n_workers: int, min_slice: int = MIN_SLICE_SAMPLES) -> list[tuple[int, int]]:
    """Partition ``[0, n_samples)`` into at most *n_workers* contiguous, disjoint ranges.

    Fewer ranges are produced when the audio is too short to give every worker
    at least *min_slice* samples. The last range absorbs the remainder.
    """
    n = max(1, min(n_workers, n_samples // min_slice if min_slice > 0 else n_workers))
    step = n_samples // n
    return [(i * step, n_samples if i == n - 1 else (i + 1) * step) for i in range(n)]


def merge_segments(parts: list[tuple[int, int, list[Segment]]]) -> list[Segment]:
    """Merge per-worker results into one chronologically ordered sequence.

    Each part is ``(slice_start_cs, slice_end_cs, segments)`` with segment times
    relative to the slice. Times are shifted to absolute offsets and clamped to
    the slice bounds, so segments from different workers never overlap. Text
    at slice boundaries is kept as each worker produced it. Ties sort by worker
    order, then by emission order, and the result is re-indexed from zero.
    """
    keyed: list[tuple[int, int, int, int, str]] = []
    for worker, (slice_start, slice_end, segments) in enumerate(parts):
        for seg in segments:
            end = min(slice_start + seg.end_time, slice_end)
            start = min(slice_start + seg.start_time, end)
            keyed.append((start, end, worker, seg.index, seg.text))

    keyed.sort()
    return [
        Segment(index=i, start_time=start, end_time=end, text=text)
        for i, (start, end, _worker, _idx, text) in enumerate(keyed)
    ]


def collect_segments(state: SpeechState) -> list[Segment]:
    """Copy decoded segments out of *state* in emission order."""
    return [
        Segment(index=i, start_time=state.segment_t0(i), end_time=state.segment_t1(i), text=state.segment_text(i))
        for i in range(state.n_segments())
    ]


class TranscriptionSession:
    """Binds one model context to run parameters and the latest transcript.

    ``transcribe`` runs a single native decode; engine-level threading comes
    from ``n_threads``. ``transcribe_parallel`` slices the audio across worker
    threads, each with its own state on the shared context, and merges results
    by time offset.
    """

    def __init__(
        self,
        context: SpeechContext | None,
        params: RunParameters | None = None,
        audio_loader: AudioLoader | None = None,
    ) -> None:
        self._context = context
        self._params = params or RunParameters()
        self._audio_loader = audio_loader
        self._segments: list[Segment] = []
        self._on_close = contextlib.ExitStack()

    @property
    def context(self) -> SpeechContext:
        return self._require_context()

    @property
    def params(self) -> RunParameters:
        return self._params

    @params.setter
    def params(self, params: RunParameters) -> None:
        self._params = params

    @property
    def segments(self) -> list[Segment]:
        return list(self._segments)

    def transcribe(self, audio: np.ndarray | str | Path, n_threads: int = 1) -> list[Segment]:
        """Transcribe *audio* (samples or a file path) and return ordered segments.

        Raises:
            AudioFileNotFoundError: *audio* is a path that does not exist.
            ContextNotInitializedError: no model context is attached.
            DecodeError: the engine failed.
        """
        samples = self._samples(audio)
        context = self._require_context()
        self._params = self._params.with_n_threads(n_threads)

        segments = self._decode(context, samples, self._params)
        log.info('transcribed %.1fs of audio into %d segments', len(samples) / SAMPLE_RATE, len(segments))
        self._segments = segments
        return list(segments)

    def transcribe_parallel(
        self,
        audio: np.ndarray | str | Path,
        n_workers: int,
        n_threads: int = 1,
    ) -> list[Segment]:
        """Decode disjoint slices of *audio* concurrently and merge by time offset.

        Segments that straddle a slice boundary are split by the slicing and
        may read differently from a sequential decode.
        """
        samples = self._samples(audio)
        context = self._require_context()
        self._params = self._params.with_n_threads(n_threads)
        params = self._params

        ranges = split_audio(len(samples), max(1, n_workers))
        log.info('parallel decode over %d worker(s)', len(ranges))

        with concurrent.futures.ThreadPoolExecutor(max_workers=len(ranges), thread_name_prefix='wb-decode') as pool:
            futures = [pool.submit(self._decode, context, samples[start:end], params) for start, end in ranges]
            parts = [
                (samples_to_centiseconds(start), samples_to_centiseconds(end), future.result())
                for (start, end), future in zip(ranges, futures, strict=True)
            ]

        segments = merge_segments(parts)
        self._segments = segments
        return list(segments)

    def call_on_close(self, callback: Callable[[], None]) -> None:
        """Run *callback* once the context has been released by ``close()``."""
        self._on_close.callback(callback)

    def close(self) -> None:
        try:
            if self._context is not None:
                self._context.release()
        finally:
            self._on_close.close()

    def __enter__(self) -> TranscriptionSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @staticmethod
    def _decode(context: SpeechContext, samples: np.ndarray, params: RunParameters) -> list[Segment]:
        state = context.create_state()
        try:
            state.full(samples, params)
            return collect_segments(state)
        finally:
            state.release()

    def _require_context(self) -> SpeechContext:
        if self._context is None:
            raise ContextNotInitializedError('Context is not initialized. Open a model before transcribing.')
        return self._context

    def _samples(self, audio: np.ndarray | str | Path) -> np.ndarray:
        if isinstance(audio, (str, Path)):
            path = Path(audio)
            if not path.exists():
                raise AudioFileNotFoundError(f'File not found: {path}')
            if self._audio_loader is None:
                raise AudioDecodeError('No audio loader configured for file input.')
            return self._audio_loader.load(path)
        return np.ascontiguousarray(audio, dtype=np.float32).reshape(-1)

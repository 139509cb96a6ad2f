"""Tests for TranscriptionSession — ordering, slicing, merging and error paths."""

from __future__ import annotations

import threading
from pathlib import Path

import numpy as np
import pytest

from tests.conftest import FakeAudioLoader, FakeContext, labelled_audio
from whisper_bind.l1_entities.errors import (
    AudioFileNotFoundError,
    ContextNotInitializedError,
    DecodeError,
    UseAfterReleaseError,
)
from whisper_bind.l1_entities.params import RunParameters
from whisper_bind.l1_entities.transcript import Segment
from whisper_bind.l2_use_cases.transcription_session import (
    TranscriptionSession,
    merge_segments,
    samples_to_centiseconds,
    split_audio,
)


def _assert_well_formed(segments: list[Segment]) -> None:
    assert [s.index for s in segments] == list(range(len(segments)))
    assert all(s.start_time <= s.end_time for s in segments)
    starts = [s.start_time for s in segments]
    assert starts == sorted(starts)


class TestSplitAudio:
    def test_even_split(self):
        assert split_audio(64000, 4) == [(0, 16000), (16000, 32000), (32000, 48000), (48000, 64000)]

    def test_last_range_absorbs_remainder(self):
        ranges = split_audio(50000, 3)
        assert ranges[-1][1] == 50000
        assert ranges[0][0] == 0

    def test_ranges_are_contiguous_and_disjoint(self):
        ranges = split_audio(16000 * 10 + 7, 4)
        for (_, end), (start, _) in zip(ranges, ranges[1:]):
            assert end == start

    def test_short_audio_uses_fewer_workers(self):
        assert split_audio(20000, 8) == [(0, 20000)]

    def test_empty_audio(self):
        assert split_audio(0, 4) == [(0, 0)]


class TestMergeSegments:
    def test_offsets_and_reindex(self):
        parts = [
            (0, 200, [Segment(index=0, start_time=0, end_time=100, text='a')]),
            (200, 400, [Segment(index=0, start_time=50, end_time=150, text='b')]),
        ]
        merged = merge_segments(parts)
        assert [(s.index, s.start_time, s.end_time, s.text) for s in merged] == [
            (0, 0, 100, 'a'),
            (1, 250, 350, 'b'),
        ]

    def test_order_independent_of_part_completion(self):
        late = (300, 600, [Segment(index=0, start_time=0, end_time=100, text='late')])
        early = (0, 300, [Segment(index=0, start_time=0, end_time=100, text='early')])
        merged = merge_segments([late, early])
        assert [s.text for s in merged] == ['early', 'late']

    def test_end_clamped_to_slice_boundary(self):
        parts = [(0, 100, [Segment(index=0, start_time=50, end_time=180, text='overrun')])]
        merged = merge_segments(parts)
        assert merged[0].end_time == 100
        assert merged[0].start_time == 50

    def test_boundary_text_kept_per_worker(self):
        parts = [
            (0, 100, [Segment(index=0, start_time=80, end_time=100, text=' half a')]),
            (100, 200, [Segment(index=0, start_time=0, end_time=20, text='word.')]),
        ]
        assert [s.text for s in merge_segments(parts)] == [' half a', 'word.']


class TestTranscribe:
    def test_segments_copied_in_emission_order(self, fake_context: FakeContext):
        session = TranscriptionSession(fake_context)
        segments = session.transcribe(labelled_audio([1, 0, 2, 3]))

        assert [s.text for s in segments] == ['word1', 'word2', 'word3']
        assert [(s.start_time, s.end_time) for s in segments] == [(0, 100), (200, 300), (300, 400)]
        _assert_well_formed(segments)
        assert session.segments == segments

    def test_state_released_after_run(self, fake_context: FakeContext):
        TranscriptionSession(fake_context).transcribe(labelled_audio([1]))
        assert len(fake_context.states) == 1
        assert fake_context.states[0].released

    def test_state_released_when_decode_fails(self, fake_context: FakeContext):
        def _boom(samples, params):
            raise DecodeError('whisper_full_with_state failed with code -1')

        session = TranscriptionSession(fake_context)
        original_create = fake_context.create_state

        def _create():
            state = original_create()
            state.full = _boom
            return state

        fake_context.create_state = _create
        with pytest.raises(DecodeError):
            session.transcribe(labelled_audio([1]))
        assert fake_context.states[0].released

    def test_fresh_state_per_run(self, fake_context: FakeContext):
        session = TranscriptionSession(fake_context)
        session.transcribe(labelled_audio([1]))
        session.transcribe(labelled_audio([2]))
        assert len(fake_context.states) == 2

    def test_thread_count_applied_without_mutating_original(self, fake_context: FakeContext):
        base = RunParameters(n_threads=2, language='fr')
        session = TranscriptionSession(fake_context, base)
        session.transcribe(labelled_audio([1]), n_threads=6)

        assert base.n_threads == 2
        assert session.params.n_threads == 6
        assert session.params.language == 'fr'
        assert fake_context.full_params[0].n_threads == 6

    def test_no_context_raises(self):
        session = TranscriptionSession(None)
        with pytest.raises(ContextNotInitializedError):
            session.transcribe(labelled_audio([1]))

    def test_missing_audio_file(self, fake_context: FakeContext, tmp_path: Path):
        session = TranscriptionSession(fake_context, audio_loader=FakeAudioLoader(labelled_audio([1])))
        with pytest.raises(AudioFileNotFoundError):
            session.transcribe(tmp_path / 'missing.wav')

    def test_audio_file_goes_through_loader(self, fake_context: FakeContext, tmp_path: Path):
        wav = tmp_path / 'speech.wav'
        wav.write_bytes(b'RIFF')
        loader = FakeAudioLoader(labelled_audio([4, 5]))
        session = TranscriptionSession(fake_context, audio_loader=loader)

        segments = session.transcribe(str(wav))
        assert loader.load_calls == [wav]
        assert [s.text for s in segments] == ['word4', 'word5']

    def test_close_releases_context(self, fake_context: FakeContext):
        with TranscriptionSession(fake_context):
            pass
        assert fake_context.released

    def test_close_callbacks_run_after_release(self, fake_context: FakeContext):
        seen: list[bool] = []
        session = TranscriptionSession(fake_context)
        session.call_on_close(lambda: seen.append(fake_context.released))
        session.close()
        assert seen == [True]

    def test_close_callbacks_run_when_release_fails(self, fake_context: FakeContext):
        def _broken_release():
            raise UseAfterReleaseError('Context already released')

        fake_context.release = _broken_release
        seen: list[str] = []
        session = TranscriptionSession(fake_context)
        session.call_on_close(lambda: seen.append('closed'))
        with pytest.raises(UseAfterReleaseError):
            session.close()
        assert seen == ['closed']


class TestTranscribeParallel:
    def test_matches_sequential_ordering(self, fake_context: FakeContext):
        audio = labelled_audio([1, 2, 0, 3, 4, 5, 0, 6])
        session = TranscriptionSession(fake_context)

        sequential = session.transcribe(audio)
        parallel = session.transcribe_parallel(audio, n_workers=4)

        _assert_well_formed(parallel)
        assert [(s.start_time, s.end_time, s.text) for s in parallel] == [
            (s.start_time, s.end_time, s.text) for s in sequential
        ]

    def test_one_state_per_worker(self, fake_context: FakeContext):
        session = TranscriptionSession(fake_context)
        session.transcribe_parallel(labelled_audio([1, 2, 3, 4]), n_workers=4)
        assert len(fake_context.states) == 4
        assert all(state.released for state in fake_context.states)

    def test_offsets_in_centiseconds(self, fake_context: FakeContext):
        session = TranscriptionSession(fake_context)
        segments = session.transcribe_parallel(labelled_audio([0, 0, 7, 0]), n_workers=2)
        assert [(s.start_time, s.end_time) for s in segments] == [(200, 300)]
        assert samples_to_centiseconds(32000) == 200

    def test_worker_failure_propagates(self, fake_context: FakeContext):
        original_create = fake_context.create_state
        calls = []
        calls_lock = threading.Lock()

        def _create():
            state = original_create()
            with calls_lock:
                calls.append(state)
                fail = len(calls) == 2
            if fail:

                def _boom(samples, params):
                    raise DecodeError('worker failed')

                state.full = _boom
            return state

        fake_context.create_state = _create
        session = TranscriptionSession(fake_context)
        with pytest.raises(DecodeError, match='worker failed'):
            session.transcribe_parallel(labelled_audio([1, 2, 3]), n_workers=3)
        assert all(state.released for state in calls)

    def test_single_worker_equivalent(self, fake_context: FakeContext):
        audio = labelled_audio([3, 1])
        session = TranscriptionSession(fake_context)
        assert [s.text for s in session.transcribe_parallel(audio, n_workers=1)] == ['word3', 'word1']

    def test_accepts_plain_lists(self, fake_context: FakeContext):
        session = TranscriptionSession(fake_context)
        samples = list(np.ones(16000, dtype=np.float32))
        assert [s.text for s in session.transcribe(samples)] == ['word1']

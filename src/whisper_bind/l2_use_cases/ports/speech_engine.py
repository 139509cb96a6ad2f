"""Port: native speech engine handles as seen by the orchestrator."""

from __future__ import annotations

from typing import Protocol

import numpy as np

from whisper_bind.l1_entities.params import RunParameters


class SpeechState(Protocol):
    """Per-run decode workspace. Owned by a single thread."""

    def full(self, samples: np.ndarray, params: RunParameters) -> None: ...

    def n_segments(self) -> int: ...

    def segment_t0(self, i: int) -> int: ...

    def segment_t1(self, i: int) -> int: ...

    def segment_text(self, i: int) -> str: ...

    def release(self) -> None: ...


class SpeechContext(Protocol):
    """A loaded model, read-shared by every state created from it."""

    @property
    def released(self) -> bool: ...

    def create_state(self) -> SpeechState: ...

    def release(self) -> None: ...

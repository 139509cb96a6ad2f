"""Decode and context parameter values — immutable, adjusted by copy."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class SamplingStrategy(enum.IntEnum):
    GREEDY = 0
    BEAM_SEARCH = 1


class ContextParameters(BaseModel):
    """Options applied when a model is loaded into a native context."""

    model_config = ConfigDict(frozen=True)

    use_gpu: bool = True
    flash_attn: bool = False
    gpu_device: int = 0


class RunParameters(BaseModel):
    """Options for one ``whisper_full`` run.

    Fields mirror ``struct whisper_full_params``. ``None`` leaves the engine's
    own default in place. Never mutate a value: every ``with_*`` helper
    returns a new instance.
    """

    model_config = ConfigDict(frozen=True)

    strategy: SamplingStrategy = SamplingStrategy.GREEDY
    n_threads: int = Field(default=4, ge=1)
    n_max_text_ctx: int | None = None
    offset_ms: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)

    translate: bool = False
    no_context: bool = True
    no_timestamps: bool = False
    single_segment: bool = False
    print_special: bool = False
    print_progress: bool = False
    print_realtime: bool = False
    print_timestamps: bool = False

    token_timestamps: bool = False
    max_len: int = Field(default=0, ge=0)
    split_on_word: bool = False
    max_tokens: int = Field(default=0, ge=0)
    audio_ctx: int = Field(default=0, ge=0)

    initial_prompt: str | None = None
    language: str | None = 'en'
    detect_language: bool = False
    suppress_blank: bool = True

    temperature: float | None = None
    temperature_inc: float | None = None
    entropy_thold: float | None = None
    logprob_thold: float | None = None
    no_speech_thold: float | None = None

    greedy_best_of: int | None = None
    beam_size: int | None = None
    beam_patience: float | None = None

    def with_(self, **changes) -> RunParameters:
        """Return a validated copy with *changes* applied."""
        return RunParameters.model_validate({**self.model_dump(), **changes})

    def with_n_threads(self, n_threads: int) -> RunParameters:
        return self.with_(n_threads=n_threads)

    def with_language(self, language: str | None) -> RunParameters:
        return self.with_(language=language)

    def with_translate(self, translate: bool = True) -> RunParameters:
        return self.with_(translate=translate)

    def with_initial_prompt(self, prompt: str | None) -> RunParameters:
        return self.with_(initial_prompt=prompt)

    def with_offset(self, offset_ms: int, duration_ms: int = 0) -> RunParameters:
        return self.with_(offset_ms=offset_ms, duration_ms=duration_ms)

    def with_strategy(self, strategy: SamplingStrategy) -> RunParameters:
        return self.with_(strategy=strategy)

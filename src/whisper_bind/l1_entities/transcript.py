"""Transcript segment entity."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


def format_timestamp(centiseconds: int, separator: str = '.') -> str:
    """Format engine time (10 ms units) as HH:MM:SS.mmm."""
    msec = max(centiseconds, 0) * 10
    hours, msec = divmod(msec, 3_600_000)
    minutes, msec = divmod(msec, 60_000)
    secs, msec = divmod(msec, 1000)
    return f'{hours:02d}:{minutes:02d}:{secs:02d}{separator}{msec:03d}'


class Segment(BaseModel):
    """A single transcribed speech segment, times in centiseconds."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    start_time: int = Field(description='Offset from the start of the audio, in 10 ms units')
    end_time: int = Field(description='Offset from the start of the audio, in 10 ms units')
    text: str

    @property
    def start_seconds(self) -> float:
        return self.start_time / 100.0

    @property
    def end_seconds(self) -> float:
        return self.end_time / 100.0

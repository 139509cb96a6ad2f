"""Configuration Pydantic models — pure schema, no infrastructure defaults."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LibraryConfig(BaseModel):
    version: str
    lib_dir: str | None = None  # None = user data dir / lib


class ModelsConfig(BaseModel):
    default: str
    base_dir: str | None = None  # None = platform data dir


class TranscriptionConfig(BaseModel):
    n_threads: int = Field(ge=1)
    language: str | None
    translate: bool
    parallel_workers: int = Field(ge=1)


class AppConfig(BaseModel):
    library: LibraryConfig
    models: ModelsConfig
    transcription: TranscriptionConfig

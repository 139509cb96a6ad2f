"""Gateway: audio file loaders — decode any supported file to mono 16 kHz float32."""

from __future__ import annotations

import ctypes
import logging
import os
import shutil
import subprocess  # noqa: S404 -- intentional: shells out to ffmpeg with a fixed arg list, not shell=True
from collections.abc import Callable
from pathlib import Path

import numpy as np

from whisper_bind.l1_entities.audio_constants import SAMPLE_RATE
from whisper_bind.l1_entities.errors import AudioDecodeError, AudioFileNotFoundError
from whisper_bind.l3_interface_adapters.gateways.library_registry import LibraryRegistry, default_registry
from whisper_bind.l3_interface_adapters.gateways.native_bindings import (
    SFM_READ,
    SRC_SINC_MEDIUM_QUALITY,
    SfInfo,
    SrcData,
)

_FFMPEG_TIMEOUT = 300  # seconds

log = logging.getLogger('wb.audio')


def _float_ptr(buf: np.ndarray):
    return buf.ctypes.data_as(ctypes.POINTER(ctypes.c_float))


class NativeAudioLoader:
    """Decodes with libsndfile and resamples with libsamplerate.

    Both libraries ship in the same prebuilt archive as the engine and are
    bound through the shared :class:`LibraryRegistry`.
    """

    def __init__(self, registry: LibraryRegistry | None = None, converter: int = SRC_SINC_MEDIUM_QUALITY) -> None:
        self._registry = registry
        self._converter = converter

    @property
    def registry(self) -> LibraryRegistry:
        return self._registry if self._registry is not None else default_registry()

    def load(self, path: Path) -> np.ndarray:
        if not path.exists():
            raise AudioFileNotFoundError(f'Audio file not found: {path}')

        audio, rate = self._read(path)
        if rate != SAMPLE_RATE:
            audio = self._resample(audio, rate)
        return audio

    def _read(self, path: Path) -> tuple[np.ndarray, int]:
        sf = self.registry.get('sndfile')
        info = SfInfo()
        handle = sf.sf_open(os.fsencode(path), SFM_READ, ctypes.byref(info))
        if not handle:
            raise AudioDecodeError(f'Cannot open {path}: {sf.sf_strerror(None).decode(errors="replace")}')
        try:
            frames, channels = info.frames, info.channels
            buf = np.empty(frames * channels, dtype=np.float32)
            read = sf.sf_readf_float(handle, _float_ptr(buf), frames)
        finally:
            sf.sf_close(handle)

        if read <= 0:
            raise AudioDecodeError(f'Audio file appears to be empty: {path}')

        audio = buf[: read * channels]
        if channels > 1:
            audio = audio.reshape(-1, channels).mean(axis=1, dtype=np.float32)
        log.debug('read %d frames @ %d Hz, %d channel(s) from %s', read, info.samplerate, channels, path)
        return np.ascontiguousarray(audio, dtype=np.float32), info.samplerate

    def _resample(self, audio: np.ndarray, rate: int) -> np.ndarray:
        sr = self.registry.get('samplerate')
        ratio = SAMPLE_RATE / rate
        out = np.empty(int(len(audio) * ratio) + 1, dtype=np.float32)

        data = SrcData()
        data.data_in = _float_ptr(audio)
        data.data_out = _float_ptr(out)
        data.input_frames = len(audio)
        data.output_frames = len(out)
        data.src_ratio = ratio

        err = sr.src_simple(ctypes.byref(data), self._converter, 1)
        if err != 0:
            raise AudioDecodeError(f'Resampling {rate} Hz -> {SAMPLE_RATE} Hz failed: {sr.src_strerror(err).decode()}')
        return out[: data.output_frames_gen]


class FfmpegAudioLoader:
    """Reads any format ffmpeg can decode: WAV, FLAC, MP3, M4A, OGG, MP4, etc."""

    def load(self, path: Path) -> np.ndarray:
        """Load *path* using ffmpeg, returning float32 mono PCM at 16 kHz.

        Raises:
            AudioFileNotFoundError: audio file does not exist.
            AudioDecodeError: ffmpeg is missing, conversion failed, timed out, or
                              the file contains no decodable audio.
        """
        if not path.exists():
            raise AudioFileNotFoundError(f'Audio file not found: {path}')

        if shutil.which('ffmpeg') is None:
            raise AudioDecodeError(
                'ffmpeg is required but not found on PATH.\n  macOS:  brew install ffmpeg\n  Debian: apt install ffmpeg'
            )

        cmd = [
            'ffmpeg',
            '-i',
            str(path),
            '-ar',
            str(SAMPLE_RATE),
            '-ac',
            '1',
            '-f',
            'f32le',
            '-v',
            'quiet',
            'pipe:1',
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, timeout=_FFMPEG_TIMEOUT)  # noqa: S603
        except subprocess.TimeoutExpired as exc:
            raise AudioDecodeError(f'ffmpeg timed out after {_FFMPEG_TIMEOUT}s processing: {path}') from exc
        except OSError as exc:
            raise AudioDecodeError(f'Failed to launch ffmpeg: {exc}') from exc

        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            raise AudioDecodeError(f'ffmpeg exited with code {result.returncode} for: {path}\n{stderr}')

        audio = np.frombuffer(result.stdout, dtype=np.float32)
        if len(audio) == 0:
            raise AudioDecodeError(f'Audio file appears to be empty: {path}')

        return audio


# decoder name -> factory taking the library registry
AUDIO_LOADERS: dict[str, Callable[[LibraryRegistry | None], NativeAudioLoader | FfmpegAudioLoader]] = {
    'native': NativeAudioLoader,
    'ffmpeg': lambda registry: FfmpegAudioLoader(),
}

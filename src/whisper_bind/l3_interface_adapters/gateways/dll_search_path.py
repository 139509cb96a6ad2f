"""Gateway: Windows DLL search-path management.

The Windows loader does not look next to ``libwhisper.dll`` when resolving its
``ggml*.dll`` dependencies. ``SetDllDirectoryW`` adds the cache directory to
the search order; the previous value is restored on exit.
"""

from __future__ import annotations

import ctypes
import logging
import platform
import threading
from pathlib import Path

log = logging.getLogger('wb.loader')

_MAX_PATH = 32767

# SetDllDirectory mutates process-wide loader state
_lock = threading.Lock()


def _load_kernel32():
    import ctypes.wintypes  # noqa: PLC0415 -- Windows-only stdlib import

    kernel32 = ctypes.WinDLL('kernel32', use_last_error=True)
    kernel32.SetDllDirectoryW.argtypes = [ctypes.wintypes.LPCWSTR]
    kernel32.SetDllDirectoryW.restype = ctypes.wintypes.BOOL
    kernel32.GetDllDirectoryW.argtypes = [ctypes.wintypes.DWORD, ctypes.wintypes.LPWSTR]
    kernel32.GetDllDirectoryW.restype = ctypes.wintypes.DWORD
    return kernel32


class DllSearchPath:
    """Scoped ``SetDllDirectoryW`` override; a no-op on every other OS."""

    def __init__(self, directory: str | Path, system: str | None = None, kernel32=None) -> None:
        self.directory = Path(directory)
        self._enabled = (system or platform.system()).lower() == 'windows'
        self._kernel32 = kernel32
        self._previous: str | None = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def activate(self) -> DllSearchPath:
        with _lock:
            if not self._enabled or self._active:
                return self
            k32 = self._kernel()
            self._previous = self._current(k32)
            if not k32.SetDllDirectoryW(str(self.directory)):
                raise OSError(f'SetDllDirectoryW failed for {self.directory}')
            self._active = True
            log.debug('dll search path set to %s (was %r)', self.directory, self._previous)
        return self

    def restore(self) -> None:
        with _lock:
            if not self._active:
                return
            self._kernel().SetDllDirectoryW(self._previous)
            log.debug('dll search path restored to %r', self._previous)
            self._previous = None
            self._active = False

    def __enter__(self) -> DllSearchPath:
        return self.activate()

    def __exit__(self, *exc_info) -> None:
        self.restore()

    def _kernel(self):
        if self._kernel32 is None:
            self._kernel32 = _load_kernel32()
        return self._kernel32

    @staticmethod
    def _current(k32) -> str | None:
        buf = ctypes.create_unicode_buffer(_MAX_PATH)
        length = k32.GetDllDirectoryW(_MAX_PATH, buf)
        return buf.value if length else None

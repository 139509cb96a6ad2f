"""Gateway: process-wide registry of bound native libraries."""

from __future__ import annotations

import ctypes
import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from whisper_bind.l1_entities.errors import LibraryBindError, UnsupportedLibraryError
from whisper_bind.l1_entities.library_spec import LIBRARY_SPECS
from whisper_bind.l1_entities.platform_tag import PlatformTag
from whisper_bind.l3_interface_adapters.gateways.dll_search_path import DllSearchPath
from whisper_bind.l3_interface_adapters.gateways.library_downloader import DEFAULT_LIBS_VERSION, LibraryDownloader
from whisper_bind.l3_interface_adapters.gateways.native_bindings import SYMBOL_TABLES, apply_symbols
from whisper_bind.l3_interface_adapters.gateways.platform_detector import current_platform

log = logging.getLogger('wb.libs')


def load_shared_library(path: Path) -> ctypes.CDLL:
    if os.name == 'nt':
        # winmode=0 restores the classic search order, which honours SetDllDirectoryW
        return ctypes.CDLL(str(path), winmode=0)
    return ctypes.CDLL(str(path))


class LibraryRegistry:
    """Lazily binds each native library once and hands out the shared handle.

    First access for a name validates it, fetches the prebuilt archive when the
    binary is missing, and applies the ctypes symbol table. Handles are never
    unloaded; ``close()`` only undoes the Windows search-path override.
    """

    def __init__(
        self,
        downloader: LibraryDownloader | None = None,
        platform: PlatformTag | None = None,
        version: str = DEFAULT_LIBS_VERSION,
        loader: Callable[[Path], object] = load_shared_library,
        kernel32=None,
    ) -> None:
        self._downloader = downloader or LibraryDownloader()
        self._platform = platform
        self._version = version
        self._loader = loader
        self._kernel32 = kernel32
        self._handles: dict[str, object] = {}
        self._lock = threading.Lock()
        self._search_path: DllSearchPath | None = None

    @property
    def platform(self) -> PlatformTag:
        if self._platform is None:
            self._platform = current_platform()
        return self._platform

    @property
    def downloader(self) -> LibraryDownloader:
        return self._downloader

    def library_path(self, name: str) -> Path:
        return self._downloader.library_path(self._spec(name), self.platform)

    def get(self, name: str):
        """Return the bound handle for library *name*, binding it on first use.

        Raises:
            UnsupportedLibraryError: *name* is not a known library.
            LibraryDownloadError / LibraryExtractionError: acquisition failed.
            LibraryBindError: the binary could not be loaded or lacks symbols.
        """
        handle = self._handles.get(name)
        if handle is not None:
            return handle

        with self._lock:
            handle = self._handles.get(name)
            if handle is None:
                handle = self._bind(name)
                self._handles[name] = handle
        return handle

    def is_bound(self, name: str) -> bool:
        return name in self._handles

    def close(self) -> None:
        with self._lock:
            if self._search_path is not None:
                self._search_path.restore()
                self._search_path = None

    def __enter__(self) -> LibraryRegistry:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _spec(self, name: str):
        spec = LIBRARY_SPECS.get(name)
        if spec is None:
            raise UnsupportedLibraryError(f'Unsupported library: {name}')
        return spec

    def _bind(self, name: str):
        spec = self._spec(name)
        platform = self.platform
        path = self._downloader.library_path(spec, platform)

        if not path.is_file():
            self._downloader.ensure_present(platform, self._version, spec)

        if self._search_path is None:
            try:
                self._search_path = DllSearchPath(path.parent, system=platform.os, kernel32=self._kernel32).activate()
            except OSError as exc:
                raise LibraryBindError(f'Failed to add {path.parent} to the DLL search path: {exc}') from exc

        try:
            lib = self._loader(path)
        except OSError as exc:
            raise LibraryBindError(f'Failed to load {path}: {exc}') from exc

        apply_symbols(lib, SYMBOL_TABLES[name])
        log.debug('bound %s from %s', name, path)
        return lib


_default_registry: LibraryRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> LibraryRegistry:
    """Process-wide registry used when callers do not inject their own."""
    global _default_registry  # noqa: PLW0603 -- lazily built process singleton
    with _default_lock:
        if _default_registry is None:
            _default_registry = LibraryRegistry()
        return _default_registry


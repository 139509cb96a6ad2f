"""Gateway: prebuilt native library acquisition."""

from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from collections.abc import Callable
from pathlib import Path

from whisper_bind.l1_entities.errors import LibraryDownloadError, LibraryExtractionError
from whisper_bind.l1_entities.library_spec import WHISPER, LibrarySpec
from whisper_bind.l1_entities.platform_tag import PlatformTag
from whisper_bind.l3_interface_adapters.gateways import hf_transfer
from whisper_bind.l3_interface_adapters.gateways.paths import DEFAULT_LIB_ROOT

LIBS_REPO = 'codewithkyrian/whisper.php'
DEFAULT_LIBS_VERSION = 'main'

log = logging.getLogger('wb.libs')


def library_archive_name(platform: PlatformTag) -> str:
    return f'libs/{platform.identifier}.zip'


def library_archive_url(platform: PlatformTag, version: str = DEFAULT_LIBS_VERSION) -> str:
    return hf_transfer.file_url(LIBS_REPO, library_archive_name(platform), revision=version)


class LibraryDownloader:
    """Ensures the per-platform library cache holds the prebuilt binaries.

    Layout: ``<lib_root>/<platform>/<prefix>.<ext>``. Presence of the requested
    library (the engine library by default) is the sentinel; when it exists
    nothing is fetched. Concurrent processes may both download and extract;
    archives are identical for a given version and platform so the last
    writer wins harmlessly.
    """

    def __init__(
        self,
        lib_root: str | Path | None = None,
        on_progress: Callable[[int], None] | None = None,
        sentinel: LibrarySpec = WHISPER,
    ) -> None:
        self.lib_root = Path(lib_root).expanduser() if lib_root is not None else DEFAULT_LIB_ROOT
        self._on_progress = on_progress
        self._sentinel = sentinel

    def platform_dir(self, platform: PlatformTag) -> Path:
        return self.lib_root / platform.identifier

    def library_path(self, spec: LibrarySpec, platform: PlatformTag) -> Path:
        return self.platform_dir(platform) / spec.filename(platform)

    def is_present(self, platform: PlatformTag, spec: LibrarySpec | None = None) -> bool:
        return self.library_path(spec or self._sentinel, platform).is_file()

    def ensure_present(
        self,
        platform: PlatformTag,
        version: str = DEFAULT_LIBS_VERSION,
        spec: LibrarySpec | None = None,
    ) -> None:
        """Download and unpack the library archive unless it is already cached.

        Presence is judged by *spec*'s binary, or the engine library when omitted,
        so an archive that was only partly extracted is fetched again.

        Raises:
            LibraryDownloadError: the archive could not be fetched.
            LibraryExtractionError: the archive is corrupt or unreadable.
        """
        if self.is_present(platform, spec):
            return

        url = library_archive_url(platform, version)
        scratch = Path(tempfile.mkdtemp(prefix='whisper-cpp-libs-'))
        try:
            try:
                archive = hf_transfer.fetch_file(
                    LIBS_REPO,
                    library_archive_name(platform),
                    scratch,
                    revision=version,
                    on_progress=self._on_progress,
                )
            except Exception as exc:
                raise LibraryDownloadError(url, exc) from exc

            self._extract(archive, self.platform_dir(platform))
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

        log.info('libraries for %s (%s) extracted to %s', platform, version, self.platform_dir(platform))

    @staticmethod
    def _extract(archive: Path, dest: Path) -> None:
        try:
            with zipfile.ZipFile(archive) as zf:
                dest.mkdir(parents=True, exist_ok=True)
                zf.extractall(dest)
        except (zipfile.BadZipFile, OSError) as exc:
            raise LibraryExtractionError(f'Failed to extract library archive {archive.name}: {exc}') from exc

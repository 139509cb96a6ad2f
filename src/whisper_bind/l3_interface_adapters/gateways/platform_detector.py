"""Gateway: host platform detection."""

from __future__ import annotations

import functools
import platform

from whisper_bind.l1_entities.errors import UnsupportedPlatformError
from whisper_bind.l1_entities.platform_tag import SUPPORTED_PLATFORMS, PlatformTag


def detect_platform(system: str | None = None, machine: str | None = None) -> PlatformTag:
    """Map an OS family and CPU architecture to a supported :class:`PlatformTag`.

    Raises:
        UnsupportedPlatformError: no prebuilt libraries exist for the pair.
    """
    os_name = (system if system is not None else platform.system()).lower()
    arch = (machine if machine is not None else platform.machine()).lower()

    entry = SUPPORTED_PLATFORMS.get(os_name, {}).get(arch)
    if entry is None:
        raise UnsupportedPlatformError(f'Unsupported platform: {os_name} {arch}')

    extension, canonical_os, canonical_arch = entry
    return PlatformTag(os=canonical_os, arch=canonical_arch, extension=extension)


@functools.cache
def current_platform() -> PlatformTag:
    """Platform tag of the running interpreter, computed once per process."""
    return detect_platform()

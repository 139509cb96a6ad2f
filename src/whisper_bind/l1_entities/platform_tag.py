"""Platform tag entity — selects which prebuilt native artifacts to use."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

# (os, arch) -> (library extension, canonical os, canonical arch)
SUPPORTED_PLATFORMS: dict[str, dict[str, tuple[str, str, str]]] = {
    'linux': {
        'x86_64': ('so', 'linux', 'x86_64'),
        'aarch64': ('so', 'linux', 'arm64'),
        'arm64': ('so', 'linux', 'arm64'),
    },
    'darwin': {
        'x86_64': ('dylib', 'darwin', 'x86_64'),
        'arm64': ('dylib', 'darwin', 'arm64'),
    },
    'windows': {
        'x86_64': ('dll', 'windows', 'x86_64'),
        'amd64': ('dll', 'windows', 'x86_64'),
    },
}


class PlatformTag(BaseModel):
    """Canonical host platform, e.g. ``linux-x86_64`` with ``so`` libraries."""

    model_config = ConfigDict(frozen=True)

    os: str
    arch: str
    extension: str

    @property
    def identifier(self) -> str:
        return f'{self.os}-{self.arch}'

    @property
    def is_windows(self) -> bool:
        return self.os == 'windows'

    def __str__(self) -> str:
        return self.identifier

"""Port: audio file decoding."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import numpy as np


class AudioLoader(Protocol):
    """Decodes an audio file into mono float32 samples at the engine sample rate."""

    def load(self, path: Path) -> np.ndarray:
        ...

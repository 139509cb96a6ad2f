"""Gateway: HuggingFace model resolver — implements ModelResolver port."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

from whisper_bind.l1_entities.errors import InvalidModelNameError, ModelDownloadError
from whisper_bind.l1_entities.model_catalog import MODELS, is_known_model, model_filename
from whisper_bind.l3_interface_adapters.gateways import hf_transfer
from whisper_bind.l3_interface_adapters.gateways.paths import default_model_dir

WHISPER_CPP_REPO = 'ggerganov/whisper.cpp'

log = logging.getLogger('wb.models')


def model_url(name: str) -> str:
    return hf_transfer.file_url(WHISPER_CPP_REPO, model_filename(name))


class HfModelResolver:
    """Resolves whisper model names to local file paths, downloading from HF if needed."""

    def __init__(
        self,
        base_dir: str | Path | None = None,
        on_progress: Callable[[int], None] | None = None,
    ) -> None:
        self._base_dir = Path(base_dir).expanduser() if base_dir is not None else None
        self._on_progress = on_progress

    def resolve(self, model_name: str) -> str:
        if Path(model_name).is_file():
            return model_name

        if not is_known_model(model_name):
            raise InvalidModelNameError(
                f"'{model_name}' is not a valid pre-converted model or a file path. Choose one of {', '.join(MODELS)}"
            )

        return download_model(model_name, self._base_dir, on_progress=self._on_progress)


def download_model(
    name: str,
    base_dir: str | Path | None = None,
    *,
    on_progress: Callable[[int], None] | None = None,
) -> str:
    """Return the local path of catalog model *name*, downloading it if absent.

    The file is fetched into a scratch directory next to the target and moved
    into place with ``os.replace``, so the target path never holds a partial file.

    Raises:
        ModelDownloadError: the transfer or the final move failed.
    """
    cache_dir = Path(base_dir).expanduser() if base_dir is not None else default_model_dir()
    cache_dir.mkdir(parents=True, exist_ok=True)

    target = cache_dir / model_filename(name)
    if target.exists():
        return str(target)

    url = model_url(name)
    scratch = Path(tempfile.mkdtemp(prefix='.whisper-', dir=cache_dir))
    try:
        downloaded = hf_transfer.fetch_file(
            WHISPER_CPP_REPO,
            model_filename(name),
            scratch,
            on_progress=on_progress,
        )
        os.replace(downloaded, target)
    except Exception as exc:
        raise ModelDownloadError(url, exc) from exc
    finally:
        shutil.rmtree(scratch, ignore_errors=True)

    log.info('model %s stored at %s', name, target)
    return str(target)

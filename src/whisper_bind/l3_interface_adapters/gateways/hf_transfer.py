"""Gateway helpers: streaming single-file downloads from the Hugging Face Hub."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from huggingface_hub import hf_hub_download, hf_hub_url

log = logging.getLogger('wb.download')


def make_progress_class(callback: Callable[[int], None]) -> type:
    """Create a tqdm-compatible class that reports download progress via *callback*."""

    class _ProgressReporter:
        def __init__(self, *args, **kwargs):
            self.total: int = kwargs.get('total', 0) or 0
            self.n: int = 0
            if self.total > 0:
                callback(0)

        def update(self, n: int = 1) -> None:
            self.n += n
            if self.total > 0:
                callback(min(int(self.n / self.total * 100), 100))

        def close(self) -> None:
            pass

        def set_description(self, *a, **kw) -> None:
            pass

        def set_description_str(self, *a, **kw) -> None:
            pass

        def refresh(self) -> None:
            pass

        def __enter__(self):
            return self

        def __exit__(self, *args):
            self.close()

    return _ProgressReporter


def file_url(repo_id: str, filename: str, revision: str | None = None) -> str:
    return hf_hub_url(repo_id=repo_id, filename=filename, revision=revision)


def fetch_file(
    repo_id: str,
    filename: str,
    dest_dir: Path,
    *,
    revision: str | None = None,
    on_progress: Callable[[int], None] | None = None,
) -> Path:
    """Download *filename* from *repo_id* into *dest_dir*, returning the local path.

    Redirects are followed and HTTP errors raise; the caller owns *dest_dir*
    and is responsible for removing it on failure.
    """
    log.info('downloading %s', file_url(repo_id, filename, revision))
    kwargs: dict = dict(repo_id=repo_id, filename=filename, local_dir=dest_dir)
    if revision is not None:
        kwargs['revision'] = revision
    if on_progress is not None:
        kwargs['tqdm_class'] = make_progress_class(on_progress)
    return Path(hf_hub_download(**kwargs))

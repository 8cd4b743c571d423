"""Gateway: HuggingFace model resolver — implements ModelResolver port.

Known whisper.cpp model names map to ggml files in the ``ggerganov/whisper.cpp``
repository and are cached under pywhispercpp's model directory.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from huggingface_hub import hf_hub_download
from pywhispercpp.constants import MODELS_DIR

from offline_scribe.l1_entities.errors import ModelResolutionError

WHISPER_CPP_REPO = 'ggerganov/whisper.cpp'
_KNOWN_MODELS = (
    'tiny',
    'tiny.en',
    'base',
    'base.en',
    'small',
    'small-q8_0',
    'small-q5_1',
    'medium',
    'medium-q8_0',
    'medium-q5_0',
    'large-v3',
    'large-v3-q5_0',
    'large-v3-turbo',
    'large-v3-turbo-q8_0',
    'large-v3-turbo-q5_0',
)
WHISPER_CPP_MODELS = {name: f'ggml-{name}.bin' for name in _KNOWN_MODELS}


class _DownloadProgress:
    """Minimal tqdm stand-in accepted by ``hf_hub_download(tqdm_class=...)``."""

    _report: Callable[[int], None]

    def __init__(self, *args, total: int | None = None, **kwargs) -> None:
        self.total = total or 0
        self.n = 0
        if self.total:
            self._report(0)

    def update(self, n: int = 1) -> None:
        self.n += n
        if self.total:
            self._report(min(self.n * 100 // self.total, 100))

    def _ignore(self, *args, **kwargs) -> None:
        return None

    close = refresh = set_description = set_description_str = _ignore

    def __enter__(self) -> _DownloadProgress:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _make_progress_class(callback: Callable[[int], None]) -> type:
    """Bind *callback* into a tqdm-compatible class reporting whole percentages."""
    return type('_BoundDownloadProgress', (_DownloadProgress,), {'_report': staticmethod(callback)})


class HfModelResolver:
    """Maps a model name or path to a local ggml file, downloading on first use."""

    def __init__(self, on_progress: Callable[[int], None] | None = None) -> None:
        self._on_progress = on_progress

    def resolve(self, model_name: str) -> str:
        local = _local_model(model_name)
        if local is not None:
            return local

        filename = WHISPER_CPP_MODELS.get(model_name)
        if filename is None:
            raise ModelResolutionError(
                f'Unknown model {model_name!r}. Use a file path or one of: {", ".join(sorted(WHISPER_CPP_MODELS))}'
            )
        try:
            return self._fetch(filename)
        except Exception as exc:
            raise ModelResolutionError(f'Failed to download {model_name}: {exc}') from exc

    def _fetch(self, filename: str) -> str:
        cache_dir = Path(MODELS_DIR) / 'whisper-cpp'
        cache_dir.mkdir(parents=True, exist_ok=True)
        cached = cache_dir / filename
        if cached.exists():
            return str(cached)
        kwargs: dict = {'repo_id': WHISPER_CPP_REPO, 'filename': filename, 'local_dir': cache_dir}
        if self._on_progress is not None:
            kwargs['tqdm_class'] = _make_progress_class(self._on_progress)
        return hf_hub_download(**kwargs)


def _local_model(model_name: str) -> str | None:
    """Return *model_name* as a path when it names a file; None when it is a catalog name."""
    candidate = Path(model_name).expanduser()
    if candidate.exists():
        return str(candidate)
    if candidate.is_absolute():
        raise ModelResolutionError(f'Model file not found: {model_name}')
    return None

from __future__ import annotations
import os
from pathlib import Path
from typing import Iterable, List


def _sep() -> str:
    return ';' if os.name == 'nt' else ':'


# Resolve installation dir (codepreview package directory)
_PREVIEW_DIR = Path(__file__).resolve().parent

# Defaults
_DEFAULT_LANGUAGES_FILE = _PREVIEW_DIR / 'data' / 'languages.json'
_DEFAULT_INPUT_MODE = 'sync'
_DEFAULT_LOG_LEVEL = 'WARNING'


def paths_from_env(var: str, defaults: Iterable[Path]) -> List[Path]:
    raw = os.environ.get(var)
    if not raw:
        return [Path(p) for p in defaults]
    sep = _sep()
    return [Path(p.strip()) for p in raw.split(sep) if p.strip()]


def get_languages_files() -> List[Path]:
    # The packaged table always loads first; extra files override entries
    return [_DEFAULT_LANGUAGES_FILE] + paths_from_env('CODEPREVIEW_LANGUAGES_PATH', [])


def get_input_mode() -> str:
    mode = os.environ.get('CODEPREVIEW_INPUT_MODE', _DEFAULT_INPUT_MODE).strip().lower()
    return mode or _DEFAULT_INPUT_MODE


def get_log_level() -> str:
    return os.environ.get('CODEPREVIEW_LOG_LEVEL', _DEFAULT_LOG_LEVEL).strip().upper() or _DEFAULT_LOG_LEVEL

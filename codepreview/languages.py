"""Per-language classifier configuration.

Keyword sets, builtin sets and comment markers are data, not logic: they are
read from JSON files (the packaged ``data/languages.json`` plus any files
listed in ``CODEPREVIEW_LANGUAGES_PATH``) into frozen LanguageSpec objects.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional

from codepreview import LanguageId
from codepreview.config import get_languages_files
from codepreview.errors import PreviewConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LanguageSpec:
    name: LanguageId
    line_comments: tuple[str, ...] = ()
    block_comments: tuple[tuple[str, str], ...] = ()
    string_prefixes: frozenset[str] = frozenset()
    triple_quotes: bool = False
    keywords: frozenset[str] = frozenset()
    builtins: frozenset[str] = frozenset()

    @classmethod
    def from_dict(cls, name: LanguageId, data: dict) -> LanguageSpec:
        if not isinstance(data, dict):
            raise PreviewConfigError(f"Language '{name}' must be a JSON object")
        try:
            blocks = tuple((str(start), str(end)) for start, end in data.get("block_comments", []))
        except (TypeError, ValueError):
            raise PreviewConfigError(f"Language '{name}': block_comments must be [start, end] pairs")
        return cls(
            name=name,
            line_comments=tuple(str(m) for m in data.get("line_comments", []) if m),
            block_comments=blocks,
            string_prefixes=frozenset(p.lower() for p in data.get("string_prefixes", [])),
            triple_quotes=bool(data.get("triple_quotes", False)),
            keywords=frozenset(data.get("keywords", [])),
            builtins=frozenset(data.get("builtins", [])),
        )


# Used for language ids nobody registered: classification stays total
EMPTY_SPEC = LanguageSpec(name="")


class LanguageRegistry:
    def __init__(self, specs: Optional[Iterable[LanguageSpec]] = None):
        self._languages: Dict[LanguageId, LanguageSpec] = {}
        for spec in specs or ():
            self.register(spec)

    def register(self, spec: LanguageSpec) -> None:
        self._languages[spec.name.lower()] = spec

    def get(self, name: LanguageId) -> Optional[LanguageSpec]:
        return self._languages.get((name or "").lower())

    def spec_for(self, name: LanguageId) -> LanguageSpec:
        return self.get(name) or EMPTY_SPEC

    def load_file(self, path: Path) -> None:
        try:
            table = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as ex:
            raise PreviewConfigError(f"Cannot read language table {path}: {ex}") from ex
        if not isinstance(table, dict):
            raise PreviewConfigError(f"Language table {path} must map language ids to objects")
        for name, data in table.items():
            self.register(LanguageSpec.from_dict(name, data))
        logger.debug("Loaded %d language(s) from %s", len(table), path)

    def __contains__(self, name: LanguageId) -> bool:
        return self.get(name) is not None

    def all(self) -> Dict[LanguageId, LanguageSpec]:
        return dict(self._languages)


# Module-level singleton
_registry: Optional[LanguageRegistry] = None

def get_registry() -> LanguageRegistry:
    global _registry
    if _registry is None:
        reg = LanguageRegistry()
        for path in get_languages_files():
            reg.load_file(path)
        _registry = reg
    return _registry


def reset_registry() -> None:
    """Forget the cached registry so the next lookup re-reads the JSON files."""
    global _registry
    _registry = None


EXTENSIONS: Dict[str, LanguageId] = {
    ".py": "python",
    ".java": "java",
    ".html": "html",
    ".htm": "html",
}


def language_for_suffix(suffix: str) -> LanguageId:
    """Language id for a file extension such as '.py'; unknown ones map to themselves."""
    suffix = suffix.lower()
    return EXTENSIONS.get(suffix, suffix.lstrip("."))

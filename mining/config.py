"""Configuration for the mining engine: word lists and tunable defaults."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_LEXICON_PATH = Path(__file__).parent / "resources" / "stopwords.yaml"


@dataclass(frozen=True)
class Lexicon:
    """Static stop words and boilerplate phrases, loaded once."""
    french: frozenset[str]
    itsm: frozenset[str]
    template_phrases: tuple[str, ...]
    signature_phrases: tuple[str, ...]

    @property
    def single_words(self) -> frozenset[str]:
        return self.french | self.itsm

    @property
    def phrases(self) -> tuple[str, ...]:
        return self.template_phrases + self.signature_phrases


@dataclass(frozen=True)
class AnalysisSettings:
    min_df: int = 2
    top_n: int = 20
    k_min: int = 2
    k_max: int = 10
    max_iter: int = 100
    z_threshold: float = 2.5
    similarity_threshold: float = 0.85
    periods_ahead: int = 30
    season_length: int = 7
    seed: int = 42
    cooccurrence_nodes: int = 80
    cooccurrence_edges: int = 200


def load_lexicon(path: str | Path | None = None) -> Lexicon:
    """Load the word lists from YAML; the packaged file is read only once."""
    if path is None:
        return _default_lexicon()
    return _read_lexicon(Path(path))


@lru_cache(maxsize=1)
def _default_lexicon() -> Lexicon:
    return _read_lexicon(DEFAULT_LEXICON_PATH)


def _read_lexicon(path: Path) -> Lexicon:
    raw = _read_yaml(path)
    lexicon = Lexicon(
        french=frozenset(str(w).lower() for w in raw.get("french") or []),
        itsm=frozenset(str(w).lower() for w in raw.get("itsm") or []),
        template_phrases=tuple(str(p) for p in raw.get("template_phrases") or []),
        signature_phrases=tuple(str(p) for p in raw.get("signature_phrases") or []),
    )
    logger.debug(
        "Loaded lexicon from %s: %d stop words, %d phrases",
        path,
        len(lexicon.single_words),
        len(lexicon.phrases),
    )
    return lexicon


def load_settings(config_path: str | Path | None = None) -> AnalysisSettings:
    """Overlay a YAML mapping onto the default settings."""
    settings = AnalysisSettings()
    if config_path is None:
        return settings

    file_cfg = _read_yaml(Path(config_path))
    known = {f.name for f in fields(AnalysisSettings)}
    merged: dict[str, Any] = {}
    for key, value in file_cfg.items():
        if key not in known:
            logger.warning("Ignoring unknown setting '%s' in %s", key, config_path)
            continue
        merged[key] = value
    return replace(settings, **merged)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}", {"error": str(e)}) from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {path}")
    return data


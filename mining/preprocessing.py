from __future__ import annotations

import re
from collections import Counter, defaultdict
from collections.abc import Iterable

from nltk.stem.snowball import SnowballStemmer

from .config import Lexicon, load_lexicon

HTML_RE = re.compile(
    r"<[^>]*>|&amp;|&lt;|&gt;|&quot;|&apos;|&nbsp;|&#\d+;|&#x[0-9a-fA-F]+;",
    re.IGNORECASE,
)
WORD_RE = re.compile(r"[^\W_]+")

MIN_TOKEN_LEN = 2
MAX_TOKEN_LEN = 30
MIN_STEM_LEN = 2

_STEMMER = SnowballStemmer("french")


class StopWordFilter:
    """Stop words and boilerplate phrases applied by the normalizer.

    Single words (French + service desk vocabulary + dynamic names) are
    matched against lowercased tokens. Template and signature phrases are
    removed from the raw text before tokenization.

    Instances are immutable; ``with_names`` returns a new filter.
    """

    def __init__(self, lexicon: Lexicon | None = None, extra_words: Iterable[str] = ()) -> None:
        self._lexicon = lexicon or load_lexicon()
        self._extra_words = frozenset(extra_words)
        self._words = self._lexicon.single_words | self._extra_words
        self._phrase_regexes = tuple(
            re.compile(re.escape(phrase), re.IGNORECASE) for phrase in self._lexicon.phrases
        )

    @property
    def phrase_patterns(self) -> tuple[str, ...]:
        return self._lexicon.phrases

    def with_names(self, names: Iterable[str]) -> StopWordFilter:
        """Return a filter that also drops every whitespace-separated part of ``names``."""
        parts = {part.lower() for name in names for part in name.split()}
        return StopWordFilter(self._lexicon, self._extra_words | parts)

    def remove_phrases(self, text: str) -> str:
        for regex in self._phrase_regexes:
            text = regex.sub(" ", text)
        return text

    def is_stop_word(self, token: str) -> bool:
        return token in self._words


def strip_html(text: str) -> str:
    return HTML_RE.sub(" ", text)


def normalize(text: str, stop_filter: StopWordFilter) -> list[str]:
    """Turn raw text into an ordered list of stems."""
    return [stem for stem, _ in normalize_with_originals(text, stop_filter)]


def normalize_with_originals(text: str, stop_filter: StopWordFilter) -> list[tuple[str, str]]:
    """Like ``normalize`` but keeps each stem paired with the word it came from."""
    pairs: list[tuple[str, str]] = []
    for word in _tokenize(stop_filter.remove_phrases(strip_html(text or ""))):
        if not MIN_TOKEN_LEN <= len(word) <= MAX_TOKEN_LEN:
            continue
        if stop_filter.is_stop_word(word):
            continue
        stem = _STEMMER.stem(word)
        if len(stem) < MIN_STEM_LEN:
            continue
        pairs.append((stem, word))
    return pairs


def preprocess_corpus(texts: list[str], stop_filter: StopWordFilter) -> list[list[str]]:
    return [normalize(text, stop_filter) for text in texts]


def build_stem_mapping(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Map every stem to its most frequent original word.

    Equal counts resolve to the alphabetically first word.
    """
    counts: dict[str, Counter[str]] = defaultdict(Counter)
    for stem, original in pairs:
        counts[stem][original] += 1

    mapping: dict[str, str] = {}
    for stem, originals in counts.items():
        best, _ = min(originals.items(), key=lambda item: (-item[1], item[0]))
        mapping[stem] = best
    return mapping


def resolve_stem(stem: str, mapping: dict[str, str]) -> str:
    return mapping.get(stem, stem)


def _tokenize(text: str) -> list[str]:
    return [token.lower() for token in WORD_RE.findall(text)]

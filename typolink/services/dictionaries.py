import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Tuple, Union
from ..errors import DetectorNotReadyError
logger = logging.getLogger(__name__)

def _dedupe(items: Iterable[str]) -> Tuple[str, ...]:
    seen = {}
    for item in items:
        item = item.strip().lower()
        if item and (not item.startswith('//')) and (item not in seen):
            seen[item] = None
    return tuple(seen)

@dataclass(frozen=True)
class Dictionaries:
    """English words and recognised TLDs. Both are lower-cased and immutable."""
    words: FrozenSet[str] = field(default_factory=frozenset)
    tlds: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_iterables(cls, words: Iterable[str], tlds: Iterable[str]) -> 'Dictionaries':
        return cls(words=frozenset(_dedupe(words)), tlds=_dedupe(tlds))

    @property
    def ready(self) -> bool:
        return bool(self.words) and bool(self.tlds)

    def ensure_ready(self) -> None:
        if not self.ready:
            raise DetectorNotReadyError(f'Dictionaries not loaded (words={len(self.words)}, tlds={len(self.tlds)})')

    def is_word(self, token: str) -> bool:
        return token.lower() in self.words

    def is_tld(self, token: str) -> bool:
        return token.lower() in self.tlds

def load_words(path: Union[str, Path]) -> Tuple[str, ...]:
    text = Path(path).read_text(encoding='utf-8', errors='ignore')
    return _dedupe(text.splitlines())

def load_tlds(path: Union[str, Path]) -> Tuple[str, ...]:
    """Read a public-suffix JSON object (keys are suffixes) or a newline list."""
    path = Path(path)
    text = path.read_text(encoding='utf-8', errors='ignore')
    if path.suffix.lower() == '.json':
        data = json.loads(text)
        return _dedupe(data.keys() if isinstance(data, dict) else data)
    return _dedupe(text.splitlines())

def load_dictionaries(words_path: Union[str, Path], tlds_path: Union[str, Path]) -> Dictionaries:
    dictionaries = Dictionaries.from_iterables(load_words(words_path), load_tlds(tlds_path))
    logger.info(f'Loaded {len(dictionaries.words)} words from {words_path} and {len(dictionaries.tlds)} TLDs from {tlds_path}')
    return dictionaries

def try_load_dictionaries(words_path: Optional[str], tlds_path: Optional[str]) -> Dictionaries:
    try:
        return load_dictionaries(words_path, tlds_path)
    except (OSError, ValueError) as e:
        logger.error(f'Could not load dictionaries: {e}')
        return Dictionaries()

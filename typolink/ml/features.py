import re
from typing import Dict, List, Optional, Sequence
import numpy as np
from ..services.dictionaries import Dictionaries
from .prefilter import Candidate
TLD_FLAGS = ['net', 'co', 'gov', 'it', 'my', 'no', 'so', 'you', 'to', 'zip']
FEATURE_ORDER = ['ns', 'preposition', 'string', 'repetition', 'beginning', 'end', 'middle'] + TLD_FLAGS
FEATURE_DIM = len(FEATURE_ORDER)
ADDRESS_CUES = ('on', 'via', 'to', 'at')
ADDRESS_CUE_PARTS = ('website', 'visit', ':')
_CAMEL_RE = re.compile('[a-z][A-Z]')
_DOT_CAPITAL_RE = re.compile('[a-z]\\.[A-Z]')

def _is_number(s: str) -> bool:
    return s.isascii() and s.isdigit()

def position_features(token: str, text: str) -> Dict[str, int]:
    start = text.find(token)
    if start != -1 and start == len(text) - len(token):
        return {'beginning': 0, 'end': 1, 'middle': 0}
    if start == 0:
        return {'beginning': 1, 'end': 0, 'middle': 0}
    return {'beginning': 0, 'end': 0, 'middle': 1}

def repetition_feature(token: str, text: str) -> int:
    return int(text.count(token) > 1)

def preposition_feature(token: str, text: str) -> int:
    """0 when some occurrence is introduced like an address ("visit x.co", "at x.co"), else 1."""
    previous = re.findall('([^ \\r\\n]+) ' + re.escape(token), text)
    for word in previous:
        word = word.lower()
        if word in ADDRESS_CUES or any((part in word for part in ADDRESS_CUE_PARTS)):
            return 0
    return 1

def tld_features(tld: str) -> Dict[str, int]:
    return {name: int(tld == name) for name in TLD_FLAGS}

def string_feature(candidate: Candidate, dictionaries: Dictionaries) -> int:
    first = candidate.first_word
    others = list(candidate.other_words)
    if not first or not others:
        return 0
    short = sum((1 for w in others if len(w) < 2)) if len(first) < 2 else 0
    if short == len(others) - 1:
        return 1
    if any(('-' in w for w in [first, *others])):
        return 0
    first_is_word = dictionaries.is_word(first)
    first_is_number = _is_number(first)
    others_are_words = all((dictionaries.is_word(w) for w in others[:-1]))
    others_are_numbers = all((_is_number(w) for w in others))
    # segments are lower-cased; only the raw token can carry capitals
    first_camel = bool(_CAMEL_RE.search(first))
    others_camel = any((_CAMEL_RE.search(w) for w in others))
    dot_capital = bool(_DOT_CAPITAL_RE.search(candidate.token))
    if not first_is_word and (not first_is_number) or not others_are_words:
        return 0
    if first_is_number and len(others) == 1:
        return 1
    if first_is_number and others_are_numbers:
        return 1
    if first_is_number and others_are_words and (not others_camel):
        return 1
    if first_is_word and (not first_camel) and (len(others) == 1) and dot_capital:
        return 1
    if others_are_words and (not others_camel) and first_is_number:
        return 1
    if others_are_words and (not others_camel) and first_is_word and (not first_camel):
        return 1
    return 0

def ns_feature(ns_records: Optional[Sequence[str]]) -> int:
    # None means the lookup failed or timed out
    if ns_records is None:
        return 0
    return int(len(ns_records) == 0)

def extract_features(candidate: Candidate, text: str, dictionaries: Dictionaries, ns_records: Optional[Sequence[str]]=None) -> dict:
    token = candidate.token
    text = text or ''
    feats = {'ns': ns_feature(ns_records), 'preposition': preposition_feature(token, text), 'string': string_feature(candidate, dictionaries), 'repetition': repetition_feature(token, text)}
    feats.update(position_features(token, text))
    feats.update(tld_features(candidate.tld))
    return feats

def to_vector(feats: Dict[str, int]) -> List[int]:
    return [int(feats[k]) for k in FEATURE_ORDER]

def to_matrix(rows: Sequence[Dict[str, int]]) -> np.ndarray:
    return np.array([to_vector(r) for r in rows], dtype=float).reshape(-1, FEATURE_DIM)

class FeatureExtractor:

    def __init__(self, dictionaries: Dictionaries):
        dictionaries.ensure_ready()
        self.dictionaries = dictionaries

    def extract(self, candidate: Candidate, text: str, ns_records: Optional[Sequence[str]]=None) -> dict:
        return extract_features(candidate, text, self.dictionaries, ns_records)

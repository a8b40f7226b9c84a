import re
from dataclasses import dataclass
from typing import List, Tuple
from ..services.dictionaries import Dictionaries
# reserved for unambiguous links: anything with a path, a query or a www host
LINK_MARKERS = ('/', '?', 'www')
EXCLUDED_TLDS = ('com', 'org')
_FIRST_WORD_RE = re.compile('^[\\w-]+')
_OTHER_WORDS_RE = re.compile('(?<=\\.)[\\w-]+')

@dataclass(frozen=True)
class Candidate:
    token: str
    first_word: str
    other_words: Tuple[str, ...]
    tld: str = ''
    is_candidate: bool = False

    @property
    def segments(self) -> List[str]:
        return [self.first_word, *self.other_words]

def split_segments(token: str) -> Tuple[str, Tuple[str, ...]]:
    m = _FIRST_WORD_RE.match(token)
    first = m.group(0) if m else ''
    return (first, tuple(_OTHER_WORDS_RE.findall(token)))

class Prefilter:

    def __init__(self, dictionaries: Dictionaries):
        dictionaries.ensure_ready()
        self.dictionaries = dictionaries

    def infer_tld(self, other_words: Tuple[str, ...]) -> str:
        if not other_words:
            return ''
        if len(other_words) == 1:
            return other_words[0]
        last = other_words[-1]
        ending = other_words[-2] + '.' + last
        tld = ''
        for item in self.dictionaries.tlds:
            if item in ending and len(item) > len(tld) and last in item:
                tld = item
        return tld

    def check(self, token: str) -> Candidate:
        raw = token.strip()
        url = raw.lower()
        (first, others) = split_segments(url)

        def result(tld: str, ok: bool) -> Candidate:
            return Candidate(token=raw, first_word=first, other_words=others, tld=tld, is_candidate=ok)
        if any((marker in url for marker in LINK_MARKERS)):
            return result('', False)
        if not first or not others:
            return result('', False)
        tld = self.infer_tld(others)
        if not tld or tld in EXCLUDED_TLDS or '.' in tld:
            return result(tld, False)
        return result(tld, self.dictionaries.is_word(tld))

    def __call__(self, token: str) -> Candidate:
        return self.check(token)

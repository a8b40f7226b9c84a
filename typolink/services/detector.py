"""
One detection pass over the candidate tokens of a message.

Tokens are normalised and de-duplicated, prefiltered, then every surviving
candidate gets its own NS lookup task. All lookups are gathered before any
feature vector reaches the classifier, so a verdict is never computed from a
partial batch. Cancelling the pass cancels the pending lookups with it.
"""
import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
from ..config import settings
from ..errors import DetectorNotReadyError
from ..ml.features import FeatureExtractor
from ..ml.model import TypoUrlModel
from ..ml.prefilter import Candidate, Prefilter
from ..ml.svm_model import SVMModel
from .dictionaries import Dictionaries
logger = logging.getLogger(__name__)
WARNING_PREFIX = 'WARNING! You are about to post following link(s): '
_SCHEMES = ('https://', 'http://')
_DOTTED_TOKEN_RE = re.compile('\\S+\\.\\S+')
_TRAILING_PUNCT = '.,;:!?)]}"\''
_LEADING_PUNCT = '([{"\''

def normalize_token(token: str) -> str:
    token = token.strip()
    for scheme in _SCHEMES:
        token = token.replace(scheme, '', 1)
    return token

def find_candidate_tokens(text: str) -> List[str]:
    """Dotted tokens in free text, trailing sentence punctuation removed."""
    tokens = []
    for m in _DOTTED_TOKEN_RE.finditer(text or ''):
        token = m.group(0).rstrip(_TRAILING_PUNCT).lstrip(_LEADING_PUNCT)
        if '.' in token.strip('.') and token not in tokens:
            tokens.append(token)
    return tokens

@dataclass
class CandidateResult:
    token: str
    is_candidate: bool
    tld: str
    features: Optional[Dict[str, int]] = None
    ns_records: Optional[List[str]] = None
    margin: Optional[float] = None
    label: Optional[int] = None

@dataclass
class Verdict:
    typos: List[str] = field(default_factory=list)
    candidates: List[CandidateResult] = field(default_factory=list)
    model_available: bool = True

    @property
    def warning(self) -> bool:
        return len(self.typos) > 0

    @property
    def message(self) -> Optional[str]:
        if not self.typos:
            return None
        return WARNING_PREFIX + ' '.join(self.typos)

class TypoDetector:

    def __init__(self, dictionaries: Dictionaries, model: Union[TypoUrlModel, SVMModel, None], ns_lookup: Any, timeout: Optional[float]=None, max_candidates: Optional[int]=None):
        if not dictionaries.ready:
            raise DetectorNotReadyError('Detection cannot start before the word and TLD dictionaries are loaded')
        self.dictionaries = dictionaries
        self.prefilter = Prefilter(dictionaries)
        self.extractor = FeatureExtractor(dictionaries)
        self.model = model if isinstance(model, TypoUrlModel) or model is None else TypoUrlModel(svm=model)
        self.ns_lookup = ns_lookup
        self.timeout = settings.NS_TIMEOUT if timeout is None else timeout
        self.max_candidates = settings.MAX_CANDIDATES if max_candidates is None else max_candidates

    @property
    def model_available(self) -> bool:
        return self.model is not None and self.model.loaded

    async def _lookup(self, token: str) -> Optional[List[str]]:
        try:
            return list(await asyncio.wait_for(self.ns_lookup.lookup(token), timeout=self.timeout))
        except asyncio.TimeoutError:
            logger.warning(f'NS lookup for {token} timed out after {self.timeout}s')
        except Exception as e:
            logger.warning(f'NS lookup for {token} failed: {e}')
        return None

    def _dedupe(self, pairs: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
        seen: Dict[str, str] = {}
        for (token, text) in pairs:
            token = normalize_token(token)
            if token and token not in seen:
                seen[token] = text or ''
        items = list(seen.items())
        if len(items) > self.max_candidates:
            logger.warning(f'Only the first {self.max_candidates} of {len(items)} tokens are checked')
            items = items[:self.max_candidates]
        return items

    async def detect(self, pairs: Iterable[Tuple[str, str]]) -> Verdict:
        items = self._dedupe(pairs)
        checked: List[Tuple[Candidate, str]] = [(self.prefilter.check(token), text) for (token, text) in items]
        results = [CandidateResult(token=c.token, is_candidate=c.is_candidate, tld=c.tld) for (c, _) in checked]
        pending = [(i, c, text) for (i, (c, text)) in enumerate(checked) if c.is_candidate]
        if not pending:
            return Verdict(candidates=results, model_available=self.model_available)
        records = await asyncio.gather(*(self._lookup(c.token) for (_, c, _) in pending))
        rows = []
        for ((i, c, text), ns) in zip(pending, records):
            feats = self.extractor.extract(c, text, ns)
            results[i].features = feats
            results[i].ns_records = ns
            rows.append(feats)
        if not self.model_available:
            logger.warning('No model loaded; returning features without a verdict')
            return Verdict(candidates=results, model_available=False)
        margins = self.model.margins(rows)
        typos = []
        for ((i, c, _), m) in zip(pending, margins):
            label = 1 if m > 0 else -1
            results[i].margin = float(m)
            results[i].label = label
            if label == 1:
                typos.append(c.token)
        return Verdict(typos=typos, candidates=results)

    async def detect_text(self, text: str, candidates: Optional[Sequence[str]]=None) -> Verdict:
        tokens = find_candidate_tokens(text) if candidates is None else candidates
        return await self.detect(((t, text) for t in tokens))

class DetectionSession:
    """Keeps at most one pass in flight for an editable message; superseded passes return None."""

    def __init__(self, detector: TypoDetector):
        self.detector = detector
        self.revision = 0
        self._task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        self.revision += 1
        if self._task is not None and (not self._task.done()):
            self._task.cancel()

    async def submit(self, text: str, candidates: Optional[Sequence[str]]=None) -> Optional[Verdict]:
        self.cancel()
        revision = self.revision
        task = asyncio.ensure_future(self.detector.detect_text(text, candidates))
        self._task = task
        try:
            verdict = await task
        except asyncio.CancelledError:
            if revision != self.revision:
                return None
            raise
        return verdict if revision == self.revision else None

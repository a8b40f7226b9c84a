import logging
from functools import lru_cache
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from .config import settings
from .errors import DetectorNotReadyError
from .ml.features import FEATURE_ORDER
from .ml.model import TypoUrlModel
from .rate_limit import limiter, RATE_LIMITS, get_rate_limit_info
from .schemas import BatchCheckRequest, BatchCheckResponse, CandidateResponse, CheckRequest, CheckResponse
from .services.detector import TypoDetector, Verdict
from .services.dictionaries import Dictionaries, try_load_dictionaries
from .services.ns_lookup import make_ns_lookup
logger = logging.getLogger(__name__)
router = APIRouter()

@lru_cache(maxsize=1)
def get_dictionaries() -> Dictionaries:
    return try_load_dictionaries(settings.WORDS_PATH, settings.TLDS_PATH)

@lru_cache(maxsize=1)
def get_model() -> TypoUrlModel:
    return TypoUrlModel(model_path=settings.MODEL_PATH)

@lru_cache(maxsize=1)
def get_detector() -> TypoDetector:
    dictionaries = get_dictionaries()
    if not dictionaries.ready:
        raise DetectorNotReadyError('Word/TLD dictionaries are not loaded')
    return TypoDetector(dictionaries=dictionaries, model=get_model(), ns_lookup=make_ns_lookup(), timeout=settings.NS_TIMEOUT, max_candidates=settings.MAX_CANDIDATES)

def detector_dependency() -> TypoDetector:
    try:
        return get_detector()
    except DetectorNotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))

def to_response(verdict: Verdict) -> CheckResponse:
    candidates = [CandidateResponse(token=c.token, is_candidate=c.is_candidate, tld=c.tld, features=c.features, margin=c.margin, label=c.label) for c in verdict.candidates]
    return CheckResponse(typos=verdict.typos, warning=verdict.warning, message=verdict.message, model_available=verdict.model_available, candidates=candidates)

@router.get('/health')
@limiter.limit(RATE_LIMITS['health'])
def health(request: Request, response: Response) -> Dict[str, Any]:
    return {'status': 'ok', 'model_loaded': get_model().loaded, 'dictionaries_loaded': get_dictionaries().ready}

@router.post('/check', response_model=CheckResponse)
@limiter.limit(RATE_LIMITS['check'])
async def check_message(request: Request, response: Response, req: CheckRequest, detector: TypoDetector=Depends(detector_dependency)) -> CheckResponse:
    try:
        verdict = await detector.detect_text(req.text, req.candidates)
    except Exception as e:
        logger.exception('Detection failed')
        raise HTTPException(status_code=400, detail=f'Error checking message: {str(e)}')
    return to_response(verdict)

@router.post('/check/batch', response_model=BatchCheckResponse)
@limiter.limit(RATE_LIMITS['batch_check'])
async def check_messages_batch(request: Request, response: Response, req: BatchCheckRequest, detector: TypoDetector=Depends(detector_dependency)) -> BatchCheckResponse:
    try:
        results = []
        for message in req.messages:
            verdict = await detector.detect_text(message.text, message.candidates)
            results.append(to_response(verdict))
    except Exception as e:
        logger.exception('Batch detection failed')
        raise HTTPException(status_code=400, detail=f'Error checking messages: {str(e)}')
    return BatchCheckResponse(results=results, total_checked=len(results), warning_count=sum((1 for r in results if r.warning)))

@router.get('/info')
@limiter.limit(RATE_LIMITS['health'])
def info(request: Request, response: Response) -> Dict[str, Any]:
    model = get_model()
    dictionaries = get_dictionaries()
    svm = model.svm
    return {'name': 'Typo-URL Detector API', 'version': '1.0.0', 'model': {'loaded': model.loaded, 'kernel': svm.kernel_type if svm else None, 'support_vectors': svm.n_support if svm else None, 'error': model.error}, 'feature_order': FEATURE_ORDER, 'dictionaries': {'words': len(dictionaries.words), 'tlds': len(dictionaries.tlds)}, 'ns_backend': settings.NS_BACKEND, 'ns_timeout_seconds': settings.NS_TIMEOUT}

@router.get('/rate-limits')
@limiter.limit(RATE_LIMITS['health'])
def rate_limits_info(request: Request, response: Response) -> Dict[str, Any]:
    return get_rate_limit_info()

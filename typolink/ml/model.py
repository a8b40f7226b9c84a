import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union
import joblib
import numpy as np
from ..errors import UnsupportedKernelError
from .features import FEATURE_DIM, FEATURE_ORDER, to_matrix, to_vector
from .svm_model import SVMModel
logger = logging.getLogger(__name__)

def resolve_model_path(model_path: Union[str, Path]) -> Path:
    path = Path(model_path)
    if path.is_absolute():
        return path
    project_root = Path(__file__).parent.parent.parent
    candidate = project_root / path
    if candidate.exists() or not path.exists():
        return candidate
    return path

def save_bundle(model: SVMModel, path: Union[str, Path], **metadata) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump({'model': model.to_dict(), 'feature_order': FEATURE_ORDER, 'metadata': metadata}, path)
    return path

def load_svm(path: Union[str, Path]) -> SVMModel:
    """Load a JSON model document or a joblib bundle written by ``save_bundle``."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f'Model file not found: {path}')
    if path.suffix in ('.joblib', '.pkl'):
        bundle = joblib.load(path)
        if not isinstance(bundle, dict) or 'model' not in bundle:
            raise ValueError(f'Not a typolink model bundle: {path}')
        order = bundle.get('feature_order', FEATURE_ORDER)
        if list(order) != FEATURE_ORDER:
            raise ValueError(f'Model was trained on a different feature order: {order}')
        return SVMModel.from_dict(bundle['model'])
    return SVMModel.load(path)

class TypoUrlModel:

    def __init__(self, model_path: Optional[str]=None, svm: Optional[SVMModel]=None):
        self.model_path = model_path
        self.error: Optional[str] = None
        self.svm = svm if svm is not None else self._load_or_none()

    def _load_or_none(self) -> Optional[SVMModel]:
        if not self.model_path:
            self.error = 'No model path configured'
            return None
        path = resolve_model_path(self.model_path)
        try:
            svm = load_svm(path)
        except (OSError, ValueError, KeyError) as e:
            # UnsupportedKernelError is a ValueError: report it and run without a verdict
            self.error = str(e)
            level = logging.ERROR if isinstance(e, UnsupportedKernelError) else logging.WARNING
            logger.log(level, f'Model unavailable ({path}): {e}')
            return None
        if svm.dim != FEATURE_DIM:
            self.error = f'Model expects {svm.dim} features, extractor produces {FEATURE_DIM}'
            logger.error(self.error)
            return None
        logger.info(f'Loaded {svm.kernel_type} model from {path}')
        return svm

    @property
    def loaded(self) -> bool:
        return self.svm is not None

    def margin(self, feats: Dict[str, Any]) -> float:
        return self.svm.margin(to_vector(feats))

    def predict(self, rows: Sequence[Dict[str, Any]]) -> np.ndarray:
        return self.svm.predict(to_matrix(rows))

    def margins(self, rows: Sequence[Dict[str, Any]]) -> np.ndarray:
        return self.svm.margins(to_matrix(rows))

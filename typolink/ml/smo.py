"""
Binary SVM trainer using the simplified SMO algorithm.

Reference: "The Simplified SMO Algorithm" (CS229 notes). Two dual weights are
optimised at a time; the second index is drawn at random. Training stops after
``num_passes`` consecutive sweeps without any update or after ``max_iter``
sweeps, whichever comes first.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple
import numpy as np
from ..errors import ConfigurationError
from .kernels import DEFAULT_RBF_SIGMA, LinearKernel, resolve_kernel
from .svm_model import SVMModel
logger = logging.getLogger(__name__)
# minimum alpha movement / box width considered an update
_STEP_EPS = 1e-4

@dataclass(frozen=True)
class TrainingConfig:
    C: float = 1.0
    tol: float = 1e-4
    alpha_tol: float = 1e-7
    max_iter: int = 10000
    num_passes: int = 10
    memoize: bool = False
    seed: Optional[int] = None

@dataclass(frozen=True)
class TrainStats:
    iterations: int
    converged: bool
    updates: int
    n_samples: int
    n_support: int

def _validate(data, labels) -> Tuple[np.ndarray, np.ndarray]:
    if data is None or len(data) == 0:
        raise ConfigurationError('Cannot train an SVM on zero samples')
    try:
        X = np.asarray(data, dtype=float)
    except ValueError as e:
        raise ConfigurationError(f'Training rows must all have the same length: {e}') from e
    if X.ndim != 2 or X.shape[1] == 0:
        raise ConfigurationError(f'Training data must be an N x D matrix, got shape {X.shape}')
    y = np.asarray(labels, dtype=float).reshape(-1)
    if y.shape[0] != X.shape[0]:
        raise ConfigurationError(f'Got {X.shape[0]} samples but {y.shape[0]} labels')
    if not np.all(np.isin(y, (-1.0, 1.0))):
        raise ConfigurationError('Labels must be +1 or -1')
    return (X, y)

class SMOTrainer:

    def __init__(self, config: Optional[TrainingConfig]=None, kernel: Any='linear', rbf_sigma: float=DEFAULT_RBF_SIGMA):
        self.config = config or TrainingConfig()
        if self.config.C <= 0:
            raise ConfigurationError(f'C must be positive, got {self.config.C}')
        self.kernel = resolve_kernel(kernel, rbf_sigma=rbf_sigma)

    def fit(self, data, labels) -> Tuple[SVMModel, TrainStats]:
        (X, y) = _validate(data, labels)
        cfg = self.config
        (N, D) = X.shape
        C = cfg.C
        rng = np.random.default_rng(cfg.seed)
        alpha = np.zeros(N, dtype=float)
        b = 0.0
        gram = self.kernel.gram(X, X) if cfg.memoize else None

        def kernel_column(i: int) -> np.ndarray:
            if gram is not None:
                return gram[:, i]
            return self.kernel.gram(X, X[i:i + 1])[:, 0]

        def kernel_result(i: int, j: int) -> float:
            if gram is not None:
                return float(gram[i, j])
            return self.kernel(X[i], X[j])

        def error(i: int) -> float:
            return float(b + np.dot(alpha * y, kernel_column(i))) - y[i]
        iterations = 0
        passes = 0
        updates = 0
        while passes < cfg.num_passes and iterations < cfg.max_iter:
            changed = 0
            for i in range(N):
                Ei = error(i)
                if not (y[i] * Ei < -cfg.tol and alpha[i] < C or (y[i] * Ei > cfg.tol and alpha[i] > 0)):
                    continue
                if N < 2:
                    continue
                j = int(rng.integers(0, N - 1))
                if j >= i:
                    j += 1
                Ej = error(j)
                (ai, aj) = (alpha[i], alpha[j])
                if y[i] == y[j]:
                    L = max(0.0, ai + aj - C)
                    H = min(C, ai + aj)
                else:
                    L = max(0.0, aj - ai)
                    H = min(C, C + aj - ai)
                if abs(L - H) < _STEP_EPS:
                    continue
                kij = kernel_result(i, j)
                kii = kernel_result(i, i)
                kjj = kernel_result(j, j)
                eta = 2 * kij - kii - kjj
                if eta >= 0:
                    continue
                new_aj = min(H, max(L, aj - y[j] * (Ei - Ej) / eta))
                if abs(aj - new_aj) < _STEP_EPS:
                    continue
                new_ai = ai + y[i] * y[j] * (aj - new_aj)
                alpha[j] = new_aj
                alpha[i] = new_ai
                b1 = b - Ei - y[i] * (new_ai - ai) * kii - y[j] * (new_aj - aj) * kij
                b2 = b - Ej - y[i] * (new_ai - ai) * kij - y[j] * (new_aj - aj) * kjj
                b = 0.5 * (b1 + b2)
                if 0 < new_ai < C:
                    b = b1
                if 0 < new_aj < C:
                    b = b2
                changed += 1
            iterations += 1
            updates += changed
            passes = passes + 1 if changed == 0 else 0
        converged = passes >= cfg.num_passes
        if not converged:
            logger.warning(f'SMO stopped at max_iter={cfg.max_iter} before {cfg.num_passes} quiet passes')
        if isinstance(self.kernel, LinearKernel):
            w = (alpha * y) @ X
            model = SVMModel(kernel=self.kernel, bias=b, dim=D, weights=w, n_train=N)
        else:
            keep = alpha > cfg.alpha_tol
            model = SVMModel(kernel=self.kernel, bias=b, dim=D, support_vectors=X[keep].reshape(-1, D), support_labels=y[keep], alphas=alpha[keep], n_train=N)
            logger.debug(f'Kept {int(keep.sum())} of {N} training samples as support vectors')
        stats = TrainStats(iterations=iterations, converged=converged, updates=updates, n_samples=N, n_support=int(np.count_nonzero(alpha > cfg.alpha_tol)))
        logger.info(f'Trained {self.kernel.kind} SVM on {N} samples in {iterations} passes ({stats.n_support} support vectors)')
        return (model, stats)

def train_svm(data, labels, kernel: Any='linear', rbf_sigma: float=DEFAULT_RBF_SIGMA, **options) -> SVMModel:
    """Shortcut for ``SMOTrainer(TrainingConfig(**options), kernel).fit(...)[0]``."""
    return SMOTrainer(TrainingConfig(**options), kernel=kernel, rbf_sigma=rbf_sigma).fit(data, labels)[0]

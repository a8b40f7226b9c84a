from dataclasses import dataclass
from typing import Any, Callable, Union
import numpy as np
from ..errors import ConfigurationError
DEFAULT_RBF_SIGMA = 0.5

def linear_kernel(u, v) -> float:
    return float(np.dot(np.asarray(u, dtype=float), np.asarray(v, dtype=float)))

@dataclass(frozen=True)
class LinearKernel:
    kind = 'linear'

    def __call__(self, u, v) -> float:
        return linear_kernel(u, v)

    def gram(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        return np.asarray(X, dtype=float) @ np.asarray(Y, dtype=float).T

@dataclass(frozen=True)
class RbfKernel:
    sigma: float = DEFAULT_RBF_SIGMA
    kind = 'rbf'

    def __post_init__(self):
        if self.sigma is None or self.sigma <= 0:
            raise ConfigurationError(f'RBF sigma must be positive, got {self.sigma!r}')

    def __call__(self, u, v) -> float:
        d = np.asarray(u, dtype=float) - np.asarray(v, dtype=float)
        return float(np.exp(-np.dot(d, d) / (2.0 * self.sigma * self.sigma)))

    def gram(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)
        sq = (X * X).sum(axis=1)[:, None] + (Y * Y).sum(axis=1)[None, :] - 2.0 * X @ Y.T
        # rounding can push identical rows slightly negative
        np.maximum(sq, 0.0, out=sq)
        return np.exp(-sq / (2.0 * self.sigma * self.sigma))

@dataclass(frozen=True)
class CustomKernel:
    fn: Callable[[Any, Any], float]
    kind = 'custom'

    def __call__(self, u, v) -> float:
        return float(self.fn(u, v))

    def gram(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)
        out = np.empty((X.shape[0], Y.shape[0]), dtype=float)
        for i in range(X.shape[0]):
            for j in range(Y.shape[0]):
                out[i, j] = float(self.fn(X[i], Y[j]))
        return out
Kernel = Union[LinearKernel, RbfKernel, CustomKernel]

def resolve_kernel(kernel: Any='linear', rbf_sigma: float=DEFAULT_RBF_SIGMA) -> Kernel:
    """Accept a kernel object, a tag ('linear' / 'rbf') or a plain function."""
    if isinstance(kernel, (LinearKernel, RbfKernel, CustomKernel)):
        return kernel
    if kernel is None or kernel == 'linear':
        return LinearKernel()
    if kernel == 'rbf':
        return RbfKernel(sigma=rbf_sigma)
    if callable(kernel):
        return CustomKernel(fn=kernel)
    raise ConfigurationError(f'Unknown kernel: {kernel!r}')

"""
Trained binary SVM: parameters, decision function and the JSON model format.

The stored document uses the field names of ``created_model.json`` files
written by the browser extension, so a model trained there loads here:

  linear: {"kernelType": "linear", "N", "D", "b", "w"}
  rbf:    {"kernelType": "rbf", "N", "D", "b", "rbfSigma", "data", "labels", "alpha"}
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union
import numpy as np
from ..errors import UnsupportedKernelError
from .kernels import CustomKernel, Kernel, LinearKernel, RbfKernel

@dataclass(frozen=True, eq=False)
class SVMModel:
    kernel: Kernel
    bias: float
    dim: int
    weights: Optional[np.ndarray] = None
    support_vectors: Optional[np.ndarray] = None
    support_labels: Optional[np.ndarray] = None
    alphas: Optional[np.ndarray] = None
    n_train: int = 0

    def __post_init__(self):
        for name in ('weights', 'support_vectors', 'support_labels', 'alphas'):
            arr = getattr(self, name)
            if arr is not None:
                arr = np.array(arr, dtype=float)
                arr.setflags(write=False)
                object.__setattr__(self, name, arr)
        if self.weights is None and self.support_vectors is None:
            raise ValueError('SVMModel needs either weights or support vectors')
        if self.weights is not None and self.weights.shape != (self.dim,):
            raise ValueError(f'Weight vector has shape {self.weights.shape}, expected ({self.dim},)')
        if self.support_vectors is not None:
            if self.support_vectors.ndim != 2 or self.support_vectors.shape[1] != self.dim:
                raise ValueError(f'Support vectors have shape {self.support_vectors.shape}, expected (n, {self.dim})')
            n = self.support_vectors.shape[0]
            for name in ('support_labels', 'alphas'):
                arr = getattr(self, name)
                if arr is None or arr.shape != (n,):
                    raise ValueError(f'{name} must hold one value per support vector ({n})')

    @property
    def kernel_type(self) -> str:
        return self.kernel.kind

    @property
    def usew_(self) -> bool:
        return self.weights is not None

    @property
    def n_support(self) -> int:
        return 0 if self.support_vectors is None else int(self.support_vectors.shape[0])

    def margin(self, x) -> float:
        x = np.asarray(x, dtype=float)
        if self.usew_:
            return float(self.bias + np.dot(self.weights, x))
        if self.n_support == 0:
            return float(self.bias)
        k = self.kernel.gram(self.support_vectors, x[None, :])[:, 0]
        return float(self.bias + np.dot(self.alphas * self.support_labels, k))

    def margins(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        if X.size == 0:
            return np.zeros(0, dtype=float)
        X = np.atleast_2d(X)
        if self.usew_:
            return self.bias + X @ self.weights
        if self.n_support == 0:
            return np.full(X.shape[0], float(self.bias))
        K = self.kernel.gram(X, self.support_vectors)
        return self.bias + K @ (self.alphas * self.support_labels)

    def predict_one(self, x) -> int:
        return 1 if self.margin(x) > 0 else -1

    def predict(self, X) -> np.ndarray:
        return np.where(self.margins(X) > 0, 1, -1).astype(int)

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.kernel, CustomKernel):
            raise UnsupportedKernelError('Cannot serialize an SVM trained with a custom kernel')
        doc: Dict[str, Any] = {'N': self.n_support if not self.usew_ else self.n_train, 'D': self.dim, 'b': float(self.bias), 'kernelType': self.kernel_type}
        if isinstance(self.kernel, LinearKernel):
            doc['w'] = self.weights.tolist()
        elif isinstance(self.kernel, RbfKernel):
            doc['rbfSigma'] = self.kernel.sigma
            doc['data'] = self.support_vectors.tolist()
            doc['labels'] = [int(v) for v in self.support_labels]
            doc['alpha'] = self.alphas.tolist()
        return doc

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> 'SVMModel':
        if not isinstance(doc, dict):
            raise ValueError(f'Model document must be a JSON object, got {type(doc).__name__}')
        kernel_type = doc.get('kernelType')
        if kernel_type not in ('linear', 'rbf'):
            raise UnsupportedKernelError(f'Unrecognized kernel type: {kernel_type!r}')
        try:
            bias = float(doc.get('b', 0.0))
            if kernel_type == 'linear':
                w = np.asarray(doc['w'], dtype=float)
                return cls(kernel=LinearKernel(), bias=bias, dim=int(doc['D']) if 'D' in doc else w.size, weights=w, n_train=int(doc.get('N', 0)))
            data = np.asarray(doc.get('data', []), dtype=float)
            dim = int(doc['D']) if 'D' in doc else (data.shape[1] if data.ndim == 2 else 0)
            if data.size == 0:
                data = data.reshape(0, dim)
            return cls(kernel=RbfKernel(sigma=float(doc['rbfSigma'])), bias=bias, dim=dim, support_vectors=data, support_labels=np.asarray(doc.get('labels', []), dtype=float), alphas=np.asarray(doc.get('alpha', []), dtype=float), n_train=int(doc.get('N', len(data))))
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f'Malformed {kernel_type} model document: {e!r}') from e

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_json(cls, s: Union[str, bytes]) -> 'SVMModel':
        return cls.from_dict(json.loads(s))

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(indent=2), encoding='utf-8')
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'SVMModel':
        return cls.from_json(Path(path).read_text(encoding='utf-8'))

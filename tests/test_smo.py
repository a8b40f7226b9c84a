import numpy as np
import pytest

from typolink.errors import ConfigurationError, UnsupportedKernelError
from typolink.ml.kernels import CustomKernel, LinearKernel, RbfKernel
from typolink.ml.smo import SMOTrainer, TrainingConfig, train_svm
from typolink.ml.svm_model import SVMModel


# ------------------------------------------------------
# Helpers
# ------------------------------------------------------

def two_clusters():
    X = np.array([
        [2, 2], [3, 3], [2, 3], [3, 2],
        [-2, -2], [-3, -3], [-2, -3], [-3, -2],
    ], dtype=float)
    y = np.array([1, 1, 1, 1, -1, -1, -1, -1])
    return X, y


def xor_data():
    X = np.array([[0, 0], [1, 1], [0, 1], [1, 0]], dtype=float)
    y = np.array([1, 1, -1, -1])
    return X, y


# ------------------------------------------------------
# Linear kernel
# ------------------------------------------------------

def test_linear_separable_clusters_converge_with_full_accuracy():
    X, y = two_clusters()
    model, stats = SMOTrainer(TrainingConfig(seed=7)).fit(X, y)

    assert stats.converged
    assert stats.iterations < 10000
    assert stats.updates > 0
    assert np.array_equal(model.predict(X), y)


def test_linear_model_uses_weight_fast_path():
    X, y = two_clusters()
    model, _ = SMOTrainer(TrainingConfig(seed=3)).fit(X, y)

    assert model.usew_
    assert model.kernel_type == "linear"
    assert model.weights.shape == (2,)
    # prediction is exactly sign(b + w.x)
    probe = np.array([[0.5, -0.1], [-1, 4], [0, 0], [10, -9]], dtype=float)
    expected = np.where(model.bias + probe @ model.weights > 0, 1, -1)
    assert np.array_equal(model.predict(probe), expected)


def test_rbf_model_never_uses_weights():
    X, y = xor_data()
    model, _ = SMOTrainer(TrainingConfig(C=10.0, seed=1), kernel="rbf", rbf_sigma=0.5).fit(X, y)
    assert not model.usew_
    assert model.weights is None


# ------------------------------------------------------
# RBF kernel
# ------------------------------------------------------

def test_rbf_learns_xor():
    X, y = xor_data()
    model, stats = SMOTrainer(TrainingConfig(C=10.0, seed=1), kernel="rbf", rbf_sigma=0.5).fit(X, y)

    assert stats.converged
    assert isinstance(model.kernel, RbfKernel)
    assert np.array_equal(model.predict(X), y)


def test_rbf_keeps_only_support_vectors():
    X, y = two_clusters()
    model, stats = SMOTrainer(TrainingConfig(seed=5), kernel="rbf", rbf_sigma=1.0).fit(X, y)

    assert 0 < model.n_support <= len(X)
    assert model.n_support == stats.n_support
    assert np.all(model.alphas > 1e-7)
    assert model.support_vectors.shape == (model.n_support, 2)


def test_rbf_prediction_ignores_zero_weight_samples():
    X, y = two_clusters()
    model, _ = SMOTrainer(TrainingConfig(seed=11), kernel="rbf", rbf_sigma=1.0).fit(X, y)

    padded = SVMModel(
        kernel=model.kernel,
        bias=model.bias,
        dim=2,
        support_vectors=np.vstack([model.support_vectors, X]),
        support_labels=np.concatenate([model.support_labels, y]),
        alphas=np.concatenate([model.alphas, np.zeros(len(X))]),
    )
    held_out = np.array([[1, 1], [-1, -1], [0.5, -0.2], [4, 4], [-4, 1]], dtype=float)
    assert np.array_equal(padded.predict(held_out), model.predict(held_out))
    assert np.allclose(padded.margins(held_out), model.margins(held_out))


def test_kernel_cache_does_not_change_the_result():
    X, y = xor_data()
    plain, _ = SMOTrainer(TrainingConfig(C=10.0, seed=2), kernel="rbf").fit(X, y)
    cached, _ = SMOTrainer(TrainingConfig(C=10.0, seed=2, memoize=True), kernel="rbf").fit(X, y)
    probe = np.array([[0.1, 0.1], [0.9, 0.1], [0.5, 0.5]])
    assert np.array_equal(plain.predict(probe), cached.predict(probe))
    assert plain.bias == pytest.approx(cached.bias)


# ------------------------------------------------------
# Custom kernel
# ------------------------------------------------------

def test_custom_kernel_trains_but_cannot_serialize():
    X, y = two_clusters()
    model = train_svm(X, y, kernel=lambda u, v: float(np.dot(u, v)), seed=4)

    assert isinstance(model.kernel, CustomKernel)
    assert not model.usew_
    assert np.array_equal(model.predict(X), y)
    with pytest.raises(UnsupportedKernelError):
        model.to_dict()


# ------------------------------------------------------
# Degenerate input
# ------------------------------------------------------

def test_zero_samples_fail_fast():
    with pytest.raises(ConfigurationError):
        SMOTrainer().fit([], [])


@pytest.mark.parametrize("data, labels", [
    ([[1, 2], [3, 4]], [1]),
    ([[1, 2], [3, 4]], [1, 0]),
    ([[1, 2], [3]], [1, -1]),
])
def test_malformed_training_input(data, labels):
    with pytest.raises(ConfigurationError):
        SMOTrainer().fit(data, labels)


def test_invalid_sigma_fails_at_construction():
    with pytest.raises(ConfigurationError):
        SMOTrainer(kernel="rbf", rbf_sigma=0)


def test_single_sample_terminates():
    model, stats = SMOTrainer().fit([[1.0, 0.0]], [1])
    assert stats.converged
    assert stats.iterations == 10
    assert stats.updates == 0
    assert model.predict_one([1.0, 0.0]) == -1


def test_duplicate_points_with_opposite_labels_do_not_crash():
    X = [[1.0, 1.0], [1.0, 1.0]]
    model, stats = SMOTrainer(TrainingConfig(seed=0)).fit(X, [1, -1])
    assert stats.converged
    assert stats.updates == 0
    assert isinstance(model.kernel, LinearKernel)


def test_max_iter_bounds_training():
    X, y = xor_data()
    _, stats = SMOTrainer(TrainingConfig(C=10.0, max_iter=3, num_passes=10, seed=1), kernel="rbf").fit(X, y)
    assert stats.iterations == 3
    assert not stats.converged

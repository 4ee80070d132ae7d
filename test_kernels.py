"""
Тесты ядерных функций и обёрток матрицы Q.
"""

import numpy as np
import pytest

from smo_svm import (
    KernelParameters,
    KernelType,
    OneClassQMatrix,
    SVCQMatrix,
    SVRQMatrix,
    compute_kernel_row,
    compute_kernel_value,
)


def random_points(n=6, d=3, seed=0):
    rng = np.random.default_rng(seed)
    return rng.standard_normal((n, d))


@pytest.mark.parametrize("params, reference", [
    (KernelParameters(kernel_type=KernelType.LINEAR),
     lambda x, z: x @ z),
    (KernelParameters(kernel_type=KernelType.POLYNOMIAL, degree=3, gamma=0.5, coef0=1.0),
     lambda x, z: (0.5 * (x @ z) + 1.0) ** 3),
    (KernelParameters(kernel_type=KernelType.RBF, gamma=0.7),
     lambda x, z: np.exp(-0.7 * np.sum((x - z) ** 2))),
    (KernelParameters(kernel_type=KernelType.SIGMOID, gamma=0.3, coef0=-0.2),
     lambda x, z: np.tanh(0.3 * (x @ z) - 0.2)),
])
def test_kernel_value_matches_formula(params, reference):
    X = random_points()
    for x in X:
        for z in X:
            assert compute_kernel_value(params, x, z) == pytest.approx(reference(x, z), rel=1e-10, abs=1e-12)


def test_polynomial_degree_zero_is_one():
    params = KernelParameters(kernel_type=KernelType.POLYNOMIAL, degree=0, gamma=2.0, coef0=-5.0)
    assert compute_kernel_value(params, [1.0, 2.0], [3.0, -1.0]) == 1.0


def test_kernel_parameters_accept_names():
    params = KernelParameters(kernel_type="linear")
    assert params.kernel_type is KernelType.LINEAR
    assert params.as_tuple() == (0, 3, 0.5, 0.0)

    with pytest.raises(KeyError):
        KernelParameters(kernel_type="laplacian")


def test_kernel_row_matches_values():
    X = random_points(n=8)
    params = KernelParameters(kernel_type=KernelType.RBF, gamma=0.25)
    row = compute_kernel_row(params, X, X[3])
    expected = [compute_kernel_value(params, X[i], X[3]) for i in range(len(X))]
    assert np.allclose(row, expected)
    assert row[3] == pytest.approx(1.0)


def test_kernel_row_of_empty_matrix():
    row = compute_kernel_row(KernelParameters(), np.zeros((0, 2)), np.array([1.0, 2.0]))
    assert row.shape == (0,)


def test_svc_q_matrix_folds_labels():
    X = random_points(n=5)
    y = np.array([1.0, -1.0, 1.0, -1.0, -1.0])
    params = KernelParameters(kernel_type=KernelType.LINEAR)
    q = SVCQMatrix(X, y, params)

    K = X @ X.T
    expected = np.outer(y, y) * K
    assert q.size == 5
    assert np.allclose(q.diagonal, np.diag(K))
    for i in range(5):
        assert np.allclose(q.get_q(i), expected[i])


def test_one_class_q_matrix_is_kernel():
    X = random_points(n=4)
    params = KernelParameters(kernel_type=KernelType.RBF, gamma=0.5)
    q = OneClassQMatrix(X, params)
    assert np.allclose(q.diagonal, 1.0)
    assert np.allclose(q.get_q(2), compute_kernel_row(params, X, X[2]))


def test_svr_q_matrix_duplicates_problem():
    X = random_points(n=4)
    n = len(X)
    params = KernelParameters(kernel_type=KernelType.LINEAR)
    q = SVRQMatrix(X, params)

    sign = np.concatenate([np.ones(n), -np.ones(n)])
    X2 = np.vstack([X, X])
    expected = np.outer(sign, sign) * (X2 @ X2.T)

    assert q.size == 2 * n
    assert np.allclose(q.diagonal, np.diag(expected))
    for i in range(2 * n):
        assert np.allclose(q.get_q(i), expected[i])


def test_row_cache_is_bounded_lru():
    X = random_points(n=6)
    q = OneClassQMatrix(X, KernelParameters(), cache_rows=2)

    row0 = q.get_q(0)
    assert q.get_q(0) is row0

    q.get_q(1)
    q.get_q(2)
    assert len(q._cache) == 2
    assert 0 not in q._cache
    # Пересчитанная строка совпадает с вытесненной
    assert np.allclose(q.get_q(0), row0)

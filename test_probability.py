"""
Тесты калибровки вероятностей: сигмоида Платта и попарное связывание.
"""

import warnings

import numpy as np
import pytest

from smo_svm import ConvergenceWarning, multiclass_probability, sigmoid_predict, sigmoid_train


def consistent_pairwise(p):
    """Попарные вероятности r_ij = p_i / (p_i + p_j) для заданного вектора p."""
    p = np.asarray(p, dtype=np.float64)
    k = len(p)
    r = np.zeros((k, k))
    for i in range(k):
        for j in range(k):
            if i != j:
                r[i, j] = p[i] / (p[i] + p[j])
    return r


# =============================================================================
# sigmoid_predict
# =============================================================================

def test_sigmoid_predict_monotonic():
    """При A < 0 вероятность не убывает по f, при A > 0 не возрастает."""
    f = np.linspace(-50.0, 50.0, 201)

    increasing = sigmoid_predict(f, -2.0, 0.3)
    assert np.all(np.diff(increasing) >= 0.0)

    decreasing = sigmoid_predict(f, 1.5, -0.2)
    assert np.all(np.diff(decreasing) <= 0.0)


def test_sigmoid_predict_extremes_do_not_overflow():
    with warnings.catch_warnings():
        warnings.simplefilter("error", RuntimeWarning)
        high = sigmoid_predict(1e6, -1.0, 0.0)
        low = sigmoid_predict(-1e6, -1.0, 0.0)
    assert high == pytest.approx(1.0)
    assert low == pytest.approx(0.0)
    assert np.isfinite(high) and np.isfinite(low)


def test_sigmoid_predict_scalar_and_array():
    value = sigmoid_predict(0.0, 1.0, 0.0)
    assert isinstance(value, float)
    assert value == pytest.approx(0.5)

    values = sigmoid_predict([0.0, 1.0], 1.0, 0.0)
    assert values.shape == (2,)


# =============================================================================
# sigmoid_train
# =============================================================================

def test_sigmoid_train_on_separable_values():
    rng = np.random.default_rng(0)
    decision = np.concatenate([rng.uniform(0.5, 2.0, 40), rng.uniform(-2.0, -0.5, 40)])
    labels = np.concatenate([np.ones(40), -np.ones(40)])

    A, B = sigmoid_train(decision, labels)
    print(f"  A = {A:.4f}, B = {B:.4f}")

    # Положительные решающие значения -> высокая вероятность
    assert A < 0
    assert sigmoid_predict(2.0, A, B) > 0.9
    assert sigmoid_predict(-2.0, A, B) < 0.1


def test_sigmoid_train_noisy_values():
    rng = np.random.default_rng(1)
    labels = np.where(rng.random(200) < 0.5, 1, -1)
    decision = labels * 0.5 + rng.normal(0.0, 1.0, 200)

    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        A, B = sigmoid_train(decision, labels)

    assert A < 0
    assert abs(B) < 1.0


def test_sigmoid_train_uninformative_values():
    """Нулевые решающие значения: A = 0, B отражает априорные частоты."""
    labels = np.array([1] * 10 + [-1] * 30)
    A, B = sigmoid_train(np.zeros(40), labels)
    assert A == pytest.approx(0.0, abs=1e-6)
    # P(y=1) совпадает со средним сглаженных целей (10·11/12 + 30·1/32) / 40
    mean_target = (10 * 11.0 / 12.0 + 30 * 1.0 / 32.0) / 40
    assert sigmoid_predict(0.0, A, B) == pytest.approx(mean_target, abs=1e-4)


# =============================================================================
# multiclass_probability
# =============================================================================

def test_multiclass_probability_two_classes():
    r = np.array([[0.0, 0.7], [0.3, 0.0]])
    p = multiclass_probability(r)
    assert np.allclose(p, [0.7, 0.3], atol=1e-2)
    assert p.sum() == pytest.approx(1.0)


def test_multiclass_probability_consistent_three_classes():
    p_true = [0.5, 0.3, 0.2]
    p = multiclass_probability(consistent_pairwise(p_true))
    print(f"  p = {p}")
    assert np.allclose(p, p_true, atol=1e-2)
    assert p.sum() == pytest.approx(1.0)


def test_multiclass_probability_uniform():
    k = 4
    r = np.full((k, k), 0.5)
    np.fill_diagonal(r, 0.0)
    p = multiclass_probability(r)
    assert np.allclose(p, 1.0 / k)


def test_multiclass_probability_inconsistent_is_distribution():
    rng = np.random.default_rng(7)
    k = 5
    r = np.zeros((k, k))
    for i in range(k):
        for j in range(i + 1, k):
            r[i, j] = rng.uniform(0.05, 0.95)
            r[j, i] = 1.0 - r[i, j]

    p = multiclass_probability(r)
    assert p.shape == (k,)
    assert np.all(p >= 0.0)
    assert p.sum() == pytest.approx(1.0)

"""
Тесты метрик качества.
"""

import numpy as np
import pytest

from smo_svm import accuracy, compute_all_metrics, mean_squared_error, squared_correlation_coefficient


def test_accuracy():
    assert accuracy([1, 2, 3, 1], [1, 2, 1, 1]) == pytest.approx(0.75)
    assert accuracy([], []) == 0.0


def test_mean_squared_error():
    assert mean_squared_error([1.0, 2.0, 3.0], [1.0, 2.0, 5.0]) == pytest.approx(4.0 / 3.0)
    assert mean_squared_error([], []) == 0.0


def test_squared_correlation_coefficient():
    rng = np.random.default_rng(0)
    y = rng.standard_normal(50)
    # Линейная зависимость даёт r² = 1
    assert squared_correlation_coefficient(y, 3.0 * y - 2.0) == pytest.approx(1.0)
    assert squared_correlation_coefficient(y, -y) == pytest.approx(1.0)

    v = rng.standard_normal(50)
    expected = np.corrcoef(y, v)[0, 1] ** 2
    assert squared_correlation_coefficient(y, v) == pytest.approx(expected)


def test_squared_correlation_constant_predictions():
    assert squared_correlation_coefficient([1.0, 2.0, 3.0], [5.0, 5.0, 5.0]) == 0.0


def test_compute_all_metrics():
    assert set(compute_all_metrics([1, -1], [1, 1], classification=True)) == {"accuracy"}
    metrics = compute_all_metrics([0.0, 1.0, 2.0], [0.0, 1.0, 2.5], classification=False)
    assert set(metrics) == {"mse", "squared_correlation"}
    assert metrics["mse"] == pytest.approx(0.25 / 3.0)

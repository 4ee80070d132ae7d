"""
Метрики качества для оценки SVM по результатам кросс-валидации:
- Accuracy (классификация)
- Mean Squared Error (регрессия)
- Squared Correlation Coefficient (регрессия)
"""

import numpy as np


def accuracy(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Доля совпавших меток.
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if y_true.shape[0] == 0:
        return 0.0
    return float(np.mean(y_true == y_pred))


def mean_squared_error(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    MSE = (1/n) Σ (y_i - ŷ_i)²
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)
    if y_true.shape[0] == 0:
        return 0.0
    return float(np.mean((y_true - y_pred) ** 2))


def squared_correlation_coefficient(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Квадрат коэффициента корреляции Пирсона.
    r² = (nΣvy - ΣvΣy)² / ((nΣv² - (Σv)²)(nΣy² - (Σy)²))
    """
    y = np.asarray(y_true, dtype=np.float64)
    v = np.asarray(y_pred, dtype=np.float64)
    n = y.shape[0]

    sum_v, sum_y = v.sum(), y.sum()
    numerator = (n * np.dot(v, y) - sum_v * sum_y) ** 2
    denominator = (n * np.dot(v, v) - sum_v ** 2) * (n * np.dot(y, y) - sum_y ** 2)

    # Константные предсказания или цели
    if denominator == 0:
        return 0.0
    return float(numerator / denominator)


def compute_all_metrics(y_true: np.ndarray, y_pred: np.ndarray, classification: bool) -> dict:
    """
    Набор метрик для кросс-валидационных предсказаний.
    """
    if classification:
        return {"accuracy": accuracy(y_true, y_pred)}
    return {
        "mse": mean_squared_error(y_true, y_pred),
        "squared_correlation": squared_correlation_coefficient(y_true, y_pred),
    }

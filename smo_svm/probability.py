"""
Калибровка вероятностей для SVM.

- sigmoid_train: Platt scaling, P(y=1|f) = 1 / (1 + exp(A·f + B)).
  Метод Ньютона с регуляризацией гессиана и backtracking line search
  (Lin, Lin & Weng, "A note on Platt's probabilistic outputs for SVMs", 2007).
- multiclass_probability: метод 2 из Wu, Lin & Weng,
  "Probability Estimates for Multi-class Classification by Pairwise Coupling" (2004).
"""

import warnings
from typing import Tuple

import numpy as np
from scipy.special import expit

from .exceptions import ConvergenceWarning

# Параметры метода Ньютона для сигмоиды
SIGMOID_MAX_ITER = 100
SIGMOID_MIN_STEP = 1e-10
SIGMOID_SIGMA = 1e-12   # Строгая положительная определённость гессиана
SIGMOID_EPS = 1e-5

MIN_PROBABILITY = 1e-7


def _sigmoid_objective(f: np.ndarray, t: np.ndarray, A: float, B: float) -> float:
    # Σ log(1 + exp(z)) - (1 - t)·z без переполнения
    z = f * A + B
    return float(np.sum(np.logaddexp(0.0, z) - (1.0 - t) * z))


def sigmoid_train(decision_values, labels) -> Tuple[float, float]:
    """
    Подбор параметров сигмоиды (A, B) по решающим значениям.

    Args:
        decision_values: Решающие значения, полученные кросс-валидацией
        labels: Метки (положительный класс: label > 0)

    Returns:
        (A, B)
    """
    f = np.asarray(decision_values, dtype=np.float64)
    y = np.asarray(labels)
    prior1 = float(np.count_nonzero(y > 0))
    prior0 = float(y.shape[0]) - prior1

    hi_target = (prior1 + 1.0) / (prior1 + 2.0)
    lo_target = 1.0 / (prior0 + 2.0)
    t = np.where(y > 0, hi_target, lo_target)

    A = 0.0
    B = np.log((prior0 + 1.0) / (prior1 + 1.0))
    fval = _sigmoid_objective(f, t, A, B)

    for _ in range(SIGMOID_MAX_ITER):
        # Градиент и гессиан (H' = H + σI)
        z = f * A + B
        p = expit(-z)
        q = expit(z)
        d2 = p * q
        h11 = SIGMOID_SIGMA + np.dot(f * f, d2)
        h22 = SIGMOID_SIGMA + np.sum(d2)
        h21 = np.dot(f, d2)
        d1 = t - p
        g1 = np.dot(f, d1)
        g2 = np.sum(d1)

        if abs(g1) < SIGMOID_EPS and abs(g2) < SIGMOID_EPS:
            break

        # Направление Ньютона: -inv(H') g
        det = h11 * h22 - h21 * h21
        dA = -(h22 * g1 - h21 * g2) / det
        dB = -(-h21 * g1 + h11 * g2) / det
        gd = g1 * dA + g2 * dB

        stepsize = 1.0
        while stepsize >= SIGMOID_MIN_STEP:
            new_A = A + stepsize * dA
            new_B = B + stepsize * dB
            new_f = _sigmoid_objective(f, t, new_A, new_B)
            if new_f < fval + 0.0001 * stepsize * gd:
                A, B, fval = new_A, new_B, new_f
                break
            stepsize *= 0.5

        if stepsize < SIGMOID_MIN_STEP:
            warnings.warn(
                "Line search fails in two-class probability estimates",
                ConvergenceWarning
            )
            break
    else:
        warnings.warn(
            "Reaching maximal iterations in two-class probability estimates",
            ConvergenceWarning
        )

    return float(A), float(B)


def sigmoid_predict(decision_value, A: float, B: float):
    """
    Вероятность положительного класса 1 / (1 + exp(A·f + B)).

    Принимает скаляр или массив решающих значений.
    """
    result = expit(-(np.asarray(decision_value, dtype=np.float64) * A + B))
    if np.ndim(result) == 0:
        return float(result)
    return result


def multiclass_probability(pairwise) -> np.ndarray:
    """
    Сведение попарных вероятностей r[i][j] ≈ P(y=i | y∈{i,j}, x)
    к вектору вероятностей классов.

    Args:
        pairwise: Матрица k×k, r[j][i] = 1 - r[i][j]

    Returns:
        p: (k,), неотрицательный, сумма 1
    """
    r = np.asarray(pairwise, dtype=np.float64)
    k = r.shape[0]
    p = np.full(k, 1.0 / k)
    eps = 0.005 / k
    max_iter = max(100, k)

    # Q[t][j] = -r[j][t]·r[t][j], Q[t][t] = Σ_{j≠t} r[j][t]²
    Q = -r.T * r
    r_squared = r * r
    np.fill_diagonal(Q, r_squared.sum(axis=0) - np.diag(r_squared))

    iteration = 0
    while iteration < max_iter:
        # Пересчёт Qp, pQp для численной точности
        Qp = Q @ p
        pQp = float(p @ Qp)
        max_error = np.max(np.abs(Qp - pQp))
        if max_error < eps:
            break

        for t in range(k):
            diff = (-Qp[t] + pQp) / Q[t, t]
            p[t] += diff
            pQp = (pQp + diff * (diff * Q[t, t] + 2.0 * Qp[t])) / (1.0 + diff) / (1.0 + diff)
            Qp = (Qp + diff * Q[t]) / (1.0 + diff)
            p /= (1.0 + diff)

        iteration += 1

    if iteration >= max_iter:
        warnings.warn("Exceeds max_iter in multiclass_prob", ConvergenceWarning)

    return p

"""
Ядерные функции и обёртки матрицы Q для SMO солвера.

Поддерживаемые ядра:
    linear:      K(x, z) = x^T z
    polynomial:  K(x, z) = (γ·x^T z + coef0)^degree
    rbf:         K(x, z) = exp(-γ·||x - z||²)
    sigmoid:     K(x, z) = tanh(γ·x^T z + coef0)

Матрица Q не хранится целиком: обязательно предвычисляется только её
диагональ, строки считаются на лету (Numba JIT) и держатся в небольшом
LRU-кэше. Варианты Q:
    SVC:       Q_ij = y_i y_j K(x_i, x_j)
    one-class: Q_ij = K(x_i, x_j)
    SVR:       задача удвоена (ξ⁺/ξ⁻), Q_ij = s_i s_j K(x_{i mod l}, x_{j mod l})
"""

from collections import OrderedDict
from dataclasses import dataclass
from enum import IntEnum

import numpy as np
from numba import njit


class KernelType(IntEnum):
    LINEAR = 0
    POLYNOMIAL = 1
    RBF = 2
    SIGMOID = 3


# Константы для Numba-функций (IntEnum внутри njit не используем)
_LINEAR = 0
_POLYNOMIAL = 1
_RBF = 2
_SIGMOID = 3


@dataclass(frozen=True)
class KernelParameters:
    """Тип ядра и его гиперпараметры; не меняются во время решения."""
    kernel_type: KernelType = KernelType.RBF
    degree: int = 3
    gamma: float = 0.5
    coef0: float = 0.0

    def __post_init__(self):
        # Принимаем и строковые имена: 'linear', 'rbf', ...
        kernel_type = self.kernel_type
        if isinstance(kernel_type, str):
            kernel_type = KernelType[kernel_type.upper()]
        object.__setattr__(self, "kernel_type", KernelType(kernel_type))

    def as_tuple(self):
        return int(self.kernel_type), int(self.degree), float(self.gamma), float(self.coef0)


# =============================================================================
# Numba-оптимизированные функции ядра
# =============================================================================

@njit(fastmath=True, cache=True)
def _dot(x, z):
    s = 0.0
    for k in range(x.shape[0]):
        s += x[k] * z[k]
    return s


@njit(cache=True)
def _powi(base, times):
    """Целая степень возведением в квадрат."""
    tmp = base
    ret = 1.0
    t = times
    while t > 0:
        if t % 2 == 1:
            ret *= tmp
        tmp = tmp * tmp
        t //= 2
    return ret


@njit(fastmath=True, cache=True)
def kernel_value(x, z, kernel_type, degree, gamma, coef0):
    """Значение ядра K(x, z) для двух векторов."""
    if kernel_type == _LINEAR:
        return _dot(x, z)
    elif kernel_type == _POLYNOMIAL:
        return _powi(gamma * _dot(x, z) + coef0, degree)
    elif kernel_type == _RBF:
        s = 0.0
        for k in range(x.shape[0]):
            d = x[k] - z[k]
            s += d * d
        return np.exp(-gamma * s)
    else:
        return np.tanh(gamma * _dot(x, z) + coef0)


@njit(fastmath=True, cache=True, nogil=True)
def kernel_row(X, x, kernel_type, degree, gamma, coef0):
    """
    Строка матрицы ядра: K[i] = K(X[i], x) для всех строк X.

    Args:
        X: Матрица данных (n_samples, n_features)
        x: Вектор (n_features,)

    Returns:
        K_row: (n_samples,)
    """
    n_samples = X.shape[0]
    row = np.empty(n_samples, dtype=np.float64)
    for i in range(n_samples):
        row[i] = kernel_value(X[i], x, kernel_type, degree, gamma, coef0)
    return row


@njit(fastmath=True, cache=True)
def kernel_diagonal(X, kernel_type, degree, gamma, coef0):
    """Диагональ матрицы ядра K(x_i, x_i)."""
    n_samples = X.shape[0]
    diag = np.empty(n_samples, dtype=np.float64)
    for i in range(n_samples):
        diag[i] = kernel_value(X[i], X[i], kernel_type, degree, gamma, coef0)
    return diag


def _as_matrix(X) -> np.ndarray:
    return np.ascontiguousarray(X, dtype=np.float64)


def compute_kernel_value(params: KernelParameters, x, z) -> float:
    """K(x, z) с параметрами params."""
    x = np.ascontiguousarray(x, dtype=np.float64)
    z = np.ascontiguousarray(z, dtype=np.float64)
    return float(kernel_value(x, z, *params.as_tuple()))


def compute_kernel_row(params: KernelParameters, X, x) -> np.ndarray:
    """Значения ядра между x и каждой строкой X."""
    X = _as_matrix(X)
    if X.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)
    x = np.ascontiguousarray(x, dtype=np.float64)
    return kernel_row(X, x, *params.as_tuple())


# =============================================================================
# Обёртки матрицы Q
# =============================================================================

class QMatrix:
    """
    Базовая обёртка: Q_ij = K(x_i, x_j).

    get_q(i) возвращает строку i; последние cache_rows строк хранятся в
    LRU-кэше, остальные пересчитываются при обращении.
    """

    def __init__(self, X, params: KernelParameters, cache_rows: int = 64):
        self.X = _as_matrix(X)
        self.params = params
        self.cache_rows = max(int(cache_rows), 2)
        self._cache = OrderedDict()
        self._diagonal = self._compute_diagonal()

    @property
    def size(self) -> int:
        return self.X.shape[0]

    @property
    def diagonal(self) -> np.ndarray:
        return self._diagonal

    def _compute_diagonal(self) -> np.ndarray:
        if self.X.shape[0] == 0:
            return np.zeros(0, dtype=np.float64)
        return kernel_diagonal(self.X, *self.params.as_tuple())

    def _kernel_row(self, i: int) -> np.ndarray:
        return kernel_row(self.X, self.X[i], *self.params.as_tuple())

    def _compute_row(self, i: int) -> np.ndarray:
        return self._kernel_row(i)

    def get_q(self, i: int) -> np.ndarray:
        row = self._cache.get(i)
        if row is not None:
            self._cache.move_to_end(i)
            return row
        row = self._compute_row(i)
        self._cache[i] = row
        if len(self._cache) > self.cache_rows:
            self._cache.popitem(last=False)
        return row


class OneClassQMatrix(QMatrix):
    """Q_ij = K(x_i, x_j) для one-class SVM."""


class SVCQMatrix(QMatrix):
    """Q_ij = y_i y_j K(x_i, x_j)."""

    def __init__(self, X, y, params: KernelParameters, cache_rows: int = 64):
        self.y = np.asarray(y, dtype=np.float64)
        super().__init__(X, params, cache_rows)

    def _compute_row(self, i: int) -> np.ndarray:
        return self.y[i] * self.y * self._kernel_row(i)


class SVRQMatrix(QMatrix):
    """
    Удвоенная задача регрессии: индексы l..2l-1 дублируют точки 0..l-1
    со знаком -1.
    """

    def __init__(self, X, params: KernelParameters, cache_rows: int = 64):
        super().__init__(X, params, cache_rows)
        n = self.X.shape[0]
        self.sign = np.concatenate([np.ones(n), -np.ones(n)])

    @property
    def size(self) -> int:
        return 2 * self.X.shape[0]

    def _compute_diagonal(self) -> np.ndarray:
        diag = super()._compute_diagonal()
        return np.concatenate([diag, diag])

    def _compute_row(self, i: int) -> np.ndarray:
        n = self.X.shape[0]
        real_i = i - n if i >= n else i
        k_row = self._kernel_row(real_i)
        return self.sign[i] * self.sign * np.concatenate([k_row, k_row])

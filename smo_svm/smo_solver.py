"""
Sequential Minimal Optimization (SMO) солвер для двойственной задачи SVM.

Алгоритм SMO основан на работах:
- Platt, J. (1998). "Sequential Minimal Optimization: A Fast Algorithm for Training SVMs"
- Fan, R.-E., Chen, P.-H., & Lin, C.-J. (2005). "Working Set Selection Using Second Order Information"
- Chang, C.-C., & Lin, C.-J. LIBSVM: A library for support vector machines

Решаемая задача:
    min_α 1/2 α^T Q α + p^T α

    s.t. y^T α = Δ
         0 ≤ α_i ≤ C_p   ; y_i = +1
         0 ≤ α_i ≤ C_n   ; y_i = -1

Один цикл SMO обслуживает все пять вариантов задачи. Различия вариантов
сведены к стратегии (SolverStrategy): выбор рабочей пары и вычисление ρ.
Инициализация α и постобработка выполняются функциями-точками входа
solve_classification, solve_nu_classification, solve_one_class,
solve_epsilon_regression и solve_nu_regression.

Memory-efficient: хранится только диагональ Q, строки вычисляются на лету.
"""

import warnings
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Callable, Optional, Tuple

import numpy as np
from numba import njit

from .exceptions import ConvergenceWarning
from .kernels import (
    KernelParameters,
    OneClassQMatrix,
    QMatrix,
    SVCQMatrix,
    SVRQMatrix,
)

INT_MAX = 2 ** 31 - 1
# Минимальная кривизна, подставляется при неположительном квадратичном коэффициенте
TAU = 1e-12


class AlphaState(IntEnum):
    LOWER_BOUND = 0
    UPPER_BOUND = 1
    FREE = 2


_LOWER_BOUND = 0
_UPPER_BOUND = 1
_FREE = 2

_EMPTY_ROW = np.zeros(0, dtype=np.float64)


@dataclass
class SMOResult:
    """Результат работы SMO солвера."""
    alpha: np.ndarray          # Множители Лагранжа (в пространстве солвера)
    rho: float                 # Смещение ρ
    objective_value: float     # Значение целевой функции
    n_iterations: int          # Количество итераций
    n_support_vectors: int     # Количество ненулевых α
    converged: bool            # Сходимость достигнута
    gap: float                 # Gmax + Gmax2 на последнем шаге выбора
    r: Optional[float] = None  # last_ρ ν-солвера
    upper_bound_p: float = 0.0
    upper_bound_n: float = 0.0


@dataclass
class DecisionFunction:
    """Решающая функция одной подзадачи: ρ и α со знаком."""
    rho: float
    alpha: np.ndarray


def alpha_status(alpha: np.ndarray, C: np.ndarray) -> np.ndarray:
    """Состояние каждой α относительно её box-ограничения [0, C_i]."""
    status = np.full(alpha.shape, _FREE, dtype=np.int8)
    status[alpha <= 0.0] = _LOWER_BOUND
    status[alpha >= C] = _UPPER_BOUND
    return status


def default_max_iter(n: int) -> int:
    """Защитный лимит итераций: max(10^7, min(100·n, INT_MAX))."""
    return max(10000000, INT_MAX if n > INT_MAX // 100 else 100 * n)


# =============================================================================
# Numba-оптимизированный выбор рабочего множества
# =============================================================================

@njit(cache=True)
def _max_violating_index(status, gradient, y):
    """
    i = argmax -y_t·∇f_t по I_up(α):
        α_t < C_t для y_t > 0, α_t > 0 для y_t < 0
    """
    gmax = -np.inf
    gmax_idx = -1
    for t in range(gradient.shape[0]):
        if y[t] > 0.0:
            if status[t] != _UPPER_BOUND:
                if -gradient[t] >= gmax:
                    gmax = -gradient[t]
                    gmax_idx = t
        else:
            if status[t] != _LOWER_BOUND:
                if gradient[t] >= gmax:
                    gmax = gradient[t]
                    gmax_idx = t
    return gmax, gmax_idx


@njit(cache=True)
def _min_objective_decrease(status, gradient, y, q_diag, q_i, i, gmax):
    """
    j минимизирует приближённое уменьшение целевой функции
    (second order), -y_j·∇f_j < -y_i·∇f_i, j ∈ I_low(α).
    """
    gmax2 = -np.inf
    gmin_idx = -1
    obj_diff_min = np.inf
    for j in range(gradient.shape[0]):
        if y[j] > 0.0:
            if status[j] != _LOWER_BOUND:
                grad_diff = gmax + gradient[j]
                if gradient[j] >= gmax2:
                    gmax2 = gradient[j]
                if grad_diff > 0.0:
                    quad_coef = q_diag[i] + q_diag[j] - 2.0 * y[i] * q_i[j]
                    if quad_coef > 0.0:
                        obj_diff = -(grad_diff * grad_diff) / quad_coef
                    else:
                        obj_diff = -(grad_diff * grad_diff) / TAU
                    if obj_diff <= obj_diff_min:
                        gmin_idx = j
                        obj_diff_min = obj_diff
        else:
            if status[j] != _UPPER_BOUND:
                grad_diff = gmax - gradient[j]
                if -gradient[j] >= gmax2:
                    gmax2 = -gradient[j]
                if grad_diff > 0.0:
                    quad_coef = q_diag[i] + q_diag[j] + 2.0 * y[i] * q_i[j]
                    if quad_coef > 0.0:
                        obj_diff = -(grad_diff * grad_diff) / quad_coef
                    else:
                        obj_diff = -(grad_diff * grad_diff) / TAU
                    if obj_diff <= obj_diff_min:
                        gmin_idx = j
                        obj_diff_min = obj_diff
    return gmax2, gmin_idx


@njit(cache=True)
def _max_violating_indices_nu(status, gradient, y):
    """Максимальные нарушители отдельно среди y=+1 и y=-1."""
    gmaxp = -np.inf
    gmaxp_idx = -1
    gmaxn = -np.inf
    gmaxn_idx = -1
    for t in range(gradient.shape[0]):
        if y[t] > 0.0:
            if status[t] != _UPPER_BOUND:
                if -gradient[t] >= gmaxp:
                    gmaxp = -gradient[t]
                    gmaxp_idx = t
        else:
            if status[t] != _LOWER_BOUND:
                if gradient[t] >= gmaxn:
                    gmaxn = gradient[t]
                    gmaxn_idx = t
    return gmaxp, gmaxp_idx, gmaxn, gmaxn_idx


@njit(cache=True)
def _min_objective_decrease_nu(status, gradient, y, q_diag, q_ip, q_in,
                               ip, in_, gmaxp, gmaxn):
    """Выбор j внутри той же метки, что и соответствующий i."""
    gmaxp2 = -np.inf
    gmaxn2 = -np.inf
    gmin_idx = -1
    obj_diff_min = np.inf
    for j in range(gradient.shape[0]):
        if y[j] > 0.0:
            if status[j] != _LOWER_BOUND:
                grad_diff = gmaxp + gradient[j]
                if gradient[j] >= gmaxp2:
                    gmaxp2 = gradient[j]
                if grad_diff > 0.0:
                    quad_coef = q_diag[ip] + q_diag[j] - 2.0 * q_ip[j]
                    if quad_coef > 0.0:
                        obj_diff = -(grad_diff * grad_diff) / quad_coef
                    else:
                        obj_diff = -(grad_diff * grad_diff) / TAU
                    if obj_diff <= obj_diff_min:
                        gmin_idx = j
                        obj_diff_min = obj_diff
        else:
            if status[j] != _UPPER_BOUND:
                grad_diff = gmaxn - gradient[j]
                if -gradient[j] >= gmaxn2:
                    gmaxn2 = -gradient[j]
                if grad_diff > 0.0:
                    quad_coef = q_diag[in_] + q_diag[j] - 2.0 * q_in[j]
                    if quad_coef > 0.0:
                        obj_diff = -(grad_diff * grad_diff) / quad_coef
                    else:
                        obj_diff = -(grad_diff * grad_diff) / TAU
                    if obj_diff <= obj_diff_min:
                        gmin_idx = j
                        obj_diff_min = obj_diff
    return gmaxp2, gmaxn2, gmin_idx


# =============================================================================
# Стратегии: выбор рабочей пары и вычисление ρ
# =============================================================================

def select_working_set_standard(solver: "Solver") -> Tuple[int, int, float]:
    """
    Пара максимального нарушения (WSS, second order).

    Returns:
        (i, j, gap); i = j = -1, если Gmax + Gmax2 < ε и пары нет
    """
    gmax, i = _max_violating_index(solver.status, solver.gradient, solver.y)
    q_i = solver.q.get_q(i) if i != -1 else _EMPTY_ROW
    gmax2, j = _min_objective_decrease(
        solver.status, solver.gradient, solver.y, solver.q_diagonal, q_i, i, gmax
    )
    gap = gmax + gmax2
    if gap < solver.eps or j == -1:
        return -1, -1, gap
    return i, j, gap


def select_working_set_nu(solver: "Solver") -> Tuple[int, int, float]:
    """Выбор пары для ν-задач: i и j всегда с одинаковой меткой."""
    gmaxp, ip, gmaxn, in_ = _max_violating_indices_nu(
        solver.status, solver.gradient, solver.y
    )
    q_ip = solver.q.get_q(ip) if ip != -1 else _EMPTY_ROW
    q_in = solver.q.get_q(in_) if in_ != -1 else _EMPTY_ROW
    gmaxp2, gmaxn2, j = _min_objective_decrease_nu(
        solver.status, solver.gradient, solver.y, solver.q_diagonal,
        q_ip, q_in, ip, in_, gmaxp, gmaxn
    )
    gap = max(gmaxp + gmaxp2, gmaxn + gmaxn2)
    if gap < solver.eps or j == -1:
        return -1, -1, gap
    if solver.y[j] > 0.0:
        return ip, j, gap
    return in_, j, gap


def _midpoint(ub: float, lb: float) -> float:
    """Середина [lb, ub]; если одна из границ не найдена, берётся другая."""
    if np.isfinite(ub) and np.isfinite(lb):
        return (ub + lb) * 0.5
    if np.isfinite(lb):
        return lb
    if np.isfinite(ub):
        return ub
    return 0.0


def calculate_rho_standard(solver: "Solver") -> Tuple[float, Optional[float]]:
    """
    ρ из KKT условий: среднее y·∇f по свободным переменным, иначе
    середина между оценками от граничных переменных.
    """
    y, status = solver.y, solver.status
    yG = y * solver.gradient
    free = status == _FREE
    if np.any(free):
        return float(np.mean(yG[free])), None

    at_upper = status == _UPPER_BOUND
    at_lower = status == _LOWER_BOUND
    ub_mask = (at_upper & (y < 0)) | (at_lower & (y > 0))
    lb_mask = (at_upper & (y > 0)) | (at_lower & (y < 0))
    ub = float(np.min(yG[ub_mask])) if np.any(ub_mask) else np.inf
    lb = float(np.max(yG[lb_mask])) if np.any(lb_mask) else -np.inf
    return _midpoint(ub, lb), None


def _partition_rho(gradient: np.ndarray, status: np.ndarray) -> float:
    free = status == _FREE
    if np.any(free):
        return float(np.mean(gradient[free]))
    at_lower = status == _LOWER_BOUND
    at_upper = status == _UPPER_BOUND
    ub = float(np.min(gradient[at_lower])) if np.any(at_lower) else np.inf
    lb = float(np.max(gradient[at_upper])) if np.any(at_upper) else -np.inf
    return _midpoint(ub, lb)


def calculate_rho_nu(solver: "Solver") -> Tuple[float, Optional[float]]:
    """
    Две независимые оценки по меткам: r1 (y=+1) и r2 (y=-1).

    Returns:
        (ρ, r), где ρ = (r1 - r2)/2, r = last_ρ = (r1 + r2)/2
    """
    positive = solver.y > 0
    r1 = _partition_rho(solver.gradient[positive], solver.status[positive])
    r2 = _partition_rho(solver.gradient[~positive], solver.status[~positive])
    return (r1 - r2) * 0.5, (r1 + r2) * 0.5


@dataclass(frozen=True)
class SolverStrategy:
    """Поведение, отличающее ν-солвер от стандартного."""
    name: str
    select_working_set: Callable[["Solver"], Tuple[int, int, float]]
    calculate_rho: Callable[["Solver"], Tuple[float, Optional[float]]]


STANDARD_STRATEGY = SolverStrategy(
    "standard", select_working_set_standard, calculate_rho_standard
)
NU_STRATEGY = SolverStrategy("nu", select_working_set_nu, calculate_rho_nu)


# =============================================================================
# Основной класс солвера
# =============================================================================

class Solver:
    """
    Общий цикл SMO над абстрактной квадратичной формой QMatrix.

    Экземпляр обслуживает одну подзадачу: состояние (α, градиент,
    градиент-бар, состояния α) создаётся в solve() и не переживает его
    результат.
    """

    def __init__(
        self,
        eps: float = 1e-3,
        strategy: SolverStrategy = STANDARD_STRATEGY,
        max_iter: Optional[int] = None,
        verbose: bool = False,
        cancel_event=None
    ):
        """
        Args:
            eps: Допуск остановки (Gmax + Gmax2 < eps)
            strategy: STANDARD_STRATEGY или NU_STRATEGY
            max_iter: Лимит итераций; None - max(10^7, 100·n)
            verbose: Выводить отладочную информацию
            cancel_event: threading.Event для кооперативной остановки
        """
        self.eps = eps
        self.strategy = strategy
        self.max_iter = max_iter
        self.verbose = verbose
        self.cancel_event = cancel_event

    @classmethod
    def nu_solver(cls, **kwargs) -> "Solver":
        """Солвер с ν-стратегией выбора пары и вычисления ρ."""
        return cls(strategy=NU_STRATEGY, **kwargs)

    def _update_alpha_status(self, index: int) -> None:
        a = self.alpha[index]
        if a >= self.C[index]:
            self.status[index] = _UPPER_BOUND
        elif a <= 0.0:
            self.status[index] = _LOWER_BOUND
        else:
            self.status[index] = _FREE

    def solve(
        self,
        q_matrix: QMatrix,
        linear_term: np.ndarray,
        y: np.ndarray,
        alpha: np.ndarray,
        cost_positive: float,
        cost_negative: float
    ) -> SMOResult:
        """
        Решает задачу с начальной допустимой точкой alpha.

        Args:
            q_matrix: Обёртка матрицы Q
            linear_term: Вектор p линейного члена
            y: Метки {-1, +1}
            alpha: Начальная допустимая α
            cost_positive: C_p для y_i = +1
            cost_negative: C_n для y_i = -1

        Returns:
            SMOResult с решением
        """
        n = q_matrix.size
        self.q = q_matrix
        self.y = np.ascontiguousarray(y, dtype=np.float64)
        self.alpha = np.array(alpha, dtype=np.float64)
        self.C = np.where(self.y > 0, cost_positive, cost_negative).astype(np.float64)
        self.q_diagonal = q_matrix.diagonal
        self.status = alpha_status(self.alpha, self.C)

        p = np.asarray(linear_term, dtype=np.float64)
        self.gradient = p.copy()
        self.gradient_bar = np.zeros(n, dtype=np.float64)
        for i in np.flatnonzero(self.status != _LOWER_BOUND):
            q_i = q_matrix.get_q(i)
            self.gradient += self.alpha[i] * q_i
            if self.status[i] == _UPPER_BOUND:
                self.gradient_bar += self.C[i] * q_i

        max_iter = self.max_iter if self.max_iter is not None else default_max_iter(n)

        if self.verbose:
            print(f"SMO solver started: {n} variables, strategy={self.strategy.name}")

        n_iter = 0
        converged = False
        gap = np.inf
        while n_iter < max_iter:
            if self.cancel_event is not None and self.cancel_event.is_set():
                break
            i, j, gap = self.strategy.select_working_set(self)
            if i < 0:
                converged = True
                break
            n_iter += 1
            self._update_pair(i, j)

        if not converged:
            if n_iter >= max_iter:
                warnings.warn(
                    f"SMO reached the maximal number of iterations ({max_iter}), "
                    "the solution may be inaccurate",
                    ConvergenceWarning
                )
            else:
                warnings.warn(
                    f"SMO cancelled after {n_iter} iterations", ConvergenceWarning
                )

        rho, r = self.strategy.calculate_rho(self)
        obj = 0.5 * float(np.dot(self.alpha, self.gradient + p))
        n_sv = int(np.count_nonzero(self.alpha))

        if self.verbose:
            print(f"SMO finished: {n_iter} iterations, {n_sv} support vectors, converged={converged}")
            print(f"  Objective value: {obj:.6f}, rho = {rho:.6f}")

        return SMOResult(
            alpha=self.alpha,
            rho=rho,
            objective_value=obj,
            n_iterations=n_iter,
            n_support_vectors=n_sv,
            converged=converged,
            gap=float(gap),
            r=r,
            upper_bound_p=float(cost_positive),
            upper_bound_n=float(cost_negative)
        )

    def _update_pair(self, i: int, j: int) -> None:
        """Аналитическое решение двухпеременной подзадачи для (α_i, α_j)."""
        alpha = self.alpha
        gradient = self.gradient
        q_diag = self.q_diagonal
        q_i = self.q.get_q(i)
        q_j = self.q.get_q(j)
        C_i = self.C[i]
        C_j = self.C[j]
        old_alpha_i = alpha[i]
        old_alpha_j = alpha[j]
        a_i = old_alpha_i
        a_j = old_alpha_j

        if self.y[i] != self.y[j]:
            # α_i - α_j = const
            quad_coef = q_diag[i] + q_diag[j] + 2.0 * q_i[j]
            if quad_coef <= 0.0:
                quad_coef = TAU
            delta = (-gradient[i] - gradient[j]) / quad_coef
            diff = a_i - a_j
            a_i += delta
            a_j += delta
            if diff > 0.0:
                if a_j < 0.0:
                    a_j = 0.0
                    a_i = diff
            else:
                if a_i < 0.0:
                    a_i = 0.0
                    a_j = -diff
            if diff > C_i - C_j:
                if a_i > C_i:
                    a_i = C_i
                    a_j = C_i - diff
            else:
                if a_j > C_j:
                    a_j = C_j
                    a_i = C_j + diff
        else:
            # α_i + α_j = const
            quad_coef = q_diag[i] + q_diag[j] - 2.0 * q_i[j]
            if quad_coef <= 0.0:
                quad_coef = TAU
            delta = (gradient[i] - gradient[j]) / quad_coef
            total = a_i + a_j
            a_i -= delta
            a_j += delta
            if total > C_i:
                if a_i > C_i:
                    a_i = C_i
                    a_j = total - C_i
            else:
                if a_j < 0.0:
                    a_j = 0.0
                    a_i = total
            if total > C_j:
                if a_j > C_j:
                    a_j = C_j
                    a_i = total - C_j
            else:
                if a_i < 0.0:
                    a_i = 0.0
                    a_j = total

        alpha[i] = a_i
        alpha[j] = a_j

        # Обновление градиента: O(n) по двум строкам Q
        delta_alpha_i = a_i - old_alpha_i
        delta_alpha_j = a_j - old_alpha_j
        gradient += q_i * delta_alpha_i + q_j * delta_alpha_j

        # Градиент-бар меняется только при входе/выходе из UPPER_BOUND
        was_upper_i = self.status[i] == _UPPER_BOUND
        was_upper_j = self.status[j] == _UPPER_BOUND
        self._update_alpha_status(i)
        self._update_alpha_status(j)
        if was_upper_i != (self.status[i] == _UPPER_BOUND):
            if was_upper_i:
                self.gradient_bar -= C_i * q_i
            else:
                self.gradient_bar += C_i * q_i
        if was_upper_j != (self.status[j] == _UPPER_BOUND):
            if was_upper_j:
                self.gradient_bar -= C_j * q_j
            else:
                self.gradient_bar += C_j * q_j


# =============================================================================
# Точки входа для вариантов задачи
# =============================================================================

def _signed_labels(y) -> np.ndarray:
    return np.where(np.asarray(y) > 0, 1.0, -1.0).astype(np.float64)


def solve_classification(
    X: np.ndarray,
    y: np.ndarray,
    params: KernelParameters,
    cost_positive: float = 1.0,
    cost_negative: float = 1.0,
    cache_rows: int = 64,
    **solver_options
) -> Tuple[DecisionFunction, SMOResult]:
    """
    C-SVC: min 1/2 α^T Q α - e^T α, 0 ≤ α_i ≤ C_{y_i}, y^T α = 0.

    Returns:
        (DecisionFunction с α_i·y_i, SMOResult)
    """
    y = _signed_labels(y)
    n = y.shape[0]
    q = SVCQMatrix(X, y, params, cache_rows)
    solver = Solver(**solver_options)
    result = solver.solve(q, -np.ones(n), y, np.zeros(n), cost_positive, cost_negative)

    if solver.verbose and cost_positive == cost_negative and n > 0:
        print(f"  nu = {np.sum(result.alpha) * cost_positive / n:.6f}")

    return DecisionFunction(rho=result.rho, alpha=result.alpha * y), result


def solve_nu_classification(
    X: np.ndarray,
    y: np.ndarray,
    params: KernelParameters,
    nu: float,
    cache_rows: int = 64,
    **solver_options
) -> Tuple[DecisionFunction, SMOResult]:
    """
    ν-SVC. После решения α, ρ и целевая функция нормируются на 1/r,
    где r = last_ρ ν-солвера.
    """
    y = _signed_labels(y)
    n = y.shape[0]

    sum_pos = nu * n / 2
    sum_neg = nu * n / 2
    alpha = np.zeros(n, dtype=np.float64)
    for i in range(n):
        if y[i] > 0:
            alpha[i] = min(1.0, sum_pos)
            sum_pos -= alpha[i]
        else:
            alpha[i] = min(1.0, sum_neg)
            sum_neg -= alpha[i]

    q = SVCQMatrix(X, y, params, cache_rows)
    solver = Solver(strategy=NU_STRATEGY, **solver_options)
    result = solver.solve(q, np.zeros(n), y, alpha, 1.0, 1.0)

    r = result.r
    if solver.verbose:
        print(f"  C = {1.0 / r:.6f}")

    result = replace(
        result,
        rho=result.rho / r,
        objective_value=result.objective_value / (r * r),
        upper_bound_p=1.0 / r,
        upper_bound_n=1.0 / r
    )
    return DecisionFunction(rho=result.rho, alpha=result.alpha * y / r), result


def solve_one_class(
    X: np.ndarray,
    params: KernelParameters,
    nu: float,
    cache_rows: int = 64,
    **solver_options
) -> Tuple[DecisionFunction, SMOResult]:
    """
    One-class SVM: α засеивается так, чтобы Σα = ν·l
    (⌊ν·l⌋ переменных на верхней границе и дробный остаток).
    """
    X = np.ascontiguousarray(X, dtype=np.float64)
    n = X.shape[0]
    n_upper = int(nu * n)
    alpha = np.zeros(n, dtype=np.float64)
    alpha[:n_upper] = 1.0
    if n_upper < n:
        alpha[n_upper] = nu * n - n_upper

    q = OneClassQMatrix(X, params, cache_rows)
    solver = Solver(**solver_options)
    result = solver.solve(q, np.zeros(n), np.ones(n), alpha, 1.0, 1.0)
    return DecisionFunction(rho=result.rho, alpha=result.alpha.copy()), result


def solve_epsilon_regression(
    X: np.ndarray,
    targets: np.ndarray,
    params: KernelParameters,
    cost: float,
    p: float,
    cache_rows: int = 64,
    **solver_options
) -> Tuple[DecisionFunction, SMOResult]:
    """
    ε-SVR: задача удваивается (пары ξ⁺/ξ⁻), p_i = ε - t_i и ε + t_i,
    итоговая α_i = α_i⁺ - α_i⁻.
    """
    t = np.asarray(targets, dtype=np.float64)
    n = t.shape[0]
    linear_term = np.concatenate([p - t, p + t])
    y2 = np.concatenate([np.ones(n), -np.ones(n)])

    q = SVRQMatrix(X, params, cache_rows)
    solver = Solver(**solver_options)
    result = solver.solve(q, linear_term, y2, np.zeros(2 * n), cost, cost)

    alpha = result.alpha[:n] - result.alpha[n:]
    if solver.verbose and n > 0:
        print(f"  nu = {np.sum(np.abs(alpha)) / (cost * n):.6f}")
    return DecisionFunction(rho=result.rho, alpha=alpha), result


def solve_nu_regression(
    X: np.ndarray,
    targets: np.ndarray,
    params: KernelParameters,
    cost: float,
    nu: float,
    cache_rows: int = 64,
    **solver_options
) -> Tuple[DecisionFunction, SMOResult]:
    """ν-SVR: α засеивается из бюджета C·ν·l/2 одинаково для обеих половин."""
    t = np.asarray(targets, dtype=np.float64)
    n = t.shape[0]

    budget = cost * nu * n / 2
    alpha_half = np.zeros(n, dtype=np.float64)
    for i in range(n):
        alpha_half[i] = min(budget, cost)
        budget -= alpha_half[i]

    alpha = np.concatenate([alpha_half, alpha_half])
    linear_term = np.concatenate([-t, t])
    y2 = np.concatenate([np.ones(n), -np.ones(n)])

    q = SVRQMatrix(X, params, cache_rows)
    solver = Solver(strategy=NU_STRATEGY, **solver_options)
    result = solver.solve(q, linear_term, y2, alpha, cost, cost)

    if solver.verbose:
        print(f"  epsilon = {-result.r:.6f}")
    return DecisionFunction(rho=result.rho, alpha=result.alpha[:n] - result.alpha[n:]), result

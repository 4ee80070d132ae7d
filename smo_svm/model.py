"""
SVMModel: обучение, предсказание, кросс-валидация и калибровка вероятностей.

Классификация решается схемой one-vs-one: для каждой пары классов (i, j)
строится бинарная подзадача (класс i → +1, класс j → -1), решается SMO,
после чего опорные векторы всех пар объединяются в общую таблицу,
а α пар раскладываются в таблицу коэффициентов [k-1, total_sv]:
    coefficients[j-1][...] - α точек класса i в паре (i, j)
    coefficients[i][...]   - α точек класса j в паре (i, j)
Смещения внутри строки задаются префиксными суммами support_vector_count.

One-class SVM и регрессия (ε-SVR, ν-SVR) решаются одним вызовом солвера.
"""

import warnings
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed
from tqdm.auto import tqdm

from .dataset import ClassificationData, DataSet
from .exceptions import ConfigurationError, DataWarning, InfeasibleParameterError
from .kernels import KernelParameters, KernelType, compute_kernel_row
from .probability import MIN_PROBABILITY, multiclass_probability, sigmoid_predict, sigmoid_train
from .smo_solver import (
    DecisionFunction,
    solve_classification,
    solve_epsilon_regression,
    solve_nu_classification,
    solve_nu_regression,
    solve_one_class,
)


class SVMType(IntEnum):
    C_SVC = 0
    NU_SVC = 1
    ONE_CLASS = 2
    EPSILON_SVR = 3
    NU_SVR = 4


CLASSIFICATION_TYPES = (SVMType.C_SVC, SVMType.NU_SVC)
REGRESSION_TYPES = (SVMType.EPSILON_SVR, SVMType.NU_SVR)

# Число фолдов внутренней кросс-валидации для калибровки вероятностей
PROBABILITY_FOLDS = 5


@dataclass
class TrainedState:
    """Числовое состояние обученной модели."""
    num_classes: int
    labels: np.ndarray
    rho: np.ndarray
    total_support_vectors: int
    support_vector_count: np.ndarray
    support_vectors: np.ndarray
    coefficients: np.ndarray
    probability_a: np.ndarray = field(default_factory=lambda: np.zeros(0))
    probability_b: np.ndarray = field(default_factory=lambda: np.zeros(0))

    @property
    def coeff_start(self) -> np.ndarray:
        """Начало блока каждого класса в таблице опорных векторов."""
        return class_block_starts(self.support_vector_count)


def class_block_starts(support_vector_count) -> np.ndarray:
    """Префиксные суммы числа опорных векторов: смещение блока каждого класса."""
    return np.concatenate([[0], np.cumsum(support_vector_count)[:-1]]).astype(np.int64)


def is_nu_feasible(class_counts: Sequence[int], nu: float) -> bool:
    """
    ν допустим, если для любой пары классов ν·(n_i + n_j)/2 ≤ min(n_i, n_j).
    """
    counts = list(class_counts)
    for i in range(len(counts)):
        for j in range(i + 1, len(counts)):
            n1, n2 = counts[i], counts[j]
            if nu * (n1 + n2) / 2 > min(n1, n2):
                return False
    return True


class SVMModel:
    """
    Support Vector Machine на SMO солвере.

    Args:
        svm_type: SVMType или его имя ('c_svc', 'nu_svc', 'one_class', ...)
        kernel_params: KernelParameters (по умолчанию RBF, γ=0.5)
        C: Штраф за ошибки (C-SVC, ε-SVR, ν-SVR)
        nu: Параметр ν (ν-SVC, one-class, ν-SVR)
        p: Ширина ε-трубки (ε-SVR)
        eps: Допуск остановки SMO
        probability: Калибровать вероятности при обучении
        weight_modifiers: Список (метка, множитель C) для классов
        n_jobs: Число потоков для пар классов и фолдов (joblib)
        random_state: Seed для перестановок кросс-валидации
        max_iter: Лимит итераций SMO (None - по умолчанию)
        verbose: Выводить отладочную информацию
        cache_rows: Размер LRU-кэша строк Q
    """

    def __init__(
        self,
        svm_type=SVMType.C_SVC,
        kernel_params: Optional[KernelParameters] = None,
        C: float = 1.0,
        nu: float = 0.5,
        p: float = 0.1,
        eps: float = 1e-3,
        probability: bool = False,
        weight_modifiers: Optional[List[Tuple[int, float]]] = None,
        n_jobs: int = 1,
        random_state=None,
        max_iter: Optional[int] = None,
        verbose: bool = False,
        cache_rows: int = 64
    ):
        if isinstance(svm_type, str):
            svm_type = SVMType[svm_type.upper()]
        self.svm_type = SVMType(svm_type)
        self.kernel_params = kernel_params if kernel_params is not None else KernelParameters()
        self.C = C
        self.nu = nu
        self.p = p
        self.eps = eps
        self.probability = probability
        self.weight_modifiers = list(weight_modifiers) if weight_modifiers else []
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.max_iter = max_iter
        self.verbose = verbose
        self.cache_rows = cache_rows

        self._rng = np.random.default_rng(random_state)
        self._state: Optional[TrainedState] = None

    def copy_settings(self, random_state=None) -> "SVMModel":
        """Новая необученная модель с теми же параметрами."""
        return SVMModel(
            svm_type=self.svm_type,
            kernel_params=self.kernel_params,
            C=self.C,
            nu=self.nu,
            p=self.p,
            eps=self.eps,
            probability=self.probability,
            weight_modifiers=self.weight_modifiers,
            n_jobs=self.n_jobs,
            random_state=self.random_state if random_state is None else random_state,
            max_iter=self.max_iter,
            verbose=self.verbose,
            cache_rows=self.cache_rows
        )

    # =========================================================================
    # Состояние модели
    # =========================================================================

    @property
    def is_trained(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> TrainedState:
        if self._state is None:
            raise ConfigurationError("model is not trained")
        return self._state

    def restore_state(self, state: TrainedState) -> None:
        """Устанавливает готовое состояние (используется при загрузке)."""
        self._state = state

    @property
    def num_classes(self) -> int:
        return self.state.num_classes

    @property
    def labels(self) -> np.ndarray:
        return self.state.labels

    @property
    def rho(self) -> np.ndarray:
        return self.state.rho

    @property
    def total_support_vectors(self) -> int:
        return self.state.total_support_vectors

    @property
    def support_vector_count(self) -> np.ndarray:
        return self.state.support_vector_count

    @property
    def support_vectors(self) -> np.ndarray:
        return self.state.support_vectors

    @property
    def coefficients(self) -> np.ndarray:
        return self.state.coefficients

    @property
    def probability_a(self) -> np.ndarray:
        return self.state.probability_a

    @property
    def probability_b(self) -> np.ndarray:
        return self.state.probability_b

    @property
    def is_classification(self) -> bool:
        return self.svm_type in CLASSIFICATION_TYPES

    # =========================================================================
    # Проверка параметров
    # =========================================================================

    def check_parameters(self) -> None:
        """Проверка параметров до запуска солвера."""
        kp = self.kernel_params
        if kp.gamma < 0:
            raise ConfigurationError(f"gamma < 0 (got {kp.gamma})")
        if kp.kernel_type == KernelType.POLYNOMIAL and kp.degree < 0:
            raise ConfigurationError(f"degree of polynomial kernel < 0 (got {kp.degree})")
        if self.eps <= 0:
            raise ConfigurationError(f"eps <= 0 (got {self.eps})")
        if self.svm_type in (SVMType.C_SVC, SVMType.EPSILON_SVR, SVMType.NU_SVR) and self.C <= 0:
            raise ConfigurationError(f"C <= 0 (got {self.C})")
        if self.svm_type in (SVMType.NU_SVC, SVMType.ONE_CLASS, SVMType.NU_SVR):
            if self.nu <= 0 or self.nu > 1:
                raise ConfigurationError(f"nu <= 0 or nu > 1 (got {self.nu})")
        if self.svm_type == SVMType.EPSILON_SVR and self.p < 0:
            raise ConfigurationError(f"p < 0 (got {self.p})")
        if self.probability and self.svm_type == SVMType.ONE_CLASS:
            raise ConfigurationError("one-class SVM probability output not supported")
        if self.n_jobs == 0:
            raise ConfigurationError("n_jobs must be non-zero")

    def is_nu_feasible_for_data(self, data: DataSet) -> bool:
        classification_data = data.group_classes()
        return is_nu_feasible(classification_data.class_count, self.nu)

    # =========================================================================
    # Обучение
    # =========================================================================

    def _run_parallel(self, tasks: list, desc: str) -> list:
        if self.verbose:
            tasks = tqdm(tasks, desc=desc)
        return Parallel(n_jobs=self.n_jobs, prefer="threads")(tasks)

    def _train_one(
        self,
        X: np.ndarray,
        y: Optional[np.ndarray],
        cost_positive: float,
        cost_negative: float
    ) -> DecisionFunction:
        """Одна подзадача SMO для текущего типа модели."""
        options = dict(
            eps=self.eps,
            max_iter=self.max_iter,
            verbose=self.verbose,
            cache_rows=self.cache_rows
        )
        params = self.kernel_params

        if self.svm_type == SVMType.C_SVC:
            f, result = solve_classification(X, y, params, cost_positive, cost_negative, **options)
        elif self.svm_type == SVMType.NU_SVC:
            f, result = solve_nu_classification(X, y, params, self.nu, **options)
        elif self.svm_type == SVMType.ONE_CLASS:
            f, result = solve_one_class(X, params, self.nu, **options)
        elif self.svm_type == SVMType.EPSILON_SVR:
            f, result = solve_epsilon_regression(X, y, params, self.C, self.p, **options)
        else:
            f, result = solve_nu_regression(X, y, params, self.C, self.nu, **options)

        if self.verbose:
            print(f"obj = {result.objective_value:.6f}, rho = {f.rho:.6f}")
            abs_alpha = np.abs(f.alpha)
            if self.is_classification:
                bounds = np.where(y > 0, result.upper_bound_p, result.upper_bound_n)
            else:
                bounds = np.full(abs_alpha.shape, result.upper_bound_p)
            n_sv = int(np.count_nonzero(abs_alpha > 0))
            n_bsv = int(np.count_nonzero((abs_alpha > 0) & (abs_alpha >= bounds)))
            print(f"nSV = {n_sv}, nBSV = {n_bsv}")

        return f

    @staticmethod
    def _regression_targets(data: DataSet) -> np.ndarray:
        if data.outputs is not None:
            return data.targets()
        if data.labels is not None:
            return data.labels.astype(np.float64)
        raise ConfigurationError("regression requires outputs in the data set")

    def train(self, data: DataSet) -> "SVMModel":
        """
        Обучает модель на датасете.

        Raises:
            ConfigurationError: Неверные параметры, пустой датасет, < 2 классов
            InfeasibleParameterError: ν недопустим для баланса классов (ν-SVC)
        """
        self._check_training_data(data)
        return self._train(data)

    def _check_training_data(self, data: DataSet) -> None:
        """Проверки на данных вызывающего; подмодели фолдов их не повторяют."""
        self.check_parameters()
        if data.size == 0:
            raise ConfigurationError("cannot train on an empty data set")
        if self.svm_type == SVMType.NU_SVC and not self.is_nu_feasible_for_data(data):
            raise InfeasibleParameterError(
                f"specified nu = {self.nu} is infeasible for the class balance of the data"
            )

    def _train(self, data: DataSet) -> "SVMModel":
        """Обучение без проверок параметров и ν-допустимости."""
        if data.size == 0:
            raise ConfigurationError("cannot train on an empty data set")
        if self.is_classification:
            self._state = self._train_classification(data)
        else:
            self._state = self._train_single(data)
        return self

    def _train_single(self, data: DataSet) -> TrainedState:
        """One-class SVM и регрессия: одна подзадача."""
        probability_a = np.zeros(0)
        if self.svm_type == SVMType.ONE_CLASS:
            targets = None
        else:
            targets = self._regression_targets(data)
            if self.probability:
                probability_a = np.array([self.svr_probability(data)])

        f = self._train_one(data.inputs, targets, 0.0, 0.0)

        support = np.abs(f.alpha) > 0
        total = int(np.count_nonzero(support))
        return TrainedState(
            num_classes=1,
            labels=np.zeros(0, dtype=np.int64),
            rho=np.array([f.rho], dtype=np.float64),
            total_support_vectors=total,
            support_vector_count=np.array([total], dtype=np.int64),
            support_vectors=data.inputs[support].copy(),
            coefficients=f.alpha[support].reshape(1, -1).copy(),
            probability_a=probability_a,
            probability_b=np.zeros(0)
        )

    def _weighted_costs(self, classification_data: ClassificationData) -> np.ndarray:
        weighted_cost = np.full(classification_data.num_classes, float(self.C))
        for label, multiplier in self.weight_modifiers:
            if label not in classification_data.found_labels:
                warnings.warn(
                    f"weight modifier label {label} not found in data set",
                    DataWarning
                )
                continue
            weighted_cost[classification_data.found_labels.index(label)] *= multiplier
        return weighted_cost

    def _train_pair(
        self,
        data: DataSet,
        classification_data: ClassificationData,
        i: int,
        j: int,
        weighted_cost: np.ndarray,
        seed: int
    ):
        """Бинарная подзадача для пары классов (i → +1, j → -1)."""
        offsets = classification_data.class_offsets
        indices = np.concatenate([offsets[i], offsets[j]])
        X = data.inputs[indices]
        y = np.concatenate([
            np.ones(classification_data.class_count[i]),
            -np.ones(classification_data.class_count[j])
        ])

        probability = None
        if self.probability:
            sub_problem = DataSet(X, labels=y.astype(np.int64))
            probability = self._binary_svc_probability(
                sub_problem, weighted_cost[i], weighted_cost[j], np.random.default_rng(seed)
            )

        f = self._train_one(X, y, weighted_cost[i], weighted_cost[j])
        return f, probability

    def _train_classification(self, data: DataSet) -> TrainedState:
        classification_data = data.group_classes()
        k = classification_data.num_classes
        if k < 2:
            raise ConfigurationError(f"classification needs at least 2 classes, got {k}")

        weighted_cost = self._weighted_costs(classification_data)
        pairs = [(i, j) for i in range(k - 1) for j in range(i + 1, k)]
        seeds = self._rng.integers(0, 2 ** 32, size=len(pairs))

        results = self._run_parallel(
            [
                delayed(self._train_pair)(data, classification_data, i, j, weighted_cost, seed)
                for (i, j), seed in zip(pairs, seeds)
            ],
            desc="Class pairs"
        )
        functions = [f for f, _ in results]

        offsets = classification_data.class_offsets
        counts = classification_data.class_count

        # Точки с ненулевой α хотя бы в одной паре
        non_zero = np.zeros(data.size, dtype=bool)
        for (i, j), f in zip(pairs, functions):
            ci = counts[i]
            non_zero[offsets[i][np.abs(f.alpha[:ci]) > 0]] = True
            non_zero[offsets[j][np.abs(f.alpha[ci:]) > 0]] = True

        class_support = [non_zero[offsets[c]] for c in range(k)]
        support_vector_count = np.array([int(np.count_nonzero(m)) for m in class_support], dtype=np.int64)
        total = int(support_vector_count.sum())
        if self.verbose:
            print(f"Total nSV = {total}")

        # Опорные векторы упорядочены по классам
        sv_indices = np.concatenate([offsets[c][class_support[c]] for c in range(k)])
        support_vectors = data.inputs[sv_indices].copy()

        coeff_start = class_block_starts(support_vector_count)
        coefficients = np.zeros((k - 1, total), dtype=np.float64)
        for (i, j), f in zip(pairs, functions):
            ci = counts[i]
            start_i = coeff_start[i]
            start_j = coeff_start[j]
            coefficients[j - 1, start_i:start_i + support_vector_count[i]] = f.alpha[:ci][class_support[i]]
            coefficients[i, start_j:start_j + support_vector_count[j]] = f.alpha[ci:][class_support[j]]

        if self.probability:
            probability_a = np.array([prob[0] for _, prob in results], dtype=np.float64)
            probability_b = np.array([prob[1] for _, prob in results], dtype=np.float64)
        else:
            probability_a = np.zeros(0)
            probability_b = np.zeros(0)

        return TrainedState(
            num_classes=k,
            labels=np.array(classification_data.found_labels, dtype=np.int64),
            rho=np.array([f.rho for f in functions], dtype=np.float64),
            total_support_vectors=total,
            support_vector_count=support_vector_count,
            support_vectors=support_vectors,
            coefficients=coefficients,
            probability_a=probability_a,
            probability_b=probability_b
        )

    def fit(self, X, y=None) -> "SVMModel":
        """Обучение по массивам: метки для классификации, выходы для регрессии."""
        if self.svm_type in REGRESSION_TYPES:
            if y is None:
                raise ConfigurationError("regression requires target values")
            data = DataSet(X, outputs=y)
        else:
            data = DataSet(X, labels=y)
        return self.train(data)

    # =========================================================================
    # Предсказание
    # =========================================================================

    def _check_input(self, x) -> np.ndarray:
        state = self.state
        x = np.ascontiguousarray(x, dtype=np.float64)
        dimension = state.support_vectors.shape[1]
        if x.ndim != 1 or x.shape[0] != dimension:
            raise ConfigurationError(
                f"input dimension {x.shape} does not match model dimension {dimension}"
            )
        return x

    def decision_values(self, x) -> np.ndarray:
        """
        Решающие значения: по одному на пару классов (i, j), i < j,
        либо одно значение для one-class и регрессии.
        """
        state = self.state
        x = self._check_input(x)
        kernel_values = compute_kernel_row(self.kernel_params, state.support_vectors, x)

        if not self.is_classification:
            return np.array([state.coefficients[0] @ kernel_values - state.rho[0]])

        k = state.num_classes
        start = state.coeff_start
        count = state.support_vector_count
        values = np.empty(k * (k - 1) // 2, dtype=np.float64)
        pair = 0
        for i in range(k):
            si = slice(start[i], start[i] + count[i])
            for j in range(i + 1, k):
                sj = slice(start[j], start[j] + count[j])
                total = (state.coefficients[j - 1, si] @ kernel_values[si]
                         + state.coefficients[i, sj] @ kernel_values[sj])
                values[pair] = total - state.rho[pair]
                pair += 1
        return values

    def _vote(self, values: np.ndarray) -> int:
        k = self.state.num_classes
        votes = np.zeros(k, dtype=np.int64)
        pair = 0
        for i in range(k):
            for j in range(i + 1, k):
                if values[pair] > 0:
                    votes[i] += 1
                else:
                    votes[j] += 1
                pair += 1
        # argmax берёт первый максимум: ничья в пользу меньшего индекса
        return int(np.argmax(votes))

    def predict_one(self, x) -> float:
        """Метка класса (классификация), ±1 (one-class) или значение (регрессия)."""
        values = self.decision_values(x)
        if self.is_classification:
            return float(self.state.labels[self._vote(values)])
        if self.svm_type == SVMType.ONE_CLASS:
            return 1.0 if values[0] > 0 else -1.0
        return float(values[0])

    def classify_one(self, x) -> int:
        """Целочисленная метка класса."""
        if self.svm_type in REGRESSION_TYPES:
            raise ConfigurationError("classify_one requires a classification or one-class model")
        return int(self.predict_one(x))

    def predict_values(self, data: DataSet) -> Tuple[np.ndarray, np.ndarray]:
        """
        Предсказания для всех точек датасета.

        Returns:
            (predictions (n,), decision_values (n, n_pairs))
        """
        n = data.size
        n_values = 1
        if self.is_classification:
            k = self.state.num_classes
            n_values = k * (k - 1) // 2
        predictions = np.empty(n, dtype=np.float64)
        decision = np.empty((n, n_values), dtype=np.float64)
        for index in range(n):
            values = self.decision_values(data.get_input(index))
            decision[index] = values
            if self.is_classification:
                predictions[index] = self.state.labels[self._vote(values)]
            elif self.svm_type == SVMType.ONE_CLASS:
                predictions[index] = 1.0 if values[0] > 0 else -1.0
            else:
                predictions[index] = values[0]
        return predictions, decision

    def predict(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        return np.array([self.predict_one(row) for row in X], dtype=np.float64)

    def predict_probability(self, x) -> Tuple[float, np.ndarray]:
        """
        Метка с максимальной оценкой вероятности и сами оценки
        (в порядке labels). Без калибровки возвращает predict_one(x)
        и пустой массив.
        """
        state = self.state
        if not (self.is_classification and state.probability_a.size > 0
                and state.probability_b.size > 0):
            return self.predict_one(x), np.zeros(0)

        values = self.decision_values(x)
        k = state.num_classes
        pairwise = np.zeros((k, k), dtype=np.float64)
        pair = 0
        for i in range(k - 1):
            for j in range(i + 1, k):
                prob = sigmoid_predict(values[pair], state.probability_a[pair], state.probability_b[pair])
                pairwise[i, j] = min(max(prob, MIN_PROBABILITY), 1.0 - MIN_PROBABILITY)
                pairwise[j, i] = 1.0 - pairwise[i, j]
                pair += 1

        if k == 2:
            estimates = np.array([pairwise[0, 1], pairwise[1, 0]])
        else:
            estimates = multiclass_probability(pairwise)
        return float(state.labels[int(np.argmax(estimates))]), estimates

    # =========================================================================
    # Кросс-валидация и калибровка
    # =========================================================================

    def _fold_permutation(self, data: DataSet, n_folds: int) -> Tuple[np.ndarray, np.ndarray]:
        """Перестановка индексов и границы фолдов."""
        if self.is_classification and n_folds < data.size:
            classification_data = data.group_classes()
            counts = classification_data.class_count
            shuffled = [self._rng.permutation(o) for o in classification_data.class_offsets]

            # Каждый фолд получает пропорциональную долю каждого класса
            fold_count = [
                sum((i + 1) * c // n_folds - i * c // n_folds for c in counts)
                for i in range(n_folds)
            ]
            fold_start = np.concatenate([[0], np.cumsum(fold_count)]).astype(np.int64)
            perm = np.concatenate([
                shuffled[c][i * counts[c] // n_folds:(i + 1) * counts[c] // n_folds]
                for i in range(n_folds)
                for c in range(classification_data.num_classes)
            ]).astype(np.int64)
        else:
            perm = data.random_index_set(self._rng)
            fold_start = np.array(
                [i * data.size // n_folds for i in range(n_folds + 1)], dtype=np.int64
            )
        return perm, fold_start

    def _run_fold(self, data: DataSet, perm: np.ndarray, begin: int, end: int, seed: int):
        train_indices = np.concatenate([perm[:begin], perm[end:]])
        sub_model = self.copy_settings(random_state=seed)
        sub_model.n_jobs = 1
        sub_model.verbose = False
        sub_model._train(data.subset(train_indices))

        held_out = perm[begin:end]
        use_probability = self.probability and self.is_classification
        predictions = np.empty(held_out.shape[0], dtype=np.float64)
        for position, index in enumerate(held_out):
            x = data.get_input(index)
            if use_probability:
                predictions[position] = sub_model.predict_probability(x)[0]
            else:
                predictions[position] = sub_model.predict_one(x)
        return held_out, predictions

    def cross_validation(self, data: DataSet, n_folds: int) -> np.ndarray:
        """
        k-fold кросс-валидация.

        Returns:
            Предсказания для каждой точки от модели, не видевшей её
        """
        if n_folds < 2:
            raise ConfigurationError(f"number of folds must be >= 2, got {n_folds}")
        self._check_training_data(data)
        if n_folds > data.size:
            warnings.warn(
                f"# folds ({n_folds}) > # data ({data.size}), "
                "using leave-one-out cross validation instead",
                DataWarning
            )
            n_folds = data.size

        perm, fold_start = self._fold_permutation(data, n_folds)
        seeds = self._rng.integers(0, 2 ** 32, size=n_folds)

        results = self._run_parallel(
            [
                delayed(self._run_fold)(data, perm, fold_start[i], fold_start[i + 1], seeds[i])
                for i in range(n_folds)
            ],
            desc="Cross-validation folds"
        )

        target = np.zeros(data.size, dtype=np.float64)
        for held_out, predictions in results:
            target[held_out] = predictions
        return target

    def svr_probability(self, data: DataSet) -> float:
        """
        Масштаб σ распределения Лапласа для остатков регрессии:
        target = predicted + z, z ~ e^(-|z|/σ) / (2σ).
        """
        model = self.copy_settings(random_state=int(self._rng.integers(0, 2 ** 32)))
        model.probability = False
        residuals = self._regression_targets(data) - model.cross_validation(data, PROBABILITY_FOLDS)

        abs_residuals = np.abs(residuals)
        mae = float(np.mean(abs_residuals))
        std = np.sqrt(2 * mae * mae)
        # Выбросы дальше 5·std не учитываются
        kept = abs_residuals[abs_residuals <= 5 * std]
        mae = float(np.mean(kept)) if kept.size > 0 else 0.0

        if self.verbose:
            print(
                "Prob. model for test data: target value = predicted value + z,\n"
                "z: Laplace distribution e^(-|z|/sigma)/(2sigma), "
                f"sigma = {mae:.6f}"
            )
        return mae

    def _binary_svc_probability(
        self,
        data: DataSet,
        cost_positive: float,
        cost_negative: float,
        rng: np.random.Generator
    ) -> Tuple[float, float]:
        """
        Параметры сигмоиды для одной пары классов (метки ±1) по решающим
        значениям 5-fold кросс-валидации.
        """
        n = data.size
        perm = data.random_index_set(rng)
        decision = np.zeros(n, dtype=np.float64)
        labels = data.labels

        for fold in range(PROBABILITY_FOLDS):
            begin = fold * n // PROBABILITY_FOLDS
            end = (fold + 1) * n // PROBABILITY_FOLDS
            train_indices = np.concatenate([perm[:begin], perm[end:]])
            held_out = perm[begin:end]

            n_positive = int(np.count_nonzero(labels[train_indices] > 0))
            n_negative = train_indices.shape[0] - n_positive

            if n_positive == 0 and n_negative == 0:
                decision[held_out] = 0.0
            elif n_negative == 0:
                decision[held_out] = 1.0
            elif n_positive == 0:
                decision[held_out] = -1.0
            else:
                sub_model = SVMModel(
                    svm_type=self.svm_type,
                    kernel_params=self.kernel_params,
                    C=1.0,
                    nu=self.nu,
                    eps=self.eps,
                    weight_modifiers=[(1, cost_positive), (-1, cost_negative)],
                    max_iter=self.max_iter,
                    cache_rows=self.cache_rows
                )
                sub_model._train(data.subset(train_indices))
                # Ориентация по первой метке подмодели: положительно ↔ класс +1
                sign = float(sub_model.labels[0])
                for index in held_out:
                    decision[index] = sub_model.decision_values(data.get_input(index))[0] * sign

        return sigmoid_train(decision, labels)

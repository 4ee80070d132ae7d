"""
Минимальный контейнер обучающих данных для SVM.

Ядро библиотеки использует датасет только на чтение: размер, размерность
входа, доступ к входам/выходам/меткам по индексу, группировку по классам
и случайную перестановку индексов.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from .exceptions import ConfigurationError


@dataclass
class ClassificationData:
    """Результат группировки точек по меткам классов (порядок первого появления)."""
    num_classes: int = 0
    found_labels: List[int] = field(default_factory=list)
    class_count: List[int] = field(default_factory=list)
    class_offsets: List[np.ndarray] = field(default_factory=list)


class DataSet:
    """
    Набор точек: матрица входов (n_samples, n_features) и либо метки
    классов (классификация), либо скалярные выходы (регрессия).

    Args:
        inputs: Матрица признаков
        labels: Целочисленные метки классов (n_samples,)
        outputs: Выходы для регрессии (n_samples,) или (n_samples, k)
    """

    def __init__(
        self,
        inputs,
        labels: Optional[Sequence[int]] = None,
        outputs=None
    ):
        X = np.asarray(inputs, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(1, -1) if X.size > 0 else X.reshape(0, 0)
        if X.ndim != 2:
            raise ConfigurationError(f"inputs must be a 2-D array, got shape {X.shape}")
        self._inputs = np.ascontiguousarray(X)

        n_samples = X.shape[0]

        self._labels = None
        if labels is not None:
            y = np.asarray(labels)
            if y.ndim != 1 or y.shape[0] != n_samples:
                raise ConfigurationError(
                    f"labels must have shape ({n_samples},), got {y.shape}"
                )
            if y.size > 0 and not np.all(np.equal(np.mod(y, 1), 0)):
                raise ConfigurationError("class labels must be integers")
            self._labels = y.astype(np.int64)

        self._outputs = None
        if outputs is not None:
            t = np.asarray(outputs, dtype=np.float64)
            if t.ndim == 1:
                t = t.reshape(-1, 1)
            if t.ndim != 2 or t.shape[0] != n_samples:
                raise ConfigurationError(
                    f"outputs must have {n_samples} rows, got shape {t.shape}"
                )
            self._outputs = t

        # Кэш группировки: group_classes() идемпотентна
        self._classification_data: Optional[ClassificationData] = None

    @property
    def size(self) -> int:
        return self._inputs.shape[0]

    @property
    def input_dimension(self) -> int:
        return self._inputs.shape[1]

    @property
    def inputs(self) -> np.ndarray:
        return self._inputs

    @property
    def labels(self) -> Optional[np.ndarray]:
        return self._labels

    @property
    def outputs(self) -> Optional[np.ndarray]:
        return self._outputs

    @property
    def has_labels(self) -> bool:
        return self._labels is not None

    def __len__(self) -> int:
        return self.size

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.size:
            raise IndexError(f"index {index} out of range for data set of size {self.size}")

    def get_input(self, index: int) -> np.ndarray:
        self._check_index(index)
        return self._inputs[index]

    def get_output(self, index: int) -> np.ndarray:
        self._check_index(index)
        if self._outputs is None:
            raise ConfigurationError("data set has no regression outputs")
        return self._outputs[index]

    def single_output(self, index: int) -> float:
        """Первый компонент выхода; для классификационных данных - метка класса."""
        if self._outputs is not None:
            return float(self.get_output(index)[0])
        return float(self.get_class(index))

    def get_class(self, index: int) -> int:
        self._check_index(index)
        if self._labels is None:
            raise ConfigurationError("data set has no class labels")
        return int(self._labels[index])

    def targets(self) -> np.ndarray:
        """Вектор скалярных целей регрессии (первый столбец выходов)."""
        if self._outputs is None:
            raise ConfigurationError("data set has no regression outputs")
        return self._outputs[:, 0]

    def group_classes(self) -> ClassificationData:
        """
        Группирует точки по меткам.

        Метки перечисляются в порядке первого появления, для каждой
        хранится количество точек и их индексы в исходном датасете.
        """
        if self._classification_data is not None:
            return self._classification_data
        if self._labels is None:
            raise ConfigurationError("cannot group classes of a data set without labels")

        found_labels: List[int] = []
        offsets: List[List[int]] = []
        position = {}
        for index, label in enumerate(self._labels.tolist()):
            class_index = position.get(label)
            if class_index is None:
                position[label] = len(found_labels)
                found_labels.append(label)
                offsets.append([index])
            else:
                offsets[class_index].append(index)

        self._classification_data = ClassificationData(
            num_classes=len(found_labels),
            found_labels=found_labels,
            class_count=[len(o) for o in offsets],
            class_offsets=[np.asarray(o, dtype=np.int64) for o in offsets],
        )
        return self._classification_data

    def random_index_set(self, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Случайная перестановка индексов 0..size-1."""
        if rng is None:
            rng = np.random.default_rng()
        return rng.permutation(self.size)

    def subset(self, indices) -> "DataSet":
        """Новый датасет из точек с указанными индексами (в указанном порядке)."""
        idx = np.asarray(indices, dtype=np.int64)
        return DataSet(
            self._inputs[idx],
            labels=None if self._labels is None else self._labels[idx],
            outputs=None if self._outputs is None else self._outputs[idx],
        )

    def __repr__(self) -> str:
        kind = "classification" if self._labels is not None else "regression"
        return f"DataSet(size={self.size}, input_dimension={self.input_dimension}, {kind})"

"""
Сохранение и загрузка обученной модели.

Модель хранится как версионированная запись ModelRecord с именованными
типизированными полями и записывается в .npz (numpy.savez). При загрузке
все поля проверяются до создания модели: неполный или повреждённый файл
даёт PersistenceError, частично заполненная модель не возвращается.
"""

import os
from dataclasses import dataclass
from typing import Dict, Mapping

import numpy as np

from .exceptions import PersistenceError
from .kernels import KernelParameters, KernelType
from .model import SVMModel, SVMType, TrainedState

FORMAT_VERSION = 1


@dataclass
class ModelRecord:
    """Полное числовое состояние обученной модели."""
    format_version: int
    svm_type: int
    kernel_type: int
    degree: int
    gamma: float
    coef0: float
    num_classes: int
    labels: np.ndarray
    rho: np.ndarray
    total_support_vectors: int
    support_vector_count: np.ndarray
    support_vectors: np.ndarray
    coefficients: np.ndarray
    probability_a: np.ndarray
    probability_b: np.ndarray

    def to_arrays(self) -> Dict[str, np.ndarray]:
        return {
            "format_version": np.array(self.format_version, dtype=np.int64),
            "svm_type": np.array(self.svm_type, dtype=np.int64),
            "kernel_type": np.array(self.kernel_type, dtype=np.int64),
            "degree": np.array(self.degree, dtype=np.int64),
            "gamma": np.array(self.gamma, dtype=np.float64),
            "coef0": np.array(self.coef0, dtype=np.float64),
            "num_classes": np.array(self.num_classes, dtype=np.int64),
            "labels": np.asarray(self.labels, dtype=np.int64),
            "rho": np.asarray(self.rho, dtype=np.float64),
            "total_support_vectors": np.array(self.total_support_vectors, dtype=np.int64),
            "support_vector_count": np.asarray(self.support_vector_count, dtype=np.int64),
            "support_vectors": np.asarray(self.support_vectors, dtype=np.float64),
            "coefficients": np.asarray(self.coefficients, dtype=np.float64),
            "probability_a": np.asarray(self.probability_a, dtype=np.float64),
            "probability_b": np.asarray(self.probability_b, dtype=np.float64),
        }

    @classmethod
    def from_arrays(cls, arrays: Mapping[str, np.ndarray]) -> "ModelRecord":
        """
        Собирает запись из словаря массивов с полной проверкой.

        Raises:
            PersistenceError: поле отсутствует, имеет неверный тип или форму
        """
        values = {}
        for name in _SCALAR_INT_FIELDS:
            values[name] = _scalar(arrays, name, integer=True)
        for name in _SCALAR_FLOAT_FIELDS:
            values[name] = _scalar(arrays, name, integer=False)
        for name, (ndim, integer) in _ARRAY_FIELDS.items():
            values[name] = _array(arrays, name, ndim, integer)

        if values["format_version"] != FORMAT_VERSION:
            raise PersistenceError(
                f"unsupported format_version {values['format_version']} (expected {FORMAT_VERSION})"
            )
        for name, enum in (("svm_type", SVMType), ("kernel_type", KernelType)):
            try:
                enum(values[name])
            except ValueError as e:
                raise PersistenceError(f"malformed field '{name}': unknown code {values[name]}") from e

        record = cls(**values)
        record.validate()
        return record

    def validate(self) -> None:
        """Согласованность форм таблиц между собой."""
        total = self.total_support_vectors
        if int(np.sum(self.support_vector_count)) != total:
            raise PersistenceError(
                "malformed field 'support_vector_count': sum does not match total_support_vectors"
            )
        if self.support_vectors.shape[0] != total:
            raise PersistenceError("malformed field 'support_vectors': wrong number of rows")
        if self.coefficients.shape != (max(self.num_classes - 1, 1), total):
            raise PersistenceError(
                f"malformed field 'coefficients': shape {self.coefficients.shape}"
            )

        is_classification = self.svm_type in (SVMType.C_SVC, SVMType.NU_SVC)
        n_pairs = self.num_classes * (self.num_classes - 1) // 2 if is_classification else 1
        if is_classification:
            if self.labels.shape[0] != self.num_classes:
                raise PersistenceError("malformed field 'labels': length does not match num_classes")
            if self.support_vector_count.shape[0] != self.num_classes:
                raise PersistenceError("malformed field 'support_vector_count': wrong length")
        if self.rho.shape[0] != n_pairs:
            raise PersistenceError(f"malformed field 'rho': expected {n_pairs} values")
        if self.probability_b.size > 0 and self.probability_a.shape != self.probability_b.shape:
            raise PersistenceError("malformed field 'probability_b': length differs from probability_a")


_SCALAR_INT_FIELDS = (
    "format_version", "svm_type", "kernel_type", "degree",
    "num_classes", "total_support_vectors",
)
_SCALAR_FLOAT_FIELDS = ("gamma", "coef0")
# имя -> (размерность, целочисленное)
_ARRAY_FIELDS = {
    "labels": (1, True),
    "rho": (1, False),
    "support_vector_count": (1, True),
    "support_vectors": (2, False),
    "coefficients": (2, False),
    "probability_a": (1, False),
    "probability_b": (1, False),
}


def _get(arrays: Mapping[str, np.ndarray], name: str) -> np.ndarray:
    if name not in arrays:
        raise PersistenceError(f"missing field '{name}'")
    return np.asarray(arrays[name])


def _scalar(arrays, name: str, integer: bool):
    value = _get(arrays, name)
    if value.ndim != 0:
        raise PersistenceError(f"malformed field '{name}': expected a scalar")
    if integer:
        if value.dtype.kind not in "iu":
            raise PersistenceError(f"malformed field '{name}': expected an integer")
        return int(value)
    if value.dtype.kind not in "iuf":
        raise PersistenceError(f"malformed field '{name}': expected a number")
    return float(value)


def _array(arrays, name: str, ndim: int, integer: bool) -> np.ndarray:
    value = _get(arrays, name)
    if value.ndim != ndim:
        raise PersistenceError(f"malformed field '{name}': expected {ndim}-D array, got {value.ndim}-D")
    kinds = "iu" if integer else "iuf"
    if value.size > 0 and value.dtype.kind not in kinds:
        raise PersistenceError(f"malformed field '{name}': unexpected dtype {value.dtype}")
    return value.astype(np.int64 if integer else np.float64)


# =============================================================================
# Модель <-> запись
# =============================================================================

def record_from_model(model: SVMModel) -> ModelRecord:
    state = model.state
    kp = model.kernel_params
    return ModelRecord(
        format_version=FORMAT_VERSION,
        svm_type=int(model.svm_type),
        kernel_type=int(kp.kernel_type),
        degree=int(kp.degree),
        gamma=float(kp.gamma),
        coef0=float(kp.coef0),
        num_classes=state.num_classes,
        labels=state.labels,
        rho=state.rho,
        total_support_vectors=state.total_support_vectors,
        support_vector_count=state.support_vector_count,
        support_vectors=state.support_vectors,
        coefficients=state.coefficients,
        probability_a=state.probability_a,
        probability_b=state.probability_b,
    )


def model_from_record(record: ModelRecord) -> SVMModel:
    record.validate()
    kernel_params = KernelParameters(
        kernel_type=KernelType(record.kernel_type),
        degree=record.degree,
        gamma=record.gamma,
        coef0=record.coef0,
    )
    model = SVMModel(svm_type=SVMType(record.svm_type), kernel_params=kernel_params)
    model.restore_state(TrainedState(
        num_classes=record.num_classes,
        labels=record.labels,
        rho=record.rho,
        total_support_vectors=record.total_support_vectors,
        support_vector_count=record.support_vector_count,
        support_vectors=record.support_vectors,
        coefficients=record.coefficients,
        probability_a=record.probability_a,
        probability_b=record.probability_b,
    ))
    return model


def model_path(path) -> str:
    """Путь файла модели с расширением .npz (его же добавляет numpy.savez)."""
    path = os.fspath(path)
    if not path.endswith(".npz"):
        path += ".npz"
    return path


def save_model(model: SVMModel, path) -> str:
    """
    Записывает обученную модель в .npz файл.

    Returns:
        Фактический путь файла (с расширением .npz)
    """
    arrays = record_from_model(model).to_arrays()
    path = model_path(path)
    np.savez(path, **arrays)
    return path


def load_model(path) -> SVMModel:
    """
    Загружает модель из .npz файла; путь без расширения
    разрешается так же, как при сохранении.

    Raises:
        PersistenceError: файл не читается или запись неполна/повреждена
    """
    if not os.path.exists(path):
        path = model_path(path)
    if not os.path.exists(path):
        raise PersistenceError(f"model file not found: {path}")
    try:
        with np.load(path, allow_pickle=False) as archive:
            arrays = {name: archive[name] for name in archive.files}
    except (OSError, ValueError) as e:
        raise PersistenceError(f"cannot read model file {path}: {e}") from e
    return model_from_record(ModelRecord.from_arrays(arrays))

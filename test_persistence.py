"""
Тесты сохранения и загрузки модели (.npz).
"""

import numpy as np
import pytest

from smo_svm import (
    FORMAT_VERSION,
    ConfigurationError,
    KernelParameters,
    KernelType,
    ModelRecord,
    PersistenceError,
    SVMModel,
    SVMType,
    load_model,
    record_from_model,
    save_model,
)


def train_three_class_model(probability=False):
    rng = np.random.default_rng(0)
    centers = [(0.0, 3.0), (3.0, 0.0), (-3.0, 0.0)]
    X = np.vstack([rng.normal(c, 0.5, size=(20, 2)) for c in centers])
    y = np.repeat([3, 1, 2], 20)
    model = SVMModel(
        SVMType.C_SVC,
        KernelParameters(kernel_type=KernelType.POLYNOMIAL, degree=2, gamma=0.3, coef0=1.0),
        probability=probability,
        random_state=0,
    )
    return model.fit(X, y), X


def saved_arrays(model, tmp_path):
    path = tmp_path / "model.npz"
    save_model(model, path)
    with np.load(path) as archive:
        return {name: archive[name] for name in archive.files}


def test_round_trip_classification(tmp_path):
    model, X = train_three_class_model(probability=True)
    path = tmp_path / "model.npz"
    save_model(model, path)
    loaded = load_model(path)

    assert loaded.svm_type == model.svm_type
    assert loaded.kernel_params == model.kernel_params
    assert loaded.num_classes == model.num_classes
    assert loaded.total_support_vectors == model.total_support_vectors
    for name in ("labels", "rho", "support_vector_count", "support_vectors",
                 "coefficients", "probability_a", "probability_b"):
        assert np.array_equal(getattr(loaded, name), getattr(model, name)), name

    # Предсказания загруженной модели побитово совпадают
    for x in X[:10]:
        assert np.array_equal(loaded.decision_values(x), model.decision_values(x))
        assert loaded.predict_one(x) == model.predict_one(x)
    label, estimates = loaded.predict_probability(X[0])
    assert np.array_equal(estimates, model.predict_probability(X[0])[1])


def test_round_trip_regression(tmp_path):
    rng = np.random.default_rng(1)
    X = rng.uniform(-1.0, 1.0, size=(40, 2))
    t = X[:, 0] - 0.5 * X[:, 1]
    model = SVMModel(SVMType.NU_SVR, KernelParameters(kernel_type="linear"), C=5.0, nu=0.4).fit(X, t)

    path = tmp_path / "regression.npz"
    save_model(model, path)
    loaded = load_model(path)

    assert loaded.svm_type == SVMType.NU_SVR
    assert loaded.labels.size == 0
    assert np.array_equal(loaded.predict(X), model.predict(X))


def test_round_trip_without_suffix(tmp_path):
    """Путь без .npz: сохранение и загрузка используют один и тот же файл."""
    model, X = train_three_class_model()
    written = save_model(model, tmp_path / "model")
    assert written.endswith("model.npz")
    assert (tmp_path / "model.npz").exists()

    loaded = load_model(tmp_path / "model")
    assert np.array_equal(loaded.coefficients, model.coefficients)
    assert np.array_equal(loaded.predict(X), model.predict(X))

    # Строковый путь разрешается так же
    assert load_model(str(tmp_path / "model")).num_classes == 3


def test_record_fields():
    model, _ = train_three_class_model()
    record = record_from_model(model)
    assert record.format_version == FORMAT_VERSION
    assert record.kernel_type == int(KernelType.POLYNOMIAL)
    assert record.degree == 2
    assert list(record.labels) == [3, 1, 2]


def test_missing_field_names_the_field(tmp_path):
    model, _ = train_three_class_model()
    arrays = saved_arrays(model, tmp_path)
    del arrays["rho"]

    path = tmp_path / "broken.npz"
    np.savez(path, **arrays)
    with pytest.raises(PersistenceError, match="rho"):
        load_model(path)


def test_malformed_coefficients(tmp_path):
    model, _ = train_three_class_model()
    arrays = saved_arrays(model, tmp_path)
    arrays["coefficients"] = arrays["coefficients"][:, :-1]

    with pytest.raises(PersistenceError, match="coefficients"):
        ModelRecord.from_arrays(arrays)

    arrays["coefficients"] = np.zeros(3)
    with pytest.raises(PersistenceError, match="coefficients"):
        ModelRecord.from_arrays(arrays)


def test_unknown_codes_and_version(tmp_path):
    model, _ = train_three_class_model()
    arrays = saved_arrays(model, tmp_path)

    with pytest.raises(PersistenceError, match="format_version"):
        ModelRecord.from_arrays({**arrays, "format_version": np.array(FORMAT_VERSION + 1)})
    with pytest.raises(PersistenceError, match="svm_type"):
        ModelRecord.from_arrays({**arrays, "svm_type": np.array(9)})
    with pytest.raises(PersistenceError, match="gamma"):
        ModelRecord.from_arrays({**arrays, "gamma": np.array([0.1, 0.2])})


def test_unreadable_files(tmp_path):
    with pytest.raises(PersistenceError, match="not found"):
        load_model(tmp_path / "missing.npz")

    garbage = tmp_path / "garbage.npz"
    garbage.write_bytes(b"this is not a model file")
    with pytest.raises(PersistenceError):
        load_model(garbage)


def test_save_untrained_model_raises(tmp_path):
    with pytest.raises(ConfigurationError):
        save_model(SVMModel(), tmp_path / "untrained.npz")

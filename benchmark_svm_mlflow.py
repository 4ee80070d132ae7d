import os
import time
import warnings

import numpy as np
import mlflow
from tqdm.auto import tqdm
from sklearn.datasets import load_breast_cancer, load_diabetes, load_iris, load_wine
from sklearn.metrics import accuracy_score, classification_report, mean_squared_error
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC, SVR

from smo_svm import (
    ConvergenceWarning,
    DataSet,
    KernelParameters,
    SVMError,
    SVMModel,
    SVMType,
    compute_all_metrics,
    save_model,
)

# --- КОНФИГУРАЦИЯ ---
CONFIG = {
    "test_size": 0.25,
    "random_state": 42,
    "use_scaler": True,  # StandardScaler перед SVM (RBF чувствителен к масштабу)

    # Параметры SVM (общие для smo_svm и sklearn)
    "kernel": "rbf",
    "gamma": 0.1,
    "degree": 3,
    "coef0": 0.0,
    "C": 1.0,
    "nu": 0.5,
    "p": 0.1,
    "eps": 1e-3,

    "probability": False,
    "cv_folds": 5,
    "n_jobs": 4,

    # MLFLOW Settings
    "mlflow_tracking_uri": "http://localhost:5000",
    "experiment_name": "SMO_SVM_vs_sklearn",
    "s3_endpoint": "http://localhost:9000",
    "s3_access_key": "minio_root",
    "s3_secret_key": "minio_password"
}

# Датасеты: имя -> (загрузчик, задача)
DATASETS = {
    "iris": (load_iris, "classification"),
    "wine": (load_wine, "classification"),
    "breast_cancer": (load_breast_cancer, "classification"),
    "diabetes": (load_diabetes, "regression"),
}

# Настройка окружения для MLFlow/Boto3
os.environ["MLFLOW_TRACKING_URI"] = CONFIG["mlflow_tracking_uri"]
os.environ["MLFLOW_S3_ENDPOINT_URL"] = CONFIG["s3_endpoint"]
os.environ["AWS_ACCESS_KEY_ID"] = CONFIG["s3_access_key"]
os.environ["AWS_SECRET_ACCESS_KEY"] = CONFIG["s3_secret_key"]
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["MLFLOW_S3_IGNORE_TLS"] = "true"


def make_model(task: str) -> SVMModel:
    kernel_params = KernelParameters(
        kernel_type=CONFIG["kernel"],
        degree=CONFIG["degree"],
        gamma=CONFIG["gamma"],
        coef0=CONFIG["coef0"],
    )
    svm_type = SVMType.C_SVC if task == "classification" else SVMType.EPSILON_SVR
    return SVMModel(
        svm_type=svm_type,
        kernel_params=kernel_params,
        C=CONFIG["C"],
        nu=CONFIG["nu"],
        p=CONFIG["p"],
        eps=CONFIG["eps"],
        probability=CONFIG["probability"],
        n_jobs=CONFIG["n_jobs"],
        random_state=CONFIG["random_state"],
    )


def make_sklearn_baseline(task: str):
    params = dict(kernel=CONFIG["kernel"], gamma=CONFIG["gamma"], degree=CONFIG["degree"],
                  coef0=CONFIG["coef0"], C=CONFIG["C"], tol=CONFIG["eps"])
    if task == "classification":
        return SVC(**params)
    return SVR(epsilon=CONFIG["p"], **params)


def evaluate(task: str, y_true, y_pred) -> dict:
    if task == "classification":
        return {"accuracy": accuracy_score(y_true, y_pred)}
    return {"mse": mean_squared_error(y_true, y_pred)}


def run_dataset(name: str, loader, task: str) -> dict:
    X, y = loader(return_X_y=True)
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=CONFIG["test_size"], random_state=CONFIG["random_state"]
    )
    if CONFIG["use_scaler"]:
        scaler = StandardScaler()
        X_train = scaler.fit_transform(X_train)
        X_test = scaler.transform(X_test)

    if task == "classification":
        train_data = DataSet(X_train, labels=y_train)
    else:
        train_data = DataSet(X_train, outputs=y_train)

    results = {}

    with mlflow.start_run(run_name=f"smo_svm_on_{name}"):
        mlflow.log_param("dataset", name)
        mlflow.log_param("task", task)
        for key in ("kernel", "gamma", "degree", "coef0", "C", "nu", "p", "eps", "use_scaler", "n_jobs"):
            mlflow.log_param(key, CONFIG[key])

        model = make_model(task)

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", ConvergenceWarning)
            start = time.time()
            model.train(train_data)
            train_time = time.time() - start
        n_convergence_warnings = sum(issubclass(w.category, ConvergenceWarning) for w in caught)

        y_pred = model.predict(X_test)
        metrics = evaluate(task, y_test, y_pred)
        metrics["train_time_sec"] = train_time
        metrics["total_support_vectors"] = model.total_support_vectors
        metrics["convergence_warnings"] = n_convergence_warnings

        # Кросс-валидация на обучающей выборке
        cv_pred = model.cross_validation(train_data, CONFIG["cv_folds"])
        cv_metrics = compute_all_metrics(y_train, cv_pred, classification=(task == "classification"))
        metrics.update({f"cv_{k}": v for k, v in cv_metrics.items()})

        # Baseline sklearn (libsvm) на тех же параметрах
        baseline = make_sklearn_baseline(task)
        start = time.time()
        baseline.fit(X_train, y_train)
        metrics["sklearn_train_time_sec"] = time.time() - start
        baseline_metrics = evaluate(task, y_test, baseline.predict(X_test))
        metrics.update({f"sklearn_{k}": v for k, v in baseline_metrics.items()})
        metrics["sklearn_total_support_vectors"] = int(baseline.support_.shape[0])

        mlflow.log_metrics(metrics)

        # Сохраняем модель
        model_filename = f"smo_svm_{name}.npz"
        save_model(model, model_filename)
        mlflow.log_artifact(model_filename)

        if task == "classification":
            report = classification_report(y_test, y_pred.astype(int), zero_division=0)
            report_filename = f"classification_report_{name}.txt"
            with open(report_filename, "w", encoding="utf-8") as f:
                f.write(f"Dataset: {name}\n")
                f.write(f"Kernel: {CONFIG['kernel']} (gamma={CONFIG['gamma']}), C = {CONFIG['C']}\n\n")
                f.write(report)
            mlflow.log_artifact(report_filename)

        results.update(metrics)

    return results


def main():
    print("=" * 60)
    print("SMO SVM benchmark vs sklearn (libsvm)")
    print(f"  kernel = {CONFIG['kernel']}, gamma = {CONFIG['gamma']}, C = {CONFIG['C']}")
    print(f"  eps = {CONFIG['eps']}, n_jobs = {CONFIG['n_jobs']}")
    print("=" * 60)

    mlflow.set_experiment(CONFIG["experiment_name"])

    all_results = {}
    for name, (loader, task) in tqdm(DATASETS.items(), desc="Datasets"):
        print(f"\n{'=' * 40}")
        print(f"Processing: {name} ({task})")
        print(f"{'=' * 40}")
        try:
            all_results[name] = run_dataset(name, loader, task)
        except SVMError as e:
            print(f"Error processing {name}: {e}")
            continue

    print("\n" + "=" * 80)
    print("SUMMARY - All Results")
    print("=" * 80)
    print(f"{'Dataset':<20} {'Metric':<10} {'smo_svm':<10} {'sklearn':<10} {'nSV':<8} {'sk nSV':<8}")
    print("-" * 70)
    for name, m in all_results.items():
        metric = "accuracy" if "accuracy" in m else "mse"
        print(f"{name:<20} {metric:<10} {m[metric]:<10.4f} {m['sklearn_' + metric]:<10.4f} "
              f"{m['total_support_vectors']:<8} {m['sklearn_total_support_vectors']:<8}")


if __name__ == "__main__":
    main()

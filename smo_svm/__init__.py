from .exceptions import (
    SVMError,
    ConfigurationError,
    InfeasibleParameterError,
    PersistenceError,
    ConvergenceWarning,
    DataWarning,
)

from .dataset import ClassificationData, DataSet

from .kernels import (
    KernelType,
    KernelParameters,
    QMatrix,
    SVCQMatrix,
    OneClassQMatrix,
    SVRQMatrix,
    compute_kernel_value,
    compute_kernel_row,
)

from .smo_solver import (
    AlphaState,
    SMOResult,
    DecisionFunction,
    Solver,
    SolverStrategy,
    STANDARD_STRATEGY,
    NU_STRATEGY,
    solve_classification,
    solve_nu_classification,
    solve_one_class,
    solve_epsilon_regression,
    solve_nu_regression,
)

from .probability import sigmoid_train, sigmoid_predict, multiclass_probability

from .model import SVMType, SVMModel, TrainedState, is_nu_feasible

from .persistence import (
    FORMAT_VERSION,
    ModelRecord,
    record_from_model,
    model_from_record,
    save_model,
    load_model,
)

from .metrics import (
    accuracy,
    mean_squared_error,
    squared_correlation_coefficient,
    compute_all_metrics,
)

__all__ = [
    # Errors
    "SVMError",
    "ConfigurationError",
    "InfeasibleParameterError",
    "PersistenceError",
    "ConvergenceWarning",
    "DataWarning",
    # Data
    "ClassificationData",
    "DataSet",
    # Kernels
    "KernelType",
    "KernelParameters",
    "QMatrix",
    "SVCQMatrix",
    "OneClassQMatrix",
    "SVRQMatrix",
    "compute_kernel_value",
    "compute_kernel_row",
    # Solver
    "AlphaState",
    "SMOResult",
    "DecisionFunction",
    "Solver",
    "SolverStrategy",
    "STANDARD_STRATEGY",
    "NU_STRATEGY",
    "solve_classification",
    "solve_nu_classification",
    "solve_one_class",
    "solve_epsilon_regression",
    "solve_nu_regression",
    # Probability
    "sigmoid_train",
    "sigmoid_predict",
    "multiclass_probability",
    # Model
    "SVMType",
    "SVMModel",
    "TrainedState",
    "is_nu_feasible",
    # Persistence
    "FORMAT_VERSION",
    "ModelRecord",
    "record_from_model",
    "model_from_record",
    "save_model",
    "load_model",
    # Metrics
    "accuracy",
    "mean_squared_error",
    "squared_correlation_coefficient",
    "compute_all_metrics",
]

"""
Иерархия ошибок и предупреждений библиотеки.

Ошибки конфигурации и недопустимые параметры прерывают работу до запуска
солвера. Проблемы сходимости (лимит итераций SMO, подбор сигмоиды)
не фатальны: они выдаются через warnings.warn, а обучение возвращает
лучший найденный результат.
"""


class SVMError(Exception):
    """Базовый класс всех ошибок smo_svm."""


class ConfigurationError(SVMError, ValueError):
    """Неверные параметры модели, некорректный датасет или обращение к необученной модели."""


class InfeasibleParameterError(SVMError, ValueError):
    """Параметр ν слишком велик для баланса классов в данных."""


class PersistenceError(SVMError):
    """Сохранённая модель повреждена или неполна."""


class ConvergenceWarning(UserWarning):
    """Итерационный процесс остановлен по лимиту, результат может быть неточным."""


class DataWarning(UserWarning):
    """Данные или параметры скорректированы (пропущены) без остановки обучения."""

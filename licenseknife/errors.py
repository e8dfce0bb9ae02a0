"""
Ошибки licenseknife.
Фатальные ошибки CLI превращает в сообщение и ненулевой код выхода.
"""


class LicenseKnifeError(Exception):
    """Базовая ошибка."""


class LoadError(LicenseKnifeError):
    """Справочник или входной CSV отсутствует, не читается или без нужных колонок."""


class DirectoryConnectionError(LicenseKnifeError, ConnectionError):
    """Не удалось установить сессию с Graph."""


class SelectionError(LicenseKnifeError):
    """Некорректный ввод оператора (не число, номер вне диапазона и т.п.)."""


class EmptySelectionError(SelectionError):
    """Не выбрано ни одной лицензии ни для снятия, ни для выдачи."""


class NotFoundError(LicenseKnifeError):
    """Группа по имени не найдена или найдено несколько."""


class MutationError(LicenseKnifeError):
    """Graph отклонил конкретный вызов assignLicense."""

    def __init__(self, target: str, product_id: str, reason: str) -> None:
        super().__init__(f"{target} / {product_id}: {reason}")
        self.target = target
        self.product_id = product_id
        self.reason = reason


class AbortedError(LicenseKnifeError):
    """Оператор отказался продолжать."""

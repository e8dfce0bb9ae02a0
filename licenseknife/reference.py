"""
Справочник продуктов: GUID SKU -> понятное имя и список сервисных планов.

Формат CSV (UTF-8, допускается BOM):
    GUID, Product name, Service plans included (friendly names)
Последняя колонка: планы через "|", каждый заканчивается "(<GUID плана>)".
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from .config import (
    COLUMN_GUID,
    COLUMN_PRODUCT_NAME,
    COLUMN_SERVICE_PLANS,
    PLAN_SEPARATOR,
    REFERENCE_COLUMNS,
)
from .errors import LoadError, SelectionError

PLAN_ID_CHARS = frozenset("0123456789abcdefABCDEF-")


@dataclass(frozen=True)
class LicenseMappingEntry:
    product_id: str
    friendly_name: str
    service_plans: Tuple[str, ...] = ()


class ReferenceTable:
    """
    Строки справочника в порядке файла. Дубликаты не убираются:
    by_name() возвращает первое совпадение.
    """

    def __init__(self, entries: List[LicenseMappingEntry]) -> None:
        self.entries = list(entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[LicenseMappingEntry]:
        return iter(self.entries)

    def by_product_id(self, product_id: str) -> Optional[LicenseMappingEntry]:
        needle = product_id.lower()
        for entry in self.entries:
            if entry.product_id.lower() == needle:
                return entry
        return None

    def by_name(self, friendly_name: str) -> Optional[LicenseMappingEntry]:
        for entry in self.entries:
            if entry.friendly_name == friendly_name:
                return entry
        return None


def read_csv_rows(path: Union[str, Path], required: Tuple[str, ...]) -> List[dict]:
    """
    Прочитать CSV в список dict, проверив наличие колонок required.
    Любая проблема с файлом -> LoadError.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            columns = [c.strip() for c in (reader.fieldnames or [])]
            missing = [c for c in required if c not in columns]
            if missing:
                raise LoadError(f"{path}: нет колонок {', '.join(missing)}")
            return [
                {(k or "").strip(): (v or "").strip() for k, v in row.items()}
                for row in reader
            ]
    except FileNotFoundError as e:
        raise LoadError(f"Файл не найден: {path}") from e
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise LoadError(f"Не удалось прочитать {path}: {e}") from e


def split_service_plans(value: str) -> Tuple[str, ...]:
    return tuple(p.strip() for p in value.split(PLAN_SEPARATOR) if p.strip())


def load_reference_table(path: Union[str, Path]) -> ReferenceTable:
    rows = read_csv_rows(path, REFERENCE_COLUMNS)
    entries = [
        LicenseMappingEntry(
            product_id=row[COLUMN_GUID],
            friendly_name=row[COLUMN_PRODUCT_NAME],
            service_plans=split_service_plans(row[COLUMN_SERVICE_PLANS]),
        )
        for row in rows
        if row[COLUMN_GUID]
    ]
    return ReferenceTable(entries)


def parse_plan_id(plan: str) -> str:
    """
    "Exchange Online (Plan 2) (19ec0d23-...)" -> "19ec0d23-..."
    Берётся содержимое последних скобок: только hex-цифры и дефисы.
    """
    text = plan.strip()
    start = text.rfind("(")
    if not text.endswith(")") or start == -1:
        raise SelectionError(f"В записи плана нет идентификатора: {plan!r}")
    plan_id = text[start + 1:-1].strip()
    if not plan_id or not set(plan_id) <= PLAN_ID_CHARS:
        raise SelectionError(f"Некорректный идентификатор плана в {plan!r}")
    return plan_id


def plan_display_name(plan: str) -> str:
    """Имя плана без хвоста с идентификатором."""
    text = plan.strip()
    start = text.rfind("(")
    if text.endswith(")") and start > 0:
        return text[:start].strip()
    return text

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from rich.console import Console

from .config import SELECTION_SEPARATOR
from .errors import EmptySelectionError, SelectionError
from .licensing import Menu, MenuEntry
from .prompts import PromptStep, Prompter, run_step
from .reference import ReferenceTable, parse_plan_id, plan_display_name

logger = logging.getLogger(__name__)

REMOVE_PROMPT = "Номера лицензий для СНЯТИЯ через ';' (Enter - ничего)"
ADD_PROMPT = "Номера лицензий для ВЫДАЧИ через ';' (Enter - ничего)"
DISABLE_PROMPT = "Номера планов для ОТКЛЮЧЕНИЯ в {name} через ';' (Enter - ничего)"


@dataclass(frozen=True)
class RemovalSelection:
    friendly_name: str
    product_id: str


@dataclass(frozen=True)
class AssignmentSelection:
    friendly_name: str
    available_seats: int
    product_id: str
    disabled_plan_ids: Tuple[str, ...] = ()


@dataclass
class Selections:
    removals: List[RemovalSelection] = field(default_factory=list)
    assignments: List[AssignmentSelection] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.removals and not self.assignments


def parse_numbers(text: str, upper: int) -> List[int]:
    """
    "1; 3;5" -> [1, 3, 5]. Пустая строка -> [].
    Номера 1..upper, повторы схлопываются с сохранением порядка.
    """
    numbers: List[int] = []
    for token in (text or "").split(SELECTION_SEPARATOR):
        token = token.strip()
        if not token:
            continue
        if not (token.isascii() and token.isdigit()):
            raise SelectionError(f"Не число: {token!r}")
        number = int(token)
        if not 1 <= number <= upper:
            raise SelectionError(f"Номер {number} вне диапазона 1..{upper}")
        if number not in numbers:
            numbers.append(number)
    return numbers


def product_id_for(entry: MenuEntry, table: ReferenceTable) -> str:
    """
    Идентификатор продукта ищется в справочнике по имени (первое совпадение).
    Для SKU без записи в справочнике берём GUID из Graph.
    """
    if entry.mapped:
        mapping = table.by_name(entry.friendly_name)
        if mapping is not None:
            return mapping.product_id
    return entry.sku.sku_id


def render_plans(entry: MenuEntry, console: Console) -> None:
    console.print(f"[bold]{entry.friendly_name}[/bold]")
    for idx, plan in enumerate(entry.service_plans, start=1):
        console.print(f"  [{idx}] - {plan_display_name(plan)}")


def select_disabled_plans(
    entry: MenuEntry,
    prompter: Prompter,
    console: Console,
) -> Tuple[str, ...]:
    plans = entry.service_plans
    if not plans:
        logger.info("No service plans listed for %s", entry.friendly_name)
        return ()

    render_plans(entry, console)

    def parse(text: str) -> Tuple[str, ...]:
        return tuple(parse_plan_id(plans[n - 1]) for n in parse_numbers(text, len(plans)))

    step = PromptStep(DISABLE_PROMPT.format(name=entry.friendly_name), parse)
    return run_step(step, prompter, console)


def collect_selections(
    menu: Menu,
    table: ReferenceTable,
    prompter: Prompter,
    console: Optional[Console] = None,
) -> Selections:
    """
    Спрашивает, что снять и что выдать, и для каждой выдаваемой лицензии
    какие планы отключить. Всё собирается до первого вызова Graph.
    """
    console = console or Console()
    size = len(menu)

    remove_numbers = run_step(
        PromptStep(REMOVE_PROMPT, lambda text: parse_numbers(text, size)), prompter, console
    )
    add_numbers = run_step(
        PromptStep(ADD_PROMPT, lambda text: parse_numbers(text, size)), prompter, console
    )

    if not remove_numbers and not add_numbers:
        raise EmptySelectionError("Не выбрано ни одной лицензии ни для снятия, ни для выдачи.")

    selections = Selections()
    for number in remove_numbers:
        entry = menu.get(number)
        selections.removals.append(
            RemovalSelection(
                friendly_name=entry.friendly_name,
                product_id=product_id_for(entry, table),
            )
        )

    for number in add_numbers:
        entry = menu.get(number)
        disabled = select_disabled_plans(entry, prompter, console)
        selections.assignments.append(
            AssignmentSelection(
                friendly_name=entry.friendly_name,
                available_seats=entry.available_seats,
                product_id=product_id_for(entry, table),
                disabled_plan_ids=disabled,
            )
        )

    return selections

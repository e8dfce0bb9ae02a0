import logging
from dataclasses import dataclass, field
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from .errors import AbortedError, MutationError
from .graph_client import GraphClient, GraphError
from .licensing import assign_group_licenses, assign_user_licenses
from .prompts import Prompter
from .selection import AssignmentSelection, Selections
from .targets import Target, TargetSet

logger = logging.getLogger(__name__)

REMOVE = "remove"
ADD = "add"


@dataclass(frozen=True)
class MutationOutcome:
    target: Target
    action: str
    friendly_name: str
    product_id: str
    error: Optional[MutationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ApplyReport:
    outcomes: List[MutationOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> List[MutationOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[MutationOutcome]:
        return [o for o in self.outcomes if not o.ok]


def seat_overruns(target_set: TargetSet, assignments: List[AssignmentSelection]) -> List[AssignmentSelection]:
    """
    Лицензии, которых не хватит на всех. Проверяем только для списков
    (user-list / group-list), одиночные режимы не проверяются.
    Цели-группы (--assign-to-group) тоже не проверяются: число групп
    ничего не говорит о местах, которые займут их участники.
    """
    if not target_set.mode.from_list:
        return []
    if any(t.kind == "group" for t in target_set.targets):
        return []
    count = len(target_set)
    return [a for a in assignments if count > a.available_seats]


def check_seats(
    target_set: TargetSet,
    assignments: List[AssignmentSelection],
    prompter: Prompter,
    console: Console,
) -> None:
    """
    Предупреждение о нехватке мест + подтверждение (по умолчанию "нет").
    Отказ -> AbortedError, до любых изменений.
    """
    for assignment in seat_overruns(target_set, assignments):
        console.print(
            f"[bold yellow]Внимание:[/bold yellow] {assignment.friendly_name}: "
            f"целей {len(target_set)}, свободно {assignment.available_seats}."
        )
        if not prompter.confirm("Продолжить?", default=False):
            raise AbortedError(f"Отменено оператором: не хватает мест для {assignment.friendly_name}")


def _call(client: GraphClient, target: Target, add, remove) -> None:
    if target.kind == "group":
        assign_group_licenses(client, target.id, add=add, remove=remove)
    else:
        assign_user_licenses(client, target.id, add=add, remove=remove)


def apply_selections(
    client: GraphClient,
    target_set: TargetSet,
    selections: Selections,
) -> ApplyReport:
    """
    Для каждой цели: сначала все снятия, потом все выдачи.
    Один вызов assignLicense на каждую пару цель/лицензия. Ошибка одного вызова
    записывается в отчёт, остальные продолжаются, отката нет.
    """
    report = ApplyReport()

    for target in target_set.targets:
        for removal in selections.removals:
            error = None
            try:
                _call(client, target, add=[], remove=[removal.product_id])
            except GraphError as e:
                error = MutationError(target.display, removal.product_id, str(e))
                logger.warning("%s", error)
            report.outcomes.append(
                MutationOutcome(target, REMOVE, removal.friendly_name, removal.product_id, error)
            )

        for assignment in selections.assignments:
            error = None
            try:
                _call(
                    client,
                    target,
                    add=[(assignment.product_id, assignment.disabled_plan_ids)],
                    remove=[],
                )
            except GraphError as e:
                error = MutationError(target.display, assignment.product_id, str(e))
                logger.warning("%s", error)
            report.outcomes.append(
                MutationOutcome(target, ADD, assignment.friendly_name, assignment.product_id, error)
            )

    return report


def render_report(report: ApplyReport, console: Console) -> None:
    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Target", overflow="fold")
    table.add_column("Action")
    table.add_column("Product", overflow="fold")
    table.add_column("Result", overflow="fold")

    for o in report.outcomes:
        result = "[green]OK[/green]" if o.ok else f"[red]{o.error.reason}[/red]"
        table.add_row(o.target.display, o.action, o.friendly_name, result)

    console.print(table)
    console.print(
        f"Успешно: [green]{len(report.succeeded)}[/green], "
        f"ошибок: [red]{len(report.failed)}[/red]"
    )

from typing import Optional, Tuple

import typer
from rich.console import Console

from licenseknife.applier import apply_selections, check_seats, render_report
from licenseknife.auth import DirectorySession
from licenseknife.config import (
    DEFAULT_REFERENCE_TABLE,
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_REFERENCE_TABLE,
    ENV_TENANT_ID,
)
from licenseknife.errors import (
    DirectoryConnectionError,
    EmptySelectionError,
    LicenseKnifeError,
    LoadError,
)
from licenseknife.graph_client import GraphClient, GraphError
from licenseknife.licensing import build_menu, list_skus, render_menu
from licenseknife.log import setup_logging
from licenseknife.prompts import ConsolePrompter
from licenseknife.reference import load_reference_table
from licenseknife.selection import collect_selections
from licenseknife.targets import TargetMode, resolve_targets

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2

app = typer.Typer(help="Выдача и снятие лицензий Microsoft 365 через Graph")
console = Console()


def build_graph_client(
    tenant_id: str,
    client_id: str,
    client_secret: Optional[str],
) -> GraphClient:
    """
    Открываем сессию и получаем GraphClient.
    """
    session = DirectorySession(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
        console=console,
    )
    return session.connect()


def fail(message: str, code: int = EXIT_FATAL) -> None:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=code)


def pick_mode(
    user: Optional[str],
    user_list: Optional[str],
    group: Optional[str],
    group_list: Optional[str],
) -> Tuple[TargetMode, str]:
    given = [
        (mode, value)
        for mode, value in (
            (TargetMode.USER, user),
            (TargetMode.USER_LIST, user_list),
            (TargetMode.GROUP, group),
            (TargetMode.GROUP_LIST, group_list),
        )
        if value
    ]
    if len(given) != 1:
        fail("Нужно указать ровно одно из: --user, --user-list, --group, --group-list.")
    return given[0]


# --- SKUS --- #


@app.command("skus")
def skus(
    reference_table: str = typer.Option(
        DEFAULT_REFERENCE_TABLE,
        "--reference-table",
        envvar=ENV_REFERENCE_TABLE,
        help="CSV-справочник: GUID, Product name, Service plans included (friendly names).",
    ),
    skip_unmapped: bool = typer.Option(
        False,
        "--skip-unmapped",
        help="Не показывать SKU, которых нет в справочнике.",
    ),
    tenant_id: str = typer.Option(..., "--tenant-id", envvar=ENV_TENANT_ID),
    client_id: str = typer.Option(..., "--client-id", envvar=ENV_CLIENT_ID),
    client_secret: Optional[str] = typer.Option(
        None,
        "--client-secret",
        envvar=ENV_CLIENT_SECRET,
        help="Секрет приложения. Без него вход по device code.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Показать лицензии, доступные для выдачи пользователям, и свободные места.
    """
    setup_logging(verbose)
    console.rule("[bold]Subscribed SKUs[/bold]")

    try:
        table = load_reference_table(reference_table)
        client = build_graph_client(tenant_id, client_id, client_secret)
        menu = build_menu(list_skus(client), table, skip_unmapped=skip_unmapped)
    except (LoadError, DirectoryConnectionError, GraphError) as e:
        fail(str(e))

    if not len(menu):
        console.print("[yellow]SKU для пользователей не найдены.[/yellow]")
        raise typer.Exit(code=EXIT_OK)

    render_menu(menu, console)


# --- APPLY --- #


@app.command("apply")
def apply(
    user: Optional[str] = typer.Option(None, "--user", help="UPN пользователя."),
    user_list: Optional[str] = typer.Option(
        None, "--user-list", help="CSV с колонкой UserPrincipalName."
    ),
    group: Optional[str] = typer.Option(None, "--group", help="DisplayName группы."),
    group_list: Optional[str] = typer.Option(
        None, "--group-list", help="CSV с колонкой DisplayName."
    ),
    assign_to_group: bool = typer.Option(
        False,
        "--assign-to-group",
        help="Лицензировать саму группу (group-based licensing), а не её участников.",
    ),
    reference_table: str = typer.Option(
        DEFAULT_REFERENCE_TABLE,
        "--reference-table",
        envvar=ENV_REFERENCE_TABLE,
        help="CSV-справочник: GUID, Product name, Service plans included (friendly names).",
    ),
    skip_unmapped: bool = typer.Option(
        False,
        "--skip-unmapped",
        help="Не показывать SKU, которых нет в справочнике.",
    ),
    tenant_id: str = typer.Option(..., "--tenant-id", envvar=ENV_TENANT_ID),
    client_id: str = typer.Option(..., "--client-id", envvar=ENV_CLIENT_ID),
    client_secret: Optional[str] = typer.Option(
        None,
        "--client-secret",
        envvar=ENV_CLIENT_SECRET,
        help="Секрет приложения. Без него вход по device code.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Интерактивно снять/выдать лицензии пользователю, списку пользователей,
    участникам группы или списка групп.
    Пример:
      python main.py apply --user-list users.csv
    """
    setup_logging(verbose)
    mode, value = pick_mode(user, user_list, group, group_list)
    if assign_to_group and not mode.by_group:
        fail("--assign-to-group работает только с --group / --group-list.")

    console.rule(f"[bold]Лицензии: {mode.value} {value}[/bold]")
    prompter = ConsolePrompter()

    try:
        table = load_reference_table(reference_table)
        client = build_graph_client(tenant_id, client_id, client_secret)

        menu = build_menu(list_skus(client), table, skip_unmapped=skip_unmapped)
        if not len(menu):
            fail("Нет SKU, доступных для выдачи пользователям.")
        render_menu(menu, console)

        selections = collect_selections(menu, table, prompter, console)
        target_set = resolve_targets(client, mode, value, assign_to_group=assign_to_group)
        check_seats(target_set, selections.assignments, prompter, console)
    except EmptySelectionError as e:
        fail(f"Нечего делать: {e}")
    except (LicenseKnifeError, GraphError) as e:
        fail(str(e))

    for failure in target_set.failures:
        console.print(f"[red]{failure}[/red]")

    if not len(target_set):
        fail("Не найдено ни одной цели.", code=EXIT_PARTIAL if target_set.failures else EXIT_FATAL)

    report = apply_selections(client, target_set, selections)
    render_report(report, console)

    if report.failed or target_set.failures:
        raise typer.Exit(code=EXIT_PARTIAL)

    console.print("[bold green]Лицензии обновлены.[/bold green]")


if __name__ == "__main__":
    app()

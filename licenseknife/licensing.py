import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.table import Table

from .config import USER_PRINCIPAL_TYPE
from .graph_client import GraphClient
from .reference import LicenseMappingEntry, ReferenceTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscribedSku:
    sku_id: str
    sku_part_number: str
    applies_to: str
    prepaid_seats: int
    consumed_seats: int
    service_plans: Tuple[str, ...] = ()

    @property
    def available_seats(self) -> int:
        # Может быть отрицательным при перерасходе, не обрезаем.
        return self.prepaid_seats - self.consumed_seats

    @classmethod
    def from_graph(cls, data: Dict[str, Any]) -> "SubscribedSku":
        prepaid = data.get("prepaidUnits") or {}
        plans = tuple(
            f"{p.get('servicePlanName', '')} ({p.get('servicePlanId', '')})"
            for p in data.get("servicePlans") or []
            if p.get("servicePlanId")
        )
        return cls(
            sku_id=str(data.get("skuId", "")),
            sku_part_number=data.get("skuPartNumber", "") or "",
            applies_to=data.get("appliesTo", "") or "",
            prepaid_seats=int(prepaid.get("enabled", 0) or 0),
            consumed_seats=int(data.get("consumedUnits", 0) or 0),
            service_plans=plans,
        )


@dataclass(frozen=True)
class MenuEntry:
    number: int
    friendly_name: str
    available_seats: int
    sku: SubscribedSku
    mapping: Optional[LicenseMappingEntry] = None

    @property
    def mapped(self) -> bool:
        return self.mapping is not None

    @property
    def service_plans(self) -> Tuple[str, ...]:
        if self.mapping is not None:
            return self.mapping.service_plans
        return self.sku.service_plans


@dataclass
class Menu:
    entries: List[MenuEntry] = field(default_factory=list)
    # SKU без записи в справочнике (показаны по идентификатору или пропущены)
    unmapped: List[SubscribedSku] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, number: int) -> MenuEntry:
        return self.entries[number - 1]


def list_skus(client: GraphClient) -> List[SubscribedSku]:
    """
    Список подписок (SKU) тенанта.
    GET /subscribedSkus
    Требуются Organization.Read.All / Directory.Read.All.
    """
    return [SubscribedSku.from_graph(s) for s in client.get_all("/subscribedSkus")]


def build_menu(
    skus: Sequence[SubscribedSku],
    table: ReferenceTable,
    skip_unmapped: bool = False,
) -> Menu:
    """
    Меню SKU, которые можно выдать пользователям (appliesTo == "User").
    Номера 1..N в порядке ответа Graph.
    SKU без записи в справочнике показываются под skuPartNumber (или GUID),
    при skip_unmapped пропускаются. В обоих случаях попадают в Menu.unmapped.
    """
    menu = Menu()
    for sku in skus:
        if sku.applies_to != USER_PRINCIPAL_TYPE:
            logger.debug("Skipping %s: applies to %s", sku.sku_id, sku.applies_to)
            continue

        mapping = table.by_product_id(sku.sku_id)
        if mapping is None:
            menu.unmapped.append(sku)
            if skip_unmapped:
                logger.info("Skipping unmapped SKU %s (%s)", sku.sku_id, sku.sku_part_number)
                continue
            name = sku.sku_part_number or sku.sku_id
        else:
            name = mapping.friendly_name

        menu.entries.append(
            MenuEntry(
                number=len(menu.entries) + 1,
                friendly_name=name,
                available_seats=sku.available_seats,
                sku=sku,
                mapping=mapping,
            )
        )
    return menu


def render_menu(menu: Menu, console: Console) -> None:
    table = Table(show_header=True, header_style="bold green")
    table.add_column("#", style="dim", width=6)
    table.add_column("Product", overflow="fold")
    table.add_column("Available", justify="right")

    for entry in menu.entries:
        seats = str(entry.available_seats)
        if entry.available_seats <= 0:
            seats = f"[red]{seats}[/red]"
        name = entry.friendly_name if entry.mapped else f"[yellow]{entry.friendly_name}[/yellow]"
        table.add_row(f"[{entry.number}]", name, seats)

    console.print(table)

    if menu.unmapped:
        ids = ", ".join(s.sku_part_number or s.sku_id for s in menu.unmapped)
        console.print(f"[yellow]Нет в справочнике: {ids}[/yellow]")


def license_body(
    add: Sequence[Tuple[str, Sequence[str]]],
    remove: Sequence[str],
) -> Dict[str, Any]:
    """
    Тело assignLicense.
    add — пары (skuId, отключаемые планы), remove — список skuId.
    """
    return {
        "addLicenses": [
            {"skuId": sku_id, "disabledPlans": list(disabled)}
            for sku_id, disabled in add
        ],
        "removeLicenses": list(remove),
    }


def assign_user_licenses(
    client: GraphClient,
    user: str,
    add: Sequence[Tuple[str, Sequence[str]]],
    remove: Sequence[str],
) -> Dict[str, Any]:
    """
    Выдать / снять лицензии пользователя.
    POST /users/{user}/assignLicense
    """
    return client.post(f"/users/{user}/assignLicense", json=license_body(add, remove))


def assign_group_licenses(
    client: GraphClient,
    group_id: str,
    add: Sequence[Tuple[str, Sequence[str]]],
    remove: Sequence[str],
) -> Dict[str, Any]:
    """
    Групповое лицензирование.
    POST /groups/{id}/assignLicense
    """
    return client.post(f"/groups/{group_id}/assignLicense", json=license_body(add, remove))

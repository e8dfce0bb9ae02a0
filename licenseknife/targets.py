import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Union

from .config import GROUP_LIST_COLUMN, USER_LIST_COLUMN
from .errors import NotFoundError
from .graph_client import GraphClient
from .groups import find_groups_by_name, is_user, list_group_members
from .reference import read_csv_rows

logger = logging.getLogger(__name__)


class TargetMode(str, Enum):
    USER = "user"
    USER_LIST = "user-list"
    GROUP = "group"
    GROUP_LIST = "group-list"

    @property
    def from_list(self) -> bool:
        return self in (TargetMode.USER_LIST, TargetMode.GROUP_LIST)

    @property
    def by_group(self) -> bool:
        return self in (TargetMode.GROUP, TargetMode.GROUP_LIST)


@dataclass(frozen=True)
class Target:
    id: str
    display: str
    kind: str = "user"


@dataclass
class TargetSet:
    mode: TargetMode
    targets: List[Target] = field(default_factory=list)
    # группы из списка, которые не удалось однозначно найти
    failures: List[NotFoundError] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.targets)


def read_user_list(path: Union[str, Path]) -> List[str]:
    rows = read_csv_rows(path, (USER_LIST_COLUMN,))
    return [row[USER_LIST_COLUMN] for row in rows if row[USER_LIST_COLUMN]]


def read_group_list(path: Union[str, Path]) -> List[str]:
    rows = read_csv_rows(path, (GROUP_LIST_COLUMN,))
    return [row[GROUP_LIST_COLUMN] for row in rows if row[GROUP_LIST_COLUMN]]


def resolve_group(client: GraphClient, display_name: str) -> Dict[str, Any]:
    """
    Ровно одна группа с таким displayName, иначе NotFoundError.
    """
    groups = find_groups_by_name(client, display_name)
    if len(groups) != 1:
        raise NotFoundError(
            f"Группа {display_name!r}: найдено {len(groups)}, ожидалась ровно одна"
        )
    return groups[0]


def group_targets(
    client: GraphClient,
    display_name: str,
    assign_to_group: bool = False,
) -> List[Target]:
    group = resolve_group(client, display_name)
    if assign_to_group:
        return [Target(id=group["id"], display=group.get("displayName") or display_name, kind="group")]

    targets = []
    for member in list_group_members(client, group["id"]):
        if not is_user(member):
            logger.info(
                "Group %s: skipping non-user member %s (%s)",
                display_name,
                member.get("id"),
                member.get("@odata.type"),
            )
            continue
        targets.append(
            Target(
                id=member["id"],
                display=member.get("userPrincipalName") or member.get("displayName") or member["id"],
            )
        )
    return targets


def resolve_targets(
    client: GraphClient,
    mode: TargetMode,
    value: str,
    assign_to_group: bool = False,
) -> TargetSet:
    """
    value — UPN, путь к CSV или имя группы, в зависимости от mode.

    В режиме group-list ненайденная группа записывается в failures,
    остальные группы обрабатываются дальше. Участники разных групп
    не дедуплицируются.
    """
    target_set = TargetSet(mode=mode)

    if mode is TargetMode.USER:
        target_set.targets.append(Target(id=value, display=value))
    elif mode is TargetMode.USER_LIST:
        target_set.targets.extend(Target(id=upn, display=upn) for upn in read_user_list(value))
    elif mode is TargetMode.GROUP:
        target_set.targets.extend(group_targets(client, value, assign_to_group))
    elif mode is TargetMode.GROUP_LIST:
        for name in read_group_list(value):
            try:
                target_set.targets.extend(group_targets(client, name, assign_to_group))
            except NotFoundError as e:
                logger.warning("%s", e)
                target_set.failures.append(e)
    else:
        raise ValueError(f"Unknown target mode: {mode}")

    return target_set

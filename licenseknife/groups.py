from typing import Any, Dict, List

from .graph_client import GraphClient

USER_ODATA_TYPE = "#microsoft.graph.user"


def find_groups_by_name(client: GraphClient, display_name: str) -> List[Dict[str, Any]]:
    """
    Группы с точным совпадением displayName.
    GET /groups?$filter=displayName eq '...'
    """
    escaped = display_name.replace("'", "''")
    params = {
        "$filter": f"displayName eq '{escaped}'",
        "$select": "id,displayName",
    }
    return client.get_all("/groups", params=params)


def list_group_members(client: GraphClient, group_id: str) -> List[Dict[str, Any]]:
    """
    Все участники группы (users / groups / devices / service principals).
    GET /groups/{id}/members, с обходом страниц.
    """
    params = {"$select": "id,displayName,userPrincipalName"}
    return client.get_all(f"/groups/{group_id}/members", params=params)


def is_user(member: Dict[str, Any]) -> bool:
    return member.get("@odata.type") == USER_ODATA_TYPE

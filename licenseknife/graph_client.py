import logging
from typing import Any, Dict, List, Optional, Union

import requests

from .config import GRAPH_BASE_URL

logger = logging.getLogger(__name__)


class GraphError(RuntimeError):
    """
    Ошибка Graph API (HTTP != 2xx) или транспорта.
    status_code = None, если ответа не было вовсе.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.data = data


class GraphClient:
    """
    Примитивный клиент для Microsoft Graph.
    Один экземпляр = одна авторизованная сессия, передаётся явно.
    """

    def __init__(self, access_token: str, base_url: str = GRAPH_BASE_URL) -> None:
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")

    def _make_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        path = path.lstrip("/")
        return f"{self.base_url}/{path}"

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Union[Dict[str, Any], str]:
        url = self._make_url(path)
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }
        if json is not None:
            headers["Content-Type"] = "application/json"

        logger.debug("%s %s params=%s", method.upper(), url, params)
        try:
            resp = requests.request(
                method=method.upper(),
                url=url,
                headers=headers,
                params=params,
                json=json,
            )
        except requests.RequestException as e:
            raise GraphError(f"Graph API request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = resp.text

        if not resp.ok:
            raise GraphError(
                f"Graph API error {resp.status_code}: {_error_message(data)}",
                status_code=resp.status_code,
                data=data,
            )

        return data

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def get_all(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        GET с обходом страниц по @odata.nextLink, возвращает объединённый value.
        nextLink уже содержит все параметры запроса, поэтому params передаются только первый раз.
        """
        items: List[Dict[str, Any]] = []
        result = self.get(path, params=params)
        while True:
            items.extend(result.get("value", []))
            next_link = result.get("@odata.nextLink")
            if not next_link:
                break
            result = self.get(next_link)
        return items

    def post(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, json=json)


def _error_message(data: Any) -> str:
    # Graph отдаёт {"error": {"code": ..., "message": ...}}
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        err = data["error"]
        return f"{err.get('code', '')}: {err.get('message', '')}".strip(": ")
    return str(data)

import logging
from typing import Any, Dict, List, Optional, Union

import msal
from rich.console import Console

from .config import APP_ONLY_SCOPES, GRAPH_AUTHORITY_TEMPLATE, REQUIRED_SCOPES
from .errors import DirectoryConnectionError
from .graph_client import GraphClient

logger = logging.getLogger(__name__)

MsalApp = Union[msal.PublicClientApplication, msal.ConfidentialClientApplication]


def get_confidential_client(
    tenant_id: str,
    client_id: str,
    client_secret: str,
) -> msal.ConfidentialClientApplication:
    """
    Создаёт MSAL ConfidentialClientApplication для client credentials flow.
    """
    authority = GRAPH_AUTHORITY_TEMPLATE.format(tenant_id=tenant_id)
    return msal.ConfidentialClientApplication(
        client_id=client_id,
        client_credential=client_secret,
        authority=authority,
    )


def get_public_client(tenant_id: str, client_id: str) -> msal.PublicClientApplication:
    """
    Создаёт MSAL PublicClientApplication для делегированного входа (device code).
    """
    authority = GRAPH_AUTHORITY_TEMPLATE.format(tenant_id=tenant_id)
    return msal.PublicClientApplication(client_id=client_id, authority=authority)


class DirectorySession:
    """
    Авторизованная сессия к Graph.

    Без client_secret используется делегированный вход по device code с набором
    прав scopes (по умолчанию REQUIRED_SCOPES). С client_secret берётся
    app-only токен (.default), права тогда задаются в регистрации приложения.

    Если сессия уже есть, connect() сначала её закрывает и открывает заново
    с тем же набором прав.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        app: Optional[MsalApp] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = list(scopes or REQUIRED_SCOPES)
        self.console = console or Console(stderr=True)
        self._app = app
        self._client: Optional[GraphClient] = None

    @property
    def app_only(self) -> bool:
        return bool(self.client_secret)

    @property
    def app(self) -> MsalApp:
        if self._app is None:
            if self.app_only:
                self._app = get_confidential_client(
                    self.tenant_id, self.client_id, self.client_secret
                )
            else:
                self._app = get_public_client(self.tenant_id, self.client_id)
        return self._app

    @property
    def client(self) -> Optional[GraphClient]:
        return self._client

    def current_account(self) -> Optional[Dict[str, Any]]:
        """
        Текущая сессия: аккаунт из кэша MSAL или None.
        """
        accounts = self.app.get_accounts()
        return accounts[0] if accounts else None

    def is_connected(self) -> bool:
        return self._client is not None or self.current_account() is not None

    def disconnect(self) -> None:
        """
        Закрыть сессию: выкинуть аккаунты из кэша MSAL и забыть токен.
        """
        for account in self.app.get_accounts():
            logger.debug("Removing cached account %s", account.get("username"))
            self.app.remove_account(account)
        self._client = None

    def connect(self) -> GraphClient:
        """
        Открыть (или переоткрыть) сессию и вернуть GraphClient.
        Любая ошибка -> DirectoryConnectionError, без повторов.
        """
        try:
            # сборка MSAL-приложения уже ходит в сеть (OIDC discovery)
            if self.is_connected():
                logger.info("Existing session found, reconnecting")
                self.disconnect()

            if self.app_only:
                result = self.app.acquire_token_for_client(scopes=APP_ONLY_SCOPES)
            else:
                result = self._acquire_by_device_flow()
        except DirectoryConnectionError:
            raise
        except Exception as e:
            raise DirectoryConnectionError(f"Не удалось получить токен: {e}") from e

        if not result or "access_token" not in result:
            result = result or {}
            raise DirectoryConnectionError(
                f"Не удалось получить токен: {result.get('error')}: {result.get('error_description')}"
            )

        self._client = GraphClient(access_token=result["access_token"])
        return self._client

    def _acquire_by_device_flow(self) -> Dict[str, Any]:
        flow = self.app.initiate_device_flow(scopes=self.scopes)
        if "user_code" not in flow:
            raise DirectoryConnectionError(
                f"Не удалось начать device code flow: {flow.get('error')}: {flow.get('error_description')}"
            )
        self.console.print(f"[yellow]{flow['message']}[/yellow]")
        return self.app.acquire_token_by_device_flow(flow)

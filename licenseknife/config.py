"""
Константы и значения по умолчанию.
Всё, что настраивается оператором, приходит через опции typer / env (см. main.py).
"""

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
GRAPH_AUTHORITY_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}"

# Один набор прав, запрашивается одинаково и при первом входе, и при переподключении.
REQUIRED_SCOPES = [
    "User.ReadWrite.All",
    "Organization.Read.All",
    "Group.ReadWrite.All",
]
APP_ONLY_SCOPES = ["https://graph.microsoft.com/.default"]

DEFAULT_REFERENCE_TABLE = "licenses.csv"

COLUMN_GUID = "GUID"
COLUMN_PRODUCT_NAME = "Product name"
COLUMN_SERVICE_PLANS = "Service plans included (friendly names)"
REFERENCE_COLUMNS = (COLUMN_GUID, COLUMN_PRODUCT_NAME, COLUMN_SERVICE_PLANS)

USER_LIST_COLUMN = "UserPrincipalName"
GROUP_LIST_COLUMN = "DisplayName"

PLAN_SEPARATOR = "|"
SELECTION_SEPARATOR = ";"

USER_PRINCIPAL_TYPE = "User"

MAX_PROMPT_ATTEMPTS = 3

ENV_TENANT_ID = "GRAPH_TENANT_ID"
ENV_CLIENT_ID = "GRAPH_CLIENT_ID"
ENV_CLIENT_SECRET = "GRAPH_CLIENT_SECRET"
ENV_REFERENCE_TABLE = "LICENSE_REFERENCE_TABLE"

import pytest
from rich.console import Console

from licenseknife.reference import load_reference_table
from tests._graph_helpers import E3_ID, E5_ID, VISIO_ID, FakeGraphClient, sku, write_reference


@pytest.fixture
def console():
    return Console(record=True, width=120)


@pytest.fixture
def reference_path(tmp_path):
    return write_reference(tmp_path / "licenses.csv")


@pytest.fixture
def reference_table(reference_path):
    return load_reference_table(reference_path)


@pytest.fixture
def tenant_skus():
    return {
        "value": [
            sku(E5_ID, "SPE_E5", enabled=10, consumed=7),
            sku(VISIO_ID, "VISIOCLIENT", enabled=5, consumed=5,
                plans=[("VISIO_CLIENT_SUBSCRIPTION", "663a804f-1c30-4ff0-9915-9db84f0d1cea")]),
            sku("11111111-2222-3333-4444-555555555555", "DEVICE_SKU", enabled=3, consumed=0,
                applies_to="Company"),
            sku(E3_ID, "ENTERPRISEPACK", enabled=2, consumed=4),
        ]
    }


@pytest.fixture
def fake_graph(tenant_skus):
    return FakeGraphClient({("GET", "/subscribedSkus"): tenant_skus})

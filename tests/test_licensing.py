from licenseknife.licensing import (
    SubscribedSku,
    assign_group_licenses,
    assign_user_licenses,
    build_menu,
    list_skus,
    render_menu,
)
from tests._graph_helpers import E3_ID, E5_ID, EXO_PLAN_ID, VISIO_ID, FakeGraphClient, sku


def test_available_seats_is_prepaid_minus_consumed_and_not_clamped():
    assert SubscribedSku.from_graph(sku(E5_ID, "SPE_E5", enabled=10, consumed=7)).available_seats == 3
    assert SubscribedSku.from_graph(sku(E3_ID, "ENTERPRISEPACK", enabled=2, consumed=4)).available_seats == -2


def test_from_graph_tolerates_missing_fields():
    parsed = SubscribedSku.from_graph({"skuId": E5_ID})
    assert parsed.prepaid_seats == 0
    assert parsed.consumed_seats == 0
    assert parsed.applies_to == ""
    assert parsed.service_plans == ()


def test_list_skus_follows_next_link():
    client = FakeGraphClient(
        {
            ("GET", "/subscribedSkus"): {
                "value": [sku(E5_ID, "SPE_E5", 1, 0)],
                "@odata.nextLink": "https://graph.microsoft.com/v1.0/subscribedSkus?$skiptoken=x",
            },
            ("GET", "https://graph.microsoft.com/v1.0/subscribedSkus?$skiptoken=x"): {
                "value": [sku(E3_ID, "ENTERPRISEPACK", 1, 0)],
            },
        }
    )
    assert [s.sku_id for s in list_skus(client)] == [E5_ID, E3_ID]


def test_menu_keeps_user_skus_numbered_without_gaps(fake_graph, reference_table):
    menu = build_menu(list_skus(fake_graph), reference_table)

    assert [e.number for e in menu.entries] == [1, 2, 3]
    assert [e.friendly_name for e in menu.entries] == ["Microsoft 365 E5", "VISIOCLIENT", "Office 365 E3"]
    assert [e.available_seats for e in menu.entries] == [3, 0, -2]
    assert menu.get(2).mapped is False
    assert [s.sku_id for s in menu.unmapped] == [VISIO_ID]


def test_menu_can_skip_unmapped(fake_graph, reference_table):
    menu = build_menu(list_skus(fake_graph), reference_table, skip_unmapped=True)

    assert [(e.number, e.friendly_name) for e in menu.entries] == [
        (1, "Microsoft 365 E5"),
        (2, "Office 365 E3"),
    ]
    # пропущенные SKU всё равно видны
    assert [s.sku_id for s in menu.unmapped] == [VISIO_ID]


def test_unmapped_sku_without_part_number_uses_guid(reference_table):
    skus = [SubscribedSku.from_graph(sku(VISIO_ID, "", 1, 0))]
    menu = build_menu(skus, reference_table)
    assert menu.get(1).friendly_name == VISIO_ID


def test_unmapped_entry_lists_graph_service_plans(fake_graph, reference_table):
    menu = build_menu(list_skus(fake_graph), reference_table)
    assert menu.get(2).service_plans == (
        "VISIO_CLIENT_SUBSCRIPTION (663a804f-1c30-4ff0-9915-9db84f0d1cea)",
    )


def test_render_menu_prints_numbers_and_unmapped(fake_graph, reference_table, console):
    render_menu(build_menu(list_skus(fake_graph), reference_table), console)
    out = console.export_text()
    assert "[1]" in out and "Microsoft 365 E5" in out
    assert "[3]" in out and "Office 365 E3" in out
    assert "Нет в справочнике: VISIOCLIENT" in out


def test_assign_user_licenses_body():
    client = FakeGraphClient()
    assign_user_licenses(client, "a@contoso.com", add=[(E5_ID, (EXO_PLAN_ID,))], remove=[E3_ID])
    assert client.posts() == [
        (
            "/users/a@contoso.com/assignLicense",
            {
                "addLicenses": [{"skuId": E5_ID, "disabledPlans": [EXO_PLAN_ID]}],
                "removeLicenses": [E3_ID],
            },
        )
    ]


def test_assign_group_licenses_posts_to_group():
    client = FakeGraphClient()
    assign_group_licenses(client, "g1", add=[], remove=[E3_ID])
    assert client.posts() == [
        ("/groups/g1/assignLicense", {"addLicenses": [], "removeLicenses": [E3_ID]})
    ]

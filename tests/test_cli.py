import pytest
from typer.testing import CliRunner

import main
from licenseknife.errors import DirectoryConnectionError
from tests._graph_helpers import E5_ID, EXO_PLAN_ID, FakeGraphClient, user_member, write_csv

runner = CliRunner()
AUTH = ["--tenant-id", "tenant", "--client-id", "client"]


@pytest.fixture
def graph(monkeypatch, fake_graph):
    connects = []

    def build(tenant_id, client_id, client_secret):
        connects.append((tenant_id, client_id, client_secret))
        return fake_graph

    monkeypatch.setattr(main, "build_graph_client", build)
    fake_graph.connects = connects
    return fake_graph


def invoke(args, reference_path, answers=""):
    return runner.invoke(
        main.app,
        args + ["--reference-table", str(reference_path)] + AUTH,
        input=answers,
    )


def test_requires_exactly_one_mode(graph, reference_path):
    result = invoke(["apply", "--user", "a@x.com", "--group", "Sales"], reference_path)
    assert result.exit_code == 1
    assert graph.connects == []


def test_assign_to_group_needs_group_mode(graph, reference_path):
    result = invoke(["apply", "--user", "a@x.com", "--assign-to-group"], reference_path)
    assert result.exit_code == 1


def test_missing_reference_table_fails_before_connecting(graph, tmp_path):
    result = invoke(["apply", "--user", "a@x.com"], tmp_path / "missing.csv")
    assert result.exit_code == 1
    assert "Файл не найден" in result.output
    assert graph.connects == []


def test_connection_failure_exits_non_zero(monkeypatch, reference_path):
    def build(*args):
        raise DirectoryConnectionError("Не удалось получить токен: invalid_client")

    monkeypatch.setattr(main, "build_graph_client", build)
    result = invoke(["apply", "--user", "a@x.com"], reference_path)
    assert result.exit_code == 1
    assert "invalid_client" in result.output


def test_empty_selection_aborts_without_mutation(graph, reference_path):
    result = invoke(["apply", "--user", "a@x.com"], reference_path, answers="\n\n")
    assert result.exit_code == 1
    assert "Нечего делать" in result.output
    assert graph.posts() == []


def test_single_user_assignment(graph, reference_path):
    # снять: ничего; выдать [1] E5; отключить план 1
    result = invoke(["apply", "--user", "a@x.com"], reference_path, answers="\n1\n1\n")
    assert result.exit_code == 0, result.output
    assert graph.posts() == [
        (
            "/users/a@x.com/assignLicense",
            {
                "addLicenses": [{"skuId": E5_ID, "disabledPlans": [EXO_PLAN_ID]}],
                "removeLicenses": [],
            },
        )
    ]


def test_user_list_seat_overrun_declined(graph, reference_path, tmp_path):
    users = write_csv(tmp_path / "users.csv", ["UserPrincipalName"], [[f"u{i}@x.com"] for i in range(5)])
    result = invoke(["apply", "--user-list", str(users)], reference_path, answers="\n1\n\n\n")
    assert result.exit_code == 1
    assert "свободно 3" in result.output
    assert graph.posts() == []


def test_group_list_reports_missing_group_and_processes_rest(graph, reference_path, tmp_path):
    def groups(params, json):
        if params["$filter"] == "displayName eq 'Sales'":
            return {"value": [{"id": "g-sales", "displayName": "Sales"}]}
        return {"value": []}

    graph.routes[("GET", "/groups")] = groups
    graph.routes[("GET", "/groups/g-sales/members")] = {"value": [user_member("u1", "ann@x.com")]}
    path = write_csv(tmp_path / "groups.csv", ["DisplayName"], [["Ghost"], ["Sales"]])

    result = invoke(["apply", "--group-list", str(path)], reference_path, answers="3\n\n")

    assert result.exit_code == 2
    assert "Ghost" in result.output
    assert [p for p, _ in graph.posts()] == ["/users/u1/assignLicense"]


def test_single_group_not_found_is_fatal(graph, reference_path):
    graph.routes[("GET", "/groups")] = {"value": []}
    result = invoke(["apply", "--group", "Ghost"], reference_path, answers="3\n\n")
    assert result.exit_code == 1
    assert graph.posts() == []


def test_skus_lists_menu(graph, reference_path):
    result = invoke(["skus"], reference_path)
    assert result.exit_code == 0, result.output
    assert "Microsoft 365 E5" in result.output
    assert "VISIOCLIENT" in result.output

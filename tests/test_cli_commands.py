from __future__ import annotations

import json

import httpx
import pytest
from typer.testing import CliRunner

import ownership.cli as cli
from ownership.infra.http.catalog_client import CatalogApiClient

runner = CliRunner()

ENTITIES = [
    {
        "kind": "Component",
        "metadata": {"name": "billing", "annotations": {"backstage.io/deployment-enabled": "true"}},
        "spec": {"owner": "user:default/alice"},
    },
    {
        "kind": "Component",
        "metadata": {"name": "payments", "annotations": {"backstage.io/deployment-enabled": "true"}},
        "spec": {"owner": "group:default/platform-team"},
    },
    {
        "kind": "Component",
        "metadata": {"name": "docs", "annotations": {"github.com/project-slug": "org/docs"}},
        "spec": {"owner": {"kind": "group", "namespace": "default", "name": "writers"}},
    },
    {"kind": "Component", "metadata": {"name": "legacy"}, "spec": {}},
]

ALICE = ["--user", "user:default/alice", "--ref", "user:default/alice", "--ref", "group:default/platform-team"]


@pytest.fixture(autouse=True)
def no_catalog_env(monkeypatch):
    monkeypatch.delenv("OWNERSHIP_CATALOG_URL", raising=False)
    monkeypatch.delenv("OWNERSHIP_DEFAULT_VIEW", raising=False)


@pytest.fixture
def apps_file(tmp_path):
    path = tmp_path / "apps.json"
    path.write_text(json.dumps({"items": ENTITIES}), encoding="utf-8")
    return str(path)


def _invoke(tmp_path, *args):
    return runner.invoke(cli.app, ["--log-dir", str(tmp_path / "logs"), *args])


def test_resolve_owned_view(tmp_path, apps_file):
    result = _invoke(tmp_path, "resolve", *ALICE, "--apps", apps_file)
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["view"] == "owned"
    assert payload["owned"] == {
        "directlyOwned": ["billing"],
        "groupOwned": ["payments"],
        "allOwned": ["billing", "payments"],
    }
    assert payload["snapshot"]["groupOwned"] == {"platform-team": ["payments"]}
    assert payload["snapshot"]["ownerMap"]["legacy"]["name"] == "unassigned"


def test_resolve_all_view_deployable_only(tmp_path, apps_file):
    result = _invoke(tmp_path, "resolve", *ALICE, "--apps", apps_file, "--view", "all", "--deployable-only")
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert [(a["name"], a["accessLevel"]) for a in payload["applications"]] == [
        ("billing", "full"),
        ("payments", "full"),
    ]


def test_resolve_rejects_unknown_view(tmp_path, apps_file):
    result = _invoke(tmp_path, "resolve", *ALICE, "--apps", apps_file, "--view", "mine")
    assert result.exit_code == 2
    assert "Unsupported view" in result.output


@pytest.mark.parametrize(
    "name,level",
    [("billing", "full"), ("docs", "limited"), ("legacy", "none")],
)
def test_access(tmp_path, apps_file, name, level):
    result = _invoke(tmp_path, "access", *ALICE, "--apps", apps_file, "--app", name)
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"user": "user:default/alice", "application": name, "accessLevel": level}


def test_access_unknown_application(tmp_path, apps_file):
    result = _invoke(tmp_path, "access", *ALICE, "--apps", apps_file, "--app", "ghost")
    assert result.exit_code == 2
    assert "Application not found: ghost" in result.output


def test_groups_sorted_by_name(tmp_path, apps_file):
    result = _invoke(tmp_path, "groups", *ALICE, "--apps", apps_file)
    assert result.exit_code == 0, result.output
    groups = json.loads(result.stdout)["groups"]
    assert [g["owner"]["displayName"] for g in groups] == ["alice", "platform-team", "Unassigned", "writers"]
    mine = groups[0]
    assert mine["isUserGroup"] is True
    assert mine["accessLevel"] == "full"
    assert groups[3]["accessLevel"] == "limited"


def test_groups_rejects_unknown_sort(tmp_path, apps_file):
    result = _invoke(tmp_path, "groups", *ALICE, "--apps", apps_file, "--sort", "owner")
    assert result.exit_code == 2


def test_members(tmp_path):
    result = _invoke(tmp_path, "members", *ALICE, "--group", "writers", "--group", "platform-team")
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["groups"] == ["platform-team"]


def test_invalid_entity_file(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps([{"metadata": {}}]), encoding="utf-8")
    result = _invoke(tmp_path, "resolve", *ALICE, "--apps", str(bad))
    assert result.exit_code == 2
    assert "metadata.name is required" in result.output


def _patch_catalog(monkeypatch, responder):
    def make_client(**kwargs):
        kwargs["transport"] = httpx.MockTransport(responder)
        kwargs["retryBackoffSeconds"] = 0
        return CatalogApiClient(**kwargs)

    monkeypatch.setattr(cli, "CatalogApiClient", make_client)


def test_resolve_from_catalog_enriches_display_names(tmp_path, monkeypatch):
    def responder(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/catalog/entities":
            return httpx.Response(200, json=ENTITIES)
        if request.url.path == "/api/catalog/entities/by-name/Group/default/platform-team":
            return httpx.Response(200, json={"metadata": {"name": "platform-team", "title": "Platform Team"}})
        if request.url.path.startswith("/api/catalog/entities/by-name/User/"):
            raise httpx.ConnectTimeout("slow", request=request)
        return httpx.Response(404)

    _patch_catalog(monkeypatch, responder)
    result = _invoke(tmp_path, "--catalog-url", "https://catalog.local", "resolve", *ALICE, "--view", "all")
    assert result.exit_code == 0, result.output
    owners = json.loads(result.stdout)["snapshot"]["ownerMap"]
    assert owners["payments"]["displayName"] == "Platform Team"
    assert owners["billing"]["displayName"] == "alice"
    assert owners["docs"]["displayName"] == "writers"


def test_check_catalog(tmp_path, monkeypatch):
    _patch_catalog(monkeypatch, lambda request: httpx.Response(200, json={"items": [{"metadata": {"name": "a"}}]}))
    result = _invoke(tmp_path, "--catalog-url", "https://catalog.local", "check-catalog")
    assert result.exit_code == 0, result.output
    assert "catalog=OK sample_entities=1" in result.stdout


def test_check_catalog_failure(tmp_path, monkeypatch):
    _patch_catalog(monkeypatch, lambda request: httpx.Response(503, text="down"))
    result = _invoke(tmp_path, "--catalog-url", "https://catalog.local", "check-catalog")
    assert result.exit_code == 2
    assert "catalog request failed" in result.output

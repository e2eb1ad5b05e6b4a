import json

import pytest
from typer.testing import CliRunner

from ownership.cli import app
from ownership.config import Settings, load_settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "OWNERSHIP_CATALOG_URL",
        "OWNERSHIP_CATALOG_TOKEN",
        "OWNERSHIP_CACHE_TTL_SECONDS",
        "OWNERSHIP_CACHE_ENABLED",
        "OWNERSHIP_DEFAULT_VIEW",
        "OWNERSHIP_INTEGRATION_ANNOTATIONS",
        "OWNERSHIP_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def _write_config(tmp_path):
    cfg = tmp_path / "config.yml"
    cfg.write_text(
        "\n".join([
            'catalog_url: "https://cfg.local"',
            "cache_ttl_seconds: 100",
            "cache_enabled: false",
            "default_view: all",
            "integration_annotations:",
            "  - github.com/project-slug",
            "  - gitlab.com/project-slug",
        ]),
        encoding="utf-8",
    )
    return cfg


def test_defaults_without_sources():
    loaded = load_settings(config_path=None, cli_overrides={})
    assert loaded.settings == Settings()
    assert loaded.sources_used == []


def test_priority_cli_over_env_over_config(tmp_path, monkeypatch):
    cfg = _write_config(tmp_path)

    # ENV overrides config
    monkeypatch.setenv("OWNERSHIP_CATALOG_URL", "https://env.local")
    monkeypatch.setenv("OWNERSHIP_CACHE_TTL_SECONDS", "200")

    # CLI overrides env
    loaded = load_settings(config_path=str(cfg), cli_overrides={"cache_ttl_seconds": 300.0, "log_level": None})
    settings = loaded.settings
    assert settings.catalog_url == "https://env.local"
    assert settings.cache_ttl_seconds == 300.0
    assert settings.cache_enabled is False
    assert settings.default_view == "all"
    assert settings.integration_annotations == ("github.com/project-slug", "gitlab.com/project-slug")
    assert loaded.sources_used == ["config", "env", "cli"]


def test_env_parsing(monkeypatch):
    monkeypatch.setenv("OWNERSHIP_CACHE_ENABLED", "no")
    monkeypatch.setenv("OWNERSHIP_INTEGRATION_ANNOTATIONS", "a/slug, b/slug ,")
    settings = load_settings(config_path=None, cli_overrides={}).settings
    assert settings.cache_enabled is False
    assert settings.integration_annotations == ("a/slug", "b/slug")


@pytest.mark.parametrize(
    "name,value",
    [
        ("OWNERSHIP_CACHE_TTL_SECONDS", "-1"),
        ("OWNERSHIP_CACHE_TTL_SECONDS", "soon"),
        ("OWNERSHIP_CACHE_ENABLED", "maybe"),
        ("OWNERSHIP_DEFAULT_VIEW", "mine"),
    ],
)
def test_invalid_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        load_settings(config_path=None, cli_overrides={})


def test_cli_view_follows_config_default(tmp_path):
    cfg = tmp_path / "view.yml"
    cfg.write_text("default_view: all\n", encoding="utf-8")
    apps = tmp_path / "apps.json"
    apps.write_text(json.dumps([{"metadata": {"name": "a"}, "spec": {"owner": "user:default/alice"}}]), encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "--config", str(cfg),
            "--log-dir", str(tmp_path / "logs"),
            "resolve",
            "--user", "user:default/alice",
            "--ref", "user:default/alice",
            "--apps", str(apps),
        ],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["view"] == "all"
    assert payload["applications"][0]["accessLevel"] == "full"


def test_cli_rejects_invalid_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("OWNERSHIP_DEFAULT_VIEW", "everything")
    result = runner.invoke(app, ["--log-dir", str(tmp_path), "members", "--user", "user:default/a"])
    assert result.exit_code == 2
    assert "invalid settings" in result.output

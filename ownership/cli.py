from __future__ import annotations

import logging
import time

import typer

from ownership.common.run_id import generate_run_id
from ownership.common.sanitize import maskSecret
from ownership.common.time import getDurationMs
from ownership.config import VIEW_MODES, Settings, load_settings
from ownership.domain.exceptions import ContractViolationError
from ownership.domain.models import Application, UserIdentity
from ownership.infra.artifacts.json_output import (
    dumps,
    groups_to_list,
    owned_to_dict,
    owner_to_dict,
    snapshot_to_dict,
)
from ownership.infra.http.catalog_client import ApiError, CatalogApiClient
from ownership.infra.http.catalog_gateway import CatalogGateway
from ownership.infra.sources.entities import (
    EntitiesFormatError,
    applications_from_entities,
    is_deployment_enabled,
    load_entities_file,
)
from ownership.loggingSetup import closeLogger, createCommandLogger, logEvent
from ownership.usecases.factory import build_resolver_service

app = typer.Typer(no_args_is_help=True, add_completion=False)


class InputError(Exception):
    """Ошибка входных данных команды (exit code 2)."""


def printRunHeader(logger: logging.Logger, runId: str, command: str, settings: Settings, sources: list[str]) -> None:
    """
    Назначение:
        Пишет в лог безопасную сводку параметров запуска (без секретов).
    """
    logEvent(
        logger,
        logging.INFO,
        runId,
        "core",
        f"run_id={runId} command={command} catalog_url={settings.catalog_url} "
        f"catalog_token={maskSecret(settings.catalog_token)} sources={sources} "
        f"cache_enabled={settings.cache_enabled} cache_ttl_seconds={settings.cache_ttl_seconds} "
        f"log_level={settings.log_level}",
    )


def runCommand(ctx: typer.Context, commandName: str, runner) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога
        - открывает клиент каталога (если задан catalog_url) и закрывает его в finally
        - переводит ошибки входа/каталога в exit code 2

    Входные данные:
        runner: Callable[[logging.Logger, CatalogGateway | None], int]
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    startMonotonic = time.monotonic()
    logger, _logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
    )

    client: CatalogApiClient | None = None
    exitCode = 0
    try:
        logEvent(logger, logging.INFO, runId, "core", "Command started")
        printRunHeader(logger, runId, commandName, settings, sources)
        gateway: CatalogGateway | None = None
        if settings.catalog_url:
            client = CatalogApiClient(
                baseUrl=settings.catalog_url,
                token=settings.catalog_token,
                timeoutSeconds=settings.timeout_seconds,
                retries=settings.retries,
                retryBackoffSeconds=settings.retry_backoff_seconds,
            )
            gateway = CatalogGateway(client)
        try:
            exitCode = runner(logger, gateway)
        except (InputError, EntitiesFormatError, FileNotFoundError) as exc:
            logEvent(logger, logging.ERROR, runId, "input", str(exc))
            typer.echo(f"ERROR: {exc}", err=True)
            exitCode = 2
        except ContractViolationError as exc:
            logEvent(logger, logging.ERROR, runId, "input", f"{exc.code}: {exc.message}")
            typer.echo(f"ERROR: {exc.message}", err=True)
            exitCode = 2
        except ApiError as exc:
            logEvent(logger, logging.ERROR, runId, "catalog", f"Catalog request failed: {exc.code} {exc.message}")
            typer.echo("ERROR: catalog request failed (see logs)", err=True)
            exitCode = 2
    finally:
        if client is not None:
            client.close()
        durationMs = getDurationMs(startMonotonic, time.monotonic())
        logEvent(logger, logging.INFO, runId, "core", f"Command finished exit_code={exitCode} duration_ms={durationMs}")
        closeLogger(logger)

    if exitCode:
        raise typer.Exit(code=exitCode)


def buildIdentity(user: str | None, refs: list[str] | None) -> UserIdentity:
    if not user or not user.strip():
        raise InputError("--user is required")
    return UserIdentity(user_ref=user.strip(), ownership_refs=tuple(refs or ()))


def loadApplications(
    appsPath: str | None,
    gateway: CatalogGateway | None,
    deployableOnly: bool = False,
) -> list[Application]:
    """
    Назначение:
        Набор приложений: из файла (--apps) либо из каталога, если файл не задан.
    """
    if appsPath:
        entities = load_entities_file(appsPath)
    elif gateway is not None:
        entities = gateway.list_components()
    else:
        raise InputError("--apps is required when catalog_url is not configured")
    applications = applications_from_entities(entities)
    if deployableOnly:
        applications = [a for a in applications if is_deployment_enabled(a)]
    return applications


@app.callback()
def root(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to YAML config"),
    catalogUrl: str | None = typer.Option(None, "--catalog-url", help="Catalog base URL"),
    catalogToken: str | None = typer.Option(None, "--catalog-token", help="Catalog bearer token"),
    timeoutSeconds: float | None = typer.Option(None, "--timeout-seconds", help="Catalog lookup timeout"),
    enrichBudgetSeconds: float | None = typer.Option(
        None,
        "--enrich-budget-seconds",
        help="Overall display-name lookup budget per resolution",
    ),
    cacheTtlSeconds: float | None = typer.Option(None, "--cache-ttl-seconds", help="Ownership cache TTL"),
    cacheEnabled: bool | None = typer.Option(
        None,
        "--cache/--no-cache",
        help="Enable ownership cache",
        show_default=True,
    ),
    logLevel: str | None = typer.Option(None, "--log-level", help="ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for log files"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (generated if omitted)"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - сохраняет всё в ctx.obj для подкоманд
    """
    if not runId:
        runId = generate_run_id()

    cliOverrides = {
        "catalog_url": catalogUrl,
        "catalog_token": catalogToken,
        "timeout_seconds": timeoutSeconds,
        "enrich_budget_seconds": enrichBudgetSeconds,
        "cache_ttl_seconds": cacheTtlSeconds,
        "cache_enabled": cacheEnabled,
        "log_level": logLevel,
        "log_dir": logDir,
    }
    try:
        loaded = load_settings(config_path=config, cli_overrides=cliOverrides)
    except ValueError as exc:
        typer.echo(f"ERROR: invalid settings: {exc}", err=True)
        raise typer.Exit(code=2)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    user: str | None = typer.Option(None, "--user", help="User entity ref, e.g. user:default/alice"),
    refs: list[str] | None = typer.Option(None, "--ref", help="Ownership entity ref (repeatable)"),
    apps: str | None = typer.Option(None, "--apps", help="JSON/YAML file with catalog entities"),
    view: str | None = typer.Option(None, "--view", help="owned|all (defaults to settings.default_view)"),
    deployableOnly: bool = typer.Option(False, "--deployable-only", help="Only deployment-enabled components"),
):
    def execute(logger, gateway) -> int:
        settings: Settings = ctx.obj["settings"]
        mode = (view or settings.default_view).strip().lower()
        if mode not in VIEW_MODES:
            raise InputError(f"Unsupported view: {view} (expected owned|all)")
        identity = buildIdentity(user, refs)
        applications = loadApplications(apps, gateway, deployableOnly)
        service = build_resolver_service(settings, gateway, logger=logger, run_id=ctx.obj["runId"])

        snapshot = service.resolve(identity, applications)
        payload: dict = {"user": identity.user_ref, "view": mode}
        if mode == "owned":
            payload["owned"] = owned_to_dict(service.resolve_user_ownership(identity, applications))
        else:
            levels = service.access_levels(identity, applications)
            payload["applications"] = [
                {
                    "name": a.name,
                    "owner": owner_to_dict(snapshot.owner_by_application[a.name]),
                    "accessLevel": levels[a.name].value,
                }
                for a in applications
            ]
        payload["snapshot"] = snapshot_to_dict(snapshot)
        typer.echo(dumps(payload))
        return 0

    runCommand(ctx, "resolve", execute)


@app.command("access")
def access(
    ctx: typer.Context,
    user: str | None = typer.Option(None, "--user", help="User entity ref"),
    refs: list[str] | None = typer.Option(None, "--ref", help="Ownership entity ref (repeatable)"),
    appName: str | None = typer.Option(None, "--app", help="Application (component) name"),
    apps: str | None = typer.Option(None, "--apps", help="JSON/YAML file with catalog entities"),
):
    def execute(logger, gateway) -> int:
        if not appName:
            raise InputError("--app is required")
        identity = buildIdentity(user, refs)
        applications = loadApplications(apps, gateway)
        target = next((a for a in applications if a.name == appName), None)
        if target is None:
            raise InputError(f"Application not found: {appName}")
        service = build_resolver_service(ctx.obj["settings"], gateway, logger=logger, run_id=ctx.obj["runId"])
        level = service.access_level(identity, target)
        typer.echo(dumps({"user": identity.user_ref, "application": target.name, "accessLevel": level.value}))
        return 0

    runCommand(ctx, "access", execute)


@app.command("groups")
def groups(
    ctx: typer.Context,
    user: str | None = typer.Option(None, "--user", help="User entity ref"),
    refs: list[str] | None = typer.Option(None, "--ref", help="Ownership entity ref (repeatable)"),
    apps: str | None = typer.Option(None, "--apps", help="JSON/YAML file with catalog entities"),
    sortBy: str = typer.Option("name", "--sort", help="name|count"),
):
    def execute(logger, gateway) -> int:
        if sortBy not in ("name", "count"):
            raise InputError(f"Unsupported sort: {sortBy} (expected name|count)")
        identity = buildIdentity(user, refs)
        applications = loadApplications(apps, gateway)
        service = build_resolver_service(ctx.obj["settings"], gateway, logger=logger, run_id=ctx.obj["runId"])
        result = service.group_applications(identity, applications, sortBy)
        typer.echo(dumps({"user": identity.user_ref, "groups": groups_to_list(result)}))
        return 0

    runCommand(ctx, "groups", execute)


@app.command("members")
def members(
    ctx: typer.Context,
    user: str | None = typer.Option(None, "--user", help="User entity ref"),
    refs: list[str] | None = typer.Option(None, "--ref", help="Ownership entity ref (repeatable)"),
    candidates: list[str] | None = typer.Option(None, "--group", help="Candidate group name (repeatable)"),
):
    def execute(logger, gateway) -> int:
        identity = buildIdentity(user, refs)
        service = build_resolver_service(ctx.obj["settings"], None, logger=logger, run_id=ctx.obj["runId"])
        typer.echo(dumps({"user": identity.user_ref, "groups": service.members_of(identity, candidates or [])}))
        return 0

    runCommand(ctx, "members", execute)


@app.command("check-catalog")
def checkCatalog(ctx: typer.Context):
    def execute(logger, gateway) -> int:
        if gateway is None:
            raise InputError("catalog_url is not configured")
        count = gateway.check()
        logEvent(logger, logging.INFO, ctx.obj["runId"], "catalog", f"Catalog reachable sample={count}")
        typer.echo(f"catalog=OK sample_entities={count}")
        return 0

    runCommand(ctx, "check-catalog", execute)

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from ownership.domain.constants import DEFAULT_NAMESPACE
from ownership.domain.error_codes import ErrorCode
from ownership.domain.ports.catalog import CatalogLookupProtocol, ComponentSourceProtocol
from ownership.infra.http.catalog_client import ApiError, CatalogApiClient

ENTITIES_PATH = "/api/catalog/entities"
ENTITY_BY_NAME_PATH = "/api/catalog/entities/by-name/{kind}/{namespace}/{name}"


def split_entity_ref(entity_ref: str) -> tuple[str, str, str]:
    """
    Назначение:
        Разбор ссылки сущности "Kind:namespace/name" на (kind, namespace, name).

    Поведение:
        - Без namespace используется "default".
        - Без kind -> ValueError (ссылку для каталога строит сам резолвер, тип всегда известен).
    """
    if ":" not in entity_ref:
        raise ValueError(f"Entity ref must include kind: {entity_ref}")
    kind, rest = entity_ref.split(":", 1)
    if "/" in rest:
        namespace, name = rest.split("/", 1)
    else:
        namespace, name = DEFAULT_NAMESPACE, rest
    if not kind or not name:
        raise ValueError(f"Invalid entity ref: {entity_ref}")
    return kind, namespace or DEFAULT_NAMESPACE, name


def _extract_items(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return data["items"]
    raise ApiError(
        "Unexpected response format: no items array",
        code=ErrorCode.INVALID_ITEMS_FORMAT.value,
        retryable=False,
    )


class CatalogGateway(CatalogLookupProtocol, ComponentSourceProtocol):
    """
    Назначение/ответственность:
        Адаптер каталога поверх CatalogApiClient для резолвера и CLI.
    Ограничения:
        - get_entity_by_ref: 404 -> None; при заданном timeout ретраи отключаются,
          чтобы ожидание не выходило за бюджет вызывающего.
        - Прочие ошибки пробрасываются как ApiError; их поглощает enricher.
    """

    def __init__(self, client: CatalogApiClient):
        self.client = client

    def get_entity_by_ref(self, entity_ref: str, timeout: float | None = None) -> dict[str, Any] | None:
        kind, namespace, name = split_entity_ref(entity_ref)
        path = ENTITY_BY_NAME_PATH.format(
            kind=quote(kind, safe=""),
            namespace=quote(namespace, safe=""),
            name=quote(name, safe=""),
        )
        data = self.client.getJson(
            path,
            timeout=timeout,
            retries=0 if timeout is not None else None,
            allowNotFound=True,
        )
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ApiError("Unexpected entity format", code=ErrorCode.INVALID_ITEMS_FORMAT.value)
        return data

    def list_components(self) -> list[dict[str, Any]]:
        data = self.client.getJson(ENTITIES_PATH, params={"filter": "kind=component"})
        return [item for item in _extract_items(data) if isinstance(item, dict)]

    def check(self) -> int:
        """Проверка доступности каталога; возвращает число сущностей в пробной выборке."""
        data = self.client.getJson(ENTITIES_PATH, params={"limit": 1})
        return len(_extract_items(data))


__all__ = ["CatalogGateway", "split_entity_ref"]

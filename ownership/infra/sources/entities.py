from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from ownership.domain.constants import DEPLOYMENT_ENABLED_ANNOTATION
from ownership.domain.exceptions import InvalidApplicationError
from ownership.domain.models import Application
from ownership.domain.ownership.owner_ref import coerce_owner


class EntitiesFormatError(ValueError):
    pass


def application_from_entity(entity: Mapping[str, Any]) -> Application:
    """
    Назначение:
        Преобразование сущности каталога (metadata/spec) в Application.

    Поведение:
        - metadata.name обязателен, иначе InvalidApplicationError.
        - spec.owner приводится к OwnerRef (строка или структура); пустой -> None.
        - Нестроковые значения аннотаций отбрасываются.
    """
    metadata = entity.get("metadata") or {}
    spec = entity.get("spec") or {}
    if not isinstance(metadata, Mapping) or not isinstance(spec, Mapping):
        raise InvalidApplicationError("entity metadata/spec must be objects")
    name = metadata.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidApplicationError("entity metadata.name is required")
    raw_annotations = metadata.get("annotations") or {}
    annotations = {
        str(k): v for k, v in raw_annotations.items() if isinstance(v, str)
    } if isinstance(raw_annotations, Mapping) else {}
    title = metadata.get("title")
    return Application(
        name=name,
        owner=coerce_owner(spec.get("owner")),
        annotations=annotations,
        title=title if isinstance(title, str) else None,
    )


def applications_from_entities(entities: Iterable[Mapping[str, Any]]) -> list[Application]:
    return [application_from_entity(entity) for entity in entities]


def is_deployment_enabled(application: Application) -> bool:
    value = (application.annotations or {}).get(DEPLOYMENT_ENABLED_ANNOTATION)
    return isinstance(value, str) and value.strip().lower() == "true"


def load_entities_file(path: str | Path) -> list[dict[str, Any]]:
    """
    Назначение:
        Чтение сущностей каталога из JSON/YAML-файла.

    Входные данные:
        path: файл со списком сущностей либо объектом {"items": [...]}.
            YAML допускает несколько документов (по сущности на документ).

    Выходные данные:
        list[dict]
    """
    p = Path(path)
    if not p.exists() or not p.is_file():
        raise FileNotFoundError(f"Entities file not found: {path}")
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise EntitiesFormatError(f"Invalid JSON in {path}: {exc}") from exc
    else:
        try:
            documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
        except yaml.YAMLError as exc:
            raise EntitiesFormatError(f"Invalid YAML in {path}: {exc}") from exc
        data = documents[0] if len(documents) == 1 else documents

    if isinstance(data, dict) and isinstance(data.get("items"), list):
        data = data["items"]
    elif isinstance(data, dict):
        data = [data]
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise EntitiesFormatError(f"Expected a list of entities in {path}")
    return data


__all__ = [
    "EntitiesFormatError",
    "application_from_entity",
    "applications_from_entities",
    "is_deployment_enabled",
    "load_entities_file",
]

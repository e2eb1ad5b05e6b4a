from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CatalogLookupProtocol(Protocol):
    """
    Назначение:
        Абстракция каталога сущностей для обогащения владельцев.

    Контракт:
        - get_entity_by_ref(entity_ref, timeout) -> dict | None
            Возвращает сущность каталога или None, если не найдено.
            "Не найдено" не является ошибкой; транспортные ошибки могут бросаться,
            вызывающая сторона обязана их перехватить.
        - timeout: float | None
            Верхняя граница ожидания в секундах, задаётся вызывающим.
    """

    def get_entity_by_ref(self, entity_ref: str, timeout: float | None = None) -> dict[str, Any] | None: ...


@runtime_checkable
class ComponentSourceProtocol(Protocol):
    """
    Назначение:
        Источник сущностей-компонентов каталога (набор приложений для резолвера).
    """

    def list_components(self) -> list[dict[str, Any]]: ...


__all__ = ["CatalogLookupProtocol", "ComponentSourceProtocol"]

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ownership.domain.models import OwnerDescriptor, OwnerKind, OwnerRef, RawOwnerRef, StructuredOwnerRef

GROUP_REF_PREFIXES = ("group:", "Group:")


def tail_segment(ref: str) -> str:
    """Часть ссылки после последнего '/' (вся строка, если '/' нет)."""
    return ref.rsplit("/", 1)[-1]


def parse_owner_ref(raw: str) -> OwnerDescriptor:
    """
    Назначение:
        Разбор owner-ссылки в типизированного владельца.

    Входные данные:
        raw: str
            Непустая ссылка: "user:default/john.doe", "Group:default/platform-team",
            "group:platform-team", "platform-team".

    Выходные данные:
        OwnerDescriptor
            display_name совпадает с canonical_name (обогащение выполняется отдельно).

    Алгоритм:
        - Есть ':' -> делим по первому ':' на (kind_token, rest).
          kind_token сравнивается с "user" без учёта регистра; всё остальное -> GROUP.
        - Есть '/' в rest -> имя после последнего '/', namespace отбрасывается.
        - Нет ':' -> вся строка является именем, тип GROUP.

    Функция тотальна: не делает I/O и не бросает исключений.
    """
    if ":" in raw:
        kind_token, rest = raw.split(":", 1)
        kind = OwnerKind.USER if kind_token.lower() == "user" else OwnerKind.GROUP
        name = tail_segment(rest) if "/" in rest else rest
    else:
        kind = OwnerKind.GROUP
        name = raw
    return OwnerDescriptor(kind=kind, canonical_name=name, display_name=name)


def coerce_owner(value: Any) -> OwnerRef | None:
    """
    Назначение:
        Приведение поля owner сущности каталога (строка или структура) к OwnerRef.

    Поведение:
        - None и пустая строка -> None (владелец не назначен).
        - str -> RawOwnerRef.
        - Mapping с ключом name -> StructuredOwnerRef.
        - Любое другое значение -> RawOwnerRef(str(value)).
    """
    if value is None:
        return None
    if isinstance(value, (RawOwnerRef, StructuredOwnerRef)):
        return value
    if isinstance(value, str):
        return RawOwnerRef(value) if value.strip() else None
    if isinstance(value, Mapping):
        name = value.get("name")
        if isinstance(name, str) and name.strip():
            return StructuredOwnerRef(
                name=name,
                kind=value.get("kind") or None,
                namespace=value.get("namespace") or None,
            )
        return None
    text = str(value)
    return RawOwnerRef(text) if text.strip() else None


def normalize_owner(owner: OwnerRef | None) -> str | None:
    """Единая строковая форма владельца перед разбором; None, если владелец не задан."""
    if owner is None:
        return None
    ref = owner.as_ref()
    if not ref or not ref.strip():
        return None
    return ref


def extract_user_groups(ownership_refs: Iterable[str]) -> frozenset[str]:
    """
    Назначение:
        Имена групп пользователя из ownership-ссылок.

    Алгоритм:
        - Берутся только ссылки с префиксом "group:" или "Group:" (ровно эти два написания).
        - Имя группы: часть после последнего '/'.
    """
    return frozenset(tail_segment(ref) for ref in ownership_refs if ref.startswith(GROUP_REF_PREFIXES))


__all__ = [
    "GROUP_REF_PREFIXES",
    "coerce_owner",
    "extract_user_groups",
    "normalize_owner",
    "parse_owner_ref",
    "tail_segment",
]

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Union


class OwnerKind(str, Enum):
    """
    Назначение:
        Тип владельца приложения.
    """

    USER = "user"
    GROUP = "group"


_ACCESS_RANK = {"none": 0, "limited": 1, "full": 2}


class AccessLevel(str, Enum):
    """
    Назначение:
        Грубый уровень доступа пользователя к приложению.

    Инварианты/гарантии:
        - Полный порядок по привилегиям: FULL > LIMITED > NONE.
    """

    FULL = "full"
    LIMITED = "limited"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _ACCESS_RANK[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, AccessLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, AccessLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, AccessLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, AccessLevel):
            return NotImplemented
        return self.rank >= other.rank


@dataclass(frozen=True)
class RawOwnerRef:
    """Владелец в каталоге задан строкой как есть."""

    value: str

    def as_ref(self) -> str:
        return self.value


@dataclass(frozen=True)
class StructuredOwnerRef:
    """
    Назначение:
        Владелец в каталоге задан структурой {kind, namespace, name}.
    """

    name: str
    kind: str | None = None
    namespace: str | None = None

    def as_ref(self) -> str:
        path = f"{self.namespace}/{self.name}" if self.namespace else self.name
        if self.kind:
            return f"{self.kind}:{path}"
        return path


OwnerRef = Union[RawOwnerRef, StructuredOwnerRef]


@dataclass(frozen=True)
class UserIdentity:
    """
    Назначение:
        Аутентифицированный пользователь и его заявленные ownership-ссылки.

    Поля:
        user_ref: каноническая ссылка "<kind>:<namespace>/<name>".
        ownership_refs: ссылки на группы/идентичности пользователя;
            порядок не важен, дубликаты допустимы.
    """

    user_ref: str
    ownership_refs: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        refs = self.ownership_refs
        if isinstance(refs, Iterable) and not isinstance(refs, (tuple, str, bytes)):
            object.__setattr__(self, "ownership_refs", tuple(refs))


@dataclass(frozen=True)
class Application:
    """
    Назначение:
        Приложение из каталога в том объёме, который нужен резолверу.
        Ядро никогда не изменяет экземпляр.
    """

    name: str
    owner: OwnerRef | None = None
    annotations: Mapping[str, str] = field(default_factory=dict)
    title: str | None = None

    def __post_init__(self) -> None:
        # строковый owner приводится к RawOwnerRef
        if isinstance(self.owner, str):
            object.__setattr__(self, "owner", RawOwnerRef(self.owner) if self.owner.strip() else None)


@dataclass(frozen=True)
class OwnerDescriptor:
    """
    Назначение:
        Типизированный владелец, полученный разбором owner-ссылки.
    """

    kind: OwnerKind
    canonical_name: str
    display_name: str

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.canonical_name}"


UNASSIGNED_OWNER = OwnerDescriptor(kind=OwnerKind.GROUP, canonical_name="unassigned", display_name="Unassigned")


@dataclass(frozen=True)
class OwnershipSnapshot:
    """
    Назначение:
        Сводка владения приложениями для одного пользователя.

    Инварианты/гарантии:
        - Каждое имя из user_owned и из значений group_owned является ключом owner_by_application.
        - Имя приложения встречается не более чем в одном из: user_owned, любом множестве group_owned.
        - Экземпляр может разделяться через кэш между вызовами: не изменять.
    """

    user_owned: frozenset[str] = frozenset()
    group_owned: Mapping[str, frozenset[str]] = field(default_factory=dict)
    owner_by_application: Mapping[str, OwnerDescriptor] = field(default_factory=dict)
    user_groups: frozenset[str] = frozenset()

    def is_user_owned(self, application_name: str) -> bool:
        return application_name in self.user_owned

    def owning_group(self, application_name: str) -> str | None:
        for group_name, names in self.group_owned.items():
            if application_name in names:
                return group_name
        return None

    def is_group_owned(self, application_name: str) -> bool:
        return self.owning_group(application_name) is not None

    def is_owned(self, application_name: str) -> bool:
        return self.is_user_owned(application_name) or self.is_group_owned(application_name)


@dataclass(frozen=True)
class OwnedApplications:
    """
    Назначение:
        Приложения пользователя по типу владения; порядок повторяет входной список.
    """

    directly_owned: tuple[Application, ...] = ()
    group_owned: tuple[Application, ...] = ()

    @property
    def all_owned(self) -> tuple[Application, ...]:
        return self.directly_owned + self.group_owned


@dataclass
class ApplicationGroup:
    """
    Назначение:
        Группа приложений одного владельца для отображения.
    """

    owner: OwnerDescriptor
    applications: list[Application] = field(default_factory=list)
    is_user_group: bool = False
    access_level: AccessLevel = AccessLevel.LIMITED


__all__ = [
    "AccessLevel",
    "Application",
    "ApplicationGroup",
    "OwnedApplications",
    "OwnerDescriptor",
    "OwnerKind",
    "OwnerRef",
    "OwnershipSnapshot",
    "RawOwnerRef",
    "StructuredOwnerRef",
    "UNASSIGNED_OWNER",
    "UserIdentity",
]

from __future__ import annotations

import re
from typing import Literal, Sequence

from ownership.domain.models import (
    UNASSIGNED_OWNER,
    AccessLevel,
    Application,
    ApplicationGroup,
    OwnerDescriptor,
    OwnerKind,
    OwnershipSnapshot,
)
from ownership.domain.ownership.owner_ref import normalize_owner, parse_owner_ref

SortBy = Literal["name", "count"]

_WORD_SEPARATORS = re.compile(r"[._-]")


def humanize_name(name: str) -> str:
    """'john.doe' -> 'John Doe', 'platform-team' -> 'Platform Team'."""
    words = _WORD_SEPARATORS.sub(" ", name).split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words)


class ApplicationGrouper:
    """
    Назначение/ответственность:
        Группировка приложений по основному владельцу для представлений.
    """

    def group_by_owner(
        self,
        applications: Sequence[Application],
        snapshot: OwnershipSnapshot,
    ) -> list[ApplicationGroup]:
        groups: dict[str, ApplicationGroup] = {}
        for application in applications:
            owner = self.primary_owner(application, snapshot)
            group = groups.get(owner.key)
            if group is None:
                group = ApplicationGroup(
                    owner=owner,
                    applications=[],
                    is_user_group=owner.canonical_name in snapshot.user_groups
                    or snapshot.is_user_owned(application.name),
                    access_level=self._group_access_level(owner, snapshot),
                )
                groups[owner.key] = group
            group.applications.append(application)
        return list(groups.values())

    def sort_groups(self, groups: Sequence[ApplicationGroup], sort_by: SortBy = "name") -> list[ApplicationGroup]:
        """
        Назначение:
            Сортировка групп: по display-имени (по возрастанию) либо по числу
            приложений (по убыванию, при равенстве по имени).
        """
        if sort_by not in ("name", "count"):
            raise ValueError(f"Unsupported sort: {sort_by}")
        if sort_by == "count":
            return sorted(groups, key=lambda g: (-len(g.applications), g.owner.display_name.casefold()))
        return sorted(groups, key=lambda g: g.owner.display_name.casefold())

    def primary_owner(self, application: Application, snapshot: OwnershipSnapshot) -> OwnerDescriptor:
        known = snapshot.owner_by_application.get(application.name)
        if known is not None:
            return known
        raw_owner = normalize_owner(application.owner)
        if raw_owner is None:
            return UNASSIGNED_OWNER
        parsed = parse_owner_ref(raw_owner)
        return OwnerDescriptor(
            kind=parsed.kind,
            canonical_name=parsed.canonical_name,
            display_name=humanize_name(parsed.canonical_name),
        )

    def _group_access_level(self, owner: OwnerDescriptor, snapshot: OwnershipSnapshot) -> AccessLevel:
        if owner.kind == OwnerKind.GROUP and owner.canonical_name in snapshot.user_groups:
            return AccessLevel.FULL
        if owner.kind == OwnerKind.USER:
            for name in snapshot.user_owned:
                owned_by = snapshot.owner_by_application.get(name)
                if owned_by is not None and owned_by.key == owner.key:
                    return AccessLevel.FULL
        return AccessLevel.LIMITED


__all__ = ["ApplicationGrouper", "SortBy", "humanize_name"]

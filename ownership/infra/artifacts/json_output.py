from __future__ import annotations

import json
from typing import Any, Sequence

from ownership.domain.models import (
    Application,
    ApplicationGroup,
    OwnedApplications,
    OwnerDescriptor,
    OwnershipSnapshot,
)


def owner_to_dict(owner: OwnerDescriptor) -> dict[str, str]:
    return {"type": owner.kind.value, "name": owner.canonical_name, "displayName": owner.display_name}


def snapshot_to_dict(snapshot: OwnershipSnapshot) -> dict[str, Any]:
    """Снимок владения в JSON-совместимом виде со стабильным порядком ключей и списков."""
    return {
        "userOwned": sorted(snapshot.user_owned),
        "groupOwned": {group: sorted(names) for group, names in sorted(snapshot.group_owned.items())},
        "ownerMap": {name: owner_to_dict(owner) for name, owner in sorted(snapshot.owner_by_application.items())},
        "userGroups": sorted(snapshot.user_groups),
    }


def _names(applications: Sequence[Application]) -> list[str]:
    return [app.name for app in applications]


def owned_to_dict(owned: OwnedApplications) -> dict[str, list[str]]:
    return {
        "directlyOwned": _names(owned.directly_owned),
        "groupOwned": _names(owned.group_owned),
        "allOwned": _names(owned.all_owned),
    }


def groups_to_list(groups: Sequence[ApplicationGroup]) -> list[dict[str, Any]]:
    return [
        {
            "owner": owner_to_dict(group.owner),
            "applications": _names(group.applications),
            "isUserGroup": group.is_user_group,
            "accessLevel": group.access_level.value,
        }
        for group in groups
    ]


def dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


__all__ = ["dumps", "groups_to_list", "owned_to_dict", "owner_to_dict", "snapshot_to_dict"]

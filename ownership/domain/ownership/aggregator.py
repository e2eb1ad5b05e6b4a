from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from ownership.domain.models import (
    UNASSIGNED_OWNER,
    Application,
    OwnerDescriptor,
    OwnerKind,
    OwnershipSnapshot,
    UserIdentity,
)
from ownership.domain.ownership.enricher import DisplayNameEnricher, EnrichOutcome, EnrichStatus
from ownership.domain.ownership.owner_ref import extract_user_groups, normalize_owner, parse_owner_ref, tail_segment
from ownership.loggingSetup import logEvent

_DEFAULT_LOGGER = logging.getLogger("ownership.aggregator")


def is_direct_owner(user: UserIdentity, descriptor: OwnerDescriptor, raw_owner: str) -> bool:
    """
    Назначение:
        Решение о прямом владении приложением с owner-типом USER.

    Алгоритм:
        Требуются оба условия:
        - имя владельца совпадает с хвостом user_ref, либо raw-ссылка равна user_ref;
        - ownership_refs содержит raw-ссылку или ссылку с тем же хвостом.
        Одного совпадения имён недостаточно: утверждение identity-системы обязательно.
    """
    name_matches = tail_segment(user.user_ref) == descriptor.canonical_name or user.user_ref == raw_owner
    if not name_matches:
        return False
    return any(
        ref == raw_owner or tail_segment(ref) == descriptor.canonical_name
        for ref in user.ownership_refs
    )


class OwnershipAggregator:
    """
    Назначение/ответственность:
        Сборка OwnershipSnapshot для пользователя по набору приложений.
    Ограничения:
        - Сам не кэширует; снимок собирается целиком в памяти.
        - Обогащение вызывается не более одного раза на владельца за резолв.
    """

    def __init__(
        self,
        enricher: DisplayNameEnricher | None = None,
        *,
        enrich_budget_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
        run_id: str = "-",
    ) -> None:
        self.enricher = enricher
        self.enrich_budget_seconds = enrich_budget_seconds
        self.clock = clock
        self.logger = logger or _DEFAULT_LOGGER
        self.run_id = run_id

    def resolve(self, user: UserIdentity, applications: Sequence[Application]) -> OwnershipSnapshot:
        user_groups = extract_user_groups(user.ownership_refs)
        deadline = self.clock() + self.enrich_budget_seconds if self.enrich_budget_seconds is not None else None

        user_owned: set[str] = set()
        group_owned: dict[str, set[str]] = {}
        owner_by_application: dict[str, OwnerDescriptor] = {}
        enriched: dict[str, EnrichOutcome] = {}
        fallbacks = 0

        for app in applications:
            if app.name in owner_by_application:
                # повтор имени: побеждает последнее вхождение
                user_owned.discard(app.name)
                for names in group_owned.values():
                    names.discard(app.name)
            raw_owner = normalize_owner(app.owner)
            if raw_owner is None:
                owner_by_application[app.name] = UNASSIGNED_OWNER
                continue

            parsed = parse_owner_ref(raw_owner)
            outcome = enriched.get(parsed.key)
            if outcome is None:
                outcome = self._enrich(parsed, deadline)
                enriched[parsed.key] = outcome
                if not outcome.resolved:
                    fallbacks += 1
            descriptor = outcome.descriptor
            owner_by_application[app.name] = descriptor

            if descriptor.kind == OwnerKind.USER:
                if is_direct_owner(user, descriptor, raw_owner):
                    user_owned.add(app.name)
            elif descriptor.canonical_name in user_groups:
                group_owned.setdefault(descriptor.canonical_name, set()).add(app.name)

        logEvent(
            self.logger,
            logging.DEBUG,
            self.run_id,
            "aggregate",
            f"Resolved ownership user={user.user_ref} apps={len(applications)} "
            f"user_owned={len(user_owned)} group_buckets={len(group_owned)} enrich_fallbacks={fallbacks}",
        )
        return OwnershipSnapshot(
            user_owned=frozenset(user_owned),
            group_owned={group: frozenset(names) for group, names in group_owned.items() if names},
            owner_by_application=owner_by_application,
            user_groups=user_groups,
        )

    def _enrich(self, descriptor: OwnerDescriptor, deadline: float | None) -> EnrichOutcome:
        if self.enricher is None:
            return EnrichOutcome(descriptor, EnrichStatus.FALLBACK, "no_catalog")
        return self.enricher.enrich(descriptor, deadline=deadline)


__all__ = ["OwnershipAggregator", "is_direct_owner"]

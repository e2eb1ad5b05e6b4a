from __future__ import annotations

import logging
from typing import Iterable, Sequence

from ownership.domain.contracts import require_applications, require_identity
from ownership.domain.models import (
    AccessLevel,
    Application,
    ApplicationGroup,
    OwnedApplications,
    OwnershipSnapshot,
    UserIdentity,
)
from ownership.domain.ownership.access import AccessLevelEvaluator
from ownership.domain.ownership.aggregator import OwnershipAggregator
from ownership.domain.ownership.grouper import ApplicationGrouper, SortBy
from ownership.domain.ownership.owner_ref import extract_user_groups
from ownership.infra.cache.resolution_cache import ResolutionCache, build_cache_key
from ownership.loggingSetup import logEvent

_DEFAULT_LOGGER = logging.getLogger("ownership.resolver")


def _last_occurrences(applications: Sequence[Application]) -> list[Application]:
    """Приложения без повторов имени: остаётся последнее вхождение, на его позиции."""
    last_index = {app.name: index for index, app in enumerate(applications)}
    return [app for index, app in enumerate(applications) if last_index[app.name] == index]


class OwnershipResolverService:
    """
    Назначение/ответственность:
        Точка входа резолвера владения: снимок (с кэшем), представление
        "мои приложения", уровень доступа, членство в группах, инвалидация.

    Взаимодействия:
        OwnershipAggregator собирает снимок; ResolutionCache хранит его по ключу
        (user_ref, набор имён приложений); AccessLevelEvaluator и ApplicationGrouper
        читают готовый снимок.

    Ограничения:
        - Нарушения контракта входа (identity/applications) пробрасываются сразу.
        - Снимок публикуется в кэш только целиком, после успешной сборки.
    """

    def __init__(
        self,
        aggregator: OwnershipAggregator,
        cache: ResolutionCache | None = None,
        evaluator: AccessLevelEvaluator | None = None,
        grouper: ApplicationGrouper | None = None,
        *,
        logger: logging.Logger | None = None,
        run_id: str = "-",
    ) -> None:
        self.aggregator = aggregator
        self.cache = cache if cache is not None else ResolutionCache()
        self.evaluator = evaluator or AccessLevelEvaluator()
        self.grouper = grouper or ApplicationGrouper()
        self.logger = logger or _DEFAULT_LOGGER
        self.run_id = run_id

    def resolve(self, user: UserIdentity, applications: Sequence[Application]) -> OwnershipSnapshot:
        require_identity(user)
        require_applications(applications)

        key = build_cache_key(user.user_ref, (app.name for app in applications))
        cached = self.cache.get(key)
        if cached is not None:
            logEvent(self.logger, logging.DEBUG, self.run_id, "cache", f"Cache hit key={key}")
            return cached

        snapshot = self.aggregator.resolve(user, applications)
        self.cache.put(key, snapshot)
        return snapshot

    def resolve_user_ownership(
        self,
        user: UserIdentity,
        applications: Sequence[Application],
    ) -> OwnedApplications:
        snapshot = self.resolve(user, applications)
        unique = _last_occurrences(applications)
        directly_owned = tuple(app for app in unique if snapshot.is_user_owned(app.name))
        group_owned = tuple(
            app
            for app in unique
            if not snapshot.is_user_owned(app.name) and snapshot.is_group_owned(app.name)
        )
        return OwnedApplications(directly_owned=directly_owned, group_owned=group_owned)

    def members_of(self, user: UserIdentity, candidate_groups: Iterable[str]) -> list[str]:
        """
        Назначение:
            Подмножество candidate_groups, членство в которых заявлено пользователем.
            Порядок кандидатов сохраняется, повторы убираются.
        """
        require_identity(user)
        user_groups = extract_user_groups(user.ownership_refs)
        members: list[str] = []
        for group in candidate_groups:
            if group in user_groups and group not in members:
                members.append(group)
        return members

    def access_level(self, user: UserIdentity, application: Application) -> AccessLevel:
        snapshot = self.resolve(user, [application])
        level = self.evaluator.evaluate(snapshot, application)
        logEvent(
            self.logger,
            logging.DEBUG,
            self.run_id,
            "access",
            f"Access user={user.user_ref} app={application.name} level={level.value}",
        )
        return level

    def access_levels(
        self,
        user: UserIdentity,
        applications: Sequence[Application],
    ) -> dict[str, AccessLevel]:
        """Уровни доступа ко всем приложениям набора по одному снимку."""
        snapshot = self.resolve(user, applications)
        return {app.name: self.evaluator.evaluate(snapshot, app) for app in applications}

    def group_applications(
        self,
        user: UserIdentity,
        applications: Sequence[Application],
        sort_by: SortBy = "name",
    ) -> list[ApplicationGroup]:
        snapshot = self.resolve(user, applications)
        groups = self.grouper.group_by_owner(_last_occurrences(applications), snapshot)
        return self.grouper.sort_groups(groups, sort_by)

    def invalidate(self, user_ref: str | None = None) -> int:
        removed = self.cache.invalidate(user_ref)
        logEvent(
            self.logger,
            logging.DEBUG,
            self.run_id,
            "cache",
            f"Cache invalidated user_ref={user_ref or '*'} removed={removed}",
        )
        return removed


__all__ = ["OwnershipResolverService"]

from __future__ import annotations

from typing import Iterable

from ownership.domain.constants import DEFAULT_INTEGRATION_ANNOTATIONS
from ownership.domain.models import AccessLevel, Application, OwnershipSnapshot


class AccessLevelEvaluator:
    """
    Назначение/ответственность:
        Вычисление уровня доступа к приложению по снимку владения.

    Алгоритм:
        - FULL: приложение во владении пользователя напрямую или через группу.
        - LIMITED: не во владении, но есть аннотация внешней интеграции
          (например, github.com/project-slug). Это временная политика видимости,
          а не проверка прав во внешней системе.
        - NONE: иначе.
    """

    def __init__(self, integration_annotations: Iterable[str] = DEFAULT_INTEGRATION_ANNOTATIONS) -> None:
        self.integration_annotations = tuple(integration_annotations)

    def has_integration(self, application: Application) -> bool:
        annotations = application.annotations or {}
        return any(annotations.get(key) for key in self.integration_annotations)

    def evaluate(self, snapshot: OwnershipSnapshot, application: Application) -> AccessLevel:
        if snapshot.is_owned(application.name):
            return AccessLevel.FULL
        if self.has_integration(application):
            return AccessLevel.LIMITED
        return AccessLevel.NONE


__all__ = ["AccessLevelEvaluator"]

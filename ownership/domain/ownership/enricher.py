from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable

from ownership.domain.constants import DEFAULT_NAMESPACE
from ownership.domain.models import OwnerDescriptor
from ownership.domain.ports.catalog import CatalogLookupProtocol
from ownership.loggingSetup import logEvent

_DEFAULT_LOGGER = logging.getLogger("ownership.enricher")


class EnrichStatus(str, Enum):
    RESOLVED = "resolved"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class EnrichOutcome:
    """
    Назначение:
        Результат обогащения владельца display-именем.

    Поля:
        descriptor: итоговый владелец (обогащённый либо исходный).
        status: RESOLVED, если каталог вернул сущность; иначе FALLBACK.
        reason: причина fallback (not_found | lookup_error | budget_exhausted | no_catalog).
    """

    descriptor: OwnerDescriptor
    status: EnrichStatus
    reason: str | None = None

    @property
    def resolved(self) -> bool:
        return self.status == EnrichStatus.RESOLVED


def build_entity_ref(descriptor: OwnerDescriptor) -> str:
    """Ссылка на сущность каталога: "<Kind>:default/<name>"."""
    kind = descriptor.kind.value
    return f"{kind[:1].upper()}{kind[1:]}:{DEFAULT_NAMESPACE}/{descriptor.canonical_name}"


def pick_display_name(entity: dict[str, Any], fallback: str) -> str:
    metadata = entity.get("metadata") if isinstance(entity, dict) else None
    if not isinstance(metadata, dict):
        return fallback
    return metadata.get("title") or metadata.get("name") or fallback


class DisplayNameEnricher:
    """
    Назначение/ответственность:
        Дополняет владельца человекочитаемым именем из каталога.

    Ограничения:
        - Политика fail-open: любые ошибки каталога поглощаются, владелец
          возвращается с прежним display_name.
        - Ожидание ограничено timeout_seconds и, если задан, общим дедлайном резолва.
    """

    def __init__(
        self,
        catalog: CatalogLookupProtocol | None,
        timeout_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
        run_id: str = "-",
    ) -> None:
        self.catalog = catalog
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.logger = logger or _DEFAULT_LOGGER
        self.run_id = run_id

    def enrich(self, descriptor: OwnerDescriptor, deadline: float | None = None) -> EnrichOutcome:
        """
        Контракт (вход/выход):
            Вход: владелец после разбора и необязательный дедлайн (по clock).
            Выход: EnrichOutcome; исключения наружу не выходят.
        """
        if self.catalog is None:
            return EnrichOutcome(descriptor, EnrichStatus.FALLBACK, "no_catalog")

        timeout = self.timeout_seconds
        if deadline is not None:
            remaining = deadline - self.clock()
            if remaining <= 0:
                return self._fallback(descriptor, "budget_exhausted")
            timeout = remaining if timeout is None else min(timeout, remaining)

        entity_ref = build_entity_ref(descriptor)
        try:
            entity = self.catalog.get_entity_by_ref(entity_ref, timeout=timeout)
        except Exception as exc:  # noqa: BLE001
            logEvent(
                self.logger,
                logging.WARNING,
                self.run_id,
                "enrich",
                f"Catalog lookup failed ref={entity_ref}: {exc}",
            )
            return EnrichOutcome(descriptor, EnrichStatus.FALLBACK, "lookup_error")

        if not entity:
            return self._fallback(descriptor, "not_found")

        display_name = pick_display_name(entity, descriptor.canonical_name)
        return EnrichOutcome(replace(descriptor, display_name=display_name), EnrichStatus.RESOLVED)

    def enrich_descriptor(self, descriptor: OwnerDescriptor) -> OwnerDescriptor:
        return self.enrich(descriptor).descriptor

    def _fallback(self, descriptor: OwnerDescriptor, reason: str) -> EnrichOutcome:
        logEvent(
            self.logger,
            logging.DEBUG,
            self.run_id,
            "enrich",
            f"Display name fallback owner={descriptor.key} reason={reason}",
        )
        return EnrichOutcome(descriptor, EnrichStatus.FALLBACK, reason)


__all__ = [
    "DisplayNameEnricher",
    "EnrichOutcome",
    "EnrichStatus",
    "build_entity_ref",
    "pick_display_name",
]

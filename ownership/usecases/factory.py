from __future__ import annotations

import logging
import time
from typing import Callable

from ownership.config import Settings
from ownership.domain.ownership.access import AccessLevelEvaluator
from ownership.domain.ownership.aggregator import OwnershipAggregator
from ownership.domain.ownership.enricher import DisplayNameEnricher
from ownership.domain.ports.catalog import CatalogLookupProtocol
from ownership.infra.cache.resolution_cache import ResolutionCache
from ownership.usecases.ownership_resolver import OwnershipResolverService


def build_resolver_service(
    settings: Settings,
    catalog: CatalogLookupProtocol | None = None,
    *,
    logger: logging.Logger | None = None,
    run_id: str = "-",
    clock: Callable[[], float] = time.monotonic,
) -> OwnershipResolverService:
    """
    Назначение:
        Сборка резолвера из настроек: enricher -> aggregator, собственный кэш
        (отдельный экземпляр на каждый резолвер), evaluator с аннотациями интеграций.
    """
    enricher = DisplayNameEnricher(
        catalog,
        timeout_seconds=settings.timeout_seconds,
        clock=clock,
        logger=logger,
        run_id=run_id,
    )
    aggregator = OwnershipAggregator(
        enricher,
        enrich_budget_seconds=settings.enrich_budget_seconds,
        clock=clock,
        logger=logger,
        run_id=run_id,
    )
    cache = ResolutionCache(
        ttl_seconds=settings.cache_ttl_seconds,
        enabled=settings.cache_enabled,
        clock=clock,
    )
    return OwnershipResolverService(
        aggregator,
        cache,
        AccessLevelEvaluator(settings.integration_annotations),
        logger=logger,
        run_id=run_id,
    )


__all__ = ["build_resolver_service"]

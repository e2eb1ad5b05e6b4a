from .owner_ref import coerce_owner, extract_user_groups, normalize_owner, parse_owner_ref, tail_segment
from .enricher import DisplayNameEnricher, EnrichOutcome, EnrichStatus, build_entity_ref
from .aggregator import OwnershipAggregator, is_direct_owner
from .access import AccessLevelEvaluator
from .grouper import ApplicationGrouper, humanize_name

__all__ = [
    "coerce_owner",
    "extract_user_groups",
    "normalize_owner",
    "parse_owner_ref",
    "tail_segment",
    "DisplayNameEnricher",
    "EnrichOutcome",
    "EnrichStatus",
    "build_entity_ref",
    "OwnershipAggregator",
    "is_direct_owner",
    "AccessLevelEvaluator",
    "ApplicationGrouper",
    "humanize_name",
]

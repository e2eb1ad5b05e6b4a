from __future__ import annotations

# Аннотации каталога, которые понимает резолвер.
GITHUB_PROJECT_SLUG_ANNOTATION = "github.com/project-slug"
DEPLOYMENT_ENABLED_ANNOTATION = "backstage.io/deployment-enabled"

DEFAULT_INTEGRATION_ANNOTATIONS: tuple[str, ...] = (GITHUB_PROJECT_SLUG_ANNOTATION,)

DEFAULT_NAMESPACE = "default"
DEFAULT_CACHE_TTL_SECONDS = 300.0
CACHE_KEY_PREFIX = "ownership"

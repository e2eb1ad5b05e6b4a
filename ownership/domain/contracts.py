from __future__ import annotations

from typing import Any, Sequence

from ownership.domain.exceptions import InvalidApplicationError, InvalidIdentityError
from ownership.domain.models import Application, RawOwnerRef, StructuredOwnerRef, UserIdentity


def require_identity(user: Any) -> UserIdentity:
    """
    Назначение:
        Проверка входной identity на входе резолвера (fail fast).

    Поведение:
        - Не UserIdentity, пустой user_ref или ownership_refs не последовательность строк
          -> InvalidIdentityError.
    """
    if not isinstance(user, UserIdentity):
        raise InvalidIdentityError(
            "user must be a UserIdentity",
            details={"type": type(user).__name__},
        )
    if not isinstance(user.user_ref, str) or not user.user_ref.strip():
        raise InvalidIdentityError("user_ref is required and must be a non-empty string")
    refs = user.ownership_refs
    if not isinstance(refs, tuple):
        raise InvalidIdentityError(
            "ownership_refs must be a sequence of strings",
            details={"user_ref": user.user_ref, "type": type(refs).__name__},
        )
    bad = [ref for ref in refs if not isinstance(ref, str)]
    if bad:
        raise InvalidIdentityError(
            "ownership_refs must contain only strings",
            details={"user_ref": user.user_ref, "invalid_count": len(bad)},
        )
    return user


def require_applications(applications: Any) -> Sequence[Application]:
    if isinstance(applications, (str, bytes)) or not isinstance(applications, Sequence):
        raise InvalidApplicationError(
            "applications must be a sequence of Application",
            details={"type": type(applications).__name__},
        )
    for index, app in enumerate(applications):
        if not isinstance(app, Application):
            raise InvalidApplicationError(
                "applications must contain only Application items",
                details={"index": index, "type": type(app).__name__},
            )
        if not isinstance(app.name, str) or not app.name.strip():
            raise InvalidApplicationError("application name is required", details={"index": index})
        if app.owner is not None and not isinstance(app.owner, (RawOwnerRef, StructuredOwnerRef)):
            raise InvalidApplicationError(
                "application owner must be a string or an owner reference",
                details={"index": index, "name": app.name, "type": type(app.owner).__name__},
            )
    return applications


__all__ = ["require_applications", "require_identity"]

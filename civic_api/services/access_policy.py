"""Pluggable capability checks for report mutations."""
from __future__ import annotations

import logging
from typing import Literal

from ..config import get_settings
from ..errors import AuthenticationError, PermissionDeniedError
from .auth_service import Actor

logger = logging.getLogger(__name__)

ReportAction = Literal["create", "update", "delete", "resolve"]


class AccessPolicy:
    """Decides whether ``actor`` may perform ``action`` on a report owned by ``owner_id``.

    Implementations raise instead of returning a flag so routers cannot forget
    to act on the outcome.
    """

    name = "base"

    def authorize(self, actor: Actor | None, action: ReportAction, owner_id: str) -> None:
        raise NotImplementedError


class OpenAccessPolicy(AccessPolicy):
    """Allows every caller, authenticated or not."""

    name = "open"

    def authorize(self, actor: Actor | None, action: ReportAction, owner_id: str) -> None:
        return None


class OwnerOrAdminPolicy(AccessPolicy):
    """Owners manage their own reports; resolving is reserved for admins."""

    name = "owner_or_admin"
    admin_only_actions: frozenset[str] = frozenset({"resolve"})

    def authorize(self, actor: Actor | None, action: ReportAction, owner_id: str) -> None:
        if actor is None:
            raise AuthenticationError(f"Authentication required to {action} reports")
        if actor.is_admin:
            return
        if action in self.admin_only_actions:
            logger.warning("User %s denied %s on report owned by %s", actor.user_id, action, owner_id)
            raise PermissionDeniedError(f"Only administrators may {action} reports")
        if actor.user_id != owner_id:
            logger.warning("User %s denied %s on report owned by %s", actor.user_id, action, owner_id)
            raise PermissionDeniedError(f"Only the report owner or an administrator may {action} this report")


_POLICIES: dict[str, type[AccessPolicy]] = {
    OpenAccessPolicy.name: OpenAccessPolicy,
    OwnerOrAdminPolicy.name: OwnerOrAdminPolicy,
}


def build_access_policy(name: str) -> AccessPolicy:
    try:
        return _POLICIES[name]()
    except KeyError as exc:
        raise ValueError(f"Unknown access policy: {name}") from exc


def get_access_policy() -> AccessPolicy:
    """FastAPI dependency returning the configured policy."""

    return build_access_policy(get_settings().access_policy)


__all__ = [
    "AccessPolicy",
    "OpenAccessPolicy",
    "OwnerOrAdminPolicy",
    "ReportAction",
    "build_access_policy",
    "get_access_policy",
]

"""Access control strategies deciding which kintone apps a call may touch.

Two strategies exist and a deployment uses exactly one of them:

``PermissionSetPolicy``
    Every accessible app is listed in the settings with a
    ``{read, write, delete}`` permission triple. Unlisted apps are denied.

``AllowDenyPolicy``
    Global allow and deny lists of app IDs. The deny list always wins; an
    empty allow list permits every app that is not denied. There is no
    distinction between capabilities.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, StrictBool

from kintone_mcp.service.errors import InvalidParamsError

__all__ = [
    "AccessDecision",
    "AccessPolicy",
    "AllowDenyPolicy",
    "Capability",
    "PermissionSetPolicy",
    "Permissions",
    "require_access",
]

LOGGER = logging.getLogger(__name__)

_SETTINGS_HINT = "Please check the MCP server settings and/or ask to the administrator."


class Capability(str, Enum):
    ANY = "do something"
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


class Permissions(BaseModel):
    """Permission triple configured for a single app."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    read: StrictBool = True
    write: StrictBool = False
    delete: StrictBool = False

    def allows(self, capability: Capability) -> bool:
        if capability is Capability.ANY:
            return True
        return bool(getattr(self, capability.value))


FULL_ACCESS = Permissions(read=True, write=True, delete=True)


@dataclass(frozen=True, slots=True)
class AccessDecision:
    allowed: bool
    reason: str = ""

    @classmethod
    def permit(cls) -> AccessDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> AccessDecision:
        return cls(allowed=False, reason=reason)


class AccessPolicy(Protocol):
    """Interface shared by the access control strategies."""

    def check_access(self, app_id: str, capability: Capability) -> AccessDecision:
        """Decide whether ``capability`` may be exercised on ``app_id``."""

    def permissions_for(self, app_id: str) -> Permissions | None:
        """Return the effective permission triple reported for ``app_id``."""

    def description_for(self, app_id: str) -> str | None:
        """Return the locally configured description of ``app_id``, if any."""

    def listing_scope(self) -> list[str] | None:
        """Return the app IDs to ask the backend for, or ``None`` for all."""


class PermissionSetPolicy:
    """Per-app permission triples taken from the settings file."""

    def __init__(
        self,
        permissions: Mapping[str, Permissions],
        descriptions: Mapping[str, str] | None = None,
    ) -> None:
        self._permissions = dict(permissions)
        self._descriptions = dict(descriptions or {})

    def check_access(self, app_id: str, capability: Capability) -> AccessDecision:
        permissions = self._permissions.get(app_id)
        if permissions is None:
            return AccessDecision.deny(
                f"App ID {app_id} is not found or not allowed to access. {_SETTINGS_HINT}"
            )
        if permissions.allows(capability):
            return AccessDecision.permit()
        return AccessDecision.deny(
            f"Permission denied to {capability.value} records in app ID {app_id}. "
            f"{_SETTINGS_HINT}"
        )

    def permissions_for(self, app_id: str) -> Permissions | None:
        return self._permissions.get(app_id)

    def description_for(self, app_id: str) -> str | None:
        return self._descriptions.get(app_id) or None

    def listing_scope(self) -> list[str] | None:
        return list(self._permissions)


class AllowDenyPolicy:
    """Global allow and deny lists of app IDs."""

    def __init__(self, allow: Iterable[str] = (), deny: Iterable[str] = ()) -> None:
        self._allow = frozenset(allow)
        self._deny = frozenset(deny)

    @property
    def allow(self) -> frozenset[str]:
        return self._allow

    @property
    def deny(self) -> frozenset[str]:
        return self._deny

    def check_access(self, app_id: str, capability: Capability) -> AccessDecision:
        if app_id in self._deny:
            return AccessDecision.deny(
                f"Access to app ID {app_id} is denied because it is in the deny list. "
                f"{_SETTINGS_HINT}"
            )
        if self._allow and app_id not in self._allow:
            return AccessDecision.deny(
                f"Access to app ID {app_id} is denied because it is not in the allow list. "
                f"{_SETTINGS_HINT}"
            )
        return AccessDecision.permit()

    def permissions_for(self, app_id: str) -> Permissions | None:
        if self.check_access(app_id, Capability.ANY).allowed:
            return FULL_ACCESS
        return None

    def description_for(self, app_id: str) -> str | None:
        return None

    def listing_scope(self) -> list[str] | None:
        if self._allow:
            return sorted(self._allow - self._deny)
        return None


def require_access(policy: AccessPolicy, app_id: str, *capabilities: Capability) -> None:
    """Raise :class:`InvalidParamsError` unless every capability is granted."""

    for capability in capabilities or (Capability.ANY,):
        decision = policy.check_access(app_id, capability)
        if not decision.allowed:
            LOGGER.info("Access denied to app %s (%s)", app_id, capability.value)
            raise InvalidParamsError(decision.reason)

"""Access control policies for kintone apps."""

from kintone_mcp.access.policy import (
    AccessDecision,
    AccessPolicy,
    AllowDenyPolicy,
    Capability,
    PermissionSetPolicy,
    Permissions,
    require_access,
)

__all__ = [
    "AccessDecision",
    "AccessPolicy",
    "AllowDenyPolicy",
    "Capability",
    "PermissionSetPolicy",
    "Permissions",
    "require_access",
]

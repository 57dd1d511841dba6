"""Access policy decisions for both configuration strategies."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from kintone_mcp.access.policy import (
    AllowDenyPolicy,
    Capability,
    PermissionSetPolicy,
    Permissions,
    require_access,
)
from kintone_mcp.service.errors import InvalidParamsError


def test_permissions_default_to_read_only() -> None:
    permissions = Permissions()
    assert (permissions.read, permissions.write, permissions.delete) == (True, False, False)


def test_permissions_reject_non_boolean_values() -> None:
    with pytest.raises(ValidationError):
        Permissions.model_validate({"read": "yes"})
    with pytest.raises(ValidationError):
        Permissions.model_validate({"write": 1})


def test_permission_set_denies_unlisted_app() -> None:
    policy = PermissionSetPolicy({"1": Permissions()})
    decision = policy.check_access("9", Capability.READ)
    assert not decision.allowed
    assert decision.reason.startswith("App ID 9 is not found or not allowed to access.")


@pytest.mark.parametrize(
    "capability,allowed",
    [
        (Capability.ANY, True),
        (Capability.READ, True),
        (Capability.WRITE, False),
        (Capability.DELETE, False),
    ],
)
def test_permission_set_checks_capability(capability: Capability, allowed: bool) -> None:
    policy = PermissionSetPolicy({"1": Permissions()})
    assert policy.check_access("1", capability).allowed is allowed


def test_permission_set_denial_names_capability() -> None:
    policy = PermissionSetPolicy({"1": Permissions()})
    decision = policy.check_access("1", Capability.DELETE)
    assert decision.reason.startswith("Permission denied to delete records in app ID 1.")


def test_permission_set_exposes_descriptions_and_scope() -> None:
    policy = PermissionSetPolicy(
        {"1": Permissions(), "3": Permissions(write=True)}, {"1": "Customers"}
    )
    assert policy.description_for("1") == "Customers"
    assert policy.description_for("3") is None
    assert sorted(policy.listing_scope()) == ["1", "3"]
    assert policy.permissions_for("3") == Permissions(read=True, write=True)


def test_deny_list_wins_over_allow_list() -> None:
    policy = AllowDenyPolicy(allow=["1", "2"], deny=["2"])
    assert policy.check_access("1", Capability.DELETE).allowed
    decision = policy.check_access("2", Capability.READ)
    assert not decision.allowed
    assert "deny list" in decision.reason


def test_empty_allow_list_permits_everything_not_denied() -> None:
    policy = AllowDenyPolicy(deny=["5"])
    assert policy.check_access("42", Capability.WRITE).allowed
    assert not policy.check_access("5", Capability.ANY).allowed
    assert policy.listing_scope() is None


def test_allow_list_restricts_listing_scope() -> None:
    policy = AllowDenyPolicy(allow=["3", "1", "2"], deny=["2"])
    assert policy.listing_scope() == ["1", "3"]
    decision = policy.check_access("7", Capability.READ)
    assert "not in the allow list" in decision.reason


def test_allow_deny_reports_full_access_for_permitted_apps() -> None:
    policy = AllowDenyPolicy(deny=["5"])
    assert policy.permissions_for("1") == Permissions(read=True, write=True, delete=True)
    assert policy.permissions_for("5") is None
    assert policy.description_for("1") is None


def test_require_access_checks_every_capability() -> None:
    policy = PermissionSetPolicy({"1": Permissions(read=True, write=False)})
    require_access(policy, "1", Capability.READ)
    with pytest.raises(InvalidParamsError) as excinfo:
        require_access(policy, "1", Capability.READ, Capability.WRITE)
    assert "Permission denied to write records in app ID 1." in excinfo.value.message
    assert excinfo.value.code == -32602

"""Role based authorization expressed as capabilities.

Roles map to capability names in ``policies.yaml``. Routes depend on
``require_capability(...)`` and services ask ``can(...)``/``can_manage(...)``
so every authorization decision goes through this module.
"""
import os
import yaml
from fastapi import Depends
from adblockpro.dependencies import require_active_user
from adblockpro.errors import Forbidden
from adblockpro.models import User, Role

POLICIES_PATH = os.path.join(os.path.dirname(__file__), "policies.yaml")

ADMIN_ACCESS = "admin:access"
MANAGE_USERS = "users:manage"
MANAGE_ROLES = "users:manage_roles"
MANAGE_ADMINS = "users:manage_admins"

PRIVILEGED_ROLES = (Role.admin, Role.superadmin)

with open(POLICIES_PATH, "r") as f:
    _policies = yaml.safe_load(f)
    if not _policies:
        raise RuntimeError("Policies YAML is empty or malformed!")

def capabilities_for(role: Role) -> frozenset:
    return frozenset(_policies.get(role.value, []))

def can(user: User, capability: str) -> bool:
    return capability in capabilities_for(user.role)

def can_manage(actor: User, target: User) -> bool:
    """Whether actor may change or delete target's account."""
    if not can(actor, MANAGE_USERS):
        return False
    if target.role in PRIVILEGED_ROLES and actor.id != target.id:
        return can(actor, MANAGE_ADMINS)
    return True

def require_capability(capability: str):
    def dep(user: User = Depends(require_active_user)):
        if not can(user, capability):
            raise Forbidden(f"User role {user.role.value} is not authorized to access this route")
        return user
    return dep

# Overview: Service-layer capability checks; resolves a user's role into capability codes.

"""
Capability Resolution

Roles map to capability sets (permissions/roles.py). Admin holds every
capability. A sub-admin holds the union of the capabilities of the panel
sections stored on its user row. Nothing is cached: the mapping is static
and the user row is already loaded by require_auth.

Fail closed: unknown roles and unknown sections grant nothing.
"""

from __future__ import annotations

from ..models import User
from ..permissions import DEFAULT_ROLE_PERMISSIONS, SUB_ADMIN_SECTION_PERMISSIONS


def get_user_permissions(user: User) -> set[str]:
    codes: set[str] = set(DEFAULT_ROLE_PERMISSIONS.get(user.role, ()))
    if user.is_sub_admin:
        for section in user.permissions or []:
            codes.update(SUB_ADMIN_SECTION_PERMISSIONS.get(section, ()))
    return codes


def has_capability(user: User | None, code: str) -> bool:
    if user is None:
        return False
    return code in get_user_permissions(user)


def has_any_capability(user: User | None, *codes: str) -> bool:
    if user is None:
        return False
    granted = get_user_permissions(user)
    return any(code in granted for code in codes)

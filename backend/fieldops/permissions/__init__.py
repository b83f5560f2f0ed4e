# Overview: Capability system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, SUB_ADMIN_SECTION_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    permission_catalog,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "SUB_ADMIN_SECTION_PERMISSIONS",
    "get_all_permission_codes",
    "get_permission_definition",
    "permission_catalog",
]

# Overview: Lookups over the capability definitions for the admin panel.

from .definitions import PERMISSION_DEFINITIONS


def get_all_permission_codes():
    """Get list of all capability codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permission_definition(code):
    """Get full definition for a capability code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def permission_catalog():
    """Definitions grouped by category, in definition order."""
    grouped = {}
    for perm in PERMISSION_DEFINITIONS:
        grouped.setdefault(perm[3], []).append(get_permission_definition(perm[0]))
    return grouped

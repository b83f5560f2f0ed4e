# Overview: Capability category constants for grouping related capabilities.


class PermissionCategory:
    """Capability categories for organization and admin panel display."""
    USERS = "USERS"
    DISTRIBUTORS = "DISTRIBUTORS"
    SHOPS = "SHOPS"
    CATALOG = "CATALOG"
    ORDERS = "ORDERS"
    DAMAGE_CLAIMS = "DAMAGE_CLAIMS"
    SALES_INQUIRIES = "SALES_INQUIRIES"
    SUPPLY_ESTIMATES = "SUPPLY_ESTIMATES"
    TASKS = "TASKS"
    ACTIVITIES = "ACTIVITIES"
    AUDIT = "AUDIT"

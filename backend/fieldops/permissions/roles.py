# Overview: Role -> capability mapping and sub-admin panel sections.

from .helpers import get_all_permission_codes

ALL_CAPABILITIES = get_all_permission_codes()

# Read-only capabilities shared by every signed-in role
_COMMON = [
    "VIEW_USERS",
    "VIEW_DISTRIBUTORS",
    "VIEW_SHOPS",
    "VIEW_CATALOG",
    "CREATE_SUPPLY_ESTIMATE",
    "CREATE_TASK",
]

DEFAULT_ROLE_PERMISSIONS = {
    "Admin": ALL_CAPABILITIES,

    "Marketing Staff": _COMMON + [
        "CREATE_SHOP",
        "UPDATE_SHOP",
        "CREATE_ORDER",
        "VIEW_ORDERS",
        "CREATE_DAMAGE_CLAIM",
        "CREATE_SALES_INQUIRY",
        "PUNCH_IN_OUT",
        "RECORD_SHOP_VISITS",
        "LOG_STAFF_ACTIVITY",
    ],

    "Mid-Level Manager": _COMMON + [
        "MANAGE_DISTRIBUTORS",
        "CREATE_SHOP",
        "UPDATE_SHOP",
        "DELETE_SHOP",
        "APPROVE_SHOPS",
        "AUTO_APPROVE_SHOPS",
        "VIEW_ORDERS",
        "VIEW_ALL_ORDERS",
        "APPROVE_ORDERS",
        "CREATE_DAMAGE_CLAIM",
        "VIEW_ALL_DAMAGE_CLAIMS",
        "COMMENT_DAMAGE_CLAIMS",
        "VIEW_ALL_SALES_INQUIRIES",
        "UPDATE_SALES_INQUIRY_STATUS",
        "COMMENT_SALES_INQUIRIES",
        "VIEW_ALL_SUPPLY_ESTIMATES",
        "REVIEW_SUPPLY_ESTIMATES",
        "VIEW_ALL_TASKS",
        "UPDATE_ANY_TASK_STATUS",
        "VIEW_TEAM_ACTIVITIES",
        "VIEW_STAFF_ACTIVITY",
    ],

    "Godown Incharge": _COMMON + [
        "VIEW_ORDERS",
        "VIEW_ALL_ORDERS",
        "DISPATCH_ORDERS",
        "VIEW_GODOWN_DAMAGE_CLAIMS",
        "PROCESS_REPLACEMENTS",
        "VIEW_ALL_SALES_INQUIRIES",
        "COMMENT_SALES_INQUIRIES",
        "DISPATCH_SALES_INQUIRIES",
        "UPDATE_ANY_TASK_STATUS",
    ],

    "App Developer": _COMMON + [
        "VIEW_ORDERS",
        "VIEW_ALL_ORDERS",
        "VIEW_ALL_DAMAGE_CLAIMS",
        "VIEW_ALL_SALES_INQUIRIES",
        "VIEW_ALL_SUPPLY_ESTIMATES",
        "VIEW_ALL_TASKS",
        "UPDATE_ANY_TASK_STATUS",
        "VIEW_TEAM_ACTIVITIES",
        "VIEW_STAFF_ACTIVITY",
    ],

    # Sub-admins get nothing from the role itself; see SUB_ADMIN_SECTION_PERMISSIONS
    "Sub Admin": ["VIEW_CATALOG"],
}

# Admin panel section -> capabilities granted to a sub-admin holding it
SUB_ADMIN_SECTION_PERMISSIONS = {
    "dashboard": ["VIEW_USERS", "VIEW_DISTRIBUTORS", "VIEW_TEAM_ACTIVITIES"],
    "staff": ["VIEW_USERS", "MANAGE_STAFF", "MANAGE_ASSIGNMENTS", "VIEW_STAFF_ACTIVITY"],
    "marketing": ["VIEW_DISTRIBUTORS", "VIEW_SHOPS", "VIEW_TEAM_ACTIVITIES"],
    "orders": ["VIEW_ORDERS", "VIEW_ALL_ORDERS"],
    "damage": ["VIEW_ALL_DAMAGE_CLAIMS", "PROCESS_DAMAGE_CLAIMS"],
    "tasks": ["CREATE_TASK", "VIEW_ALL_TASKS", "UPDATE_ANY_TASK_STATUS"],
    "distributors": ["VIEW_DISTRIBUTORS", "MANAGE_DISTRIBUTORS", "VIEW_SHOPS", "APPROVE_SHOPS"],
    "godown": ["VIEW_GODOWN_DAMAGE_CLAIMS", "VIEW_ALL_SALES_INQUIRIES"],
    "sales": ["VIEW_ALL_SALES_INQUIRIES", "UPDATE_SALES_INQUIRY_STATUS", "VIEW_ALL_SUPPLY_ESTIMATES"],
    "reports": ["VIEW_STAFF_ACTIVITY", "VIEW_TEAM_ACTIVITIES"],
}

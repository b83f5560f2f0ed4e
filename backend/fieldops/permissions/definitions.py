# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- USERS --

USER_PERMISSIONS = [
    ("VIEW_USERS", "View Users", "List staff and look users up by role", PermissionCategory.USERS),
    ("MANAGE_STAFF", "Manage Staff", "Create, edit, reset and deactivate staff accounts", PermissionCategory.USERS),
    ("MANAGE_SUB_ADMINS", "Manage Sub Admins", "Create sub-admins and grant panel sections", PermissionCategory.USERS),
    (
        "MANAGE_ASSIGNMENTS",
        "Manage Assignments",
        "Assign distributors to marketing staff",
        PermissionCategory.USERS,
    ),
]


# -- DISTRIBUTORS --

DISTRIBUTOR_PERMISSIONS = [
    ("VIEW_DISTRIBUTORS", "View Distributors", "View distributors and their shops", PermissionCategory.DISTRIBUTORS),
    (
        "MANAGE_DISTRIBUTORS",
        "Manage Distributors",
        "Create and edit distributors and their legacy shop lists",
        PermissionCategory.DISTRIBUTORS,
    ),
    ("DELETE_DISTRIBUTOR", "Delete Distributor", "Deactivate a distributor", PermissionCategory.DISTRIBUTORS),
]


# -- SHOPS --

SHOP_PERMISSIONS = [
    ("VIEW_SHOPS", "View Shops", "View shops under a distributor", PermissionCategory.SHOPS),
    ("CREATE_SHOP", "Create Shop", "Register a new shop", PermissionCategory.SHOPS),
    ("UPDATE_SHOP", "Update Shop", "Edit shop details", PermissionCategory.SHOPS),
    ("DELETE_SHOP", "Delete Shop", "Deactivate a shop", PermissionCategory.SHOPS),
    ("APPROVE_SHOPS", "Approve Shops", "Approve or reject pending shops", PermissionCategory.SHOPS),
    (
        "AUTO_APPROVE_SHOPS",
        "Auto-approve Shops",
        "Shops created by this user skip the approval queue",
        PermissionCategory.SHOPS,
    ),
]


# -- CATALOG --

CATALOG_PERMISSIONS = [
    ("VIEW_CATALOG", "View Catalog", "Browse brands, variants and sizes", PermissionCategory.CATALOG),
    ("MANAGE_CATALOG", "Manage Catalog", "Create, edit and retire brands and variants", PermissionCategory.CATALOG),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    ("CREATE_ORDER", "Create Order", "Raise a stock order for a distributor", PermissionCategory.ORDERS),
    ("VIEW_ORDERS", "View Orders", "View orders (own orders for field staff)", PermissionCategory.ORDERS),
    ("VIEW_ALL_ORDERS", "View All Orders", "View orders raised by anyone", PermissionCategory.ORDERS),
    ("APPROVE_ORDERS", "Approve Orders", "Approve or reject requested orders", PermissionCategory.ORDERS),
    ("DISPATCH_ORDERS", "Dispatch Orders", "Mark approved orders as dispatched", PermissionCategory.ORDERS),
    ("DELETE_ORDER", "Delete Order", "Deactivate an order", PermissionCategory.ORDERS),
]


# -- DAMAGE CLAIMS --

DAMAGE_CLAIM_PERMISSIONS = [
    ("CREATE_DAMAGE_CLAIM", "Create Damage Claim", "Report damaged stock", PermissionCategory.DAMAGE_CLAIMS),
    (
        "VIEW_ALL_DAMAGE_CLAIMS",
        "View All Damage Claims",
        "View damage claims raised by anyone",
        PermissionCategory.DAMAGE_CLAIMS,
    ),
    (
        "COMMENT_DAMAGE_CLAIMS",
        "Comment Damage Claims",
        "Add manager comments to pending claims",
        PermissionCategory.DAMAGE_CLAIMS,
    ),
    (
        "PROCESS_DAMAGE_CLAIMS",
        "Process Damage Claims",
        "Approve, partially approve or reject claims",
        PermissionCategory.DAMAGE_CLAIMS,
    ),
    (
        "VIEW_GODOWN_DAMAGE_CLAIMS",
        "View Godown Damage Claims",
        "Godown view of claims and tracking codes",
        PermissionCategory.DAMAGE_CLAIMS,
    ),
    (
        "PROCESS_REPLACEMENTS",
        "Process Replacements",
        "Record replacement shipments for approved claims",
        PermissionCategory.DAMAGE_CLAIMS,
    ),
    ("DELETE_DAMAGE_CLAIM", "Delete Damage Claim", "Permanently delete a claim", PermissionCategory.DAMAGE_CLAIMS),
]


# -- SALES INQUIRIES --

SALES_INQUIRY_PERMISSIONS = [
    ("CREATE_SALES_INQUIRY", "Create Sales Inquiry", "Raise a sales inquiry", PermissionCategory.SALES_INQUIRIES),
    (
        "VIEW_ALL_SALES_INQUIRIES",
        "View All Sales Inquiries",
        "View inquiries raised by anyone",
        PermissionCategory.SALES_INQUIRIES,
    ),
    (
        "UPDATE_SALES_INQUIRY_STATUS",
        "Update Sales Inquiry Status",
        "Move inquiries through processing",
        PermissionCategory.SALES_INQUIRIES,
    ),
    (
        "COMMENT_SALES_INQUIRIES",
        "Comment Sales Inquiries",
        "Add manager comments to inquiries",
        PermissionCategory.SALES_INQUIRIES,
    ),
    (
        "DISPATCH_SALES_INQUIRIES",
        "Dispatch Sales Inquiries",
        "Record dispatch of processed inquiries",
        PermissionCategory.SALES_INQUIRIES,
    ),
    (
        "DELETE_SALES_INQUIRY",
        "Delete Sales Inquiry",
        "Permanently delete an inquiry",
        PermissionCategory.SALES_INQUIRIES,
    ),
]


# -- SUPPLY ESTIMATES --

SUPPLY_ESTIMATE_PERMISSIONS = [
    (
        "CREATE_SUPPLY_ESTIMATE",
        "Create Supply Estimate",
        "Submit a supply estimate for a distributor",
        PermissionCategory.SUPPLY_ESTIMATES,
    ),
    (
        "VIEW_ALL_SUPPLY_ESTIMATES",
        "View All Supply Estimates",
        "View estimates submitted by anyone",
        PermissionCategory.SUPPLY_ESTIMATES,
    ),
    (
        "REVIEW_SUPPLY_ESTIMATES",
        "Review Supply Estimates",
        "Approve or reject pending estimates",
        PermissionCategory.SUPPLY_ESTIMATES,
    ),
]


# -- TASKS --

TASK_PERMISSIONS = [
    ("CREATE_TASK", "Create Task", "Create and assign tasks", PermissionCategory.TASKS),
    ("VIEW_ALL_TASKS", "View All Tasks", "View tasks of every staff member", PermissionCategory.TASKS),
    ("DELETE_ANY_TASK", "Delete Any Task", "Delete tasks created by others", PermissionCategory.TASKS),
    (
        "UPDATE_ANY_TASK_STATUS",
        "Update Any Task Status",
        "Change the status of tasks assigned to others",
        PermissionCategory.TASKS,
    ),
]


# -- ACTIVITIES --

ACTIVITY_PERMISSIONS = [
    ("PUNCH_IN_OUT", "Punch In/Out", "Start and end marketing trips", PermissionCategory.ACTIVITIES),
    ("RECORD_SHOP_VISITS", "Record Shop Visits", "Record shop visits during a trip", PermissionCategory.ACTIVITIES),
    (
        "VIEW_TEAM_ACTIVITIES",
        "View Team Activities",
        "View trips and shop visits of all staff",
        PermissionCategory.ACTIVITIES,
    ),
    (
        "DELETE_MARKETING_ACTIVITY",
        "Delete Marketing Activity",
        "Delete a trip and its shop visits",
        PermissionCategory.ACTIVITIES,
    ),
]


# -- AUDIT --

AUDIT_PERMISSIONS = [
    ("LOG_STAFF_ACTIVITY", "Log Staff Activity", "Add a manual activity entry", PermissionCategory.AUDIT),
    ("VIEW_STAFF_ACTIVITY", "View Staff Activity", "Query the staff activity trail", PermissionCategory.AUDIT),
]


PERMISSION_DEFINITIONS = (
    USER_PERMISSIONS
    + DISTRIBUTOR_PERMISSIONS
    + SHOP_PERMISSIONS
    + CATALOG_PERMISSIONS
    + ORDER_PERMISSIONS
    + DAMAGE_CLAIM_PERMISSIONS
    + SALES_INQUIRY_PERMISSIONS
    + SUPPLY_ESTIMATE_PERMISSIONS
    + TASK_PERMISSIONS
    + ACTIVITY_PERMISSIONS
    + AUDIT_PERMISSIONS
)

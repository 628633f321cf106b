# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- COMPANY --

COMPANY_PERMISSIONS = [
    (
        "VIEW_COMPANY",
        "View Company",
        "View own company profile and the supplier/dealer directory",
        PermissionCategory.COMPANY,
    ),
    (
        "MANAGE_COMPANY",
        "Manage Company",
        "Edit own company profile (address, contact, business details)",
        PermissionCategory.COMPANY,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "List users of the company",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Change roles and status, approve employees, remove users",
        PermissionCategory.USERS,
    ),
    (
        "INVITE_USERS",
        "Invite Users",
        "Create and revoke employee invitation codes",
        PermissionCategory.USERS,
    ),
    (
        "VIEW_AUDIT_LOG",
        "View Audit Log",
        "View user management and entity audit trails",
        PermissionCategory.USERS,
    ),
]


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "Browse the product catalog and categories",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit and deactivate own products (suppliers only)",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_CATEGORIES",
        "Manage Categories",
        "Create, edit and delete product categories",
        PermissionCategory.CATALOG,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View warehouses, stock levels and batches",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_INVENTORY",
        "Manage Inventory",
        "Create, configure and delete inventory records",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Increase or decrease stock quantities",
        PermissionCategory.INVENTORY,
    ),
    (
        "TRANSFER_INVENTORY",
        "Transfer Inventory",
        "Move stock between company warehouses",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_WAREHOUSES",
        "Manage Warehouses",
        "Create, edit and delete warehouses",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_BATCHES",
        "Manage Batches",
        "Create, edit and retire batches",
        PermissionCategory.INVENTORY,
    ),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "VIEW_ORDERS",
        "View Orders",
        "View incoming and outgoing orders",
        PermissionCategory.ORDERS,
    ),
    (
        "CREATE_ORDERS",
        "Create Orders",
        "Place orders with suppliers and cancel own pending orders",
        PermissionCategory.ORDERS,
    ),
    (
        "MANAGE_ORDERS",
        "Manage Orders",
        "Confirm, process, ship, deliver and cancel incoming orders",
        PermissionCategory.ORDERS,
    ),
]


# -- BILLING --

BILLING_PERMISSIONS = [
    (
        "VIEW_BILLING",
        "View Billing",
        "View invoices and payments for incoming and outgoing orders",
        PermissionCategory.BILLING,
    ),
    (
        "MANAGE_PAYMENTS",
        "Manage Payments",
        "Record, refund, void and reconcile payments received for incoming orders",
        PermissionCategory.BILLING,
    ),
    (
        "MANAGE_INVOICES",
        "Manage Invoices",
        "Draft, send and void invoices for incoming orders",
        PermissionCategory.BILLING,
    ),
]

# -- ANALYTICS --

ANALYTICS_PERMISSIONS = [
    (
        "VIEW_ANALYTICS",
        "View Analytics",
        "View analytics events and customer activity",
        PermissionCategory.ANALYTICS,
    ),
]


# -- PLATFORM --

PLATFORM_PERMISSIONS = [
    (
        "VERIFY_COMPANIES",
        "Verify Companies",
        "Approve, reject, suspend and reinstate company registrations",
        PermissionCategory.PLATFORM,
    ),
]


PERMISSION_DEFINITIONS = (
    COMPANY_PERMISSIONS
    + USER_PERMISSIONS
    + CATALOG_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + ORDER_PERMISSIONS
    + BILLING_PERMISSIONS
    + ANALYTICS_PERMISSIONS
    + PLATFORM_PERMISSIONS
)

# Overview: Default permission sets per company role and for platform admins.

from .definitions import (
    COMPANY_PERMISSIONS,
    USER_PERMISSIONS,
    CATALOG_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    ORDER_PERMISSIONS,
    BILLING_PERMISSIONS,
    ANALYTICS_PERMISSIONS,
)


def _codes(*groups):
    return [perm[0] for group in groups for perm in group]


_COMPANY_SCOPED = _codes(
    COMPANY_PERMISSIONS,
    USER_PERMISSIONS,
    CATALOG_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    ORDER_PERMISSIONS,
    BILLING_PERMISSIONS,
    ANALYTICS_PERMISSIONS,
)


DEFAULT_ROLE_PERMISSIONS = {
    # Admin gets every company-scoped permission
    "admin": list(_COMPANY_SCOPED),
    "manager": [code for code in _COMPANY_SCOPED if code not in {"MANAGE_COMPANY", "MANAGE_USERS"}],
    "staff": [
        "VIEW_COMPANY",
        "VIEW_PRODUCTS",
        "VIEW_INVENTORY",
        "ADJUST_INVENTORY",
        "VIEW_ORDERS",
        "CREATE_ORDERS",
    ],
}

PLATFORM_ADMIN_PERMISSIONS = [
    "VERIFY_COMPANIES",
    "VIEW_COMPANY",
    "VIEW_AUDIT_LOG",
]

ROLE_RANK = {
    "staff": 1,
    "manager": 2,
    "admin": 3,
}

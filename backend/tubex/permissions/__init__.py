# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    COMPANY_PERMISSIONS,
    USER_PERMISSIONS,
    CATALOG_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    ORDER_PERMISSIONS,
    BILLING_PERMISSIONS,
    ANALYTICS_PERMISSIONS,
    PLATFORM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, PLATFORM_ADMIN_PERMISSIONS, ROLE_RANK
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    get_role_permissions,
    get_platform_admin_permissions,
    role_can_assign,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "COMPANY_PERMISSIONS",
    "USER_PERMISSIONS",
    "CATALOG_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "BILLING_PERMISSIONS",
    "ANALYTICS_PERMISSIONS",
    "PLATFORM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "PLATFORM_ADMIN_PERMISSIONS",
    "ROLE_RANK",
    "get_all_permission_codes",
    "get_permission_definition",
    "get_role_permissions",
    "get_platform_admin_permissions",
    "role_can_assign",
]

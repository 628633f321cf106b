# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    COMPANY = "COMPANY"
    USERS = "USERS"
    CATALOG = "CATALOG"
    INVENTORY = "INVENTORY"
    ORDERS = "ORDERS"
    BILLING = "BILLING"
    ANALYTICS = "ANALYTICS"
    PLATFORM = "PLATFORM"

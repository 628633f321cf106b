# Overview: Lookups over permission definitions and the role hierarchy.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, PLATFORM_ADMIN_PERMISSIONS, ROLE_RANK


def get_all_permission_codes() -> list[str]:
    return [code for code, _name, _description, _category in PERMISSION_DEFINITIONS]


def get_permission_definition(code: str) -> dict | None:
    """Full definition for a permission code, or None if unknown."""
    for perm_code, name, description, category in PERMISSION_DEFINITIONS:
        if perm_code == code:
            return {
                "code": perm_code,
                "name": name,
                "description": description,
                "category": category,
            }
    return None


def get_role_permissions(role: str) -> set[str]:
    """Permission codes granted to a company role ("admin", "manager", "staff")."""
    return set(DEFAULT_ROLE_PERMISSIONS.get(role, ()))


def get_platform_admin_permissions() -> set[str]:
    return set(PLATFORM_ADMIN_PERMISSIONS)


def role_can_assign(actor_role: str, target_role: str) -> bool:
    """A user may only hand out roles at or below their own rank."""
    return ROLE_RANK.get(actor_role, 0) >= ROLE_RANK.get(target_role, 99)

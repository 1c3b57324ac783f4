"""
Roles, resources, actions and the static permission matrix.

This defines WHAT each role may do. The request gates that enforce it
live in `api.apps.auth.dependencies`.
"""

from enum import Enum
from typing import Mapping


class Role(str, Enum):
    """Closed set of account roles."""

    OWNER = "owner"                           # Tenant owner, full access
    MANAGER = "manager"                       # Products, suppliers, sales
    CLERK = "clerk"                           # Point-of-sale operations
    ACCOUNTANT = "accountant"                 # Expenses and reporting
    WAREHOUSE_MANAGER = "warehouse_manager"   # Stock and deliveries


class Resource(str, Enum):
    USERS = "users"
    STORES = "stores"
    PRODUCTS = "products"
    SALES = "sales"
    SUPPLIERS = "suppliers"
    EXPENSES = "expenses"
    REPORTS = "reports"
    SETTINGS = "settings"
    SUBSCRIPTION = "subscription"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    REFUND = "refund"
    EXPORT = "export"


_CRUD = frozenset({Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE})


ROLE_PERMISSIONS: Mapping[Role, Mapping[Resource, frozenset[Action]]] = {
    Role.OWNER: {
        Resource.USERS: _CRUD,
        Resource.STORES: _CRUD,
        Resource.PRODUCTS: _CRUD,
        Resource.SALES: _CRUD | {Action.REFUND},
        Resource.SUPPLIERS: _CRUD,
        Resource.EXPENSES: _CRUD,
        Resource.REPORTS: frozenset({Action.READ, Action.EXPORT}),
        Resource.SETTINGS: frozenset({Action.READ, Action.UPDATE}),
        Resource.SUBSCRIPTION: frozenset({Action.READ, Action.UPDATE}),
    },
    Role.MANAGER: {
        Resource.USERS: frozenset({Action.READ}),
        Resource.STORES: frozenset({Action.READ}),
        Resource.PRODUCTS: _CRUD,
        Resource.SALES: frozenset({Action.CREATE, Action.READ, Action.REFUND}),
        Resource.SUPPLIERS: _CRUD,
        Resource.EXPENSES: frozenset({Action.READ}),
        Resource.REPORTS: frozenset({Action.READ, Action.EXPORT}),
    },
    Role.CLERK: {
        Resource.PRODUCTS: frozenset({Action.READ}),
        Resource.SALES: frozenset({Action.CREATE, Action.READ}),
        Resource.EXPENSES: frozenset(),
        Resource.REPORTS: frozenset(),
    },
    Role.ACCOUNTANT: {
        Resource.PRODUCTS: frozenset({Action.READ}),
        Resource.SALES: frozenset({Action.READ}),
        Resource.EXPENSES: _CRUD,
        Resource.REPORTS: frozenset({Action.READ, Action.EXPORT}),
        Resource.SUPPLIERS: frozenset({Action.READ}),
    },
    Role.WAREHOUSE_MANAGER: {
        Resource.PRODUCTS: frozenset({Action.READ, Action.UPDATE}),
        Resource.SUPPLIERS: frozenset({Action.READ, Action.UPDATE}),
        Resource.SALES: frozenset({Action.READ}),
        Resource.REPORTS: frozenset({Action.READ}),
    },
}


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def get_permissions(role: Role | str) -> Mapping[Resource, frozenset[Action]]:
    """Resource -> actions for a role. Unknown roles get nothing."""
    role = _coerce(Role, role)
    if role is None:
        return {}
    return ROLE_PERMISSIONS.get(role, {})


def has_role(role: Role | str, allowed: "tuple[Role | str, ...] | list[Role | str]") -> bool:
    role = _coerce(Role, role)
    return role is not None and role in {_coerce(Role, r) for r in allowed}


def has_permission(role: Role | str, resource: Resource | str, action: Action | str) -> bool:
    """
    Check the matrix.

    Unknown role, resource or action -> False. A resource the role does not
    list is treated as an empty permission set.
    """
    resource = _coerce(Resource, resource)
    action = _coerce(Action, action)
    if resource is None or action is None:
        return False
    return action in get_permissions(role).get(resource, frozenset())

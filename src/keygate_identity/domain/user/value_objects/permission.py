from enum import Enum


class Permission(str, Enum):
    """Capabilities granted to roles."""

    READ_OWN_PROFILE = "read_own_profile"
    UPDATE_OWN_PROFILE = "update_own_profile"
    REDEEM_KEYS = "redeem_keys"
    VIEW_OWN_SUBSCRIPTIONS = "view_own_subscriptions"
    VIEW_USERS = "view_users"
    CREATE_USERS = "create_users"
    UPDATE_USERS = "update_users"
    DELETE_USERS = "delete_users"
    VIEW_KEYS = "view_keys"
    GENERATE_KEYS = "generate_keys"
    DEACTIVATE_KEYS = "deactivate_keys"
    VIEW_SUBSCRIPTIONS = "view_subscriptions"
    MANAGE_SUBSCRIPTIONS = "manage_subscriptions"
    VIEW_ANALYTICS = "view_analytics"
    SYSTEM_MAINTENANCE = "system_maintenance"
    AUDIT_LOGS = "audit_logs"
    MANAGE_PRODUCTS = "manage_products"

    @classmethod
    def parse(cls, value: "str | Permission") -> "Permission | None":
        if isinstance(value, Permission):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None

from .roles import Role, coerce_role, is_admin, is_manager_or_admin, has_permission, permissions_for
